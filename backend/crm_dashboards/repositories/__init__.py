"""Repository layer for database operations"""

from .base import BaseRepository
from .crm_records import CrmRecordRepository
from .dashboard import DashboardRepository
from .widget import WidgetRepository

__all__ = [
    "BaseRepository",
    "DashboardRepository",
    "WidgetRepository",
    # Read-only CRM collections
    "CrmRecordRepository",
]
