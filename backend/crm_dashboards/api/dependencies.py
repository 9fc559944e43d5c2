"""FastAPI dependencies wiring services to the request's database handle."""

from fastapi import Depends
from pymongo.database import Database

from crm_dashboards.database.mongo import get_db
from crm_dashboards.services.dashboard_service import DashboardService
from crm_dashboards.services.maintenance import MaintenanceService
from crm_dashboards.services.widget_data import WidgetDataService


def get_dashboard_service(db: Database = Depends(get_db)) -> DashboardService:
    return DashboardService(db)


def get_widget_data_service(db: Database = Depends(get_db)) -> WidgetDataService:
    return WidgetDataService(db)


def get_maintenance_service(db: Database = Depends(get_db)) -> MaintenanceService:
    return MaintenanceService(db)
