"""
Widget Repository - Database operations for dashboard widgets.
"""

from typing import Any, Iterable, List, Optional

from pymongo.client_session import ClientSession

from crm_dashboards.entities.widget import Widget

from .base import BaseRepository


class WidgetRepository(BaseRepository[Widget]):
    """Repository for Widget entities (``dashboard_widgets`` collection)."""

    def __init__(self, db):
        super().__init__(db, "dashboard_widgets", Widget)
        self.collection.create_index([("dashboard_id", 1)], background=True)

    def find_by_dashboard(
        self,
        dashboard_id: Any,
        session: Optional[ClientSession] = None,
    ) -> List[Widget]:
        """All widgets of a dashboard in insertion order."""
        oid = self._to_object_id(dashboard_id)
        if oid is None:
            return []
        return self.find_many({"dashboard_id": oid}, sort=[("_id", 1)], session=session)

    def delete_by_dashboard(
        self,
        dashboard_id: Any,
        session: Optional[ClientSession] = None,
    ) -> int:
        """Delete every widget of a dashboard. Returns deleted count."""
        oid = self._to_object_id(dashboard_id)
        if oid is None:
            return 0
        return self.delete_many({"dashboard_id": oid}, session=session)

    def find_orphans(self, dashboard_ids: Iterable[Any]) -> List[Widget]:
        """Widgets whose dashboard is not in ``dashboard_ids``."""
        oids = [oid for oid in (self._to_object_id(d) for d in dashboard_ids) if oid is not None]
        return self.find_many({"dashboard_id": {"$nin": oids}})
