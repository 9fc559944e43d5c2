"""
Dashboard Repository - Database operations for dashboards.
"""

from typing import Any, Dict, List, Optional

from pymongo.client_session import ClientSession

from crm_dashboards.entities.dashboard import Dashboard
from crm_dashboards.utils.datetime import utc_now

from .base import BaseRepository


class DashboardRepository(BaseRepository[Dashboard]):
    """Repository for Dashboard entities."""

    def __init__(self, db):
        super().__init__(db, "dashboards", Dashboard)
        self.collection.create_index([("is_default", 1)], background=True)

    def list_all(self) -> List[Dashboard]:
        return self.find_many({})

    def find_default(self, session: Optional[ClientSession] = None) -> Optional[Dashboard]:
        """Find the dashboard flagged as default, if any."""
        return self.find_one({"is_default": True}, session=session)

    def find_defaults(self) -> List[Dashboard]:
        """All dashboards flagged default, most recently updated first."""
        return self.find_many({"is_default": True}, sort=[("updated_at", -1)])

    def unset_default(
        self,
        except_id: Any = None,
        session: Optional[ClientSession] = None,
    ) -> int:
        """
        Clear the default flag on every dashboard other than ``except_id``.

        Returns the number of dashboards modified.
        """
        query: Dict[str, Any] = {"is_default": True}
        oid = self._to_object_id(except_id)
        if oid is not None:
            query["_id"] = {"$ne": oid}
        return self.update_many(
            query,
            {"is_default": False, "updated_at": utc_now()},
            session=session,
        )

    def set_layout(
        self,
        dashboard_id: Any,
        layout: List[Dict[str, Any]],
        session: Optional[ClientSession] = None,
    ) -> Optional[Dashboard]:
        """Replace the whole layout array."""
        return self.update_one(
            dashboard_id,
            {"layout": layout, "updated_at": utc_now()},
            session=session,
        )

    def push_layout_item(
        self,
        dashboard_id: Any,
        item: Dict[str, Any],
        session: Optional[ClientSession] = None,
    ) -> bool:
        """Append one layout entry atomically. Returns False when the dashboard is gone."""
        oid = self._to_object_id(dashboard_id)
        if oid is None:
            return False
        result = self.collection.update_one(
            {"_id": oid},
            {"$push": {"layout": item}, "$set": {"updated_at": utc_now()}},
            session=session,
        )
        return result.matched_count > 0

    def pull_layout_item(
        self,
        dashboard_id: Any,
        widget_id: str,
        session: Optional[ClientSession] = None,
    ) -> bool:
        """Strip every layout entry of ``widget_id``. Returns False when the dashboard is gone."""
        oid = self._to_object_id(dashboard_id)
        if oid is None:
            return False
        result = self.collection.update_one(
            {"_id": oid},
            {"$pull": {"layout": {"widget_id": widget_id}}, "$set": {"updated_at": utc_now()}},
            session=session,
        )
        return result.matched_count > 0

    def move_layout_item(
        self,
        dashboard_id: Any,
        widget_id: str,
        rect: Dict[str, int],
        session: Optional[ClientSession] = None,
    ) -> bool:
        """Set x/y/w/h of the layout entry for ``widget_id``. False when no entry matched."""
        oid = self._to_object_id(dashboard_id)
        if oid is None:
            return False
        updates: Dict[str, Any] = {f"layout.$.{key}": value for key, value in rect.items()}
        updates["updated_at"] = utc_now()
        result = self.collection.update_one(
            {"_id": oid, "layout.widget_id": widget_id},
            {"$set": updates},
            session=session,
        )
        return result.matched_count > 0
