"""
CRM Record Repository - Read-only access to the CRM collections widgets
aggregate over (deals, contacts, companies, activities, pipelines, users).

These collections are owned by other services, so documents are returned as
raw dicts rather than entities.
"""

import logging
from typing import Any, Dict, List, Optional

from bson import ObjectId
from bson.errors import InvalidId
from pymongo import ASCENDING, DESCENDING
from pymongo.database import Database

from crm_dashboards.entities.widget import DataSource

logger = logging.getLogger(__name__)

Record = Dict[str, Any]

DATA_SOURCES = frozenset(source.value for source in DataSource)


def _object_id(value: Any) -> Optional[ObjectId]:
    if isinstance(value, ObjectId):
        return value
    try:
        return ObjectId(str(value))
    except (InvalidId, TypeError):
        return None


class CrmRecordRepository:
    """Queries over the CRM record collections."""

    def __init__(self, db: Database):
        self.db = db

    def _source_collection(self, data_source: Optional[str]):
        if data_source not in DATA_SOURCES:
            logger.debug(f"Unknown data source {data_source!r}, returning no records")
            return None
        return self.db[data_source]

    def find_all(self, data_source: Optional[str]) -> List[Record]:
        """Every record of a data source; unknown sources yield nothing."""
        collection = self._source_collection(data_source)
        if collection is None:
            return []
        return list(collection.find())

    def take(self, data_source: Optional[str], sort_order: Optional[str], limit: int) -> List[Record]:
        """
        First ``limit`` records in natural (creation) order.

        Descending unless ``sort_order == "asc"``.
        """
        collection = self._source_collection(data_source)
        if collection is None or limit <= 0:
            return []
        direction = ASCENDING if sort_order == "asc" else DESCENDING
        return list(collection.find().sort("_id", direction).limit(limit))

    # -------------------------------------------------------------------------
    # Pipelines and deals
    # -------------------------------------------------------------------------

    def find_pipeline(self, pipeline_id: Any) -> Optional[Record]:
        oid = _object_id(pipeline_id)
        if oid is None:
            return None
        return self.db.pipelines.find_one({"_id": oid})

    def find_default_pipeline(self) -> Optional[Record]:
        return self.db.pipelines.find_one({"is_default": True})

    def find_open_deals(self, pipeline_id: Any) -> List[Record]:
        """Open deals of a pipeline; deals may reference it by ObjectId or string."""
        return list(
            self.db.deals.find(
                {
                    "pipeline_id": {"$in": [pipeline_id, str(pipeline_id)]},
                    "status": "open",
                }
            )
        )

    def find_won_deals(self) -> List[Record]:
        return list(self.db.deals.find({"status": "won"}))

    def find_activities(self) -> List[Record]:
        return list(self.db.activities.find())

    def find_contacts(self) -> List[Record]:
        return list(self.db.contacts.find())

    def list_users(self) -> List[Record]:
        return list(self.db.users.find())
