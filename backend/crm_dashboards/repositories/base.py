"""Generic repository over a single MongoDB collection."""

import logging
from typing import Any, Dict, Generic, List, Optional, Sequence, Tuple, Type, TypeVar

from bson import ObjectId
from bson.errors import InvalidId
from pymongo import ReturnDocument
from pymongo.client_session import ClientSession
from pymongo.collection import Collection
from pymongo.database import Database

from crm_dashboards.entities.base import BaseEntity

logger = logging.getLogger(__name__)

T = TypeVar("T", bound=BaseEntity)

SortSpec = Sequence[Tuple[str, int]]


class BaseRepository(Generic[T]):
    """
    CRUD helpers shared by the entity repositories.

    Every method accepts an optional ``session`` so that callers can run a
    sequence of writes inside ``get_transaction()``.
    """

    def __init__(self, db: Database, collection_name: str, model_class: Type[T]):
        self.db = db
        self.collection: Collection = db[collection_name]
        self.model_class = model_class

    @staticmethod
    def _to_object_id(value: Any) -> Optional[ObjectId]:
        """Convert to ObjectId; malformed ids become None so they match nothing."""
        if value is None or isinstance(value, ObjectId):
            return value
        try:
            return ObjectId(str(value))
        except (InvalidId, TypeError):
            return None

    def _to_model(self, doc: Optional[Dict[str, Any]]) -> Optional[T]:
        return self.model_class(**doc) if doc else None

    def find_by_id(self, entity_id: Any, session: Optional[ClientSession] = None) -> Optional[T]:
        oid = self._to_object_id(entity_id)
        if oid is None:
            return None
        return self.find_one({"_id": oid}, session=session)

    def find_one(self, query: Dict[str, Any], session: Optional[ClientSession] = None) -> Optional[T]:
        return self._to_model(self.collection.find_one(query, session=session))

    def find_many(
        self,
        query: Dict[str, Any],
        sort: Optional[SortSpec] = None,
        skip: int = 0,
        limit: int = 0,
        session: Optional[ClientSession] = None,
    ) -> List[T]:
        cursor = self.collection.find(query, session=session)
        if sort:
            cursor = cursor.sort(list(sort))
        if skip:
            cursor = cursor.skip(skip)
        if limit:
            cursor = cursor.limit(limit)
        return [self.model_class(**doc) for doc in cursor]

    def insert_one(self, entity: T, session: Optional[ClientSession] = None) -> T:
        result = self.collection.insert_one(entity.to_mongo(), session=session)
        entity.id = result.inserted_id
        return entity

    def update_one(
        self,
        entity_id: Any,
        updates: Dict[str, Any],
        session: Optional[ClientSession] = None,
    ) -> Optional[T]:
        """Merge ``updates`` into the document; returns the updated entity or None."""
        oid = self._to_object_id(entity_id)
        if oid is None:
            return None
        doc = self.collection.find_one_and_update(
            {"_id": oid},
            {"$set": updates},
            return_document=ReturnDocument.AFTER,
            session=session,
        )
        return self._to_model(doc)

    def update_many(
        self,
        query: Dict[str, Any],
        updates: Dict[str, Any],
        session: Optional[ClientSession] = None,
    ) -> int:
        result = self.collection.update_many(query, {"$set": updates}, session=session)
        return result.modified_count

    def delete_one(self, entity_id: Any, session: Optional[ClientSession] = None) -> bool:
        oid = self._to_object_id(entity_id)
        if oid is None:
            return False
        result = self.collection.delete_one({"_id": oid}, session=session)
        return result.deleted_count > 0

    def delete_many(self, query: Dict[str, Any], session: Optional[ClientSession] = None) -> int:
        result = self.collection.delete_many(query, session=session)
        return result.deleted_count
