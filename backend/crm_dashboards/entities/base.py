"""Base entity shared by every document stored in MongoDB."""

from datetime import datetime
from typing import Annotated, Any, Dict, Optional

from bson import ObjectId
from bson.errors import InvalidId
from pydantic import BaseModel, BeforeValidator, ConfigDict, Field, PlainSerializer

from crm_dashboards.utils.datetime import utc_now


def _validate_object_id(value: Any) -> ObjectId:
    if isinstance(value, ObjectId):
        return value
    try:
        return ObjectId(str(value))
    except (InvalidId, TypeError) as exc:
        raise ValueError(f"Invalid ObjectId: {value!r}") from exc


# ObjectId in python mode, 24-hex string in JSON mode
PyObjectId = Annotated[
    ObjectId,
    BeforeValidator(_validate_object_id),
    PlainSerializer(str, return_type=str, when_used="json"),
]

# Always a string, whatever the stored type (used by DTOs)
PyObjectIdStr = Annotated[str, BeforeValidator(lambda value: str(value))]


class BaseEntity(BaseModel):
    """Common fields: Mongo ``_id`` plus creation/update timestamps."""

    id: Optional[PyObjectId] = Field(default=None, alias="_id")
    created_at: datetime = Field(default_factory=utc_now)
    updated_at: datetime = Field(default_factory=utc_now)

    model_config = ConfigDict(populate_by_name=True, arbitrary_types_allowed=True)

    def to_mongo(self) -> Dict[str, Any]:
        """Dump to a document ready for insertion (``_id`` omitted until assigned)."""
        data = self.model_dump(by_alias=True)
        if data.get("_id") is None:
            data.pop("_id", None)
        return data
