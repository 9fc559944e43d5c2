"""Dashboard and widget DTOs"""

from datetime import datetime
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field

from crm_dashboards.entities.base import PyObjectIdStr
from crm_dashboards.entities.dashboard import Dashboard, LayoutItem
from crm_dashboards.entities.widget import Widget, WidgetPosition, WidgetType


class IdResponse(BaseModel):
    id: str


# =============================================================================
# Requests
# =============================================================================


class DashboardCreateRequest(BaseModel):
    name: str = Field(..., min_length=1)
    description: Optional[str] = None
    is_default: bool = False
    is_public: bool = False


class DashboardUpdateRequest(BaseModel):
    name: Optional[str] = Field(default=None, min_length=1)
    description: Optional[str] = None
    is_default: Optional[bool] = None
    is_public: Optional[bool] = None


class DuplicateDashboardRequest(BaseModel):
    new_name: Optional[str] = None


class LayoutUpdateRequest(BaseModel):
    layout: List[LayoutItem]


class GridPosition(BaseModel):
    """Caller-chosen placement for a new widget; size defaults per widget type."""

    x: int = Field(..., ge=0)
    y: int = Field(..., ge=0)
    w: Optional[int] = Field(default=None, ge=1)
    h: Optional[int] = Field(default=None, ge=1)


class WidgetCreateRequest(BaseModel):
    type: WidgetType
    title: str = Field(..., min_length=1)
    description: Optional[str] = None
    refresh_interval: Optional[int] = Field(default=None, ge=0)
    config: Dict[str, Any] = Field(default_factory=dict)
    position: Optional[GridPosition] = None


class WidgetPositionUpdate(BaseModel):
    """Full rectangle for a moved or resized widget; partial moves are rejected."""

    x: int = Field(..., ge=0)
    y: int = Field(..., ge=0)
    width: int = Field(..., ge=1)
    height: int = Field(..., ge=1)


class WidgetUpdateRequest(BaseModel):
    title: Optional[str] = Field(default=None, min_length=1)
    description: Optional[str] = None
    refresh_interval: Optional[int] = Field(default=None, ge=0)
    config: Optional[Dict[str, Any]] = None
    position: Optional[WidgetPositionUpdate] = None


# =============================================================================
# Responses
# =============================================================================


class WidgetResponse(BaseModel):
    id: PyObjectIdStr = Field(..., alias="_id")
    dashboard_id: PyObjectIdStr
    type: str
    title: str
    description: Optional[str] = None
    refresh_interval: Optional[int] = None
    config: Dict[str, Any] = Field(default_factory=dict)
    position: WidgetPosition
    created_at: datetime
    updated_at: datetime

    model_config = ConfigDict(populate_by_name=True)

    @classmethod
    def from_entity(cls, widget: Widget) -> "WidgetResponse":
        return cls.model_validate(widget.model_dump(by_alias=True))


class DashboardResponse(BaseModel):
    id: PyObjectIdStr = Field(..., alias="_id")
    name: str
    description: Optional[str] = None
    layout: List[LayoutItem] = Field(default_factory=list)
    is_default: bool = False
    is_public: bool = False
    created_at: datetime
    updated_at: datetime

    model_config = ConfigDict(populate_by_name=True)

    @classmethod
    def from_entity(cls, dashboard: Dashboard) -> "DashboardResponse":
        return cls.model_validate(dashboard.model_dump(by_alias=True))


class DashboardDetailResponse(DashboardResponse):
    """A dashboard with its widgets, ordered top-to-bottom then left-to-right."""

    widgets: List[WidgetResponse] = Field(default_factory=list)


class OverlapResponse(BaseModel):
    first: str
    second: str


class ReconcileReport(BaseModel):
    dashboards_checked: int = 0
    stale_entries_removed: int = 0
    missing_entries_added: int = 0
    orphan_widgets_deleted: int = 0


class RepairDefaultsResponse(BaseModel):
    defaults_cleared: int
    default_dashboard_id: Optional[str] = None
