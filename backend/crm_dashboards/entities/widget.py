"""Widget entity and the per-type widget configurations."""

import logging
from enum import Enum
from typing import Any, Dict, List, Literal, Optional, Type

from pydantic import BaseModel, ConfigDict, Field

from .base import BaseEntity, PyObjectId

logger = logging.getLogger(__name__)


class WidgetType(str, Enum):
    """Kinds of visualization a widget can render."""

    METRIC = "metric"
    CHART = "chart"
    LIST = "list"
    TABLE = "table"
    FUNNEL = "funnel"
    LEADERBOARD = "leaderboard"


class DataSource(str, Enum):
    """CRM collections a widget can aggregate over."""

    DEALS = "deals"
    CONTACTS = "contacts"
    COMPANIES = "companies"
    ACTIVITIES = "activities"


class MetricType(str, Enum):
    COUNT = "count"
    SUM = "sum"
    AVERAGE = "average"


class LeaderboardType(str, Enum):
    DEALS_WON = "deals_won"
    DEALS_VALUE = "deals_value"
    ACTIVITIES = "activities"
    CONTACTS_ADDED = "contacts_added"


class WidgetPosition(BaseModel):
    """Rectangle stored on the widget itself, in grid units."""

    x: int = 0
    y: int = 0
    width: int = 1
    height: int = 1


# =============================================================================
# Widget configuration variants
# =============================================================================
#
# Enum-like fields stay plain strings so that stored values outside the known
# set degrade to empty results instead of failing validation.


class WidgetConfigBase(BaseModel):
    """Fields every widget type understands."""

    date_range: Optional[str] = None  # today | week | month | quarter | year | custom | all
    custom_date_start: Optional[float] = None  # epoch ms
    custom_date_end: Optional[float] = None  # epoch ms
    filters: Optional[Any] = None
    color: Optional[str] = None
    icon: Optional[str] = None

    # Fields meant for another widget type are dropped, not rejected
    model_config = ConfigDict(extra="ignore")


class MetricConfig(WidgetConfigBase):
    data_source: Optional[str] = None
    metric_type: Optional[str] = None
    metric_field: Optional[str] = None
    show_comparison: bool = False
    comparison_period: Optional[str] = None


class ChartConfig(WidgetConfigBase):
    data_source: Optional[str] = None
    chart_type: Optional[str] = None
    x_axis: Optional[str] = None
    y_axis: Optional[str] = None
    group_by: Optional[str] = None


class ListConfig(WidgetConfigBase):
    data_source: Optional[str] = None
    sort_by: Optional[str] = None
    sort_order: Optional[Literal["asc", "desc"]] = None
    limit: Optional[int] = Field(default=None, ge=0)


class TableConfig(ListConfig):
    columns: List[str] = Field(default_factory=list)


class FunnelConfig(WidgetConfigBase):
    pipeline_id: Optional[str] = None


class LeaderboardConfig(WidgetConfigBase):
    leaderboard_type: Optional[str] = None
    limit: Optional[int] = Field(default=None, ge=0)


WIDGET_CONFIG_MODELS: Dict[str, Type[WidgetConfigBase]] = {
    WidgetType.METRIC.value: MetricConfig,
    WidgetType.CHART.value: ChartConfig,
    WidgetType.LIST.value: ListConfig,
    WidgetType.TABLE.value: TableConfig,
    WidgetType.FUNNEL.value: FunnelConfig,
    WidgetType.LEADERBOARD.value: LeaderboardConfig,
}


def parse_widget_config(widget_type: str, raw: Optional[Dict[str, Any]]) -> Optional[WidgetConfigBase]:
    """
    Validate a raw config bag against the model for ``widget_type``.

    Returns None for unknown widget types. Raises pydantic.ValidationError
    when the bag does not fit the type's model.
    """
    model = WIDGET_CONFIG_MODELS.get(str(widget_type))
    if model is None:
        logger.debug(f"No config model for widget type {widget_type!r}")
        return None
    return model.model_validate(raw or {})


def dump_widget_config(config: WidgetConfigBase) -> Dict[str, Any]:
    """Storage form of a config: only the fields the caller actually set."""
    return config.model_dump(exclude_unset=True)


class Widget(BaseEntity):
    """
    A single configured visualization belonging to one dashboard.

    ``type`` is stored as a plain string; only values of ``WidgetType``
    produce data. ``config`` holds the stored bag, ``typed_config()`` the
    validated variant for the widget's type.
    """

    dashboard_id: PyObjectId
    type: str
    title: str
    description: Optional[str] = None
    refresh_interval: Optional[int] = None  # seconds
    config: Dict[str, Any] = Field(default_factory=dict)
    position: WidgetPosition = Field(default_factory=WidgetPosition)

    def typed_config(self) -> Optional[WidgetConfigBase]:
        return parse_widget_config(self.type, self.config)
