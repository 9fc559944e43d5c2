"""Database entity models - represents the actual structure stored in MongoDB"""

from .base import BaseEntity, PyObjectId, PyObjectIdStr
from .dashboard import Dashboard, LayoutItem
from .widget import (
    WIDGET_CONFIG_MODELS,
    ChartConfig,
    DataSource,
    FunnelConfig,
    LeaderboardConfig,
    LeaderboardType,
    ListConfig,
    MetricConfig,
    MetricType,
    TableConfig,
    Widget,
    WidgetConfigBase,
    WidgetPosition,
    WidgetType,
    dump_widget_config,
    parse_widget_config,
)

__all__ = [
    # Base
    "BaseEntity",
    "PyObjectId",
    "PyObjectIdStr",
    # Dashboards
    "Dashboard",
    "LayoutItem",
    # Widgets
    "Widget",
    "WidgetType",
    "WidgetPosition",
    "DataSource",
    "MetricType",
    "LeaderboardType",
    "WidgetConfigBase",
    "MetricConfig",
    "ChartConfig",
    "ListConfig",
    "TableConfig",
    "FunnelConfig",
    "LeaderboardConfig",
    "WIDGET_CONFIG_MODELS",
    "parse_widget_config",
    "dump_widget_config",
]
