"""Widget data aggregation: turns a widget config into the data it displays."""
from __future__ import annotations

import logging
from collections import defaultdict
from datetime import datetime
from typing import Any, Callable, Dict, Iterable, List, Optional

from bson import ObjectId
from pydantic import ValidationError
from pymongo.database import Database

from crm_dashboards.config import settings
from crm_dashboards.entities.widget import (
    ChartConfig,
    FunnelConfig,
    LeaderboardConfig,
    LeaderboardType,
    ListConfig,
    MetricConfig,
    MetricType,
    TableConfig,
    Widget,
    WidgetConfigBase,
)
from crm_dashboards.repositories.crm_records import CrmRecordRepository, Record
from crm_dashboards.repositories.widget import WidgetRepository
from crm_dashboards.services.date_range import DateRange, previous_period, resolve_date_range
from crm_dashboards.services.exceptions import NotFoundError
from crm_dashboards.utils.datetime import in_range

logger = logging.getLogger(__name__)

LIST_DEFAULT_LIMIT = 10
TABLE_DEFAULT_LIMIT = 25
LEADERBOARD_DEFAULT_LIMIT = 10


def _numeric(value: Any) -> float:
    """Metric field value; missing or non-numeric counts as 0."""
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return 0
    return value


def _serialize_value(value: Any) -> Any:
    if isinstance(value, ObjectId):
        return str(value)
    if isinstance(value, datetime):
        return value.isoformat()
    if isinstance(value, dict):
        return {key: _serialize_value(item) for key, item in value.items()}
    if isinstance(value, list):
        return [_serialize_value(item) for item in value]
    return value


def _group_label(value: Any) -> str:
    """Chart bucket name; booleans and whole floats read like their JSON form."""
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(_serialize_value(value))


def _serialize_record(record: Record) -> Record:
    return {key: _serialize_value(value) for key, value in record.items()}


def _created_within(records: Iterable[Record], window: DateRange) -> List[Record]:
    return [record for record in records if in_range(record.get("created_at"), window.start, window.end)]


def _display_name(user: Record) -> str:
    name = f"{user.get('first_name') or ''} {user.get('last_name') or ''}".strip()
    return name or user.get("email") or ""


class WidgetDataService:
    """
    Computes widget data on read.

    Each widget type has its own branch; the date range resolved from the
    widget config gates which records take part (list, table and funnel
    widgets ignore it).
    """

    def __init__(
        self,
        db: Database,
        timezone: Optional[str] = None,
        clock: Optional[Callable[[], int | float]] = None,
    ):
        self.db = db
        self.widget_repo = WidgetRepository(db)
        self.records = CrmRecordRepository(db)
        self.timezone = timezone if timezone is not None else settings.DASHBOARD_TIMEZONE
        self.clock = clock

    def get_widget_data(self, widget_id: str) -> Any:
        """Data for a stored widget; None means the widget has nothing to show."""
        widget = self.widget_repo.find_by_id(widget_id)
        if widget is None:
            raise NotFoundError("Widget", widget_id)
        return self.compute(widget)

    def compute(self, widget: Widget) -> Any:
        try:
            config = widget.typed_config()
        except ValidationError as exc:
            logger.warning(f"Widget {widget.id} has an invalid {widget.type} config: {exc}")
            return None

        if config is None:
            logger.warning(f"Widget {widget.id} has unknown type {widget.type!r}")
            return None

        window = self._resolve_window(config)

        if isinstance(config, MetricConfig):
            return self.metric_data(config, window)
        if isinstance(config, ChartConfig):
            return self.chart_data(config, window)
        if isinstance(config, TableConfig):
            return self.table_data(config)
        if isinstance(config, ListConfig):
            return self.list_data(config)
        if isinstance(config, FunnelConfig):
            return self.funnel_data(config)
        if isinstance(config, LeaderboardConfig):
            return self.leaderboard_data(config, window)
        return None

    def _resolve_window(self, config: WidgetConfigBase) -> DateRange:
        now = self.clock() if self.clock else None
        return resolve_date_range(
            config.date_range,
            config.custom_date_start,
            config.custom_date_end,
            now_ms=now,
            tz=self.timezone,
        )

    # -------------------------------------------------------------------------
    # Metric
    # -------------------------------------------------------------------------

    def metric_data(self, config: MetricConfig, window: DateRange) -> Dict[str, Any]:
        value = self._metric_value(config, window)
        result: Dict[str, Any] = {"value": value}

        if config.show_comparison:
            previous_value = self._metric_value(config, previous_period(window))
            result["change"] = (
                (value - previous_value) / previous_value * 100 if previous_value > 0 else 0
            )

        return result

    def _metric_value(self, config: MetricConfig, window: DateRange) -> float:
        items = _created_within(self.records.find_all(config.data_source), window)

        if config.metric_type in (MetricType.SUM.value, MetricType.AVERAGE.value):
            total = sum(_numeric(item.get(config.metric_field)) for item in items) if config.metric_field else 0
            if config.metric_type == MetricType.SUM.value:
                return total
            return total / len(items) if items else 0

        # count, and any unrecognized metric type
        return len(items)

    # -------------------------------------------------------------------------
    # Chart
    # -------------------------------------------------------------------------

    def chart_data(self, config: ChartConfig, window: DateRange) -> List[Dict[str, Any]]:
        items = _created_within(self.records.find_all(config.data_source), window)

        # dicts keep first-seen order
        grouped: Dict[str, int] = {}
        for item in items:
            if config.group_by:
                raw = item.get(config.group_by)
                key = "Unknown" if raw is None else _group_label(raw)
            else:
                key = "Total"
            grouped[key] = grouped.get(key, 0) + 1

        return [{"name": name, "value": value} for name, value in grouped.items()]

    # -------------------------------------------------------------------------
    # List / table
    # -------------------------------------------------------------------------

    def list_data(self, config: ListConfig) -> List[Record]:
        limit = LIST_DEFAULT_LIMIT if config.limit is None else config.limit
        rows = self.records.take(config.data_source, config.sort_order, limit)
        return [_serialize_record(row) for row in rows]

    def table_data(self, config: TableConfig) -> List[Record]:
        limit = TABLE_DEFAULT_LIMIT if config.limit is None else config.limit
        rows = self.records.take(config.data_source, config.sort_order, limit)

        if config.columns:
            rows = [
                {"_id": row.get("_id"), **{column: row.get(column) for column in config.columns}}
                for row in rows
            ]

        return [_serialize_record(row) for row in rows]

    # -------------------------------------------------------------------------
    # Funnel
    # -------------------------------------------------------------------------

    def funnel_data(self, config: FunnelConfig) -> Dict[str, Any]:
        if config.pipeline_id:
            pipeline = self.records.find_pipeline(config.pipeline_id)
        else:
            pipeline = self.records.find_default_pipeline()

        if not pipeline:
            logger.debug(f"No pipeline resolved for funnel (pipeline_id={config.pipeline_id!r})")
            return {"stages": []}

        deals = self.records.find_open_deals(pipeline["_id"])

        counts: Dict[str, int] = defaultdict(int)
        amounts: Dict[str, float] = defaultdict(float)
        for deal in deals:
            stage_id = str(deal.get("stage_id"))
            counts[stage_id] += 1
            amounts[stage_id] += _numeric(deal.get("amount"))

        stages = []
        for stage in pipeline.get("stages") or []:
            stage_id = str(stage.get("id"))
            stages.append(
                {
                    "name": stage.get("name"),
                    "value": counts.get(stage_id, 0),
                    "amount": amounts.get(stage_id, 0),
                    "color": stage.get("color"),
                }
            )

        return {"stages": stages}

    # -------------------------------------------------------------------------
    # Leaderboard
    # -------------------------------------------------------------------------

    def leaderboard_data(self, config: LeaderboardConfig, window: DateRange) -> Dict[str, Any]:
        limit = LEADERBOARD_DEFAULT_LIMIT if config.limit is None else config.limit
        users = self.records.list_users()

        scores = self._leaderboard_scores(config.leaderboard_type, window)
        if scores is None:
            logger.debug(f"Unknown leaderboard type {config.leaderboard_type!r}")
            return {"entries": []}

        entries = [
            {
                "user_id": str(user["_id"]),
                "name": _display_name(user),
                "value": scores[str(user["_id"])],
                "avatar_url": user.get("avatar_url"),
            }
            for user in users
            if str(user["_id"]) in scores
        ]
        entries.sort(key=lambda entry: entry["value"], reverse=True)

        return {"entries": entries[:limit]}

    def _leaderboard_scores(self, leaderboard_type: Optional[str], window: DateRange) -> Optional[Dict[str, float]]:
        """Per-owner score keyed by stringified owner id; None for unknown types."""
        if leaderboard_type in (LeaderboardType.DEALS_WON.value, LeaderboardType.DEALS_VALUE.value):
            deals = [
                deal
                for deal in self.records.find_won_deals()
                if deal.get("actual_close_date") and in_range(deal["actual_close_date"], window.start, window.end)
            ]
            if leaderboard_type == LeaderboardType.DEALS_WON.value:
                return self._tally(deals)
            return self._tally(deals, weight=lambda deal: _numeric(deal.get("amount")))

        if leaderboard_type == LeaderboardType.ACTIVITIES.value:
            return self._tally(_created_within(self.records.find_activities(), window))

        if leaderboard_type == LeaderboardType.CONTACTS_ADDED.value:
            return self._tally(_created_within(self.records.find_contacts(), window))

        return None

    @staticmethod
    def _tally(
        records: Iterable[Record],
        weight: Callable[[Record], float] = lambda record: 1,
    ) -> Dict[str, float]:
        totals: Dict[str, float] = {}
        for record in records:
            owner_id = record.get("owner_id")
            if owner_id:
                key = str(owner_id)
                totals[key] = totals.get(key, 0) + weight(record)
        return totals
