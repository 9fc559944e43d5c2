"""Dashboard and widget management: CRUD plus layout bookkeeping."""

from __future__ import annotations

import copy
import logging
from typing import List, Optional

from pydantic import ValidationError
from pymongo.database import Database

from crm_dashboards.config import settings
from crm_dashboards.database.mongo import maybe_transaction
from crm_dashboards.dtos.dashboard import (
    DashboardDetailResponse,
    DashboardResponse,
    DashboardUpdateRequest,
    GridPosition,
    WidgetResponse,
    WidgetUpdateRequest,
)
from crm_dashboards.entities.dashboard import Dashboard, LayoutItem
from crm_dashboards.entities.widget import (
    Widget,
    WidgetPosition,
    dump_widget_config,
    parse_widget_config,
)
from crm_dashboards.repositories.dashboard import DashboardRepository
from crm_dashboards.repositories.widget import WidgetRepository
from crm_dashboards.services.exceptions import InvalidWidgetConfigError, NotFoundError
from crm_dashboards.services.layout import default_widget_size, find_next_position
from crm_dashboards.utils.datetime import utc_now

logger = logging.getLogger(__name__)


def _validated_config(widget_type: str, config: Optional[dict]) -> dict:
    try:
        typed = parse_widget_config(widget_type, config)
    except ValidationError as exc:
        raise InvalidWidgetConfigError(f"Invalid {widget_type} widget config: {exc}") from exc
    if typed is None:
        raise InvalidWidgetConfigError(f"Unknown widget type: {widget_type}")
    return dump_widget_config(typed)


def _provided_fields(payload, nullable: tuple) -> dict:
    """Fields the caller set; explicit nulls only count for ``nullable`` fields."""
    return {
        key: value
        for key, value in payload.model_dump(exclude_unset=True).items()
        if value is not None or key in nullable
    }


def _widget_sort_key(widget: Widget):
    return (widget.position.y, widget.position.x)


class DashboardService:
    """
    Dashboards and their widgets.

    ``Dashboard.layout`` and ``Widget.position`` describe the same rectangle;
    every mutation here updates both. Multi-document sequences run inside a
    MongoDB transaction when ``MONGODB_USE_TRANSACTIONS`` is enabled. Without
    it, concurrent writers may briefly leave two default dashboards or a stale
    layout entry; ``MaintenanceService`` repairs both.
    """

    def __init__(self, db: Database, use_transactions: Optional[bool] = None):
        self.db = db
        self.dashboard_repo = DashboardRepository(db)
        self.widget_repo = WidgetRepository(db)
        self.use_transactions = (
            settings.MONGODB_USE_TRANSACTIONS if use_transactions is None else use_transactions
        )

    def _transaction(self):
        return maybe_transaction(self.db, self.use_transactions)

    def _require_dashboard(self, dashboard_id: str, session=None) -> Dashboard:
        dashboard = self.dashboard_repo.find_by_id(dashboard_id, session=session)
        if dashboard is None:
            raise NotFoundError("Dashboard", dashboard_id)
        return dashboard

    def _require_widget(self, widget_id: str) -> Widget:
        widget = self.widget_repo.find_by_id(widget_id)
        if widget is None:
            raise NotFoundError("Widget", widget_id)
        return widget

    def _with_widgets(self, dashboard: Dashboard) -> DashboardDetailResponse:
        widgets = sorted(self.widget_repo.find_by_dashboard(dashboard.id), key=_widget_sort_key)
        return DashboardDetailResponse.model_validate(
            {
                **dashboard.model_dump(by_alias=True),
                "widgets": [WidgetResponse.from_entity(widget) for widget in widgets],
            }
        )

    # -------------------------------------------------------------------------
    # Queries
    # -------------------------------------------------------------------------

    def list_dashboards(self) -> List[DashboardResponse]:
        """All dashboards, the default first, then by name."""
        dashboards = self.dashboard_repo.list_all()
        dashboards.sort(key=lambda d: (not d.is_default, d.name.casefold(), d.name))
        return [DashboardResponse.from_entity(d) for d in dashboards]

    def get_dashboard(self, dashboard_id: str) -> Optional[DashboardDetailResponse]:
        dashboard = self.dashboard_repo.find_by_id(dashboard_id)
        if dashboard is None:
            return None
        return self._with_widgets(dashboard)

    def get_default_dashboard(self) -> Optional[DashboardDetailResponse]:
        dashboard = self.dashboard_repo.find_default()
        if dashboard is None:
            return None
        return self._with_widgets(dashboard)

    # -------------------------------------------------------------------------
    # Dashboard mutations
    # -------------------------------------------------------------------------

    def create_dashboard(
        self,
        name: str,
        description: Optional[str] = None,
        is_default: bool = False,
        is_public: bool = False,
    ) -> str:
        with self._transaction() as session:
            if is_default:
                self.dashboard_repo.unset_default(session=session)

            dashboard = self.dashboard_repo.insert_one(
                Dashboard(
                    name=name,
                    description=description,
                    layout=[],
                    is_default=is_default,
                    is_public=is_public,
                ),
                session=session,
            )

        logger.info(f"Created dashboard {dashboard.id} ({name!r}, default={is_default})")
        return str(dashboard.id)

    def update_dashboard(self, dashboard_id: str, payload: DashboardUpdateRequest) -> str:
        """Patch only the fields present in ``payload``."""
        updates = _provided_fields(payload, nullable=("description",))

        with self._transaction() as session:
            self._require_dashboard(dashboard_id, session=session)

            if updates.get("is_default"):
                self.dashboard_repo.unset_default(except_id=dashboard_id, session=session)

            updates["updated_at"] = utc_now()
            self.dashboard_repo.update_one(dashboard_id, updates, session=session)

        logger.info(f"Updated dashboard {dashboard_id}: {sorted(k for k in updates if k != 'updated_at')}")
        return dashboard_id

    def delete_dashboard(self, dashboard_id: str) -> str:
        """Delete the widgets first, then the dashboard itself."""
        with self._transaction() as session:
            self._require_dashboard(dashboard_id, session=session)
            deleted_widgets = self.widget_repo.delete_by_dashboard(dashboard_id, session=session)
            self.dashboard_repo.delete_one(dashboard_id, session=session)

        logger.info(f"Deleted dashboard {dashboard_id} and {deleted_widgets} widgets")
        return dashboard_id

    def duplicate_dashboard(self, dashboard_id: str, new_name: Optional[str] = None) -> str:
        """
        Copy a dashboard and all of its widgets.

        The copy is private and never the default. Layout entries are remapped
        to the copied widgets; entries naming a widget that no longer exists are
        carried over unchanged.
        """
        original = self._require_dashboard(dashboard_id)
        original_widgets = self.widget_repo.find_by_dashboard(dashboard_id)

        with self._transaction() as session:
            copy_dashboard = self.dashboard_repo.insert_one(
                Dashboard(
                    name=new_name if new_name is not None else f"{original.name} (Copy)",
                    description=original.description,
                    layout=[],
                    is_default=False,
                    is_public=False,
                ),
                session=session,
            )

            widget_id_map = {}
            for widget in original_widgets:
                new_widget = self.widget_repo.insert_one(
                    Widget(
                        dashboard_id=copy_dashboard.id,
                        type=widget.type,
                        title=widget.title,
                        description=widget.description,
                        refresh_interval=widget.refresh_interval,
                        config=copy.deepcopy(widget.config),
                        position=widget.position.model_copy(),
                    ),
                    session=session,
                )
                widget_id_map[str(widget.id)] = str(new_widget.id)

            new_layout = [
                item.model_copy(update={"widget_id": widget_id_map.get(item.widget_id, item.widget_id)})
                for item in original.layout
            ]
            self.dashboard_repo.set_layout(
                copy_dashboard.id,
                [item.model_dump() for item in new_layout],
                session=session,
            )

        logger.info(
            f"Duplicated dashboard {dashboard_id} as {copy_dashboard.id} with {len(widget_id_map)} widgets"
        )
        return str(copy_dashboard.id)

    def update_layout(self, dashboard_id: str, layout: List[LayoutItem]) -> str:
        """
        Replace the dashboard layout wholesale.

        Rectangles are not checked for overlap. Widgets of this dashboard named
        in the layout get their ``position`` synced to the new rectangle.
        """
        with self._transaction() as session:
            self._require_dashboard(dashboard_id, session=session)
            self.dashboard_repo.set_layout(
                dashboard_id,
                [item.model_dump() for item in layout],
                session=session,
            )

            own_widgets = {
                str(widget.id) for widget in self.widget_repo.find_by_dashboard(dashboard_id, session=session)
            }
            now = utc_now()
            for item in layout:
                if item.widget_id in own_widgets:
                    self.widget_repo.update_one(
                        item.widget_id,
                        {
                            "position": WidgetPosition(x=item.x, y=item.y, width=item.w, height=item.h).model_dump(),
                            "updated_at": now,
                        },
                        session=session,
                    )

        return dashboard_id

    # -------------------------------------------------------------------------
    # Widget mutations
    # -------------------------------------------------------------------------

    def add_widget(
        self,
        dashboard_id: str,
        widget_type: str,
        title: str,
        config: Optional[dict] = None,
        position: Optional[GridPosition] = None,
        description: Optional[str] = None,
        refresh_interval: Optional[int] = None,
    ) -> str:
        """
        Add a widget and its layout entry.

        Without an explicit ``position`` the widget goes to the first free
        spot on the grid, sized by its type.
        """
        widget_type = getattr(widget_type, "value", widget_type)
        stored_config = _validated_config(widget_type, config)
        size = default_widget_size(widget_type)

        with self._transaction() as session:
            dashboard = self._require_dashboard(dashboard_id, session=session)

            if position is None:
                rect = find_next_position(dashboard.layout, size)
                x, y, w, h = rect.x, rect.y, rect.w, rect.h
            else:
                x, y = position.x, position.y
                w = position.w if position.w is not None else size.w
                h = position.h if position.h is not None else size.h

            widget = self.widget_repo.insert_one(
                Widget(
                    dashboard_id=dashboard.id,
                    type=widget_type,
                    title=title,
                    description=description,
                    refresh_interval=refresh_interval,
                    config=stored_config,
                    position=WidgetPosition(x=x, y=y, width=w, height=h),
                ),
                session=session,
            )

            self.dashboard_repo.push_layout_item(
                dashboard.id,
                LayoutItem(
                    widget_id=str(widget.id),
                    x=x,
                    y=y,
                    w=w,
                    h=h,
                    min_w=size.min_w,
                    min_h=size.min_h,
                ).model_dump(),
                session=session,
            )

        logger.info(f"Added {widget_type} widget {widget.id} to dashboard {dashboard_id} at ({x}, {y}, {w}x{h})")
        return str(widget.id)

    def update_widget(self, widget_id: str, payload: WidgetUpdateRequest) -> str:
        """Patch only the fields present in ``payload``."""
        widget = self._require_widget(widget_id)
        updates = _provided_fields(payload, nullable=("description", "refresh_interval"))

        if "config" in updates:
            updates["config"] = _validated_config(widget.type, updates["config"])

        with self._transaction() as session:
            updates["updated_at"] = utc_now()
            self.widget_repo.update_one(widget_id, updates, session=session)

            if payload.position is not None:
                moved = self.dashboard_repo.move_layout_item(
                    widget.dashboard_id,
                    widget_id,
                    {
                        "x": payload.position.x,
                        "y": payload.position.y,
                        "w": payload.position.width,
                        "h": payload.position.height,
                    },
                    session=session,
                )
                if not moved:
                    logger.warning(f"Widget {widget_id} has no layout entry on dashboard {widget.dashboard_id}")

        return widget_id

    def remove_widget(self, widget_id: str) -> str:
        """Delete a widget and strip it from its dashboard's layout."""
        widget = self._require_widget(widget_id)

        with self._transaction() as session:
            if not self.dashboard_repo.pull_layout_item(widget.dashboard_id, widget_id, session=session):
                logger.warning(f"Dashboard {widget.dashboard_id} of widget {widget_id} no longer exists")
            self.widget_repo.delete_one(widget_id, session=session)

        logger.info(f"Removed widget {widget_id} from dashboard {widget.dashboard_id}")
        return widget_id
