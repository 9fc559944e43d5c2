"""
Maintenance - Idempotent repair passes for dashboard invariants.

Without multi-document transactions two writers can leave more than one
default dashboard, and an interrupted delete can leave widgets behind or
layout entries pointing at nothing. These passes bring the collections back
in line and are safe to run at any time.
"""

import logging
from itertools import combinations
from typing import Any, Dict, List, Tuple

from pymongo.database import Database

from crm_dashboards.dtos.dashboard import ReconcileReport, RepairDefaultsResponse
from crm_dashboards.entities.dashboard import LayoutItem
from crm_dashboards.repositories.dashboard import DashboardRepository
from crm_dashboards.repositories.widget import WidgetRepository
from crm_dashboards.services.exceptions import NotFoundError
from crm_dashboards.services.layout import default_widget_size, rects_overlap
from crm_dashboards.utils.datetime import utc_now

logger = logging.getLogger(__name__)


class MaintenanceService:
    """Repair and diagnostic passes over dashboards and widgets."""

    def __init__(self, db: Database):
        self.db = db
        self.dashboard_repo = DashboardRepository(db)
        self.widget_repo = WidgetRepository(db)

    def repair_default_dashboards(self) -> RepairDefaultsResponse:
        """Keep the most recently updated default dashboard; unset the others."""
        defaults = self.dashboard_repo.find_defaults()
        if not defaults:
            return RepairDefaultsResponse(defaults_cleared=0)

        keeper = defaults[0]
        cleared = 0
        if len(defaults) > 1:
            cleared = self.dashboard_repo.unset_default(except_id=keeper.id)
            logger.warning(f"Found {len(defaults)} default dashboards; kept {keeper.id}, cleared {cleared}")

        return RepairDefaultsResponse(defaults_cleared=cleared, default_dashboard_id=str(keeper.id))

    def reconcile_layouts(self) -> ReconcileReport:
        """
        Bring every layout in line with the stored widgets.

        Layout entries without a widget are dropped, widgets without a layout
        entry get one built from their ``position``, and widgets whose
        dashboard no longer exists are deleted.
        """
        report = ReconcileReport()
        dashboards = self.dashboard_repo.list_all()

        for dashboard in dashboards:
            report.dashboards_checked += 1
            widgets = self.widget_repo.find_by_dashboard(dashboard.id)
            widget_ids = {str(widget.id) for widget in widgets}

            layout = [item for item in dashboard.layout if item.widget_id in widget_ids]
            stale = len(dashboard.layout) - len(layout)

            placed = {item.widget_id for item in layout}
            missing = [widget for widget in widgets if str(widget.id) not in placed]
            for widget in missing:
                size = default_widget_size(widget.type)
                layout.append(
                    LayoutItem(
                        widget_id=str(widget.id),
                        x=widget.position.x,
                        y=widget.position.y,
                        w=widget.position.width,
                        h=widget.position.height,
                        min_w=size.min_w,
                        min_h=size.min_h,
                    )
                )

            if stale or missing:
                self.dashboard_repo.set_layout(dashboard.id, [item.model_dump() for item in layout])
                report.stale_entries_removed += stale
                report.missing_entries_added += len(missing)
                logger.info(
                    f"Reconciled dashboard {dashboard.id}: removed {stale} stale entries, added {len(missing)}"
                )

        orphans = self.widget_repo.find_orphans(dashboard.id for dashboard in dashboards)
        for widget in orphans:
            self.widget_repo.delete_one(widget.id)
        if orphans:
            report.orphan_widgets_deleted = len(orphans)
            logger.warning(f"Deleted {len(orphans)} widgets whose dashboard no longer exists")

        return report

    def find_overlaps(self, dashboard_id: str) -> List[Tuple[str, str]]:
        """Pairs of layout entries whose rectangles overlap."""
        dashboard = self.dashboard_repo.find_by_id(dashboard_id)
        if dashboard is None:
            raise NotFoundError("Dashboard", dashboard_id)

        return [
            (first.widget_id, second.widget_id)
            for first, second in combinations(dashboard.layout, 2)
            if rects_overlap(first, second)
        ]


def run_maintenance(db: Database) -> Dict[str, Any]:
    """Run every repair pass; used by the CLI entry point."""
    service = MaintenanceService(db)
    defaults = service.repair_default_dashboards()
    layouts = service.reconcile_layouts()
    return {
        "status": "success",
        "defaults": defaults.model_dump(),
        "layouts": layouts.model_dump(),
        "executed_at": utc_now().isoformat(),
    }


def main() -> None:
    from crm_dashboards.core.logging import setup_logging
    from crm_dashboards.database.mongo import get_database

    setup_logging()
    result = run_maintenance(get_database())
    logger.info(f"Maintenance completed: {result}")


if __name__ == "__main__":  # pragma: no cover - manual execution helper
    main()
