"""Seed a starter "Sales Overview" dashboard for fresh installations."""
from __future__ import annotations

from argparse import ArgumentParser
import logging
from typing import Any, Dict, List, Optional

from pymongo.database import Database

from crm_dashboards.services.dashboard_service import DashboardService

logger = logging.getLogger(__name__)

DEFAULT_DASHBOARD_NAME = "Sales Overview"

# Placed in order by the grid allocator
DEFAULT_WIDGETS: List[Dict[str, Any]] = [
    {
        "type": "metric",
        "title": "Open Deals",
        "config": {"data_source": "deals", "metric_type": "count", "date_range": "month", "show_comparison": True},
    },
    {
        "type": "metric",
        "title": "Pipeline Value",
        "config": {"data_source": "deals", "metric_type": "sum", "metric_field": "amount", "date_range": "month"},
    },
    {
        "type": "metric",
        "title": "New Contacts",
        "config": {"data_source": "contacts", "metric_type": "count", "date_range": "week", "show_comparison": True},
    },
    {
        "type": "metric",
        "title": "Activities Logged",
        "config": {"data_source": "activities", "metric_type": "count", "date_range": "week"},
    },
    {
        "type": "funnel",
        "title": "Sales Funnel",
        "config": {},
    },
    {
        "type": "chart",
        "title": "Deals by Status",
        "config": {"data_source": "deals", "chart_type": "pie", "group_by": "status", "date_range": "quarter"},
    },
    {
        "type": "leaderboard",
        "title": "Top Sellers",
        "config": {"leaderboard_type": "deals_value", "date_range": "quarter", "limit": 5},
    },
    {
        "type": "list",
        "title": "Recent Deals",
        "config": {"data_source": "deals", "sort_order": "desc", "limit": 5},
    },
    {
        "type": "table",
        "title": "Latest Contacts",
        "config": {"data_source": "contacts", "columns": ["first_name", "last_name", "email"], "limit": 10},
    },
]


def seed_default_dashboard(db: Database, force: bool = False) -> Optional[str]:
    """
    Create the starter dashboard when no dashboards exist yet.

    Returns the new dashboard id, or None when seeding was skipped.
    """
    if force:
        db.dashboard_widgets.delete_many({})
        db.dashboards.delete_many({})
    elif db.dashboards.count_documents({}) > 0:
        return None

    service = DashboardService(db)
    dashboard_id = service.create_dashboard(
        DEFAULT_DASHBOARD_NAME,
        description="Deals, contacts and team activity at a glance",
        is_default=True,
        is_public=True,
    )
    for widget in DEFAULT_WIDGETS:
        service.add_widget(dashboard_id, widget["type"], widget["title"], widget["config"])

    logger.info(f"Seeded default dashboard {dashboard_id} with {len(DEFAULT_WIDGETS)} widgets")
    return dashboard_id


def cli() -> None:
    from crm_dashboards.core.logging import setup_logging
    from crm_dashboards.database.mongo import get_database

    parser = ArgumentParser(description="Seed the CRM database with a default dashboard.")
    parser.add_argument("--force", action="store_true", help="Remove existing dashboards before seeding.")
    args = parser.parse_args()

    setup_logging()
    dashboard_id = seed_default_dashboard(get_database(), force=args.force)
    if dashboard_id:
        print(f"Created default dashboard {dashboard_id}.")
    else:
        print("Dashboards already exist; nothing seeded.")


if __name__ == "__main__":
    cli()
