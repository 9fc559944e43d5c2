import unittest
from datetime import datetime, timedelta, timezone
from unittest.mock import patch

from bson import ObjectId

from crm_dashboards.entities.dashboard import Dashboard, LayoutItem
from crm_dashboards.entities.widget import Widget, WidgetPosition
from crm_dashboards.services.exceptions import NotFoundError
from crm_dashboards.services.maintenance import MaintenanceService, run_maintenance
from tests.fakes import FakeDashboardRepository, FakeStore, FakeWidgetRepository


class MaintenanceTestCase(unittest.TestCase):

    def setUp(self):
        for target, fake in (
            ("crm_dashboards.services.maintenance.DashboardRepository", FakeDashboardRepository),
            ("crm_dashboards.services.maintenance.WidgetRepository", FakeWidgetRepository),
        ):
            patcher = patch(target, fake)
            patcher.start()
            self.addCleanup(patcher.stop)

        self.db = FakeStore()
        self.service = MaintenanceService(self.db)
        self.dashboards = self.service.dashboard_repo
        self.widgets = self.service.widget_repo

    def insert_dashboard(self, name, **fields):
        return self.dashboards.insert_one(Dashboard(name=name, **fields))

    def insert_widget(self, dashboard_id, position=None):
        return self.widgets.insert_one(
            Widget(
                dashboard_id=dashboard_id,
                type="chart",
                title="Chart",
                position=position or WidgetPosition(x=0, y=0, width=6, height=4),
            )
        )


class TestRepairDefaults(MaintenanceTestCase):

    def test_keeps_most_recently_updated(self):
        base = datetime(2024, 1, 1, tzinfo=timezone.utc)
        older = self.insert_dashboard("Older", is_default=True, updated_at=base)
        newest = self.insert_dashboard("Newest", is_default=True, updated_at=base + timedelta(days=2))
        middle = self.insert_dashboard("Middle", is_default=True, updated_at=base + timedelta(days=1))

        result = self.service.repair_default_dashboards()

        self.assertEqual(result.defaults_cleared, 2)
        self.assertEqual(result.default_dashboard_id, str(newest.id))
        defaults = [d.id for d in self.dashboards.list_all() if d.is_default]
        self.assertEqual(defaults, [newest.id])
        self.assertFalse(self.dashboards.find_by_id(older.id).is_default)
        self.assertFalse(self.dashboards.find_by_id(middle.id).is_default)

    def test_single_default_untouched(self):
        only = self.insert_dashboard("Only", is_default=True)
        result = self.service.repair_default_dashboards()
        self.assertEqual(result.defaults_cleared, 0)
        self.assertEqual(result.default_dashboard_id, str(only.id))

    def test_no_default(self):
        self.insert_dashboard("Plain")
        result = self.service.repair_default_dashboards()
        self.assertEqual(result.defaults_cleared, 0)
        self.assertIsNone(result.default_dashboard_id)


class TestReconcileLayouts(MaintenanceTestCase):

    def test_repairs_layout_and_deletes_orphans(self):
        dashboard = self.insert_dashboard("Sales")
        placed = self.insert_widget(dashboard.id)
        unplaced = self.insert_widget(dashboard.id, WidgetPosition(x=6, y=0, width=6, height=4))
        orphan = self.insert_widget(ObjectId())
        stale_id = str(ObjectId())
        self.dashboards.set_layout(
            dashboard.id,
            [
                LayoutItem(widget_id=str(placed.id), x=0, y=0, w=6, h=4).model_dump(),
                LayoutItem(widget_id=stale_id, x=0, y=4, w=3, h=2).model_dump(),
            ],
        )

        report = self.service.reconcile_layouts()

        self.assertEqual(report.dashboards_checked, 1)
        self.assertEqual(report.stale_entries_removed, 1)
        self.assertEqual(report.missing_entries_added, 1)
        self.assertEqual(report.orphan_widgets_deleted, 1)

        layout = self.dashboards.find_by_id(dashboard.id).layout
        self.assertEqual([item.widget_id for item in layout], [str(placed.id), str(unplaced.id)])
        self.assertEqual(layout[1], LayoutItem(widget_id=str(unplaced.id), x=6, y=0, w=6, h=4, min_w=4, min_h=3))
        self.assertIsNone(self.widgets.find_by_id(orphan.id))

    def test_consistent_data_is_left_alone(self):
        dashboard = self.insert_dashboard("Sales")
        widget = self.insert_widget(dashboard.id)
        self.dashboards.set_layout(dashboard.id, [LayoutItem(widget_id=str(widget.id), w=6, h=4).model_dump()])

        report = self.service.reconcile_layouts()
        self.assertEqual(
            report.model_dump(),
            {"dashboards_checked": 1, "stale_entries_removed": 0, "missing_entries_added": 0, "orphan_widgets_deleted": 0},
        )

    def test_idempotent(self):
        dashboard = self.insert_dashboard("Sales")
        self.insert_widget(dashboard.id)
        self.service.reconcile_layouts()

        second = self.service.reconcile_layouts()
        self.assertEqual((second.stale_entries_removed, second.missing_entries_added), (0, 0))


class TestFindOverlaps(MaintenanceTestCase):

    def test_reports_overlapping_pairs(self):
        dashboard = self.insert_dashboard(
            "Sales",
            layout=[
                LayoutItem(widget_id="a", x=0, y=0, w=6, h=4),
                LayoutItem(widget_id="b", x=4, y=2, w=4, h=4),
                LayoutItem(widget_id="c", x=8, y=0, w=4, h=2),
                LayoutItem(widget_id="d", x=0, y=4, w=4, h=2),
            ],
        )
        self.assertEqual(self.service.find_overlaps(str(dashboard.id)), [("a", "b")])

    def test_missing_dashboard(self):
        with self.assertRaises(NotFoundError):
            self.service.find_overlaps(str(ObjectId()))


class TestRunMaintenance(MaintenanceTestCase):

    def test_runs_every_pass(self):
        self.insert_dashboard("One", is_default=True)
        self.insert_dashboard("Two", is_default=True)

        result = run_maintenance(self.db)

        self.assertEqual(result["status"], "success")
        self.assertEqual(result["defaults"]["defaults_cleared"], 1)
        self.assertEqual(result["layouts"]["dashboards_checked"], 2)


if __name__ == "__main__":
    unittest.main()
