import unittest
from unittest.mock import MagicMock, patch

from bson import ObjectId
from fastapi.testclient import TestClient
from pymongo.errors import ServerSelectionTimeoutError

from crm_dashboards.api.dependencies import (
    get_dashboard_service,
    get_maintenance_service,
    get_widget_data_service,
)
from crm_dashboards.database.mongo import get_db
from crm_dashboards.dtos.dashboard import (
    DashboardDetailResponse,
    DashboardResponse,
    ReconcileReport,
    RepairDefaultsResponse,
)
from crm_dashboards.entities.dashboard import Dashboard
from crm_dashboards.entities.widget import Widget
from crm_dashboards.main import app
from crm_dashboards.services.dashboard_service import DashboardService
from crm_dashboards.services.exceptions import InvalidWidgetConfigError, NotFoundError
from tests.fakes import FakeDashboardRepository, FakeStore, FakeWidgetRepository


class ApiTestCase(unittest.TestCase):

    def setUp(self):
        self.dashboard_service = MagicMock(spec=DashboardService)
        self.widget_data_service = MagicMock()
        self.maintenance_service = MagicMock()
        self.db = MagicMock()
        self.db.name = "crm"

        app.dependency_overrides[get_dashboard_service] = lambda: self.dashboard_service
        app.dependency_overrides[get_widget_data_service] = lambda: self.widget_data_service
        app.dependency_overrides[get_maintenance_service] = lambda: self.maintenance_service
        app.dependency_overrides[get_db] = lambda: self.db
        self.addCleanup(app.dependency_overrides.clear)

        self.client = TestClient(app)


class TestHealth(ApiTestCase):

    def test_health(self):
        response = self.client.get("/api/health")
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json()["status"], "healthy")

    def test_database_health(self):
        response = self.client.get("/api/health/db")
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json()["database"], "crm")
        self.db.command.assert_called_once_with("ping")

    def test_database_down_is_503(self):
        self.db.command.side_effect = ServerSelectionTimeoutError("no servers")

        response = self.client.get("/api/health/db")

        self.assertEqual(response.status_code, 503)
        self.assertEqual(response.json()["status"], "unhealthy")

    def test_correlation_id_is_echoed(self):
        response = self.client.get("/api/health", headers={"X-Correlation-ID": "abc-123"})
        self.assertEqual(response.headers["X-Correlation-ID"], "abc-123")

    def test_correlation_id_is_generated(self):
        response = self.client.get("/api/health")
        self.assertTrue(response.headers["X-Correlation-ID"])


class TestDashboardRoutes(ApiTestCase):

    def test_list(self):
        dashboard = Dashboard(_id=ObjectId(), name="Sales", is_default=True)
        self.dashboard_service.list_dashboards.return_value = [DashboardResponse.from_entity(dashboard)]

        response = self.client.get("/api/dashboards")

        self.assertEqual(response.status_code, 200)
        body = response.json()
        self.assertEqual(body[0]["_id"], str(dashboard.id))
        self.assertEqual(body[0]["name"], "Sales")
        self.assertTrue(body[0]["is_default"])

    def test_default_missing_is_404(self):
        self.dashboard_service.get_default_dashboard.return_value = None

        response = self.client.get("/api/dashboards/default")

        self.assertEqual(response.status_code, 404)
        self.assertEqual(response.json(), {"detail": "No default dashboard", "code": "NOT_FOUND"})

    def test_get_with_widgets(self):
        dashboard = Dashboard(_id=ObjectId(), name="Sales")
        widget = Widget(_id=ObjectId(), dashboard_id=dashboard.id, type="metric", title="Deals")
        self.dashboard_service.get_dashboard.return_value = DashboardDetailResponse.model_validate(
            {**dashboard.model_dump(by_alias=True), "widgets": [widget.model_dump(by_alias=True)]}
        )

        response = self.client.get(f"/api/dashboards/{dashboard.id}")

        self.assertEqual(response.status_code, 200)
        widgets = response.json()["widgets"]
        self.assertEqual(widgets[0]["_id"], str(widget.id))
        self.assertEqual(widgets[0]["dashboard_id"], str(dashboard.id))

    def test_get_missing_is_404(self):
        self.dashboard_service.get_dashboard.return_value = None
        response = self.client.get("/api/dashboards/not-an-id")
        self.assertEqual(response.status_code, 404)

    def test_create(self):
        self.dashboard_service.create_dashboard.return_value = "abc"

        response = self.client.post("/api/dashboards", json={"name": "Sales", "is_default": True})

        self.assertEqual(response.status_code, 201)
        self.assertEqual(response.json(), {"id": "abc"})
        self.dashboard_service.create_dashboard.assert_called_once_with(
            "Sales", description=None, is_default=True, is_public=False
        )

    def test_create_requires_name(self):
        response = self.client.post("/api/dashboards", json={"description": "no name"})
        self.assertEqual(response.status_code, 422)
        self.assertEqual(response.json()["code"], "VALIDATION_ERROR")
        self.dashboard_service.create_dashboard.assert_not_called()

    def test_update_only_sends_provided_fields(self):
        self.dashboard_service.update_dashboard.return_value = "abc"

        response = self.client.patch("/api/dashboards/abc", json={"name": "Renamed"})

        self.assertEqual(response.json(), {"id": "abc"})
        payload = self.dashboard_service.update_dashboard.call_args[0][1]
        self.assertEqual(payload.model_dump(exclude_unset=True), {"name": "Renamed"})

    def test_update_missing_is_404(self):
        self.dashboard_service.update_dashboard.side_effect = NotFoundError("Dashboard", "abc")

        response = self.client.patch("/api/dashboards/abc", json={"name": "Renamed"})

        self.assertEqual(response.status_code, 404)
        self.assertEqual(response.json(), {"detail": "Dashboard not found", "code": "NOT_FOUND"})

    def test_delete(self):
        self.dashboard_service.delete_dashboard.return_value = "abc"
        response = self.client.delete("/api/dashboards/abc")
        self.assertEqual(response.json(), {"id": "abc"})

    def test_duplicate_without_body(self):
        self.dashboard_service.duplicate_dashboard.return_value = "copy"

        response = self.client.post("/api/dashboards/abc/duplicate")

        self.assertEqual(response.status_code, 201)
        self.dashboard_service.duplicate_dashboard.assert_called_once_with("abc", None)

    def test_duplicate_with_name(self):
        self.dashboard_service.duplicate_dashboard.return_value = "copy"
        self.client.post("/api/dashboards/abc/duplicate", json={"new_name": "Mine"})
        self.dashboard_service.duplicate_dashboard.assert_called_once_with("abc", "Mine")

    def test_update_layout(self):
        self.dashboard_service.update_layout.return_value = "abc"

        response = self.client.put(
            "/api/dashboards/abc/layout",
            json={"layout": [{"widget_id": "w1", "x": 0, "y": 0, "w": 3, "h": 2, "min_w": 2}]},
        )

        self.assertEqual(response.status_code, 200)
        layout = self.dashboard_service.update_layout.call_args[0][1]
        self.assertEqual((layout[0].widget_id, layout[0].min_w), ("w1", 2))

    def test_add_widget(self):
        self.dashboard_service.add_widget.return_value = "w1"

        response = self.client.post(
            "/api/dashboards/abc/widgets",
            json={"type": "metric", "title": "Deals", "config": {"data_source": "deals"}},
        )

        self.assertEqual(response.status_code, 201)
        self.assertEqual(response.json(), {"id": "w1"})
        args, kwargs = self.dashboard_service.add_widget.call_args
        self.assertEqual(args, ("abc", "metric", "Deals", {"data_source": "deals"}))
        self.assertIsNone(kwargs["position"])

    def test_add_widget_unknown_type(self):
        response = self.client.post("/api/dashboards/abc/widgets", json={"type": "gauge", "title": "G"})
        self.assertEqual(response.status_code, 422)
        self.dashboard_service.add_widget.assert_not_called()

    def test_add_widget_invalid_config(self):
        self.dashboard_service.add_widget.side_effect = InvalidWidgetConfigError("Invalid list widget config")

        response = self.client.post("/api/dashboards/abc/widgets", json={"type": "list", "title": "L"})

        self.assertEqual(response.status_code, 422)
        self.assertEqual(response.json()["code"], "INVALID_WIDGET_CONFIG")

    def test_overlaps(self):
        self.maintenance_service.find_overlaps.return_value = [("a", "b")]
        response = self.client.get("/api/dashboards/abc/overlaps")
        self.assertEqual(response.json(), [{"first": "a", "second": "b"}])


class TestWidgetRoutes(ApiTestCase):

    def test_update(self):
        self.dashboard_service.update_widget.return_value = "w1"

        response = self.client.patch("/api/widgets/w1", json={"position": {"x": 1, "y": 2, "width": 3, "height": 4}})

        self.assertEqual(response.json(), {"id": "w1"})
        payload = self.dashboard_service.update_widget.call_args[0][1]
        self.assertEqual(payload.position.width, 3)

    def test_update_with_partial_position_is_422(self):
        response = self.client.patch("/api/widgets/w1", json={"position": {"x": 6, "y": 0}})

        self.assertEqual(response.status_code, 422)
        self.assertEqual(response.json()["code"], "VALIDATION_ERROR")
        self.dashboard_service.update_widget.assert_not_called()

    def test_remove_missing_is_404(self):
        self.dashboard_service.remove_widget.side_effect = NotFoundError("Widget", "w1")
        response = self.client.delete("/api/widgets/w1")
        self.assertEqual(response.json(), {"detail": "Widget not found", "code": "NOT_FOUND"})

    def test_data(self):
        widget_id = str(ObjectId())
        self.widget_data_service.get_widget_data.return_value = {"value": 4, "change": 100.0}

        response = self.client.get(f"/api/widgets/{widget_id}/data")

        self.assertEqual(response.json(), {"value": 4, "change": 100.0})
        self.widget_data_service.get_widget_data.assert_called_once_with(widget_id)

    def test_data_missing_widget_is_404(self):
        self.widget_data_service.get_widget_data.side_effect = NotFoundError("Widget")
        response = self.client.get(f"/api/widgets/{ObjectId()}/data")
        self.assertEqual(response.status_code, 404)
        self.assertEqual(response.json()["detail"], "Widget not found")

    def test_data_unknown_type_is_null(self):
        self.widget_data_service.get_widget_data.return_value = None

        response = self.client.get(f"/api/widgets/{ObjectId()}/data")

        self.assertEqual(response.status_code, 200)
        self.assertIsNone(response.json())


class TestMaintenanceRoutes(ApiTestCase):

    def test_repair_defaults(self):
        self.maintenance_service.repair_default_dashboards.return_value = RepairDefaultsResponse(
            defaults_cleared=2, default_dashboard_id="abc"
        )
        response = self.client.post("/api/maintenance/repair-defaults")
        self.assertEqual(response.json(), {"defaults_cleared": 2, "default_dashboard_id": "abc"})

    def test_reconcile_layouts(self):
        self.maintenance_service.reconcile_layouts.return_value = ReconcileReport(dashboards_checked=3)
        response = self.client.post("/api/maintenance/reconcile-layouts")
        self.assertEqual(response.json()["dashboards_checked"], 3)


@patch("crm_dashboards.services.dashboard_service.WidgetRepository", FakeWidgetRepository)
@patch("crm_dashboards.services.dashboard_service.DashboardRepository", FakeDashboardRepository)
class TestDashboardFlow(unittest.TestCase):
    """Routes wired to a real DashboardService over the in-memory store."""

    def setUp(self):
        store = FakeStore()
        app.dependency_overrides[get_dashboard_service] = lambda: DashboardService(store, use_transactions=False)
        self.addCleanup(app.dependency_overrides.clear)
        self.client = TestClient(app)

    def test_create_add_and_read_back(self):
        dashboard_id = self.client.post("/api/dashboards", json={"name": "Sales", "is_default": True}).json()["id"]
        first = self.client.post(
            f"/api/dashboards/{dashboard_id}/widgets", json={"type": "metric", "title": "Deals"}
        ).json()["id"]
        second = self.client.post(
            f"/api/dashboards/{dashboard_id}/widgets", json={"type": "metric", "title": "Value"}
        ).json()["id"]

        body = self.client.get("/api/dashboards/default").json()

        self.assertEqual(body["_id"], dashboard_id)
        self.assertEqual([w["_id"] for w in body["widgets"]], [first, second])
        self.assertEqual(
            [(item["widget_id"], item["x"], item["y"]) for item in body["layout"]],
            [(first, 0, 0), (second, 3, 0)],
        )

    def test_partial_position_leaves_widget_in_place(self):
        dashboard_id = self.client.post("/api/dashboards", json={"name": "Sales"}).json()["id"]
        widget_id = self.client.post(
            f"/api/dashboards/{dashboard_id}/widgets", json={"type": "chart", "title": "Chart"}
        ).json()["id"]

        response = self.client.patch(f"/api/widgets/{widget_id}", json={"position": {"x": 6, "y": 0}})

        self.assertEqual(response.status_code, 422)
        body = self.client.get(f"/api/dashboards/{dashboard_id}").json()
        position = body["widgets"][0]["position"]
        self.assertEqual((position["width"], position["height"]), (6, 4))
        item = body["layout"][0]
        self.assertEqual((item["x"], item["y"], item["w"], item["h"]), (0, 0, 6, 4))

    def test_remove_widget_then_missing(self):
        dashboard_id = self.client.post("/api/dashboards", json={"name": "Sales"}).json()["id"]
        widget_id = self.client.post(
            f"/api/dashboards/{dashboard_id}/widgets", json={"type": "chart", "title": "Chart"}
        ).json()["id"]

        self.assertEqual(self.client.delete(f"/api/widgets/{widget_id}").status_code, 200)
        self.assertEqual(self.client.delete(f"/api/widgets/{widget_id}").status_code, 404)
        self.assertEqual(self.client.get(f"/api/dashboards/{dashboard_id}").json()["layout"], [])


if __name__ == "__main__":
    unittest.main()
