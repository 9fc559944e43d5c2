"""Widget API endpoints."""

from typing import Any

from fastapi import APIRouter, Depends

from crm_dashboards.api.dependencies import get_dashboard_service, get_widget_data_service
from crm_dashboards.core.tracing import TracingContext
from crm_dashboards.dtos.dashboard import IdResponse, WidgetUpdateRequest
from crm_dashboards.services.dashboard_service import DashboardService
from crm_dashboards.services.widget_data import WidgetDataService

router = APIRouter(prefix="/widgets", tags=["Widgets"])


@router.patch("/{widget_id}", response_model=IdResponse)
def update_widget(
    widget_id: str,
    payload: WidgetUpdateRequest,
    service: DashboardService = Depends(get_dashboard_service),
):
    """Update a widget; omitted fields are left untouched."""
    TracingContext.set(widget_id=widget_id, operation="update_widget")
    return IdResponse(id=service.update_widget(widget_id, payload))


@router.delete("/{widget_id}", response_model=IdResponse)
def remove_widget(widget_id: str, service: DashboardService = Depends(get_dashboard_service)):
    """Delete a widget and remove it from its dashboard layout."""
    TracingContext.set(widget_id=widget_id, operation="remove_widget")
    return IdResponse(id=service.remove_widget(widget_id))


@router.get("/{widget_id}/data")
def get_widget_data(widget_id: str, service: WidgetDataService = Depends(get_widget_data_service)) -> Any:
    """Compute the data a widget displays; the shape depends on the widget type."""
    TracingContext.set(widget_id=widget_id, operation="get_widget_data")
    return service.get_widget_data(widget_id)
