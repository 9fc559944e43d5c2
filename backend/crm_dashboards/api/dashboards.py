"""Dashboard API endpoints."""

from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, status

from crm_dashboards.api.dependencies import get_dashboard_service, get_maintenance_service
from crm_dashboards.core.tracing import TracingContext
from crm_dashboards.dtos.dashboard import (
    DashboardCreateRequest,
    DashboardDetailResponse,
    DashboardResponse,
    DashboardUpdateRequest,
    DuplicateDashboardRequest,
    IdResponse,
    LayoutUpdateRequest,
    OverlapResponse,
    WidgetCreateRequest,
)
from crm_dashboards.services.dashboard_service import DashboardService
from crm_dashboards.services.maintenance import MaintenanceService

router = APIRouter(prefix="/dashboards", tags=["Dashboards"])


@router.get("", response_model=List[DashboardResponse])
def list_dashboards(service: DashboardService = Depends(get_dashboard_service)):
    """List dashboards, the default one first, then by name."""
    return service.list_dashboards()


@router.get("/default", response_model=DashboardDetailResponse)
def get_default_dashboard(service: DashboardService = Depends(get_dashboard_service)):
    """Get the default dashboard with its widgets."""
    dashboard = service.get_default_dashboard()
    if dashboard is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="No default dashboard")
    return dashboard


@router.get("/{dashboard_id}", response_model=DashboardDetailResponse)
def get_dashboard(dashboard_id: str, service: DashboardService = Depends(get_dashboard_service)):
    """Get a dashboard with its widgets ordered by position."""
    dashboard = service.get_dashboard(dashboard_id)
    if dashboard is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Dashboard not found")
    return dashboard


@router.post("", response_model=IdResponse, status_code=status.HTTP_201_CREATED)
def create_dashboard(
    payload: DashboardCreateRequest,
    service: DashboardService = Depends(get_dashboard_service),
):
    """Create an empty dashboard."""
    TracingContext.set(operation="create_dashboard")
    dashboard_id = service.create_dashboard(
        payload.name,
        description=payload.description,
        is_default=payload.is_default,
        is_public=payload.is_public,
    )
    return IdResponse(id=dashboard_id)


@router.patch("/{dashboard_id}", response_model=IdResponse)
def update_dashboard(
    dashboard_id: str,
    payload: DashboardUpdateRequest,
    service: DashboardService = Depends(get_dashboard_service),
):
    """Update dashboard metadata; omitted fields are left untouched."""
    TracingContext.set(dashboard_id=dashboard_id, operation="update_dashboard")
    return IdResponse(id=service.update_dashboard(dashboard_id, payload))


@router.delete("/{dashboard_id}", response_model=IdResponse)
def delete_dashboard(dashboard_id: str, service: DashboardService = Depends(get_dashboard_service)):
    """Delete a dashboard and all of its widgets."""
    TracingContext.set(dashboard_id=dashboard_id, operation="delete_dashboard")
    return IdResponse(id=service.delete_dashboard(dashboard_id))


@router.post("/{dashboard_id}/duplicate", response_model=IdResponse, status_code=status.HTTP_201_CREATED)
def duplicate_dashboard(
    dashboard_id: str,
    payload: Optional[DuplicateDashboardRequest] = None,
    service: DashboardService = Depends(get_dashboard_service),
):
    """Copy a dashboard with all its widgets as a private, non-default dashboard."""
    TracingContext.set(dashboard_id=dashboard_id, operation="duplicate_dashboard")
    return IdResponse(id=service.duplicate_dashboard(dashboard_id, payload.new_name if payload else None))


@router.put("/{dashboard_id}/layout", response_model=IdResponse)
def update_layout(
    dashboard_id: str,
    payload: LayoutUpdateRequest,
    service: DashboardService = Depends(get_dashboard_service),
):
    """Replace the dashboard layout."""
    TracingContext.set(dashboard_id=dashboard_id, operation="update_layout")
    return IdResponse(id=service.update_layout(dashboard_id, payload.layout))


@router.post("/{dashboard_id}/widgets", response_model=IdResponse, status_code=status.HTTP_201_CREATED)
def add_widget(
    dashboard_id: str,
    payload: WidgetCreateRequest,
    service: DashboardService = Depends(get_dashboard_service),
):
    """Add a widget; placed on the first free grid spot unless a position is given."""
    TracingContext.set(dashboard_id=dashboard_id, operation="add_widget")
    widget_id = service.add_widget(
        dashboard_id,
        payload.type.value,
        payload.title,
        payload.config,
        position=payload.position,
        description=payload.description,
        refresh_interval=payload.refresh_interval,
    )
    return IdResponse(id=widget_id)


@router.get("/{dashboard_id}/overlaps", response_model=List[OverlapResponse])
def list_overlaps(dashboard_id: str, service: MaintenanceService = Depends(get_maintenance_service)):
    """Report layout entries whose rectangles overlap."""
    return [OverlapResponse(first=first, second=second) for first, second in service.find_overlaps(dashboard_id)]
