"""Maintenance API endpoints (repair passes for dashboard invariants)."""

from fastapi import APIRouter, Depends

from crm_dashboards.api.dependencies import get_maintenance_service
from crm_dashboards.dtos.dashboard import ReconcileReport, RepairDefaultsResponse
from crm_dashboards.services.maintenance import MaintenanceService

router = APIRouter(prefix="/maintenance", tags=["Maintenance"])


@router.post("/repair-defaults", response_model=RepairDefaultsResponse)
def repair_defaults(service: MaintenanceService = Depends(get_maintenance_service)):
    """Leave exactly one default dashboard when several are flagged."""
    return service.repair_default_dashboards()


@router.post("/reconcile-layouts", response_model=ReconcileReport)
def reconcile_layouts(service: MaintenanceService = Depends(get_maintenance_service)):
    """Drop stale layout entries, add missing ones, delete orphan widgets."""
    return service.reconcile_layouts()
