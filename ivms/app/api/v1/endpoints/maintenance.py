"""
Maintenance Request API Endpoints.
"""

from typing import Optional
from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession
from ivms.app.db.session import get_db
from ivms.app.models.enums import Department, MaintenanceStatus
from ivms.app.schemas.maintenance import (
    MaintenanceRequestCreate, MaintenanceRequestResponse, MaintenanceRequestListResponse,
    TriageRequest, RejectMaintenanceRequest, CompleteMaintenanceRequest
)
from ivms.app.schemas.part import AssignPartRequest, PartUsageResponse, PartUsageListResponse
from ivms.app.core.dependencies import get_current_user
from ivms.app.core.guards import require_department
from ivms.app.services.maintenance_service import MaintenanceService
from ivms.app.services import maintenance_part_service

router = APIRouter(prefix="/maintenance", tags=["Maintenance"])

_fleet_staff = require_department([Department.ADMIN, Department.GARAGE, Department.MAINTENANCE])


@router.get("", response_model=MaintenanceRequestListResponse)
async def list_maintenance_requests(
    status: Optional[MaintenanceStatus] = Query(None),
    car_id: Optional[int] = Query(None),
    skip: int = Query(0, ge=0),
    limit: int = Query(100, ge=1, le=500),
    current_user: dict = Depends(_fleet_staff),
    db: AsyncSession = Depends(get_db)
):
    requests = await MaintenanceService.list(db, status, car_id, skip, limit)
    return MaintenanceRequestListResponse(
        maintenance_requests=[MaintenanceRequestResponse.model_validate(r) for r in requests],
        total=len(requests)
    )


@router.get("/{request_id}", response_model=MaintenanceRequestResponse)
async def get_maintenance_request(
    request_id: int,
    current_user: dict = Depends(_fleet_staff),
    db: AsyncSession = Depends(get_db)
):
    return MaintenanceRequestResponse.model_validate(await MaintenanceService.get(db, request_id))


@router.post("", response_model=MaintenanceRequestResponse, status_code=status.HTTP_201_CREATED)
async def create_maintenance_request(
    body: MaintenanceRequestCreate,
    current_user: dict = Depends(require_department([Department.GARAGE, Department.MAINTENANCE])),
    db: AsyncSession = Depends(get_db)
):
    """Report a problem with a car. One open request per car."""
    maintenance_request = await MaintenanceService.create(db, body.car_id, body.description, current_user)
    return MaintenanceRequestResponse.model_validate(maintenance_request)


@router.post("/{request_id}/triage", response_model=MaintenanceRequestResponse)
async def triage_maintenance_request(
    request_id: int,
    body: TriageRequest,
    current_user: dict = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    """PENDING -> PENDING_APPROVAL (MAINTENANCE)."""
    maintenance_request = await MaintenanceService.triage(
        db, request_id, current_user,
        maintenance_type=body.maintenance_type,
        external_vendor=body.external_vendor,
        external_cost=body.external_cost
    )
    return MaintenanceRequestResponse.model_validate(maintenance_request)


@router.post("/{request_id}/approve", response_model=MaintenanceRequestResponse)
async def approve_maintenance_request(
    request_id: int,
    current_user: dict = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    """PENDING_APPROVAL -> APPROVED (ADMIN/SUPER_ADMIN)."""
    maintenance_request = await MaintenanceService.approve(db, request_id, current_user)
    return MaintenanceRequestResponse.model_validate(maintenance_request)


@router.post("/{request_id}/reject", response_model=MaintenanceRequestResponse)
async def reject_maintenance_request(
    request_id: int,
    body: Optional[RejectMaintenanceRequest] = None,
    current_user: dict = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    """PENDING_APPROVAL -> REJECTED (ADMIN/SUPER_ADMIN). A reason is required."""
    reason = body.rejection_reason if body else None
    maintenance_request = await MaintenanceService.reject(db, request_id, current_user, reason)
    return MaintenanceRequestResponse.model_validate(maintenance_request)


@router.post("/{request_id}/start", response_model=MaintenanceRequestResponse)
async def start_maintenance(
    request_id: int,
    current_user: dict = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    """APPROVED -> IN_PROGRESS (MAINTENANCE). The car goes UNDER_MAINTENANCE."""
    maintenance_request = await MaintenanceService.start(db, request_id, current_user)
    return MaintenanceRequestResponse.model_validate(maintenance_request)


@router.post("/{request_id}/complete", response_model=MaintenanceRequestResponse)
async def complete_maintenance(
    request_id: int,
    body: Optional[CompleteMaintenanceRequest] = None,
    current_user: dict = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    """IN_PROGRESS -> COMPLETED (MAINTENANCE). The car is AVAILABLE again."""
    notes = body.completion_notes if body else None
    maintenance_request = await MaintenanceService.complete(db, request_id, current_user, notes)
    return MaintenanceRequestResponse.model_validate(maintenance_request)


# --- Parts used on a maintenance request ---

@router.get("/{request_id}/parts", response_model=PartUsageListResponse)
async def list_maintenance_parts(
    request_id: int,
    current_user: dict = Depends(_fleet_staff),
    db: AsyncSession = Depends(get_db)
):
    usages = await maintenance_part_service.list_for_maintenance(db, request_id)
    return PartUsageListResponse(usages=[PartUsageResponse.model_validate(u) for u in usages], total=len(usages))


@router.post("/{request_id}/parts", response_model=PartUsageResponse, status_code=status.HTTP_201_CREATED)
async def assign_maintenance_part(
    request_id: int,
    body: AssignPartRequest,
    current_user: dict = Depends(require_department([Department.GARAGE, Department.MAINTENANCE])),
    db: AsyncSession = Depends(get_db)
):
    """Use a part on IN_PROGRESS work. Quantity-tracked stock goes down."""
    usage = await maintenance_part_service.assign_part(
        db, request_id, body.part_id, current_user, quantity=body.quantity
    )
    return PartUsageResponse.model_validate(usage)


@router.delete("/parts/{usage_id}", status_code=status.HTTP_204_NO_CONTENT)
async def remove_maintenance_part(
    usage_id: int,
    current_user: dict = Depends(require_department([Department.GARAGE, Department.MAINTENANCE])),
    db: AsyncSession = Depends(get_db)
):
    """Undo an assignment on IN_PROGRESS work; stock is put back."""
    await maintenance_part_service.remove_assignment(db, usage_id, current_user)
