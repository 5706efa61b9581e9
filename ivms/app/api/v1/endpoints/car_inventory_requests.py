"""
Car Inventory Request API Endpoints.

GARAGE proposes fleet additions and retirements; admins decide.
"""

from typing import Optional
from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession
from ivms.app.db.session import get_db
from ivms.app.models.enums import CarInventoryRequestStatus, CarInventoryRequestType, Department
from ivms.app.schemas.car_inventory_request import (
    CarInventoryRequestCreate, CarInventoryRequestResponse, CarInventoryRequestListResponse,
    RejectCarInventoryRequest
)
from ivms.app.core.dependencies import get_current_user
from ivms.app.core.guards import require_department
from ivms.app.services.car_inventory_service import CarInventoryRequestService

router = APIRouter(prefix="/car-inventory-requests", tags=["Car Inventory Requests"])

_garage_or_admin = require_department([Department.ADMIN, Department.GARAGE])


@router.get("", response_model=CarInventoryRequestListResponse)
async def list_car_inventory_requests(
    status: Optional[CarInventoryRequestStatus] = Query(None),
    type: Optional[CarInventoryRequestType] = Query(None),
    skip: int = Query(0, ge=0),
    limit: int = Query(100, ge=1, le=500),
    current_user: dict = Depends(_garage_or_admin),
    db: AsyncSession = Depends(get_db)
):
    requests = await CarInventoryRequestService.list(db, status, type, skip, limit)
    return CarInventoryRequestListResponse(
        car_inventory_requests=[CarInventoryRequestResponse.model_validate(r) for r in requests],
        total=len(requests)
    )


@router.get("/pending", response_model=CarInventoryRequestListResponse)
async def list_pending_car_inventory_requests(
    current_user: dict = Depends(require_department([Department.ADMIN])),
    db: AsyncSession = Depends(get_db)
):
    """Approval queue."""
    requests = await CarInventoryRequestService.list(db, CarInventoryRequestStatus.PENDING)
    return CarInventoryRequestListResponse(
        car_inventory_requests=[CarInventoryRequestResponse.model_validate(r) for r in requests],
        total=len(requests)
    )


@router.get("/{request_id}", response_model=CarInventoryRequestResponse)
async def get_car_inventory_request(
    request_id: int,
    current_user: dict = Depends(_garage_or_admin),
    db: AsyncSession = Depends(get_db)
):
    return CarInventoryRequestResponse.model_validate(await CarInventoryRequestService.get(db, request_id))


@router.post("", response_model=CarInventoryRequestResponse, status_code=status.HTTP_201_CREATED)
async def create_car_inventory_request(
    body: CarInventoryRequestCreate,
    current_user: dict = Depends(require_department([Department.GARAGE])),
    db: AsyncSession = Depends(get_db)
):
    """ADD needs `car`, DELETE needs `car_id`."""
    inventory_request = await CarInventoryRequestService.create(
        db, body.type, current_user,
        car_id=body.car_id,
        car_data=body.car.model_dump(mode="json") if body.car else None
    )
    return CarInventoryRequestResponse.model_validate(inventory_request)


@router.post("/{request_id}/approve", response_model=CarInventoryRequestResponse)
async def approve_car_inventory_request(
    request_id: int,
    current_user: dict = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    """PENDING -> APPROVED (ADMIN/SUPER_ADMIN). The fleet change is applied."""
    inventory_request = await CarInventoryRequestService.approve(db, request_id, current_user)
    return CarInventoryRequestResponse.model_validate(inventory_request)


@router.post("/{request_id}/reject", response_model=CarInventoryRequestResponse)
async def reject_car_inventory_request(
    request_id: int,
    body: Optional[RejectCarInventoryRequest] = None,
    current_user: dict = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    """PENDING -> REJECTED (ADMIN/SUPER_ADMIN). A reason is required."""
    reason = body.rejection_reason if body else None
    inventory_request = await CarInventoryRequestService.reject(db, request_id, current_user, reason)
    return CarInventoryRequestResponse.model_validate(inventory_request)
