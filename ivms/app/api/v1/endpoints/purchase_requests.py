"""
Purchase Request API Endpoints.
"""

from datetime import datetime
from typing import Optional
from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession
from ivms.app.db.session import get_db
from ivms.app.models.enums import Department, PurchaseRequestStatus
from ivms.app.schemas.purchase_request import (
    PurchaseRequestCreate, PurchaseRequestResponse, PurchaseRequestListResponse, RejectPurchaseRequest
)
from ivms.app.core.dependencies import get_current_user
from ivms.app.core.guards import require_department
from ivms.app.services.purchase_request_service import PurchaseRequestService

router = APIRouter(prefix="/purchase-requests", tags=["Purchase Requests"])

_fleet_staff = require_department([Department.ADMIN, Department.GARAGE, Department.MAINTENANCE])


@router.get("", response_model=PurchaseRequestListResponse)
async def list_purchase_requests(
    status: Optional[PurchaseRequestStatus] = Query(None),
    from_date: Optional[datetime] = Query(None),
    to_date: Optional[datetime] = Query(None),
    skip: int = Query(0, ge=0),
    limit: int = Query(100, ge=1, le=500),
    current_user: dict = Depends(_fleet_staff),
    db: AsyncSession = Depends(get_db)
):
    requests = await PurchaseRequestService.list(db, status, from_date, to_date, skip, limit)
    return PurchaseRequestListResponse(
        purchase_requests=[PurchaseRequestResponse.model_validate(r) for r in requests],
        total=len(requests)
    )


@router.get("/pending", response_model=PurchaseRequestListResponse)
async def list_pending_purchase_requests(
    current_user: dict = Depends(require_department([Department.ADMIN])),
    db: AsyncSession = Depends(get_db)
):
    """Approval queue, oldest first."""
    requests = await PurchaseRequestService.list_pending(db)
    return PurchaseRequestListResponse(
        purchase_requests=[PurchaseRequestResponse.model_validate(r) for r in requests],
        total=len(requests)
    )


@router.get("/{request_id}", response_model=PurchaseRequestResponse)
async def get_purchase_request(
    request_id: int,
    current_user: dict = Depends(_fleet_staff),
    db: AsyncSession = Depends(get_db)
):
    return PurchaseRequestResponse.model_validate(await PurchaseRequestService.get(db, request_id))


@router.post("", response_model=PurchaseRequestResponse, status_code=status.HTTP_201_CREATED)
async def create_purchase_request(
    body: PurchaseRequestCreate,
    current_user: dict = Depends(require_department([Department.GARAGE])),
    db: AsyncSession = Depends(get_db)
):
    purchase_request = await PurchaseRequestService.create(db, body.model_dump(), current_user)
    return PurchaseRequestResponse.model_validate(purchase_request)


@router.post("/{request_id}/approve", response_model=PurchaseRequestResponse)
async def approve_purchase_request(
    request_id: int,
    current_user: dict = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    """PENDING -> APPROVED (ADMIN/SUPER_ADMIN)."""
    purchase_request = await PurchaseRequestService.approve(db, request_id, current_user)
    return PurchaseRequestResponse.model_validate(purchase_request)


@router.post("/{request_id}/reject", response_model=PurchaseRequestResponse)
async def reject_purchase_request(
    request_id: int,
    body: Optional[RejectPurchaseRequest] = None,
    current_user: dict = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    """PENDING -> REJECTED (ADMIN/SUPER_ADMIN). A reason is required."""
    reason = body.rejection_reason if body else None
    purchase_request = await PurchaseRequestService.reject(db, request_id, current_user, reason)
    return PurchaseRequestResponse.model_validate(purchase_request)
