"""
Car Request API Endpoints.

Lifecycle actions carry no department guard of their own: who may take
each step is decided per transition by the workflow table.
"""

from datetime import datetime
from typing import Optional
from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession
from ivms.app.db.session import get_db
from ivms.app.models.enums import CarRequestStatus, CarType, Department
from ivms.app.schemas.car_request import (
    CarRequestCreate, CarRequestUpdate, CarRequestResponse, CarRequestListResponse,
    AssignCarRequest, RejectCarRequest, ReturnCarRequest
)
from ivms.app.core.dependencies import get_current_user
from ivms.app.core.guards import require_department
from ivms.app.services.car_request_service import CarRequestService

router = APIRouter(prefix="/car-requests", tags=["Car Requests"])


def _list_response(requests) -> CarRequestListResponse:
    return CarRequestListResponse(
        car_requests=[CarRequestResponse.model_validate(r) for r in requests],
        total=len(requests)
    )


@router.get("", response_model=CarRequestListResponse)
async def list_car_requests(
    status: Optional[CarRequestStatus] = Query(None),
    car_type: Optional[CarType] = Query(None),
    created_by_id: Optional[int] = Query(None),
    from_date: Optional[datetime] = Query(None, description="Earliest departure"),
    to_date: Optional[datetime] = Query(None, description="Latest departure"),
    skip: int = Query(0, ge=0),
    limit: int = Query(100, ge=1, le=500),
    current_user: dict = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    """
    List car requests.

    OPERATION users only ever see their own requests.
    """
    requests = await CarRequestService.list(
        db, current_user, status, car_type, created_by_id, from_date, to_date, skip, limit
    )
    return _list_response(requests)


@router.get("/my-requests", response_model=CarRequestListResponse)
async def list_my_requests(
    status: Optional[CarRequestStatus] = Query(None),
    current_user: dict = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    requests = await CarRequestService.list(
        db, current_user, status=status, created_by_id=current_user["user_id"]
    )
    return _list_response(requests)


@router.get("/pending", response_model=CarRequestListResponse)
async def list_pending_requests(
    current_user: dict = Depends(require_department([Department.ADMIN, Department.GARAGE])),
    db: AsyncSession = Depends(get_db)
):
    """Garage work queue: requests waiting for a vehicle."""
    return _list_response(await CarRequestService.list_by_status(db, CarRequestStatus.PENDING))


@router.get("/assigned", response_model=CarRequestListResponse)
async def list_assigned_requests(
    current_user: dict = Depends(require_department([Department.ADMIN])),
    db: AsyncSession = Depends(get_db)
):
    """Approval queue: requests with a vehicle, waiting for an admin decision."""
    return _list_response(await CarRequestService.list_by_status(db, CarRequestStatus.ASSIGNED))


@router.get("/{request_id}", response_model=CarRequestResponse)
async def get_car_request(
    request_id: int,
    current_user: dict = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    car_request = await CarRequestService.get_visible(db, request_id, current_user)
    return CarRequestResponse.model_validate(car_request)


@router.post("", response_model=CarRequestResponse, status_code=status.HTTP_201_CREATED)
async def create_car_request(
    request_data: CarRequestCreate,
    current_user: dict = Depends(require_department([Department.OPERATION])),
    db: AsyncSession = Depends(get_db)
):
    """
    Raise a car request (OPERATION).

    Starts PENDING; the GARAGE department is notified.
    """
    car_request = await CarRequestService.create(db, request_data.model_dump(), current_user)
    return CarRequestResponse.model_validate(car_request)


@router.patch("/{request_id}", response_model=CarRequestResponse)
async def update_car_request(
    request_id: int,
    request_data: CarRequestUpdate,
    current_user: dict = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    """Edit trip details while the request is still PENDING (owner only)."""
    car_request = await CarRequestService.update(
        db, request_id, request_data.model_dump(exclude_unset=True), current_user
    )
    return CarRequestResponse.model_validate(car_request)


@router.post("/{request_id}/assign", response_model=CarRequestResponse)
async def assign_car(
    request_id: int,
    body: AssignCarRequest,
    current_user: dict = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    """PENDING -> ASSIGNED (GARAGE). Company car or rental company."""
    car_request = await CarRequestService.assign(
        db, request_id, current_user, car_id=body.car_id, rental_company_id=body.rental_company_id
    )
    return CarRequestResponse.model_validate(car_request)


@router.post("/{request_id}/approve", response_model=CarRequestResponse)
async def approve_car_request(
    request_id: int,
    current_user: dict = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    """ASSIGNED -> APPROVED (ADMIN/SUPER_ADMIN)."""
    car_request = await CarRequestService.approve(db, request_id, current_user)
    return CarRequestResponse.model_validate(car_request)


@router.post("/{request_id}/reject", response_model=CarRequestResponse)
async def reject_car_request(
    request_id: int,
    body: Optional[RejectCarRequest] = None,
    current_user: dict = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    """ASSIGNED -> REJECTED (ADMIN/SUPER_ADMIN). rejection_reason is required."""
    reason = body.rejection_reason if body else None
    car_request = await CarRequestService.reject(db, request_id, current_user, reason)
    return CarRequestResponse.model_validate(car_request)


@router.post("/{request_id}/in-transit", response_model=CarRequestResponse)
async def mark_in_transit(
    request_id: int,
    current_user: dict = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    """APPROVED -> IN_TRANSIT (requester)."""
    car_request = await CarRequestService.mark_in_transit(db, request_id, current_user)
    return CarRequestResponse.model_validate(car_request)


@router.post("/{request_id}/return", response_model=CarRequestResponse)
async def return_car(
    request_id: int,
    body: Optional[ReturnCarRequest] = None,
    current_user: dict = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    """IN_TRANSIT -> RETURNED. Who may confirm depends on CAR_RETURN_POLICY."""
    body = body or ReturnCarRequest()
    car_request = await CarRequestService.mark_returned(
        db, request_id, current_user,
        current_mileage=body.current_mileage,
        return_condition_notes=body.return_condition_notes
    )
    return CarRequestResponse.model_validate(car_request)


@router.post("/{request_id}/cancel", response_model=CarRequestResponse)
async def cancel_car_request(
    request_id: int,
    current_user: dict = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    """PENDING or ASSIGNED -> CANCELLED (requester)."""
    car_request = await CarRequestService.cancel(db, request_id, current_user)
    return CarRequestResponse.model_validate(car_request)
