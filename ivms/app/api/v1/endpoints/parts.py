"""
Parts Inventory API Endpoints.

Fleet staff can browse stock; GARAGE maintains it.
"""

from typing import Optional
from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession
from ivms.app.db.session import get_db
from ivms.app.core.config import settings
from ivms.app.models.enums import CarType, Department, TrackingMode
from ivms.app.schemas.part import (
    PartCreate, PartUpdate, PartResponse, PartListResponse, PartUsageResponse, PartUsageListResponse
)
from ivms.app.core.guards import require_department
from ivms.app.services import part_service, maintenance_part_service

router = APIRouter(prefix="/parts", tags=["Parts"])

_fleet_staff = require_department([Department.ADMIN, Department.GARAGE, Department.MAINTENANCE])
_garage = require_department([Department.GARAGE])


@router.get("", response_model=PartListResponse)
async def list_parts(
    search: Optional[str] = Query(None, description="Matches name or car model"),
    car_type: Optional[CarType] = Query(None),
    car_model: Optional[str] = Query(None),
    tracking_mode: Optional[TrackingMode] = Query(None),
    current_user: dict = Depends(_fleet_staff),
    db: AsyncSession = Depends(get_db)
):
    parts = await part_service.list_parts(db, search, car_type, car_model, tracking_mode)
    return PartListResponse(parts=[PartResponse.model_validate(p) for p in parts], total=len(parts))


@router.get("/low-stock", response_model=PartListResponse)
async def list_low_stock_parts(
    threshold: Optional[int] = Query(None, ge=0),
    current_user: dict = Depends(require_department([Department.ADMIN, Department.GARAGE])),
    db: AsyncSession = Depends(get_db)
):
    """Quantity-tracked parts at or below threshold (LOW_STOCK_THRESHOLD by default)."""
    limit = settings.low_stock_threshold if threshold is None else threshold
    parts = await part_service.list_low_stock(db, limit)
    return PartListResponse(parts=[PartResponse.model_validate(p) for p in parts], total=len(parts))


@router.get("/{part_id}", response_model=PartResponse)
async def get_part(
    part_id: int,
    current_user: dict = Depends(_fleet_staff),
    db: AsyncSession = Depends(get_db)
):
    return PartResponse.model_validate(await part_service.get_part(db, part_id))


@router.get("/{part_id}/usage-history", response_model=PartUsageListResponse)
async def get_part_usage_history(
    part_id: int,
    current_user: dict = Depends(_fleet_staff),
    db: AsyncSession = Depends(get_db)
):
    usages = await maintenance_part_service.usage_history(db, part_id)
    return PartUsageListResponse(usages=[PartUsageResponse.model_validate(u) for u in usages], total=len(usages))


@router.post("", response_model=PartResponse, status_code=status.HTTP_201_CREATED)
async def create_part(
    body: PartCreate,
    current_user: dict = Depends(_garage),
    db: AsyncSession = Depends(get_db)
):
    part = await part_service.create_part(db, body.model_dump(), current_user)
    return PartResponse.model_validate(part)


@router.patch("/{part_id}", response_model=PartResponse)
async def update_part(
    part_id: int,
    body: PartUpdate,
    current_user: dict = Depends(_garage),
    db: AsyncSession = Depends(get_db)
):
    part = await part_service.update_part(db, part_id, body.model_dump(exclude_unset=True), current_user)
    return PartResponse.model_validate(part)


@router.delete("/{part_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_part(
    part_id: int,
    current_user: dict = Depends(_garage),
    db: AsyncSession = Depends(get_db)
):
    """Soft delete."""
    await part_service.delete_part(db, part_id, current_user)
