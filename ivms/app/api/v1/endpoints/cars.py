"""
Car Fleet API Endpoints.

Any authenticated user can browse the fleet; the GARAGE department
(and SUPER_ADMIN) maintains it.
"""

from typing import Optional
from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession
from ivms.app.db.session import get_db
from ivms.app.models.enums import CarStatus, CarType, Department
from ivms.app.schemas.car import CarCreate, CarUpdate, CarResponse, CarListResponse
from ivms.app.core.dependencies import get_current_user
from ivms.app.core.guards import require_department
from ivms.app.services import car_service
from ivms.app.services.vehicle_status import get_car

router = APIRouter(prefix="/cars", tags=["Cars"])


@router.get("", response_model=CarListResponse)
async def list_cars(
    status: Optional[CarStatus] = Query(None),
    type: Optional[CarType] = Query(None),
    search: Optional[str] = Query(None, description="Matches model, plate or VIN"),
    include_deleted: bool = Query(False),
    current_user: dict = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    cars = await car_service.list_cars(db, status, type, search, include_deleted)
    return CarListResponse(cars=[CarResponse.model_validate(c) for c in cars], total=len(cars))


@router.get("/available", response_model=CarListResponse)
async def list_available_cars(
    type: Optional[CarType] = Query(None),
    current_user: dict = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    """Cars that can be assigned right now."""
    cars = await car_service.list_available_cars(db, type)
    return CarListResponse(cars=[CarResponse.model_validate(c) for c in cars], total=len(cars))


@router.get("/{car_id}", response_model=CarResponse)
async def get_car_detail(
    car_id: int,
    current_user: dict = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    return CarResponse.model_validate(await get_car(db, car_id))


@router.post("", response_model=CarResponse, status_code=status.HTTP_201_CREATED)
async def create_car(
    car_data: CarCreate,
    current_user: dict = Depends(require_department([Department.GARAGE])),
    db: AsyncSession = Depends(get_db)
):
    """Register a car. License plate and VIN must be unique."""
    car = await car_service.create_car(db, car_data.model_dump(), current_user)
    return CarResponse.model_validate(car)


@router.patch("/{car_id}", response_model=CarResponse)
async def update_car(
    car_id: int,
    car_data: CarUpdate,
    current_user: dict = Depends(require_department([Department.GARAGE])),
    db: AsyncSession = Depends(get_db)
):
    car = await car_service.update_car(db, car_id, car_data.model_dump(exclude_unset=True), current_user)
    return CarResponse.model_validate(car)


@router.delete("/{car_id}", response_model=CarResponse)
async def delete_car(
    car_id: int,
    current_user: dict = Depends(require_department([Department.GARAGE])),
    db: AsyncSession = Depends(get_db)
):
    """Soft delete (status DELETED). Refused while the car is in use."""
    car = await car_service.delete_car(db, car_id, current_user)
    return CarResponse.model_validate(car)
