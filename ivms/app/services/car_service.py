"""
Car fleet service.

CRUD for company cars. Cars are never hard-deleted; soft delete sets
status to DELETED and hides the car from default listings.
"""

import logging
from typing import Any, Dict, List, Optional

from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, or_, func

from ivms.app.core.exceptions import ConflictError, ValidationError
from ivms.app.domain.car_request_workflow import CAR_HOLDING_STATUSES
from ivms.app.domain.maintenance_workflow import OPEN_STATUSES
from ivms.app.models.car import Car
from ivms.app.models.car_request import CarRequest
from ivms.app.models.enums import CarStatus, CarType
from ivms.app.models.maintenance_request import MaintenanceRequest
from ivms.app.services.audit import AuditAction, log_actor_event
from ivms.app.services.vehicle_status import get_car, set_car_status

logger = logging.getLogger(__name__)

_UPDATABLE_FIELDS = (
    "model", "type", "year", "license_plate", "vin",
    "color", "fuel_type", "current_mileage", "notes",
)


async def check_unique(
    db: AsyncSession,
    license_plate: Optional[str],
    vin: Optional[str],
    exclude_id: Optional[int] = None
) -> None:
    if license_plate:
        query = select(Car.id).where(Car.license_plate == license_plate)
        if exclude_id is not None:
            query = query.where(Car.id != exclude_id)
        if (await db.execute(query)).first():
            raise ConflictError(
                f"Car with license plate {license_plate} already exists",
                details={"field": "license_plate"}
            )

    if vin:
        query = select(Car.id).where(Car.vin == vin)
        if exclude_id is not None:
            query = query.where(Car.id != exclude_id)
        if (await db.execute(query)).first():
            raise ConflictError(
                f"Car with VIN {vin} already exists",
                details={"field": "vin"}
            )


async def list_cars(
    db: AsyncSession,
    status: Optional[CarStatus] = None,
    type: Optional[CarType] = None,
    search: Optional[str] = None,
    include_deleted: bool = False
) -> List[Car]:
    """
    List cars, newest first.

    DELETED cars are hidden unless include_deleted is set or they are
    asked for by status.
    """
    query = select(Car)

    if status:
        query = query.where(Car.status == status)
    elif not include_deleted:
        query = query.where(Car.status != CarStatus.DELETED)

    if type:
        query = query.where(Car.type == type)

    if search:
        pattern = f"%{search.lower()}%"
        query = query.where(or_(
            func.lower(Car.model).like(pattern),
            func.lower(Car.license_plate).like(pattern),
            func.lower(Car.vin).like(pattern),
        ))

    result = await db.execute(query.order_by(Car.created_at.desc(), Car.id.desc()))
    return list(result.scalars().all())


async def list_available_cars(db: AsyncSession, type: Optional[CarType] = None) -> List[Car]:
    query = select(Car).where(Car.status == CarStatus.AVAILABLE)
    if type:
        query = query.where(Car.type == type)
    result = await db.execute(query.order_by(Car.model.asc(), Car.id.asc()))
    return list(result.scalars().all())


async def create_car(db: AsyncSession, data: Dict[str, Any], current_user: dict) -> Car:
    await check_unique(db, data.get("license_plate"), data.get("vin"))

    car = Car(**data, status=CarStatus.AVAILABLE)
    db.add(car)
    await db.flush()

    await log_actor_event(
        db, current_user, AuditAction.CAR_CREATED, "Car", car.id,
        metadata={"license_plate": car.license_plate}
    )
    await db.commit()
    await db.refresh(car)

    logger.info("Car %s (%s) registered", car.id, car.license_plate)
    return car


async def update_car(db: AsyncSession, car_id: int, data: Dict[str, Any], current_user: dict) -> Car:
    car = await get_car(db, car_id)

    if car.status == CarStatus.DELETED:
        raise ValidationError("Cannot update a deleted car", details={"car_id": car_id})

    changes = {k: v for k, v in data.items() if k in _UPDATABLE_FIELDS and v is not None}
    await check_unique(db, changes.get("license_plate"), changes.get("vin"), exclude_id=car_id)

    if "current_mileage" in changes and changes["current_mileage"] < car.current_mileage:
        raise ValidationError(
            f"Mileage cannot go down (currently {car.current_mileage})",
            details={"field": "current_mileage"}
        )

    for field, value in changes.items():
        setattr(car, field, value)

    await log_actor_event(
        db, current_user, AuditAction.CAR_UPDATED, "Car", car.id,
        metadata={"fields": sorted(changes)}
    )
    await db.commit()
    await db.refresh(car)
    return car


async def ensure_deletable(db: AsyncSession, car: Car) -> None:
    """
    Raise unless the car may be retired: it must be AVAILABLE and not
    referenced by an active car request or open maintenance request.
    """
    car_id = car.id

    if car.status == CarStatus.DELETED:
        raise ValidationError("Car is already deleted", details={"car_id": car_id})

    if car.status in (CarStatus.ASSIGNED, CarStatus.IN_TRANSIT, CarStatus.UNDER_MAINTENANCE):
        raise ConflictError(
            f"Car {car_id} is currently {car.status.value} and cannot be deleted",
            details={"car_id": car_id, "car_status": car.status.value}
        )

    active_requests = await db.execute(
        select(func.count(CarRequest.id)).where(
            CarRequest.assigned_car_id == car_id,
            CarRequest.status.in_(CAR_HOLDING_STATUSES)
        )
    )
    open_maintenance = await db.execute(
        select(func.count(MaintenanceRequest.id)).where(
            MaintenanceRequest.car_id == car_id,
            MaintenanceRequest.status.in_(OPEN_STATUSES)
        )
    )
    if active_requests.scalar() or open_maintenance.scalar():
        raise ConflictError(
            "Cannot delete a car with active requests or maintenance",
            details={"car_id": car_id}
        )


async def delete_car(db: AsyncSession, car_id: int, current_user: dict) -> Car:
    """Soft delete a car. Refused while the car is in use."""
    car = await get_car(db, car_id)
    await ensure_deletable(db, car)

    await set_car_status(db, car_id, CarStatus.DELETED, from_statuses=(CarStatus.AVAILABLE,))
    await log_actor_event(
        db, current_user, AuditAction.CAR_DELETED, "Car", car.id,
        metadata={"license_plate": car.license_plate}
    )
    await db.commit()
    await db.refresh(car)

    logger.info("Car %s soft-deleted", car.id)
    return car
