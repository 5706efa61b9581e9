"""
Vehicle status service.

Moves company cars between AVAILABLE / ASSIGNED / IN_TRANSIT /
UNDER_MAINTENANCE as requests advance, and turns lost concurrent updates
into ConflictError.
"""

import logging
from contextlib import asynccontextmanager
from typing import Iterable, Optional

from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, update
from sqlalchemy.orm.exc import StaleDataError

from ivms.app.core.exceptions import ConflictError, NotFoundError
from ivms.app.models.car import Car
from ivms.app.models.enums import CarStatus

logger = logging.getLogger(__name__)


async def get_car(db: AsyncSession, car_id: int) -> Car:
    result = await db.execute(select(Car).where(Car.id == car_id))
    car = result.scalar_one_or_none()
    if not car:
        raise NotFoundError("Car", car_id)
    return car


async def reserve_car(db: AsyncSession, car_id: int) -> Car:
    """
    Atomically move a car from AVAILABLE to ASSIGNED.

    The status check and the update are one statement, so two requests
    racing for the same car cannot both win.

    Raises:
        NotFoundError: car does not exist
        ConflictError: car is deleted or not AVAILABLE
    """
    car = await get_car(db, car_id)

    if car.status == CarStatus.DELETED:
        raise ConflictError(
            f"Car {car_id} has been deleted",
            details={"car_id": car_id, "car_status": car.status.value}
        )

    result = await db.execute(
        update(Car)
        .where(Car.id == car_id, Car.status == CarStatus.AVAILABLE)
        .values(status=CarStatus.ASSIGNED)
        .execution_options(synchronize_session="fetch")
    )
    if result.rowcount != 1:
        await db.refresh(car)
        raise ConflictError(
            f"Car {car_id} is not available",
            details={"car_id": car_id, "car_status": car.status.value}
        )

    return car


async def set_car_status(
    db: AsyncSession,
    car_id: Optional[int],
    status: CarStatus,
    from_statuses: Iterable[CarStatus],
    mileage: Optional[int] = None
) -> Optional[Car]:
    """
    Move a company car to status, provided it is still in one of
    from_statuses. No-op for rentals (car_id is None).

    As in reserve_car, the status check is part of the UPDATE itself.

    Raises:
        NotFoundError: car does not exist
        ConflictError: car is no longer in one of from_statuses
    """
    if car_id is None:
        return None

    from_statuses = tuple(from_statuses)
    car = await get_car(db, car_id)

    values = {"status": status}
    if mileage is not None:
        values["current_mileage"] = mileage

    result = await db.execute(
        update(Car)
        .where(Car.id == car_id, Car.status.in_(from_statuses))
        .values(**values)
        .execution_options(synchronize_session="fetch")
    )
    if result.rowcount != 1:
        await db.refresh(car)
        raise ConflictError(
            f"Car {car_id} is currently {car.status.value}; "
            f"expected {' or '.join(s.value for s in from_statuses)}",
            details={"car_id": car_id, "car_status": car.status.value}
        )

    return car


async def release_car(db: AsyncSession, car_id: Optional[int]) -> Optional[Car]:
    """Put a reserved car back into the pool."""
    return await set_car_status(db, car_id, CarStatus.AVAILABLE, from_statuses=(CarStatus.ASSIGNED,))


@asynccontextmanager
async def guard_concurrent_update(db: AsyncSession, resource: str, resource_id: int):
    """
    Roll back and raise ConflictError if a versioned row was changed
    underneath this transaction.

    Usage:
        async with guard_concurrent_update(db, "CarRequest", request.id):
            request.status = ...
            await db.commit()
    """
    try:
        yield
    except StaleDataError:
        await db.rollback()
        logger.warning("Concurrent update lost on %s %s", resource, resource_id)
        raise ConflictError(
            f"{resource} {resource_id} was modified by another request; reload and retry",
            details={"resource": resource, "id": resource_id}
        )
