"""
Car Inventory Request Service.

Fleet changes that need sign-off: GARAGE asks for a car to be added or
retired, an admin approves (and the change is applied in the same
transaction) or rejects with a reason.
"""

import logging
from typing import Any, Dict, List, Optional

from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select

from ivms.app.core.exceptions import ConflictError, NotFoundError, ValidationError
from ivms.app.domain.car_inventory_workflow import CAR_INVENTORY_TRANSITIONS, CarInventoryEvent
from ivms.app.domain.workflow import Actor, Transition, validate_transition
from ivms.app.models.car import Car
from ivms.app.models.car_inventory_request import CarInventoryRequest
from ivms.app.models.enums import (
    CarInventoryRequestStatus, CarInventoryRequestType, CarStatus, CarType, Department
)
from ivms.app.models.notification import NotificationType
from ivms.app.services.audit import log_actor_event
from ivms.app.services.car_service import check_unique, ensure_deletable
from ivms.app.services.notification_service import NotificationService
from ivms.app.services.vehicle_status import get_car, set_car_status, guard_concurrent_update

logger = logging.getLogger(__name__)

ENTITY = "CarInventoryRequest"


def _describe(car_data: Optional[Dict[str, Any]], car: Optional[Car]) -> Optional[str]:
    if car is not None:
        return f"{car.model} ({car.license_plate})"
    if car_data:
        return f"{car_data.get('model')} ({car_data.get('license_plate')})"
    return None


class CarInventoryRequestService:

    @staticmethod
    async def get(db: AsyncSession, request_id: int) -> CarInventoryRequest:
        result = await db.execute(select(CarInventoryRequest).where(CarInventoryRequest.id == request_id))
        inventory_request = result.scalar_one_or_none()
        if not inventory_request:
            raise NotFoundError("Car inventory request", request_id)
        return inventory_request

    @staticmethod
    async def list(
        db: AsyncSession,
        status: Optional[CarInventoryRequestStatus] = None,
        type: Optional[CarInventoryRequestType] = None,
        skip: int = 0,
        limit: int = 100
    ) -> List[CarInventoryRequest]:
        query = select(CarInventoryRequest)
        if status:
            query = query.where(CarInventoryRequest.status == status)
        if type:
            query = query.where(CarInventoryRequest.type == type)
        query = query.order_by(CarInventoryRequest.created_at.desc(), CarInventoryRequest.id.desc())
        result = await db.execute(query.offset(skip).limit(limit))
        return list(result.scalars().all())

    @staticmethod
    async def _check_no_pending_add(db: AsyncSession, license_plate: str, vin: Optional[str]) -> None:
        result = await db.execute(
            select(CarInventoryRequest).where(
                CarInventoryRequest.type == CarInventoryRequestType.ADD,
                CarInventoryRequest.status == CarInventoryRequestStatus.PENDING
            )
        )
        for pending in result.scalars().all():
            data = pending.car_data or {}
            if data.get("license_plate") == license_plate:
                raise ConflictError(
                    f"A pending add request already exists for license plate {license_plate}",
                    details={"field": "license_plate", "car_inventory_request_id": pending.id}
                )
            if vin and data.get("vin") == vin:
                raise ConflictError(
                    f"A pending add request already exists for VIN {vin}",
                    details={"field": "vin", "car_inventory_request_id": pending.id}
                )

    @staticmethod
    async def _created(
        db: AsyncSession,
        inventory_request: CarInventoryRequest,
        current_user: dict,
        car: Optional[Car] = None
    ) -> CarInventoryRequest:
        await NotificationService.notify_department(
            db,
            Department.ADMIN,
            NotificationType.CAR_INVENTORY_REQUEST_CREATED,
            {
                "request_id": inventory_request.id,
                "requested_by": current_user.get("sub"),
                "type": inventory_request.type.value,
                "vehicle": _describe(inventory_request.car_data, car),
            },
            entity_type=ENTITY,
            entity_id=inventory_request.id
        )
        await log_actor_event(
            db, current_user, CarInventoryEvent.CREATED, ENTITY, inventory_request.id,
            metadata={"type": inventory_request.type.value, "car_id": inventory_request.car_id}
        )
        await db.commit()
        await db.refresh(inventory_request)

        logger.info(
            "Car inventory request %s (%s) raised by user %s",
            inventory_request.id, inventory_request.type.value, current_user["user_id"]
        )
        return inventory_request

    @staticmethod
    async def create_add(db: AsyncSession, car_data: Dict[str, Any], current_user: dict) -> CarInventoryRequest:
        """
        Ask for a new car to be registered.

        Raises:
            ConflictError: plate or VIN already belongs to a car or to another pending add request
        """
        license_plate = car_data["license_plate"]
        vin = car_data.get("vin")
        await check_unique(db, license_plate, vin)
        await CarInventoryRequestService._check_no_pending_add(db, license_plate, vin)

        inventory_request = CarInventoryRequest(
            type=CarInventoryRequestType.ADD,
            car_data=car_data,
            status=CarInventoryRequestStatus.PENDING,
            created_by_id=current_user["user_id"]
        )
        db.add(inventory_request)
        await db.flush()

        return await CarInventoryRequestService._created(db, inventory_request, current_user)

    @staticmethod
    async def create_delete(db: AsyncSession, car_id: int, current_user: dict) -> CarInventoryRequest:
        """
        Ask for an existing car to be retired.

        Raises:
            NotFoundError: car does not exist
            ValidationError: car is already deleted
            ConflictError: a delete request for this car is already pending
        """
        car = await get_car(db, car_id)
        if car.status == CarStatus.DELETED:
            raise ValidationError("Car is already deleted", details={"car_id": car_id})

        existing = await db.execute(
            select(CarInventoryRequest.id).where(
                CarInventoryRequest.car_id == car_id,
                CarInventoryRequest.type == CarInventoryRequestType.DELETE,
                CarInventoryRequest.status == CarInventoryRequestStatus.PENDING
            )
        )
        existing_id = existing.scalars().first()
        if existing_id is not None:
            raise ConflictError(
                f"A pending delete request already exists for car {car_id}",
                details={"car_id": car_id, "car_inventory_request_id": existing_id}
            )

        inventory_request = CarInventoryRequest(
            type=CarInventoryRequestType.DELETE,
            car_id=car_id,
            status=CarInventoryRequestStatus.PENDING,
            created_by_id=current_user["user_id"]
        )
        db.add(inventory_request)
        await db.flush()

        return await CarInventoryRequestService._created(db, inventory_request, current_user, car)

    @staticmethod
    async def create(
        db: AsyncSession,
        type: CarInventoryRequestType,
        current_user: dict,
        car_id: Optional[int] = None,
        car_data: Optional[Dict[str, Any]] = None
    ) -> CarInventoryRequest:
        if CarInventoryRequestType(type) == CarInventoryRequestType.ADD:
            if not car_data:
                raise ValidationError("car is required for ADD requests", details={"field": "car"})
            return await CarInventoryRequestService.create_add(db, car_data, current_user)

        if car_id is None:
            raise ValidationError("car_id is required for DELETE requests", details={"field": "car_id"})
        return await CarInventoryRequestService.create_delete(db, car_id, current_user)

    @staticmethod
    def _validate(
        inventory_request: CarInventoryRequest,
        to_status: CarInventoryRequestStatus,
        current_user: dict,
        reason: Optional[str] = None
    ) -> Transition:
        return validate_transition(
            table=CAR_INVENTORY_TRANSITIONS,
            from_status=inventory_request.status,
            to_status=to_status,
            actor=Actor.from_claims(current_user),
            owner_id=inventory_request.created_by_id,
            reason=reason,
        )

    @staticmethod
    async def _complete(
        db: AsyncSession,
        inventory_request: CarInventoryRequest,
        transition: Transition,
        current_user: dict,
        car: Optional[Car] = None,
        extra_context: Optional[Dict[str, Any]] = None
    ) -> None:
        context = {
            "request_id": inventory_request.id,
            "actor": current_user.get("sub"),
            "type": inventory_request.type.value,
            "vehicle": _describe(inventory_request.car_data, car),
        }
        context.update(extra_context or {})

        await NotificationService.notify_transition(
            db, transition, inventory_request.created_by_id, context, ENTITY, inventory_request.id
        )
        await log_actor_event(
            db, current_user, transition.event, ENTITY, inventory_request.id,
            metadata={"type": inventory_request.type.value, "to_status": inventory_request.status.value,
                      "car_id": inventory_request.car_id}
        )
        await db.commit()

        logger.info(
            "Car inventory request %s: %s by user %s",
            inventory_request.id, inventory_request.status.value, current_user["user_id"]
        )

    @staticmethod
    async def approve(db: AsyncSession, request_id: int, current_user: dict) -> CarInventoryRequest:
        """
        Approve and apply the change.

        ADD registers the car (uniqueness is checked again). DELETE
        soft-deletes the car under the same rules as a direct delete.
        """
        inventory_request = await CarInventoryRequestService.get(db, request_id)
        transition = CarInventoryRequestService._validate(
            inventory_request, CarInventoryRequestStatus.APPROVED, current_user
        )

        async with guard_concurrent_update(db, ENTITY, request_id):
            if inventory_request.type == CarInventoryRequestType.ADD:
                data = dict(inventory_request.car_data)
                await check_unique(db, data.get("license_plate"), data.get("vin"))
                data["type"] = CarType(data["type"])
                car = Car(**data, status=CarStatus.AVAILABLE)
                db.add(car)
                await db.flush()
                inventory_request.car_id = car.id
            else:
                car = await get_car(db, inventory_request.car_id)
                await ensure_deletable(db, car)
                await set_car_status(db, car.id, CarStatus.DELETED, from_statuses=(CarStatus.AVAILABLE,))

            inventory_request.status = CarInventoryRequestStatus.APPROVED
            inventory_request.approved_by_id = current_user["user_id"]
            await CarInventoryRequestService._complete(db, inventory_request, transition, current_user, car)

        await db.refresh(inventory_request)
        return inventory_request

    @staticmethod
    async def reject(
        db: AsyncSession,
        request_id: int,
        current_user: dict,
        rejection_reason: Optional[str] = None
    ) -> CarInventoryRequest:
        inventory_request = await CarInventoryRequestService.get(db, request_id)
        transition = CarInventoryRequestService._validate(
            inventory_request, CarInventoryRequestStatus.REJECTED, current_user, reason=rejection_reason
        )

        car = None
        if inventory_request.car_id is not None:
            car = await get_car(db, inventory_request.car_id)

        async with guard_concurrent_update(db, ENTITY, request_id):
            inventory_request.status = CarInventoryRequestStatus.REJECTED
            inventory_request.rejection_reason = rejection_reason.strip()
            inventory_request.approved_by_id = current_user["user_id"]
            await CarInventoryRequestService._complete(
                db, inventory_request, transition, current_user, car,
                extra_context={"reason": inventory_request.rejection_reason}
            )

        await db.refresh(inventory_request)
        return inventory_request
