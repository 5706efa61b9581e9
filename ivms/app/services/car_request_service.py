"""
Car Request Service.

Creates car requests and drives them through their lifecycle. Every
transition goes through validate_transition() with the table built from
settings.car_return_policy, then applies the vehicle side effect, fires
notifications, writes the audit row and commits as one unit.
"""

import logging
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select

from ivms.app.core.config import settings
from ivms.app.core.exceptions import ForbiddenError, NotFoundError, ValidationError
from ivms.app.domain.car_request_workflow import CarRequestEvent, build_car_request_transitions
from ivms.app.domain.workflow import Actor, Transition, validate_transition
from ivms.app.models.car_request import CarRequest
from ivms.app.models.enums import CarRequestStatus, CarStatus, CarType, Department
from ivms.app.models.notification import NotificationType
from ivms.app.models.rental_company import RentalCompany
from ivms.app.services.audit import AuditAction, log_actor_event
from ivms.app.services.notification_service import NotificationService
from ivms.app.services.vehicle_status import (
    get_car, reserve_car, set_car_status, release_car, guard_concurrent_update
)

logger = logging.getLogger(__name__)

ENTITY = "CarRequest"

_EDITABLE_FIELDS = (
    "requested_car_type", "departure_location", "destination",
    "purpose", "departure_datetime", "return_datetime",
)


def _as_utc(value: datetime) -> datetime:
    """Treat naive datetimes as UTC."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def _validate_schedule(departure: datetime, return_at: datetime, check_past: bool = True) -> None:
    departure = _as_utc(departure)
    return_at = _as_utc(return_at)

    if check_past and departure < datetime.now(timezone.utc):
        raise ValidationError(
            "Departure date and time cannot be in the past",
            details={"field": "departure_datetime"}
        )

    if return_at <= departure:
        raise ValidationError(
            "Return date and time must be after departure",
            details={"field": "return_datetime"}
        )


class CarRequestService:

    @staticmethod
    def transitions():
        return build_car_request_transitions(settings.car_return_policy)

    # --- Queries ---

    @staticmethod
    async def get(db: AsyncSession, request_id: int) -> CarRequest:
        result = await db.execute(select(CarRequest).where(CarRequest.id == request_id))
        car_request = result.scalar_one_or_none()
        if not car_request:
            raise NotFoundError("Car request", request_id)
        return car_request

    @staticmethod
    async def get_visible(db: AsyncSession, request_id: int, current_user: dict) -> CarRequest:
        """
        Fetch a request the caller may see.

        OPERATION users only see their own requests; every other
        department sees all of them.
        """
        car_request = await CarRequestService.get(db, request_id)
        actor = Actor.from_claims(current_user)
        if actor.department == Department.OPERATION and car_request.created_by_id != actor.user_id:
            raise ForbiddenError("You can only view your own car requests")
        return car_request

    @staticmethod
    async def list(
        db: AsyncSession,
        current_user: dict,
        status: Optional[CarRequestStatus] = None,
        car_type: Optional[CarType] = None,
        created_by_id: Optional[int] = None,
        from_date: Optional[datetime] = None,
        to_date: Optional[datetime] = None,
        skip: int = 0,
        limit: int = 100
    ) -> List[CarRequest]:
        """
        List car requests, newest first.

        from_date / to_date bound departure_datetime. OPERATION users are
        always limited to their own requests.
        """
        query = select(CarRequest)

        if Actor.from_claims(current_user).department == Department.OPERATION:
            created_by_id = current_user["user_id"]

        if status:
            query = query.where(CarRequest.status == status)
        if car_type:
            query = query.where(CarRequest.requested_car_type == car_type)
        if created_by_id is not None:
            query = query.where(CarRequest.created_by_id == created_by_id)
        if from_date:
            query = query.where(CarRequest.departure_datetime >= from_date)
        if to_date:
            query = query.where(CarRequest.departure_datetime <= to_date)

        query = query.order_by(CarRequest.created_at.desc(), CarRequest.id.desc()).offset(skip).limit(limit)

        result = await db.execute(query)
        return list(result.scalars().all())

    @staticmethod
    async def list_by_status(db: AsyncSession, status: CarRequestStatus) -> List[CarRequest]:
        """Work queues: PENDING for the garage, ASSIGNED for approval. Oldest first."""
        result = await db.execute(
            select(CarRequest)
            .where(CarRequest.status == status)
            .order_by(CarRequest.created_at.asc(), CarRequest.id.asc())
        )
        return list(result.scalars().all())

    # --- Create / edit ---

    @staticmethod
    async def create(db: AsyncSession, data: Dict[str, Any], current_user: dict) -> CarRequest:
        """Create a PENDING request and notify the garage."""
        _validate_schedule(data["departure_datetime"], data["return_datetime"])

        car_request = CarRequest(
            requested_car_type=data["requested_car_type"],
            departure_location=data.get("departure_location"),
            destination=data["destination"],
            purpose=data.get("purpose"),
            departure_datetime=data["departure_datetime"],
            return_datetime=data["return_datetime"],
            status=CarRequestStatus.PENDING,
            created_by_id=current_user["user_id"]
        )
        db.add(car_request)
        await db.flush()

        await NotificationService.notify_department(
            db,
            Department.GARAGE,
            NotificationType.CAR_REQUEST_CREATED,
            {
                "request_id": car_request.id,
                "requested_by": current_user.get("sub"),
                "destination": car_request.destination,
            },
            entity_type=ENTITY,
            entity_id=car_request.id
        )
        await log_actor_event(
            db, current_user, CarRequestEvent.CREATED, ENTITY, car_request.id,
            metadata={"destination": car_request.destination,
                      "requested_car_type": car_request.requested_car_type.value}
        )

        await db.commit()
        await db.refresh(car_request)

        logger.info("Car request %s created by user %s", car_request.id, current_user["user_id"])
        return car_request

    @staticmethod
    async def update(db: AsyncSession, request_id: int, data: Dict[str, Any], current_user: dict) -> CarRequest:
        """Edit trip details. Owner only, and only while PENDING."""
        car_request = await CarRequestService.get(db, request_id)

        if car_request.created_by_id != current_user["user_id"]:
            raise ForbiddenError("You can only edit your own car requests")

        if car_request.status != CarRequestStatus.PENDING:
            raise ValidationError(
                f"Only PENDING requests can be edited, current status: {car_request.status.value}",
                details={"status": car_request.status.value}
            )

        changes = {k: v for k, v in data.items() if k in _EDITABLE_FIELDS and v is not None}
        if not changes:
            return car_request

        if "departure_datetime" in changes or "return_datetime" in changes:
            _validate_schedule(
                changes.get("departure_datetime", car_request.departure_datetime),
                changes.get("return_datetime", car_request.return_datetime),
                check_past="departure_datetime" in changes
            )

        async with guard_concurrent_update(db, ENTITY, request_id):
            for field, value in changes.items():
                setattr(car_request, field, value)

            await log_actor_event(
                db, current_user, AuditAction.CAR_REQUEST_UPDATED, ENTITY, request_id,
                metadata={"fields": sorted(changes)}
            )
            await db.commit()

        await db.refresh(car_request)
        return car_request

    # --- Transitions ---

    @staticmethod
    def _validate(
        car_request: CarRequest,
        to_status: CarRequestStatus,
        current_user: dict,
        reason: Optional[str] = None
    ) -> Transition:
        return validate_transition(
            table=CarRequestService.transitions(),
            from_status=car_request.status,
            to_status=to_status,
            actor=Actor.from_claims(current_user),
            owner_id=car_request.created_by_id,
            reason=reason,
        )

    @staticmethod
    async def _vehicle_label(db: AsyncSession, car_request: CarRequest) -> Optional[str]:
        if car_request.assigned_car_id:
            car = await get_car(db, car_request.assigned_car_id)
            return f"{car.model} ({car.license_plate})"
        if car_request.rental_company_id:
            company = await db.get(RentalCompany, car_request.rental_company_id)
            return f"rental car from {company.name}" if company else "rental car"
        return None

    @staticmethod
    async def _complete(
        db: AsyncSession,
        car_request: CarRequest,
        transition: Transition,
        from_status: CarRequestStatus,
        current_user: dict,
        extra_context: Optional[Dict[str, Any]] = None,
        extra_metadata: Optional[Dict[str, Any]] = None
    ) -> CarRequest:
        """Notify, audit and commit a transition already applied in memory."""
        context = {
            "request_id": car_request.id,
            "destination": car_request.destination,
            "actor": current_user.get("sub"),
            "vehicle": await CarRequestService._vehicle_label(db, car_request),
        }
        context.update(extra_context or {})

        metadata = {"from_status": from_status.value, "to_status": car_request.status.value}
        metadata.update(extra_metadata or {})

        await NotificationService.notify_transition(
            db, transition, car_request.created_by_id, context, ENTITY, car_request.id
        )
        await log_actor_event(db, current_user, transition.event, ENTITY, car_request.id, metadata=metadata)
        await db.commit()

        logger.info(
            "Car request %s: %s -> %s by user %s",
            car_request.id, from_status.value, car_request.status.value, current_user["user_id"]
        )
        return car_request

    @staticmethod
    async def assign(
        db: AsyncSession,
        request_id: int,
        current_user: dict,
        car_id: Optional[int] = None,
        rental_company_id: Optional[int] = None
    ) -> CarRequest:
        """
        Attach a vehicle to a PENDING request (GARAGE).

        Exactly one of car_id / rental_company_id. A company car must be
        AVAILABLE and becomes ASSIGNED; a rental company must be active.
        """
        car_request = await CarRequestService.get(db, request_id)
        from_status = car_request.status
        transition = CarRequestService._validate(car_request, CarRequestStatus.ASSIGNED, current_user)

        if (car_id is None) == (rental_company_id is None):
            raise ValidationError(
                "Provide exactly one of car_id or rental_company_id",
                details={"fields": ["car_id", "rental_company_id"]}
            )

        async with guard_concurrent_update(db, ENTITY, request_id):
            if car_id is not None:
                await reserve_car(db, car_id)
                car_request.assigned_car_id = car_id
                car_request.is_rental = False
            else:
                company = await db.get(RentalCompany, rental_company_id)
                if not company or not company.is_active:
                    raise NotFoundError("Rental company", rental_company_id)
                car_request.rental_company_id = rental_company_id
                car_request.is_rental = True

            car_request.status = CarRequestStatus.ASSIGNED
            car_request.assigned_by_id = current_user["user_id"]

            await CarRequestService._complete(
                db, car_request, transition, from_status, current_user,
                extra_metadata={"car_id": car_id, "rental_company_id": rental_company_id}
            )

        await db.refresh(car_request)
        return car_request

    @staticmethod
    async def approve(db: AsyncSession, request_id: int, current_user: dict) -> CarRequest:
        car_request = await CarRequestService.get(db, request_id)
        from_status = car_request.status
        transition = CarRequestService._validate(car_request, CarRequestStatus.APPROVED, current_user)

        async with guard_concurrent_update(db, ENTITY, request_id):
            car_request.status = CarRequestStatus.APPROVED
            car_request.approved_by_id = current_user["user_id"]
            await CarRequestService._complete(db, car_request, transition, from_status, current_user)

        await db.refresh(car_request)
        return car_request

    @staticmethod
    async def reject(
        db: AsyncSession,
        request_id: int,
        current_user: dict,
        rejection_reason: Optional[str] = None
    ) -> CarRequest:
        """Reject an ASSIGNED request; the reason is mandatory and the car is released."""
        car_request = await CarRequestService.get(db, request_id)
        from_status = car_request.status
        transition = CarRequestService._validate(
            car_request, CarRequestStatus.REJECTED, current_user, reason=rejection_reason
        )

        async with guard_concurrent_update(db, ENTITY, request_id):
            car_request.status = CarRequestStatus.REJECTED
            car_request.rejection_reason = rejection_reason.strip()
            car_request.approved_by_id = current_user["user_id"]
            await release_car(db, car_request.assigned_car_id)

            await CarRequestService._complete(
                db, car_request, transition, from_status, current_user,
                extra_context={"reason": car_request.rejection_reason},
                extra_metadata={"rejection_reason": car_request.rejection_reason}
            )

        await db.refresh(car_request)
        return car_request

    @staticmethod
    async def mark_in_transit(db: AsyncSession, request_id: int, current_user: dict) -> CarRequest:
        car_request = await CarRequestService.get(db, request_id)
        from_status = car_request.status
        transition = CarRequestService._validate(car_request, CarRequestStatus.IN_TRANSIT, current_user)

        async with guard_concurrent_update(db, ENTITY, request_id):
            car_request.status = CarRequestStatus.IN_TRANSIT
            await set_car_status(
                db, car_request.assigned_car_id, CarStatus.IN_TRANSIT, from_statuses=(CarStatus.ASSIGNED,)
            )
            await CarRequestService._complete(db, car_request, transition, from_status, current_user)

        await db.refresh(car_request)
        return car_request

    @staticmethod
    async def mark_returned(
        db: AsyncSession,
        request_id: int,
        current_user: dict,
        current_mileage: Optional[int] = None,
        return_condition_notes: Optional[str] = None
    ) -> CarRequest:
        """Close the trip; a company car goes back to AVAILABLE with its new mileage."""
        car_request = await CarRequestService.get(db, request_id)
        from_status = car_request.status
        transition = CarRequestService._validate(car_request, CarRequestStatus.RETURNED, current_user)

        async with guard_concurrent_update(db, ENTITY, request_id):
            if current_mileage is not None and car_request.assigned_car_id:
                car = await get_car(db, car_request.assigned_car_id)
                if current_mileage < car.current_mileage:
                    raise ValidationError(
                        f"Mileage cannot go down (currently {car.current_mileage})",
                        details={"field": "current_mileage"}
                    )

            car_request.status = CarRequestStatus.RETURNED
            car_request.return_condition_notes = return_condition_notes
            await set_car_status(
                db, car_request.assigned_car_id, CarStatus.AVAILABLE,
                from_statuses=(CarStatus.IN_TRANSIT,), mileage=current_mileage
            )

            await CarRequestService._complete(
                db, car_request, transition, from_status, current_user,
                extra_metadata={"current_mileage": current_mileage}
            )

        await db.refresh(car_request)
        return car_request

    @staticmethod
    async def cancel(db: AsyncSession, request_id: int, current_user: dict) -> CarRequest:
        """Withdraw a PENDING or ASSIGNED request (requester only); frees any held car."""
        car_request = await CarRequestService.get(db, request_id)
        from_status = car_request.status
        transition = CarRequestService._validate(car_request, CarRequestStatus.CANCELLED, current_user)

        async with guard_concurrent_update(db, ENTITY, request_id):
            car_request.status = CarRequestStatus.CANCELLED
            car_request.cancelled_by_id = current_user["user_id"]
            await release_car(db, car_request.assigned_car_id)
            await CarRequestService._complete(db, car_request, transition, from_status, current_user)

        await db.refresh(car_request)
        return car_request
