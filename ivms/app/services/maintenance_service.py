"""
Maintenance Request Service.

Second workflow on the same transition guard: a car problem is reported,
triaged by MAINTENANCE, approved by an admin, then worked and closed.
"""

import logging
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select

from ivms.app.core.exceptions import ConflictError, NotFoundError, ValidationError
from ivms.app.domain.maintenance_workflow import MAINTENANCE_TRANSITIONS, OPEN_STATUSES, MaintenanceEvent
from ivms.app.domain.workflow import Actor, Transition, validate_transition
from ivms.app.models.enums import CarStatus, Department, MaintenanceStatus, MaintenanceType
from ivms.app.models.maintenance_request import MaintenanceRequest
from ivms.app.models.notification import NotificationType
from ivms.app.services.audit import log_actor_event
from ivms.app.services.notification_service import NotificationService
from ivms.app.services.vehicle_status import get_car, set_car_status, guard_concurrent_update

logger = logging.getLogger(__name__)

ENTITY = "MaintenanceRequest"


class MaintenanceService:

    @staticmethod
    async def get(db: AsyncSession, request_id: int) -> MaintenanceRequest:
        result = await db.execute(select(MaintenanceRequest).where(MaintenanceRequest.id == request_id))
        maintenance_request = result.scalar_one_or_none()
        if not maintenance_request:
            raise NotFoundError("Maintenance request", request_id)
        return maintenance_request

    @staticmethod
    async def list(
        db: AsyncSession,
        status: Optional[MaintenanceStatus] = None,
        car_id: Optional[int] = None,
        skip: int = 0,
        limit: int = 100
    ) -> List[MaintenanceRequest]:
        query = select(MaintenanceRequest)
        if status:
            query = query.where(MaintenanceRequest.status == status)
        if car_id is not None:
            query = query.where(MaintenanceRequest.car_id == car_id)
        query = query.order_by(MaintenanceRequest.created_at.desc(), MaintenanceRequest.id.desc())
        result = await db.execute(query.offset(skip).limit(limit))
        return list(result.scalars().all())

    @staticmethod
    async def create(db: AsyncSession, car_id: int, description: str, current_user: dict) -> MaintenanceRequest:
        """
        Report a problem with a car.

        Raises:
            NotFoundError: car does not exist
            ConflictError: car is deleted or already has an open maintenance request
        """
        car = await get_car(db, car_id)
        if car.status == CarStatus.DELETED:
            raise ConflictError(
                f"Car {car_id} has been deleted",
                details={"car_id": car_id}
            )

        open_result = await db.execute(
            select(MaintenanceRequest.id).where(
                MaintenanceRequest.car_id == car_id,
                MaintenanceRequest.status.in_(OPEN_STATUSES)
            )
        )
        open_id = open_result.scalars().first()
        if open_id is not None:
            raise ConflictError(
                f"Car {car_id} already has an open maintenance request",
                details={"car_id": car_id, "maintenance_request_id": open_id}
            )

        maintenance_request = MaintenanceRequest(
            car_id=car_id,
            description=description,
            status=MaintenanceStatus.PENDING,
            created_by_id=current_user["user_id"]
        )
        db.add(maintenance_request)
        await db.flush()

        await NotificationService.notify_department(
            db,
            Department.MAINTENANCE,
            NotificationType.MAINTENANCE_REQUEST_CREATED,
            {"request_id": maintenance_request.id, "description": description},
            entity_type=ENTITY,
            entity_id=maintenance_request.id
        )
        await log_actor_event(
            db, current_user, MaintenanceEvent.CREATED, ENTITY, maintenance_request.id,
            metadata={"car_id": car_id}
        )
        await db.commit()
        await db.refresh(maintenance_request)

        logger.info("Maintenance request %s created for car %s", maintenance_request.id, car_id)
        return maintenance_request

    @staticmethod
    def _validate(
        maintenance_request: MaintenanceRequest,
        to_status: MaintenanceStatus,
        current_user: dict,
        reason: Optional[str] = None
    ) -> Transition:
        return validate_transition(
            table=MAINTENANCE_TRANSITIONS,
            from_status=maintenance_request.status,
            to_status=to_status,
            actor=Actor.from_claims(current_user),
            owner_id=maintenance_request.created_by_id,
            reason=reason,
        )

    @staticmethod
    async def _complete(
        db: AsyncSession,
        maintenance_request: MaintenanceRequest,
        transition: Transition,
        from_status: MaintenanceStatus,
        current_user: dict,
        extra_context: Optional[Dict[str, Any]] = None
    ) -> None:
        car = await get_car(db, maintenance_request.car_id)
        context = {
            "request_id": maintenance_request.id,
            "actor": current_user.get("sub"),
            "vehicle": f"{car.model} ({car.license_plate})",
            "maintenance_type": maintenance_request.maintenance_type.value
            if maintenance_request.maintenance_type else None,
        }
        context.update(extra_context or {})

        await NotificationService.notify_transition(
            db, transition, maintenance_request.created_by_id, context, ENTITY, maintenance_request.id
        )
        await log_actor_event(
            db, current_user, transition.event, ENTITY, maintenance_request.id,
            metadata={"from_status": from_status.value, "to_status": maintenance_request.status.value,
                      "car_id": maintenance_request.car_id}
        )
        await db.commit()

        logger.info(
            "Maintenance request %s: %s -> %s by user %s",
            maintenance_request.id, from_status.value, maintenance_request.status.value,
            current_user["user_id"]
        )

    @staticmethod
    async def triage(
        db: AsyncSession,
        request_id: int,
        current_user: dict,
        maintenance_type: MaintenanceType,
        external_vendor: Optional[str] = None,
        external_cost: Optional[float] = None
    ) -> MaintenanceRequest:
        """Classify the work as INTERNAL or EXTERNAL and send it for approval."""
        maintenance_request = await MaintenanceService.get(db, request_id)
        from_status = maintenance_request.status
        transition = MaintenanceService._validate(
            maintenance_request, MaintenanceStatus.PENDING_APPROVAL, current_user
        )

        maintenance_type = MaintenanceType(maintenance_type)
        if maintenance_type == MaintenanceType.EXTERNAL and not (external_vendor and external_vendor.strip()):
            raise ValidationError(
                "External maintenance requires a vendor",
                details={"field": "external_vendor"}
            )

        async with guard_concurrent_update(db, ENTITY, request_id):
            maintenance_request.maintenance_type = maintenance_type
            if maintenance_type == MaintenanceType.EXTERNAL:
                maintenance_request.external_vendor = external_vendor.strip()
                maintenance_request.external_cost = external_cost
            maintenance_request.status = MaintenanceStatus.PENDING_APPROVAL
            maintenance_request.triaged_by_id = current_user["user_id"]
            await MaintenanceService._complete(db, maintenance_request, transition, from_status, current_user)

        await db.refresh(maintenance_request)
        return maintenance_request

    @staticmethod
    async def approve(db: AsyncSession, request_id: int, current_user: dict) -> MaintenanceRequest:
        maintenance_request = await MaintenanceService.get(db, request_id)
        from_status = maintenance_request.status
        transition = MaintenanceService._validate(maintenance_request, MaintenanceStatus.APPROVED, current_user)

        async with guard_concurrent_update(db, ENTITY, request_id):
            maintenance_request.status = MaintenanceStatus.APPROVED
            maintenance_request.approved_by_id = current_user["user_id"]
            await MaintenanceService._complete(db, maintenance_request, transition, from_status, current_user)

        await db.refresh(maintenance_request)
        return maintenance_request

    @staticmethod
    async def reject(
        db: AsyncSession,
        request_id: int,
        current_user: dict,
        rejection_reason: Optional[str] = None
    ) -> MaintenanceRequest:
        maintenance_request = await MaintenanceService.get(db, request_id)
        from_status = maintenance_request.status
        transition = MaintenanceService._validate(
            maintenance_request, MaintenanceStatus.REJECTED, current_user, reason=rejection_reason
        )

        async with guard_concurrent_update(db, ENTITY, request_id):
            maintenance_request.status = MaintenanceStatus.REJECTED
            maintenance_request.rejection_reason = rejection_reason.strip()
            maintenance_request.approved_by_id = current_user["user_id"]
            await MaintenanceService._complete(
                db, maintenance_request, transition, from_status, current_user,
                extra_context={"reason": maintenance_request.rejection_reason}
            )

        await db.refresh(maintenance_request)
        return maintenance_request

    @staticmethod
    async def start(db: AsyncSession, request_id: int, current_user: dict) -> MaintenanceRequest:
        """Begin work; the car is taken out of service. It must be AVAILABLE."""
        maintenance_request = await MaintenanceService.get(db, request_id)
        from_status = maintenance_request.status
        transition = MaintenanceService._validate(maintenance_request, MaintenanceStatus.IN_PROGRESS, current_user)

        async with guard_concurrent_update(db, ENTITY, request_id):
            # ConflictError if the car is out on a trip
            await set_car_status(
                db, maintenance_request.car_id, CarStatus.UNDER_MAINTENANCE,
                from_statuses=(CarStatus.AVAILABLE,)
            )
            maintenance_request.status = MaintenanceStatus.IN_PROGRESS
            maintenance_request.started_at = datetime.now(timezone.utc)
            await MaintenanceService._complete(db, maintenance_request, transition, from_status, current_user)

        await db.refresh(maintenance_request)
        return maintenance_request

    @staticmethod
    async def complete(
        db: AsyncSession,
        request_id: int,
        current_user: dict,
        completion_notes: Optional[str] = None
    ) -> MaintenanceRequest:
        """Finish work; the car returns to AVAILABLE and the garage is told."""
        maintenance_request = await MaintenanceService.get(db, request_id)
        from_status = maintenance_request.status
        transition = MaintenanceService._validate(maintenance_request, MaintenanceStatus.COMPLETED, current_user)

        async with guard_concurrent_update(db, ENTITY, request_id):
            maintenance_request.status = MaintenanceStatus.COMPLETED
            maintenance_request.completion_notes = completion_notes
            maintenance_request.completed_at = datetime.now(timezone.utc)
            await set_car_status(
                db, maintenance_request.car_id, CarStatus.AVAILABLE,
                from_statuses=(CarStatus.UNDER_MAINTENANCE,)
            )
            await MaintenanceService._complete(db, maintenance_request, transition, from_status, current_user)

        await db.refresh(maintenance_request)
        return maintenance_request
