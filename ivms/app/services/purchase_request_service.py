"""
Purchase Request Service.

GARAGE raises requests to buy parts; an admin approves or rejects them.
"""

import logging
from datetime import datetime
from typing import Any, Dict, List, Optional

from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select

from ivms.app.core.exceptions import NotFoundError
from ivms.app.domain.purchase_request_workflow import PURCHASE_REQUEST_TRANSITIONS, PurchaseRequestEvent
from ivms.app.domain.workflow import Actor, Transition, validate_transition
from ivms.app.models.enums import Department, PurchaseRequestStatus
from ivms.app.models.notification import NotificationType
from ivms.app.models.purchase_request import PurchaseRequest
from ivms.app.services.audit import log_actor_event
from ivms.app.services.notification_service import NotificationService
from ivms.app.services.vehicle_status import guard_concurrent_update

logger = logging.getLogger(__name__)

ENTITY = "PurchaseRequest"


class PurchaseRequestService:

    @staticmethod
    async def get(db: AsyncSession, request_id: int) -> PurchaseRequest:
        result = await db.execute(select(PurchaseRequest).where(PurchaseRequest.id == request_id))
        purchase_request = result.scalar_one_or_none()
        if not purchase_request:
            raise NotFoundError("Purchase request", request_id)
        return purchase_request

    @staticmethod
    async def list(
        db: AsyncSession,
        status: Optional[PurchaseRequestStatus] = None,
        from_date: Optional[datetime] = None,
        to_date: Optional[datetime] = None,
        skip: int = 0,
        limit: int = 100
    ) -> List[PurchaseRequest]:
        """Newest first, optionally bounded by creation date."""
        query = select(PurchaseRequest)
        if status:
            query = query.where(PurchaseRequest.status == status)
        if from_date:
            query = query.where(PurchaseRequest.created_at >= from_date)
        if to_date:
            query = query.where(PurchaseRequest.created_at <= to_date)
        query = query.order_by(PurchaseRequest.created_at.desc(), PurchaseRequest.id.desc())
        result = await db.execute(query.offset(skip).limit(limit))
        return list(result.scalars().all())

    @staticmethod
    async def list_pending(db: AsyncSession) -> List[PurchaseRequest]:
        """Approval queue, oldest first."""
        result = await db.execute(
            select(PurchaseRequest)
            .where(PurchaseRequest.status == PurchaseRequestStatus.PENDING)
            .order_by(PurchaseRequest.created_at.asc(), PurchaseRequest.id.asc())
        )
        return list(result.scalars().all())

    @staticmethod
    async def create(db: AsyncSession, data: Dict[str, Any], current_user: dict) -> PurchaseRequest:
        purchase_request = PurchaseRequest(
            part_name=data["part_name"],
            quantity=data["quantity"],
            estimated_cost=data["estimated_cost"],
            vendor=data["vendor"],
            status=PurchaseRequestStatus.PENDING,
            created_by_id=current_user["user_id"]
        )
        db.add(purchase_request)
        await db.flush()

        await NotificationService.notify_department(
            db,
            Department.ADMIN,
            NotificationType.PURCHASE_REQUEST_CREATED,
            {
                "request_id": purchase_request.id,
                "requested_by": current_user.get("sub"),
                "part_name": purchase_request.part_name,
                "quantity": purchase_request.quantity,
                "vendor": purchase_request.vendor,
            },
            entity_type=ENTITY,
            entity_id=purchase_request.id
        )
        await log_actor_event(
            db, current_user, PurchaseRequestEvent.CREATED, ENTITY, purchase_request.id,
            metadata={"part_name": purchase_request.part_name, "estimated_cost": purchase_request.estimated_cost}
        )
        await db.commit()
        await db.refresh(purchase_request)

        logger.info("Purchase request %s raised by user %s", purchase_request.id, current_user["user_id"])
        return purchase_request

    @staticmethod
    async def _transition(
        db: AsyncSession,
        request_id: int,
        to_status: PurchaseRequestStatus,
        current_user: dict,
        reason: Optional[str] = None
    ) -> PurchaseRequest:
        purchase_request = await PurchaseRequestService.get(db, request_id)
        transition: Transition = validate_transition(
            table=PURCHASE_REQUEST_TRANSITIONS,
            from_status=purchase_request.status,
            to_status=to_status,
            actor=Actor.from_claims(current_user),
            owner_id=purchase_request.created_by_id,
            reason=reason,
        )

        async with guard_concurrent_update(db, ENTITY, request_id):
            purchase_request.status = to_status
            purchase_request.approved_by_id = current_user["user_id"]
            if reason is not None:
                purchase_request.rejection_reason = reason.strip()

            await NotificationService.notify_transition(
                db, transition, purchase_request.created_by_id,
                {
                    "request_id": purchase_request.id,
                    "actor": current_user.get("sub"),
                    "part_name": purchase_request.part_name,
                    "reason": purchase_request.rejection_reason,
                },
                ENTITY, purchase_request.id
            )
            await log_actor_event(
                db, current_user, transition.event, ENTITY, purchase_request.id,
                metadata={"to_status": to_status.value}
            )
            await db.commit()

        await db.refresh(purchase_request)
        logger.info(
            "Purchase request %s: %s by user %s", purchase_request.id, to_status.value, current_user["user_id"]
        )
        return purchase_request

    @staticmethod
    async def approve(db: AsyncSession, request_id: int, current_user: dict) -> PurchaseRequest:
        return await PurchaseRequestService._transition(
            db, request_id, PurchaseRequestStatus.APPROVED, current_user
        )

    @staticmethod
    async def reject(
        db: AsyncSession,
        request_id: int,
        current_user: dict,
        rejection_reason: Optional[str] = None
    ) -> PurchaseRequest:
        """A reason is required."""
        return await PurchaseRequestService._transition(
            db, request_id, PurchaseRequestStatus.REJECTED, current_user, reason=rejection_reason
        )
