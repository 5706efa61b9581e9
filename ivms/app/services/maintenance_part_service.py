"""
Maintenance part usage service.

Records parts used on a maintenance request. Parts can only be added to
or removed from work that is IN_PROGRESS; quantity-tracked stock moves
with each assignment and removal.
"""

import logging
from typing import List, Optional

from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select

from ivms.app.core.config import settings
from ivms.app.core.exceptions import NotFoundError, ValidationError
from ivms.app.models.enums import Department, MaintenanceStatus, TrackingMode
from ivms.app.models.maintenance_request import MaintenanceRequest
from ivms.app.models.notification import NotificationType
from ivms.app.models.part import MaintenancePartUsage
from ivms.app.services import part_service
from ivms.app.services.audit import AuditAction, log_actor_event
from ivms.app.services.maintenance_service import MaintenanceService
from ivms.app.services.notification_service import NotificationService

logger = logging.getLogger(__name__)


def _require_in_progress(maintenance_request: MaintenanceRequest) -> None:
    if maintenance_request.status != MaintenanceStatus.IN_PROGRESS:
        raise ValidationError(
            "Parts can only be changed on maintenance that is in progress",
            details={
                "maintenance_request_id": maintenance_request.id,
                "status": maintenance_request.status.value,
            }
        )


async def assign_part(
    db: AsyncSession,
    maintenance_id: int,
    part_id: int,
    current_user: dict,
    quantity: Optional[int] = None
) -> MaintenancePartUsage:
    """
    Use a part on a maintenance request.

    Raises:
        NotFoundError: maintenance request or part does not exist
        ValidationError: work not in progress, serial part already used or
            asked for more than once, or not enough stock
    """
    maintenance_request = await MaintenanceService.get(db, maintenance_id)
    _require_in_progress(maintenance_request)

    part = await part_service.get_part(db, part_id)
    quantity = quantity or 1

    if part.tracking_mode == TrackingMode.SERIAL_NUMBER:
        if quantity != 1:
            raise ValidationError(
                "Serial-number-tracked parts are assigned one at a time", details={"field": "quantity"}
            )
        used = await db.execute(select(MaintenancePartUsage.id).where(MaintenancePartUsage.part_id == part_id))
        if used.first():
            raise ValidationError(
                "This serial-number-tracked part is already assigned to a maintenance request",
                details={"part_id": part_id}
            )
    else:
        await part_service.adjust_quantity(db, part, -quantity)

    usage = MaintenancePartUsage(
        maintenance_request_id=maintenance_id,
        part_id=part_id,
        quantity_used=quantity,
        assigned_by_id=current_user["user_id"]
    )
    db.add(usage)
    await db.flush()

    if part.tracking_mode == TrackingMode.QUANTITY and part.quantity <= settings.low_stock_threshold:
        await NotificationService.notify_department(
            db,
            Department.GARAGE,
            NotificationType.PART_LOW_STOCK,
            {"part_name": part.name, "quantity": part.quantity},
            entity_type="Part",
            entity_id=part.id
        )

    await log_actor_event(
        db, current_user, AuditAction.PART_ASSIGNED, "MaintenanceRequest", maintenance_id,
        metadata={"part_id": part_id, "quantity": quantity}
    )
    await db.commit()
    await db.refresh(usage)

    logger.info("Part %s x%s assigned to maintenance request %s", part_id, quantity, maintenance_id)
    return usage


async def list_for_maintenance(db: AsyncSession, maintenance_id: int) -> List[MaintenancePartUsage]:
    await MaintenanceService.get(db, maintenance_id)
    result = await db.execute(
        select(MaintenancePartUsage)
        .where(MaintenancePartUsage.maintenance_request_id == maintenance_id)
        .order_by(MaintenancePartUsage.assigned_at.desc(), MaintenancePartUsage.id.desc())
    )
    return list(result.scalars().all())


async def usage_history(db: AsyncSession, part_id: int) -> List[MaintenancePartUsage]:
    await part_service.get_part(db, part_id)
    result = await db.execute(
        select(MaintenancePartUsage)
        .where(MaintenancePartUsage.part_id == part_id)
        .order_by(MaintenancePartUsage.assigned_at.desc(), MaintenancePartUsage.id.desc())
    )
    return list(result.scalars().all())


async def remove_assignment(db: AsyncSession, usage_id: int, current_user: dict) -> None:
    """Undo an assignment; quantity-tracked stock is put back."""
    result = await db.execute(select(MaintenancePartUsage).where(MaintenancePartUsage.id == usage_id))
    usage = result.scalar_one_or_none()
    if not usage:
        raise NotFoundError("Part usage", usage_id)

    maintenance_request = await MaintenanceService.get(db, usage.maintenance_request_id)
    _require_in_progress(maintenance_request)

    part = await part_service.get_part(db, usage.part_id)
    if part.tracking_mode == TrackingMode.QUANTITY:
        await part_service.adjust_quantity(db, part, usage.quantity_used)

    await db.delete(usage)
    await log_actor_event(
        db, current_user, AuditAction.PART_UNASSIGNED, "MaintenanceRequest", maintenance_request.id,
        metadata={"part_id": part.id, "quantity": usage.quantity_used}
    )
    await db.commit()
