"""
Parts inventory service.

CRUD for spare parts plus stock adjustment. Parts are soft-deleted and
deleted parts behave as if they did not exist.
"""

import logging
from typing import Any, Dict, List, Optional

from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, update, or_, func

from ivms.app.core.exceptions import ConflictError, NotFoundError, ValidationError
from ivms.app.models.enums import CarType, TrackingMode
from ivms.app.models.part import Part
from ivms.app.services.audit import AuditAction, log_actor_event

logger = logging.getLogger(__name__)


async def get_part(db: AsyncSession, part_id: int) -> Part:
    result = await db.execute(select(Part).where(Part.id == part_id, Part.is_deleted == False))
    part = result.scalar_one_or_none()
    if not part:
        raise NotFoundError("Part", part_id)
    return part


async def list_parts(
    db: AsyncSession,
    search: Optional[str] = None,
    car_type: Optional[CarType] = None,
    car_model: Optional[str] = None,
    tracking_mode: Optional[TrackingMode] = None
) -> List[Part]:
    """List parts by name. search matches name or car model, case-insensitively."""
    query = select(Part).where(Part.is_deleted == False)

    if search:
        pattern = f"%{search.lower()}%"
        query = query.where(or_(
            func.lower(Part.name).like(pattern),
            func.lower(Part.car_model).like(pattern),
        ))
    if car_type:
        query = query.where(Part.car_type == car_type)
    if car_model:
        query = query.where(func.lower(Part.car_model).like(f"%{car_model.lower()}%"))
    if tracking_mode:
        query = query.where(Part.tracking_mode == tracking_mode)

    result = await db.execute(query.order_by(Part.name.asc(), Part.id.asc()))
    return list(result.scalars().all())


async def list_low_stock(db: AsyncSession, threshold: int) -> List[Part]:
    """QUANTITY parts at or below threshold, scarcest first."""
    result = await db.execute(
        select(Part)
        .where(
            Part.is_deleted == False,
            Part.tracking_mode == TrackingMode.QUANTITY,
            Part.quantity <= threshold
        )
        .order_by(Part.quantity.asc(), Part.id.asc())
    )
    return list(result.scalars().all())


async def create_part(db: AsyncSession, data: Dict[str, Any], current_user: dict) -> Part:
    """
    Add a part to stock.

    QUANTITY parts need a quantity and no serial number. SERIAL_NUMBER
    parts need a unique serial number and always count as one item.

    Raises:
        ValidationError: quantity/serial number do not fit the tracking mode
        ConflictError: serial number already in use
    """
    tracking_mode = TrackingMode(data["tracking_mode"])
    quantity = data.get("quantity")
    serial_number = data.get("serial_number")

    if tracking_mode == TrackingMode.QUANTITY:
        if quantity is None:
            raise ValidationError(
                "Quantity is required for quantity-tracked parts", details={"field": "quantity"}
            )
        if serial_number:
            raise ValidationError(
                "Quantity-tracked parts do not carry a serial number", details={"field": "serial_number"}
            )
    else:
        if not serial_number:
            raise ValidationError(
                "Serial number is required for serial-number-tracked parts", details={"field": "serial_number"}
            )
        if quantity is not None and quantity != 1:
            raise ValidationError(
                "Serial-number-tracked parts have a quantity of 1", details={"field": "quantity"}
            )
        existing = await db.execute(select(Part.id).where(Part.serial_number == serial_number))
        if existing.first():
            raise ConflictError(
                f"Part with serial number {serial_number} already exists",
                details={"field": "serial_number"}
            )
        quantity = 1

    part = Part(
        name=data["name"],
        car_type=data["car_type"],
        car_model=data["car_model"],
        tracking_mode=tracking_mode,
        quantity=quantity,
        serial_number=serial_number if tracking_mode == TrackingMode.SERIAL_NUMBER else None
    )
    db.add(part)
    await db.flush()

    await log_actor_event(
        db, current_user, AuditAction.PART_CREATED, "Part", part.id,
        metadata={"name": part.name, "quantity": part.quantity}
    )
    await db.commit()
    await db.refresh(part)

    logger.info("Part %s (%s) added to stock", part.id, part.name)
    return part


async def update_part(db: AsyncSession, part_id: int, data: Dict[str, Any], current_user: dict) -> Part:
    part = await get_part(db, part_id)
    changes = {k: v for k, v in data.items() if k in ("name", "car_model", "quantity") and v is not None}

    if "quantity" in changes and part.tracking_mode != TrackingMode.QUANTITY:
        raise ValidationError(
            "Cannot set the quantity of a serial-number-tracked part", details={"field": "quantity"}
        )

    for field, value in changes.items():
        setattr(part, field, value)

    await log_actor_event(
        db, current_user, AuditAction.PART_UPDATED, "Part", part.id,
        metadata={"fields": sorted(changes)}
    )
    await db.commit()
    await db.refresh(part)
    return part


async def delete_part(db: AsyncSession, part_id: int, current_user: dict) -> None:
    part = await get_part(db, part_id)
    part.is_deleted = True

    await log_actor_event(
        db, current_user, AuditAction.PART_DELETED, "Part", part.id,
        metadata={"name": part.name}
    )
    await db.commit()

    logger.info("Part %s soft-deleted", part.id)


async def adjust_quantity(db: AsyncSession, part: Part, delta: int) -> Part:
    """
    Add delta (negative to take stock) to a QUANTITY part.

    The stock check is part of the UPDATE, so concurrent withdrawals
    cannot drive the count below zero. Does not commit.

    Raises:
        ValidationError: serial-number part, or not enough stock
    """
    if part.tracking_mode != TrackingMode.QUANTITY:
        raise ValidationError(
            "Cannot adjust the quantity of a serial-number-tracked part", details={"part_id": part.id}
        )

    result = await db.execute(
        update(Part)
        .where(Part.id == part.id, Part.quantity + delta >= 0)
        .values(quantity=Part.quantity + delta)
        .execution_options(synchronize_session="fetch")
    )
    if result.rowcount != 1:
        await db.refresh(part)
        raise ValidationError(
            "Insufficient quantity in stock",
            details={"part_id": part.id, "available": part.quantity, "requested": -delta}
        )

    await db.refresh(part)
    return part
