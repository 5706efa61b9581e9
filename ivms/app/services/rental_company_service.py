"""
Rental company service.

Companies are deactivated, never deleted, so old rental requests keep
pointing at a real row.
"""

from typing import Any, Dict, List, Optional

from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select

from ivms.app.core.exceptions import ConflictError, NotFoundError
from ivms.app.models.rental_company import RentalCompany
from ivms.app.services.audit import AuditAction, log_actor_event


async def get_rental_company(db: AsyncSession, company_id: int) -> RentalCompany:
    result = await db.execute(select(RentalCompany).where(RentalCompany.id == company_id))
    company = result.scalar_one_or_none()
    if not company:
        raise NotFoundError("Rental company", company_id)
    return company


async def _check_name_free(db: AsyncSession, name: str, exclude_id: Optional[int] = None) -> None:
    query = select(RentalCompany.id).where(RentalCompany.name == name)
    if exclude_id is not None:
        query = query.where(RentalCompany.id != exclude_id)
    if (await db.execute(query)).first():
        raise ConflictError(
            f"Rental company '{name}' already exists",
            details={"field": "name"}
        )


async def list_rental_companies(db: AsyncSession, include_inactive: bool = False) -> List[RentalCompany]:
    query = select(RentalCompany)
    if not include_inactive:
        query = query.where(RentalCompany.is_active == True)
    result = await db.execute(query.order_by(RentalCompany.name.asc()))
    return list(result.scalars().all())


async def create_rental_company(db: AsyncSession, data: Dict[str, Any], current_user: dict) -> RentalCompany:
    await _check_name_free(db, data["name"])

    company = RentalCompany(**data, is_active=True)
    db.add(company)
    await db.flush()

    await log_actor_event(
        db, current_user, AuditAction.RENTAL_COMPANY_CREATED, "RentalCompany", company.id,
        metadata={"name": company.name}
    )
    await db.commit()
    await db.refresh(company)
    return company


async def update_rental_company(
    db: AsyncSession,
    company_id: int,
    data: Dict[str, Any],
    current_user: dict
) -> RentalCompany:
    company = await get_rental_company(db, company_id)
    changes = {k: v for k, v in data.items() if v is not None}

    if changes.get("name") and changes["name"] != company.name:
        await _check_name_free(db, changes["name"], exclude_id=company_id)

    for field, value in changes.items():
        setattr(company, field, value)

    await log_actor_event(
        db, current_user, AuditAction.RENTAL_COMPANY_UPDATED, "RentalCompany", company.id,
        metadata={"fields": sorted(changes)}
    )
    await db.commit()
    await db.refresh(company)
    return company


async def deactivate_rental_company(db: AsyncSession, company_id: int, current_user: dict) -> RentalCompany:
    company = await get_rental_company(db, company_id)
    company.is_active = False

    await log_actor_event(
        db, current_user, AuditAction.RENTAL_COMPANY_DEACTIVATED, "RentalCompany", company.id
    )
    await db.commit()
    await db.refresh(company)
    return company
