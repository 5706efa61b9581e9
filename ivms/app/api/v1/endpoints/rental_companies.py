"""
Rental Company API Endpoints.
"""

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession
from ivms.app.db.session import get_db
from ivms.app.models.enums import Department
from ivms.app.schemas.rental_company import (
    RentalCompanyCreate, RentalCompanyUpdate, RentalCompanyResponse, RentalCompanyListResponse
)
from ivms.app.core.dependencies import get_current_user
from ivms.app.core.guards import require_department
from ivms.app.services import rental_company_service

router = APIRouter(prefix="/rental-companies", tags=["Rental Companies"])


@router.get("", response_model=RentalCompanyListResponse)
async def list_rental_companies(
    include_inactive: bool = Query(False),
    current_user: dict = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    """Active companies by default."""
    companies = await rental_company_service.list_rental_companies(db, include_inactive)
    return RentalCompanyListResponse(
        rental_companies=[RentalCompanyResponse.model_validate(c) for c in companies],
        total=len(companies)
    )


@router.get("/{company_id}", response_model=RentalCompanyResponse)
async def get_rental_company(
    company_id: int,
    current_user: dict = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    company = await rental_company_service.get_rental_company(db, company_id)
    return RentalCompanyResponse.model_validate(company)


@router.post("", response_model=RentalCompanyResponse, status_code=status.HTTP_201_CREATED)
async def create_rental_company(
    company_data: RentalCompanyCreate,
    current_user: dict = Depends(require_department([Department.GARAGE])),
    db: AsyncSession = Depends(get_db)
):
    company = await rental_company_service.create_rental_company(db, company_data.model_dump(), current_user)
    return RentalCompanyResponse.model_validate(company)


@router.patch("/{company_id}", response_model=RentalCompanyResponse)
async def update_rental_company(
    company_id: int,
    company_data: RentalCompanyUpdate,
    current_user: dict = Depends(require_department([Department.GARAGE])),
    db: AsyncSession = Depends(get_db)
):
    company = await rental_company_service.update_rental_company(
        db, company_id, company_data.model_dump(exclude_unset=True), current_user
    )
    return RentalCompanyResponse.model_validate(company)


@router.delete("/{company_id}", response_model=RentalCompanyResponse)
async def deactivate_rental_company(
    company_id: int,
    current_user: dict = Depends(require_department([Department.GARAGE])),
    db: AsyncSession = Depends(get_db)
):
    """Soft delete: the company is marked inactive."""
    company = await rental_company_service.deactivate_rental_company(db, company_id, current_user)
    return RentalCompanyResponse.model_validate(company)
