"""
User Management API Endpoints.

SUPER_ADMIN-only user administration with audit logging.
"""

from typing import Optional
from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession
from ivms.app.db.session import get_db
from ivms.app.models.enums import Department, Role
from ivms.app.schemas.user import UserCreate, UserUpdate, UserResponse, UserListResponse
from ivms.app.core.guards import require_super_admin
from ivms.app.services import user_service

router = APIRouter(prefix="/users", tags=["Users"])


@router.get("", response_model=UserListResponse)
async def list_users(
    department: Optional[Department] = Query(None),
    role: Optional[Role] = Query(None),
    is_active: Optional[bool] = Query(None),
    page: int = Query(1, ge=1, description="Page number"),
    page_size: int = Query(50, ge=1, le=100, description="Items per page"),
    admin: dict = Depends(require_super_admin),
    db: AsyncSession = Depends(get_db)
):
    """List users, newest first."""
    users, total = await user_service.list_users(db, department, role, is_active, page, page_size)
    return UserListResponse(
        users=[UserResponse.model_validate(user) for user in users],
        total=total,
        page=page,
        page_size=page_size
    )


@router.get("/{user_id}", response_model=UserResponse)
async def get_user(
    user_id: int,
    admin: dict = Depends(require_super_admin),
    db: AsyncSession = Depends(get_db)
):
    user = await user_service.get_user(db, user_id)
    return UserResponse.model_validate(user)


@router.post("", response_model=UserResponse, status_code=status.HTTP_201_CREATED)
async def create_user(
    user_data: UserCreate,
    admin: dict = Depends(require_super_admin),
    db: AsyncSession = Depends(get_db)
):
    """
    Create a user.

    - SUPER_ADMIN must be in the ADMIN department and vice versa
    - Usernames are unique (409 on duplicates)
    """
    user = await user_service.create_user(db, user_data.model_dump(), admin)
    return UserResponse.model_validate(user)


@router.patch("/{user_id}", response_model=UserResponse)
async def update_user(
    user_id: int,
    user_data: UserUpdate,
    admin: dict = Depends(require_super_admin),
    db: AsyncSession = Depends(get_db)
):
    user = await user_service.update_user(db, user_id, user_data.model_dump(exclude_unset=True), admin)
    return UserResponse.model_validate(user)


@router.delete("/{user_id}", response_model=UserResponse)
async def deactivate_user(
    user_id: int,
    admin: dict = Depends(require_super_admin),
    db: AsyncSession = Depends(get_db)
):
    """
    Deactivate a user and revoke all their active tokens.

    This immediately terminates all user sessions.
    """
    user = await user_service.deactivate_user(db, user_id, admin)
    return UserResponse.model_validate(user)


@router.post("/{user_id}/activate", response_model=UserResponse)
async def activate_user(
    user_id: int,
    admin: dict = Depends(require_super_admin),
    db: AsyncSession = Depends(get_db)
):
    user = await user_service.activate_user(db, user_id, admin)
    return UserResponse.model_validate(user)
