"""
User management service.

Creation and updates enforce username uniqueness and the
department/role pairing rule before anything is written. Passwords are
hashed on the way in and never leave this layer.
"""

import logging
from typing import Any, Dict, List, Optional, Tuple

from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, func

from ivms.app.core.exceptions import ConflictError, NotFoundError, ValidationError
from ivms.app.core.security import get_password_hash, verify_password
from ivms.app.core.token_revocation import revoke_all_user_tokens, clear_user_token_revocation
from ivms.app.domain.department_rules import validate_department_role
from ivms.app.models.enums import Department, Role
from ivms.app.models.user import User
from ivms.app.services.audit import AuditAction, log_event

logger = logging.getLogger(__name__)

_SENSITIVE_FIELDS = ("hashed_password", "password")


def exclude_password(data: Dict[str, Any]) -> Dict[str, Any]:
    """Copy of a user dict without any password material, e.g. for audit metadata."""
    return {k: v for k, v in data.items() if k not in _SENSITIVE_FIELDS}


async def get_user(db: AsyncSession, user_id: int) -> User:
    result = await db.execute(select(User).where(User.id == user_id))
    user = result.scalar_one_or_none()
    if not user:
        raise NotFoundError("User", user_id)
    return user


async def get_user_by_username(db: AsyncSession, username: str) -> Optional[User]:
    result = await db.execute(select(User).where(User.username == username))
    return result.scalar_one_or_none()


async def list_users(
    db: AsyncSession,
    department: Optional[Department] = None,
    role: Optional[Role] = None,
    is_active: Optional[bool] = None,
    page: int = 1,
    page_size: int = 50
) -> Tuple[List[User], int]:
    """Paginated user list with total count."""
    filters = []
    if department:
        filters.append(User.department == department)
    if role:
        filters.append(User.role == role)
    if is_active is not None:
        filters.append(User.is_active == is_active)

    total_result = await db.execute(select(func.count(User.id)).where(*filters))
    total = total_result.scalar()

    offset = (page - 1) * page_size
    result = await db.execute(
        select(User).where(*filters).order_by(User.created_at.desc(), User.id.desc())
        .offset(offset).limit(page_size)
    )
    return list(result.scalars().all()), total


async def authenticate(db: AsyncSession, username: str, password: str) -> Optional[User]:
    """Return the user if the credentials match, else None. Does not check is_active."""
    user = await get_user_by_username(db, username)
    if not user or not verify_password(password, user.hashed_password):
        return None
    return user


async def create_user(db: AsyncSession, data: Dict[str, Any], admin: dict) -> User:
    """
    Create a user.

    Raises:
        ValidationError: department/role pair breaks the pairing rule
        ConflictError: username already taken
    """
    validate_department_role(data["department"], data["role"])

    if await get_user_by_username(db, data["username"]):
        raise ConflictError(
            f"Username '{data['username']}' already exists",
            details={"field": "username"}
        )

    user = User(
        username=data["username"],
        hashed_password=get_password_hash(data["password"]),
        full_name=data["full_name"],
        department=data["department"],
        role=data["role"],
        is_active=True
    )
    db.add(user)
    await db.flush()

    await log_event(
        db=db,
        action=AuditAction.USER_CREATED,
        actor_id=admin["user_id"],
        actor_username=admin.get("sub"),
        entity_type="User",
        entity_id=user.id,
        target_user_id=user.id,
        target_username=user.username,
        metadata=exclude_password(data)
    )
    await db.commit()
    await db.refresh(user)

    logger.info("User %s created (%s/%s)", user.username, user.department.value, user.role.value)
    return user


async def update_user(db: AsyncSession, user_id: int, data: Dict[str, Any], admin: dict) -> User:
    """
    Apply a partial update.

    The pairing rule is checked on the merged (stored + patch) department
    and role. Keeping the same username is not a conflict.
    """
    user = await get_user(db, user_id)
    changes = {k: v for k, v in data.items() if v is not None}

    validate_department_role(
        changes.get("department", user.department),
        changes.get("role", user.role)
    )

    new_username = changes.get("username")
    if new_username and new_username != user.username:
        if await get_user_by_username(db, new_username):
            raise ConflictError(
                f"Username '{new_username}' already exists",
                details={"field": "username"}
            )

    password = changes.pop("password", None)
    if password:
        user.hashed_password = get_password_hash(password)

    for field in ("username", "full_name", "department", "role"):
        if field in changes:
            setattr(user, field, changes[field])

    await log_event(
        db=db,
        action=AuditAction.USER_UPDATED,
        actor_id=admin["user_id"],
        actor_username=admin.get("sub"),
        entity_type="User",
        entity_id=user.id,
        target_user_id=user.id,
        target_username=user.username,
        metadata={"fields": sorted(changes), "password_changed": bool(password)}
    )
    await db.commit()
    await db.refresh(user)
    return user


async def deactivate_user(db: AsyncSession, user_id: int, admin: dict) -> User:
    """Deactivate a user and revoke every token they hold."""
    user = await get_user(db, user_id)

    if user.id == admin["user_id"]:
        raise ValidationError("Cannot deactivate yourself")

    if not user.is_active:
        raise ValidationError("User is already inactive")

    user.is_active = False
    await log_event(
        db=db,
        action=AuditAction.USER_DEACTIVATED,
        actor_id=admin["user_id"],
        actor_username=admin.get("sub"),
        entity_type="User",
        entity_id=user.id,
        target_user_id=user.id,
        target_username=user.username
    )
    await db.commit()
    await db.refresh(user)

    await revoke_all_user_tokens(user.id)

    logger.info("User %s deactivated by %s", user.username, admin.get("sub"))
    return user


async def activate_user(db: AsyncSession, user_id: int, admin: dict) -> User:
    """Re-activate a user; they can log in again and get new tokens."""
    user = await get_user(db, user_id)

    if user.is_active:
        raise ValidationError("User is already active")

    user.is_active = True
    await log_event(
        db=db,
        action=AuditAction.USER_ACTIVATED,
        actor_id=admin["user_id"],
        actor_username=admin.get("sub"),
        entity_type="User",
        entity_id=user.id,
        target_user_id=user.id,
        target_username=user.username
    )
    await db.commit()
    await db.refresh(user)

    await clear_user_token_revocation(user.id)
    return user


async def reset_password(db: AsyncSession, user_id: int, new_password: str, admin: dict) -> User:
    user = await get_user(db, user_id)
    user.hashed_password = get_password_hash(new_password)

    await log_event(
        db=db,
        action=AuditAction.PASSWORD_RESET,
        actor_id=admin["user_id"],
        actor_username=admin.get("sub"),
        entity_type="User",
        entity_id=user.id,
        target_user_id=user.id,
        target_username=user.username
    )
    await db.commit()

    logger.info("Password reset for user %s by %s", user.username, admin.get("sub"))
    return user
