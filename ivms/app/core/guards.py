"""
Security guards for role-based and department-based access control.

Endpoint-level checks only. Per-transition permissions (who may move a
request from one status to another) live in ivms.app.domain.workflow.
"""

from typing import List
from fastapi import Depends, HTTPException, status
from ivms.app.models.enums import Department, Role
from ivms.app.core.dependencies import get_current_user


def require_role(allowed_roles: List[Role]):
    """
    Dependency factory for role-based access control.

    Usage:
        @router.get("/users")
        async def list_users(current_user: dict = Depends(require_role([Role.SUPER_ADMIN]))):
            ...

    Raises:
        HTTPException 403 if user role is not in allowed_roles
    """
    async def role_checker(current_user: dict = Depends(get_current_user)) -> dict:
        user_role_str = current_user.get("role")

        if not user_role_str:
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail="Role information missing from token"
            )

        try:
            user_role = Role(user_role_str)
        except ValueError:
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail="Invalid role in token"
            )

        if user_role not in allowed_roles:
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail=f"Access denied. Required role: {', '.join([r.value for r in allowed_roles])}"
            )

        return current_user

    return role_checker


def require_department(allowed_departments: List[Department]):
    """
    Dependency factory for department-based access control.

    SUPER_ADMIN passes every department check.

    Usage:
        @router.get("/car-requests/pending")
        async def pending(current_user: dict = Depends(require_department([Department.GARAGE]))):
            ...
    """
    async def department_checker(current_user: dict = Depends(get_current_user)) -> dict:
        if current_user.get("role") == Role.SUPER_ADMIN.value:
            return current_user

        department_str = current_user.get("department")
        if department_str not in {d.value for d in allowed_departments}:
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail=f"Access denied. Required department: {', '.join([d.value for d in allowed_departments])}"
            )

        return current_user

    return department_checker


def require_super_admin(current_user: dict = Depends(get_current_user)) -> dict:
    """
    Dependency for SUPER_ADMIN-only endpoints.

    Usage:
        @router.delete("/users/{user_id}")
        async def deactivate_user(user_id: int, admin: dict = Depends(require_super_admin)):
            ...
    """
    if current_user.get("role") != Role.SUPER_ADMIN.value:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Super Admin access required"
        )

    return current_user
