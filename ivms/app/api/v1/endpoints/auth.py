"""
Authentication API endpoints.

Provides login, logout, current-user info and admin password reset.
"""

from fastapi import APIRouter, Depends, HTTPException, Request, status
from sqlalchemy.ext.asyncio import AsyncSession
from ivms.app.db.session import get_db
from ivms.app.schemas.auth import UserLogin, TokenResponse, PasswordResetRequest, MessageResponse
from ivms.app.schemas.user import UserResponse
from ivms.app.core.jwt import create_access_token
from ivms.app.core.dependencies import get_current_user
from ivms.app.core.guards import require_super_admin
from ivms.app.core.token_revocation import revoke_token
from ivms.app.services.audit import log_event, AuditAction
from ivms.app.services import user_service

router = APIRouter(prefix="/auth", tags=["Authentication"])


@router.post("/login", response_model=TokenResponse)
async def login(
    credentials: UserLogin,
    request: Request,
    db: AsyncSession = Depends(get_db)
):
    """
    Login user and return JWT token.

    Logs successful and failed login attempts for security monitoring.
    Inactive users are refused even with a correct password.
    """
    ip_address = request.client.host if request.client else None

    user = await user_service.authenticate(db, credentials.username, credentials.password)

    if not user:
        await log_event(
            db=db,
            action=AuditAction.LOGIN_FAILED,
            actor_username=credentials.username,
            metadata={"reason": "Invalid credentials"},
            ip_address=ip_address
        )
        await db.commit()
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid credentials",
            headers={"WWW-Authenticate": "Bearer"},
        )

    if not user.is_active:
        await log_event(
            db=db,
            action=AuditAction.LOGIN_FAILED,
            actor_id=user.id,
            actor_username=user.username,
            metadata={"reason": "Account is inactive"},
            ip_address=ip_address
        )
        await db.commit()
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Inactive user account"
        )

    jwt_payload = {
        "sub": user.username,
        "user_id": user.id,
        "department": user.department.value,
        "role": user.role.value
    }
    access_token = create_access_token(data=jwt_payload)

    await log_event(
        db=db,
        action=AuditAction.LOGIN_SUCCESS,
        actor_id=user.id,
        actor_username=user.username,
        ip_address=ip_address
    )
    await db.commit()

    return TokenResponse(
        access_token=access_token,
        token_type="bearer",
        user_id=user.id,
        username=user.username,
        department=user.department,
        role=user.role
    )


@router.get("/me", response_model=UserResponse)
async def get_current_user_info(
    current_user: dict = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    """
    Get current authenticated user information.

    Requires valid JWT token in Authorization header.
    """
    user = await user_service.get_user(db, current_user["user_id"])
    return UserResponse.model_validate(user)


@router.post("/logout", response_model=MessageResponse)
async def logout(
    current_user: dict = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    """Revoke the presented token. Other sessions of the user stay valid."""
    await revoke_token(current_user["token"], current_user["user_id"])

    await log_event(
        db=db,
        action=AuditAction.LOGOUT,
        actor_id=current_user["user_id"],
        actor_username=current_user.get("sub")
    )
    await db.commit()

    return MessageResponse(message="Logged out successfully")


@router.post("/reset-password", response_model=MessageResponse)
async def reset_password(
    body: PasswordResetRequest,
    admin: dict = Depends(require_super_admin),
    db: AsyncSession = Depends(get_db)
):
    """Set a new password for any user (SUPER_ADMIN only)."""
    user = await user_service.reset_password(db, body.user_id, body.new_password, admin)
    return MessageResponse(message=f"Password for '{user.username}' has been reset")
