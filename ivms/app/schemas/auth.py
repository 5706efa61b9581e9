"""
Authentication Pydantic schemas.

Defines request and response schemas for authentication endpoints.
"""

from pydantic import BaseModel, Field
from ivms.app.models.enums import Department, Role


class UserLogin(BaseModel):
    """
    Schema for user login.

    Used by POST /auth/login endpoint.
    """
    username: str = Field(..., description="Username")
    password: str = Field(..., description="Password")


class TokenResponse(BaseModel):
    """
    Schema for JWT token response.

    Returned by a successful login.
    """
    access_token: str = Field(..., description="JWT access token")
    token_type: str = Field(default="bearer", description="Token type")
    user_id: int = Field(..., description="User ID")
    username: str = Field(..., description="Username")
    department: Department = Field(..., description="User department")
    role: Role = Field(..., description="User role")


class PasswordResetRequest(BaseModel):
    """Schema for POST /auth/reset-password (SUPER_ADMIN only)."""
    user_id: int = Field(..., description="User whose password is reset")
    new_password: str = Field(..., min_length=6, description="New password (min 6 characters)")


class MessageResponse(BaseModel):
    message: str
