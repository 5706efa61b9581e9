"""
User Pydantic schemas.

No response schema carries a password field, so a hash can never be
serialized back to a client.
"""

from pydantic import BaseModel, Field
from datetime import datetime
from typing import Optional, List
from ivms.app.models.enums import Department, Role


class UserCreate(BaseModel):
    """Schema for creating a user (SUPER_ADMIN only)."""
    username: str = Field(..., min_length=3, max_length=50, description="Unique username")
    password: str = Field(..., min_length=6, description="Password (min 6 characters)")
    full_name: str = Field(..., min_length=1, max_length=255)
    department: Department
    role: Role


class UserUpdate(BaseModel):
    """
    Schema for updating a user.

    Department and role are validated together with the stored values.
    """
    username: Optional[str] = Field(None, min_length=3, max_length=50)
    password: Optional[str] = Field(None, min_length=6)
    full_name: Optional[str] = Field(None, max_length=255)
    department: Optional[Department] = None
    role: Optional[Role] = None


class UserResponse(BaseModel):
    """Schema for user information response."""
    id: int
    username: str
    full_name: str
    department: Department
    role: Role
    is_active: bool
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True


class UserListResponse(BaseModel):
    """Schema for list users response."""
    users: List[UserResponse]
    total: int
    page: int
    page_size: int
