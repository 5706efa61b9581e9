"""
User database model.

A user is a department + role pair. SUPER_ADMIN role and ADMIN department
always go together (see ivms.app.domain.department_rules).
"""

from sqlalchemy import Column, Integer, String, Boolean, DateTime, Enum
from sqlalchemy.sql import func
from ivms.app.db.session import Base
from ivms.app.models.enums import Department, Role


class User(Base):
    """
    User model for authentication and user management.

    Users are never hard-deleted; deactivation flips is_active.
    """
    __tablename__ = "users"

    id = Column(Integer, primary_key=True, index=True, autoincrement=True)
    username = Column(String(100), unique=True, index=True, nullable=False)
    hashed_password = Column(String(255), nullable=False)
    full_name = Column(String(255), nullable=False)

    department = Column(Enum(Department), nullable=False, index=True)
    role = Column(Enum(Role), nullable=False)

    is_active = Column(Boolean, default=True, nullable=False)

    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False)

    def __repr__(self):
        return f"<User(id={self.id}, username='{self.username}', department='{self.department.value}', role='{self.role.value}')>"
