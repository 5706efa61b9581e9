"""
Notification Database Model.
"""

from sqlalchemy import Column, Integer, String, Text, Boolean, DateTime, ForeignKey, Enum
from sqlalchemy.sql import func
from ivms.app.db.session import Base
import enum


class NotificationType(str, enum.Enum):
    INFO = "INFO"
    CAR_REQUEST_CREATED = "CAR_REQUEST_CREATED"
    CAR_REQUEST_ASSIGNED = "CAR_REQUEST_ASSIGNED"
    CAR_REQUEST_APPROVED = "CAR_REQUEST_APPROVED"
    CAR_REQUEST_REJECTED = "CAR_REQUEST_REJECTED"
    CAR_REQUEST_CANCELLED = "CAR_REQUEST_CANCELLED"
    CAR_IN_TRANSIT = "CAR_IN_TRANSIT"
    CAR_RETURNED = "CAR_RETURNED"
    MAINTENANCE_REQUEST_CREATED = "MAINTENANCE_REQUEST_CREATED"
    MAINTENANCE_TRIAGED = "MAINTENANCE_TRIAGED"
    MAINTENANCE_APPROVED = "MAINTENANCE_APPROVED"
    MAINTENANCE_REJECTED = "MAINTENANCE_REJECTED"
    MAINTENANCE_STARTED = "MAINTENANCE_STARTED"
    MAINTENANCE_COMPLETED = "MAINTENANCE_COMPLETED"
    CAR_INVENTORY_REQUEST_CREATED = "CAR_INVENTORY_REQUEST_CREATED"
    CAR_INVENTORY_REQUEST_APPROVED = "CAR_INVENTORY_REQUEST_APPROVED"
    CAR_INVENTORY_REQUEST_REJECTED = "CAR_INVENTORY_REQUEST_REJECTED"
    PURCHASE_REQUEST_CREATED = "PURCHASE_REQUEST_CREATED"
    PURCHASE_REQUEST_APPROVED = "PURCHASE_REQUEST_APPROVED"
    PURCHASE_REQUEST_REJECTED = "PURCHASE_REQUEST_REJECTED"
    PART_LOW_STOCK = "PART_LOW_STOCK"


class Notification(Base):
    """
    In-App Notification.

    Created as a side effect of workflow transitions. Only the read flag
    changes after creation; the recipient may delete it.
    """
    __tablename__ = "notifications"

    id = Column(Integer, primary_key=True, index=True, autoincrement=True)

    # Recipient
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)

    # Content
    type = Column(Enum(NotificationType), default=NotificationType.INFO, nullable=False)
    title = Column(String(255), nullable=False)
    message = Column(Text, nullable=False)

    # Subject entity, e.g. ("CarRequest", 12)
    entity_type = Column(String(50), nullable=True)
    entity_id = Column(Integer, nullable=True)

    # State
    is_read = Column(Boolean, default=False, nullable=False, index=True)
    read_at = Column(DateTime(timezone=True), nullable=True)

    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)

    def __repr__(self):
        return f"<Notification(id={self.id}, user={self.user_id}, type='{self.type.value}')>"
