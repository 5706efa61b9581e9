"""
Part and part usage database models.

Spare parts kept in stock by the GARAGE and consumed by maintenance work.
"""

from sqlalchemy import Column, Integer, String, Boolean, DateTime, Enum, ForeignKey
from sqlalchemy.sql import func
from ivms.app.db.session import Base
from ivms.app.models.enums import CarType, TrackingMode


class Part(Base):
    """
    Stock item.

    QUANTITY parts keep a count that goes down as parts are used.
    SERIAL_NUMBER parts are single items (quantity 1) identified by a
    unique serial number. Parts are soft-deleted via is_deleted.
    """
    __tablename__ = "parts"

    id = Column(Integer, primary_key=True, index=True, autoincrement=True)

    name = Column(String(255), nullable=False, index=True)
    car_type = Column(Enum(CarType), nullable=False, index=True)
    car_model = Column(String(100), nullable=False)

    tracking_mode = Column(Enum(TrackingMode), nullable=False)
    quantity = Column(Integer, default=0, nullable=False)
    serial_number = Column(String(100), unique=True, nullable=True)

    is_deleted = Column(Boolean, default=False, nullable=False, index=True)

    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False)

    def __repr__(self):
        return f"<Part(id={self.id}, name='{self.name}', quantity={self.quantity})>"


class MaintenancePartUsage(Base):
    """A part (or several of a QUANTITY part) used on a maintenance request."""
    __tablename__ = "maintenance_part_usages"

    id = Column(Integer, primary_key=True, index=True, autoincrement=True)

    maintenance_request_id = Column(Integer, ForeignKey("maintenance_requests.id"), nullable=False, index=True)
    part_id = Column(Integer, ForeignKey("parts.id"), nullable=False, index=True)
    quantity_used = Column(Integer, nullable=False)

    assigned_by_id = Column(Integer, ForeignKey("users.id"), nullable=False)
    assigned_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)

    def __repr__(self):
        return f"<MaintenancePartUsage(id={self.id}, part={self.part_id}, qty={self.quantity_used})>"
