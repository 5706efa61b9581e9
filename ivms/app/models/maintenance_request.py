"""
Maintenance Request database model.

Raised against a car, triaged by MAINTENANCE, approved by ADMIN.
"""

from sqlalchemy import Column, Integer, String, Text, Float, DateTime, Enum, ForeignKey
from sqlalchemy.sql import func
from ivms.app.db.session import Base
from ivms.app.models.enums import MaintenanceStatus, MaintenanceType


class MaintenanceRequest(Base):
    __tablename__ = "maintenance_requests"

    id = Column(Integer, primary_key=True, index=True, autoincrement=True)

    car_id = Column(Integer, ForeignKey("cars.id"), nullable=False, index=True)
    description = Column(Text, nullable=False)

    # Set during triage
    maintenance_type = Column(Enum(MaintenanceType), nullable=True)
    external_vendor = Column(String(255), nullable=True)
    external_cost = Column(Float, nullable=True)

    status = Column(Enum(MaintenanceStatus), default=MaintenanceStatus.PENDING, nullable=False, index=True)
    rejection_reason = Column(Text, nullable=True)
    completion_notes = Column(Text, nullable=True)

    created_by_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    triaged_by_id = Column(Integer, ForeignKey("users.id"), nullable=True)
    approved_by_id = Column(Integer, ForeignKey("users.id"), nullable=True)

    started_at = Column(DateTime(timezone=True), nullable=True)
    completed_at = Column(DateTime(timezone=True), nullable=True)

    version = Column(Integer, nullable=False)

    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False)

    __mapper_args__ = {"version_id_col": version}

    def __repr__(self):
        return f"<MaintenanceRequest(id={self.id}, car_id={self.car_id}, status='{self.status.value}')>"
