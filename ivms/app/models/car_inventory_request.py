"""
Car Inventory Request database model.

GARAGE asks for a car to be added to or retired from the fleet; an admin
approves or rejects the change.
"""

from sqlalchemy import Column, Integer, Text, DateTime, Enum, ForeignKey, JSON
from sqlalchemy.sql import func
from ivms.app.db.session import Base
from ivms.app.models.enums import CarInventoryRequestStatus, CarInventoryRequestType


class CarInventoryRequest(Base):
    """
    ADD requests carry the proposed car in car_data; car_id is filled in
    when the car is created on approval. DELETE requests point at an
    existing car through car_id.
    """
    __tablename__ = "car_inventory_requests"

    id = Column(Integer, primary_key=True, index=True, autoincrement=True)

    type = Column(Enum(CarInventoryRequestType), nullable=False, index=True)
    car_id = Column(Integer, ForeignKey("cars.id"), nullable=True, index=True)
    car_data = Column(JSON, nullable=True)

    status = Column(
        Enum(CarInventoryRequestStatus), default=CarInventoryRequestStatus.PENDING, nullable=False, index=True
    )
    rejection_reason = Column(Text, nullable=True)

    created_by_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    approved_by_id = Column(Integer, ForeignKey("users.id"), nullable=True)

    version = Column(Integer, nullable=False)

    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False)

    __mapper_args__ = {"version_id_col": version}

    def __repr__(self):
        return f"<CarInventoryRequest(id={self.id}, type='{self.type.value}', status='{self.status.value}')>"
