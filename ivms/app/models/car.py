"""
Car database model.

Company-owned fleet vehicles managed by the GARAGE department.
"""

from sqlalchemy import Column, Integer, String, Text, DateTime, Enum
from sqlalchemy.sql import func
from ivms.app.db.session import Base
from ivms.app.models.enums import CarType, CarStatus


class Car(Base):
    """
    Car model.

    Status follows the car through request and maintenance workflows.
    A car is soft-deleted by setting status to DELETED.
    """
    __tablename__ = "cars"

    id = Column(Integer, primary_key=True, index=True, autoincrement=True)

    # Identification
    model = Column(String(100), nullable=False)
    type = Column(Enum(CarType), nullable=False, index=True)
    year = Column(Integer, nullable=False)
    license_plate = Column(String(50), unique=True, nullable=False, index=True)
    vin = Column(String(50), unique=True, nullable=True)

    # Details
    color = Column(String(50), nullable=True)
    fuel_type = Column(String(50), nullable=True)  # e.g., "Petrol", "Diesel", "Electric"
    current_mileage = Column(Integer, default=0, nullable=False)
    notes = Column(Text, nullable=True)

    status = Column(Enum(CarStatus), default=CarStatus.AVAILABLE, nullable=False, index=True)

    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False)

    def __repr__(self):
        return f"<Car(id={self.id}, plate='{self.license_plate}', status='{self.status.value}')>"
