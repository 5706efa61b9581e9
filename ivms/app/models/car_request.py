"""
Car Request database model.

A request for vehicle use raised by the OPERATION department. The request
walks the lifecycle defined in ivms.app.domain.car_request_workflow.
"""

from sqlalchemy import Column, Integer, String, Text, Boolean, DateTime, Enum, ForeignKey
from sqlalchemy.sql import func
from ivms.app.db.session import Base
from ivms.app.models.enums import CarType, CarRequestStatus


class CarRequest(Base):
    """
    Car Request model.

    At most one vehicle source is set: assigned_car_id for a company car,
    rental_company_id (with is_rental) for a rental. rejection_reason is
    only ever set on REJECTED requests. Never hard-deleted.

    `version` is bumped on every UPDATE; a concurrent transition on a stale
    copy fails at flush instead of silently overwriting the winner.
    """
    __tablename__ = "car_requests"

    id = Column(Integer, primary_key=True, index=True, autoincrement=True)

    # Trip details
    requested_car_type = Column(Enum(CarType), nullable=False)
    departure_location = Column(String(255), nullable=True)
    destination = Column(String(255), nullable=False)
    purpose = Column(Text, nullable=True)
    departure_datetime = Column(DateTime(timezone=True), nullable=False)
    return_datetime = Column(DateTime(timezone=True), nullable=False)

    status = Column(Enum(CarRequestStatus), default=CarRequestStatus.PENDING, nullable=False, index=True)

    # Vehicle source
    assigned_car_id = Column(Integer, ForeignKey("cars.id"), nullable=True, index=True)
    rental_company_id = Column(Integer, ForeignKey("rental_companies.id"), nullable=True)
    is_rental = Column(Boolean, default=False, nullable=False)

    rejection_reason = Column(Text, nullable=True)
    return_condition_notes = Column(Text, nullable=True)

    # Actors
    created_by_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    assigned_by_id = Column(Integer, ForeignKey("users.id"), nullable=True)
    approved_by_id = Column(Integer, ForeignKey("users.id"), nullable=True)
    cancelled_by_id = Column(Integer, ForeignKey("users.id"), nullable=True)

    version = Column(Integer, nullable=False)

    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False)

    __mapper_args__ = {"version_id_col": version}

    def __repr__(self):
        return f"<CarRequest(id={self.id}, status='{self.status.value}', created_by={self.created_by_id})>"
