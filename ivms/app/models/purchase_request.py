"""
Purchase Request database model.

A request to buy parts from a vendor, raised by GARAGE and approved by an
admin.
"""

from sqlalchemy import Column, Integer, String, Text, Float, DateTime, Enum, ForeignKey
from sqlalchemy.sql import func
from ivms.app.db.session import Base
from ivms.app.models.enums import PurchaseRequestStatus


class PurchaseRequest(Base):
    __tablename__ = "purchase_requests"

    id = Column(Integer, primary_key=True, index=True, autoincrement=True)

    part_name = Column(String(255), nullable=False)
    quantity = Column(Integer, nullable=False)
    estimated_cost = Column(Float, nullable=False)
    vendor = Column(String(255), nullable=False)

    status = Column(Enum(PurchaseRequestStatus), default=PurchaseRequestStatus.PENDING, nullable=False, index=True)
    rejection_reason = Column(Text, nullable=True)

    created_by_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    approved_by_id = Column(Integer, ForeignKey("users.id"), nullable=True)

    version = Column(Integer, nullable=False)

    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False, index=True)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False)

    __mapper_args__ = {"version_id_col": version}

    def __repr__(self):
        return f"<PurchaseRequest(id={self.id}, part='{self.part_name}', status='{self.status.value}')>"
