"""
Purchase Request Pydantic schemas.
"""

from pydantic import BaseModel, Field
from datetime import datetime
from typing import Optional, List
from ivms.app.models.enums import PurchaseRequestStatus


class PurchaseRequestCreate(BaseModel):
    part_name: str = Field(..., min_length=2, max_length=255)
    quantity: int = Field(..., ge=1)
    estimated_cost: float = Field(..., ge=0)
    vendor: str = Field(..., min_length=2, max_length=255)


class RejectPurchaseRequest(BaseModel):
    rejection_reason: Optional[str] = None


class PurchaseRequestResponse(BaseModel):
    id: int
    part_name: str
    quantity: int
    estimated_cost: float
    vendor: str
    status: PurchaseRequestStatus
    rejection_reason: Optional[str] = None
    created_by_id: int
    approved_by_id: Optional[int] = None
    version: int
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True


class PurchaseRequestListResponse(BaseModel):
    purchase_requests: List[PurchaseRequestResponse]
    total: int
