"""
Part and part usage Pydantic schemas.
"""

from pydantic import BaseModel, Field
from datetime import datetime
from typing import Optional, List
from ivms.app.models.enums import CarType, TrackingMode


class PartCreate(BaseModel):
    """QUANTITY parts need quantity; SERIAL_NUMBER parts need serial_number."""
    name: str = Field(..., min_length=2, max_length=255)
    car_type: CarType
    car_model: str = Field(..., min_length=2, max_length=100)
    tracking_mode: TrackingMode
    quantity: Optional[int] = Field(None, ge=0)
    serial_number: Optional[str] = Field(None, min_length=1, max_length=100)


class PartUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=2, max_length=255)
    car_model: Optional[str] = Field(None, min_length=2, max_length=100)
    quantity: Optional[int] = Field(None, ge=0)


class PartResponse(BaseModel):
    id: int
    name: str
    car_type: CarType
    car_model: str
    tracking_mode: TrackingMode
    quantity: int
    serial_number: Optional[str] = None
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True


class PartListResponse(BaseModel):
    parts: List[PartResponse]
    total: int


class AssignPartRequest(BaseModel):
    part_id: int
    quantity: Optional[int] = Field(None, ge=1)


class PartUsageResponse(BaseModel):
    id: int
    maintenance_request_id: int
    part_id: int
    quantity_used: int
    assigned_by_id: int
    assigned_at: datetime

    class Config:
        from_attributes = True


class PartUsageListResponse(BaseModel):
    usages: List[PartUsageResponse]
    total: int
