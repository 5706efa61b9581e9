"""
Car Inventory Request Pydantic schemas.
"""

from pydantic import BaseModel
from datetime import datetime
from typing import Any, Dict, Optional, List
from ivms.app.models.enums import CarInventoryRequestStatus, CarInventoryRequestType
from ivms.app.schemas.car import CarCreate


class CarInventoryRequestCreate(BaseModel):
    """
    ADD requests carry the proposed car in `car`; DELETE requests name
    the car to retire in `car_id`.
    """
    type: CarInventoryRequestType
    car_id: Optional[int] = None
    car: Optional[CarCreate] = None


class RejectCarInventoryRequest(BaseModel):
    rejection_reason: Optional[str] = None


class CarInventoryRequestResponse(BaseModel):
    id: int
    type: CarInventoryRequestType
    car_id: Optional[int] = None
    car_data: Optional[Dict[str, Any]] = None
    status: CarInventoryRequestStatus
    rejection_reason: Optional[str] = None
    created_by_id: int
    approved_by_id: Optional[int] = None
    version: int
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True


class CarInventoryRequestListResponse(BaseModel):
    car_inventory_requests: List[CarInventoryRequestResponse]
    total: int
