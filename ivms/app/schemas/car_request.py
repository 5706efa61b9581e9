"""
Car Request Pydantic schemas.

Defines request bodies for creation, editing and each lifecycle action.
"""

from pydantic import BaseModel, Field
from datetime import datetime
from typing import Optional, List
from ivms.app.models.enums import CarType, CarRequestStatus


class CarRequestCreate(BaseModel):
    """
    Schema for raising a car request (OPERATION).

    Departure must not be in the past and return must follow departure;
    both are checked by the service.
    """
    requested_car_type: CarType
    departure_location: Optional[str] = Field(None, max_length=255)
    destination: str = Field(..., min_length=1, max_length=255)
    purpose: Optional[str] = None
    departure_datetime: datetime
    return_datetime: datetime


class CarRequestUpdate(BaseModel):
    """Schema for editing a PENDING request (owner only)."""
    requested_car_type: Optional[CarType] = None
    departure_location: Optional[str] = Field(None, max_length=255)
    destination: Optional[str] = Field(None, min_length=1, max_length=255)
    purpose: Optional[str] = None
    departure_datetime: Optional[datetime] = None
    return_datetime: Optional[datetime] = None


class AssignCarRequest(BaseModel):
    """Exactly one of car_id (company car) or rental_company_id."""
    car_id: Optional[int] = Field(None, description="Company car to assign")
    rental_company_id: Optional[int] = Field(None, description="Rental company supplying the car")


class RejectCarRequest(BaseModel):
    # Optional here so a missing reason is reported by the workflow guard
    rejection_reason: Optional[str] = Field(None, description="Why the request is rejected (required)")


class ReturnCarRequest(BaseModel):
    current_mileage: Optional[int] = Field(None, ge=0, description="Odometer reading on return")
    return_condition_notes: Optional[str] = Field(None, description="Condition of the car on return")


class CarRequestResponse(BaseModel):
    id: int
    requested_car_type: CarType
    departure_location: Optional[str] = None
    destination: str
    purpose: Optional[str] = None
    departure_datetime: datetime
    return_datetime: datetime
    status: CarRequestStatus
    assigned_car_id: Optional[int] = None
    rental_company_id: Optional[int] = None
    is_rental: bool
    rejection_reason: Optional[str] = None
    return_condition_notes: Optional[str] = None
    created_by_id: int
    assigned_by_id: Optional[int] = None
    approved_by_id: Optional[int] = None
    cancelled_by_id: Optional[int] = None
    version: int
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True


class CarRequestListResponse(BaseModel):
    car_requests: List[CarRequestResponse]
    total: int
