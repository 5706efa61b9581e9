"""
Car Pydantic schemas.
"""

from pydantic import BaseModel, Field
from datetime import datetime
from typing import Optional, List
from ivms.app.models.enums import CarType, CarStatus


class CarCreate(BaseModel):
    """Schema for registering a company car."""
    model: str = Field(..., min_length=1, max_length=100)
    type: CarType
    year: int = Field(..., ge=1950, le=2100)
    license_plate: str = Field(..., min_length=1, max_length=50)
    vin: Optional[str] = Field(None, max_length=50)
    color: Optional[str] = Field(None, max_length=50)
    fuel_type: Optional[str] = Field(None, max_length=50, description="e.g., Petrol, Diesel, Electric")
    current_mileage: int = Field(0, ge=0)
    notes: Optional[str] = None


class CarUpdate(BaseModel):
    """
    Schema for updating a car.

    Status is driven by the request and maintenance workflows and
    cannot be set here.
    """
    model: Optional[str] = Field(None, min_length=1, max_length=100)
    type: Optional[CarType] = None
    year: Optional[int] = Field(None, ge=1950, le=2100)
    license_plate: Optional[str] = Field(None, min_length=1, max_length=50)
    vin: Optional[str] = Field(None, max_length=50)
    color: Optional[str] = Field(None, max_length=50)
    fuel_type: Optional[str] = Field(None, max_length=50)
    current_mileage: Optional[int] = Field(None, ge=0)
    notes: Optional[str] = None


class CarResponse(BaseModel):
    id: int
    model: str
    type: CarType
    year: int
    license_plate: str
    vin: Optional[str] = None
    color: Optional[str] = None
    fuel_type: Optional[str] = None
    current_mileage: int
    notes: Optional[str] = None
    status: CarStatus
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True


class CarListResponse(BaseModel):
    cars: List[CarResponse]
    total: int
