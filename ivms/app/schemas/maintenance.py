"""
Maintenance Request Pydantic schemas.
"""

from pydantic import BaseModel, Field
from datetime import datetime
from typing import Optional, List
from ivms.app.models.enums import MaintenanceStatus, MaintenanceType


class MaintenanceRequestCreate(BaseModel):
    car_id: int
    description: str = Field(..., min_length=1)


class TriageRequest(BaseModel):
    """EXTERNAL work requires external_vendor."""
    maintenance_type: MaintenanceType
    external_vendor: Optional[str] = Field(None, max_length=255)
    external_cost: Optional[float] = Field(None, ge=0)


class RejectMaintenanceRequest(BaseModel):
    rejection_reason: Optional[str] = None


class CompleteMaintenanceRequest(BaseModel):
    completion_notes: Optional[str] = None


class MaintenanceRequestResponse(BaseModel):
    id: int
    car_id: int
    description: str
    maintenance_type: Optional[MaintenanceType] = None
    external_vendor: Optional[str] = None
    external_cost: Optional[float] = None
    status: MaintenanceStatus
    rejection_reason: Optional[str] = None
    completion_notes: Optional[str] = None
    created_by_id: int
    triaged_by_id: Optional[int] = None
    approved_by_id: Optional[int] = None
    started_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None
    version: int
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True


class MaintenanceRequestListResponse(BaseModel):
    maintenance_requests: List[MaintenanceRequestResponse]
    total: int
