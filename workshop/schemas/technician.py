from pydantic import BaseModel, Field
from datetime import datetime
from typing import Optional


class TechnicianCreate(BaseModel):
    """Schema for creating a technician."""
    name: Optional[str] = Field(None, max_length=255)
    phone: Optional[str] = Field(None, max_length=50)
    status: str = "Active"


class TechnicianUpdate(BaseModel):
    """Schema for updating a technician. Null fields keep their stored value."""
    name: Optional[str] = Field(None, max_length=255)
    phone: Optional[str] = Field(None, max_length=50)
    status: Optional[str] = None


class TechnicianResponse(BaseModel):
    id: int
    name: str
    phone: Optional[str] = None
    status: str
    created_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class TechnicianJobResponse(BaseModel):
    """Job assigned to a technician, with display names for the roster page."""
    id: int
    customer_id: int
    vehicle_id: Optional[int] = None
    description: str
    category: Optional[str] = None
    job_status: str
    status_changed_at: Optional[datetime] = None
    created_at: Optional[datetime] = None
    customer_name: Optional[str] = None
    vehicle_name: Optional[str] = None
