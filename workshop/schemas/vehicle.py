from pydantic import BaseModel, Field
from datetime import datetime
from typing import Optional, Union


class VehicleBase(BaseModel):
    make: Optional[str] = Field(None, max_length=100)
    model: Optional[str] = Field(None, max_length=100)
    year: Optional[Union[int, str]] = None
    license_plate: Optional[str] = Field(None, max_length=20)


class VehicleCreate(VehicleBase):
    """Schema for creating a vehicle."""
    customer_id: Optional[int] = None


class VehicleUpdate(VehicleBase):
    """Schema for updating a vehicle. Null fields keep their stored value."""
    pass


class VehicleResponse(BaseModel):
    id: int
    customer_id: int
    make: Optional[str] = None
    model: Optional[str] = None
    year: Optional[str] = None
    license_plate: Optional[str] = None
    archived: bool = False
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    class Config:
        from_attributes = True
