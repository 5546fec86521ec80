from pydantic import BaseModel, Field
from datetime import datetime
from typing import Optional


class CustomerBase(BaseModel):
    """Base customer schema."""
    name: Optional[str] = Field(None, max_length=255)
    phone: Optional[str] = Field(None, max_length=50)
    email: Optional[str] = Field(None, max_length=255)
    address: Optional[str] = None


class CustomerCreate(CustomerBase):
    """Schema for creating a customer. A missing name is reported as 400."""
    pass


class CustomerUpdate(CustomerBase):
    """Schema for updating a customer. Null fields keep their stored value."""
    pass


class CustomerResponse(CustomerBase):
    """Schema for customer response."""
    id: int
    name: str
    created_at: Optional[datetime] = None

    class Config:
        from_attributes = True
