from pydantic import BaseModel, Field
from datetime import datetime
from typing import Optional

from workshop.schemas.invoice import NumberInput


class SupplierBase(BaseModel):
    name: Optional[str] = Field(None, max_length=255)
    contact_name: Optional[str] = Field(None, max_length=255)
    phone: Optional[str] = Field(None, max_length=50)
    email: Optional[str] = Field(None, max_length=255)
    address: Optional[str] = None
    notes: Optional[str] = None


class SupplierCreate(SupplierBase):
    pass


class SupplierUpdate(SupplierBase):
    """Null fields keep their stored value."""
    pass


class SupplierResponse(SupplierBase):
    id: int
    name: str
    created_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class PurchaseCreate(BaseModel):
    """Stock intake. A linked consumable item is restocked by `quantity`."""
    inventory_item_id: Optional[int] = None
    item_name: Optional[str] = None
    quantity: NumberInput = 0
    unit_cost: NumberInput = 0
    payment_status: str = "unpaid"
    payment_method: Optional[str] = None
    purchase_date: Optional[datetime] = None
    notes: Optional[str] = None


class PurchaseCreated(BaseModel):
    id: int


class PurchaseResponse(BaseModel):
    id: int
    supplier_id: int
    inventory_item_id: Optional[int] = None
    item_name: str
    quantity: Optional[float] = None
    unit_cost: Optional[float] = None
    payment_status: str
    payment_method: Optional[str] = None
    purchase_date: Optional[datetime] = None
    notes: Optional[str] = None
    created_at: Optional[datetime] = None

    class Config:
        from_attributes = True
