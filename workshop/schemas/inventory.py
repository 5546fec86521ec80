from pydantic import BaseModel
from datetime import datetime
from typing import Optional

from workshop.schemas.invoice import NumberInput


class InventoryItemCreate(BaseModel):
    """Schema for creating an inventory item."""
    name: Optional[str] = None
    description: Optional[str] = None
    type: Optional[str] = None
    unit: Optional[str] = None
    quantity: NumberInput = 0
    unit_cost: NumberInput = None
    reorder_level: NumberInput = 0


class InventoryItemUpdate(BaseModel):
    """Schema for updating an inventory item.

    Null fields keep their stored value, except `unit_cost`, which is cleared
    by an explicit null or blank.
    """
    name: Optional[str] = None
    description: Optional[str] = None
    type: Optional[str] = None
    unit: Optional[str] = None
    quantity: NumberInput = None
    unit_cost: NumberInput = None
    reorder_level: NumberInput = None


class StockDeduction(BaseModel):
    quantity: NumberInput = 0


class InventoryItemResponse(BaseModel):
    id: int
    name: str
    description: Optional[str] = None
    type: str
    unit: Optional[str] = None
    quantity: float
    unit_cost: Optional[float] = None
    reorder_level: float
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    class Config:
        from_attributes = True
