from pydantic import BaseModel
from datetime import datetime
from typing import Optional

from workshop.schemas.invoice import NumberInput


class ExpenseCreate(BaseModel):
    description: Optional[str] = None
    category: Optional[str] = None
    amount: NumberInput = None
    expense_date: Optional[datetime] = None
    payment_status: Optional[str] = None
    payment_method: Optional[str] = None
    remarks: Optional[str] = None


class ExpenseUpdate(ExpenseCreate):
    """Partial update, merged with the stored row and validated again."""
    pass


class ExpenseResponse(BaseModel):
    id: int
    description: str
    category: Optional[str] = None
    amount: float
    expense_date: Optional[datetime] = None
    payment_status: str
    payment_method: Optional[str] = None
    remarks: Optional[str] = None
    created_at: Optional[datetime] = None

    class Config:
        from_attributes = True
