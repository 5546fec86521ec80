"""Invoice schemas for request/response validation.

Numeric request fields accept anything; the ledger parses them so bad
values come back as 400 with a field message. A non-list `items` is
ignored, a non-list `charges` or `reductions` counts as no entries, and
entries that are not objects are treated as empty ones.
"""

from pydantic import BaseModel, Field, field_validator
from typing import Any, Optional, List
from datetime import datetime

NumberInput = Any


def _objects_only(entries: list) -> list:
    return [entry if isinstance(entry, (dict, BaseModel)) else {} for entry in entries]


def _entries_or_empty(value: Any) -> Any:
    if value is None:
        return None
    if not isinstance(value, (list, tuple)):
        return []
    return _objects_only(list(value))


def _lines_or_absent(value: Any) -> Any:
    if not isinstance(value, (list, tuple)):
        return None
    return _objects_only(list(value))


class InvoiceLineInput(BaseModel):
    """Invoice line as sent by the dashboard."""

    inventory_item_id: Optional[int] = None
    item_name: Any = None
    type: Any = None
    quantity: NumberInput = 1
    unit_price: NumberInput = None
    price: NumberInput = Field(None, description="Alias of unit_price")


class ExtraEntryInput(BaseModel):
    """Charge or deduction entry."""

    label: Any = None
    amount: NumberInput = None


class InvoiceCreate(BaseModel):
    """Schema for creating an invoice for a completed job."""

    job_id: Optional[int] = None
    items: Optional[List[InvoiceLineInput]] = None
    charges: Optional[List[ExtraEntryInput]] = None
    reductions: Optional[List[ExtraEntryInput]] = None
    payment_method: Optional[str] = None
    payment_status: Optional[str] = "unpaid"
    notes: Optional[str] = None

    @field_validator("items", mode="before")
    @classmethod
    def coerce_items(cls, v):
        return _lines_or_absent(v)

    @field_validator("charges", "reductions", mode="before")
    @classmethod
    def coerce_extras(cls, v):
        return _entries_or_empty(v)


class InvoiceUpdate(BaseModel):
    """Schema for updating an invoice.

    `items` replaces every line when it is a list. `charges` and
    `reductions` replace their kind when present, and an explicit null
    clears it.
    """

    items: Optional[List[InvoiceLineInput]] = None
    charges: Optional[List[ExtraEntryInput]] = None
    reductions: Optional[List[ExtraEntryInput]] = None
    payment_method: Optional[str] = None
    payment_status: Optional[str] = None
    notes: Optional[str] = None

    @field_validator("items", mode="before")
    @classmethod
    def coerce_items(cls, v):
        return _lines_or_absent(v)

    @field_validator("charges", "reductions", mode="before")
    @classmethod
    def coerce_extras(cls, v):
        return _entries_or_empty(v)


class InvoiceEmailRequest(BaseModel):
    """Schema for emailing an invoice PDF."""

    to: Optional[str] = None
    subject: str = "Garage Invoice"
    message: Optional[str] = None


class InvoiceItemResponse(BaseModel):
    id: int
    invoice_id: int
    inventory_item_id: Optional[int] = None
    item_name: str
    type: str
    quantity: float
    unit_price: float
    line_total: float

    class Config:
        from_attributes = True


class InvoiceExtraItemResponse(BaseModel):
    id: int
    label: str
    type: str
    amount: float

    class Config:
        from_attributes = True


class InvoiceSummary(BaseModel):
    """Invoice row with the customer name, as listed on the invoices page."""

    id: int
    job_id: int
    invoice_no: str
    invoice_date: Optional[datetime] = None
    items_total: float
    total_charges: float
    total_deductions: float
    final_total: float
    payment_method: Optional[str] = None
    payment_status: str
    notes: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
    customer_name: Optional[str] = None


class InvoiceResponse(InvoiceSummary):
    """Full invoice with job, customer, lines and extras."""

    job_description: Optional[str] = None
    job_status: Optional[str] = None
    initial_amount: Optional[float] = None
    advance_amount: Optional[float] = None
    mileage: Optional[float] = None
    customer_id: Optional[int] = None
    customer_email: Optional[str] = None
    customer_phone: Optional[str] = None
    customer_address: Optional[str] = None
    items: List[InvoiceItemResponse] = []
    charges: List[InvoiceExtraItemResponse] = []
    reductions: List[InvoiceExtraItemResponse] = []
