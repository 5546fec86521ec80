"""Job schemas for request/response validation."""

from pydantic import BaseModel, Field
from typing import Optional, List, Union
from datetime import datetime

from workshop.schemas.invoice import NumberInput
from workshop.schemas.technician import TechnicianResponse
from workshop.schemas.vehicle import VehicleResponse


class InlineVehicle(BaseModel):
    """Vehicle created together with the job."""
    make: Optional[str] = None
    model: Optional[str] = None
    year: Optional[Union[int, str]] = None
    license_plate: Optional[str] = None


class JobItemInput(BaseModel):
    """Estimated part or service line. Never moves stock."""
    inventory_item_id: Optional[int] = None
    item_name: Optional[str] = None
    item_type: Optional[str] = None
    quantity: NumberInput = 1
    unit_price: NumberInput = None
    price: NumberInput = Field(None, description="Alias of unit_price")


class JobCreate(BaseModel):
    customer_id: Optional[int] = None
    vehicle_id: Optional[int] = None
    vehicle: Optional[InlineVehicle] = None
    description: Optional[str] = None
    notes: Optional[str] = None
    category: Optional[str] = None
    initial_amount: NumberInput = None
    advance_amount: NumberInput = None
    mileage: NumberInput = None
    job_status: str = "Pending"
    technician_ids: Optional[Union[List[int], int]] = None
    items: Optional[List[JobItemInput]] = None


class JobUpdate(BaseModel):
    """Partial job update.

    Supplied-but-null `category`, `initial_amount`, `advance_amount` and
    `mileage` clear the stored value; omitted fields are kept.
    `technician_ids` and `items` replace the current set when present.
    """
    job_status: Optional[str] = None
    notes: Optional[str] = None
    description: Optional[str] = None
    category: Optional[str] = None
    initial_amount: NumberInput = None
    advance_amount: NumberInput = None
    mileage: NumberInput = None
    technician_ids: Optional[Union[List[int], int]] = None
    items: Optional[List[JobItemInput]] = None
    create_invoice: bool = False


class JobTechnicianSummary(BaseModel):
    id: int
    name: str
    status: str


class JobItemResponse(BaseModel):
    id: int
    job_id: int
    inventory_item_id: Optional[int] = None
    inventory_name: Optional[str] = None
    item_name: str
    item_type: str
    quantity: float
    unit_price: float
    line_total: float


class JobInvoiceSummary(BaseModel):
    id: int
    invoice_no: str
    final_total: float
    payment_status: str


class JobResponse(BaseModel):
    """Job row with customer and vehicle display fields, as listed on the jobs page."""
    id: int
    customer_id: int
    vehicle_id: Optional[int] = None
    description: str
    notes: Optional[str] = None
    category: Optional[str] = None
    initial_amount: Optional[float] = None
    advance_amount: Optional[float] = None
    mileage: Optional[float] = None
    job_status: str
    status_changed_at: Optional[datetime] = None
    invoice_created: bool = False
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
    customer_name: Optional[str] = None
    vehicle_make: Optional[str] = None
    vehicle_model: Optional[str] = None
    vehicle_year: Optional[str] = None
    vehicle_license_plate: Optional[str] = None
    technicians: List[JobTechnicianSummary] = []


class JobDetailResponse(JobResponse):
    vehicle: Optional[VehicleResponse] = None
    technicians: List[TechnicianResponse] = []
    items: List[JobItemResponse] = []
    invoice: Optional[JobInvoiceSummary] = None
