"""Job helpers shared by the job routes and the job-completion invoice path.

Job items are estimates: they are validated and priced like invoice lines but
never touch stock. Stock only moves once the items become invoice lines.
"""

from typing import Any, List, Optional, Sequence

from sqlalchemy import delete, func, select
from sqlalchemy.ext.asyncio import AsyncSession

from workshop.exceptions import ValidationError
from workshop.models.customer import Customer
from workshop.models.inventory import INVENTORY_TYPES, InventoryItem
from workshop.models.invoice import Invoice
from workshop.models.job import JOB_STATUSES, Job, JobItem, JobTechnician
from workshop.models.technician import Technician
from workshop.models.vehicle import Vehicle
from workshop.schemas.invoice import InvoiceLineInput
from workshop.schemas.job import JobItemInput
from workshop.schemas.technician import TechnicianResponse
from workshop.schemas.vehicle import VehicleResponse
from workshop.services.amounts import parse_number, round_currency
from workshop.services.stock_ledger import StockLedger

CATEGORY_MAX_LENGTH = 100
INVALID_ITEM_TYPE_MESSAGE = "item_type must be one of 'consumable', 'non-consumable', or 'bulk'"


def normalize_ids(value: Any) -> List[int]:
    if value is None or value == "":
        return []
    if isinstance(value, (list, tuple)):
        return list(value)
    return [value]


def normalize_category(value: Optional[str]) -> Optional[str]:
    if isinstance(value, str) and value.strip():
        return value.strip()[:CATEGORY_MAX_LENGTH]
    return None


async def prepare_job_items(db: AsyncSession, job_id: int, items: Optional[Sequence[JobItemInput]]) -> List[JobItem]:
    """Validate, price and add job items to the session. The caller flushes."""
    stock = StockLedger(db)
    prepared = []

    for raw in items or []:
        if not raw.item_name and not raw.inventory_item_id:
            raise ValidationError("Each job item requires an item_name or inventory_item_id")

        quantity = parse_number(raw.quantity, "quantity")
        unit_price = parse_number(raw.unit_price if raw.unit_price is not None else raw.price, "unit_price")

        name = raw.item_name
        item_type = raw.item_type
        if raw.inventory_item_id:
            inventory_item = await stock.require(raw.inventory_item_id)
            name = name or inventory_item.name
            item_type = item_type or inventory_item.type
        else:
            item_type = item_type or "consumable"

        if item_type not in INVENTORY_TYPES:
            raise ValidationError(INVALID_ITEM_TYPE_MESSAGE)

        job_item = JobItem(
            job_id=job_id,
            inventory_item_id=raw.inventory_item_id or None,
            item_name=name,
            item_type=item_type,
            quantity=quantity,
            unit_price=unit_price,
            line_total=round_currency(quantity * unit_price),
        )
        db.add(job_item)
        prepared.append(job_item)

    return prepared


async def replace_technicians(db: AsyncSession, job_id: int, technician_ids: Any) -> None:
    await db.execute(delete(JobTechnician).where(JobTechnician.job_id == job_id))
    for technician_id in normalize_ids(technician_ids):
        db.add(JobTechnician(job_id=job_id, technician_id=technician_id))


async def job_items_as_invoice_lines(db: AsyncSession, job_id: int) -> List[InvoiceLineInput]:
    result = await db.execute(
        select(JobItem).where(JobItem.job_id == job_id).order_by(JobItem.id.asc())
    )
    lines = []
    for item in result.scalars().all():
        quantity = item.quantity or 1
        unit_price = item.unit_price
        if unit_price is None:
            unit_price = (item.line_total or 0) / quantity
        lines.append(
            InvoiceLineInput(
                inventory_item_id=item.inventory_item_id,
                item_name=item.item_name,
                type=item.item_type or "consumable",
                quantity=quantity,
                unit_price=unit_price,
            )
        )
    return lines


def _job_row(job: Job, customer_name, vehicle: Optional[Vehicle]) -> dict:
    return {
        "id": job.id,
        "customer_id": job.customer_id,
        "vehicle_id": job.vehicle_id,
        "description": job.description,
        "notes": job.notes,
        "category": job.category,
        "initial_amount": job.initial_amount,
        "advance_amount": job.advance_amount,
        "mileage": job.mileage,
        "job_status": job.job_status,
        "status_changed_at": job.status_changed_at,
        "invoice_created": job.invoice_created,
        "created_at": job.created_at,
        "updated_at": job.updated_at,
        "customer_name": customer_name,
        "vehicle_make": vehicle.make if vehicle else None,
        "vehicle_model": vehicle.model if vehicle else None,
        "vehicle_year": vehicle.year if vehicle else None,
        "vehicle_license_plate": vehicle.license_plate if vehicle else None,
    }


def _job_query():
    return (
        select(Job, Customer.name, Vehicle)
        .outerjoin(Customer, Customer.id == Job.customer_id)
        .outerjoin(Vehicle, Vehicle.id == Job.vehicle_id)
        .execution_options(populate_existing=True)
    )


async def list_jobs(
    db: AsyncSession,
    status: Optional[str] = None,
    start_date: Optional[str] = None,
    end_date: Optional[str] = None,
    customer_id: Optional[int] = None,
) -> List[dict]:
    """Jobs newest first with customer, vehicle and technician display fields.

    An unknown status filter is ignored rather than rejected.
    """
    query = _job_query()
    if status and status in JOB_STATUSES:
        query = query.where(Job.job_status == status)
    if start_date:
        query = query.where(func.date(Job.created_at) >= func.date(start_date))
    if end_date:
        query = query.where(func.date(Job.created_at) <= func.date(end_date))
    if customer_id:
        query = query.where(Job.customer_id == customer_id)

    result = await db.execute(query.order_by(Job.created_at.desc(), Job.id.desc()))
    jobs = [_job_row(job, customer_name, vehicle) for job, customer_name, vehicle in result.all()]
    if not jobs:
        return []

    technician_rows = await db.execute(
        select(JobTechnician.job_id, Technician.id, Technician.name, Technician.status)
        .join(Technician, Technician.id == JobTechnician.technician_id)
        .where(JobTechnician.job_id.in_([job["id"] for job in jobs]))
        .order_by(Technician.name.asc())
    )
    by_job = {}
    for job_id, technician_id, name, technician_status in technician_rows.all():
        by_job.setdefault(job_id, []).append({"id": technician_id, "name": name, "status": technician_status})

    for job in jobs:
        job["technicians"] = by_job.get(job["id"], [])
    return jobs


async def load_job_details(db: AsyncSession, job_id: int) -> Optional[dict]:
    """Job with its vehicle, technicians, items and invoice summary."""
    row = (await db.execute(_job_query().where(Job.id == job_id))).first()
    if not row:
        return None

    job, customer_name, vehicle = row
    details = _job_row(job, customer_name, vehicle)
    details["vehicle"] = VehicleResponse.model_validate(vehicle) if vehicle else None

    technicians = await db.execute(
        select(Technician)
        .join(JobTechnician, JobTechnician.technician_id == Technician.id)
        .where(JobTechnician.job_id == job_id)
        .order_by(JobTechnician.id.asc())
    )
    details["technicians"] = [TechnicianResponse.model_validate(t) for t in technicians.scalars().all()]

    items = await db.execute(
        select(JobItem, InventoryItem.name)
        .outerjoin(InventoryItem, InventoryItem.id == JobItem.inventory_item_id)
        .where(JobItem.job_id == job_id)
        .order_by(JobItem.id.asc())
    )
    details["items"] = [
        {
            "id": item.id,
            "job_id": item.job_id,
            "inventory_item_id": item.inventory_item_id,
            "inventory_name": inventory_name,
            "item_name": item.item_name,
            "item_type": item.item_type,
            "quantity": item.quantity or 0,
            "unit_price": item.unit_price or 0,
            "line_total": item.line_total or 0,
        }
        for item, inventory_name in items.all()
    ]

    invoice = (
        await db.execute(
            select(Invoice.id, Invoice.invoice_no, Invoice.final_total, Invoice.payment_status)
            .where(Invoice.job_id == job_id)
        )
    ).first()
    details["invoice"] = dict(invoice._mapping) if invoice else None
    return details
