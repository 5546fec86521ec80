"""
Jobs API - work orders for customer vehicles.

Creating a job can register its vehicle, assign technicians and record
estimated items in one transaction. Completing a job with `create_invoice`
issues its invoice through the invoice ledger inside the same transaction.
"""

import logging
from typing import Optional

from fastapi import APIRouter, HTTPException, Query, status
from sqlalchemy import delete, func, select

from workshop.api.deps import DbSession, Ledger
from workshop.database import transaction
from workshop.exceptions import ValidationError
from workshop.models.invoice import Invoice
from workshop.models.job import JOB_STATUSES, Job, JobItem, JobTechnician
from workshop.models.vehicle import Vehicle
from workshop.schemas.invoice import InvoiceResponse
from workshop.schemas.job import JobCreate, JobUpdate, JobResponse, JobDetailResponse
from workshop.services.amounts import parse_nullable_number
from workshop.services.jobs import (
    job_items_as_invoice_lines,
    list_jobs as query_jobs,
    load_job_details,
    normalize_category,
    prepare_job_items,
    replace_technicians,
)
from workshop.services.notifications import NotificationEvent

logger = logging.getLogger(__name__)

router = APIRouter()


def _invalid_status() -> HTTPException:
    return HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Invalid job status value")


async def _get_job_or_404(db, job_id: int) -> Job:
    result = await db.execute(
        select(Job).where(Job.id == job_id).execution_options(populate_existing=True)
    )
    job = result.scalar_one_or_none()
    if not job:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Job not found")
    return job


@router.post("", response_model=JobDetailResponse, status_code=status.HTTP_201_CREATED)
async def create_job(data: JobCreate, db: DbSession, ledger: Ledger):
    """Create a job, optionally with a new vehicle, technicians and items."""
    if not data.customer_id or not data.description:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="customer_id and description are required",
        )
    if data.job_status not in JOB_STATUSES:
        raise _invalid_status()

    async with transaction(db):
        vehicle_id = data.vehicle_id
        if not vehicle_id and data.vehicle:
            if not data.vehicle.make or not data.vehicle.model:
                raise ValidationError("Vehicle make and model are required when creating a new vehicle")
            vehicle = Vehicle(
                customer_id=data.customer_id,
                make=data.vehicle.make,
                model=data.vehicle.model,
                year=str(data.vehicle.year) if data.vehicle.year is not None else None,
                license_plate=data.vehicle.license_plate,
            )
            db.add(vehicle)
            await db.flush()
            vehicle_id = vehicle.id

        job = Job(
            customer_id=data.customer_id,
            vehicle_id=vehicle_id,
            description=data.description,
            notes=data.notes,
            category=normalize_category(data.category),
            initial_amount=parse_nullable_number(data.initial_amount, "initial_amount"),
            advance_amount=parse_nullable_number(data.advance_amount, "advance_amount"),
            mileage=parse_nullable_number(data.mileage, "mileage"),
            job_status=data.job_status,
        )
        db.add(job)
        await db.flush()
        job_id = job.id

        await replace_technicians(db, job_id, data.technician_ids)
        await prepare_job_items(db, job_id, data.items)
        await db.flush()

    ledger.notifier.publish([
        NotificationEvent(
            title="Job created",
            message=f"Job #{job_id} created for customer #{data.customer_id}.",
            type="job",
        )
    ])
    logger.info("Job %s created for customer %s", job_id, data.customer_id)
    return await load_job_details(db, job_id)


@router.get("", response_model=list[JobResponse])
async def list_jobs(
    db: DbSession,
    status_filter: Optional[str] = Query(None, alias="status"),
    start_date: Optional[str] = Query(None, alias="startDate"),
    end_date: Optional[str] = Query(None, alias="endDate"),
    customer_id: Optional[int] = Query(None, alias="customerId"),
):
    """List jobs, newest first."""
    return await query_jobs(db, status_filter, start_date, end_date, customer_id)


@router.get("/{job_id}", response_model=JobDetailResponse)
async def get_job(job_id: int, db: DbSession):
    details = await load_job_details(db, job_id)
    if not details:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Job not found")
    return details


@router.put("/{job_id}", response_model=JobDetailResponse)
async def update_job(job_id: int, data: JobUpdate, db: DbSession, ledger: Ledger):
    """Update a job.

    With `create_invoice`, a Completed job that has an initial amount and no
    invoice yet gets one built from its items.
    """
    if data.job_status and data.job_status not in JOB_STATUSES:
        raise _invalid_status()

    supplied = data.model_fields_set
    await _get_job_or_404(db, job_id)

    try:
        async with transaction(db):
            job = await _get_job_or_404(db, job_id)
            previous_status = job.job_status

            if data.job_status is not None:
                job.job_status = data.job_status
            status_changed = job.job_status != previous_status

            if data.notes is not None:
                job.notes = data.notes
            if "category" in supplied:
                job.category = normalize_category(data.category)
            if "description" in supplied:
                description = data.description.strip() if isinstance(data.description, str) else ""
                if not description:
                    raise ValidationError("Description is required when updating a job.")
                job.description = description
            if "initial_amount" in supplied:
                job.initial_amount = parse_nullable_number(data.initial_amount, "initial_amount")
            if "advance_amount" in supplied:
                job.advance_amount = parse_nullable_number(data.advance_amount, "advance_amount")
            if "mileage" in supplied:
                job.mileage = parse_nullable_number(data.mileage, "mileage")

            if "technician_ids" in supplied:
                await replace_technicians(db, job_id, data.technician_ids)

            if data.items is not None:
                await db.execute(delete(JobItem).where(JobItem.job_id == job_id))
                await prepare_job_items(db, job_id, data.items)

            if status_changed:
                job.status_changed_at = func.now()
            await db.flush()

            if (
                data.create_invoice
                and job.job_status == "Completed"
                and not job.invoice_created
                and job.initial_amount is not None
            ):
                lines = await job_items_as_invoice_lines(db, job_id)
                await ledger.stage_invoice(job, items=lines, notes=job.notes)
    except Exception:
        ledger.discard_events()
        raise

    if status_changed:
        ledger.emit(
            NotificationEvent(
                title="Job status updated",
                message=f"Job #{job_id} marked as {data.job_status}.",
                type="job-status",
            )
        )
    ledger.publish_events()
    return await load_job_details(db, job_id)


@router.delete("/{job_id}")
async def delete_job(job_id: int, db: DbSession):
    """Delete a job with its items and technician links. Invoiced jobs are refused."""
    job = await _get_job_or_404(db, job_id)

    invoice_id = await db.scalar(select(Invoice.id).where(Invoice.job_id == job_id))
    if invoice_id:
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail="Job has an invoice. Delete the invoice before deleting the job.",
        )

    async with transaction(db):
        await db.execute(delete(JobItem).where(JobItem.job_id == job_id))
        await db.execute(delete(JobTechnician).where(JobTechnician.job_id == job_id))
        await db.delete(job)

    return {"message": "Job deleted"}


@router.get("/{job_id}/invoice", response_model=InvoiceResponse)
async def get_job_invoice(job_id: int, db: DbSession, ledger: Ledger):
    invoice_id = await db.scalar(select(Invoice.id).where(Invoice.job_id == job_id))
    details = await ledger.load_details(invoice_id) if invoice_id else None
    if not details:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="No invoice for this job")
    return details
