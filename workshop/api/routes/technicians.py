from typing import Optional

from fastapi import APIRouter, HTTPException, status
from sqlalchemy import select

from workshop.api.deps import DbSession, Notifier
from workshop.database import transaction
from workshop.models.customer import Customer
from workshop.models.job import Job, JobTechnician, OPEN_JOB_STATUSES
from workshop.models.technician import Technician, TECHNICIAN_STATUSES
from workshop.models.vehicle import Vehicle
from workshop.schemas.technician import (
    TechnicianCreate,
    TechnicianUpdate,
    TechnicianResponse,
    TechnicianJobResponse,
)
from workshop.services.notifications import NotificationEvent

router = APIRouter()


def _technician_event(title: str, message: str) -> NotificationEvent:
    return NotificationEvent(title=title, message=message, type="technician")


def _invalid_status() -> HTTPException:
    return HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Invalid technician status")


async def _get_technician_or_404(db, technician_id: int) -> Technician:
    result = await db.execute(select(Technician).where(Technician.id == technician_id))
    technician = result.scalar_one_or_none()
    if not technician:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Technician not found")
    return technician


@router.post("", response_model=TechnicianResponse, status_code=status.HTTP_201_CREATED)
async def create_technician(data: TechnicianCreate, db: DbSession, notifier: Notifier):
    """Add a technician to the roster."""
    if not data.name or not data.name.strip():
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Technician name is required")
    if data.status not in TECHNICIAN_STATUSES:
        raise _invalid_status()

    technician = Technician(name=data.name.strip(), phone=data.phone, status=data.status)
    db.add(technician)
    await db.commit()
    await db.refresh(technician)

    notifier.publish([
        _technician_event(
            "Technician added",
            f"Technician {technician.name} added (status: {technician.status}).",
        )
    ])
    return technician


@router.get("", response_model=list[TechnicianResponse])
async def list_technicians(db: DbSession):
    result = await db.execute(select(Technician).order_by(Technician.name.asc()))
    return result.scalars().all()


@router.get("/{technician_id}", response_model=TechnicianResponse)
async def get_technician(technician_id: int, db: DbSession):
    return await _get_technician_or_404(db, technician_id)


@router.put("/{technician_id}", response_model=TechnicianResponse)
async def update_technician(
    technician_id: int,
    data: TechnicianUpdate,
    db: DbSession,
    notifier: Notifier,
):
    """Update a technician and announce what actually changed."""
    if data.status is not None and data.status not in TECHNICIAN_STATUSES:
        raise _invalid_status()

    technician = await _get_technician_or_404(db, technician_id)
    before = {"name": technician.name, "phone": technician.phone, "status": technician.status}

    for field, value in data.model_dump(exclude_none=True).items():
        setattr(technician, field, value)

    await db.commit()
    await db.refresh(technician)

    changes = []
    if technician.name != before["name"]:
        changes.append(f"name updated to {technician.name}")
    if "phone" in data.model_fields_set and technician.phone != before["phone"]:
        changes.append(f"contact set to {technician.phone}" if technician.phone else "contact number cleared")
    if technician.status != before["status"]:
        changes.append(f"status changed from {before['status']} to {technician.status}")

    if changes:
        notifier.publish([
            _technician_event("Technician updated", f"Technician {technician.name}: {', '.join(changes)}.")
        ])
    return technician


@router.delete("/{technician_id}")
async def delete_technician(technician_id: int, db: DbSession, notifier: Notifier):
    """Remove a technician. Technicians still assigned to jobs are refused with 409."""
    technician = await _get_technician_or_404(db, technician_id)
    name = technician.name

    async with transaction(db):
        await db.delete(technician)

    notifier.publish([
        _technician_event("Technician removed", f"Technician {name} has been removed from the roster.")
    ])
    return {"message": "Technician deleted"}


@router.get("/{technician_id}/jobs", response_model=list[TechnicianJobResponse])
async def list_technician_jobs(
    technician_id: int,
    db: DbSession,
    include_completed: Optional[str] = None,
):
    """Jobs assigned to a technician. Only open jobs unless include_completed is set."""
    query = (
        select(Job, Customer.name, Vehicle.make, Vehicle.model)
        .join(JobTechnician, JobTechnician.job_id == Job.id)
        .outerjoin(Customer, Customer.id == Job.customer_id)
        .outerjoin(Vehicle, Vehicle.id == Job.vehicle_id)
        .where(JobTechnician.technician_id == technician_id)
    )
    if include_completed not in ("1", "true", "yes"):
        query = query.where(Job.job_status.in_(OPEN_JOB_STATUSES))

    result = await db.execute(query.order_by(Job.created_at.desc(), Job.id.desc()))

    jobs = []
    for job, customer_name, make, model in result.all():
        vehicle_name = " ".join(part for part in (make, model) if part) or None
        jobs.append(
            TechnicianJobResponse(
                id=job.id,
                customer_id=job.customer_id,
                vehicle_id=job.vehicle_id,
                description=job.description,
                category=job.category,
                job_status=job.job_status,
                status_changed_at=job.status_changed_at,
                created_at=job.created_at,
                customer_name=customer_name,
                vehicle_name=vehicle_name,
            )
        )
    return jobs
