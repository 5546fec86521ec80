from typing import Optional

from fastapi import APIRouter, HTTPException, status
from sqlalchemy import select

from workshop.api.deps import DbSession
from workshop.models.job import Job, OPEN_JOB_STATUSES
from workshop.models.vehicle import Vehicle
from workshop.schemas.vehicle import VehicleCreate, VehicleUpdate, VehicleResponse

router = APIRouter()


def _truthy_flag(value: Optional[str]) -> bool:
    return bool(value) and value not in ("0", "false")


async def _get_vehicle_or_404(db, vehicle_id: int) -> Vehicle:
    result = await db.execute(select(Vehicle).where(Vehicle.id == vehicle_id))
    vehicle = result.scalar_one_or_none()
    if not vehicle:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Vehicle not found")
    return vehicle


@router.post("", response_model=VehicleResponse, status_code=status.HTTP_201_CREATED)
async def create_vehicle(vehicle_data: VehicleCreate, db: DbSession):
    """Register a vehicle for a customer."""
    if not vehicle_data.customer_id or not vehicle_data.make or not vehicle_data.model:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="customer_id, make and model are required",
        )

    data = vehicle_data.model_dump()
    if data["year"] is not None:
        data["year"] = str(data["year"])
    vehicle = Vehicle(**data)
    db.add(vehicle)
    await db.commit()
    await db.refresh(vehicle)
    return vehicle


@router.get("", response_model=list[VehicleResponse])
async def list_vehicles(
    db: DbSession,
    customer_id: Optional[int] = None,
    include_archived: Optional[str] = None,
):
    """List vehicles, newest first. Archived vehicles only on request."""
    query = select(Vehicle)
    if customer_id:
        query = query.where(Vehicle.customer_id == customer_id)
    if not _truthy_flag(include_archived):
        query = query.where(Vehicle.archived.is_(False))

    result = await db.execute(query.order_by(Vehicle.id.desc()))
    return result.scalars().all()


@router.get("/{vehicle_id}", response_model=VehicleResponse)
async def get_vehicle(vehicle_id: int, db: DbSession):
    return await _get_vehicle_or_404(db, vehicle_id)


@router.put("/{vehicle_id}", response_model=VehicleResponse)
async def update_vehicle(vehicle_id: int, vehicle_data: VehicleUpdate, db: DbSession):
    vehicle = await _get_vehicle_or_404(db, vehicle_id)

    for field, value in vehicle_data.model_dump(exclude_none=True).items():
        setattr(vehicle, field, str(value) if field == "year" else value)

    await db.commit()
    await db.refresh(vehicle)
    return vehicle


@router.delete("/{vehicle_id}")
async def delete_vehicle(vehicle_id: int, db: DbSession):
    """Archive (unassign) a vehicle. Refused while one of its jobs is still open."""
    open_job = (
        await db.execute(
            select(Job.id, Job.job_status)
            .where(Job.vehicle_id == vehicle_id, Job.job_status.in_(OPEN_JOB_STATUSES))
            .limit(1)
        )
    ).first()
    if open_job:
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail=(
                f"Vehicle cannot be unassigned while job #{open_job.id} is "
                f"{open_job.job_status.lower()}. Complete or cancel the job first."
            ),
        )

    vehicle = await _get_vehicle_or_404(db, vehicle_id)
    vehicle.archived = True
    await db.commit()
    return {"message": "Vehicle unassigned"}
