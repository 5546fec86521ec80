from fastapi import APIRouter, HTTPException, status
from sqlalchemy import select

from workshop.api.deps import DbSession
from workshop.database import transaction
from workshop.models.customer import Customer
from workshop.schemas.customer import CustomerCreate, CustomerUpdate, CustomerResponse

router = APIRouter()


async def _get_customer_or_404(db, customer_id: int) -> Customer:
    result = await db.execute(select(Customer).where(Customer.id == customer_id))
    customer = result.scalar_one_or_none()
    if not customer:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Customer not found",
        )
    return customer


@router.get("", response_model=list[CustomerResponse])
async def list_customers(db: DbSession):
    """List customers alphabetically."""
    result = await db.execute(select(Customer).order_by(Customer.name.asc()))
    return result.scalars().all()


@router.get("/{customer_id}", response_model=CustomerResponse)
async def get_customer(customer_id: int, db: DbSession):
    """Get a single customer by ID."""
    return await _get_customer_or_404(db, customer_id)


@router.post("", response_model=CustomerResponse, status_code=status.HTTP_201_CREATED)
async def create_customer(customer_data: CustomerCreate, db: DbSession):
    """Create a new customer."""
    if not customer_data.name or not customer_data.name.strip():
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Customer name is required")

    customer = Customer(**customer_data.model_dump())
    db.add(customer)
    await db.commit()
    await db.refresh(customer)
    return customer


@router.put("/{customer_id}", response_model=CustomerResponse)
async def update_customer(customer_id: int, customer_data: CustomerUpdate, db: DbSession):
    """Update a customer."""
    customer = await _get_customer_or_404(db, customer_id)

    # Null means "keep"
    for field, value in customer_data.model_dump(exclude_none=True).items():
        setattr(customer, field, value)

    await db.commit()
    await db.refresh(customer)
    return customer


@router.delete("/{customer_id}")
async def delete_customer(customer_id: int, db: DbSession):
    """Delete a customer. Customers with jobs or vehicles are refused with 409."""
    customer = await _get_customer_or_404(db, customer_id)
    async with transaction(db):
        await db.delete(customer)
    return {"message": "Customer deleted"}
