from fastapi import APIRouter
from workshop.api.routes import (
    customers,
    vehicles,
    technicians,
    jobs,
    inventory,
    invoices,
    suppliers,
    expenses,
    notifications,
)

api_router = APIRouter()

api_router.include_router(customers.router, prefix="/customers", tags=["customers"])
api_router.include_router(vehicles.router, prefix="/vehicles", tags=["vehicles"])
api_router.include_router(technicians.router, prefix="/technicians", tags=["technicians"])
api_router.include_router(jobs.router, prefix="/jobs", tags=["jobs"])
api_router.include_router(inventory.router, prefix="/inventory", tags=["inventory"])
api_router.include_router(invoices.router, prefix="/invoices", tags=["invoices"])
api_router.include_router(suppliers.router, prefix="/suppliers", tags=["suppliers"])
api_router.include_router(expenses.router, prefix="/expenses", tags=["expenses"])
api_router.include_router(notifications.router, prefix="/notifications", tags=["notifications"])
