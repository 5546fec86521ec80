"""
Test factories for generating realistic request payloads.

Uses factory_boy for declarative test data generation.
"""

from .customer import CustomerFactory, VehicleFactory
from .technician import TechnicianFactory
from .inventory import InventoryItemFactory, BulkItemFactory
from .invoice import InvoiceLineFactory, ChargeFactory
from .job import JobFactory, JobItemFactory
from .supplier import SupplierFactory, PurchaseFactory
from .expense import ExpenseFactory, PaidExpenseFactory

__all__ = [
    "CustomerFactory",
    "VehicleFactory",
    "TechnicianFactory",
    "InventoryItemFactory",
    "BulkItemFactory",
    "InvoiceLineFactory",
    "ChargeFactory",
    "JobFactory",
    "JobItemFactory",
    "SupplierFactory",
    "PurchaseFactory",
    "ExpenseFactory",
    "PaidExpenseFactory",
]
