from workshop.models.customer import Customer
from workshop.models.vehicle import Vehicle
from workshop.models.technician import Technician
from workshop.models.job import Job, JobTechnician, JobItem
from workshop.models.inventory import InventoryItem
from workshop.models.invoice import Invoice, InvoiceItem, InvoiceExtraItem, InvoiceSequence
from workshop.models.supplier import Supplier, SupplierPurchase
from workshop.models.expense import Expense
from workshop.models.notification import Notification

__all__ = [
    "Customer",
    "Vehicle",
    "Technician",
    "Job",
    "JobTechnician",
    "JobItem",
    "InventoryItem",
    "Invoice",
    "InvoiceItem",
    "InvoiceExtraItem",
    "InvoiceSequence",
    "Supplier",
    "SupplierPurchase",
    "Expense",
    "Notification",
]
