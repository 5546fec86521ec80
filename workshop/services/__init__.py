# Services module
from workshop.services.invoice_ledger import InvoiceLedger
from workshop.services.notifications import NotificationDispatcher, NotificationEvent
from workshop.services.stock_ledger import StockLedger

__all__ = [
    "InvoiceLedger",
    "NotificationDispatcher",
    "NotificationEvent",
    # Inventory
    "StockLedger",
]
