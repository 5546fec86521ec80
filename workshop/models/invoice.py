from sqlalchemy import Column, Integer, String, DateTime, Text, ForeignKey, Float
from sqlalchemy.sql import func
from workshop.database import Base

PAYMENT_STATUSES = ("unpaid", "partial", "paid")
INVOICE_ITEM_TYPES = ("consumable", "non-consumable", "bulk")
EXTRA_ITEM_TYPES = ("charge", "deduction")


class Invoice(Base):
    """Invoice for a completed job.

    The four totals are derived from the invoice's lines and extra items
    and are rewritten whenever those change.
    """

    __tablename__ = "invoices"

    id = Column(Integer, primary_key=True, index=True)
    job_id = Column(Integer, ForeignKey("jobs.id"), unique=True, nullable=False)
    invoice_no = Column(String(20), unique=True, index=True, nullable=False)
    invoice_date = Column(DateTime(timezone=True), server_default=func.now())

    items_total = Column(Float, default=0, nullable=False)
    total_charges = Column(Float, default=0, nullable=False)
    total_deductions = Column(Float, default=0, nullable=False)
    final_total = Column(Float, default=0, nullable=False)

    payment_method = Column(String(50))
    payment_status = Column(String(20), default="unpaid", nullable=False)
    notes = Column(Text)

    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    def __repr__(self):
        return f"<Invoice {self.invoice_no}>"


class InvoiceItem(Base):
    """Invoice line, optionally drawn from inventory."""

    __tablename__ = "invoice_items"

    id = Column(Integer, primary_key=True)
    invoice_id = Column(Integer, ForeignKey("invoices.id"), nullable=False, index=True)
    inventory_item_id = Column(Integer, ForeignKey("inventory_items.id"), nullable=True)
    item_name = Column(String(255), nullable=False)
    type = Column(String(20), nullable=False)
    quantity = Column(Float, default=1, nullable=False)
    unit_price = Column(Float, default=0, nullable=False)
    line_total = Column(Float, default=0, nullable=False)


class InvoiceExtraItem(Base):
    """Charge or deduction applied on top of the invoice lines."""

    __tablename__ = "invoice_extra_items"

    id = Column(Integer, primary_key=True)
    invoice_id = Column(Integer, ForeignKey("invoices.id"), nullable=False, index=True)
    label = Column(String(255), nullable=False)
    type = Column(String(20), nullable=False)
    amount = Column(Float, default=0, nullable=False)


class InvoiceSequence(Base):
    """Per-day invoice number counter (day is YYYYMMDD)."""

    __tablename__ = "invoice_sequences"

    day = Column(String(8), primary_key=True)
    last_value = Column(Integer, default=0, nullable=False)
