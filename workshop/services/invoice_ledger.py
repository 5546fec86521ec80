"""Invoice Ledger - create, update and delete invoices as single units of work.

Each mutating operation runs inside one database transaction and keeps three
things consistent:

- the invoice totals, always derived from the invoice's lines and extras
- consumable inventory, deducted when lines are written and restocked when
  they are replaced or the invoice is deleted
- the notification trail, published only after the transaction commits

Any error inside the transaction rolls everything back and propagates
unchanged, so a failed create never leaves a partial invoice behind.
"""

import logging
from datetime import date, datetime, timezone
from typing import List, Optional, Sequence

from sqlalchemy import delete, func, select
from sqlalchemy.ext.asyncio import AsyncSession

from workshop.database import transaction
from workshop.exceptions import ConflictError, NotFoundError, ValidationError
from workshop.models.customer import Customer
from workshop.models.inventory import InventoryItem
from workshop.models.invoice import (
    PAYMENT_STATUSES,
    Invoice,
    InvoiceExtraItem,
    InvoiceItem,
    InvoiceSequence,
)
from workshop.models.job import Job
from workshop.schemas.invoice import ExtraEntryInput, InvoiceCreate, InvoiceLineInput, InvoiceUpdate
from workshop.services.amounts import format_quantity
from workshop.services.invoice_lines import (
    PreparedExtra,
    PreparedLine,
    Totals,
    compute_totals,
    prepare_extras,
    prepare_lines,
    with_job_defaults,
)
from workshop.services.notifications import NotificationDispatcher, NotificationEvent
from workshop.services.stock_ledger import StockLedger

logger = logging.getLogger(__name__)

INVOICE_PREFIX = "INV"


def _movement_summary(movements: Sequence[tuple[float, str]]) -> str:
    return ", ".join(f"{format_quantity(quantity)} x {name}" for quantity, name in movements)


class InvoiceLedger:
    """Invoice lifecycle for one request.

    `stage_invoice` does the create work without committing, for callers
    that need an invoice inside a larger transaction (job completion).
    Events from staged work go out with `publish_events` after commit.
    """

    def __init__(self, db: AsyncSession, notifier: NotificationDispatcher):
        self.db = db
        self.notifier = notifier
        self._events: List[NotificationEvent] = []
        self.stock = StockLedger(db, emit=self._events.append)

    def emit(self, event: NotificationEvent) -> None:
        self._events.append(event)

    def publish_events(self) -> None:
        events = list(self._events)
        self._events.clear()
        self.notifier.publish(events)

    def discard_events(self) -> None:
        self._events.clear()

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    async def get_invoice(self, invoice_id: int) -> Optional[Invoice]:
        result = await self.db.execute(
            select(Invoice)
            .where(Invoice.id == invoice_id)
            .execution_options(populate_existing=True)
        )
        return result.scalar_one_or_none()

    async def require_invoice(self, invoice_id: int) -> Invoice:
        invoice = await self.get_invoice(invoice_id)
        if not invoice:
            raise NotFoundError("Invoice not found")
        return invoice

    async def load_details(self, invoice_id: int) -> Optional[dict]:
        """Invoice joined with its job and customer, plus lines and extras in insertion order."""
        result = await self.db.execute(
            select(
                Invoice,
                Job.description,
                Job.job_status,
                Job.initial_amount,
                Job.advance_amount,
                Job.mileage,
                Customer.id,
                Customer.name,
                Customer.email,
                Customer.phone,
                Customer.address,
            )
            .outerjoin(Job, Job.id == Invoice.job_id)
            .outerjoin(Customer, Customer.id == Job.customer_id)
            .where(Invoice.id == invoice_id)
            .execution_options(populate_existing=True)
        )
        row = result.first()
        if not row:
            return None

        invoice = row[0]
        items = (
            await self.db.execute(
                select(InvoiceItem)
                .where(InvoiceItem.invoice_id == invoice_id)
                .order_by(InvoiceItem.id.asc())
                .execution_options(populate_existing=True)
            )
        ).scalars().all()
        extras = (
            await self.db.execute(
                select(InvoiceExtraItem)
                .where(InvoiceExtraItem.invoice_id == invoice_id)
                .order_by(InvoiceExtraItem.id.asc())
                .execution_options(populate_existing=True)
            )
        ).scalars().all()

        details = invoice_to_dict(invoice)
        details.update(
            job_description=row[1],
            job_status=row[2],
            initial_amount=row[3],
            advance_amount=row[4],
            mileage=row[5],
            customer_id=row[6],
            customer_name=row[7],
            customer_email=row[8],
            customer_phone=row[9],
            customer_address=row[10],
            items=[line_to_dict(item) for item in items],
            charges=[extra_to_dict(extra) for extra in extras if extra.type == "charge"],
            reductions=[extra_to_dict(extra) for extra in extras if extra.type == "deduction"],
        )
        return details

    async def list_invoices(
        self,
        start_date: Optional[str] = None,
        end_date: Optional[str] = None,
        job_id: Optional[int] = None,
    ) -> List[dict]:
        query = (
            select(Invoice, Customer.name)
            .outerjoin(Job, Job.id == Invoice.job_id)
            .outerjoin(Customer, Customer.id == Job.customer_id)
        )
        if start_date:
            query = query.where(func.date(Invoice.invoice_date) >= func.date(start_date))
        if end_date:
            query = query.where(func.date(Invoice.invoice_date) <= func.date(end_date))
        if job_id:
            query = query.where(Invoice.job_id == job_id)

        query = query.order_by(Invoice.invoice_date.desc(), Invoice.id.desc())
        result = await self.db.execute(query.execution_options(populate_existing=True))

        invoices = []
        for invoice, customer_name in result.all():
            data = invoice_to_dict(invoice)
            data["customer_name"] = customer_name
            invoices.append(data)
        return invoices

    # ------------------------------------------------------------------
    # Numbering and totals
    # ------------------------------------------------------------------

    async def next_invoice_number(self, today: Optional[date] = None) -> str:
        """Next `INV-YYYYMMDD-NNNN` for the (UTC) day.

        The per-day counter row is incremented inside the caller's
        transaction, so the write lock serializes concurrent creators. A day
        without a counter row starts after the highest number already issued
        for it.
        """
        day = (today or datetime.now(timezone.utc).date()).strftime("%Y%m%d")
        prefix = f"{INVOICE_PREFIX}-{day}-"

        sequence = await self.db.get(InvoiceSequence, day)
        if sequence is None:
            latest = await self.db.scalar(
                select(Invoice.invoice_no)
                .where(Invoice.invoice_no.like(f"{prefix}%"))
                .order_by(Invoice.invoice_no.desc())
                .limit(1)
            )
            last_value = 0
            if latest:
                tail = latest.rsplit("-", 1)[-1]
                if tail.isdigit():
                    last_value = int(tail)
            sequence = InvoiceSequence(day=day, last_value=last_value)
            self.db.add(sequence)

        sequence.last_value += 1
        await self.db.flush()
        return f"{prefix}{sequence.last_value:04d}"

    async def recalculate_totals(self, invoice_id: int) -> Totals:
        """Totals from the persisted lines and extras of an invoice."""
        items_sum = await self.db.scalar(
            select(func.coalesce(func.sum(InvoiceItem.line_total), 0))
            .where(InvoiceItem.invoice_id == invoice_id)
        )
        charges_sum = await self.db.scalar(
            select(func.coalesce(func.sum(InvoiceExtraItem.amount), 0))
            .where(InvoiceExtraItem.invoice_id == invoice_id, InvoiceExtraItem.type == "charge")
        )
        deductions_sum = await self.db.scalar(
            select(func.coalesce(func.sum(InvoiceExtraItem.amount), 0))
            .where(InvoiceExtraItem.invoice_id == invoice_id, InvoiceExtraItem.type == "deduction")
        )
        return Totals.from_sums(items_sum, charges_sum, deductions_sum)

    # ------------------------------------------------------------------
    # Line and extra persistence
    # ------------------------------------------------------------------

    async def _insert_lines(self, invoice: Invoice, lines: Sequence[PreparedLine]) -> None:
        movements = []
        for line in lines:
            self.db.add(
                InvoiceItem(
                    invoice_id=invoice.id,
                    inventory_item_id=line.inventory_item_id,
                    item_name=line.item_name,
                    type=line.type,
                    quantity=line.quantity,
                    unit_price=line.unit_price,
                    line_total=line.line_total,
                )
            )
            if line.deducts_stock:
                await self.stock.deduct(line.inventory_item_id, line.quantity)
                movements.append((line.quantity, line.item_name))

        await self.db.flush()

        if movements:
            self.emit(
                NotificationEvent(
                    title="Inventory used",
                    message=f"{_movement_summary(movements)} deducted for invoice {invoice.invoice_no}.",
                    type="stock-usage",
                )
            )

    async def _restock_lines(self, invoice: Invoice, reason: str) -> None:
        """Return every consumable inventory line of the invoice to stock."""
        result = await self.db.execute(
            select(InvoiceItem.inventory_item_id, InvoiceItem.quantity, InventoryItem.name)
            .outerjoin(InventoryItem, InventoryItem.id == InvoiceItem.inventory_item_id)
            .where(
                InvoiceItem.invoice_id == invoice.id,
                InvoiceItem.inventory_item_id.is_not(None),
                InvoiceItem.type == "consumable",
            )
            .order_by(InvoiceItem.id.asc())
        )
        movements = []
        for item_id, quantity, name in result.all():
            await self.stock.restock(item_id, quantity)
            movements.append((quantity, name or f"Item #{item_id}"))

        if movements:
            self.emit(
                NotificationEvent(
                    title="Inventory restocked",
                    message=(
                        f"{_movement_summary(movements)} from invoice {invoice.invoice_no} "
                        f"due to {reason}."
                    ),
                    type="stock-add",
                )
            )

    async def _insert_extras(self, invoice: Invoice, extras: Sequence[PreparedExtra]) -> None:
        for extra in extras:
            self.db.add(
                InvoiceExtraItem(
                    invoice_id=invoice.id,
                    label=extra.label,
                    type=extra.type,
                    amount=extra.amount,
                )
            )
        await self.db.flush()

    async def _replace_extras(self, invoice: Invoice, kind: str, entries: Optional[Sequence[ExtraEntryInput]]) -> None:
        prepared = prepare_extras(entries, kind)
        await self.db.execute(
            delete(InvoiceExtraItem).where(
                InvoiceExtraItem.invoice_id == invoice.id,
                InvoiceExtraItem.type == kind,
            )
        )
        await self._insert_extras(invoice, prepared)

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    async def stage_invoice(
        self,
        job: Job,
        items: Optional[Sequence[InvoiceLineInput]] = None,
        charges: Optional[Sequence[ExtraEntryInput]] = None,
        reductions: Optional[Sequence[ExtraEntryInput]] = None,
        payment_method: Optional[str] = None,
        payment_status: str = "unpaid",
        notes: Optional[str] = None,
    ) -> Invoice:
        """Write a new invoice for `job` without committing."""
        if job.job_status != "Completed":
            raise ValidationError("Invoice can only be created when the job status is Completed")

        existing = await self.db.scalar(select(Invoice.id).where(Invoice.job_id == job.id))
        if existing:
            raise ConflictError("An invoice already exists for this job")

        lines = await prepare_lines(self.db, items)
        charges, reductions = with_job_defaults(job, charges, reductions)
        prepared_charges = prepare_extras(charges, "charge")
        prepared_reductions = prepare_extras(reductions, "deduction")
        totals = compute_totals(lines, prepared_charges, prepared_reductions)

        invoice = Invoice(
            job_id=job.id,
            invoice_no=await self.next_invoice_number(),
            items_total=totals.items_total,
            total_charges=totals.total_charges,
            total_deductions=totals.total_deductions,
            final_total=totals.final_total,
            payment_method=payment_method,
            payment_status=payment_status,
            notes=notes,
        )
        self.db.add(invoice)
        await self.db.flush()

        await self._insert_lines(invoice, lines)
        await self._insert_extras(invoice, [*prepared_charges, *prepared_reductions])
        job.invoice_created = True

        self.emit(
            NotificationEvent(
                title="Invoice created",
                message=f"Invoice {invoice.invoice_no} created for job #{job.id}.",
                type="invoice",
            )
        )
        logger.info("Invoice %s staged for job %s (final total %s)", invoice.invoice_no, job.id, totals.final_total)
        return invoice

    async def create_invoice(self, data: InvoiceCreate) -> int:
        if not data.job_id:
            raise ValidationError("job_id is required")
        if data.payment_status not in PAYMENT_STATUSES:
            raise ValidationError("Invalid payment status value")

        try:
            async with transaction(self.db):
                job = await self.db.get(Job, data.job_id)
                if not job:
                    raise NotFoundError("Job not found")
                invoice = await self.stage_invoice(
                    job,
                    items=data.items,
                    charges=data.charges,
                    reductions=data.reductions,
                    payment_method=data.payment_method,
                    payment_status=data.payment_status,
                    notes=data.notes,
                )
                invoice_id = invoice.id
        except Exception:
            self.discard_events()
            raise

        self.publish_events()
        return invoice_id

    async def update_invoice(self, invoice_id: int, data: InvoiceUpdate) -> int:
        if data.payment_status and data.payment_status not in PAYMENT_STATUSES:
            raise ValidationError("Invalid payment status value")

        supplied = data.model_fields_set
        try:
            async with transaction(self.db):
                invoice = await self.require_invoice(invoice_id)
                became_paid = data.payment_status == "paid" and invoice.payment_status != "paid"

                if data.items is not None:
                    await self._restock_lines(invoice, "invoice update")
                    await self.db.execute(delete(InvoiceItem).where(InvoiceItem.invoice_id == invoice.id))
                    lines = await prepare_lines(self.db, data.items)
                    await self._insert_lines(invoice, lines)

                if "charges" in supplied:
                    await self._replace_extras(invoice, "charge", data.charges)
                if "reductions" in supplied:
                    await self._replace_extras(invoice, "deduction", data.reductions)

                totals = await self.recalculate_totals(invoice.id)
                if data.payment_method is not None:
                    invoice.payment_method = data.payment_method
                if data.payment_status is not None:
                    invoice.payment_status = data.payment_status
                if data.notes is not None:
                    invoice.notes = data.notes
                invoice.items_total = totals.items_total
                invoice.total_charges = totals.total_charges
                invoice.total_deductions = totals.total_deductions
                invoice.final_total = totals.final_total

                if became_paid:
                    self.emit(
                        NotificationEvent(
                            title="Invoice paid",
                            message=f"Invoice {invoice.invoice_no} marked as paid.",
                            type="payment",
                        )
                    )
        except Exception:
            self.discard_events()
            raise

        self.publish_events()
        return invoice_id

    async def delete_invoice(self, invoice_id: int) -> None:
        try:
            async with transaction(self.db):
                invoice = await self.require_invoice(invoice_id)
                invoice_no = invoice.invoice_no

                await self._restock_lines(invoice, "invoice deletion")
                await self.db.execute(delete(InvoiceExtraItem).where(InvoiceExtraItem.invoice_id == invoice.id))
                await self.db.execute(delete(InvoiceItem).where(InvoiceItem.invoice_id == invoice.id))
                job = await self.db.get(Job, invoice.job_id)
                await self.db.delete(invoice)
                if job:
                    job.invoice_created = False

                self.emit(
                    NotificationEvent(
                        title="Invoice deleted",
                        message=f"Invoice {invoice_no} deleted.",
                        type="invoice",
                    )
                )
        except Exception:
            self.discard_events()
            raise

        self.publish_events()
        logger.info("Invoice %s deleted", invoice_no)


def invoice_to_dict(invoice: Invoice) -> dict:
    return {
        "id": invoice.id,
        "job_id": invoice.job_id,
        "invoice_no": invoice.invoice_no,
        "invoice_date": invoice.invoice_date,
        "items_total": invoice.items_total,
        "total_charges": invoice.total_charges,
        "total_deductions": invoice.total_deductions,
        "final_total": invoice.final_total,
        "payment_method": invoice.payment_method,
        "payment_status": invoice.payment_status,
        "notes": invoice.notes,
        "created_at": invoice.created_at,
        "updated_at": invoice.updated_at,
    }


def line_to_dict(item: InvoiceItem) -> dict:
    return {
        "id": item.id,
        "invoice_id": item.invoice_id,
        "inventory_item_id": item.inventory_item_id,
        "item_name": item.item_name,
        "type": item.type,
        "quantity": item.quantity,
        "unit_price": item.unit_price,
        "line_total": item.line_total,
    }


def extra_to_dict(extra: InvoiceExtraItem) -> dict:
    return {
        "id": extra.id,
        "label": extra.label,
        "type": extra.type,
        "amount": extra.amount,
    }
