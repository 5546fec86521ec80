"""Invoice line, extra item and totals composition.

Everything here is side-effect free: lines and extras are validated and
priced in full before the ledger writes anything, and the first invalid
entry raises.
"""

from dataclasses import dataclass
from typing import Dict, List, Optional, Sequence

from sqlalchemy.ext.asyncio import AsyncSession

from workshop.exceptions import InsufficientStockError, ValidationError
from workshop.models.inventory import InventoryItem
from workshop.models.invoice import EXTRA_ITEM_TYPES, INVOICE_ITEM_TYPES
from workshop.models.job import Job
from workshop.schemas.invoice import ExtraEntryInput, InvoiceLineInput
from workshop.services.amounts import parse_number, round_currency
from workshop.services.stock_ledger import StockLedger

INVALID_TYPE_MESSAGE = "Invoice item type must be one of 'consumable', 'non-consumable', or 'bulk'"


@dataclass
class PreparedLine:
    inventory_item_id: Optional[int]
    item_name: str
    type: str
    quantity: float
    unit_price: float
    line_total: float

    @property
    def deducts_stock(self) -> bool:
        return bool(self.inventory_item_id) and self.type == "consumable"


@dataclass
class PreparedExtra:
    label: str
    type: str
    amount: float


@dataclass
class Totals:
    items_total: float
    total_charges: float
    total_deductions: float
    final_total: float

    @classmethod
    def from_sums(cls, items: float, charges: float, deductions: float) -> "Totals":
        items_total = round_currency(items)
        total_charges = round_currency(charges)
        total_deductions = round_currency(deductions)
        return cls(
            items_total=items_total,
            total_charges=total_charges,
            total_deductions=total_deductions,
            final_total=round_currency(items_total + total_charges - total_deductions),
        )


async def prepare_lines(db: AsyncSession, raw_items: Optional[Sequence[InvoiceLineInput]]) -> List[PreparedLine]:
    """Validate and price invoice lines.

    Consumable usage is summed per inventory item across all lines and checked
    against the quantity on hand before any line is accepted.
    """
    if not raw_items:
        return []

    stock = StockLedger(db)
    inventory_cache: Dict[int, InventoryItem] = {}
    planned_usage: Dict[int, float] = {}
    prepared = []

    for raw in raw_items:
        name = raw.item_name.strip() if isinstance(raw.item_name, str) else ""
        quantity = parse_number(raw.quantity, "quantity")
        unit_price = parse_number(raw.unit_price if raw.unit_price is not None else raw.price, "unit_price")

        if raw.inventory_item_id:
            item_id = raw.inventory_item_id
            if item_id not in inventory_cache:
                inventory_cache[item_id] = await stock.require(item_id, refresh=True)
            item = inventory_cache[item_id]

            name = name or item.name
            line_type = item.type

            if item.is_consumable:
                usage = planned_usage.get(item_id, 0) + quantity
                if usage > (item.quantity or 0):
                    raise InsufficientStockError(f"Insufficient stock for {item.name}")
                planned_usage[item_id] = usage
        else:
            if not name:
                raise ValidationError("Each invoice item requires an item_name or inventory_item_id")
            line_type = raw.type or "consumable"

        if line_type not in INVOICE_ITEM_TYPES:
            raise ValidationError(INVALID_TYPE_MESSAGE)

        prepared.append(
            PreparedLine(
                inventory_item_id=raw.inventory_item_id or None,
                item_name=name,
                type=line_type,
                quantity=quantity,
                unit_price=round_currency(unit_price),
                line_total=round_currency(quantity * unit_price),
            )
        )

    return prepared


def prepare_extras(entries: Optional[Sequence[ExtraEntryInput]], kind: str) -> List[PreparedExtra]:
    """Validate charges or deductions. Entries with neither label nor amount are dropped."""
    if kind not in EXTRA_ITEM_TYPES:
        raise ValueError(f"Unknown extra item kind: {kind}")
    if not entries:
        return []

    prepared = []
    for entry in entries:
        if not entry.label and "amount" not in entry.model_fields_set:
            continue

        label = entry.label.strip() if isinstance(entry.label, str) else ""
        if not label:
            raise ValidationError("Each extra item requires a label")

        amount = parse_number(entry.amount, f"amount for {label}")
        if amount < 0:
            raise ValidationError("Extra item amount cannot be negative")

        prepared.append(PreparedExtra(label=label, type=kind, amount=round_currency(amount)))
    return prepared


def _has_label(entries: Sequence[ExtraEntryInput], label: str) -> bool:
    return any(
        isinstance(entry.label, str) and entry.label.strip().lower() == label
        for entry in entries
    )


def with_job_defaults(
    job: Job,
    charges: Optional[Sequence[ExtraEntryInput]],
    reductions: Optional[Sequence[ExtraEntryInput]],
) -> tuple[List[ExtraEntryInput], List[ExtraEntryInput]]:
    """Prepend the job's initial amount as a charge and its advance as a deduction.

    Only used when an invoice is created; a label the caller already supplied wins.
    """
    charges = list(charges or [])
    reductions = list(reductions or [])

    if (job.initial_amount or 0) > 0 and not _has_label(charges, "initial amount"):
        charges.insert(0, ExtraEntryInput(label="Initial Amount", amount=job.initial_amount))

    if (job.advance_amount or 0) > 0 and not _has_label(reductions, "advance"):
        reductions.insert(0, ExtraEntryInput(label="Advance", amount=job.advance_amount))

    return charges, reductions


def compute_totals(
    lines: Sequence[PreparedLine],
    charges: Sequence[PreparedExtra],
    deductions: Sequence[PreparedExtra],
) -> Totals:
    return Totals.from_sums(
        sum(line.line_total or 0 for line in lines),
        sum(entry.amount or 0 for entry in charges),
        sum(entry.amount or 0 for entry in deductions),
    )
