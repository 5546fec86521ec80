"""
Tests for invoice line, extra item and totals composition.
"""

import pytest
from sqlalchemy.ext.asyncio import AsyncSession

from workshop.exceptions import InsufficientStockError, NotFoundError, ValidationError
from workshop.models.job import Job
from workshop.schemas.invoice import ExtraEntryInput, InvoiceLineInput
from workshop.services.invoice_lines import (
    PreparedExtra,
    PreparedLine,
    compute_totals,
    prepare_extras,
    prepare_lines,
    with_job_defaults,
)


def line(**fields) -> InvoiceLineInput:
    return InvoiceLineInput(**fields)


def extra(**fields) -> ExtraEntryInput:
    return ExtraEntryInput(**fields)


class TestPrepareLines:
    """Tests for prepare_lines"""

    @pytest.mark.asyncio
    async def test_free_text_line_defaults_to_consumable(self, test_db: AsyncSession):
        lines = await prepare_lines(test_db, [line(item_name="Labor", quantity=2, unit_price=50)])

        assert lines == [
            PreparedLine(
                inventory_item_id=None,
                item_name="Labor",
                type="consumable",
                quantity=2,
                unit_price=50,
                line_total=100,
            )
        ]
        assert lines[0].deducts_stock is False

    @pytest.mark.asyncio
    async def test_price_is_an_alias_of_unit_price(self, test_db: AsyncSession):
        lines = await prepare_lines(test_db, [line(item_name="Polish", price="12.50", quantity="3")])

        assert lines[0].unit_price == 12.5
        assert lines[0].line_total == 37.5

    @pytest.mark.asyncio
    async def test_inventory_line_takes_name_and_type_from_item(self, test_db: AsyncSession, make_item):
        item = await make_item(name="Air Filter", type="consumable", quantity=5)

        lines = await prepare_lines(test_db, [line(inventory_item_id=item.id, type="bulk", unit_price=900)])

        assert lines[0].item_name == "Air Filter"
        assert lines[0].type == "consumable"
        assert lines[0].deducts_stock is True

    @pytest.mark.asyncio
    async def test_combined_usage_is_checked_against_stock(self, test_db: AsyncSession, make_item):
        item = await make_item(name="Engine Oil", quantity=10)

        with pytest.raises(InsufficientStockError) as exc_info:
            await prepare_lines(
                test_db,
                [
                    line(inventory_item_id=item.id, quantity=6, unit_price=1),
                    line(inventory_item_id=item.id, quantity=5, unit_price=1),
                ],
            )
        assert exc_info.value.detail == "Insufficient stock for Engine Oil"

    @pytest.mark.asyncio
    async def test_non_consumable_inventory_is_not_stock_checked(self, test_db: AsyncSession, make_item):
        item = await make_item(name="Jack Stand", type="non-consumable", quantity=0)

        lines = await prepare_lines(test_db, [line(inventory_item_id=item.id, quantity=2, unit_price=0)])

        assert lines[0].deducts_stock is False

    @pytest.mark.asyncio
    async def test_missing_inventory_item(self, test_db: AsyncSession):
        with pytest.raises(NotFoundError) as exc_info:
            await prepare_lines(test_db, [line(inventory_item_id=77, quantity=1)])
        assert exc_info.value.detail == "Inventory item 77 not found"

    @pytest.mark.asyncio
    async def test_line_without_name_or_item(self, test_db: AsyncSession):
        with pytest.raises(ValidationError) as exc_info:
            await prepare_lines(test_db, [line(quantity=1, unit_price=5)])
        assert exc_info.value.detail == "Each invoice item requires an item_name or inventory_item_id"

    @pytest.mark.asyncio
    async def test_unknown_type(self, test_db: AsyncSession):
        with pytest.raises(ValidationError) as exc_info:
            await prepare_lines(test_db, [line(item_name="Labor", type="service")])
        assert "must be one of" in exc_info.value.detail

    @pytest.mark.asyncio
    async def test_invalid_quantity(self, test_db: AsyncSession):
        with pytest.raises(ValidationError) as exc_info:
            await prepare_lines(test_db, [line(item_name="Labor", quantity="two")])
        assert exc_info.value.detail == "quantity must be a valid number"

    @pytest.mark.asyncio
    async def test_no_items(self, test_db: AsyncSession):
        assert await prepare_lines(test_db, None) == []


class TestPrepareExtras:
    """Tests for prepare_extras"""

    def test_labels_are_trimmed_and_amounts_rounded(self):
        prepared = prepare_extras([extra(label="  Towing ", amount="25.456")], "charge")

        assert prepared == [PreparedExtra(label="Towing", type="charge", amount=25.46)]

    def test_blank_entries_are_dropped(self):
        assert prepare_extras([extra(), extra(label="")], "deduction") == []

    def test_amount_without_label(self):
        with pytest.raises(ValidationError) as exc_info:
            prepare_extras([extra(amount=10)], "charge")
        assert exc_info.value.detail == "Each extra item requires a label"

    def test_negative_amount(self):
        with pytest.raises(ValidationError) as exc_info:
            prepare_extras([extra(label="Discount", amount=-5)], "deduction")
        assert exc_info.value.detail == "Extra item amount cannot be negative"

    def test_invalid_amount_names_the_label(self):
        with pytest.raises(ValidationError) as exc_info:
            prepare_extras([extra(label="Towing", amount="lots")], "charge")
        assert exc_info.value.detail == "amount for Towing must be a valid number"

    def test_unknown_kind_is_rejected(self):
        with pytest.raises(ValueError):
            prepare_extras([extra(label="Towing", amount=10)], "discount")


class TestWithJobDefaults:
    """Tests for with_job_defaults"""

    def test_initial_and_advance_are_prepended(self):
        job = Job(initial_amount=100, advance_amount=30)

        charges, reductions = with_job_defaults(job, [extra(label="Towing", amount=10)], None)

        assert [(c.label, c.amount) for c in charges] == [("Initial Amount", 100), ("Towing", 10)]
        assert [(r.label, r.amount) for r in reductions] == [("Advance", 30)]

    def test_existing_labels_win(self):
        job = Job(initial_amount=100, advance_amount=30)

        charges, reductions = with_job_defaults(
            job,
            [extra(label="initial amount", amount=120)],
            [extra(label="ADVANCE", amount=40)],
        )

        assert [(c.label, c.amount) for c in charges] == [("initial amount", 120)]
        assert [(r.label, r.amount) for r in reductions] == [("ADVANCE", 40)]

    def test_zero_amounts_add_nothing(self):
        job = Job(initial_amount=0, advance_amount=None)

        assert with_job_defaults(job, None, None) == ([], [])


class TestComputeTotals:
    """Tests for compute_totals"""

    def test_final_total_is_items_plus_charges_minus_deductions(self):
        lines = [PreparedLine(None, "Labor", "non-consumable", 2, 50, 100)]
        charges = [PreparedExtra("Initial Amount", "charge", 100)]
        deductions = [PreparedExtra("Advance", "deduction", 30)]

        totals = compute_totals(lines, charges, deductions)

        assert totals.items_total == 100
        assert totals.total_charges == 100
        assert totals.total_deductions == 30
        assert totals.final_total == 170

    def test_deductions_can_exceed_the_bill(self):
        totals = compute_totals([], [], [PreparedExtra("Advance", "deduction", 50)])

        assert totals.final_total == -50
