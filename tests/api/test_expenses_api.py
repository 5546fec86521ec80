"""
Tests for the expenses API endpoints (/expenses).
"""

import pytest
from httpx import AsyncClient

from tests.factories import ExpenseFactory, PaidExpenseFactory

EXPENSES_PREFIX = "/expenses"


class TestCreateExpense:
    """Tests for POST /expenses."""

    @pytest.mark.asyncio
    async def test_status_defaults_to_pending(self, client: AsyncClient):
        response = await client.post(EXPENSES_PREFIX, json=ExpenseFactory(payment_status=None, amount="1500"))

        assert response.status_code == 201, response.text
        data = response.json()
        assert data["payment_status"] == "pending"
        assert data["amount"] == 1500

    @pytest.mark.asyncio
    async def test_status_is_case_insensitive(self, client: AsyncClient):
        response = await client.post(EXPENSES_PREFIX, json=PaidExpenseFactory(payment_status="PAID"))

        assert response.json()["payment_status"] == "paid"

    @pytest.mark.asyncio
    async def test_paid_requires_method(self, client: AsyncClient):
        response = await client.post(EXPENSES_PREFIX, json=PaidExpenseFactory(payment_method=""))

        assert response.status_code == 400
        assert response.json()["detail"] == "payment_method is required when payment_status is paid"

    @pytest.mark.asyncio
    async def test_amount_required(self, client: AsyncClient):
        response = await client.post(EXPENSES_PREFIX, json=ExpenseFactory(amount=""))

        assert response.status_code == 400
        assert response.json()["detail"] == "amount is required"

    @pytest.mark.asyncio
    async def test_unknown_status(self, client: AsyncClient):
        response = await client.post(EXPENSES_PREFIX, json=ExpenseFactory(payment_status="overdue"))

        assert response.status_code == 400


class TestListExpenses:
    """Tests for GET /expenses."""

    @pytest.mark.asyncio
    async def test_date_range(self, client: AsyncClient):
        for day, description in (
            ("2026-01-10T09:00:00", "January rent"),
            ("2026-02-10T09:00:00", "February rent"),
            ("2026-03-10T09:00:00", "March rent"),
        ):
            await client.post(EXPENSES_PREFIX, json=ExpenseFactory(description=description, expense_date=day))

        data = (
            await client.get(EXPENSES_PREFIX, params={"startDate": "2026-02-01", "endDate": "2026-03-10"})
        ).json()

        assert [e["description"] for e in data] == ["March rent", "February rent"]


class TestUpdateExpense:
    """Tests for PUT /expenses/{id}."""

    @pytest.mark.asyncio
    async def test_marking_paid_uses_stored_method(self, client: AsyncClient):
        created = (await client.post(EXPENSES_PREFIX, json=ExpenseFactory(payment_method="Bank transfer"))).json()

        response = await client.put(f"{EXPENSES_PREFIX}/{created['id']}", json={"payment_status": "paid"})

        assert response.status_code == 200, response.text
        assert response.json()["payment_method"] == "Bank transfer"
        assert response.json()["amount"] == created["amount"]

    @pytest.mark.asyncio
    async def test_clearing_method_of_paid_expense_is_rejected(self, client: AsyncClient):
        created = (await client.post(EXPENSES_PREFIX, json=PaidExpenseFactory())).json()

        response = await client.put(f"{EXPENSES_PREFIX}/{created['id']}", json={"payment_method": None})

        assert response.status_code == 400

    @pytest.mark.asyncio
    async def test_missing_expense(self, client: AsyncClient):
        response = await client.put(f"{EXPENSES_PREFIX}/404", json={"remarks": "x"})

        assert response.status_code == 404


class TestDeleteExpense:
    """Tests for DELETE /expenses/{id}."""

    @pytest.mark.asyncio
    async def test_delete(self, client: AsyncClient):
        created = (await client.post(EXPENSES_PREFIX, json=ExpenseFactory())).json()

        response = await client.delete(f"{EXPENSES_PREFIX}/{created['id']}")

        assert response.status_code == 200
        assert response.json() == {"message": "Expense deleted"}
        assert (await client.get(EXPENSES_PREFIX)).json() == []
