"""
Tests for the inventory API endpoints (/inventory).
"""

import pytest
from httpx import AsyncClient
from sqlalchemy import select

from tests.factories import BulkItemFactory, InventoryItemFactory
from workshop.models.notification import Notification

INVENTORY_PREFIX = "/inventory"


async def create_item(client: AsyncClient, **overrides) -> dict:
    response = await client.post(INVENTORY_PREFIX, json=InventoryItemFactory(**overrides))
    assert response.status_code == 201, response.text
    return response.json()


class TestCreateInventoryItem:
    """Tests for POST /inventory."""

    @pytest.mark.asyncio
    async def test_numeric_strings_are_parsed(self, client: AsyncClient):
        data = await create_item(client, quantity="12.5", unit_cost="", reorder_level="3")

        assert data["quantity"] == 12.5
        assert data["unit_cost"] is None
        assert data["reorder_level"] == 3

    @pytest.mark.asyncio
    async def test_type_must_be_known(self, client: AsyncClient):
        response = await client.post(INVENTORY_PREFIX, json=InventoryItemFactory(type="liquid"))

        assert response.status_code == 400
        assert response.json()["detail"] == "name and valid type are required"


class TestListInventory:
    """Tests for GET /inventory."""

    @pytest.mark.asyncio
    async def test_filter_by_type(self, client: AsyncClient):
        await create_item(client, name="Brake Pads")
        await client.post(INVENTORY_PREFIX, json=BulkItemFactory(name="Coolant Drum"))

        data = (await client.get(INVENTORY_PREFIX, params={"type": "bulk"})).json()

        assert [item["name"] for item in data] == ["Coolant Drum"]

    @pytest.mark.asyncio
    async def test_low_stock_filter(self, client: AsyncClient):
        await create_item(client, name="Air Filter", quantity=2, reorder_level=2)
        await create_item(client, name="Oil Filter", quantity=10, reorder_level=2)

        data = (await client.get(INVENTORY_PREFIX, params={"lowStock": "true"})).json()

        assert [item["name"] for item in data] == ["Air Filter"]


class TestUpdateInventoryItem:
    """Tests for PUT /inventory/{id}."""

    @pytest.mark.asyncio
    async def test_null_unit_cost_clears_it(self, client: AsyncClient):
        item = await create_item(client, unit_cost=450)

        data = (await client.put(f"{INVENTORY_PREFIX}/{item['id']}", json={"unit_cost": None, "unit": "box"})).json()

        assert data["unit_cost"] is None
        assert data["unit"] == "box"
        assert data["quantity"] == item["quantity"]

    @pytest.mark.asyncio
    async def test_invalid_quantity(self, client: AsyncClient):
        item = await create_item(client)

        response = await client.put(f"{INVENTORY_PREFIX}/{item['id']}", json={"quantity": "ten"})

        assert response.status_code == 400
        assert response.json()["detail"] == "quantity must be a valid number"


class TestDeleteInventoryItem:
    """Tests for DELETE /inventory/{id}."""

    @pytest.mark.asyncio
    async def test_delete(self, client: AsyncClient):
        item = await create_item(client)

        response = await client.delete(f"{INVENTORY_PREFIX}/{item['id']}")

        assert response.status_code == 200
        assert (await client.get(f"{INVENTORY_PREFIX}/{item['id']}")).status_code == 404

    @pytest.mark.asyncio
    async def test_item_with_purchases_is_refused(self, client: AsyncClient):
        item = await create_item(client)
        supplier = (await client.post("/suppliers", json={"name": "Lanka Auto Parts"})).json()
        await client.post(
            f"/suppliers/{supplier['id']}/purchase",
            json={"inventory_item_id": item["id"], "item_name": item["name"], "quantity": 1},
        )

        response = await client.delete(f"{INVENTORY_PREFIX}/{item['id']}")

        assert response.status_code == 409


class TestDeductInventory:
    """Tests for POST /inventory/{id}/deduct."""

    @pytest.mark.asyncio
    async def test_deduct(self, client: AsyncClient):
        item = await create_item(client, quantity=10, reorder_level=2)

        response = await client.post(f"{INVENTORY_PREFIX}/{item['id']}/deduct", json={"quantity": 3})

        assert response.status_code == 200, response.text
        assert response.json()["quantity"] == 7

    @pytest.mark.asyncio
    async def test_more_than_on_hand(self, client: AsyncClient):
        item = await create_item(client, name="Spark Plug", quantity=2)

        response = await client.post(f"{INVENTORY_PREFIX}/{item['id']}/deduct", json={"quantity": 3})

        assert response.status_code == 400
        assert response.json()["detail"] == "Insufficient stock for Spark Plug"
        assert (await client.get(f"{INVENTORY_PREFIX}/{item['id']}")).json()["quantity"] == 2

    @pytest.mark.asyncio
    async def test_quantity_must_be_positive(self, client: AsyncClient):
        item = await create_item(client)

        response = await client.post(f"{INVENTORY_PREFIX}/{item['id']}/deduct", json={"quantity": 0})

        assert response.status_code == 400
        assert response.json()["detail"] == "Deduction quantity must be greater than zero"

    @pytest.mark.asyncio
    async def test_bulk_items_cannot_be_deducted(self, client: AsyncClient):
        item = (await client.post(INVENTORY_PREFIX, json=BulkItemFactory())).json()

        response = await client.post(f"{INVENTORY_PREFIX}/{item['id']}/deduct", json={"quantity": 1})

        assert response.status_code == 400

    @pytest.mark.asyncio
    async def test_missing_item(self, client: AsyncClient):
        response = await client.post(f"{INVENTORY_PREFIX}/404/deduct", json={"quantity": 1})

        assert response.status_code == 404
        assert response.json()["detail"] == "Inventory item not found"

    @pytest.mark.asyncio
    async def test_low_stock_alert_is_raised_once(self, client: AsyncClient, test_db, notifier):
        """Repeated deductions under the reorder level keep a single unread alert."""
        item = await create_item(client, name="Wiper Blade", quantity=5, reorder_level=3)

        await client.post(f"{INVENTORY_PREFIX}/{item['id']}/deduct", json={"quantity": 2})
        await client.post(f"{INVENTORY_PREFIX}/{item['id']}/deduct", json={"quantity": 1})
        await notifier.drain()

        result = await test_db.execute(select(Notification).where(Notification.type == "low-stock"))
        alerts = result.scalars().all()
        assert len(alerts) == 1
        assert alerts[0].message == f"Item #{item['id']} (Wiper Blade) low on stock (3)."
