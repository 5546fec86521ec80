"""
Tests for the suppliers API endpoints (/suppliers).
"""

import pytest
from httpx import AsyncClient
from sqlalchemy import select

from tests.factories import InventoryItemFactory, PurchaseFactory, SupplierFactory
from workshop.models.notification import Notification

SUPPLIERS_PREFIX = "/suppliers"


@pytest.fixture
def supplier_payload() -> dict:
    return SupplierFactory(name="Lanka Auto Parts")


async def create_supplier(client: AsyncClient, payload: dict) -> dict:
    response = await client.post(SUPPLIERS_PREFIX, json=payload)
    assert response.status_code == 201, response.text
    return response.json()


class TestSupplierCrud:
    """Tests for supplier create, read, update and delete."""

    @pytest.mark.asyncio
    async def test_create_and_get(self, client: AsyncClient, supplier_payload):
        created = await create_supplier(client, supplier_payload)

        data = (await client.get(f"{SUPPLIERS_PREFIX}/{created['id']}")).json()

        assert data["name"] == "Lanka Auto Parts"
        assert data["contact_name"] == supplier_payload["contact_name"]

    @pytest.mark.asyncio
    async def test_name_required(self, client: AsyncClient):
        response = await client.post(SUPPLIERS_PREFIX, json=SupplierFactory(name=""))

        assert response.status_code == 400
        assert response.json()["detail"] == "Supplier name is required"

    @pytest.mark.asyncio
    async def test_list_sorted_by_name(self, client: AsyncClient):
        for name in ("Yoshi Motors", "Auto Mart"):
            await create_supplier(client, SupplierFactory(name=name))

        data = (await client.get(SUPPLIERS_PREFIX)).json()

        assert [s["name"] for s in data] == ["Auto Mart", "Yoshi Motors"]

    @pytest.mark.asyncio
    async def test_update_keeps_null_fields(self, client: AsyncClient, supplier_payload):
        created = await create_supplier(client, supplier_payload)

        data = (
            await client.put(f"{SUPPLIERS_PREFIX}/{created['id']}", json={"phone": "0112345678", "email": None})
        ).json()

        assert data["phone"] == "0112345678"
        assert data["email"] == supplier_payload["email"]

    @pytest.mark.asyncio
    async def test_delete_supplier_with_purchases_is_refused(self, client: AsyncClient, supplier_payload):
        created = await create_supplier(client, supplier_payload)
        await client.post(f"{SUPPLIERS_PREFIX}/{created['id']}/purchase", json=PurchaseFactory())

        response = await client.delete(f"{SUPPLIERS_PREFIX}/{created['id']}")

        assert response.status_code == 409

    @pytest.mark.asyncio
    async def test_delete_supplier(self, client: AsyncClient, supplier_payload):
        created = await create_supplier(client, supplier_payload)

        response = await client.delete(f"{SUPPLIERS_PREFIX}/{created['id']}")

        assert response.status_code == 200
        assert response.json() == {"message": "Supplier deleted"}


class TestRecordPurchase:
    """Tests for POST /suppliers/{id}/purchase."""

    @pytest.mark.asyncio
    async def test_purchase_restocks_consumable(self, client: AsyncClient, test_db, notifier, supplier_payload):
        supplier = await create_supplier(client, supplier_payload)
        item = (await client.post("/inventory", json=InventoryItemFactory(name="Brake Pads", quantity=1, reorder_level=0))).json()

        response = await client.post(
            f"{SUPPLIERS_PREFIX}/{supplier['id']}/purchase",
            json=PurchaseFactory(inventory_item_id=item["id"], item_name="Brake Pads", quantity=5, unit_cost=3200),
        )
        await notifier.drain()

        assert response.status_code == 201, response.text
        assert response.json()["id"] > 0
        restocked = (await client.get(f"/inventory/{item['id']}")).json()
        assert restocked["quantity"] == 6
        assert restocked["unit_cost"] == 3200
        messages = (await test_db.execute(select(Notification.message))).scalars().all()
        assert "5 x Brake Pads added via supplier purchase." in messages

    @pytest.mark.asyncio
    async def test_restock_still_under_reorder_level_alerts(
        self, client: AsyncClient, test_db, notifier, supplier_payload
    ):
        supplier = await create_supplier(client, supplier_payload)
        item = (await client.post("/inventory", json=InventoryItemFactory(quantity=0, reorder_level=10))).json()

        await client.post(
            f"{SUPPLIERS_PREFIX}/{supplier['id']}/purchase",
            json=PurchaseFactory(inventory_item_id=item["id"], quantity=4),
        )
        await notifier.drain()

        types = (await test_db.execute(select(Notification.type))).scalars().all()
        assert "low-stock" in types

    @pytest.mark.asyncio
    async def test_bulk_item_is_not_restocked(self, client: AsyncClient, supplier_payload):
        supplier = await create_supplier(client, supplier_payload)
        item = (await client.post("/inventory", json=InventoryItemFactory(type="bulk", quantity=20))).json()

        await client.post(
            f"{SUPPLIERS_PREFIX}/{supplier['id']}/purchase",
            json=PurchaseFactory(inventory_item_id=item["id"], quantity=5),
        )

        assert (await client.get(f"/inventory/{item['id']}")).json()["quantity"] == 20

    @pytest.mark.asyncio
    async def test_unknown_inventory_item_rolls_back(self, client: AsyncClient, supplier_payload):
        supplier = await create_supplier(client, supplier_payload)

        response = await client.post(
            f"{SUPPLIERS_PREFIX}/{supplier['id']}/purchase",
            json=PurchaseFactory(inventory_item_id=404),
        )

        assert response.status_code == 404
        assert response.json()["detail"] == "Linked inventory item not found"
        assert (await client.get(f"{SUPPLIERS_PREFIX}/{supplier['id']}/purchases")).json() == []

    @pytest.mark.asyncio
    async def test_payment_status_validated(self, client: AsyncClient, supplier_payload):
        supplier = await create_supplier(client, supplier_payload)

        response = await client.post(
            f"{SUPPLIERS_PREFIX}/{supplier['id']}/purchase",
            json=PurchaseFactory(payment_status="partial"),
        )

        assert response.status_code == 400
        assert response.json()["detail"] == "payment_status must be 'paid' or 'unpaid'"

    @pytest.mark.asyncio
    async def test_unknown_supplier(self, client: AsyncClient):
        response = await client.post(f"{SUPPLIERS_PREFIX}/404/purchase", json=PurchaseFactory())

        assert response.status_code == 404


class TestListPurchases:
    """Tests for GET /suppliers/{id}/purchases."""

    @pytest.mark.asyncio
    async def test_newest_first(self, client: AsyncClient, supplier_payload):
        supplier = await create_supplier(client, supplier_payload)
        for day, name in (("2026-01-05T10:00:00", "Filters"), ("2026-02-01T10:00:00", "Oil")):
            await client.post(
                f"{SUPPLIERS_PREFIX}/{supplier['id']}/purchase",
                json=PurchaseFactory(item_name=name, purchase_date=day),
            )

        data = (await client.get(f"{SUPPLIERS_PREFIX}/{supplier['id']}/purchases")).json()

        assert [p["item_name"] for p in data] == ["Oil", "Filters"]
