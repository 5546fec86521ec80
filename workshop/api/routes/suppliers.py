"""
Suppliers API - supplier records and stock purchases.

A purchase linked to a consumable inventory item restocks it through the
stock ledger in the same transaction as the purchase row.
"""

import logging

from fastapi import APIRouter, HTTPException, status
from sqlalchemy import select

from workshop.api.deps import DbSession, Notifier
from workshop.database import transaction
from workshop.models.supplier import Supplier, SupplierPurchase, PURCHASE_PAYMENT_STATUSES
from workshop.schemas.supplier import (
    SupplierCreate,
    SupplierUpdate,
    SupplierResponse,
    PurchaseCreate,
    PurchaseCreated,
    PurchaseResponse,
)
from workshop.services.amounts import format_quantity, parse_number, parse_nullable_number
from workshop.services.notifications import NotificationEvent
from workshop.services.stock_ledger import StockLedger

logger = logging.getLogger(__name__)

router = APIRouter()


async def _get_supplier_or_404(db, supplier_id: int) -> Supplier:
    result = await db.execute(select(Supplier).where(Supplier.id == supplier_id))
    supplier = result.scalar_one_or_none()
    if not supplier:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Supplier not found")
    return supplier


@router.post("", response_model=SupplierResponse, status_code=status.HTTP_201_CREATED)
async def create_supplier(data: SupplierCreate, db: DbSession):
    if not data.name or not data.name.strip():
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Supplier name is required")

    supplier = Supplier(**data.model_dump())
    db.add(supplier)
    await db.commit()
    await db.refresh(supplier)
    return supplier


@router.get("", response_model=list[SupplierResponse])
async def list_suppliers(db: DbSession):
    result = await db.execute(select(Supplier).order_by(Supplier.name.asc()))
    return result.scalars().all()


@router.get("/{supplier_id}", response_model=SupplierResponse)
async def get_supplier(supplier_id: int, db: DbSession):
    return await _get_supplier_or_404(db, supplier_id)


@router.put("/{supplier_id}", response_model=SupplierResponse)
async def update_supplier(supplier_id: int, data: SupplierUpdate, db: DbSession):
    supplier = await _get_supplier_or_404(db, supplier_id)
    for field, value in data.model_dump(exclude_none=True).items():
        setattr(supplier, field, value)

    await db.commit()
    await db.refresh(supplier)
    return supplier


@router.delete("/{supplier_id}")
async def delete_supplier(supplier_id: int, db: DbSession):
    """Delete a supplier. Suppliers with recorded purchases are refused with 409."""
    supplier = await _get_supplier_or_404(db, supplier_id)
    async with transaction(db):
        await db.delete(supplier)
    return {"message": "Supplier deleted"}


@router.post("/{supplier_id}/purchase", response_model=PurchaseCreated, status_code=status.HTTP_201_CREATED)
async def record_purchase(supplier_id: int, data: PurchaseCreate, db: DbSession, notifier: Notifier):
    """Record a purchase and restock the linked consumable item."""
    if not data.item_name:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="item_name is required")
    if data.payment_status not in PURCHASE_PAYMENT_STATUSES:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="payment_status must be 'paid' or 'unpaid'",
        )

    quantity = parse_number(data.quantity, "quantity")
    unit_cost = parse_nullable_number(data.unit_cost, "unit_cost")

    events = []
    stock = StockLedger(db, emit=events.append)
    async with transaction(db):
        await _get_supplier_or_404(db, supplier_id)

        purchase = SupplierPurchase(
            supplier_id=supplier_id,
            inventory_item_id=data.inventory_item_id,
            item_name=data.item_name,
            quantity=quantity,
            unit_cost=unit_cost,
            payment_status=data.payment_status,
            payment_method=data.payment_method,
            notes=data.notes,
        )
        if data.purchase_date is not None:
            purchase.purchase_date = data.purchase_date

        if data.inventory_item_id:
            item = await stock.require(data.inventory_item_id, detail="Linked inventory item not found")
            if item.is_consumable and quantity > 0:
                item = await stock.restock(item.id, quantity, unit_cost=unit_cost)
                events.append(
                    NotificationEvent(
                        title="Inventory restocked",
                        message=f"{format_quantity(quantity)} x {item.name} added via supplier purchase.",
                        type="stock-add",
                    )
                )
                await stock.check_low_stock(item)

        db.add(purchase)
        await db.flush()
        purchase_id = purchase.id

    notifier.publish(events)
    logger.info("Purchase %s recorded for supplier %s", purchase_id, supplier_id)
    return {"id": purchase_id}


@router.get("/{supplier_id}/purchases", response_model=list[PurchaseResponse])
async def list_purchases(supplier_id: int, db: DbSession):
    """A supplier's purchases, newest first."""
    await _get_supplier_or_404(db, supplier_id)
    result = await db.execute(
        select(SupplierPurchase)
        .where(SupplierPurchase.supplier_id == supplier_id)
        .order_by(SupplierPurchase.purchase_date.desc(), SupplierPurchase.id.desc())
    )
    return result.scalars().all()
