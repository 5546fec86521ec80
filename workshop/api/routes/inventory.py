from typing import Optional

from fastapi import APIRouter, HTTPException, Query, status
from sqlalchemy import select

from workshop.api.deps import DbSession, Notifier
from workshop.database import transaction
from workshop.models.inventory import InventoryItem, INVENTORY_TYPES
from workshop.schemas.inventory import (
    InventoryItemCreate,
    InventoryItemUpdate,
    InventoryItemResponse,
    StockDeduction,
)
from workshop.services.amounts import parse_number, parse_nullable_number
from workshop.services.stock_ledger import StockLedger

router = APIRouter()

NOT_FOUND = "Inventory item not found"


async def _get_item_or_404(db, item_id: int) -> InventoryItem:
    result = await db.execute(
        select(InventoryItem)
        .where(InventoryItem.id == item_id)
        .execution_options(populate_existing=True)
    )
    item = result.scalar_one_or_none()
    if not item:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=NOT_FOUND)
    return item


@router.post("", response_model=InventoryItemResponse, status_code=status.HTTP_201_CREATED)
async def create_inventory_item(data: InventoryItemCreate, db: DbSession):
    if not data.name or data.type not in INVENTORY_TYPES:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="name and valid type are required",
        )

    item = InventoryItem(
        name=data.name,
        description=data.description,
        type=data.type,
        unit=data.unit,
        quantity=parse_number(data.quantity, "quantity"),
        unit_cost=parse_nullable_number(data.unit_cost, "unit_cost"),
        reorder_level=parse_number(data.reorder_level, "reorder_level"),
    )
    db.add(item)
    await db.commit()
    await db.refresh(item)
    return item


@router.get("", response_model=list[InventoryItemResponse])
async def list_inventory(
    db: DbSession,
    item_type: Optional[str] = Query(None, alias="type"),
    low_stock: Optional[str] = Query(None, alias="lowStock"),
):
    """List inventory by name. `lowStock=true` keeps items at or under their reorder level."""
    query = select(InventoryItem)
    if item_type and item_type in INVENTORY_TYPES:
        query = query.where(InventoryItem.type == item_type)
    if low_stock == "true":
        query = query.where(InventoryItem.quantity <= InventoryItem.reorder_level)

    result = await db.execute(query.order_by(InventoryItem.name.asc()))
    return result.scalars().all()


@router.get("/{item_id}", response_model=InventoryItemResponse)
async def get_inventory_item(item_id: int, db: DbSession):
    return await _get_item_or_404(db, item_id)


@router.put("/{item_id}", response_model=InventoryItemResponse)
async def update_inventory_item(item_id: int, data: InventoryItemUpdate, db: DbSession):
    if data.type and data.type not in INVENTORY_TYPES:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Invalid inventory type")

    supplied = data.model_fields_set
    quantity = parse_number(data.quantity, "quantity") if data.quantity is not None else None
    reorder_level = parse_number(data.reorder_level, "reorder_level") if data.reorder_level is not None else None
    unit_cost = parse_nullable_number(data.unit_cost, "unit_cost")

    item = await _get_item_or_404(db, item_id)
    for field in ("name", "description", "type", "unit"):
        value = getattr(data, field)
        if value is not None:
            setattr(item, field, value)
    if quantity is not None:
        item.quantity = quantity
    if reorder_level is not None:
        item.reorder_level = reorder_level
    if "unit_cost" in supplied:
        item.unit_cost = unit_cost

    await db.commit()
    await db.refresh(item)
    return item


@router.delete("/{item_id}")
async def delete_inventory_item(item_id: int, db: DbSession):
    """Delete an item. Items referenced by invoices, jobs or purchases are refused with 409."""
    item = await _get_item_or_404(db, item_id)
    async with transaction(db):
        await db.delete(item)
    return {"message": "Inventory item deleted"}


@router.post("/{item_id}/deduct", response_model=InventoryItemResponse)
async def deduct_inventory(item_id: int, data: StockDeduction, db: DbSession, notifier: Notifier):
    """Manually take stock off a consumable item."""
    quantity = parse_number(data.quantity, "quantity")
    if quantity <= 0:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Deduction quantity must be greater than zero",
        )

    events = []
    stock = StockLedger(db, emit=events.append)
    async with transaction(db):
        await stock.require(item_id, detail=NOT_FOUND)
        item = await stock.deduct(item_id, quantity)

    notifier.publish(events)
    return item
