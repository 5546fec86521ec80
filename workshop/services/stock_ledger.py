"""Stock Ledger - the single place consumable inventory quantities change.

Invoices, the manual deduct endpoint and supplier purchases all move stock
through StockLedger. A deduction is one guarded UPDATE (`quantity >= qty`), so
the availability check and the write cannot be split by another writer.
Every movement bumps the item's updated_at and runs the low-stock check.

The ledger never commits; it works inside the caller's transaction and hands
notification events to the caller through `emit`.
"""

import logging
from typing import Callable, Optional

from sqlalchemy import func, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from workshop.exceptions import InsufficientStockError, NotFoundError, ValidationError
from workshop.models.inventory import InventoryItem
from workshop.services.amounts import format_quantity
from workshop.services.notifications import NotificationEvent, low_stock_event

logger = logging.getLogger(__name__)

Emit = Callable[[NotificationEvent], None]


def _discard(event: NotificationEvent) -> None:
    pass


class StockLedger:
    """Inventory repository for one unit of work."""

    def __init__(self, db: AsyncSession, emit: Optional[Emit] = None):
        self.db = db
        self.emit = emit or _discard

    async def get(self, item_id: int, refresh: bool = False) -> Optional[InventoryItem]:
        query = select(InventoryItem).where(InventoryItem.id == item_id)
        if refresh:
            query = query.execution_options(populate_existing=True)
        result = await self.db.execute(query)
        return result.scalar_one_or_none()

    async def require(
        self, item_id: int, detail: Optional[str] = None, refresh: bool = False
    ) -> InventoryItem:
        item = await self.get(item_id, refresh=refresh)
        if not item:
            raise NotFoundError(detail or f"Inventory item {item_id} not found")
        return item

    async def deduct(self, item_id: int, quantity: float) -> InventoryItem:
        """Take `quantity` off a consumable item or fail without touching it."""
        item = await self.require(item_id)
        if not item.is_consumable:
            raise ValidationError("Only consumable items can be auto deducted")

        result = await self.db.execute(
            update(InventoryItem)
            .where(InventoryItem.id == item_id, InventoryItem.quantity >= quantity)
            .values(quantity=InventoryItem.quantity - quantity, updated_at=func.now())
            .execution_options(synchronize_session=False)
        )
        if result.rowcount == 0:
            raise InsufficientStockError(f"Insufficient stock for {item.name}")

        item = await self.get(item_id, refresh=True)
        logger.debug("Deducted %s from inventory item %s (now %s)", quantity, item_id, item.quantity)
        await self.check_low_stock(item)
        return item

    async def restock(
        self,
        item_id: int,
        quantity: float,
        unit_cost: Optional[float] = None,
    ) -> Optional[InventoryItem]:
        """Add `quantity` back. Returns None when the item no longer exists."""
        values = {"quantity": InventoryItem.quantity + quantity, "updated_at": func.now()}
        if unit_cost is not None:
            values["unit_cost"] = unit_cost

        result = await self.db.execute(
            update(InventoryItem)
            .where(InventoryItem.id == item_id)
            .values(**values)
            .execution_options(synchronize_session=False)
        )
        if result.rowcount == 0:
            logger.warning("Restock skipped, inventory item %s no longer exists", item_id)
            return None

        item = await self.get(item_id, refresh=True)
        logger.debug("Restocked %s to inventory item %s (now %s)", quantity, item_id, item.quantity)
        return item

    async def check_low_stock(self, item: InventoryItem) -> bool:
        """Emit a low-stock event when the item is at or under its reorder level."""
        if not item.needs_reorder:
            return False
        self.emit(low_stock_event(item.id, item.name, format_quantity(item.quantity)))
        return True
