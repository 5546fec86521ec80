"""Inventory model for parts, fluids and bulk stock."""
from sqlalchemy import Column, Integer, String, DateTime, Text, Float
from sqlalchemy.sql import func

from workshop.database import Base

INVENTORY_TYPES = ("consumable", "non-consumable", "bulk")


class InventoryItem(Base):
    """Stocked item. Only consumables have their quantity moved by invoices and purchases."""

    __tablename__ = "inventory_items"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(255), nullable=False, index=True)
    description = Column(Text)
    type = Column(String(20), nullable=False, index=True)
    unit = Column(String(20))

    quantity = Column(Float, default=0, nullable=False)
    unit_cost = Column(Float, nullable=True)
    reorder_level = Column(Float, default=0, nullable=False)

    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    def __repr__(self):
        return f"<InventoryItem {self.id} {self.name}>"

    @property
    def is_consumable(self) -> bool:
        return self.type == "consumable"

    @property
    def needs_reorder(self) -> bool:
        """Low when at or under the reorder level; a zero level only flags empty stock."""
        reorder_level = self.reorder_level or 0
        if reorder_level <= 0 and (self.quantity or 0) > 0:
            return False
        return (self.quantity or 0) <= reorder_level
