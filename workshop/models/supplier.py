from sqlalchemy import Column, Integer, String, DateTime, Text, Float, ForeignKey
from sqlalchemy.sql import func
from workshop.database import Base

PURCHASE_PAYMENT_STATUSES = ("paid", "unpaid")


class Supplier(Base):
    """Parts supplier."""

    __tablename__ = "suppliers"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(255), nullable=False)
    contact_name = Column(String(255))
    phone = Column(String(50))
    email = Column(String(255))
    address = Column(Text)
    notes = Column(Text)

    created_at = Column(DateTime(timezone=True), server_default=func.now())

    def __repr__(self):
        return f"<Supplier {self.name}>"


class SupplierPurchase(Base):
    """Stock intake from a supplier."""

    __tablename__ = "supplier_purchases"

    id = Column(Integer, primary_key=True)
    supplier_id = Column(Integer, ForeignKey("suppliers.id"), nullable=False, index=True)
    inventory_item_id = Column(Integer, ForeignKey("inventory_items.id"), nullable=True)
    item_name = Column(String(255), nullable=False)
    quantity = Column(Float, default=0)
    unit_cost = Column(Float, default=0)
    payment_status = Column(String(10), default="unpaid", nullable=False)
    payment_method = Column(String(50))
    purchase_date = Column(DateTime(timezone=True), server_default=func.now())
    notes = Column(Text)

    created_at = Column(DateTime(timezone=True), server_default=func.now())
