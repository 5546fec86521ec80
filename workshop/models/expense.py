from sqlalchemy import Column, Integer, String, DateTime, Text, Float
from sqlalchemy.sql import func
from workshop.database import Base

EXPENSE_PAYMENT_STATUSES = ("pending", "paid", "unpaid")


class Expense(Base):
    """Workshop running expense (rent, utilities, tools)."""

    __tablename__ = "expenses"

    id = Column(Integer, primary_key=True, index=True)
    description = Column(Text, nullable=False)
    category = Column(String(100))
    amount = Column(Float, nullable=False)
    expense_date = Column(DateTime(timezone=True), server_default=func.now(), index=True)
    payment_status = Column(String(10), default="pending", nullable=False)
    payment_method = Column(String(50))
    remarks = Column(Text)

    created_at = Column(DateTime(timezone=True), server_default=func.now())
