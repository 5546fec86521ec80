from sqlalchemy import Column, Integer, String, DateTime, Text
from sqlalchemy.sql import func
from workshop.database import Base


class Customer(Base):
    """Workshop customer."""

    __tablename__ = "customers"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(255), nullable=False, index=True)
    phone = Column(String(50))
    email = Column(String(255))
    address = Column(Text)

    created_at = Column(DateTime(timezone=True), server_default=func.now())

    def __repr__(self):
        return f"<Customer {self.id} {self.name}>"
