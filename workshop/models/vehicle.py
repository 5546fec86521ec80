from sqlalchemy import Column, Integer, String, Boolean, DateTime, ForeignKey
from sqlalchemy.sql import func
from workshop.database import Base


class Vehicle(Base):
    """Customer vehicle. Deleting only archives it so job history stays intact."""

    __tablename__ = "vehicles"

    id = Column(Integer, primary_key=True, index=True)
    customer_id = Column(Integer, ForeignKey("customers.id"), nullable=False, index=True)
    make = Column(String(100))
    model = Column(String(100))
    year = Column(String(10))
    license_plate = Column(String(20))
    archived = Column(Boolean, default=False, nullable=False)

    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    def __repr__(self):
        return f"<Vehicle {self.make} {self.model} ({self.license_plate})>"
