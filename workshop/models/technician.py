from sqlalchemy import Column, Integer, String, DateTime
from sqlalchemy.sql import func
from workshop.database import Base

TECHNICIAN_STATUSES = ("Active", "On Leave", "Inactive")


class Technician(Base):
    """Workshop technician."""

    __tablename__ = "technicians"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(255), nullable=False)
    phone = Column(String(50))
    status = Column(String(20), default="Active", nullable=False)

    created_at = Column(DateTime(timezone=True), server_default=func.now())

    def __repr__(self):
        return f"<Technician {self.name} ({self.status})>"
