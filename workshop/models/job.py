from sqlalchemy import Column, Integer, String, Boolean, DateTime, Text, Float, ForeignKey
from sqlalchemy.sql import func
from workshop.database import Base

JOB_STATUSES = ("Pending", "In Progress", "Completed", "Cancelled")
OPEN_JOB_STATUSES = ("Pending", "In Progress")


class Job(Base):
    """Work order for one customer vehicle.

    A job gets at most one invoice, and only once it is Completed.
    """

    __tablename__ = "jobs"

    id = Column(Integer, primary_key=True, index=True)
    customer_id = Column(Integer, ForeignKey("customers.id"), nullable=False, index=True)
    vehicle_id = Column(Integer, ForeignKey("vehicles.id"), nullable=True, index=True)

    description = Column(Text, nullable=False)
    notes = Column(Text)
    category = Column(String(100))

    # Estimate and prepayment, copied onto the invoice as extra items
    initial_amount = Column(Float, nullable=True)
    advance_amount = Column(Float, nullable=True)
    mileage = Column(Float, nullable=True)

    job_status = Column(String(20), default="Pending", nullable=False, index=True)
    status_changed_at = Column(DateTime(timezone=True), server_default=func.now())
    invoice_created = Column(Boolean, default=False, nullable=False)

    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    def __repr__(self):
        return f"<Job #{self.id} {self.job_status}>"


class JobTechnician(Base):
    """Technician assignment to a job."""

    __tablename__ = "job_technicians"

    id = Column(Integer, primary_key=True)
    job_id = Column(Integer, ForeignKey("jobs.id"), nullable=False, index=True)
    technician_id = Column(Integer, ForeignKey("technicians.id"), nullable=False, index=True)

    created_at = Column(DateTime(timezone=True), server_default=func.now())


class JobItem(Base):
    """Estimated part or service line on a job. Never touches stock."""

    __tablename__ = "job_items"

    id = Column(Integer, primary_key=True)
    job_id = Column(Integer, ForeignKey("jobs.id"), nullable=False, index=True)
    inventory_item_id = Column(Integer, ForeignKey("inventory_items.id"), nullable=True)
    item_name = Column(String(255), nullable=False)
    item_type = Column(String(20), nullable=False)
    quantity = Column(Float, default=1)
    unit_price = Column(Float, default=0)
    line_total = Column(Float, default=0)

    created_at = Column(DateTime(timezone=True), server_default=func.now())
