"""Notification model for the dashboard activity feed."""

from sqlalchemy import Column, String, DateTime, Text, Integer, Boolean
from sqlalchemy.sql import func

from workshop.database import Base


class Notification(Base):
    """Dashboard notification."""

    __tablename__ = "notifications"

    id = Column(Integer, primary_key=True, index=True)

    title = Column(String(255), nullable=False)
    message = Column(Text, nullable=False)
    type = Column(String(50), nullable=True, index=True)  # invoice, payment, stock-usage, stock-add, low-stock, job, job-status, technician

    # Set on low-stock alerts so an item never has two unread alerts open.
    # Not a foreign key: alerts outlive deleted items until purged.
    inventory_item_id = Column(Integer, nullable=True, index=True)

    is_read = Column(Boolean, default=False, nullable=False, index=True)

    created_at = Column(DateTime(timezone=True), server_default=func.now(), index=True)

    def __repr__(self):
        return f"<Notification {self.type}: {self.title[:30]}>"
