"""
FastAPI Dependencies

Provides dependency injection for database sessions, the notification
dispatcher and the email service.
"""

from typing import Annotated

from fastapi import Depends, Request
from sqlalchemy.ext.asyncio import AsyncSession

from workshop.database import get_db
from workshop.services.email_service import EmailService, get_email_service
from workshop.services.invoice_ledger import InvoiceLedger
from workshop.services.notifications import NotificationDispatcher


def get_notifier(request: Request) -> NotificationDispatcher:
    """The dispatcher created with the app and started by its lifespan."""
    return request.app.state.notifications


def get_ledger(
    db: Annotated[AsyncSession, Depends(get_db)],
    notifier: Annotated[NotificationDispatcher, Depends(get_notifier)],
) -> InvoiceLedger:
    return InvoiceLedger(db, notifier)


# Type aliases for cleaner endpoint signatures
DbSession = Annotated[AsyncSession, Depends(get_db)]
Notifier = Annotated[NotificationDispatcher, Depends(get_notifier)]
Ledger = Annotated[InvoiceLedger, Depends(get_ledger)]
Mailer = Annotated[EmailService, Depends(get_email_service)]
