"""Notification Service - deferred delivery of dashboard notifications.

Ledger operations never write notifications inside their own transaction.
They collect NotificationEvent objects while they run and publish them to the
NotificationDispatcher only after a successful commit. The dispatcher owns its
own database sessions, so a failed notification insert is logged and can
never roll back an invoice, a stock movement or a purchase.

Low-stock alerts are deduplicated on delivery: an item with an unread
low-stock notification does not get a second one.
"""

import asyncio
import logging
from contextlib import AbstractAsyncContextManager
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Callable, Iterable, Optional

from sqlalchemy import delete, select
from sqlalchemy.ext.asyncio import AsyncSession

from workshop.database import async_session_maker
from workshop.models.notification import Notification

logger = logging.getLogger(__name__)

LOW_STOCK = "low-stock"

SessionFactory = Callable[[], AbstractAsyncContextManager[AsyncSession]]


@dataclass(frozen=True)
class NotificationEvent:
    title: str
    message: str
    type: Optional[str] = None
    inventory_item_id: Optional[int] = None


def low_stock_event(item_id: int, name: str, quantity: str) -> NotificationEvent:
    return NotificationEvent(
        title="Low stock warning",
        message=f"Item #{item_id} ({name}) low on stock ({quantity}).",
        type=LOW_STOCK,
        inventory_item_id=item_id,
    )


async def has_open_low_stock_alert(db: AsyncSession, inventory_item_id: int) -> bool:
    result = await db.execute(
        select(Notification.id)
        .where(
            Notification.type == LOW_STOCK,
            Notification.is_read.is_(False),
            Notification.inventory_item_id == inventory_item_id,
        )
        .limit(1)
    )
    return result.scalar_one_or_none() is not None


async def store_notification(db: AsyncSession, event: NotificationEvent) -> Optional[Notification]:
    """Insert one notification. Blank titles or messages are skipped.

    The caller commits.
    """
    title = (event.title or "").strip()
    message = (event.message or "").strip()
    if not title or not message:
        return None

    if event.type == LOW_STOCK and event.inventory_item_id is not None:
        if await has_open_low_stock_alert(db, event.inventory_item_id):
            logger.debug("Low stock alert already open for item %s", event.inventory_item_id)
            return None

    notification = Notification(
        title=title,
        message=message,
        type=event.type or None,
        inventory_item_id=event.inventory_item_id,
    )
    db.add(notification)
    await db.flush()
    return notification


async def purge_old_notifications(db: AsyncSession, days: int) -> int:
    """Delete notifications older than `days`. Returns the number removed."""
    cutoff = datetime.now(timezone.utc) - timedelta(days=days)
    # SQLite stores CURRENT_TIMESTAMP as naive UTC text
    result = await db.execute(
        delete(Notification).where(Notification.created_at < cutoff.replace(tzinfo=None))
    )
    await db.commit()
    return result.rowcount or 0


class NotificationDispatcher:
    """In-process queue consumer that persists published notification events."""

    def __init__(self, session_factory: SessionFactory = async_session_maker):
        self._session_factory = session_factory
        self._queue: asyncio.Queue[NotificationEvent] = asyncio.Queue()
        self._worker: Optional[asyncio.Task] = None

    @property
    def pending(self) -> int:
        return self._queue.qsize()

    @property
    def running(self) -> bool:
        return self._worker is not None and not self._worker.done()

    def publish(self, events: Iterable[NotificationEvent]) -> None:
        for event in events:
            self._queue.put_nowait(event)

    async def deliver(self, event: NotificationEvent) -> bool:
        """Persist one event in its own session. Failures are logged, never raised."""
        try:
            async with self._session_factory() as db:
                stored = await store_notification(db, event)
                await db.commit()
                return stored is not None
        except Exception:
            logger.exception("Failed to deliver notification %r", event.title)
            return False

    async def drain(self) -> int:
        """Deliver everything currently queued. Returns the number stored."""
        stored = 0
        while not self._queue.empty():
            event = self._queue.get_nowait()
            try:
                if await self.deliver(event):
                    stored += 1
            finally:
                self._queue.task_done()
        return stored

    async def _run(self) -> None:
        while True:
            event = await self._queue.get()
            try:
                await self.deliver(event)
            finally:
                self._queue.task_done()

    def start(self) -> None:
        if self.running:
            return
        self._worker = asyncio.create_task(self._run(), name="notification-dispatcher")
        logger.info("Notification dispatcher started")

    async def stop(self) -> None:
        """Flush the queue, then stop the worker."""
        if self._worker is None:
            await self.drain()
            return
        await self._queue.join()
        self._worker.cancel()
        try:
            await self._worker
        except asyncio.CancelledError:
            pass
        self._worker = None
        logger.info("Notification dispatcher stopped")
