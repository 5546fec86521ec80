"""Notification Purge Scheduler - keeps the activity feed bounded.

Deletes notifications older than NOTIFICATION_RETENTION_DAYS once at
startup and then every 24 hours.
"""

import logging
from datetime import datetime, timezone
from typing import Optional

from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.interval import IntervalTrigger

from workshop.config import settings
from workshop.database import async_session_maker
from workshop.services.notifications import purge_old_notifications

logger = logging.getLogger(__name__)

PURGE_INTERVAL_HOURS = 24

# Global scheduler instance
scheduler: Optional[AsyncIOScheduler] = None


def get_scheduler() -> AsyncIOScheduler:
    """Get or create the scheduler instance."""
    global scheduler
    if scheduler is None:
        scheduler = AsyncIOScheduler()
    return scheduler


async def purge_notifications_job(session_factory=async_session_maker) -> int:
    """Run one purge. Failures are logged and reported as 0 removed."""
    try:
        async with session_factory() as db:
            removed = await purge_old_notifications(db, settings.NOTIFICATION_RETENTION_DAYS)
    except Exception:
        logger.exception("Notification purge failed")
        return 0

    if removed:
        logger.info(
            "Purged %d notifications older than %d days", removed, settings.NOTIFICATION_RETENTION_DAYS
        )
    return removed


def start_purge_scheduler():
    """Schedule the purge job and start the scheduler."""
    global scheduler

    scheduler = get_scheduler()

    scheduler.add_job(
        purge_notifications_job,
        IntervalTrigger(hours=PURGE_INTERVAL_HOURS),
        id="notification_purge",
        name="Purge old notifications",
        replace_existing=True,
        next_run_time=datetime.now(timezone.utc),
    )

    if not scheduler.running:
        scheduler.start()
        logger.info("Notification purge scheduler started")
        for job in scheduler.get_jobs():
            logger.info(f"  - {job.name}: {job.trigger}")


def stop_purge_scheduler():
    """Stop the purge scheduler."""
    global scheduler

    if scheduler and scheduler.running:
        scheduler.shutdown(wait=False)
        logger.info("Notification purge scheduler stopped")
    scheduler = None
