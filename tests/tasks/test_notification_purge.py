"""
Tests for the notification purge scheduler.
"""

from contextlib import asynccontextmanager
from datetime import datetime, timedelta, timezone
from unittest.mock import AsyncMock, patch

import pytest
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from workshop.models.notification import Notification
from workshop.tasks import notification_purge
from workshop.tasks.notification_purge import (
    get_scheduler,
    purge_notifications_job,
    start_purge_scheduler,
    stop_purge_scheduler,
)


class TestSchedulerSetup:
    """Tests for scheduler initialization."""

    def test_get_scheduler_singleton(self):
        """Test that get_scheduler returns the same instance."""
        assert get_scheduler() is get_scheduler()

    @pytest.mark.asyncio
    async def test_start_registers_daily_purge(self):
        with patch.object(notification_purge, "purge_notifications_job", AsyncMock(return_value=0)):
            start_purge_scheduler()
            try:
                job = get_scheduler().get_job("notification_purge")
                assert job is not None
                assert job.trigger.interval == timedelta(hours=24)
            finally:
                stop_purge_scheduler()

        assert notification_purge.scheduler is None


class TestPurgeNotificationsJob:
    """Tests for purge_notifications_job."""

    @pytest.mark.asyncio
    async def test_removes_notifications_past_retention(self, test_db: AsyncSession):
        now = datetime.now(timezone.utc).replace(tzinfo=None)
        test_db.add(Notification(title="Old", message="old", created_at=now - timedelta(days=61)))
        test_db.add(Notification(title="New", message="new", created_at=now - timedelta(days=1)))
        await test_db.commit()

        @asynccontextmanager
        async def shared_session():
            yield test_db

        with patch.object(notification_purge.settings, "NOTIFICATION_RETENTION_DAYS", 60):
            removed = await purge_notifications_job(session_factory=shared_session)

        assert removed == 1
        titles = (await test_db.execute(select(Notification.title))).scalars().all()
        assert titles == ["New"]

    @pytest.mark.asyncio
    async def test_failure_is_logged(self, caplog):
        @asynccontextmanager
        async def broken_session():
            raise RuntimeError("disk I/O error")
            yield

        assert await purge_notifications_job(session_factory=broken_session) == 0
        assert "Notification purge failed" in caplog.text
