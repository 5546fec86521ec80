"""
Notifications API - the dashboard activity feed.

Notifications are written by the notification dispatcher; this router only
reads them, marks them read and purges old ones.
"""

import re
from typing import Optional

from fastapi import APIRouter, HTTPException, status
from sqlalchemy import select, update

from workshop.api.deps import DbSession
from workshop.config import settings
from workshop.models.notification import Notification
from workshop.schemas.notification import NotificationResponse, MarkAllReadResponse, PurgeResponse
from workshop.services.notifications import purge_old_notifications

router = APIRouter()

MAX_LIMIT = 500
UNLIMITED = ("all", "unlimited", "0")


def parse_limit(raw: Optional[str]) -> Optional[int]:
    """Clamp to 1..MAX_LIMIT. Missing, "all", "unlimited", "0" or non-numeric means no limit."""
    raw = (raw or "").strip().lower()
    if not raw or raw in UNLIMITED:
        return None
    match = re.match(r"[+-]?\d+", raw)
    if not match:
        return None
    return min(max(int(match.group()), 1), MAX_LIMIT)


@router.get("", response_model=list[NotificationResponse])
async def list_notifications(
    db: DbSession,
    limit: Optional[str] = None,
    unread: Optional[str] = None,
):
    """Notifications, newest first."""
    query = select(Notification)
    if (unread or "").lower() in ("1", "true"):
        query = query.where(Notification.is_read.is_(False))

    query = query.order_by(Notification.created_at.desc(), Notification.id.desc())
    max_rows = parse_limit(limit)
    if max_rows:
        query = query.limit(max_rows)

    result = await db.execute(query)
    return result.scalars().all()


@router.patch("/mark-all-read", response_model=MarkAllReadResponse)
async def mark_all_read(db: DbSession):
    result = await db.execute(
        update(Notification).where(Notification.is_read.is_(False)).values(is_read=True)
    )
    await db.commit()
    return {"updated": result.rowcount or 0}


@router.patch("/{notification_id}/read", response_model=NotificationResponse)
async def mark_read(notification_id: int, db: DbSession):
    result = await db.execute(
        select(Notification)
        .where(Notification.id == notification_id)
        .execution_options(populate_existing=True)
    )
    notification = result.scalar_one_or_none()
    if not notification:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Notification not found")

    notification.is_read = True
    await db.commit()
    return notification


@router.delete("/purge", response_model=PurgeResponse)
async def purge_notifications(db: DbSession):
    """Remove notifications older than the retention window."""
    removed = await purge_old_notifications(db, settings.NOTIFICATION_RETENTION_DAYS)
    return {"removed": removed}
