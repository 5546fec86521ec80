"""
Database setup for the workshop's single SQLite file.

Every connection gets `PRAGMA foreign_keys=ON`, so deleting a customer,
technician, inventory item or supplier that other rows still reference
fails with an IntegrityError (reported to clients as 409). Statements over
SLOW_QUERY_THRESHOLD_MS are logged without their parameters.
"""

import logging
import time
from contextlib import asynccontextmanager
from typing import AsyncIterator

from sqlalchemy import event
from sqlalchemy.engine import Engine
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.orm import DeclarativeBase

from workshop.config import settings

logger = logging.getLogger(__name__)

SLOW_QUERY_THRESHOLD_MS = 500
STATEMENT_LOG_LENGTH = 200


class Base(DeclarativeBase):
    pass


def _enable_foreign_keys(dbapi_connection, connection_record):
    cursor = dbapi_connection.cursor()
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.close()


def _start_timer(conn, cursor, statement, parameters, context, executemany):
    conn.info.setdefault("statement_started", []).append(time.monotonic())


def _log_if_slow(conn, cursor, statement, parameters, context, executemany):
    started = conn.info.get("statement_started")
    if not started:
        return
    elapsed_ms = (time.monotonic() - started.pop()) * 1000
    if elapsed_ms < SLOW_QUERY_THRESHOLD_MS:
        return
    shown = statement if len(statement) <= STATEMENT_LOG_LENGTH else statement[:STATEMENT_LOG_LENGTH] + "..."
    logger.warning("Slow query took %.0fms: %s", elapsed_ms, shown)


def instrument_engine(sync_engine: Engine) -> None:
    """Foreign keys on and slow statement logging for one engine."""
    event.listen(sync_engine, "connect", _enable_foreign_keys)
    event.listen(sync_engine, "before_cursor_execute", _start_timer)
    event.listen(sync_engine, "after_cursor_execute", _log_if_slow)


engine = create_async_engine(settings.DATABASE_URL, echo=settings.sqlalchemy_echo)
instrument_engine(engine.sync_engine)

async_session_maker = async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)


async def get_db() -> AsyncIterator[AsyncSession]:
    """One session per request.

    Routes commit themselves, directly or through `transaction`.
    """
    async with async_session_maker() as session:
        yield session


@asynccontextmanager
async def transaction(db: AsyncSession) -> AsyncIterator[AsyncSession]:
    """Commit on success, roll back on any error and re-raise it unchanged.

    A failing rollback is logged; the original error is what propagates.
    """
    try:
        yield db
        await db.commit()
    except BaseException:
        try:
            await db.rollback()
        except Exception:
            logger.exception("Rollback failed")
        raise


async def init_db() -> None:
    """Create missing tables. There are no migrations; the schema only grows."""
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
