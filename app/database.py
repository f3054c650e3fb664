"""
Database Configuration

Async SQLAlchemy engine, session factory and the declarative Base shared by
all models.

SECURITY:
- SQLAlchemy echo disabled in production to prevent data leakage
- Connection string never logged
"""

import logging
import time

from sqlalchemy import event
from sqlalchemy.ext.asyncio import AsyncSession, create_async_engine, async_sessionmaker
from sqlalchemy.orm import DeclarativeBase
from app.config import settings

logger = logging.getLogger(__name__)

SLOW_QUERY_THRESHOLD_MS = 500


def _engine_options(url: str) -> dict:
    # SQLite (local runs, tests) does not take queue pool sizing arguments
    if url.startswith("sqlite"):
        return {}
    return {
        "pool_size": 20,
        "max_overflow": 10,
        "pool_recycle": 3600,
        "pool_pre_ping": True,
    }


engine = create_async_engine(
    settings.DATABASE_URL,
    echo=settings.sqlalchemy_echo,
    future=True,
    **_engine_options(settings.DATABASE_URL),
)


def _before_cursor_execute(conn, cursor, statement, parameters, context, executemany):
    conn.info["query_start_time"] = time.monotonic()


def _after_cursor_execute(conn, cursor, statement, parameters, context, executemany):
    start = conn.info.get("query_start_time")
    if start is None:
        return
    duration_ms = (time.monotonic() - start) * 1000
    if duration_ms >= SLOW_QUERY_THRESHOLD_MS:
        param_count = len(parameters) if parameters else 0
        truncated = statement[:200] + ("..." if len(statement) > 200 else "")
        logger.warning(
            "Slow query (%.0fms, %d params): %s", duration_ms, param_count, truncated
        )


event.listen(engine.sync_engine, "before_cursor_execute", _before_cursor_execute)
event.listen(engine.sync_engine, "after_cursor_execute", _after_cursor_execute)

# Session factory
async_session_maker = async_sessionmaker(
    engine,
    class_=AsyncSession,
    expire_on_commit=False,
)


class Base(DeclarativeBase):
    """Base class for all models."""

    pass


async def get_db() -> AsyncSession:
    """Dependency to get database session.

    Note: Endpoints are responsible for calling commit() when needed.
    This dependency only provides the session and handles cleanup.
    """
    session = async_session_maker()
    try:
        yield session
    finally:
        await session.close()


async def init_db():
    """Initialize database tables."""
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
