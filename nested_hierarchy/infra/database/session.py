"""Database engine and session management with the aiosqlite/async driver.

Engines are created on demand from ``DB_*`` settings rather than at import
time, so the CLI and tests can point at different databases.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any

from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from nested_hierarchy.core.database.base import Base

if TYPE_CHECKING:
    from sqlalchemy import MetaData
    from sqlalchemy.ext.asyncio import AsyncEngine

    from nested_hierarchy.core.settings.database import DatabaseSettings

logger = logging.getLogger(__name__)


def create_engine_from_settings(settings: DatabaseSettings | None = None) -> AsyncEngine:
    """Create an async engine from DB_* settings.

    Args:
        settings: Database settings; loaded from the cache when omitted

    Returns:
        A new AsyncEngine. Dispose it with ``close_engine`` when done.
    """
    if settings is None:
        from nested_hierarchy.core.settings import get_db_settings

        settings = get_db_settings()

    kwargs: dict[str, Any] = {"echo": settings.echo}
    if not settings.is_sqlite:
        kwargs["pool_pre_ping"] = True

    engine = create_async_engine(settings.url, **kwargs)
    logger.debug("Database engine created", extra={"sqlite": settings.is_sqlite})
    return engine


def get_session_factory(
    engine: AsyncEngine,
    settings: DatabaseSettings | None = None,
) -> async_sessionmaker[AsyncSession]:
    """Session factory bound to ``engine``.

    ``expire_on_commit`` comes from settings and defaults to False, so nodes
    returned by the hierarchy engine stay readable after their session ends.
    """
    if settings is None:
        from nested_hierarchy.core.settings import get_db_settings

        settings = get_db_settings()

    return async_sessionmaker(
        engine,
        class_=AsyncSession,
        expire_on_commit=settings.expire_on_commit,
        autoflush=False,
    )


async def init_models(engine: AsyncEngine, metadata: MetaData | None = None) -> None:
    """Check the connection and create any missing tables.

    Raises:
        sqlalchemy.exc.SQLAlchemyError: Connection or DDL failure
    """
    metadata = metadata if metadata is not None else Base.metadata
    try:
        async with engine.begin() as conn:
            await conn.execute(text("SELECT 1"))
            await conn.run_sync(metadata.create_all)
    except Exception as e:
        logger.error("Failed to initialize database", extra={"error": str(e)})
        raise
    logger.info("Database tables ensured", extra={"tables": sorted(metadata.tables)})


async def close_engine(engine: AsyncEngine) -> None:
    """Dispose the engine's connection pool."""
    await engine.dispose()
    logger.debug("Database engine disposed")


__all__ = [
    "close_engine",
    "create_engine_from_settings",
    "get_session_factory",
    "init_models",
]
