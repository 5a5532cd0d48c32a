"""Async engine and session factory for the issue store.

Production runs on PostgreSQL through asyncpg. Plain ``postgres://`` and
``postgresql://`` URLs are rewritten to the asyncpg driver; any other async
URL (``sqlite+aiosqlite://`` in the storage tests) is used as given.
"""

from typing import Any

from sqlalchemy import text
from sqlalchemy.engine import URL, make_url
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)

from campusfix.config import CampusFixSettings, get_settings
from campusfix.logging_config import get_logger

logger = get_logger(__name__)

_engine: AsyncEngine | None = None
_session_factory: async_sessionmaker[AsyncSession] | None = None


def normalize_database_url(raw: str) -> URL:
    url = make_url(raw)
    if url.get_backend_name() in ("postgres", "postgresql") and url.get_driver_name() != "asyncpg":
        url = url.set(drivername="postgresql+asyncpg")
    return url


def engine_options(url: URL, settings: CampusFixSettings) -> dict[str, Any]:
    """Pool sizing applies to PostgreSQL only; SQLite keeps its default pool."""
    options: dict[str, Any] = {"echo": settings.database_echo}
    if url.get_backend_name() == "postgresql":
        options.update(
            pool_size=settings.database_pool_size,
            max_overflow=settings.database_max_overflow,
            pool_pre_ping=True,
            pool_recycle=3600,
        )
    return options


def get_engine() -> AsyncEngine:
    global _engine
    if _engine is None:
        settings = get_settings()
        url = normalize_database_url(settings.database_url)
        _engine = create_async_engine(url, **engine_options(url, settings))
        logger.info(
            "database_engine_created",
            backend=url.get_backend_name(),
            host=url.host,
            database=url.database,
        )
    return _engine


def make_session_factory(engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(engine, expire_on_commit=False, autoflush=False)


def get_session_factory() -> async_sessionmaker[AsyncSession]:
    global _session_factory
    if _session_factory is None:
        _session_factory = make_session_factory(get_engine())
    return _session_factory


async def init_db() -> None:
    """Open the engine and fail startup if the store is unreachable."""
    async with get_engine().connect() as conn:
        await conn.execute(text("SELECT 1"))
    logger.info("database_connection_verified")


async def close_db() -> None:
    global _engine, _session_factory
    if _engine is None:
        return
    await _engine.dispose()
    _engine = None
    _session_factory = None
    logger.info("database_connections_closed")
