"""Declarative base plus the process-wide engine and session factory."""

from typing import Any

from sqlalchemy.engine import make_url
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.orm import DeclarativeBase

from campaign_tracker.core.config import Settings, get_settings


class Base(DeclarativeBase):
    pass


_engine: AsyncEngine | None = None
_session_factory: async_sessionmaker[AsyncSession] | None = None


def engine_options(db_url: str, settings: Settings) -> dict[str, Any]:
    """Keyword arguments for create_async_engine.

    SQLite (local runs and tests) gets SQLAlchemy's default pool; PostgreSQL
    gets a sized, pre-pinged pool.
    """
    options: dict[str, Any] = {"echo": settings.debug}
    if make_url(db_url).get_backend_name() == "sqlite":
        return options
    options.update(
        pool_pre_ping=True,
        pool_size=settings.db_pool_size,
        max_overflow=settings.db_max_overflow,
    )
    return options


async def init_db(url: str | None = None) -> None:
    """Create the engine and session factory, then the events and projection tables.

    A second call is a no-op until close_db() runs.
    """
    global _engine, _session_factory

    if _engine is not None:
        return

    settings = get_settings()
    db_url = url or settings.database_url

    _engine = create_async_engine(db_url, **engine_options(db_url, settings))
    _session_factory = async_sessionmaker(_engine, class_=AsyncSession, expire_on_commit=False)

    # Register Event and CampaignProjection on Base.metadata
    import campaign_tracker.db.models  # noqa: F401

    async with _engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)


async def close_db() -> None:
    global _engine, _session_factory

    if _engine is not None:
        await _engine.dispose()
        _engine = None
        _session_factory = None


def get_session_factory() -> async_sessionmaker[AsyncSession]:
    """Return the configured session factory.

    Raises RuntimeError if init_db() has not been called.
    """
    if _session_factory is None:
        raise RuntimeError("Database not initialized. Call init_db() first.")
    return _session_factory
