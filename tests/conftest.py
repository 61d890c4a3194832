"""Shared test fixtures for all test groups."""

from datetime import UTC, datetime, timedelta
from itertools import count

import pytest
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine

from campaign_tracker.core.config import Settings
from campaign_tracker.db.base import Base
from campaign_tracker.domain.events import StoredEvent
from campaign_tracker.domain.ids import generate_campaign_id
from campaign_tracker.domain.statuses import STREAM_TYPE_CAMPAIGN
from campaign_tracker.services.audit_service import AuditService
from campaign_tracker.services.campaign_service import CampaignService
from campaign_tracker.services.event_log import EventLog
from campaign_tracker.services.projection_service import ProjectionService


@pytest.fixture
def settings() -> Settings:
    return Settings(
        database_url="sqlite+aiosqlite:///:memory:",
        enforce_echa_gate=True,
        strict_correction_targets=False,
        json_logs=False,
    )


@pytest.fixture
def strict_settings(settings: Settings) -> Settings:
    return settings.model_copy(update={"strict_correction_targets": True})


@pytest.fixture
async def engine(tmp_path) -> AsyncEngine:
    """File-backed SQLite engine with fresh tables, one per test."""
    import campaign_tracker.db.models  # noqa: F401

    engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'test.db'}", echo=False)
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    await engine.dispose()


@pytest.fixture
def session_factory(engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)


@pytest.fixture
def event_log(session_factory) -> EventLog:
    return EventLog(session_factory)


@pytest.fixture
def projection_service(session_factory, event_log) -> ProjectionService:
    return ProjectionService(session_factory, event_log=event_log)


@pytest.fixture
def campaign_service(session_factory, settings) -> CampaignService:
    return CampaignService(session_factory, settings=settings)


@pytest.fixture
def audit_service(session_factory, settings) -> AuditService:
    return AuditService(session_factory, settings=settings)


@pytest.fixture
def make_event():
    """Build StoredEvents in memory with strictly increasing ids and timestamps."""
    seq = count(1)
    base = datetime(2026, 1, 1, tzinfo=UTC)
    stream_id = generate_campaign_id()

    def _make(event_type: str, payload: dict | None = None, event_id: str | None = None) -> StoredEvent:
        n = next(seq)
        return StoredEvent(
            id=event_id or f"evt_{n:026d}",
            stream_type=STREAM_TYPE_CAMPAIGN,
            stream_id=stream_id,
            event_type=event_type,
            payload=payload or {},
            created_at=base + timedelta(minutes=n),
            metadata={"user_id": "tester"},
        )

    return _make
