"""EventLog — append-only access to the events table.

There is no update or delete path. Payloads are stored exactly as
given; shape validation belongs to ingress.
"""

from datetime import UTC, datetime
from typing import Any

import structlog
from sqlalchemy import func, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from campaign_tracker.core.exceptions import StorageUnavailable
from campaign_tracker.db.models.event import Event
from campaign_tracker.domain.events import StoredEvent
from campaign_tracker.domain.ids import generate_event_id

logger = structlog.get_logger(__name__)


def as_utc(value: datetime | None) -> datetime | None:
    """Attach UTC to naive datetimes read back from backends without tz support."""
    if value is None or value.tzinfo is not None:
        return value
    return value.replace(tzinfo=UTC)


def to_stored_event(row: Event) -> StoredEvent:
    return StoredEvent(
        id=row.id,
        stream_type=row.stream_type,
        stream_id=row.stream_id,
        event_type=row.event_type,
        payload=dict(row.payload or {}),
        created_at=as_utc(row.created_at),
        metadata=dict(row.event_metadata or {}),
    )


class EventLog:
    """Reads and appends events. One session (and transaction) per call."""

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]):
        self.session_factory = session_factory

    async def append(
        self,
        stream_type: str,
        stream_id: str,
        event_type: str,
        payload: dict[str, Any],
        actor: str = "unknown",
    ) -> StoredEvent:
        """Persist a new event and return it as stored.

        Raises:
            StorageUnavailable: the write could not be committed
        """
        now = datetime.now(UTC)
        row = Event(
            id=generate_event_id(),
            stream_type=stream_type,
            stream_id=stream_id,
            event_type=event_type,
            payload=payload,
            event_metadata={"user_id": actor, "timestamp": now.isoformat()},
            created_at=now,
        )
        try:
            async with self.session_factory() as session:
                session.add(row)
                await session.commit()
        except (SQLAlchemyError, OSError) as exc:
            logger.error("event_append_failed", stream_id=stream_id, event_type=event_type, error=str(exc))
            raise StorageUnavailable("append", str(exc)) from exc

        logger.info("event_appended", event_id=row.id, stream_id=stream_id, event_type=event_type, actor=actor)
        return to_stored_event(row)

    async def read_stream(self, stream_type: str, stream_id: str) -> list[StoredEvent]:
        """All events of one stream, oldest first."""
        stmt = (
            select(Event)
            .where(Event.stream_type == stream_type, Event.stream_id == stream_id)
            .order_by(Event.created_at, Event.id)
        )
        return await self._fetch("read_stream", stmt)

    async def read_by_type(self, event_type: str, limit: int | None = None) -> list[StoredEvent]:
        """Events of one kind across every stream, newest first."""
        stmt = select(Event).where(Event.event_type == event_type).order_by(Event.created_at.desc(), Event.id.desc())
        if limit is not None:
            stmt = stmt.limit(limit)
        return await self._fetch("read_by_type", stmt)

    async def read_latest(self, stream_type: str, stream_id: str) -> StoredEvent | None:
        stmt = (
            select(Event)
            .where(Event.stream_type == stream_type, Event.stream_id == stream_id)
            .order_by(Event.created_at.desc(), Event.id.desc())
            .limit(1)
        )
        events = await self._fetch("read_latest", stmt)
        return events[0] if events else None

    async def get_event(self, event_id: str) -> StoredEvent | None:
        try:
            async with self.session_factory() as session:
                row = await session.get(Event, event_id)
        except (SQLAlchemyError, OSError) as exc:
            raise StorageUnavailable("get_event", str(exc)) from exc
        return to_stored_event(row) if row is not None else None

    async def latest_event_ids(self, stream_type: str) -> dict[str, str]:
        """Map each stream of ``stream_type`` to the id of its newest event.

        Event ids are monotonic ULIDs, so the greatest id is the newest event.
        """
        stmt = (
            select(Event.stream_id, func.max(Event.id))
            .where(Event.stream_type == stream_type)
            .group_by(Event.stream_id)
        )
        try:
            async with self.session_factory() as session:
                result = await session.execute(stmt)
                return {stream_id: event_id for stream_id, event_id in result.all()}
        except (SQLAlchemyError, OSError) as exc:
            raise StorageUnavailable("latest_event_ids", str(exc)) from exc

    async def _fetch(self, operation: str, stmt) -> list[StoredEvent]:
        try:
            async with self.session_factory() as session:
                result = await session.execute(stmt)
                rows = result.scalars().all()
        except (SQLAlchemyError, OSError) as exc:
            logger.error("event_read_failed", operation=operation, error=str(exc))
            raise StorageUnavailable(operation, str(exc)) from exc
        return [to_stored_event(row) for row in rows]
