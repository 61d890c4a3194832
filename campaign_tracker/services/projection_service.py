"""ProjectionService — persists StatusMachine output in campaign_projections.

Incremental updates apply one event to the stored row. Rebuilds re-fold the
whole stream from the log and overwrite the row, which is how a projection left
stale by a crash between append and update is repaired.
"""

from dataclasses import fields

import structlog
from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from campaign_tracker.core.exceptions import StorageUnavailable
from campaign_tracker.db.models.campaign_projection import CampaignProjection
from campaign_tracker.domain.events import StoredEvent
from campaign_tracker.domain.projection import ProjectionState, StatusMachine
from campaign_tracker.domain.statuses import STREAM_TYPE_CAMPAIGN, TERMINAL_STATUS
from campaign_tracker.services.event_log import EventLog, as_utc

logger = structlog.get_logger(__name__)

_STATE_FIELDS = tuple(f.name for f in fields(ProjectionState))
_DATETIME_FIELDS = ("last_event_at", "created_at", "updated_at", "completed_at")


def to_state(row: CampaignProjection) -> ProjectionState:
    values = {name: getattr(row, name) for name in _STATE_FIELDS}
    for name in _DATETIME_FIELDS:
        values[name] = as_utc(values[name])
    return ProjectionState(**values)


def write_state(row: CampaignProjection, state: ProjectionState) -> None:
    for name in _STATE_FIELDS:
        setattr(row, name, getattr(state, name))


def preceding_event_id(events: list[StoredEvent], event_id: str) -> str | None:
    """Id of the event just before ``event_id`` in an ordered stream, or None if it is first."""
    previous = None
    for event in events:
        if event.id == event_id:
            return previous
        previous = event.id
    return previous


class ProjectionService:
    """Reads and maintains campaign projections."""

    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        event_log: EventLog | None = None,
        machine: StatusMachine | None = None,
    ):
        self.session_factory = session_factory
        self.event_log = event_log or EventLog(session_factory)
        self.machine = machine or StatusMachine()

    async def apply_event(self, event: StoredEvent) -> ProjectionState | None:
        """Fold a freshly appended event into its stream's projection row.

        The row is only patched when it has applied exactly the events before
        ``event``. Otherwise an earlier append never reached the projection and
        the whole stream is re-folded instead.
        """
        events = await self.event_log.read_stream(event.stream_type, event.stream_id)
        expected = preceding_event_id(events, event.id)

        try:
            async with self.session_factory() as session:
                row = await session.get(CampaignProjection, event.stream_id)
                applied = row.last_applied_event_id if row is not None else None
                if applied != expected:
                    new_state = None
                else:
                    current = to_state(row) if row is not None else None
                    new_state = self.machine.apply(current, event)
                    if new_state is None:
                        return None
                    if row is None:
                        row = CampaignProjection(id=new_state.id)
                        session.add(row)
                    write_state(row, new_state)
                    await session.commit()
        except (SQLAlchemyError, OSError) as exc:
            logger.error("projection_update_failed", stream_id=event.stream_id, event_id=event.id, error=str(exc))
            raise StorageUnavailable("apply_event", str(exc)) from exc

        if applied != expected:
            logger.warning(
                "projection_stale_on_apply",
                stream_id=event.stream_id,
                event_id=event.id,
                last_applied_event_id=applied,
                expected_event_id=expected,
            )
            return await self.rebuild(event.stream_id)

        logger.info(
            "projection_updated",
            stream_id=event.stream_id,
            event_type=event.event_type,
            status=new_state.status,
        )
        return new_state

    async def get_projection(self, stream_id: str) -> ProjectionState | None:
        try:
            async with self.session_factory() as session:
                row = await session.get(CampaignProjection, stream_id)
        except (SQLAlchemyError, OSError) as exc:
            raise StorageUnavailable("get_projection", str(exc)) from exc
        return to_state(row) if row is not None else None

    async def list_campaigns(self, status: str | None = None) -> list[ProjectionState]:
        """List projections, most recently updated first.

        Args:
            status: A CampaignStatus value, "active" for everything not yet
                completed, or None for all campaigns
        """
        stmt = select(CampaignProjection).order_by(CampaignProjection.updated_at.desc(), CampaignProjection.id.desc())
        if status == "active":
            stmt = stmt.where(CampaignProjection.status != TERMINAL_STATUS.value)
        elif status is not None:
            stmt = stmt.where(CampaignProjection.status == status)

        try:
            async with self.session_factory() as session:
                result = await session.execute(stmt)
                rows = result.scalars().all()
        except (SQLAlchemyError, OSError) as exc:
            raise StorageUnavailable("list_campaigns", str(exc)) from exc
        return [to_state(row) for row in rows]

    async def rebuild(self, stream_id: str) -> ProjectionState | None:
        """Re-fold a projection from the log alone. Idempotent.

        Returns:
            The rebuilt state, or None if the stream has no events
        """
        events = await self.event_log.read_stream(STREAM_TYPE_CAMPAIGN, stream_id)
        state = self.machine.fold(events)
        if state is None:
            logger.warning("projection_rebuild_empty_stream", stream_id=stream_id)
            return None

        try:
            async with self.session_factory() as session:
                row = await session.get(CampaignProjection, stream_id)
                if row is None:
                    row = CampaignProjection(id=stream_id)
                    session.add(row)
                write_state(row, state)
                await session.commit()
        except (SQLAlchemyError, OSError) as exc:
            logger.error("projection_rebuild_failed", stream_id=stream_id, error=str(exc))
            raise StorageUnavailable("rebuild", str(exc)) from exc

        logger.info("projection_rebuilt", stream_id=stream_id, event_count=len(events), status=state.status)
        return state

    async def find_stale(self) -> list[str]:
        """Streams whose newest event is not the one their projection last applied."""
        latest = await self.event_log.latest_event_ids(STREAM_TYPE_CAMPAIGN)
        try:
            async with self.session_factory() as session:
                result = await session.execute(
                    select(CampaignProjection.id, CampaignProjection.last_applied_event_id)
                )
                applied = dict(result.all())
        except (SQLAlchemyError, OSError) as exc:
            raise StorageUnavailable("find_stale", str(exc)) from exc

        return sorted(stream_id for stream_id, event_id in latest.items() if applied.get(stream_id) != event_id)

    async def rebuild_stale(self) -> list[str]:
        """Rebuild every stale or missing projection. Returns the rebuilt stream ids."""
        stale = await self.find_stale()
        for stream_id in stale:
            await self.rebuild(stream_id)
        if stale:
            logger.info("stale_projections_rebuilt", count=len(stale))
        return stale
