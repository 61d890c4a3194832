"""CorrectionService — records EventCorrected events and replays their effect.

The corrected event stays untouched in the log. When a correction changes a
weight-bearing field the current weight is replayed over the whole stream with
the correction overlay applied; other corrections only bump ``updated_at``
(plus identity columns when the creation event itself was corrected).
"""

from typing import Any

import structlog
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from campaign_tracker.core.config import Settings, get_settings
from campaign_tracker.core.exceptions import CorrectionTargetNotFound, PayloadValidationError, StorageUnavailable
from campaign_tracker.db.models.campaign_projection import CampaignProjection
from campaign_tracker.domain.corrections import (
    IDENTITY_FIELDS,
    build_correction_overlay,
    effective_payload,
    replay_current_weight,
    touches_identity,
    touches_weight,
)
from campaign_tracker.domain.events import StoredEvent
from campaign_tracker.domain.statuses import STREAM_TYPE_CAMPAIGN, EventType
from campaign_tracker.schemas.payloads import parse_payload
from campaign_tracker.services.event_log import EventLog
from campaign_tracker.services.projection_service import ProjectionService, preceding_event_id

logger = structlog.get_logger(__name__)


class CorrectionService:
    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        event_log: EventLog | None = None,
        settings: Settings | None = None,
        projections: ProjectionService | None = None,
    ):
        self.session_factory = session_factory
        self.event_log = event_log or EventLog(session_factory)
        self.settings = settings or get_settings()
        self.projections = projections or ProjectionService(session_factory, event_log=self.event_log)

    async def apply_correction(
        self,
        stream_id: str,
        corrects_event_id: str,
        corrects_event_type: str,
        reason: str,
        changes: dict[str, dict[str, Any]],
        actor: str = "unknown",
    ) -> StoredEvent:
        """Append a correction for ``corrects_event_id`` and update the projection.

        Args:
            stream_id: Campaign the corrected event belongs to
            corrects_event_id: Id of the event being corrected
            corrects_event_type: Kind of the event being corrected
            reason: Free-text justification, shown in the audit trail
            changes: ``{field: {"was": old, "now": new}}``
            actor: Acting user id

        Returns:
            The stored EventCorrected event

        Raises:
            PayloadValidationError: malformed correction, or strict mode and
                ``corrects_event_type`` does not match the target
            CorrectionTargetNotFound: strict mode and the target is not in this stream
            StorageUnavailable: the log or projection could not be written
        """
        payload = parse_payload(
            EventType.EVENT_CORRECTED,
            {
                "correctsEventId": corrects_event_id,
                "correctsEventType": corrects_event_type,
                "reason": reason,
                "changes": changes,
            },
        )

        await self._check_target(stream_id, corrects_event_id, corrects_event_type)

        event = await self.event_log.append(
            STREAM_TYPE_CAMPAIGN,
            stream_id,
            EventType.EVENT_CORRECTED.value,
            payload.to_event_data(),
            actor,
        )

        events = await self.event_log.read_stream(STREAM_TYPE_CAMPAIGN, stream_id)
        replay_weight = touches_weight(changes)
        replay_identity = touches_identity(changes)
        updates: dict[str, Any] = {}
        if replay_weight:
            updates["current_weight_kg"] = replay_current_weight(events)
        if replay_identity:
            updates.update(_replay_identity(events))

        patched = await self._update_projection(event, preceding_event_id(events, event.id), updates)
        if not patched:
            await self.projections.rebuild(stream_id)

        logger.info(
            "correction_applied",
            stream_id=stream_id,
            correction_id=event.id,
            corrects_event_id=corrects_event_id,
            fields=sorted(changes),
            weight_replayed=replay_weight,
            rebuilt=not patched,
        )
        return event

    async def _check_target(self, stream_id: str, corrects_event_id: str, corrects_event_type: str) -> None:
        strict = self.settings.strict_correction_targets
        target = await self.event_log.get_event(corrects_event_id)

        if target is None or target.stream_id != stream_id:
            if strict:
                raise CorrectionTargetNotFound(stream_id, corrects_event_id)
            logger.warning("correction_target_not_found", stream_id=stream_id, corrects_event_id=corrects_event_id)
            return

        if target.event_type != corrects_event_type:
            if strict:
                raise PayloadValidationError(
                    EventType.EVENT_CORRECTED.value,
                    [{
                        "field": "correctsEventType",
                        "message": f"Event {corrects_event_id} is {target.event_type}, not {corrects_event_type}",
                    }],
                )
            logger.warning(
                "correction_target_type_mismatch",
                stream_id=stream_id,
                corrects_event_id=corrects_event_id,
                corrects_event_type=corrects_event_type,
                actual_event_type=target.event_type,
            )

    async def _update_projection(self, event: StoredEvent, expected: str | None, updates: dict[str, Any]) -> bool:
        """Patch the projection row in place.

        Returns False without writing when the row has not applied every event
        before the correction; the caller re-folds the stream instead.
        """
        try:
            async with self.session_factory() as session:
                row = await session.get(CampaignProjection, event.stream_id)
                if row is None or row.last_applied_event_id != expected:
                    logger.warning(
                        "correction_projection_stale",
                        stream_id=event.stream_id,
                        correction_id=event.id,
                        last_applied_event_id=row.last_applied_event_id if row is not None else None,
                        expected_event_id=expected,
                    )
                    return False
                for name, value in updates.items():
                    setattr(row, name, value)
                row.updated_at = event.created_at
                row.last_applied_event_id = event.id
                await session.commit()
        except (SQLAlchemyError, OSError) as exc:
            logger.error("correction_projection_update_failed", stream_id=event.stream_id, error=str(exc))
            raise StorageUnavailable("apply_correction", str(exc)) from exc
        return True


def _replay_identity(events: list[StoredEvent]) -> dict[str, Any]:
    # a later creation event re-initializes the campaign, so the last one wins
    overlay = build_correction_overlay(events)
    for event in reversed(events):
        if event.event_type == EventType.CAMPAIGN_CREATED:
            payload = effective_payload(event, overlay)
            return {column: payload.get(name) for name, column in IDENTITY_FIELDS.items()}
    return {}
