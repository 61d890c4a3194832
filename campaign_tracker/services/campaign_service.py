"""CampaignService — ingress for campaign events.

Validates payloads, enforces the ECHA approval gate, appends to the log and
folds the new event into the projection. Append and projection update are two
separate commits; ProjectionService.rebuild_stale repairs the gap if the
process dies between them.
"""

from typing import Any

import structlog
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from campaign_tracker.core.config import Settings, get_settings
from campaign_tracker.core.exceptions import ApprovalGateError, CampaignNotFound, PayloadValidationError
from campaign_tracker.domain.events import StoredEvent
from campaign_tracker.domain.ids import generate_campaign_id, is_valid_campaign_id
from campaign_tracker.domain.projection import ProjectionState
from campaign_tracker.domain.statuses import (
    EVENT_TARGET_STATUS,
    RGE_EVENT_TYPES,
    STREAM_TYPE_CAMPAIGN,
    CampaignStatus,
    EventType,
    check_transition,
    parse_event_type,
)
from campaign_tracker.schemas.payloads import parse_payload
from campaign_tracker.services.correction_service import CorrectionService
from campaign_tracker.services.event_log import EventLog
from campaign_tracker.services.projection_service import ProjectionService

logger = structlog.get_logger(__name__)


class CampaignService:
    """Write side of the campaign tracker.

    Uses dependency injection (takes session_factory) so tests can hand in a
    throwaway database.
    """

    def __init__(self, session_factory: async_sessionmaker[AsyncSession], settings: Settings | None = None):
        self.settings = settings or get_settings()
        self.event_log = EventLog(session_factory)
        self.projections = ProjectionService(session_factory, event_log=self.event_log)
        self.corrections = CorrectionService(
            session_factory,
            event_log=self.event_log,
            settings=self.settings,
            projections=self.projections,
        )

    async def create_campaign(self, payload: dict[str, Any], actor: str = "unknown") -> StoredEvent:
        """Mint a campaign id and record its CampaignCreated event."""
        parsed = parse_payload(EventType.CAMPAIGN_CREATED, payload)
        campaign_id = generate_campaign_id()

        event = await self.event_log.append(
            STREAM_TYPE_CAMPAIGN,
            campaign_id,
            EventType.CAMPAIGN_CREATED.value,
            parsed.to_event_data(),
            actor,
        )
        await self.projections.apply_event(event)

        logger.info("campaign_created", campaign_id=campaign_id, code=parsed.lego_campaign_code, actor=actor)
        return event

    async def record_event(
        self,
        campaign_id: str,
        event_type: str,
        payload: dict[str, Any],
        actor: str = "unknown",
    ) -> StoredEvent:
        """Record a business event against an existing campaign.

        Out-of-order events are accepted; they are only logged.

        Raises:
            PayloadValidationError: unknown kind, bad campaign id, or payload rule violated
            CampaignNotFound: no projection exists for ``campaign_id``
            ApprovalGateError: RGE event before ECHA approval while the gate is enforced
        """
        kind = parse_event_type(event_type)
        if kind is None:
            raise PayloadValidationError(
                event_type, [{"field": "event_type", "message": f"Unknown event type: {event_type}"}]
            )
        if kind in (EventType.CAMPAIGN_CREATED, EventType.EVENT_CORRECTED):
            raise PayloadValidationError(
                event_type,
                [{"field": "event_type", "message": f"{event_type} is recorded through its own operation"}],
            )

        self._check_campaign_id(campaign_id, event_type)
        parsed = parse_payload(kind, payload)
        projection = await self._current_projection(campaign_id)

        if self.settings.enforce_echa_gate and kind in RGE_EVENT_TYPES and not projection.echa_approved:
            logger.warning("echa_gate_blocked", campaign_id=campaign_id, event_type=kind.value, actor=actor)
            raise ApprovalGateError(campaign_id, kind.value)

        check = check_transition(CampaignStatus(projection.status), EVENT_TARGET_STATUS[kind])
        if not check.forward:
            logger.warning(
                "out_of_order_event",
                campaign_id=campaign_id,
                event_type=kind.value,
                current_status=projection.status,
                reason=check.reason,
            )

        event = await self.event_log.append(STREAM_TYPE_CAMPAIGN, campaign_id, kind.value, parsed.to_event_data(), actor)
        await self.projections.apply_event(event)
        return event

    async def record_correction(
        self,
        campaign_id: str,
        corrects_event_id: str,
        corrects_event_type: str,
        reason: str,
        changes: dict[str, dict[str, Any]],
        actor: str = "unknown",
    ) -> StoredEvent:
        self._check_campaign_id(campaign_id, EventType.EVENT_CORRECTED.value)
        await self._require_projection(campaign_id)
        return await self.corrections.apply_correction(
            campaign_id,
            corrects_event_id,
            corrects_event_type,
            reason,
            changes,
            actor,
        )

    async def get_campaign(self, campaign_id: str) -> ProjectionState:
        return await self._require_projection(campaign_id)

    async def get_events(self, campaign_id: str) -> list[StoredEvent]:
        await self._require_projection(campaign_id)
        return await self.event_log.read_stream(STREAM_TYPE_CAMPAIGN, campaign_id)

    @staticmethod
    def _check_campaign_id(campaign_id: str, event_type: str) -> None:
        if not is_valid_campaign_id(campaign_id):
            raise PayloadValidationError(
                event_type, [{"field": "campaign_id", "message": f"Invalid campaign id: {campaign_id}"}]
            )

    async def _require_projection(self, campaign_id: str) -> ProjectionState:
        projection = await self.projections.get_projection(campaign_id)
        if projection is None:
            raise CampaignNotFound(campaign_id)
        return projection

    async def _current_projection(self, campaign_id: str) -> ProjectionState:
        """Projection that has applied the newest logged event, re-folded if it lags behind."""
        projection = await self._require_projection(campaign_id)
        latest = await self.event_log.read_latest(STREAM_TYPE_CAMPAIGN, campaign_id)
        if latest is None or projection.last_applied_event_id == latest.id:
            return projection

        logger.warning(
            "projection_stale_before_ingress",
            campaign_id=campaign_id,
            last_applied_event_id=projection.last_applied_event_id,
            latest_event_id=latest.id,
        )
        return await self.projections.rebuild(campaign_id)
