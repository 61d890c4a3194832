"""Campaign API endpoints.

GET  /api/campaigns                        - Projection list (?status=<status>|active)
GET  /api/campaigns/{campaign_id}          - Current projection
GET  /api/campaigns/{campaign_id}/events   - Full event stream, oldest first
POST /api/campaigns/{campaign_id}/corrections - Record a correction
POST /api/campaigns/{campaign_id}/rebuild  - Re-fold the projection from the log
"""

import structlog
from fastapi import APIRouter, Depends, HTTPException

from campaign_tracker.core.actor import get_actor
from campaign_tracker.core.exceptions import CampaignNotFound
from campaign_tracker.db.base import get_session_factory
from campaign_tracker.domain.statuses import CampaignStatus
from campaign_tracker.schemas.campaigns import CampaignListResponse, CampaignResponse
from campaign_tracker.schemas.events import CorrectionRequest, EventResponse, EventStreamResponse
from campaign_tracker.services.campaign_service import CampaignService
from campaign_tracker.services.projection_service import ProjectionService

router = APIRouter()
logger = structlog.get_logger(__name__)

_STATUS_FILTERS = {"active", *(s.value for s in CampaignStatus)}


@router.get("", response_model=CampaignListResponse)
async def list_campaigns(status: str | None = None) -> CampaignListResponse:
    if status is not None and status not in _STATUS_FILTERS:
        raise HTTPException(status_code=400, detail=f"Unknown status filter: {status}")

    projections = ProjectionService(get_session_factory())
    states = await projections.list_campaigns(status)
    return CampaignListResponse(
        campaigns=[CampaignResponse.from_state(s) for s in states],
        total=len(states),
    )


@router.get("/{campaign_id}", response_model=CampaignResponse)
async def get_campaign(campaign_id: str) -> CampaignResponse:
    service = CampaignService(get_session_factory())
    state = await service.get_campaign(campaign_id)
    return CampaignResponse.from_state(state)


@router.get("/{campaign_id}/events", response_model=EventStreamResponse)
async def get_campaign_events(campaign_id: str) -> EventStreamResponse:
    service = CampaignService(get_session_factory())
    events = await service.get_events(campaign_id)
    return EventStreamResponse(
        campaign_id=campaign_id,
        events=[EventResponse.from_event(e) for e in events],
        total=len(events),
    )


@router.post("/{campaign_id}/corrections", response_model=EventResponse, status_code=201)
async def record_correction(
    campaign_id: str,
    request: CorrectionRequest,
    actor: str = Depends(get_actor),
) -> EventResponse:
    """Record a correction. The corrected event itself is never modified."""
    service = CampaignService(get_session_factory())
    event = await service.record_correction(
        campaign_id,
        request.corrects_event_id,
        request.corrects_event_type,
        request.reason,
        request.changes,
        actor,
    )
    return EventResponse.from_event(event)


@router.post("/{campaign_id}/rebuild", response_model=CampaignResponse)
async def rebuild_campaign(campaign_id: str) -> CampaignResponse:
    """Re-fold one projection from its event stream. Safe to call repeatedly."""
    projections = ProjectionService(get_session_factory())
    state = await projections.rebuild(campaign_id)
    if state is None:
        raise CampaignNotFound(campaign_id)
    logger.info("projection_rebuild_requested", campaign_id=campaign_id)
    return CampaignResponse.from_state(state)
