"""Event ingress API.

POST /api/events - Record a campaign event (CampaignCreated mints the campaign id)
"""

import structlog
from fastapi import APIRouter, Depends

from campaign_tracker.core.actor import get_actor
from campaign_tracker.core.exceptions import PayloadValidationError
from campaign_tracker.db.base import get_session_factory
from campaign_tracker.domain.statuses import EventType
from campaign_tracker.schemas.events import EventResponse, RecordEventRequest, RecordEventResponse
from campaign_tracker.services.campaign_service import CampaignService

router = APIRouter()
logger = structlog.get_logger(__name__)


@router.post("", response_model=RecordEventResponse, status_code=201)
async def record_event(request: RecordEventRequest, actor: str = Depends(get_actor)) -> RecordEventResponse:
    """Record one event.

    Errors map through the application exception handlers:
    400 invalid payload or campaign id, 404 unknown campaign,
    403 ECHA approval missing, 503 storage unavailable.
    """
    service = CampaignService(get_session_factory())

    if request.event_type == EventType.CAMPAIGN_CREATED:
        event = await service.create_campaign(request.payload, actor)
    else:
        if not request.campaign_id:
            raise PayloadValidationError(
                request.event_type, [{"field": "campaign_id", "message": "Campaign ID is required"}]
            )
        event = await service.record_event(request.campaign_id, request.event_type, request.payload, actor)

    return RecordEventResponse(event=EventResponse.from_event(event), campaign_id=event.stream_id)
