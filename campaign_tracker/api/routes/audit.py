"""Correction audit API endpoints.

GET /api/audit           - Paginated correction history with filters
GET /api/audit/campaigns - Campaign id/code options for the filter dropdown
"""

from datetime import date

from fastapi import APIRouter

from campaign_tracker.db.base import get_session_factory
from campaign_tracker.schemas.audit import AuditFilters, AuditPage, CampaignOption
from campaign_tracker.services.audit_service import AuditService

router = APIRouter()


@router.get("", response_model=AuditPage)
async def list_corrections(
    campaign_id: str | None = None,
    event_type: str | None = None,
    start_date: date | None = None,
    end_date: date | None = None,
    page: int = 1,
    limit: int | None = None,
) -> AuditPage:
    """List corrections newest-first.

    Query params:
        campaign_id: Only corrections for this campaign
        event_type: Only corrections of this event kind (e.g. "InboundShipmentRecorded")
        start_date: Start of date range (inclusive)
        end_date: End of date range (inclusive)
        page: 1-based page number
        limit: Page size, clamped to 1..100
    """
    service = AuditService(get_session_factory())
    return await service.list_corrections(
        AuditFilters(campaign_id=campaign_id, event_type=event_type, start_date=start_date, end_date=end_date),
        page=page,
        limit=limit,
    )


@router.get("/campaigns", response_model=list[CampaignOption])
async def list_campaign_options() -> list[CampaignOption]:
    service = AuditService(get_session_factory())
    return await service.list_campaigns_for_filter()
