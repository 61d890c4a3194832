"""AuditService — read side of the correction audit trail.

Lists EventCorrected events newest first, labelled with the owning campaign's
LEGO code. Campaign filtering happens in SQL; type and date filters are
applied in Python over the matching corrections.
"""

import math
from datetime import date

import structlog
from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from campaign_tracker.core.config import Settings, get_settings
from campaign_tracker.core.exceptions import StorageUnavailable
from campaign_tracker.db.models.campaign_projection import CampaignProjection
from campaign_tracker.db.models.event import Event
from campaign_tracker.domain.statuses import EventType
from campaign_tracker.schemas.audit import AuditEntry, AuditFilters, AuditPage, CampaignOption
from campaign_tracker.services.event_log import to_stored_event

logger = structlog.get_logger(__name__)


def _in_range(day: date, start_date: date | None, end_date: date | None) -> bool:
    if start_date is not None and day < start_date:
        return False
    if end_date is not None and day > end_date:
        return False
    return True


class AuditService:
    def __init__(self, session_factory: async_sessionmaker[AsyncSession], settings: Settings | None = None):
        self.session_factory = session_factory
        self.settings = settings or get_settings()

    def clamp(self, page: int | None, limit: int | None) -> tuple[int, int]:
        """Normalize paging: page >= 1, 1 <= limit <= audit_max_page_size."""
        page = max(1, page or 1)
        limit = limit or self.settings.audit_page_size
        limit = min(max(1, limit), self.settings.audit_max_page_size)
        return page, limit

    async def list_corrections(
        self,
        filters: AuditFilters | None = None,
        page: int | None = 1,
        limit: int | None = None,
    ) -> AuditPage:
        """Get one page of corrections matching ``filters``.

        Args:
            filters: Optional campaign id, corrected event type and inclusive date range
            page: 1-based page number (clamped to >= 1)
            limit: Page size (clamped to 1..audit_max_page_size)

        Returns:
            AuditPage with entries sorted newest-first.
        """
        filters = filters or AuditFilters()
        page, limit = self.clamp(page, limit)

        stmt = (
            select(Event, CampaignProjection.lego_campaign_code)
            .outerjoin(CampaignProjection, CampaignProjection.id == Event.stream_id)
            .where(Event.event_type == EventType.EVENT_CORRECTED.value)
            .order_by(Event.created_at.desc(), Event.id.desc())
        )
        if filters.campaign_id:
            stmt = stmt.where(Event.stream_id == filters.campaign_id)

        try:
            async with self.session_factory() as session:
                result = await session.execute(stmt)
                rows = result.all()
        except (SQLAlchemyError, OSError) as exc:
            logger.error("audit_query_failed", error=str(exc))
            raise StorageUnavailable("list_corrections", str(exc)) from exc

        entries: list[AuditEntry] = []
        for row, code in rows:
            event = to_stored_event(row)
            if filters.event_type and event.payload.get("correctsEventType") != filters.event_type:
                continue
            if not _in_range(event.created_at.date(), filters.start_date, filters.end_date):
                continue
            entries.append(AuditEntry(
                id=event.id,
                entity_id=event.stream_id,
                entity_label=code,
                corrected_event_id=event.payload.get("correctsEventId"),
                corrected_event_type=event.payload.get("correctsEventType"),
                reason=event.payload.get("reason"),
                changes=event.payload.get("changes") or {},
                actor=event.actor,
                created_at=event.created_at,
            ))

        total = len(entries)
        offset = (page - 1) * limit
        return AuditPage(
            entries=entries[offset:offset + limit],
            total=total,
            page=page,
            limit=limit,
            total_pages=math.ceil(total / limit),
        )

    async def list_campaigns_for_filter(self) -> list[CampaignOption]:
        """Campaign id/code pairs for the audit filter dropdown, ordered by code."""
        stmt = select(CampaignProjection.id, CampaignProjection.lego_campaign_code).order_by(
            CampaignProjection.lego_campaign_code, CampaignProjection.id
        )
        try:
            async with self.session_factory() as session:
                result = await session.execute(stmt)
                return [CampaignOption(id=cid, code=code) for cid, code in result.all()]
        except (SQLAlchemyError, OSError) as exc:
            raise StorageUnavailable("list_campaigns_for_filter", str(exc)) from exc
