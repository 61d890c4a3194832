"""Pydantic schemas for the correction audit trail."""

from datetime import date, datetime
from typing import Any

from pydantic import BaseModel, Field


class AuditEntry(BaseModel):
    """A single correction, labelled with its campaign's code."""

    id: str
    entity_id: str
    entity_label: str | None = None
    corrected_event_id: str | None = None
    corrected_event_type: str | None = None
    reason: str | None = None
    changes: dict[str, Any] = Field(default_factory=dict)
    actor: str | None = None
    created_at: datetime


class AuditPage(BaseModel):
    """Paginated audit response. entries defaults to empty array, never null."""

    entries: list[AuditEntry] = Field(default_factory=list)
    total: int = 0
    page: int = 1
    limit: int = 20
    total_pages: int = 0


class AuditFilters(BaseModel):
    campaign_id: str | None = None
    event_type: str | None = None
    start_date: date | None = None
    end_date: date | None = None


class CampaignOption(BaseModel):
    id: str
    code: str | None = None
