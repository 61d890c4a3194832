"""Pydantic schemas for event ingress and event read-back."""

from datetime import datetime
from typing import Any

from pydantic import BaseModel, Field

from campaign_tracker.domain.events import StoredEvent


class EventResponse(BaseModel):
    id: str
    stream_type: str
    stream_id: str
    event_type: str
    payload: dict[str, Any] = Field(default_factory=dict)
    metadata: dict[str, Any] = Field(default_factory=dict)
    created_at: datetime

    @classmethod
    def from_event(cls, event: StoredEvent) -> "EventResponse":
        return cls(
            id=event.id,
            stream_type=event.stream_type,
            stream_id=event.stream_id,
            event_type=event.event_type,
            payload=event.payload,
            metadata=event.metadata,
            created_at=event.created_at,
        )


class RecordEventRequest(BaseModel):
    """Body for POST /api/events. campaign_id is omitted for CampaignCreated."""

    event_type: str = Field(..., min_length=1)
    campaign_id: str | None = None
    payload: dict[str, Any] = Field(default_factory=dict)


class RecordEventResponse(BaseModel):
    event: EventResponse
    campaign_id: str


class CorrectionRequest(BaseModel):
    """Body for POST /api/campaigns/{id}/corrections."""

    corrects_event_id: str = Field(..., min_length=1)
    corrects_event_type: str = Field(..., min_length=1)
    reason: str = Field(..., min_length=1)
    changes: dict[str, dict[str, Any]] = Field(..., min_length=1, description="{field: {was, now}}")


class EventStreamResponse(BaseModel):
    """All events of one campaign, oldest first. events is never null."""

    campaign_id: str
    events: list[EventResponse] = Field(default_factory=list)
    total: int = 0
