"""Campaign projection state and the status machine that folds events into it.

Pure domain logic -- no database, no clock. Every timestamp on the state comes
from the events themselves, so folding the same ordered stream twice always
yields the same state.
"""
from collections.abc import Iterable
from dataclasses import dataclass, replace
from datetime import datetime
from decimal import Decimal

import structlog

from campaign_tracker.domain.corrections import (
    Overlay,
    build_correction_overlay,
    effective_payload,
    extract_weight,
)
from campaign_tracker.domain.events import StoredEvent
from campaign_tracker.domain.statuses import (
    EVENT_TARGET_STATUS,
    INITIAL_STATUS,
    NEXT_STEP_LABELS,
    STEP_LABELS,
    TERMINAL_STATUS,
    EventType,
    parse_event_type,
)

logger = structlog.get_logger(__name__)


@dataclass(frozen=True)
class ProjectionState:
    """Current state of one campaign; field names match the projection table."""

    id: str
    lego_campaign_code: str | None = None
    material_type: str | None = None
    description: str | None = None
    status: str = INITIAL_STATUS.value
    current_step: str | None = None
    current_weight_kg: Decimal | None = None
    next_expected_step: str | None = None
    echa_approved: bool = False
    last_event_type: str | None = None
    last_event_at: datetime | None = None
    last_applied_event_id: str | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None
    completed_at: datetime | None = None


class StatusMachine:
    """Applies events to ProjectionState using the static progression tables.

    The machine never rejects an event: every business kind moves the campaign
    to its target status regardless of where it currently is. Corrections only
    advance bookkeeping here; their effect on payloads is supplied through the
    overlay that ``fold`` builds up front.
    """

    def __init__(self):
        self.target_status = EVENT_TARGET_STATUS
        self.step_labels = STEP_LABELS
        self.next_step_labels = NEXT_STEP_LABELS

    def apply(
        self,
        state: ProjectionState | None,
        event: StoredEvent,
        overlay: Overlay | None = None,
    ) -> ProjectionState | None:
        """Return the state after ``event``; ``state`` itself is left untouched.

        Args:
            state: Current state, or None before the campaign exists
            event: Event to apply
            overlay: Correction overlay for the stream, if payloads should be read corrected

        Returns:
            New ProjectionState, or None if there is still nothing to project
        """
        kind = parse_event_type(event.event_type)

        if kind is None:
            logger.warning(
                "projection_unknown_event_type",
                event_id=event.id,
                event_type=event.event_type,
                stream_id=event.stream_id,
            )
            if state is None:
                return None
            return replace(state, last_applied_event_id=event.id)

        if kind == EventType.EVENT_CORRECTED:
            if state is None:
                return None
            return replace(state, updated_at=event.created_at, last_applied_event_id=event.id)

        payload = effective_payload(event, overlay) if overlay else event.payload

        if kind == EventType.CAMPAIGN_CREATED:
            state = ProjectionState(
                id=event.stream_id,
                lego_campaign_code=payload.get("legoCampaignCode"),
                material_type=payload.get("materialType"),
                description=payload.get("description"),
                created_at=event.created_at,
            )
        elif state is None:
            # Stream without a creation event; project what we can
            state = ProjectionState(id=event.stream_id, created_at=event.created_at)

        target = self.target_status[kind]
        changes = {
            "status": target.value,
            "current_step": self.step_labels[target],
            "next_expected_step": self.next_step_labels[target],
            "last_event_type": kind.value,
            "last_event_at": event.created_at,
            "last_applied_event_id": event.id,
            "updated_at": event.created_at,
        }

        weight = extract_weight(kind, payload)
        if weight is not None:
            changes["current_weight_kg"] = weight

        if kind == EventType.ECHA_APPROVAL_RECORDED:
            changes["echa_approved"] = True

        if target == TERMINAL_STATUS:
            changes["completed_at"] = event.created_at
            changes["next_expected_step"] = None

        return replace(state, **changes)

    def fold(self, events: Iterable[StoredEvent]) -> ProjectionState | None:
        """Build the state of one stream from scratch, corrections applied."""
        events = list(events)
        overlay = build_correction_overlay(events)
        state: ProjectionState | None = None
        for event in events:
            state = self.apply(state, event, overlay)
        return state
