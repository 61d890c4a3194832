"""Correction overlay and weight replay.

Corrections never touch the events they amend. Each EventCorrected event
carries ``{correctsEventId, changes: {field: {was, now}}}``; the overlay folds
all of them into ``{event_id: {field: now}}`` with the last correction per
field winning, and readers see the original payload merged with its overlay.

Pure functions -- no I/O, deterministic for a given ordered stream.
"""
from collections.abc import Iterable, Mapping
from decimal import Decimal
from typing import Any

from campaign_tracker.domain.events import StoredEvent
from campaign_tracker.domain.statuses import EventType, parse_event_type

Overlay = dict[str, dict[str, Any]]

# event kind -> payload field that carries the post-step material weight
WEIGHT_FIELD_BY_EVENT: Mapping[EventType, str] = {
    EventType.INBOUND_SHIPMENT_RECORDED: "netWeightKg",
    EventType.GRANULATION_COMPLETED: "outputWeightKg",
    EventType.METAL_REMOVAL_COMPLETED: "outputWeightKg",
    EventType.POLYMER_PURIFICATION_COMPLETED: "outputWeightKg",
    EventType.EXTRUSION_COMPLETED: "outputWeightKg",
    EventType.TRANSFER_TO_RGE_RECORDED: "receivedWeightKg",
}

WEIGHT_BEARING_FIELDS = frozenset(WEIGHT_FIELD_BY_EVENT.values())

# matches the scale of campaign_projections.current_weight_kg
WEIGHT_QUANTUM = Decimal("0.001")

# creation payload field -> projection column
IDENTITY_FIELDS: Mapping[str, str] = {
    "legoCampaignCode": "lego_campaign_code",
    "materialType": "material_type",
    "description": "description",
}


def touches_weight(changes: Mapping[str, Any]) -> bool:
    return any(name in WEIGHT_BEARING_FIELDS for name in changes)


def touches_identity(changes: Mapping[str, Any]) -> bool:
    return any(name in IDENTITY_FIELDS for name in changes)


def to_weight(value: Any) -> Decimal | None:
    """Normalize a payload weight (float, int or numeric string) to a Decimal in grams precision."""
    if value is None:
        return None
    return Decimal(str(value)).quantize(WEIGHT_QUANTUM)


def extract_weight(event_type: EventType, payload: Mapping[str, Any]) -> Decimal | None:
    """Return the weight an event sets, or None when it leaves the weight unchanged.

    Transfer to RGE only sets the weight when a non-zero received weight was
    recorded; zero means the receiving site did not weigh the lot.
    """
    field_name = WEIGHT_FIELD_BY_EVENT.get(event_type)
    if field_name is None:
        return None
    value = payload.get(field_name)
    if event_type == EventType.TRANSFER_TO_RGE_RECORDED and not value:
        return None
    return to_weight(value)


def build_correction_overlay(events: Iterable[StoredEvent]) -> Overlay:
    """Fold every correction in stream order into ``{event_id: {field: now}}``."""
    overlay: Overlay = {}
    for event in events:
        if event.event_type != EventType.EVENT_CORRECTED:
            continue
        target_id = event.payload.get("correctsEventId")
        if not target_id:
            continue
        fields = overlay.setdefault(target_id, {})
        for name, change in (event.payload.get("changes") or {}).items():
            fields[name] = change.get("now") if isinstance(change, Mapping) else change
    return overlay


def effective_payload(event: StoredEvent, overlay: Overlay) -> dict[str, Any]:
    """Original payload merged with its corrections; corrected fields win."""
    corrected = overlay.get(event.id)
    if not corrected:
        return dict(event.payload)
    return {**event.payload, **corrected}


def replay_current_weight(events: list[StoredEvent]) -> Decimal | None:
    """Recompute the campaign's current weight from the full ordered stream."""
    overlay = build_correction_overlay(events)
    weight: Decimal | None = None
    for event in events:
        if event.event_type == EventType.EVENT_CORRECTED:
            continue
        kind = parse_event_type(event.event_type)
        if kind is None:
            continue
        new_weight = extract_weight(kind, effective_payload(event, overlay))
        if new_weight is not None:
            weight = new_weight
    return weight
