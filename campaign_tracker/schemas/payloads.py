"""Event payload Pydantic schemas — one model per event kind.

The event log stores payloads as open JSON objects and never validates them.
These models are the contract each producer is held to at ingress: the
serialized (by-alias, camelCase) dict is what lands in the log.
"""

import re
from datetime import date
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, ValidationError, ValidationInfo, field_validator

from campaign_tracker.core.exceptions import PayloadValidationError
from campaign_tracker.domain.corrections import WEIGHT_BEARING_FIELDS
from campaign_tracker.domain.statuses import EventType, MaterialType

_CAMPAIGN_CODE_RE = re.compile(r"^[A-Za-z0-9-]+$")


class EventPayload(BaseModel):
    """Base for all payloads: camelCase on the wire, snake_case in Python."""

    model_config = ConfigDict(populate_by_name=True, extra="allow", str_strip_whitespace=True)

    def to_event_data(self) -> dict[str, Any]:
        """Serialize for the event log (aliases, JSON-safe values, no nulls)."""
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)


def _not_before(later: date | None, info: ValidationInfo, earlier_field: str, message: str) -> date | None:
    earlier = info.data.get(earlier_field)
    if later is not None and earlier is not None and later < earlier:
        raise ValueError(message)
    return later


class CampaignCreatedPayload(EventPayload):
    lego_campaign_code: str = Field(..., alias="legoCampaignCode", min_length=1)
    material_type: MaterialType = Field(..., alias="materialType")
    description: str | None = None

    @field_validator("lego_campaign_code")
    @classmethod
    def check_campaign_code(cls, v: str) -> str:
        """Codes look like REPLAY-2026-001: at least 3 chars, letters, digits and dashes."""
        if len(v) < 3:
            raise ValueError("Campaign code must be at least 3 characters")
        if not _CAMPAIGN_CODE_RE.match(v):
            raise ValueError("Campaign code can only contain letters, numbers, and dashes")
        return v


class InboundShipmentPayload(EventPayload):
    gross_weight_kg: float = Field(..., alias="grossWeightKg", gt=0)
    net_weight_kg: float = Field(..., alias="netWeightKg", gt=0)
    estimated_abs_kg: float | None = Field(None, alias="estimatedAbsKg", ge=0)
    carrier: str = Field(..., min_length=1)
    tracking_ref: str = Field(..., alias="trackingRef", min_length=1)
    ship_date: date = Field(..., alias="shipDate")
    arrival_date: date = Field(..., alias="arrivalDate")

    @field_validator("net_weight_kg")
    @classmethod
    def net_within_gross(cls, v: float, info: ValidationInfo) -> float:
        gross = info.data.get("gross_weight_kg")
        if gross is not None and v > gross:
            raise ValueError("Net weight cannot exceed gross weight")
        return v

    @field_validator("arrival_date")
    @classmethod
    def arrival_after_ship(cls, v: date, info: ValidationInfo) -> date:
        return _not_before(v, info, "ship_date", "Arrival date cannot be before Ship date")


class ProcessingStepPayload(EventPayload):
    """Shared shape of the four compounder processing steps."""

    ticket_number: str = Field(..., alias="ticketNumber", min_length=1)
    starting_weight_kg: float = Field(..., alias="startingWeightKg", gt=0)
    output_weight_kg: float = Field(..., alias="outputWeightKg", gt=0)
    process_hours: float | None = Field(None, alias="processHours", ge=0)
    polymer_composition: str | None = Field(None, alias="polymerComposition")
    waste_code: str | None = Field(None, alias="wasteCode")
    notes: str | None = None

    @field_validator("output_weight_kg")
    @classmethod
    def output_within_starting(cls, v: float, info: ValidationInfo) -> float:
        starting = info.data.get("starting_weight_kg")
        if starting is not None and v > starting:
            raise ValueError("Output weight cannot exceed starting weight")
        return v


class GranulationPayload(ProcessingStepPayload):
    contamination_notes: str | None = Field(None, alias="contaminationNotes")


class MetalRemovalPayload(ProcessingStepPayload):
    pass


class PolymerPurificationPayload(ProcessingStepPayload):
    waste_composition: str | None = Field(None, alias="wasteComposition")


class ExtrusionPayload(ProcessingStepPayload):
    batch_number: str = Field(..., alias="batchNumber", min_length=1)


class ECHAApprovalPayload(EventPayload):
    approved_by: str = Field(..., alias="approvedBy", min_length=1)
    approval_date: date = Field(..., alias="approvalDate")
    notes: str | None = None


class TransferToRGEPayload(EventPayload):
    tracking_ref: str = Field(..., alias="trackingRef", min_length=1)
    carrier: str = Field(..., min_length=1)
    ship_date: date = Field(..., alias="shipDate")
    received_date: date | None = Field(None, alias="receivedDate")
    received_weight_kg: float | None = Field(None, alias="receivedWeightKg", ge=0)

    @field_validator("received_date")
    @classmethod
    def received_after_ship(cls, v: date | None, info: ValidationInfo) -> date | None:
        return _not_before(v, info, "ship_date", "Received date cannot be before Ship date")


class ManufacturingStartedPayload(EventPayload):
    po_number: str = Field(..., alias="poNumber", min_length=1)
    po_quantity: int = Field(..., alias="poQuantity", ge=0)
    start_date: date = Field(..., alias="startDate")


class ManufacturingCompletedPayload(EventPayload):
    end_date: date = Field(..., alias="endDate")
    actual_quantity: int = Field(..., alias="actualQuantity", ge=0)
    notes: str | None = None


class ReturnToLEGOPayload(EventPayload):
    tracking_ref: str = Field(..., alias="trackingRef", min_length=1)
    carrier: str = Field(..., min_length=1)
    ship_date: date = Field(..., alias="shipDate")
    received_date: date | None = Field(None, alias="receivedDate")
    quantity: int = Field(..., ge=0)

    @field_validator("received_date")
    @classmethod
    def received_after_ship(cls, v: date | None, info: ValidationInfo) -> date | None:
        return _not_before(v, info, "ship_date", "Received date cannot be before Ship date")


class CampaignCompletedPayload(EventPayload):
    completion_notes: str | None = Field(None, alias="completionNotes")


class FieldChange(BaseModel):
    """One corrected field: the value the original event carried and its replacement."""

    was: Any = None
    now: Any = None


class EventCorrectionPayload(EventPayload):
    corrects_event_id: str = Field(..., alias="correctsEventId", min_length=1)
    corrects_event_type: EventType = Field(..., alias="correctsEventType")
    reason: str = Field(..., min_length=1)
    changes: dict[str, FieldChange] = Field(..., min_length=1)

    @field_validator("corrects_event_type")
    @classmethod
    def not_a_correction(cls, v: EventType) -> EventType:
        if v == EventType.EVENT_CORRECTED:
            raise ValueError("Corrections cannot target other corrections")
        return v

    @field_validator("changes")
    @classmethod
    def weights_are_numbers(cls, v: dict[str, FieldChange]) -> dict[str, FieldChange]:
        for name in WEIGHT_BEARING_FIELDS.intersection(v):
            now = v[name].now
            if isinstance(now, bool) or not isinstance(now, (int, float)) or now < 0:
                raise ValueError(f"Corrected {name} must be a non-negative number")
        return v

    def to_event_data(self) -> dict[str, Any]:
        # changes keep explicit nulls ("was": null for fields the original lacked)
        return self.model_dump(mode="json", by_alias=True)


# Tagged union: event kind -> payload variant
PAYLOAD_MODELS: dict[EventType, type[EventPayload]] = {
    EventType.CAMPAIGN_CREATED: CampaignCreatedPayload,
    EventType.INBOUND_SHIPMENT_RECORDED: InboundShipmentPayload,
    EventType.GRANULATION_COMPLETED: GranulationPayload,
    EventType.METAL_REMOVAL_COMPLETED: MetalRemovalPayload,
    EventType.POLYMER_PURIFICATION_COMPLETED: PolymerPurificationPayload,
    EventType.EXTRUSION_COMPLETED: ExtrusionPayload,
    EventType.ECHA_APPROVAL_RECORDED: ECHAApprovalPayload,
    EventType.TRANSFER_TO_RGE_RECORDED: TransferToRGEPayload,
    EventType.MANUFACTURING_STARTED: ManufacturingStartedPayload,
    EventType.MANUFACTURING_COMPLETED: ManufacturingCompletedPayload,
    EventType.RETURN_TO_LEGO_RECORDED: ReturnToLEGOPayload,
    EventType.CAMPAIGN_COMPLETED: CampaignCompletedPayload,
    EventType.EVENT_CORRECTED: EventCorrectionPayload,
}


def _format_errors(exc: ValidationError) -> list[dict]:
    errors = []
    for err in exc.errors():
        field = ".".join(str(part) for part in err["loc"]) or None
        message = err["msg"].removeprefix("Value error, ")
        errors.append({"field": field, "message": message})
    return errors


def parse_payload(event_type: EventType, data: dict[str, Any]) -> EventPayload:
    """Validate raw event data against the payload variant for ``event_type``.

    Raises:
        PayloadValidationError: with a ``{field, message}`` entry per failed rule
    """
    model = PAYLOAD_MODELS[event_type]
    try:
        return model.model_validate(data)
    except ValidationError as exc:
        raise PayloadValidationError(event_type.value, _format_errors(exc)) from exc
