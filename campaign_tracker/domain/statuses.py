"""Campaign status enums, event kinds, and the static progression tables.

Pure domain logic with no external dependencies.
"""
from dataclasses import dataclass
from enum import StrEnum
from types import MappingProxyType


class CampaignStatus(StrEnum):
    """Linear campaign progression, initial to terminal."""

    CREATED = "created"
    INBOUND_SHIPMENT_RECORDED = "inbound_shipment_recorded"
    GRANULATION_COMPLETE = "granulation_complete"
    METAL_REMOVAL_COMPLETE = "metal_removal_complete"
    POLYMER_PURIFICATION_COMPLETE = "polymer_purification_complete"
    EXTRUSION_COMPLETE = "extrusion_complete"
    ECHA_APPROVED = "echa_approved"
    TRANSFERRED_TO_RGE = "transferred_to_rge"
    MANUFACTURING_STARTED = "manufacturing_started"
    MANUFACTURING_COMPLETE = "manufacturing_complete"
    RETURNED_TO_LEGO = "returned_to_lego"
    COMPLETED = "completed"

    @property
    def ordinal(self) -> int:
        return STATUS_ORDER.index(self)


class EventType(StrEnum):
    """Closed set of event kinds: twelve business facts plus the correction kind."""

    CAMPAIGN_CREATED = "CampaignCreated"
    INBOUND_SHIPMENT_RECORDED = "InboundShipmentRecorded"
    GRANULATION_COMPLETED = "GranulationCompleted"
    METAL_REMOVAL_COMPLETED = "MetalRemovalCompleted"
    POLYMER_PURIFICATION_COMPLETED = "PolymerPurificationCompleted"
    EXTRUSION_COMPLETED = "ExtrusionCompleted"
    ECHA_APPROVAL_RECORDED = "ECHAApprovalRecorded"
    TRANSFER_TO_RGE_RECORDED = "TransferToRGERecorded"
    MANUFACTURING_STARTED = "ManufacturingStarted"
    MANUFACTURING_COMPLETED = "ManufacturingCompleted"
    RETURN_TO_LEGO_RECORDED = "ReturnToLEGORecorded"
    CAMPAIGN_COMPLETED = "CampaignCompleted"
    EVENT_CORRECTED = "EventCorrected"


class MaterialType(StrEnum):
    """Post-Industrial or Post-Consumer Recycled."""

    PI = "PI"
    PCR = "PCR"


STREAM_TYPE_CAMPAIGN = "campaign"

STATUS_ORDER: tuple[CampaignStatus, ...] = tuple(CampaignStatus)

INITIAL_STATUS = CampaignStatus.CREATED
TERMINAL_STATUS = CampaignStatus.COMPLETED

# event kind -> status it moves the campaign to
EVENT_TARGET_STATUS = MappingProxyType({
    EventType.CAMPAIGN_CREATED: CampaignStatus.CREATED,
    EventType.INBOUND_SHIPMENT_RECORDED: CampaignStatus.INBOUND_SHIPMENT_RECORDED,
    EventType.GRANULATION_COMPLETED: CampaignStatus.GRANULATION_COMPLETE,
    EventType.METAL_REMOVAL_COMPLETED: CampaignStatus.METAL_REMOVAL_COMPLETE,
    EventType.POLYMER_PURIFICATION_COMPLETED: CampaignStatus.POLYMER_PURIFICATION_COMPLETE,
    EventType.EXTRUSION_COMPLETED: CampaignStatus.EXTRUSION_COMPLETE,
    EventType.ECHA_APPROVAL_RECORDED: CampaignStatus.ECHA_APPROVED,
    EventType.TRANSFER_TO_RGE_RECORDED: CampaignStatus.TRANSFERRED_TO_RGE,
    EventType.MANUFACTURING_STARTED: CampaignStatus.MANUFACTURING_STARTED,
    EventType.MANUFACTURING_COMPLETED: CampaignStatus.MANUFACTURING_COMPLETE,
    EventType.RETURN_TO_LEGO_RECORDED: CampaignStatus.RETURNED_TO_LEGO,
    EventType.CAMPAIGN_COMPLETED: CampaignStatus.COMPLETED,
})

# Human-readable step names (mirrors status)
STEP_LABELS = MappingProxyType({
    CampaignStatus.CREATED: "Created",
    CampaignStatus.INBOUND_SHIPMENT_RECORDED: "Inbound Shipment",
    CampaignStatus.GRANULATION_COMPLETE: "Granulation",
    CampaignStatus.METAL_REMOVAL_COMPLETE: "Metal Removal",
    CampaignStatus.POLYMER_PURIFICATION_COMPLETE: "Polymer Purification",
    CampaignStatus.EXTRUSION_COMPLETE: "Extrusion",
    CampaignStatus.ECHA_APPROVED: "ECHA Approved",
    CampaignStatus.TRANSFERRED_TO_RGE: "Transferred to RGE",
    CampaignStatus.MANUFACTURING_STARTED: "Manufacturing",
    CampaignStatus.MANUFACTURING_COMPLETE: "Manufacturing Complete",
    CampaignStatus.RETURNED_TO_LEGO: "Returned to LEGO",
    CampaignStatus.COMPLETED: "Completed",
})

# What comes after each status; only the terminal status maps to None
NEXT_STEP_LABELS = MappingProxyType({
    CampaignStatus.CREATED: "Inbound Shipment",
    CampaignStatus.INBOUND_SHIPMENT_RECORDED: "Granulation",
    CampaignStatus.GRANULATION_COMPLETE: "Metal Removal",
    CampaignStatus.METAL_REMOVAL_COMPLETE: "Polymer Purification",
    CampaignStatus.POLYMER_PURIFICATION_COMPLETE: "Extrusion",
    CampaignStatus.EXTRUSION_COMPLETE: "ECHA Approval",
    CampaignStatus.ECHA_APPROVED: "Transfer to RGE",
    CampaignStatus.TRANSFERRED_TO_RGE: "Manufacturing Start",
    CampaignStatus.MANUFACTURING_STARTED: "Manufacturing Complete",
    CampaignStatus.MANUFACTURING_COMPLETE: "Return to LEGO",
    CampaignStatus.RETURNED_TO_LEGO: "Complete Campaign",
    CampaignStatus.COMPLETED: None,
})

# Events that happen at or after RGE and therefore sit behind the ECHA gate
RGE_EVENT_TYPES = frozenset({
    EventType.TRANSFER_TO_RGE_RECORDED,
    EventType.MANUFACTURING_STARTED,
    EventType.MANUFACTURING_COMPLETED,
    EventType.RETURN_TO_LEGO_RECORDED,
})


def parse_event_type(value: str) -> EventType | None:
    """Return the EventType for a raw string, or None for kinds this build does not know."""
    try:
        return EventType(value)
    except ValueError:
        return None


@dataclass
class TransitionCheck:
    """Plausibility of moving from one status to another."""

    forward: bool
    reason: str = ""


def check_transition(current: CampaignStatus, target: CampaignStatus) -> TransitionCheck:
    """Classify a transition against the linear progression.

    Pure function -- no side effects. Never blocks anything; callers use it to
    flag rewinds and skips.

    Rules:
        - Moving exactly one step forward is the expected path
        - Staying on the same status is a repeat
        - Moving more than one step forward skips steps
        - Moving backward rewinds the progression
    """
    delta = target.ordinal - current.ordinal

    if delta == 1:
        return TransitionCheck(True)

    if delta == 0:
        return TransitionCheck(False, f"Repeats status {target.value}")

    if delta > 1:
        return TransitionCheck(False, f"Skips {delta - 1} step(s) from {current.value} to {target.value}")

    return TransitionCheck(False, f"Rewinds from {current.value} to {target.value}")
