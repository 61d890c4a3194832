"""Tests for the StatusMachine fold (pure, no database)."""
from decimal import Decimal

import pytest

from campaign_tracker.domain.projection import ProjectionState, StatusMachine
from campaign_tracker.domain.statuses import TERMINAL_STATUS, CampaignStatus, EventType
from tests.sample_payloads import (
    CREATED_PAYLOAD,
    ECHA_PAYLOAD,
    INBOUND_PAYLOAD,
    TRANSFER_PAYLOAD,
    extrusion_payload,
    processing_payload,
)

pytestmark = pytest.mark.unit


@pytest.fixture
def machine():
    return StatusMachine()


class TestApply:
    def test_creation_initialises_identity(self, machine, make_event):
        created = make_event(EventType.CAMPAIGN_CREATED, CREATED_PAYLOAD)
        state = machine.apply(None, created)

        assert state.id == created.stream_id
        assert state.lego_campaign_code == "REPLAY-2026-001"
        assert state.material_type == "PI"
        assert state.status == CampaignStatus.CREATED
        assert state.current_step == "Created"
        assert state.next_expected_step == "Inbound Shipment"
        assert state.completed_at is None
        assert state.current_weight_kg is None
        assert state.echa_approved is False
        assert state.last_applied_event_id == created.id

    def test_apply_returns_new_state(self, machine, make_event):
        state = machine.apply(None, make_event(EventType.CAMPAIGN_CREATED, CREATED_PAYLOAD))
        after = machine.apply(state, make_event(EventType.INBOUND_SHIPMENT_RECORDED, INBOUND_PAYLOAD))

        assert state.status == CampaignStatus.CREATED
        assert after.status == CampaignStatus.INBOUND_SHIPMENT_RECORDED
        assert after.current_weight_kg == Decimal("850.5")

    def test_processing_step_sets_output_weight(self, machine, make_event):
        state = machine.fold([
            make_event(EventType.CAMPAIGN_CREATED, CREATED_PAYLOAD),
            make_event(EventType.INBOUND_SHIPMENT_RECORDED, INBOUND_PAYLOAD),
            make_event(EventType.GRANULATION_COMPLETED, processing_payload(850.5, 820.25)),
        ])
        assert state.current_weight_kg == Decimal("820.25")
        assert state.current_step == "Granulation"
        assert state.next_expected_step == "Metal Removal"

    def test_transfer_without_received_weight_keeps_weight(self, machine, make_event):
        state = machine.fold([
            make_event(EventType.CAMPAIGN_CREATED, CREATED_PAYLOAD),
            make_event(EventType.EXTRUSION_COMPLETED, extrusion_payload(800, 780)),
            make_event(EventType.TRANSFER_TO_RGE_RECORDED, TRANSFER_PAYLOAD),
        ])
        assert state.status == CampaignStatus.TRANSFERRED_TO_RGE
        assert state.current_weight_kg == Decimal("780")

    def test_transfer_with_received_weight(self, machine, make_event):
        state = machine.fold([
            make_event(EventType.CAMPAIGN_CREATED, CREATED_PAYLOAD),
            make_event(EventType.EXTRUSION_COMPLETED, extrusion_payload(800, 780)),
            make_event(EventType.TRANSFER_TO_RGE_RECORDED, {**TRANSFER_PAYLOAD, "receivedWeightKg": 775}),
        ])
        assert state.current_weight_kg == Decimal("775")

    def test_echa_approval_opens_gate(self, machine, make_event):
        state = machine.fold([
            make_event(EventType.CAMPAIGN_CREATED, CREATED_PAYLOAD),
            make_event(EventType.ECHA_APPROVAL_RECORDED, ECHA_PAYLOAD),
        ])
        assert state.echa_approved is True
        assert state.next_expected_step == "Transfer to RGE"

    def test_out_of_order_event_jumps_status(self, machine, make_event):
        state = machine.fold([
            make_event(EventType.CAMPAIGN_CREATED, CREATED_PAYLOAD),
            make_event(EventType.EXTRUSION_COMPLETED, extrusion_payload(800, 780)),
        ])
        assert state.status == CampaignStatus.EXTRUSION_COMPLETE

    def test_completion(self, machine, make_event):
        completed = make_event(EventType.CAMPAIGN_COMPLETED, {"completionNotes": "done"})
        state = machine.fold([make_event(EventType.CAMPAIGN_CREATED, CREATED_PAYLOAD), completed])

        assert state.status == CampaignStatus.COMPLETED
        assert state.status == TERMINAL_STATUS
        assert state.next_expected_step is None
        assert state.completed_at == completed.created_at

    def test_unknown_event_type_is_a_no_op(self, machine, make_event):
        state = machine.apply(None, make_event(EventType.CAMPAIGN_CREATED, CREATED_PAYLOAD))
        unknown = make_event("PalletWeighed", {"netWeightKg": 1})
        after = machine.apply(state, unknown)

        assert after.status == state.status
        assert after.current_weight_kg == state.current_weight_kg
        assert after.updated_at == state.updated_at
        assert after.last_applied_event_id == unknown.id

    def test_unknown_event_before_creation(self, machine, make_event):
        assert machine.apply(None, make_event("PalletWeighed")) is None

    def test_event_without_creation_still_projects(self, machine, make_event):
        state = machine.apply(None, make_event(EventType.INBOUND_SHIPMENT_RECORDED, INBOUND_PAYLOAD))
        assert isinstance(state, ProjectionState)
        assert state.lego_campaign_code is None
        assert state.status == CampaignStatus.INBOUND_SHIPMENT_RECORDED


class TestFold:
    def test_empty_stream(self, machine):
        assert machine.fold([]) is None

    def test_fold_is_deterministic(self, machine, make_event):
        events = [
            make_event(EventType.CAMPAIGN_CREATED, CREATED_PAYLOAD),
            make_event(EventType.INBOUND_SHIPMENT_RECORDED, INBOUND_PAYLOAD),
            make_event(EventType.GRANULATION_COMPLETED, processing_payload(850, 830)),
        ]
        assert machine.fold(events) == machine.fold(events)

    def test_fold_applies_corrections(self, machine, make_event):
        inbound = make_event(EventType.INBOUND_SHIPMENT_RECORDED, INBOUND_PAYLOAD)
        correction = make_event(EventType.EVENT_CORRECTED, {
            "correctsEventId": inbound.id,
            "correctsEventType": "InboundShipmentRecorded",
            "reason": "Typo",
            "changes": {"netWeightKg": {"was": 850.5, "now": 860}},
        })
        state = machine.fold([make_event(EventType.CAMPAIGN_CREATED, CREATED_PAYLOAD), inbound, correction])

        assert state.current_weight_kg == Decimal("860")
        assert state.updated_at == correction.created_at
        assert state.last_event_type == EventType.INBOUND_SHIPMENT_RECORDED
        assert state.last_event_at == inbound.created_at
        assert state.last_applied_event_id == correction.id

    def test_fold_applies_identity_corrections(self, machine, make_event):
        created = make_event(EventType.CAMPAIGN_CREATED, CREATED_PAYLOAD)
        correction = make_event(EventType.EVENT_CORRECTED, {
            "correctsEventId": created.id,
            "correctsEventType": "CampaignCreated",
            "reason": "Wrong code",
            "changes": {"legoCampaignCode": {"was": "REPLAY-2026-001", "now": "REPLAY-2026-002"}},
        })
        assert machine.fold([created, correction]).lego_campaign_code == "REPLAY-2026-002"

    def test_later_creation_event_reinitializes_identity(self, machine, make_event):
        state = machine.fold([
            make_event(EventType.CAMPAIGN_CREATED, CREATED_PAYLOAD),
            make_event(EventType.INBOUND_SHIPMENT_RECORDED, INBOUND_PAYLOAD),
            make_event(EventType.CAMPAIGN_CREATED, {**CREATED_PAYLOAD, "legoCampaignCode": "REPLAY-2026-003"}),
        ])
        assert state.lego_campaign_code == "REPLAY-2026-003"
        assert state.status == CampaignStatus.CREATED
        assert state.current_weight_kg is None

    def test_machine_owns_read_only_tables(self, machine):
        assert machine.step_labels[CampaignStatus.CREATED] == "Created"
        with pytest.raises(TypeError):
            machine.next_step_labels[CampaignStatus.CREATED] = "Other"  # type: ignore[index]
