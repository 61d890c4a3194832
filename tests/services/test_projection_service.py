"""Tests for ProjectionService: incremental updates, rebuilds and stale recovery."""
from decimal import Decimal
from unittest.mock import patch

import pytest

from campaign_tracker.domain.statuses import STREAM_TYPE_CAMPAIGN, CampaignStatus, EventType
from tests.sample_payloads import (
    CREATED_PAYLOAD,
    ECHA_PAYLOAD,
    INBOUND_PAYLOAD,
    TRANSFER_PAYLOAD,
    extrusion_payload,
    processing_payload,
)

pytestmark = pytest.mark.unit


async def _full_campaign(campaign_service) -> str:
    created = await campaign_service.create_campaign(CREATED_PAYLOAD, "alice")
    cid = created.stream_id
    inbound = await campaign_service.record_event(cid, EventType.INBOUND_SHIPMENT_RECORDED, INBOUND_PAYLOAD, "alice")
    await campaign_service.record_event(cid, EventType.GRANULATION_COMPLETED, processing_payload(850.5, 840), "bob")
    await campaign_service.record_correction(
        cid, inbound.id, "InboundShipmentRecorded", "Re-weighed", {"netWeightKg": {"was": 850.5, "now": 845}}, "carol"
    )
    await campaign_service.record_event(cid, EventType.EXTRUSION_COMPLETED, extrusion_payload(840, 830), "bob")
    await campaign_service.record_event(cid, EventType.ECHA_APPROVAL_RECORDED, ECHA_PAYLOAD, "dan")
    await campaign_service.record_event(
        cid, EventType.TRANSFER_TO_RGE_RECORDED, {**TRANSFER_PAYLOAD, "receivedWeightKg": 828.5}, "erin"
    )
    return cid


async def test_rebuild_matches_incremental(campaign_service, projection_service):
    cid = await _full_campaign(campaign_service)

    incremental = await projection_service.get_projection(cid)
    rebuilt = await projection_service.rebuild(cid)
    reread = await projection_service.get_projection(cid)

    assert rebuilt == incremental
    assert reread == incremental
    assert incremental.current_weight_kg == Decimal("828.5")
    assert incremental.status == CampaignStatus.TRANSFERRED_TO_RGE


async def test_rebuild_is_idempotent(campaign_service, projection_service):
    cid = await _full_campaign(campaign_service)
    first = await projection_service.rebuild(cid)
    second = await projection_service.rebuild(cid)
    assert first == second


async def test_rebuild_unknown_stream_returns_none(projection_service):
    assert await projection_service.rebuild("cmp_00000000000000000000000000") is None


async def test_stale_projection_is_detected_and_rebuilt(campaign_service, projection_service, event_log):
    """An event appended without its projection update (crash in between) is repaired."""
    created = await campaign_service.create_campaign(CREATED_PAYLOAD, "alice")
    cid = created.stream_id
    assert await projection_service.find_stale() == []

    await event_log.append(STREAM_TYPE_CAMPAIGN, cid, EventType.INBOUND_SHIPMENT_RECORDED, INBOUND_PAYLOAD, "alice")
    stale_state = await projection_service.get_projection(cid)
    assert stale_state.status == CampaignStatus.CREATED

    assert await projection_service.rebuild_stale() == [cid]

    repaired = await projection_service.get_projection(cid)
    assert repaired.status == CampaignStatus.INBOUND_SHIPMENT_RECORDED
    assert repaired.current_weight_kg == Decimal("850.5")
    assert await projection_service.find_stale() == []


async def test_missing_projection_row_is_rebuilt(projection_service, event_log):
    cid = "cmp_01HZX3M1N2P3Q4R5S6T7V8W9XY"
    await event_log.append(STREAM_TYPE_CAMPAIGN, cid, EventType.CAMPAIGN_CREATED, CREATED_PAYLOAD, "seed")

    assert await projection_service.rebuild_stale() == [cid]
    state = await projection_service.get_projection(cid)
    assert state.lego_campaign_code == "REPLAY-2026-001"


async def test_list_campaigns_filters(campaign_service, projection_service):
    active = await campaign_service.create_campaign(CREATED_PAYLOAD, "alice")
    done = await campaign_service.create_campaign({**CREATED_PAYLOAD, "legoCampaignCode": "REPLAY-2026-002"}, "alice")
    await campaign_service.record_event(done.stream_id, EventType.CAMPAIGN_COMPLETED, {}, "alice")

    all_ids = {s.id for s in await projection_service.list_campaigns()}
    active_ids = {s.id for s in await projection_service.list_campaigns("active")}
    completed_ids = {s.id for s in await projection_service.list_campaigns(CampaignStatus.COMPLETED)}

    assert all_ids == {active.stream_id, done.stream_id}
    assert active_ids == {active.stream_id}
    assert completed_ids == {done.stream_id}


async def test_event_after_unprojected_event_rebuilds(campaign_service, projection_service, event_log):
    """A normal append after a lost projection update must not hide the gap."""
    cid = (await campaign_service.create_campaign(CREATED_PAYLOAD, "alice")).stream_id
    await event_log.append(STREAM_TYPE_CAMPAIGN, cid, EventType.INBOUND_SHIPMENT_RECORDED, INBOUND_PAYLOAD, "alice")
    lost = await event_log.append(STREAM_TYPE_CAMPAIGN, cid, EventType.ECHA_APPROVAL_RECORDED, ECHA_PAYLOAD, "dan")
    step = await event_log.append(
        STREAM_TYPE_CAMPAIGN, cid, EventType.GRANULATION_COMPLETED, processing_payload(850.5, 840), "bob"
    )

    applied = await projection_service.apply_event(step)
    stored = await projection_service.get_projection(cid)
    folded = projection_service.machine.fold(await event_log.read_stream(STREAM_TYPE_CAMPAIGN, cid))

    assert stored == folded == applied
    assert stored.echa_approved is True
    assert stored.last_applied_event_id == step.id
    assert lost.id != stored.last_applied_event_id
    assert await projection_service.find_stale() == []


async def test_in_sync_projection_is_patched_without_rebuild(campaign_service, projection_service, event_log):
    cid = (await campaign_service.create_campaign(CREATED_PAYLOAD, "alice")).stream_id
    inbound = await event_log.append(
        STREAM_TYPE_CAMPAIGN, cid, EventType.INBOUND_SHIPMENT_RECORDED, INBOUND_PAYLOAD, "alice"
    )

    with patch.object(projection_service, "rebuild") as rebuild:
        state = await projection_service.apply_event(inbound)

    rebuild.assert_not_called()
    assert state.status == CampaignStatus.INBOUND_SHIPMENT_RECORDED


async def test_stored_weight_matches_fold_precision(campaign_service, projection_service, event_log):
    cid = (await campaign_service.create_campaign(CREATED_PAYLOAD, "alice")).stream_id
    await campaign_service.record_event(
        cid, EventType.INBOUND_SHIPMENT_RECORDED, {**INBOUND_PAYLOAD, "netWeightKg": 100.12345}, "alice"
    )

    stored = await projection_service.get_projection(cid)
    folded = projection_service.machine.fold(await event_log.read_stream(STREAM_TYPE_CAMPAIGN, cid))

    assert stored == folded
    assert stored.current_weight_kg == Decimal("100.123")
    assert await projection_service.rebuild(cid) == stored


async def test_zero_received_weight_keeps_current_weight(campaign_service, projection_service):
    cid = (await campaign_service.create_campaign(CREATED_PAYLOAD, "alice")).stream_id
    await campaign_service.record_event(cid, EventType.INBOUND_SHIPMENT_RECORDED, INBOUND_PAYLOAD, "alice")
    await campaign_service.record_event(cid, EventType.ECHA_APPROVAL_RECORDED, ECHA_PAYLOAD, "dan")
    await campaign_service.record_event(
        cid, EventType.TRANSFER_TO_RGE_RECORDED, {**TRANSFER_PAYLOAD, "receivedWeightKg": 0}, "erin"
    )

    state = await projection_service.get_projection(cid)
    assert state.status == CampaignStatus.TRANSFERRED_TO_RGE
    assert state.current_weight_kg == Decimal("850.5")
    assert await projection_service.rebuild(cid) == state
