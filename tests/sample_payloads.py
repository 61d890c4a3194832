"""Valid payloads for each event kind, shared across test groups."""

CREATED_PAYLOAD = {"legoCampaignCode": "REPLAY-2026-001", "materialType": "PI", "description": "Test campaign"}

INBOUND_PAYLOAD = {
    "grossWeightKg": 1000,
    "netWeightKg": 850.5,
    "estimatedAbsKg": 700,
    "carrier": "DHL",
    "trackingRef": "TRK-001",
    "shipDate": "2026-01-10",
    "arrivalDate": "2026-01-15",
}

ECHA_PAYLOAD = {"approvedBy": "Jane Inspector", "approvalDate": "2026-02-01"}

TRANSFER_PAYLOAD = {"trackingRef": "RGE-1", "carrier": "DSV", "shipDate": "2026-02-05"}


def processing_payload(starting: float, output: float, **extra) -> dict:
    return {"ticketNumber": "TKT-1", "startingWeightKg": starting, "outputWeightKg": output, **extra}


def extrusion_payload(starting: float, output: float) -> dict:
    return processing_payload(starting, output, batchNumber="BATCH-7")
