class CampaignTrackerError(Exception):
    """Base exception for the campaign tracker."""

    pass


class StorageUnavailable(CampaignTrackerError):
    """Raised when the persistence layer fails to read or write."""

    def __init__(self, operation: str, detail: str = ""):
        self.operation = operation
        self.detail = detail
        message = f"Storage unavailable during '{operation}'"
        if detail:
            message = f"{message}: {detail}"
        super().__init__(message)


class CampaignNotFound(CampaignTrackerError):
    """Raised when a non-creation event targets a campaign with no projection."""

    def __init__(self, campaign_id: str):
        self.campaign_id = campaign_id
        super().__init__(f"Campaign not found: {campaign_id}")


class PayloadValidationError(CampaignTrackerError):
    """Raised at ingress when an event payload fails its per-type rules."""

    def __init__(self, event_type: str, errors: list[dict]):
        self.event_type = event_type
        self.errors = errors
        summary = ". ".join(e["message"] for e in errors)
        super().__init__(f"Invalid {event_type} payload: {summary}")


class ApprovalGateError(CampaignTrackerError):
    """Raised when an RGE operation is recorded before ECHA approval."""

    def __init__(self, campaign_id: str, event_type: str):
        self.campaign_id = campaign_id
        self.event_type = event_type
        super().__init__(
            "ECHA approval required before RGE operations. "
            "Please record ECHA approval event first."
        )


class CorrectionTargetNotFound(CampaignTrackerError):
    """Raised in strict mode when a correction references an unknown event."""

    def __init__(self, campaign_id: str, event_id: str):
        self.campaign_id = campaign_id
        self.event_id = event_id
        super().__init__(f"Event {event_id} not found in campaign {campaign_id}")
