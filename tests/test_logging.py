"""Tests for the structlog processors that enrich every entry."""
import pytest
from asgi_correlation_id.context import correlation_id

from campaign_tracker.core.logging import SERVICE_NAME, add_correlation_id, add_service_name

pytestmark = pytest.mark.unit


def test_correlation_id_added_inside_request():
    token = correlation_id.set("req-42")
    try:
        event_dict = add_correlation_id(None, "info", {"event": "x"})
    finally:
        correlation_id.reset(token)

    assert event_dict["correlation_id"] == "req-42"


def test_no_correlation_id_outside_request():
    assert "correlation_id" not in add_correlation_id(None, "info", {"event": "x"})


def test_service_name_does_not_override_explicit_value():
    assert add_service_name(None, "info", {"event": "x"})["service"] == SERVICE_NAME
    assert add_service_name(None, "info", {"service": "script"})["service"] == "script"
