"""Correlation ID middleware for request tracing.

Every request gets an X-Request-ID (echoed if the client sent one). The id is
picked up by the structlog processor chain, so every log line written while
handling the request carries it.
"""

import uuid

from asgi_correlation_id import CorrelationIdMiddleware
from asgi_correlation_id.context import correlation_id
from fastapi import FastAPI


def setup_correlation_middleware(app: FastAPI) -> None:
    app.add_middleware(
        CorrelationIdMiddleware,
        header_name="X-Request-ID",
        generator=lambda: str(uuid.uuid4()),
        validator=None,  # Accept any format
    )


def get_correlation_id() -> str | None:
    """Current request's correlation ID, or None outside a request."""
    try:
        return correlation_id.get()
    except LookupError:
        return None


__all__ = ["setup_correlation_middleware", "get_correlation_id"]
