"""Immutable event record as read back from the log.

Pure domain type with no persistence dependencies; services convert ORM rows
into StoredEvent before handing them to the projection and replay logic.
"""
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any


@dataclass(frozen=True)
class StoredEvent:
    id: str
    stream_type: str
    stream_id: str
    event_type: str
    payload: dict[str, Any]
    created_at: datetime
    metadata: dict[str, Any] = field(default_factory=dict)

    @property
    def actor(self) -> str | None:
        return self.metadata.get("user_id")
