"""Canonical identifiers for campaigns and events.

Format: {prefix}_{ULID}. ULIDs are 26 Crockford base32 characters
(48-bit millisecond timestamp + 80-bit randomness), URL-safe and
lexicographically sortable by creation time.
"""

import os
import re
import threading
import time

_CROCKFORD32 = "0123456789ABCDEFGHJKMNPQRSTVWXYZ"
_RANDOM_BITS = 80
_RANDOM_MAX = (1 << _RANDOM_BITS) - 1

CAMPAIGN_ID_PREFIX = "cmp_"
EVENT_ID_PREFIX = "evt_"

_CAMPAIGN_ID_RE = re.compile(r"^cmp_[0-9A-Z]{26}$")
_EVENT_ID_RE = re.compile(r"^evt_[0-9A-Z]{26}$")

_lock = threading.Lock()
_last_timestamp_ms = -1
_last_randomness = 0


def _encode_crockford_base32(value: int, length: int) -> str:
    chars: list[str] = []
    for _ in range(length):
        chars.append(_CROCKFORD32[value & 31])
        value >>= 5
    return "".join(reversed(chars))


def new_ulid(*, timestamp_ms: int | None = None) -> str:
    """Generate a monotonic ULID.

    Within a single millisecond the random component is incremented instead of
    redrawn, so ids minted back-to-back always sort in creation order. An
    explicit ``timestamp_ms`` bypasses the monotonic state.
    """
    global _last_timestamp_ms, _last_randomness

    if timestamp_ms is not None:
        if not (0 <= timestamp_ms < (1 << 48)):
            raise ValueError("timestamp_ms out of range for ULID")
        randomness = int.from_bytes(os.urandom(10), "big")
        return _encode_crockford_base32((timestamp_ms << _RANDOM_BITS) | randomness, 26)

    timestamp_ms = int(time.time() * 1000)

    with _lock:
        if timestamp_ms <= _last_timestamp_ms:
            # Same (or earlier, clock skew) millisecond: stay on the last timestamp
            timestamp_ms = _last_timestamp_ms
            randomness = _last_randomness + 1
            if randomness > _RANDOM_MAX:
                timestamp_ms += 1
                randomness = int.from_bytes(os.urandom(10), "big") >> 1
        else:
            randomness = int.from_bytes(os.urandom(10), "big") >> 1
        _last_timestamp_ms = timestamp_ms
        _last_randomness = randomness

    value = (timestamp_ms << _RANDOM_BITS) | randomness
    return _encode_crockford_base32(value, 26)


def generate_campaign_id() -> str:
    return f"{CAMPAIGN_ID_PREFIX}{new_ulid()}"


def generate_event_id() -> str:
    return f"{EVENT_ID_PREFIX}{new_ulid()}"


def is_valid_campaign_id(value: str) -> bool:
    return bool(_CAMPAIGN_ID_RE.match(value or ""))


def is_valid_event_id(value: str) -> bool:
    return bool(_EVENT_ID_RE.match(value or ""))
