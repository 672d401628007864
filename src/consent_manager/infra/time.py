"""Time utilities for consistent timestamp handling.

Consent timestamps travel as epoch milliseconds on the wire and are stored
as timezone-aware datetimes.
"""

import time
from datetime import datetime, timezone


def utc_now() -> datetime:
    """Return current UTC timestamp (timezone-aware)."""
    return datetime.now(timezone.utc)


def now_millis() -> int:
    """Current time as epoch milliseconds."""
    return int(time.time() * 1000)


def from_millis(value: int) -> datetime:
    """Epoch milliseconds to an aware UTC datetime."""
    return datetime.fromtimestamp(value / 1000, tz=timezone.utc)


def to_millis(value: datetime) -> int:
    """Aware (or naive UTC) datetime to epoch milliseconds."""
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return int(value.timestamp() * 1000)


def to_iso(value: object) -> str | None:
    """Serialize a DB timestamp for JSON responses."""
    if value is None:
        return None
    return value.isoformat() if hasattr(value, "isoformat") else str(value)
