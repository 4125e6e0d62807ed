"""Time and text helpers shared by the engine."""

from __future__ import annotations

import time
from datetime import UTC, datetime


def now_ms() -> int:
    """Current wall-clock time as epoch milliseconds."""
    return int(time.time() * 1000)


def to_epoch_ms(value: datetime | str | int | float) -> int:
    """Coerce a datetime, ISO 8601 string or epoch-millis number to epoch millis.

    Naive datetimes are treated as UTC.
    """
    if isinstance(value, bool):
        msg = f"Not a timestamp: {value!r}"
        raise TypeError(msg)
    if isinstance(value, int | float):
        return int(value)
    if isinstance(value, str):
        value = datetime.fromisoformat(value.replace("Z", "+00:00"))
    if not isinstance(value, datetime):
        msg = f"Not a timestamp: {value!r}"
        raise TypeError(msg)
    if value.tzinfo is None:
        value = value.replace(tzinfo=UTC)
    return int(value.timestamp() * 1000)


def ms_to_iso(value: int) -> str:
    return datetime.fromtimestamp(value / 1000, tz=UTC).isoformat()


def truncate(text: str | None, limit: int, ellipsis: str = "") -> str:
    """Cut *text* to *limit* characters, appending *ellipsis* only when cut."""
    if not text:
        return ""
    if len(text) <= limit:
        return text
    return text[:limit] + ellipsis
