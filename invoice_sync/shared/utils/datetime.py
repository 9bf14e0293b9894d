"""
Timezone-aware datetime helpers.

Everything the sync engine stores or compares is a UTC-aware datetime.
Provider payloads and legacy metadata carry instants in several shapes
(epoch milliseconds, ISO-8601 strings with or without ``Z``, naive
datetimes); ``parse_instant`` is the single place where they are normalized.
"""

from datetime import UTC, datetime
from typing import Any


def utc_now() -> datetime:
    """Current time as a UTC-aware datetime"""
    return datetime.now(UTC)


def ensure_utc(value: datetime) -> datetime:
    """Attach UTC to naive datetimes, convert aware ones to UTC"""
    if value.tzinfo is None:
        return value.replace(tzinfo=UTC)
    return value.astimezone(UTC)


def from_timestamp_utc(seconds: float) -> datetime:
    return datetime.fromtimestamp(seconds, tz=UTC)


def from_timestamp_ms_utc(milliseconds: float) -> datetime:
    return datetime.fromtimestamp(milliseconds / 1000, tz=UTC)


def isoformat_z(value: datetime) -> str:
    """ISO-8601 string in UTC with a trailing ``Z`` and millisecond precision"""
    return ensure_utc(value).isoformat(timespec="milliseconds").replace("+00:00", "Z")


def parse_instant(value: Any) -> datetime | None:
    """
    Normalize an instant to a UTC-aware datetime.

    Accepts datetimes, epoch milliseconds (int/float), numeric strings and
    ISO-8601 strings. Returns None for empty or unparsable input instead of
    raising, so callers can treat "absent" and "garbage" the same way.
    """
    if value is None or value == "":
        return None
    if isinstance(value, bool):
        return None
    if isinstance(value, datetime):
        return ensure_utc(value)
    if isinstance(value, (int, float)):
        try:
            return from_timestamp_ms_utc(value)
        except (OverflowError, OSError, ValueError):
            return None
    if isinstance(value, str):
        text = value.strip()
        if not text:
            return None
        if text.lstrip("-").isdigit():
            return parse_instant(int(text))
        try:
            return ensure_utc(datetime.fromisoformat(text.replace("Z", "+00:00")))
        except ValueError:
            return None
    return None
