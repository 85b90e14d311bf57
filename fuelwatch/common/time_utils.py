"""UTC-focused helpers for feed timestamps and run metadata."""

from __future__ import annotations

from datetime import datetime, timezone
from zoneinfo import ZoneInfo

# Format published by several UK retailer feeds alongside ISO-8601.
_FEED_TIMESTAMP_FORMATS = ("%d/%m/%Y %H:%M:%S", "%d/%m/%Y %H:%M")
# Feeds without an offset publish UK local time.
FEED_LOCAL_TZ = ZoneInfo("Europe/London")


def utc_now() -> datetime:
    return datetime.now(tz=timezone.utc)


def utc_timestamp_iso() -> str:
    return utc_now().isoformat(timespec="milliseconds")


def as_utc(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def _feed_local_to_utc(value: datetime) -> datetime:
    if value.tzinfo is None:
        value = value.replace(tzinfo=FEED_LOCAL_TZ)
    return value.astimezone(timezone.utc)


def parse_feed_timestamp(value: object) -> datetime | None:
    """Parse an upstream ``last_updated`` value as UTC, returning None when unusable.

    Values without an offset are read as Europe/London wall-clock time.
    """
    if not isinstance(value, str):
        return None
    cleaned = value.strip()
    if not cleaned:
        return None
    if cleaned.endswith("Z"):
        cleaned = cleaned[:-1] + "+00:00"
    try:
        return _feed_local_to_utc(datetime.fromisoformat(cleaned))
    except ValueError:
        pass
    for fmt in _FEED_TIMESTAMP_FORMATS:
        try:
            return _feed_local_to_utc(datetime.strptime(cleaned, fmt))
        except ValueError:
            continue
    return None


def format_timestamp(value: datetime) -> str:
    return as_utc(value).isoformat(timespec="milliseconds").replace("+00:00", "Z")
