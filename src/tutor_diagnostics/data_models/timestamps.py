"""UTC timestamp helpers shared by the diagnostics payloads.

Wire timestamps are ISO-8601 strings with millisecond precision and a ``Z``
suffix. Internal timestamps are truncated to milliseconds so a value that
round-trips through the wire still compares equal to the original.
"""

from __future__ import annotations

from datetime import datetime, timedelta, timezone
from typing import Optional, Union

TimestampInput = Union[str, datetime]

ONE_MILLISECOND = timedelta(milliseconds=1)


def truncate_to_millis(value: datetime) -> datetime:
    return value.replace(microsecond=(value.microsecond // 1000) * 1000)


def ensure_utc(value: datetime) -> datetime:
    """Return *value* as an aware UTC datetime; naive values are assumed UTC."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def utc_now() -> datetime:
    return truncate_to_millis(datetime.now(timezone.utc))


def to_iso(value: datetime) -> str:
    return ensure_utc(value).isoformat(timespec="milliseconds").replace("+00:00", "Z")


def optional_iso(value: Optional[datetime]) -> Optional[str]:
    return to_iso(value) if value is not None else None


def parse_iso(value: TimestampInput) -> datetime:
    """Parse an ISO-8601 string (or pass through a datetime) into aware UTC.

    Raises:
        ValueError: If *value* is not a recognisable timestamp.
    """
    if isinstance(value, datetime):
        return ensure_utc(value)
    if not isinstance(value, str) or not value.strip():
        raise ValueError(f"Invalid timestamp: {value!r}")
    text = value.strip()
    if text.endswith(("Z", "z")):
        text = text[:-1] + "+00:00"
    return ensure_utc(datetime.fromisoformat(text))


def parse_optional_iso(value: Optional[TimestampInput]) -> Optional[datetime]:
    if value is None:
        return None
    return parse_iso(value)


def filename_stamp(value: datetime) -> str:
    """Render *value* as ``YYYY-MM-DDTHHMMSSZ`` for use in file names."""
    return ensure_utc(value).strftime("%Y-%m-%dT%H%M%SZ")


__all__ = [
    "ONE_MILLISECOND",
    "TimestampInput",
    "ensure_utc",
    "filename_stamp",
    "optional_iso",
    "parse_iso",
    "parse_optional_iso",
    "to_iso",
    "truncate_to_millis",
    "utc_now",
]
