"""Timestamp utilities for UNIX-nanosecond feed times."""

from __future__ import annotations

import datetime

NANOS_PER_SECOND = 1_000_000_000

# Sentinel the feed uses for "no timestamp" (u64 max)
UNDEF_TIMESTAMP = 2**64 - 1


def split_timestamp(ts_ns: int) -> tuple[int, int]:
    """Split UNIX nanoseconds into whole seconds and the nanosecond remainder."""
    return divmod(ts_ns, NANOS_PER_SECOND)


def utc_date(seconds: int) -> datetime.date:
    """Calendar date (UTC) of a UNIX timestamp in seconds."""
    return datetime.datetime.fromtimestamp(seconds, tz=datetime.timezone.utc).date()


def midpoint(start_ns: int, end_ns: int | None) -> int:
    """Midpoint of a session's bounds. An open-ended session uses its start."""
    if end_ns is None or end_ns == UNDEF_TIMESTAMP or end_ns < start_ns:
        return start_ns
    return start_ns + (end_ns - start_ns) // 2


def parse_iso8601(value: str | None) -> datetime.datetime | None:
    """Parse an ISO 8601 string into an aware datetime (naive values are UTC).

    Returns None for an empty value, which callers treat as "now".
    """
    if not value:
        return None
    parsed = datetime.datetime.fromisoformat(value.replace("Z", "+00:00"))
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=datetime.timezone.utc)
    return parsed


def to_unix_seconds(value: datetime.datetime | datetime.date) -> int:
    """UNIX seconds of a datetime, or of midnight UTC for a plain date."""
    if not isinstance(value, datetime.datetime):
        value = datetime.datetime(value.year, value.month, value.day, tzinfo=datetime.timezone.utc)
    elif value.tzinfo is None:
        value = value.replace(tzinfo=datetime.timezone.utc)
    return int(value.timestamp())
