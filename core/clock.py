"""
core/clock.py -- The single source of "now" for session lifecycle checks.

Every expiry comparison in auth/ goes through a Clock callable rather than
calling datetime.now() inline, so tests can move time forward without
sleeping. Production code uses utc_now.
"""

from __future__ import annotations

from collections.abc import Callable
from datetime import datetime, timezone

Clock = Callable[[], datetime]


def utc_now() -> datetime:
    """Return the current time as an aware UTC datetime."""
    return datetime.now(timezone.utc)


def to_iso(value: datetime) -> str:
    """Serialize an aware datetime as ISO 8601 in UTC."""
    return value.astimezone(timezone.utc).isoformat(timespec="microseconds")


def from_iso(value: str | None) -> datetime | None:
    """Parse an ISO 8601 string written by to_iso(). None passes through."""
    if not value:
        return None
    parsed = datetime.fromisoformat(value)
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed
