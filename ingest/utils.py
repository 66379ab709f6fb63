from __future__ import annotations

"""Date helpers shared by the query translator and the feed renderer."""

from datetime import datetime, timezone
from email.utils import format_datetime
from zoneinfo import ZoneInfo


def get_zone(tz: str | None) -> ZoneInfo:
    """Return the ``ZoneInfo`` for ``tz``, defaulting to UTC."""
    return ZoneInfo(tz) if tz else ZoneInfo("UTC")


def to_utc_iso(value: datetime) -> str:
    """Return ``value`` as a UTC ISO8601 string without fractional seconds.

    Naive datetimes are assumed to already be in UTC.  The result always ends
    in ``Z``, e.g. ``2024-03-01T00:00:00Z``.
    """
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc).strftime("%Y-%m-%dT%H:%M:%SZ")


def parse_instant(value: str | None) -> datetime | None:
    """Parse an upstream ISO8601 timestamp into an aware UTC datetime.

    Parameters
    ----------
    value:
        Timestamp such as ``2024-03-01T19:00:00.000Z`` or
        ``2024-03-01T19:00:00+01:00``. A bare date is read as midnight UTC.

    Returns ``None`` for empty or unparseable input instead of raising.
    """
    if not value or not isinstance(value, str):
        return None
    raw = value.strip()
    if raw.endswith(("Z", "z")):
        raw = raw[:-1] + "+00:00"
    try:
        dt = datetime.fromisoformat(raw)
    except ValueError:
        return None
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc)


def to_rfc822(value: datetime) -> str:
    """Format ``value`` the way RSS expects, e.g. ``Fri, 01 Mar 2024 00:00:00 GMT``."""
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return format_datetime(value.astimezone(timezone.utc), usegmt=True)
