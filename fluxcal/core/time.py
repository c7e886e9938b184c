"""Timezone and date utilities for per-user day boundaries.

Day boundaries are local midnight to local midnight in the user's zone.
All instants handled by the core are timezone-aware UTC datetimes;
naive values coming back from the database are treated as UTC.
Calendar days are keyed by ``YYYY-MM-DD`` strings in storage.
"""

from __future__ import annotations

import datetime as _dt
from zoneinfo import ZoneInfo


def user_timezone(
    tz_mode: str | None,
    tz_name: str | None,
    tz_offset_minutes: int | None,
) -> _dt.tzinfo:
    """Build a timezone object from the user's settings.

    Args:
        tz_mode: ``"city"`` for IANA name, ``"offset"`` for fixed UTC offset.
        tz_name: IANA timezone name (e.g. ``"Europe/Berlin"``).
        tz_offset_minutes: Signed offset from UTC in minutes.

    Returns:
        A ``ZoneInfo`` (city mode) or ``datetime.timezone`` (offset mode).
        Falls back to UTC if settings are incomplete.
    """
    if tz_mode == "city" and tz_name:
        return ZoneInfo(tz_name)
    if tz_mode == "offset" and tz_offset_minutes is not None:
        return _dt.timezone(_dt.timedelta(minutes=tz_offset_minutes))
    return _dt.timezone.utc


def utc_now() -> _dt.datetime:
    """Current instant as an aware UTC datetime."""
    return _dt.datetime.now(_dt.timezone.utc)


def as_utc(value: _dt.datetime) -> _dt.datetime:
    """Normalise *value* to an aware UTC datetime (naive = already UTC)."""
    if value.tzinfo is None:
        return value.replace(tzinfo=_dt.timezone.utc)
    return value.astimezone(_dt.timezone.utc)


def local_date_from_utc(utc_dt: _dt.datetime, tz: _dt.tzinfo) -> _dt.date:
    """Convert a UTC datetime to a local date in *tz*.

    Args:
        utc_dt: Datetime in UTC (aware, or naive and treated as UTC).
        tz: Target timezone.

    Returns:
        The local ``date`` in *tz*.
    """
    return as_utc(utc_dt).astimezone(tz).date()


def local_midnight(day: _dt.date, tz: _dt.tzinfo) -> _dt.datetime:
    """Start of *day* in *tz*, returned as an aware UTC datetime."""
    return _dt.datetime.combine(day, _dt.time.min, tzinfo=tz).astimezone(_dt.timezone.utc)


def start_of_local_day(instant: _dt.datetime, tz: _dt.tzinfo) -> _dt.datetime:
    """Local midnight of the day containing *instant* (as UTC)."""
    return local_midnight(local_date_from_utc(instant, tz), tz)


def day_bounds(day: _dt.date, tz: _dt.tzinfo) -> tuple[_dt.datetime, _dt.datetime]:
    """Return ``(start, end)`` of a local calendar day as UTC instants.

    ``end`` is the next local midnight (exclusive), so DST days come out
    as 23 or 25 hours long.
    """
    return local_midnight(day, tz), local_midnight(day + _dt.timedelta(days=1), tz)


def date_key(day: _dt.date) -> str:
    """Storage key for a calendar day (``YYYY-MM-DD``)."""
    return day.isoformat()


def parse_date_key(value: str) -> _dt.date:
    """Parse a ``YYYY-MM-DD`` key back into a ``date``.

    Raises:
        ValueError: If *value* is not a valid ISO calendar date.
    """
    return _dt.date.fromisoformat(value)


def trailing_days(today: _dt.date, count: int) -> list[_dt.date]:
    """Return the last *count* dates ending with *today* (descending order).

    Example: ``trailing_days(Jun 19, 3)`` → ``[Jun 19, Jun 18, Jun 17]``.
    """
    return [today - _dt.timedelta(days=i) for i in range(count)]
