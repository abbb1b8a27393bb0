"""Timezone helpers for anchoring location-local shift times to real instants."""

from datetime import date, datetime, timezone
from functools import lru_cache
from typing import Optional
from zoneinfo import ZoneInfo

from .shift_time import TimeValue, parse_time


@lru_cache(maxsize=32)
def _get_tz(tz_name):
    return ZoneInfo(tz_name)


def _resolve_tz_name(tz_name):
    if tz_name:
        return tz_name
    from flask import current_app
    return current_app.config.get('DEFAULT_TIMEZONE', 'UTC')


def localized_start(shift_date: date, start: TimeValue, tz_name: Optional[str] = None) -> datetime:
    """Aware datetime for a shift start in its location's timezone."""
    return datetime.combine(shift_date, parse_time(start), tzinfo=_get_tz(_resolve_tz_name(tz_name)))


def hours_until_start(shift_date: date, start: TimeValue, tz_name: Optional[str] = None,
                      now: Optional[datetime] = None) -> float:
    """Hours from now until the shift starts; negative once it has started.

    Args:
        shift_date: Calendar date of the shift (location-local).
        start: Wall-clock start time.
        tz_name: IANA timezone of the location. Falls back to DEFAULT_TIMEZONE.
        now: Aware reference instant, defaults to the current UTC time.
    """
    if now is None:
        now = datetime.now(timezone.utc)
    starts_at = localized_start(shift_date, start, tz_name)
    return (starts_at - now).total_seconds() / 3600



def utcnow() -> datetime:
    """Naive UTC timestamp for DateTime columns."""
    return datetime.now(timezone.utc).replace(tzinfo=None)
