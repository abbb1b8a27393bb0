"""
Shift time arithmetic

Pure helpers for turning a shift's calendar date plus wall-clock start/end
into comparable absolute ranges. A shift whose end is at or before its start
runs past midnight into the next calendar day.
"""
from datetime import date, datetime, time, timedelta
from typing import Tuple, Union

MINUTES_PER_DAY = 24 * 60

TimeValue = Union[time, str]


def parse_time(value: TimeValue) -> time:
    """
    Normalise a time-of-day value

    Args:
        value: datetime.time or 'HH:MM' / 'HH:MM:SS' string

    Returns:
        datetime.time
    """
    if isinstance(value, time):
        return value
    parts = [int(p) for p in str(value).split(':')]
    while len(parts) < 3:
        parts.append(0)
    return time(parts[0], parts[1], parts[2])


def format_time(value: TimeValue) -> str:
    """Render a time-of-day as HH:MM"""
    return parse_time(value).strftime('%H:%M')


def to_minutes(value: TimeValue) -> int:
    """Minutes since midnight for a time-of-day"""
    t = parse_time(value)
    return t.hour * 60 + t.minute


def is_overnight(start: TimeValue, end: TimeValue) -> bool:
    """True when the shift ends on the following calendar day"""
    return to_minutes(end) <= to_minutes(start)


def duration_hours(start: TimeValue, end: TimeValue) -> float:
    """
    Shift length in hours, (end - start) mod 24h

    An end equal to the start is a full 24 hour shift, never zero.
    """
    minutes = to_minutes(end) - to_minutes(start)
    if minutes <= 0:
        minutes += MINUTES_PER_DAY
    return minutes / 60


def absolute_range(shift_date: date, start: TimeValue, end: TimeValue) -> Tuple[datetime, datetime]:
    """
    Anchor a shift to concrete naive datetimes

    Overnight shifts get their end pushed onto the next day so two shifts on
    adjacent calendar dates compare with plain interval arithmetic.

    Examples:
        >>> absolute_range(date(2026, 3, 2), '09:00', '17:00')
        (datetime(2026, 3, 2, 9, 0), datetime(2026, 3, 2, 17, 0))
        >>> absolute_range(date(2026, 3, 2), '23:00', '03:00')
        (datetime(2026, 3, 2, 23, 0), datetime(2026, 3, 3, 3, 0))
    """
    day_start = datetime.combine(shift_date, time(0, 0))
    range_start = day_start + timedelta(minutes=to_minutes(start))
    end_minutes = to_minutes(end)
    if is_overnight(start, end):
        end_minutes += MINUTES_PER_DAY
    range_end = day_start + timedelta(minutes=end_minutes)
    return range_start, range_end


def ranges_overlap(a: Tuple[datetime, datetime], b: Tuple[datetime, datetime]) -> bool:
    """Half-open interval overlap: startA < endB and startB < endA"""
    return a[0] < b[1] and b[0] < a[1]


def gap_hours(earlier_end: datetime, later_start: datetime) -> float:
    """Signed hours between the end of one shift and the start of another"""
    return (later_start - earlier_end).total_seconds() / 3600


def week_bounds(target_date: date) -> Tuple[date, date]:
    """Monday-start week containing target_date, inclusive bounds"""
    week_start = target_date - timedelta(days=target_date.weekday())
    return week_start, week_start + timedelta(days=6)


def date_window(shift_date: date, start: TimeValue, end: TimeValue) -> list:
    """
    Calendar dates whose shifts can collide with this one

    The day before and after always, plus day+2 when the shift itself runs
    past midnight.
    """
    dates = [shift_date - timedelta(days=1), shift_date, shift_date + timedelta(days=1)]
    if is_overnight(start, end):
        dates.append(shift_date + timedelta(days=2))
    return dates
