"""
Utility modules for the shift scheduling core
"""
from .shift_time import (
    to_minutes,
    is_overnight,
    duration_hours,
    absolute_range,
    ranges_overlap,
)
from .timezone import hours_until_start, localized_start

__all__ = [
    'to_minutes',
    'is_overnight',
    'duration_hours',
    'absolute_range',
    'ranges_overlap',
    'hours_until_start',
    'localized_start',
]
