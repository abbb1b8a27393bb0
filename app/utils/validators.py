"""
Request payload validation helpers for the scheduling API

Malformed input is rejected here, before anything reaches the services.
All helpers raise ValidationException, which @handle_errors turns into a
400 JSON response.
"""
import re
from datetime import datetime, date, time
from typing import Any, Dict, List, Optional

from app.error_handlers.exceptions import ValidationException

_TIME_PATTERN = re.compile(r'^\d{2}:\d{2}(:\d{2})?$')


def validate_date_param(date_str: Any, param_name: str = 'date') -> date:
    """
    Validate and parse date parameter from string.

    Args:
        date_str: Date string in YYYY-MM-DD format
        param_name: Name of parameter for error messages (default: 'date')

    Returns:
        date: Parsed date object

    Raises:
        ValidationException: If date format is invalid

    Examples:
        >>> validate_date_param('2025-10-15')
        date(2025, 10, 15)
    """
    try:
        return datetime.strptime(str(date_str), '%Y-%m-%d').date()
    except (TypeError, ValueError):
        raise ValidationException(
            f"Invalid {param_name} format. Use YYYY-MM-DD (e.g., 2025-10-15)"
        )


def validate_time_param(time_str: Any, param_name: str = 'time') -> time:
    """
    Validate and parse a wall-clock time in HH:MM format.

    Raises:
        ValidationException: If the value is not a valid time of day
    """
    if not isinstance(time_str, str) or not _TIME_PATTERN.match(time_str):
        raise ValidationException(f"Invalid {param_name} format. Use HH:MM (e.g., 09:30)")
    try:
        return time.fromisoformat(time_str)
    except ValueError:
        raise ValidationException(f"Invalid {param_name}: {time_str}")


def validate_int_param(value: Any, param_name: str, minimum: Optional[int] = None,
                       maximum: Optional[int] = None) -> int:
    """Validate an integer field with optional inclusive bounds."""
    if isinstance(value, bool):
        raise ValidationException(f"{param_name} must be an integer")
    try:
        number = int(value)
    except (TypeError, ValueError):
        raise ValidationException(f"{param_name} must be an integer")
    if minimum is not None and number < minimum:
        raise ValidationException(f"{param_name} must be at least {minimum}")
    if maximum is not None and number > maximum:
        raise ValidationException(f"{param_name} must be at most {maximum}")
    return number


def validate_required_fields(data: Dict[str, Any], required_fields: List[str]) -> None:
    """
    Validate that all required fields are present in request data.

    Args:
        data: Request data dictionary
        required_fields: List of required field names

    Raises:
        ValidationException: If any required field is missing
    """
    if not isinstance(data, dict):
        raise ValidationException('Request body must be a JSON object')
    missing = [field for field in required_fields if data.get(field) in (None, '')]
    if missing:
        raise ValidationException(f"Missing required fields: {', '.join(missing)}")
