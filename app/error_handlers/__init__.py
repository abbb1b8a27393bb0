"""
Error handling for the scheduling API

Services raise the exceptions defined here; @handle_errors on each endpoint
turns them into JSON bodies with the matching status code, and the
app-level handlers cover errors raised outside an endpoint.

Usage:
    from app.error_handlers import handle_errors
    from app.error_handlers.exceptions import VersionConflictException

    @shifts_bp.route('/<int:shift_id>', methods=['PATCH'])
    @handle_errors
    def update_shift(shift_id):
        ...  # VersionConflictException -> 409 {'error': 'VersionConflict', ...}
"""
from .exceptions import (
    AppException,
    ValidationException,
    AssignmentRejectedException,
    AuthenticationException,
    AuthorizationException,
    ResourceNotFoundException,
    SchedulingConflictException,
    VersionConflictException,
    AlreadyProcessedException,
    DoubleBookingException,
    AlreadyAssignedException,
    OutsideEditWindowException,
    LockTimeoutException,
    ConfigurationException,
)
from .decorators import handle_errors
from .logging import setup_logging, register_error_handlers, log_side_effect_failure


__all__ = [
    # Exceptions
    'AppException',
    'ValidationException',
    'AssignmentRejectedException',
    'AuthenticationException',
    'AuthorizationException',
    'ResourceNotFoundException',
    'SchedulingConflictException',
    'VersionConflictException',
    'AlreadyProcessedException',
    'DoubleBookingException',
    'AlreadyAssignedException',
    'OutsideEditWindowException',
    'LockTimeoutException',
    'ConfigurationException',
    # Decorators
    'handle_errors',
    # Logging
    'setup_logging',
    'register_error_handlers',
    'log_side_effect_failure',
]
