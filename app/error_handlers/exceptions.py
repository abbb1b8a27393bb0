"""
Custom exception hierarchy for type-safe error handling

Business-rule violations are returned as data (see
app.services.validation_types). The exceptions here are operational
failures: they are raised inside a unit of work, roll it back, and are
translated into a JSON response by @handle_errors.

Exception Hierarchy:
    AppException (base)
    ├── ValidationException (400)
    │   └── AssignmentRejectedException (422)
    ├── AuthenticationException (401)
    ├── AuthorizationException (403)
    ├── ResourceNotFoundException (404)
    ├── SchedulingConflictException (409)
    │   ├── VersionConflictException
    │   ├── AlreadyProcessedException
    │   ├── DoubleBookingException
    │   └── AlreadyAssignedException
    ├── OutsideEditWindowException (422)
    ├── LockTimeoutException (503)
    └── ConfigurationException (500)
"""
from typing import Dict, Any, List, Optional


class AppException(Exception):
    """
    Base exception for all application errors

    Attributes:
        status_code: HTTP status code for the error
        error_type: String identifier for the error type
        message: Human-readable error message
        details: Additional context about the error
    """
    status_code = 500
    error_type = 'ApplicationError'

    def __init__(
        self,
        message: str,
        status_code: Optional[int] = None,
        details: Optional[Dict[str, Any]] = None
    ):
        super().__init__(message)
        self.message = message
        if status_code:
            self.status_code = status_code
        self.details = details or {}

    def to_dict(self) -> Dict[str, Any]:
        """
        Convert exception to JSON-serializable dictionary

        Returns:
            Dictionary suitable for JSON response
        """
        result = {
            'error': self.error_type,
            'message': self.message,
            'status_code': self.status_code
        }

        if self.details:
            result.update(self.details)

        return result

    def __str__(self) -> str:
        return f"{self.error_type}: {self.message}"

    def __repr__(self) -> str:
        return f"<{self.__class__.__name__}('{self.message}', status_code={self.status_code})>"


class ValidationException(AppException):
    """
    Validation errors (HTTP 400)

    Raised when request data fails validation checks.

    Example:
        >>> if not data.get('date'):
        ...     raise ValidationException('date is required')
    """
    status_code = 400
    error_type = 'ValidationError'


class AssignmentRejectedException(ValidationException):
    """
    Constraint engine rejected an assignment (HTTP 422)

    Carries the full violation list so the caller can show every failed
    rule, and whether a manager may override with a documented reason.
    """
    status_code = 422
    error_type = 'AssignmentRejected'

    def __init__(self, message: str, violations: List[Dict[str, Any]], overridable: bool = False,
                 suggestions: Optional[List[str]] = None):
        details = {'violations': violations, 'overridable': overridable}
        if suggestions:
            details['suggestions'] = suggestions
        super().__init__(message, details=details)
        self.violations = violations
        self.overridable = overridable


class AuthenticationException(AppException):
    """
    Authentication errors (HTTP 401)

    Raised when no acting user accompanies the request.
    """
    status_code = 401
    error_type = 'AuthenticationError'


class AuthorizationException(AppException):
    """
    Authorization errors (HTTP 403)

    Raised when the acting user lacks the role or location access.

    Example:
        >>> if user.role not in ('MANAGER', 'ADMIN'):
        ...     raise AuthorizationException('Manager access required')
    """
    status_code = 403
    error_type = 'AuthorizationError'


class ResourceNotFoundException(AppException):
    """
    Resource not found (HTTP 404)

    Example:
        >>> shift = session.get(Shift, shift_id)
        >>> if not shift:
        ...     raise ResourceNotFoundException('Shift not found')
    """
    status_code = 404
    error_type = 'NotFound'


class SchedulingConflictException(AppException):
    """Concurrent-modification family (HTTP 409)"""
    status_code = 409
    error_type = 'Conflict'


class VersionConflictException(SchedulingConflictException):
    """Optimistic version check lost to another writer"""
    error_type = 'VersionConflict'

    def __init__(self, message: str = 'Shift was modified by another user. Please refresh and try again.', **kwargs):
        super().__init__(message, **kwargs)


class AlreadyProcessedException(SchedulingConflictException):
    """Swap/drop request is no longer in a state that allows this transition"""
    error_type = 'AlreadyProcessed'

    def __init__(self, message: str = 'This request has already been processed', **kwargs):
        super().__init__(message, **kwargs)


class DoubleBookingException(SchedulingConflictException):
    """A concurrent writer created an overlapping assignment first"""
    error_type = 'DoubleBooking'

    def __init__(self, message: str = (
            'Staff member has a conflicting shift at this time. They were just assigned '
            'to an overlapping shift by another manager.'), **kwargs):
        super().__init__(message, **kwargs)


class AlreadyAssignedException(SchedulingConflictException):
    """The (shift, worker) pair already has an assignment"""
    error_type = 'AlreadyAssigned'

    def __init__(self, message: str = 'Staff is already assigned to this shift', **kwargs):
        super().__init__(message, **kwargs)


class OutsideEditWindowException(AppException):
    """
    Time-based cutoff rejected the change (HTTP 422)

    Example:
        >>> raise OutsideEditWindowException('Cannot delete shift within 48 hours of its start time')
    """
    status_code = 422
    error_type = 'OutsideEditWindow'


class LockTimeoutException(AppException):
    """
    Entity lock not acquired within LOCK_TIMEOUT_SECONDS (HTTP 503)

    The holder is still working on the same entity; the caller may retry.
    """
    status_code = 503
    error_type = 'LockTimeout'


class ConfigurationException(AppException):
    """
    Configuration errors (HTTP 500)

    Example:
        >>> if not config.SECRET_KEY:
        ...     raise ConfigurationException('SECRET_KEY not configured')
    """
    status_code = 500
    error_type = 'ConfigurationError'
