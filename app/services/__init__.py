"""
Services package for scheduling business logic and background tasks
"""

from .validation_types import (
    ValidationResult,
    ConstraintViolation,
    ViolationCode,
    ViolationSeverity,
)

from .constraint_validator import ConstraintValidator
from .lock_manager import EntityLockManager, lock_manager, locked_transaction
from .notification_service import NotificationService, NotificationType
from .audit_service import AuditService
from .shift_service import ShiftService
from .swap_service import SwapService

__all__ = [
    # Validation types
    'ValidationResult',
    'ConstraintViolation',
    'ViolationCode',
    'ViolationSeverity',
    # Services
    'ConstraintValidator',
    'EntityLockManager',
    'lock_manager',
    'locked_transaction',
    'NotificationService',
    'NotificationType',
    'AuditService',
    'ShiftService',
    'SwapService',
]
