"""
Validation types and data classes for shift-assignment constraint checking

Rule violations are values, not exceptions: every check appends a
ConstraintViolation and the caller decides whether to block, warn, or
offer an override.
"""
from dataclasses import dataclass, field
from typing import List, Optional
from enum import Enum


class ViolationSeverity(str, Enum):
    """Severity levels for constraint violations"""
    ERROR = "error"  # Blocks the assignment
    WARNING = "warning"  # Shown to the manager, does not block


class ViolationCode(str, Enum):
    """Closed set of rule outcomes, each with a fixed severity"""
    SKILL_MISMATCH = "SKILL_MISMATCH"
    LOCATION_NOT_CERTIFIED = "LOCATION_NOT_CERTIFIED"
    NOT_AVAILABLE = "NOT_AVAILABLE"
    SHIFT_OVERLAP = "SHIFT_OVERLAP"
    REST_PERIOD_VIOLATION = "REST_PERIOD_VIOLATION"
    DAILY_HOURS_HARD_LIMIT = "DAILY_HOURS_HARD_LIMIT"
    DAILY_HOURS_WARNING = "DAILY_HOURS_WARNING"
    WEEKLY_OVERTIME = "WEEKLY_OVERTIME"
    WEEKLY_HOURS_APPROACHING_OVERTIME = "WEEKLY_HOURS_APPROACHING_OVERTIME"
    SEVENTH_CONSECUTIVE_DAY = "SEVENTH_CONSECUTIVE_DAY"
    SIXTH_CONSECUTIVE_DAY = "SIXTH_CONSECUTIVE_DAY"

    @property
    def severity(self) -> ViolationSeverity:
        return _CODE_SEVERITY[self]

    @property
    def overridable(self) -> bool:
        """Only the 7th-consecutive-day error may be bypassed with a reason"""
        return self is ViolationCode.SEVENTH_CONSECUTIVE_DAY


_CODE_SEVERITY = {
    ViolationCode.SKILL_MISMATCH: ViolationSeverity.ERROR,
    ViolationCode.LOCATION_NOT_CERTIFIED: ViolationSeverity.ERROR,
    ViolationCode.NOT_AVAILABLE: ViolationSeverity.ERROR,
    ViolationCode.SHIFT_OVERLAP: ViolationSeverity.ERROR,
    ViolationCode.REST_PERIOD_VIOLATION: ViolationSeverity.ERROR,
    ViolationCode.DAILY_HOURS_HARD_LIMIT: ViolationSeverity.ERROR,
    ViolationCode.DAILY_HOURS_WARNING: ViolationSeverity.WARNING,
    ViolationCode.WEEKLY_OVERTIME: ViolationSeverity.WARNING,
    ViolationCode.WEEKLY_HOURS_APPROACHING_OVERTIME: ViolationSeverity.WARNING,
    ViolationCode.SEVENTH_CONSECUTIVE_DAY: ViolationSeverity.ERROR,
    ViolationCode.SIXTH_CONSECUTIVE_DAY: ViolationSeverity.WARNING,
}


@dataclass
class ConstraintViolation:
    """Represents a single constraint violation"""
    code: ViolationCode
    message: str
    details: dict = field(default_factory=dict)

    @property
    def severity(self) -> ViolationSeverity:
        return self.code.severity

    @property
    def is_error(self) -> bool:
        return self.severity == ViolationSeverity.ERROR

    def to_dict(self) -> dict:
        return {
            'type': self.severity.value,
            'code': self.code.value,
            'message': self.message,
        }

    def __str__(self):
        return f"[{self.severity.value.upper()}] {self.code.value}: {self.message}"


@dataclass
class ValidationResult:
    """Result of validating a proposed (worker, shift) assignment"""
    violations: List[ConstraintViolation] = field(default_factory=list)
    suggestions: List[str] = field(default_factory=list)

    @property
    def is_valid(self) -> bool:
        """True iff no error-severity violation is present"""
        return not self.errors

    @property
    def errors(self) -> List[ConstraintViolation]:
        return [v for v in self.violations if v.is_error]

    @property
    def warnings(self) -> List[ConstraintViolation]:
        return [v for v in self.violations if not v.is_error]

    @property
    def overridable(self) -> bool:
        """Exactly one error, and that error is an overridable code"""
        errors = self.errors
        return len(errors) == 1 and errors[0].code.overridable

    @property
    def override_code(self) -> Optional[ViolationCode]:
        return self.errors[0].code if self.overridable else None

    def add_violation(self, violation: ConstraintViolation):
        """Add a violation to the result"""
        self.violations.append(violation)

    def has_code(self, code: ViolationCode) -> bool:
        return any(v.code == code for v in self.violations)

    def to_dict(self) -> dict:
        data = {
            'valid': self.is_valid,
            'overridable': self.overridable,
            'violations': [v.to_dict() for v in self.violations],
        }
        if self.suggestions:
            data['suggestions'] = list(self.suggestions)
        return data
