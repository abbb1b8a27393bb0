"""
Constraint Validator Service
Validates (worker, shift) assignments against skill, certification,
availability, overlap, rest-period and labor-hour rules
"""
import logging
from datetime import date, timedelta
from typing import Dict, List, Optional, Tuple

from sqlalchemy.orm import Session

from app.utils.shift_time import (
    TimeValue,
    date_window,
    format_time,
    gap_hours,
    is_overnight,
    ranges_overlap,
    to_minutes,
    week_bounds,
)
from .validation_types import ValidationResult, ConstraintViolation, ViolationCode

logger = logging.getLogger(__name__)

DAY_NAMES = ('Monday', 'Tuesday', 'Wednesday', 'Thursday', 'Friday', 'Saturday', 'Sunday')

END_OF_DAY_MINUTES = 23 * 60 + 59


class ConstraintValidator:
    """
    Validates proposed shift assignments against all constraints

    Every check runs, none short-circuits, so the caller always sees the
    full set of violations. Handles:
    - Skill match and location certification
    - Availability (recurring rules + single-date exceptions)
    - Overlap with the worker's other shifts, across midnight
    - 10 hour rest between shifts
    - Daily and weekly hour limits
    - Consecutive days worked
    """

    MIN_REST_HOURS = 10
    DAILY_HARD_LIMIT_HOURS = 12
    DAILY_WARNING_HOURS = 8
    WEEKLY_OVERTIME_HOURS = 40
    WEEKLY_APPROACHING_HOURS = 35
    CONSECUTIVE_DAYS_ERROR = 7
    CONSECUTIVE_DAYS_WARNING = 6

    # Look-back/look-forward cap for consecutive-day counting
    CONSECUTIVE_LOOKAROUND_DAYS = 14

    SUGGESTION_POOL_SIZE = 10
    SUGGESTION_NAME_COUNT = 3

    def __init__(self, db_session: Session, models: dict):
        """
        Initialize ConstraintValidator

        Args:
            db_session: SQLAlchemy database session
            models: Dictionary of model classes from the model registry
        """
        self.db = db_session
        self.User = models['User']
        self.Shift = models['Shift']
        self.ShiftAssignment = models['ShiftAssignment']
        self.StaffSkill = models['StaffSkill']
        self.StaffLocationCert = models['StaffLocationCert']
        self.AvailabilityRule = models['AvailabilityRule']
        self.AvailabilityException = models['AvailabilityException']

    def validate(self, staff_id: int, shift: object, with_suggestions: bool = True) -> ValidationResult:
        """
        Validate assigning a worker to a shift

        Args:
            staff_id: Worker being considered
            shift: Shift model instance
            with_suggestions: Look up alternative workers when an error is found

        Returns:
            ValidationResult with every violation found
        """
        result = ValidationResult()

        # One ranged read covers the overlap window, the week and the
        # consecutive-day lookaround
        span = timedelta(days=self.CONSECUTIVE_LOOKAROUND_DAYS)
        nearby = self._assigned_shifts(staff_id, shift.date - span, shift.date + span, exclude_shift_id=shift.id)

        self._check_skill(staff_id, shift, result)
        self._check_location_certification(staff_id, shift, result)
        self._check_availability(staff_id, shift, result)
        self._check_overlap(shift, nearby, result)
        self._check_rest_period(shift, nearby, result)
        self._check_daily_hours(shift, nearby, result)
        self._check_weekly_hours(shift, nearby, result)
        self._check_consecutive_days(shift, nearby, result)

        if with_suggestions and result.errors:
            result.suggestions = self._suggest_alternatives(staff_id, shift)

        if result.violations:
            logger.debug(
                f"Validation for staff {staff_id} on shift {shift.id}: "
                f"{[v.code.value for v in result.violations]}"
            )
        return result

    def find_overlapping_shifts(self, staff_id: int, shift: object) -> List[object]:
        """
        Shifts the worker is assigned to that overlap the given shift

        Re-reads current state; used as the commit-time double-booking check.
        """
        window = date_window(shift.date, shift.start_time, shift.end_time)
        candidate_range = shift.absolute_range()
        assigned = self._assigned_shifts(staff_id, min(window), max(window), exclude_shift_id=shift.id)
        return [s for s in assigned if ranges_overlap(candidate_range, s.absolute_range())]

    def get_qualified_staff(self, shift: object) -> List[Tuple[object, ValidationResult]]:
        """
        Every STAFF user with the shift's skill and location certification

        Each comes with a full validation result; valid candidates first,
        then fewest violations.
        """
        candidates = self._qualified_staff_query(shift).all()
        ranked = [(user, self.validate(user.id, shift, with_suggestions=False)) for user in candidates]
        ranked.sort(key=lambda pair: (not pair[1].is_valid, len(pair[1].violations), pair[0].name))
        return ranked

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    def _assigned_shifts(self, staff_id: int, start: date, end: date,
                         exclude_shift_id: Optional[int] = None) -> List[object]:
        query = self.db.query(self.Shift).join(
            self.ShiftAssignment, self.ShiftAssignment.shift_id == self.Shift.id
        ).filter(
            self.ShiftAssignment.staff_id == staff_id,
            self.Shift.date >= start,
            self.Shift.date <= end,
        )
        if exclude_shift_id is not None:
            query = query.filter(self.Shift.id != exclude_shift_id)
        return query.all()

    def _qualified_staff_query(self, shift: object):
        return self.db.query(self.User).join(
            self.StaffSkill, self.StaffSkill.staff_id == self.User.id
        ).join(
            self.StaffLocationCert, self.StaffLocationCert.staff_id == self.User.id
        ).filter(
            self.User.role == 'STAFF',
            self.StaffSkill.skill_id == shift.skill_id,
            self.StaffLocationCert.location_id == shift.location_id,
        ).order_by(self.User.name)

    def _exceptions_by_date(self, staff_id: int, dates: List[date]) -> Dict[date, list]:
        rows = self.db.query(self.AvailabilityException).filter(
            self.AvailabilityException.staff_id == staff_id,
            self.AvailabilityException.date.in_(dates),
        ).all()
        by_date = {d: [] for d in dates}
        for row in rows:
            by_date[row.date].append(row)
        return by_date

    # ------------------------------------------------------------------
    # Checks
    # ------------------------------------------------------------------

    def _check_skill(self, staff_id: int, shift: object, result: ValidationResult) -> None:
        has_skill = self.db.query(self.StaffSkill.id).filter_by(
            staff_id=staff_id, skill_id=shift.skill_id
        ).first() is not None
        if not has_skill:
            result.add_violation(ConstraintViolation(
                code=ViolationCode.SKILL_MISMATCH,
                message='Staff member does not have the required skill for this shift',
            ))

    def _check_location_certification(self, staff_id: int, shift: object, result: ValidationResult) -> None:
        certified = self.db.query(self.StaffLocationCert.id).filter_by(
            staff_id=staff_id, location_id=shift.location_id
        ).first() is not None
        if not certified:
            result.add_violation(ConstraintViolation(
                code=ViolationCode.LOCATION_NOT_CERTIFIED,
                message='Staff member is not certified to work at this location',
            ))

    def _check_availability(self, staff_id: int, shift: object, result: ValidationResult) -> None:
        reason = self._availability_problem(staff_id, shift.date, shift.start_time, shift.end_time)
        if reason:
            result.add_violation(ConstraintViolation(
                code=ViolationCode.NOT_AVAILABLE,
                message=reason,
            ))

    def _availability_problem(self, staff_id: int, shift_date: date,
                              start: TimeValue, end: TimeValue) -> Optional[str]:
        """
        Reason the worker cannot cover [start, end) on shift_date, or None

        An overnight shift is split at midnight and each half must be
        covered on its own calendar date.
        """
        overnight = is_overnight(start, end)
        next_date = shift_date + timedelta(days=1)
        exceptions = self._exceptions_by_date(staff_id, [shift_date, next_date] if overnight else [shift_date])

        blocked = self._blocking_exception(exceptions[shift_date])
        if blocked:
            return blocked.reason or 'Staff marked as unavailable on this date'

        start_minutes = to_minutes(start)
        end_minutes = to_minutes(end)

        if not overnight:
            return self._single_day_problem(
                staff_id, shift_date, start_minutes, end_minutes, exceptions[shift_date],
                f"{format_time(start)}-{format_time(end)}",
            )

        if self._single_day_problem(staff_id, shift_date, start_minutes, END_OF_DAY_MINUTES,
                                    exceptions[shift_date], ''):
            return (f"Overnight shift starts at {format_time(start)} but staff availability on "
                    f"{DAY_NAMES[shift_date.weekday()]} does not cover that time")

        blocked = self._blocking_exception(exceptions[next_date])
        if blocked:
            return blocked.reason or 'Staff marked as unavailable on the next date (overnight shift spans two days)'

        if self._single_day_problem(staff_id, next_date, 0, end_minutes, exceptions[next_date], ''):
            return (f"Overnight shift ends at {format_time(end)} but staff availability on "
                    f"{DAY_NAMES[next_date.weekday()]} does not cover that time")

        return None

    @staticmethod
    def _blocking_exception(day_exceptions: list):
        for exception in day_exceptions:
            if not exception.is_available:
                return exception
        return None

    def _single_day_problem(self, staff_id: int, day: date, need_start: int, need_end: int,
                            day_exceptions: list, label: str) -> Optional[str]:
        """
        Whether one rule or open exception fully contains [need_start, need_end]

        Open (is_available=True) exceptions for the date replace the weekly
        rules. Coverage by the union of several windows does not count.
        """
        day_name = DAY_NAMES[day.weekday()]
        outside = f"Shift time ({label}) falls outside staff availability on {day_name}"

        open_exceptions = [e for e in day_exceptions if e.is_available]
        if open_exceptions:
            for exception in open_exceptions:
                if exception.start_time is None or exception.end_time is None:
                    return None
                if self._window_contains(exception.start_time, exception.end_time, need_start, need_end):
                    return None
            return outside

        rules = self.db.query(self.AvailabilityRule).filter_by(
            staff_id=staff_id, day_of_week=day.weekday()
        ).all()
        if not rules:
            return f"Staff has no availability set for {day_name}"

        for rule in rules:
            if self._window_contains(rule.start_time, rule.end_time, need_start, need_end):
                return None
        return outside

    @staticmethod
    def _window_contains(window_start: TimeValue, window_end: TimeValue, need_start: int, need_end: int) -> bool:
        start = to_minutes(window_start)
        end = to_minutes(window_end)
        if end == 0:
            # A window ending at 00:00 runs to the end of the day
            end = 24 * 60
        return start <= need_start and need_end <= end

    def _check_overlap(self, shift: object, nearby: List[object], result: ValidationResult) -> None:
        window = set(date_window(shift.date, shift.start_time, shift.end_time))
        candidate_range = shift.absolute_range()
        for other in nearby:
            if other.date in window and ranges_overlap(candidate_range, other.absolute_range()):
                result.add_violation(ConstraintViolation(
                    code=ViolationCode.SHIFT_OVERLAP,
                    message='Staff member has an overlapping shift at this time',
                    details={'shift_id': other.id},
                ))
                return

    def _check_rest_period(self, shift: object, nearby: List[object], result: ValidationResult) -> None:
        window = set(date_window(shift.date, shift.start_time, shift.end_time))
        new_start, new_end = shift.absolute_range()
        for other in sorted(nearby, key=lambda s: s.absolute_range()):
            if other.date not in window:
                continue
            other_start, other_end = other.absolute_range()

            after_previous = gap_hours(other_end, new_start)
            if 0 < after_previous < self.MIN_REST_HOURS:
                message = (f"Only {after_previous:.1f} hours of rest after previous shift. "
                           f"Minimum {self.MIN_REST_HOURS} hours required.")
            else:
                before_next = gap_hours(new_end, other_start)
                if not 0 < before_next < self.MIN_REST_HOURS:
                    continue
                message = (f"Only {before_next:.1f} hours of rest before next shift. "
                           f"Minimum {self.MIN_REST_HOURS} hours required.")

            result.add_violation(ConstraintViolation(
                code=ViolationCode.REST_PERIOD_VIOLATION,
                message=message,
                details={'shift_id': other.id},
            ))
            return

    def _check_daily_hours(self, shift: object, nearby: List[object], result: ValidationResult) -> None:
        total = shift.duration_hours + sum(s.duration_hours for s in nearby if s.date == shift.date)
        prefix = f"This assignment would result in {total:.1f} hours on {shift.date.isoformat()}."

        if total > self.DAILY_HARD_LIMIT_HOURS:
            result.add_violation(ConstraintViolation(
                code=ViolationCode.DAILY_HOURS_HARD_LIMIT,
                message=f"{prefix} Cannot exceed {self.DAILY_HARD_LIMIT_HOURS} hours in a single day.",
                details={'hours': total},
            ))
        elif total > self.DAILY_WARNING_HOURS:
            result.add_violation(ConstraintViolation(
                code=ViolationCode.DAILY_HOURS_WARNING,
                message=f"{prefix} Standard daily limit is {self.DAILY_WARNING_HOURS} hours.",
                details={'hours': total},
            ))

    def _check_weekly_hours(self, shift: object, nearby: List[object], result: ValidationResult) -> None:
        week_start, week_end = week_bounds(shift.date)
        total = shift.duration_hours + sum(
            s.duration_hours for s in nearby if week_start <= s.date <= week_end
        )
        prefix = f"This assignment would result in {total:.1f} hours this week."

        if total >= self.WEEKLY_OVERTIME_HOURS:
            overtime = total - self.WEEKLY_OVERTIME_HOURS
            result.add_violation(ConstraintViolation(
                code=ViolationCode.WEEKLY_OVERTIME,
                message=f"{prefix} Overtime hours: {overtime:.1f}",
                details={'hours': total, 'overtime_hours': overtime},
            ))
        elif total >= self.WEEKLY_APPROACHING_HOURS:
            result.add_violation(ConstraintViolation(
                code=ViolationCode.WEEKLY_HOURS_APPROACHING_OVERTIME,
                message=f"{prefix} Approaching {self.WEEKLY_OVERTIME_HOURS}-hour overtime threshold.",
                details={'hours': total},
            ))

    def _check_consecutive_days(self, shift: object, nearby: List[object], result: ValidationResult) -> None:
        worked = {s.date for s in nearby}
        run = 1
        for direction in (-1, 1):
            for offset in range(1, self.CONSECUTIVE_LOOKAROUND_DAYS + 1):
                if shift.date + timedelta(days=direction * offset) not in worked:
                    break
                run += 1

        if run >= self.CONSECUTIVE_DAYS_ERROR:
            result.add_violation(ConstraintViolation(
                code=ViolationCode.SEVENTH_CONSECUTIVE_DAY,
                message=('Staff member would work their 7th consecutive day. '
                         'This requires manager override with documented reason.'),
                details={'consecutive_days': run},
            ))
        elif run >= self.CONSECUTIVE_DAYS_WARNING:
            result.add_violation(ConstraintViolation(
                code=ViolationCode.SIXTH_CONSECUTIVE_DAY,
                message='Staff member would work their 6th consecutive day. Consider scheduling a rest day.',
                details={'consecutive_days': run},
            ))

    def _suggest_alternatives(self, staff_id: int, shift: object) -> List[str]:
        """
        Names of other workers holding the skill and certification

        Candidates are not re-validated against the remaining rules.
        """
        others = self._qualified_staff_query(shift).filter(
            self.User.id != staff_id
        ).limit(self.SUGGESTION_POOL_SIZE).all()
        if not others:
            return []
        names = ', '.join(user.name for user in others[:self.SUGGESTION_NAME_COUNT])
        return [f"Available alternatives: {names}"]
