"""
Shift Service
Concurrency-safe shift and assignment mutations

Validation runs unlocked first. The authoritative double-booking check
and the write then happen together inside one unit of work holding the
worker's lock. Edits and publish/unpublish use conditional updates
guarded by version or published state instead of locks.
"""
import logging
from datetime import date, datetime, time, timedelta
from typing import List, Optional, Tuple

from flask import current_app
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from app.error_handlers.exceptions import (
    AlreadyAssignedException,
    AssignmentRejectedException,
    DoubleBookingException,
    OutsideEditWindowException,
    ResourceNotFoundException,
    SchedulingConflictException,
    ValidationException,
    VersionConflictException,
)
from app.utils.shift_time import format_time, ranges_overlap
from app.utils.timezone import hours_until_start, utcnow
from .audit_service import AuditService
from .constraint_validator import ConstraintValidator
from .lock_manager import locked_transaction, shift_lock_key, staff_lock_key, transaction
from .notification_service import NotificationService, NotificationType
from .validation_types import ValidationResult, ViolationCode

logger = logging.getLogger(__name__)

CASCADE_CANCEL_NOTE = 'Automatically cancelled because the shift was modified'

EDITABLE_FIELDS = ('date', 'start_time', 'end_time', 'skill_id', 'headcount')


def describe_shift(shift) -> str:
    """'2026-03-02 (09:00 - 17:00)' for notification text"""
    return f"{shift.date.isoformat()} ({format_time(shift.start_time)} - {format_time(shift.end_time)})"


class ShiftService:
    """
    Shift lifecycle and assignment operations

    Args:
        db_session: SQLAlchemy database session
        models: Dictionary of model classes from the model registry
    """

    MIN_HEADCOUNT = 1
    MAX_HEADCOUNT = 20

    def __init__(self, db_session: Session, models: dict,
                 notifications: Optional[NotificationService] = None,
                 audit: Optional[AuditService] = None):
        self.db = db_session
        self.models = models
        self.User = models['User']
        self.Location = models['Location']
        self.Skill = models['Skill']
        self.Shift = models['Shift']
        self.ShiftAssignment = models['ShiftAssignment']
        self.StaffSkill = models['StaffSkill']
        self.StaffLocationCert = models['StaffLocationCert']
        self.SwapRequest = models['SwapRequest']
        self.validator = ConstraintValidator(db_session, models)
        self.notifications = notifications or NotificationService(db_session, models)
        self.audit = audit or AuditService(db_session, models)
        self.publish_cutoff_hours = current_app.config.get('PUBLISH_CUTOFF_HOURS', 48)

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    def get_shift(self, shift_id: int):
        shift = self.db.get(self.Shift, shift_id)
        if shift is None:
            raise ResourceNotFoundException('Shift not found')
        return shift

    def list_shifts(self, location_id: int, start_date: Optional[date] = None,
                    end_date: Optional[date] = None, published_only: bool = False):
        query = self.db.query(self.Shift).filter(self.Shift.location_id == location_id)
        if start_date:
            query = query.filter(self.Shift.date >= start_date)
        if end_date:
            query = query.filter(self.Shift.date <= end_date)
        if published_only:
            query = query.filter(self.Shift.is_published.is_(True))
        return query.order_by(self.Shift.date, self.Shift.start_time).all()

    def qualified_staff(self, shift_id: int) -> List[Tuple[object, ValidationResult]]:
        """Skilled, certified staff for a shift, best candidates first"""
        return self.validator.get_qualified_staff(self.get_shift(shift_id))

    def validate_assignment(self, shift_id: int, staff_id: int) -> ValidationResult:
        """Dry-run the constraint engine without writing anything"""
        return self.validator.validate(staff_id, self.get_shift(shift_id))

    def available_shifts_for(self, staff_id: int, now: Optional[datetime] = None):
        """
        Published future shifts the worker could pick up

        Matches the worker's skills and certifications, skips full shifts,
        shifts they already hold and shifts overlapping their assignments.
        """
        skill_ids = [r.skill_id for r in self.db.query(self.StaffSkill.skill_id).filter_by(staff_id=staff_id)]
        location_ids = [r.location_id for r in
                        self.db.query(self.StaffLocationCert.location_id).filter_by(staff_id=staff_id)]
        if not skill_ids or not location_ids:
            return []

        # One day of slack either side covers every location's timezone offset
        earliest = (now or utcnow()).date() - timedelta(days=1)
        candidates = self.db.query(self.Shift).filter(
            self.Shift.is_published.is_(True),
            self.Shift.date >= earliest,
            self.Shift.skill_id.in_(skill_ids),
            self.Shift.location_id.in_(location_ids),
        ).order_by(self.Shift.date, self.Shift.start_time).all()

        mine = self.db.query(self.Shift).join(
            self.ShiftAssignment, self.ShiftAssignment.shift_id == self.Shift.id
        ).filter(
            self.ShiftAssignment.staff_id == staff_id,
            self.Shift.date >= earliest - timedelta(days=1),
        ).all()
        my_ids = {s.id for s in mine}
        my_ranges = [s.absolute_range() for s in mine]

        available = []
        for shift in candidates:
            if shift.id in my_ids or len(shift.assignments) >= shift.headcount:
                continue
            if hours_until_start(shift.date, shift.start_time, shift.timezone, now) <= 0:
                continue
            shift_range = shift.absolute_range()
            if any(ranges_overlap(shift_range, r) for r in my_ranges):
                continue
            available.append(shift)
        return available

    # ------------------------------------------------------------------
    # Shift lifecycle
    # ------------------------------------------------------------------

    def _check_headcount(self, headcount) -> None:
        if not self.MIN_HEADCOUNT <= headcount <= self.MAX_HEADCOUNT:
            raise ValidationException(
                f"headcount must be between {self.MIN_HEADCOUNT} and {self.MAX_HEADCOUNT}"
            )

    def create_shift(self, actor_id: int, location_id: int, shift_date: date, start_time: time,
                     end_time: time, skill_id: int, headcount: int = 1):
        """
        Create a draft shift (unpublished, version 1)

        An end time at or before the start time makes an overnight shift.
        """
        self._check_headcount(headcount)
        if self.db.get(self.Location, location_id) is None:
            raise ResourceNotFoundException('Location not found')
        if self.db.get(self.Skill, skill_id) is None:
            raise ResourceNotFoundException('Skill not found')

        with transaction(self.db):
            shift = self.Shift(
                location_id=location_id,
                date=shift_date,
                start_time=start_time,
                end_time=end_time,
                skill_id=skill_id,
                headcount=headcount,
                is_published=False,
                version=1,
                created_by=actor_id,
            )
            self.db.add(shift)
            self.db.flush()

        logger.info(f"Shift {shift.id} created at location {location_id} for {describe_shift(shift)}")
        self.audit.log('shift_created', actor_id, shift.id, {
            'location_id': location_id,
            'date': shift_date.isoformat(),
            'start_time': format_time(start_time),
            'end_time': format_time(end_time),
            'skill_id': skill_id,
            'headcount': headcount,
        })
        return shift

    def update_shift(self, actor_id: int, shift_id: int, expected_version: int, changes: dict):
        """
        Edit a shift guarded by its version

        The write only lands if the stored version still equals
        expected_version. Pending swap/drop requests on the shift are
        cancelled in the same transaction; accepted ones are left alone.

        Raises:
            ResourceNotFoundException: No such shift
            VersionConflictException: Another writer bumped the version first
        """
        values = {field: changes[field] for field in EDITABLE_FIELDS if field in changes}
        if 'headcount' in values:
            self._check_headcount(values['headcount'])
        if 'skill_id' in values and self.db.get(self.Skill, values['skill_id']) is None:
            raise ResourceNotFoundException('Skill not found')
        values['version'] = self.Shift.version + 1
        values['updated_at'] = utcnow()

        with transaction(self.db):
            updated = self.db.query(self.Shift).filter(
                self.Shift.id == shift_id,
                self.Shift.version == expected_version,
            ).update(values, synchronize_session=False)

            if updated == 0:
                exists = self.db.query(self.Shift.id).filter_by(id=shift_id).first()
                if exists is None:
                    raise ResourceNotFoundException('Shift not found')
                logger.warning(f"Version conflict editing shift {shift_id} (expected v{expected_version})")
                raise VersionConflictException()

            cancelled = self._cancel_pending_requests(shift_id)

        self.db.expire_all()
        shift = self.get_shift(shift_id)
        logger.info(
            f"Shift {shift_id} updated to v{shift.version}; "
            f"{len(cancelled)} pending request(s) cancelled"
        )

        self.audit.log('shift_updated', actor_id, shift_id, {
            **{k: self._jsonable(v) for k, v in changes.items() if k in EDITABLE_FIELDS},
            'previous_version': expected_version,
            'new_version': shift.version,
        })

        if cancelled:
            self.notifications.notify_many(
                [requested_by for _, requested_by in cancelled],
                NotificationType.SWAP_CANCELLED,
                'Request Auto-Cancelled',
                f"Your swap/drop request was automatically cancelled because the shift on "
                f"{shift.date.isoformat()} was modified by a manager.",
                'shift', shift_id,
            )

        assigned = [a.staff_id for a in shift.assignments]
        if assigned:
            self.notifications.notify_many(
                assigned,
                NotificationType.SHIFT_CHANGED,
                'Shift Modified',
                f"A shift you're assigned to on {describe_shift(shift)} has been updated by a manager.",
                'shift', shift_id,
            )
        return shift

    def _cancel_pending_requests(self, shift_id: int) -> List[Tuple[int, int]]:
        """Cancel PENDING requests on the shift; returns (request id, requester) pairs"""
        pending = self.db.query(self.SwapRequest.id, self.SwapRequest.requested_by).filter(
            self.SwapRequest.shift_id == shift_id,
            self.SwapRequest.status == 'PENDING',
        ).all()
        if not pending:
            return []

        ids = [row.id for row in pending]
        self.db.query(self.SwapRequest).filter(
            self.SwapRequest.id.in_(ids),
            self.SwapRequest.status == 'PENDING',
        ).update({
            'status': 'CANCELLED',
            'review_notes': CASCADE_CANCEL_NOTE,
            'updated_at': utcnow(),
        }, synchronize_session=False)
        return [(row.id, row.requested_by) for row in pending]

    def delete_shift(self, actor_id: int, shift_id: int, now: Optional[datetime] = None) -> None:
        """
        Delete a shift under its lock

        Published shifts cannot be deleted within PUBLISH_CUTOFF_HOURS of
        their localized start. Assignments and requests go with the shift.
        """
        with locked_transaction(self.db, shift_lock_key(shift_id)):
            shift = self.get_shift(shift_id)
            if shift.is_published and self._within_cutoff(shift, now):
                raise OutsideEditWindowException(
                    f"Cannot delete shift within {self.publish_cutoff_hours} hours of its start time"
                )
            snapshot = shift.to_dict()
            self.db.delete(shift)

        logger.info(f"Shift {shift_id} deleted")
        self.audit.log('shift_deleted', actor_id, shift_id, snapshot)

    def publish_shift(self, actor_id: int, shift_id: int):
        """Flip a draft to published; the published flag guards the update"""
        with transaction(self.db):
            updated = self.db.query(self.Shift).filter(
                self.Shift.id == shift_id,
                self.Shift.is_published.is_(False),
            ).update({
                'is_published': True,
                'published_at': utcnow(),
                'version': self.Shift.version + 1,
                'updated_at': utcnow(),
            }, synchronize_session=False)

            if updated == 0:
                self.get_shift(shift_id)
                raise SchedulingConflictException('Shift is already published')

        self.db.expire_all()
        shift = self.get_shift(shift_id)
        logger.info(f"Shift {shift_id} published (v{shift.version})")
        self.audit.log('shift_published', actor_id, shift_id, {
            'date': shift.date.isoformat(),
            'start_time': format_time(shift.start_time),
            'end_time': format_time(shift.end_time),
        })

        assigned = [a.staff_id for a in shift.assignments]
        if assigned:
            self.notifications.notify_many(
                assigned,
                NotificationType.SHIFT_PUBLISHED,
                'Schedule Published',
                f"Your shift on {describe_shift(shift)} has been published.",
                'shift', shift_id,
            )
        return shift

    def unpublish_shift(self, actor_id: int, shift_id: int, now: Optional[datetime] = None):
        """
        Return a published shift to draft

        The cutoff is read before the guarded update; a concurrent time
        change between the two is accepted.
        """
        self.db.expire_all()
        shift = self.get_shift(shift_id)
        if not shift.is_published:
            raise SchedulingConflictException('Shift is not published')
        if self._within_cutoff(shift, now):
            raise OutsideEditWindowException(
                f"Cannot unpublish shift within {self.publish_cutoff_hours} hours of its start time"
            )

        with transaction(self.db):
            updated = self.db.query(self.Shift).filter(
                self.Shift.id == shift_id,
                self.Shift.is_published.is_(True),
            ).update({
                'is_published': False,
                'published_at': None,
                'version': self.Shift.version + 1,
                'updated_at': utcnow(),
            }, synchronize_session=False)
            if updated == 0:
                raise SchedulingConflictException('Shift was already unpublished by another user')

        self.db.expire_all()
        shift = self.get_shift(shift_id)
        logger.info(f"Shift {shift_id} unpublished (v{shift.version})")
        self.audit.log('shift_unpublished', actor_id, shift_id, {'version': shift.version})
        return shift

    def _within_cutoff(self, shift, now: Optional[datetime]) -> bool:
        return hours_until_start(shift.date, shift.start_time, shift.timezone, now) < self.publish_cutoff_hours

    # ------------------------------------------------------------------
    # Assignments
    # ------------------------------------------------------------------

    def assign_staff(self, actor_id: int, shift_id: int, staff_id: int,
                     override_reason: Optional[str] = None):
        """
        Put a worker on a shift

        Args:
            actor_id: Manager or admin making the assignment
            override_reason: Documented reason to bypass a lone
                7th-consecutive-day error

        Returns:
            (ShiftAssignment, ValidationResult)

        Raises:
            AssignmentRejectedException: Constraint errors, not overridden
            DoubleBookingException: A concurrent writer got there first
            AlreadyAssignedException: Worker already holds this shift
        """
        shift = self.get_shift(shift_id)
        if self.db.get(self.User, staff_id) is None:
            raise ResourceNotFoundException('Staff member not found')

        result = self.validator.validate(staff_id, shift)
        override_used = self._enforce_result(result, override_reason, allow_override=True)

        assignment = self._commit_assignment(shift_id, staff_id, assigned_by=actor_id)
        shift = self.get_shift(shift_id)

        metadata = {
            'staff_id': staff_id,
            'warnings': [v.code.value for v in result.warnings],
        }
        if override_used:
            metadata['override_reason'] = override_reason.strip()
            metadata['override_code'] = ViolationCode.SEVENTH_CONSECUTIVE_DAY.value
        self.audit.log('assignment_created', actor_id, shift_id, metadata)

        draft_note = '' if shift.is_published else ' (draft - not yet published)'
        self.notifications.notify(
            staff_id,
            NotificationType.SHIFT_ASSIGNED,
            'New Shift Assigned',
            f"You've been assigned to a shift on {describe_shift(shift)}{draft_note}.",
            'shift', shift_id,
        )
        return assignment, result

    def pick_up_shift(self, staff_id: int, shift_id: int, now: Optional[datetime] = None):
        """
        Worker self-assignment to an open published shift

        Runs the full constraint engine with no override, then the same
        worker-locked commit as a manager assignment.
        """
        shift = self.get_shift(shift_id)
        if not shift.is_published:
            raise ValidationException('Shift is not published')
        if hours_until_start(shift.date, shift.start_time, shift.timezone, now) <= 0:
            raise OutsideEditWindowException('Cannot pick up a shift that has already started')
        if len(shift.assignments) >= shift.headcount:
            raise SchedulingConflictException('This shift is already fully staffed')
        if any(a.staff_id == staff_id for a in shift.assignments):
            raise AlreadyAssignedException('You are already assigned to this shift')

        result = self.validator.validate(staff_id, shift)
        self._enforce_result(result, None, allow_override=False)

        assignment = self._commit_assignment(shift_id, staff_id, assigned_by=staff_id)
        shift = self.get_shift(shift_id)
        worker = self.db.get(self.User, staff_id)

        self.audit.log('assignment_created', staff_id, shift_id, {
            'staff_id': staff_id,
            'self_assigned': True,
            'warnings': [v.code.value for v in result.warnings],
        })
        self.notifications.notify_location_managers(
            shift.location_id,
            NotificationType.SHIFT_PICKED_UP,
            'Shift Picked Up',
            f"{worker.name if worker else 'A staff member'} picked up the shift on {describe_shift(shift)}.",
            'shift', shift_id,
        )
        return assignment, result

    def unassign_staff(self, actor_id: int, shift_id: int, staff_id: int) -> None:
        with locked_transaction(self.db, staff_lock_key(staff_id)):
            assignment = self.db.query(self.ShiftAssignment).filter_by(
                shift_id=shift_id, staff_id=staff_id
            ).first()
            if assignment is None:
                raise ResourceNotFoundException('Assignment not found')
            self.db.delete(assignment)

        logger.info(f"Staff {staff_id} unassigned from shift {shift_id}")
        self.audit.log('assignment_deleted', actor_id, shift_id, {'staff_id': staff_id})

    def _enforce_result(self, result: ValidationResult, override_reason: Optional[str],
                        allow_override: bool) -> bool:
        """
        Decide whether a validation result blocks the assignment

        Returns:
            True when an override reason was used to bypass the lone
            overridable error

        Raises:
            AssignmentRejectedException: When errors remain
        """
        if result.is_valid:
            return False
        if allow_override and result.overridable and override_reason and override_reason.strip():
            logger.info(f"Override used for {result.override_code.value}: {override_reason.strip()}")
            return True

        errors = result.errors
        logger.warning(f"Assignment rejected: {[v.code.value for v in errors]}")
        raise AssignmentRejectedException(
            '; '.join(v.message for v in errors),
            violations=[v.to_dict() for v in result.violations],
            overridable=allow_override and result.overridable,
            suggestions=result.suggestions,
        )

    def _commit_assignment(self, shift_id: int, staff_id: int, assigned_by: int):
        """
        Insert the assignment under the worker's lock

        Overlap and duplicates are re-checked against freshly read state
        so two writers validating at once cannot both succeed.
        """
        with locked_transaction(self.db, staff_lock_key(staff_id)):
            shift = self.get_shift(shift_id)
            if self.validator.find_overlapping_shifts(staff_id, shift):
                logger.warning(f"Double booking blocked for staff {staff_id} on shift {shift_id}")
                raise DoubleBookingException()

            duplicate = self.db.query(self.ShiftAssignment.id).filter_by(
                shift_id=shift_id, staff_id=staff_id
            ).first()
            if duplicate is not None:
                raise AlreadyAssignedException()

            assignment = self.ShiftAssignment(shift_id=shift_id, staff_id=staff_id, assigned_by=assigned_by)
            self.db.add(assignment)
            try:
                self.db.flush()
            except IntegrityError as e:
                raise AlreadyAssignedException() from e

        logger.info(f"Staff {staff_id} assigned to shift {shift_id} by user {assigned_by}")
        return assignment

    @staticmethod
    def _jsonable(value):
        if isinstance(value, (date, time)):
            return value.isoformat()
        return value
