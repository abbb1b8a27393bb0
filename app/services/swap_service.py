"""
Swap Service
Swap/drop request workflow between workers and managers

    SWAP: PENDING -> ACCEPTED_BY_TARGET -> APPROVED | DENIED
    DROP: PENDING -> APPROVED | DENIED
    Open requests (PENDING, ACCEPTED_BY_TARGET) may be CANCELLED.

Every transition after creation runs under the request's lock, re-reads
the request and writes through a status-guarded update, so two actors
racing on one request get an "already processed" failure instead of a
corrupted row.
"""
import logging
from datetime import datetime
from typing import List, Optional, Sequence

from flask import current_app
from sqlalchemy import and_, or_
from sqlalchemy.orm import Session

from app.error_handlers.exceptions import (
    AlreadyAssignedException,
    AlreadyProcessedException,
    AuthorizationException,
    DoubleBookingException,
    OutsideEditWindowException,
    ResourceNotFoundException,
    SchedulingConflictException,
    ValidationException,
)
from app.models.swap_request import OPEN_STATUSES
from app.utils.timezone import hours_until_start, utcnow
from .access import ensure_location_access, managed_location_ids
from .audit_service import AuditService
from .constraint_validator import ConstraintValidator
from .lock_manager import locked_transaction, staff_lock_key, swap_request_lock_key, transaction
from .notification_service import NotificationService, NotificationType
from .shift_service import describe_shift

logger = logging.getLogger(__name__)

EXPIRY_NOTE = 'Automatically expired (shift starts within 24 hours)'
DECLINE_NOTE = 'Declined by target staff'

MANAGER_PROCESSED = 'This request has already been processed by another manager'
PROCESSED = 'This request has already been processed'


class SwapService:
    """
    Swap/drop request operations

    Args:
        db_session: SQLAlchemy database session
        models: Dictionary of model classes from the model registry
    """

    def __init__(self, db_session: Session, models: dict,
                 notifications: Optional[NotificationService] = None,
                 audit: Optional[AuditService] = None):
        self.db = db_session
        self.models = models
        self.User = models['User']
        self.Shift = models['Shift']
        self.ShiftAssignment = models['ShiftAssignment']
        self.SwapRequest = models['SwapRequest']
        self.validator = ConstraintValidator(db_session, models)
        self.notifications = notifications or NotificationService(db_session, models)
        self.audit = audit or AuditService(db_session, models)
        self.drop_cutoff_hours = current_app.config.get('DROP_CUTOFF_HOURS', 24)
        self.max_open_requests = current_app.config.get('MAX_OPEN_SWAP_REQUESTS', 3)

    # ------------------------------------------------------------------
    # Creation
    # ------------------------------------------------------------------

    def create_swap_request(self, requester_id: int, assignment_id: int, target_staff_id: int):
        """Ask a colleague to take over one of the requester's assignments"""
        if target_staff_id is None:
            raise ValidationException('A swap request needs a target staff member')
        if target_staff_id == requester_id:
            raise ValidationException('You cannot swap a shift with yourself')
        target = self.db.get(self.User, target_staff_id)
        if target is None:
            raise ResourceNotFoundException('Target staff member not found')

        self._check_open_request_cap(requester_id)
        assignment = self._owned_assignment(requester_id, assignment_id, 'swaps')
        self._check_no_pending(assignment.id, 'There is already a pending swap request for this shift')
        shift = assignment.shift

        request = self._insert_request(assignment, requester_id, 'SWAP', target_staff_id)
        requester = self.db.get(self.User, requester_id)

        self.audit.log('swap_requested', requester_id, request.id, {
            'type': 'SWAP',
            'shift_id': shift.id,
            'target_staff_id': target_staff_id,
        })
        self.notifications.notify(
            target_staff_id,
            NotificationType.SWAP_REQUEST,
            'Swap Request - Your Acceptance Needed',
            f"{requester.name} wants to swap their shift on {describe_shift(shift)} with you. "
            f"Please accept or decline.",
            'swap_request', request.id,
        )
        return request

    def create_drop_request(self, requester_id: int, assignment_id: int, now: Optional[datetime] = None):
        """Offer up one of the requester's assignments for manager approval"""
        self._check_open_request_cap(requester_id)
        assignment = self._owned_assignment(requester_id, assignment_id, 'drops')
        self._check_no_pending(assignment.id, 'There is already a pending request for this shift')
        shift = assignment.shift

        if hours_until_start(shift.date, shift.start_time, shift.timezone, now) <= self.drop_cutoff_hours:
            raise OutsideEditWindowException(
                f"Cannot drop a shift within {self.drop_cutoff_hours} hours of its start time"
            )

        request = self._insert_request(assignment, requester_id, 'DROP', None)
        requester = self.db.get(self.User, requester_id)

        self.audit.log('swap_requested', requester_id, request.id, {'type': 'DROP', 'shift_id': shift.id})
        self.notifications.notify_location_managers(
            shift.location_id,
            NotificationType.DROP_REQUEST,
            'Drop Request Pending',
            f"{requester.name} wants to drop their shift on {describe_shift(shift)}.",
            'swap_request', request.id,
        )
        return request

    def _check_open_request_cap(self, requester_id: int) -> None:
        open_count = self.db.query(self.SwapRequest).filter(
            self.SwapRequest.requested_by == requester_id,
            self.SwapRequest.status.in_(OPEN_STATUSES),
        ).count()
        if open_count >= self.max_open_requests:
            raise ValidationException(
                f"You already have {self.max_open_requests} pending swap/drop requests. "
                f"Please wait for approval or cancel existing requests."
            )

    def _owned_assignment(self, requester_id: int, assignment_id: int, noun: str):
        assignment = self.db.get(self.ShiftAssignment, assignment_id)
        if assignment is None:
            raise ResourceNotFoundException('Assignment not found')
        if assignment.staff_id != requester_id:
            raise AuthorizationException(f"You can only request {noun} for your own shifts")
        return assignment

    def _check_no_pending(self, assignment_id: int, message: str) -> None:
        pending = self.db.query(self.SwapRequest.id).filter_by(
            shift_assignment_id=assignment_id, status='PENDING'
        ).first()
        if pending is not None:
            raise SchedulingConflictException(message)

    def _insert_request(self, assignment, requester_id: int, request_type: str, target_staff_id: Optional[int]):
        with transaction(self.db):
            request = self.SwapRequest(
                shift_assignment_id=assignment.id,
                shift_id=assignment.shift_id,
                requested_by=requester_id,
                type=request_type,
                target_staff_id=target_staff_id,
                status='PENDING',
            )
            self.db.add(request)
            self.db.flush()
        logger.info(f"{request_type} request {request.id} created by staff {requester_id} "
                    f"for assignment {assignment.id}")
        return request

    # ------------------------------------------------------------------
    # Transitions
    # ------------------------------------------------------------------

    def get_request(self, request_id: int):
        request = self.db.get(self.SwapRequest, request_id)
        if request is None:
            raise ResourceNotFoundException('Swap request not found')
        return request

    def _transition(self, request_id: int, from_statuses: Sequence[str], values: dict, message: str) -> None:
        """Status-guarded write; zero rows means someone else moved it first"""
        values = dict(values, updated_at=utcnow())
        updated = self.db.query(self.SwapRequest).filter(
            self.SwapRequest.id == request_id,
            self.SwapRequest.status.in_(list(from_statuses)),
        ).update(values, synchronize_session=False)
        if updated == 0:
            raise AlreadyProcessedException(message)

    def _check_target(self, request, actor_id: int) -> None:
        if request.target_staff_id != actor_id:
            raise AuthorizationException('You are not the target of this swap request')
        if request.type != 'SWAP':
            raise ValidationException('This is not a swap request')
        if request.status != 'PENDING':
            raise AlreadyProcessedException(PROCESSED)

    def accept(self, request_id: int, actor_id: int):
        """Target worker agrees to take the shift; managers review next"""
        with locked_transaction(self.db, swap_request_lock_key(request_id)):
            request = self.get_request(request_id)
            self._check_target(request, actor_id)
            self._transition(request_id, ['PENDING'], {'status': 'ACCEPTED_BY_TARGET'}, PROCESSED)

        request = self._reload(request_id)
        shift = request.shift
        actor = self.db.get(self.User, actor_id)
        logger.info(f"Swap request {request_id} accepted by staff {actor_id}")

        self.notifications.notify(
            request.requested_by,
            NotificationType.SWAP_ACCEPTED,
            'Swap Request Accepted',
            f"{actor.name} has accepted your swap request for {describe_shift(shift)}. "
            f"Awaiting manager approval.",
            'swap_request', request_id,
        )
        self.notifications.notify_location_managers(
            shift.location_id,
            NotificationType.SWAP_REQUEST,
            'Swap Request Ready for Review',
            f"A swap request for {describe_shift(shift)} has been accepted by both parties "
            f"and needs your approval.",
            'swap_request', request_id,
        )
        return request

    def decline(self, request_id: int, actor_id: int):
        """Target worker refuses; the request ends DENIED"""
        with locked_transaction(self.db, swap_request_lock_key(request_id)):
            request = self.get_request(request_id)
            self._check_target(request, actor_id)
            self._transition(request_id, ['PENDING'], {
                'status': 'DENIED',
                'reviewed_by': actor_id,
                'reviewed_at': utcnow(),
                'review_notes': DECLINE_NOTE,
            }, PROCESSED)

        request = self._reload(request_id)
        actor = self.db.get(self.User, actor_id)
        logger.info(f"Swap request {request_id} declined by staff {actor_id}")

        self.audit.log('swap_denied', actor_id, request_id, {'declined_by_target': True})
        self.notifications.notify(
            request.requested_by,
            NotificationType.SWAP_DECLINED,
            'Swap Request Declined',
            f"{actor.name} has declined your swap request for {describe_shift(request.shift)}.",
            'swap_request', request_id,
        )
        return request

    def approve(self, request_id: int, manager, notes: Optional[str] = None):
        """
        Manager approval

        DROP: the assignment is deleted. SWAP: the existing assignment row
        is handed to the target, after re-checking under the target's lock
        that they are not double-booked or already on the shift.
        """
        peek = self.get_request(request_id)
        keys = [swap_request_lock_key(request_id)]
        worker_id = peek.target_staff_id if peek.type == 'SWAP' else peek.requested_by
        if worker_id is not None:
            keys.append(staff_lock_key(worker_id))

        with locked_transaction(self.db, *keys):
            request = self.get_request(request_id)
            ensure_location_access(self.db, self.models, manager, request.shift.location_id)

            if request.type == 'SWAP' and request.status == 'PENDING':
                raise SchedulingConflictException('Target staff has not yet accepted this swap request')
            ready_status = 'ACCEPTED_BY_TARGET' if request.type == 'SWAP' else 'PENDING'
            if request.status != ready_status:
                raise AlreadyProcessedException(MANAGER_PROCESSED)

            assignment = request.assignment
            if assignment is None:
                raise ResourceNotFoundException('Shift assignment not found')
            shift = assignment.shift
            from_staff_id = assignment.staff_id

            if request.type == 'SWAP':
                target_id = request.target_staff_id
                if self.validator.find_overlapping_shifts(target_id, shift):
                    raise DoubleBookingException(
                        'Target staff member has a conflicting shift at this time.'
                    )
                already = self.db.query(self.ShiftAssignment.id).filter_by(
                    shift_id=shift.id, staff_id=target_id
                ).first()
                if already is not None:
                    raise AlreadyAssignedException('Target staff is already assigned to this shift')

            self._transition(request_id, [ready_status], {
                'status': 'APPROVED',
                'reviewed_by': manager.id,
                'reviewed_at': utcnow(),
                'review_notes': notes,
            }, MANAGER_PROCESSED)

            if request.type == 'SWAP':
                assignment.staff_id = request.target_staff_id
                assignment.assigned_by = manager.id
                assignment.assigned_at = utcnow()
            else:
                self.db.delete(assignment)
            assignment_id = assignment.id
            shift_id = shift.id

        request = self._reload(request_id)
        shift = self.db.get(self.Shift, shift_id)
        logger.info(f"{request.type} request {request_id} approved by manager {manager.id}")

        self.audit.log('swap_approved', manager.id, request_id, {'type': request.type, 'notes': notes})
        if request.type == 'SWAP':
            self.audit.log('shift_assignment_updated', manager.id, shift_id, {
                'from_staff_id': from_staff_id,
                'to_staff_id': request.target_staff_id,
                'swap_request_id': request_id,
            })
            self.notifications.notify(
                request.requested_by,
                NotificationType.SWAP_APPROVED,
                'Swap Request Approved',
                f"Your swap request for {describe_shift(shift)} has been approved.",
                'swap_request', request_id,
            )
            self.notifications.notify(
                request.target_staff_id,
                NotificationType.SWAP_APPROVED,
                "Swap Approved - You're Now Assigned",
                f"You've been assigned to a shift on {describe_shift(shift)} via swap.",
                'shift_assignment', assignment_id,
            )
        else:
            self.audit.log('shift_assignment_removed', manager.id, shift_id, {
                'staff_id': from_staff_id,
                'reason': 'drop_approved',
                'swap_request_id': request_id,
            })
            self.notifications.notify(
                request.requested_by,
                NotificationType.DROP_APPROVED,
                'Drop Request Approved',
                f"Your request to drop the shift on {describe_shift(shift)} has been approved. "
                f"You are no longer assigned.",
                'swap_request', request_id,
            )
        return request

    def deny(self, request_id: int, manager, notes: Optional[str] = None):
        """Manager rejects an open request"""
        with locked_transaction(self.db, swap_request_lock_key(request_id)):
            request = self.get_request(request_id)
            ensure_location_access(self.db, self.models, manager, request.shift.location_id)
            if not request.is_open:
                raise AlreadyProcessedException(MANAGER_PROCESSED)
            self._transition(request_id, OPEN_STATUSES, {
                'status': 'DENIED',
                'reviewed_by': manager.id,
                'reviewed_at': utcnow(),
                'review_notes': notes,
            }, MANAGER_PROCESSED)

        request = self._reload(request_id)
        shift = request.shift
        is_swap = request.type == 'SWAP'
        logger.info(f"{request.type} request {request_id} denied by manager {manager.id}")

        self.audit.log('swap_denied', manager.id, request_id, {'type': request.type, 'notes': notes})
        reason = f" Reason: {notes}" if notes else ''
        self.notifications.notify(
            request.requested_by,
            NotificationType.SWAP_DENIED if is_swap else NotificationType.DROP_DENIED,
            f"{'Swap' if is_swap else 'Drop'} Request Denied",
            f"Your request to {'swap' if is_swap else 'drop'} the shift on {describe_shift(shift)} "
            f"was not approved.{reason}",
            'swap_request', request_id,
        )
        if is_swap and request.target_staff_id:
            self.notifications.notify(
                request.target_staff_id,
                NotificationType.SWAP_DENIED,
                'Swap Request Denied',
                f"A swap request for {shift.date.isoformat()} was denied by a manager.",
                'swap_request', request_id,
            )
        return request

    def cancel(self, request_id: int, actor_id: int):
        """Requester withdraws an open request"""
        with locked_transaction(self.db, swap_request_lock_key(request_id)):
            request = self.get_request(request_id)
            if request.requested_by != actor_id:
                raise AuthorizationException('You can only cancel your own requests')
            if not request.is_open:
                raise AlreadyProcessedException(PROCESSED)
            self._transition(request_id, OPEN_STATUSES, {'status': 'CANCELLED'}, PROCESSED)

        request = self._reload(request_id)
        logger.info(f"{request.type} request {request_id} cancelled by staff {actor_id}")

        self.audit.log('swap_cancelled', actor_id, request_id, {'type': request.type})
        if request.type == 'SWAP' and request.target_staff_id:
            requester = self.db.get(self.User, actor_id)
            self.notifications.notify(
                request.target_staff_id,
                NotificationType.SWAP_CANCELLED,
                'Swap Request Cancelled',
                f"{requester.name} cancelled their swap request.",
                'swap_request', request_id,
            )
        return request

    def _reload(self, request_id: int):
        self.db.expire_all()
        return self.get_request(request_id)

    # ------------------------------------------------------------------
    # Expiry
    # ------------------------------------------------------------------

    def expire_stale_drop_requests(self, now: Optional[datetime] = None) -> int:
        """
        Cancel PENDING drops whose shift starts within DROP_CUTOFF_HOURS

        Runs before every manager-facing read and from the periodic sweep.

        Returns:
            Number of requests expired
        """
        pending = self.db.query(self.SwapRequest).filter_by(type='DROP', status='PENDING').all()
        expired_ids = [
            r.id for r in pending
            if hours_until_start(r.shift.date, r.shift.start_time, r.shift.timezone, now) <= self.drop_cutoff_hours
        ]
        if not expired_ids:
            return 0

        with transaction(self.db):
            expired = self.db.query(self.SwapRequest).filter(
                self.SwapRequest.id.in_(expired_ids),
                self.SwapRequest.status == 'PENDING',
            ).update({
                'status': 'CANCELLED',
                'review_notes': EXPIRY_NOTE,
                'updated_at': utcnow(),
            }, synchronize_session=False)
        self.db.expire_all()

        logger.info(f"Expired {expired} drop request(s): {expired_ids}")
        return expired

    # ------------------------------------------------------------------
    # Listings
    # ------------------------------------------------------------------

    def manager_queue(self, manager, now: Optional[datetime] = None) -> List[object]:
        """Requests awaiting a manager decision at the manager's locations"""
        self.expire_stale_drop_requests(now)

        query = self.db.query(self.SwapRequest).join(
            self.Shift, self.Shift.id == self.SwapRequest.shift_id
        ).filter(or_(
            and_(self.SwapRequest.type == 'DROP', self.SwapRequest.status == 'PENDING'),
            and_(self.SwapRequest.type == 'SWAP', self.SwapRequest.status == 'ACCEPTED_BY_TARGET'),
        ))
        allowed = managed_location_ids(self.db, self.models, manager)
        if allowed is not None:
            if not allowed:
                return []
            query = query.filter(self.Shift.location_id.in_(allowed))
        return query.order_by(self.SwapRequest.created_at.desc(), self.SwapRequest.id.desc()).all()

    def my_requests(self, user_id: int, now: Optional[datetime] = None) -> List[object]:
        self.expire_stale_drop_requests(now)
        return self.db.query(self.SwapRequest).filter_by(requested_by=user_id).order_by(
            self.SwapRequest.created_at.desc(), self.SwapRequest.id.desc()
        ).all()

    def incoming_requests(self, user_id: int) -> List[object]:
        """SWAP requests waiting on this worker's answer"""
        return self.db.query(self.SwapRequest).filter_by(
            target_staff_id=user_id, type='SWAP', status='PENDING'
        ).order_by(self.SwapRequest.created_at.desc(), self.SwapRequest.id.desc()).all()

    def eligible_swap_partners(self, requester_id: int, assignment_id: int) -> List[object]:
        """
        Workers who could take the requester's shift

        Each candidate passes the full constraint engine for the shift.
        """
        assignment = self._owned_assignment(requester_id, assignment_id, 'swaps')
        shift = assignment.shift
        on_shift = {a.staff_id for a in shift.assignments}
        return [
            user for user, result in self.validator.get_qualified_staff(shift)
            if result.is_valid and user.id != requester_id and user.id not in on_shift
        ]
