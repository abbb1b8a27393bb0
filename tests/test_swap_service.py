"""
Tests for the swap/drop request workflow.
"""
import pytest
from datetime import datetime, time, timedelta, timezone

from app.error_handlers.exceptions import (
    AlreadyProcessedException,
    AuthorizationException,
    DoubleBookingException,
    OutsideEditWindowException,
    SchedulingConflictException,
    ValidationException,
)
from app.services import SwapService
from app.services.swap_service import DECLINE_NOTE, EXPIRY_NOTE

from conftest import BASE_DATE


@pytest.fixture
def service(db_session, models):
    return SwapService(db_session, models)


@pytest.fixture
def alice(staff_factory, location, skill):
    return staff_factory(location, skill, name='Alice')


@pytest.fixture
def bob(staff_factory, location, skill):
    return staff_factory(location, skill, name='Bob')


@pytest.fixture
def shift(shift_factory, location, skill):
    return shift_factory(location, skill, is_published=True)


@pytest.fixture
def assignment(assignment_factory, shift, alice):
    return assignment_factory(shift, alice)


def _starts_at(shift):
    return datetime.combine(shift.date, shift.start_time, tzinfo=timezone.utc)


def _notifications(db_session, models, user, type):
    return db_session.query(models['Notification']).filter_by(user_id=user.id, type=type).all()


class TestSwapLifecycle:

    def test_full_swap(self, service, db_session, models, manager, alice, bob, assignment):
        request = service.create_swap_request(alice.id, assignment.id, bob.id)
        assert request.status == 'PENDING'
        assert request.shift_id == assignment.shift_id
        assert len(_notifications(db_session, models, bob, 'SWAP_REQUEST')) == 1
        assert [r.id for r in service.incoming_requests(bob.id)] == [request.id]

        accepted = service.accept(request.id, bob.id)
        assert accepted.status == 'ACCEPTED_BY_TARGET'
        assert len(_notifications(db_session, models, alice, 'SWAP_ACCEPTED')) == 1
        assert [r.id for r in service.manager_queue(manager)] == [request.id]

        approved = service.approve(request.id, manager, notes='Fine by me')
        assert approved.status == 'APPROVED'
        assert approved.reviewed_by == manager.id
        assert approved.review_notes == 'Fine by me'

        reassigned = db_session.get(models['ShiftAssignment'], assignment.id)
        assert reassigned.staff_id == bob.id
        assert reassigned.assigned_by == manager.id
        assert len(_notifications(db_session, models, bob, 'SWAP_APPROVED')) == 1

        with pytest.raises(AlreadyProcessedException, match='another manager'):
            service.approve(request.id, manager)

    def test_approve_waits_for_target(self, service, manager, alice, bob, assignment):
        request = service.create_swap_request(alice.id, assignment.id, bob.id)

        with pytest.raises(SchedulingConflictException, match='not yet accepted'):
            service.approve(request.id, manager)

        assert service.get_request(request.id).status == 'PENDING'

    def test_only_target_can_answer(self, service, alice, bob, assignment):
        request = service.create_swap_request(alice.id, assignment.id, bob.id)

        with pytest.raises(AuthorizationException):
            service.accept(request.id, alice.id)

    def test_decline(self, service, db_session, models, alice, bob, assignment):
        request = service.create_swap_request(alice.id, assignment.id, bob.id)

        declined = service.decline(request.id, bob.id)

        assert declined.status == 'DENIED'
        assert declined.review_notes == DECLINE_NOTE
        assert len(_notifications(db_session, models, alice, 'SWAP_DECLINED')) == 1
        with pytest.raises(AlreadyProcessedException):
            service.accept(request.id, bob.id)

    def test_approval_rechecks_target_overlap(self, service, db_session, models, manager, alice, bob,
                                              assignment, shift_factory, assignment_factory,
                                              location, skill):
        request = service.create_swap_request(alice.id, assignment.id, bob.id)
        service.accept(request.id, bob.id)
        # Bob picks up a clashing shift after accepting
        clash = shift_factory(location, skill, start_time=time(13, 0), end_time=time(21, 0))
        assignment_factory(clash, bob)

        with pytest.raises(DoubleBookingException):
            service.approve(request.id, manager)

        assert service.get_request(request.id).status == 'ACCEPTED_BY_TARGET'
        assert db_session.get(models['ShiftAssignment'], assignment.id).staff_id == alice.id

    def test_cancel_only_while_open(self, service, db_session, models, manager, alice, bob, assignment):
        request = service.create_swap_request(alice.id, assignment.id, bob.id)

        with pytest.raises(AuthorizationException):
            service.cancel(request.id, bob.id)

        cancelled = service.cancel(request.id, alice.id)
        assert cancelled.status == 'CANCELLED'
        assert len(_notifications(db_session, models, bob, 'SWAP_CANCELLED')) == 1

        with pytest.raises(AlreadyProcessedException):
            service.cancel(request.id, alice.id)

    @pytest.mark.parametrize('decision, final_status', [('deny', 'DENIED'), ('approve', 'APPROVED')])
    def test_cancel_after_decision(self, service, db_session, manager, alice, bob, assignment,
                                   decision, final_status):
        request = service.create_swap_request(alice.id, assignment.id, bob.id)
        if decision == 'approve':
            service.accept(request.id, bob.id)
            service.approve(request.id, manager, notes='Covered')
        else:
            service.deny(request.id, manager, notes='Short staffed')
        decided = service.get_request(request.id)
        before = (decided.status, decided.reviewed_by, decided.reviewed_at, decided.review_notes)
        assert before[0] == final_status
        assert before[1] == manager.id

        with pytest.raises(AlreadyProcessedException):
            service.cancel(request.id, alice.id)

        db_session.expire_all()
        after = service.get_request(request.id)
        assert (after.status, after.reviewed_by, after.reviewed_at, after.review_notes) == before

    def test_cannot_swap_with_self(self, service, alice, assignment):
        with pytest.raises(ValidationException):
            service.create_swap_request(alice.id, assignment.id, alice.id)


class TestDropRequests:

    def test_approved_drop_removes_assignment(self, service, db_session, models, manager, alice, assignment):
        request = service.create_drop_request(alice.id, assignment.id)
        assert len(_notifications(db_session, models, manager, 'DROP_REQUEST')) == 1

        approved = service.approve(request.id, manager)

        assert approved.status == 'APPROVED'
        assert approved.shift_assignment_id is None
        assert approved.shift_id == assignment.shift_id
        assert db_session.query(models['ShiftAssignment']).count() == 0
        assert len(_notifications(db_session, models, alice, 'DROP_APPROVED')) == 1

    def test_deny_keeps_assignment(self, service, db_session, models, manager, alice, assignment):
        request = service.create_drop_request(alice.id, assignment.id)

        denied = service.deny(request.id, manager, notes='Need you that day')

        assert denied.status == 'DENIED'
        assert db_session.get(models['ShiftAssignment'], assignment.id) is not None
        notes = _notifications(db_session, models, alice, 'DROP_DENIED')
        assert 'Reason: Need you that day' in notes[0].message

    def test_drop_cutoff(self, service, alice, shift, assignment):
        with pytest.raises(OutsideEditWindowException):
            service.create_drop_request(alice.id, assignment.id, now=_starts_at(shift) - timedelta(hours=24))

        request = service.create_drop_request(alice.id, assignment.id, now=_starts_at(shift) - timedelta(hours=25))
        assert request.status == 'PENDING'

    def test_stale_drops_expire(self, service, manager, alice, shift, assignment):
        request = service.create_drop_request(alice.id, assignment.id)
        early = _starts_at(shift) - timedelta(days=3)
        late = _starts_at(shift) - timedelta(hours=23)

        assert [r.id for r in service.manager_queue(manager, now=early)] == [request.id]
        assert service.manager_queue(manager, now=late) == []

        expired = service.get_request(request.id)
        assert expired.status == 'CANCELLED'
        assert expired.review_notes == EXPIRY_NOTE
        assert service.expire_stale_drop_requests(now=late) == 0

    def test_only_own_assignments(self, service, bob, assignment):
        with pytest.raises(AuthorizationException):
            service.create_drop_request(bob.id, assignment.id)


class TestRequestLimits:

    def test_one_pending_request_per_assignment(self, service, alice, bob, assignment):
        service.create_drop_request(alice.id, assignment.id)

        with pytest.raises(SchedulingConflictException):
            service.create_swap_request(alice.id, assignment.id, bob.id)

    def test_open_request_cap(self, service, alice, shift_factory, assignment_factory, location, skill):
        assignments = []
        for offset in range(4):
            day = shift_factory(location, skill, shift_date=BASE_DATE + timedelta(days=offset))
            assignments.append(assignment_factory(day, alice))
        for a in assignments[:3]:
            service.create_drop_request(alice.id, a.id)

        with pytest.raises(ValidationException, match='3 pending'):
            service.create_drop_request(alice.id, assignments[3].id)

    def test_accepted_swaps_count_toward_cap(self, service, alice, bob, shift_factory, assignment_factory,
                                             location, skill):
        assignments = []
        for offset in range(4):
            day = shift_factory(location, skill, shift_date=BASE_DATE + timedelta(days=offset))
            assignments.append(assignment_factory(day, alice))
        first = service.create_swap_request(alice.id, assignments[0].id, bob.id)
        service.accept(first.id, bob.id)
        service.create_drop_request(alice.id, assignments[1].id)
        service.create_drop_request(alice.id, assignments[2].id)

        with pytest.raises(ValidationException):
            service.create_drop_request(alice.id, assignments[3].id)


class TestManagerScope:

    def test_other_location_manager_is_refused(self, service, manager_factory, location_factory,
                                               alice, assignment):
        elsewhere = manager_factory(location_factory(name='Uptown'), name='Otto Other')
        request = service.create_drop_request(alice.id, assignment.id)

        with pytest.raises(AuthorizationException):
            service.approve(request.id, elsewhere)
        with pytest.raises(AuthorizationException):
            service.deny(request.id, elsewhere)
        assert service.manager_queue(elsewhere) == []

    def test_admin_sees_every_location(self, service, admin, alice, assignment):
        request = service.create_drop_request(alice.id, assignment.id)

        assert [r.id for r in service.manager_queue(admin)] == [request.id]


class TestEligiblePartners:

    def test_partners_pass_every_rule(self, service, alice, bob, staff_factory, shift_factory,
                                      assignment_factory, location, skill):
        shift = shift_factory(location, skill, headcount=2, is_published=True)
        mine = assignment_factory(shift, alice)
        staff_factory(location, skill, name='Cy Unavailable', days=[])
        already_on = staff_factory(location, skill, name='Dee Already')
        assignment_factory(shift, already_on)

        partners = service.eligible_swap_partners(alice.id, mine.id)

        assert [u.name for u in partners] == ['Bob']
