"""
Tests for the assignment constraint checks.
"""
import pytest
from datetime import time, timedelta

from app.services.constraint_validator import ConstraintValidator
from app.services.validation_types import ViolationCode, ViolationSeverity

from conftest import BASE_DATE

MONDAY = BASE_DATE
TUESDAY = BASE_DATE + timedelta(days=1)


@pytest.fixture
def validator(db_session, models):
    return ConstraintValidator(db_session, models)


@pytest.fixture
def worker(staff_factory, location, skill):
    return staff_factory(location, skill, name='Wes Worker')


def test_qualified_available_worker_is_valid(validator, worker, shift_factory, location, skill):
    shift = shift_factory(location, skill)

    result = validator.validate(worker.id, shift)

    assert result.is_valid is True
    assert result.violations == []
    assert result.suggestions == []


def test_unqualified_worker_collects_every_error(validator, user_factory, shift_factory, location, skill):
    outsider = user_factory(name='Olly Outsider')
    shift = shift_factory(location, skill)

    result = validator.validate(outsider.id, shift)

    assert result.is_valid is False
    assert result.has_code(ViolationCode.SKILL_MISMATCH)
    assert result.has_code(ViolationCode.LOCATION_NOT_CERTIFIED)
    assert result.has_code(ViolationCode.NOT_AVAILABLE)
    assert 'Staff has no availability set for Monday' in [v.message for v in result.violations]
    assert result.overridable is False


class TestAvailability:

    def test_window_must_contain_whole_shift(self, validator, staff_factory, availability_factory,
                                             shift_factory, location, skill):
        staff = staff_factory(location, skill, days=[])
        availability_factory(staff, 0, time(9, 0), time(13, 0))
        availability_factory(staff, 0, time(13, 0), time(17, 0))
        shift = shift_factory(location, skill, start_time=time(9, 0), end_time=time(17, 0))

        result = validator.validate(staff.id, shift)

        assert result.has_code(ViolationCode.NOT_AVAILABLE)
        assert result.errors[0].message == 'Shift time (09:00-17:00) falls outside staff availability on Monday'

    def test_single_window_containing_shift_passes(self, validator, staff_factory, availability_factory,
                                                   shift_factory, location, skill):
        staff = staff_factory(location, skill, days=[])
        availability_factory(staff, 0, time(8, 0), time(18, 0))
        shift = shift_factory(location, skill)

        assert validator.validate(staff.id, shift).is_valid is True

    def test_blocking_exception_reason_is_reported(self, validator, worker, exception_factory,
                                                   shift_factory, location, skill):
        exception_factory(worker, MONDAY, is_available=False, reason='Doctor appointment')
        shift = shift_factory(location, skill)

        result = validator.validate(worker.id, shift)

        assert [v.message for v in result.errors] == ['Doctor appointment']

    def test_blocking_exception_without_reason(self, validator, worker, exception_factory,
                                               shift_factory, location, skill):
        exception_factory(worker, MONDAY, is_available=False)
        shift = shift_factory(location, skill)

        result = validator.validate(worker.id, shift)

        assert result.errors[0].message == 'Staff marked as unavailable on this date'

    def test_open_exception_replaces_weekly_rules(self, validator, staff_factory, exception_factory,
                                                  shift_factory, location, skill):
        staff = staff_factory(location, skill, days=[])
        exception_factory(staff, MONDAY, is_available=True, start_time=time(8, 0), end_time=time(18, 0))
        shift = shift_factory(location, skill)

        assert validator.validate(staff.id, shift).is_valid is True

    def test_open_exception_narrower_than_rules_blocks(self, validator, worker, exception_factory,
                                                       shift_factory, location, skill):
        exception_factory(worker, MONDAY, is_available=True, start_time=time(12, 0), end_time=time(20, 0))
        shift = shift_factory(location, skill)

        assert validator.validate(worker.id, shift).has_code(ViolationCode.NOT_AVAILABLE)

    def test_overnight_shift_needs_both_days_covered(self, validator, staff_factory, availability_factory,
                                                     shift_factory, location, skill):
        staff = staff_factory(location, skill, days=[])
        availability_factory(staff, 0, time(20, 0), time(0, 0))
        shift = shift_factory(location, skill, start_time=time(22, 0), end_time=time(6, 0))

        result = validator.validate(staff.id, shift)
        assert result.errors[0].message == (
            'Overnight shift ends at 06:00 but staff availability on Tuesday does not cover that time'
        )

        availability_factory(staff, 1, time(0, 0), time(6, 0))
        assert validator.validate(staff.id, shift).is_valid is True

    def test_overnight_start_not_covered(self, validator, staff_factory, availability_factory,
                                         shift_factory, location, skill):
        staff = staff_factory(location, skill, days=[])
        availability_factory(staff, 0, time(9, 0), time(17, 0))
        availability_factory(staff, 1, time(0, 0), time(6, 0))
        shift = shift_factory(location, skill, start_time=time(22, 0), end_time=time(6, 0))

        result = validator.validate(staff.id, shift)

        assert result.errors[0].message == (
            'Overnight shift starts at 22:00 but staff availability on Monday does not cover that time'
        )


class TestOverlapAndRest:

    def test_overlapping_shift_is_an_error(self, validator, worker, shift_factory, assignment_factory,
                                           location, skill):
        existing = shift_factory(location, skill, start_time=time(9, 0), end_time=time(17, 0))
        assignment_factory(existing, worker)
        candidate = shift_factory(location, skill, start_time=time(13, 0), end_time=time(21, 0))

        result = validator.validate(worker.id, candidate)

        assert result.has_code(ViolationCode.SHIFT_OVERLAP)
        assert validator.find_overlapping_shifts(worker.id, candidate) == [existing]

    def test_overlap_across_midnight(self, validator, worker, shift_factory, assignment_factory,
                                     location, skill):
        night = shift_factory(location, skill, start_time=time(22, 0), end_time=time(6, 0))
        assignment_factory(night, worker)
        morning = shift_factory(location, skill, shift_date=TUESDAY, start_time=time(5, 0), end_time=time(9, 0))

        assert validator.validate(worker.id, morning).has_code(ViolationCode.SHIFT_OVERLAP)

    def test_back_to_back_shifts_do_not_overlap(self, validator, worker, shift_factory, assignment_factory,
                                                location, skill):
        early = shift_factory(location, skill, start_time=time(6, 0), end_time=time(10, 0))
        assignment_factory(early, worker)
        late = shift_factory(location, skill, start_time=time(10, 0), end_time=time(14, 0))

        result = validator.validate(worker.id, late)

        assert not result.has_code(ViolationCode.SHIFT_OVERLAP)
        assert validator.find_overlapping_shifts(worker.id, late) == []

    def test_ten_hours_of_rest_is_enough(self, validator, worker, shift_factory, assignment_factory,
                                         location, skill):
        evening = shift_factory(location, skill, start_time=time(14, 0), end_time=time(22, 0))
        assignment_factory(evening, worker)
        next_morning = shift_factory(location, skill, shift_date=TUESDAY,
                                     start_time=time(8, 0), end_time=time(16, 0))

        assert validator.validate(worker.id, next_morning).is_valid is True

    def test_one_minute_short_of_rest_is_an_error(self, validator, worker, shift_factory,
                                                  assignment_factory, location, skill):
        evening = shift_factory(location, skill, start_time=time(14, 0), end_time=time(22, 0))
        assignment_factory(evening, worker)
        next_morning = shift_factory(location, skill, shift_date=TUESDAY,
                                     start_time=time(7, 59), end_time=time(15, 59))

        result = validator.validate(worker.id, next_morning)

        rest = [v for v in result.violations if v.code == ViolationCode.REST_PERIOD_VIOLATION]
        assert len(rest) == 1
        assert 'rest after previous shift' in rest[0].message

    def test_rest_before_next_shift(self, validator, worker, shift_factory, assignment_factory,
                                    location, skill):
        next_morning = shift_factory(location, skill, shift_date=TUESDAY,
                                     start_time=time(6, 0), end_time=time(12, 0))
        assignment_factory(next_morning, worker)
        evening = shift_factory(location, skill, start_time=time(16, 0), end_time=time(23, 0))

        result = validator.validate(worker.id, evening)

        assert result.has_code(ViolationCode.REST_PERIOD_VIOLATION)
        assert 'rest before next shift' in result.errors[0].message


class TestHours:

    def test_long_day_warns(self, validator, worker, shift_factory, location, skill):
        shift = shift_factory(location, skill, start_time=time(8, 0), end_time=time(18, 0))

        result = validator.validate(worker.id, shift)

        assert result.is_valid is True
        assert [v.code for v in result.warnings] == [ViolationCode.DAILY_HOURS_WARNING]
        assert result.warnings[0].severity == ViolationSeverity.WARNING

    def test_over_twelve_hours_in_a_day_is_an_error(self, validator, worker, shift_factory,
                                                    assignment_factory, location, skill):
        morning = shift_factory(location, skill, start_time=time(6, 0), end_time=time(10, 0))
        assignment_factory(morning, worker)
        rest_of_day = shift_factory(location, skill, start_time=time(10, 0), end_time=time(19, 0))

        result = validator.validate(worker.id, rest_of_day)

        assert result.has_code(ViolationCode.DAILY_HOURS_HARD_LIMIT)
        assert not result.has_code(ViolationCode.DAILY_HOURS_WARNING)
        assert result.errors[0].message.startswith('This assignment would result in 13.0 hours on ')

    def test_approaching_weekly_overtime(self, validator, worker, shift_factory, assignment_factory,
                                         location, skill):
        for offset in range(4):
            day = shift_factory(location, skill, shift_date=MONDAY + timedelta(days=offset))
            assignment_factory(day, worker)
        friday = shift_factory(location, skill, shift_date=MONDAY + timedelta(days=4),
                               start_time=time(9, 0), end_time=time(13, 0))

        result = validator.validate(worker.id, friday)

        assert result.is_valid is True
        assert result.has_code(ViolationCode.WEEKLY_HOURS_APPROACHING_OVERTIME)

    def test_weekly_overtime_is_only_a_warning(self, validator, worker, shift_factory,
                                               assignment_factory, location, skill):
        for offset in range(5):
            day = shift_factory(location, skill, shift_date=MONDAY + timedelta(days=offset))
            assignment_factory(day, worker)
        saturday = shift_factory(location, skill, shift_date=MONDAY + timedelta(days=5))

        result = validator.validate(worker.id, saturday)

        assert result.is_valid is True
        assert result.has_code(ViolationCode.WEEKLY_OVERTIME)
        assert result.has_code(ViolationCode.SIXTH_CONSECUTIVE_DAY)

    def test_previous_week_does_not_count(self, validator, worker, shift_factory, assignment_factory,
                                          location, skill):
        for offset in range(1, 4):
            day = shift_factory(location, skill, shift_date=MONDAY - timedelta(days=offset),
                                start_time=time(8, 0), end_time=time(20, 0))
            assignment_factory(day, worker)
        monday = shift_factory(location, skill)

        result = validator.validate(worker.id, monday)

        assert not result.has_code(ViolationCode.WEEKLY_OVERTIME)
        assert not result.has_code(ViolationCode.WEEKLY_HOURS_APPROACHING_OVERTIME)


class TestConsecutiveDays:

    def _work_days(self, worker, shift_factory, assignment_factory, location, skill, offsets):
        for offset in offsets:
            day = shift_factory(location, skill, shift_date=MONDAY + timedelta(days=offset),
                                start_time=time(9, 0), end_time=time(13, 0))
            assignment_factory(day, worker)

    def test_sixth_day_warns(self, validator, worker, shift_factory, assignment_factory, location, skill):
        self._work_days(worker, shift_factory, assignment_factory, location, skill, range(5))
        sixth = shift_factory(location, skill, shift_date=MONDAY + timedelta(days=5),
                              start_time=time(9, 0), end_time=time(13, 0))

        result = validator.validate(worker.id, sixth)

        assert result.is_valid is True
        assert result.has_code(ViolationCode.SIXTH_CONSECUTIVE_DAY)

    def test_seventh_day_is_a_lone_overridable_error(self, validator, worker, shift_factory,
                                                     assignment_factory, location, skill):
        self._work_days(worker, shift_factory, assignment_factory, location, skill, range(6))
        seventh = shift_factory(location, skill, shift_date=MONDAY + timedelta(days=6),
                                start_time=time(9, 0), end_time=time(13, 0))

        result = validator.validate(worker.id, seventh)

        assert result.is_valid is False
        assert [v.code for v in result.errors] == [ViolationCode.SEVENTH_CONSECUTIVE_DAY]
        assert result.overridable is True
        assert result.override_code == ViolationCode.SEVENTH_CONSECUTIVE_DAY
        assert result.to_dict()['overridable'] is True

    def test_run_counts_days_on_both_sides(self, validator, worker, shift_factory, assignment_factory,
                                           location, skill):
        self._work_days(worker, shift_factory, assignment_factory, location, skill, [0, 1, 2, 4, 5, 6])
        middle = shift_factory(location, skill, shift_date=MONDAY + timedelta(days=3),
                               start_time=time(9, 0), end_time=time(13, 0))

        assert validator.validate(worker.id, middle).has_code(ViolationCode.SEVENTH_CONSECUTIVE_DAY)

    def test_second_error_removes_override(self, validator, worker, shift_factory, assignment_factory,
                                           exception_factory, location, skill):
        self._work_days(worker, shift_factory, assignment_factory, location, skill, range(6))
        seventh_date = MONDAY + timedelta(days=6)
        exception_factory(worker, seventh_date, is_available=False, reason='Family event')
        seventh = shift_factory(location, skill, shift_date=seventh_date,
                                start_time=time(9, 0), end_time=time(13, 0))

        result = validator.validate(worker.id, seventh)

        assert result.has_code(ViolationCode.SEVENTH_CONSECUTIVE_DAY)
        assert result.has_code(ViolationCode.NOT_AVAILABLE)
        assert result.overridable is False
        assert result.override_code is None


class TestSuggestionsAndRanking:

    def test_errors_come_with_alternative_names(self, validator, staff_factory, user_factory,
                                                shift_factory, location, skill):
        staff_factory(location, skill, name='Ann')
        staff_factory(location, skill, name='Ben')
        staff_factory(location, skill, name='Cat')
        staff_factory(location, skill, name='Dan')
        outsider = user_factory(name='Zed')
        shift = shift_factory(location, skill)

        result = validator.validate(outsider.id, shift)

        assert result.suggestions == ['Available alternatives: Ann, Ben, Cat']
        assert result.to_dict()['suggestions'] == result.suggestions

    def test_valid_result_has_no_suggestions(self, validator, worker, staff_factory, shift_factory,
                                             location, skill):
        staff_factory(location, skill, name='Ann')
        shift = shift_factory(location, skill)

        assert validator.validate(worker.id, shift).suggestions == []

    def test_qualified_staff_ranked_valid_first(self, validator, staff_factory, exception_factory,
                                                user_factory, shift_factory, location, skill):
        busy = staff_factory(location, skill, name='Amy')
        free = staff_factory(location, skill, name='Bob')
        user_factory(name='Unskilled')
        exception_factory(busy, MONDAY, is_available=False, reason='Vacation')
        shift = shift_factory(location, skill)

        ranked = validator.get_qualified_staff(shift)

        assert [user.name for user, _ in ranked] == ['Bob', 'Amy']
        assert ranked[0][1].is_valid is True
        assert ranked[1][1].is_valid is False
