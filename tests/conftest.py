"""
Pytest configuration and fixtures for the shift scheduling tests.

This module provides shared fixtures for:
- Flask application with test configuration
- Database setup and teardown
- Model factories for creating test data
- Common test utilities
"""
import pytest
from datetime import date, time, timedelta

from app import create_app
from app.extensions import db as _db

ALL_DAYS = range(7)

# A Monday far enough ahead that publish/drop cutoffs never interfere
BASE_DATE = date.today() + timedelta(days=56 - date.today().weekday())


@pytest.fixture(scope='session')
def app():
    """
    Create application for the tests.

    Uses TestingConfig with in-memory SQLite database.
    Scope is 'session' to reuse the same app across all tests.
    """
    app = create_app('testing')
    app.config.update({
        'TESTING': True,
        'SQLALCHEMY_DATABASE_URI': 'sqlite:///:memory:',
        'RATELIMIT_ENABLED': False,
    })
    return app


@pytest.fixture(scope='function')
def db(app):
    """
    Create database for the tests.

    Creates all tables before each test function and drops them after.
    """
    with app.app_context():
        _db.create_all()
        yield _db
        _db.session.remove()
        _db.drop_all()


@pytest.fixture(scope='function')
def db_session(db):
    """The scoped session services are constructed with."""
    return db.session


@pytest.fixture(scope='function')
def client(app, db):
    """Test client sharing the test's app context and session."""
    with app.test_client() as client:
        yield client


@pytest.fixture(scope='function')
def models(app, db):
    """All registered model classes."""
    from app.models import get_models
    return get_models()


# =============================================================================
# Model Factories
# =============================================================================

@pytest.fixture
def user_factory(models, db):
    """
    Factory for creating User instances.

    Usage:
        staff = user_factory(name="Alice")
        manager = user_factory(role="MANAGER")
    """
    counter = [0]

    def _create_user(**kwargs):
        counter[0] += 1
        defaults = {
            'name': f'User {counter[0]:03d}',
            'email': f'user{counter[0]}@example.com',
            'role': 'STAFF',
        }
        defaults.update(kwargs)
        user = models['User'](**defaults)
        db.session.add(user)
        db.session.commit()
        return user

    return _create_user


@pytest.fixture
def location_factory(models, db):
    counter = [0]

    def _create_location(**kwargs):
        counter[0] += 1
        defaults = {'name': f'Location {counter[0]}', 'timezone': 'UTC'}
        defaults.update(kwargs)
        location = models['Location'](**defaults)
        db.session.add(location)
        db.session.commit()
        return location

    return _create_location


@pytest.fixture
def skill_factory(models, db):
    counter = [0]

    def _create_skill(**kwargs):
        counter[0] += 1
        defaults = {'name': f'Skill {counter[0]}'}
        defaults.update(kwargs)
        skill = models['Skill'](**defaults)
        db.session.add(skill)
        db.session.commit()
        return skill

    return _create_skill


@pytest.fixture
def availability_factory(models, db):
    """
    Factory for recurring weekly availability.

    Usage:
        availability_factory(staff, day_of_week=0, start_time=time(9), end_time=time(17))
    """
    def _create_availability(staff, day_of_week=0, start_time=time(0, 0), end_time=time(0, 0)):
        rule = models['AvailabilityRule'](
            staff_id=staff.id,
            day_of_week=day_of_week,
            start_time=start_time,
            end_time=end_time,
        )
        db.session.add(rule)
        db.session.commit()
        return rule

    return _create_availability


@pytest.fixture
def exception_factory(models, db):
    """Factory for single-date availability exceptions."""
    def _create_exception(staff, on_date, is_available=False, start_time=None, end_time=None, reason=None):
        exception = models['AvailabilityException'](
            staff_id=staff.id,
            date=on_date,
            is_available=is_available,
            start_time=start_time,
            end_time=end_time,
            reason=reason,
        )
        db.session.add(exception)
        db.session.commit()
        return exception

    return _create_exception


@pytest.fixture
def staff_factory(models, db, user_factory, availability_factory):
    """
    Factory for a STAFF user qualified for a location and skill.

    Availability defaults to every day, all day; pass days=[] to leave
    the worker with no rules.
    """
    def _create_staff(location, skill, days=ALL_DAYS, start_time=time(0, 0), end_time=time(0, 0), **kwargs):
        staff = user_factory(role='STAFF', **kwargs)
        db.session.add(models['StaffSkill'](staff_id=staff.id, skill_id=skill.id))
        db.session.add(models['StaffLocationCert'](staff_id=staff.id, location_id=location.id))
        db.session.commit()
        for day in days:
            availability_factory(staff, day_of_week=day, start_time=start_time, end_time=end_time)
        return staff

    return _create_staff


@pytest.fixture
def manager_factory(models, db, user_factory):
    """Factory for a MANAGER linked to the given locations."""
    def _create_manager(*locations, **kwargs):
        manager = user_factory(role='MANAGER', **kwargs)
        for location in locations:
            db.session.add(models['ManagerLocation'](manager_id=manager.id, location_id=location.id))
        db.session.commit()
        return manager

    return _create_manager


@pytest.fixture
def shift_factory(models, db):
    """
    Factory for Shift instances.

    Usage:
        shift = shift_factory(location, skill, start_time=time(22), end_time=time(6))
    """
    def _create_shift(location, skill, shift_date=BASE_DATE, start_time=time(9, 0), end_time=time(17, 0),
                      headcount=1, is_published=False, **kwargs):
        shift = models['Shift'](
            location_id=location.id,
            skill_id=skill.id,
            date=shift_date,
            start_time=start_time,
            end_time=end_time,
            headcount=headcount,
            is_published=is_published,
            version=1,
            **kwargs,
        )
        db.session.add(shift)
        db.session.commit()
        return shift

    return _create_shift


@pytest.fixture
def assignment_factory(models, db):
    """Put a worker on a shift directly, bypassing validation."""
    def _create_assignment(shift, staff, assigned_by=None):
        assignment = models['ShiftAssignment'](shift_id=shift.id, staff_id=staff.id, assigned_by=assigned_by)
        db.session.add(assignment)
        db.session.commit()
        return assignment

    return _create_assignment


# =============================================================================
# Helper Fixtures
# =============================================================================

@pytest.fixture
def location(location_factory):
    return location_factory(name='Downtown', timezone='UTC')


@pytest.fixture
def skill(skill_factory):
    return skill_factory(name='Bartender')


@pytest.fixture
def manager(manager_factory, location):
    return manager_factory(location, name='Morgan Manager', email='morgan@example.com')


@pytest.fixture
def admin(user_factory):
    return user_factory(role='ADMIN', name='Ada Admin', email='ada@example.com')
