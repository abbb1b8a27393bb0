"""
Database models for the shift scheduling service
Centralizes all SQLAlchemy model imports using factory pattern
"""
from .user import create_user_model
from .location import create_location_models
from .skill import create_skill_models
from .availability import create_availability_models
from .shift import create_shift_models
from .swap_request import create_swap_request_model
from .notification import create_notification_model
from .audit import create_audit_model


_initialized = {}


def init_models(db):
    """
    Initialize all models with the database instance

    Model classes are defined once per database instance; later calls
    (a second create_app in the same process) get the same classes back.

    Args:
        db: SQLAlchemy database instance

    Returns:
        dict: Dictionary containing all model classes
    """
    if id(db) in _initialized:
        return dict(_initialized[id(db)])

    User = create_user_model(db)
    Location, ManagerLocation = create_location_models(db)
    Skill, StaffSkill, StaffLocationCert = create_skill_models(db)
    AvailabilityRule, AvailabilityException = create_availability_models(db)
    Shift, ShiftAssignment = create_shift_models(db)
    SwapRequest = create_swap_request_model(db)
    Notification = create_notification_model(db)
    AuditLog = create_audit_model(db)

    models = {
        'User': User,
        'Location': Location,
        'ManagerLocation': ManagerLocation,
        'Skill': Skill,
        'StaffSkill': StaffSkill,
        'StaffLocationCert': StaffLocationCert,
        'AvailabilityRule': AvailabilityRule,
        'AvailabilityException': AvailabilityException,
        'Shift': Shift,
        'ShiftAssignment': ShiftAssignment,
        'SwapRequest': SwapRequest,
        'Notification': Notification,
        'AuditLog': AuditLog,
    }
    _initialized[id(db)] = models
    return dict(models)


__all__ = [
    'init_models',
    'create_user_model',
    'create_location_models',
    'create_skill_models',
    'create_availability_models',
    'create_shift_models',
    'create_swap_request_model',
    'create_notification_model',
    'create_audit_model',
    # Model registry exports
    'model_registry',
    'get_models',
]

# Import registry for convenience
from .registry import model_registry, get_models
