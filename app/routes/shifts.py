"""
Shift API
Shift lifecycle, assignments and self-service pickup
"""
from flask import Blueprint, request, jsonify, current_app

from app.error_handlers import handle_errors
from app.error_handlers.exceptions import ValidationException
from app.extensions import limiter
from app.models import get_models
from app.routes.auth import get_current_user, require_role, require_authentication, require_location_access
from app.services import AuditService, ShiftService
from app.services.shift_service import EDITABLE_FIELDS
from app.utils.validators import (
    validate_date_param,
    validate_int_param,
    validate_required_fields,
    validate_time_param,
)

shifts_bp = Blueprint('shifts', __name__, url_prefix='/api/shifts')

MANAGER_ROLES = ('MANAGER', 'ADMIN')


def _service():
    db = current_app.extensions['sqlalchemy']
    return ShiftService(db.session, get_models())


def _json_body():
    data = request.get_json(silent=True)
    if not isinstance(data, dict):
        raise ValidationException('Request body must be a JSON object')
    return data


def _managed_shift(service, shift_id):
    """Load a shift and check the actor manages its location"""
    shift = service.get_shift(shift_id)
    require_location_access(shift.location_id)
    return shift


@shifts_bp.route('', methods=['GET'])
@handle_errors
@require_authentication()
def list_shifts():
    """
    List shifts for a location

    Query params:
        location_id: required
        start_date, end_date: optional YYYY-MM-DD bounds (inclusive)

    Staff only see published shifts.
    """
    location_id = validate_int_param(request.args.get('location_id'), 'location_id', minimum=1)
    start_date = request.args.get('start_date')
    end_date = request.args.get('end_date')
    start_date = validate_date_param(start_date, 'start_date') if start_date else None
    end_date = validate_date_param(end_date, 'end_date') if end_date else None
    if start_date and end_date and start_date > end_date:
        raise ValidationException('start_date must be on or before end_date')

    user = get_current_user()
    staff_view = user.role not in MANAGER_ROLES
    if not staff_view:
        require_location_access(location_id)

    shifts = _service().list_shifts(location_id, start_date, end_date, published_only=staff_view)
    return jsonify({
        'success': True,
        'shifts': [s.to_dict(include_assignments=True) for s in shifts],
        'count': len(shifts),
    })


@shifts_bp.route('', methods=['POST'])
@handle_errors
@require_role(*MANAGER_ROLES)
def create_shift():
    """
    Create a draft shift

    Body:
        location_id, date, start_time, end_time, skill_id, headcount (default 1)
    """
    data = _json_body()
    validate_required_fields(data, ['location_id', 'date', 'start_time', 'end_time', 'skill_id'])

    location_id = validate_int_param(data['location_id'], 'location_id', minimum=1)
    require_location_access(location_id)

    shift = _service().create_shift(
        actor_id=get_current_user().id,
        location_id=location_id,
        shift_date=validate_date_param(data['date']),
        start_time=validate_time_param(data['start_time'], 'start_time'),
        end_time=validate_time_param(data['end_time'], 'end_time'),
        skill_id=validate_int_param(data['skill_id'], 'skill_id', minimum=1),
        headcount=validate_int_param(data.get('headcount', 1), 'headcount'),
    )
    return jsonify({'success': True, 'shift': shift.to_dict(include_assignments=True)}), 201


@shifts_bp.route('/<int:shift_id>', methods=['GET'])
@handle_errors
@require_authentication()
def get_shift(shift_id):
    shift = _service().get_shift(shift_id)
    if get_current_user().role in MANAGER_ROLES:
        require_location_access(shift.location_id)
    return jsonify({'success': True, 'shift': shift.to_dict(include_assignments=True)})


@shifts_bp.route('/<int:shift_id>', methods=['PATCH', 'PUT'])
@handle_errors
@require_role(*MANAGER_ROLES)
def update_shift(shift_id):
    """
    Edit a shift

    Body:
        version: the version the client last read (required)
        date, start_time, end_time, skill_id, headcount: fields to change
    """
    data = _json_body()
    validate_required_fields(data, ['version'])
    expected_version = validate_int_param(data['version'], 'version', minimum=1)

    changes = {}
    if 'date' in data:
        changes['date'] = validate_date_param(data['date'])
    for field in ('start_time', 'end_time'):
        if field in data:
            changes[field] = validate_time_param(data[field], field)
    if 'skill_id' in data:
        changes['skill_id'] = validate_int_param(data['skill_id'], 'skill_id', minimum=1)
    if 'headcount' in data:
        changes['headcount'] = validate_int_param(data['headcount'], 'headcount')
    if not changes:
        raise ValidationException(f"Nothing to update. Editable fields: {', '.join(EDITABLE_FIELDS)}")

    service = _service()
    _managed_shift(service, shift_id)
    shift = service.update_shift(get_current_user().id, shift_id, expected_version, changes)
    return jsonify({'success': True, 'shift': shift.to_dict(include_assignments=True)})


@shifts_bp.route('/<int:shift_id>', methods=['DELETE'])
@handle_errors
@require_role(*MANAGER_ROLES)
def delete_shift(shift_id):
    service = _service()
    _managed_shift(service, shift_id)
    service.delete_shift(get_current_user().id, shift_id)
    return jsonify({'success': True, 'message': 'Shift deleted'})


@shifts_bp.route('/<int:shift_id>/publish', methods=['POST'])
@handle_errors
@require_role(*MANAGER_ROLES)
def publish_shift(shift_id):
    service = _service()
    _managed_shift(service, shift_id)
    shift = service.publish_shift(get_current_user().id, shift_id)
    return jsonify({'success': True, 'shift': shift.to_dict(include_assignments=True)})


@shifts_bp.route('/<int:shift_id>/unpublish', methods=['POST'])
@handle_errors
@require_role(*MANAGER_ROLES)
def unpublish_shift(shift_id):
    service = _service()
    _managed_shift(service, shift_id)
    shift = service.unpublish_shift(get_current_user().id, shift_id)
    return jsonify({'success': True, 'shift': shift.to_dict(include_assignments=True)})


@shifts_bp.route('/<int:shift_id>/assignments', methods=['POST'])
@limiter.limit('60 per minute')
@handle_errors
@require_role(*MANAGER_ROLES)
def assign_staff(shift_id):
    """
    Assign a worker to a shift

    Body:
        staff_id: worker to assign (required)
        override_reason: documented reason to bypass a lone
            7th-consecutive-day violation

    A rejected assignment returns 422 with every violation and, where
    available, up to three suggested alternatives.
    """
    data = _json_body()
    validate_required_fields(data, ['staff_id'])
    staff_id = validate_int_param(data['staff_id'], 'staff_id', minimum=1)

    service = _service()
    _managed_shift(service, shift_id)
    assignment, result = service.assign_staff(
        get_current_user().id, shift_id, staff_id, override_reason=data.get('override_reason')
    )
    return jsonify({
        'success': True,
        'assignment': assignment.to_dict(),
        'warnings': [v.to_dict() for v in result.warnings],
        'override_used': not result.is_valid,
    }), 201


@shifts_bp.route('/<int:shift_id>/assignments/<int:staff_id>', methods=['DELETE'])
@handle_errors
@require_role(*MANAGER_ROLES)
def unassign_staff(shift_id, staff_id):
    service = _service()
    _managed_shift(service, shift_id)
    service.unassign_staff(get_current_user().id, shift_id, staff_id)
    return jsonify({'success': True, 'message': 'Assignment removed'})


@shifts_bp.route('/<int:shift_id>/validate', methods=['GET'])
@handle_errors
@require_role(*MANAGER_ROLES)
def validate_assignment(shift_id):
    """Dry-run the constraint checks for ?staff_id= without assigning"""
    staff_id = validate_int_param(request.args.get('staff_id'), 'staff_id', minimum=1)
    service = _service()
    _managed_shift(service, shift_id)
    result = service.validate_assignment(shift_id, staff_id)
    return jsonify({'success': True, **result.to_dict()})


@shifts_bp.route('/<int:shift_id>/qualified-staff', methods=['GET'])
@handle_errors
@require_role(*MANAGER_ROLES)
def qualified_staff(shift_id):
    service = _service()
    _managed_shift(service, shift_id)
    ranked = service.qualified_staff(shift_id)
    return jsonify({
        'success': True,
        'staff': [
            {**user.to_dict(), 'validation': result.to_dict()}
            for user, result in ranked
        ],
    })


@shifts_bp.route('/<int:shift_id>/history', methods=['GET'])
@handle_errors
@require_role(*MANAGER_ROLES)
def shift_history(shift_id):
    """Audit trail for the shift and its assignments"""
    db = current_app.extensions['sqlalchemy']
    service = _service()
    _managed_shift(service, shift_id)
    audit = AuditService(db.session, get_models())
    entries = audit.history('shift', shift_id) + audit.history('shift_assignment', shift_id)
    entries.sort(key=lambda e: (e.created_at, e.id))
    return jsonify({'success': True, 'history': [e.to_dict() for e in entries]})


@shifts_bp.route('/available', methods=['GET'])
@handle_errors
@require_authentication()
def available_shifts():
    """Published shifts the acting worker could pick up"""
    shifts = _service().available_shifts_for(get_current_user().id)
    return jsonify({
        'success': True,
        'shifts': [s.to_dict() for s in shifts],
        'count': len(shifts),
    })


@shifts_bp.route('/<int:shift_id>/pickup', methods=['POST'])
@limiter.limit('30 per minute')
@handle_errors
@require_authentication()
def pick_up_shift(shift_id):
    assignment, result = _service().pick_up_shift(get_current_user().id, shift_id)
    return jsonify({
        'success': True,
        'assignment': assignment.to_dict(),
        'warnings': [v.to_dict() for v in result.warnings],
    }), 201
