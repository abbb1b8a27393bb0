"""
Swap Request API
Worker swap/drop requests and manager review
"""
from flask import Blueprint, request, jsonify, current_app

from app.error_handlers import handle_errors
from app.error_handlers.exceptions import ValidationException
from app.models import get_models
from app.routes.auth import get_current_user, require_role, require_authentication
from app.services import SwapService
from app.utils.validators import validate_int_param, validate_required_fields

swap_requests_bp = Blueprint('swap_requests', __name__, url_prefix='/api/swap-requests')


def _service():
    db = current_app.extensions['sqlalchemy']
    return SwapService(db.session, get_models())


def _notes():
    data = request.get_json(silent=True) or {}
    notes = data.get('notes') if isinstance(data, dict) else None
    if notes is not None and not isinstance(notes, str):
        raise ValidationException('notes must be a string')
    return notes.strip() if notes and notes.strip() else None


@swap_requests_bp.route('', methods=['POST'])
@handle_errors
@require_authentication()
def create_request():
    """
    Create a swap or drop request for one of the actor's assignments

    Body:
        assignment_id: required
        type: 'SWAP' or 'DROP'
        target_staff_id: required for SWAP
    """
    data = request.get_json(silent=True)
    validate_required_fields(data, ['assignment_id', 'type'])
    assignment_id = validate_int_param(data['assignment_id'], 'assignment_id', minimum=1)
    request_type = str(data['type']).upper()

    service = _service()
    actor_id = get_current_user().id
    if request_type == 'SWAP':
        validate_required_fields(data, ['target_staff_id'])
        target_id = validate_int_param(data['target_staff_id'], 'target_staff_id', minimum=1)
        swap_request = service.create_swap_request(actor_id, assignment_id, target_id)
    elif request_type == 'DROP':
        swap_request = service.create_drop_request(actor_id, assignment_id)
    else:
        raise ValidationException("type must be 'SWAP' or 'DROP'")

    return jsonify({'success': True, 'request': swap_request.to_dict()}), 201


@swap_requests_bp.route('/mine', methods=['GET'])
@handle_errors
@require_authentication()
def my_requests():
    requests = _service().my_requests(get_current_user().id)
    return jsonify({'success': True, 'requests': [r.to_dict() for r in requests]})


@swap_requests_bp.route('/incoming', methods=['GET'])
@handle_errors
@require_authentication()
def incoming_requests():
    """Swap requests waiting on the actor's answer"""
    requests = _service().incoming_requests(get_current_user().id)
    return jsonify({'success': True, 'requests': [r.to_dict() for r in requests]})


@swap_requests_bp.route('/queue', methods=['GET'])
@handle_errors
@require_role('MANAGER', 'ADMIN')
def manager_queue():
    """Requests ready for a manager decision at the actor's locations"""
    requests = _service().manager_queue(get_current_user())
    return jsonify({
        'success': True,
        'requests': [r.to_dict() for r in requests],
        'count': len(requests),
    })


@swap_requests_bp.route('/eligible-partners', methods=['GET'])
@handle_errors
@require_authentication()
def eligible_partners():
    assignment_id = validate_int_param(request.args.get('assignment_id'), 'assignment_id', minimum=1)
    partners = _service().eligible_swap_partners(get_current_user().id, assignment_id)
    return jsonify({'success': True, 'staff': [u.to_dict() for u in partners]})


@swap_requests_bp.route('/<int:request_id>', methods=['GET'])
@handle_errors
@require_authentication()
def get_request(request_id):
    swap_request = _service().get_request(request_id)
    return jsonify({'success': True, 'request': swap_request.to_dict()})


@swap_requests_bp.route('/<int:request_id>/accept', methods=['POST'])
@handle_errors
@require_authentication()
def accept_request(request_id):
    swap_request = _service().accept(request_id, get_current_user().id)
    return jsonify({'success': True, 'request': swap_request.to_dict()})


@swap_requests_bp.route('/<int:request_id>/decline', methods=['POST'])
@handle_errors
@require_authentication()
def decline_request(request_id):
    swap_request = _service().decline(request_id, get_current_user().id)
    return jsonify({'success': True, 'request': swap_request.to_dict()})


@swap_requests_bp.route('/<int:request_id>/approve', methods=['POST'])
@handle_errors
@require_role('MANAGER', 'ADMIN')
def approve_request(request_id):
    swap_request = _service().approve(request_id, get_current_user(), _notes())
    return jsonify({'success': True, 'request': swap_request.to_dict()})


@swap_requests_bp.route('/<int:request_id>/deny', methods=['POST'])
@handle_errors
@require_role('MANAGER', 'ADMIN')
def deny_request(request_id):
    swap_request = _service().deny(request_id, get_current_user(), _notes())
    return jsonify({'success': True, 'request': swap_request.to_dict()})


@swap_requests_bp.route('/<int:request_id>/cancel', methods=['POST'])
@handle_errors
@require_authentication()
def cancel_request(request_id):
    swap_request = _service().cancel(request_id, get_current_user().id)
    return jsonify({'success': True, 'request': swap_request.to_dict()})
