"""
Notifications API Blueprint
The acting user's in-app inbox
"""
from flask import Blueprint, request, jsonify, current_app

from app.error_handlers import handle_errors
from app.models import get_models
from app.routes.auth import get_current_user, require_authentication
from app.services import NotificationService
from app.utils.validators import validate_int_param

notifications_bp = Blueprint('notifications', __name__, url_prefix='/api/notifications')


def _service():
    db = current_app.extensions['sqlalchemy']
    return NotificationService(db.session, get_models())


@notifications_bp.route('', methods=['GET'])
@handle_errors
@require_authentication()
def list_notifications():
    """
    Newest notifications first

    Query params:
        limit: 1-200 (default 50)
        unread: 'true' to only return unread notifications
    """
    limit = validate_int_param(
        request.args.get('limit', NotificationService.DEFAULT_LIMIT), 'limit', minimum=1, maximum=200
    )
    unread_only = request.args.get('unread', 'false').lower() == 'true'

    service = _service()
    user_id = get_current_user().id
    notifications = service.list_for_user(user_id, limit=limit, unread_only=unread_only)
    return jsonify({
        'success': True,
        'notifications': [n.to_dict() for n in notifications],
        'unread_count': service.unread_count(user_id),
    })


@notifications_bp.route('/unread-count', methods=['GET'])
@handle_errors
@require_authentication()
def unread_count():
    return jsonify({'success': True, 'unread_count': _service().unread_count(get_current_user().id)})


@notifications_bp.route('/<int:notification_id>/read', methods=['POST'])
@handle_errors
@require_authentication()
def mark_read(notification_id):
    notification = _service().mark_read(notification_id, get_current_user().id)
    return jsonify({'success': True, 'notification': notification.to_dict()})


@notifications_bp.route('/read-all', methods=['POST'])
@handle_errors
@require_authentication()
def mark_all_read():
    updated = _service().mark_all_read(get_current_user().id)
    return jsonify({'success': True, 'updated': updated})
