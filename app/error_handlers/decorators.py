"""
Error handling decorators

Turns exceptions raised by scheduling endpoints into JSON error bodies.
"""
from functools import wraps
from flask import jsonify, current_app, request

from .exceptions import AppException
from .logging import _error_id


def _rollback_session():
    """Discard whatever a failed request left in the shared session"""
    db = current_app.extensions.get('sqlalchemy')
    if db is not None:
        db.session.rollback()


def handle_errors(f):
    """
    Map exceptions to JSON responses - put it on every API endpoint

    AppException subclasses keep their own status code and details
    (violations, lock key, ...). Anything else becomes a 500 carrying an
    error id that matches the logged traceback. Both paths roll back the
    database session.

    Usage:
        @shifts_bp.route('/<int:shift_id>/publish', methods=['POST'])
        @handle_errors
        @require_role('MANAGER', 'ADMIN')
        def publish_shift(shift_id):
            shift = service.publish_shift(actor.id, shift_id)  # may raise SchedulingConflictException
            return jsonify({'success': True, 'shift': shift.to_dict()})
    """
    @wraps(f)
    def decorated(*args, **kwargs):
        try:
            return f(*args, **kwargs)

        except AppException as e:
            _rollback_session()
            current_app.logger.warning(
                f"{e.error_type} in {f.__name__} (actor={request.headers.get('X-User-Id')}): {e.message}",
                extra={'details': e.details} if e.details else {}
            )
            return jsonify(e.to_dict()), e.status_code

        except Exception as e:
            _rollback_session()
            error_id = _error_id()
            current_app.logger.error(
                f"Unexpected error [{error_id}] in {f.__name__} on {request.method} {request.path}: {e}",
                exc_info=True
            )
            return jsonify({
                'error': 'InternalError',
                'message': 'An unexpected error occurred',
                'error_id': error_id,
                'status_code': 500
            }), 500

    return decorated
