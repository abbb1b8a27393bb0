"""
Actor resolution
The upstream auth layer forwards the authenticated user id in X-User-Id;
these helpers load that user and enforce roles and location access
"""
from flask import Blueprint, request, jsonify, current_app
from functools import wraps

from app.error_handlers import handle_errors
from app.error_handlers.exceptions import AuthenticationException, AuthorizationException
from app.models import get_models
from app.services.access import ensure_location_access, managed_location_ids

USER_HEADER = 'X-User-Id'

auth_bp = Blueprint('auth', __name__, url_prefix='/api')


def get_current_user():
    """
    Load the acting user for this request

    Returns:
        User instance, or None when the header is missing or unknown
    """
    user = None
    raw_id = request.headers.get(USER_HEADER, '').strip()
    if raw_id.isdigit():
        db = current_app.extensions['sqlalchemy']
        user = db.session.get(get_models()['User'], int(raw_id))
        if user is None:
            current_app.logger.warning(f"Unknown user id in {USER_HEADER}: {raw_id}")

    return user


def require_role(*roles):
    """
    Decorator requiring an acting user, optionally with one of roles

    Use underneath @handle_errors so the raised exceptions become JSON.

    Usage:
        @shifts_bp.route('', methods=['POST'])
        @handle_errors
        @require_role('MANAGER', 'ADMIN')
        def create_shift():
            ...
    """
    def decorator(f):
        @wraps(f)
        def decorated_function(*args, **kwargs):
            user = get_current_user()
            if user is None:
                raise AuthenticationException('Authentication required')
            if roles and user.role not in roles:
                current_app.logger.warning(
                    f"User {user.id} ({user.role}) denied access to {f.__name__}"
                )
                raise AuthorizationException('You do not have permission to perform this action')
            return f(*args, **kwargs)
        return decorated_function
    return decorator


def require_authentication():
    """Decorator requiring any acting user"""
    return require_role()


def require_location_access(location_id):
    """
    Raises:
        AuthorizationException: If the acting user may not manage location_id
    """
    db = current_app.extensions['sqlalchemy']
    ensure_location_access(db.session, get_models(), get_current_user(), location_id)


@auth_bp.route('/me', methods=['GET'])
@handle_errors
@require_authentication()
def whoami():
    """The acting user and the locations they manage"""
    db = current_app.extensions['sqlalchemy']
    user = get_current_user()
    locations = managed_location_ids(db.session, get_models(), user)
    return jsonify({
        'success': True,
        'user': user.to_dict(),
        'managed_location_ids': locations,
        'all_locations': locations is None,
    })
