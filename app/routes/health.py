"""
Health Check Endpoints
Liveness and readiness probes for orchestrators and load balancers.
"""
from flask import Blueprint, jsonify, current_app
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError

from app.services.lock_manager import lock_manager
from app.utils.timezone import utcnow

health_bp = Blueprint('health', __name__, url_prefix='/health')


@health_bp.route('/ping', methods=['GET'])
def ping():
    """
    Simple ping endpoint for basic connectivity checks.
    Returns: 200 OK with pong message
    """
    return jsonify({
        'status': 'ok',
        'message': 'pong',
        'timestamp': utcnow().isoformat()
    }), 200


@health_bp.route('/live', methods=['GET'])
def liveness():
    """Liveness probe - the process is up and serving requests."""
    return jsonify({
        'status': 'alive',
        'timestamp': utcnow().isoformat()
    }), 200


@health_bp.route('/ready', methods=['GET'])
def readiness():
    """
    Readiness probe

    503 when the database is unreachable or the drop-expiry sweep was
    started and has since stopped. held_locks counts keys held or waited
    on in this worker's lock table.
    """
    checks = {'database': True}
    errors = []

    try:
        current_app.extensions['sqlalchemy'].session.execute(text('SELECT 1'))
    except SQLAlchemyError as e:
        current_app.logger.error(f"Readiness check failed: {e}")
        checks['database'] = False
        errors.append(f"Database: {e}")

    scheduler = current_app.extensions.get('scheduler')
    if scheduler is not None:
        checks['drop_expiry_sweep'] = bool(scheduler.running)

    ready = all(checks.values())
    response = {
        'status': 'ready' if ready else 'not_ready',
        'checks': checks,
        'held_locks': len(lock_manager.active_keys()),
        'timestamp': utcnow().isoformat(),
    }
    if errors:
        response['errors'] = errors
    return jsonify(response), 200 if ready else 503
