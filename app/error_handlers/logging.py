"""
Error handling and logging utilities for the shift scheduling service
Provides centralized error handling, logging, and debugging capabilities
"""
import logging
import os
import traceback
from datetime import datetime, timezone
from flask import jsonify, request

from .exceptions import AppException


def _error_id():
    return datetime.now(timezone.utc).strftime('%Y%m%d_%H%M%S_%f')


def _resolve_log_path(log_file):
    if os.path.isabs(log_file):
        return log_file
    basedir = os.path.abspath(os.path.dirname(os.path.dirname(os.path.dirname(__file__))))
    return os.path.join(basedir, log_file)


def setup_logging(app):
    """
    Configure application logging

    Flask's logger and the 'app' package logger share one console handler,
    so service modules using logging.getLogger(__name__) end up in the same
    stream. LOG_FILE='' disables the file handler (tests, containers).
    """
    log_level = getattr(logging, app.config.get('LOG_LEVEL', 'INFO').upper())
    formatter = logging.Formatter('%(asctime)s [%(levelname)s] %(name)s: %(message)s')

    handlers = [logging.StreamHandler()]
    log_file = app.config.get('LOG_FILE')
    if log_file:
        log_file = _resolve_log_path(log_file)
        os.makedirs(os.path.dirname(log_file), exist_ok=True)
        handlers.append(logging.FileHandler(log_file))

    for handler in handlers:
        handler.setLevel(log_level)
        handler.setFormatter(formatter)

    # Flask names its logger after the import name, so app.logger is
    # usually the 'app' package logger itself
    loggers = [app.logger]
    package_logger = logging.getLogger('app')
    if package_logger is not app.logger:
        loggers.append(package_logger)

    for target in loggers:
        # Replace, not append: create_app() may run more than once per process
        for stale in list(target.handlers):
            target.removeHandler(stale)
            stale.close()
        for handler in handlers:
            target.addHandler(handler)
        target.setLevel(log_level)

    logging.getLogger('werkzeug').setLevel(log_level)
    logging.getLogger('apscheduler').setLevel(max(log_level, logging.WARNING))
    return app.logger


def _error_body(status_code, error, message, **extra):
    return jsonify({'error': error, 'message': message, 'status_code': status_code, **extra}), status_code


def register_error_handlers(app):
    """Register global error handlers for the Flask app"""

    @app.errorhandler(AppException)
    def app_exception(error):
        """Raised outside a @handle_errors endpoint (e.g. a before_request hook)"""
        app.logger.warning(f"{error.error_type} on {request.method} {request.path}: {error.message}")
        return jsonify(error.to_dict()), error.status_code

    @app.errorhandler(400)
    def bad_request_error(error):
        app.logger.warning(f"Bad request: {request.method} {request.path}")
        return _error_body(400, 'Bad Request', 'The request could not be understood by the server')

    @app.errorhandler(404)
    def not_found_error(error):
        app.logger.info(f"404 Not Found: {request.method} {request.path}")
        return _error_body(404, 'Not Found', 'The requested resource was not found')

    @app.errorhandler(405)
    def method_not_allowed_error(error):
        return _error_body(405, 'Method Not Allowed', f'The {request.method} method is not allowed for this endpoint')

    @app.errorhandler(429)
    def rate_limited_error(error):
        app.logger.warning(
            f"Rate limit hit by user {request.headers.get('X-User-Id', '-')} on {request.method} {request.path}"
        )
        return _error_body(429, 'Too Many Requests', f'Rate limit exceeded: {error.description}')

    @app.errorhandler(500)
    def internal_error(error):
        error_id = _error_id()
        app.logger.error(f"Internal Server Error [{error_id}] on {request.method} {request.path}: {error}")
        app.logger.error(f"Traceback [{error_id}]: {traceback.format_exc()}")
        return _error_body(500, 'Internal Server Error', 'An unexpected error occurred', error_id=error_id)


def log_side_effect_failure(operation, error, context=None):
    """
    Record a failed notification or audit write

    These collaborators never fail the mutation that triggered them, so the
    failure is logged with its traceback and swallowed by the caller.

    Returns:
        The error id written to the log
    """
    logger = logging.getLogger('app.side_effects')
    error_id = _error_id()

    log_message = f"SIDE EFFECT ERROR [{error_id}] in {operation}: {error}"
    if context:
        log_message += f" | Context: {context}"

    logger.error(log_message)
    logger.debug(f"SIDE EFFECT TRACEBACK [{error_id}]: {traceback.format_exc()}")
    return error_id
