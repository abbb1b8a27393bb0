"""
Flask application factory for the shift scheduling service.

create_app() wires configuration, extensions, models, blueprints and the
drop-expiry sweep for one application instance.
"""
import atexit
import logging

from flask import Flask
from sqlalchemy import event
from sqlalchemy.engine import Engine

from .extensions import db, migrate, limiter
from .config import get_config, ProductionConfig

logger = logging.getLogger(__name__)


@event.listens_for(Engine, "connect")
def _enable_sqlite_foreign_keys(dbapi_conn, connection_record):
    """SQLite ignores ON DELETE CASCADE / SET NULL unless asked per connection"""
    if 'sqlite' in type(dbapi_conn).__module__:
        cursor = dbapi_conn.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()


def create_app(config_name=None):
    """
    Application factory function.

    Args:
        config_name: 'development', 'testing' or 'production'; from FLASK_ENV when None

    Returns:
        Flask application instance
    """
    app = Flask(__name__)

    # Correct client address behind a reverse proxy (rate limit fallback key)
    from werkzeug.middleware.proxy_fix import ProxyFix
    app.wsgi_app = ProxyFix(app.wsgi_app, x_for=1, x_proto=1, x_host=1, x_prefix=1)

    config_class = get_config(config_name)
    config_class.validate()
    app.config.from_object(config_class)

    db.init_app(app)
    migrate.init_app(app, db)
    limiter.init_app(app)

    from app.error_handlers import setup_logging, register_error_handlers
    setup_logging(app)
    register_error_handlers(app)

    from app.models import init_models, model_registry
    model_registry.init_app(app, init_models(db))

    register_blueprints(app)

    if app.config.get('DROP_EXPIRY_SWEEP_ENABLED') and not app.config.get('TESTING'):
        setup_background_tasks(app)

    logger.info(
        f"Shift scheduling app created ({config_class.__name__}, "
        f"{'PostgreSQL advisory' if issubclass(config_class, ProductionConfig) else 'in-process'} locking)"
    )
    return app


def register_blueprints(app):
    """Register all Flask blueprints."""
    from app.routes import (
        auth_bp,
        shifts_bp,
        swap_requests_bp,
        notifications_bp,
        health_bp,
    )

    for blueprint in (auth_bp, shifts_bp, swap_requests_bp, notifications_bp, health_bp):
        app.register_blueprint(blueprint)

    # Probes must never be throttled
    limiter.exempt(health_bp)


def expire_drop_requests(app):
    """One pass of the drop-expiry sweep; errors are logged, never raised into the scheduler"""
    from app.models import get_models
    from app.services import SwapService

    with app.app_context():
        try:
            expired = SwapService(db.session, get_models()).expire_stale_drop_requests()
            if expired:
                logger.info(f"Drop expiry sweep cancelled {expired} request(s)")
        except Exception as e:
            db.session.rollback()
            logger.error(f"Drop expiry sweep failed: {e}", exc_info=True)
        finally:
            db.session.remove()


def setup_background_tasks(app):
    """Start the APScheduler job that expires stale drop requests."""
    from apscheduler.schedulers.background import BackgroundScheduler
    from apscheduler.triggers.interval import IntervalTrigger

    scheduler = BackgroundScheduler(timezone='UTC')
    scheduler.add_job(
        func=expire_drop_requests,
        args=[app],
        trigger=IntervalTrigger(seconds=app.config['DROP_EXPIRY_SWEEP_SECONDS']),
        id='drop_request_expiry',
        name='Expire drop requests inside the cutoff',
        replace_existing=True,
        max_instances=1,
        coalesce=True,
    )
    scheduler.start()
    app.extensions['scheduler'] = scheduler
    atexit.register(lambda: scheduler.shutdown(wait=False))
    return scheduler


def init_db(app):
    """Create any missing tables (SQLite development databases)."""
    with app.app_context():
        db.create_all()
