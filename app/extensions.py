"""
Flask extensions initialization.

Extensions are created here without binding to the app, then bound
in the application factory using the init_app() pattern.
"""
from flask import request
from flask_sqlalchemy import SQLAlchemy
from flask_migrate import Migrate
from flask_limiter import Limiter
from flask_limiter.util import get_remote_address


def rate_limit_key():
    """Acting user when one is named, client address otherwise"""
    user_id = request.headers.get('X-User-Id', '')
    if user_id.isdigit():
        return f"user:{user_id}"
    return get_remote_address()


db = SQLAlchemy()
migrate = Migrate()
limiter = Limiter(
    key_func=rate_limit_key,
    strategy="fixed-window"
)
