"""
Routes package for the shift scheduling API
Centralizes all route blueprints
"""
from .auth import (
    auth_bp,
    get_current_user,
    require_authentication,
    require_role,
)
from .shifts import shifts_bp
from .swap_requests import swap_requests_bp
from .notifications import notifications_bp
from .health import health_bp

__all__ = [
    'auth_bp',
    'shifts_bp',
    'swap_requests_bp',
    'notifications_bp',
    'health_bp',
    'get_current_user',
    'require_authentication',
    'require_role',
]
