"""
Model Registry - app-scoped access to the factory-built model classes

Models are created by init_models(db) inside the application factory, so
they cannot be imported as module globals. Routes look them up here and
hand the dict to the services they construct.

Usage:
    from app.models import get_models

    db = current_app.extensions['sqlalchemy']
    service = ShiftService(db.session, get_models())
"""
from flask import current_app
from typing import Dict, Any


class ModelRegistry:
    """Flask extension holding one application's model classes, under app.extensions['models']"""

    def __init__(self):
        self.models: Dict[str, Any] = {}

    def init_app(self, app, models: Dict[str, Any]):
        self.models = models
        app.extensions['models'] = self


model_registry = ModelRegistry()


def get_models() -> Dict[str, Any]:
    """
    All registered models for the current app

    Returns:
        Dictionary mapping model names ('User', 'Shift', ...) to classes

    Raises:
        RuntimeError: If the registry was never attached to the app
    """
    registry = current_app.extensions.get('models')
    if registry is None:
        raise RuntimeError('Models are not registered; create the app with create_app()')
    return registry.models
