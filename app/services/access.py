"""
Location access rules
ADMIN sees every location; a MANAGER only those linked through ManagerLocation
"""
from typing import List, Optional

from app.error_handlers.exceptions import AuthorizationException


def managed_location_ids(db_session, models: dict, user) -> Optional[List[int]]:
    """
    Locations the user may manage

    Returns:
        None for admins (unrestricted), otherwise the list of location ids
    """
    if user.is_admin:
        return None
    if not user.is_manager:
        return []
    ManagerLocation = models['ManagerLocation']
    rows = db_session.query(ManagerLocation.location_id).filter_by(manager_id=user.id).all()
    return [row.location_id for row in rows]


def can_manage_location(db_session, models: dict, user, location_id: int) -> bool:
    allowed = managed_location_ids(db_session, models, user)
    return allowed is None or location_id in allowed


def ensure_location_access(db_session, models: dict, user, location_id: int) -> None:
    """
    Raises:
        AuthorizationException: If the user may not manage the location
    """
    if not can_manage_location(db_session, models, user, location_id):
        raise AuthorizationException('You do not have access to this location')
