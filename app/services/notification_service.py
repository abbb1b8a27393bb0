"""
Notification Service
In-app inbox writes and reads

Writes are fire-and-forget: they run after the triggering mutation has
committed, and a failure is logged and swallowed so it can never undo or
fail the scheduling change.
"""
import logging
from enum import Enum
from typing import Iterable, List, Optional

from sqlalchemy.orm import Session

from app.error_handlers.exceptions import AuthorizationException, ResourceNotFoundException
from app.error_handlers.logging import log_side_effect_failure

logger = logging.getLogger(__name__)


class NotificationType(str, Enum):
    SHIFT_ASSIGNED = "SHIFT_ASSIGNED"
    SHIFT_CHANGED = "SHIFT_CHANGED"
    SHIFT_PUBLISHED = "SHIFT_PUBLISHED"
    SHIFT_PICKED_UP = "SHIFT_PICKED_UP"
    SWAP_REQUEST = "SWAP_REQUEST"
    DROP_REQUEST = "DROP_REQUEST"
    SWAP_ACCEPTED = "SWAP_ACCEPTED"
    SWAP_DECLINED = "SWAP_DECLINED"
    SWAP_APPROVED = "SWAP_APPROVED"
    DROP_APPROVED = "DROP_APPROVED"
    SWAP_DENIED = "SWAP_DENIED"
    DROP_DENIED = "DROP_DENIED"
    SWAP_CANCELLED = "SWAP_CANCELLED"


class NotificationService:
    """Writes and reads Notification rows"""

    DEFAULT_LIMIT = 50

    def __init__(self, db_session: Session, models: dict):
        self.db = db_session
        self.Notification = models['Notification']
        self.ManagerLocation = models['ManagerLocation']

    def notify(self, user_id: int, type: NotificationType, title: str, message: str,
               related_entity_type: Optional[str] = None, related_entity_id: Optional[int] = None) -> bool:
        """Send one notification; returns False when the write failed"""
        return self.notify_many([user_id], type, title, message, related_entity_type, related_entity_id)

    def notify_many(self, user_ids: Iterable[int], type: NotificationType, title: str, message: str,
                    related_entity_type: Optional[str] = None, related_entity_id: Optional[int] = None) -> bool:
        """Send the same notification to several users in one write"""
        recipients = sorted({uid for uid in user_ids if uid is not None})
        if not recipients:
            return True
        try:
            for user_id in recipients:
                self.db.add(self.Notification(
                    user_id=user_id,
                    type=NotificationType(type).value,
                    title=title,
                    message=message,
                    related_entity_type=related_entity_type,
                    related_entity_id=related_entity_id,
                ))
            self.db.commit()
            logger.debug(f"Sent {type} notification to users {recipients}")
            return True
        except Exception as e:
            self.db.rollback()
            log_side_effect_failure('notify', e, {'type': str(type), 'recipients': recipients})
            return False

    def location_manager_ids(self, location_id: int) -> List[int]:
        rows = self.db.query(self.ManagerLocation.manager_id).filter_by(location_id=location_id).all()
        return [row.manager_id for row in rows]

    def notify_location_managers(self, location_id: int, type: NotificationType, title: str, message: str,
                                 related_entity_type: Optional[str] = None,
                                 related_entity_id: Optional[int] = None) -> bool:
        """Send to every manager linked to the location"""
        try:
            manager_ids = self.location_manager_ids(location_id)
        except Exception as e:
            self.db.rollback()
            log_side_effect_failure('notify_location_managers', e, {'location_id': location_id})
            return False
        return self.notify_many(manager_ids, type, title, message, related_entity_type, related_entity_id)

    # ------------------------------------------------------------------
    # Inbox
    # ------------------------------------------------------------------

    def list_for_user(self, user_id: int, limit: int = DEFAULT_LIMIT, unread_only: bool = False):
        query = self.db.query(self.Notification).filter_by(user_id=user_id)
        if unread_only:
            query = query.filter_by(is_read=False)
        return query.order_by(self.Notification.created_at.desc(), self.Notification.id.desc()).limit(limit).all()

    def unread_count(self, user_id: int) -> int:
        return self.db.query(self.Notification).filter_by(user_id=user_id, is_read=False).count()

    def mark_read(self, notification_id: int, user_id: int):
        notification = self.db.get(self.Notification, notification_id)
        if notification is None:
            raise ResourceNotFoundException('Notification not found')
        if notification.user_id != user_id:
            raise AuthorizationException('Unauthorized')
        notification.is_read = True
        self.db.commit()
        return notification

    def mark_all_read(self, user_id: int) -> int:
        updated = self.db.query(self.Notification).filter_by(
            user_id=user_id, is_read=False
        ).update({'is_read': True}, synchronize_session=False)
        self.db.commit()
        return updated
