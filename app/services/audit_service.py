"""
Audit Service
Append-only trail of scheduling mutations
"""
import logging
from typing import Any, Dict, Optional

from sqlalchemy.orm import Session

from app.error_handlers.logging import log_side_effect_failure

logger = logging.getLogger(__name__)


AUDIT_ACTIONS = (
    'shift_created',
    'shift_updated',
    'shift_deleted',
    'shift_published',
    'shift_unpublished',
    'assignment_created',
    'assignment_deleted',
    'shift_assignment_updated',
    'shift_assignment_removed',
    'swap_requested',
    'swap_approved',
    'swap_denied',
    'swap_cancelled',
)


def entity_type_for(action: str) -> str:
    """
    Entity an action applies to, derived from its name

    Examples:
        >>> entity_type_for('assignment_created')
        'shift_assignment'
        >>> entity_type_for('swap_denied')
        'swap_request'
    """
    if 'assignment' in action:
        return 'shift_assignment'
    if 'swap' in action:
        return 'swap_request'
    return 'shift'


class AuditService:
    """Writes AuditLog rows after a mutation has committed"""

    def __init__(self, db_session: Session, models: dict):
        self.db = db_session
        self.AuditLog = models['AuditLog']

    def log(self, action: str, actor_id: Optional[int], entity_id: int,
            metadata: Optional[Dict[str, Any]] = None, before: Optional[Dict[str, Any]] = None) -> bool:
        """
        Record an audited action

        A failed write is logged and reported by the return value; it never
        raises into the caller.
        """
        if action not in AUDIT_ACTIONS:
            raise ValueError(f"Unknown audit action: {action}")
        try:
            self.db.add(self.AuditLog(
                entity_type=entity_type_for(action),
                entity_id=entity_id,
                action=action,
                before=before,
                after=metadata,
                changed_by=actor_id,
            ))
            self.db.commit()
            logger.info(f"AUDIT {action} {entity_type_for(action)}:{entity_id} by user {actor_id}")
            return True
        except Exception as e:
            self.db.rollback()
            log_side_effect_failure('audit_log', e, {'action': action, 'entity_id': entity_id})
            return False

    def history(self, entity_type: str, entity_id: int):
        """Audit rows for one entity, newest first"""
        return self.db.query(self.AuditLog).filter_by(
            entity_type=entity_type, entity_id=entity_id
        ).order_by(self.AuditLog.created_at.desc(), self.AuditLog.id.desc()).all()
