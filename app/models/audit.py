"""
Audit Log model
Append-only trail of scheduling mutations
"""
from app.utils.timezone import utcnow


def create_audit_model(db):
    """Factory function to create AuditLog model with db instance"""

    class AuditLog(db.Model):
        """
        One audited mutation

        Stores the entity touched, the action name, who made the change and
        optional before/after snapshots as JSON.
        """
        __tablename__ = 'audit_logs'

        id = db.Column(db.Integer, primary_key=True, autoincrement=True)
        entity_type = db.Column(db.String(40), nullable=False)
        entity_id = db.Column(db.Integer, nullable=False)
        action = db.Column(db.String(60), nullable=False)
        before = db.Column(db.JSON, nullable=True)
        after = db.Column(db.JSON, nullable=True)
        changed_by = db.Column(db.Integer, db.ForeignKey('users.id'), nullable=True)
        created_at = db.Column(db.DateTime, nullable=False, default=utcnow)

        __table_args__ = (
            db.Index('idx_audit_entity', 'entity_type', 'entity_id'),
            db.Index('idx_audit_created', 'created_at'),
        )

        def to_dict(self):
            return {
                'id': self.id,
                'entity_type': self.entity_type,
                'entity_id': self.entity_id,
                'action': self.action,
                'before': self.before,
                'after': self.after,
                'changed_by': self.changed_by,
                'created_at': self.created_at.isoformat() if self.created_at else None,
            }

        def __repr__(self):
            return f'<AuditLog {self.action} {self.entity_type}:{self.entity_id}>'

    return AuditLog
