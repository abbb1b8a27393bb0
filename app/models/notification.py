"""
Notification model
In-app inbox rows written by the notification service
"""
from app.utils.timezone import utcnow


def create_notification_model(db):
    """Factory function to create Notification model with db instance"""

    class Notification(db.Model):
        __tablename__ = 'notifications'

        id = db.Column(db.Integer, primary_key=True, autoincrement=True)
        user_id = db.Column(db.Integer, db.ForeignKey('users.id', ondelete='CASCADE'), nullable=False)
        type = db.Column(db.String(40), nullable=False)
        title = db.Column(db.String(200), nullable=False)
        message = db.Column(db.Text, nullable=False)
        is_read = db.Column(db.Boolean, nullable=False, default=False)
        related_entity_type = db.Column(db.String(40))
        related_entity_id = db.Column(db.Integer)
        created_at = db.Column(db.DateTime, nullable=False, default=utcnow)

        __table_args__ = (
            db.Index('idx_notifications_user_read', 'user_id', 'is_read'),
            db.Index('idx_notifications_user_created', 'user_id', 'created_at'),
        )

        def to_dict(self):
            return {
                'id': self.id,
                'type': self.type,
                'title': self.title,
                'message': self.message,
                'is_read': self.is_read,
                'related_entity_type': self.related_entity_type,
                'related_entity_id': self.related_entity_id,
                'created_at': self.created_at.isoformat() if self.created_at else None,
            }

        def __repr__(self):
            return f'<Notification {self.id} user={self.user_id} {self.type}>'

    return Notification
