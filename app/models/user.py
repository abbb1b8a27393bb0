"""
User model
Managers, admins and staff who take part in scheduling
"""
from app.utils.timezone import utcnow


def create_user_model(db):
    """Factory function to create User model with db instance"""

    class User(db.Model):
        """
        Scheduling participant

        Identity and credentials are owned by the upstream auth layer; this
        row only carries what scheduling decisions read.

        Attributes:
            id: Primary key, the value forwarded in X-User-Id
            name: Display name used in suggestions and notifications
            email: Contact email
            role: ADMIN, MANAGER or STAFF
            desired_hours: Preferred weekly hours (informational)
        """
        __tablename__ = 'users'

        id = db.Column(db.Integer, primary_key=True, autoincrement=True)
        name = db.Column(db.String(100), nullable=False)
        email = db.Column(db.String(120), unique=True, nullable=False)
        role = db.Column(db.String(20), nullable=False, default='STAFF')
        desired_hours = db.Column(db.Integer, nullable=True)
        created_at = db.Column(db.DateTime, nullable=False, default=utcnow)

        __table_args__ = (
            db.Index('idx_users_role', 'role'),
            db.CheckConstraint("role IN ('ADMIN', 'MANAGER', 'STAFF')", name='check_user_role'),
        )

        @property
        def is_admin(self):
            return self.role == 'ADMIN'

        @property
        def is_manager(self):
            """True for anyone who may manage schedules (managers and admins)"""
            return self.role in ('MANAGER', 'ADMIN')

        def to_dict(self):
            return {
                'id': self.id,
                'name': self.name,
                'email': self.email,
                'role': self.role,
                'desired_hours': self.desired_hours,
            }

        def __repr__(self):
            return f'<User {self.id} {self.name} ({self.role})>'

    return User
