"""
Staff availability models
Recurring weekly windows plus single-date overrides
"""
from app.utils.timezone import utcnow


def create_availability_models(db):
    """Factory function to create availability models with db instance"""

    class AvailabilityRule(db.Model):
        """
        Recurring weekly availability window

        day_of_week follows date.weekday(): 0 = Monday ... 6 = Sunday.
        Several rules per day are allowed; a shift must fit inside one of
        them, the union does not count.
        """
        __tablename__ = 'availability_rules'

        id = db.Column(db.Integer, primary_key=True, autoincrement=True)
        staff_id = db.Column(db.Integer, db.ForeignKey('users.id', ondelete='CASCADE'), nullable=False)
        day_of_week = db.Column(db.Integer, nullable=False)
        start_time = db.Column(db.Time, nullable=False)
        end_time = db.Column(db.Time, nullable=False)

        __table_args__ = (
            db.Index('idx_availability_rules_staff_day', 'staff_id', 'day_of_week'),
            db.CheckConstraint('day_of_week >= 0 AND day_of_week <= 6', name='check_rule_day_of_week'),
        )

        def __repr__(self):
            return f'<AvailabilityRule staff={self.staff_id} day={self.day_of_week} {self.start_time}-{self.end_time}>'

    class AvailabilityException(db.Model):
        """
        Single-date override for a worker

        is_available=False blocks the whole day. is_available=True with
        start/end replaces the recurring rules for that date; without
        start/end the whole day is open.
        """
        __tablename__ = 'availability_exceptions'

        id = db.Column(db.Integer, primary_key=True, autoincrement=True)
        staff_id = db.Column(db.Integer, db.ForeignKey('users.id', ondelete='CASCADE'), nullable=False)
        date = db.Column(db.Date, nullable=False)
        is_available = db.Column(db.Boolean, nullable=False, default=False)
        start_time = db.Column(db.Time, nullable=True)
        end_time = db.Column(db.Time, nullable=True)
        reason = db.Column(db.String(200))
        created_at = db.Column(db.DateTime, nullable=False, default=utcnow)

        __table_args__ = (
            db.Index('idx_availability_exceptions_staff_date', 'staff_id', 'date'),
        )

        def __repr__(self):
            status = "available" if self.is_available else "unavailable"
            return f'<AvailabilityException staff={self.staff_id} on {self.date}: {status}>'

    return AvailabilityRule, AvailabilityException
