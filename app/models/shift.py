"""
Shift and ShiftAssignment models
A shift is a staffed time slot at a location; assignments put workers on it
"""
from app.utils.timezone import utcnow
from app.utils.shift_time import absolute_range, duration_hours, format_time, is_overnight


def create_shift_models(db):
    """Factory function to create Shift and ShiftAssignment models"""

    class Shift(db.Model):
        """
        Staffed time slot

        start_time/end_time are wall-clock in the location's timezone; an
        end at or before the start means the shift runs past midnight.
        version increases by one on every edit/publish/unpublish and guards
        conditional updates.
        """
        __tablename__ = 'shifts'

        id = db.Column(db.Integer, primary_key=True, autoincrement=True)
        location_id = db.Column(db.Integer, db.ForeignKey('locations.id', ondelete='CASCADE'), nullable=False)
        date = db.Column(db.Date, nullable=False)
        start_time = db.Column(db.Time, nullable=False)
        end_time = db.Column(db.Time, nullable=False)
        skill_id = db.Column(db.Integer, db.ForeignKey('skills.id', ondelete='RESTRICT'), nullable=False)
        headcount = db.Column(db.Integer, nullable=False, default=1)
        is_published = db.Column(db.Boolean, nullable=False, default=False)
        published_at = db.Column(db.DateTime, nullable=True)
        version = db.Column(db.Integer, nullable=False, default=1)
        created_by = db.Column(db.Integer, db.ForeignKey('users.id'), nullable=True)
        created_at = db.Column(db.DateTime, nullable=False, default=utcnow)
        updated_at = db.Column(db.DateTime, nullable=False, default=utcnow, onupdate=utcnow)

        location = db.relationship('Location', lazy='joined')
        skill = db.relationship('Skill', lazy='joined')
        assignments = db.relationship(
            'ShiftAssignment', back_populates='shift',
            cascade='all, delete-orphan'
        )
        swap_requests = db.relationship(
            'SwapRequest', back_populates='shift',
            cascade='all, delete-orphan'
        )

        __table_args__ = (
            db.Index('idx_shifts_location_date', 'location_id', 'date'),
            db.Index('idx_shifts_date', 'date'),
            db.CheckConstraint('headcount >= 1 AND headcount <= 20', name='check_shift_headcount'),
        )

        @property
        def timezone(self):
            return self.location.timezone if self.location else None

        @property
        def is_overnight(self):
            return is_overnight(self.start_time, self.end_time)

        @property
        def duration_hours(self):
            return duration_hours(self.start_time, self.end_time)

        def absolute_range(self):
            return absolute_range(self.date, self.start_time, self.end_time)

        def to_dict(self, include_assignments=False):
            data = {
                'id': self.id,
                'location_id': self.location_id,
                'date': self.date.isoformat(),
                'start_time': format_time(self.start_time),
                'end_time': format_time(self.end_time),
                'skill_id': self.skill_id,
                'skill_name': self.skill.name if self.skill else None,
                'headcount': self.headcount,
                'is_published': self.is_published,
                'published_at': self.published_at.isoformat() if self.published_at else None,
                'version': self.version,
                'is_overnight': self.is_overnight,
            }
            if include_assignments:
                data['assignments'] = [a.to_dict() for a in self.assignments]
            return data

        def __repr__(self):
            return f'<Shift {self.id} {self.date} {self.start_time}-{self.end_time} v{self.version}>'

    class ShiftAssignment(db.Model):
        """
        One worker on one shift

        At most one row per (shift, worker). Headcount is not enforced here.
        A swap approval rewrites staff_id on the existing row.
        """
        __tablename__ = 'shift_assignments'

        id = db.Column(db.Integer, primary_key=True, autoincrement=True)
        shift_id = db.Column(db.Integer, db.ForeignKey('shifts.id', ondelete='CASCADE'), nullable=False)
        staff_id = db.Column(db.Integer, db.ForeignKey('users.id', ondelete='CASCADE'), nullable=False)
        assigned_by = db.Column(db.Integer, db.ForeignKey('users.id'), nullable=True)
        assigned_at = db.Column(db.DateTime, nullable=False, default=utcnow)

        shift = db.relationship('Shift', back_populates='assignments')
        staff = db.relationship('User', foreign_keys=[staff_id])
        swap_requests = db.relationship('SwapRequest', back_populates='assignment')

        __table_args__ = (
            db.UniqueConstraint('shift_id', 'staff_id', name='unique_shift_staff_assignment'),
            db.Index('idx_shift_assignments_staff', 'staff_id'),
        )

        def to_dict(self):
            return {
                'id': self.id,
                'shift_id': self.shift_id,
                'staff_id': self.staff_id,
                'staff_name': self.staff.name if self.staff else None,
                'assigned_by': self.assigned_by,
                'assigned_at': self.assigned_at.isoformat() if self.assigned_at else None,
            }

        def __repr__(self):
            return f'<ShiftAssignment shift={self.shift_id} staff={self.staff_id}>'

    return Shift, ShiftAssignment
