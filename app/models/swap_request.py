"""
Swap/drop request model
Worker-initiated requests to hand a shift to a colleague or give it up
"""
from app.utils.timezone import utcnow


OPEN_STATUSES = ('PENDING', 'ACCEPTED_BY_TARGET')


def create_swap_request_model(db):
    """Factory function to create SwapRequest model with db instance"""

    class SwapRequest(db.Model):
        """
        Swap or drop request on one assignment

        Rows are never deleted by the workflow. When a drop is approved
        the assignment goes away and shift_assignment_id becomes NULL;
        shift_id keeps the request tied to its shift.

        Lifecycle:
            SWAP: PENDING -> ACCEPTED_BY_TARGET -> APPROVED | DENIED
            DROP: PENDING -> APPROVED | DENIED
            Either may be CANCELLED while still open.
        """
        __tablename__ = 'swap_requests'

        id = db.Column(db.Integer, primary_key=True, autoincrement=True)
        shift_assignment_id = db.Column(
            db.Integer, db.ForeignKey('shift_assignments.id', ondelete='SET NULL'), nullable=True
        )
        shift_id = db.Column(db.Integer, db.ForeignKey('shifts.id', ondelete='CASCADE'), nullable=False)
        requested_by = db.Column(db.Integer, db.ForeignKey('users.id', ondelete='CASCADE'), nullable=False)
        type = db.Column(db.String(10), nullable=False)
        target_staff_id = db.Column(db.Integer, db.ForeignKey('users.id'), nullable=True)
        status = db.Column(db.String(20), nullable=False, default='PENDING')
        reviewed_by = db.Column(db.Integer, db.ForeignKey('users.id'), nullable=True)
        reviewed_at = db.Column(db.DateTime, nullable=True)
        review_notes = db.Column(db.Text, nullable=True)
        created_at = db.Column(db.DateTime, nullable=False, default=utcnow)
        updated_at = db.Column(db.DateTime, nullable=False, default=utcnow, onupdate=utcnow)

        assignment = db.relationship('ShiftAssignment', back_populates='swap_requests')
        shift = db.relationship('Shift', back_populates='swap_requests')
        requester = db.relationship('User', foreign_keys=[requested_by])
        target = db.relationship('User', foreign_keys=[target_staff_id])

        __table_args__ = (
            db.Index('idx_swap_requests_status', 'status'),
            db.Index('idx_swap_requests_requester_status', 'requested_by', 'status'),
            db.Index('idx_swap_requests_assignment', 'shift_assignment_id'),
            db.CheckConstraint("type IN ('SWAP', 'DROP')", name='check_swap_request_type'),
            db.CheckConstraint(
                "status IN ('PENDING', 'ACCEPTED_BY_TARGET', 'APPROVED', 'DENIED', 'CANCELLED')",
                name='check_swap_request_status'
            ),
        )

        @property
        def is_open(self):
            return self.status in OPEN_STATUSES

        def to_dict(self):
            return {
                'id': self.id,
                'shift_assignment_id': self.shift_assignment_id,
                'shift_id': self.shift_id,
                'requested_by': self.requested_by,
                'requester_name': self.requester.name if self.requester else None,
                'type': self.type,
                'target_staff_id': self.target_staff_id,
                'target_name': self.target.name if self.target else None,
                'status': self.status,
                'reviewed_by': self.reviewed_by,
                'reviewed_at': self.reviewed_at.isoformat() if self.reviewed_at else None,
                'review_notes': self.review_notes,
                'created_at': self.created_at.isoformat() if self.created_at else None,
                'shift': self.shift.to_dict() if self.shift else None,
            }

        def __repr__(self):
            return f'<SwapRequest {self.id} {self.type} {self.status}>'

    return SwapRequest
