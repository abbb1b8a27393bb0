"""
Location models
Sites that shifts run at, and which managers may schedule them
"""


def create_location_models(db):
    """Factory function to create Location and ManagerLocation models"""

    class Location(db.Model):
        """
        A physical site with its own timezone

        Shift start/end times are wall-clock times in this timezone.
        """
        __tablename__ = 'locations'

        id = db.Column(db.Integer, primary_key=True, autoincrement=True)
        name = db.Column(db.String(100), nullable=False)
        timezone = db.Column(db.String(64), nullable=False, default='UTC')
        address = db.Column(db.String(255))

        def to_dict(self):
            return {
                'id': self.id,
                'name': self.name,
                'timezone': self.timezone,
                'address': self.address,
            }

        def __repr__(self):
            return f'<Location {self.id} {self.name}>'

    class ManagerLocation(db.Model):
        """Grants a manager scheduling access to a location"""
        __tablename__ = 'manager_locations'

        id = db.Column(db.Integer, primary_key=True, autoincrement=True)
        manager_id = db.Column(db.Integer, db.ForeignKey('users.id', ondelete='CASCADE'), nullable=False)
        location_id = db.Column(db.Integer, db.ForeignKey('locations.id', ondelete='CASCADE'), nullable=False)

        __table_args__ = (
            db.UniqueConstraint('manager_id', 'location_id', name='unique_manager_location'),
        )

        def __repr__(self):
            return f'<ManagerLocation manager={self.manager_id} location={self.location_id}>'

    return Location, ManagerLocation
