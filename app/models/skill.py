"""
Skill and qualification models
What a worker can do, and where they are certified to do it
"""
from app.utils.timezone import utcnow


def create_skill_models(db):
    """Factory function to create Skill, StaffSkill and StaffLocationCert models"""

    class Skill(db.Model):
        __tablename__ = 'skills'

        id = db.Column(db.Integer, primary_key=True, autoincrement=True)
        name = db.Column(db.String(100), nullable=False, unique=True)
        description = db.Column(db.String(255))

        def to_dict(self):
            return {'id': self.id, 'name': self.name, 'description': self.description}

        def __repr__(self):
            return f'<Skill {self.name}>'

    class StaffSkill(db.Model):
        """Worker holds a skill"""
        __tablename__ = 'staff_skills'

        id = db.Column(db.Integer, primary_key=True, autoincrement=True)
        staff_id = db.Column(db.Integer, db.ForeignKey('users.id', ondelete='CASCADE'), nullable=False)
        skill_id = db.Column(db.Integer, db.ForeignKey('skills.id', ondelete='CASCADE'), nullable=False)

        __table_args__ = (
            db.UniqueConstraint('staff_id', 'skill_id', name='unique_staff_skill'),
        )

        def __repr__(self):
            return f'<StaffSkill staff={self.staff_id} skill={self.skill_id}>'

    class StaffLocationCert(db.Model):
        """
        Worker is certified at a location

        Removal is a hard delete. Assignments made while the certification
        existed are kept.
        """
        __tablename__ = 'staff_location_certs'

        id = db.Column(db.Integer, primary_key=True, autoincrement=True)
        staff_id = db.Column(db.Integer, db.ForeignKey('users.id', ondelete='CASCADE'), nullable=False)
        location_id = db.Column(db.Integer, db.ForeignKey('locations.id', ondelete='CASCADE'), nullable=False)
        certified_at = db.Column(db.DateTime, nullable=False, default=utcnow)

        __table_args__ = (
            db.UniqueConstraint('staff_id', 'location_id', name='unique_staff_location_cert'),
        )

        def __repr__(self):
            return f'<StaffLocationCert staff={self.staff_id} location={self.location_id}>'

    return Skill, StaffSkill, StaffLocationCert
