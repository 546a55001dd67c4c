# Profile Model
from flask_sqlalchemy import SQLAlchemy
from bitterscan.utils.timestamps import utcnow, to_iso

db = SQLAlchemy()

ROLES = ('admin', 'expert', 'farmer')
STATUSES = ('pending', 'approved', 'rejected')


class Profile(db.Model):
    __tablename__ = 'profiles'

    # Same UUID as the auth identity
    id = db.Column(db.String(36), primary_key=True)
    email = db.Column(db.String(255), unique=True, nullable=False, index=True)
    username = db.Column(db.String(80), unique=True, nullable=False, index=True)
    full_name = db.Column(db.String(120), nullable=False)
    profile_picture = db.Column(db.Text)
    role = db.Column(db.String(20), nullable=False, index=True)  # admin, expert, farmer
    status = db.Column(db.String(20), default='pending', index=True)  # pending, approved, rejected
    created_at = db.Column(db.DateTime(timezone=True), default=utcnow, nullable=False)
    updated_at = db.Column(db.DateTime(timezone=True), default=utcnow, onupdate=utcnow)

    def summary(self):
        """Subset joined onto scans and validation records."""
        return {
            'id': self.id,
            'username': self.username,
            'full_name': self.full_name,
            'email': self.email,
            'profile_picture': self.profile_picture,
            'role': self.role,
        }

    def to_dict(self):
        return {
            'id': self.id,
            'email': self.email,
            'username': self.username,
            'full_name': self.full_name,
            'profile_picture': self.profile_picture,
            'role': self.role,
            'status': self.status,
            'created_at': to_iso(self.created_at),
            'updated_at': to_iso(self.updated_at),
        }

    def __repr__(self):
        return f'<Profile {self.username} ({self.role}/{self.status})>'
