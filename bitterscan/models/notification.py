# Notification Read-State Model
from bitterscan.models.profile import db
from bitterscan.utils.timestamps import utcnow, to_iso


class NotificationRead(db.Model):
    """Cross-device record of which pending scans and users a user has seen."""
    __tablename__ = 'notification_reads'

    user_id = db.Column(db.String(36), primary_key=True)
    read_scan_ids = db.Column(db.JSON, nullable=False, default=list)
    read_user_ids = db.Column(db.JSON, nullable=False, default=list)
    updated_at = db.Column(db.DateTime(timezone=True), default=utcnow, onupdate=utcnow, nullable=False)

    def to_dict(self):
        return {
            'user_id': self.user_id,
            'read_scan_ids': list(self.read_scan_ids or []),
            'read_user_ids': list(self.read_user_ids or []),
            'updated_at': to_iso(self.updated_at),
        }

    def __repr__(self):
        return f'<NotificationRead {self.user_id}>'
