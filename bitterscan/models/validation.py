# Expert Validation Models
from bitterscan.models.profile import db
from bitterscan.utils.timestamps import utcnow, to_iso

VALIDATION_STATUSES = ('Validated', 'Corrected')


class ValidationHistory(db.Model):
    __tablename__ = 'validation_history'

    id = db.Column(db.Integer, primary_key=True)
    scan_id = db.Column(db.String(36), nullable=False, index=True)  # scan_uuid of either scan table
    scan_type = db.Column(db.String(20), nullable=False)  # leaf_disease, fruit_maturity
    expert_id = db.Column(db.String(36), nullable=False, index=True)
    expert_name = db.Column(db.String(120))
    ai_prediction = db.Column(db.String(120), nullable=False)
    expert_validation = db.Column(db.String(120))
    expert_comment = db.Column(db.Text)
    status = db.Column(db.String(20), nullable=False)  # Validated, Corrected
    validated_at = db.Column(db.DateTime(timezone=True), default=utcnow, nullable=False, index=True)

    def to_dict(self):
        return {
            'id': self.id,
            'scan_id': self.scan_id,
            'scan_type': self.scan_type,
            'expert_id': self.expert_id,
            'expert_name': self.expert_name,
            'ai_prediction': self.ai_prediction,
            'expert_validation': self.expert_validation,
            'expert_comment': self.expert_comment,
            'status': self.status,
            'validated_at': to_iso(self.validated_at),
        }

    def __repr__(self):
        return f'<ValidationHistory {self.id} for Scan {self.scan_id} ({self.status})>'
