# Scan Models
from bitterscan.models.profile import db
from bitterscan.utils.timestamps import utcnow, to_iso

LEAF_DISEASE = 'leaf_disease'
FRUIT_MATURITY = 'fruit_maturity'
SCAN_TYPES = (LEAF_DISEASE, FRUIT_MATURITY)

PENDING_STATUSES = ('Pending', 'Pending Validation')


class ScanMixin:
    """Columns shared by both scan tables."""

    id = db.Column(db.Integer, primary_key=True)
    scan_uuid = db.Column(db.String(36), unique=True, nullable=False, index=True)
    farmer_id = db.Column(db.String(36), nullable=False, index=True)
    farm_id = db.Column(db.String(36))
    image_url = db.Column(db.Text, nullable=False)
    status = db.Column(db.String(30), default='Pending Validation', nullable=False, index=True)
    expert_comment = db.Column(db.Text)
    confidence = db.Column(db.Float)
    scan_latitude = db.Column(db.Float)
    scan_longitude = db.Column(db.Float)
    created_at = db.Column(db.DateTime(timezone=True), default=utcnow, nullable=False, index=True)
    updated_at = db.Column(db.DateTime(timezone=True), default=utcnow, onupdate=utcnow)

    scan_type = None
    prediction_column = None

    @property
    def ai_prediction(self):
        return getattr(self, self.prediction_column)

    def _base_dict(self):
        return {
            'id': self.id,
            'scan_uuid': self.scan_uuid,
            'scan_type': self.scan_type,
            'farmer_id': self.farmer_id,
            'farm_id': self.farm_id,
            'image_url': self.image_url,
            'status': self.status,
            'expert_comment': self.expert_comment,
            'confidence': self.confidence,
            'scan_latitude': self.scan_latitude,
            'scan_longitude': self.scan_longitude,
            'created_at': to_iso(self.created_at),
            'updated_at': to_iso(self.updated_at),
            'ai_prediction': self.ai_prediction,
        }


class LeafDiseaseScan(ScanMixin, db.Model):
    __tablename__ = 'leaf_disease_scans'

    disease_detected = db.Column(db.String(120), nullable=False)
    solution = db.Column(db.Text)
    recommendation = db.Column(db.Text)

    scan_type = LEAF_DISEASE
    prediction_column = 'disease_detected'

    def to_dict(self):
        data = self._base_dict()
        data.update({
            'disease_detected': self.disease_detected,
            'solution': self.solution,
            'recommendation': self.recommendation,
            'recommended_products': self.recommendation,
        })
        return data

    def __repr__(self):
        return f'<LeafDiseaseScan {self.scan_uuid} - {self.disease_detected}>'


class FruitRipenessScan(ScanMixin, db.Model):
    __tablename__ = 'fruit_ripeness_scans'

    ripeness_stage = db.Column(db.String(120), nullable=False)
    harvest_recommendation = db.Column(db.Text)

    scan_type = FRUIT_MATURITY
    prediction_column = 'ripeness_stage'

    def to_dict(self):
        data = self._base_dict()
        data.update({
            'ripeness_stage': self.ripeness_stage,
            'harvest_recommendation': self.harvest_recommendation,
            'solution': self.harvest_recommendation,
            'recommended_products': None,
        })
        return data

    def __repr__(self):
        return f'<FruitRipenessScan {self.scan_uuid} - {self.ripeness_stage}>'


SCAN_MODELS = {
    LEAF_DISEASE: LeafDiseaseScan,
    FRUIT_MATURITY: FruitRipenessScan,
}


def scan_model_for(scan_type):
    return SCAN_MODELS.get(scan_type)


def prediction_for(scan):
    """
    AI prediction of a serialized scan: disease_detected for leaf scans,
    ripeness_stage for fruit scans. Rows without a scan_type fall back to
    an ai_prediction key.
    """
    if not scan:
        return ''
    scan_type = scan.get('scan_type')
    if scan_type == LEAF_DISEASE:
        return scan.get('disease_detected') or ''
    if scan_type == FRUIT_MATURITY:
        return scan.get('ripeness_stage') or ''
    return scan.get('ai_prediction') or ''


def find_scan_by_uuid(scan_uuid):
    """Look the uuid up in both scan tables."""
    for model in SCAN_MODELS.values():
        scan = model.query.filter_by(scan_uuid=scan_uuid).first()
        if scan:
            return scan
    return None
