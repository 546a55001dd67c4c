# Disease Knowledge Base Model
from bitterscan.models.profile import db
from bitterscan.utils.timestamps import utcnow, to_iso

# English field -> Bisaya translation
BILINGUAL_FIELDS = (
    ('description_en', 'description_bi'),
    ('symptoms_en', 'symptoms_bi'),
    ('treatment_en', 'treatment_bi'),
    ('products_en', 'products_bi'),
    ('prevention_en', 'prevention_bi'),
)

EDITABLE_FIELDS = tuple(field for pair in BILINGUAL_FIELDS for field in pair)


class DiseaseInfo(db.Model):
    __tablename__ = 'disease_info'

    disease_id = db.Column(db.String(64), primary_key=True)
    disease_name = db.Column(db.String(120), nullable=False)
    description_en = db.Column(db.Text)
    description_bi = db.Column(db.Text)
    symptoms_en = db.Column(db.Text)
    symptoms_bi = db.Column(db.Text)
    treatment_en = db.Column(db.Text)
    treatment_bi = db.Column(db.Text)
    products_en = db.Column(db.Text)
    products_bi = db.Column(db.Text)
    prevention_en = db.Column(db.Text)
    prevention_bi = db.Column(db.Text)
    last_updated_by = db.Column(db.String(36))
    updated_at = db.Column(db.DateTime(timezone=True), default=utcnow)

    def to_dict(self):
        data = {
            'disease_id': self.disease_id,
            'disease_name': self.disease_name,
            'last_updated_by': self.last_updated_by,
            'updated_at': to_iso(self.updated_at),
        }
        for field in EDITABLE_FIELDS:
            data[field] = getattr(self, field)
        return data

    def __repr__(self):
        return f'<DiseaseInfo {self.disease_id} - {self.disease_name}>'
