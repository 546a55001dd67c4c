# Database Models
from bitterscan.models.profile import db, Profile, ROLES, STATUSES
from bitterscan.models.scan import (
    LeafDiseaseScan, FruitRipenessScan, SCAN_MODELS,
    LEAF_DISEASE, FRUIT_MATURITY, SCAN_TYPES,
    scan_model_for, prediction_for, find_scan_by_uuid
)
from bitterscan.models.validation import ValidationHistory, VALIDATION_STATUSES
from bitterscan.models.disease import DiseaseInfo, BILINGUAL_FIELDS, EDITABLE_FIELDS
from bitterscan.models.notification import NotificationRead

__all__ = [
    'db', 'Profile', 'ROLES', 'STATUSES',
    'LeafDiseaseScan', 'FruitRipenessScan', 'SCAN_MODELS',
    'LEAF_DISEASE', 'FRUIT_MATURITY', 'SCAN_TYPES',
    'scan_model_for', 'prediction_for', 'find_scan_by_uuid',
    'ValidationHistory', 'VALIDATION_STATUSES',
    'DiseaseInfo', 'BILINGUAL_FIELDS', 'EDITABLE_FIELDS',
    'NotificationRead'
]
