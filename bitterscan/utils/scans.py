# Scan Collection and Validation Helpers
import re
from bitterscan.models import (
    db, Profile, LeafDiseaseScan, FruitRipenessScan, ValidationHistory, scan_model_for
)
from bitterscan.models.scan import PENDING_STATUSES
from bitterscan.utils.timestamps import utcnow, parse_timestamp

UUID_PATTERN = re.compile(r'^[0-9a-f]{8}-[0-9a-f]{4}-[0-9a-f]{4}-[0-9a-f]{4}-[0-9a-f]{12}$', re.IGNORECASE)


class ValidationError(Exception):
    """A validation request that cannot be applied; carries the HTTP status."""

    def __init__(self, message, status=400):
        super().__init__(message)
        self.message = message
        self.status = status


def is_uuid(value):
    return isinstance(value, str) and bool(UUID_PATTERN.match(value))


def _sort_key(timestamp_field):
    def key(row):
        parsed = parse_timestamp(row.get(timestamp_field))
        return parsed.timestamp() if parsed else 0.0
    return key


def profiles_by_id(user_ids):
    user_ids = [uid for uid in set(user_ids) if uid]
    if not user_ids:
        return {}
    rows = Profile.query.filter(Profile.id.in_(user_ids)).all()
    return {row.id: row.summary() for row in rows}


def collect_scans(with_profiles=True):
    """
    Both scan tables merged into one list, newest first. Each entry carries
    scan_type, the derived ai_prediction and, optionally, the farmer profile.
    """
    leaf_scans = LeafDiseaseScan.query.order_by(LeafDiseaseScan.created_at.desc()).all()
    fruit_scans = FruitRipenessScan.query.order_by(FruitRipenessScan.created_at.desc()).all()
    scans = [scan.to_dict() for scan in leaf_scans] + [scan.to_dict() for scan in fruit_scans]

    if with_profiles:
        profiles = profiles_by_id(scan['farmer_id'] for scan in scans)
        for scan in scans:
            scan['farmer_profile'] = profiles.get(scan['farmer_id'])

    scans.sort(key=_sort_key('created_at'), reverse=True)
    return scans


def collect_validation_history(scans=None):
    """Validation records, newest first, joined with their scan and expert profile."""
    records = ValidationHistory.query.order_by(ValidationHistory.validated_at.desc()).all()
    if scans is None:
        scans = collect_scans()
    scans_by_uuid = {scan['scan_uuid']: scan for scan in scans}
    experts = profiles_by_id(record.expert_id for record in records)

    history = []
    for record in records:
        data = record.to_dict()
        data['scan'] = scans_by_uuid.get(str(record.scan_id).strip())
        data['expert_profile'] = experts.get(record.expert_id)
        history.append(data)
    return history


def record_validation(scan, expert, action, correction=None, comment=None):
    """
    Record an expert decision on a scan.

    Confirming stores the AI prediction as the expert's answer; correcting
    stores the supplied correction. Either way the scan ends up Validated and
    the history row keeps which of the two happened.
    """
    if action not in ('confirm', 'correct'):
        raise ValidationError("Invalid action. Expected 'confirm' or 'correct'.")
    if not is_uuid(scan.scan_uuid):
        raise ValidationError('Invalid scan UUID. Cannot create validation history.')
    if scan.status not in PENDING_STATUSES:
        # Another expert got there first
        raise ValidationError('Scan has already been validated.', 409)

    ai_prediction = scan.ai_prediction
    if not ai_prediction:
        raise ValidationError(f'AI prediction is missing for {scan.scan_type.replace("_", " ")} scan.', 422)

    if action == 'confirm':
        expert_validation = ai_prediction
        history_status = 'Validated'
    else:
        correction = (correction or '').strip()
        if not correction:
            raise ValidationError('Please select or enter the corrected result.')
        expert_validation = correction
        history_status = 'Corrected'

    timestamp = utcnow()
    note = (comment or '').strip()
    record = ValidationHistory(
        scan_id=scan.scan_uuid,
        scan_type=scan.scan_type,
        expert_id=expert.id,
        expert_name=(expert.full_name or '').strip() or 'Unknown Expert',
        ai_prediction=ai_prediction,
        expert_validation=expert_validation,
        expert_comment=note,
        status=history_status,
        validated_at=timestamp,
    )
    scan.status = 'Validated'
    scan.expert_comment = note or None
    scan.updated_at = timestamp
    db.session.add(record)
    db.session.commit()
    return record


def revert_validation(record):
    """Delete a validation record and put its scan back in the pending queue."""
    scan_model = scan_model_for(record.scan_type)
    scan = scan_model.query.filter_by(scan_uuid=record.scan_id).first() if scan_model else None
    db.session.delete(record)
    if scan is not None and scan.status != 'Pending Validation':
        scan.status = 'Pending Validation'
        scan.expert_comment = None
        scan.updated_at = utcnow()
    db.session.commit()
    return scan
