# Notification Helpers
from bitterscan.models import db, Profile, NotificationRead, prediction_for


def is_pending_scan(scan):
    """Scans waiting on an expert; Unknown and non-ampalaya results never notify."""
    if scan.get('status') != 'Pending Validation':
        return False
    prediction = prediction_for(scan)
    if prediction == 'Unknown':
        return False
    lowered = prediction.lower()
    if 'non-ampalaya' in lowered or 'non ampalaya' in lowered:
        return False
    return True


def pending_scans(scans):
    return [scan for scan in scans if is_pending_scan(scan)]


def pending_users():
    return Profile.query.filter_by(status='pending').order_by(Profile.created_at.desc()).all()


def reconcile(read_scan_ids, read_user_ids, pending_scan_ids, pending_user_ids):
    """
    Drop read markers whose item left the pending set.

    Returns (read_scan_ids, read_user_ids, changed).
    """
    pending_scan_ids = set(pending_scan_ids)
    pending_user_ids = set(pending_user_ids)
    kept_scans = {sid for sid in read_scan_ids if sid in pending_scan_ids}
    kept_users = {uid for uid in read_user_ids if uid in pending_user_ids}
    changed = kept_scans != set(read_scan_ids) or kept_users != set(read_user_ids)
    return kept_scans, kept_users, changed


def load_read_state(user_id):
    row = db.session.get(NotificationRead, user_id)
    if row is None:
        return set(), set()
    scan_ids = {sid for sid in (row.read_scan_ids or []) if isinstance(sid, int)}
    user_ids = {uid for uid in (row.read_user_ids or []) if isinstance(uid, str)}
    return scan_ids, user_ids


def save_read_state(user_id, read_scan_ids, read_user_ids):
    row = db.session.get(NotificationRead, user_id)
    if row is None:
        row = NotificationRead(user_id=user_id)
        db.session.add(row)
    row.read_scan_ids = sorted(read_scan_ids)
    row.read_user_ids = sorted(read_user_ids)
    db.session.commit()
    return row
