# Dashboard Routes (notifications, analytics)
from flask import Blueprint, request, current_app
from flask_login import current_user
from bitterscan.utils.auth import (
    json_error, json_response, roles_required, service_credentials_required
)
from bitterscan.utils.scans import collect_scans, collect_validation_history
from bitterscan.utils.notifications import (
    pending_scans, pending_users, reconcile, load_read_state, save_read_state
)
from bitterscan.utils.analytics import resolve_range, build_summary, RangeError

dashboard_bp = Blueprint('dashboard', __name__)

EXPERT_OR_ADMIN = 'Expert or Admin access required'

# ==================== NOTIFICATIONS ====================

def _pending_items():
    # Admins are notified about registrations, experts about scans
    if current_user.role == 'admin':
        return [], pending_users()
    return pending_scans(collect_scans(with_profiles=False)), []


def _notification_payload(scans, users, read_scan_ids, read_user_ids):
    return {
        'pendingScans': scans,
        'pendingUsers': [user.to_dict() for user in users],
        'readScanIds': sorted(read_scan_ids),
        'readUserIds': sorted(read_user_ids),
        'unreadScanCount': sum(1 for scan in scans if scan['id'] not in read_scan_ids),
        'unreadUserCount': sum(1 for user in users if user.id not in read_user_ids),
    }


@dashboard_bp.route('/notifications')
@service_credentials_required
@roles_required('expert', 'admin', message=EXPERT_OR_ADMIN)
def notifications():
    try:
        scans, users = _pending_items()
        read_scan_ids, read_user_ids = load_read_state(current_user.id)
        read_scan_ids, read_user_ids, changed = reconcile(
            read_scan_ids, read_user_ids,
            [scan['id'] for scan in scans], [user.id for user in users]
        )
        if changed:
            current_app.logger.debug('[/api/notifications] Pruned stale read markers for %s', current_user.email)
            save_read_state(current_user.id, read_scan_ids, read_user_ids)
    except Exception as e:
        current_app.logger.exception('[/api/notifications] Failed to load notifications')
        return json_error(f'Failed to load notifications: {e}', 500)

    return json_response(_notification_payload(scans, users, read_scan_ids, read_user_ids),
                         cache_control='private, max-age=0')


@dashboard_bp.route('/notifications/read', methods=['POST'])
@service_credentials_required
@roles_required('expert', 'admin', message=EXPERT_OR_ADMIN)
def mark_notifications_read():
    body = request.get_json(silent=True)
    if not isinstance(body, dict):
        return json_error('Invalid JSON in request body', 400)

    scan_ids = body.get('scanIds') or []
    user_ids = body.get('userIds') or []
    if not isinstance(scan_ids, list) or not all(isinstance(sid, int) and not isinstance(sid, bool) for sid in scan_ids):
        return json_error('Invalid scanIds. Expected a list of integers.', 400)
    if not isinstance(user_ids, list) or not all(isinstance(uid, str) for uid in user_ids):
        return json_error('Invalid userIds. Expected a list of strings.', 400)

    try:
        scans, users = _pending_items()
        read_scan_ids, read_user_ids = load_read_state(current_user.id)
        if body.get('all'):
            read_scan_ids |= {scan['id'] for scan in scans}
            read_user_ids |= {user.id for user in users}
        read_scan_ids |= set(scan_ids)
        read_user_ids |= set(user_ids)

        # Markers may only reference items that are still pending
        read_scan_ids, read_user_ids, _ = reconcile(
            read_scan_ids, read_user_ids,
            [scan['id'] for scan in scans], [user.id for user in users]
        )
        save_read_state(current_user.id, read_scan_ids, read_user_ids)
    except Exception as e:
        current_app.logger.exception('[/api/notifications/read] Failed to save read state')
        return json_error(f'Failed to save read state: {e}', 500)

    payload = _notification_payload(scans, users, read_scan_ids, read_user_ids)
    payload['success'] = True
    return json_response(payload)

# ==================== ANALYTICS ====================

@dashboard_bp.route('/analytics')
@service_credentials_required
@roles_required('expert', 'admin', message=EXPERT_OR_ADMIN)
def analytics():
    range_name = request.args.get('range', 'all')
    try:
        start, end = resolve_range(range_name, request.args.get('start'), request.args.get('end'))
    except RangeError as e:
        return json_error(str(e), 400)

    try:
        scans = collect_scans(with_profiles=False)
        validations = collect_validation_history(scans)
        summary = build_summary(scans, validations, start, end)
    except Exception as e:
        current_app.logger.exception('[/api/analytics] Failed to build analytics')
        return json_error(f'Failed to build analytics: {e}', 500)

    summary['range'] = {
        'name': range_name,
        'start': start.isoformat() if start else None,
        'end': end.isoformat() if end else None,
    }
    return json_response(summary, cache_control='private, max-age=30')
