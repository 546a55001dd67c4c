# Admin Module Routes
from flask import Blueprint, request, current_app, make_response
from flask_login import current_user
from sqlalchemy import or_
from bitterscan.models import db, Profile
from bitterscan.utils.auth import (
    json_error, json_response, roles_required, service_credentials_required
)
from bitterscan.utils.scans import is_uuid, collect_scans
from bitterscan.utils.analytics import resolve_range, in_range, scans_to_csv, RangeError
from bitterscan.utils.timestamps import utcnow

admin_bp = Blueprint('admin', __name__)

ADMIN_ONLY = 'Admin access required'

# Status transitions an admin may apply, with the not-found message for each
TRANSITIONS = {
    'approved': 'User not found or already approved',
    'rejected': 'User not found or already rejected',
}

# ==================== USER MANAGEMENT ====================

@admin_bp.route('/users')
@service_credentials_required
@roles_required('admin', message=ADMIN_ONLY)
def list_users():
    current_app.logger.info('[/api/users] Admin access granted: %s', current_user.email)
    try:
        profiles = Profile.query.order_by(Profile.created_at.desc()).all()
    except Exception as e:
        current_app.logger.exception('[/api/users] Query failed')
        return json_error(str(e) or 'Database query failed', 500, 'no-store, no-cache, must-revalidate')

    max_age = current_app.config.get('USERS_CACHE_MAX_AGE', 60)
    return json_response(
        {'profiles': [profile.to_dict() for profile in profiles], 'count': len(profiles)},
        cache_control=f'private, max-age={max_age}'
    )


def _read_user_id():
    """Return (user_id, error_response)."""
    body = request.get_json(silent=True)
    if not isinstance(body, dict):
        return None, json_error('Invalid JSON in request body', 400)
    user_id = body.get('userId')
    if not user_id:
        return None, json_error('Missing userId parameter', 400)
    if not isinstance(user_id, str):
        return None, json_error('Invalid userId format. Expected string.', 400)
    if not is_uuid(user_id):
        return None, json_error('Invalid userId format. Expected UUID.', 400)
    return user_id, None


def _transition_user(new_status, endpoint):
    user_id, error = _read_user_id()
    if error is not None:
        return error

    current_app.logger.info('[%s] Admin action by: %s', endpoint, current_user.email)
    try:
        # Only expert/farmer rows not already in the target status are touched
        profile = Profile.query.filter(
            Profile.id == user_id,
            Profile.role.in_(('expert', 'farmer')),
            or_(Profile.status.is_(None), Profile.status != new_status),
        ).first()
        if profile is None:
            return json_error(TRANSITIONS[new_status], 404)

        profile.status = new_status
        profile.updated_at = utcnow()
        db.session.commit()
    except Exception as e:
        db.session.rollback()
        current_app.logger.exception('[%s] Update failed', endpoint)
        return json_error(str(e) or 'Failed to update user', 500)

    verb = 'approved' if new_status == 'approved' else 'rejected'
    return json_response({
        'success': True,
        'profile': profile.to_dict(),
        'message': f'User {verb} successfully'
    })


@admin_bp.route('/users/approve', methods=['POST'])
@service_credentials_required
@roles_required('admin', message=ADMIN_ONLY)
def approve_user():
    return _transition_user('approved', '/api/users/approve')


@admin_bp.route('/users/reject', methods=['POST'])
@service_credentials_required
@roles_required('admin', message=ADMIN_ONLY)
def reject_user():
    return _transition_user('rejected', '/api/users/reject')

# ==================== REPORTS ====================

@admin_bp.route('/reports/scans.csv')
@service_credentials_required
@roles_required('admin', message=ADMIN_ONLY)
def export_scans():
    try:
        start, end = resolve_range(
            request.args.get('range', 'all'),
            request.args.get('start'),
            request.args.get('end'),
        )
    except RangeError as e:
        return json_error(str(e), 400)

    scans = [scan for scan in collect_scans() if in_range(scan.get('created_at'), start, end)]
    response = make_response(scans_to_csv(scans))
    response.headers['Content-Type'] = 'text/csv; charset=utf-8'
    response.headers['Content-Disposition'] = f'attachment; filename=scans_{utcnow():%Y%m%d}.csv'
    response.headers['Cache-Control'] = 'no-store'
    return response
