# Authentication Routes
import re
from flask import Blueprint, request, current_app
from flask_login import current_user
from sqlalchemy.exc import IntegrityError
from bitterscan.models import db, Profile
from bitterscan.utils.auth import (
    json_error, json_response, login_required_json,
    service_credentials_required, get_auth_gateway
)
from bitterscan.utils.supabase_auth import AuthGatewayError, IdentityExistsError
from bitterscan.utils.access import ACCESS_ERRORS
from bitterscan.utils.timestamps import utcnow

auth_bp = Blueprint('auth', __name__)

EMAIL_PATTERN = re.compile(r'^[^\s@]+@[^\s@]+\.[^\s@]+$')
MIN_PASSWORD_LENGTH = 8

DUPLICATE_EMAIL = 'An account with this email already exists'
DUPLICATE_USERNAME = 'This username is already taken'

# ==================== REGISTRATION ====================

@auth_bp.route('/auth/register', methods=['POST'])
@service_credentials_required
def register():
    body = request.get_json(silent=True)
    if not isinstance(body, dict):
        return json_error('Invalid JSON in request body', 400)

    email = body.get('email')
    password = body.get('password')
    username = body.get('username')
    full_name = body.get('fullName')

    # Validation
    if not all(isinstance(value, str) and value.strip() for value in (email, password, username, full_name)):
        return json_response({
            'error': 'Missing required fields',
            'details': 'Email, password, username, and full name are required.'
        }, 400)

    email = email.strip().lower()
    username = username.strip()
    full_name = full_name.strip()

    if not EMAIL_PATTERN.match(email):
        return json_error('Invalid email format', 400)

    if len(password) < MIN_PASSWORD_LENGTH:
        return json_error('Password must be at least 8 characters long', 400)

    if Profile.query.filter_by(email=email).first():
        return json_error(DUPLICATE_EMAIL, 409)

    if Profile.query.filter_by(username=username).first():
        return json_error(DUPLICATE_USERNAME, 409)

    gateway = get_auth_gateway()
    try:
        identity = gateway.create_identity(email, password, {
            'full_name': full_name,
            'username': username,
            'role': 'expert',
        })
    except IdentityExistsError:
        return json_error(DUPLICATE_EMAIL, 409)
    except AuthGatewayError as e:
        current_app.logger.error('[/api/auth/register] Auth error: %s', e)
        return json_error(str(e) or 'Failed to create user account', 500)

    # Experts require admin approval
    now = utcnow()
    profile = Profile(
        id=identity.id,
        email=email,
        username=username,
        full_name=full_name,
        role='expert',
        status='pending',
        created_at=now,
        updated_at=now,
    )
    try:
        db.session.add(profile)
        db.session.commit()
    except Exception as e:
        db.session.rollback()
        current_app.logger.error('[/api/auth/register] Profile creation error: %s', e)

        # Keep identities and profiles one-to-one
        try:
            gateway.delete_identity(identity.id)
        except AuthGatewayError as cleanup_error:
            current_app.logger.error('[/api/auth/register] Could not roll back identity %s: %s',
                                     identity.id, cleanup_error)

        if isinstance(e, IntegrityError):
            message = str(e.orig).lower()
            if 'username' in message:
                return json_error(DUPLICATE_USERNAME, 409)
            if 'email' in message:
                return json_error(DUPLICATE_EMAIL, 409)
        return json_error('Failed to create user profile', 500)

    current_app.logger.info('[/api/auth/register] Registered expert %s (pending approval)', email)
    return json_response({
        'success': True,
        'message': 'Registration successful! Please wait for admin approval before logging in.',
        'user': {
            'id': identity.id,
            'email': email,
            'username': username,
            'role': 'expert',
            'status': 'pending',
        }
    }, 201)

# ==================== ACCESS CHECK ====================

@auth_bp.route('/auth/access')
@login_required_json
def access():
    """Where the login screen should send the caller, or why it cannot."""
    access_profile = current_user.access
    return json_response({
        'userId': current_user.id,
        'email': current_user.email,
        'role': access_profile.role if current_user.profile else None,
        'status': access_profile.status,
        'canAccessDashboard': access_profile.can_access_dashboard,
        'dashboardRoute': access_profile.dashboard_route,
        'error': access_profile.error_message,
    })

# ==================== PROFILE ====================

@auth_bp.route('/profile')
@login_required_json
def get_profile():
    if current_user.profile is None:
        return json_error(ACCESS_ERRORS['NO_PROFILE'], 404)
    return json_response({'profile': current_user.profile.to_dict()}, cache_control='private, max-age=0')


@auth_bp.route('/profile', methods=['PATCH'])
@login_required_json
def update_profile():
    profile = current_user.profile
    if profile is None:
        return json_error(ACCESS_ERRORS['NO_PROFILE'], 404)

    body = request.get_json(silent=True)
    if not isinstance(body, dict):
        return json_error('Invalid JSON in request body', 400)

    full_name = body.get('fullName', profile.full_name)
    username = body.get('username', profile.username)
    if not isinstance(full_name, str) or not full_name.strip():
        return json_error('Full name is required', 400)
    if not isinstance(username, str) or len(username.strip()) < 3:
        return json_error('Username must be at least 3 characters long', 400)

    username = username.strip()
    taken = Profile.query.filter(Profile.username == username, Profile.id != profile.id).first()
    if taken:
        return json_error(DUPLICATE_USERNAME, 409)

    profile.full_name = full_name.strip()
    profile.username = username
    profile.updated_at = utcnow()
    try:
        db.session.commit()
    except Exception as e:
        db.session.rollback()
        current_app.logger.error('[/api/profile] Update failed: %s', e)
        return json_error(f'Failed to update profile: {e}', 500)

    return json_response({'success': True, 'profile': profile.to_dict()})
