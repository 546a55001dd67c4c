# Bearer-Token Authentication Helpers
from functools import wraps
from flask import current_app, g, jsonify
from flask_login import UserMixin, current_user
from bitterscan.models import db, Profile
from bitterscan.utils.access import access_profile_for, dashboard_route_for, ACCESS_ERRORS


class Caller(UserMixin):
    """An authenticated identity plus its profile row (which may be missing)."""

    def __init__(self, identity, profile=None):
        self.identity = identity
        self.profile = profile

    def get_id(self):
        return self.identity.id

    @property
    def id(self):
        return self.identity.id

    @property
    def email(self):
        return self.identity.email

    @property
    def role(self):
        return self.profile.role if self.profile else None

    @property
    def access(self):
        return access_profile_for(self.profile)

    def __repr__(self):
        return f'<Caller {self.email} ({self.role})>'


def json_error(message, status, cache_control='no-store'):
    response = jsonify({'error': message})
    response.status_code = status
    response.headers['Cache-Control'] = cache_control
    return response


def json_response(payload, status=200, cache_control='no-store'):
    response = jsonify(payload)
    response.status_code = status
    response.headers['Cache-Control'] = cache_control
    return response


def bearer_token(request):
    header = request.headers.get('Authorization', '')
    if not header.startswith('Bearer '):
        return None
    token = header[len('Bearer '):].strip()
    return token or None


def get_auth_gateway():
    return current_app.extensions['auth_gateway']


def provision_bootstrap_admin(identity):
    """
    Create the first admin profile for BOOTSTRAP_ADMIN_EMAIL.

    Only applies while no admin profile exists, so the configured address
    cannot mint a second admin later on.
    """
    bootstrap_email = current_app.config.get('BOOTSTRAP_ADMIN_EMAIL')
    if not bootstrap_email or not identity.email:
        return None
    if identity.email.strip().lower() != bootstrap_email.strip().lower():
        return None
    if Profile.query.filter_by(role='admin').first():
        return None

    email = identity.email.strip().lower()
    profile = Profile(
        id=identity.id,
        email=email,
        username=identity.metadata.get('username') or email.split('@')[0],
        full_name=identity.metadata.get('full_name') or 'Administrator',
        role='admin',
        status='approved',
    )
    try:
        db.session.add(profile)
        db.session.commit()
        current_app.logger.info('[auth] Provisioned bootstrap admin %s', email)
    except Exception:
        db.session.rollback()
        current_app.logger.exception('[auth] Could not provision bootstrap admin %s', email)
        return None
    return profile


def resolve_caller(token):
    """Verify the token with the identity provider and attach the profile row."""
    identity = get_auth_gateway().get_identity(token)
    if identity is None:
        return None
    profile = db.session.get(Profile, identity.id)
    if profile is None:
        profile = provision_bootstrap_admin(identity)
    return Caller(identity, profile)


def service_credentials_required(view):
    """Answer 500 when the privileged backend credentials are not configured."""
    @wraps(view)
    def wrapper(*args, **kwargs):
        config = current_app.config
        if not config.get('SUPABASE_URL') or not config.get('SUPABASE_SERVICE_ROLE_KEY'):
            current_app.logger.error('[auth] Missing Supabase credentials: url=%s service_key=%s',
                                     bool(config.get('SUPABASE_URL')),
                                     bool(config.get('SUPABASE_SERVICE_ROLE_KEY')))
            return json_error('Server configuration error. Missing Supabase credentials.', 500)
        return view(*args, **kwargs)
    return wrapper


def roles_required(*roles, message=None):
    """
    Require an authenticated caller whose profile grants dashboard access
    and whose role is one of roles.
    """
    def decorator(view):
        @wraps(view)
        def wrapper(*args, **kwargs):
            if not current_user.is_authenticated:
                return current_app.login_manager.unauthorized()
            access = current_user.access
            if not access.can_access_dashboard:
                current_app.logger.warning('[auth] Dashboard access denied for %s (role=%s status=%s)',
                                           current_user.email, access.role, access.status)
                return json_response({'error': access.error_message, 'redirect': '/login'}, 403)
            if access.role not in roles:
                current_app.logger.warning('[auth] Role %s not allowed for %s', access.role, current_user.email)
                return json_response({
                    'error': message or ACCESS_ERRORS['ROLE_MISMATCH'],
                    'redirect': dashboard_route_for(access.role),
                }, 403)
            return view(*args, **kwargs)
        return wrapper
    return decorator


def login_required_json(view):
    """Authenticated caller of any role."""
    @wraps(view)
    def wrapper(*args, **kwargs):
        if not current_user.is_authenticated:
            return current_app.login_manager.unauthorized()
        return view(*args, **kwargs)
    return wrapper


def auth_error_message():
    return g.get('auth_error') or 'Authentication required'
