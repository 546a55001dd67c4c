# Role Access Rules
from collections import namedtuple

DASHBOARD_ROUTES = {
    'admin': '/admin-dashboard',
    'expert': '/expert-dashboard',
    'farmer': None,  # farmers use the mobile app
}

ACCESS_ERRORS = {
    'FARMER_DENIED': 'Access denied: Farmers cannot access the dashboard. Please use the mobile app.',
    'EXPERT_NOT_APPROVED': 'Your account is pending admin approval. Please wait for confirmation.',
    'EXPERT_REJECTED': 'Your account has been rejected. Please contact an administrator.',
    'NO_PROFILE': 'Unable to verify account. Please try again or contact support.',
    'ROLE_MISMATCH': 'You do not have permission to access this page.',
}

ROLE_ROUTES = {
    'admin': (
        '/admin-dashboard', '/reports', '/data-visualization',
        '/history', '/profile', '/manage-disease-info',
    ),
    'expert': (
        '/expert-dashboard', '/dashboard', '/validate',
        '/history', '/profile', '/manage-disease-info', '/register',
    ),
    'farmer': (),
}

AccessProfile = namedtuple(
    'AccessProfile',
    ['role', 'status', 'can_access_dashboard', 'dashboard_route', 'error_message']
)


def normalize_role(role):
    return role if role in ('admin', 'expert') else 'farmer'


def normalize_status(status):
    return status if status in ('pending', 'approved', 'rejected') else None


def check_dashboard_access(role, status):
    """Return (allowed, error_message) for a normalized role and status."""
    if role == 'farmer':
        return False, ACCESS_ERRORS['FARMER_DENIED']
    if role == 'admin':
        return True, None
    if role == 'expert':
        if status == 'approved':
            return True, None
        if status == 'rejected':
            return False, ACCESS_ERRORS['EXPERT_REJECTED']
        return False, ACCESS_ERRORS['EXPERT_NOT_APPROVED']
    return False, ACCESS_ERRORS['NO_PROFILE']


def build_access_profile(role, status):
    role = normalize_role(role)
    status = normalize_status(status)
    allowed, error_message = check_dashboard_access(role, status)
    return AccessProfile(
        role=role,
        status=status,
        can_access_dashboard=allowed,
        dashboard_route=DASHBOARD_ROUTES[role] if allowed else None,
        error_message=error_message,
    )


def access_profile_for(profile):
    """Access profile for a Profile row; a missing row is denied with NO_PROFILE."""
    if profile is None:
        return AccessProfile('farmer', None, False, None, ACCESS_ERRORS['NO_PROFILE'])
    return build_access_profile(profile.role, profile.status)


def can_access_route(role, pathname):
    routes = ROLE_ROUTES.get(role, ())
    return any(pathname == route or pathname.startswith(f'{route}/') for route in routes)


def dashboard_route_for(role):
    return DASHBOARD_ROUTES.get(role) or '/login'


def required_role_for(pathname):
    if pathname.startswith('/admin-dashboard'):
        return 'admin'
    if pathname.startswith('/expert-dashboard') or pathname.startswith('/validate'):
        return 'expert'
    # shared pages: any authenticated dashboard user
    return None
