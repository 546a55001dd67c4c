# Dashboard JSON API Client
import logging
import requests

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT = 10


class ApiError(Exception):
    """Non-authorization failure answered by the dashboard API."""

    def __init__(self, message, status=None, payload=None):
        super().__init__(message)
        self.message = message
        self.status = status
        self.payload = payload or {}


class AccessDenied(ApiError):
    """401/403: the caller must be sent elsewhere, never retried."""

    def __init__(self, message, status, redirect='/login', payload=None):
        super().__init__(message, status, payload)
        self.redirect = redirect


class ConflictError(ApiError):
    """409 from an optimistic-concurrency check; current holds the server row."""

    @property
    def current(self):
        return self.payload.get('current')


class DashboardApi:
    """
    Thin requests-based client for the dashboard endpoints.

    One instance per signed-in session; close() on logout.
    """

    def __init__(self, base_url, access_token=None, session=None, timeout=DEFAULT_TIMEOUT):
        self.base_url = base_url.rstrip('/')
        self.access_token = access_token
        self.session = session or requests.Session()
        self.timeout = timeout

    def _headers(self):
        headers = {'Accept': 'application/json'}
        if self.access_token:
            headers['Authorization'] = f'Bearer {self.access_token}'
        return headers

    def _request(self, method, path, **kwargs):
        url = f'{self.base_url}{path}'
        response = self.session.request(method, url, headers=self._headers(), timeout=self.timeout, **kwargs)
        try:
            payload = response.json()
        except ValueError:
            payload = {}
        if not isinstance(payload, dict):
            payload = {'data': payload}

        if response.status_code in (401, 403):
            message = payload.get('error') or 'Access denied'
            logger.warning('%s %s -> %s: %s', method, path, response.status_code, message)
            raise AccessDenied(message, response.status_code, payload.get('redirect') or '/login', payload)
        if response.status_code == 409:
            raise ConflictError(payload.get('error') or 'Conflict', 409, payload)
        if response.status_code >= 400:
            raise ApiError(payload.get('error') or f'HTTP {response.status_code}', response.status_code, payload)
        return payload

    def close(self):
        self.session.close()

    # Account

    def get_access(self):
        return self._request('GET', '/api/auth/access')

    def get_profile(self):
        return self._request('GET', '/api/profile')['profile']

    def update_profile(self, full_name=None, username=None):
        body = {}
        if full_name is not None:
            body['fullName'] = full_name
        if username is not None:
            body['username'] = username
        return self._request('PATCH', '/api/profile', json=body)['profile']

    def register(self, email, password, username, full_name):
        return self._request('POST', '/api/auth/register', json={
            'email': email,
            'password': password,
            'username': username,
            'fullName': full_name,
        })

    # Scans and validation

    def list_scans(self):
        return self._request('GET', '/api/scans')

    def validate_scan(self, scan_uuid, action, correction=None, comment=None):
        return self._request('POST', f'/api/scans/{scan_uuid}/validate', json={
            'action': action,
            'correction': correction,
            'comment': comment,
        })

    def delete_validation(self, validation_id):
        return self._request('DELETE', f'/api/validations/{validation_id}')

    # Users

    def list_users(self):
        return self._request('GET', '/api/users')['profiles']

    def approve_user(self, user_id):
        return self._request('POST', '/api/users/approve', json={'userId': user_id})

    def reject_user(self, user_id):
        return self._request('POST', '/api/users/reject', json={'userId': user_id})

    # Disease information

    def list_disease_info(self):
        return self._request('GET', '/api/disease-info')['diseases']

    def update_disease_info(self, disease_id, fields, expected_updated_at=None, overwrite=False):
        body = dict(fields)
        body['expectedUpdatedAt'] = expected_updated_at
        body['overwrite'] = overwrite
        return self._request('PUT', f'/api/disease-info/{disease_id}', json=body)['disease']

    # Notifications and analytics

    def get_notifications(self):
        return self._request('GET', '/api/notifications')

    def mark_read(self, scan_ids=(), user_ids=(), mark_all=False):
        return self._request('POST', '/api/notifications/read', json={
            'scanIds': list(scan_ids),
            'userIds': list(user_ids),
            'all': mark_all,
        })

    def get_analytics(self, range_name='all', start=None, end=None):
        params = {'range': range_name}
        if start:
            params['start'] = start
        if end:
            params['end'] = end
        return self._request('GET', '/api/analytics', params=params)

    def __repr__(self):
        return f'<DashboardApi {self.base_url}>'
