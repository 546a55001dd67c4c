# Supabase Auth Gateway
from collections import namedtuple
from supabase import AuthError, create_client

AuthIdentity = namedtuple('AuthIdentity', ['id', 'email', 'metadata'])


class AuthGatewayError(Exception):
    """The identity provider refused or failed an operation."""


class IdentityExistsError(AuthGatewayError):
    """An identity with this email is already registered."""


class SupabaseAuthGateway:
    """
    Wraps the hosted auth provider.

    Token verification uses the public (anon) tier; creating and deleting
    identities needs the service-role tier. Clients are built on first use
    and live as long as the gateway, which the app factory creates once per
    process.
    """

    def __init__(self, url, anon_key=None, service_role_key=None):
        self.url = url
        self.anon_key = anon_key
        self.service_role_key = service_role_key
        self._public_client = None
        self._admin_client = None

    @property
    def configured(self):
        return bool(self.url and self.service_role_key)

    def _public(self):
        if self._public_client is None:
            self._public_client = create_client(self.url, self.anon_key or self.service_role_key)
        return self._public_client

    def _admin(self):
        if not self.configured:
            raise AuthGatewayError('Missing SUPABASE_URL or SUPABASE_SERVICE_ROLE_KEY')
        if self._admin_client is None:
            self._admin_client = create_client(self.url, self.service_role_key)
        return self._admin_client

    def get_identity(self, access_token):
        """Resolve a bearer token to an identity, or None when the provider rejects it."""
        if not access_token:
            return None
        try:
            response = self._public().auth.get_user(access_token)
        except AuthError:
            return None
        user = getattr(response, 'user', None)
        if user is None:
            return None
        return AuthIdentity(user.id, user.email, dict(user.user_metadata or {}))

    def create_identity(self, email, password, metadata=None):
        try:
            response = self._admin().auth.admin.create_user({
                'email': email,
                'password': password,
                'email_confirm': True,
                'user_metadata': metadata or {},
            })
        except AuthError as e:
            message = str(getattr(e, 'message', '') or e)
            lowered = message.lower()
            if 'already registered' in lowered or 'already exists' in lowered:
                raise IdentityExistsError(message) from e
            raise AuthGatewayError(message) from e
        user = getattr(response, 'user', None)
        if user is None:
            raise AuthGatewayError('Failed to create user account - no user data returned')
        return AuthIdentity(user.id, user.email, dict(user.user_metadata or {}))

    def delete_identity(self, user_id):
        try:
            self._admin().auth.admin.delete_user(user_id)
        except AuthError as e:
            raise AuthGatewayError(str(getattr(e, 'message', '') or e)) from e
