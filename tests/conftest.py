import uuid
from datetime import timedelta

import pytest
from flask import g

from bitterscan import create_app
from bitterscan.config import TestingConfig
from bitterscan.models import db, Profile, LeafDiseaseScan, FruitRipenessScan, DiseaseInfo
from bitterscan.utils.supabase_auth import AuthIdentity, AuthGatewayError, IdentityExistsError
from bitterscan.utils.timestamps import utcnow


class FakeAuthGateway:
    """In-memory stand-in for the hosted identity provider."""

    configured = True

    def __init__(self):
        self.tokens = {}
        self.identities = {}
        self.deleted = []
        self.fail_create = False

    def add(self, email, token=None, user_id=None, metadata=None):
        identity = AuthIdentity(user_id or str(uuid.uuid4()), email, metadata or {})
        self.identities[identity.id] = identity
        self.tokens[token or f'token-{identity.id}'] = identity
        return identity

    def get_identity(self, access_token):
        identity = self.tokens.get(access_token)
        if identity is None or identity.id not in self.identities:
            return None
        return identity

    def create_identity(self, email, password, metadata=None):
        if self.fail_create:
            raise AuthGatewayError('Auth service unavailable')
        if any(identity.email == email for identity in self.identities.values()):
            raise IdentityExistsError('User already registered')
        return self.add(email, metadata=metadata)

    def delete_identity(self, user_id):
        self.deleted.append(user_id)
        self.identities.pop(user_id, None)


@pytest.fixture
def gateway():
    return FakeAuthGateway()


@pytest.fixture
def app(gateway):
    app = create_app(TestingConfig, auth_gateway=gateway)

    # Requests reuse the pushed app context below, so forget the caller
    # resolved by the previous request
    @app.before_request
    def forget_previous_caller():
        g.pop('_login_user', None)
        g.pop('auth_error', None)

    with app.app_context():
        yield app
        db.session.remove()
        db.drop_all()


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def make_user(app, gateway):
    """Create an identity plus profile; returns (profile, auth headers)."""
    def make(role='expert', status='approved', email=None, username=None, full_name=None, with_profile=True):
        email = email or f'{role}-{uuid.uuid4().hex[:8]}@example.com'
        identity = gateway.add(email)
        profile = None
        if with_profile:
            profile = Profile(
                id=identity.id,
                email=email,
                username=username or email.split('@')[0],
                full_name=full_name or f'{role.title()} User',
                role=role,
                status=status,
            )
            db.session.add(profile)
            db.session.commit()
        headers = {'Authorization': f'Bearer token-{identity.id}'}
        return profile, headers
    return make


@pytest.fixture
def make_scan(app):
    def make(scan_type='leaf_disease', prediction='Cercospora', status='Pending Validation',
             farmer_id=None, age_minutes=0, **extra):
        model = LeafDiseaseScan if scan_type == 'leaf_disease' else FruitRipenessScan
        column = 'disease_detected' if scan_type == 'leaf_disease' else 'ripeness_stage'
        scan = model(
            scan_uuid=str(uuid.uuid4()),
            farmer_id=farmer_id or str(uuid.uuid4()),
            image_url='https://example.com/scan.jpg',
            status=status,
            created_at=utcnow() - timedelta(minutes=age_minutes),
            **{column: prediction},
            **extra
        )
        db.session.add(scan)
        db.session.commit()
        return scan
    return make


@pytest.fixture
def disease(app):
    row = DiseaseInfo(
        disease_id='cercospora',
        disease_name='Cercospora Leaf Spot',
        description_en='Fungal leaf spot.',
        description_bi='Fungal nga mansa sa dahon.',
        treatment_en='Remove infected leaves.',
        treatment_bi='Kuhaa ang mga dahon nga naapektuhan.',
        updated_at=utcnow() - timedelta(days=1),
    )
    db.session.add(row)
    db.session.commit()
    return row
