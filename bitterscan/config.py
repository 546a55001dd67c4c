# Application Configuration
import os
from pathlib import Path
from dotenv import load_dotenv

basedir = Path(__file__).parent.parent

load_dotenv(basedir / '.env')


def _env(*names):
    """Return the first non-empty environment variable among names."""
    for name in names:
        value = os.environ.get(name)
        if value and value.strip():
            return value.strip()
    return None


class Config:
    SECRET_KEY = os.environ.get('SECRET_KEY') or 'dev-secret-key-change-in-production'

    # Supabase exposes a regular Postgres connection string; SQLite for local runs
    database_url = os.environ.get('DATABASE_URL')
    if database_url:
        # Supabase/Render hand out postgres:// but SQLAlchemy needs postgresql://
        if database_url.startswith('postgres://'):
            database_url = database_url.replace('postgres://', 'postgresql://', 1)
        SQLALCHEMY_DATABASE_URI = database_url
    else:
        SQLALCHEMY_DATABASE_URI = f'sqlite:///{basedir / "instance" / "bitterscan.db"}'

    SQLALCHEMY_TRACK_MODIFICATIONS = False

    # Supabase credentials: public tier for token checks, service role for admin operations
    SUPABASE_URL = _env('SUPABASE_URL', 'NEXT_PUBLIC_SUPABASE_URL')
    SUPABASE_ANON_KEY = _env('SUPABASE_ANON_KEY', 'NEXT_PUBLIC_SUPABASE_ANON_KEY')
    SUPABASE_SERVICE_ROLE_KEY = _env('SUPABASE_SERVICE_ROLE_KEY')

    # First-login admin provisioning
    BOOTSTRAP_ADMIN_EMAIL = _env('BOOTSTRAP_ADMIN_EMAIL')

    # Cache-Control max-age (seconds) for read endpoints
    SCANS_CACHE_MAX_AGE = 30
    USERS_CACHE_MAX_AGE = 60

    # Readiness budgets (seconds) used by the live layer
    SESSION_TIMEOUT = float(os.environ.get('SESSION_TIMEOUT') or 12.0)
    DATA_TIMEOUT = float(os.environ.get('DATA_TIMEOUT') or 10.0)

    # Device-side notification read-state cache
    READ_STATE_CACHE_DIR = basedir / 'instance' / 'read_state'


class TestingConfig(Config):
    TESTING = True
    SQLALCHEMY_DATABASE_URI = 'sqlite://'
    SUPABASE_URL = 'http://localhost:54321'
    SUPABASE_ANON_KEY = 'test-anon-key'
    SUPABASE_SERVICE_ROLE_KEY = 'test-service-role-key'
    BOOTSTRAP_ADMIN_EMAIL = None
