# Flask Application Factory
import os
import sys
from flask import Flask, current_app, g, request
from flask_login import LoginManager
from bitterscan.config import Config
from bitterscan.models import db
from bitterscan.utils.auth import bearer_token, resolve_caller, json_error, auth_error_message
from bitterscan.utils.supabase_auth import SupabaseAuthGateway

login_manager = LoginManager()


@login_manager.request_loader
def load_caller_from_request(req):
    token = bearer_token(req)
    if token is None:
        g.auth_error = 'Missing or invalid authorization header'
        return None
    caller = resolve_caller(token)
    if caller is None:
        g.auth_error = 'Invalid or expired token'
    return caller


@login_manager.unauthorized_handler
def unauthorized():
    current_app.logger.warning('[%s] Unauthorized access attempt: %s', request.path, auth_error_message())
    return json_error(auth_error_message(), 401)


def create_app(config_class=Config, auth_gateway=None):
    app = Flask(__name__)
    app.config.from_object(config_class)

    # Local SQLite database and device caches live under instance/
    os.makedirs(app.instance_path, exist_ok=True)

    # Initialize extensions
    db.init_app(app)
    login_manager.init_app(app)

    # One identity-provider gateway per process; tests inject their own
    if auth_gateway is None:
        auth_gateway = SupabaseAuthGateway(
            app.config.get('SUPABASE_URL'),
            app.config.get('SUPABASE_ANON_KEY'),
            app.config.get('SUPABASE_SERVICE_ROLE_KEY'),
        )
    app.extensions['auth_gateway'] = auth_gateway

    if not app.config.get('SUPABASE_URL') or not app.config.get('SUPABASE_SERVICE_ROLE_KEY'):
        print("WARNING: Supabase credentials are not configured; privileged endpoints will answer 500",
              file=sys.stderr, flush=True)

    # Verify tables exist (no-op against the hosted schema)
    with app.app_context():
        print("INFO: Initializing database...", file=sys.stderr, flush=True)
        db.create_all()
        print("INFO: Database tables created/verified", file=sys.stderr, flush=True)

    # Register blueprints
    from bitterscan.routes.auth import auth_bp
    from bitterscan.routes.main import main_bp
    from bitterscan.routes.expert import expert_bp
    from bitterscan.routes.admin import admin_bp
    from bitterscan.routes.dashboard import dashboard_bp
    app.register_blueprint(auth_bp, url_prefix='/api')
    app.register_blueprint(main_bp)
    app.register_blueprint(expert_bp, url_prefix='/api')
    app.register_blueprint(admin_bp, url_prefix='/api')
    app.register_blueprint(dashboard_bp, url_prefix='/api')

    return app
