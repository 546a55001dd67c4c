# Main Routes
from flask import Blueprint, jsonify, current_app
from sqlalchemy import text
from bitterscan.models import db, Profile

main_bp = Blueprint('main', __name__)


@main_bp.route('/')
def index():
    return jsonify({'service': 'bitterscan-dashboard', 'status': 'ok'}), 200


@main_bp.route('/api/health')
def health():
    """Database reachability and whether the privileged credentials are set."""
    config = current_app.config
    try:
        db.session.execute(text('SELECT 1'))
        total_profiles = Profile.query.count()
    except Exception as e:
        current_app.logger.exception('[/api/health] Database check failed')
        return jsonify({
            'status': 'error',
            'database': False,
            'message': str(e),
        }), 503

    return jsonify({
        'status': 'success',
        'database': True,
        'total_profiles': total_profiles,
        'supabase_configured': bool(config.get('SUPABASE_URL') and config.get('SUPABASE_SERVICE_ROLE_KEY')),
    }), 200
