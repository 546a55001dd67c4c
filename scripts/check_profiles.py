import sys
import os
sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..'))

from bitterscan import create_app
from bitterscan.models import Profile
from bitterscan.utils.access import access_profile_for

app = create_app()
with app.app_context():
    profiles = Profile.query.order_by(Profile.created_at.asc()).all()
    print(f'All profiles in database ({len(profiles)}):')
    for p in profiles:
        access = access_profile_for(p)
        verdict = access.dashboard_route if access.can_access_dashboard else f'denied: {access.error_message}'
        print(f'  {p.id}  {p.email:<30} {p.role:<7} {p.status or "-":<9} {verdict}')
