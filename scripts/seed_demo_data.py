#!/usr/bin/env python3
"""
Demo Data Seeding Script
Fills a local database with demo profiles, scans and disease information.
Profiles get fixed ids; create matching identities in the auth provider
(or set BOOTSTRAP_ADMIN_EMAIL) to sign in as them.
"""

import sys
import os
import uuid
from datetime import timedelta
sys.path.append(os.path.abspath(os.path.join(os.path.dirname(__file__), '..')))

from bitterscan import create_app
from bitterscan.models import db, Profile, LeafDiseaseScan, FruitRipenessScan, DiseaseInfo
from bitterscan.utils.timestamps import utcnow

DEMO_PROFILES = [
    {
        'id': '00000000-0000-4000-8000-000000000001',
        'username': 'admin_demo',
        'email': 'admin@demo.com',
        'full_name': 'Admin User',
        'role': 'admin',
        'status': 'approved',
    },
    {
        'id': '00000000-0000-4000-8000-000000000002',
        'username': 'expert_demo',
        'email': 'expert@demo.com',
        'full_name': 'Dr. Demo Expert',
        'role': 'expert',
        'status': 'approved',
    },
    {
        'id': '00000000-0000-4000-8000-000000000003',
        'username': 'pending_expert',
        'email': 'pending@demo.com',
        'full_name': 'Pending Expert',
        'role': 'expert',
        'status': 'pending',
    },
    {
        'id': '00000000-0000-4000-8000-000000000004',
        'username': 'farmer_demo',
        'email': 'farmer@demo.com',
        'full_name': 'Demo Farmer',
        'role': 'farmer',
        'status': 'approved',
    },
]

DEMO_DISEASES = [
    {
        'disease_id': 'cercospora',
        'disease_name': 'Cercospora Leaf Spot',
        'description_en': 'Fungal disease causing circular brown spots on leaves.',
        'treatment_en': 'Remove infected leaves and apply a copper-based fungicide.',
    },
    {
        'disease_id': 'downy_mildew',
        'disease_name': 'Downy Mildew',
        'description_en': 'Yellow angular patches on the upper leaf surface.',
        'treatment_en': 'Improve air circulation and apply a protectant fungicide.',
    },
    {
        'disease_id': 'yellow_mosaic',
        'disease_name': 'Yellow Mosaic Virus',
        'description_en': 'Mottled yellow and green leaves spread by whiteflies.',
        'treatment_en': 'Remove infected plants and control the whitefly population.',
    },
]


def seed_demo_data():
    app = create_app()

    with app.app_context():
        if Profile.query.filter_by(username='admin_demo').first():
            print("Demo data already exists. Skipping seeding.")
            return

        now = utcnow()
        farmer_id = DEMO_PROFILES[3]['id']
        try:
            for data in DEMO_PROFILES:
                db.session.add(Profile(**data))

            for data in DEMO_DISEASES:
                db.session.add(DiseaseInfo(**data))

            for offset, disease in enumerate(['Cercospora', 'Healthy', 'Downy Mildew', 'Unknown']):
                db.session.add(LeafDiseaseScan(
                    scan_uuid=str(uuid.uuid4()),
                    farmer_id=farmer_id,
                    image_url=f'https://example.com/leaf_{offset}.jpg',
                    disease_detected=disease,
                    confidence=0.9 - offset * 0.1,
                    status='Pending Validation',
                    created_at=now - timedelta(hours=offset * 6),
                ))

            for offset, stage in enumerate(['Immature', 'Mature', 'Overmature']):
                db.session.add(FruitRipenessScan(
                    scan_uuid=str(uuid.uuid4()),
                    farmer_id=farmer_id,
                    image_url=f'https://example.com/fruit_{offset}.jpg',
                    ripeness_stage=stage,
                    confidence=0.85,
                    status='Pending Validation',
                    created_at=now - timedelta(days=offset),
                ))

            db.session.commit()
            print("Demo data created successfully!")
            for data in DEMO_PROFILES:
                print(f"  {data['role']:<7} {data['email']:<20} ({data['status']})")
        except Exception as e:
            db.session.rollback()
            print(f"Error seeding demo data: {e}")
            raise


if __name__ == '__main__':
    seed_demo_data()
