from bitterscan.models import db, ValidationHistory, LeafDiseaseScan, FruitRipenessScan


def _validate(client, headers, scan, **body):
    return client.post(f'/api/scans/{scan.scan_uuid}/validate', json=body, headers=headers)


def test_confirm_sets_scan_validated(client, make_user, make_scan):
    expert, headers = make_user(role='expert', full_name='Dr. Santos')
    scan = make_scan('leaf_disease', 'Cercospora')

    response = _validate(client, headers, scan, action='confirm', comment='Looks right')
    assert response.status_code == 201
    record = response.get_json()['validation']
    assert record['status'] == 'Validated'
    assert record['ai_prediction'] == 'Cercospora'
    assert record['expert_validation'] == 'Cercospora'
    assert record['expert_name'] == 'Dr. Santos'
    assert record['expert_id'] == expert.id

    db.session.expire_all()
    stored = db.session.get(LeafDiseaseScan, scan.id)
    assert stored.status == 'Validated'
    assert stored.expert_comment == 'Looks right'


def test_correct_also_sets_scan_validated(client, make_user, make_scan):
    _, headers = make_user(role='admin')
    scan = make_scan('fruit_maturity', 'Immature')

    response = _validate(client, headers, scan, action='correct', correction='Mature')
    assert response.status_code == 201
    assert response.get_json()['validation']['status'] == 'Corrected'
    assert response.get_json()['validation']['expert_validation'] == 'Mature'

    db.session.expire_all()
    stored = db.session.get(FruitRipenessScan, scan.id)
    assert stored.status == 'Validated'
    # The prediction itself is never overwritten
    assert stored.ripeness_stage == 'Immature'


def test_correct_requires_correction(client, make_user, make_scan):
    _, headers = make_user(role='expert')
    scan = make_scan()
    response = _validate(client, headers, scan, action='correct', correction='  ')
    assert response.status_code == 400
    assert ValidationHistory.query.count() == 0


def test_invalid_action_and_unknown_scan(client, make_user, make_scan):
    _, headers = make_user(role='expert')
    scan = make_scan()
    assert _validate(client, headers, scan, action='approve').status_code == 400

    response = client.post('/api/scans/not-a-uuid/validate', json={'action': 'confirm'}, headers=headers)
    assert response.status_code == 400

    response = client.post('/api/scans/00000000-0000-0000-0000-000000000000/validate',
                           json={'action': 'confirm'}, headers=headers)
    assert response.status_code == 404


def test_history_is_joined_onto_scans(client, make_user, make_scan):
    expert, headers = make_user(role='expert')
    scan = make_scan()
    _validate(client, headers, scan, action='confirm')

    body = client.get('/api/scans', headers=headers).get_json()
    assert body['validationCount'] == 1
    history = body['validationHistory'][0]
    assert history['scan']['scan_uuid'] == scan.scan_uuid
    assert history['expert_profile']['id'] == expert.id


def test_delete_validation_reverts_scan(client, make_user, make_scan):
    _, headers = make_user(role='expert')
    scan = make_scan()
    record_id = _validate(client, headers, scan, action='confirm', comment='ok').get_json()['validation']['id']

    response = client.delete(f'/api/validations/{record_id}', headers=headers)
    assert response.status_code == 200
    assert response.get_json()['scan']['status'] == 'Pending Validation'

    db.session.expire_all()
    assert db.session.get(ValidationHistory, record_id) is None
    stored = db.session.get(LeafDiseaseScan, scan.id)
    assert stored.status == 'Pending Validation'
    assert stored.expert_comment is None

    assert client.delete(f'/api/validations/{record_id}', headers=headers).status_code == 404


def test_second_validation_of_same_scan_is_rejected(client, make_user, make_scan):
    _, first_headers = make_user(role='expert')
    _, second_headers = make_user(role='expert')
    scan = make_scan('leaf_disease', 'Cercospora')

    assert _validate(client, first_headers, scan, action='confirm').status_code == 201
    response = _validate(client, second_headers, scan, action='correct', correction='Downy Mildew')
    assert response.status_code == 409
    assert response.get_json()['error'] == 'Scan has already been validated.'
    assert ValidationHistory.query.count() == 1
