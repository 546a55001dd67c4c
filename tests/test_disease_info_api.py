from bitterscan.models import db, DiseaseInfo


def test_list_disease_info(client, make_user, disease):
    _, headers = make_user(role='expert')
    body = client.get('/api/disease-info', headers=headers).get_json()
    assert body['count'] == 1
    assert body['diseases'][0]['disease_id'] == 'cercospora'


def test_stale_write_conflicts_then_overwrite_succeeds(client, make_user, disease):
    _, headers = make_user(role='expert')
    stale = '2000-01-01T00:00:00+00:00'

    response = client.put('/api/disease-info/cercospora', headers=headers, json={
        'treatment_en': 'Spray fungicide.',
        'expectedUpdatedAt': stale,
    })
    assert response.status_code == 409
    body = response.get_json()
    assert body['conflict'] is True
    assert body['current']['treatment_en'] == 'Remove infected leaves.'

    response = client.put('/api/disease-info/cercospora', headers=headers, json={
        'treatment_en': 'Spray fungicide.',
        'expectedUpdatedAt': stale,
        'overwrite': True,
    })
    assert response.status_code == 200
    assert response.get_json()['disease']['treatment_en'] == 'Spray fungicide.'


def test_matching_timestamp_saves(client, make_user, disease):
    editor, headers = make_user(role='admin')
    expected = disease.to_dict()['updated_at'].replace('+00:00', 'Z')

    response = client.put('/api/disease-info/cercospora', headers=headers, json={
        'description_en': 'Fungal leaf spot.',
        'symptoms_en': 'Brown circular spots.',
        'expectedUpdatedAt': expected,
    })
    assert response.status_code == 200
    saved = response.get_json()['disease']
    assert saved['last_updated_by'] == editor.id
    assert saved['symptoms_en'] == 'Brown circular spots.'
    # Unchanged English keeps its translation
    assert saved['description_bi'] == 'Fungal nga mansa sa dahon.'

    # The old version is now stale
    response = client.put('/api/disease-info/cercospora', headers=headers, json={
        'symptoms_en': 'Other.',
        'expectedUpdatedAt': expected,
    })
    assert response.status_code == 409


def test_changed_english_clears_translation(client, make_user, disease):
    _, headers = make_user(role='expert')
    response = client.put('/api/disease-info/cercospora', headers=headers, json={
        'treatment_en': 'Apply copper fungicide weekly.',
        'description_en': 'Fungal leaf spot caused by Cercospora.',
        'description_bi': 'Bag-ong hubad.',
        'overwrite': True,
    })
    assert response.status_code == 200

    db.session.expire_all()
    row = db.session.get(DiseaseInfo, 'cercospora')
    assert row.treatment_bi is None
    assert row.description_bi == 'Bag-ong hubad.'


def test_unknown_disease(client, make_user):
    _, headers = make_user(role='expert')
    response = client.put('/api/disease-info/missing', headers=headers, json={'overwrite': True})
    assert response.status_code == 404


def test_farmer_cannot_edit(client, make_user, disease):
    _, headers = make_user(role='farmer')
    response = client.put('/api/disease-info/cercospora', headers=headers, json={'overwrite': True})
    assert response.status_code == 403


def test_row_without_timestamp_saves_when_client_saw_none(client, make_user, disease):
    _, headers = make_user(role='expert')
    DiseaseInfo.query.filter_by(disease_id='cercospora').update({'updated_at': None})
    db.session.commit()

    response = client.put('/api/disease-info/cercospora', headers=headers, json={
        'symptoms_en': 'Brown circular spots.',
        'expectedUpdatedAt': None,
    })
    assert response.status_code == 200
    assert response.get_json()['disease']['updated_at'] is not None
