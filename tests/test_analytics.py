from datetime import datetime, timezone

import pytest

from bitterscan.utils.analytics import (
    RangeError, build_summary, disease_bucket, resolve_range, ripeness_bucket, scans_to_csv
)

NOW = datetime(2024, 6, 15, 12, 0, tzinfo=timezone.utc)


def _scan(scan_type, prediction, status, created_at):
    column = 'disease_detected' if scan_type == 'leaf_disease' else 'ripeness_stage'
    return {'scan_type': scan_type, column: prediction, 'status': status, 'created_at': created_at,
            'scan_uuid': 'u', 'farmer_id': 'f'}


def test_named_ranges():
    assert resolve_range('all', now=NOW) == (None, None)
    start, end = resolve_range('weekly', now=NOW)
    assert start == datetime(2024, 6, 9, tzinfo=timezone.utc)
    assert end == NOW
    assert resolve_range('monthly', now=NOW)[0] == datetime(2024, 6, 1, tzinfo=timezone.utc)
    assert resolve_range('yearly', now=NOW)[0] == datetime(2024, 1, 1, tzinfo=timezone.utc)


def test_custom_range_is_clamped_and_swapped():
    start, end = resolve_range('custom', '2024-07-30', '2024-06-01', now=NOW)
    assert start.date().isoformat() == '2024-06-01'
    assert end.date().isoformat() == '2024-06-15'

    with pytest.raises(RangeError):
        resolve_range('custom', 'June', '2024-06-01', now=NOW)
    with pytest.raises(RangeError):
        resolve_range('fortnightly', now=NOW)


def test_buckets():
    assert disease_bucket('Cercospora Leaf Spot') == 'Cercospora'
    assert disease_bucket('') == 'Unknown'
    assert ripeness_bucket('Immature') == 'Immature'
    assert ripeness_bucket('Mature') == 'Mature'
    assert ripeness_bucket('Overmature') == 'Overmature'


def test_summary_counts():
    scans = [
        _scan('leaf_disease', 'Cercospora', 'Validated', '2024-06-10T08:00:00+00:00'),
        _scan('leaf_disease', 'Cercospora', 'Pending Validation', '2024-06-11T08:00:00Z'),
        _scan('fruit_maturity', 'Mature', 'Validated', '2024-05-02T08:00:00+00:00'),
    ]
    validations = [
        {'expert_name': 'Dr. Santos', 'status': 'Validated', 'validated_at': '2024-06-12T00:00:00+00:00'},
        {'expert_name': 'Dr. Santos', 'status': 'Corrected', 'validated_at': '2024-06-12T01:00:00+00:00'},
    ]
    summary = build_summary(scans, validations)
    assert summary['total_scans'] == 3
    assert summary['leaf_scans'] == 2
    assert summary['pending_scans'] == 1
    assert summary['validated_scans'] == 2
    assert summary['success_rate'] == 66.7
    assert summary['ai_accuracy_rate'] == 50.0
    assert summary['most_detected_disease'] == 'Cercospora'
    assert summary['expert_performance'] == [{'expert': 'Dr. Santos', 'validated': 1, 'corrected': 1, 'total': 2}]
    assert [month['month'] for month in summary['monthly_trend']] == ['2024-05', '2024-06']

    start, end = resolve_range('monthly', now=NOW)
    ranged = build_summary(scans, validations, start, end)
    assert ranged['total_scans'] == 2
    assert ranged['fruit_scans'] == 0


def test_csv_export():
    csv_text = scans_to_csv([_scan('fruit_maturity', 'Mature', 'Validated', '2024-06-10T08:00:00+00:00')])
    lines = csv_text.strip().splitlines()
    assert lines[0].startswith('scan_uuid,scan_type,ai_prediction')
    assert 'Mature' in lines[1]


def test_analytics_endpoint(client, make_user, make_scan):
    _, headers = make_user(role='expert')
    make_scan('leaf_disease', 'Cercospora', status='Validated')

    body = client.get('/api/analytics?range=daily', headers=headers).get_json()
    assert body['total_scans'] == 1
    assert body['range']['name'] == 'daily'

    response = client.get('/api/analytics?range=custom&start=bad', headers=headers)
    assert response.status_code == 400


def test_csv_report_endpoint(client, make_user, make_scan):
    _, headers = make_user(role='admin')
    make_scan('fruit_maturity', 'Immature')
    response = client.get('/api/reports/scans.csv', headers=headers)
    assert response.status_code == 200
    assert response.headers['Content-Type'].startswith('text/csv')
    assert 'Immature' in response.get_data(as_text=True)
