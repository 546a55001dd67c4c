# Analytics Utility Functions
import csv
import io
from collections import Counter, OrderedDict
from datetime import datetime, time, timedelta, timezone
from bitterscan.models import LEAF_DISEASE, FRUIT_MATURITY, prediction_for
from bitterscan.models.scan import PENDING_STATUSES
from bitterscan.utils.timestamps import utcnow, parse_timestamp

RANGES = ('all', 'daily', 'weekly', 'monthly', 'yearly', 'custom')

DISEASE_BUCKETS = ('Cercospora', 'Yellow Mosaic Virus', 'Healthy', 'Unknown', 'Fusarium Wilt', 'Downy Mildew')
RIPENESS_BUCKETS = ('Unknown', 'Immature', 'Mature', 'Overmature', 'Overripe')

REPORT_COLUMNS = (
    'scan_uuid', 'scan_type', 'ai_prediction', 'status', 'farmer_id',
    'farmer_name', 'confidence', 'created_at',
)


class RangeError(ValueError):
    pass


def _start_of_day(day):
    return datetime.combine(day, time.min, tzinfo=timezone.utc)


def _parse_day(value, name):
    try:
        return datetime.strptime(value, '%Y-%m-%d').date()
    except (TypeError, ValueError):
        raise RangeError(f'Invalid {name} date. Expected YYYY-MM-DD.')


def resolve_range(range_name='all', start=None, end=None, now=None):
    """
    Return (start, end) datetimes for a named range; (None, None) means all time.
    Custom ranges are day-inclusive, never extend past today and are swapped
    when given backwards.
    """
    now = now or utcnow()
    today = now.date()
    if range_name not in RANGES:
        raise RangeError(f'Invalid range. Expected one of: {", ".join(RANGES)}.')
    if range_name == 'all':
        return None, None
    if range_name == 'daily':
        return _start_of_day(today), now
    if range_name == 'weekly':
        return _start_of_day(today - timedelta(days=6)), now
    if range_name == 'monthly':
        return _start_of_day(today.replace(day=1)), now
    if range_name == 'yearly':
        return _start_of_day(today.replace(month=1, day=1)), now

    start_day = _parse_day(start, 'start')
    end_day = _parse_day(end, 'end')
    if start_day > end_day:
        start_day, end_day = end_day, start_day
    end_day = min(end_day, today)
    start_day = min(start_day, end_day)
    return _start_of_day(start_day), _start_of_day(end_day + timedelta(days=1)) - timedelta(microseconds=1)


def in_range(timestamp, start, end):
    if start is None and end is None:
        return True
    parsed = parse_timestamp(timestamp)
    if parsed is None:
        return False
    return start <= parsed <= end


def _rate(part, whole):
    if not whole:
        return 0.0
    return round(part / whole * 100, 1)


def disease_bucket(prediction):
    lowered = (prediction or '').lower()
    if not lowered:
        return 'Unknown'
    if 'cercospora' in lowered:
        return 'Cercospora'
    if 'downy' in lowered or 'mildew' in lowered:
        return 'Downy Mildew'
    if 'fusarium' in lowered or 'wilt' in lowered:
        return 'Fusarium Wilt'
    if 'mosaic' in lowered or 'virus' in lowered:
        return 'Yellow Mosaic Virus'
    if 'healthy' in lowered:
        return 'Healthy'
    return 'Unknown'


def ripeness_bucket(prediction):
    lowered = (prediction or '').lower()
    if 'immature' in lowered:
        return 'Immature'
    if 'overmature' in lowered:
        return 'Overmature'
    if 'overripe' in lowered:
        return 'Overripe'
    if 'mature' in lowered:
        return 'Mature'
    return 'Unknown'


def _distribution(scans, scan_type, bucket_fn, buckets):
    counts = Counter(bucket_fn(prediction_for(scan)) for scan in scans if scan.get('scan_type') == scan_type)
    return [{'name': name, 'value': counts.get(name, 0)} for name in buckets]


def most_detected(scans, scan_type):
    counts = Counter(
        prediction_for(scan) for scan in scans
        if scan.get('scan_type') == scan_type and prediction_for(scan) not in ('', 'Unknown')
    )
    if not counts:
        return 'No data'
    return counts.most_common(1)[0][0]


def expert_performance(validations):
    stats = OrderedDict()
    for record in validations:
        name = record.get('expert_name') or 'Unknown Expert'
        entry = stats.setdefault(name, {'expert': name, 'validated': 0, 'corrected': 0, 'total': 0})
        if record.get('status') == 'Validated':
            entry['validated'] += 1
        elif record.get('status') == 'Corrected':
            entry['corrected'] += 1
        entry['total'] += 1
    return sorted(stats.values(), key=lambda entry: entry['total'], reverse=True)


def monthly_trend(scans):
    """All-time per-month scan counts and processing rate, oldest month first."""
    months = {}
    for scan in scans:
        created = parse_timestamp(scan.get('created_at'))
        if created is None:
            continue
        key = created.strftime('%Y-%m')
        entry = months.setdefault(key, {'month': key, 'scans': 0, 'processed': 0})
        entry['scans'] += 1
        if scan.get('status') in ('Validated', 'Corrected'):
            entry['processed'] += 1
    trend = []
    for key in sorted(months):
        entry = months[key]
        entry['success_rate'] = _rate(entry['processed'], entry['scans'])
        trend.append(entry)
    return trend


def build_summary(scans, validations, start=None, end=None):
    """Dashboard statistics for the scans and validations inside [start, end]."""
    ranged_scans = [scan for scan in scans if in_range(scan.get('created_at'), start, end)]
    ranged_validations = [record for record in validations if in_range(record.get('validated_at'), start, end)]

    statuses = Counter(scan.get('status') for scan in ranged_scans)
    pending = sum(statuses[status] for status in PENDING_STATUSES)
    total = len(ranged_scans)

    validated_records = sum(1 for record in ranged_validations if record.get('status') == 'Validated')
    corrected_records = sum(1 for record in ranged_validations if record.get('status') == 'Corrected')
    trend = monthly_trend(scans)

    return {
        'total_scans': total,
        'leaf_scans': sum(1 for scan in ranged_scans if scan.get('scan_type') == LEAF_DISEASE),
        'fruit_scans': sum(1 for scan in ranged_scans if scan.get('scan_type') == FRUIT_MATURITY),
        'pending_scans': pending,
        'validated_scans': total - pending,
        'success_rate': _rate(statuses['Validated'] + statuses['Corrected'], total),
        'ai_accuracy_rate': _rate(validated_records, validated_records + corrected_records),
        'validations': len(ranged_validations),
        'corrections': corrected_records,
        'disease_distribution': _distribution(ranged_scans, LEAF_DISEASE, disease_bucket, DISEASE_BUCKETS),
        'ripeness_distribution': _distribution(ranged_scans, FRUIT_MATURITY, ripeness_bucket, RIPENESS_BUCKETS),
        'most_detected_disease': most_detected(ranged_scans, LEAF_DISEASE),
        'most_detected_ripeness': most_detected(ranged_scans, FRUIT_MATURITY),
        'expert_performance': expert_performance(ranged_validations),
        'monthly_trend': trend,
        'average_monthly_success_rate': round(sum(m['success_rate'] for m in trend) / len(trend), 1) if trend else 0.0,
    }


def scans_to_csv(scans):
    buffer = io.StringIO()
    writer = csv.writer(buffer)
    writer.writerow(REPORT_COLUMNS)
    for scan in scans:
        farmer = scan.get('farmer_profile') or {}
        writer.writerow([
            scan.get('scan_uuid'),
            scan.get('scan_type'),
            prediction_for(scan),
            scan.get('status'),
            scan.get('farmer_id'),
            farmer.get('full_name') or '',
            '' if scan.get('confidence') is None else scan.get('confidence'),
            scan.get('created_at'),
        ])
    return buffer.getvalue()
