# Timestamp Helpers
from datetime import datetime, timezone


def utcnow():
    """Timezone-aware current UTC time."""
    return datetime.now(timezone.utc)


def as_utc(value):
    """Attach UTC to naive datetimes (SQLite drops the offset)."""
    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def to_iso(value):
    if value is None:
        return None
    return as_utc(value).isoformat()


def parse_timestamp(value):
    """
    Parse an ISO-8601 string (a trailing 'Z' is accepted) into an aware UTC
    datetime. Returns None for empty or unparseable input.
    """
    if value is None:
        return None
    if isinstance(value, datetime):
        return as_utc(value)
    if not isinstance(value, str) or not value.strip():
        return None
    text = value.strip()
    if text.endswith('Z'):
        text = text[:-1] + '+00:00'
    try:
        return as_utc(datetime.fromisoformat(text))
    except ValueError:
        return None


def same_instant(left, right):
    """True when both timestamps denote the same moment (to the microsecond)."""
    left, right = parse_timestamp(left), parse_timestamp(right)
    if left is None or right is None:
        return left is right
    return left == right
