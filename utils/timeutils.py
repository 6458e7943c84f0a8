"""UTC timestamp helpers shared by the store and the engines."""
from datetime import datetime, timezone


def utcnow():
    return datetime.now(timezone.utc)


def ensure_utc(dt):
    """Attach UTC to naive datetimes and convert aware ones to UTC."""
    if dt.tzinfo is None:
        return dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc)


def to_iso(dt):
    """Serialize for storage. All stored timestamps share this format so they sort as text."""
    if dt is None:
        return None
    return ensure_utc(dt).isoformat(timespec="microseconds")


def parse_timestamp(value):
    """Accept a datetime or an ISO-8601 string (a trailing 'Z' is allowed)."""
    if value is None:
        return None
    if isinstance(value, datetime):
        return ensure_utc(value)
    return ensure_utc(datetime.fromisoformat(str(value).replace("Z", "+00:00")))
