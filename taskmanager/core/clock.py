from datetime import datetime, timezone


def utcnow() -> datetime:
    """Timezone-aware UTC timestamp, the form every datetime column takes."""
    return datetime.now(timezone.utc)


def ensure_utc(value: datetime) -> datetime:
    """Treat naive input as UTC and convert aware input to UTC."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)
