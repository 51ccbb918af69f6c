from datetime import date, datetime, time, timezone
from typing import Optional
from zoneinfo import ZoneInfo
from app.config import get_settings


def get_local_tz() -> ZoneInfo:
    return ZoneInfo(get_settings().timezone)


def get_local_now() -> datetime:
    """Get current datetime in the configured timezone."""
    return datetime.now(get_local_tz())


def utc_now() -> datetime:
    """Naive UTC timestamp, the way audit columns are stored."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


def combine_local(entry_date: date, value: Optional[time]) -> Optional[datetime]:
    """Attach an HH:MM time to the entry date."""
    if value is None:
        return None
    return datetime.combine(entry_date, value.replace(tzinfo=None))


def duration_minutes(start: Optional[datetime], end: Optional[datetime]) -> Optional[int]:
    """Whole minutes between start and end, or None if either is missing or the range is empty."""
    if start is None or end is None:
        return None
    minutes = int((end - start).total_seconds() // 60)
    if minutes <= 0:
        return None
    return minutes


def format_local_date(d: date) -> str:
    """Format a date for display in notification texts."""
    return d.strftime("%B %d, %Y")
