"""Date and time utilities."""

from datetime import datetime, timedelta, timezone
from typing import Optional, Union

from dateutil import parser as date_parser


def parse_date(date_string: str) -> Optional[datetime]:
    """Parse a feed date string to a timezone-aware datetime.

    RSS uses RFC 822 dates, Atom uses ISO 8601, and plenty of feeds use
    neither; dateutil copes with all of them.

    Args:
        date_string: Date string to parse

    Returns:
        Parsed datetime (UTC if the string had no zone) or None if parsing fails
    """
    if not date_string:
        return None

    try:
        dt = date_parser.parse(date_string)
    except (ValueError, TypeError, OverflowError):
        return None

    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return dt


def parse_db_datetime(value: Union[str, datetime, None]) -> Optional[datetime]:
    """Parse an ISO datetime as stored in SQLite."""
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        return value
    try:
        dt = datetime.fromisoformat(value.replace("Z", "+00:00"))
    except (ValueError, AttributeError):
        return None
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return dt


def to_db_datetime(dt: Optional[datetime]) -> Optional[str]:
    """Serialize a datetime for SQLite (ISO 8601, UTC)."""
    if dt is None:
        return None
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc).isoformat(timespec="microseconds")


def now_utc() -> datetime:
    """Get current UTC datetime.

    Returns:
        Current UTC datetime (timezone-aware)
    """
    return datetime.now(timezone.utc)


def hours_ago(hours: float) -> datetime:
    """Get the UTC datetime `hours` hours before now."""
    return now_utc() - timedelta(hours=hours)


def is_within_hours(dt: datetime, hours: int) -> bool:
    """Check if datetime is within specified hours from now.

    Args:
        dt: Datetime to check
        hours: Number of hours

    Returns:
        True if datetime is within hours from now
    """
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return dt >= hours_ago(hours)
