"""
Date and time helpers shared by the booking services.
Wall-clock times are compared as minutes since midnight.
"""

from datetime import date, datetime, time, timedelta, timezone
from typing import Union
from zoneinfo import ZoneInfo


def utc_now() -> datetime:
    """Get current UTC time as timezone-aware datetime."""
    return datetime.now(timezone.utc)


def local_today(tz_name: str) -> date:
    """
    Today's date in the club's timezone.

    Args:
        tz_name: IANA timezone name (e.g. "Europe/Paris")

    Returns:
        The local calendar date
    """
    return datetime.now(ZoneInfo(tz_name)).date()


def week_start_for(day: date) -> date:
    """Return the Monday of the ISO week containing `day`."""
    return day - timedelta(days=day.weekday())


def is_same_week(first: date, second: date) -> bool:
    return week_start_for(first) == week_start_for(second)


def parse_iso_date(value: Union[str, date]) -> date:
    """
    Parse an ISO date ("2024-06-10"); dates pass through unchanged.

    Raises:
        ValueError: If the string is not an ISO date
    """
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    try:
        return date.fromisoformat(value.strip()[:10])
    except (AttributeError, ValueError) as e:
        raise ValueError(f"Invalid date string: {value}") from e


def to_minutes(value: time) -> int:
    """Minutes since midnight for a wall-clock time."""
    return value.hour * 60 + value.minute
