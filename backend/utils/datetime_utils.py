"""
Datetime utility functions.
Provides timezone-aware "now" helpers and the wire formats used for
booking dates and times.
"""

import os
from datetime import date, datetime, time
from typing import Optional
import pytz

DATE_FORMAT = "%Y-%m-%d"
TIME_FORMAT = "%H:%M"

# Zone the venues operate in; "now" for past-date checks and the
# upcoming/past split is evaluated as wall-clock time in this zone.
BOOKING_TIMEZONE = os.getenv("BOOKING_TIMEZONE", "UTC")


def utcnow() -> datetime:
    """
    Get current UTC datetime using pytz.UTC.

    Returns:
        Current UTC datetime with pytz timezone information
    """
    return datetime.now(pytz.UTC)


def local_now(tz_name: Optional[str] = None) -> datetime:
    """
    Get the current wall-clock time in the booking timezone, as a naive datetime.

    Booking dates and times are stored without zone information, so
    comparisons against them must use naive local time.

    Args:
        tz_name: Optional IANA zone name overriding BOOKING_TIMEZONE

    Returns:
        Naive datetime representing local wall-clock time
    """
    tz = pytz.timezone(tz_name or BOOKING_TIMEZONE)
    return datetime.now(tz).replace(tzinfo=None)


def format_date(value: Optional[date]) -> Optional[str]:
    """Format a date as YYYY-MM-DD."""
    return value.strftime(DATE_FORMAT) if value else None


def format_time(value: Optional[time]) -> Optional[str]:
    """Format a time of day as HH:MM."""
    return value.strftime(TIME_FORMAT) if value else None


def format_timestamp(value: Optional[datetime]) -> Optional[str]:
    """Format a timestamp as ISO 8601."""
    return value.isoformat() if value else None
