"""
Pure validation helpers for booking windows.

No database access and no clock reads: callers pass ``now`` explicitly so
every check is deterministic.
"""

from datetime import date, datetime, time
from typing import NamedTuple, Optional

from backend.services.exceptions import (
    BookingInPast,
    InvalidInputError,
    InvalidOperatingHours,
    InvalidTimeRange,
    OutsideOperatingHours,
)
from backend.utils.datetime_utils import DATE_FORMAT, TIME_FORMAT, format_time


class OperatingHours(NamedTuple):
    """Daily opening window of a branch."""

    start: time
    end: time


def parse_date(value: str) -> date:
    """Parse a YYYY-MM-DD string. Raises InvalidInputError on bad input."""
    try:
        return datetime.strptime(value.strip(), DATE_FORMAT).date()
    except (AttributeError, ValueError):
        raise InvalidInputError("Date must be in yyyy-MM-dd format")


def parse_time(value: str, field_name: str = "Time") -> time:
    """Parse an HH:MM string. Raises InvalidInputError on bad input."""
    try:
        return datetime.strptime(value.strip(), TIME_FORMAT).time()
    except (AttributeError, ValueError):
        raise InvalidInputError(f"{field_name} must be in HH:mm format")


def parse_optional_date(value: Optional[str]) -> Optional[date]:
    """Parse a YYYY-MM-DD filter value, treating None/blank as no filter."""
    if value is None or not value.strip():
        return None
    return parse_date(value)


def validate_operating_hours(hours: OperatingHours) -> None:
    """Require a branch to close strictly after it opens."""
    if hours.end <= hours.start:
        raise InvalidOperatingHours()


def validate_booking_window(
    scheduled_date: date,
    start_time: time,
    end_time: time,
    branch_hours: OperatingHours,
    now: datetime,
) -> None:
    """
    Validate a requested booking window against time rules.

    Checks, in order:
        1. end_time must be after start_time
        2. the booking must not start before ``now``
        3. the window must lie within the branch's operating hours

    Args:
        scheduled_date: Day of the booking
        start_time: Start of the booking (inclusive)
        end_time: End of the booking (exclusive)
        branch_hours: Opening window of the branch
        now: Current local wall-clock time (naive)

    Raises:
        InvalidTimeRange, BookingInPast, OutsideOperatingHours
    """
    if end_time <= start_time:
        raise InvalidTimeRange()

    if datetime.combine(scheduled_date, start_time) < now:
        raise BookingInPast()

    if start_time < branch_hours.start or end_time > branch_hours.end:
        raise OutsideOperatingHours(
            "Booking time must be within branch operating hours "
            f"({format_time(branch_hours.start)} - {format_time(branch_hours.end)})"
        )


def windows_overlap(start1: time, end1: time, start2: time, end2: time) -> bool:
    """
    Half-open interval overlap test for two windows on the same day.

    Windows that merely touch (one ends exactly when the other starts)
    do not overlap.
    """
    return not (end1 <= start2 or start1 >= end2)
