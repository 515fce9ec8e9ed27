"""
Datetime utility functions.
Parsing and formatting helpers for booking dates and times.
"""

from datetime import date, datetime, time
from typing import Optional, Union
import pytz


def utcnow() -> datetime:
    """
    Get current UTC datetime using pytz.UTC.

    Returns:
        Current UTC datetime with pytz timezone information
    """
    return datetime.now(pytz.UTC)


def parse_booking_date(value: Union[str, date]) -> date:
    """
    Parse a booking date in ISO format (YYYY-MM-DD).

    Raises:
        ValueError: If the value is not a valid ISO date
    """
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if not isinstance(value, str):
        raise ValueError(f"Expected string or date, got {type(value)}")
    try:
        return datetime.strptime(value.strip(), "%Y-%m-%d").date()
    except ValueError:
        raise ValueError(f"Invalid date '{value}', expected YYYY-MM-DD")


def parse_time_of_day(value: Union[str, time]) -> time:
    """
    Parse a local time of day in HH:MM or HH:MM:SS format.

    Raises:
        ValueError: If the value is not a valid time
    """
    if isinstance(value, time):
        return value
    if not isinstance(value, str):
        raise ValueError(f"Expected string or time, got {type(value)}")
    time_str = value.strip()
    for fmt in ("%H:%M:%S", "%H:%M"):
        try:
            return datetime.strptime(time_str, fmt).time()
        except ValueError:
            continue
    raise ValueError(f"Invalid time '{value}', expected HH:MM or HH:MM:SS")


def format_time(value: Optional[time]) -> Optional[str]:
    """Format a time as HH:MM:SS (the wire format for booking times)."""
    if value is None:
        return None
    return value.strftime("%H:%M:%S")


def format_date(value: Optional[date]) -> Optional[str]:
    """Format a date as YYYY-MM-DD."""
    if value is None:
        return None
    return value.isoformat()


def minutes_between(start: time, end: time) -> int:
    """Number of whole minutes from start to end on the same day."""
    return (end.hour * 60 + end.minute) - (start.hour * 60 + start.minute)


def format_relative_day(target: date, today: Optional[date] = None) -> str:
    """
    Describe a date relative to today for notification text.

    Examples:
        >>> format_relative_day(date(2026, 1, 21), today=date(2026, 1, 21))
        'Today'
        >>> format_relative_day(date(2026, 3, 5), today=date(2026, 1, 21))
        'Mar 5'
    """
    today = today or date.today()
    diff_days = (target - today).days
    if diff_days == 0:
        return "Today"
    if diff_days == 1:
        return "Tomorrow"
    if diff_days == -1:
        return "Yesterday"
    return f"{target.strftime('%b')} {target.day}"


def format_clock(value: time) -> str:
    """Format a time as a 12-hour clock string, e.g. '9:00 AM'."""
    hour = value.hour % 12 or 12
    suffix = "AM" if value.hour < 12 else "PM"
    return f"{hour}:{value.minute:02d} {suffix}"


def format_time_range(start: time, end: time) -> str:
    """Format a start/end pair as '9:00 AM - 10:30 AM'."""
    return f"{format_clock(start)} - {format_clock(end)}"


def month_start(day: date, months_back: int = 0) -> date:
    """First day of ``day``'s month, or of the month ``months_back`` before it."""
    month_index = day.year * 12 + (day.month - 1) - months_back
    return date(month_index // 12, month_index % 12 + 1, 1)


def next_month_start(day: date) -> date:
    """First day of the month after ``day``'s month."""
    return month_start(day, months_back=-1)
