"""
Datetime utilities for the scheduling engine.

The engine works in each schedule's wall-clock time: appointment instants are
naive datetimes in the schedule's timezone and times of day are HH:MM strings.
Aware datetimes arriving at the boundary are converted into the schedule's
timezone once, and never converted back for display.
"""

import calendar
import logging
from datetime import datetime, timezone, timedelta, date
from typing import Iterator, Union
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

logger = logging.getLogger(__name__)


def utc_now() -> datetime:
    """Get the current timezone-aware UTC datetime."""
    return datetime.now(timezone.utc)


def get_zone(tz_name: str) -> ZoneInfo:
    """
    Resolve an IANA timezone name, falling back to UTC for unknown names.

    Args:
        tz_name: IANA timezone name (e.g., "America/New_York")
    """
    try:
        return ZoneInfo(tz_name or "UTC")
    except (ZoneInfoNotFoundError, ValueError):
        logger.warning(f"Invalid timezone '{tz_name}', using UTC")
        return ZoneInfo("UTC")


def local_now(tz_name: str) -> datetime:
    """Current naive wall-clock time in the given timezone."""
    return datetime.now(get_zone(tz_name)).replace(tzinfo=None)


def to_schedule_local(dt: datetime, tz_name: str) -> datetime:
    """
    Normalize a datetime to naive wall-clock time in the schedule's timezone.

    Naive datetimes are assumed to already be in schedule time.
    """
    if dt.tzinfo is None:
        return dt
    return dt.astimezone(get_zone(tz_name)).replace(tzinfo=None)


def parse_date_string(date_str: str) -> date:
    """
    Parse a YYYY-MM-DD string into a date.

    Raises:
        ValueError: If the string is not a valid ISO date
    """
    try:
        return datetime.strptime(date_str, "%Y-%m-%d").date()
    except ValueError as e:
        raise ValueError(f"Invalid date format (expected YYYY-MM-DD): {date_str}") from e


def ensure_date(value: Union[date, str]) -> date:
    """Accept a date, a datetime or a YYYY-MM-DD string and return a date."""
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    return parse_date_string(value)


def parse_datetime_string(dt_str: str) -> datetime:
    """
    Parse an ISO-8601 timestamp, accepting a trailing 'Z' for UTC.

    Raises:
        ValueError: If the string cannot be parsed
    """
    try:
        return datetime.fromisoformat(dt_str.replace("Z", "+00:00"))
    except ValueError as e:
        raise ValueError(f"Invalid datetime string format: {dt_str}") from e


def ensure_datetime(value: Union[datetime, str]) -> datetime:
    if isinstance(value, datetime):
        return value
    return parse_datetime_string(value)


def iter_dates(start_date: date, end_date: date) -> Iterator[date]:
    """Yield every calendar day in [start_date, end_date]."""
    current = start_date
    while current <= end_date:
        yield current
        current += timedelta(days=1)


def start_of_day(value: date) -> datetime:
    return datetime.combine(value, datetime.min.time())


def minutes_from_midnight(dt: datetime, day: date) -> int:
    """
    Minutes between the midnight that starts `day` and `dt`.

    Values are negative for instants on earlier days and can exceed a full
    day for later ones, so intervals crossing midnight keep their length.
    """
    return int((dt - start_of_day(day)).total_seconds() // 60)


def add_months(dt: datetime, months: int) -> datetime:
    """
    Add calendar months, clamping the day to the target month's length.

    e.g. Jan 31 + 1 month -> Feb 28 (or 29 in leap years).
    """
    month_index = dt.month - 1 + months
    year = dt.year + month_index // 12
    month = month_index % 12 + 1
    day = min(dt.day, calendar.monthrange(year, month)[1])
    return dt.replace(year=year, month=month, day=day)
