"""Date and time helpers.

All timestamps handled by subwatch are timezone-aware UTC. Naive values
coming from external stores are interpreted as UTC.
"""

from datetime import datetime, time, timedelta, timezone
from typing import Union

from dateutil.parser import isoparse
from dateutil.relativedelta import relativedelta

from subwatch.models.notification import RecurrenceFrequency, RecurrencePattern

DateLike = Union[str, datetime]


def utc_now() -> datetime:
    """Current time as an aware UTC datetime."""
    return datetime.now(timezone.utc)


def ensure_utc(value: datetime) -> datetime:
    """Return value as an aware UTC datetime (naive values are taken as UTC)."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def to_datetime(value: DateLike) -> datetime:
    """Parse an ISO-8601 string or pass through a datetime, normalized to UTC.

    Raises:
        ValueError: If the string cannot be parsed.
    """
    if isinstance(value, datetime):
        return ensure_utc(value)
    return ensure_utc(isoparse(value))


def are_dates_within_window(
    date1: DateLike,
    date2: DateLike,
    day_window: float,
) -> bool:
    """Check whether two timestamps are at most ``day_window`` days apart.

    Unparseable inputs are never within a window.
    """
    try:
        d1 = to_datetime(date1)
        d2 = to_datetime(date2)
    except (ValueError, OverflowError):
        return False

    diff_days = abs((d1 - d2).total_seconds()) / 86400
    return diff_days <= day_window


def add_recurrence_interval(
    moment: datetime,
    pattern: RecurrencePattern,
    steps: int = 1,
) -> datetime:
    """Advance a timestamp by ``steps`` recurrence intervals.

    Daily and weekly recurrences add fixed day counts. Monthly and yearly
    recurrences use calendar arithmetic; the day is clamped to the end of
    a shorter month (Jan 31 + 1 month -> Feb 28/29).
    """
    amount = pattern.interval * steps

    if pattern.frequency == RecurrenceFrequency.DAILY:
        return moment + timedelta(days=amount)
    if pattern.frequency == RecurrenceFrequency.WEEKLY:
        return moment + timedelta(days=7 * amount)
    if pattern.frequency == RecurrenceFrequency.MONTHLY:
        return moment + relativedelta(months=amount)
    return moment + relativedelta(years=amount)


def parse_hhmm(value: str) -> time:
    """Parse a 24-hour ``HH:MM`` string.

    Raises:
        ValueError: If the value is not a valid time of day.
    """
    hours, _, minutes = value.partition(":")
    return time(hour=int(hours), minute=int(minutes))
