"""
Calendar-day helpers.

Streaks and "done today" checks compare year/month/day in one fixed
timezone, never 24-hour windows. Everything here is pure; callers pass
the zone explicitly.
"""

from datetime import date, datetime, time, timedelta, timezone, tzinfo
from typing import Tuple


def _as_aware(moment: datetime) -> datetime:
    # Motor without tz_aware returns naive UTC datetimes
    if moment.tzinfo is None:
        return moment.replace(tzinfo=timezone.utc)
    return moment


def local_day(moment: datetime, tz: tzinfo) -> date:
    """Calendar day of a timestamp in the given zone."""
    return _as_aware(moment).astimezone(tz).date()


def is_same_calendar_day(a: datetime, b: datetime, tz: tzinfo) -> bool:
    """True if both timestamps fall on the same calendar day in tz."""
    return local_day(a, tz) == local_day(b, tz)


def days_between(earlier: date, later: date) -> int:
    """Whole calendar days from earlier to later (negative if reversed)."""
    return (later - earlier).days


def day_bounds(day: date, tz: tzinfo) -> Tuple[datetime, datetime]:
    """
    UTC [start, end) range covering a local calendar day.

    Used for range queries against stored UTC timestamps.
    """
    start = datetime.combine(day, time.min, tzinfo=tz)
    end = datetime.combine(day + timedelta(days=1), time.min, tzinfo=tz)
    return start.astimezone(timezone.utc), end.astimezone(timezone.utc)


def add_minutes(hour: int, minute: int, offset: int) -> Tuple[int, int]:
    """Shift a wall-clock time by offset minutes, wrapping at midnight."""
    total = (hour * 60 + minute + offset) % (24 * 60)
    return total // 60, total % 60
