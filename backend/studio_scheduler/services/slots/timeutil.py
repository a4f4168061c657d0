# backend/studio_scheduler/services/slots/timeutil.py
"""
Clock and calendar helpers.

Clock values are day-local "HH:MM" strings, converted to integer minutes
since midnight for arithmetic. Calendar keys are "YYYY-MM-DD" strings that
must always be derived in the provider's timezone.
"""

import re
from datetime import date, datetime, time, timedelta, timezone
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from .exceptions import InvalidDateFormat, InvalidTimeFormat

MINUTES_PER_DAY = 24 * 60

_CLOCK_RE = re.compile(r"^(\d{1,2}):(\d{2})(?::00)?$")
_DATE_RE = re.compile(r"^\d{4}-\d{2}-\d{2}$")


def time_to_minutes(value: str) -> int:
    """Parse "HH:MM" into minutes since midnight."""
    if not isinstance(value, str):
        raise InvalidTimeFormat(f"Clock value must be a string, got {value!r}")

    match = _CLOCK_RE.match(value.strip())
    if not match:
        raise InvalidTimeFormat(f"Invalid clock value: {value!r}")

    hour, minute = int(match.group(1)), int(match.group(2))
    if hour > 23 or minute > 59:
        raise InvalidTimeFormat(f"Clock value out of range: {value!r}")
    return hour * 60 + minute


def minutes_to_time(minutes: int) -> str:
    """Inverse of time_to_minutes for 0 <= minutes < 1440."""
    if isinstance(minutes, bool) or not isinstance(minutes, int):
        raise InvalidTimeFormat(f"Minutes must be an integer, got {minutes!r}")
    if not 0 <= minutes < MINUTES_PER_DAY:
        raise InvalidTimeFormat(f"Minutes out of range [0, 1440): {minutes}")
    return f"{minutes // 60:02d}:{minutes % 60:02d}"


def normalize_time(value: str) -> str:
    """Canonical zero-padded form of a clock value ("9:00" -> "09:00")."""
    return minutes_to_time(time_to_minutes(value))


def format_date(value: date) -> str:
    """Calendar date to its "YYYY-MM-DD" lookup key."""
    if isinstance(value, datetime):
        raise InvalidDateFormat(
            "format_date takes a calendar date; use local_date() for timestamps"
        )
    return value.isoformat()


def parse_date(value: str) -> date:
    """Parse a "YYYY-MM-DD" lookup key."""
    if not isinstance(value, str) or not _DATE_RE.match(value):
        raise InvalidDateFormat(f"Invalid date: {value!r}")
    try:
        return date.fromisoformat(value)
    except ValueError as e:
        raise InvalidDateFormat(f"Invalid date: {value!r}") from e


def get_zone(name: str) -> ZoneInfo:
    """Resolve an IANA timezone name."""
    try:
        return ZoneInfo(name)
    except (ZoneInfoNotFoundError, ValueError) as e:
        raise InvalidTimeFormat(f"Unknown timezone: {name!r}") from e


def local_date(moment: datetime, tz: ZoneInfo) -> date:
    """Calendar date of an absolute timestamp as seen in the provider timezone."""
    return ensure_aware(moment, tz).astimezone(tz).date()


def local_today(tz: ZoneInfo, now: datetime | None = None) -> date:
    """Provider-local "today", independent of the caller's timezone."""
    now = now or datetime.now(timezone.utc)
    return local_date(now, tz)


def day_of_week(value: date) -> int:
    """Weekday with 0 = Sunday .. 6 = Saturday."""
    return (value.weekday() + 1) % 7


def ensure_aware(moment: datetime, tz: ZoneInfo) -> datetime:
    """Naive timestamps are taken to be expressed in the provider timezone."""
    if moment.tzinfo is None:
        return moment.replace(tzinfo=tz)
    return moment


def combine(target_date: date, minutes: int, tz: ZoneInfo) -> datetime:
    """Aware datetime for a day-local minute offset on target_date."""
    hour, minute = divmod(minutes, 60)
    return datetime.combine(target_date, time(hour, minute), tzinfo=tz)


def day_bounds(target_date: date, tz: ZoneInfo) -> tuple[datetime, datetime]:
    """[start, end) of target_date in the provider timezone, as UTC."""
    start = datetime.combine(target_date, time.min, tzinfo=tz)
    end = datetime.combine(target_date + timedelta(days=1), time.min, tzinfo=tz)
    return start.astimezone(timezone.utc), end.astimezone(timezone.utc)


def to_utc_iso(moment: datetime) -> str:
    """Storage form of a booking timestamp: UTC, second precision."""
    if moment.tzinfo is None:
        raise ValueError("to_utc_iso requires an aware datetime")
    return moment.astimezone(timezone.utc).isoformat(timespec="seconds")


def from_utc_iso(value: str) -> datetime:
    """Parse a stored booking timestamp back into an aware UTC datetime."""
    moment = datetime.fromisoformat(value)
    if moment.tzinfo is None:
        moment = moment.replace(tzinfo=timezone.utc)
    return moment.astimezone(timezone.utc)


def date_range(start: date, end: date) -> list[date]:
    """Dates in [start, end], inclusive."""
    if start > end:
        start, end = end, start
    dates = []
    current = start
    while current <= end:
        dates.append(current)
        current += timedelta(days=1)
    return dates
