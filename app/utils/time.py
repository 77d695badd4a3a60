import calendar
from datetime import date, datetime, time, timedelta, timezone
from typing import Optional, Tuple
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError


def utcnow() -> datetime:
    """Current time as an aware UTC datetime."""
    return datetime.now(timezone.utc)


def as_utc(value: Optional[datetime]) -> Optional[datetime]:
    """
    Normalize a datetime read from storage to aware UTC.

    Some backends (SQLite) drop tzinfo on the way back; stored values are
    always written in UTC so a naive value is interpreted as UTC.
    """
    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def add_months(value: datetime, months: int) -> datetime:
    """
    Add calendar months, clamping the day to the end of the target month.

    Jan 31 + 1 month is Feb 28 (or 29), not Mar 3.
    """
    month_index = value.month - 1 + months
    year = value.year + month_index // 12
    month = month_index % 12 + 1
    day = min(value.day, calendar.monthrange(year, month)[1])
    return value.replace(year=year, month=month, day=day)


def tenant_zone(tz_name: Optional[str]):
    """The IANA timezone ``tz_name``, or UTC when unset or unknown."""
    try:
        return ZoneInfo(tz_name) if tz_name else timezone.utc
    except (ZoneInfoNotFoundError, ValueError):
        return timezone.utc


def local_date(value: datetime, tz_name: Optional[str]) -> date:
    """Calendar date of ``value`` in the given IANA timezone (UTC if unknown)."""
    return as_utc(value).astimezone(tenant_zone(tz_name)).date()


def local_day_bounds(start_date: date, end_date: date, tz_name: Optional[str]) -> Tuple[datetime, datetime]:
    """
    UTC instants covering local days ``start_date`` through ``end_date``.

    The end bound is the last microsecond of ``end_date``, for inclusive
    range queries.
    """
    tz = tenant_zone(tz_name)
    starts_at = datetime.combine(start_date, time.min, tzinfo=tz)
    ends_at = datetime.combine(end_date + timedelta(days=1), time.min, tzinfo=tz) - timedelta(microseconds=1)
    return starts_at.astimezone(timezone.utc), ends_at.astimezone(timezone.utc)


def from_unix(timestamp: Optional[int]) -> Optional[datetime]:
    if timestamp is None:
        return None
    return datetime.fromtimestamp(int(timestamp), tz=timezone.utc)
