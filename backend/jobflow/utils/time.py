"""Time Utilities - UTC timestamps and day boundaries"""
from datetime import date, datetime, time, timezone
from typing import Union
from dateutil import parser as date_parser


DateLike = Union[date, datetime, str]


def utc_now() -> datetime:
    """Get current UTC datetime"""
    return datetime.now(timezone.utc)


def ensure_utc(dt: datetime) -> datetime:
    """Attach UTC to naive datetimes, convert aware ones to UTC"""
    if dt.tzinfo is None:
        return dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc)


def format_iso(dt: datetime) -> str:
    """
    Format datetime to ISO 8601 string

    Args:
        dt: Datetime object

    Returns:
        ISO formatted string with Z suffix for UTC
    """
    return ensure_utc(dt).isoformat().replace("+00:00", "Z")


def parse_iso(iso_string: str) -> datetime:
    """
    Parse ISO 8601 string to datetime

    Args:
        iso_string: ISO formatted date or datetime string

    Returns:
        Datetime object in UTC
    """
    return ensure_utc(date_parser.isoparse(iso_string))


def _to_day(value: DateLike) -> date:
    if isinstance(value, str):
        value = parse_iso(value)
    if isinstance(value, datetime):
        return ensure_utc(value).date()
    return value


def start_of_day(value: DateLike) -> datetime:
    """First instant (00:00:00.000 UTC) of the day containing value"""
    return datetime.combine(_to_day(value), time.min, tzinfo=timezone.utc)


def end_of_day(value: DateLike) -> datetime:
    """
    Last millisecond (23:59:59.999 UTC) of the day containing value

    Stored timestamps carry millisecond precision in MongoDB, so this bound
    includes everything recorded on that day.
    """
    return datetime.combine(
        _to_day(value),
        time(23, 59, 59, 999000),
        tzinfo=timezone.utc
    )
