"""Date manipulation utilities"""

from datetime import date, datetime, time, timezone
from typing import Tuple


def as_utc(value: datetime) -> datetime:
    """Treat naive datetimes (as returned by SQLite) as UTC"""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def utc_date_key(value: datetime) -> str:
    """Calendar day of a timestamp in UTC, as YYYY-MM-DD"""
    return as_utc(value).date().isoformat()


def previous_month(today: date) -> Tuple[int, int]:
    """(year, month) of the calendar month before today's"""
    if today.month == 1:
        return today.year - 1, 12
    return today.year, today.month - 1


def start_of_day(day: date) -> datetime:
    return datetime.combine(day, time.min, tzinfo=timezone.utc)


def end_of_day(day: date) -> datetime:
    """Last representable instant of a day, so a date bound includes the whole day"""
    return datetime.combine(day, time.max, tzinfo=timezone.utc)
