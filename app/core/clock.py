"""UTC time helpers shared by ingest, sessions and aggregation windows."""

from datetime import datetime, timedelta, timezone
from typing import Callable

Clock = Callable[[], datetime]


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def as_utc(value: datetime) -> datetime:
    """Attach UTC to naive values, convert aware ones."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def window_start(now: datetime, days: float) -> datetime:
    """Lower bound of the rolling ``[now - days, now)`` window."""
    return now - timedelta(days=days)


def start_of_day(value: datetime) -> datetime:
    return as_utc(value).replace(hour=0, minute=0, second=0, microsecond=0)


def start_of_month(value: datetime) -> datetime:
    return start_of_day(value).replace(day=1)


def start_of_next_month(value: datetime) -> datetime:
    first = start_of_month(value)
    if first.month == 12:
        return first.replace(year=first.year + 1, month=1)
    return first.replace(month=first.month + 1)
