"""
Local wall-clock day helpers.
All datetimes are naive local times; day boundaries are local midnight.
"""
from datetime import datetime, timedelta
from typing import Optional


def _now(now: Optional[datetime]) -> datetime:
    return now if now is not None else datetime.now()


def day_floor(t: datetime) -> datetime:
    """Truncate to local midnight."""
    return t.replace(hour=0, minute=0, second=0, microsecond=0)


def is_today(t: datetime, now: Optional[datetime] = None) -> bool:
    return day_floor(t) == day_floor(_now(now))


def is_overdue(t: datetime, now: Optional[datetime] = None) -> bool:
    return day_floor(t) < day_floor(_now(now))


def is_tomorrow(t: datetime, now: Optional[datetime] = None) -> bool:
    return day_floor(t) == day_floor(_now(now)) + timedelta(days=1)


def slot_distance(a: datetime, b: datetime) -> timedelta:
    return abs(a - b)


def parse_time_of_day(value: str) -> tuple[int, int]:
    """
    Parse "HH:MM" (24h). "9:05" is accepted as well.
    Raises ValueError on anything else.
    """
    try:
        hours_str, minutes_str = value.strip().split(":")
        hours, minutes = int(hours_str), int(minutes_str)
    except (ValueError, AttributeError):
        raise ValueError(f"Invalid time of day: {value!r}")
    if not (0 <= hours <= 23 and 0 <= minutes <= 59):
        raise ValueError(f"Invalid time of day: {value!r}")
    return hours, minutes


def at_time_of_day(day: datetime, value: str) -> datetime:
    """Same calendar day as `day`, clock set to "HH:MM" (seconds kept as-is, like setHours(h, m))."""
    hours, minutes = parse_time_of_day(value)
    return day.replace(hour=hours, minute=minutes)


def end_of_day(day: datetime) -> datetime:
    """23:59:00 on the same calendar day; the due time of untimed tasks."""
    return day.replace(hour=23, minute=59, second=0, microsecond=0)


def parse_date(value: str) -> datetime:
    """YYYY-MM-DD -> local midnight of that day."""
    return datetime.strptime(value, "%Y-%m-%d")
