"""Date manipulation utilities"""

import math
from datetime import datetime, timedelta, timezone
from typing import List

SECONDS_PER_DAY = 24 * 60 * 60


def utc_now() -> datetime:
    """Current UTC time as a naive datetime (storage convention)"""
    return datetime.now(timezone.utc).replace(tzinfo=None)


def ceil_days_between(start: datetime, end: datetime) -> int:
    """Whole days from start to end, rounding any partial day up"""
    return math.ceil((end - start).total_seconds() / SECONDS_PER_DAY)


def generate_due_dates(start: datetime, count: int, interval_days: int) -> List[datetime]:
    """Generate `count` due dates `interval_days` apart, starting at `start`"""
    return [start + timedelta(days=i * interval_days) for i in range(count)]


def to_naive_utc(value: datetime) -> datetime:
    """Convert an aware datetime to naive UTC; naive values are assumed UTC already"""
    if value.tzinfo is None:
        return value
    return value.astimezone(timezone.utc).replace(tzinfo=None)


def parse_iso_datetime(value: str) -> datetime:
    """Parse an ISO-8601 timestamp (a trailing Z included) into naive UTC"""
    if value.endswith("Z"):
        value = value[:-1] + "+00:00"
    return to_naive_utc(datetime.fromisoformat(value))
