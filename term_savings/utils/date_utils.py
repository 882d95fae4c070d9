"""Date and time helpers for accrual arithmetic"""

from datetime import datetime, timedelta, timezone
from decimal import Decimal
from term_savings.domain.models import TimeRemaining

MICROSECONDS_PER_DAY = 86_400_000_000
_ONE_MICROSECOND = timedelta(microseconds=1)


def ensure_utc(moment: datetime) -> datetime:
    """Treat naive datetimes as UTC; convert aware ones to UTC"""
    if moment.tzinfo is None:
        return moment.replace(tzinfo=timezone.utc)
    return moment.astimezone(timezone.utc)


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def to_microseconds(delta: timedelta) -> int:
    """Exact integer length of a timedelta in microseconds"""
    return delta // _ONE_MICROSECOND


def fractional_days(delta: timedelta) -> Decimal:
    """Length of a timedelta in days, with sub-day precision and no float rounding"""
    return Decimal(to_microseconds(delta)) / Decimal(MICROSECONDS_PER_DAY)


def split_remaining(delta: timedelta) -> TimeRemaining:
    """Break a non-negative timedelta into whole days/hours/minutes/seconds"""
    total_seconds = max(0, to_microseconds(delta) // 1_000_000)
    days, rest = divmod(total_seconds, 86_400)
    hours, rest = divmod(rest, 3_600)
    minutes, seconds = divmod(rest, 60)
    return TimeRemaining(
        days=days,
        hours=hours,
        minutes=minutes,
        seconds=seconds,
        total_seconds=total_seconds,
    )
