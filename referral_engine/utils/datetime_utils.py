"""
Datetime utilities.

Provides timezone-aware datetime functions.
"""

import math
from datetime import UTC, date, datetime, timedelta

from referral_engine.config.business_constants import SECONDS_PER_DAY
from referral_engine.config.settings import settings


def utc_now() -> datetime:
    """
    Get current UTC datetime with timezone info.

    Returns:
        Current datetime in UTC with timezone awareness
    """
    return datetime.now(UTC)


def ensure_aware(value: datetime) -> datetime:
    """Treat naive datetimes as UTC."""
    if value.tzinfo is None:
        return value.replace(tzinfo=UTC)
    return value


def business_date(now: datetime) -> date:
    """
    Calendar day of a moment in the business timezone.

    Args:
        now: Moment to convert

    Returns:
        Local date used by the once-per-day guard
    """
    return ensure_aware(now).astimezone(settings.tz).date()


def add_days(start: datetime, days: int) -> datetime:
    """Shift a moment by whole days."""
    return start + timedelta(days=days)


def remaining_days(until: datetime | None, now: datetime) -> int:
    """
    Whole days left until a deadline, rounded up, never negative.

    Args:
        until: Deadline (None means no window)
        now: Current moment

    Returns:
        ceil((until - now) / 1 day), clamped at 0
    """
    if until is None:
        return 0
    seconds = (ensure_aware(until) - ensure_aware(now)).total_seconds()
    return max(0, math.ceil(seconds / SECONDS_PER_DAY))
