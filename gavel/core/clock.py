"""
Clock support

Components that depend on the current time take a `Clock` so that tests can control time.
"""
from datetime import datetime, UTC
from typing import Callable

Clock = Callable[[], datetime]


def utc_now() -> datetime:
    """
    :return: current time as a timezone aware UTC datetime
    """
    return datetime.now(UTC)


def require_aware(value: datetime, name: str) -> datetime:
    """
    Naive datetimes cannot be compared against the clock.

    :exception ValueError: if `value` has no timezone
    :return: `value` converted to UTC
    """
    if value.tzinfo is None or value.utcoffset() is None:
        raise ValueError(f"{name} must be timezone aware: {value}")
    return value.astimezone(UTC)
