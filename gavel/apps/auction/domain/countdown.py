"""
Auction countdown
"""
from dataclasses import dataclass
from datetime import datetime, timedelta

LOW_TIME_THRESHOLD = timedelta(minutes=5)

ZERO = timedelta(0)


@dataclass(slots=True, frozen=True)
class Countdown:
    """
    Time remaining until a listing's end time, as of a point in time.
    """

    remaining: timedelta
    low_time_threshold: timedelta = LOW_TIME_THRESHOLD

    @property
    def is_expired(self) -> bool:
        return self.remaining == ZERO

    @property
    def is_low_time(self) -> bool:
        """
        :return: True when time is running out - never True once expired
        """
        return ZERO < self.remaining <= self.low_time_threshold

    @property
    def days(self) -> int:
        return self.remaining.days

    @property
    def hours(self) -> int:
        return self.remaining.seconds // 3600

    @property
    def minutes(self) -> int:
        return (self.remaining.seconds % 3600) // 60

    @property
    def seconds(self) -> int:
        return self.remaining.seconds % 60

    @property
    def display(self) -> str:
        """
        Formats the remaining time:
        - within 24 hours: HH:MM:SS, e.g. 04:05:09
        - beyond 24 hours: "1d 4h 5m" - hours are omitted when zero, e.g. "2d 5m"
        """
        if self.remaining > timedelta(days=1):
            hours = f"{self.hours}h " if self.hours > 0 else ""
            return f"{self.days}d {hours}{self.minutes}m"

        total_hours = self.days * 24 + self.hours
        return f"{total_hours:02d}:{self.minutes:02d}:{self.seconds:02d}"


def countdown_at(
    end_time: datetime,
    now: datetime,
    low_time_threshold: timedelta = LOW_TIME_THRESHOLD,
) -> Countdown:
    """
    :return: Countdown where remaining = max(0, end_time - now)
    """
    return Countdown(
        remaining=max(ZERO, end_time - now),
        low_time_threshold=low_time_threshold,
    )
