"""
Countdown timer
"""
from datetime import datetime, timedelta

from reactivex import Observable
from reactivex import operators as ops

from gavel.apps.auction.domain.countdown import (
    Countdown,
    countdown_at,
    LOW_TIME_THRESHOLD,
)
from gavel.core.clock import Clock, utc_now
from gavel.core.rx import TickSource, interval_ticks


class CountdownTimer:
    """
    Publishes a listing's countdown.

    - The current countdown is emitted on subscription, and then recomputed on each tick.
    - Once expired, the expired countdown is emitted and the stream completes, which stops the ticks.
    - Disposing the subscription stops the ticks.
    - Each subscription ticks independently. The remaining time is always derived from the clock, thus subscribing at
      any point yields the same remaining time.
    """

    def __init__(
        self,
        end_time: datetime,
        clock: Clock = utc_now,
        ticks: TickSource = interval_ticks,
        interval: timedelta = timedelta(seconds=1),
        low_time_threshold: timedelta = LOW_TIME_THRESHOLD,
    ):
        self._end_time = end_time
        self._clock = clock
        self._ticks = ticks
        self._interval = interval
        self._low_time_threshold = low_time_threshold

    @property
    def end_time(self) -> datetime:
        return self._end_time

    def current(self) -> Countdown:
        return countdown_at(self._end_time, self._clock(), self._low_time_threshold)

    def observable(self) -> Observable[Countdown]:
        return self._ticks(self._interval).pipe(
            ops.start_with(None),
            ops.map(lambda _: self.current()),
            ops.take_while(lambda countdown: not countdown.is_expired, inclusive=True),
        )
