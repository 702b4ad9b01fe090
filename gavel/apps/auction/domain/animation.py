"""
Animated transitions of a displayed bid value
"""
from datetime import timedelta, datetime
from enum import IntEnum, auto

from gavel.core.clock import Clock, utc_now

ANIMATION_DURATION = timedelta(milliseconds=800)


def ease_out_cubic(t: float) -> float:
    return 1 - (1 - t) ** 3


def interpolate(old: float, new: float, t: float) -> float:
    """
    :param t: animation progress - clamped to [0, 1]
    :return: exactly `new` once t >= 1
    """
    if t >= 1:
        return new
    if t <= 0:
        return old
    return old + (new - old) * ease_out_cubic(t)


class AnimationState(IntEnum):
    """
    IDLE -> ANIMATING -> SETTLED

    A settled animation starts animating again when it is given a new target.
    """

    IDLE = auto()
    ANIMATING = auto()
    SETTLED = auto()


class BidAnimation:
    """
    Per observer animation of the displayed bid value towards the latest current bid.

    The animation is purely a display concern: the target is always the store's value, only the displayed value lags.
    """

    def __init__(
        self,
        initial: float,
        duration: timedelta = ANIMATION_DURATION,
        clock: Clock = utc_now,
    ):
        if duration <= timedelta(0):
            raise ValueError(f"animation duration must be positive: {duration}")

        self._duration = duration
        self._clock = clock

        self._state = AnimationState.IDLE
        self._displayed = initial
        self._start_value = initial
        self._target = initial
        self._started_at: datetime | None = None

    @property
    def state(self) -> AnimationState:
        return self._state

    @property
    def displayed(self) -> float:
        """
        :return: the last sampled value
        """
        return self._displayed

    @property
    def target(self) -> float:
        return self._target

    def retarget(self, target: float):
        """
        Starts animating from the value currently displayed towards `target`.
        """
        if target == self._target and self._state != AnimationState.IDLE:
            return

        self._start_value = self._displayed
        self._target = target
        if self._displayed == target:
            self._state = AnimationState.SETTLED
            return

        self._started_at = self._clock()
        self._state = AnimationState.ANIMATING

    def sample(self) -> float:
        """
        Advances the animation to the current time.

        :return: the value to display
        """
        if self._state != AnimationState.ANIMATING or self._started_at is None:
            return self._displayed

        progress = (self._clock() - self._started_at) / self._duration
        self._displayed = interpolate(self._start_value, self._target, progress)
        if progress >= 1:
            self._state = AnimationState.SETTLED
        return self._displayed
