"""
Displayed bid value
"""
from datetime import timedelta
from threading import RLock

from reactivex import Observable
from reactivex.abc import DisposableBase
from reactivex.disposable import CompositeDisposable, SerialDisposable, Disposable
from reactivex.subject import BehaviorSubject

from gavel.apps.auction.domain.animation import (
    AnimationState,
    BidAnimation,
    ANIMATION_DURATION,
)
from gavel.apps.auction.domain.listing import Listing
from gavel.core.clock import Clock, utc_now
from gavel.core.logging import get_logger
from gavel.core.rx import TickSource, interval_ticks


class BidDisplay:
    """
    The bid value shown by one view, e.g., a listing's summary card or its detail view.

    When the listing's current bid changes, the displayed value animates from the value currently shown to the new
    current bid. Frames are rendered on each tick until the animation settles, and then the frame ticks are disposed.

    Each display owns its animation state. Displays observing the same listing animate independently, but always
    converge on the listing's current bid.
    """

    def __init__(
        self,
        name: str,
        clock: Clock = utc_now,
        ticks: TickSource = interval_ticks,
        frame_interval: timedelta = timedelta(milliseconds=16),
        duration: timedelta = ANIMATION_DURATION,
    ):
        self.name = name
        self._clock = clock
        self._ticks = ticks
        self._frame_interval = frame_interval
        self._duration = duration

        self._lock = RLock()
        self._animation: BidAnimation | None = None
        self._frames = SerialDisposable()
        self._rendering = False
        self._subject: BehaviorSubject[float | None] = BehaviorSubject(None)

    @property
    def state(self) -> AnimationState:
        return self._animation.state if self._animation else AnimationState.IDLE

    @property
    def displayed(self) -> float | None:
        """
        :return: None until the first listing snapshot is received
        """
        return self._animation.displayed if self._animation else None

    @property
    def values(self) -> Observable[float | None]:
        """
        Displayed values, starting with the value currently displayed
        """
        return self._subject

    def observe(self, listings: Observable[Listing]) -> DisposableBase:
        """
        Starts displaying the listing's current bid. A detached display may observe again, e.g., when a view reopens.

        :return: Disposable used to detach the display, which also stops any animation in progress
        """
        subscription = listings.subscribe(on_next=self._on_listing)
        return CompositeDisposable(subscription, Disposable(self._stop_frames))

    def _on_listing(self, listing: Listing):
        with self._lock:
            if self._animation is None:
                self._animation = BidAnimation(
                    initial=float(listing.current_bid),
                    duration=self._duration,
                    clock=self._clock,
                )
                self._animation.retarget(float(listing.current_bid))
                self._subject.on_next(self._animation.displayed)
                return

            if listing.current_bid != self._animation.target:
                get_logger(self, self.name).debug(
                    "[%s] animating %s -> %s",
                    listing.id,
                    self._animation.displayed,
                    listing.current_bid,
                )
                self._animation.retarget(float(listing.current_bid))

            # also resumes an animation that was in progress when the display was detached
            if self._animation.state == AnimationState.ANIMATING and not self._rendering:
                self._rendering = True
                self._frames.disposable = self._ticks(self._frame_interval).subscribe(
                    on_next=lambda _: self.render_frame()
                )

    def _stop_frames(self):
        with self._lock:
            self._rendering = False
            self._frames.disposable = Disposable()

    def render_frame(self) -> float | None:
        """
        Samples the animation and publishes the displayed value.
        """
        with self._lock:
            if self._animation is None:
                return None

            value = self._animation.sample()
            self._subject.on_next(value)
            if self._animation.state == AnimationState.SETTLED:
                self._stop_frames()
            return value
