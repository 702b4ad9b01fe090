"""
Auction engine: the boundary through which views submit bids and observe listings
"""
import asyncio
from random import Random
from typing import Callable

from reactivex import Observable
from reactivex.abc import DisposableBase
from reactivex.disposable import (
    CompositeDisposable,
    Disposable,
    SingleAssignmentDisposable,
)

from gavel.apps.auction.config import EngineConfig
from gavel.apps.auction.data.listing_source import ListingSource
from gavel.apps.auction.domain.bid_validation import RejectionReason
from gavel.apps.auction.domain.countdown import Countdown
from gavel.apps.auction.domain.listing import Listing, ListingStatus
from gavel.apps.auction.domain.model import Amount, BidderId, ListingId
from gavel.apps.auction.notifications import Notifier, bid_outcome_notification
from gavel.apps.auction.services.bid_submitter import (
    BidRequest,
    BidSubmitter,
    LocalBidSubmitter,
)
from gavel.apps.auction.services.countdown_timer import CountdownTimer
from gavel.apps.auction.services.outbid_simulator import OutbidSimulator
from gavel.apps.auction.store.auction_store import AuctionStore, BidOutcome
from gavel.core.async_service import AsyncService
from gavel.core.clock import Clock, utc_now
from gavel.core.rx import TickSource, interval_ticks


class ListingNotFound(Exception):
    """
    The listing is unknown
    """


class InvalidBidAmount(ValueError):
    """
    Bid amounts must be numbers
    """


class AuctionEngine(AsyncService):
    """
    Features
    --------
    - On startup, listings are loaded from the data source into the store.
    - Bids are submitted async. Submissions are serialized per listing: a bid always validates against the result of
      the bid submitted before it.
    - Bid outcomes are reported to the notifier as soon as they are known.
    - Views subscribe to listing snapshots and to listing countdowns. Subscriptions return a Disposable that is used to
      unsubscribe. Countdown subscriptions that are still active when the engine stops are disposed.
    """

    # pylint: disable=too-many-instance-attributes

    def __init__(
        self,
        listing_source: ListingSource,
        notifier: Notifier,
        config: EngineConfig | None = None,
        clock: Clock = utc_now,
        ticks: TickSource = interval_ticks,
        rng: Random | None = None,
        store: AuctionStore | None = None,
        submitter: BidSubmitter | None = None,
    ):
        """
        :param rng: source of randomness for bid proofs and simulated outbids
        :param store: defaults to an empty in-memory AuctionStore
        :param submitter: defaults to a LocalBidSubmitter that applies bids to the store
        """
        super().__init__()
        self._listing_source = listing_source
        self._notifier = notifier
        self._config = config if config else EngineConfig()
        self._clock = clock
        self._ticks = ticks
        rng = rng if rng else Random()

        self._store = store if store else AuctionStore(clock=clock, rng=rng)
        self._submitter = (
            submitter
            if submitter
            else LocalBidSubmitter(self._store, self._config.bidding.latency)
        )
        self._bid_locks: dict[ListingId, asyncio.Lock] = {}
        self._countdown_subscriptions = CompositeDisposable()

        simulation = self._config.outbid_simulation
        self._outbid_simulator = (
            OutbidSimulator(
                notifier=notifier,
                active_listings=self.active_listing_ids,
                interval=simulation.interval,
                probability=simulation.probability,
                rng=rng,
            )
            if simulation.enabled
            else None
        )

    @property
    def config(self) -> EngineConfig:
        return self._config

    @property
    def store(self) -> AuctionStore:
        return self._store

    @property
    def clock(self) -> Clock:
        return self._clock

    async def _start(self):
        self._store.load(
            listing
            for listing in self._listing_source()
            if self._store.get(listing.id) is None
        )
        if self._outbid_simulator:
            await self._outbid_simulator.start()

    async def _stop(self):
        if self._outbid_simulator:
            await self._outbid_simulator.stop()
        self._countdown_subscriptions.clear()

    def active_listing_ids(self) -> list[ListingId]:
        now = self._clock()
        return [
            listing.id
            for listing in self._store.snapshot().values()
            if listing.status_at(now) == ListingStatus.ACTIVE
        ]

    def get_listing(self, listing_id: ListingId) -> Listing:
        """
        :exception ListingNotFound:
        """
        listing = self._store.get(listing_id)
        if listing is None:
            raise ListingNotFound(listing_id)
        return listing

    async def submit_bid(
        self,
        listing_id: ListingId,
        bidder: BidderId,
        amount: Amount | float,
        observed_bid: Amount | None = None,
    ) -> BidOutcome:
        """
        Bids are always answered with an outcome, which is also reported to the notifier.
        Amounts that are not positive whole numbers are rejected as BID_TOO_LOW, unless bidding is closed.

        :param observed_bid: the current bid that was displayed to the bidder
        :exception InvalidBidAmount: if the amount is not a number
        """
        if isinstance(amount, bool) or not isinstance(amount, (int, float)):
            raise InvalidBidAmount(f"bid amount must be a number: {amount!r}")

        listing = self._store.get(listing_id)
        if listing is None:
            outcome = BidOutcome(
                listing_id=listing_id,
                amount=amount,  # type: ignore
                rejection=RejectionReason.NOT_FOUND,
            )
        elif amount <= 0 or not float(amount).is_integer():
            outcome = BidOutcome(
                listing_id=listing_id,
                amount=amount,  # type: ignore
                rejection=(
                    RejectionReason.BID_TOO_LOW
                    if listing.is_bidding_open(self._clock())
                    else RejectionReason.AUCTION_CLOSED
                ),
                current_bid=listing.current_bid,
            )
        else:
            lock = self._bid_locks.get(listing_id)
            if lock is None:
                lock = self._bid_locks[listing_id] = asyncio.Lock()
            async with lock:
                outcome = await self._submitter(
                    BidRequest(
                        listing_id=listing_id,
                        bidder=bidder,
                        amount=Amount(int(amount)),
                        observed_bid=observed_bid,
                    )
                )

        self._notifier.notify(bid_outcome_notification(outcome))
        return outcome

    def observe_listing(self, listing_id: ListingId) -> Observable[Listing]:
        """
        :exception ListingNotFound:
        """
        try:
            return self._store.observe(listing_id)
        except KeyError as err:
            raise ListingNotFound(listing_id) from err

    def subscribe_to_listing(
        self,
        listing_id: ListingId,
        callback: Callable[[Listing], None],
    ) -> DisposableBase:
        """
        The callback receives the current snapshot immediately, and then each updated snapshot.

        :exception ListingNotFound:
        """
        return self.observe_listing(listing_id).subscribe(on_next=callback)

    def countdown_timer(self, listing_id: ListingId) -> CountdownTimer:
        """
        :exception ListingNotFound:
        """
        countdown_config = self._config.countdown
        return CountdownTimer(
            end_time=self.get_listing(listing_id).end_time,
            clock=self._clock,
            ticks=self._ticks,
            interval=countdown_config.interval,
            low_time_threshold=countdown_config.low_time_threshold,
        )

    def subscribe_to_countdown(
        self,
        listing_id: ListingId,
        callback: Callable[[Countdown], None],
    ) -> DisposableBase:
        """
        The callback receives the current countdown immediately, and then on each tick until the countdown expires.
        The subscription is released when the countdown expires, when it is disposed, or when the engine stops.

        :exception ListingNotFound:
        """
        timer = self.countdown_timer(listing_id)
        subscription = SingleAssignmentDisposable()
        self._countdown_subscriptions.add(subscription)

        def release():
            self._countdown_subscriptions.remove(subscription)

        # an expired countdown completes during subscribe, which disposes the assignment right away
        subscription.disposable = timer.observable().subscribe(
            on_next=callback,
            on_completed=release,
        )
        return Disposable(release)

    @property
    def countdown_subscription_count(self) -> int:
        """
        :return: number of countdown subscriptions that are still ticking
        """
        return len(self._countdown_subscriptions)
