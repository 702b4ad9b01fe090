"""
Auction state store
"""
import dataclasses
import logging
from dataclasses import dataclass
from random import Random
from threading import RLock
from types import MappingProxyType
from typing import Iterable, Mapping

import reactivex
from reactivex import Observable, Subject
from reactivex.abc import ObserverBase, DisposableBase, SchedulerBase
from reactivex.subject import BehaviorSubject

from gavel.apps.auction.domain.bid import Bid, BidId, generate_proof
from gavel.apps.auction.domain.bid_ledger import record_bid
from gavel.apps.auction.domain.bid_validation import (
    RejectionReason,
    Rejected,
    validate_bid,
)
from gavel.apps.auction.domain.listing import Listing, check_listing
from gavel.apps.auction.domain.model import Amount, BidderId, ListingId
from gavel.core.clock import Clock, utc_now
from gavel.core.logging import get_logger


class DuplicateListing(Exception):
    """
    A listing with the same ID is already loaded
    """


def read_only(subject: Subject[Listing], logger: logging.Logger) -> Observable[Listing]:
    """
    Hides the subject, so that subscribers cannot publish.

    Subscriber failures are logged. They never reach the publisher or the other subscribers.
    """

    def subscribe(
        observer: ObserverBase[Listing], scheduler: SchedulerBase | None = None
    ) -> DisposableBase:
        def on_next(listing: Listing):
            try:
                observer.on_next(listing)
            except Exception:  # pylint: disable=broad-except
                logger.exception("[%s] subscriber failed to handle update", listing.id)

        return subject.subscribe(
            on_next,
            observer.on_error,
            observer.on_completed,
            scheduler=scheduler,
        )

    return reactivex.create(subscribe)


@dataclass(slots=True, frozen=True)
class BidOutcome:
    """
    Result of applying a bid.

    Accepted: `bid` and `listing` (the updated snapshot) are set.
    Rejected: `rejection` is set, and `current_bid` is the listing's current bid to retry against
              (None if the listing was not found).
    """

    listing_id: ListingId
    amount: Amount

    bid: Bid | None = None
    listing: Listing | None = None

    rejection: RejectionReason | None = None
    current_bid: Amount | None = None

    @property
    def accepted(self) -> bool:
        return self.rejection is None


class AuctionStore:
    """
    Single owner of the listing collection, and the only component that writes listing state.

    Listings are immutable snapshots. Applying a bid swaps in a new snapshot and publishes it to the listing's
    subscribers. Readers only ever see complete snapshots.

    Notes
    -----
    - `apply_bid()` is atomic: the ledger, current bid, and bid count are updated together or not at all.
    - Bids are applied under a lock, thus a bid always validates against the result of the previously applied bid.
    """

    def __init__(self, clock: Clock = utc_now, rng: Random | None = None):
        """
        :param clock: used to timestamp bids and to derive listing status
        :param rng: source of randomness for bid proof tokens
        """
        self._clock = clock
        self._rng = rng if rng else Random()
        self._lock = RLock()

        self._listings: dict[ListingId, Listing] = {}
        self._subjects: dict[ListingId, BehaviorSubject[Listing]] = {}
        self._changes: Subject[Listing] = Subject()

    def load(self, listings: Iterable[Listing]):
        """
        Adds listings supplied by a data source. The batch is checked before anything is loaded.

        :exception InvalidListing: if a listing violates the listing invariants
        :exception DuplicateListing: if a listing ID is already loaded, or is repeated within the batch
        """
        listings = list(listings)
        with self._lock:
            seen: set[ListingId] = set()
            for listing in listings:
                check_listing(listing)
                if listing.id in self._listings or listing.id in seen:
                    raise DuplicateListing(listing.id)
                seen.add(listing.id)

            for listing in listings:
                self._listings[listing.id] = listing
                self._subjects[listing.id] = BehaviorSubject(listing)

        get_logger(self).info("loaded %s listings", len(listings))

    @property
    def listing_ids(self) -> list[ListingId]:
        return list(self._listings.keys())

    def get(self, listing_id: ListingId) -> Listing | None:
        """
        :return: immutable listing snapshot, or None if the listing is not found
        """
        return self._listings.get(listing_id)

    def snapshot(self) -> Mapping[ListingId, Listing]:
        """
        :return: read-only snapshot of the whole collection
        """
        with self._lock:
            return MappingProxyType(dict(self._listings))

    def observe(self, listing_id: ListingId) -> Observable[Listing]:
        """
        The current snapshot is emitted on subscription, followed by each updated snapshot.

        :exception KeyError: if the listing is not found
        """
        return read_only(self._subjects[listing_id], get_logger(self, "observe"))

    @property
    def changes(self) -> Observable[Listing]:
        """
        Updated snapshots for all listings
        """
        return read_only(self._changes, get_logger(self, "changes"))

    def apply_bid(
        self,
        listing_id: ListingId,
        bidder: BidderId,
        amount: Amount,
        observed_bid: Amount | None = None,
    ) -> BidOutcome:
        """
        Validates the bid against the current snapshot and applies it when accepted.

        :param observed_bid: the current bid the bidder saw - used to detect bids that lost a race
        """
        logger = get_logger(self, "apply_bid")

        with self._lock:
            listing = self._listings.get(listing_id)
            if listing is None:
                logger.debug("[%s] listing not found", listing_id)
                return BidOutcome(
                    listing_id=listing_id,
                    amount=amount,
                    rejection=RejectionReason.NOT_FOUND,
                )

            now = self._clock()
            validation = validate_bid(listing, amount, now, observed_bid)
            if isinstance(validation, Rejected):
                logger.debug(
                    "[%s] bid rejected: %s (amount=%s, current_bid=%s)",
                    listing_id,
                    validation.reason.name,
                    amount,
                    listing.current_bid,
                )
                return BidOutcome(
                    listing_id=listing_id,
                    amount=amount,
                    rejection=validation.reason,
                    current_bid=listing.current_bid,
                )

            bid = Bid(
                id=BidId.from_datetime(now),
                bidder=bidder,
                amount=amount,
                timestamp=now,
                proof=generate_proof(listing_id, bidder, amount, now, self._rng),
            )
            updated = dataclasses.replace(
                listing, bid_history=record_bid(listing.bid_history, bid)
            )
            self._listings[listing_id] = updated
            logger.info(
                "[%s] bid accepted: %s -> %s (bid_count=%s)",
                listing_id,
                listing.current_bid,
                updated.current_bid,
                updated.bid_count,
            )

            self._subjects[listing_id].on_next(updated)
            self._changes.on_next(updated)

            return BidOutcome(
                listing_id=listing_id,
                amount=amount,
                bid=bid,
                listing=updated,
            )
