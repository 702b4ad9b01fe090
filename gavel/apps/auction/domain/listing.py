"""
Listing domain model
"""

from dataclasses import dataclass
from datetime import datetime
from enum import IntEnum, auto

from gavel.apps.auction.domain.bid import Bid
from gavel.apps.auction.domain.model import Amount, ListingId


class ListingStatus(IntEnum):
    """
    A listing's status is derived from its bidding window and the clock. It is never set directly.

    - UPCOMING: the bidding window has not opened yet (only when the listing has a start time)
    - ACTIVE: bids are accepted
    - ENDED: the end time has passed - listings are never reopened or extended
    """

    UPCOMING = auto()
    ACTIVE = auto()
    ENDED = auto()

    @property
    def label(self) -> str:
        """
        :return: display label, e.g. "Active"
        """
        return self.name.capitalize()

    def __repr__(self) -> str:
        return f"{self.name}({self.value})"


class InvalidListing(Exception):
    """
    Listing seed data violates the listing invariants
    """


@dataclass(slots=True, frozen=True)
class Seller:
    """
    Listing seller profile
    """

    name: str
    avatar: str = ""
    # 0 - 5 stars
    rating: float = 0.0


@dataclass(slots=True, frozen=True)
class Listing:
    """
    Immutable snapshot of an auction listing.

    `current_bid` and `bid_count` are derived from the bid history, thus they can never disagree with it.
    """

    # pylint: disable=too-many-instance-attributes

    id: ListingId  # pylint: disable=invalid-name
    title: str
    starting_bid: Amount
    end_time: datetime
    seller: Seller

    description: str = ""
    category: str = ""
    images: tuple[str, ...] = ()

    # bidding opens at `start_time` - if None, then bidding is open until `end_time`
    start_time: datetime | None = None

    # newest first
    bid_history: tuple[Bid, ...] = ()

    @property
    def current_bid(self) -> Amount:
        """
        :return: the most recent bid amount, or the starting bid when there are no bids
        """
        return self.bid_history[0].amount if self.bid_history else self.starting_bid

    @property
    def bid_count(self) -> int:
        return len(self.bid_history)

    @property
    def latest_bid(self) -> Bid | None:
        return self.bid_history[0] if self.bid_history else None

    def status_at(self, now: datetime) -> ListingStatus:
        """
        :param now: timezone aware datetime
        """
        if self.start_time and now < self.start_time:
            return ListingStatus.UPCOMING
        if now < self.end_time:
            return ListingStatus.ACTIVE
        return ListingStatus.ENDED

    def is_bidding_open(self, now: datetime) -> bool:
        return self.status_at(now) == ListingStatus.ACTIVE


def check_listing(listing: Listing):
    """
    Checks the invariants that must hold before a listing is loaded.
    Seed bid histories are trusted apart from their ordering.

    :exception InvalidListing: describes the first violation found
    """

    def is_aware(value: datetime) -> bool:
        return value.tzinfo is not None and value.utcoffset() is not None

    if not listing.id:
        raise InvalidListing("listing id is required")
    if listing.starting_bid < 0:
        raise InvalidListing(
            f"[{listing.id}] starting bid must not be negative: {listing.starting_bid}"
        )
    if not is_aware(listing.end_time):
        raise InvalidListing(f"[{listing.id}] end time must be timezone aware")
    if listing.start_time:
        if not is_aware(listing.start_time):
            raise InvalidListing(f"[{listing.id}] start time must be timezone aware")
        if listing.start_time >= listing.end_time:
            raise InvalidListing(
                f"[{listing.id}] start time must be before end time: {listing.start_time} >= {listing.end_time}"
            )

    # newest first: amounts must be strictly decreasing, and no bid may be below the starting bid
    amounts = [bid.amount for bid in listing.bid_history]
    for newer, older in zip(amounts, amounts[1:]):
        if newer <= older:
            raise InvalidListing(
                f"[{listing.id}] bid history must be strictly decreasing newest first: {amounts}"
            )
    if amounts and amounts[-1] < listing.starting_bid:
        raise InvalidListing(
            f"[{listing.id}] bid below starting bid: {amounts[-1]} < {listing.starting_bid}"
        )
