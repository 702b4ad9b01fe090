"""
Bid validation
"""
from dataclasses import dataclass
from datetime import datetime
from enum import IntEnum, auto

from gavel.apps.auction.domain.listing import Listing, ListingStatus
from gavel.apps.auction.domain.model import Amount


class RejectionReason(IntEnum):
    """
    Why a bid was not accepted. All rejections are recoverable, and none of them change listing state.
    """

    # the bid amount is not strictly greater than the current bid
    BID_TOO_LOW = auto()
    # the listing is not active, i.e., it is upcoming or has ended
    AUCTION_CLOSED = auto()
    # the listing is unknown
    NOT_FOUND = auto()
    # another bid completed first and the bid no longer beats the current bid - retry from the latest snapshot
    CONCURRENT_CONFLICT = auto()

    @property
    def message(self) -> str:
        match self:
            case RejectionReason.BID_TOO_LOW:
                return "Your bid must be higher than the current bid."
            case RejectionReason.AUCTION_CLOSED:
                return "This auction is not accepting bids."
            case RejectionReason.NOT_FOUND:
                return "Auction not found."
            case RejectionReason.CONCURRENT_CONFLICT:
                return "Another bid was placed first. Please bid again."
            case other:
                raise AssertionError(f"RejectionReason match case is missing: {other}")


@dataclass(slots=True, frozen=True)
class Accepted:
    """
    The bid may be applied
    """

    amount: Amount


@dataclass(slots=True, frozen=True)
class Rejected:
    """
    The bid must not be applied
    """

    reason: RejectionReason


Validation = Accepted | Rejected


def validate_bid(
    listing: Listing,
    amount: Amount,
    now: datetime,
    observed_bid: Amount | None = None,
) -> Validation:
    """
    Decides whether a bid may be accepted against the listing's current state. Pure - nothing is mutated.

    Bids must be strictly greater than the current bid. Equal bids are always rejected, i.e., there are no ties.

    :param observed_bid: the current bid the bidder saw when placing the bid. When it is stale and the bid no longer
                         beats the current bid, then the rejection is reported as a CONCURRENT_CONFLICT.
    """
    if listing.status_at(now) != ListingStatus.ACTIVE:
        return Rejected(RejectionReason.AUCTION_CLOSED)

    if amount <= listing.current_bid:
        if observed_bid is not None and observed_bid != listing.current_bid:
            return Rejected(RejectionReason.CONCURRENT_CONFLICT)
        return Rejected(RejectionReason.BID_TOO_LOW)

    return Accepted(amount)
