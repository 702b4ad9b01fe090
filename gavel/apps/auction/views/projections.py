"""
Read-only view models derived from listing snapshots

The summary card and the detail view are both projected from the same snapshot, thus they never disagree.
"""
import dataclasses
from dataclasses import dataclass
from datetime import datetime

from gavel.apps.auction.config import BiddingConfig
from gavel.apps.auction.domain.countdown import Countdown
from gavel.apps.auction.domain.listing import Listing, ListingStatus, Seller
from gavel.apps.auction.domain.model import Amount, BidderId, ListingId


@dataclass(slots=True, frozen=True)
class ListingSummary:
    """
    Summary card
    """

    # pylint: disable=too-many-instance-attributes

    listing_id: ListingId
    title: str
    description: str
    category: str
    image: str | None
    status: ListingStatus
    current_bid: Amount
    bid_count: int
    time_left: str
    is_low_time: bool
    bidding_open: bool
    suggested_bid: Amount


@dataclass(slots=True, frozen=True)
class BidHistoryEntry:
    bidder: BidderId
    amount: Amount
    timestamp: datetime
    proof: str


@dataclass(slots=True, frozen=True)
class ListingDetail:
    """
    Detail view
    """

    # pylint: disable=too-many-instance-attributes

    summary: ListingSummary
    images: tuple[str, ...]
    seller: Seller
    starting_bid: Amount
    end_time: datetime
    minimum_bid: Amount
    bid_history: tuple[BidHistoryEntry, ...]


def project_summary(
    listing: Listing,
    countdown: Countdown,
    now: datetime,
    bidding: BiddingConfig = BiddingConfig(),
) -> ListingSummary:
    """
    :param countdown: the listing's countdown as of `now`
    """
    status = listing.status_at(now)
    return ListingSummary(
        listing_id=listing.id,
        title=listing.title,
        description=listing.description,
        category=listing.category,
        image=listing.images[0] if listing.images else None,
        status=status,
        current_bid=listing.current_bid,
        bid_count=listing.bid_count,
        time_left=countdown.display,
        is_low_time=countdown.is_low_time,
        bidding_open=status == ListingStatus.ACTIVE and not countdown.is_expired,
        suggested_bid=Amount(listing.current_bid + bidding.summary_increment),
    )


def project_detail(
    listing: Listing,
    countdown: Countdown,
    now: datetime,
    bidding: BiddingConfig = BiddingConfig(),
) -> ListingDetail:
    """
    The detail view suggests a larger bid increment than the summary card.
    """
    summary = project_summary(listing, countdown, now, bidding)
    return ListingDetail(
        summary=dataclasses.replace(
            summary,
            suggested_bid=Amount(listing.current_bid + bidding.detail_increment),
        ),
        images=listing.images,
        seller=listing.seller,
        starting_bid=listing.starting_bid,
        end_time=listing.end_time,
        minimum_bid=Amount(listing.current_bid + 1),
        bid_history=tuple(
            BidHistoryEntry(
                bidder=bid.bidder,
                amount=bid.amount,
                timestamp=bid.timestamp,
                proof=bid.short_proof,
            )
            for bid in listing.bid_history
        ),
    )
