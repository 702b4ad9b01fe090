from datetime import datetime, timedelta

from gavel.apps.auction.domain.bid import Bid, BidId
from gavel.apps.auction.domain.listing import Listing, Seller
from gavel.apps.auction.domain.model import Amount, BidderId, ListingId


def create_bid(
    amount: int,
    timestamp: datetime,
    bidder: str = "bidder",
    proof: str = "0xa1b2c3d4e5f6789012345678901234567890abcdef",
) -> Bid:
    return Bid(
        id=BidId.from_datetime(timestamp),
        bidder=BidderId(bidder),
        amount=Amount(amount),
        timestamp=timestamp,
        proof=proof,
    )


def create_listing(
    now: datetime,
    listing_id: str = "1",
    starting_bid: int = 5000,
    bids: list[int] | None = None,
    end_time: datetime | None = None,
    start_time: datetime | None = None,
    title: str | None = None,
    description: str = "",
    category: str = "Watches",
) -> Listing:
    """
    :param bids: bid amounts, oldest first
    """
    if end_time is None:
        end_time = now + timedelta(days=1)

    bids = bids if bids else []
    history = tuple(
        create_bid(
            amount,
            now - timedelta(minutes=len(bids) - i),
            bidder=f"bidder-{i}",
        )
        for i, amount in enumerate(bids)
    )

    return Listing(
        id=ListingId(listing_id),
        title=title if title else f"Listing {listing_id}",
        description=description,
        category=category,
        images=(f"listing-{listing_id}.jpg",),
        starting_bid=Amount(starting_bid),
        start_time=start_time,
        end_time=end_time,
        seller=Seller("seller", rating=4.5),
        bid_history=tuple(reversed(history)),
    )
