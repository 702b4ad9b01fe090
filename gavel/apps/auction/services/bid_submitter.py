"""
Bid submission boundary

Submitting a bid is the only operation that may take time. The engine awaits a BidSubmitter, thus a networked
implementation can add latency, timeouts, or retries without touching bid validation or the ledger.
"""
import asyncio
from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import timedelta

from gavel.apps.auction.domain.model import Amount, BidderId, ListingId
from gavel.apps.auction.store.auction_store import AuctionStore, BidOutcome


@dataclass(slots=True, frozen=True)
class BidRequest:
    """
    Bid submission
    """

    listing_id: ListingId
    bidder: BidderId
    amount: Amount

    # the current bid the bidder saw when bidding
    observed_bid: Amount | None = None


class BidSubmitter(ABC):
    """
    Submits bids
    """

    @abstractmethod
    async def __call__(self, request: BidRequest) -> BidOutcome:
        """
        Submits the bid and returns the outcome once it is known
        """


class LocalBidSubmitter(BidSubmitter):
    """
    Applies bids directly to the in-memory store, optionally after a simulated confirmation delay.
    """

    def __init__(self, store: AuctionStore, latency: timedelta = timedelta(0)):
        self._store = store
        self._latency = latency

    async def __call__(self, request: BidRequest) -> BidOutcome:
        if self._latency > timedelta(0):
            await asyncio.sleep(self._latency.total_seconds())
        return self._store.apply_bid(
            listing_id=request.listing_id,
            bidder=request.bidder,
            amount=request.amount,
            observed_bid=request.observed_bid,
        )
