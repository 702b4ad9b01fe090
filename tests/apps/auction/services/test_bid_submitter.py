import unittest
from datetime import timedelta

from gavel.apps.auction.domain.model import Amount, BidderId, ListingId
from gavel.apps.auction.services.bid_submitter import BidRequest, LocalBidSubmitter
from gavel.apps.auction.store.auction_store import AuctionStore
from tests.apps.auction import create_listing
from tests.test_support import GavelIsolatedAsyncioTestCase, FakeClock


class LocalBidSubmitterTestCase(GavelIsolatedAsyncioTestCase):
    async def test_submit(self):
        clock = FakeClock()
        store = AuctionStore(clock=clock)
        store.load([create_listing(clock.now, listing_id="1", starting_bid=100)])
        submit = LocalBidSubmitter(store, latency=timedelta(milliseconds=5))

        outcome = await submit(
            BidRequest(ListingId("1"), BidderId("You"), Amount(150))
        )
        self.assertTrue(outcome.accepted)
        self.assertEqual(150, store.get(ListingId("1")).current_bid)
        self.assertEqual("You", outcome.bid.bidder)


if __name__ == "__main__":
    unittest.main()
