import asyncio
import unittest
from datetime import timedelta
from random import Random

from gavel.apps.auction.config import EngineConfig, BiddingConfig
from gavel.apps.auction.data.listing_source import ListingSource
from gavel.apps.auction.domain.bid_validation import RejectionReason
from gavel.apps.auction.domain.countdown import Countdown
from gavel.apps.auction.domain.listing import Listing, ListingStatus
from gavel.apps.auction.domain.model import Amount, BidderId, ListingId
from gavel.apps.auction.notifications import (
    BidAccepted,
    BidNotification,
    BidRejected,
    Notifier,
)
from gavel.apps.auction.services.auction_engine import (
    AuctionEngine,
    InvalidBidAmount,
    ListingNotFound,
)
from tests.apps.auction import create_listing
from tests.test_support import GavelIsolatedAsyncioTestCase, FakeClock, ManualTicks


class ListListingSource(ListingSource):
    def __init__(self, listings: list[Listing]):
        self.listings = listings

    def __call__(self) -> list[Listing]:
        return self.listings


class RecordingNotifier(Notifier):
    def __init__(self):
        self.notifications: list[BidNotification] = []

    def notify(self, notification: BidNotification):
        self.notifications.append(notification)


class AuctionEngineTestCase(GavelIsolatedAsyncioTestCase):
    async def asyncSetUp(self) -> None:
        await super().asyncSetUp()
        self.clock = FakeClock()
        self.ticks = ManualTicks()
        self.notifier = RecordingNotifier()
        self.engine = self.create_engine()
        await self.engine.start()

    async def asyncTearDown(self) -> None:
        await self.engine.stop()

    def create_engine(self, config: EngineConfig | None = None) -> AuctionEngine:
        now = self.clock.now
        return AuctionEngine(
            listing_source=ListListingSource(
                [
                    create_listing(now, listing_id="1", starting_bid=5000),
                    create_listing(
                        now,
                        listing_id="2",
                        starting_bid=400,
                        bids=[850],
                        end_time=now + timedelta(seconds=1),
                    ),
                    create_listing(
                        now,
                        listing_id="3",
                        starting_bid=1500,
                        end_time=now - timedelta(hours=1),
                    ),
                ]
            ),
            notifier=self.notifier,
            config=config,
            clock=self.clock,
            ticks=self.ticks,
            rng=Random(3),
        )

    async def bid(self, listing_id: str, amount: int, observed_bid: int | None = None):
        return await self.engine.submit_bid(
            ListingId(listing_id),
            BidderId("You"),
            Amount(amount),
            observed_bid=Amount(observed_bid) if observed_bid is not None else None,
        )

    async def test_listings_are_loaded_on_start(self):
        self.assertEqual(["1", "2", "3"], sorted(self.engine.store.listing_ids))
        self.assertEqual(["1", "2"], sorted(self.engine.active_listing_ids()))
        self.assertEqual(5000, self.engine.get_listing(ListingId("1")).current_bid)

        with self.assertRaises(ListingNotFound):
            self.engine.get_listing(ListingId("404"))

        with self.subTest("restarting does not reload listings"):
            await self.bid("1", 6000)
            await self.engine.restart()
            self.assertEqual(3, len(self.engine.store.listing_ids))
            self.assertEqual(6000, self.engine.get_listing(ListingId("1")).current_bid)

    async def test_submit_bid(self):
        outcome = await self.bid("1", 8000)
        self.assertTrue(outcome.accepted)
        self.assertEqual(8000, self.engine.get_listing(ListingId("1")).current_bid)

        outcome = await self.bid("1", 7000)
        self.assertEqual(RejectionReason.BID_TOO_LOW, outcome.rejection)

        self.assertEqual(
            [
                BidAccepted(ListingId("1"), Amount(8000)),
                BidRejected(ListingId("1"), RejectionReason.BID_TOO_LOW, Amount(7000)),
            ],
            self.notifier.notifications,
        )
        self.assertEqual(
            "Your bid of $8,000 has been recorded on the blockchain.",
            self.notifier.notifications[0].description,
        )

    async def test_bid_on_ended_listing(self):
        outcome = await self.bid("3", 1_000_000)
        self.assertEqual(RejectionReason.AUCTION_CLOSED, outcome.rejection)
        self.assertEqual(0, self.engine.get_listing(ListingId("3")).bid_count)

        with self.subTest("listing ends when the clock passes its end time"):
            listing = self.engine.get_listing(ListingId("2"))
            self.assertEqual(ListingStatus.ACTIVE, listing.status_at(self.clock()))

            self.clock.advance(timedelta(seconds=2))
            self.assertEqual(ListingStatus.ENDED, listing.status_at(self.clock()))
            outcome = await self.bid("2", 1000)
            self.assertEqual(RejectionReason.AUCTION_CLOSED, outcome.rejection)
            self.assertEqual(["1"], self.engine.active_listing_ids())

    async def test_unknown_listing(self):
        outcome = await self.bid("404", 1000)
        self.assertEqual(RejectionReason.NOT_FOUND, outcome.rejection)
        self.assertEqual(
            RejectionReason.NOT_FOUND, self.notifier.notifications[-1].reason
        )

    async def test_invalid_bid_amount(self):
        for amount in [0, -1, 1.5]:
            with self.subTest(amount=amount):
                outcome = await self.engine.submit_bid(
                    ListingId("1"), BidderId("You"), amount  # type: ignore
                )
                self.assertEqual(RejectionReason.BID_TOO_LOW, outcome.rejection)
                self.assertEqual(5000, outcome.current_bid)
                self.assertEqual(
                    BidRejected(
                        ListingId("1"),
                        RejectionReason.BID_TOO_LOW,
                        amount,  # type: ignore
                    ),
                    self.notifier.notifications[-1],
                )
        self.assertEqual(3, len(self.notifier.notifications))

        with self.subTest("bidding closed takes precedence"):
            outcome = await self.bid("3", 0)
            self.assertEqual(RejectionReason.AUCTION_CLOSED, outcome.rejection)

        with self.subTest("amounts must be numbers"):
            for amount in [True, "6000", None]:
                with self.assertRaises(InvalidBidAmount):
                    await self.engine.submit_bid(
                        ListingId("1"), BidderId("You"), amount  # type: ignore
                    )
            self.assertEqual(4, len(self.notifier.notifications))

        self.assertEqual(0, self.engine.get_listing(ListingId("1")).bid_count)

        with self.subTest("whole number floats are accepted"):
            outcome = await self.engine.submit_bid(
                ListingId("1"), BidderId("You"), 6000.0
            )
            self.assertTrue(outcome.accepted)
            listing = self.engine.get_listing(ListingId("1"))
            self.assertEqual(6000, listing.current_bid)
            self.assertIsInstance(listing.bid_history[0].amount, int)

    async def test_failing_listing_subscriber(self):
        def fail(listing: Listing):
            if listing.bid_count:
                raise RuntimeError("BOOM!")

        received: list[Listing] = []
        self.engine.subscribe_to_listing(ListingId("1"), fail)
        self.engine.subscribe_to_listing(ListingId("1"), received.append)

        outcome = await self.bid("1", 6000)
        self.assertTrue(outcome.accepted)
        self.assertEqual(
            BidAccepted(ListingId("1"), Amount(6000)), self.notifier.notifications[-1]
        )
        self.assertEqual([5000, 6000], [listing.current_bid for listing in received])
        self.assertEqual(1, self.engine.get_listing(ListingId("1")).bid_count)

        outcome = await self.bid("1", 7000)
        self.assertTrue(outcome.accepted)
        self.assertEqual(7000, received[-1].current_bid)

    async def test_bid_locks_are_only_created_for_listings(self):
        for listing_id in ["404", "405", "404"]:
            await self.bid(listing_id, 1000)
        self.assertEqual({}, self.engine._bid_locks)  # pylint: disable=protected-access

        await self.bid("1", 6000)
        await self.bid("1", 7000)
        self.assertEqual(
            [ListingId("1")],
            list(self.engine._bid_locks),  # pylint: disable=protected-access
        )

    async def test_concurrent_bids_are_serialized(self):
        await self.engine.stop()
        self.engine = self.create_engine(
            EngineConfig(bidding=BiddingConfig(latency=timedelta(milliseconds=10)))
        )
        await self.engine.start()

        # both bidders saw 5000
        first, second = await asyncio.gather(
            self.bid("1", 6000, observed_bid=5000),
            self.bid("1", 6000, observed_bid=5000),
        )
        self.assertTrue(first.accepted)
        self.assertEqual(RejectionReason.CONCURRENT_CONFLICT, second.rejection)
        self.assertEqual(6000, second.current_bid)

        outcomes = await asyncio.gather(
            *[self.bid("1", amount) for amount in [7000, 8000, 9000]]
        )
        self.assertTrue(all(outcome.accepted for outcome in outcomes))
        listing = self.engine.get_listing(ListingId("1"))
        self.assertEqual(
            [9000, 8000, 7000, 6000], [bid.amount for bid in listing.bid_history]
        )
        self.assertEqual(4, listing.bid_count)

    async def test_subscribe_to_listing(self):
        received: list[Listing] = []
        subscription = self.engine.subscribe_to_listing(
            ListingId("1"), received.append
        )
        self.assertEqual([5000], [listing.current_bid for listing in received])

        await self.bid("1", 6000)
        await self.bid("1", 5500)
        self.assertEqual([5000, 6000], [listing.current_bid for listing in received])

        subscription.dispose()
        await self.bid("1", 7000)
        self.assertEqual(2, len(received))

        with self.assertRaises(ListingNotFound):
            self.engine.subscribe_to_listing(ListingId("404"), received.append)

    async def test_subscribe_to_countdown(self):
        countdowns: list[Countdown] = []
        subscription = self.engine.subscribe_to_countdown(
            ListingId("2"), countdowns.append
        )
        self.assertEqual(timedelta(seconds=1), countdowns[-1].remaining)

        with self.subTest("disposing the subscription stops the ticks"):
            subscription.dispose()
            self.assertEqual(0, self.ticks.subscription_count)

        with self.subTest("countdown subscriptions are disposed when the engine stops"):
            self.engine.subscribe_to_countdown(ListingId("1"), countdowns.append)
            self.engine.subscribe_to_countdown(ListingId("2"), countdowns.append)
            self.assertEqual(2, self.ticks.subscription_count)

            await self.engine.stop()
            self.assertEqual(0, self.ticks.subscription_count)

        with self.assertRaises(ListingNotFound):
            self.engine.subscribe_to_countdown(ListingId("404"), countdowns.append)

    async def test_expired_countdown_subscriptions_are_released(self):
        countdowns: list[Countdown] = []
        with self.subTest("countdown has already expired"):
            self.engine.subscribe_to_countdown(ListingId("3"), countdowns.append)
            self.assertTrue(countdowns[-1].is_expired)
            self.assertEqual(0, self.engine.countdown_subscription_count)
            self.assertEqual(0, self.ticks.subscription_count)

        with self.subTest("countdown expires while subscribed"):
            subscription = self.engine.subscribe_to_countdown(
                ListingId("2"), countdowns.append
            )
            self.assertEqual(1, self.engine.countdown_subscription_count)

            self.clock.advance(timedelta(seconds=2))
            self.ticks.tick()
            self.assertTrue(countdowns[-1].is_expired)
            self.assertEqual(0, self.engine.countdown_subscription_count)
            self.assertEqual(0, self.ticks.subscription_count)

            # disposing after expiry is a no-op
            subscription.dispose()
            self.assertEqual(0, self.engine.countdown_subscription_count)

        for _ in range(3):
            self.engine.subscribe_to_countdown(ListingId("3"), countdowns.append)
        self.assertEqual(0, self.engine.countdown_subscription_count)


if __name__ == "__main__":
    unittest.main()
