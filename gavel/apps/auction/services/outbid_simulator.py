"""
Simulates outbid notifications to illustrate bidding urgency
"""
import asyncio
from datetime import timedelta
from random import Random
from typing import Callable

from gavel.apps.auction.domain.model import ListingId
from gavel.apps.auction.notifications import Notifier, SimulatedOutbid
from gavel.core.async_service import AsyncService


class OutbidSimulator(AsyncService):
    """
    Every interval, with the configured probability, notifies that a randomly chosen active listing was outbid.

    Notes
    -----
    - simulated outbids are not real bids - listing state is never touched
    - runs as an asyncio task while the service is running
    """

    def __init__(
        self,
        notifier: Notifier,
        active_listings: Callable[[], list[ListingId]],
        interval: timedelta = timedelta(seconds=30),
        probability: float = 0.3,
        rng: Random | None = None,
    ):
        """
        :param active_listings: returns the listings that are currently accepting bids
        :param rng: source of randomness - inject a seeded Random for deterministic behavior
        """
        super().__init__()
        if not 0 <= probability <= 1:
            raise ValueError(f"probability must be within [0, 1]: {probability}")

        self._notifier = notifier
        self._active_listings = active_listings
        self._interval = interval
        self._probability = probability
        self._rng = rng if rng else Random()
        self._task: asyncio.Task | None = None

    def simulate_once(self) -> SimulatedOutbid | None:
        """
        :return: the notification that was sent, or None if none was simulated
        """
        listing_ids = sorted(self._active_listings())
        if not listing_ids or self._rng.random() >= self._probability:
            return None

        notification = SimulatedOutbid(self._rng.choice(listing_ids))
        self._notifier.notify(notification)
        return notification

    async def _run(self):
        self._logger.info("running")
        while True:
            await asyncio.sleep(self._interval.total_seconds())
            self.simulate_once()

    async def _start(self):
        self._task = asyncio.create_task(self._run(), name=self.name)

    async def _stop(self):
        if self._task:
            self._task.cancel()
            try:
                await self._task
            except asyncio.CancelledError:
                self._logger.info("stop signalled - exiting")
            self._task = None
