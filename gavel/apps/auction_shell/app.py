"""
Auction shell app
"""
import asyncio
import logging
from pathlib import Path
from typing import Any, Coroutine, TypeVar

from gavel.apps.auction.commands.search_listings import (
    SearchListings,
    ListingSearchRequest,
    ListingSearchFilters,
    ListingSortField,
)
from gavel.apps.auction.config import EngineConfig
from gavel.apps.auction.data.listing_source import (
    ListingSource,
    TomlListingSource,
    DemoListingSource,
)
from gavel.apps.auction.domain.countdown import Countdown
from gavel.apps.auction.domain.model import Amount, ListingId
from gavel.apps.auction.notifications import ObservableNotifier, BidNotification
from gavel.apps.auction.services.auction_engine import AuctionEngine
from gavel.apps.auction.store.auction_store import BidOutcome
from gavel.apps.auction.views.projections import (
    ListingSummary,
    ListingDetail,
    project_summary,
    project_detail,
)
from gavel.core.clock import Clock, utc_now
from gavel.services.asyncio.logging_service import AsyncLoggingService

T = TypeVar("T")


class App:
    """
    Auction shell app

    The engine runs on the app's own event loop. The loop only runs while a command is executing, thus background
    work such as outbid simulation only progresses during commands.
    """

    def __init__(
        self,
        config: EngineConfig,
        listing_source: ListingSource,
        clock: Clock = utc_now,
        logging_service: AsyncLoggingService | None = None,
    ):
        """
        :param logging_service: runs for the lifetime of the app, if specified
        """
        self.config = config
        self._clock = clock
        self._loop = asyncio.new_event_loop()
        self._logging_service = logging_service
        if logging_service:
            self._run(logging_service.start())

        self.notifications: list[BidNotification] = []
        notifier = ObservableNotifier()
        notifier.observable.subscribe(self.notifications.append)

        self.engine = AuctionEngine(
            listing_source=listing_source,
            notifier=notifier,
            config=config,
            clock=clock,
        )
        self._search_listings = SearchListings(self.engine.store.snapshot, clock)
        self._run(self.engine.start())

    @classmethod
    def from_config_file(
        cls,
        config_file: Path | None = None,
        listings_file: Path | None = None,
    ) -> "App":
        """
        :param config_file: TOML engine config - defaults are used if not specified
        :param listings_file: TOML listings file - the demo catalog is used if not specified
        """
        config = (
            EngineConfig.from_config_file(config_file) if config_file else EngineConfig()
        )
        listing_source: ListingSource = (
            TomlListingSource(listings_file) if listings_file else DemoListingSource()
        )
        return cls(
            config,
            listing_source,
            logging_service=AsyncLoggingService(
                # keep the engine's INFO logging out of the shell output
                level=max(config.log_level, logging.WARNING),
                logger_levels=config.logger_levels,
            ),
        )

    def _run(self, coroutine: Coroutine[Any, Any, T]) -> T:
        return self._loop.run_until_complete(coroutine)

    def close(self):
        """
        Stops the engine and the logging service, and closes the event loop
        """
        if self._loop.is_closed():
            return
        self._run(self.engine.stop())
        if self._logging_service:
            self._run(self._logging_service.stop())
        self._loop.close()

    def list_listings(
        self,
        text: str = "",
        category: str | None = None,
        sort: ListingSortField = ListingSortField.ENDING_SOON,
    ) -> list[ListingSummary]:
        result = self._search_listings(
            ListingSearchRequest(
                filters=ListingSearchFilters(text=text, category=category),
                sort=sort,
            )
        )
        now = self._clock()
        return [
            project_summary(
                listing,
                self.engine.countdown_timer(listing.id).current(),
                now,
                self.config.bidding,
            )
            for listing in result.listings
        ]

    def show_listing(self, listing_id: ListingId) -> ListingDetail:
        """
        :exception ListingNotFound:
        """
        listing = self.engine.get_listing(listing_id)
        return project_detail(
            listing,
            self.countdown(listing_id),
            self._clock(),
            self.config.bidding,
        )

    def countdown(self, listing_id: ListingId) -> Countdown:
        """
        :exception ListingNotFound:
        """
        return self.engine.countdown_timer(listing_id).current()

    def bid(self, listing_id: ListingId, amount: Amount) -> BidOutcome:
        """
        Bids as the configured bidder against the currently displayed bid.
        """
        listing = self.engine.store.get(listing_id)
        return self._run(
            self.engine.submit_bid(
                listing_id=listing_id,
                bidder=self.config.bidding.bidder,
                amount=amount,
                observed_bid=listing.current_bid if listing else None,
            )
        )
