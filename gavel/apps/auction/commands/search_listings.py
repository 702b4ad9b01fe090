"""
Command for listing catalog search
"""
from dataclasses import dataclass, field
from enum import IntEnum, auto
from typing import Optional, Callable, Mapping

from gavel.apps.auction.domain.listing import Listing, ListingStatus
from gavel.apps.auction.domain.model import Amount, ListingId
from gavel.core.clock import Clock, utc_now
from gavel.core.logging import get_logger


class ListingSortField(IntEnum):
    """
    Listing sort fields
    """

    # end time ascending
    ENDING_SOON = auto()
    # current bid descending
    HIGHEST_BID = auto()
    # bid count descending
    MOST_BIDS = auto()


@dataclass(slots=True)
class ListingSearchFilters:
    """
    Listing search filters
    """

    # case-insensitive match on title or description
    text: str = ""
    # None means all categories
    category: str | None = None

    # inclusive current bid range
    min_current_bid: Amount | None = None
    max_current_bid: Amount | None = None

    status: set[ListingStatus] = field(default_factory=set)


@dataclass(slots=True)
class ListingSearchResult:
    """
    Listing search result
    """

    listings: list[Listing]

    total_count: int


@dataclass(slots=True)
class ListingSearchRequest:
    """
    Listing search request
    """

    filters: ListingSearchFilters = field(default_factory=ListingSearchFilters)
    sort: ListingSortField = ListingSortField.ENDING_SOON

    # used for paging
    limit: int = 100
    offset: int = 0

    def next_page(
        self, search_result: ListingSearchResult
    ) -> Optional["ListingSearchRequest"]:
        """
        :return: None if there are no more results to retrieve
        """
        offset = self.offset + self.limit
        if offset >= search_result.total_count:
            return None
        return ListingSearchRequest(
            filters=self.filters,
            sort=self.sort,
            limit=self.limit,
            offset=offset,
        )


class SearchListings:
    """
    Searches listing snapshots. Pure - the snapshots are only read.
    """

    def __init__(
        self,
        listings: Callable[[], Mapping[ListingId, Listing]],
        clock: Clock = utc_now,
    ):
        """
        :param listings: returns the current listing snapshots, e.g., AuctionStore.snapshot
        """
        self._listings = listings
        self._clock = clock

    def __call__(self, request: ListingSearchRequest) -> ListingSearchResult:
        if request.limit <= 0:
            raise ValueError("limit must be > 0")
        if request.offset < 0:
            raise ValueError("offset must be >= 0")

        filters = request.filters
        now = self._clock()
        text = filters.text.strip().lower()

        def matches(listing: Listing) -> bool:
            if text and not (
                text in listing.title.lower() or text in listing.description.lower()
            ):
                return False
            if filters.category is not None and listing.category != filters.category:
                return False
            if (
                filters.min_current_bid is not None
                and listing.current_bid < filters.min_current_bid
            ):
                return False
            if (
                filters.max_current_bid is not None
                and listing.current_bid > filters.max_current_bid
            ):
                return False
            if filters.status and listing.status_at(now) not in filters.status:
                return False
            return True

        def sort_key(listing: Listing):
            # listing ID is the tie-breaker, which keeps paging stable
            match request.sort:
                case ListingSortField.ENDING_SOON:
                    return (listing.end_time, listing.id)
                case ListingSortField.HIGHEST_BID:
                    return (-listing.current_bid, listing.id)
                case ListingSortField.MOST_BIDS:
                    return (-listing.bid_count, listing.id)
                case other:
                    raise AssertionError(
                        f"ListingSortField match case is missing: {other}"
                    )

        results = sorted(
            (listing for listing in self._listings().values() if matches(listing)),
            key=sort_key,
        )
        get_logger(self).debug("%s matched %s listings", request, len(results))

        return ListingSearchResult(
            listings=results[request.offset : request.offset + request.limit],
            total_count=len(results),
        )
