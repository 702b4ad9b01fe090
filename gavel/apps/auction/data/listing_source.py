"""
Listing data sources

A data source supplies the initial listings that are loaded into the AuctionStore.
"""
import tomllib
from abc import ABC, abstractmethod
from datetime import datetime, timedelta
from pathlib import Path
from random import Random
from typing import Any

from gavel.apps.auction.domain.bid import Bid, BidId, generate_proof
from gavel.apps.auction.domain.listing import (
    InvalidListing,
    Listing,
    ListingStatus,
    Seller,
)
from gavel.apps.auction.domain.model import Amount, BidderId, ListingId
from gavel.core.clock import Clock, utc_now, require_aware


class ListingSource(ABC):
    """
    Supplies listings
    """

    @abstractmethod
    def __call__(self) -> list[Listing]:
        """
        :return: listings to load
        """


class TomlListingSource(ListingSource):
    """
    Loads listings from a TOML file:

    [[listings]]
    id = "1"
    title = "Vintage Rolex Submariner"
    description = "Rare 1970s Rolex Submariner"
    category = "Watches"
    images = ["rolex.jpg"]
    starting_bid = 8000
    # either an absolute `end_time`, or `duration` in seconds from when the listings are loaded
    duration = 172800
    # optional - either an absolute `start_time`, or `starts_in` seconds from when the listings are loaded
    starts_in = 60

    [listings.seller]
    name = "WatchCollector_Pro"
    avatar = "https://..."
    rating = 4.9

    # newest first - either an absolute `timestamp`, or `age` in seconds before the listings are loaded
    [[listings.bid_history]]
    bidder = "TimepieceEnthusiast"
    amount = 15500
    age = 1800
    proof = "0xa1b2c3d4e5f6"

    Datetimes must include a UTC offset.
    """

    def __init__(self, file: Path, clock: Clock = utc_now, rng: Random | None = None):
        self._file = file
        self._clock = clock
        self._rng = rng if rng else Random()

    def __call__(self) -> list[Listing]:
        """
        :exception InvalidListing: if the file content does not describe valid listings
        """
        try:
            with open(self._file, "rb") as listings_file:
                data = tomllib.load(listings_file)
        except tomllib.TOMLDecodeError as err:
            raise InvalidListing(f"invalid TOML listings file: {self._file}") from err

        listings = data.get("listings", [])
        if not isinstance(listings, list) or not all(
            isinstance(listing, dict) for listing in listings
        ):
            raise InvalidListing(f"`listings` must be an array of tables: {self._file}")

        now = self._clock()
        return [self._to_listing(listing, now) for listing in listings]

    def _to_listing(self, data: dict[str, Any], now: datetime) -> Listing:
        def required(table: dict[str, Any], key: str) -> Any:
            try:
                return table[key]
            except KeyError as err:
                raise InvalidListing(f"listing is missing `{key}`: {table}") from err

        def integer(table: dict[str, Any], key: str) -> Amount:
            value = required(table, key)
            if isinstance(value, bool) or not isinstance(value, int):
                raise InvalidListing(f"`{key}` must be an integer: {value!r}")
            return Amount(value)

        def seconds(table: dict[str, Any], key: str) -> timedelta:
            value = table[key]
            if isinstance(value, bool) or not isinstance(value, (int, float)):
                raise InvalidListing(f"`{key}` must be a number of seconds: {value!r}")
            try:
                return timedelta(seconds=value)
            except OverflowError as err:
                raise InvalidListing(f"`{key}` is out of range: {value!r}") from err

        def text(table: dict[str, Any], key: str, default: str = "") -> str:
            value = table.get(key, default)
            if not isinstance(value, str):
                raise InvalidListing(f"`{key}` must be a string: {value!r}")
            return value

        def instant(
            table: dict[str, Any], absolute_key: str, offset_key: str, sign: int
        ) -> datetime | None:
            if absolute_key in table:
                value = table[absolute_key]
                if not isinstance(value, datetime):
                    raise InvalidListing(f"`{absolute_key}` must be a datetime: {value}")
                try:
                    return require_aware(value, absolute_key)
                except ValueError as err:
                    raise InvalidListing(str(err)) from err
            if offset_key in table:
                try:
                    return now + sign * seconds(table, offset_key)
                except OverflowError as err:
                    raise InvalidListing(
                        f"`{offset_key}` is out of range: {table[offset_key]!r}"
                    ) from err
            return None

        listing_id = ListingId(str(required(data, "id")))

        # status is always derived from the bidding window - only the value is checked
        if (
            "status" in data
            and text(data, "status").upper() not in ListingStatus.__members__
        ):
            raise InvalidListing(f"[{listing_id}] unknown status: {data['status']}")

        end_time = instant(data, "end_time", "duration", 1)
        if end_time is None:
            raise InvalidListing(f"[{listing_id}] `end_time` or `duration` is required")

        seller = data.get("seller", {})
        if not isinstance(seller, dict):
            raise InvalidListing(f"[{listing_id}] `seller` must be a table: {seller!r}")
        images = data.get("images") or ([data["image"]] if "image" in data else [])
        if not isinstance(images, list) or not all(
            isinstance(image, str) for image in images
        ):
            raise InvalidListing(
                f"[{listing_id}] `images` must be a list of strings: {images!r}"
            )

        rating = seller.get("rating", 0.0)
        if isinstance(rating, bool) or not isinstance(rating, (int, float)):
            raise InvalidListing(
                f"[{listing_id}] seller `rating` must be a number: {rating!r}"
            )

        bid_history = []
        for bid in data.get("bid_history", []):
            if not isinstance(bid, dict):
                raise InvalidListing(f"[{listing_id}] bid must be a table: {bid!r}")
            timestamp = instant(bid, "timestamp", "age", -1) or now
            bidder = BidderId(str(required(bid, "bidder")))
            amount = integer(bid, "amount")
            bid_history.append(
                Bid(
                    id=BidId.from_datetime(timestamp),
                    bidder=bidder,
                    amount=amount,
                    timestamp=timestamp,
                    proof=text(bid, "proof")
                    or generate_proof(listing_id, bidder, amount, timestamp, self._rng),
                )
            )

        return Listing(
            id=listing_id,
            title=str(required(data, "title")),
            description=text(data, "description"),
            category=text(data, "category"),
            images=tuple(images),
            starting_bid=integer(data, "starting_bid"),
            start_time=instant(data, "start_time", "starts_in", 1),
            end_time=end_time,
            seller=Seller(
                name=text(seller, "name", "Unknown"),
                avatar=text(seller, "avatar"),
                rating=rating,
            ),
            bid_history=tuple(bid_history),
        )


class DemoListingSource(ListingSource):
    """
    Demo catalog - end times and bid timestamps are relative to the clock.
    """

    def __init__(self, clock: Clock = utc_now):
        self._clock = clock

    def __call__(self) -> list[Listing]:
        now = self._clock()

        def bid(bidder: str, amount: int, age: timedelta, proof: str) -> Bid:
            timestamp = now - age
            return Bid(
                id=BidId.from_datetime(timestamp),
                bidder=BidderId(bidder),
                amount=Amount(amount),
                timestamp=timestamp,
                proof=proof,
            )

        return [
            Listing(
                id=ListingId("1"),
                title="Vintage Rolex Submariner",
                description=(
                    "Rare 1970s Rolex Submariner in excellent condition. Original box and papers included. "
                    "A true collector's piece with documented provenance and service history."
                ),
                category="Watches",
                images=("rolex-submariner.jpg",),
                starting_bid=Amount(8000),
                end_time=now + timedelta(days=2),
                seller=Seller("WatchCollector_Pro", rating=4.9),
                bid_history=(
                    bid(
                        "TimepieceEnthusiast",
                        15500,
                        timedelta(minutes=30),
                        "0xa1b2c3d4e5f6789012345678901234567890abcdef123456789",
                    ),
                    bid(
                        "VintageWatchFan",
                        14800,
                        timedelta(hours=2),
                        "0xf6e5d4c3b2a1098765432109876543210987654321abcdef012",
                    ),
                ),
            ),
            Listing(
                id=ListingId("2"),
                title="Original Van Gogh Sketch",
                description=(
                    "Authenticated original sketch by Vincent van Gogh, dated 1888. "
                    "Provenance documented with museum-quality certification and historical records."
                ),
                category="Art",
                images=("van-gogh-sketch.jpg",),
                starting_bid=Amount(75000),
                end_time=now + timedelta(days=5),
                seller=Seller("ArtGallery_Elite", rating=4.8),
                bid_history=(
                    bid(
                        "ArtCollector_1890",
                        125000,
                        timedelta(minutes=45),
                        "0x1234567890abcdef1234567890abcdef12345678901234567890",
                    ),
                ),
            ),
            Listing(
                id=ListingId("3"),
                title="Ferrari 250 GT Model",
                description=(
                    "Limited edition 1:18 scale Ferrari 250 GT model by CMC. Only 500 pieces made worldwide. "
                    "Certificate of authenticity included."
                ),
                category="Collectibles",
                images=("ferrari-model.jpg",),
                starting_bid=Amount(400),
                end_time=now + timedelta(days=1),
                seller=Seller("ModelCars_Expert", rating=4.7),
                bid_history=(
                    bid(
                        "FerrariEnthusiast",
                        850,
                        timedelta(hours=1),
                        "0xabcdef1234567890abcdef1234567890abcdef12345678901234",
                    ),
                ),
            ),
            Listing(
                id=ListingId("4"),
                title="Antique Persian Rug",
                description=(
                    "19th century hand-woven Persian rug from Isfahan region. Exceptional craftsmanship and "
                    "condition. Professionally cleaned and appraised."
                ),
                category="Antiques",
                images=("persian-rug.jpg",),
                starting_bid=Amount(1500),
                end_time=now + timedelta(days=3),
                seller=Seller("AntiqueDealer_1925", rating=4.9),
                bid_history=(
                    bid(
                        "RugCollector",
                        3200,
                        timedelta(hours=3),
                        "0x567890abcdef1234567890abcdef1234567890abcdef123456",
                    ),
                ),
            ),
        ]
