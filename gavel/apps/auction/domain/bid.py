"""
Bid domain model
"""
import hashlib
from dataclasses import dataclass
from datetime import datetime
from random import Random

import msgpack  # type: ignore
from ulid import ULID

from gavel.apps.auction.domain.model import Amount, BidderId, ListingId


class BidId(ULID):
    """
    Unique bid ID.

    ULIDs sort by creation time, which is what the bid history relies on to show recency.
    """

    def __hash__(self):
        return self.bytes.__hash__()


@dataclass(slots=True, frozen=True)
class Bid:
    """
    An accepted bid, permanently recorded in the listing's bid history.
    """

    id: BidId  # pylint: disable=invalid-name
    bidder: BidderId
    amount: Amount
    timestamp: datetime

    # opaque token shown as the bid's "transaction hash" - it is never verified
    proof: str

    @property
    def short_proof(self) -> str:
        """
        Abbreviated proof, e.g. 0xa1b2c3...456789
        """
        if len(self.proof) <= 16:
            return self.proof
        return f"{self.proof[:8]}...{self.proof[-6:]}"


def generate_proof(
    listing_id: ListingId,
    bidder: BidderId,
    amount: Amount,
    timestamp: datetime,
    rng: Random,
) -> str:
    """
    Digest over the msgpack encoded bid fields plus a random nonce.

    This is a placeholder for display purposes: it provides no integrity guarantees.
    """
    packed = msgpack.packb(
        (listing_id, bidder, amount, timestamp.isoformat(), rng.randbytes(16))
    )
    return f"0x{hashlib.sha256(packed).hexdigest()}"
