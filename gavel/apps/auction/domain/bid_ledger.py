"""
Bid ledger: the ordered history of a listing's accepted bids, newest first
"""

from gavel.apps.auction.domain.bid import Bid


def record_bid(history: tuple[Bid, ...], bid: Bid) -> tuple[Bid, ...]:
    """
    Prepends the bid. Prior entries are never reordered or removed.

    :exception ValueError: if the bid does not exceed the most recent bid
    """
    if history and bid.amount <= history[0].amount:
        raise ValueError(
            f"bid amount must exceed the most recent bid: {bid.amount} <= {history[0].amount}"
        )
    return (bid,) + history
