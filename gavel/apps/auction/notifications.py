"""
Bid notifications

The engine reports bid outcomes to a Notifier. How notifications are displayed (toasts, logs, etc) is up to the
subscriber.
"""
from abc import ABC, abstractmethod
from dataclasses import dataclass

from reactivex import Observable, Subject

from gavel.apps.auction.domain.bid_validation import RejectionReason
from gavel.apps.auction.domain.model import Amount, ListingId
from gavel.apps.auction.store.auction_store import BidOutcome
from gavel.core.logging import get_logger


@dataclass(slots=True, frozen=True)
class BidAccepted:
    """
    A bid was accepted and applied
    """

    listing_id: ListingId
    amount: Amount

    @property
    def title(self) -> str:
        return "Bid placed successfully"

    @property
    def description(self) -> str:
        return f"Your bid of ${self.amount:,} has been recorded on the blockchain."


@dataclass(slots=True, frozen=True)
class BidRejected:
    """
    A bid was rejected - listing state is unchanged
    """

    listing_id: ListingId
    reason: RejectionReason
    amount: Amount

    @property
    def title(self) -> str:
        return "Invalid bid"

    @property
    def description(self) -> str:
        return self.reason.message


@dataclass(slots=True, frozen=True)
class SimulatedOutbid:
    """
    Illustrative urgency signal. It does not correspond to a real bid, and listing state is never changed by it.
    """

    listing_id: ListingId

    @property
    def title(self) -> str:
        return "You've been outbid"

    @property
    def description(self) -> str:
        return "Someone placed a higher bid. Bid again to stay in the lead."


BidNotification = BidAccepted | BidRejected | SimulatedOutbid


def bid_outcome_notification(outcome: BidOutcome) -> BidAccepted | BidRejected:
    if outcome.accepted:
        return BidAccepted(outcome.listing_id, outcome.amount)
    return BidRejected(outcome.listing_id, outcome.rejection, outcome.amount)  # type: ignore


class Notifier(ABC):
    """
    Side effect sink for bid notifications
    """

    @abstractmethod
    def notify(self, notification: BidNotification):
        """
        Delivers the notification synchronously
        """


class ObservableNotifier(Notifier):
    """
    Logs notifications and publishes them on an Observable stream
    """

    def __init__(self):
        self._subject: Subject[BidNotification] = Subject()

    @property
    def observable(self) -> Observable[BidNotification]:
        return self._subject

    def notify(self, notification: BidNotification):
        logger = get_logger(self)
        match notification:
            case BidRejected():
                logger.info(
                    "[%s] %s: %s",
                    notification.listing_id,
                    notification.title,
                    notification.reason.name,
                )
            case _:
                logger.info(
                    "[%s] %s: %s",
                    notification.listing_id,
                    notification.title,
                    notification.description,
                )
        self._subject.on_next(notification)
