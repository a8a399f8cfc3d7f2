"""Change notification channel.

Services publish a ChangeEvent after every committed write. Subscribers are
keyed by company and are called synchronously, in subscription order, from
inside the publishing call.
"""

from dataclasses import dataclass
from typing import Callable, Dict, List, Optional
from logger import get_logger

logger = get_logger("notifications")

CHANGE_KINDS = ("insert", "update", "delete", "unknown")


@dataclass(frozen=True)
class ChangeEvent:
    """A change to one table of one company.

    Attributes:
        table: Table name, e.g. "categories".
        kind: One of CHANGE_KINDS.
        company_id: Company whose data changed.
        record_id: Affected record ID when known.
    """

    table: str
    kind: str
    company_id: int
    record_id: Optional[int] = None


class Subscription:
    """Handle returned by ChangeFeed.subscribe."""

    def __init__(self, feed: "ChangeFeed", company_id: int, callback):
        self._feed = feed
        self.company_id = company_id
        self.callback = callback
        self.active = True

    def unsubscribe(self) -> None:
        if self.active:
            self._feed._remove(self)
            self.active = False


class ChangeFeed:
    """In-process publish/subscribe channel keyed by company."""

    def __init__(self):
        self._subscriptions: Dict[int, List[Subscription]] = {}

    def subscribe(
        self, company_id: int, callback: Callable[[ChangeEvent], None]
    ) -> Subscription:
        """Register a callback for every change to the given company's data."""
        subscription = Subscription(self, company_id, callback)
        self._subscriptions.setdefault(company_id, []).append(subscription)
        return subscription

    def publish(self, event: ChangeEvent) -> None:
        """Deliver an event to every subscriber of its company."""
        if event.kind not in CHANGE_KINDS:
            event = ChangeEvent(event.table, "unknown", event.company_id, event.record_id)
        logger.debug(
            f"Change on {event.table} ({event.kind}) for company {event.company_id}"
        )
        for subscription in list(self._subscriptions.get(event.company_id, [])):
            subscription.callback(event)

    def _remove(self, subscription: Subscription) -> None:
        subscriptions = self._subscriptions.get(subscription.company_id, [])
        if subscription in subscriptions:
            subscriptions.remove(subscription)
