"""
Typed change notification per store collection.

Consumers subscribe to a table and receive a ChangeEvent whenever a write
goes through the store client or the poller notices an external change.
A subscription lives until the consumer cancels it (or leaves the `with`
block it was opened in).
"""

import logging
import uuid
from datetime import datetime
from enum import Enum
from typing import Callable, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field

from utils.datetime_utils import utc_now

logger = logging.getLogger(__name__)


class ChangeAction(str, Enum):
    """What happened to the collection."""

    INSERT = "insert"
    UPDATE = "update"
    DELETE = "delete"
    REFRESH = "refresh"  # contents changed outside this process


class ChangeEvent(BaseModel):
    """Something changed in `table`; subscribers re-query it."""

    model_config = ConfigDict(use_enum_values=True)

    table: str
    action: ChangeAction
    rows: int = 0
    at: datetime = Field(default_factory=utc_now)


ChangeCallback = Callable[[ChangeEvent], None]


class Subscription:
    """Handle returned by ChangeFeed.subscribe."""

    def __init__(self, feed: "ChangeFeed", table: str, callback: ChangeCallback):
        self.id = str(uuid.uuid4())
        self.table = table
        self.callback = callback
        self._feed = feed
        self.active = True

    def cancel(self) -> None:
        if self.active:
            self._feed.unsubscribe(self)

    def __enter__(self) -> "Subscription":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.cancel()

    def __repr__(self) -> str:
        return f"<Subscription {self.table} {self.id[:8]} active={self.active}>"


class ChangeFeed:
    """In-process observer registry keyed by table name."""

    def __init__(self):
        self._subscriptions: Dict[str, List[Subscription]] = {}

    def subscribe(self, table: str, callback: ChangeCallback) -> Subscription:
        subscription = Subscription(self, table, callback)
        self._subscriptions.setdefault(table, []).append(subscription)
        logger.debug(f"Subscribed {subscription!r}")
        return subscription

    def unsubscribe(self, subscription: Subscription) -> None:
        subscribers = self._subscriptions.get(subscription.table, [])
        if subscription in subscribers:
            subscribers.remove(subscription)
        if not subscribers:
            self._subscriptions.pop(subscription.table, None)
        subscription.active = False

    def watched_tables(self) -> List[str]:
        return sorted(self._subscriptions)

    def subscriber_count(self, table: Optional[str] = None) -> int:
        if table is not None:
            return len(self._subscriptions.get(table, []))
        return sum(len(subs) for subs in self._subscriptions.values())

    def publish(self, event: ChangeEvent) -> int:
        """
        Deliver an event to every subscriber of its table.

        A failing callback is logged and does not stop delivery to the
        other subscribers.

        Returns:
            Number of callbacks that completed
        """
        delivered = 0
        for subscription in list(self._subscriptions.get(event.table, [])):
            try:
                subscription.callback(event)
                delivered += 1
            except Exception as e:
                logger.error(
                    f"Change callback failed for {subscription!r}: {e}", exc_info=True
                )
        return delivered

    def notify(self, table: str, action: ChangeAction, rows: int = 0) -> int:
        return self.publish(ChangeEvent(table=table, action=action, rows=rows))
