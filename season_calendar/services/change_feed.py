"""
Change Feeds

In-process publish/subscribe used to push document writes to every live
session (reconcilers, debounced syncs and WebSocket clients).
"""
from __future__ import annotations

import logging
from typing import Callable, Generic, TypeVar


logger = logging.getLogger(__name__)

T = TypeVar("T")

Handler = Callable[[T], None]


class Subscription(Generic[T]):
    """
    Handle returned by ChangeFeed.subscribe.

    Calling the subscription (or unsubscribe()) detaches the handler. Teardown
    is idempotent, so a subscription used as a context manager and also
    unsubscribed explicitly is only removed once.
    """

    def __init__(self, feed: ChangeFeed[T], handler: Handler[T]):
        self._feed = feed
        self._handler = handler
        self._active = True

    @property
    def active(self) -> bool:
        return self._active

    def unsubscribe(self) -> None:
        if not self._active:
            return
        self._active = False
        self._feed._remove(self)

    def __call__(self) -> None:
        self.unsubscribe()

    def __enter__(self) -> Subscription[T]:
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.unsubscribe()


class ChangeFeed(Generic[T]):
    """Ordered set of handlers notified of every published document."""

    def __init__(self, name: str):
        self.name = name
        self._subscriptions: list[Subscription[T]] = []

    def subscribe(self, handler: Handler[T]) -> Subscription[T]:
        subscription = Subscription(self, handler)
        self._subscriptions.append(subscription)
        logger.debug("Subscribed to %s feed (%s listeners)", self.name, len(self._subscriptions))
        return subscription

    def _remove(self, subscription: Subscription[T]) -> None:
        self._subscriptions.remove(subscription)
        logger.debug("Unsubscribed from %s feed (%s listeners)", self.name, len(self._subscriptions))

    @property
    def listener_count(self) -> int:
        return len(self._subscriptions)

    def publish(self, document: T) -> None:
        """
        Deliver a document to every current subscriber.

        Handlers run in subscription order against a snapshot of the listener
        list. A failing handler is logged and skipped; it never fails the write
        that triggered the publish.
        """
        for subscription in list(self._subscriptions):
            if not subscription.active:
                continue
            try:
                subscription._handler(document)
            except Exception as e:
                logger.error(f"Listener on {self.name} feed failed: {e}", exc_info=True)
