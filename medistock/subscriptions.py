"""Change subscriptions - replaces database snapshot listeners.

A repository publishes a fresh snapshot on a topic after each write; observers
receive it until they cancel their Subscription.
"""

from __future__ import annotations

import logging
import threading
import uuid
from typing import Any, Callable, Optional

logger = logging.getLogger(__name__)

Handler = Callable[[Any], None]


class Subscription:
    """Handle returned to an observer. Cancelling stops further deliveries."""

    def __init__(self, feed: "ChangeFeed", topic: str, subscription_id: str):
        self._feed = feed
        self.topic = topic
        self.subscription_id = subscription_id
        self._active = True

    @property
    def active(self) -> bool:
        return self._active

    def cancel(self) -> None:
        if not self._active:
            return
        self._active = False
        self._feed._remove(self.topic, self.subscription_id)

    def __enter__(self) -> "Subscription":
        return self

    def __exit__(self, *exc_info: Any) -> None:
        self.cancel()


class ChangeFeed:
    """Topic -> handlers registry shared by the repositories of one container."""

    def __init__(self) -> None:
        self._handlers: dict[str, dict[str, Handler]] = {}
        self._lock = threading.Lock()

    def subscribe(
        self, topic: str, handler: Handler, initial: Optional[Any] = None
    ) -> Subscription:
        subscription_id = str(uuid.uuid4())
        with self._lock:
            self._handlers.setdefault(topic, {})[subscription_id] = handler
        logger.debug("Subscribed %s to %s", subscription_id, topic)
        subscription = Subscription(self, topic, subscription_id)
        if initial is not None:
            self._deliver(topic, subscription_id, handler, initial)
        return subscription

    def publish(self, topic: str, payload: Any) -> int:
        """Delivers payload to every active handler of topic. Returns the delivery count."""
        with self._lock:
            handlers = list(self._handlers.get(topic, {}).items())
        for subscription_id, handler in handlers:
            self._deliver(topic, subscription_id, handler, payload)
        return len(handlers)

    def subscriber_count(self, topic: str) -> int:
        with self._lock:
            return len(self._handlers.get(topic, {}))

    def has_subscribers(self, topic: str) -> bool:
        return self.subscriber_count(topic) > 0

    def _deliver(self, topic: str, subscription_id: str, handler: Handler, payload: Any) -> None:
        try:
            handler(payload)
        except Exception as e:
            # One failing observer must not starve the others
            logger.warning("Observer %s on %s failed: %s", subscription_id, topic, e)

    def _remove(self, topic: str, subscription_id: str) -> None:
        with self._lock:
            handlers = self._handlers.get(topic)
            if handlers is None:
                return
            handlers.pop(subscription_id, None)
            if not handlers:
                del self._handlers[topic]
        logger.debug("Cancelled %s on %s", subscription_id, topic)
