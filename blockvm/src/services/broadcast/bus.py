"""Broadcast bus - synchronous publish/subscribe for named signals."""

import logging
from threading import Lock
from typing import Any, Callable, List, Optional, Tuple

from .message import BroadcastMessage, is_reserved


logger = logging.getLogger(__name__)


# Type alias for message handlers. A handler may return a result that
# publish() collects for the publisher (e.g. the threads it spawned).
MessageHandler = Callable[[BroadcastMessage], Optional[Any]]


class BroadcastBus:
    """Pub/sub bus owned by one VM.

    Delivery is synchronous: publish() returns after every matching handler
    ran. Handlers are called in subscription order. A failing handler is
    logged and never affects the publisher or the remaining handlers.
    """

    def __init__(self) -> None:
        self._subscriptions: List[Tuple[str, MessageHandler]] = []
        self._lock = Lock()
        self._enabled = True
        self._published = 0

    @property
    def enabled(self) -> bool:
        return self._enabled

    @property
    def published_count(self) -> int:
        return self._published

    def subscribe(self, name: str, handler: MessageHandler) -> None:
        """Subscribe a handler to a message name.

        Args:
            name: Message name to match. Reserved patterns ending in ".*"
                (like "vm.key.*") are wildcards; user names match exactly.
            handler: Callback receiving the BroadcastMessage.
        """
        with self._lock:
            self._subscriptions.append((name, handler))
        logger.debug(f"Subscribed handler to {name}")

    def unsubscribe(self, name: str, handler: MessageHandler) -> bool:
        """Unsubscribe a handler from a message name.

        Returns:
            True if handler was removed, False if not found.
        """
        with self._lock:
            for index, (subscribed, existing) in enumerate(self._subscriptions):
                if subscribed == name and existing == handler:
                    del self._subscriptions[index]
                    return True
        return False

    def unsubscribe_all(self, handler: MessageHandler) -> int:
        """Remove every subscription of a handler.

        Returns:
            Number of subscriptions removed.
        """
        with self._lock:
            before = len(self._subscriptions)
            self._subscriptions = [
                (name, existing)
                for name, existing in self._subscriptions
                if existing != handler
            ]
            return before - len(self._subscriptions)

    def publish(self, name: str, payload: Optional[Any] = None) -> List[Any]:
        """Publish a message to all current subscribers.

        Publishing a name nobody listens to is a no-op.

        Args:
            name: Message name.
            payload: Optional data carried with the message.

        Returns:
            Non-None handler results, in dispatch order.
        """
        if not self._enabled:
            logger.debug(f"Broadcast bus disabled, dropping message: {name}")
            return []

        message = BroadcastMessage(name=name, payload=payload)
        self._published += 1
        return self._dispatch(message)

    def _dispatch(self, message: BroadcastMessage) -> List[Any]:
        """Dispatch a message to all matching handlers."""
        with self._lock:
            subscriptions = list(self._subscriptions)

        results: List[Any] = []
        handlers_called = 0
        for subscribed, handler in subscriptions:
            if not self._matches(message.name, subscribed):
                continue
            try:
                result = handler(message)
                handlers_called += 1
            except Exception as e:
                logger.error(f"Error in broadcast handler for {subscribed}: {e}", exc_info=True)
                continue
            if result is not None:
                results.append(result)

        logger.debug(f"Dispatched {message.name} to {handlers_called} handlers")
        return results

    def _matches(self, actual: str, subscribed: str) -> bool:
        """Check if a published name matches a subscribed pattern."""
        if actual == subscribed:
            return True
        # Wildcard: "vm.key.*" matches "vm.key.space". User names are literal.
        if is_reserved(subscribed) and subscribed.endswith(".*"):
            prefix = subscribed[:-2]
            return actual.startswith(prefix + ".")
        return False

    def handler_count(self, name: Optional[str] = None) -> int:
        """Number of subscriptions, optionally only those matching a name."""
        with self._lock:
            if name is None:
                return len(self._subscriptions)
            return sum(
                1 for subscribed, _ in self._subscriptions
                if self._matches(name, subscribed)
            )

    def disable(self) -> None:
        """Stop delivering messages (used at VM shutdown)."""
        self._enabled = False

    def enable(self) -> None:
        self._enabled = True

    def clear(self) -> None:
        """Remove all subscriptions."""
        with self._lock:
            self._subscriptions.clear()


__all__ = ["BroadcastBus", "MessageHandler"]
