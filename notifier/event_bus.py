"""
In-memory event bus carrying inventory triggers to the notifier.

The pantry application publishes "item created" and "item deleted" events here;
the ExpiryEvaluator subscribes and runs its single-item evaluations. In a
distributed deployment this would be a message broker.

Design decisions:
- Synchronous delivery: the publisher's call returns after all handlers ran
- Type-based subscriptions (subscribe to event types, not topics)
- A failing handler is logged and does not stop the others
- Subscriber lists are copied under a lock so subscribe/publish can race safely
"""

import logging
import threading
from collections import defaultdict
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Callable, Optional
from uuid import uuid4

from pantry.models import utcnow

logger = logging.getLogger("notifier.event_bus")


@dataclass
class Event:
    """
    A fact about the inventory that the notifier may react to.

    Attributes:
        event_type: Name of the event type (used for routing)
        payload: The event-specific data
        source: Which component published the event
        event_id: Unique identifier for this event instance
        timestamp: When the event occurred
    """
    event_type: str
    payload: dict[str, Any]
    source: str
    event_id: str = field(default_factory=lambda: str(uuid4()))
    timestamp: datetime = field(default_factory=utcnow)

    def __str__(self) -> str:
        return f"Event({self.event_type}, id={self.event_id[:8]}, source={self.source})"


EventHandler = Callable[[Event], None]


class EventBus:
    """
    Simple in-memory pub/sub.

    Example usage:
        bus = EventBus()
        bus.subscribe(EventTypes.ITEM_CREATED, handler)
        bus.publish(item_created("item-001"))
    """

    def __init__(self):
        self._subscribers: dict[str, list[EventHandler]] = defaultdict(list)
        self._lock = threading.Lock()

    def subscribe(self, event_type: str, handler: EventHandler) -> None:
        with self._lock:
            self._subscribers[event_type].append(handler)
        logger.debug(f"Subscribed handler to '{event_type}' events")

    def unsubscribe(self, event_type: str, handler: EventHandler) -> bool:
        """
        Unsubscribe a handler from an event type.

        Returns:
            True if the handler was found and removed, False otherwise
        """
        with self._lock:
            try:
                self._subscribers[event_type].remove(handler)
            except ValueError:
                return False
        logger.debug(f"Unsubscribed handler from '{event_type}' events")
        return True

    def publish(self, event: Event) -> int:
        """
        Publish an event to all subscribers.

        Returns:
            Number of handlers that received the event
        """
        logger.info(f"Publishing: {event}")

        with self._lock:
            handlers = list(self._subscribers.get(event.event_type, []))

        for handler in handlers:
            try:
                handler(event)
            except Exception as e:
                logger.error(f"Handler raised exception for {event}: {e}")

        if not handlers:
            logger.warning(f"No handlers for event type '{event.event_type}'")

        return len(handlers)

    def get_subscriber_count(self, event_type: str) -> int:
        with self._lock:
            return len(self._subscribers.get(event_type, []))

