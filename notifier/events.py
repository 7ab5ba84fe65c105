"""
Inventory trigger events.

- ItemCreated carries only the new item's id; the notifier reads the item back
  from the inventory store.
- ItemDeleted carries a full snapshot of the item, since it can no longer be
  queried once deleted.
"""

from notifier.event_bus import Event
from pantry.models import TrackedItem


class EventTypes:
    """Constants for event type names."""
    ITEM_CREATED = "ItemCreated"
    ITEM_DELETED = "ItemDeleted"


def item_created(item_id: str, source: str = "inventory") -> Event:
    """Create an ItemCreated event."""
    return Event(
        event_type=EventTypes.ITEM_CREATED,
        source=source,
        payload={"item_id": item_id},
    )


def item_deleted(item: TrackedItem, source: str = "inventory") -> Event:
    """Create an ItemDeleted event carrying the deleted item's snapshot."""
    return Event(
        event_type=EventTypes.ITEM_DELETED,
        source=source,
        payload={"item": item.model_dump(mode="json")},
    )
