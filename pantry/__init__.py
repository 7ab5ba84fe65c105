"""
Pantry-side infrastructure consumed by the expiry notifier.

This package contains:
- Domain models (TrackedItem, NotificationPreference, UserProfile, ledger records)
- Data store standing in for the inventory, preference and profile stores
- Settings and clocks
"""

from pantry.models import (
    TrackedItem,
    NotificationPreference,
    UserProfile,
    ItemSnapshot,
    NotificationRecord,
    DeliveryLogEntry,
    TransitionKind,
    DeliveryStatus,
)
from pantry.data_store import DataStore
from pantry.clock import SystemClock, FixedClock

__all__ = [
    "TrackedItem",
    "NotificationPreference",
    "UserProfile",
    "ItemSnapshot",
    "NotificationRecord",
    "DeliveryLogEntry",
    "TransitionKind",
    "DeliveryStatus",
    "DataStore",
    "SystemClock",
    "FixedClock",
]
