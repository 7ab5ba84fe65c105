"""
JSON-backed data store standing in for the Inventory, Preference and Profile stores.

In production these are owned by the pantry application; the notification
engine only consumes them through the operations below:
- list_active_items(user_id)
- get_preferences(user_id)
- get_profile(user_id)

Design decisions:
- Fixtures are loaded lazily from a data directory
- Write operations (add/remove items, save preferences) update in-memory state only
- A lock guards loading and writes so the scheduler thread and API requests can share one store
"""

import json
import threading
from pathlib import Path
from typing import Optional

from pantry.models import NotificationPreference, TrackedItem, UserProfile


class DataStore:
    """
    Central data store that loads and manages JSON fixtures.

    Items are keyed by item id, preferences and profiles by user id.
    """

    def __init__(self, data_dir: Optional[Path] = None, default_reminder_days: int = 3):
        """
        Initialize the data store.

        Args:
            data_dir: Path to the directory containing JSON fixtures.
                     Defaults to ./data relative to project root.
            default_reminder_days: Lead time for lazily created preferences.
        """
        if data_dir is None:
            data_dir = Path(__file__).parent.parent / "data"

        self.data_dir = Path(data_dir)
        self.default_reminder_days = default_reminder_days
        self._lock = threading.RLock()

        # In-memory caches - loaded lazily
        self._items: Optional[dict[str, TrackedItem]] = None
        self._preferences: Optional[dict[str, NotificationPreference]] = None
        self._profiles: Optional[dict[str, UserProfile]] = None

    # =========================================================================
    # Data Loading (lazy)
    # =========================================================================

    def _load_json(self, filename: str) -> list[dict]:
        """Load a JSON fixture file."""
        filepath = self.data_dir / filename
        if not filepath.exists():
            return []
        with open(filepath, "r", encoding="utf-8") as f:
            return json.load(f)

    def _ensure_items_loaded(self):
        with self._lock:
            if self._items is None:
                data = self._load_json("items.json")
                self._items = {i["id"]: TrackedItem(**i) for i in data}

    def _ensure_preferences_loaded(self):
        with self._lock:
            if self._preferences is None:
                data = self._load_json("notification_preferences.json")
                self._preferences = {p["user_id"]: NotificationPreference(**p) for p in data}

    def _ensure_profiles_loaded(self):
        with self._lock:
            if self._profiles is None:
                data = self._load_json("profiles.json")
                self._profiles = {p["id"]: UserProfile(**p) for p in data}

    # =========================================================================
    # Inventory Operations
    # =========================================================================

    def get_item(self, item_id: str) -> Optional[TrackedItem]:
        """Get an item by ID, including soft-deleted ones."""
        self._ensure_items_loaded()
        return self._items.get(item_id)

    def get_items(self) -> list[TrackedItem]:
        """Get all items."""
        self._ensure_items_loaded()
        return list(self._items.values())

    def list_active_items(self, user_id: str) -> list[TrackedItem]:
        """
        Get a user's items that have not been deleted.

        This is what the evaluation loop reads each tick.
        """
        self._ensure_items_loaded()
        return [
            item for item in self._items.values()
            if item.user_id == user_id and not item.deleted
        ]

    def list_users_with_active_items(self) -> list[str]:
        """Get the ids of users owning at least one active item, in stable order."""
        self._ensure_items_loaded()
        return sorted({item.user_id for item in self._items.values() if not item.deleted})

    def add_item(self, item: TrackedItem) -> TrackedItem:
        """Add or replace an item (in-memory only)."""
        self._ensure_items_loaded()
        with self._lock:
            self._items[item.id] = item
        return item

    def remove_item(self, item_id: str) -> Optional[TrackedItem]:
        """
        Hard-delete an item (in-memory only).

        Returns the removed item so callers can emit a removal notification
        from the snapshot, or None if not found.
        """
        self._ensure_items_loaded()
        with self._lock:
            return self._items.pop(item_id, None)

    # =========================================================================
    # Preference Operations
    # =========================================================================

    def get_preferences(self, user_id: str) -> NotificationPreference:
        """
        Get a user's notification preferences.

        Users with nothing persisted get defaults, which are stored so later
        reads and updates see the same object.
        """
        self._ensure_preferences_loaded()
        with self._lock:
            prefs = self._preferences.get(user_id)
            if prefs is None:
                prefs = NotificationPreference(
                    user_id=user_id,
                    expiry_reminder_days=self.default_reminder_days,
                )
                self._preferences[user_id] = prefs
            return prefs

    def save_preferences(self, prefs: NotificationPreference) -> NotificationPreference:
        """Replace a user's notification preferences (in-memory only)."""
        self._ensure_preferences_loaded()
        with self._lock:
            self._preferences[prefs.user_id] = prefs
        return prefs

    # =========================================================================
    # Profile Operations
    # =========================================================================

    def get_profile(self, user_id: str) -> Optional[UserProfile]:
        """Get a user's contact profile."""
        self._ensure_profiles_loaded()
        return self._profiles.get(user_id)

    def save_profile(self, profile: UserProfile) -> UserProfile:
        self._ensure_profiles_loaded()
        with self._lock:
            self._profiles[profile.id] = profile
        return profile

    # =========================================================================
    # Utility Methods
    # =========================================================================

    def reload(self):
        """
        Force reload all data from JSON files.

        Useful for tests that modify fixture files.
        """
        with self._lock:
            self._items = None
            self._preferences = None
            self._profiles = None

