"""
Tests for the DataStore.

These tests verify that the data store correctly loads JSON fixtures
and provides the reads the evaluation loop depends on.
"""

from datetime import date

from pantry.data_store import DataStore
from pantry.models import NotificationPreference, TrackedItem, UserProfile


class TestDataStoreItems:
    """Tests for inventory operations."""

    def test_get_item(self, data_store: DataStore):
        """Test retrieving an item by ID."""
        item = data_store.get_item("item-001")

        assert item is not None
        assert item.name == "Organic Milk"
        assert item.user_id == "user-001"
        assert item.expiry_date == date(2025, 6, 3)
        assert item.amount == 120

    def test_get_nonexistent_item(self, data_store: DataStore):
        assert data_store.get_item("nonexistent-id") is None

    def test_get_item_includes_deleted(self, data_store: DataStore):
        """Soft-deleted items can still be looked up by id."""
        item = data_store.get_item("item-007")
        assert item is not None
        assert item.deleted is True

    def test_list_active_items_excludes_deleted(self, data_store: DataStore, chen_user_id: str):
        items = data_store.list_active_items(chen_user_id)

        assert [i.id for i in items] == ["item-006"]

    def test_list_active_items_for_user(self, data_store: DataStore, asha_user_id: str):
        items = data_store.list_active_items(asha_user_id)

        assert {i.id for i in items} == {"item-001", "item-002", "item-003", "item-004"}

    def test_list_active_items_unknown_user(self, data_store: DataStore):
        assert data_store.list_active_items("nobody") == []

    def test_item_without_expiry_date(self, data_store: DataStore):
        assert data_store.get_item("item-004").expiry_date is None

    def test_list_users_with_active_items(self, data_store: DataStore):
        """Users are listed once each, in sorted order."""
        assert data_store.list_users_with_active_items() == ["user-001", "user-002", "user-003"]

    def test_add_and_remove_item(self, data_store: DataStore):
        item = TrackedItem(id="item-new", user_id="user-009", name="Butter")
        data_store.add_item(item)

        assert data_store.get_item("item-new") == item
        assert "user-009" in data_store.list_users_with_active_items()

        removed = data_store.remove_item("item-new")
        assert removed == item
        assert data_store.get_item("item-new") is None
        assert data_store.remove_item("item-new") is None


class TestDataStorePreferences:
    """Tests for preference operations."""

    def test_get_stored_preferences(self, data_store: DataStore, ben_user_id: str):
        prefs = data_store.get_preferences(ben_user_id)

        assert prefs.email_notifications is False
        assert prefs.expiry_reminder_days == 5

    def test_missing_preferences_get_defaults(self, data_store: DataStore, chen_user_id: str):
        """Users without stored preferences get email on and a 3 day lead."""
        prefs = data_store.get_preferences(chen_user_id)

        assert prefs.user_id == chen_user_id
        assert prefs.email_notifications is True
        assert prefs.phone_notifications is False
        assert prefs.expiry_reminder_days == 3

    def test_default_preferences_are_stored(self, data_store: DataStore):
        first = data_store.get_preferences("user-new")
        second = data_store.get_preferences("user-new")
        assert first is second

    def test_default_reminder_days_is_configurable(self, data_dir):
        store = DataStore(data_dir=data_dir, default_reminder_days=7)
        assert store.get_preferences("user-new").expiry_reminder_days == 7

    def test_save_preferences(self, data_store: DataStore, asha_user_id: str):
        data_store.save_preferences(
            NotificationPreference(user_id=asha_user_id, expiry_reminder_days=10)
        )
        assert data_store.get_preferences(asha_user_id).expiry_reminder_days == 10


class TestDataStoreProfiles:
    """Tests for profile operations."""

    def test_get_profile(self, data_store: DataStore, asha_user_id: str):
        profile = data_store.get_profile(asha_user_id)

        assert profile.full_name == "Asha Rao"
        assert profile.email == "asha.rao@example.com"

    def test_profile_without_email(self, data_store: DataStore, chen_user_id: str):
        assert data_store.get_profile(chen_user_id).email is None

    def test_missing_profile(self, data_store: DataStore):
        assert data_store.get_profile("nobody") is None

    def test_save_profile(self, empty_store: DataStore):
        empty_store.save_profile(UserProfile(id="user-009", email="d@example.com"))
        assert empty_store.get_profile("user-009").email == "d@example.com"


class TestDataStoreLoading:
    """Tests for fixture loading."""

    def test_missing_directory_is_empty(self, empty_store: DataStore):
        assert empty_store.get_items() == []
        assert empty_store.list_users_with_active_items() == []

    def test_reload_discards_in_memory_changes(self, data_store: DataStore):
        data_store.remove_item("item-001")
        data_store.reload()
        assert data_store.get_item("item-001") is not None
