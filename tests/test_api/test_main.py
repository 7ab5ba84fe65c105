"""
Tests for the HTTP API.

These tests verify the FastAPI endpoints over injected components, evaluated
as of the fixture reference date.
"""

import pytest
from fastapi.testclient import TestClient

from api.main import app, reset_api_state
from pantry.models import TrackedItem


@pytest.fixture
def api_client(data_store, ledger, evaluator, event_bus):
    """Create a test client with fresh state."""
    evaluator.start()
    reset_api_state(
        data_store=data_store,
        ledger=ledger,
        evaluator=evaluator,
        event_bus=event_bus,
    )
    yield TestClient(app)
    evaluator.stop()
    reset_api_state()


@pytest.fixture
def evaluated_client(api_client):
    """Client after one evaluation pass over the fixtures."""
    response = api_client.post("/evaluate")
    assert response.status_code == 200
    return api_client


class TestHealthEndpoint:

    def test_health_check(self, api_client):
        response = api_client.get("/health")

        assert response.status_code == 200
        assert response.json()["status"] == "healthy"


class TestEvaluateEndpoint:

    def test_evaluate(self, api_client):
        response = api_client.post("/evaluate")

        assert response.status_code == 200
        data = response.json()
        assert data["notifications_created"] == 3
        assert data["users_skipped"] == 1
        assert data["deliveries_failed"] == 1

    def test_evaluate_twice(self, api_client):
        api_client.post("/evaluate")
        data = api_client.post("/evaluate").json()

        assert data["notifications_created"] == 0
        assert data["duplicates_skipped"] == 3


class TestNotificationEndpoints:

    def test_list_notifications(self, evaluated_client, asha_user_id):
        response = evaluated_client.get(f"/users/{asha_user_id}/notifications")

        assert response.status_code == 200
        data = response.json()
        assert {n["kind"] for n in data} == {"upcoming_expiry", "expired"}
        assert all(n["is_read"] is False for n in data)

    def test_list_notifications_empty(self, evaluated_client, ben_user_id):
        assert evaluated_client.get(f"/users/{ben_user_id}/notifications").json() == []

    def test_unread_count_and_read_all(self, evaluated_client, asha_user_id):
        count = evaluated_client.get(f"/users/{asha_user_id}/notifications/unread-count").json()
        assert count == {"user_id": asha_user_id, "unread": 2}

        response = evaluated_client.post(f"/users/{asha_user_id}/notifications/read-all")
        assert response.json() == {"updated": 2}

        count = evaluated_client.get(f"/users/{asha_user_id}/notifications/unread-count").json()
        assert count["unread"] == 0

    def test_mark_read(self, evaluated_client, asha_user_id):
        notification_id = evaluated_client.get(f"/users/{asha_user_id}/notifications").json()[0]["id"]

        response = evaluated_client.post(f"/notifications/{notification_id}/read")

        assert response.status_code == 200
        count = evaluated_client.get(f"/users/{asha_user_id}/notifications/unread-count").json()
        assert count["unread"] == 1

    def test_mark_read_not_found(self, api_client):
        response = api_client.post("/notifications/missing/read")

        assert response.status_code == 404
        assert "not found" in response.json()["detail"].lower()

    def test_deliveries(self, evaluated_client, asha_user_id):
        notification_id = evaluated_client.get(f"/users/{asha_user_id}/notifications").json()[0]["id"]

        response = evaluated_client.get(f"/notifications/{notification_id}/deliveries")

        assert response.status_code == 200
        entries = response.json()
        assert len(entries) == 1
        assert entries[0]["channel"] == "email"
        assert entries[0]["status"] == "sent"
        assert entries[0]["details"]["recipient"] == "asha.rao@example.com"

    def test_deliveries_not_found(self, api_client):
        assert api_client.get("/notifications/missing/deliveries").status_code == 404


class TestEventEndpoints:

    def test_item_created(self, api_client, data_store, asha_user_id):
        data_store.add_item(TrackedItem(id="item-100", user_id=asha_user_id, name="Paneer", amount=90))

        response = api_client.post("/events/item-created", json={"item_id": "item-100"})

        assert response.status_code == 200
        assert response.json()["handlers"] == 1
        kinds = [n["kind"] for n in api_client.get(f"/users/{asha_user_id}/notifications").json()]
        assert kinds == ["item_added"]

    def test_item_created_unknown(self, api_client):
        response = api_client.post("/events/item-created", json={"item_id": "missing"})
        assert response.status_code == 404

    def test_item_deleted(self, api_client, data_store, asha_user_id):
        item = data_store.remove_item("item-003")

        response = api_client.post("/events/item-deleted", json={"item": item.model_dump(mode="json")})

        assert response.status_code == 200
        notifications = api_client.get(f"/users/{asha_user_id}/notifications").json()
        assert notifications[0]["kind"] == "item_removed"
        assert notifications[0]["message"] == "Olive Oil has been removed from your pantry"

    def test_item_deleted_requires_item(self, api_client):
        assert api_client.post("/events/item-deleted", json={}).status_code == 422


class TestPreferenceEndpoints:

    def test_get_preferences(self, api_client, asha_user_id):
        data = api_client.get(f"/users/{asha_user_id}/preferences").json()

        assert data["email_notifications"] is True
        assert data["expiry_reminder_days"] == 3

    def test_get_default_preferences(self, api_client):
        data = api_client.get("/users/user-new/preferences").json()

        assert data["user_id"] == "user-new"
        assert data["email_notifications"] is True

    def test_update_preferences(self, api_client, asha_user_id):
        response = api_client.put(
            f"/users/{asha_user_id}/preferences", json={"expiry_reminder_days": 7}
        )

        assert response.status_code == 200
        assert response.json()["expiry_reminder_days"] == 7
        assert response.json()["email_notifications"] is True
        assert api_client.get(f"/users/{asha_user_id}/preferences").json()["expiry_reminder_days"] == 7

    def test_disable_email(self, api_client, asha_user_id):
        api_client.put(f"/users/{asha_user_id}/preferences", json={"email_notifications": False})

        data = api_client.post("/evaluate").json()

        assert data["users_skipped"] == 2
        assert api_client.get(f"/users/{asha_user_id}/notifications").json() == []

    def test_phone_requires_number(self, api_client, asha_user_id):
        response = api_client.put(
            f"/users/{asha_user_id}/preferences", json={"phone_notifications": True}
        )
        assert response.status_code == 422

    @pytest.mark.parametrize("field", ["expiry_reminder_days", "email_notifications", "phone_notifications"])
    def test_null_for_required_field_rejected(self, api_client, asha_user_id, field):
        """Explicit nulls never reach the store, and evaluation keeps working."""
        response = api_client.put(f"/users/{asha_user_id}/preferences", json={field: None})

        assert response.status_code == 422
        stored = api_client.get(f"/users/{asha_user_id}/preferences").json()
        assert stored["expiry_reminder_days"] == 3
        assert stored["email_notifications"] is True
        assert api_client.post("/evaluate").status_code == 200

    def test_null_phone_number_clears_it(self, api_client, data_store, asha_user_id):
        api_client.put(f"/users/{asha_user_id}/preferences", json={"phone_number": "+15551234567"})

        response = api_client.put(f"/users/{asha_user_id}/preferences", json={"phone_number": None})

        assert response.status_code == 200
        assert data_store.get_preferences(asha_user_id).phone_number is None

    def test_negative_lead_time_rejected(self, api_client, asha_user_id):
        response = api_client.put(
            f"/users/{asha_user_id}/preferences", json={"expiry_reminder_days": -1}
        )
        assert response.status_code == 422
