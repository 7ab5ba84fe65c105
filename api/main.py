"""
FastAPI application for the pantry expiry notifier.

This application provides:
1. Notification history for UI collaborators (list, mark read, delivery log)
2. Notification preferences (get, update)
3. Trigger inputs: item created / item deleted events and on-demand evaluation

The periodic evaluation worker is started with the process (lifespan) and runs
whether or not any client is connected.

Run with:
    uvicorn api.main:app --reload

Then visit http://localhost:8000/docs for interactive API documentation.
"""

import logging
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import Depends, FastAPI, HTTPException
from pydantic import BaseModel, Field, ValidationError

from notifier.evaluation import EvaluationReport, ExpiryEvaluator
from notifier.event_bus import EventBus
from notifier.events import item_created, item_deleted
from notifier.ledger import NotificationLedger
from notifier.service import NotifierComponents, build_components
from pantry.config import get_settings
from pantry.data_store import DataStore
from pantry.models import (
    DeliveryLogEntry,
    NotificationPreference,
    NotificationRecord,
    TrackedItem,
)

logger = logging.getLogger("notifier.api")


# =============================================================================
# Request / Response models
# =============================================================================

class ItemCreatedRequest(BaseModel):
    item_id: str = Field(..., description="Id of the newly created item")


class ItemDeletedRequest(BaseModel):
    item: TrackedItem = Field(..., description="Snapshot of the deleted item")


class EventAccepted(BaseModel):
    event_id: str
    event_type: str
    handlers: int


class PreferencesUpdate(BaseModel):
    """Partial update; omitted fields keep their current value."""
    email_notifications: Optional[bool] = None
    phone_notifications: Optional[bool] = None
    phone_number: Optional[str] = None
    expiry_reminder_days: Optional[int] = Field(default=None, ge=0)


class UnreadCount(BaseModel):
    user_id: str
    unread: int


class MarkedRead(BaseModel):
    updated: int


# =============================================================================
# Component state
# =============================================================================

# Module-level instances, set at startup or injected by tests
_components: Optional[NotifierComponents] = None
_data_store: Optional[DataStore] = None
_ledger: Optional[NotificationLedger] = None
_evaluator: Optional[ExpiryEvaluator] = None
_event_bus: Optional[EventBus] = None


def _ensure_components() -> None:
    global _components, _data_store, _ledger, _evaluator, _event_bus
    if _components is None and _ledger is None:
        _components = build_components(get_settings())
        _components.start(run_scheduler=False)
        _data_store = _components.data_store
        _ledger = _components.ledger
        _evaluator = _components.evaluator
        _event_bus = _components.event_bus


def get_store() -> DataStore:
    _ensure_components()
    return _data_store


def get_ledger() -> NotificationLedger:
    _ensure_components()
    return _ledger


def get_evaluator() -> ExpiryEvaluator:
    _ensure_components()
    return _evaluator


def get_bus() -> EventBus:
    _ensure_components()
    return _event_bus


def reset_api_state(
    data_store: Optional[DataStore] = None,
    ledger: Optional[NotificationLedger] = None,
    evaluator: Optional[ExpiryEvaluator] = None,
    event_bus: Optional[EventBus] = None,
) -> None:
    """Replace the API's components (for testing)."""
    global _components, _data_store, _ledger, _evaluator, _event_bus
    _components = None
    _data_store = data_store
    _ledger = ledger
    _evaluator = evaluator
    _event_bus = event_bus


# =============================================================================
# Application lifespan
# =============================================================================

@asynccontextmanager
async def lifespan(app: FastAPI):
    """Assemble the notifier at startup and start the background worker."""
    global _components, _data_store, _ledger, _evaluator, _event_bus
    settings = get_settings()
    logging.basicConfig(
        level=settings.log_level,
        format="%(asctime)s | %(name)-24s | %(levelname)-5s | %(message)s",
        datefmt="%H:%M:%S",
    )

    _components = build_components(settings)
    _data_store = _components.data_store
    _ledger = _components.ledger
    _evaluator = _components.evaluator
    _event_bus = _components.event_bus
    _components.start(run_scheduler=settings.scheduler_enabled)
    logger.info(f"Starting {settings.app_name}")

    yield

    logger.info("Shutting down")
    _components.shutdown()
    reset_api_state()


app = FastAPI(
    title="Pantry Expiry Notifier",
    description="Notifies pantry owners before and after their items expire, once per transition.",
    version="1.0.0",
    lifespan=lifespan,
)


# =============================================================================
# Health
# =============================================================================

@app.get("/health", tags=["Health"])
def health_check():
    """Health check endpoint."""
    return {"status": "healthy", "service": "pantry-expiry-notifier"}


# =============================================================================
# Triggers
# =============================================================================

@app.post("/evaluate", response_model=EvaluationReport, tags=["Triggers"])
def evaluate_now(evaluator: ExpiryEvaluator = Depends(get_evaluator)) -> EvaluationReport:
    """Run one full evaluation pass immediately."""
    return evaluator.run_pass()


@app.post("/events/item-created", response_model=EventAccepted, tags=["Triggers"])
def on_item_created(
    request: ItemCreatedRequest,
    data_store: DataStore = Depends(get_store),
    event_bus: EventBus = Depends(get_bus),
) -> EventAccepted:
    """
    Report a newly created item.

    The item is notified as added and evaluated for expiry right away.
    """
    if data_store.get_item(request.item_id) is None:
        raise HTTPException(status_code=404, detail=f"Item not found: {request.item_id}")

    event = item_created(request.item_id, source="api")
    handlers = event_bus.publish(event)
    return EventAccepted(event_id=event.event_id, event_type=event.event_type, handlers=handlers)


@app.post("/events/item-deleted", response_model=EventAccepted, tags=["Triggers"])
def on_item_deleted(
    request: ItemDeletedRequest,
    event_bus: EventBus = Depends(get_bus),
) -> EventAccepted:
    """Report a deleted item, carrying its last snapshot."""
    event = item_deleted(request.item, source="api")
    handlers = event_bus.publish(event)
    return EventAccepted(event_id=event.event_id, event_type=event.event_type, handlers=handlers)


# =============================================================================
# Notification history
# =============================================================================

@app.get("/users/{user_id}/notifications", response_model=list[NotificationRecord], tags=["Notifications"])
def list_notifications(user_id: str, ledger: NotificationLedger = Depends(get_ledger)):
    """Get a user's notifications, newest first."""
    return ledger.list_notifications(user_id)


@app.get("/users/{user_id}/notifications/unread-count", response_model=UnreadCount, tags=["Notifications"])
def unread_count(user_id: str, ledger: NotificationLedger = Depends(get_ledger)) -> UnreadCount:
    return UnreadCount(user_id=user_id, unread=ledger.unread_count(user_id))


@app.post("/users/{user_id}/notifications/read-all", response_model=MarkedRead, tags=["Notifications"])
def mark_all_read(user_id: str, ledger: NotificationLedger = Depends(get_ledger)) -> MarkedRead:
    return MarkedRead(updated=ledger.mark_all_read(user_id))


@app.post("/notifications/{notification_id}/read", response_model=MarkedRead, tags=["Notifications"])
def mark_read(notification_id: str, ledger: NotificationLedger = Depends(get_ledger)) -> MarkedRead:
    if not ledger.mark_read(notification_id):
        raise HTTPException(status_code=404, detail=f"Notification not found: {notification_id}")
    return MarkedRead(updated=1)


@app.get(
    "/notifications/{notification_id}/deliveries",
    response_model=list[DeliveryLogEntry],
    tags=["Notifications"],
)
def list_deliveries(notification_id: str, ledger: NotificationLedger = Depends(get_ledger)):
    """Get the delivery attempts for a notification, oldest first."""
    if ledger.get_notification(notification_id) is None:
        raise HTTPException(status_code=404, detail=f"Notification not found: {notification_id}")
    return ledger.list_deliveries(notification_id)


# =============================================================================
# Preferences
# =============================================================================

@app.get("/users/{user_id}/preferences", response_model=NotificationPreference, tags=["Preferences"])
def get_preferences(user_id: str, data_store: DataStore = Depends(get_store)):
    """Get a user's preferences, created with defaults if none exist."""
    return data_store.get_preferences(user_id)


@app.put("/users/{user_id}/preferences", response_model=NotificationPreference, tags=["Preferences"])
def update_preferences(
    user_id: str,
    update: PreferencesUpdate,
    data_store: DataStore = Depends(get_store),
):
    current = data_store.get_preferences(user_id)
    changes = update.model_dump(exclude_unset=True)
    try:
        updated = NotificationPreference.model_validate({**current.model_dump(), **changes})
    except ValidationError as e:
        raise HTTPException(status_code=422, detail=e.errors(include_url=False, include_context=False))
    if updated.phone_notifications and not updated.phone_number:
        raise HTTPException(status_code=422, detail="Phone number is required for phone notifications")
    return data_store.save_preferences(updated)
