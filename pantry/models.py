"""
Domain models for the pantry expiry notifier.

These models describe what the notification engine reads from the outside world
(tracked items, preferences, profiles) and what it writes to its own ledger
(notification records and delivery log entries).

Design decisions:
- Using Pydantic for validation and serialization
- Items, preferences and profiles are owned by other systems; the engine only reads snapshots
- Ledger records are append-only; only the read flag ever changes
"""

from datetime import date, datetime, timezone
from enum import Enum
from typing import Any, Optional
from pydantic import BaseModel, Field, ConfigDict, field_validator


# =============================================================================
# Enums
# =============================================================================

class TransitionKind(str, Enum):
    """
    Lifecycle events a notification can represent.

    Each kind is deduplicated independently per item, so an item may receive one
    UPCOMING_EXPIRY and later one EXPIRED notification.
    """
    UPCOMING_EXPIRY = "upcoming_expiry"
    EXPIRED = "expired"
    ITEM_ADDED = "item_added"
    ITEM_REMOVED = "item_removed"


class DeliveryStatus(str, Enum):
    """Outcome of one delivery attempt on one channel."""
    SENT = "sent"
    FAILED = "failed"


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def as_utc(value: datetime) -> datetime:
    """Attach UTC to naive timestamps read back from databases that drop the offset."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


# =============================================================================
# Inventory (read-only to the engine)
# =============================================================================

class TrackedItem(BaseModel):
    """
    A perishable item in a user's pantry.

    Owned by the Inventory Store. Items without an expiry date are never
    evaluated for expiry.
    """
    id: str = Field(..., description="Unique item identifier")
    user_id: str = Field(..., description="Owning user")
    name: str = Field(..., description="Display name")
    category: str = Field(default="Uncategorized", description="Category label")
    quantity: float = Field(default=0, ge=0)
    quantity_unit: str = Field(default="pieces")
    expiry_date: Optional[date] = Field(default=None)
    amount: float = Field(default=0, ge=0, description="Monetary amount paid")
    deleted: bool = Field(default=False, description="Soft-deleted items are not active")


class NotificationPreference(BaseModel):
    """
    Per-user notification settings.

    Created lazily with defaults when a user has none persisted.
    """
    user_id: str = Field(..., description="Reference to user")
    email_notifications: bool = Field(default=True)
    phone_notifications: bool = Field(default=False, description="Reserved channel")
    phone_number: Optional[str] = Field(default=None)
    expiry_reminder_days: int = Field(default=3, ge=0, description="Lead time in days")

    def get_channels(self) -> list[str]:
        """
        Channels this user wants notifications on.

        Phone is only listed when a number is on file.
        """
        channels = []
        if self.email_notifications:
            channels.append("email")
        if self.phone_notifications and self.phone_number:
            channels.append("sms")
        return channels


class UserProfile(BaseModel):
    """Contact details used to address deliveries."""
    id: str
    full_name: Optional[str] = None
    email: Optional[str] = None

    @property
    def display_name(self) -> str:
        return self.full_name or "User"


# =============================================================================
# Notification ledger
# =============================================================================

class ItemSnapshot(BaseModel):
    """
    Item attributes frozen at notification time.

    Kept so the notification history stays readable after the item changes or
    is deleted.
    """
    name: str
    category: str
    quantity: float
    quantity_unit: str
    amount: float
    expiry_date: Optional[date] = None
    days_until_expiry: Optional[int] = None

    @classmethod
    def from_item(cls, item: TrackedItem, days_until_expiry: Optional[int] = None) -> "ItemSnapshot":
        return cls(
            name=item.name,
            category=item.category,
            quantity=item.quantity,
            quantity_unit=item.quantity_unit,
            amount=item.amount,
            expiry_date=item.expiry_date,
            days_until_expiry=days_until_expiry,
        )


class NotificationRecord(BaseModel):
    """
    A decided notification.

    At most one record exists per (user_id, item_id, kind).
    """
    id: str
    user_id: str
    item_id: Optional[str] = None
    kind: TransitionKind
    title: str
    message: str
    item_snapshot: dict[str, Any] = Field(default_factory=dict)
    created_at: datetime
    is_read: bool = False

    model_config = ConfigDict(from_attributes=True, use_enum_values=True)

    @field_validator("created_at")
    @classmethod
    def created_at_utc(cls, value: datetime) -> datetime:
        return as_utc(value)


class DeliveryLogEntry(BaseModel):
    """One delivery attempt of a notification on one channel."""
    id: str
    notification_id: str
    channel: str
    status: DeliveryStatus
    details: dict[str, Any] = Field(default_factory=dict)
    created_at: datetime
    updated_at: datetime

    model_config = ConfigDict(from_attributes=True, use_enum_values=True)

    @field_validator("created_at", "updated_at")
    @classmethod
    def timestamps_utc(cls, value: datetime) -> datetime:
        return as_utc(value)
