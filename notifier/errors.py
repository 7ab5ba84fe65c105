"""
Error taxonomy for the notification engine.

Only AlreadyNotified is expected in normal operation; it short-circuits an emit.
The others are caught at component boundaries and turned into logged outcomes,
so none of them reach the evaluation loop uncaught.
"""

from typing import Optional


class NotifierError(Exception):
    """Base class for notification engine errors."""


class ConfigurationError(NotifierError):
    """Delivery credentials or settings are missing."""


class AlreadyNotified(NotifierError):
    """A record for this (user, item, kind) already exists."""

    def __init__(self, user_id: str, item_id: Optional[str], kind: str):
        self.user_id = user_id
        self.item_id = item_id
        self.kind = kind
        super().__init__(f"Already notified: user={user_id}, item={item_id}, kind={kind}")


class StoreReadError(NotifierError):
    """Items, preferences or profile could not be read for a user."""

    def __init__(self, user_id: str, cause: Exception):
        self.user_id = user_id
        self.cause = cause
        super().__init__(f"Failed to read store data for user {user_id}: {cause}")


class DeliveryError(NotifierError):
    """The delivery provider rejected or failed a send."""

    def __init__(self, message: str, details: Optional[dict] = None):
        self.details = details or {}
        super().__init__(message)
