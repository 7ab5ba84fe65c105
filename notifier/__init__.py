"""
Expiry notification engine.

Classifies tracked items against their expiry dates, records each lifecycle
transition at most once in a durable ledger, and delivers the resulting
notifications through the configured channels.
"""

from notifier.errors import (
    NotifierError,
    ConfigurationError,
    AlreadyNotified,
    StoreReadError,
    DeliveryError,
)
from notifier.lifecycle import LifecycleState, Classification, classify
from notifier.ledger import NotificationLedger
from notifier.channels import DeliveryDispatcher, DeliveryResult
from notifier.evaluation import ExpiryEvaluator, EvaluationReport

__all__ = [
    "NotifierError",
    "ConfigurationError",
    "AlreadyNotified",
    "StoreReadError",
    "DeliveryError",
    "LifecycleState",
    "Classification",
    "classify",
    "NotificationLedger",
    "DeliveryDispatcher",
    "DeliveryResult",
    "ExpiryEvaluator",
    "EvaluationReport",
]
