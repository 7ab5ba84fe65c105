"""
Lifecycle classification of tracked items.

Pure functions: the caller supplies "now" and the lead time, nothing is read
from the environment.
"""

from dataclasses import dataclass
from datetime import date, datetime
from enum import Enum
from typing import Optional, Union


class LifecycleState(str, Enum):
    """Where an item stands relative to its expiry date."""
    NO_EXPIRY = "no_expiry"              # No expiry date, never evaluated
    NOT_DUE = "not_due"                  # Expires beyond the lead time
    UPCOMING_EXPIRY = "upcoming_expiry"  # Expires today or within the lead time
    EXPIRED = "expired"                  # Expiry date is strictly before today


@dataclass(frozen=True)
class Classification:
    state: LifecycleState
    days_until_expiry: Optional[int] = None


def to_calendar_date(now: Union[date, datetime]) -> date:
    """Truncate a timestamp to its calendar date."""
    if isinstance(now, datetime):
        return now.date()
    return now


def days_until_expiry(expiry_date: date, now: Union[date, datetime]) -> int:
    """
    Whole days from today until the expiry date.

    Negative once the date has passed, zero on the expiry date itself.
    """
    return (expiry_date - to_calendar_date(now)).days


def classify(
    expiry_date: Optional[date],
    now: Union[date, datetime],
    lead_days: int,
) -> Classification:
    """
    Classify an item by its expiry date.

    Args:
        expiry_date: The item's expiry date, or None if it has none
        now: Current time, truncated to a calendar date
        lead_days: Days before expiry at which an upcoming notification is due

    Returns:
        Classification with the state and, unless NO_EXPIRY, the day count

    Example:
        >>> classify(date(2025, 6, 3), date(2025, 6, 1), 3)
        Classification(state=<LifecycleState.UPCOMING_EXPIRY: 'upcoming_expiry'>, days_until_expiry=2)
    """
    if expiry_date is None:
        return Classification(LifecycleState.NO_EXPIRY)

    days = days_until_expiry(expiry_date, now)
    if days < 0:
        return Classification(LifecycleState.EXPIRED, days)
    if days <= lead_days:
        return Classification(LifecycleState.UPCOMING_EXPIRY, days)
    return Classification(LifecycleState.NOT_DUE, days)
