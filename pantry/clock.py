"""
Clocks supplying "now" to the evaluation loop.

The classifier never reads the time itself; the evaluator resolves now once per
pass from one of these and passes it down.
"""

from datetime import datetime, timedelta, timezone
from typing import Optional


class SystemClock:
    """Wall clock in UTC."""

    def now(self) -> datetime:
        return datetime.now(timezone.utc)


class FixedClock:
    """
    Manually controlled clock for tests and replays.

    Example:
        clock = FixedClock(datetime(2025, 6, 1, tzinfo=timezone.utc))
        clock.advance(days=3)
    """

    def __init__(self, current: Optional[datetime] = None):
        self._current = current or datetime.now(timezone.utc)

    def now(self) -> datetime:
        return self._current

    def set(self, current: datetime) -> None:
        self._current = current

    def advance(self, days: int = 0, hours: int = 0) -> datetime:
        self._current = self._current + timedelta(days=days, hours=hours)
        return self._current
