"""
Shared pytest fixtures for the expiry notifier tests.

These fixtures provide consistent test data and reset state between tests.
The fixture inventory is evaluated as of 2025-05-31 09:00 UTC.
"""

import pytest
from datetime import datetime, timezone
from pathlib import Path

from notifier.channels import ConsoleEmailChannel, ConsoleSMSChannel, DeliveryDispatcher
from notifier.evaluation import ExpiryEvaluator
from notifier.event_bus import EventBus
from notifier.ledger import NotificationLedger
from pantry.clock import FixedClock
from pantry.data_store import DataStore


@pytest.fixture
def data_dir() -> Path:
    """Path to the test data directory."""
    return Path(__file__).parent.parent / "data"


@pytest.fixture
def data_store(data_dir: Path) -> DataStore:
    """
    Fresh DataStore instance for each test.

    Uses the real JSON fixtures but creates a new instance
    so tests don't interfere with each other.
    """
    return DataStore(data_dir=data_dir)


@pytest.fixture
def empty_store(tmp_path: Path) -> DataStore:
    """DataStore with no fixtures, for tests that build their own inventory."""
    return DataStore(data_dir=tmp_path / "empty")


@pytest.fixture
def database_url(tmp_path: Path) -> str:
    """
    SQLite file in the test's temp directory.

    A file rather than :memory: so connections from worker threads see the same database.
    """
    return f"sqlite:///{tmp_path / 'notifications.db'}"


@pytest.fixture
def ledger(database_url: str) -> NotificationLedger:
    """Fresh ledger on an empty database."""
    ledger = NotificationLedger.from_url(database_url)
    yield ledger
    ledger.engine.dispose()


@pytest.fixture
def email_channel() -> ConsoleEmailChannel:
    """Fresh ConsoleEmailChannel for each test."""
    return ConsoleEmailChannel(fail_rate=0.0)


@pytest.fixture
def sms_channel() -> ConsoleSMSChannel:
    """Fresh ConsoleSMSChannel for each test."""
    return ConsoleSMSChannel(fail_rate=0.0)


@pytest.fixture
def dispatcher(email_channel: ConsoleEmailChannel) -> DeliveryDispatcher:
    """Dispatcher with the console email channel registered."""
    dispatcher = DeliveryDispatcher(timeout=5.0)
    dispatcher.register("email", email_channel)
    yield dispatcher
    dispatcher.close()


@pytest.fixture
def reference_time() -> datetime:
    return datetime(2025, 5, 31, 9, 0, tzinfo=timezone.utc)


@pytest.fixture
def clock(reference_time: datetime) -> FixedClock:
    """Clock pinned to the fixture reference time."""
    return FixedClock(reference_time)


@pytest.fixture
def event_bus() -> EventBus:
    return EventBus()


@pytest.fixture
def evaluator(data_store, ledger, dispatcher, clock, event_bus) -> ExpiryEvaluator:
    """Evaluator over the JSON fixtures."""
    return ExpiryEvaluator(
        data_store=data_store,
        ledger=ledger,
        dispatcher=dispatcher,
        clock=clock,
        event_bus=event_bus,
    )


# =============================================================================
# User Fixtures
# =============================================================================

@pytest.fixture
def asha_user_id() -> str:
    """
    User ID for Asha (email on, 3 day lead).
    Owns item-001 (upcoming), item-002 (expired), item-003 (far off), item-004 (no expiry).
    """
    return "user-001"


@pytest.fixture
def ben_user_id() -> str:
    """User ID for Ben (email notifications disabled, owns item-005)."""
    return "user-002"


@pytest.fixture
def chen_user_id() -> str:
    """
    User ID for Chen (no stored preferences, profile without email).
    Owns item-006 (upcoming) and the deleted item-007.
    """
    return "user-003"
