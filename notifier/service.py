"""
Wiring for the notifier components.

Builds the ledger, dispatcher, event bus and evaluator from settings so the API
process and the command line assemble the engine the same way.
"""

import logging
from dataclasses import dataclass
from typing import Optional

from notifier.channels import DeliveryDispatcher, build_dispatcher
from notifier.event_bus import EventBus
from notifier.evaluation import ExpiryEvaluator
from notifier.ledger import NotificationLedger
from notifier.scheduler import EvaluationScheduler
from pantry.config import Settings
from pantry.data_store import DataStore

logger = logging.getLogger("notifier.service")


@dataclass
class NotifierComponents:
    data_store: DataStore
    ledger: NotificationLedger
    dispatcher: DeliveryDispatcher
    event_bus: EventBus
    evaluator: ExpiryEvaluator
    scheduler: EvaluationScheduler

    def start(self, run_scheduler: bool = True) -> None:
        """Subscribe to inventory events and, optionally, start the periodic worker."""
        self.evaluator.start()
        if run_scheduler:
            self.scheduler.start()

    def shutdown(self) -> None:
        self.scheduler.stop()
        self.evaluator.stop()
        self.dispatcher.close()


def build_components(
    settings: Settings,
    data_store: Optional[DataStore] = None,
    clock=None,
) -> NotifierComponents:
    """
    Assemble the notifier from settings.

    Args:
        settings: Application settings
        data_store: Store to read inventory from (defaults to fixtures in settings.data_dir)
        clock: Clock for the evaluator (defaults to the system clock)
    """
    data_store = data_store or DataStore(
        data_dir=settings.data_dir,
        default_reminder_days=settings.default_reminder_days,
    )
    ledger = NotificationLedger.from_url(settings.database_url)
    dispatcher = build_dispatcher(settings)
    event_bus = EventBus()
    evaluator = ExpiryEvaluator(
        data_store=data_store,
        ledger=ledger,
        dispatcher=dispatcher,
        clock=clock,
        event_bus=event_bus,
    )
    scheduler = EvaluationScheduler(evaluator, interval_hours=settings.evaluation_interval_hours)

    logger.info(
        f"Notifier assembled: database={settings.database_url}, "
        f"email_provider={settings.email_provider}, channels={dispatcher.available_channels}"
    )
    return NotifierComponents(
        data_store=data_store,
        ledger=ledger,
        dispatcher=dispatcher,
        event_bus=event_bus,
        evaluator=evaluator,
        scheduler=scheduler,
    )
