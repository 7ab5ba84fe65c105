"""
Expiry evaluation loop.

The ExpiryEvaluator decides which notifications are due and runs the emit
sequence for each of them:
1. Compose title, message and item snapshot
2. Reserve the transition in the ledger (a duplicate is a silent no-op)
3. Deliver through every channel the user wants
4. Append one delivery log entry per channel attempted, sent or failed

It is driven three ways:
- run_pass(): periodic evaluation of every user with active items
- on_item_created(): item-added notification plus an immediate evaluation of that item
- on_item_deleted(): item-removed notification from the deleted item's snapshot

Design decisions:
- "now" is resolved once per pass and passed down to the classifier
- The expired pass runs before the upcoming pass for every user
- Each user's evaluation is isolated: a store failure for one user is logged
  and the loop moves on to the next
- Delivery failures never undo the reservation; the transition stays decided
"""

import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field

from notifier.channels import DeliveryDispatcher, ChannelType
from notifier.errors import AlreadyNotified, StoreReadError
from notifier.event_bus import Event, EventBus
from notifier.events import EventTypes
from notifier.ledger import NotificationLedger
from notifier.lifecycle import LifecycleState, classify, to_calendar_date
from notifier.templates import ComposedNotification, compose
from pantry.clock import SystemClock
from pantry.data_store import DataStore
from pantry.models import (
    DeliveryLogEntry,
    DeliveryStatus,
    ItemSnapshot,
    NotificationPreference,
    NotificationRecord,
    TrackedItem,
    TransitionKind,
    UserProfile,
)

logger = logging.getLogger("notifier.evaluation")


@dataclass
class EmitOutcome:
    """What happened to one emit call."""
    record: Optional[NotificationRecord] = None
    deliveries: list[DeliveryLogEntry] = field(default_factory=list)
    duplicate: bool = False


class EvaluationReport(BaseModel):
    """Counters for one evaluation pass or trigger."""
    started_at: datetime
    users_evaluated: int = 0
    users_skipped: int = 0
    users_failed: int = 0
    failed_users: list[str] = Field(default_factory=list)
    items_failed: int = 0
    notifications_created: int = 0
    duplicates_skipped: int = 0
    deliveries_sent: int = 0
    deliveries_failed: int = 0

    def record(self, outcome: EmitOutcome) -> None:
        if outcome.duplicate:
            self.duplicates_skipped += 1
            return
        if outcome.record is not None:
            self.notifications_created += 1
        for entry in outcome.deliveries:
            if entry.status == DeliveryStatus.SENT.value:
                self.deliveries_sent += 1
            else:
                self.deliveries_failed += 1


@dataclass
class UserContext:
    """Everything read from the stores for one user's evaluation."""
    user_id: str
    preferences: NotificationPreference
    profile: Optional[UserProfile]


class ExpiryEvaluator:
    """
    Decides and emits expiry notifications.

    Example:
        evaluator = ExpiryEvaluator(data_store, ledger, dispatcher)
        evaluator.start()            # subscribe to item created/deleted events
        report = evaluator.run_pass()
    """

    def __init__(
        self,
        data_store: DataStore,
        ledger: NotificationLedger,
        dispatcher: DeliveryDispatcher,
        clock=None,
        event_bus: Optional[EventBus] = None,
    ):
        """
        Initialize the evaluator.

        Args:
            data_store: Inventory, preference and profile lookups
            ledger: Notification records, dedup and delivery log
            dispatcher: Delivery channels
            clock: Anything with a now() method (defaults to the system clock)
            event_bus: Bus to receive inventory triggers from, used by start()
        """
        self.data_store = data_store
        self.ledger = ledger
        self.dispatcher = dispatcher
        self.clock = clock or SystemClock()
        self.event_bus = event_bus
        self._started = False

    # =========================================================================
    # Trigger subscription
    # =========================================================================

    def start(self) -> None:
        """Subscribe to item created/deleted events on the event bus."""
        if self._started or self.event_bus is None:
            return
        self.event_bus.subscribe(EventTypes.ITEM_CREATED, self._handle_item_created)
        self.event_bus.subscribe(EventTypes.ITEM_DELETED, self._handle_item_deleted)
        self._started = True
        logger.info("ExpiryEvaluator started - subscribed to inventory events")

    def stop(self) -> None:
        if not self._started:
            return
        self.event_bus.unsubscribe(EventTypes.ITEM_CREATED, self._handle_item_created)
        self.event_bus.unsubscribe(EventTypes.ITEM_DELETED, self._handle_item_deleted)
        self._started = False
        logger.info("ExpiryEvaluator stopped")

    def _handle_item_created(self, event: Event) -> None:
        self.on_item_created(event.payload["item_id"])

    def _handle_item_deleted(self, event: Event) -> None:
        self.on_item_deleted(TrackedItem(**event.payload["item"]))

    # =========================================================================
    # Entry points
    # =========================================================================

    def run_pass(self) -> EvaluationReport:
        """
        Evaluate every user with at least one active item.

        Best effort: every user is attempted, failures are counted and logged.
        """
        now = self.clock.now()
        report = EvaluationReport(started_at=now)

        try:
            user_ids = self.data_store.list_users_with_active_items()
        except Exception as e:
            logger.error(f"Failed to list users with active items: {e}")
            return report

        logger.info(f"Evaluation pass started for {len(user_ids)} users")
        for user_id in user_ids:
            try:
                self._evaluate_user(user_id, now, report)
            except Exception:
                logger.exception(f"Evaluation failed for user {user_id}")
                report.users_failed += 1
                report.failed_users.append(user_id)

        logger.info(
            f"Evaluation pass finished: created={report.notifications_created}, "
            f"duplicates={report.duplicates_skipped}, sent={report.deliveries_sent}, "
            f"failed={report.deliveries_failed}, users_failed={report.users_failed}"
        )
        return report

    def on_item_created(self, item_id: str) -> EvaluationReport:
        """
        Handle a newly created item.

        Emits ITEM_ADDED, then runs both expiry passes against this item alone,
        so an item that is already due is notified without waiting for the next tick.
        """
        now = self.clock.now()
        report = EvaluationReport(started_at=now)

        try:
            item = self.data_store.get_item(item_id)
        except Exception as e:
            logger.error(f"Failed to read created item {item_id}: {e}")
            report.items_failed += 1
            return report

        if item is None or item.deleted:
            logger.warning(f"Created item not found or already deleted: {item_id}")
            return report

        context = self._load_context(item.user_id, report)
        if context is None:
            return report

        report.users_evaluated += 1
        self._emit_safely(context, item, TransitionKind.ITEM_ADDED, now, report)
        try:
            self._evaluate_items(context, [item], now, report)
        except Exception:
            logger.exception(f"Evaluation failed for created item {item_id}")
            report.items_failed += 1
        return report

    def on_item_deleted(self, item: TrackedItem) -> EvaluationReport:
        """Emit ITEM_REMOVED from the snapshot of a deleted item."""
        now = self.clock.now()
        report = EvaluationReport(started_at=now)

        context = self._load_context(item.user_id, report)
        if context is None:
            return report

        report.users_evaluated += 1
        self._emit_safely(context, item, TransitionKind.ITEM_REMOVED, now, report)
        return report

    # =========================================================================
    # Per-user evaluation
    # =========================================================================

    def _evaluate_user(self, user_id: str, now: datetime, report: EvaluationReport) -> None:
        context = self._load_context(user_id, report)
        if context is None:
            return

        try:
            items = self.data_store.list_active_items(user_id)
        except Exception as e:
            self._record_store_failure(StoreReadError(user_id, e), report)
            return

        report.users_evaluated += 1
        self._evaluate_items(context, items, now, report)

    def _load_context(self, user_id: str, report: EvaluationReport) -> Optional[UserContext]:
        """
        Read preferences and profile for a user.

        Returns None when the user must not be notified: notifications are
        disabled, or the stores could not be read.
        """
        try:
            preferences = self.data_store.get_preferences(user_id)
            profile = self.data_store.get_profile(user_id)
        except Exception as e:
            self._record_store_failure(StoreReadError(user_id, e), report)
            return None

        if not preferences.email_notifications:
            logger.info(f"Notifications disabled for user {user_id}, skipping")
            report.users_skipped += 1
            return None

        return UserContext(user_id=user_id, preferences=preferences, profile=profile)

    def _record_store_failure(self, error: StoreReadError, report: EvaluationReport) -> None:
        logger.error(str(error))
        report.users_failed += 1
        report.failed_users.append(error.user_id)

    def _evaluate_items(
        self,
        context: UserContext,
        items: list[TrackedItem],
        now: datetime,
        report: EvaluationReport,
    ) -> None:
        """Run the expired pass, then the upcoming pass, over the given items."""
        lead_days = context.preferences.expiry_reminder_days
        today = to_calendar_date(now)

        for item in items:
            classification = classify(item.expiry_date, now, lead_days)
            if classification.state == LifecycleState.EXPIRED:
                self._emit_safely(context, item, TransitionKind.EXPIRED, now, report)

        for item in items:
            if item.expiry_date is None or item.expiry_date < today:
                continue
            classification = classify(item.expiry_date, now, lead_days)
            if classification.state == LifecycleState.UPCOMING_EXPIRY:
                self._emit_safely(
                    context, item, TransitionKind.UPCOMING_EXPIRY, now, report,
                    days_until_expiry=classification.days_until_expiry,
                )

    def _emit_safely(
        self,
        context: UserContext,
        item: TrackedItem,
        kind: TransitionKind,
        now: datetime,
        report: EvaluationReport,
        days_until_expiry: Optional[int] = None,
    ) -> None:
        try:
            outcome = self.emit(context, item, kind, now, days_until_expiry)
        except Exception:
            logger.exception(f"Failed to emit {kind.value} for item {item.id} (user {context.user_id})")
            report.items_failed += 1
            return
        report.record(outcome)

    # =========================================================================
    # Emit sequence
    # =========================================================================

    def emit(
        self,
        context: UserContext,
        item: TrackedItem,
        kind: TransitionKind,
        now: datetime,
        days_until_expiry: Optional[int] = None,
    ) -> EmitOutcome:
        """
        Record and deliver one notification, at most once per (user, item, kind).

        Returns:
            EmitOutcome with the record and delivery log entries, or
            duplicate=True if the transition was already notified
        """
        if self.ledger.has_notified(context.user_id, item.id, kind):
            logger.debug(f"Already notified {kind.value} for item {item.id}")
            return EmitOutcome(duplicate=True)

        snapshot = ItemSnapshot.from_item(
            item,
            days_until_expiry if kind == TransitionKind.UPCOMING_EXPIRY else None,
        )
        composed = compose(kind, snapshot)

        try:
            record = self.ledger.reserve(
                user_id=context.user_id,
                item_id=item.id,
                kind=kind,
                title=composed.title,
                message=composed.message,
                snapshot=snapshot,
                created_at=now,
            )
        except AlreadyNotified:
            logger.debug(f"Lost reservation race for {kind.value} on item {item.id}")
            return EmitOutcome(duplicate=True)

        deliveries = self._deliver(context, record, composed)
        return EmitOutcome(record=record, deliveries=deliveries)

    def _deliver(
        self,
        context: UserContext,
        record: NotificationRecord,
        composed: ComposedNotification,
    ) -> list[DeliveryLogEntry]:
        entries = []
        wanted = context.preferences.get_channels()
        channels = [c for c in wanted if c in self.dispatcher.available_channels]
        if not channels:
            logger.warning(f"No delivery channel available for notification {record.id} (wanted {wanted})")

        for channel in channels:
            if channel == ChannelType.EMAIL.value:
                recipient = context.profile.email if context.profile else None
                name = context.profile.display_name if context.profile else "User"
                subject, body = composed.render_email(name)
            else:
                recipient = context.preferences.phone_number
                subject, body = composed.title, composed.render_sms()

            result = self.dispatcher.deliver(channel, recipient, subject, body)
            details = {"recipient": result.recipient, **result.details}
            entries.append(
                self.ledger.record_delivery(record.id, channel, result.status, details)
            )
        return entries
