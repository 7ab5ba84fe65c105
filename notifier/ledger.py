"""
Durable notification ledger.

Stores one row per decided notification plus one row per delivery attempt.
The ledger is also the dedup mechanism: a unique constraint on
(user_id, item_id, kind) turns a second reservation of the same transition into
an AlreadyNotified error, so overlapping evaluation passes can never both win.

Design decisions:
- SQLAlchemy ORM with a declarative base, tables created on startup
- reserve() is a single INSERT committed in its own transaction
- Each operation opens its own short-lived session, so the ledger is safe to
  share between the scheduler thread and API requests
- Rows are converted to Pydantic models before leaving the ledger
"""

import logging
from datetime import datetime, timezone
from typing import Any, Optional
from uuid import uuid4

from sqlalchemy import (
    JSON,
    Boolean,
    Column,
    DateTime,
    ForeignKey,
    String,
    Text,
    UniqueConstraint,
    create_engine,
    event,
    func,
    select,
    update,
)
from sqlalchemy.engine import Engine
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import declarative_base, sessionmaker

from notifier.errors import AlreadyNotified
from pantry.models import (
    DeliveryLogEntry,
    DeliveryStatus,
    ItemSnapshot,
    NotificationRecord,
    TransitionKind,
    as_utc,
    utcnow,
)

logger = logging.getLogger("notifier.ledger")

Base = declarative_base()


class NotificationRow(Base):
    __tablename__ = "notifications"
    __table_args__ = (
        UniqueConstraint("user_id", "item_id", "kind", name="uq_notifications_user_item_kind"),
    )

    id = Column(String(36), primary_key=True, default=lambda: str(uuid4()))
    user_id = Column(String(64), nullable=False, index=True)
    item_id = Column(String(64), nullable=True, index=True)
    kind = Column(String(32), nullable=False)
    title = Column(Text, nullable=False)
    message = Column(Text, nullable=False)
    item_snapshot = Column(JSON, nullable=False, default=dict)
    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)
    is_read = Column(Boolean, nullable=False, default=False)


class DeliveryLogRow(Base):
    __tablename__ = "notification_delivery_log"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid4()))
    notification_id = Column(
        String(36),
        ForeignKey("notifications.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    channel = Column(String(32), nullable=False)
    status = Column(String(16), nullable=False)
    details = Column(JSON, nullable=False, default=dict)
    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)
    updated_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)


def create_ledger_engine(database_url: str) -> Engine:
    """
    Create an engine for the ledger database.

    SQLite connections get foreign keys switched on and may be used from the
    scheduler thread.
    """
    connect_args = {}
    if database_url.startswith("sqlite"):
        connect_args = {"check_same_thread": False, "timeout": 30}

    engine = create_engine(database_url, connect_args=connect_args)

    if engine.dialect.name == "sqlite":
        @event.listens_for(engine, "connect")
        def _enable_foreign_keys(dbapi_connection, connection_record):
            cursor = dbapi_connection.cursor()
            cursor.execute("PRAGMA foreign_keys=ON")
            cursor.close()

    return engine


class NotificationLedger:
    """
    Notification records and their delivery log.

    Example:
        ledger = NotificationLedger.from_url("sqlite:///notifications.db")
        record = ledger.reserve("user-001", "item-001", TransitionKind.EXPIRED,
                                title="...", message="...", snapshot=snapshot)
        ledger.record_delivery(record.id, "email", DeliveryStatus.SENT, {"id": "..."})
    """

    def __init__(self, engine: Engine):
        self.engine = engine
        self._session_factory = sessionmaker(bind=engine, expire_on_commit=False)
        Base.metadata.create_all(engine)

    @classmethod
    def from_url(cls, database_url: str) -> "NotificationLedger":
        return cls(create_ledger_engine(database_url))

    # =========================================================================
    # Dedup
    # =========================================================================

    def has_notified(self, user_id: str, item_id: Optional[str], kind: TransitionKind) -> bool:
        """Check whether a record already exists for this transition."""
        kind = TransitionKind(kind)
        with self._session_factory() as session:
            stmt = select(NotificationRow.id).where(
                NotificationRow.user_id == user_id,
                NotificationRow.item_id == item_id,
                NotificationRow.kind == kind.value,
            )
            return session.execute(stmt).first() is not None

    def reserve(
        self,
        user_id: str,
        item_id: Optional[str],
        kind: TransitionKind,
        title: str,
        message: str,
        snapshot: ItemSnapshot,
        created_at: Optional[datetime] = None,
    ) -> NotificationRecord:
        """
        Claim a transition by inserting its notification record.

        Returns:
            The new NotificationRecord

        Raises:
            AlreadyNotified: A record for (user_id, item_id, kind) exists,
                including one inserted concurrently by another pass
        """
        kind = TransitionKind(kind)
        row = NotificationRow(
            id=str(uuid4()),
            user_id=user_id,
            item_id=item_id,
            kind=kind.value,
            title=title,
            message=message,
            item_snapshot=snapshot.model_dump(mode="json"),
            created_at=as_utc(created_at or utcnow()).astimezone(timezone.utc),
            is_read=False,
        )
        with self._session_factory() as session:
            session.add(row)
            try:
                session.commit()
            except IntegrityError:
                session.rollback()
                logger.debug(f"Reservation lost: user={user_id}, item={item_id}, kind={kind.value}")
                raise AlreadyNotified(user_id, item_id, kind.value)

        logger.info(f"Reserved {kind.value} notification {row.id} for user={user_id}, item={item_id}")
        return NotificationRecord.model_validate(row)

    # =========================================================================
    # Delivery log
    # =========================================================================

    def record_delivery(
        self,
        notification_id: str,
        channel: str,
        status: DeliveryStatus,
        details: Optional[dict[str, Any]] = None,
    ) -> DeliveryLogEntry:
        """Append one delivery attempt to the log."""
        status = DeliveryStatus(status)
        now = utcnow()
        row = DeliveryLogRow(
            id=str(uuid4()),
            notification_id=notification_id,
            channel=channel,
            status=status.value,
            details=details or {},
            created_at=now,
            updated_at=now,
        )
        with self._session_factory() as session:
            session.add(row)
            session.commit()
        return DeliveryLogEntry.model_validate(row)

    def list_deliveries(self, notification_id: str) -> list[DeliveryLogEntry]:
        """Get all delivery attempts for a notification, oldest first."""
        with self._session_factory() as session:
            stmt = (
                select(DeliveryLogRow)
                .where(DeliveryLogRow.notification_id == notification_id)
                .order_by(DeliveryLogRow.created_at, DeliveryLogRow.id)
            )
            return [DeliveryLogEntry.model_validate(r) for r in session.scalars(stmt)]

    # =========================================================================
    # Notification history
    # =========================================================================

    def get_notification(self, notification_id: str) -> Optional[NotificationRecord]:
        with self._session_factory() as session:
            row = session.get(NotificationRow, notification_id)
            return NotificationRecord.model_validate(row) if row else None

    def list_notifications(self, user_id: str) -> list[NotificationRecord]:
        """Get a user's notifications, newest first."""
        with self._session_factory() as session:
            stmt = (
                select(NotificationRow)
                .where(NotificationRow.user_id == user_id)
                .order_by(NotificationRow.created_at.desc(), NotificationRow.id)
            )
            return [NotificationRecord.model_validate(r) for r in session.scalars(stmt)]

    def mark_read(self, notification_id: str) -> bool:
        """
        Mark one notification as read.

        Returns False if the notification does not exist.
        """
        with self._session_factory() as session:
            result = session.execute(
                update(NotificationRow)
                .where(NotificationRow.id == notification_id)
                .values(is_read=True)
            )
            session.commit()
            return result.rowcount > 0

    def mark_all_read(self, user_id: str) -> int:
        """Mark all of a user's unread notifications as read; returns how many changed."""
        with self._session_factory() as session:
            result = session.execute(
                update(NotificationRow)
                .where(NotificationRow.user_id == user_id, NotificationRow.is_read.is_(False))
                .values(is_read=True)
            )
            session.commit()
            return result.rowcount

    def unread_count(self, user_id: str) -> int:
        with self._session_factory() as session:
            stmt = select(func.count(NotificationRow.id)).where(
                NotificationRow.user_id == user_id,
                NotificationRow.is_read.is_(False),
            )
            return session.execute(stmt).scalar_one()

    def count(self, user_id: Optional[str] = None, kind: Optional[TransitionKind] = None) -> int:
        """Count notification records, optionally filtered by user and kind."""
        stmt = select(func.count(NotificationRow.id))
        if user_id is not None:
            stmt = stmt.where(NotificationRow.user_id == user_id)
        if kind is not None:
            stmt = stmt.where(NotificationRow.kind == TransitionKind(kind).value)
        with self._session_factory() as session:
            return session.execute(stmt).scalar_one()
