from __future__ import annotations

import logging
from datetime import datetime, timezone
from threading import RLock
from typing import Optional

from .models import AuditEntry, Notification

logger = logging.getLogger(__name__)


class NotificationType:
    BOOKING_CONFIRMATION = "Booking Confirmation"
    BOOKING_CANCELLED = "Booking Cancelled"
    LOYALTY_REWARD = "Loyalty Reward"


class AuditAction:
    BOOKING_CREATED = "Booking Created"
    BOOKING_CONFIRMED = "Booking Confirmed"
    BOOKING_CANCELLED = "Booking Cancelled"
    BOOKING_COMPLETED = "Booking Completed"


class InMemoryNotificationSink:
    def __init__(self) -> None:
        self._lock = RLock()
        self._items: list[Notification] = []

    def notify(
        self,
        *,
        user_id: str,
        type: str,
        title: str,
        message: str,
        booking_id: Optional[str] = None,
        priority: str = "Medium",
    ) -> None:
        notification = Notification(
            user_id=user_id,
            type=type,
            title=title,
            message=message,
            booking_id=booking_id,
            priority=priority,
            created_at=datetime.now(timezone.utc),
        )
        with self._lock:
            self._items.append(notification)

    def for_user(self, user_id: str) -> list[Notification]:
        with self._lock:
            return [item for item in self._items if item.user_id == user_id]


class InMemoryAuditSink:
    """Append-only audit trail."""

    def __init__(self) -> None:
        self._lock = RLock()
        self._entries: list[AuditEntry] = []

    def record(
        self,
        *,
        actor_id: str,
        action: str,
        details: str,
        resource_type: str = "Booking",
        resource_id: Optional[str] = None,
    ) -> None:
        entry = AuditEntry(
            actor_id=actor_id,
            action=action,
            details=details,
            resource_type=resource_type,
            resource_id=resource_id,
            created_at=datetime.now(timezone.utc),
        )
        with self._lock:
            self._entries.append(entry)

    @property
    def entries(self) -> list[AuditEntry]:
        with self._lock:
            return list(self._entries)


class EventPublisher:
    """Fans booking events out to the notification and audit sinks.

    Delivery is best-effort: a failing sink is logged and never propagates
    into the booking transition that emitted the event.
    """

    def __init__(self, notifications=None, audit=None) -> None:
        self.notifications = notifications if notifications is not None else InMemoryNotificationSink()
        self.audit = audit if audit is not None else InMemoryAuditSink()

    def notify(self, **kwargs) -> None:
        try:
            self.notifications.notify(**kwargs)
        except Exception:
            logger.exception(
                "Notification delivery failed",
                extra={"user_id": kwargs.get("user_id"), "type": kwargs.get("type")},
            )

    def audit_log(self, **kwargs) -> None:
        try:
            self.audit.record(**kwargs)
        except Exception:
            logger.exception(
                "Audit logging failed",
                extra={"actor_id": kwargs.get("actor_id"), "action": kwargs.get("action")},
            )
