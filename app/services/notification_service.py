"""
Reminder scheduling backed by the scheduled_reminders table.

A handle returned by ``schedule`` is the reminder row id. The dispatcher
(app.services.reminder_dispatcher) picks up due rows and pushes them to the
recipient's device.
"""
from __future__ import annotations

import logging
from datetime import datetime, timedelta
from typing import Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from app.core.clock import Clock, SystemClock, ensure_utc
from app.core.exceptions import NotificationServiceUnavailable
from app.models import ScheduledReminder, User

logger = logging.getLogger(__name__)

STATUS_SCHEDULED = "scheduled"
STATUS_SENT = "sent"
STATUS_CANCELLED = "cancelled"
STATUS_FAILED = "failed"


class NotificationService:
    def __init__(self, db: Session, recipient: User, clock: Clock | None = None):
        self.db = db
        self.recipient = recipient
        self.clock = clock or SystemClock()

    def _ensure_permissions(self) -> None:
        if not self.recipient.notifications_enabled:
            raise NotificationServiceUnavailable(
                f"Notifications disabled for user {self.recipient.id}"
            )
        if not self.recipient.push_token:
            raise NotificationServiceUnavailable(
                f"No push token registered for user {self.recipient.id}"
            )

    async def schedule(self, title: str, body: str, fire_at: datetime) -> Optional[str]:
        """Schedule a one-shot reminder; returns its handle, or None without permission."""
        try:
            self._ensure_permissions()
        except NotificationServiceUnavailable as exc:
            logger.info("Reminder not scheduled: %s", exc)
            return None

        # Past fire times are delivered on the next dispatcher tick.
        earliest = self.clock.now() + timedelta(seconds=1)
        reminder = ScheduledReminder(
            user_id=self.recipient.id,
            title=title,
            body=body,
            fire_at=max(ensure_utc(fire_at), earliest),
            status=STATUS_SCHEDULED,
        )
        try:
            self.db.add(reminder)
            self.db.commit()
        except SQLAlchemyError:
            self.db.rollback()
            raise
        logger.debug("Scheduled reminder %s at %s", reminder.id, reminder.fire_at)
        return reminder.id

    async def cancel(self, handle: Optional[str]) -> None:
        """Cancel a pending reminder. Unknown or already delivered handles are ignored."""
        if not handle:
            return
        reminder = (
            self.db.query(ScheduledReminder)
            .filter(
                ScheduledReminder.id == handle,
                ScheduledReminder.user_id == self.recipient.id,
            )
            .first()
        )
        if reminder is None or reminder.status != STATUS_SCHEDULED:
            return
        try:
            reminder.status = STATUS_CANCELLED
            self.db.commit()
        except SQLAlchemyError:
            self.db.rollback()
            raise
        logger.debug("Cancelled reminder %s", handle)
