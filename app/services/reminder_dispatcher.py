"""
Lightweight in-process dispatcher for scheduled payment reminders.
Polls scheduled_reminders for due rows and pushes them to the owner's device.
"""
from __future__ import annotations

import asyncio
import logging
from typing import Callable

from sqlalchemy.orm import Session

from app.core.clock import Clock, SystemClock
from app.database import SessionLocal
from app.integrations.expo_push import ExpoPushClient
from app.models import ScheduledReminder, User
from app.services.notification_service import STATUS_FAILED, STATUS_SCHEDULED, STATUS_SENT

logger = logging.getLogger(__name__)


class ReminderDispatcher:
    """Sends due reminders on a fixed poll interval."""

    def __init__(
        self,
        poll_seconds: int = 60,
        push_client: ExpoPushClient | None = None,
        session_factory: Callable[[], Session] = SessionLocal,
        clock: Clock | None = None,
        batch_size: int = 100,
    ):
        self.poll_seconds = poll_seconds
        self.push_client = push_client or ExpoPushClient()
        self.session_factory = session_factory
        self.clock = clock or SystemClock()
        self.batch_size = batch_size
        self._stop_event = asyncio.Event()
        self._task: asyncio.Task | None = None

    def start(self) -> None:
        """Start dispatcher loop as background task."""
        if self._task and not self._task.done():
            return
        self._stop_event.clear()
        self._task = asyncio.create_task(self._run_loop())
        logger.info("ReminderDispatcher started")

    async def stop(self) -> None:
        """Stop dispatcher loop and wait for completion."""
        self._stop_event.set()
        if self._task:
            await self._task
        logger.info("ReminderDispatcher stopped")

    async def _run_loop(self) -> None:
        while not self._stop_event.is_set():
            try:
                await self.tick()
            except Exception as exc:
                logger.exception("ReminderDispatcher tick failed: %s", exc)
            try:
                await asyncio.wait_for(self._stop_event.wait(), timeout=self.poll_seconds)
            except asyncio.TimeoutError:
                pass

    async def tick(self) -> int:
        """Send every reminder that is due; returns how many were delivered."""
        now = self.clock.now()
        db = self.session_factory()
        delivered = 0
        try:
            due = (
                db.query(ScheduledReminder, User)
                .join(User, User.id == ScheduledReminder.user_id)
                .filter(
                    ScheduledReminder.status == STATUS_SCHEDULED,
                    ScheduledReminder.fire_at <= now,
                )
                .order_by(ScheduledReminder.fire_at)
                .limit(self.batch_size)
                .all()
            )

            for reminder, user in due:
                if not user.notifications_enabled or not user.push_token:
                    reminder.status = STATUS_FAILED
                    reminder.error = "Recipient has notifications disabled"
                    db.commit()
                    continue

                result = await self.push_client.send(
                    user.push_token,
                    reminder.title,
                    reminder.body,
                    data={"reminder_id": reminder.id},
                )
                if result.get("status") == "sent":
                    reminder.status = STATUS_SENT
                    reminder.sent_at = now
                    delivered += 1
                else:
                    reminder.status = STATUS_FAILED
                    reminder.error = result.get("error")
                    logger.warning("Reminder %s delivery failed: %s", reminder.id, reminder.error)
                db.commit()
        except Exception:
            db.rollback()
            raise
        finally:
            db.close()

        if delivered:
            logger.info("Dispatched %s reminder(s)", delivered)
        return delivered
