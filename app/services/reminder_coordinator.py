"""
Keeps each subscription's single scheduled reminder in step with its
next-payment date.

The coordinator is the only component that assigns or clears
``notification_id``. Every change goes through ``replace_reminder``:
cancel the old reminder, schedule the new one, commit the record, and cancel
the new reminder again if the commit fails, so a scheduled reminder is never
left without a record pointing at it.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass, replace
from datetime import datetime, timedelta
from typing import Optional, Protocol, Tuple

from app.core.clock import Clock, SystemClock
from app.core.exceptions import PersistenceFailure
from app.models.subscription import SubscriptionSnapshot
from app.services.reconciliation import reconcile

logger = logging.getLogger(__name__)


class ReminderScheduler(Protocol):
    async def schedule(self, title: str, body: str, fire_at: datetime) -> Optional[str]:
        ...

    async def cancel(self, handle: Optional[str]) -> None:
        ...


class SubscriptionStore(Protocol):
    async def create(self, snapshot: SubscriptionSnapshot) -> SubscriptionSnapshot:
        ...

    async def update(self, snapshot: SubscriptionSnapshot) -> SubscriptionSnapshot:
        ...

    async def delete(self, snapshot: SubscriptionSnapshot) -> None:
        ...


@dataclass(frozen=True)
class ResyncResult:
    subscription: SubscriptionSnapshot
    changed: bool


def reminder_fire_time(next_payment_date: datetime, reminder_days_before: Optional[int]) -> datetime:
    days = 1 if reminder_days_before is None else reminder_days_before
    return next_payment_date - timedelta(days=days)


def reminder_message(subscription: SubscriptionSnapshot) -> Tuple[str, str]:
    title = f"{subscription.name} renewal soon"
    body = (
        f"Your {subscription.name} subscription will renew at "
        f"{subscription.currency} {subscription.price:.2f}"
    )
    return title, body


class ReminderCoordinator:
    def __init__(
        self,
        notifications: ReminderScheduler,
        store: SubscriptionStore,
        clock: Clock | None = None,
    ):
        self.notifications = notifications
        self.store = store
        self.clock = clock or SystemClock()

    async def resync(
        self, subscription: SubscriptionSnapshot, now: datetime | None = None
    ) -> ResyncResult:
        """Roll a stale next-payment date forward and re-arm its reminder."""
        now = now or self.clock.now()
        corrected = reconcile(
            subscription.start_date,
            subscription.billing_cycle,
            subscription.next_payment_date,
            now,
        )
        if corrected == subscription.next_payment_date:
            return ResyncResult(subscription=subscription, changed=False)

        logger.info(
            "Rolling subscription %s forward from %s to %s",
            subscription.id,
            subscription.next_payment_date.isoformat(),
            corrected.isoformat(),
        )
        updated = await self.replace_reminder(subscription, corrected)
        return ResyncResult(subscription=updated, changed=True)

    async def replace_reminder(
        self, subscription: SubscriptionSnapshot, next_payment_date: datetime
    ) -> SubscriptionSnapshot:
        await self._cancel_quietly(subscription.notification_id)

        new_handle = await self._schedule_for(subscription, next_payment_date)
        candidate = replace(
            subscription,
            next_payment_date=next_payment_date,
            notification_id=new_handle,
        )
        return await self._commit(self.store.update, candidate, new_handle)

    async def attach_initial(self, subscription: SubscriptionSnapshot) -> SubscriptionSnapshot:
        """Schedule the first reminder for a new subscription and insert the record."""
        new_handle = await self._schedule_for(subscription, subscription.next_payment_date)
        candidate = replace(subscription, notification_id=new_handle)
        return await self._commit(self.store.create, candidate, new_handle)

    async def release(self, subscription: SubscriptionSnapshot) -> None:
        """Cancel the outstanding reminder, then delete the record."""
        await self._cancel_quietly(subscription.notification_id)
        await self.store.delete(subscription)

    async def _schedule_for(
        self, subscription: SubscriptionSnapshot, next_payment_date: datetime
    ) -> Optional[str]:
        title, body = reminder_message(subscription)
        fire_at = reminder_fire_time(next_payment_date, subscription.reminder_days_before)
        return await self.notifications.schedule(title, body, fire_at)

    async def _commit(self, write, candidate: SubscriptionSnapshot, new_handle: Optional[str]):
        try:
            return await write(candidate)
        except PersistenceFailure:
            if new_handle is not None:
                logger.warning(
                    "Persisting subscription %s failed; cancelling reminder %s",
                    candidate.id,
                    new_handle,
                )
                await self._cancel_quietly(new_handle)
            raise

    async def _cancel_quietly(self, handle: Optional[str]) -> None:
        if not handle:
            return
        try:
            await self.notifications.cancel(handle)
        except Exception as exc:
            logger.warning("Ignoring failure cancelling reminder %s: %s", handle, exc)
