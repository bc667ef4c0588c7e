from __future__ import annotations

import logging
import uuid
from dataclasses import replace
from typing import List

from sqlalchemy.orm import Session

from app.config import settings
from app.core.clock import Clock, SystemClock, ensure_utc
from app.models import User
from app.models.subscription import SubscriptionSnapshot
from app.schemas.subscription import SortOption, SubscriptionIn
from app.services.billing_cycle import BillingCycle, calculate_next_payment
from app.services.notification_service import NotificationService
from app.services.reconciliation import reconcile
from app.services.reminder_coordinator import ReminderCoordinator, ReminderScheduler
from app.services.resync_pass import resync_all
from app.services.subscription_repository import SubscriptionRepository

logger = logging.getLogger(__name__)

KNOWN_ICON_KEYS = {
    "netflix",
    "spotify",
    "icloud",
    "disney",
    "prime",
    "youtube",
    "chatgpt",
    "kindle",
    "googleone",
    "x",
}


def icon_key_for_name(name: str) -> str:
    key = name.strip().lower()
    return key if key in KNOWN_ICON_KEYS else "default"


def sort_subscriptions(
    subscriptions: List[SubscriptionSnapshot], sort_by: SortOption
) -> List[SubscriptionSnapshot]:
    if sort_by == "price":
        return sorted(subscriptions, key=lambda s: s.price, reverse=True)
    if sort_by == "start_date":
        return sorted(subscriptions, key=lambda s: s.start_date)
    return sorted(subscriptions, key=lambda s: s.next_payment_date)


class SubscriptionService:
    """Create, edit, list and delete a user's subscriptions with their reminders."""

    def __init__(
        self,
        db: Session,
        user: User,
        clock: Clock | None = None,
        notifications: ReminderScheduler | None = None,
    ):
        self.clock = clock or SystemClock()
        self.repository = SubscriptionRepository(db, user.id)
        self.notifications = notifications or NotificationService(db, user, self.clock)
        self.coordinator = ReminderCoordinator(self.notifications, self.repository, self.clock)
        self.user_id = user.id

    async def list_subscriptions(self, sort_by: SortOption = "next_payment") -> List[SubscriptionSnapshot]:
        subscriptions = await self.repository.list()
        subscriptions = await resync_all(self.coordinator, subscriptions, self.clock.now())
        return sort_subscriptions(subscriptions, sort_by)

    async def get_subscription(self, subscription_id: str) -> SubscriptionSnapshot:
        return await self.repository.get(subscription_id)

    async def create_subscription(self, payload: SubscriptionIn) -> SubscriptionSnapshot:
        now = self.clock.now()
        start = ensure_utc(payload.start_date) if payload.start_date else now
        snapshot = SubscriptionSnapshot(
            id=str(uuid.uuid4()),
            user_id=self.user_id,
            name=payload.name,
            billing_cycle=payload.billing_cycle.value,
            start_date=start,
            next_payment_date=self._first_payment(start, payload.billing_cycle),
            price=payload.price,
            currency=payload.currency or "USD",
            category=payload.category or "Other",
            icon_key=payload.icon_key or icon_key_for_name(payload.name),
            notes=payload.notes or "",
            reminder_days_before=self._reminder_days(payload.reminder_days_before),
        )
        created = await self.coordinator.attach_initial(snapshot)
        logger.info("Created subscription %s for user %s", created.id, self.user_id)
        return created

    async def update_subscription(
        self, subscription_id: str, payload: SubscriptionIn
    ) -> SubscriptionSnapshot:
        existing = await self.repository.get(subscription_id)
        start = ensure_utc(payload.start_date) if payload.start_date else existing.start_date
        edited = replace(
            existing,
            name=payload.name,
            billing_cycle=payload.billing_cycle.value,
            start_date=start,
            price=payload.price,
            currency=payload.currency or existing.currency,
            category=payload.category or existing.category,
            icon_key=payload.icon_key or icon_key_for_name(payload.name),
            notes=payload.notes if payload.notes is not None else existing.notes,
            reminder_days_before=(
                payload.reminder_days_before
                if payload.reminder_days_before is not None
                else existing.reminder_days_before
            ),
        )
        # Edits may change the cycle, start date or lead time, so always re-arm.
        next_payment = self._first_payment(start, payload.billing_cycle)
        return await self.coordinator.replace_reminder(edited, next_payment)

    async def delete_subscription(self, subscription_id: str) -> None:
        existing = await self.repository.get(subscription_id)
        await self.coordinator.release(existing)
        logger.info("Deleted subscription %s for user %s", subscription_id, self.user_id)

    def _first_payment(self, start, cycle: BillingCycle):
        return reconcile(start, cycle, calculate_next_payment(start, cycle), self.clock.now())

    @staticmethod
    def _reminder_days(value: int | None) -> int:
        return settings.default_reminder_days if value is None else value
