from __future__ import annotations

import logging
from typing import List

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from app.core.clock import ensure_utc
from app.core.exceptions import NotFoundError, PersistenceFailure
from app.models import Subscription
from app.models.subscription import SubscriptionSnapshot

logger = logging.getLogger(__name__)


class SubscriptionRepository:
    """Per-user subscription storage; every write is a single-row commit."""

    def __init__(self, db: Session, user_id: str):
        self.db = db
        self.user_id = user_id

    def _row(self, subscription_id: str) -> Subscription | None:
        return (
            self.db.query(Subscription)
            .filter(Subscription.id == subscription_id, Subscription.user_id == self.user_id)
            .first()
        )

    async def list(self) -> List[SubscriptionSnapshot]:
        rows = (
            self.db.query(Subscription)
            .filter(Subscription.user_id == self.user_id)
            .order_by(Subscription.created_at.desc())
            .all()
        )
        return [SubscriptionSnapshot.from_orm(row) for row in rows]

    async def get(self, subscription_id: str) -> SubscriptionSnapshot:
        row = self._row(subscription_id)
        if row is None:
            raise NotFoundError(f"Subscription {subscription_id} not found")
        return SubscriptionSnapshot.from_orm(row)

    async def create(self, snapshot: SubscriptionSnapshot) -> SubscriptionSnapshot:
        row = Subscription(id=snapshot.id, user_id=self.user_id)
        self._apply(row, snapshot)
        try:
            self.db.add(row)
            self.db.commit()
            self.db.refresh(row)
        except SQLAlchemyError as exc:
            self.db.rollback()
            logger.error("Failed to insert subscription %s: %s", snapshot.id, exc)
            raise PersistenceFailure(f"Could not save subscription {snapshot.id}") from exc
        return SubscriptionSnapshot.from_orm(row)

    async def update(self, snapshot: SubscriptionSnapshot) -> SubscriptionSnapshot:
        try:
            row = self._row(snapshot.id)
            if row is None:
                raise PersistenceFailure(f"Subscription {snapshot.id} no longer exists")
            self._apply(row, snapshot)
            self.db.commit()
            self.db.refresh(row)
        except SQLAlchemyError as exc:
            self.db.rollback()
            logger.error("Failed to update subscription %s: %s", snapshot.id, exc)
            raise PersistenceFailure(f"Could not update subscription {snapshot.id}") from exc
        return SubscriptionSnapshot.from_orm(row)

    async def delete(self, snapshot: SubscriptionSnapshot) -> None:
        try:
            row = self._row(snapshot.id)
            if row is None:
                return
            self.db.delete(row)
            self.db.commit()
        except SQLAlchemyError as exc:
            self.db.rollback()
            raise PersistenceFailure(f"Could not delete subscription {snapshot.id}") from exc

    @staticmethod
    def _apply(row: Subscription, snapshot: SubscriptionSnapshot) -> None:
        row.name = snapshot.name
        row.icon_key = snapshot.icon_key
        row.category = snapshot.category
        row.price = snapshot.price
        row.currency = snapshot.currency
        row.billing_cycle = snapshot.billing_cycle
        row.start_date = ensure_utc(snapshot.start_date)
        row.next_payment_date = ensure_utc(snapshot.next_payment_date)
        row.notes = snapshot.notes
        row.reminder_days_before = snapshot.reminder_days_before
        row.notification_id = snapshot.notification_id
