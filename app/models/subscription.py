"""Immutable subscription snapshot handled by the billing/reminder core."""
from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Optional

from app.core.clock import ensure_utc


@dataclass(frozen=True)
class SubscriptionSnapshot:
    id: str
    user_id: str
    name: str
    billing_cycle: str
    start_date: datetime
    next_payment_date: datetime
    price: float = 0.0
    currency: str = "USD"
    category: str = "Other"
    icon_key: str = "default"
    notes: str = ""
    reminder_days_before: int = 1
    notification_id: Optional[str] = None

    @classmethod
    def from_orm(cls, row) -> "SubscriptionSnapshot":
        return cls(
            id=row.id,
            user_id=row.user_id,
            name=row.name,
            billing_cycle=row.billing_cycle,
            start_date=ensure_utc(row.start_date),
            next_payment_date=ensure_utc(row.next_payment_date),
            price=float(row.price or 0),
            currency=row.currency or "USD",
            category=row.category or "Other",
            icon_key=row.icon_key or "default",
            notes=row.notes or "",
            reminder_days_before=(
                row.reminder_days_before if row.reminder_days_before is not None else 1
            ),
            notification_id=row.notification_id,
        )
