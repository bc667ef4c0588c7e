from __future__ import annotations

from datetime import datetime
from typing import Literal, Optional

from pydantic import BaseModel, Field, field_validator

from app.models.subscription import SubscriptionSnapshot
from app.services.billing_cycle import BillingCycle

SortOption = Literal["price", "next_payment", "start_date"]


class SubscriptionIn(BaseModel):
    name: str = Field(..., min_length=1)
    icon_key: Optional[str] = None
    category: Optional[str] = None
    price: float = Field(default=0, ge=0)
    currency: Optional[str] = None
    billing_cycle: BillingCycle = BillingCycle.MONTHLY
    start_date: Optional[datetime] = None
    notes: Optional[str] = None
    reminder_days_before: Optional[int] = Field(default=None, ge=0, le=365)

    @field_validator("name")
    @classmethod
    def strip_name(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("name must not be blank")
        return value


class SubscriptionOut(BaseModel):
    id: str
    name: str
    icon_key: str
    category: str
    price: float
    currency: str
    billing_cycle: str
    start_date: datetime
    next_payment_date: datetime
    notes: str
    reminder_days_before: int
    notification_id: Optional[str] = None
    days_until_payment: int

    @classmethod
    def from_snapshot(cls, snapshot: SubscriptionSnapshot, days_until_payment: int) -> "SubscriptionOut":
        return cls(
            id=snapshot.id,
            name=snapshot.name,
            icon_key=snapshot.icon_key,
            category=snapshot.category,
            price=snapshot.price,
            currency=snapshot.currency,
            billing_cycle=snapshot.billing_cycle,
            start_date=snapshot.start_date,
            next_payment_date=snapshot.next_payment_date,
            notes=snapshot.notes,
            reminder_days_before=snapshot.reminder_days_before,
            notification_id=snapshot.notification_id,
            days_until_payment=days_until_payment,
        )
