"""
Billing cycle arithmetic.

All functions here are pure: they take timezone-aware instants and return
new ones without touching the database or the notification layer.
"""
from __future__ import annotations

import math
from datetime import datetime, timedelta
from enum import Enum

from dateutil.relativedelta import relativedelta

from app.core.exceptions import InvalidCycleKind


class BillingCycle(str, Enum):
    WEEKLY = "weekly"
    MONTHLY = "monthly"
    YEARLY = "yearly"
    CUSTOM = "custom"


def parse_cycle(cycle: BillingCycle | str) -> BillingCycle:
    if isinstance(cycle, BillingCycle):
        return cycle
    try:
        return BillingCycle(cycle)
    except ValueError:
        raise InvalidCycleKind(cycle) from None


def advance(anchor: datetime, cycle: BillingCycle | str) -> datetime:
    """
    Move ``anchor`` forward by one billing period.

    Monthly and yearly steps clamp to the last valid day of the target month
    (Jan 31 -> Feb 29/28, Feb 29 -> Feb 28). ``custom`` has no known period
    and returns ``anchor`` unchanged.
    """
    kind = parse_cycle(cycle)
    if kind is BillingCycle.WEEKLY:
        return anchor + timedelta(days=7)
    if kind is BillingCycle.MONTHLY:
        return anchor + relativedelta(months=1)
    if kind is BillingCycle.YEARLY:
        return anchor + relativedelta(years=1)
    return anchor


def calculate_next_payment(start_date: datetime, cycle: BillingCycle | str) -> datetime:
    """First payment date after ``start_date`` for a newly added subscription."""
    return advance(start_date, cycle)


def days_until(target: datetime, now: datetime) -> int:
    diff = (target - now).total_seconds()
    return max(math.ceil(diff / 86400), 0)


def monthly_cost(price: float, cycle: BillingCycle | str) -> float:
    """Normalise a recurring price to its monthly equivalent."""
    kind = parse_cycle(cycle)
    if kind is BillingCycle.WEEKLY:
        return price * 52 / 12
    if kind is BillingCycle.YEARLY:
        return price / 12
    return price
