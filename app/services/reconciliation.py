from __future__ import annotations

from datetime import datetime

from app.services.billing_cycle import BillingCycle, advance, parse_cycle


def reconcile(
    start_date: datetime,
    cycle: BillingCycle | str,
    stored_next_payment: datetime,
    now: datetime,
) -> datetime:
    """
    Roll a stale next-payment date forward to the first occurrence at or after ``now``.

    A date that is already current is returned as-is. Custom cycles carry no
    period, so rollover falls back to monthly steps for them.
    """
    kind = parse_cycle(cycle)
    if stored_next_payment >= now:
        return stored_next_payment

    step = BillingCycle.MONTHLY if kind is BillingCycle.CUSTOM else kind
    candidate = stored_next_payment
    while candidate < now:
        candidate = advance(candidate, step)
    return candidate
