"""Reconciliation over a user's whole subscription list."""
from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime
from typing import List, Sequence, Union

from app.core.exceptions import AppError
from app.models.subscription import SubscriptionSnapshot
from app.services.reminder_coordinator import ReminderCoordinator

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ResyncOk:
    subscription: SubscriptionSnapshot
    changed: bool


@dataclass(frozen=True)
class ResyncFailed:
    subscription: SubscriptionSnapshot
    error: AppError


ResyncOutcome = Union[ResyncOk, ResyncFailed]


async def resync_all(
    coordinator: ReminderCoordinator,
    subscriptions: Sequence[SubscriptionSnapshot],
    now: datetime,
) -> List[SubscriptionSnapshot]:
    """
    Resync every subscription in order. The first failure aborts the pass.

    Unchanged entries are returned as the same objects that were passed in.
    """
    results: List[SubscriptionSnapshot] = []
    changed = 0
    for subscription in subscriptions:
        outcome = await coordinator.resync(subscription, now)
        if outcome.changed:
            changed += 1
            results.append(outcome.subscription)
        else:
            results.append(subscription)
    if changed:
        logger.info("Resync pass updated %s of %s subscriptions", changed, len(results))
    return results


async def resync_each(
    coordinator: ReminderCoordinator,
    subscriptions: Sequence[SubscriptionSnapshot],
    now: datetime,
) -> List[ResyncOutcome]:
    """Like resync_all, but a failing subscription yields ResyncFailed and the pass continues."""
    outcomes: List[ResyncOutcome] = []
    for subscription in subscriptions:
        try:
            result = await coordinator.resync(subscription, now)
        except AppError as exc:
            logger.error("Resync failed for subscription %s: %s", subscription.id, exc)
            outcomes.append(ResyncFailed(subscription=subscription, error=exc))
            continue
        outcomes.append(ResyncOk(subscription=result.subscription, changed=result.changed))
    return outcomes
