"""
Roll every user's stale next-payment dates forward and re-arm their reminders.

Usage:
  python scripts/resync_all_subscriptions.py
  python scripts/resync_all_subscriptions.py --as-of 2025-06-01T00:00:00Z
"""
from __future__ import annotations

import argparse
import asyncio
from datetime import datetime

from app.core.clock import Clock, FixedClock, SystemClock
from app.database import SessionLocal, init_db
from app.models import User
from app.services.resync_pass import ResyncFailed, resync_each
from app.services.subscription_service import SubscriptionService


async def resync_users(clock: Clock) -> tuple[int, int]:
    changed = failed = 0
    now = clock.now()
    db = SessionLocal()
    try:
        for user in db.query(User).all():
            service = SubscriptionService(db, user, clock=clock)
            subscriptions = await service.repository.list()
            for outcome in await resync_each(service.coordinator, subscriptions, now):
                if isinstance(outcome, ResyncFailed):
                    failed += 1
                elif outcome.changed:
                    changed += 1
    finally:
        db.close()
    return changed, failed


def parse_args() -> argparse.Namespace:
    parser = argparse.ArgumentParser(description=__doc__.strip().splitlines()[0])
    parser.add_argument(
        "--as-of",
        type=lambda value: datetime.fromisoformat(value.replace("Z", "+00:00")),
        help="Resync as if the current time were this ISO-8601 instant (naive means UTC)",
    )
    return parser.parse_args()


def main() -> None:
    args = parse_args()
    clock = FixedClock(args.as_of) if args.as_of else SystemClock()
    init_db()
    changed, failed = asyncio.run(resync_users(clock))
    print(f"resync changed={changed} failed={failed}")


if __name__ == "__main__":
    main()
