"""
Subscriptions API Routes
Listing runs the reconciliation pass so stale payment dates are rolled forward
before they reach the client.
"""
from __future__ import annotations

from typing import List

from fastapi import APIRouter, Depends, HTTPException, Query, Response, status
from sqlalchemy.orm import Session

from app.api.dependencies import get_clock
from app.core.clock import Clock
from app.core.exceptions import NotFoundError
from app.core.security import get_current_user
from app.database import get_db
from app.models import User
from app.models.subscription import SubscriptionSnapshot
from app.schemas.subscription import SortOption, SubscriptionIn, SubscriptionOut
from app.services.billing_cycle import days_until
from app.services.subscription_service import SubscriptionService

router = APIRouter()


def get_subscription_service(
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user),
    clock: Clock = Depends(get_clock),
) -> SubscriptionService:
    return SubscriptionService(db, user, clock=clock)


def _out(snapshot: SubscriptionSnapshot, service: SubscriptionService) -> SubscriptionOut:
    return SubscriptionOut.from_snapshot(
        snapshot, days_until(snapshot.next_payment_date, service.clock.now())
    )


@router.get("/", response_model=List[SubscriptionOut])
async def list_subscriptions(
    sort_by: SortOption = Query(default="next_payment"),
    service: SubscriptionService = Depends(get_subscription_service),
) -> List[SubscriptionOut]:
    subscriptions = await service.list_subscriptions(sort_by=sort_by)
    return [_out(s, service) for s in subscriptions]


@router.post("/", response_model=SubscriptionOut, status_code=status.HTTP_201_CREATED)
async def create_subscription(
    payload: SubscriptionIn,
    service: SubscriptionService = Depends(get_subscription_service),
) -> SubscriptionOut:
    created = await service.create_subscription(payload)
    return _out(created, service)


@router.get("/{subscription_id}", response_model=SubscriptionOut)
async def get_subscription(
    subscription_id: str,
    service: SubscriptionService = Depends(get_subscription_service),
) -> SubscriptionOut:
    try:
        subscription = await service.get_subscription(subscription_id)
    except NotFoundError:
        raise HTTPException(status_code=404, detail="Subscription not found")
    return _out(subscription, service)


@router.put("/{subscription_id}", response_model=SubscriptionOut)
async def update_subscription(
    subscription_id: str,
    payload: SubscriptionIn,
    service: SubscriptionService = Depends(get_subscription_service),
) -> SubscriptionOut:
    try:
        updated = await service.update_subscription(subscription_id, payload)
    except NotFoundError:
        raise HTTPException(status_code=404, detail="Subscription not found")
    return _out(updated, service)


@router.delete("/{subscription_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_subscription(
    subscription_id: str,
    service: SubscriptionService = Depends(get_subscription_service),
) -> Response:
    try:
        await service.delete_subscription(subscription_id)
    except NotFoundError:
        raise HTTPException(status_code=404, detail="Subscription not found")
    return Response(status_code=status.HTTP_204_NO_CONTENT)
