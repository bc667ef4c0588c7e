"""
Analytics API Routes
Spending totals and breakdowns over the caller's subscriptions.
"""
from __future__ import annotations

from fastapi import APIRouter, Depends

from app.api.routes.subscriptions import get_subscription_service
from app.schemas.analytics import AnalyticsSummary
from app.services.analytics_service import AnalyticsService
from app.services.subscription_service import SubscriptionService

router = APIRouter()


@router.get("/summary", response_model=AnalyticsSummary)
async def analytics_summary(
    service: SubscriptionService = Depends(get_subscription_service),
) -> AnalyticsSummary:
    """Monthly spend, category split and upcoming payments"""
    subscriptions = await service.list_subscriptions()
    summary = AnalyticsService(subscriptions, service.clock.now()).summary()
    return AnalyticsSummary(**summary)
