from __future__ import annotations

from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel


class MonthlyEntry(BaseModel):
    id: str
    name: str
    category: str
    currency: str
    billing_cycle: str
    monthly_value: float


class ChartSegment(BaseModel):
    label: str
    value: float
    color: str
    currency: str
    percentage: float


class CategoryShare(BaseModel):
    category: str
    monthly_value: float
    percentage: float


class UpcomingPayment(BaseModel):
    id: str
    name: str
    next_payment_date: datetime
    days_until: int
    price: float
    currency: str


class AnalyticsSummary(BaseModel):
    primary_currency: str
    total_monthly: float
    total_yearly: float
    average_monthly: float
    subscription_count: int
    highest: Optional[MonthlyEntry] = None
    entries: List[MonthlyEntry]
    segments: List[ChartSegment]
    categories: List[CategoryShare]
    upcoming: List[UpcomingPayment]
