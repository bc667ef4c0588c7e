from __future__ import annotations

from collections import defaultdict
from datetime import datetime
from typing import Any, Sequence

from app.models.subscription import SubscriptionSnapshot
from app.services.billing_cycle import days_until, monthly_cost

PALETTE = [
    "#FFD338",
    "#111111",
    "#FFE27A",
    "#2D2D2D",
    "#FFF4C1",
    "#4F4F4F",
    "#FFB400",
    "#7A7A7A",
]

UPCOMING_LIMIT = 5


class AnalyticsService:
    def __init__(self, subscriptions: Sequence[SubscriptionSnapshot], now: datetime):
        self.subscriptions = list(subscriptions)
        self.now = now

    def monthly_entries(self) -> list[dict[str, Any]]:
        """Monthly-equivalent cost per subscription, most expensive first."""
        entries = [
            {
                "id": sub.id,
                "name": sub.name,
                "category": sub.category or "Other",
                "currency": sub.currency or "USD",
                "billing_cycle": sub.billing_cycle,
                "monthly_value": monthly_cost(sub.price, sub.billing_cycle),
            }
            for sub in self.subscriptions
        ]
        entries = [e for e in entries if e["monthly_value"] > 0.0001]
        return sorted(entries, key=lambda e: e["monthly_value"], reverse=True)

    def summary(self) -> dict[str, Any]:
        entries = self.monthly_entries()
        total = sum(e["monthly_value"] for e in entries)
        return {
            "primary_currency": entries[0]["currency"] if entries else "USD",
            "total_monthly": round(total, 2),
            "total_yearly": round(total * 12, 2),
            "average_monthly": round(total / len(entries), 2) if entries else 0.0,
            "subscription_count": len(entries),
            "highest": self._rounded(entries[0]) if entries else None,
            "entries": [self._rounded(e) for e in entries],
            "segments": self._segments(entries, total),
            "categories": self._categories(entries, total),
            "upcoming": self.upcoming(),
        }

    def upcoming(self, limit: int = UPCOMING_LIMIT) -> list[dict[str, Any]]:
        ordered = sorted(self.subscriptions, key=lambda s: s.next_payment_date)
        return [
            {
                "id": sub.id,
                "name": sub.name,
                "next_payment_date": sub.next_payment_date,
                "days_until": days_until(sub.next_payment_date, self.now),
                "price": sub.price,
                "currency": sub.currency,
            }
            for sub in ordered[:limit]
        ]

    @staticmethod
    def _segments(entries: list[dict[str, Any]], total: float) -> list[dict[str, Any]]:
        if not entries or total <= 0:
            return []
        return [
            {
                "label": e["name"],
                "value": round(e["monthly_value"], 2),
                "color": PALETTE[index % len(PALETTE)],
                "currency": e["currency"],
                "percentage": round(e["monthly_value"] / total * 100, 2),
            }
            for index, e in enumerate(entries)
        ]

    @staticmethod
    def _categories(entries: list[dict[str, Any]], total: float) -> list[dict[str, Any]]:
        by_category: dict[str, float] = defaultdict(float)
        for e in entries:
            by_category[e["category"]] += e["monthly_value"]
        return [
            {
                "category": category,
                "monthly_value": round(value, 2),
                "percentage": round(value / total * 100, 2) if total else 0.0,
            }
            for category, value in sorted(by_category.items(), key=lambda kv: kv[1], reverse=True)
        ]

    @staticmethod
    def _rounded(entry: dict[str, Any]) -> dict[str, Any]:
        return {**entry, "monthly_value": round(entry["monthly_value"], 2)}
