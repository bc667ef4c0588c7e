from __future__ import annotations

from datetime import datetime, timezone

import pytest

from app.services.analytics_service import PALETTE, AnalyticsService

UTC = timezone.utc
NOW = datetime(2025, 3, 10, tzinfo=UTC)


@pytest.fixture
def subscriptions(make_snapshot):
    return [
        make_snapshot(id='n', name='Netflix', price=15.0, category='Streaming',
                      next_payment_date=datetime(2025, 3, 20, tzinfo=UTC)),
        make_snapshot(id='s', name='Spotify', price=120.0, billing_cycle='yearly', category='Music',
                      next_payment_date=datetime(2025, 3, 12, tzinfo=UTC)),
        make_snapshot(id='g', name='Gym', price=6.0, billing_cycle='weekly', category='Health',
                      next_payment_date=datetime(2025, 3, 14, tzinfo=UTC)),
        make_snapshot(id='d', name='Disney', price=5.0, category='Streaming',
                      next_payment_date=datetime(2025, 4, 1, tzinfo=UTC)),
        make_snapshot(id='f', name='Free tier', price=0.0, category='Other',
                      next_payment_date=datetime(2025, 3, 11, tzinfo=UTC)),
    ]


def test_summary_totals(subscriptions):
    summary = AnalyticsService(subscriptions, NOW).summary()
    # 15 + 10 + 26 + 5
    assert summary['total_monthly'] == pytest.approx(56.0)
    assert summary['total_yearly'] == pytest.approx(672.0)
    assert summary['average_monthly'] == pytest.approx(14.0)
    assert summary['subscription_count'] == 4
    assert summary['primary_currency'] == 'USD'


def test_zero_cost_entries_are_dropped_and_sorted(subscriptions):
    entries = AnalyticsService(subscriptions, NOW).monthly_entries()
    assert [e['name'] for e in entries] == ['Gym', 'Netflix', 'Spotify', 'Disney']


def test_highest_and_segments(subscriptions):
    summary = AnalyticsService(subscriptions, NOW).summary()
    assert summary['highest']['name'] == 'Gym'
    segments = summary['segments']
    assert [s['color'] for s in segments] == PALETTE[:4]
    assert sum(s['percentage'] for s in segments) == pytest.approx(100.0, abs=0.05)


def test_category_breakdown(subscriptions):
    categories = AnalyticsService(subscriptions, NOW).summary()['categories']
    assert categories[0]['category'] == 'Health'
    streaming = next(c for c in categories if c['category'] == 'Streaming')
    assert streaming['monthly_value'] == pytest.approx(20.0)
    assert 'Other' not in {c['category'] for c in categories}


def test_upcoming_is_ordered_by_next_payment(subscriptions):
    upcoming = AnalyticsService(subscriptions, NOW).upcoming(limit=3)
    assert [u['name'] for u in upcoming] == ['Free tier', 'Spotify', 'Gym']
    assert upcoming[0]['days_until'] == 1


def test_empty_summary():
    summary = AnalyticsService([], NOW).summary()
    assert summary['total_monthly'] == 0
    assert summary['highest'] is None
    assert summary['segments'] == []
    assert summary['categories'] == []


def test_free_subscriptions_are_not_counted(make_snapshot):
    subscriptions = [
        make_snapshot(id='free', price=0.0),
        make_snapshot(id='paid', price=5.0),
    ]
    assert AnalyticsService(subscriptions, NOW).summary()['subscription_count'] == 1
