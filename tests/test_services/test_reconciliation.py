from __future__ import annotations

from datetime import datetime, timedelta, timezone

import pytest

from app.core.exceptions import InvalidCycleKind
from app.services.reconciliation import reconcile

UTC = timezone.utc


def test_current_date_is_left_alone():
    stored = datetime(2024, 7, 1, tzinfo=UTC)
    now = datetime(2024, 6, 15, tzinfo=UTC)
    assert reconcile(datetime(2024, 1, 1, tzinfo=UTC), "monthly", stored, now) is stored


def test_date_equal_to_now_is_not_stale():
    now = datetime(2024, 6, 15, tzinfo=UTC)
    assert reconcile(datetime(2024, 1, 1, tzinfo=UTC), "weekly", now, now) == now


def test_rolls_forward_across_several_months():
    start = datetime(2024, 1, 1, tzinfo=UTC)
    now = datetime(2024, 6, 15, tzinfo=UTC)
    assert reconcile(start, "monthly", start, now) == datetime(2024, 7, 1, tzinfo=UTC)


def test_yearly_rollover_from_leap_day():
    stored = datetime(2020, 2, 29, tzinfo=UTC)
    now = datetime(2023, 6, 1, tzinfo=UTC)
    assert reconcile(stored, "yearly", stored, now) == datetime(2024, 2, 28, tzinfo=UTC)


def test_custom_cycle_falls_back_to_monthly_steps():
    stored = datetime(2024, 1, 15, tzinfo=UTC)
    now = datetime(2024, 3, 1, tzinfo=UTC)
    assert reconcile(stored, "custom", stored, now) == datetime(2024, 3, 15, tzinfo=UTC)


def test_long_weekly_gap_terminates_within_one_period():
    stored = datetime(2000, 1, 1, tzinfo=UTC)
    now = datetime(2025, 10, 18, 8, 45, tzinfo=UTC)
    result = reconcile(stored, "weekly", stored, now)
    assert now <= result < now + timedelta(days=7)
    assert (result - stored).days % 7 == 0


@pytest.mark.parametrize("cycle", ["weekly", "monthly", "yearly", "custom"])
def test_result_is_monotonic_and_idempotent(cycle):
    stored = datetime(2023, 1, 31, tzinfo=UTC)
    now = datetime(2024, 11, 2, 17, tzinfo=UTC)
    first = reconcile(stored, cycle, stored, now)
    assert first >= now
    assert first >= stored
    assert reconcile(stored, cycle, first, now) == first


def test_invalid_cycle_raises_even_when_not_stale():
    now = datetime(2024, 1, 1, tzinfo=UTC)
    with pytest.raises(InvalidCycleKind):
        reconcile(now, "daily", now + timedelta(days=1), now)
