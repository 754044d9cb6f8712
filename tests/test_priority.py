"""Tests for deadline-derived priority tiers."""
from __future__ import annotations

from datetime import datetime, timedelta, timezone

import pytest

from studyplanner.services.priority import days_remaining, derive_priority, hours_remaining, order_by_priority
from studyplanner.services.schedule_types import AssignmentRef, PriorityTier

NOW = datetime(2026, 1, 8, 12, 0, tzinfo=timezone.utc)


@pytest.mark.parametrize(
    "offset_days, expected",
    [
        (-1, PriorityTier.urgent),
        (0, PriorityTier.high),
        (3, PriorityTier.high),
        (4, PriorityTier.medium),
        (7, PriorityTier.medium),
        (8, PriorityTier.low),
    ],
)
def test_tier_boundaries(offset_days: int, expected: PriorityTier) -> None:
    assert derive_priority(NOW + timedelta(days=offset_days), NOW) == expected


def test_partial_days_round_up() -> None:
    assert days_remaining(NOW + timedelta(days=2, hours=1), NOW) == 3
    assert derive_priority(NOW + timedelta(days=3, hours=1), NOW) == PriorityTier.medium
    # Half a day overdue still ceilings to zero days remaining.
    assert derive_priority(NOW - timedelta(hours=12), NOW) == PriorityTier.high


def test_naive_due_dates_are_treated_as_utc() -> None:
    naive_due = datetime(2026, 1, 9, 12, 0)

    assert days_remaining(naive_due, NOW) == 1
    assert hours_remaining(naive_due, NOW) == 24


def _ref(title: str, due: datetime, tier: PriorityTier) -> AssignmentRef:
    return AssignmentRef(title=title, subject="Math", due_date=due, estimated_hours=2, priority=tier)


def test_order_by_priority_puts_urgent_first_then_due_date() -> None:
    items = [
        _ref("later", NOW + timedelta(days=20), PriorityTier.low),
        _ref("soon", NOW + timedelta(days=2), PriorityTier.high),
        _ref("sooner", NOW + timedelta(days=1), PriorityTier.high),
        _ref("overdue", NOW - timedelta(days=1), PriorityTier.urgent),
    ]

    ordered = [item.title for item in order_by_priority(items)]

    assert ordered == ["overdue", "sooner", "soon", "later"]
