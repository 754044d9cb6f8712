"""Deadline-based priority tiers for assignments."""
from __future__ import annotations

import math
from datetime import datetime, timedelta, timezone
from typing import Iterable, List

from studyplanner.services.schedule_types import PRIORITY_RANK, AssignmentRef, PriorityTier

_DAY = timedelta(days=1)
_HOUR = timedelta(hours=1)


def _aware(value: datetime) -> datetime:
    # SQLite hands back naive datetimes; everything is stored in UTC.
    return value if value.tzinfo else value.replace(tzinfo=timezone.utc)


def days_remaining(due: datetime, now: datetime) -> int:
    return math.ceil((_aware(due) - _aware(now)) / _DAY)


def hours_remaining(due: datetime, now: datetime) -> int:
    return math.ceil((_aware(due) - _aware(now)) / _HOUR)


def derive_priority(due: datetime, now: datetime) -> PriorityTier:
    """
    Map the distance to a due date onto a priority tier.

    First match wins: overdue -> urgent, <= 3 days -> high, <= 7 days -> medium, else low.
    """
    remaining = days_remaining(due, now)
    if remaining < 0:
        return PriorityTier.urgent
    if remaining <= 3:
        return PriorityTier.high
    if remaining <= 7:
        return PriorityTier.medium
    return PriorityTier.low


def order_by_priority(assignments: Iterable[AssignmentRef]) -> List[AssignmentRef]:
    """Urgent first, then by due date; stable for equal keys."""
    return sorted(
        assignments,
        key=lambda item: (PRIORITY_RANK[PriorityTier(item.priority)], _aware(item.due_date)),
    )
