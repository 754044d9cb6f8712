"""Assignment lifecycle: creation, edits, status changes."""
from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional
from uuid import UUID

from sqlalchemy.orm import Session

from studyplanner.core.clock import Clock
from studyplanner.db.models.assignment import Assignment
from studyplanner.db.stores import AssignmentStore
from studyplanner.services.priority import derive_priority
from studyplanner.services.schedule_types import AssignmentRef
from studyplanner.services.user_service import (
    get_or_create_user,
    record_assignment_completed,
    record_assignment_reopened,
)

logger = logging.getLogger(__name__)

ASSIGNMENT_STATUSES = ("pending", "in-progress", "completed")
EDITABLE_FIELDS = ("title", "subject", "description", "topics", "due_date", "estimated_hours", "difficulty")


def _utc(value: datetime) -> datetime:
    return value.astimezone(timezone.utc) if value.tzinfo else value.replace(tzinfo=timezone.utc)


def to_assignment_ref(assignment: Assignment) -> AssignmentRef:
    return AssignmentRef(
        id=str(assignment.id),
        title=assignment.title,
        subject=assignment.subject,
        due_date=_utc(assignment.due_date),
        estimated_hours=assignment.estimated_hours or 2,
        topics=list(assignment.topics or []),
        priority=assignment.priority,
    )


def create_assignment(db: Session, user_id: UUID, data: Dict[str, Any], clock: Clock) -> Assignment:
    get_or_create_user(db, user_id)
    due_date = _utc(data["due_date"])
    assignment = Assignment(
        user_id=user_id,
        title=data["title"],
        subject=data["subject"],
        description=data.get("description") or "",
        topics=list(data.get("topics") or []),
        due_date=due_date,
        estimated_hours=data.get("estimated_hours") or 2,
        actual_hours=0,
        status="pending",
        priority=derive_priority(due_date, clock.now()).value,
        difficulty=data.get("difficulty") or "medium",
        completion_notes="",
    )
    AssignmentStore(db).add(assignment)
    logger.info("Assignment %s created with priority %s", assignment.id, assignment.priority)
    return assignment


def update_assignment(db: Session, assignment: Assignment, updates: Dict[str, Any], clock: Clock) -> List[str]:
    """Apply a partial update; priority follows the due date. Returns the changed field names."""
    changed: List[str] = []
    for name in EDITABLE_FIELDS:
        if name not in updates or updates[name] is None:
            continue
        value = updates[name]
        if name == "due_date":
            value = _utc(value)
        elif name == "topics":
            value = list(value)
        setattr(assignment, name, value)
        changed.append(name)

    if "due_date" in changed:
        assignment.priority = derive_priority(assignment.due_date, clock.now()).value
        changed.append("priority")

    db.add(assignment)
    return changed


def update_assignment_status(
    db: Session,
    assignment: Assignment,
    *,
    status: str,
    clock: Clock,
    actual_hours: Optional[float] = None,
    completion_notes: Optional[str] = None,
) -> Assignment:
    if status not in ASSIGNMENT_STATUSES:
        raise ValueError(f"Unknown assignment status {status!r}")

    was_completed = assignment.status == "completed"
    if was_completed and status != "completed":
        # Stats only ever reflect assignments that are currently completed.
        record_assignment_reopened(db, assignment.user_id, assignment.actual_hours or 0)

    assignment.status = status
    if status == "completed":
        if not was_completed:
            assignment.completed_at = clock.now()
        if actual_hours:
            assignment.actual_hours = actual_hours
        if completion_notes:
            assignment.completion_notes = completion_notes
    else:
        assignment.completed_at = None

    if status == "completed" and not was_completed:
        record_assignment_completed(db, assignment.user_id, assignment.actual_hours or 0)
    db.add(assignment)
    return assignment
