"""Adherence scoring over a plan's sessions."""
from __future__ import annotations

import math
from datetime import datetime
from typing import List, Optional, Tuple

from studyplanner.core.errors import SessionNotFound
from studyplanner.services.schedule_types import DaySchedule, StudySession

MAX_NOTE_LENGTH = 500

UNSET = object()


def count_sessions(schedule: List[DaySchedule]) -> Tuple[int, int]:
    """Return (completed, total) across every day."""
    total = 0
    completed = 0
    for day in schedule:
        total += len(day.sessions)
        completed += sum(1 for session in day.sessions if session.completed)
    return completed, total


def score_schedule(schedule: List[DaySchedule]) -> int:
    """Percent of sessions marked complete, rounded half up; 0 for an empty schedule."""
    completed, total = count_sessions(schedule)
    if total == 0:
        return 0
    return math.floor(100 * completed / total + 0.5)


def normalize_note(note: Optional[str]) -> Optional[str]:
    """Trim a note; blank clears it. Raises ValueError when it is too long."""
    if note is None:
        return None
    trimmed = note.strip()
    if len(trimmed) > MAX_NOTE_LENGTH:
        raise ValueError(f"Note must be {MAX_NOTE_LENGTH} characters or less")
    return trimmed or None


def apply_session_update(
    schedule: List[DaySchedule],
    session_id: str,
    *,
    now: datetime,
    completed: Optional[bool] = None,
    note: object = UNSET,
) -> Tuple[List[DaySchedule], StudySession]:
    """
    Return a copy of the schedule with one session's completion flag and/or note changed.

    `completed_at` is stamped with `now` when a session becomes complete and cleared when it
    is reopened. Pass `note=None` to clear a note; omit it to leave the note alone.
    """
    updated = [day.model_copy(deep=True) for day in schedule]
    for day in updated:
        for session in day.sessions:
            if session.id != session_id:
                continue
            if completed is not None and completed != session.completed:
                session.completed = completed
                session.completed_at = now if completed else None
            if note is not UNSET:
                session.note = normalize_note(note)  # type: ignore[arg-type]
            return updated, session
    raise SessionNotFound(f"Session {session_id} not found")
