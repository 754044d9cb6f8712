"""Tests for adherence scoring and single-session updates."""
from __future__ import annotations

from datetime import date, datetime, timezone

import pytest

from studyplanner.core.errors import SessionNotFound
from studyplanner.services.adherence import (
    MAX_NOTE_LENGTH,
    apply_session_update,
    count_sessions,
    score_schedule,
)
from studyplanner.services.schedule_types import DaySchedule, StudySession

NOW = datetime(2026, 1, 8, 18, 30, tzinfo=timezone.utc)


def _schedule(completed_flags: list[bool]) -> list[DaySchedule]:
    sessions = [
        StudySession(
            id=f"s{index}",
            start_time="09:00",
            end_time="10:00",
            subject="Math",
            topic="Algebra",
            completed=flag,
        )
        for index, flag in enumerate(completed_flags)
    ]
    return [DaySchedule(date=date(2026, 1, 5), sessions=sessions)]


def test_empty_schedule_scores_zero() -> None:
    assert score_schedule([]) == 0
    assert score_schedule([DaySchedule(date=date(2026, 1, 5))]) == 0


def test_score_rounds_half_up() -> None:
    assert score_schedule(_schedule([True] + [False] * 7)) == 13  # 12.5
    assert score_schedule(_schedule([True, True, False])) == 67
    assert score_schedule(_schedule([True, False, False])) == 33
    assert score_schedule(_schedule([True, True])) == 100


def test_score_is_stable_for_same_schedule() -> None:
    schedule = _schedule([True, False, True, False, False])

    assert score_schedule(schedule) == score_schedule(schedule) == 40
    assert count_sessions(schedule) == (2, 5)


def test_completing_a_session_never_lowers_the_score() -> None:
    schedule = _schedule([False, False, False, False])
    previous = score_schedule(schedule)
    for index in range(4):
        schedule, _ = apply_session_update(schedule, f"s{index}", now=NOW, completed=True)
        current = score_schedule(schedule)
        assert current >= previous
        previous = current
    assert previous == 100


def test_completion_stamps_and_clears_completed_at() -> None:
    original = _schedule([False])

    completed, session = apply_session_update(original, "s0", now=NOW, completed=True)
    assert session.completed is True
    assert session.completed_at == NOW
    assert original[0].sessions[0].completed is False

    reopened, session = apply_session_update(completed, "s0", now=NOW, completed=False)
    assert session.completed is False
    assert session.completed_at is None
    assert score_schedule(reopened) == 0


def test_note_is_trimmed_cleared_and_bounded() -> None:
    schedule, session = apply_session_update(_schedule([False]), "s0", now=NOW, note="  tricky proofs  ")
    assert session.note == "tricky proofs"
    assert session.completed is False

    schedule, session = apply_session_update(schedule, "s0", now=NOW, completed=True)
    assert session.note == "tricky proofs"

    _, session = apply_session_update(schedule, "s0", now=NOW, note="   ")
    assert session.note is None

    with pytest.raises(ValueError):
        apply_session_update(schedule, "s0", now=NOW, note="x" * (MAX_NOTE_LENGTH + 1))


def test_unknown_session_raises() -> None:
    with pytest.raises(SessionNotFound):
        apply_session_update(_schedule([False]), "missing", now=NOW, completed=True)
