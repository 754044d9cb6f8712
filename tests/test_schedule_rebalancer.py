"""Tests for rebalancing a schedule after missed sessions."""
from __future__ import annotations

import json
from datetime import date, datetime, timezone

from studyplanner.core.clock import FixedClock
from studyplanner.core.errors import OracleFailure
from studyplanner.services.schedule_rebalancer import ScheduleRebalancer, find_missed_sessions
from studyplanner.services.schedule_synthesizer import ScheduleSynthesizer
from studyplanner.services.schedule_types import DaySchedule, PlanningRequest, StudySession

PLAN_START = date(2026, 1, 5)
PLAN_END = date(2026, 1, 9)


class StubOracle:
    model_name = "stub-model"

    def __init__(self, reply):
        self.reply = reply
        self.prompts: list[str] = []

    def generate(self, request) -> str:
        self.prompts.append(request.prompt)
        if isinstance(self.reply, Exception):
            raise self.reply
        return self.reply


def _session(session_id: str, completed: bool = False) -> StudySession:
    return StudySession(
        id=session_id,
        start_time="09:00",
        end_time="11:00",
        subject="Math",
        topic="Series",
        completed=completed,
    )


def _schedule() -> list[DaySchedule]:
    return [
        DaySchedule(date=date(2026, 1, 5), sessions=[_session("mon", completed=True)]),
        DaySchedule(date=date(2026, 1, 6), sessions=[_session("tue")]),
        DaySchedule(date=date(2026, 1, 7), sessions=[_session("wed")]),
        DaySchedule(date=date(2026, 1, 8), sessions=[_session("thu")]),
        DaySchedule(date=date(2026, 1, 9), sessions=[_session("fri")]),
    ]


def _rebalancer(reply, today: date) -> tuple[ScheduleRebalancer, StubOracle]:
    oracle = StubOracle(reply)
    clock = FixedClock(datetime(today.year, today.month, today.day, 8, 0, tzinfo=timezone.utc))
    return ScheduleRebalancer(ScheduleSynthesizer(oracle), clock), oracle


def test_find_missed_sessions_only_looks_before_today() -> None:
    missed = find_missed_sessions(_schedule(), date(2026, 1, 7))

    assert [session.id for session in missed] == ["tue"]


def test_nothing_missed_returns_the_same_schedule() -> None:
    schedule = _schedule()
    rebalancer, oracle = _rebalancer("[]", date(2026, 1, 6))

    result = rebalancer.rebalance(schedule, PLAN_END, PlanningRequest(start=PLAN_START, end=PLAN_END))

    assert result.changed is False
    assert result.reason == "nothing_missed"
    assert result.schedule is schedule
    assert oracle.prompts == []


def test_ended_plan_is_left_alone() -> None:
    schedule = _schedule()
    rebalancer, oracle = _rebalancer("[]", date(2026, 1, 12))

    result = rebalancer.rebalance(schedule, PLAN_END, PlanningRequest(start=PLAN_START, end=PLAN_END))

    assert result.changed is False
    assert result.reason == "plan_ended"
    assert result.schedule is schedule
    assert len(result.missed_sessions) == 4
    assert oracle.prompts == []


def test_rebalance_keeps_past_days_and_regenerates_the_rest() -> None:
    schedule = _schedule()
    before = [day.model_dump() for day in schedule[:2]]
    reply = json.dumps(
        [
            {
                "date": "2026-01-07",
                "sessions": [
                    {"id": "tue", "start_time": "09:00", "end_time": "10:00", "subject": "Math", "topic": "Catch-up"},
                    {"id": "new-1", "start_time": "10:15", "end_time": "11:15", "subject": "Math", "topic": "Series"},
                ],
            },
            {
                "date": "2026-01-09",
                "sessions": [
                    {"id": "mon", "start_time": "14:00", "end_time": "15:00", "subject": "Math", "topic": "Review"},
                ],
            },
        ]
    )
    rebalancer, oracle = _rebalancer(reply, date(2026, 1, 7))

    result = rebalancer.rebalance(schedule, PLAN_END, PlanningRequest(start=PLAN_START, end=PLAN_END))

    assert result.changed is True
    assert result.reason == "rebalanced"
    assert result.source == "oracle"
    assert [session.id for session in result.missed_sessions] == ["tue"]
    assert "Start: 2026-01-07" in oracle.prompts[0]

    assert [day.model_dump() for day in result.schedule[:2]] == before
    assert [day.date for day in result.schedule] == [date(2026, 1, day) for day in range(5, 10)]
    assert [s.topic for s in result.schedule[2].sessions] == ["Catch-up", "Series"]
    assert result.schedule[3].sessions == []

    ids = [session.id for day in result.schedule for session in day.sessions]
    assert len(ids) == len(set(ids))
    assert "new-1" in ids


def test_rebalance_with_failing_oracle_uses_fallback_for_the_tail() -> None:
    rebalancer, _ = _rebalancer(OracleFailure("down"), date(2026, 1, 8))

    result = rebalancer.rebalance(_schedule(), PLAN_END, PlanningRequest(start=PLAN_START, end=PLAN_END))

    assert result.changed is True
    assert result.source == "fallback"
    assert [day.date for day in result.schedule] == [date(2026, 1, day) for day in range(5, 10)]
    assert result.schedule[3].sessions[0].topic == "To be determined"
