"""Oracle-driven study schedule synthesis with a deterministic fallback."""
from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from datetime import date, timedelta
from typing import Any, Dict, Iterable, Iterator, List, Literal, Optional, Set

from pydantic import ValidationError

from studyplanner.core.errors import MalformedOracleOutput, OracleFailure
from studyplanner.observability.metrics import log_metric
from studyplanner.observability.tracing import trace
from studyplanner.services.oracle import OracleRequest, TextOracle, parse_oracle_json
from studyplanner.services.priority import order_by_priority
from studyplanner.services.schedule_types import (
    WEEKDAY_NAMES,
    DaySchedule,
    PlanningRequest,
    PriorityTier,
    SessionKind,
    StudySession,
    ensure_valid_range,
    new_session_id,
)

logger = logging.getLogger(__name__)

FALLBACK_SUBJECT = "Study Session"
FALLBACK_TOPIC = "To be determined"
FALLBACK_START = "09:00"
FALLBACK_END = "11:00"
WEEKEND = {5, 6}

_SCHEDULE_CONTRACT = """[
  {
    "date": "2026-01-15",
    "day_of_week": "Thursday",
    "sessions": [
      {
        "id": "unique-id",
        "start_time": "09:00",
        "end_time": "10:30",
        "subject": "Mathematics",
        "topic": "Calculus",
        "assignment_id": "assignment-id or null",
        "kind": "study|assignment|revision|break",
        "completed": false,
        "completed_at": null,
        "note": ""
      }
    ]
  }
]"""


@dataclass
class SynthesisResult:
    days: List[DaySchedule]
    source: Literal["oracle", "fallback"]
    prompt: str


def iter_dates(start: date, end: date) -> Iterator[date]:
    current = start
    while current <= end:
        yield current
        current += timedelta(days=1)


def build_planning_brief(request: PlanningRequest) -> str:
    """Render the natural-language planning brief sent to the oracle."""
    prefs = request.preferences
    habits = request.habits

    assignment_lines: List[str] = []
    for index, item in enumerate(order_by_priority(request.assignments), start=1):
        topics = ", ".join(item.topics) if item.topics else "not listed"
        assignment_lines.append(
            f"{index}. {item.title}\n"
            f"   Id: {item.id or 'n/a'}\n"
            f"   Subject: {item.subject}\n"
            f"   Due: {item.due_date.date().isoformat()}\n"
            f"   Estimated Hours: {item.estimated_hours:g}\n"
            f"   Topics: {topics}\n"
            f"   Priority: {PriorityTier(item.priority).value}"
        )
    assignments_block = "\n".join(assignment_lines) if assignment_lines else "No open assignments."

    if request.syllabus_data:
        syllabus_block = json.dumps(request.syllabus_data, indent=2, default=str)
    else:
        syllabus_block = "No syllabus topics provided."

    if request.exclude_days:
        excluded = ", ".join(WEEKDAY_NAMES[day] for day in request.exclude_days)
        exclusion_line = f"- Keep these weekdays free: {excluded}\n"
    else:
        exclusion_line = ""

    return (
        "You are an expert study planner. Create a detailed, hour-by-hour study schedule.\n\n"
        "USER PROFILE:\n"
        f"- Available study hours per day: {prefs.study_hours_per_day:g}\n"
        f"- Preferred study time: {prefs.study_time_preference}\n"
        f"- Session duration: {prefs.session_duration} minutes\n"
        f"- Break duration: {prefs.break_duration} minutes\n"
        f"- Peak productivity: {habits.peak_productivity_time}\n"
        f"- Average study hours: {habits.average_study_hours:g}\n\n"
        "SCHEDULE PERIOD:\n"
        f"- Start: {request.start.isoformat()}\n"
        f"- End: {request.end.isoformat()}\n"
        f"{exclusion_line}\n"
        "ASSIGNMENTS (priority order):\n"
        f"{assignments_block}\n\n"
        "SYLLABUS TOPICS:\n"
        f"{syllabus_block}\n\n"
        "REQUIREMENTS:\n"
        "1. Prioritize assignments by deadline (urgent first).\n"
        "2. Add buffer time (1-2 days) before each deadline.\n"
        "3. Schedule harder topics during peak productivity time.\n"
        "4. Include breaks between sessions.\n"
        "5. Balance workload across days.\n"
        "6. Include revision sessions.\n"
        "7. Avoid cramming; distribute work evenly.\n\n"
        "Return ONLY a valid JSON array with one entry per date in the period, using this structure:\n"
        f"{_SCHEDULE_CONTRACT}\n\n"
        "Times are 24-hour HH:MM on the same day. Every session starts with completed=false. "
        "Generate a realistic, achievable schedule. Do not include markdown formatting."
    )


def fallback_schedule(start: date, end: date, exclude_days: Iterable[int] = ()) -> List[DaySchedule]:
    """One two-hour placeholder study block per weekday in range; weekends are left out."""
    skipped = WEEKEND | set(exclude_days)
    days: List[DaySchedule] = []
    for current in iter_dates(start, end):
        if current.weekday() in skipped:
            continue
        days.append(
            DaySchedule(
                date=current,
                sessions=[
                    StudySession(
                        id=new_session_id(),
                        start_time=FALLBACK_START,
                        end_time=FALLBACK_END,
                        subject=FALLBACK_SUBJECT,
                        topic=FALLBACK_TOPIC,
                        kind=SessionKind.study,
                    )
                ],
            )
        )
    return days


def ensure_unique_session_ids(days: List[DaySchedule], taken: Optional[Set[str]] = None) -> List[DaySchedule]:
    """Give every session an id that is unique across the plan (and outside `taken`)."""
    seen: Set[str] = set(taken or ())
    for day in days:
        for session in day.sessions:
            if not session.id or session.id in seen:
                session.id = new_session_id()
            seen.add(session.id)
    return days


def parse_schedule_payload(payload: Any, start: date, end: date) -> List[DaySchedule]:
    """
    Validate the decoded oracle payload and normalise it to cover [start, end].

    Raises MalformedOracleOutput when the payload is not an array of day objects.
    Out-of-range and duplicate days are dropped, gaps become empty days.
    """
    if not isinstance(payload, list):
        raise MalformedOracleOutput(f"expected a JSON array of days, got {type(payload).__name__}")
    try:
        parsed = [DaySchedule.model_validate(entry) for entry in payload]
    except ValidationError as exc:
        raise MalformedOracleOutput(f"schedule does not match the day contract: {exc.error_count()} errors") from exc

    by_date: Dict[date, DaySchedule] = {}
    for day in parsed:
        if start <= day.date <= end and day.date not in by_date:
            by_date[day.date] = day

    if not by_date:
        raise MalformedOracleOutput("no scheduled day falls inside the requested range")

    normalised = [by_date.get(current) or DaySchedule(date=current) for current in iter_dates(start, end)]
    for day in normalised:
        for session in day.sessions:
            session.completed = False
            session.completed_at = None
    return ensure_unique_session_ids(normalised)


class ScheduleSynthesizer:
    """Turns a PlanningRequest into day-by-day sessions; never fails on oracle trouble."""

    def __init__(
        self,
        oracle: TextOracle,
        *,
        temperature: float = 0.5,
        max_output_tokens: int = 8192,
    ):
        self.oracle = oracle
        self.temperature = temperature
        self.max_output_tokens = max_output_tokens

    @property
    def model_name(self) -> str:
        return getattr(self.oracle, "model_name", "unknown")

    def synthesize(self, request: PlanningRequest) -> List[DaySchedule]:
        return self.synthesize_with_details(request).days

    def synthesize_with_details(
        self,
        request: PlanningRequest,
        *,
        user_id: str | None = None,
        request_id: str | None = None,
    ) -> SynthesisResult:
        ensure_valid_range(request.start, request.end)
        brief = build_planning_brief(request)
        oracle_request = OracleRequest(
            prompt=brief,
            temperature=self.temperature,
            max_output_tokens=self.max_output_tokens,
        )
        metadata = {
            "start": request.start.isoformat(),
            "end": request.end.isoformat(),
            "assignments": len(request.assignments),
            "model": self.model_name,
        }

        with trace("study_plan.synthesize", metadata=metadata, user_id=user_id, request_id=request_id) as span:
            try:
                raw = self.oracle.generate(oracle_request)
                days = parse_schedule_payload(parse_oracle_json(raw), request.start, request.end)
                source: Literal["oracle", "fallback"] = "oracle"
            except OracleFailure as exc:
                logger.warning("Oracle schedule unusable (%s), using fallback: %s", type(exc).__name__, exc)
                days = fallback_schedule(request.start, request.end, request.exclude_days)
                source = "fallback"
            except Exception:  # pragma: no cover - unexpected client errors
                logger.exception("Unexpected oracle error, using fallback")
                days = fallback_schedule(request.start, request.end, request.exclude_days)
                source = "fallback"

            if span:
                span.update(metadata={**metadata, "source": source, "days": len(days)})

        log_metric("study_plan.synthesize.success", 1, metadata={"source": source})
        if source == "fallback":
            log_metric("study_plan.fallback.used", 1, metadata={"days": len(days)})
        return SynthesisResult(days=days, source=source, prompt=brief)
