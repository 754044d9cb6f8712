"""FastAPI dependencies for the planner's collaborators."""
from __future__ import annotations

from functools import lru_cache

from fastapi import Depends

from studyplanner.core.clock import Clock, SystemClock
from studyplanner.core.config import settings
from studyplanner.services.oracle import OpenAICompatibleOracle, TextOracle
from studyplanner.services.schedule_synthesizer import ScheduleSynthesizer


@lru_cache
def get_oracle() -> TextOracle:
    """Process-wide oracle client; override in tests."""
    return OpenAICompatibleOracle(settings)


def get_clock() -> Clock:
    return SystemClock()


def get_synthesizer(oracle: TextOracle = Depends(get_oracle)) -> ScheduleSynthesizer:
    return ScheduleSynthesizer(
        oracle,
        temperature=settings.oracle_temperature,
        max_output_tokens=settings.oracle_max_output_tokens,
    )
