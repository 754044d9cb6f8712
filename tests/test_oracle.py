"""Tests for the oracle client and its reply parsing."""
from __future__ import annotations

from types import SimpleNamespace

import openai
import pytest

from studyplanner.core.config import Settings
from studyplanner.core.errors import MalformedOracleOutput, OracleFailure
from studyplanner.services.oracle import (
    OpenAICompatibleOracle,
    OracleRequest,
    parse_oracle_json,
    unwrap_oracle_text,
)


def test_unwrap_strips_code_fences() -> None:
    fenced = '```json\n[{"date": "2026-01-05"}]\n```'

    assert unwrap_oracle_text(fenced) == '[{"date": "2026-01-05"}]'
    assert unwrap_oracle_text("  []  ") == "[]"


def test_parse_oracle_json_decodes_fenced_payload() -> None:
    assert parse_oracle_json('```\n{"ok": true}\n```') == {"ok": True}


@pytest.mark.parametrize("raw", [None, "", "```json\n```", "Here is your plan!", "[{"])
def test_parse_oracle_json_rejects_unusable_replies(raw) -> None:
    with pytest.raises(MalformedOracleOutput):
        parse_oracle_json(raw)


def test_missing_api_key_is_an_oracle_failure() -> None:
    oracle = OpenAICompatibleOracle(Settings(oracle_api_key=None))

    with pytest.raises(OracleFailure):
        oracle.generate(OracleRequest(prompt="plan my week", temperature=0.5, max_output_tokens=256))


class _FakeCompletions:
    def __init__(self, content):
        self.content = content
        self.calls: list[dict] = []

    def create(self, **kwargs):
        self.calls.append(kwargs)
        if isinstance(self.content, Exception):
            raise self.content
        message = SimpleNamespace(content=self.content)
        return SimpleNamespace(choices=[SimpleNamespace(message=message)])


def _oracle_with(content) -> tuple[OpenAICompatibleOracle, _FakeCompletions]:
    oracle = OpenAICompatibleOracle(Settings(oracle_api_key="test-key", oracle_model="test-model"))
    completions = _FakeCompletions(content)
    oracle._client = SimpleNamespace(chat=SimpleNamespace(completions=completions))
    return oracle, completions


def test_generate_sends_prompt_and_limits() -> None:
    oracle, completions = _oracle_with("[]")

    reply = oracle.generate(OracleRequest(prompt="plan", temperature=0.2, max_output_tokens=100))

    assert reply == "[]"
    call = completions.calls[0]
    assert call["model"] == "test-model"
    assert call["temperature"] == 0.2
    assert call["max_tokens"] == 100
    assert call["messages"] == [{"role": "user", "content": "plan"}]


def test_empty_completion_is_an_oracle_failure() -> None:
    oracle, _ = _oracle_with("   ")

    with pytest.raises(OracleFailure):
        oracle.generate(OracleRequest(prompt="plan", temperature=0.5, max_output_tokens=256))


def test_sdk_errors_become_oracle_failures() -> None:
    oracle, _ = _oracle_with(openai.OpenAIError("quota exceeded"))

    with pytest.raises(OracleFailure):
        oracle.generate(OracleRequest(prompt="plan", temperature=0.5, max_output_tokens=256))


def test_request_requires_generation_limits() -> None:
    with pytest.raises(TypeError):
        OracleRequest(prompt="plan")  # type: ignore[call-arg]
