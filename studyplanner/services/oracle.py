"""Text-generation oracle client and the shared response parser."""
from __future__ import annotations

import json
import logging
import re
from dataclasses import dataclass
from typing import Any, Protocol

import openai

from studyplanner.core.config import Settings, settings
from studyplanner.core.errors import MalformedOracleOutput, OracleFailure

logger = logging.getLogger(__name__)

_FENCE_OPEN = re.compile(r"^```[a-zA-Z0-9_-]*\s*\n?")
_FENCE_CLOSE = re.compile(r"\n?```\s*$")


@dataclass(frozen=True)
class OracleRequest:
    """A single prompt plus the generation limits to send with it."""

    prompt: str
    temperature: float
    max_output_tokens: int


class TextOracle(Protocol):
    model_name: str

    def generate(self, request: OracleRequest) -> str:
        ...


class OpenAICompatibleOracle:
    """Oracle backed by any OpenAI-compatible chat completions endpoint."""

    def __init__(self, config: Settings | None = None):
        config = config or settings
        self.model_name = config.oracle_model
        self._api_key = config.oracle_api_key
        self._base_url = config.oracle_base_url
        self._timeout = config.oracle_timeout_seconds
        self._client: openai.OpenAI | None = None

    def _get_client(self) -> openai.OpenAI:
        if self._client is None:
            if not self._api_key:
                raise OracleFailure("ORACLE_API_KEY missing")
            self._client = openai.OpenAI(api_key=self._api_key, base_url=self._base_url, timeout=self._timeout)
        return self._client

    def generate(self, request: OracleRequest) -> str:
        client = self._get_client()
        try:
            completion = client.chat.completions.create(
                model=self.model_name,
                temperature=request.temperature,
                max_tokens=request.max_output_tokens,
                messages=[{"role": "user", "content": request.prompt}],
            )
        except openai.OpenAIError as exc:
            raise OracleFailure(f"generation call failed: {exc}") from exc

        content = completion.choices[0].message.content if completion.choices else None
        if not content or not content.strip():
            raise OracleFailure("oracle returned an empty completion")
        return content


def unwrap_oracle_text(raw: str) -> str:
    """Strip surrounding whitespace and markdown code fences from an oracle reply."""
    text = raw.strip()
    if text.startswith("```"):
        text = _FENCE_OPEN.sub("", text, count=1)
        text = _FENCE_CLOSE.sub("", text, count=1)
    return text.strip()


def parse_oracle_json(raw: str | None) -> Any:
    """Unwrap and decode an oracle reply, raising MalformedOracleOutput on failure."""
    if raw is None:
        raise MalformedOracleOutput("oracle reply was empty")
    text = unwrap_oracle_text(raw)
    if not text:
        raise MalformedOracleOutput("oracle reply was empty")
    try:
        return json.loads(text)
    except json.JSONDecodeError as exc:
        logger.debug("Oracle reply is not JSON: %s", text[:200])
        raise MalformedOracleOutput(f"oracle reply is not valid JSON: {exc.msg}") from exc
