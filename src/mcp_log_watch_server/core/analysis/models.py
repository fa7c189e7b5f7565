"""Analyzer contract, response schema and configuration."""

from __future__ import annotations

import os
from dataclasses import dataclass, replace
from typing import Any, Protocol

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel

from ..models import AnalysisOptions, Finding


class Analyzer(Protocol):
    """Analysis backend: turn a chunk of log text into a Finding.

    Implementations raise ``AnalysisUnavailable`` when the backend cannot be
    reached; malformed backend output should become a fallback Finding instead.
    """

    async def analyze(self, text: str, options: AnalysisOptions) -> Finding:
        ...


def _str_or_none(value: Any) -> str | None:
    return value if isinstance(value, str) else None


def _str_list(value: Any) -> list[str]:
    if not isinstance(value, list):
        return []
    return [v for v in value if isinstance(v, str)]


class _LenientModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="ignore")


class FindingResponseMetadata(_LenientModel):
    error_type: str | None = Field(default=None, description="runtime, configuration, network, database, ...")
    severity: str | None = Field(default=None, description="One of: low, medium, high, critical.")
    line_numbers: list[int] | None = Field(default=None, description="Relevant log line numbers.")
    stack_trace: str | None = Field(default=None, description="Extracted stack trace if available.")

    @field_validator("error_type", "severity", "stack_trace", mode="before")
    @classmethod
    def _drop_non_string(cls, value: Any) -> str | None:
        return _str_or_none(value)

    @field_validator("line_numbers", mode="before")
    @classmethod
    def _keep_int_lines(cls, value: Any) -> list[int] | None:
        if not isinstance(value, list):
            return None
        return [v for v in value if isinstance(v, int) and not isinstance(v, bool)]


class FindingResponse(_LenientModel):
    """Shape the model is asked to return; normalized into a Finding afterwards.

    Each field is validated on its own: a malformed field is blanked instead of
    discarding the rest of the answer.
    """

    root_cause: str | None = Field(default=None, description="Brief explanation of the main issue.")
    confidence: float | None = Field(default=0, description="0-100 confidence in the analysis.")
    suggested_fixes: list[str] = Field(default_factory=list)
    related_errors: list[str] = Field(default_factory=list)
    follow_up_questions: list[str] = Field(default_factory=list)
    metadata: FindingResponseMetadata = Field(default_factory=FindingResponseMetadata)

    @field_validator("root_cause", mode="before")
    @classmethod
    def _root_cause_text(cls, value: Any) -> str | None:
        return _str_or_none(value)

    @field_validator("confidence", mode="before")
    @classmethod
    def _numeric_confidence(cls, value: Any) -> float | None:
        if isinstance(value, bool):
            return None
        try:
            return float(value)
        except (TypeError, ValueError):
            return None

    @field_validator("suggested_fixes", "related_errors", "follow_up_questions", mode="before")
    @classmethod
    def _string_list(cls, value: Any) -> list[str]:
        return _str_list(value)

    @field_validator("metadata", mode="before")
    @classmethod
    def _metadata_object(cls, value: Any) -> Any:
        return value if isinstance(value, dict) else {}


@dataclass(frozen=True, slots=True)
class AnalyzerConfig:
    model: str = "gemini-2.5-flash-lite"
    temperature: float = 0.0
    max_retries: int = 3
    redact: bool = True
    max_context_tokens: int = 8000


def resolve_analyzer_config(cfg: AnalyzerConfig | None) -> AnalyzerConfig:
    """Return config with optional env overrides applied."""
    if cfg is None:
        cfg = AnalyzerConfig()

    model = os.getenv("LOG_WATCH_AI_MODEL")
    if model:
        cfg = replace(cfg, model=model)

    env = os.getenv("LOG_WATCH_MAX_CONTEXT_TOKENS")
    if env is None or env == "":
        return cfg

    try:
        value = int(env)
    except ValueError as exc:
        raise ValueError("LOG_WATCH_MAX_CONTEXT_TOKENS must be an integer") from exc
    if value < 1000:
        raise ValueError("LOG_WATCH_MAX_CONTEXT_TOKENS must be >= 1000")

    return replace(cfg, max_context_tokens=value)
