"""Core data models for log watching."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import UTC, datetime
from enum import Enum
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel

Severity = Literal["low", "medium", "high", "critical"]
SEVERITIES: tuple[str, ...] = ("low", "medium", "high", "critical")


class LogFormat(str, Enum):
    """Coarse content format used to phrase the analysis prompt."""

    AUTO = "auto"
    JSON = "json"
    PLAIN = "plain"


class _WireModel(BaseModel):
    # camelCase on the wire, snake_case in Python.
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        frozen=True,
    )

    def to_wire(self) -> dict[str, Any]:
        """JSON-serializable dict with camelCase keys and ISO timestamps."""
        return self.model_dump(mode="json", by_alias=True)


class FindingMetadata(_WireModel):
    error_type: str = "unknown"
    severity: Severity = "medium"
    timestamp: datetime = Field(default_factory=lambda: datetime.now(UTC))
    line_numbers: list[int] | None = None
    stack_trace: str | None = None

    @field_validator("timestamp")
    @classmethod
    def _assume_utc(cls, value: datetime) -> datetime:
        # Naive timestamps are read as UTC so findings stay comparable.
        if value.tzinfo is None:
            return value.replace(tzinfo=UTC)
        return value


class Finding(_WireModel):
    """Immutable result of one analysis pass over a chunk of log text."""

    root_cause: str
    confidence: int = 0
    suggested_fixes: list[str] = Field(default_factory=list)
    related_errors: list[str] = Field(default_factory=list)
    follow_up_questions: list[str] = Field(default_factory=list)
    metadata: FindingMetadata = Field(default_factory=FindingMetadata)

    @field_validator("confidence", mode="before")
    @classmethod
    def _clamp_confidence(cls, value: Any) -> int:
        try:
            n = int(float(value))
        except (TypeError, ValueError):
            return 0
        return max(0, min(100, n))


@dataclass(frozen=True, slots=True)
class AnalysisOptions:
    """Options passed to the analysis backend alongside the text."""

    log_format: LogFormat = LogFormat.AUTO
    context_lines: int = 20


@dataclass(frozen=True, slots=True)
class WatchOptions:
    """Per-file watch options."""

    poll_interval_ms: int = 1000
    ignore_initial: bool = False
    use_polling: bool = True


@dataclass(frozen=True, slots=True)
class ContextMatch:
    """Error-like line plus up to two lines of context on either side."""

    line_no: int  # 1-based line of the keyword hit
    start_line: int
    end_line: int
    keyword: str
    text: str


@dataclass(frozen=True, slots=True)
class WatchedFileSummary:
    """Snapshot of one watched file for listings."""

    path: str
    recent_errors: list[Finding]
    total_errors: int
    last_update: datetime


class QuickFix(_WireModel):
    """A prioritized, ready-to-try remedy for one issue group."""

    issue: str
    fix: str
    command: str | None = None
    priority: Literal["low", "medium", "high"] = "medium"
    estimated_time: str = "2-5 minutes"


class QuickScanResult(_WireModel):
    errors: int
    critical: bool
    time_ms: float


class RapidDebugResult(_WireModel):
    """Pattern classification and one analysis pass, condensed into next actions."""

    time_to_analysis_ms: float
    critical_errors: list[str] = Field(default_factory=list)
    quick_fixes: list[QuickFix] = Field(default_factory=list)
    debug_commands: list[str] = Field(default_factory=list)
    root_cause: str
    confidence: int = 0
    next_steps: list[str] = Field(default_factory=list)
