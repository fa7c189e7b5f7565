from __future__ import annotations

import json

import pytest

from mcp_log_watch_server.core.analysis import (
    AnalyzerConfig,
    GeminiAnalyzer,
    LocalAnalyzer,
    fallback_finding,
    parse_finding_response,
    preprocess,
)
from mcp_log_watch_server.core.analysis import service as analysis_service
from mcp_log_watch_server.core.analysis.fallback import FALLBACK_ROOT_CAUSE
from mcp_log_watch_server.core.analysis.models import resolve_analyzer_config
from mcp_log_watch_server.core.analysis.redaction import redact_text
from mcp_log_watch_server.core.errors import AnalysisUnavailable
from mcp_log_watch_server.core.models import AnalysisOptions, LogFormat
from mcp_log_watch_server.core.patterns import TRUNCATION_MARKER

LOG = "INFO start\nERROR db timeout\n    at query (/srv/db.js:10:5)\nINFO retry\n"


def _response(**overrides) -> str:
    body = {
        "rootCause": "Database timed out",
        "confidence": 87,
        "suggestedFixes": ["Increase pool size"],
        "relatedErrors": ["db timeout"],
        "followUpQuestions": ["Was the DB under load?"],
        "metadata": {"errorType": "database", "severity": "high", "lineNumbers": [2]},
    }
    body.update(overrides)
    return json.dumps(body)


def test_parse_finding_response_valid() -> None:
    f = parse_finding_response(_response(), LOG)

    assert f.root_cause == "Database timed out"
    assert f.confidence == 87
    assert f.suggested_fixes == ["Increase pool size"]
    assert f.metadata.error_type == "database"
    assert f.metadata.severity == "high"
    assert f.metadata.line_numbers == [2]
    # No stack trace from the model: extracted from the original text.
    assert f.metadata.stack_trace == "at query (/srv/db.js:10:5)"


def test_parse_finding_response_extracts_json_from_prose() -> None:
    text = "Here is the analysis:\n```json\n" + _response() + "\n```\nHope this helps."
    assert parse_finding_response(text, LOG).root_cause == "Database timed out"


def test_parse_finding_response_normalizes_fields() -> None:
    raw = _response(confidence=250, metadata={"severity": "SEVERE"}, rootCause=None)
    f = parse_finding_response(raw, LOG)

    assert f.confidence == 100
    assert f.metadata.severity == "medium"
    assert f.metadata.error_type == "unknown"
    assert f.root_cause == "Unable to determine root cause"


@pytest.mark.parametrize("raw", ["no json here", "{not valid json}", 'prefix {"rootCause": } suffix'])
def test_parse_finding_response_malformed_uses_fallback(raw: str) -> None:
    f = parse_finding_response(raw, LOG)
    assert f.root_cause == FALLBACK_ROOT_CAUSE
    assert f.confidence == 30


def test_parse_finding_response_blanks_only_malformed_fields() -> None:
    f = parse_finding_response('{"rootCause": "DB pool exhausted", "confidence": 90, "metadata": null}', "ERROR x")

    assert f.root_cause == "DB pool exhausted"
    assert f.confidence == 90
    assert f.metadata.severity == "medium"
    assert f.metadata.error_type == "unknown"

    raw = _response(
        suggestedFixes="restart db",
        relatedErrors=["timeout", 42],
        confidence="very",
        metadata={"errorType": 7, "severity": "HIGH", "lineNumbers": "2"},
    )
    f = parse_finding_response(raw, LOG)

    assert f.root_cause == "Database timed out"
    assert f.suggested_fixes == []
    assert f.related_errors == ["timeout"]
    assert f.follow_up_questions == ["Was the DB under load?"]
    assert f.confidence == 0
    assert f.metadata.error_type == "unknown"
    assert f.metadata.severity == "high"
    assert f.metadata.line_numbers == []


def test_fallback_finding_severity_scales_with_error_count() -> None:
    few = fallback_finding(LOG)
    assert few.metadata.severity == "medium"
    assert few.related_errors == ["INFO start\nERROR db timeout\n    at query (/srv/db.js:10:5)\nINFO retry"]
    assert few.metadata.stack_trace == "at query (/srv/db.js:10:5)"

    many = fallback_finding("\n".join(f"ERROR {i}" for i in range(6)))
    assert many.metadata.severity == "high"
    assert len(many.related_errors) == 3


def test_preprocess_focuses_on_error_sections_and_redacts() -> None:
    noise = "\n".join(f"INFO request {i} ok" for i in range(20))
    text = noise + "\nERROR login failed for bob@example.com from 10.0.0.7\n" + noise

    processed, fmt = preprocess(text, options=AnalysisOptions(), cfg=AnalyzerConfig())

    assert fmt == LogFormat.PLAIN
    assert "request 5 ok" not in processed
    assert "ERROR login failed" in processed
    assert "bob@example.com" not in processed
    assert "<REDACTED_EMAIL>" in processed
    assert "<REDACTED_IP>" in processed


def test_preprocess_respects_token_budget() -> None:
    text = "y" * 100_000
    cfg = AnalyzerConfig(max_context_tokens=1000, redact=False)
    processed, _ = preprocess(text, options=AnalysisOptions(log_format=LogFormat.PLAIN), cfg=cfg)
    assert len(processed) <= 4000
    assert processed.endswith(TRUNCATION_MARKER)


def test_redact_text_keeps_stack_frames() -> None:
    text = "Authorization: Bearer abc.def.ghi password=hunter2 at foo (a.js:1:1)"
    out = redact_text(text)
    assert "hunter2" not in out
    assert "abc.def.ghi" not in out
    assert "at foo (a.js:1:1)" in out


@pytest.mark.asyncio
async def test_gemini_analyzer_uses_backend_response(monkeypatch) -> None:
    captured: dict[str, str] = {}

    def fake_call(prompt: str, *, cfg) -> str:
        captured["prompt"] = prompt
        return _response()

    monkeypatch.setattr(analysis_service, "_call_gemini_json", fake_call)

    f = await GeminiAnalyzer().analyze(LOG, AnalysisOptions())

    assert f.root_cause == "Database timed out"
    assert "plain logs" in captured["prompt"]
    assert "ERROR db timeout" in captured["prompt"]


@pytest.mark.asyncio
async def test_gemini_analyzer_propagates_unavailable(monkeypatch) -> None:
    def fake_call(prompt: str, *, cfg) -> str:
        raise AnalysisUnavailable("quota exceeded")

    monkeypatch.setattr(analysis_service, "_call_gemini_json", fake_call)

    with pytest.raises(AnalysisUnavailable):
        await GeminiAnalyzer().analyze(LOG, AnalysisOptions())


def test_call_gemini_without_key_is_unavailable(monkeypatch) -> None:
    monkeypatch.delenv("GEMINI_API_KEY", raising=False)
    monkeypatch.delenv("GOOGLE_API_KEY", raising=False)
    with pytest.raises(AnalysisUnavailable, match="GEMINI_API_KEY"):
        analysis_service._call_gemini_json("prompt", cfg=AnalyzerConfig())


@pytest.mark.asyncio
async def test_local_analyzer_returns_fallback() -> None:
    f = await LocalAnalyzer().analyze(LOG, AnalysisOptions())
    assert f.root_cause == FALLBACK_ROOT_CAUSE


def test_resolve_analyzer_config_env_override(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("LOG_WATCH_MAX_CONTEXT_TOKENS", "2000")
    monkeypatch.setenv("LOG_WATCH_AI_MODEL", "gemini-test")
    cfg = resolve_analyzer_config(None)
    assert cfg.max_context_tokens == 2000
    assert cfg.model == "gemini-test"


def test_resolve_analyzer_config_invalid_env_raises(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("LOG_WATCH_MAX_CONTEXT_TOKENS", "10")
    with pytest.raises(ValueError, match="LOG_WATCH_MAX_CONTEXT_TOKENS"):
        _ = resolve_analyzer_config(None)
