"""Gemini-backed analyzer.

Turns a chunk of log text into a structured Finding. Transport failures are
raised as AnalysisUnavailable so the caller can retry the same byte range;
unusable model output degrades to a local fallback finding.
"""

from __future__ import annotations

import asyncio
import logging
import os
import re
import time

from pydantic import ValidationError

from ..errors import AnalysisUnavailable
from ..models import SEVERITIES, AnalysisOptions, Finding, FindingMetadata, LogFormat
from ..patterns import SECTION_SEPARATOR, detect_format, extract_error_patterns, extract_stack_traces, truncate_to_budget
from .fallback import fallback_finding
from .models import AnalyzerConfig, FindingResponse, resolve_analyzer_config
from .prompt import build_analysis_prompt
from .redaction import redact_text

logger = logging.getLogger(__name__)
_FINDING_SCHEMA = FindingResponse.model_json_schema(by_alias=True)
_JSON_OBJECT_RE = re.compile(r"\{[\s\S]*\}")


def preprocess(text: str, *, options: AnalysisOptions, cfg: AnalyzerConfig) -> tuple[str, LogFormat]:
    """Focus on error sections, fit the token budget and redact."""
    log_format = options.log_format
    if log_format == LogFormat.AUTO:
        log_format = detect_format(text)

    processed = text
    sections = extract_error_patterns(text)
    if sections:
        processed = SECTION_SEPARATOR.join(s.text for s in sections)

    processed = truncate_to_budget(processed, cfg.max_context_tokens)
    if cfg.redact:
        processed = redact_text(processed)
    return processed, log_format


def parse_finding_response(response_text: str, original_text: str) -> Finding:
    """Normalize model output into a Finding, falling back on malformed output."""
    m = _JSON_OBJECT_RE.search(response_text or "")
    if not m:
        logger.warning("Analysis response contained no JSON object; using fallback finding")
        return fallback_finding(original_text)

    try:
        parsed = FindingResponse.model_validate_json(m.group(0))
    except ValidationError as e:
        logger.warning("Analysis response was not valid JSON; using fallback finding: %s", e)
        return fallback_finding(original_text)

    meta = parsed.metadata
    severity = meta.severity.lower() if meta.severity else ""
    stack_trace = meta.stack_trace or "\n".join(extract_stack_traces(original_text)) or None

    return Finding(
        root_cause=parsed.root_cause or "Unable to determine root cause",
        confidence=parsed.confidence,
        suggested_fixes=parsed.suggested_fixes,
        related_errors=parsed.related_errors,
        follow_up_questions=parsed.follow_up_questions,
        metadata=FindingMetadata(
            error_type=meta.error_type or "unknown",
            severity=severity if severity in SEVERITIES else "medium",
            line_numbers=meta.line_numbers or [],
            stack_trace=stack_trace,
        ),
    )


def _call_gemini_json(prompt: str, *, cfg: AnalyzerConfig) -> str:
    """Call Gemini and return the raw response text."""
    api_key = os.getenv("GEMINI_API_KEY") or os.getenv("GOOGLE_API_KEY")
    if not api_key:
        raise AnalysisUnavailable("Missing GEMINI_API_KEY (or GOOGLE_API_KEY).")

    try:
        from google import genai
    except ImportError as e:  # pragma: no cover
        raise AnalysisUnavailable(
            "google-genai is required for AI analysis. Install with: pip install '.[ai]'"
        ) from e

    client = genai.Client(api_key=api_key)

    last_err: Exception | None = None
    for attempt in range(1, cfg.max_retries + 1):
        try:
            resp = client.models.generate_content(
                model=cfg.model,
                contents=prompt,
                config={
                    "response_mime_type": "application/json",
                    "response_json_schema": _FINDING_SCHEMA,
                    "temperature": cfg.temperature,
                },
            )
            return resp.text or ""
        except Exception as e:
            last_err = e
            if attempt >= cfg.max_retries:
                break
            sleep_s = min(8, 2 ** (attempt - 1))
            logger.warning("Gemini call failed (attempt %s/%s): %s", attempt, cfg.max_retries, e)
            time.sleep(sleep_s)

    raise AnalysisUnavailable(
        f"Gemini call failed after {cfg.max_retries} attempts: {last_err}"
    ) from last_err


class GeminiAnalyzer:
    """Analyzer backed by the Gemini API; one shared instance serves every watch."""

    def __init__(self, cfg: AnalyzerConfig | None = None) -> None:
        self.cfg = resolve_analyzer_config(cfg)

    async def analyze(self, text: str, options: AnalysisOptions) -> Finding:
        processed, log_format = preprocess(text, options=options, cfg=self.cfg)
        prompt = build_analysis_prompt(processed, log_format=log_format)
        # The SDK call and its retry backoff are blocking.
        response_text = await asyncio.to_thread(_call_gemini_json, prompt, cfg=self.cfg)
        return parse_finding_response(response_text, text)
