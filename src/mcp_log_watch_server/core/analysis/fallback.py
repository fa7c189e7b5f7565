"""Local, network-free findings."""

from __future__ import annotations

from ..models import AnalysisOptions, Finding, FindingMetadata
from ..patterns import extract_error_patterns, extract_stack_traces

FALLBACK_CONFIDENCE = 30
FALLBACK_ROOT_CAUSE = "AI analysis failed, but errors detected in logs"


def fallback_finding(text: str) -> Finding:
    """Low-confidence finding built only from the pattern heuristics."""
    patterns = extract_error_patterns(text)
    frames = extract_stack_traces(text)

    return Finding(
        root_cause=FALLBACK_ROOT_CAUSE,
        confidence=FALLBACK_CONFIDENCE,
        suggested_fixes=[
            "Review the error patterns identified",
            "Check application configuration",
            "Examine stack traces for debugging",
        ],
        related_errors=[p.text for p in patterns[:3]],
        follow_up_questions=[
            "What actions were being performed when the error occurred?",
            "Has this error happened before?",
            "Were there any recent changes to the system?",
        ],
        metadata=FindingMetadata(
            error_type="unknown",
            severity="high" if len(patterns) > 5 else "medium",
            line_numbers=[p.line_no for p in patterns],
            stack_trace="\n".join(frames) or None,
        ),
    )


class LocalAnalyzer:
    """Analyzer that never leaves the process; used when no API key is configured."""

    async def analyze(self, text: str, options: AnalysisOptions) -> Finding:
        return fallback_finding(text)
