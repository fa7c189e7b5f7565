"""Prompt construction for log analysis."""

from __future__ import annotations

from ..models import LogFormat


def build_analysis_prompt(log_content: str, *, log_format: LogFormat) -> str:
    """Build the Gemini prompt for a chunk of (already budgeted) log text."""
    return (
        f"You are an expert log analyst. Analyze the following {log_format.value} logs "
        "and provide a structured analysis.\n\n"
        f"Log Content:\n```\n{log_content}\n```\n\n"
        "Return ONLY valid JSON that matches the provided schema:\n"
        "- rootCause: brief explanation of the main issue identified\n"
        "- confidence: number between 0-100\n"
        "- suggestedFixes: specific, actionable solutions\n"
        "- relatedErrors: related error messages or patterns\n"
        "- followUpQuestions: questions that would help debug further\n"
        "- metadata.errorType: e.g. runtime, configuration, network, database\n"
        "- metadata.severity: one of low, medium, high, critical\n"
        "- metadata.lineNumbers / metadata.stackTrace when available\n\n"
        "Rules:\n"
        "- Only use evidence from the given lines.\n"
        "- If multiple errors are present, focus on the most critical ones.\n"
        "- Be specific and practical in your recommendations.\n"
    )
