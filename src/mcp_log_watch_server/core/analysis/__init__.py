"""Analysis adapter package."""

from __future__ import annotations

from .fallback import LocalAnalyzer, fallback_finding
from .models import Analyzer, AnalyzerConfig, FindingResponse, resolve_analyzer_config
from .service import GeminiAnalyzer, parse_finding_response, preprocess

__all__ = [
    "Analyzer",
    "AnalyzerConfig",
    "FindingResponse",
    "GeminiAnalyzer",
    "LocalAnalyzer",
    "fallback_finding",
    "parse_finding_response",
    "preprocess",
    "resolve_analyzer_config",
]
