"""Rapid triage of a block of log text.

``quick_scan`` counts error windows without any backend. ``rapid_debug``
classifies lines into issue groups (database, memory, network, auth, config),
runs one analysis pass and turns both into quick fixes, shell commands to
run next, and a short list of next steps.
"""

from __future__ import annotations

import logging
import time
from collections.abc import Iterator
from dataclasses import dataclass

from .analysis.fallback import fallback_finding
from .analysis.models import Analyzer
from .errors import AnalysisUnavailable
from .models import AnalysisOptions, Finding, LogFormat, QuickFix, QuickScanResult, RapidDebugResult
from .patterns import extract_error_patterns, extract_stack_traces

logger = logging.getLogger(__name__)

RAPID_ANALYSIS_OPTIONS = AnalysisOptions(log_format=LogFormat.AUTO, context_lines=20)
CRITICAL_ERROR_THRESHOLD = 5
HIGH_CONFIDENCE = 80
MAX_SUGGESTED_FIXES = 3

ISSUE_LABELS: dict[str, str] = {
    "database": "Database connection/timeout issues",
    "memory": "Memory exhaustion",
    "network": "Network connectivity issues",
    "auth": "Authentication failures",
    "config": "Configuration problems",
}

_ISSUE_FIXES: dict[str, QuickFix] = {
    "database": QuickFix(
        issue="Database Connection Issues",
        fix="Restart database service and check connection pool",
        command="sudo systemctl restart mysql && docker ps | grep database",
        priority="high",
        estimated_time="2-5 minutes",
    ),
    "memory": QuickFix(
        issue="Memory Exhaustion",
        fix="Increase heap size and restart application",
        command='export JAVA_OPTS="-Xmx2g" && systemctl restart app',
        priority="high",
        estimated_time="1-3 minutes",
    ),
    "network": QuickFix(
        issue="Network Connectivity",
        fix="Check service health and network configuration",
        command="curl -I http://api-service:8080/health",
        priority="medium",
        estimated_time="30 seconds",
    ),
    "config": QuickFix(
        issue="Configuration Problems",
        fix="Validate and reload configuration",
        command="nginx -t && systemctl reload nginx",
        priority="medium",
        estimated_time="1 minute",
    ),
}

_BASE_COMMANDS: tuple[str, ...] = (
    "# Quick Health Check",
    "systemctl status --no-pager",
    "df -h | head -5",
    "free -m",
    "",
    "# Recent Logs",
    'journalctl -u myapp --since "5 minutes ago" --no-pager',
    "tail -n 50 /var/log/app/error.log",
    "",
    "# Process Check",
    'ps aux | grep -E "(java|python|node)" | head -5',
    "netstat -tulpn | grep :8080",
)

_ISSUE_COMMANDS: dict[str, tuple[str, ...]] = {
    "database": ("", "# Database Check", 'mysql -e "SHOW PROCESSLIST;" 2>/dev/null || echo "Database unreachable"'),
    "network": ("", "# Network Check", "ping -c 3 api-service", "curl -I http://localhost:8080/health"),
}


@dataclass(frozen=True, slots=True)
class IssueScan:
    """Keyword classification of a block of log text."""

    critical_errors: list[str]
    issue_types: list[str]
    total_errors: int
    has_stack_trace: bool
    line_count: int


def _line_issue_types(lower: str) -> Iterator[str]:
    if "database" in lower and ("error" in lower or "timeout" in lower):
        yield "database"
    if "outofmemory" in lower or "heap space" in lower:
        yield "memory"
    if "connection refused" in lower or "timeout" in lower:
        yield "network"
    if "unauthorized" in lower or "authentication failed" in lower:
        yield "auth"
    if "config" in lower and "error" in lower:
        yield "config"


def classify_issues(text: str) -> IssueScan:
    """Group lines into issue types, in first-seen order."""
    lines = text.split("\n")
    seen: dict[str, None] = {}
    for line in lines:
        for issue in _line_issue_types(line.lower()):
            seen.setdefault(issue, None)

    issue_types = list(seen)
    return IssueScan(
        critical_errors=[ISSUE_LABELS[t] for t in issue_types],
        issue_types=issue_types,
        total_errors=len(extract_error_patterns(text)),
        has_stack_trace=bool(extract_stack_traces(text)),
        line_count=len(lines),
    )


def quick_fixes(scan: IssueScan, finding: Finding) -> list[QuickFix]:
    fixes = [_ISSUE_FIXES[t] for t in scan.issue_types if t in _ISSUE_FIXES]
    for i, fix in enumerate(finding.suggested_fixes[:MAX_SUGGESTED_FIXES], start=1):
        fixes.append(QuickFix(issue=f"AI Suggestion {i}", fix=fix))
    return fixes


def debug_commands(scan: IssueScan) -> list[str]:
    commands = list(_BASE_COMMANDS)
    for issue in ("database", "network"):
        if issue in scan.issue_types:
            commands.extend(_ISSUE_COMMANDS[issue])
    return commands


def next_steps(scan: IssueScan, finding: Finding) -> list[str]:
    steps: list[str] = []
    if scan.critical_errors:
        steps.append("Address critical errors first (database, memory, network)")
    if scan.has_stack_trace:
        steps.append("Examine stack traces for exact error locations")
    if finding.confidence > HIGH_CONFIDENCE:
        steps.append("High confidence analysis: follow the suggested fixes")
    else:
        steps.append("Low confidence: gather more context and logs")
    steps.append("Monitor system metrics during fixes")
    steps.append("Test application functionality after each fix")
    return steps


def _elapsed_ms(start: float) -> float:
    return round((time.perf_counter() - start) * 1000, 3)


def quick_scan(text: str) -> QuickScanResult:
    """Count error windows and flag the text as critical; no backend involved."""
    start = time.perf_counter()
    errors = len(extract_error_patterns(text))
    lower = text.lower()
    critical = "fatal" in lower or "critical" in lower or errors > CRITICAL_ERROR_THRESHOLD
    return QuickScanResult(errors=errors, critical=critical, time_ms=_elapsed_ms(start))


async def rapid_debug(text: str, analyzer: Analyzer) -> RapidDebugResult:
    """Classify, analyze once and condense the result into next actions.

    A backend failure degrades to the local fallback finding instead of failing
    the whole request.
    """
    start = time.perf_counter()
    scan = classify_issues(text)
    try:
        finding = await analyzer.analyze(text, RAPID_ANALYSIS_OPTIONS)
    except AnalysisUnavailable as e:
        logger.warning("Analysis unavailable during rapid debug; using fallback finding: %s", e)
        finding = fallback_finding(text)

    return RapidDebugResult(
        time_to_analysis_ms=_elapsed_ms(start),
        critical_errors=scan.critical_errors,
        quick_fixes=quick_fixes(scan, finding),
        debug_commands=debug_commands(scan),
        root_cause=finding.root_cause,
        confidence=finding.confidence,
        next_steps=next_steps(scan, finding),
    )
