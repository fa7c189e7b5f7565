"""MCP tool implementations.

This module contains the *implementation* behind the exposed MCP tools.
Keep this layer thin: validate inputs, translate them into core calls, and
return JSON-serializable envelopes:

    {"success": true, "data": ...}
    {"success": false, "error": "...", "error_type": "..."}
"""

from __future__ import annotations

from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from mcp_log_watch_server.core.analysis.models import Analyzer
from mcp_log_watch_server.core.config import MIN_POLL_INTERVAL_MS
from mcp_log_watch_server.core.errors import LogWatchError
from mcp_log_watch_server.core.models import AnalysisOptions, LogFormat, WatchedFileSummary, WatchOptions
from mcp_log_watch_server.core.monitor import FileMonitor, normalize_path
from mcp_log_watch_server.core.rapid_debug import quick_scan, rapid_debug

DEFAULT_LIMIT = 10
HARD_LIMIT = 1000


class _Request(BaseModel):
    model_config = ConfigDict(extra="forbid", frozen=True)


class WatchLogFileRequest(_Request):
    file_path: str = Field(min_length=1)
    poll_interval_ms: int = Field(default=1000, ge=MIN_POLL_INTERVAL_MS)
    ignore_initial: bool = False
    use_polling: bool = True


class StopWatchingRequest(_Request):
    file_path: str = Field(min_length=1)


class GetRecentErrorsRequest(_Request):
    file_path: str | None = Field(default=None, min_length=1)
    limit: int = Field(default=DEFAULT_LIMIT, ge=1, le=HARD_LIMIT)


class AnalyzeLogRequest(_Request):
    log_text: str = Field(min_length=1)
    log_format: Literal["auto", "json", "plain"] = "auto"
    context_lines: int = Field(default=50, ge=0)


class LogTextRequest(_Request):
    log_text: str = Field(min_length=1)


def _ok(data: Any) -> dict[str, Any]:
    return {"success": True, "data": data}


def _fail(exc: Exception) -> dict[str, Any]:
    if isinstance(exc, ValidationError):
        message = "; ".join(
            f"{'.'.join(str(p) for p in err['loc']) or 'request'}: {err['msg']}" for err in exc.errors()
        )
        return {"success": False, "error": f"Invalid request: {message}", "error_type": "ValidationError"}
    return {"success": False, "error": str(exc), "error_type": type(exc).__name__}


def _check_log_size(log_text: str, max_log_size: int) -> None:
    size = len(log_text.encode("utf-8", errors="replace"))
    if size > max_log_size:
        raise ValueError(f"log_text is {size} bytes; the limit is {max_log_size} bytes")


def _summary_to_dict(s: WatchedFileSummary) -> dict[str, Any]:
    return {
        "path": s.path,
        "recentErrors": [f.to_wire() for f in s.recent_errors],
        "totalErrors": s.total_errors,
        "lastUpdate": s.last_update.isoformat(),
    }


async def watch_log_file_impl(monitor: FileMonitor, **kwargs: Any) -> dict[str, Any]:
    """Implementation for the `watch_log_file` MCP tool."""
    try:
        req = WatchLogFileRequest(**kwargs)
        record = await monitor.watch(
            req.file_path,
            WatchOptions(
                poll_interval_ms=req.poll_interval_ms,
                ignore_initial=req.ignore_initial,
                use_polling=req.use_polling,
            ),
        )
    except (ValidationError, LogWatchError, ValueError) as e:
        return _fail(e)
    return _ok(
        {
            "message": f"Started watching {record.path}",
            "path": record.path,
            "pollIntervalMs": record.options.poll_interval_ms,
        }
    )


async def stop_watching_impl(monitor: FileMonitor, **kwargs: Any) -> dict[str, Any]:
    """Implementation for the `stop_watching` MCP tool."""
    try:
        req = StopWatchingRequest(**kwargs)
        await monitor.stop_watching(req.file_path)
    except (ValidationError, LogWatchError) as e:
        return _fail(e)
    path = normalize_path(req.file_path)
    return _ok({"message": f"Stopped watching {path}", "path": path})


def list_watched_files_impl(monitor: FileMonitor) -> dict[str, Any]:
    """Implementation for the `list_watched_files` MCP tool."""
    return _ok([_summary_to_dict(s) for s in monitor.list_watched_files()])


def get_recent_errors_impl(monitor: FileMonitor, **kwargs: Any) -> dict[str, Any]:
    """Implementation for the `get_recent_errors` MCP tool."""
    try:
        req = GetRecentErrorsRequest(**kwargs)
        findings = monitor.get_recent_errors(req.file_path, req.limit)
    except (ValidationError, LogWatchError, ValueError) as e:
        return _fail(e)
    return _ok([f.to_wire() for f in findings])


async def analyze_log_impl(analyzer: Analyzer, *, max_log_size: int, **kwargs: Any) -> dict[str, Any]:
    """Implementation for the one-off `analyze_log` MCP tool."""
    try:
        req = AnalyzeLogRequest(**kwargs)
        _check_log_size(req.log_text, max_log_size)
        finding = await analyzer.analyze(
            req.log_text,
            AnalysisOptions(log_format=LogFormat(req.log_format), context_lines=req.context_lines),
        )
    except (ValidationError, LogWatchError, ValueError) as e:
        return _fail(e)
    return _ok(finding.to_wire())


def quick_scan_impl(*, max_log_size: int, **kwargs: Any) -> dict[str, Any]:
    """Implementation for the backend-free `quick_scan` MCP tool."""
    try:
        req = LogTextRequest(**kwargs)
        _check_log_size(req.log_text, max_log_size)
    except ValueError as e:
        return _fail(e)
    result = quick_scan(req.log_text)
    return _ok({**result.to_wire(), "message": f"Quick scan completed in {result.time_ms:.1f}ms"})


async def rapid_debug_impl(analyzer: Analyzer, *, max_log_size: int, **kwargs: Any) -> dict[str, Any]:
    """Implementation for the `rapid_debug` MCP tool."""
    try:
        req = LogTextRequest(**kwargs)
        _check_log_size(req.log_text, max_log_size)
        result = await rapid_debug(req.log_text, analyzer)
    except (ValidationError, LogWatchError, ValueError) as e:
        return _fail(e)
    return _ok(
        {
            **result.to_wire(),
            "message": f"Debugging completed in {result.time_to_analysis_ms:.1f}ms",
            "logLength": len(req.log_text),
        }
    )
