"""MCP server entrypoint (stdio transport).

This module wires together:
- Tools: watch/stop/list files and fetch recent findings, plus one-off analysis and rapid triage
- Resources: watcher status and schemas addressable by URI
- Prompts: reusable conversation templates that clients can invoke

Run locally (stdio):
    python -m mcp_log_watch_server
"""

from __future__ import annotations

import logging
import os
import sys
from collections.abc import AsyncIterator, Sequence
from contextlib import asynccontextmanager
from typing import Any

from mcp.server.fastmcp import FastMCP

from mcp_log_watch_server.core.analysis import Analyzer, GeminiAnalyzer, LocalAnalyzer
from mcp_log_watch_server.core.config import resolve_settings
from mcp_log_watch_server.core.monitor import FileMonitor
from mcp_log_watch_server.prompts.registry import register_prompts
from mcp_log_watch_server.resources.registry import register_resources
from mcp_log_watch_server.tools.watch import (
    analyze_log_impl,
    get_recent_errors_impl,
    list_watched_files_impl,
    quick_scan_impl,
    rapid_debug_impl,
    stop_watching_impl,
    watch_log_file_impl,
)

LOGGER = logging.getLogger(__name__)


def _configure_logging() -> None:
    """Configure a reasonable default logging setup.

    stdout carries the MCP transport, so logs go to stderr only.
    """
    level_name = os.getenv("LOG_WATCH_LOG_LEVEL", "INFO").upper()
    level = getattr(logging, level_name, logging.INFO)
    logging.basicConfig(
        stream=sys.stderr,
        level=level,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


def default_analyzer() -> Analyzer:
    """Gemini when an API key is configured, otherwise the local heuristic analyzer."""
    if os.getenv("GEMINI_API_KEY") or os.getenv("GOOGLE_API_KEY"):
        return GeminiAnalyzer()
    LOGGER.warning("GEMINI_API_KEY is not set; findings will come from local heuristics only")
    return LocalAnalyzer()


def build_server(monitor: FileMonitor, analyzer: Analyzer) -> FastMCP:
    """Create the FastMCP app bound to one monitor and one shared analyzer."""

    @asynccontextmanager
    async def lifespan(_: FastMCP) -> AsyncIterator[None]:
        try:
            yield
        finally:
            await monitor.aclose()

    mcp = FastMCP("log-watch", json_response=True, lifespan=lifespan)
    register_resources(mcp, monitor)
    register_prompts(mcp)

    @mcp.tool()
    async def watch_log_file(
        file_path: str,
        poll_interval_ms: int = 1000,
        ignore_initial: bool = False,
        use_polling: bool = True,
    ) -> dict[str, Any]:
        """Start monitoring a log file for newly appended errors.

        Parameters
        ----------
        file_path:
            Path to a local log file. Watching an already-watched file restarts the watch.
        poll_interval_ms:
            Polling interval in milliseconds (>= 100).
        ignore_initial:
            When false, content already in the file is analyzed once at start.
        use_polling:
            When false, native filesystem notifications are used instead of polling.

        Returns
        -------
        dict:
            {"success": true, "data": {"path": str, "pollIntervalMs": int}}
        """
        return await watch_log_file_impl(
            monitor,
            file_path=file_path,
            poll_interval_ms=poll_interval_ms,
            ignore_initial=ignore_initial,
            use_polling=use_polling,
        )

    @mcp.tool()
    async def stop_watching(file_path: str) -> dict[str, Any]:
        """Stop monitoring a specific log file."""
        return await stop_watching_impl(monitor, file_path=file_path)

    @mcp.tool()
    def list_watched_files() -> dict[str, Any]:
        """List all monitored log files with their last five findings."""
        return list_watched_files_impl(monitor)

    @mcp.tool()
    def get_recent_errors(file_path: str | None = None, limit: int = 10) -> dict[str, Any]:
        """Get recent findings for one file (oldest first) or all files (newest first)."""
        return get_recent_errors_impl(monitor, file_path=file_path, limit=limit)

    @mcp.tool()
    async def analyze_log(log_text: str, log_format: str = "auto", context_lines: int = 50) -> dict[str, Any]:
        """Analyze a block of log text and return a structured finding."""
        return await analyze_log_impl(
            analyzer,
            max_log_size=monitor.settings.max_log_size,
            log_text=log_text,
            log_format=log_format,
            context_lines=context_lines,
        )

    @mcp.tool()
    async def rapid_debug(log_text: str) -> dict[str, Any]:
        """Triage a block of log text: issue groups, quick fixes, debug commands and next steps."""
        return await rapid_debug_impl(analyzer, max_log_size=monitor.settings.max_log_size, log_text=log_text)

    @mcp.tool()
    def quick_scan(log_text: str) -> dict[str, Any]:
        """Count error-like lines and flag critical content without calling the AI backend."""
        return quick_scan_impl(max_log_size=monitor.settings.max_log_size, log_text=log_text)

    return mcp


def main(argv: Sequence[str] | None = None) -> None:
    """Start the MCP server over stdio."""
    _configure_logging()
    _ = argv or sys.argv[1:]
    try:
        settings = resolve_settings()
        analyzer = default_analyzer()
    except ValueError as e:
        print(f"Configuration error: {e}", file=sys.stderr)
        raise SystemExit(2)

    monitor = FileMonitor(analyzer, settings=settings)
    LOGGER.debug("Starting MCP server (transport=stdio)")
    build_server(monitor, analyzer).run(transport="stdio")


if __name__ == "__main__":
    main()
