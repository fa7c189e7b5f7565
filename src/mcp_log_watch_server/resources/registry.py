"""MCP resource registry.

Resources are addressable by URI and can be fetched by the MCP client on demand.
"""

from __future__ import annotations

from typing import Any

from mcp.server.fastmcp import FastMCP

from mcp_log_watch_server.core.models import Finding
from mcp_log_watch_server.core.monitor import FileMonitor
from mcp_log_watch_server.core.patterns import ERROR_KEYWORDS
from mcp_log_watch_server.tools.watch import get_recent_errors_impl, list_watched_files_impl


def register_resources(mcp: FastMCP, monitor: FileMonitor) -> None:
    """Register resource handlers on the MCP server."""

    @mcp.resource("app://log-watch/help")
    def help_resource() -> str:
        """Return a short list of available resource URIs."""
        return (
            "Resources:\n"
            "- app://log-watch/help\n"
            "- app://log-watch/watched-files (status of monitored files)\n"
            "- app://log-watch/recent-errors (latest findings across all files)\n"
            "- app://log-watch/schemas/finding\n"
            "- app://log-watch/config/error-keywords\n"
            f"\nWatching {len(monitor.list_watched_files())} file(s).\n"
        )

    @mcp.resource("app://log-watch/watched-files")
    def watched_files() -> dict[str, Any]:
        """Return the status of all currently monitored log files."""
        return list_watched_files_impl(monitor)

    @mcp.resource("app://log-watch/recent-errors")
    def recent_errors() -> dict[str, Any]:
        """Return the latest findings from all monitored files."""
        return get_recent_errors_impl(monitor)

    @mcp.resource("app://log-watch/schemas/finding")
    def finding_schema() -> dict[str, Any]:
        """Return the JSON schema for findings."""
        return Finding.model_json_schema(by_alias=True)

    @mcp.resource("app://log-watch/config/error-keywords")
    def error_keywords() -> list[str]:
        """Return the keywords that mark a line as error-like."""
        return list(ERROR_KEYWORDS)
