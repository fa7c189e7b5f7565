"""MCP prompt registry.

Prompts are predefined conversation/workflow templates that the client can invoke explicitly.
"""

from __future__ import annotations

from typing import Any

from mcp.server.fastmcp import FastMCP


def register_prompts(mcp: FastMCP) -> None:
    """Register prompt templates on the MCP server."""

    @mcp.prompt()
    def investigate_recent_errors(file_path: str | None = None, limit: int = 10) -> list[dict[str, Any]]:
        """Build a prompt that reviews findings collected by the watcher."""
        call_lines = [f"- limit: {limit}"]
        if file_path is not None:
            call_lines.insert(0, f"- file_path: {file_path}")
        call_block = "\n".join(call_lines)
        return [
            {
                "role": "system",
                "content": (
                    "You are a senior incident triage assistant for backend services. "
                    "Provide concise, evidence-based summaries from findings produced by a log watcher. "
                    "Do not invent details; if the evidence is insufficient, say so."
                ),
            },
            {
                "role": "user",
                "content": (
                    "Review recent errors using get_recent_errors. Follow this workflow:\n"
                    "- Call get_recent_errors first with the parameters below.\n"
                    "- If the result is a failure envelope (file not watched), call "
                    "list_watched_files and report which files are being monitored.\n"
                    "- If no findings are returned, state that clearly.\n"
                    "- Group findings that share a root cause; prefer higher severity and confidence.\n"
                    "- Quote stack frames only from the findings; do not fabricate lines.\n\n"
                    "Call get_recent_errors with:\n"
                    f"{call_block}\n\n"
                    "Return this structure:\n"
                    "1) What happened (1-3 bullets)\n"
                    "2) Most likely root cause (1-2 sentences; say 'Unknown' if unclear)\n"
                    "3) Next actions (2-4 bullets, drawn from suggestedFixes where possible)\n"
                ),
            },
            {
                "role": "user",
                "content": [
                    {"type": "text", "text": "Watcher status is also available via:"},
                    {"type": "resource", "uri": "app://log-watch/watched-files"},
                ],
            },
        ]

    @mcp.prompt()
    def create_bug_report(title: str, file_path: str, steps: str = "") -> list[dict[str, Any]]:
        """Build a prompt that produces a Markdown bug report."""
        return [
            {
                "role": "system",
                "content": (
                    "Create a high-quality bug report in Markdown. Redact secrets, credentials, "
                    "or PII if present."
                ),
            },
            {
                "role": "user",
                "content": (
                    f"Title: {title}\n\n"
                    "Please create a bug report with sections:\n"
                    "- Summary\n"
                    "- Environment (if missing, say 'unknown')\n"
                    "- Steps to Reproduce\n"
                    "- Expected vs Actual\n"
                    "- Evidence (from findings)\n"
                    "- Suspected Cause\n"
                    "- Suggested Fix / Next Actions\n\n"
                    f"Steps provided:\n{steps}\n\n"
                    f"Use tool get_recent_errors with file_path={file_path}. If the file is not "
                    "being watched, call watch_log_file on it first.\n"
                ),
            },
        ]
