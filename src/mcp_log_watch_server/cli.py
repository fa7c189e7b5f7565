from __future__ import annotations

import argparse
import asyncio
import json
import sys
from pathlib import Path

from mcp_log_watch_server.core.analysis import LocalAnalyzer
from mcp_log_watch_server.core.config import MIN_POLL_INTERVAL_MS, resolve_settings
from mcp_log_watch_server.core.errors import LogWatchError
from mcp_log_watch_server.core.models import Finding, WatchOptions
from mcp_log_watch_server.core.monitor import FileMonitor
from mcp_log_watch_server.core.patterns import (
    DEFAULT_MAX_TOKENS,
    detect_format,
    extract_error_patterns,
    extract_stack_traces,
    truncate_to_budget,
)
from mcp_log_watch_server.server.log_server import default_analyzer


def _poll_interval(s: str) -> int:
    value = int(s)
    if value < MIN_POLL_INTERVAL_MS:
        raise argparse.ArgumentTypeError(f"poll interval must be >= {MIN_POLL_INTERVAL_MS}ms")
    return value


def _cmd_scan(args: argparse.Namespace) -> None:
    path = Path(args.log_path)
    if not path.is_file():
        raise FileNotFoundError(f"Log file not found: {path}")
    text = path.read_text(encoding="utf-8", errors="replace")

    matches = extract_error_patterns(text)
    frames = extract_stack_traces(text)

    print(f"format: {detect_format(text).value}")
    print(f"error windows: {len(matches)}")
    for m in matches:
        print(f"  line {m.line_no} [{m.keyword}]")
    print(f"stack frames: {len(frames)}")
    for frame in frames:
        print(f"  {frame}")
    print("\n--- budgeted excerpt ---")
    print(truncate_to_budget(text, args.max_tokens))


def _print_finding(path: str, finding: Finding) -> None:
    print(json.dumps({"path": path, "finding": finding.to_wire()}), flush=True)


async def _watch(args: argparse.Namespace) -> None:
    analyzer = LocalAnalyzer() if args.offline else default_analyzer()
    monitor = FileMonitor(analyzer, settings=resolve_settings(), on_finding=_print_finding)
    options = WatchOptions(
        poll_interval_ms=args.poll_interval_ms,
        ignore_initial=args.ignore_initial,
        use_polling=not args.native,
    )
    try:
        for p in args.log_paths:
            await monitor.watch(p, options)
            print(f"Watching {p}", file=sys.stderr)
        await asyncio.Event().wait()
    finally:
        await monitor.aclose()


def main() -> None:
    """CLI entrypoint for local use without an MCP client."""
    p = argparse.ArgumentParser(description="Watch growing log files for new errors.")
    sub = p.add_subparsers(dest="command", required=True)

    scan = sub.add_parser("scan", help="Run the error heuristics over a file once")
    scan.add_argument("log_path")
    scan.add_argument("--max-tokens", type=int, default=DEFAULT_MAX_TOKENS, help="Token budget for the excerpt")

    watch = sub.add_parser("watch", help="Watch files and print each new finding as a JSON line")
    watch.add_argument("log_paths", nargs="+")
    watch.add_argument("--poll-interval-ms", type=_poll_interval, default=1000)
    watch.add_argument("--ignore-initial", action="store_true", help="Skip content present at start")
    watch.add_argument("--native", action="store_true", help="Use filesystem notifications instead of polling")
    watch.add_argument("--offline", action="store_true", help="Never call the AI backend")

    args = p.parse_args()

    try:
        if args.command == "scan":
            _cmd_scan(args)
        else:
            asyncio.run(_watch(args))
    except KeyboardInterrupt:
        pass
    except FileNotFoundError as e:
        print(str(e), file=sys.stderr)
        raise SystemExit(2)
    except (LogWatchError, ValueError) as e:
        print(f"Error: {e}", file=sys.stderr)
        raise SystemExit(2)


if __name__ == "__main__":
    main()
