from __future__ import annotations

import asyncio
from collections.abc import Callable
from datetime import UTC, datetime, timedelta
from pathlib import Path

import pytest

from mcp_log_watch_server.core.models import AnalysisOptions, Finding, FindingMetadata


class FakeAnalyzer:
    """Records every call; returns findings with strictly increasing timestamps."""

    def __init__(self, *, base: datetime | None = None) -> None:
        self.calls: list[tuple[str, AnalysisOptions]] = []
        self.base = base or datetime(2025, 12, 30, 8, 0, 0, tzinfo=UTC)
        self.fail_with: Exception | None = None
        self.gate: asyncio.Event | None = None
        self.started = asyncio.Event()

    async def analyze(self, text: str, options: AnalysisOptions) -> Finding:
        self.calls.append((text, options))
        self.started.set()
        if self.gate is not None:
            await self.gate.wait()
        if self.fail_with is not None:
            raise self.fail_with
        n = len(self.calls)
        return make_finding(f"finding {n}", self.base + timedelta(seconds=n))


def make_finding(root_cause: str, ts: datetime, *, severity: str = "high") -> Finding:
    return Finding(
        root_cause=root_cause,
        confidence=80,
        suggested_fixes=["restart"],
        metadata=FindingMetadata(error_type="runtime", severity=severity, timestamp=ts),
    )


@pytest.fixture
def analyzer() -> FakeAnalyzer:
    return FakeAnalyzer()


@pytest.fixture(name="make_finding")
def make_finding_fixture() -> Callable[..., Finding]:
    return make_finding


@pytest.fixture
def append() -> Callable[[Path, str], None]:
    def _append(path: Path, text: str) -> None:
        with path.open("a", encoding="utf-8") as f:
            f.write(text)

    return _append


@pytest.fixture
def write_log() -> Callable[[Path], None]:
    def _write(path: Path) -> None:
        path.write_text(
            "\n".join(
                [
                    "2025-12-30T08:12:01Z [INFO] service started",
                    "2025-12-30T08:12:03Z [WARNING] retrying request id=abc123",
                    "2025-12-30T08:12:04Z [ERROR] upstream timeout route=/api/v1/items",
                    "    at fetchItems (/srv/app/items.js:42:13)",
                    "2025-12-30T08:12:05Z [INFO] request finished",
                ]
            )
            + "\n",
            encoding="utf-8",
        )

    return _write
