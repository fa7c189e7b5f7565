"""Bounded per-file finding history and cross-file aggregation."""

from __future__ import annotations

from collections import deque
from collections.abc import Iterable, Iterator
from datetime import datetime
from typing import Protocol

from .models import Finding, WatchedFileSummary

HISTORY_LIMIT = 100
SUMMARY_RECENT = 5


class FindingHistory:
    """Findings for one file, oldest first; the oldest entry is evicted past ``limit``."""

    __slots__ = ("_items",)

    def __init__(self, limit: int = HISTORY_LIMIT) -> None:
        if limit < 1:
            raise ValueError("limit must be >= 1")
        self._items: deque[Finding] = deque(maxlen=limit)

    @property
    def limit(self) -> int:
        return self._items.maxlen or 0

    def append(self, finding: Finding) -> None:
        self._items.append(finding)

    def tail(self, n: int) -> list[Finding]:
        """Last ``n`` findings, oldest first."""
        if n <= 0:
            return []
        items = list(self._items)
        return items[-n:]

    def snapshot(self) -> list[Finding]:
        return list(self._items)

    def __len__(self) -> int:
        return len(self._items)

    def __iter__(self) -> Iterator[Finding]:
        return iter(list(self._items))


class HistorySource(Protocol):
    """Anything that carries a path, a history and a last-update time."""

    path: str
    history: FindingHistory
    last_update: datetime


def _check_limit(limit: int) -> None:
    if limit < 1:
        raise ValueError("limit must be > 0")


def summarize(records: Iterable[HistorySource], *, recent: int = SUMMARY_RECENT) -> list[WatchedFileSummary]:
    """One summary per record with its last few findings."""
    return [
        WatchedFileSummary(
            path=r.path,
            recent_errors=r.history.tail(recent),
            total_errors=len(r.history),
            last_update=r.last_update,
        )
        for r in records
    ]


def recent_for(history: FindingHistory, limit: int) -> list[Finding]:
    """Last ``min(limit, len(history))`` findings in stored order."""
    _check_limit(limit)
    return history.tail(limit)


def merge_recent(histories: Iterable[FindingHistory], limit: int) -> list[Finding]:
    """Newest-first merge of several histories, capped at ``limit``."""
    _check_limit(limit)
    merged: list[Finding] = []
    for h in histories:
        merged.extend(h.snapshot())
    merged.sort(key=lambda f: f.metadata.timestamp, reverse=True)
    return merged[:limit]
