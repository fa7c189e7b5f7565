"""Incremental log file monitor.

Each watched path owns one WatchedFile record. A poll task (or a watchdog
notifier) schedules growth ticks; a tick reads only the bytes appended since
the last successful pass, and hands them to the analyzer when they look like
an error. The byte offset advances only after a pass completes, so a failed
range is retried together with any later growth.

Everything runs on one event loop. Registry mutations happen only between
suspension points (stat, read, analyze, notifier shutdown), and the per-record
``busy`` flag keeps at most one handler running per path.
"""

from __future__ import annotations

import asyncio
import codecs
import logging
import os
from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import UTC, datetime

import aiofiles
import aiofiles.os
from pydantic import ValidationError

from .analysis.fallback import fallback_finding
from .analysis.models import Analyzer
from .config import MonitorSettings, resolve_settings
from .errors import AnalysisUnavailable, NotWatched, PathUnreadable, StopAllError
from .history import FindingHistory, merge_recent, recent_for, summarize
from .models import AnalysisOptions, Finding, LogFormat, WatchedFileSummary, WatchOptions
from .notify import ChangeNotifier
from .patterns import extract_error_patterns

logger = logging.getLogger(__name__)

# Options used for every incremental analysis pass.
WATCH_ANALYSIS_OPTIONS = AnalysisOptions(log_format=LogFormat.AUTO, context_lines=20)

FindingCallback = Callable[[str, Finding], None]


@dataclass(slots=True, eq=False)
class WatchedFile:
    """Mutable watch state for one path."""

    path: str
    options: WatchOptions
    last_byte_offset: int
    last_update: datetime
    history: FindingHistory = field(default_factory=FindingHistory)
    busy: bool = False
    poll_task: asyncio.Task[None] | None = None
    notifier: ChangeNotifier | None = None


def normalize_path(path: str | os.PathLike[str]) -> str:
    """Registry key for a path: absolute, user-expanded, symlinks kept."""
    return os.path.abspath(os.path.expanduser(os.fspath(path)))


async def _read_range(path: str, start: int, end: int, *, encoding: str = "utf-8") -> tuple[str, int]:
    """Read bytes [start, end) and decode them.

    Returns the text and the offset just past the last complete character; a
    multi-byte sequence cut off at ``end`` is left for the next read.
    """
    async with aiofiles.open(path, mode="rb") as f:
        await f.seek(start)
        data = await f.read(end - start)
    decoder = codecs.getincrementaldecoder(encoding)(errors="replace")
    text = decoder.decode(data, final=False)
    pending, _ = decoder.getstate()
    return text, start + len(data) - len(pending)


class FileMonitor:
    """Owns the path -> WatchedFile registry and the shared analyzer."""

    def __init__(
        self,
        analyzer: Analyzer,
        *,
        settings: MonitorSettings | None = None,
        on_finding: FindingCallback | None = None,
    ) -> None:
        self._analyzer = analyzer
        self._settings = settings or resolve_settings()
        self._on_finding = on_finding
        self._files: dict[str, WatchedFile] = {}
        self._inflight: set[asyncio.Task[bool]] = set()

    @property
    def settings(self) -> MonitorSettings:
        return self._settings

    def __contains__(self, path: object) -> bool:
        return isinstance(path, (str, os.PathLike)) and normalize_path(path) in self._files

    def get(self, path: str | os.PathLike[str]) -> WatchedFile:
        """Return the live record for ``path`` or raise NotWatched."""
        key = normalize_path(path)
        record = self._files.get(key)
        if record is None:
            raise NotWatched(key)
        return record

    def _is_live(self, record: WatchedFile) -> bool:
        return self._files.get(record.path) is record

    # -- lifecycle -----------------------------------------------------------------

    async def watch(self, path: str | os.PathLike[str], options: WatchOptions | None = None) -> WatchedFile:
        """Start (or restart) watching ``path``."""
        key = normalize_path(path)
        if options is None:
            options = WatchOptions(poll_interval_ms=self._settings.default_poll_interval_ms)
        if options.poll_interval_ms < self._settings.min_poll_interval_ms:
            raise ValueError(f"poll_interval_ms must be >= {self._settings.min_poll_interval_ms}")

        if not await aiofiles.os.path.isfile(key):
            raise PathUnreadable(key, "not found or not a regular file")
        if not await asyncio.to_thread(os.access, key, os.R_OK):
            raise PathUnreadable(key, "permission denied")
        try:
            st = await aiofiles.os.stat(key)
        except OSError as e:
            raise PathUnreadable(key, str(e)) from e

        if key in self._files:
            await self.stop_watching(key)

        record = WatchedFile(
            path=key,
            options=options,
            last_byte_offset=0 if not options.ignore_initial else st.st_size,
            last_update=datetime.now(UTC),
        )
        # A concurrent watch() of the same path may have registered meanwhile.
        previous = self._files.get(key)
        if previous is not None:
            await self._release(previous)
        self._files[key] = record

        if options.use_polling:
            record.poll_task = asyncio.create_task(self._poll_loop(record), name=f"log-watch:{key}")
        else:
            loop = asyncio.get_running_loop()
            record.notifier = ChangeNotifier(key, lambda: self._schedule_tick(record), loop)
            await asyncio.to_thread(record.notifier.start)

        logger.info(
            "Started watching %s (offset=%s, poll=%sms, polling=%s)",
            key,
            record.last_byte_offset,
            options.poll_interval_ms,
            options.use_polling,
        )

        if not options.ignore_initial:
            # Initial content is treated as if it had just been appended.
            await self._tick(record)

        return record

    async def stop_watching(self, path: str | os.PathLike[str]) -> None:
        """Stop watching ``path``; an in-flight handler finishes as a no-op."""
        key = normalize_path(path)
        record = self._files.pop(key, None)
        if record is None:
            raise NotWatched(key)
        await self._release(record)
        logger.info("Stopped watching %s", key)

    async def _release(self, record: WatchedFile) -> None:
        task, record.poll_task = record.poll_task, None
        notifier, record.notifier = record.notifier, None
        if task is not None:
            task.cancel()
            await asyncio.gather(task, return_exceptions=True)
        if notifier is not None:
            await asyncio.to_thread(notifier.stop)

    async def stop_all(self) -> None:
        """Stop every watch; failures are collected and raised together."""
        paths = list(self._files)
        results = await asyncio.gather(*(self.stop_watching(p) for p in paths), return_exceptions=True)
        failures = [r for r in results if isinstance(r, BaseException)]
        if failures:
            raise StopAllError(failures)

    async def aclose(self) -> None:
        """Stop all watches and cancel handlers still running (shutdown path)."""
        try:
            await self.stop_all()
        except StopAllError as e:
            for failure in e.failures:
                logger.warning("Failed to stop watch cleanly: %s", failure)
        pending = list(self._inflight)
        for task in pending:
            task.cancel()
        await asyncio.gather(*pending, return_exceptions=True)

    # -- change handling ---------------------------------------------------------

    async def _poll_loop(self, record: WatchedFile) -> None:
        interval = record.options.poll_interval_ms / 1000
        while True:
            await asyncio.sleep(interval)
            self._schedule_tick(record)

    def _schedule_tick(self, record: WatchedFile) -> None:
        # Handlers run as their own tasks so cancelling the poll loop never
        # interrupts an in-flight analysis.
        if record.busy or not self._is_live(record):
            return
        task = asyncio.create_task(self._tick(record))
        self._inflight.add(task)
        task.add_done_callback(self._inflight.discard)

    async def check(self, path: str | os.PathLike[str]) -> bool:
        """Run one growth tick for ``path`` now. Returns True if new bytes were consumed."""
        return await self._tick(self.get(path))

    async def _tick(self, record: WatchedFile) -> bool:
        if record.busy:
            logger.debug("Skipping tick for %s: previous change still being processed", record.path)
            return False
        if not self._is_live(record):
            return False

        record.busy = True
        try:
            return await self._consume_growth(record)
        except (OSError, AnalysisUnavailable) as e:
            logger.warning("Error processing file change for %s: %s", record.path, e)
            return False
        except Exception:
            logger.exception("Unexpected error processing file change for %s", record.path)
            return False
        finally:
            record.busy = False

    async def _consume_growth(self, record: WatchedFile) -> bool:
        st = await aiofiles.os.stat(record.path)
        size = st.st_size
        start = record.last_byte_offset
        if size <= start:
            if size < start:
                logger.debug("%s shrank (%s < %s); waiting for growth past the offset", record.path, size, start)
            return False

        text, consumed = await _read_range(record.path, start, size)
        if consumed <= start:
            return False

        finding: Finding | None = None
        if text.strip() and extract_error_patterns(text):
            finding = await self._analyze(text)

        if not self._is_live(record):
            logger.debug("Discarding late result for %s: watch was stopped", record.path)
            return False

        if finding is not None:
            record.history.append(finding)
            logger.info("New error detected in %s: %s", record.path, finding.root_cause)

        record.last_update = datetime.now(UTC)
        record.last_byte_offset = consumed

        if finding is not None and self._on_finding is not None:
            try:
                self._on_finding(record.path, finding)
            except Exception:
                logger.exception("on_finding callback failed for %s", record.path)
        return True

    async def _analyze(self, text: str) -> Finding:
        result = await self._analyzer.analyze(text, WATCH_ANALYSIS_OPTIONS)
        if isinstance(result, Finding):
            return result
        try:
            return Finding.model_validate(result)
        except ValidationError as e:
            logger.warning("Analyzer returned an invalid finding; using fallback: %s", e)
            return fallback_finding(text)

    # -- history -------------------------------------------------------------------

    def list_watched_files(self) -> list[WatchedFileSummary]:
        return summarize(self._files.values())

    def get_recent_errors(self, path: str | os.PathLike[str] | None = None, limit: int = 10) -> list[Finding]:
        """Recent findings for one file (stored order) or for all files (newest first)."""
        if path is not None:
            return recent_for(self.get(path).history, limit)
        return merge_recent((r.history for r in self._files.values()), limit)
