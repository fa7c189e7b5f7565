"""Exception taxonomy for the watch core."""

from __future__ import annotations


class LogWatchError(Exception):
    """Base class for errors raised by the watch core."""


class PathUnreadable(LogWatchError):
    """Path is missing, not a regular file, or not readable."""

    def __init__(self, path: str, reason: str) -> None:
        super().__init__(f"Cannot watch file {path}: {reason}")
        self.path = path
        self.reason = reason


class NotWatched(LogWatchError, LookupError):
    """Operation referenced a path with no active watch."""

    def __init__(self, path: str) -> None:
        super().__init__(f"File {path} is not being watched")
        self.path = path


class AnalysisUnavailable(LogWatchError, RuntimeError):
    """The analysis backend failed for a chunk of text."""


class StopAllError(LogWatchError):
    """One or more watches failed to stop cleanly."""

    def __init__(self, failures: list[BaseException]) -> None:
        super().__init__(f"{len(failures)} watch(es) failed to stop: {failures[0]}")
        self.failures = failures
