"""Native filesystem change notifications bridged onto an asyncio loop."""

from __future__ import annotations

import asyncio
import logging
import os
from collections.abc import Callable

from watchdog.events import FileSystemEvent, FileSystemEventHandler
from watchdog.observers import Observer

logger = logging.getLogger(__name__)


class _SingleFileHandler(FileSystemEventHandler):
    def __init__(self, path: str, callback: Callable[[], None], loop: asyncio.AbstractEventLoop) -> None:
        self.path = os.path.abspath(path)
        self.callback = callback
        self.loop = loop

    def _dispatch_if_ours(self, event: FileSystemEvent) -> None:
        if event.is_directory:
            return
        if os.path.abspath(os.fsdecode(event.src_path)) != self.path:
            return
        # Observer thread -> event loop thread.
        if not self.loop.is_closed():
            self.loop.call_soon_threadsafe(self.callback)

    def on_modified(self, event: FileSystemEvent) -> None:
        self._dispatch_if_ours(event)

    def on_created(self, event: FileSystemEvent) -> None:
        self._dispatch_if_ours(event)


class ChangeNotifier:
    """Calls ``callback`` on the event loop whenever ``path`` is modified."""

    def __init__(self, path: str, callback: Callable[[], None], loop: asyncio.AbstractEventLoop) -> None:
        self.path = path
        self._handler = _SingleFileHandler(path, callback, loop)
        self._observer = Observer()

    def start(self) -> None:
        # watchdog watches directories; filter down to the one file in the handler.
        self._observer.schedule(self._handler, os.path.dirname(os.path.abspath(self.path)), recursive=False)
        self._observer.daemon = True
        self._observer.start()
        logger.debug("Native change notifications started for %s", self.path)

    def stop(self, timeout: float = 2.0) -> None:
        """Stop the observer thread (blocking)."""
        self._observer.stop()
        if self._observer.is_alive():
            self._observer.join(timeout)
        logger.debug("Native change notifications stopped for %s", self.path)

    def is_alive(self) -> bool:
        return self._observer.is_alive()
