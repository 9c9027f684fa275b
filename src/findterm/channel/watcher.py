"""Sentinel file watching using polling.

Polling follows the same approach as the config watcher: portable, no native
notification dependency. The sentinel is rewritten in place by the external
scripts, so an in-place content change is reported as CHANGE; the file
disappearing or being replaced by a different file is reported as RENAME.

The poll interval is a timer of its own, next to the forced-disposal delay.
Nothing waits on it directly: callers await the events it delivers, and a
native notifier can replace it behind the SentinelWatcher protocol.
"""

from __future__ import annotations

import asyncio
import os
from collections.abc import Callable
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Protocol

from findterm.logging import get_logger

log = get_logger("channel.watcher")

DEFAULT_POLL_INTERVAL = 0.1


class SentinelEvent(Enum):
    """What happened to the sentinel file."""

    CHANGE = "change"
    RENAME = "rename"


class SentinelWatcher(Protocol):
    """Watches one file and reports SentinelEvents to a callback."""

    def start(self, callback: Callable[[SentinelEvent], None]) -> None:
        """Begin delivering events."""
        ...

    def stop(self) -> None:
        """Stop delivering events. Idempotent."""
        ...

    def rebaseline(self) -> None:
        """Treat the file's current state as unchanged."""
        ...


@dataclass(frozen=True)
class _Snapshot:
    inode: int
    mtime_ns: int
    size: int


def _snapshot(path: Path) -> _Snapshot | None:
    try:
        stat = os.stat(path)
    except FileNotFoundError:
        return None
    return _Snapshot(inode=stat.st_ino, mtime_ns=stat.st_mtime_ns, size=stat.st_size)


class PollingSentinelWatcher:
    """Polls the sentinel's stat data and reports changes.

    Example:
        watcher = PollingSentinelWatcher(Path("/tmp/findterm-x/snitch"))
        watcher.start(lambda event: print(event))
    """

    def __init__(self, path: Path, poll_interval: float = DEFAULT_POLL_INTERVAL) -> None:
        self._path = path
        self._poll_interval = max(0.01, poll_interval)
        self._last: _Snapshot | None = _snapshot(path)
        self._running = False
        self._task: asyncio.Task[None] | None = None

    @property
    def path(self) -> Path:
        return self._path

    def rebaseline(self) -> None:
        self._last = _snapshot(self._path)

    def check(self) -> SentinelEvent | None:
        """Compare the current stat data with the last observed state."""
        try:
            current = _snapshot(self._path)
        except OSError as e:
            log.warning("Error checking %s: %s", self._path, e)
            return None

        previous = self._last
        self._last = current

        if previous is None:
            return None
        if current is None or current.inode != previous.inode:
            return SentinelEvent.RENAME
        if current.mtime_ns != previous.mtime_ns or current.size != previous.size:
            return SentinelEvent.CHANGE
        return None

    async def _poll_loop(self, callback: Callable[[SentinelEvent], None]) -> None:
        try:
            while self._running:
                await asyncio.sleep(self._poll_interval)
                if not self._running:
                    break
                event = self.check()
                if event is None:
                    continue
                try:
                    callback(event)
                except Exception as e:
                    log.error("Error in sentinel callback: %s", e)
        except asyncio.CancelledError:
            log.debug("Sentinel watcher cancelled")
        finally:
            self._running = False

    def start(self, callback: Callable[[SentinelEvent], None]) -> None:
        """Start polling. Must be called from within a running event loop."""
        if self._running:
            log.warning("Sentinel watcher already running")
            return
        self._running = True
        self._task = asyncio.create_task(self._poll_loop(callback))
        log.debug("Watching %s (interval: %.2fs)", self._path, self._poll_interval)

    def stop(self) -> None:
        self._running = False
        if self._task and not self._task.done():
            self._task.cancel()
        self._task = None

    def is_running(self) -> bool:
        return self._running
