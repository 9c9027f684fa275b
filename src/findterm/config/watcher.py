"""Config file watcher for automatic reload on changes.

Uses polling-based approach for cross-platform compatibility without
additional dependencies. Monitors config file modification times.
"""

from __future__ import annotations

import asyncio
import contextlib
import logging
from collections.abc import Callable
from pathlib import Path
from typing import Any

from findterm.config.loader import load_config
from findterm.config.paths import get_config_paths
from findterm.config.schema import Config

_log = logging.getLogger("findterm.config.watcher")

DEFAULT_POLL_INTERVAL = 2.0


class ConfigWatcher:
    """Watches config files and hands a fresh snapshot to a callback on change.

    The callback receives the new Config; the watcher keeps no reference to
    it, so the receiver owns the current snapshot.
    """

    def __init__(
        self,
        on_change: Callable[[Config], Any],
        project_root: str | None = None,
        overrides: dict[str, Any] | None = None,
        poll_interval: float = DEFAULT_POLL_INTERVAL,
    ) -> None:
        """Initialize the config watcher.

        Args:
            on_change: Called with the reloaded Config. May return an
                awaitable, which is awaited before the next poll.
            project_root: Optional project directory to watch.
            overrides: Overrides re-applied on every reload.
            poll_interval: How often to check for changes (seconds).
        """
        self._on_change = on_change
        self._project_root = project_root
        self._overrides = overrides
        self._poll_interval = poll_interval
        self._running = False
        self._task: asyncio.Task[None] | None = None
        self._mtimes: dict[Path, float] = {}

    def _check_mtimes(self) -> dict[Path, float]:
        """Get current modification times for all config files."""
        mtimes: dict[Path, float] = {}
        for path in get_config_paths(self._project_root):
            if path.exists():
                with contextlib.suppress(OSError):
                    mtimes[path] = path.stat().st_mtime
        return mtimes

    def detect_changes(self) -> list[Path]:
        """Detect which files were created, modified, or deleted since last check."""
        current = self._check_mtimes()
        changed: list[Path] = []

        for path, old_mtime in self._mtimes.items():
            new_mtime = current.get(path)
            if new_mtime is None or new_mtime != old_mtime:
                changed.append(path)

        for path in current:
            if path not in self._mtimes:
                changed.append(path)

        self._mtimes = current
        return changed

    async def poll_once(self) -> bool:
        """Run one polling cycle. Returns True if a reload happened."""
        changed = self.detect_changes()
        if not changed:
            return False

        _log.info("Config changed: %s", [str(p) for p in changed])
        try:
            config = load_config(self._project_root, self._overrides)
            result = self._on_change(config)
            if asyncio.iscoroutine(result):
                await result
        except Exception as e:
            _log.error("Error reloading config: %s", e)
        return True

    async def _poll_loop(self) -> None:
        self._mtimes = self._check_mtimes()

        while self._running:
            await asyncio.sleep(self._poll_interval)
            if not self._running:
                break
            await self.poll_once()

    def start(self) -> None:
        """Start watching for config changes.

        Must be called from within a running event loop.
        """
        if self._running:
            return

        self._running = True
        self._task = asyncio.create_task(self._poll_loop())
        _log.debug("Config watcher started (interval=%.1fs)", self._poll_interval)

    def stop(self) -> None:
        """Stop watching for config changes."""
        self._running = False
        if self._task:
            self._task.cancel()
            self._task = None
        _log.debug("Config watcher stopped")

    async def __aenter__(self) -> ConfigWatcher:
        self.start()
        return self

    async def __aexit__(self, *args: object) -> None:
        self.stop()
