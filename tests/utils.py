"""Shared test utilities: in-memory fakes for the editor, terminal and watcher boundaries."""

from __future__ import annotations

import asyncio
from collections.abc import Awaitable, Callable, Sequence
from dataclasses import replace
from pathlib import Path

from findterm.channel.watcher import SentinelEvent
from findterm.config.schema import AdvancedConfig, Config, CustomTask, GeneralConfig
from findterm.host import Position, TypeOption
from findterm.terminal.protocol import TerminalOptions
from findterm.terminal.result import ShellResult

# =============================================================================
# Terminal fakes
# =============================================================================

class FakeTerminal:
    """Records everything sent to it. Closes on dispose() unless told otherwise."""

    def __init__(self, name: str, options: TerminalOptions | None = None, close_on_dispose: bool = True):
        self.name = name
        self.options = options
        self.sent: list[str] = []
        self.show_count = 0
        self.hide_count = 0
        self.dispose_count = 0
        self._exit_status: int | None = None
        self._close_on_dispose = close_on_dispose
        self._close_callbacks: list[Callable[[], None]] = []

    @property
    def exit_status(self) -> int | None:
        return self._exit_status

    def send_text(self, text: str, add_newline: bool = True) -> None:
        self.sent.append(text)

    def show(self, preserve_focus: bool = False) -> None:
        self.show_count += 1

    def hide(self) -> None:
        self.hide_count += 1

    def dispose(self) -> None:
        self.dispose_count += 1
        if self._close_on_dispose:
            self.close()

    def close(self, status: int = 0) -> None:
        """Simulate the process having terminated."""
        if self._exit_status is not None:
            return
        self._exit_status = status
        callbacks, self._close_callbacks = self._close_callbacks, []
        for callback in callbacks:
            callback()

    def on_did_close(self, callback: Callable[[], None]) -> None:
        if self._exit_status is not None:
            callback()
        else:
            self._close_callbacks.append(callback)

class FakeTerminalHost:
    def __init__(self, reports_close: bool = False):
        self.reports_close = reports_close
        self.created: list[FakeTerminal] = []

    async def create_terminal(self, options: TerminalOptions) -> FakeTerminal:
        # Acknowledging hosts close asynchronously, after dispose() returns
        terminal = FakeTerminal(options.name, options, close_on_dispose=not self.reports_close)
        self.created.append(terminal)
        return terminal

    @property
    def latest(self) -> FakeTerminal:
        return self.created[-1]

class FakeClock:
    """Collects delayed callbacks; advance() runs them."""

    def __init__(self):
        self.scheduled: list[tuple[float, Callable[[], None]]] = []

    def call_later(self, delay: float, callback: Callable[[], None]) -> Callable[[], None]:
        entry = (delay, callback)
        self.scheduled.append(entry)
        return lambda: self.scheduled.remove(entry) if entry in self.scheduled else None

    def advance(self) -> None:
        pending, self.scheduled = self.scheduled, []
        for _, callback in pending:
            callback()

# =============================================================================
# Sentinel watcher fakes
# =============================================================================

class FakeWatcher:
    def __init__(self, path: Path, registry: WatcherRegistry):
        self.path = path
        self.registry = registry
        self.callback: Callable[[SentinelEvent], None] | None = None
        self.rebaselines = 0

    @property
    def active(self) -> bool:
        return self.callback is not None

    def start(self, callback: Callable[[SentinelEvent], None]) -> None:
        self.callback = callback

    def stop(self) -> None:
        self.callback = None

    def rebaseline(self) -> None:
        self.rebaselines += 1

    def emit(self, event: SentinelEvent) -> None:
        assert self.callback is not None, "watcher is not active"
        self.callback(event)

class WatcherRegistry:
    """Watcher factory that remembers every watcher it built."""

    def __init__(self):
        self.watchers: list[FakeWatcher] = []

    def __call__(self, path: Path) -> FakeWatcher:
        watcher = FakeWatcher(path, self)
        self.watchers.append(watcher)
        return watcher

    @property
    def latest(self) -> FakeWatcher:
        return self.watchers[-1]

    @property
    def active(self) -> list[FakeWatcher]:
        return [w for w in self.watchers if w.active]

# =============================================================================
# Editor and executor fakes
# =============================================================================

class FakeEditor:
    def __init__(self, folders: Sequence[str] | None = None):
        self.folders = list(folders) if folders is not None else None
        self.selection: str | None = None
        self.opened: list[tuple[str, Position | None, bool]] = []
        self.infos: list[str] = []
        self.warnings: list[str] = []
        self.errors: list[str] = []
        self.active: FakeTerminal | None = None
        self.maximize_count = 0
        self.type_filter_answer: list[str] | None = None
        self.type_filter_calls: list[tuple[list[TypeOption], list[str]]] = []
        self.custom_task_answer: CustomTask | None = None
        self.commands: dict[str, Callable[[], Awaitable[object]]] = {}

    def workspace_folders(self):
        return self.folders

    def selection_text(self):
        return self.selection

    def open_document(self, path, position, preview):
        self.opened.append((path, position, preview))

    def show_info(self, message):
        self.infos.append(message)

    def show_warning(self, message):
        self.warnings.append(message)

    def show_error(self, message):
        self.errors.append(message)

    def active_terminal(self):
        return self.active

    def toggle_maximized_panel(self):
        self.maximize_count += 1

    async def pick_type_filter(self, options, current):
        self.type_filter_calls.append((list(options), list(current)))
        return self.type_filter_answer

    async def pick_custom_task(self, tasks):
        return self.custom_task_answer

    def register_command(self, name, callback):
        self.commands[name] = callback

class FakeExecutor:
    """Returns canned ShellResults keyed by executable name."""

    def __init__(self, outputs: dict[str, ShellResult] | None = None):
        self.outputs = outputs or {}
        self.calls: list[tuple[str, list[str]]] = []

    async def execute(self, command, args=None, cwd=None, env=None, timeout=30.0, output_limit=50000):
        self.calls.append((command, list(args or [])))
        for key, result in self.outputs.items():
            if command == key or command.endswith(key):
                return result
        return ShellResult(
            command=command,
            exit_code=127,
            output=f"Command not found: {command}",
            truncated=False,
            status="error",
            duration_ms=0.0,
        )

def ok(output: str) -> ShellResult:
    return ShellResult(
        command="", exit_code=0, output=output, truncated=False, status="ok", duration_ms=1.0
    )

def make_config(tmp_path: Path | None = None, advanced: AdvancedConfig | None = None, **general) -> Config:
    """A Config with startup checks disabled and the given general settings."""
    base = Config(
        scripts_dir=str(tmp_path / "scripts") if tmp_path else "/ext/scripts",
        advanced=advanced or AdvancedConfig(disable_startup_checks=True),
    )
    return replace(base, general=replace(GeneralConfig(), **general))

async def settle(rounds: int = 5) -> None:
    """Let pending tasks run up to their next real suspension point."""
    for _ in range(rounds):
        await asyncio.sleep(0)

