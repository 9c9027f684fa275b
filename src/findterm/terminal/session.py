"""The single shared terminal session.

A session owns a temporary directory holding its sentinel, selection
side-channel, last-query, last-position and explanation files, the terminal
handle created with an environment describing all of them, and the
completion channel watching the sentinel. Exactly one live session exists at
a time; TerminalSessionManager enforces that.
"""

from __future__ import annotations

import asyncio
import shutil
import tempfile
from collections.abc import Callable
from dataclasses import dataclass
from enum import Enum
from pathlib import Path

from findterm.channel.completion import CompletionChannel, CompletionEvent, WatcherFactory
from findterm.channel.watcher import PollingSentinelWatcher
from findterm.config.schema import Config
from findterm.errors import SentinelTampered
from findterm.logging import get_logger
from findterm.terminal.protocol import (
    AsyncioClock,
    Clock,
    TerminalHandle,
    TerminalHost,
    TerminalOptions,
)

log = get_logger("session")

TERMINAL_NAME = "FindTerm"

# Delay before forced disposal when the host cannot acknowledge termination.
# Works around a host race observed when disposing right after a command
# completes; it does not guarantee ordering.
FORCED_DISPOSAL_DELAY = 0.1


class SessionState(Enum):
    ABSENT = "absent"
    CREATED = "created"
    ACTIVE = "active"
    DISPOSED = "disposed"


@dataclass(frozen=True)
class SessionPaths:
    """Files scoped to one session's temporary directory."""

    temp_dir: Path

    @property
    def sentinel(self) -> Path:
        return self.temp_dir / "snitch"

    @property
    def selection(self) -> Path:
        return self.temp_dir / "selection"

    @property
    def last_query(self) -> Path:
        return self.temp_dir / "last_query"

    @property
    def last_position(self) -> Path:
        return self.temp_dir / "last_position"

    @property
    def explain(self) -> Path:
        return self.temp_dir / "paths_explain"

    @classmethod
    def allocate(cls, prefix: str) -> SessionPaths:
        """Create a fresh, uniquely named temporary directory."""
        return cls(Path(tempfile.mkdtemp(prefix=f"{prefix}-")))

    def inherit(self, other: SessionPaths) -> None:
        """Copy the resume state (last query and position) from another session."""
        for name in ("last_query", "last_position"):
            source: Path = getattr(other, name)
            if source.exists():
                shutil.copyfile(source, getattr(self, name))

    def remove(self) -> None:
        shutil.rmtree(self.temp_dir, ignore_errors=True)


def _flag(value: bool) -> str:
    return "1" if value else "0"


def build_environment(config: Config, paths: SessionPaths) -> dict[str, str]:
    """Everything the external scripts read from their environment."""
    general = config.general
    globs = ":".join(general.search_excludes) if general.use_workspace_search_excludes else ""
    return {
        "FINDTERM_ACTIVE": "1",
        "HISTCONTROL": "ignoreboth",  # bash: keep our commands out of history
        "EXTENSION_PATH": config.extension_path,
        "FIND_FILES_PREVIEW_ENABLED": _flag(config.find_files.show_preview),
        "FIND_FILES_PREVIEW_COMMAND": config.find_files.preview_command,
        "FIND_FILES_PREVIEW_WINDOW_CONFIG": config.find_files.preview_window_config,
        "FIND_WITHIN_FILES_PREVIEW_ENABLED": _flag(config.find_within_files.show_preview),
        "FIND_WITHIN_FILES_PREVIEW_COMMAND": config.find_within_files.preview_command,
        "FIND_WITHIN_FILES_PREVIEW_WINDOW_CONFIG": (
            config.find_within_files.preview_window_config
        ),
        "USE_GITIGNORE": _flag(general.use_git_ignore_excludes),
        "GLOBS": globs,
        "CANARY_FILE": str(paths.sentinel),
        "SELECTION_FILE": str(paths.selection),
        "LAST_QUERY_FILE": str(paths.last_query),
        "LAST_POS_FILE": str(paths.last_position),
        "EXPLAIN_FILE": str(paths.explain),
        "BAT_THEME": general.bat_theme,
        "FUZZ_RG_QUERY": _flag(config.find_within_files.fuzz_ripgrep_query),
        "FIND_TODO_FIXME_SEARCH_PATTERN": config.find_todo_fixme.search_pattern,
    }


class TerminalSession:
    """One terminal process plus its files and completion channel."""

    def __init__(
        self,
        handle: TerminalHandle,
        paths: SessionPaths,
        environment: dict[str, str],
        channel: CompletionChannel,
        is_editor_hosted: bool = False,
    ) -> None:
        self.handle = handle
        self.paths = paths
        self.environment = environment
        self.channel = channel
        self.is_editor_hosted = is_editor_hosted
        self.state = SessionState.CREATED

    @property
    def is_alive(self) -> bool:
        return self.state is not SessionState.DISPOSED and self.handle.exit_status is None

    def send_text(self, text: str) -> None:
        self.handle.send_text(text)

    def send_command(self, command: str) -> asyncio.Future[CompletionEvent]:
        """Send a command line and return a future for its completion event."""
        future = self.channel.send(command, self.handle.send_text)
        self.state = SessionState.ACTIVE
        return future

    def show(self) -> None:
        self.handle.show()

    def hide(self) -> None:
        self.handle.hide()

    def dispose(self, remove_files: bool = True) -> None:
        """Close the channel, terminate the terminal and optionally delete files."""
        if self.state is SessionState.DISPOSED:
            return
        self.state = SessionState.DISPOSED
        self.channel.close()
        self.handle.dispose()
        if remove_files:
            self.paths.remove()
        log.debug("Session in %s disposed", self.paths.temp_dir)


class TerminalSessionManager:
    """Owns the single terminal session: creation, disposal and re-creation."""

    def __init__(
        self,
        host: TerminalHost,
        listener: Callable[[CompletionEvent], None] | None = None,
        on_tampered: Callable[[SentinelTampered], None] | None = None,
        watcher_factory: WatcherFactory = PollingSentinelWatcher,
        clock: Clock | None = None,
    ) -> None:
        self._host = host
        self._listener = listener
        self._on_tampered = on_tampered
        self._watcher_factory = watcher_factory
        self._clock = clock or AsyncioClock()
        self._session: TerminalSession | None = None
        # A session disposed after use; its files are kept until the next
        # create() so resume state can be carried over.
        self._retired: TerminalSession | None = None

    @property
    def session(self) -> TerminalSession | None:
        return self._session

    @property
    def state(self) -> SessionState:
        if self._session is None:
            return SessionState.ABSENT
        return self._session.state

    def _dispose_retired(self) -> None:
        if self._retired is not None:
            self._retired.paths.remove()
            self._retired = None

    async def create(self, config: Config) -> TerminalSession:
        """Dispose any existing session, then create a fresh one."""
        self.dispose(remove_files=False)
        previous = self._retired

        paths = SessionPaths.allocate(config.extension_name)
        if previous is not None:
            paths.inherit(previous.paths)
        self._dispose_retired()

        environment = build_environment(config, paths)
        channel = CompletionChannel(
            paths.sentinel,
            listener=self._listener,
            on_tampered=self._on_tampered,
            watcher_factory=self._watcher_factory,
        )
        channel.open()

        in_editor = config.general.use_terminal_in_editor
        handle = await self._host.create_terminal(
            TerminalOptions(
                name=TERMINAL_NAME,
                env=environment,
                shell_path=config.general.shell_path_for_terminal,
                in_editor=in_editor,
                # Only honoured for panel terminals
                hide_from_user=not in_editor,
            )
        )
        self._session = TerminalSession(handle, paths, environment, channel, in_editor)
        log.info("Created terminal session in %s", paths.temp_dir)
        return self._session

    async def ensure(self, config: Config) -> TerminalSession:
        """Return the live session, creating one if there is none."""
        if self._session is not None and self._session.is_alive:
            return self._session
        return await self.create(config)

    def dispose(self, remove_files: bool = True) -> None:
        """Dispose the current session (idempotent if none exists)."""
        session, self._session = self._session, None
        if session is not None:
            session.dispose(remove_files=remove_files)
            if not remove_files:
                self._retire(session)
        if remove_files:
            if self._retired is not None:
                # A terminal still waiting for deferred disposal
                self._retired.dispose(remove_files=False)
            self._dispose_retired()

    def _retire(self, session: TerminalSession) -> None:
        if self._retired is not None and self._retired is not session:
            self._retired.paths.remove()
        self._retired = session

    def dispose_after_use(self) -> None:
        """Tear the session down after a completed command.

        The session is detached at once, so the next command gets a fresh
        one; only the terminal teardown waits. With a host that acknowledges
        termination, the terminal is disposed now and the session finishes
        disposing once the host reports it closed. Otherwise disposal is
        deferred by FORCED_DISPOSAL_DELAY.
        """
        session, self._session = self._session, None
        if session is None:
            return
        session.channel.close()
        self._retire(session)

        def release() -> None:
            session.dispose(remove_files=False)

        if self._host.reports_close:
            session.handle.on_did_close(release)
            session.handle.dispose()
        else:
            self._clock.call_later(FORCED_DISPOSAL_DELAY, release)
