"""Orchestration of search commands between the editor and the terminal.

All logic runs on one asyncio event loop. The only suspension points are the
pickers (type filter, custom task), the wait for the sentinel write, and the
deferred disposal of the terminal.
"""

from __future__ import annotations

import asyncio
import functools
import os
import sys
from collections.abc import Iterable
from pathlib import Path

from findterm.channel.completion import CompletionEvent, Verdict, WatcherFactory
from findterm.channel.watcher import PollingSentinelWatcher
from findterm.commands import (
    CATALOG,
    CustomTaskCommand,
    ResumeCommand,
    SimpleCommand,
    TypeFilteredCommand,
    apply_type_tokens,
    bind_scripts,
    list_type_options,
    validate_bindings,
)
from findterm.config.schema import Config
from findterm.errors import FindTermError, SentinelTampered, UnknownCommand, UnsupportedPlatformOperation
from findterm.flight_check import FlightCheckReport, run_flight_check
from findterm.focus import FocusRestoreController, should_hide
from findterm.host import EditorHost
from findterm.logging import get_logger
from findterm.navigation import ResultNavigator
from findterm.search.locations import SearchLocations, explain, resolve
from findterm.terminal.commandline import CommandLineBuilder, CommandRequest
from findterm.terminal.protocol import Clock, TerminalHandle, TerminalHost
from findterm.terminal.session import TerminalSession, TerminalSessionManager
from findterm.terminal.subprocess_executor import SubprocessTerminalExecutor

log = get_logger("orchestrator")


class Orchestrator:
    """Runs editor commands in the shared terminal session and reacts to their completion.

    Example:
        orchestrator = Orchestrator(editor, SubprocessTerminalHost(), load_config())
        await orchestrator.activate()
        event = await orchestrator.execute("findFiles")
    """

    def __init__(
        self,
        editor: EditorHost,
        terminal_host: TerminalHost,
        config: Config,
        *,
        executor: SubprocessTerminalExecutor | None = None,
        watcher_factory: WatcherFactory = PollingSentinelWatcher,
        clock: Clock | None = None,
        is_windows: bool | None = None,
        cwd: str | None = None,
    ) -> None:
        """Initialize the orchestrator.

        Args:
            editor: The editor host.
            terminal_host: Creates the interactive terminal.
            config: Initial configuration snapshot.
            executor: Runs one-shot helper commands (flight check, rg).
            watcher_factory: Builds the sentinel watcher for each session.
            clock: Schedules deferred disposal.
            is_windows: Target platform; defaults to the running one.
            cwd: Working directory of the host process.
        """
        self._editor = editor
        self._config = config
        self._is_windows = sys.platform == "win32" if is_windows is None else is_windows
        self._cwd = cwd or os.getcwd()
        self._executor = executor or SubprocessTerminalExecutor(default_cwd=self._cwd)
        self._builder = CommandLineBuilder(self._is_windows)
        self._navigator = ResultNavigator(editor, self._is_windows)
        self._focus = FocusRestoreController()
        self._sessions = TerminalSessionManager(
            terminal_host,
            listener=self._on_completion,
            on_tampered=self._on_tampered,
            watcher_factory=watcher_factory,
            clock=clock,
        )
        self._locations = SearchLocations()
        self._bindings: dict[str, str] = {}
        self._flight_check_passed = False
        self._last_command: str | None = None
        self._type_filter: frozenset[str] = frozenset()

    @property
    def config(self) -> Config:
        return self._config

    @property
    def locations(self) -> SearchLocations:
        return self._locations

    @property
    def sessions(self) -> TerminalSessionManager:
        return self._sessions

    @property
    def focus(self) -> FocusRestoreController:
        return self._focus

    @property
    def last_command(self) -> str | None:
        return self._last_command

    @property
    def type_filter(self) -> frozenset[str]:
        return self._type_filter

    @property
    def flight_check_passed(self) -> bool:
        return self._flight_check_passed

    @property
    def scripts_dir(self) -> Path:
        if self._config.scripts_dir:
            return Path(self._config.scripts_dir)
        return Path(self._config.extension_path) / "scripts"

    # -- lifecycle -------------------------------------------------------

    async def activate(self, exposed: Iterable[str] = ()) -> bool:
        """Bind scripts, register commands and start the first session.

        Raises:
            MissingScriptBinding, UnknownCommand: Setup is incomplete.
        """
        self._bindings = bind_scripts(self.scripts_dir, is_windows=self._is_windows)
        validate_bindings(self._bindings, exposed)

        for name in CATALOG:
            self._editor.register_command(name, functools.partial(self.execute, name))

        self.refresh_locations()
        return await self.reinitialize()

    async def deactivate(self) -> None:
        self._sessions.dispose()
        log.info("Deactivated")

    async def reinitialize(self) -> bool:
        """Recreate the session, running the flight check first if required.

        Returns:
            False if the flight check blocks command execution.
        """
        self._sessions.dispose(remove_files=False)
        log.info(
            "Initialized with key settings: extension=%s search_paths=%s",
            self._config.extension_name,
            list(self._locations.paths),
        )

        if self._checks_required():
            report = await self.flight_check()
            self._flight_check_passed = report.passed
            if not report.passed:
                return False

        await self._sessions.create(self._config)
        return True

    def _checks_required(self) -> bool:
        return not self._flight_check_passed and not self._config.advanced.disable_startup_checks

    async def flight_check(self) -> FlightCheckReport:
        script = self._bindings.get("flight_check")
        if script is None:
            report = FlightCheckReport(error="Failed to find flight check script. This is a bug.")
        else:
            report = await run_flight_check(Path(script), self._executor, self._is_windows)
        if not report.passed:
            self._editor.show_error(report.message)
        return report

    # -- host notifications ----------------------------------------------

    def refresh_locations(self) -> SearchLocations:
        self._locations = resolve(
            self._config.locations,
            self._editor.workspace_folders(),
            cwd=self._cwd,
            is_windows=self._is_windows,
            on_error=self._editor.show_error,
        )
        return self._locations

    def on_workspace_folders_changed(self) -> None:
        self.refresh_locations()
        log.info("Workspace folders changed: %s", list(self._locations.paths))

    async def on_settings_changed(self, config: Config) -> None:
        """Adopt a new configuration snapshot and recreate the session."""
        self._config = config
        self.refresh_locations()
        await self.reinitialize()

    def on_active_terminal_changed(self, terminal: TerminalHandle | None) -> None:
        self._focus.on_active_terminal_changed(terminal)

    # -- commands --------------------------------------------------------

    async def execute(self, name: str) -> CompletionEvent | None:
        """Run a catalog command end to end.

        Returns:
            The completion event, or None if the command was dismissed,
            blocked, superseded, or does not report completion.
        """
        try:
            return await self._execute(name)
        except (FindTermError, OSError) as e:
            log.error("Command %s failed: %s", name, e)
            self._editor.show_error(str(e))
            return None

    async def _execute(self, name: str) -> CompletionEvent | None:
        command = CATALOG.get(name)
        if command is None:
            raise UnknownCommand(name)

        if self._checks_required() and not await self.reinitialize():
            return None

        is_resumed = False
        if isinstance(command, ResumeCommand):
            if self._is_windows:
                raise UnsupportedPlatformOperation(
                    "Resume search is not implemented on Windows. Sorry! PRs welcome."
                )
            if self._last_command is None:
                message = "Cannot resume the last search because no search was run yet."
                log.error(message)
                self._editor.show_error(message)
                return None
            name, command, is_resumed = self._last_command, CATALOG[self._last_command], True
        elif command.resumable:
            self._last_command = name

        match command:
            case SimpleCommand(script=script, uses_selection=uses_selection):
                request = CommandRequest(
                    script_id=script,
                    script_path=self._bindings.get(script),
                    uses_selection_text=uses_selection,
                    is_resumed=is_resumed,
                )
                return await self._run(request, command.writes_explanation)
            case TypeFilteredCommand(script=script):
                type_filter = await self._choose_type_filter()
                if type_filter is None:
                    return None
                request = CommandRequest(
                    script_id=script,
                    script_path=self._bindings.get(script),
                    is_resumed=is_resumed,
                    type_filter=type_filter,
                )
                return await self._run(request)
            case CustomTaskCommand():
                await self._run_custom_task()
                return None
            case ResumeCommand():
                raise AssertionError("resumeSearch cannot resume itself")

    async def _run(
        self, request: CommandRequest, writes_explanation: bool = False
    ) -> CompletionEvent | None:
        general = self._config.general
        session = await self._sessions.ensure(self._config)

        if writes_explanation:
            session.paths.explain.write_text(
                explain(self._locations, use_color=not self._is_windows), encoding="utf-8"
            )

        selection = None
        if self._config.advanced.use_editor_selection_as_query:
            selection = self._editor.selection_text()
        command_line = self._builder.build(
            request, session.paths.selection, self._locations.paths, selection
        )

        previous = self._editor.active_terminal() if general.restore_focus_terminal else None
        future = session.send_command(command_line)
        if general.show_maximized_terminal:
            self._editor.toggle_maximized_panel()
        if general.restore_focus_terminal:
            self._focus.remember(previous if previous is not session.handle else None)
        session.show()

        await asyncio.wait({future})
        if future.cancelled():
            log.debug("Invocation of %s was abandoned", request.script_id)
            return None
        if future.exception() is not None:
            # Reported by _on_tampered
            return None
        return future.result()

    async def _choose_type_filter(self) -> frozenset[str] | None:
        options, result = await list_type_options(self._executor, self._type_filter)
        if not result.success:
            log.warning("Could not list ripgrep types: %s", result.output.strip())

        tokens = await self._editor.pick_type_filter(options, sorted(self._type_filter))
        if tokens is None:
            return None
        self._type_filter = apply_type_tokens(tokens)
        log.info("Using type filter: %s", sorted(self._type_filter))
        return self._type_filter

    async def _run_custom_task(self) -> None:
        tasks = self._config.custom_tasks
        if not tasks:
            self._editor.show_warning("No custom tasks defined. Add some in the settings.")
            return

        task = await self._editor.pick_custom_task(tasks)
        if task is None:
            return

        session = await self._sessions.ensure(self._config)
        log.info("Executing custom task: %s", task.command)
        session.send_text(task.command)
        session.show()

    # -- completion ------------------------------------------------------

    def _on_completion(self, event: CompletionEvent) -> None:
        general = self._config.general
        session: TerminalSession | None = self._sessions.session

        if general.clear_terminal_after_use and session is not None:
            session.send_text("clear")

        if general.kill_terminal_after_use:
            # Closing our terminal makes the host switch back to the user's own
            self._sessions.dispose_after_use()

        if event.verdict is Verdict.UNREADABLE:
            message = f"An error occurred while reading the sentinel file: {event.error}"
            log.warning("%s. Did you clean out your temp folder?", message)
            self._editor.show_warning(message)
            return

        if event.success:
            self._navigator.navigate(event.results, preview=general.open_file_in_preview_editor)

        if general.restore_focus_terminal and self._focus.previous is not None:
            self._focus.on_completion(
                event.success, general.hide_terminal_after_success, general.hide_terminal_after_fail
            )
            return

        if session is not None and should_hide(
            event.success, general.hide_terminal_after_success, general.hide_terminal_after_fail
        ):
            session.hide()

    def _on_tampered(self, error: SentinelTampered) -> None:
        log.error("%s. Please reload.", error)
        self._editor.show_error(
            f"Issue detected with extension {self._config.extension_name}. "
            "You may have to reload it."
        )
        self._sessions.dispose()
