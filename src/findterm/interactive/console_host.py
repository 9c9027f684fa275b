"""EditorHost for running findterm from a plain terminal.

There is no editor here: opened documents are printed (and optionally handed
to an opener command such as $EDITOR), messages go to a rich console, and the
pickers are prompt_toolkit prompts.
"""

from __future__ import annotations

import asyncio
import shlex
import subprocess
from collections.abc import Awaitable, Callable, Sequence
from pathlib import Path

from prompt_toolkit import PromptSession
from prompt_toolkit.completion import WordCompleter
from rich.console import Console
from rich.markup import escape
from rich.table import Table

from findterm.config.schema import CustomTask
from findterm.host import Position, TypeOption
from findterm.logging import get_logger
from findterm.terminal.protocol import TerminalHandle

log = get_logger("console")

console = Console()


class ConsoleEditorHost:
    """Editor host backed by the console."""

    def __init__(
        self,
        workspace: Sequence[str] | None = None,
        opener: str | None = None,
    ) -> None:
        """Initialize the console host.

        Args:
            workspace: Workspace folder paths; None means no workspace is open.
            opener: Command used to open results, e.g. "code -g" or "vim".
                Receives "path:line:column" (or just "path") as last argument.
        """
        self._folders = (
            [Path(p).resolve().as_uri() for p in workspace] if workspace is not None else None
        )
        self._opener = opener
        self._selection: str | None = None
        self.commands: dict[str, Callable[[], Awaitable[object]]] = {}
        self.opened: list[tuple[str, Position | None]] = []
        self._prompt: PromptSession[str] | None = None

    def set_selection(self, text: str | None) -> None:
        self._selection = text or None

    def workspace_folders(self) -> list[str] | None:
        return self._folders

    def selection_text(self) -> str | None:
        return self._selection

    def open_document(self, path: str, position: Position | None, preview: bool) -> None:
        self.opened.append((path, position))
        target = path if position is None else f"{path}:{position.line + 1}:{position.column + 1}"
        console.print(f"[green]open[/green] {escape(target)}")
        if self._opener:
            try:
                subprocess.Popen([*shlex.split(self._opener), target])
            except OSError as e:
                log.error("Could not run opener %s: %s", self._opener, e)
                self.show_error(f"Could not run {self._opener}: {e}")

    def show_info(self, message: str) -> None:
        console.print(escape(message))

    def show_warning(self, message: str) -> None:
        console.print(f"[yellow]{escape(message)}[/yellow]")

    def show_error(self, message: str) -> None:
        console.print(f"[red]{escape(message)}[/red]")

    def active_terminal(self) -> TerminalHandle | None:
        # A console has exactly one terminal: ours
        return None

    def toggle_maximized_panel(self) -> None:
        log.debug("Maximizing is not supported on the console")

    async def _ask(self, message: str, completer: WordCompleter | None = None) -> str | None:
        if self._prompt is None:
            self._prompt = PromptSession()
        prompt = self._prompt
        try:
            return await asyncio.get_event_loop().run_in_executor(
                None,
                lambda: prompt.prompt(message, completer=completer),
            )
        except (KeyboardInterrupt, EOFError):
            return None

    async def pick_type_filter(
        self, options: Sequence[TypeOption], current: Sequence[str]
    ) -> list[str] | None:
        console.print(
            "Type one or more type identifiers and press Enter, e.g. [bold]py cpp[/bold]. "
            "Typing [bold]X[/bold] clears what came before it."
        )
        completer = WordCompleter([o.name for o in options], meta_dict={
            o.name: o.description for o in options
        })
        answer = await self._ask(f"types [{' '.join(current)}]> ", completer)
        if answer is None:
            return None
        if not answer.strip():
            return list(current)
        return answer.split()

    async def pick_custom_task(self, tasks: Sequence[CustomTask]) -> CustomTask | None:
        table = Table(title="Custom tasks")
        table.add_column("#", justify="right")
        table.add_column("Name")
        table.add_column("Command", style="dim")
        for i, task in enumerate(tasks, 1):
            table.add_row(str(i), task.name, task.command)
        console.print(table)

        answer = await self._ask("task> ", WordCompleter([t.name for t in tasks]))
        if not answer or not answer.strip():
            return None
        answer = answer.strip()
        if answer.isdigit() and 1 <= int(answer) <= len(tasks):
            return tasks[int(answer) - 1]
        return next((t for t in tasks if t.name == answer), None)

    def register_command(self, name: str, callback: Callable[[], Awaitable[object]]) -> None:
        self.commands[name] = callback
