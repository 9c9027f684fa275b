"""Interactive REPL: type a command name, search in the terminal, get results."""

from __future__ import annotations

import asyncio
import shlex
from typing import TYPE_CHECKING

from prompt_toolkit import PromptSession
from prompt_toolkit.auto_suggest import AutoSuggestFromHistory
from prompt_toolkit.completion import WordCompleter
from prompt_toolkit.history import FileHistory
from rich.console import Console

from findterm.search.locations import explain

if TYPE_CHECKING:
    from pathlib import Path

    from findterm.interactive.console_host import ConsoleEditorHost
    from findterm.orchestrator import Orchestrator

console = Console()

HELP = """\
[bold]Commands[/bold]
  <name>              run a command (Tab completes), e.g. findFiles
  /select <text>      use text as the editor selection (empty clears it)
  /locations          explain where the search paths come from
  /check              run the flight check again
  /help               show this help
  /quit               exit
"""


class InteractiveRepl:
    """Read command names and run them through the orchestrator."""

    def __init__(
        self,
        orchestrator: Orchestrator,
        host: ConsoleEditorHost,
        history_file: Path | None = None,
    ) -> None:
        self.orchestrator = orchestrator
        self.host = host
        self._running = False

        history = FileHistory(str(history_file)) if history_file else None
        self.session: PromptSession[str] = PromptSession(
            history=history,
            auto_suggest=AutoSuggestFromHistory(),
            completer=WordCompleter(sorted(host.commands) + ["/help", "/quit"]),
        )

    async def run(self) -> None:
        self._running = True
        console.print("[bold]findterm[/bold] - type [bold]/help[/bold] for commands.\n")

        while self._running:
            try:
                line = await asyncio.get_event_loop().run_in_executor(
                    None,
                    lambda: self.session.prompt("findterm> "),
                )
            except KeyboardInterrupt:
                continue
            except EOFError:
                break

            line = line.strip()
            if not line:
                continue
            if line.startswith("/"):
                await self.handle_slash(line)
            else:
                await self.run_command(line)

        self._running = False

    async def run_command(self, name: str) -> None:
        callback = self.host.commands.get(name)
        if callback is None:
            console.print(f"[red]Unknown command: {name}[/red]")
            return
        await callback()

    async def handle_slash(self, line: str) -> None:
        parts = shlex.split(line)
        cmd, args = parts[0].lower(), parts[1:]

        match cmd:
            case "/help":
                console.print(HELP)
            case "/quit":
                self.stop()
            case "/select":
                self.host.set_selection(" ".join(args))
            case "/locations":
                console.print(explain(self.orchestrator.locations), markup=False)
            case "/check":
                report = await self.orchestrator.flight_check()
                console.print(report.message)
            case _:
                console.print(f"[red]Unknown command: {cmd}[/red]")

    def stop(self) -> None:
        self._running = False
