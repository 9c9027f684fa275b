"""The commands exposed to the editor.

Each command is one of a closed set of variants, so the orchestrator's
dispatch can match them exhaustively:

- SimpleCommand: run a script in the terminal
- TypeFilteredCommand: ask for file types first, then run a script
- CustomTaskCommand: ask which configured task to send verbatim
- ResumeCommand: replay the last search command
"""

from __future__ import annotations

import sys
from collections.abc import Iterable, Mapping
from dataclasses import dataclass
from pathlib import Path

from findterm.errors import MissingScriptBinding, UnknownCommand
from findterm.host import TypeOption
from findterm.terminal.result import ShellResult
from findterm.terminal.subprocess_executor import SubprocessTerminalExecutor

# Typing this token in the type-filter picker discards what came before it
CLEAR_ALL_TOKEN = "X"


@dataclass(frozen=True)
class SimpleCommand:
    script: str
    uses_selection: bool = True
    resumable: bool = False
    writes_explanation: bool = False


@dataclass(frozen=True)
class TypeFilteredCommand:
    script: str
    resumable: bool = True


@dataclass(frozen=True)
class CustomTaskCommand:
    resumable: bool = False


@dataclass(frozen=True)
class ResumeCommand:
    resumable: bool = False


Command = SimpleCommand | TypeFilteredCommand | CustomTaskCommand | ResumeCommand


CATALOG: dict[str, Command] = {
    "findFiles": SimpleCommand("find_files", resumable=True),
    "findFilesWithType": TypeFilteredCommand("find_files"),
    "findWithinFiles": SimpleCommand("find_within_files", resumable=True),
    "findWithinFilesWithType": TypeFilteredCommand("find_within_files"),
    "listSearchLocations": SimpleCommand("list_search_locations", writes_explanation=True),
    "flightCheck": SimpleCommand("flight_check"),
    "resumeSearch": ResumeCommand(),
    "pickFileFromGitStatus": SimpleCommand(
        "pick_file_from_git_status", uses_selection=False, resumable=True
    ),
    "findTodoFixme": SimpleCommand("find_todo_fixme", uses_selection=False, resumable=True),
    "runCustomTask": CustomTaskCommand(),
}


def script_suffix(is_windows: bool | None = None) -> str:
    if is_windows is None:
        is_windows = sys.platform == "win32"
    return ".ps1" if is_windows else ".sh"


def bind_scripts(
    scripts_dir: str | Path,
    catalog: Mapping[str, Command] = CATALOG,
    is_windows: bool | None = None,
) -> dict[str, str]:
    """Resolve the script path of every script-backed command.

    Returns:
        Mapping of script name to script path.
    """
    suffix = script_suffix(is_windows)
    bindings: dict[str, str] = {}
    for command in catalog.values():
        if isinstance(command, SimpleCommand | TypeFilteredCommand):
            bindings[command.script] = str(Path(scripts_dir) / f"{command.script}{suffix}")
    return bindings


def validate_bindings(
    bindings: Mapping[str, str],
    exposed: Iterable[str] = (),
    catalog: Mapping[str, Command] = CATALOG,
) -> None:
    """Check that setup is complete. Failing here is a programming error.

    Raises:
        UnknownCommand: An exposed name has no catalog entry.
        MissingScriptBinding: A script-backed command has no script path.
    """
    for name in exposed:
        if name not in catalog:
            raise UnknownCommand(name)
    for name, command in catalog.items():
        if isinstance(command, SimpleCommand | TypeFilteredCommand):
            if not bindings.get(command.script):
                raise MissingScriptBinding(name)


def apply_type_tokens(tokens: Iterable[str]) -> frozenset[str]:
    """Fold picker tokens into a filter set; CLEAR_ALL_TOKEN resets it."""
    selected: list[str] = []
    for token in tokens:
        token = token.strip()
        if not token:
            continue
        if token == CLEAR_ALL_TOKEN:
            selected.clear()
        else:
            selected.append(token)
    return frozenset(selected)


def parse_type_list(output: str, current: Iterable[str] = ()) -> list[TypeOption]:
    """Parse `rg --type-list` output ("name: glob, glob" per line)."""
    picked = set(current)
    options: list[TypeOption] = []
    for line in output.splitlines():
        name, _, globs = line.partition(":")
        name = name.strip()
        if not name:
            continue
        options.append(TypeOption(name=name, description=globs.strip(), picked=name in picked))
    return options


async def list_type_options(
    executor: SubprocessTerminalExecutor,
    current: Iterable[str] = (),
) -> tuple[list[TypeOption], ShellResult]:
    """Ask ripgrep for its file types."""
    result = await executor.execute("rg", ["--type-list"])
    if not result.success:
        return [], result
    return parse_type_list(result.output, current), result
