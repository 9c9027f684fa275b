"""Construction of the literal command line sent to the terminal.

The command line is a series of environment assignments followed by the
script path and the quoted search roots. Free-form editor text is never
placed on the command line: it goes through the selection side-channel file
and only a 0/1 flag is emitted.
"""

from __future__ import annotations

import shlex
import sys
from collections.abc import Mapping, Sequence
from dataclasses import dataclass, field
from pathlib import Path

from findterm.errors import MissingScriptBinding
from findterm.logging import get_logger

log = get_logger("commandline")

HAS_SELECTION = "HAS_SELECTION"
TYPE_FILTER = "TYPE_FILTER"
RESUME_SEARCH = "RESUME_SEARCH"


@dataclass(frozen=True)
class CommandRequest:
    """One invocation of a search script.

    Attributes:
        script_id: Logical script name (e.g. "find_files").
        script_path: Resolved script location; None means it was never bound.
        extra_env: Additional assignments, emitted after the standard ones.
        uses_selection_text: Whether the editor selection may seed the query.
        is_resumed: Replay of the previous invocation.
        type_filter: File-type tokens, or None when type filtering was not
            requested for this invocation.
    """

    script_id: str
    script_path: str | None
    extra_env: Mapping[str, str] = field(default_factory=dict)
    uses_selection_text: bool = True
    is_resumed: bool = False
    type_filter: frozenset[str] | None = None


def quote(value: str, is_windows: bool) -> str:
    """Quote a value as one argument, always wrapping it in single quotes."""
    if is_windows:
        # PowerShell: '' is a literal quote inside a single-quoted string
        return "'" + value.replace("'", "''") + "'"
    return "'" + value.replace("'", "'\"'\"'") + "'"


class CommandLineBuilder:
    """Builds platform-specific command lines for the terminal session."""

    def __init__(self, is_windows: bool | None = None) -> None:
        self.is_windows = sys.platform == "win32" if is_windows is None else is_windows

    def env_assignment(self, name: str, value: str) -> str:
        """An environment assignment prefix, including its trailing separator."""
        if self.is_windows:
            return f"$Env:{name}={value}; "
        return f"{name}={value} "

    def quote(self, value: str) -> str:
        return quote(value, self.is_windows)

    def script_invocation(self, script_path: str) -> str:
        if self.is_windows:
            return f"& {self.quote(script_path)}" if " " in script_path else script_path
        return shlex.quote(script_path)

    def build(
        self,
        request: CommandRequest,
        selection_file: Path,
        search_paths: Sequence[str],
        selection_text: str | None = None,
        with_args: bool = True,
    ) -> str:
        """Build the literal command string for a request.

        Args:
            request: The invocation to encode.
            selection_file: Side-channel file receiving the selection text.
            search_paths: Ordered search roots, duplicates included.
            selection_text: Current editor selection; None or "" means empty.
                Callers pass None when selection seeding is disabled.
            with_args: Append the search roots.

        Raises:
            MissingScriptBinding: If the request has no script path.
        """
        if request.script_path is None:
            raise MissingScriptBinding(request.script_id)

        parts: list[str] = []

        has_selection = bool(request.uses_selection_text and selection_text)
        if has_selection:
            # Must land on disk before the flag tells the script to read it
            selection_file.write_text(selection_text or "", encoding="utf-8")
        parts.append(self.env_assignment(HAS_SELECTION, "1" if has_selection else "0"))

        if request.type_filter:
            tokens = ":".join(sorted(request.type_filter))
            parts.append(self.env_assignment(TYPE_FILTER, self.quote(tokens)))

        if request.is_resumed:
            parts.append(self.env_assignment(RESUME_SEARCH, "1"))

        for name, value in request.extra_env.items():
            parts.append(self.env_assignment(name, self.quote(value)))

        parts.append(self.script_invocation(request.script_path))

        if with_args and search_paths:
            # Each root is quoted on its own so spaces never split a path
            parts.append(" " + " ".join(self.quote(p) for p in search_paths))

        command = "".join(parts)
        log.info("Built command: %s", command)
        return command
