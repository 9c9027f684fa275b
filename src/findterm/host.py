"""Protocol for the editor the orchestrator serves."""

from __future__ import annotations

from collections.abc import Awaitable, Callable, Sequence
from dataclasses import dataclass
from typing import Protocol

from findterm.config.schema import CustomTask
from findterm.terminal.protocol import TerminalHandle


@dataclass(frozen=True)
class Position:
    """A 0-based cursor position."""

    line: int
    column: int


@dataclass(frozen=True)
class TypeOption:
    """One ripgrep file type offered by the type-filter picker."""

    name: str
    description: str
    picked: bool = False


class EditorHost(Protocol):
    """Everything the orchestrator needs from the editor.

    Implementations:
    - ConsoleEditorHost: terminal-only runtime (findterm.interactive)
    - test fakes
    """

    def workspace_folders(self) -> Sequence[str] | None:
        """Folder URIs of the open workspace, or None when no workspace is open."""
        ...

    def selection_text(self) -> str | None:
        """Text of the active editor's selection, or None if nothing is selected."""
        ...

    def open_document(self, path: str, position: Position | None, preview: bool) -> None:
        """Open a file, optionally placing the cursor."""
        ...

    def show_info(self, message: str) -> None: ...

    def show_warning(self, message: str) -> None: ...

    def show_error(self, message: str) -> None: ...

    def active_terminal(self) -> TerminalHandle | None:
        """The terminal that currently has focus, if any."""
        ...

    def toggle_maximized_panel(self) -> None: ...

    async def pick_type_filter(
        self, options: Sequence[TypeOption], current: Sequence[str]
    ) -> list[str] | None:
        """Ask for file-type tokens. None means the user dismissed the picker."""
        ...

    async def pick_custom_task(self, tasks: Sequence[CustomTask]) -> CustomTask | None:
        """Ask which custom task to run. None means dismissed."""
        ...

    def register_command(self, name: str, callback: Callable[[], Awaitable[object]]) -> None:
        """Expose a command to the user."""
        ...
