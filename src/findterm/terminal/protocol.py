"""Protocols for the terminal host the session runs in."""

from __future__ import annotations

import asyncio
from collections.abc import Callable
from dataclasses import dataclass, field
from typing import Protocol


@dataclass(frozen=True)
class TerminalOptions:
    """How to create the interactive terminal.

    Attributes:
        name: Display name of the terminal.
        env: Environment injected into the shell process.
        shell_path: Shell executable; empty means the host's default.
        in_editor: Host the terminal in the editor area instead of the panel.
        hide_from_user: Create the terminal without revealing it.
    """

    name: str
    env: dict[str, str] = field(default_factory=dict)
    shell_path: str = ""
    in_editor: bool = False
    hide_from_user: bool = True


class TerminalHandle(Protocol):
    """A live interactive terminal owned by a host."""

    name: str

    @property
    def exit_status(self) -> int | None:
        """Exit code once the terminal has terminated, None while alive."""
        ...

    def send_text(self, text: str, add_newline: bool = True) -> None:
        """Type text into the terminal."""
        ...

    def show(self, preserve_focus: bool = False) -> None:
        """Reveal the terminal and give it focus."""
        ...

    def hide(self) -> None:
        """Hide the terminal's panel."""
        ...

    def dispose(self) -> None:
        """Terminate the terminal. May complete asynchronously."""
        ...

    def on_did_close(self, callback: Callable[[], None]) -> None:
        """Register a callback for when the terminal has actually terminated."""
        ...


class TerminalHost(Protocol):
    """Creates terminals.

    Implementations:
    - SubprocessTerminalHost: interactive shell subprocess
    - test fakes
    """

    @property
    def reports_close(self) -> bool:
        """True if handles reliably fire on_did_close after dispose()."""
        ...

    async def create_terminal(self, options: TerminalOptions) -> TerminalHandle:
        """Create and start a terminal."""
        ...


class Clock(Protocol):
    """Schedules delayed callbacks. Injected so tests never sleep."""

    def call_later(self, delay: float, callback: Callable[[], None]) -> Callable[[], None]:
        """Run callback after delay seconds. Returns a cancel function."""
        ...


class AsyncioClock:
    """Clock backed by the running asyncio event loop."""

    def call_later(self, delay: float, callback: Callable[[], None]) -> Callable[[], None]:
        handle = asyncio.get_running_loop().call_later(delay, callback)
        return handle.cancel
