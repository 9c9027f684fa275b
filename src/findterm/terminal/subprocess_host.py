"""Terminal host that runs the session as an interactive shell subprocess.

Commands are written to the shell's stdin; the shell shares the parent's
stdout/stderr, and full-screen tools (fzf) draw on the controlling tty.
"""

from __future__ import annotations

import asyncio
import contextlib
import os
import sys
from collections.abc import Callable

from findterm.logging import get_logger
from findterm.terminal.protocol import TerminalOptions

log = get_logger("terminal")


def default_shell() -> str:
    """The shell used when no shell path is configured."""
    if sys.platform == "win32":
        return "powershell.exe"
    return os.environ.get("SHELL", "/bin/sh")


class SubprocessTerminal:
    """A TerminalHandle backed by an asyncio subprocess."""

    def __init__(self, name: str, process: asyncio.subprocess.Process) -> None:
        self.name = name
        self._process = process
        self._close_callbacks: list[Callable[[], None]] = []
        self._visible = False
        self._waiter = asyncio.create_task(self._wait_for_exit())

    @property
    def exit_status(self) -> int | None:
        return self._process.returncode

    @property
    def visible(self) -> bool:
        return self._visible

    async def _wait_for_exit(self) -> None:
        await self._process.wait()
        log.debug("Terminal %s exited with %s", self.name, self._process.returncode)
        for callback in self._close_callbacks:
            try:
                callback()
            except Exception as e:
                log.error("Error in terminal close callback: %s", e)
        self._close_callbacks.clear()

    def send_text(self, text: str, add_newline: bool = True) -> None:
        stdin = self._process.stdin
        if stdin is None or stdin.is_closing() or self.exit_status is not None:
            log.warning("Terminal %s is not accepting input", self.name)
            return
        payload = text + ("\n" if add_newline else "")
        stdin.write(payload.encode("utf-8"))

    def show(self, preserve_focus: bool = False) -> None:
        self._visible = True
        log.debug("Terminal %s shown", self.name)

    def hide(self) -> None:
        self._visible = False
        log.debug("Terminal %s hidden", self.name)

    def dispose(self) -> None:
        if self.exit_status is not None:
            return
        stdin = self._process.stdin
        if stdin is not None and not stdin.is_closing():
            stdin.close()
        with contextlib.suppress(ProcessLookupError):
            self._process.terminate()

    def on_did_close(self, callback: Callable[[], None]) -> None:
        if self._waiter.done():
            callback()
        else:
            self._close_callbacks.append(callback)


class SubprocessTerminalHost:
    """Creates SubprocessTerminal handles."""

    reports_close = True

    def __init__(self, cwd: str | None = None) -> None:
        self._cwd = cwd

    async def create_terminal(self, options: TerminalOptions) -> SubprocessTerminal:
        shell = options.shell_path or default_shell()
        env = os.environ.copy()
        env.update(options.env)

        process = await asyncio.create_subprocess_exec(
            shell,
            stdin=asyncio.subprocess.PIPE,
            cwd=self._cwd,
            env=env,
        )
        log.info("Started terminal %s (%s, pid %s)", options.name, shell, process.pid)
        terminal = SubprocessTerminal(options.name, process)
        if not options.hide_from_user:
            terminal.show()
        return terminal
