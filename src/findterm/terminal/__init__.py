"""Terminal session management and command-line construction.

The interactive search runs in a long-lived terminal session created through
a TerminalHost; one-shot helper commands run through
SubprocessTerminalExecutor.
"""

from findterm.terminal.commandline import CommandLineBuilder, CommandRequest
from findterm.terminal.protocol import (
    AsyncioClock,
    Clock,
    TerminalHandle,
    TerminalHost,
    TerminalOptions,
)
from findterm.terminal.result import ShellResult
from findterm.terminal.session import (
    SessionPaths,
    SessionState,
    TerminalSession,
    TerminalSessionManager,
    build_environment,
)
from findterm.terminal.subprocess_executor import SubprocessTerminalExecutor

__all__ = [
    "AsyncioClock",
    "Clock",
    "CommandLineBuilder",
    "CommandRequest",
    "SessionPaths",
    "SessionState",
    "ShellResult",
    "SubprocessTerminalExecutor",
    "TerminalHandle",
    "TerminalHost",
    "TerminalOptions",
    "TerminalSession",
    "TerminalSessionManager",
    "build_environment",
]

# SubprocessTerminalHost is imported from findterm.terminal.subprocess_host
# by the console runtime only
