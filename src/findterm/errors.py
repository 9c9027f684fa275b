"""Exception types raised by findterm."""

from __future__ import annotations


class FindTermError(Exception):
    """Base class for findterm errors."""


class MissingScriptBinding(FindTermError):
    """A command has no script path bound to it.

    This is a setup error: script paths are bound and validated at
    activation, so it should never surface at runtime.
    """

    def __init__(self, command: str) -> None:
        super().__init__(f"No script bound for command: {command}")
        self.command = command


class UnknownCommand(FindTermError):
    """A command name is not part of the command catalog."""

    def __init__(self, command: str) -> None:
        super().__init__(f"Unknown command: {command}")
        self.command = command


class UnsupportedPlatformOperation(FindTermError):
    """The requested operation is not implemented on this platform."""


class SentinelTampered(FindTermError):
    """The sentinel file was renamed, deleted or replaced by someone else."""

    def __init__(self, path: str) -> None:
        super().__init__(f"Sentinel file was renamed or removed: {path}")
        self.path = path
