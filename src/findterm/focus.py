"""Returning focus to the terminal that was active before a command ran.

The remembered terminal is never owned: it may be closed at any time, so
every use checks that it is still alive, and a generation counter tells a
stale remembrance from the current one.
"""

from __future__ import annotations

from enum import Enum

from findterm.logging import get_logger
from findterm.terminal.protocol import TerminalHandle

log = get_logger("focus")


class FocusState(Enum):
    IDLE = "idle"
    SWITCH_PENDING = "switch_pending"


def should_hide(success: bool, hide_after_success: bool, hide_after_fail: bool) -> bool:
    """Visibility policy applied once the verdict is known."""
    return (success and hide_after_success) or (not success and hide_after_fail)


class FocusRestoreController:
    def __init__(self) -> None:
        self._previous: TerminalHandle | None = None
        self._generation = 0
        self._caused_switch = False
        self._state = FocusState.IDLE

    @property
    def state(self) -> FocusState:
        return self._state

    @property
    def generation(self) -> int:
        return self._generation

    @property
    def previous(self) -> TerminalHandle | None:
        """The remembered terminal, if it is still alive."""
        if self._previous is not None and self._previous.exit_status is not None:
            log.debug("Previously active terminal %s has closed", self._previous.name)
            self._forget()
        return self._previous

    def _forget(self) -> None:
        self._previous = None
        self._caused_switch = False
        self._state = FocusState.IDLE

    def remember(self, terminal: TerminalHandle | None) -> None:
        """Record the terminal that had focus before a command was sent."""
        self._generation += 1
        self._previous = terminal
        self._caused_switch = False
        self._state = FocusState.IDLE

    def on_completion(self, success: bool, hide_after_success: bool, hide_after_fail: bool) -> bool:
        """Re-focus the previous terminal after a command completed.

        Returns:
            True if a previous terminal was re-focused.
        """
        previous = self.previous
        if previous is None:
            return False

        if should_hide(success, hide_after_success, hide_after_fail):
            self._state = FocusState.SWITCH_PENDING
        self._caused_switch = True
        previous.show()
        return True

    def on_active_terminal_changed(self, terminal: TerminalHandle | None) -> None:
        """Handle the host's active-terminal notification.

        Only the switch this controller caused is acted on, and only once.
        """
        if self._state is not FocusState.SWITCH_PENDING:
            return
        previous = self.previous
        if previous is None or not self._caused_switch or terminal is not previous:
            return

        previous.hide()
        log.debug("Restored focus to %s", previous.name)
        self._forget()
