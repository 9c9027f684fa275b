"""Completion channel: the sentinel-file protocol between terminal and orchestrator.

The external script signals that an invocation finished by writing the
sentinel file. The first character of the content is '1' for failure; any
other content, including none, is success. The remaining lines are result
records of the form path[:line[:column]].

State machine per session:

    IDLE --open()--> WATCHING --change--> DECODING --> WATCHING
                        |
                        +--rename/delete--> TAMPERED (terminal; needs a new session)
    any --close()--> CLOSED
"""

from __future__ import annotations

import asyncio
from collections.abc import Callable
from dataclasses import dataclass
from enum import Enum
from pathlib import Path

from findterm.channel.watcher import PollingSentinelWatcher, SentinelEvent, SentinelWatcher
from findterm.errors import SentinelTampered
from findterm.logging import get_logger

log = get_logger("channel")

FAILURE_MARKER = "1"
SUCCESS_MARKER = "0"

WatcherFactory = Callable[[Path], SentinelWatcher]


class ChannelState(Enum):
    IDLE = "idle"
    WATCHING = "watching"
    DECODING = "decoding"
    TAMPERED = "tampered"
    CLOSED = "closed"


class Verdict(Enum):
    """Outcome of one invocation."""

    SUCCESS = "success"
    FAILURE = "failure"
    UNREADABLE = "unreadable"  # Sentinel changed but could not be read


@dataclass(frozen=True)
class CompletionEvent:
    """Decoded sentinel content."""

    verdict: Verdict
    results: tuple[str, ...] = ()
    error: str | None = None

    @property
    def success(self) -> bool:
        return self.verdict is Verdict.SUCCESS


def decode_sentinel(content: str) -> CompletionEvent:
    """Classify sentinel content and extract its result records.

    A leading "1" is a failure regardless of what follows. Otherwise the
    invocation succeeded; a first line consisting only of the status marker
    ("0" or blank) is dropped, every other non-empty line is a result record.
    """
    if content.startswith(FAILURE_MARKER):
        return CompletionEvent(Verdict.FAILURE)

    lines = content.splitlines()
    if lines and lines[0].strip() in ("", SUCCESS_MARKER):
        lines = lines[1:]
    results = tuple(line for line in lines if line.strip())
    return CompletionEvent(Verdict.SUCCESS, results)


def _read_text(path: Path) -> str:
    # Result records are filenames, which need not be valid UTF-8
    return path.read_text(encoding="utf-8", errors="surrogateescape")


class CompletionChannel:
    """Watches one session's sentinel and turns writes into CompletionEvents.

    Every decoded event goes to `listener`. A caller that sent a command via
    send() additionally receives the event through the returned future.
    Events from a watcher armed before the latest open() are ignored.
    """

    def __init__(
        self,
        sentinel: Path,
        listener: Callable[[CompletionEvent], None] | None = None,
        on_tampered: Callable[[SentinelTampered], None] | None = None,
        watcher_factory: WatcherFactory = PollingSentinelWatcher,
        reader: Callable[[Path], str] = _read_text,
    ) -> None:
        self._sentinel = sentinel
        self._listener = listener
        self._on_tampered = on_tampered
        self._watcher_factory = watcher_factory
        self._reader = reader
        self._watcher: SentinelWatcher | None = None
        self._generation = 0
        self._state = ChannelState.IDLE
        self._pending: asyncio.Future[CompletionEvent] | None = None

    @property
    def state(self) -> ChannelState:
        return self._state

    @property
    def sentinel(self) -> Path:
        return self._sentinel

    @property
    def generation(self) -> int:
        return self._generation

    def _truncate(self) -> None:
        self._sentinel.write_text("", encoding="utf-8")
        if self._watcher is not None:
            self._watcher.rebaseline()

    def open(self) -> None:
        """Create the empty sentinel and arm the watch."""
        if self._watcher is not None:
            self._watcher.stop()

        self._generation += 1
        generation = self._generation
        self._sentinel.write_text("", encoding="utf-8")
        self._watcher = self._watcher_factory(self._sentinel)
        self._watcher.start(lambda event: self._on_event(generation, event))
        self._state = ChannelState.WATCHING
        log.debug("Channel armed on %s (generation %d)", self._sentinel, generation)

    def send(self, command: str, sender: Callable[[str], None]) -> asyncio.Future[CompletionEvent]:
        """Re-arm the channel, hand the command to sender, and await its completion.

        Returns:
            A future resolved with the next CompletionEvent. It fails with
            SentinelTampered if the sentinel is removed, and is cancelled
            if the channel is closed first.
        """
        if self._state is not ChannelState.WATCHING:
            raise RuntimeError(f"Channel is not watching (state: {self._state.value})")

        if self._pending is not None and not self._pending.done():
            # A newer invocation supersedes one that never completed
            self._pending.cancel()

        self._truncate()
        future: asyncio.Future[CompletionEvent] = asyncio.get_running_loop().create_future()
        self._pending = future
        sender(command)
        return future

    def _on_event(self, generation: int, event: SentinelEvent) -> None:
        if generation != self._generation or self._state is not ChannelState.WATCHING:
            log.debug("Ignoring %s from stale watch (generation %d)", event.value, generation)
            return

        match event:
            case SentinelEvent.CHANGE:
                self._decode()
            case SentinelEvent.RENAME:
                self._tampered()

    def _read(self) -> CompletionEvent:
        try:
            content = self._reader(self._sentinel)
        except (OSError, ValueError) as e:
            log.warning("An error occurred while reading the sentinel file: %s", e)
            return CompletionEvent(Verdict.UNREADABLE, error=str(e))
        return decode_sentinel(content)

    def _decode(self) -> None:
        self._state = ChannelState.DECODING
        try:
            completion = self._read()
        finally:
            self._state = ChannelState.WATCHING
        log.info(
            "Invocation finished: %s (%d results)",
            completion.verdict.value,
            len(completion.results),
        )

        # Resolved first: the listener may close the channel
        pending, self._pending = self._pending, None
        if pending is not None and not pending.done():
            pending.set_result(completion)
        if self._listener is not None:
            try:
                self._listener(completion)
            except Exception:
                log.exception("Error in completion listener")

    def _tampered(self) -> None:
        log.error("Sentinel file %s was renamed or removed", self._sentinel)
        self._state = ChannelState.TAMPERED
        if self._watcher is not None:
            self._watcher.stop()
        error = SentinelTampered(str(self._sentinel))
        if self._pending is not None and not self._pending.done():
            self._pending.set_exception(error)
            # Retrieved by whoever awaits it; avoid "never retrieved" noise
            self._pending.exception()
        self._pending = None
        if self._on_tampered is not None:
            self._on_tampered(error)

    def close(self) -> None:
        """Stop watching and abandon any pending completion."""
        if self._watcher is not None:
            self._watcher.stop()
            self._watcher = None
        if self._pending is not None and not self._pending.done():
            self._pending.cancel()
        self._pending = None
        self._generation += 1
        self._state = ChannelState.CLOSED
