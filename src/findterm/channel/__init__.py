"""Completion signaling between the terminal and the orchestrator."""

from findterm.channel.completion import (
    ChannelState,
    CompletionChannel,
    CompletionEvent,
    Verdict,
    decode_sentinel,
)
from findterm.channel.watcher import PollingSentinelWatcher, SentinelEvent, SentinelWatcher

__all__ = [
    "ChannelState",
    "CompletionChannel",
    "CompletionEvent",
    "PollingSentinelWatcher",
    "SentinelEvent",
    "SentinelWatcher",
    "Verdict",
    "decode_sentinel",
]
