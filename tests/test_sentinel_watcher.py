"""Tests for the polling sentinel watcher."""

from __future__ import annotations

import asyncio
import os

import pytest

from findterm.channel.watcher import PollingSentinelWatcher, SentinelEvent


@pytest.fixture
def sentinel(tmp_path):
    path = tmp_path / "snitch"
    path.write_text("")
    return path


class TestCheck:
    """Synchronous change detection."""

    def test_no_change(self, sentinel):
        watcher = PollingSentinelWatcher(sentinel)
        assert watcher.check() is None

    def test_in_place_write(self, sentinel):
        watcher = PollingSentinelWatcher(sentinel)
        sentinel.write_text("0\n/repo/x.go:3:1\n")
        assert watcher.check() is SentinelEvent.CHANGE
        assert watcher.check() is None

    def test_delete(self, sentinel):
        watcher = PollingSentinelWatcher(sentinel)
        sentinel.unlink()
        assert watcher.check() is SentinelEvent.RENAME

    def test_replaced_by_other_file(self, sentinel, tmp_path):
        watcher = PollingSentinelWatcher(sentinel)
        other = tmp_path / "other"
        other.write_text("")
        os.replace(other, sentinel)
        assert watcher.check() is SentinelEvent.RENAME

    def test_rebaseline_absorbs_own_write(self, sentinel):
        watcher = PollingSentinelWatcher(sentinel)
        sentinel.write_text("stale content")
        watcher.rebaseline()
        assert watcher.check() is None


class TestPolling:
    """The asyncio poll loop."""

    @pytest.mark.asyncio
    async def test_delivers_events(self, sentinel):
        loop = asyncio.get_running_loop()
        received: asyncio.Future[SentinelEvent] = loop.create_future()
        watcher = PollingSentinelWatcher(sentinel, poll_interval=0.01)
        watcher.start(lambda event: received.done() or received.set_result(event))
        try:
            sentinel.write_text("1")
            event = await asyncio.wait_for(received, timeout=2)
        finally:
            watcher.stop()
        assert event is SentinelEvent.CHANGE

    @pytest.mark.asyncio
    async def test_stop(self, sentinel):
        watcher = PollingSentinelWatcher(sentinel, poll_interval=0.01)
        watcher.start(lambda event: None)
        assert watcher.is_running()
        watcher.stop()
        watcher.stop()
        assert not watcher.is_running()
