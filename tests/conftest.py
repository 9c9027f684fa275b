"""Root pytest configuration for all tests."""

from __future__ import annotations

import pytest

from tests.utils import FakeClock, FakeEditor, FakeTerminalHost, WatcherRegistry

# Configure pytest-asyncio to use auto mode
# This is redundant with pyproject.toml but ensures it's set
pytest_plugins = ("pytest_asyncio",)


@pytest.fixture(scope="session")
def anyio_backend():
    """Set anyio backend to asyncio."""
    return "asyncio"


@pytest.fixture
def terminal_host() -> FakeTerminalHost:
    return FakeTerminalHost()


@pytest.fixture
def watchers() -> WatcherRegistry:
    return WatcherRegistry()


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def editor() -> FakeEditor:
    return FakeEditor(folders=["file:///repo"])
