"""End-to-end tests for the orchestrator against in-memory hosts."""

from __future__ import annotations

import asyncio
import shlex
from dataclasses import replace

import pytest

from findterm.channel.watcher import SentinelEvent
from findterm.commands import CATALOG
from findterm.config.schema import AdvancedConfig, CustomTask
from findterm.host import Position
from findterm.orchestrator import Orchestrator
from findterm.terminal.session import SessionState
from tests.utils import FakeExecutor, FakeTerminal, make_config, ok, settle

ALL_INSTALLED = "bat: 0.24.0\nfzf: 0.46\nrg: 14.1.0\nsed: 4.9\n"


@pytest.fixture
def executor():
    return FakeExecutor(
        {
            "flight_check.sh": ok(ALL_INSTALLED),
            "rg": ok("go: *.go\npy: *.py\nrust: *.rs\n"),
        }
    )


@pytest.fixture
def build(editor, terminal_host, watchers, clock, executor, tmp_path):
    """Build an orchestrator; keyword arguments are general settings."""
    built: list[Orchestrator] = []

    def factory(config=None, is_windows=False, **general):
        orchestrator = Orchestrator(
            editor,
            terminal_host,
            config or make_config(tmp_path, **general),
            executor=executor,
            watcher_factory=watchers,
            clock=clock,
            is_windows=is_windows,
            cwd="/home/me",
        )
        built.append(orchestrator)
        return orchestrator

    yield factory
    for orchestrator in built:
        orchestrator.sessions.dispose()


async def start(orchestrator: Orchestrator, name: str) -> asyncio.Task:
    """Start a command and let it run until it waits for the sentinel."""
    task = asyncio.create_task(orchestrator.execute(name))
    await settle()
    return task


def complete(orchestrator: Orchestrator, watchers, content: str) -> None:
    """Simulate the script writing the sentinel."""
    orchestrator.sessions.session.paths.sentinel.write_text(content)
    watchers.latest.emit(SentinelEvent.CHANGE)


class TestActivation:
    @pytest.mark.asyncio
    async def test_registers_every_command(self, build, editor, terminal_host):
        orchestrator = build()
        assert await orchestrator.activate(exposed=CATALOG)
        assert set(editor.commands) == set(CATALOG)
        assert len(terminal_host.created) == 1
        assert orchestrator.locations.paths == ("/repo",)

    @pytest.mark.asyncio
    async def test_flight_check_blocks_commands(self, build, editor, terminal_host, executor, tmp_path):
        executor.outputs["flight_check.sh"] = ok("bat: 1\nfzf: 1\nrg: not installed\nsed: 1\n")
        orchestrator = build(config=make_config(tmp_path, advanced=AdvancedConfig()))

        assert not await orchestrator.activate()
        assert not orchestrator.flight_check_passed
        assert "rg not found on your PATH." in editor.errors[0]

        assert await orchestrator.execute("findFiles") is None
        assert terminal_host.created == []

    @pytest.mark.asyncio
    async def test_flight_check_passes(self, build, terminal_host, executor, tmp_path):
        orchestrator = build(config=make_config(tmp_path, advanced=AdvancedConfig()))
        assert await orchestrator.activate()
        assert orchestrator.flight_check_passed
        assert len(terminal_host.created) == 1

        await orchestrator.reinitialize()
        checks = [call for call in executor.calls if call[0].endswith("flight_check.sh")]
        assert len(checks) == 1

    @pytest.mark.asyncio
    async def test_settings_change_recreates_session(self, build, terminal_host, tmp_path):
        orchestrator = build()
        await orchestrator.activate()
        first = orchestrator.sessions.session

        await orchestrator.on_settings_changed(make_config(tmp_path, bat_theme="Nord"))

        assert first.state is SessionState.DISPOSED
        assert len(terminal_host.created) == 2
        assert terminal_host.latest.options.env["BAT_THEME"] == "Nord"

    @pytest.mark.asyncio
    async def test_workspace_folders_changed(self, build, editor):
        orchestrator = build()
        await orchestrator.activate()
        editor.folders = ["file:///repo", "file:///lib"]

        orchestrator.on_workspace_folders_changed()

        assert orchestrator.locations.paths == ("/repo", "/lib")

    @pytest.mark.asyncio
    async def test_deactivate(self, build, watchers):
        orchestrator = build()
        await orchestrator.activate()
        await orchestrator.deactivate()
        assert orchestrator.sessions.state is SessionState.ABSENT
        assert watchers.active == []


class TestFindFiles:
    @pytest.mark.asyncio
    async def test_end_to_end(self, build, editor, terminal_host, watchers, tmp_path):
        orchestrator = build()
        await orchestrator.activate()
        terminal = terminal_host.latest

        task = await start(orchestrator, "findFiles")

        script = shlex.quote(str(tmp_path / "scripts" / "find_files.sh"))
        assert terminal.sent == [f"HAS_SELECTION=0 {script} '/repo'"]
        assert terminal.show_count == 1

        complete(orchestrator, watchers, "0\n/repo/x.go:3:1\n")
        event = await task

        assert event.success
        assert editor.opened == [("/repo/x.go", Position(2, 0), False)]
        assert terminal.sent[-1] == "clear"
        assert terminal.hide_count == 1

    @pytest.mark.asyncio
    async def test_via_registered_command(self, build, editor, watchers):
        orchestrator = build()
        await orchestrator.activate()

        task = asyncio.create_task(editor.commands["findFiles"]())
        await settle()
        complete(orchestrator, watchers, "")

        assert (await task).success
        assert editor.opened == []

    @pytest.mark.asyncio
    async def test_failure_keeps_terminal_visible(self, build, editor, terminal_host, watchers):
        orchestrator = build(hide_terminal_after_fail=False)
        await orchestrator.activate()

        task = await start(orchestrator, "findFiles")
        complete(orchestrator, watchers, "1\n/repo/x.go\n")
        event = await task

        assert not event.success
        assert editor.opened == []
        assert terminal_host.latest.hide_count == 0

    @pytest.mark.asyncio
    async def test_selection_seeds_query(self, build, editor, terminal_host, watchers):
        orchestrator = build()
        await orchestrator.activate()
        editor.selection = "foo $(bar)"

        task = await start(orchestrator, "findWithinFiles")

        command = terminal_host.latest.sent[0]
        assert command.startswith("HAS_SELECTION=1 ")
        assert "$(bar)" not in command
        assert orchestrator.sessions.session.paths.selection.read_text() == "foo $(bar)"
        complete(orchestrator, watchers, "")
        await task

    @pytest.mark.asyncio
    async def test_selection_seeding_disabled(self, build, editor, terminal_host, watchers, tmp_path):
        config = make_config(
            tmp_path,
            advanced=AdvancedConfig(disable_startup_checks=True, use_editor_selection_as_query=False),
        )
        orchestrator = build(config=config)
        await orchestrator.activate()
        editor.selection = "foo"

        task = await start(orchestrator, "findWithinFiles")

        assert terminal_host.latest.sent[0].startswith("HAS_SELECTION=0 ")
        complete(orchestrator, watchers, "")
        await task

    @pytest.mark.asyncio
    async def test_unreadable_sentinel_warns(self, build, editor, terminal_host, watchers):
        orchestrator = build()
        await orchestrator.activate()

        task = await start(orchestrator, "findFiles")
        orchestrator.sessions.session.paths.sentinel.unlink()
        watchers.latest.emit(SentinelEvent.CHANGE)
        await task

        assert "An error occurred while reading the sentinel file" in editor.warnings[0]
        assert terminal_host.latest.hide_count == 0

    @pytest.mark.asyncio
    async def test_non_utf8_result_path(self, build, editor, watchers):
        orchestrator = build()
        await orchestrator.activate()

        task = await start(orchestrator, "findFiles")
        orchestrator.sessions.session.paths.sentinel.write_bytes(b"/repo/caf\xe9.txt:1:1\n")
        watchers.latest.emit(SentinelEvent.CHANGE)
        event = await task

        assert event.success
        assert editor.opened == [("/repo/caf\udce9.txt", Position(0, 0), False)]
        assert editor.warnings == []

        task = await start(orchestrator, "findFiles")
        complete(orchestrator, watchers, "0\n/repo/y.go\n")
        assert (await task).results == ("/repo/y.go",)

    @pytest.mark.asyncio
    async def test_maximized_terminal(self, build, editor, watchers):
        orchestrator = build(show_maximized_terminal=True)
        await orchestrator.activate()

        task = await start(orchestrator, "findFiles")
        complete(orchestrator, watchers, "")
        await task

        assert editor.maximize_count == 1

    @pytest.mark.asyncio
    async def test_list_search_locations_writes_explanation(self, build, watchers):
        orchestrator = build()
        await orchestrator.activate()

        task = await start(orchestrator, "listSearchLocations")
        explanation = orchestrator.sessions.session.paths.explain.read_text()
        complete(orchestrator, watchers, "")
        await task

        assert "- /repo" in explanation
        assert "\\033[36mPaths added because they're defined in the workspace:" in explanation
        assert orchestrator.last_command is None

    @pytest.mark.asyncio
    async def test_unknown_command(self, build, editor):
        orchestrator = build()
        await orchestrator.activate()
        assert await orchestrator.execute("findEverything") is None
        assert editor.errors == ["Unknown command: findEverything"]


class TestResume:
    @pytest.mark.asyncio
    async def test_nothing_to_resume(self, build, editor, terminal_host):
        orchestrator = build()
        await orchestrator.activate()

        assert await orchestrator.execute("resumeSearch") is None

        assert editor.errors == ["Cannot resume the last search because no search was run yet."]
        assert terminal_host.latest.sent == []

    @pytest.mark.asyncio
    async def test_windows_unsupported(self, build, editor):
        orchestrator = build(is_windows=True)
        await orchestrator.activate()

        assert await orchestrator.execute("resumeSearch") is None

        assert "not implemented on Windows" in editor.errors[0]

    @pytest.mark.asyncio
    async def test_replays_last_command(self, build, terminal_host, watchers):
        orchestrator = build()
        await orchestrator.activate()
        task = await start(orchestrator, "findWithinFiles")
        complete(orchestrator, watchers, "")
        await task

        task = await start(orchestrator, "resumeSearch")

        command = terminal_host.latest.sent[-1]
        assert command.startswith("HAS_SELECTION=0 RESUME_SEARCH=1 ")
        assert "find_within_files.sh" in command
        assert orchestrator.last_command == "findWithinFiles"
        complete(orchestrator, watchers, "")
        await task

    @pytest.mark.asyncio
    async def test_resume_after_kill(self, build, terminal_host, watchers, clock):
        orchestrator = build(kill_terminal_after_use=True)
        await orchestrator.activate()
        task = await start(orchestrator, "findFiles")
        orchestrator.sessions.session.paths.last_query.write_text("needle")
        complete(orchestrator, watchers, "")
        await task

        clock.advance()
        assert terminal_host.created[0].dispose_count == 1
        assert orchestrator.sessions.state is SessionState.ABSENT

        task = await start(orchestrator, "resumeSearch")

        assert len(terminal_host.created) == 2
        assert "RESUME_SEARCH=1" in terminal_host.latest.sent[0]
        assert orchestrator.sessions.session.paths.last_query.read_text() == "needle"
        complete(orchestrator, watchers, "")
        await task

    @pytest.mark.asyncio
    async def test_command_while_killed_terminal_winds_down(
        self, build, editor, terminal_host, watchers, clock
    ):
        orchestrator = build(kill_terminal_after_use=True)
        await orchestrator.activate()
        task = await start(orchestrator, "findFiles")
        complete(orchestrator, watchers, "")
        assert (await task).success

        task = await start(orchestrator, "findWithinFiles")

        doomed, fresh = terminal_host.created
        assert not any("find_within_files.sh" in line for line in doomed.sent)
        assert "find_within_files.sh" in fresh.sent[0]

        clock.advance()
        assert doomed.dispose_count == 1
        assert not task.done()

        complete(orchestrator, watchers, "0\n/repo/x.go:3:1\n")
        event = await task
        assert event.success
        assert editor.opened == [("/repo/x.go", Position(2, 0), False)]


class TestTypeFilter:
    @pytest.mark.asyncio
    async def test_pick_and_run(self, build, editor, terminal_host, watchers):
        orchestrator = build()
        await orchestrator.activate()
        editor.type_filter_answer = ["py", "X", "rust"]

        task = await start(orchestrator, "findFilesWithType")

        assert "TYPE_FILTER='rust' " in terminal_host.latest.sent[0]
        complete(orchestrator, watchers, "")
        await task
        assert orchestrator.type_filter == frozenset({"rust"})
        assert orchestrator.last_command == "findFilesWithType"

        editor.type_filter_answer = None
        assert await orchestrator.execute("findWithinFilesWithType") is None

        options, current = editor.type_filter_calls[-1]
        assert current == ["rust"]
        assert [o.name for o in options if o.picked] == ["rust"]
        assert len(terminal_host.latest.sent) == 2  # command + clear

    @pytest.mark.asyncio
    async def test_empty_filter_omitted(self, build, editor, terminal_host, watchers):
        orchestrator = build()
        await orchestrator.activate()
        editor.type_filter_answer = []

        task = await start(orchestrator, "findWithinFilesWithType")

        assert "TYPE_FILTER" not in terminal_host.latest.sent[0]
        complete(orchestrator, watchers, "")
        await task


class TestCustomTask:
    @pytest.mark.asyncio
    async def test_sends_task_verbatim(self, build, editor, terminal_host, tmp_path):
        task = CustomTask(name="lint", command="make lint && echo 'done'")
        orchestrator = build(config=replace(make_config(tmp_path), custom_tasks=(task,)))
        await orchestrator.activate()
        editor.custom_task_answer = task

        assert await orchestrator.execute("runCustomTask") is None

        assert terminal_host.latest.sent == ["make lint && echo 'done'"]
        assert terminal_host.latest.show_count == 1

    @pytest.mark.asyncio
    async def test_no_tasks(self, build, editor, terminal_host):
        orchestrator = build()
        await orchestrator.activate()

        await orchestrator.execute("runCustomTask")

        assert editor.warnings == ["No custom tasks defined. Add some in the settings."]
        assert terminal_host.latest.sent == []


class TestFocusRestore:
    @pytest.mark.asyncio
    async def test_returns_to_previous_terminal(self, build, editor, terminal_host, watchers):
        orchestrator = build(restore_focus_terminal=True)
        await orchestrator.activate()
        previous = FakeTerminal("zsh")
        editor.active = previous

        task = await start(orchestrator, "findFiles")
        complete(orchestrator, watchers, "0\n/repo/a.txt\n")
        await task

        assert previous.show_count == 1
        assert terminal_host.latest.hide_count == 0

        orchestrator.on_active_terminal_changed(previous)
        assert previous.hide_count == 1

    @pytest.mark.asyncio
    async def test_own_terminal_not_remembered(self, build, editor, terminal_host, watchers):
        orchestrator = build(restore_focus_terminal=True)
        await orchestrator.activate()
        editor.active = terminal_host.latest

        task = await start(orchestrator, "findFiles")
        complete(orchestrator, watchers, "")
        await task

        assert orchestrator.focus.previous is None
        assert terminal_host.latest.hide_count == 1


class TestTampering:
    @pytest.mark.asyncio
    async def test_rename_disposes_session(self, build, editor, terminal_host, watchers):
        orchestrator = build()
        await orchestrator.activate()

        task = await start(orchestrator, "findFiles")
        watchers.latest.emit(SentinelEvent.RENAME)

        assert await task is None
        assert editor.errors == [
            "Issue detected with extension findterm. You may have to reload it."
        ]
        assert orchestrator.sessions.state is SessionState.ABSENT
        assert watchers.active == []

        task = await start(orchestrator, "findFiles")
        assert len(terminal_host.created) == 2
        complete(orchestrator, watchers, "")
        assert (await task).success
