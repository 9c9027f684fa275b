"""Command-line interface for findterm."""

from __future__ import annotations

import argparse
import asyncio
import os
from collections.abc import Sequence
from pathlib import Path
from typing import Any

from findterm import __version__
from findterm.commands import CATALOG
from findterm.config import ConfigWatcher, load_config
from findterm.logging import setup_logging


def create_parser() -> argparse.ArgumentParser:
    """Create the argument parser."""
    parser = argparse.ArgumentParser(
        prog="findterm",
        description="Run fzf/ripgrep searches in a terminal session and open the results",
    )
    parser.add_argument(
        "--version",
        action="version",
        version=f"%(prog)s {__version__}",
    )
    parser.add_argument(
        "-v", "--verbose",
        action="count",
        default=None,
        help="Increase verbosity (can be repeated)",
    )
    parser.add_argument(
        "--project",
        type=Path,
        help="Project directory for .findterm/config.yaml (default: current directory)",
    )
    parser.add_argument(
        "--workspace",
        nargs="*",
        type=Path,
        default=None,
        help="Workspace folders to search (default: no workspace open)",
    )
    parser.add_argument(
        "--scripts-dir",
        type=Path,
        help="Directory holding the search scripts",
    )
    parser.add_argument(
        "--open-with",
        help="Command used to open results, e.g. 'code -g'",
    )
    parser.add_argument(
        "--history",
        type=Path,
        help="File for REPL history",
    )

    subparsers = parser.add_subparsers(dest="mode", help="Operating mode")

    run_parser = subparsers.add_parser("run", help="Run one command and exit")
    run_parser.add_argument("command", choices=sorted(CATALOG), help="Command to run")
    run_parser.add_argument(
        "--selection",
        help="Text to use as the editor selection",
    )

    subparsers.add_parser("interactive", help="Interactive REPL (default)")

    return parser


async def _run(args: argparse.Namespace) -> int:
    from findterm.interactive import ConsoleEditorHost, InteractiveRepl
    from findterm.orchestrator import Orchestrator
    from findterm.terminal.subprocess_host import SubprocessTerminalHost

    project_root = str(args.project or Path.cwd())
    overrides: dict[str, Any] = {}
    if args.scripts_dir:
        overrides["scripts_dir"] = str(args.scripts_dir)

    config = load_config(project_root, overrides)
    # -v -> verbose, -vv -> trace
    setup_logging(config.logging, verbose=2 + args.verbose if args.verbose else None)

    workspace = [str(p) for p in args.workspace] if args.workspace is not None else None
    host = ConsoleEditorHost(workspace=workspace, opener=args.open_with)
    orchestrator = Orchestrator(host, SubprocessTerminalHost(cwd=project_root), config)

    if not await orchestrator.activate(exposed=CATALOG):
        return 1

    try:
        if args.mode == "run":
            host.set_selection(args.selection)
            event = await host.commands[args.command]()
            return 0 if event is None or getattr(event, "success", False) else 1

        async with ConfigWatcher(orchestrator.on_settings_changed, project_root, overrides):
            await InteractiveRepl(orchestrator, host, history_file=args.history).run()
        return 0
    finally:
        await orchestrator.deactivate()


def main(argv: Sequence[str] | None = None) -> int:
    """Main entry point."""
    parser = create_parser()
    args = parser.parse_args(argv)

    if args.workspace is None and os.environ.get("FINDTERM_WORKSPACE"):
        args.workspace = [Path(p) for p in os.environ["FINDTERM_WORKSPACE"].split(os.pathsep)]

    try:
        return asyncio.run(_run(args))
    except KeyboardInterrupt:
        return 130
