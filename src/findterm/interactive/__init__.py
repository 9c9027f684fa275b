"""Console runtime: an EditorHost and REPL for use outside an editor."""

from findterm.interactive.console_host import ConsoleEditorHost
from findterm.interactive.repl import InteractiveRepl

__all__ = ["ConsoleEditorHost", "InteractiveRepl"]
