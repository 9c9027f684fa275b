"""Turning result records into editor navigation."""

from __future__ import annotations

import re
import sys
from collections.abc import Iterable
from dataclasses import dataclass

from findterm.host import EditorHost, Position
from findterm.logging import get_logger

log = get_logger("navigation")

# Windows paths carry a drive-letter colon; split it from the :line:col suffix
_WINDOWS_RECORD = re.compile(
    r"^\s*(?P<file>([a-zA-Z]:)?[^:]+)(:(?P<line>\d+))?\s*(:(?P<column>\d+))?.*"
)


@dataclass(frozen=True)
class OpenTarget:
    """A file to open and where to put the cursor (0-based), if anywhere."""

    path: str
    position: Position | None = None


def _to_index(value: str | None) -> int | None:
    """1-based text to 0-based int; None if missing or not a number."""
    if value is None:
        return None
    try:
        return int(value.strip()) - 1
    except ValueError:
        return None


def parse_record(record: str, is_windows: bool | None = None) -> OpenTarget | None:
    """Parse one path[:line[:column]] record.

    Returns:
        The target, or None if the record does not match the Windows pattern.
    """
    if is_windows is None:
        is_windows = sys.platform == "win32"

    if is_windows:
        match = _WINDOWS_RECORD.match(record)
        if match is None:
            return None
        file, line_text, column_text = match["file"], match["line"], match["column"]
    else:
        fields = record.split(":")[:3]
        fields += [None] * (3 - len(fields))
        file, line_text, column_text = fields

    position = None
    if line_text is not None:
        line = _to_index(line_text)
        column = _to_index(column_text) if column_text is not None else 0
        if line is not None and column is not None and line >= 0 and column >= 0:
            position = Position(line, column)

    return OpenTarget(file.strip(), position)


class ResultNavigator:
    """Opens every result record in the editor, in payload order."""

    def __init__(self, host: EditorHost, is_windows: bool | None = None) -> None:
        self._host = host
        self._is_windows = sys.platform == "win32" if is_windows is None else is_windows

    def parse(self, records: Iterable[str]) -> list[OpenTarget]:
        targets: list[OpenTarget] = []
        for record in records:
            if not record.strip():
                continue
            target = parse_record(record, self._is_windows)
            if target is None:
                message = f"Did not match anything in filename: [{record}] could not open file!"
                log.warning(message)
                self._host.show_warning(message)
                continue
            targets.append(target)
        return targets

    def navigate(self, records: Iterable[str], preview: bool = False) -> list[OpenTarget]:
        """Open each referenced file at its position. Returns what was opened."""
        targets = self.parse(records)
        for target in targets:
            log.debug("Opening %s at %s", target.path, target.position)
            self._host.open_document(target.path, target.position, preview)
        return targets
