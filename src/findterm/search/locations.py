"""Search-location resolution.

Computes the ordered list of directories handed to the search scripts and
records, per path, every rule that caused it to be included. Nothing here
touches the filesystem.
"""

from __future__ import annotations

import os
import sys
from collections.abc import Callable, Mapping, Sequence
from dataclasses import dataclass, field
from enum import Flag
from types import MappingProxyType
from urllib.parse import unquote

from findterm.config.schema import LocationSettings, SearchPolicy
from findterm.logging import get_logger

log = get_logger("search")

FILE_SCHEME = "file://"


class PathOrigin(Flag):
    """Why a path was included in the search. Paths may carry several bits."""

    NONE = 0
    CWD = 1
    WORKSPACE = 2
    SETTINGS = 4


@dataclass(frozen=True)
class SearchRoot:
    """A search path and the OR of every origin that produced it."""

    path: str
    origin: PathOrigin


@dataclass(frozen=True)
class SearchLocations:
    """Result of resolve().

    Attributes:
        paths: Paths in rule order, duplicates kept. This is what the
            external tool receives.
        origins: Accumulated origin mask per distinct path, in order of
            first appearance.
        errors: Messages for folders that could not be translated.
    """

    paths: tuple[str, ...] = ()
    origins: Mapping[str, PathOrigin] = field(default_factory=lambda: MappingProxyType({}))
    errors: tuple[str, ...] = ()

    @property
    def roots(self) -> list[SearchRoot]:
        """One SearchRoot per distinct path, first-appearance order."""
        return [SearchRoot(path, origin) for path, origin in self.origins.items()]

    def __len__(self) -> int:
        return len(self.paths)


def _policy_applies(policy: SearchPolicy, workspace_open: bool) -> bool:
    match policy:
        case SearchPolicy.ALWAYS:
            return True
        case SearchPolicy.NEVER:
            return False
        case SearchPolicy.NO_WORKSPACE_ONLY:
            return not workspace_open
    raise AssertionError(f"Unhandled search policy: {policy}")


def folder_uri_to_path(uri: str, is_windows: bool | None = None) -> str | None:
    """Translate a workspace-folder URI into a native filesystem path.

    Args:
        uri: Folder URI such as "file:///home/me/repo" or
            "file:///c%3A/Users/me/repo".
        is_windows: Target platform; defaults to the running one.

    Returns:
        The native path, or None when the scheme is not file://.
    """
    if is_windows is None:
        is_windows = sys.platform == "win32"

    decoded = unquote(uri)
    if not decoded.startswith(FILE_SCHEME):
        return None

    if is_windows:
        # file:///c:/x -> c:\x
        return decoded[len(FILE_SCHEME) + 1 :].replace("/", "\\").replace("%3A", ":")
    return decoded[len(FILE_SCHEME) :]


def resolve(
    settings: LocationSettings,
    workspace_folders: Sequence[str] | None,
    cwd: str | None = None,
    is_windows: bool | None = None,
    on_error: Callable[[str], None] | None = None,
) -> SearchLocations:
    """Resolve the search locations for the given settings.

    Rules are applied in order: current working directory, configured
    additional locations, workspace folders. A path matched by several rules
    accumulates their origins.

    Args:
        settings: Location slice of the current Config.
        workspace_folders: Folder URIs of the open workspace, or None when no
            workspace is open.
        cwd: Working directory of the host process; defaults to os.getcwd().
        is_windows: Platform used to decode folder URIs.
        on_error: Called with a message for every unsupported folder URI.

    Returns:
        A new SearchLocations.
    """
    workspace_open = workspace_folders is not None
    paths: list[str] = []
    origins: dict[str, PathOrigin] = {}
    errors: list[str] = []

    def add(path: str, origin: PathOrigin) -> None:
        paths.append(path)
        origins[path] = origins.get(path, PathOrigin.NONE) | origin

    if _policy_applies(settings.search_current_working_directory, workspace_open):
        add(cwd if cwd is not None else os.getcwd(), PathOrigin.CWD)

    if _policy_applies(settings.additional_search_locations_when, workspace_open):
        for location in settings.additional_search_locations:
            add(location, PathOrigin.SETTINGS)

    if settings.search_workspace_folders and workspace_folders is not None:
        for uri in workspace_folders:
            path = folder_uri_to_path(uri, is_windows)
            if path is None:
                message = f"Non-file:// URIs are not currently supported: {uri}"
                log.error(message)
                errors.append(message)
                if on_error is not None:
                    on_error(message)
                path = ""
            add(path, PathOrigin.WORKSPACE)

    return SearchLocations(
        paths=tuple(paths), origins=MappingProxyType(origins), errors=tuple(errors)
    )


_HEADINGS = (
    (PathOrigin.CWD, "Paths added because they're the working directory:"),
    (PathOrigin.WORKSPACE, "Paths added because they're defined in the workspace:"),
    (PathOrigin.SETTINGS, "Paths added because they're specified in the settings:"),
)


def explain(locations: SearchLocations, use_color: bool = False) -> str:
    """Produce a human-readable report of where the search paths come from.

    Each path is listed once under every category it belongs to; an empty
    category shows "- <none>". With use_color, headings are wrapped in
    escaped ANSI sequences meant for the shell's `echo -e`.
    """
    lines: list[str] = []
    for origin, heading in _HEADINGS:
        lines.append(f"\\033[36m{heading}\\033[0m" if use_color else heading)
        members = [path for path, mask in locations.origins.items() if mask & origin]
        if members:
            lines.extend(f"- {path}" for path in members)
        else:
            lines.append("- <none>")
    return "\n".join(lines) + "\n"
