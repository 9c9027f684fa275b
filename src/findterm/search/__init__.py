"""Search-location resolution and diagnostics."""

from findterm.search.locations import (
    PathOrigin,
    SearchLocations,
    SearchRoot,
    explain,
    folder_uri_to_path,
    resolve,
)

__all__ = [
    "PathOrigin",
    "SearchLocations",
    "SearchRoot",
    "explain",
    "folder_uri_to_path",
    "resolve",
]
