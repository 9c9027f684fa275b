"""Configuration schema dataclasses for findterm.

A Config is an immutable snapshot: it is rebuilt from scratch whenever the
settings change and handed to each component explicitly. All fields have
defaults so partial config files merge cleanly.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any


class SearchPolicy(Enum):
    """When a search-location rule applies.

    - ALWAYS: the rule always contributes its paths
    - NEVER: the rule is disabled
    - NO_WORKSPACE_ONLY: the rule applies only when no workspace is open
    """

    ALWAYS = "always"
    NEVER = "never"
    NO_WORKSPACE_ONLY = "noWorkspaceOnly"


@dataclass(frozen=True)
class CustomTask:
    """A user-defined command sent verbatim to the terminal."""

    name: str
    command: str


@dataclass(frozen=True)
class GeneralConfig:
    """General behaviour of the terminal and the search scope.

    Example config.yaml:
        general:
          search_current_working_directory: noWorkspaceOnly
          additional_search_locations: ["~/notes"]
          additional_search_locations_when: always
          hide_terminal_after_success: true
    """

    use_workspace_search_excludes: bool = True
    search_excludes: tuple[str, ...] = ()  # Globs excluded from every search
    use_git_ignore_excludes: bool = True
    additional_search_locations: tuple[str, ...] = ()
    additional_search_locations_when: SearchPolicy = SearchPolicy.ALWAYS
    search_current_working_directory: SearchPolicy = SearchPolicy.NEVER
    search_workspace_folders: bool = True
    hide_terminal_after_success: bool = True
    hide_terminal_after_fail: bool = True
    clear_terminal_after_use: bool = True
    kill_terminal_after_use: bool = False
    show_maximized_terminal: bool = False
    bat_theme: str = "1337"
    open_file_in_preview_editor: bool = False
    restore_focus_terminal: bool = False
    use_terminal_in_editor: bool = False
    shell_path_for_terminal: str = ""


@dataclass(frozen=True)
class PreviewConfig:
    """Preview pane settings for one search mode."""

    show_preview: bool = True
    preview_command: str = ""
    preview_window_config: str = ""


@dataclass(frozen=True)
class FindWithinFilesConfig(PreviewConfig):
    """Preview settings for content search plus query fuzzing."""

    fuzz_ripgrep_query: bool = False


@dataclass(frozen=True)
class FindTodoFixmeConfig:
    """Pattern used by the TODO/FIXME search."""

    search_pattern: str = "(TODO|FIXME|HACK|FIX):\\s"


@dataclass(frozen=True)
class AdvancedConfig:
    """Rarely changed switches."""

    disable_startup_checks: bool = False
    use_editor_selection_as_query: bool = True


@dataclass(frozen=True)
class LoggingConfig:
    """Logging configuration."""

    level: str | None = None  # DEBUG, INFO, WARNING, ERROR
    file: str | None = None  # Log file path


@dataclass(frozen=True)
class LocationSettings:
    """The slice of configuration the search-location resolver needs."""

    search_current_working_directory: SearchPolicy = SearchPolicy.NEVER
    additional_search_locations: tuple[str, ...] = ()
    additional_search_locations_when: SearchPolicy = SearchPolicy.ALWAYS
    search_workspace_folders: bool = True


@dataclass(frozen=True)
class Config:
    """Root configuration snapshot."""

    extension_name: str = "findterm"
    extension_path: str = ""
    scripts_dir: str | None = None  # Defaults to <extension_path>/scripts
    general: GeneralConfig = field(default_factory=GeneralConfig)
    find_files: PreviewConfig = field(default_factory=PreviewConfig)
    find_within_files: FindWithinFilesConfig = field(default_factory=FindWithinFilesConfig)
    find_todo_fixme: FindTodoFixmeConfig = field(default_factory=FindTodoFixmeConfig)
    advanced: AdvancedConfig = field(default_factory=AdvancedConfig)
    custom_tasks: tuple[CustomTask, ...] = ()
    logging: LoggingConfig = field(default_factory=LoggingConfig)

    # Unknown top-level keys, kept for forward compatibility
    extra: dict[str, Any] = field(default_factory=dict, compare=False)

    @property
    def locations(self) -> LocationSettings:
        """Settings consumed by the search-location resolver."""
        return LocationSettings(
            search_current_working_directory=self.general.search_current_working_directory,
            additional_search_locations=self.general.additional_search_locations,
            additional_search_locations_when=self.general.additional_search_locations_when,
            search_workspace_folders=self.general.search_workspace_folders,
        )
