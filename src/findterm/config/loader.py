"""Configuration file loading.

Handles:
- YAML file parsing
- Environment variable overrides
- Conversion from dict to the typed, immutable Config snapshot

There is no module-level cache: every call builds a fresh snapshot, and the
caller threads it through the components that need it.
"""

from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import Any

import yaml

from findterm.config.merge import merge_configs
from findterm.config.paths import get_config_paths
from findterm.config.schema import (
    AdvancedConfig,
    Config,
    CustomTask,
    FindTodoFixmeConfig,
    FindWithinFilesConfig,
    GeneralConfig,
    LoggingConfig,
    PreviewConfig,
    SearchPolicy,
)

# Module logger (may not be configured yet at import time)
_log = logging.getLogger("findterm.config")

_KNOWN_KEYS = {
    "extension_name",
    "extension_path",
    "scripts_dir",
    "general",
    "find_files",
    "find_within_files",
    "find_todo_fixme",
    "advanced",
    "custom_tasks",
    "logging",
}


def load_yaml_file(path: Path) -> dict[str, Any]:
    """Load a YAML file, returning empty dict if not found or invalid."""
    if not path.exists():
        return {}

    try:
        with open(path, encoding="utf-8") as f:
            data = yaml.safe_load(f)
            return data if isinstance(data, dict) else {}
    except yaml.YAMLError as e:
        _log.warning("Invalid YAML in %s: %s", path, e)
        return {}
    except PermissionError:
        _log.debug("Permission denied reading %s", path)
        return {}
    except OSError as e:
        _log.warning("Error reading %s: %s", path, e)
        return {}


def env_overrides() -> dict[str, Any]:
    """Build config dict from environment variables (highest priority)."""
    overrides: dict[str, Any] = {}

    log_path = os.environ.get("FINDTERM_LOG")
    if log_path:
        overrides.setdefault("logging", {})["file"] = log_path

    scripts_dir = os.environ.get("FINDTERM_SCRIPTS_DIR")
    if scripts_dir:
        overrides["scripts_dir"] = scripts_dir

    return overrides


def _policy(value: Any, default: SearchPolicy, key: str) -> SearchPolicy:
    if value is None:
        return default
    try:
        return SearchPolicy(value)
    except ValueError:
        _log.warning("Invalid value %r for %s, using %s", value, key, default.value)
        return default


def _strings(value: Any) -> tuple[str, ...]:
    if not isinstance(value, list):
        return ()
    return tuple(str(v) for v in value if isinstance(v, str | int | float))


def _preview(data: dict[str, Any]) -> dict[str, Any]:
    defaults = PreviewConfig()
    return {
        "show_preview": bool(data.get("show_preview", defaults.show_preview)),
        "preview_command": str(data.get("preview_command", defaults.preview_command)),
        "preview_window_config": str(
            data.get("preview_window_config", defaults.preview_window_config)
        ),
    }


def dict_to_config(data: dict[str, Any]) -> Config:
    """Convert merged dict to the typed Config snapshot.

    Args:
        data: Merged configuration dictionary.

    Returns:
        Typed Config object.
    """
    defaults = GeneralConfig()
    general_data = data.get("general", {}) or {}
    general = GeneralConfig(
        use_workspace_search_excludes=general_data.get(
            "use_workspace_search_excludes", defaults.use_workspace_search_excludes
        ),
        search_excludes=_strings(general_data.get("search_excludes")),
        use_git_ignore_excludes=general_data.get(
            "use_git_ignore_excludes", defaults.use_git_ignore_excludes
        ),
        additional_search_locations=_strings(
            general_data.get("additional_search_locations")
        ),
        additional_search_locations_when=_policy(
            general_data.get("additional_search_locations_when"),
            defaults.additional_search_locations_when,
            "general.additional_search_locations_when",
        ),
        search_current_working_directory=_policy(
            general_data.get("search_current_working_directory"),
            defaults.search_current_working_directory,
            "general.search_current_working_directory",
        ),
        search_workspace_folders=general_data.get(
            "search_workspace_folders", defaults.search_workspace_folders
        ),
        hide_terminal_after_success=general_data.get(
            "hide_terminal_after_success", defaults.hide_terminal_after_success
        ),
        hide_terminal_after_fail=general_data.get(
            "hide_terminal_after_fail", defaults.hide_terminal_after_fail
        ),
        clear_terminal_after_use=general_data.get(
            "clear_terminal_after_use", defaults.clear_terminal_after_use
        ),
        kill_terminal_after_use=general_data.get(
            "kill_terminal_after_use", defaults.kill_terminal_after_use
        ),
        show_maximized_terminal=general_data.get(
            "show_maximized_terminal", defaults.show_maximized_terminal
        ),
        bat_theme=str(general_data.get("bat_theme", defaults.bat_theme)),
        open_file_in_preview_editor=general_data.get(
            "open_file_in_preview_editor", defaults.open_file_in_preview_editor
        ),
        restore_focus_terminal=general_data.get(
            "restore_focus_terminal", defaults.restore_focus_terminal
        ),
        use_terminal_in_editor=general_data.get(
            "use_terminal_in_editor", defaults.use_terminal_in_editor
        ),
        shell_path_for_terminal=str(
            general_data.get("shell_path_for_terminal", defaults.shell_path_for_terminal)
        ),
    )

    find_files = PreviewConfig(**_preview(data.get("find_files", {}) or {}))

    within_data = data.get("find_within_files", {}) or {}
    find_within_files = FindWithinFilesConfig(
        **_preview(within_data),
        fuzz_ripgrep_query=bool(within_data.get("fuzz_ripgrep_query", False)),
    )

    todo_data = data.get("find_todo_fixme", {}) or {}
    find_todo_fixme = FindTodoFixmeConfig(
        search_pattern=str(
            todo_data.get("search_pattern", FindTodoFixmeConfig().search_pattern)
        ),
    )

    advanced_data = data.get("advanced", {}) or {}
    advanced = AdvancedConfig(
        disable_startup_checks=advanced_data.get("disable_startup_checks", False),
        use_editor_selection_as_query=advanced_data.get(
            "use_editor_selection_as_query", True
        ),
    )

    custom_tasks = tuple(
        CustomTask(name=str(t["name"]), command=str(t["command"]))
        for t in data.get("custom_tasks", []) or []
        if isinstance(t, dict) and t.get("name") and t.get("command")
    )

    log_data = data.get("logging", {}) or {}
    logging_config = LoggingConfig(
        level=log_data.get("level"),
        file=log_data.get("file"),
    )

    extra = {k: v for k, v in data.items() if k not in _KNOWN_KEYS}

    return Config(
        extension_name=str(data.get("extension_name", "findterm")),
        extension_path=str(data.get("extension_path", "")),
        scripts_dir=data.get("scripts_dir"),
        general=general,
        find_files=find_files,
        find_within_files=find_within_files,
        find_todo_fixme=find_todo_fixme,
        advanced=advanced,
        custom_tasks=custom_tasks,
        logging=logging_config,
        extra=extra,
    )


def load_config(
    project_root: str | None = None,
    overrides: dict[str, Any] | None = None,
) -> Config:
    """Load and merge config from all sources.

    Priority order (highest to lowest):
    1. Environment variables
    2. Explicit overrides (e.g. command-line flags)
    3. Project config ($project_root/.findterm/config.yaml)
    4. User config (~/.config/findterm/config.yaml or %APPDATA%)

    Args:
        project_root: Project directory for project-level config.
        overrides: Optional dict merged on top of the file configs.

    Returns:
        A new Config snapshot.
    """
    configs: list[dict[str, Any]] = []

    for path in get_config_paths(project_root):
        config_data = load_yaml_file(path)
        if config_data:
            _log.debug("Loaded config from %s", path)
            configs.append(config_data)

    if overrides:
        configs.append(overrides)

    env_config = env_overrides()
    if env_config:
        configs.append(env_config)

    return dict_to_config(merge_configs(*configs))
