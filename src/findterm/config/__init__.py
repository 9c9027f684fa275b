"""Configuration management for findterm.

Provides hierarchical YAML-based configuration with:
- User-level config (~/.config/findterm/ or %APPDATA%)
- Project-level config ($project_root/.findterm/)
- Environment variable overrides (highest priority)

Example usage:
    from findterm.config import load_config

    config = load_config(project_root="/path/to/project")
    print(config.general.hide_terminal_after_success)

Every load returns a new immutable snapshot. Watch for changes with
ConfigWatcher, which passes the reloaded snapshot to a callback.
"""

from findterm.config.loader import dict_to_config, load_config
from findterm.config.paths import get_config_paths, get_project_config_path, get_user_config_path
from findterm.config.schema import (
    AdvancedConfig,
    Config,
    CustomTask,
    FindTodoFixmeConfig,
    FindWithinFilesConfig,
    GeneralConfig,
    LocationSettings,
    LoggingConfig,
    PreviewConfig,
    SearchPolicy,
)
from findterm.config.watcher import ConfigWatcher

__all__ = [
    "Config",
    "load_config",
    "dict_to_config",
    "AdvancedConfig",
    "CustomTask",
    "FindTodoFixmeConfig",
    "FindWithinFilesConfig",
    "GeneralConfig",
    "LocationSettings",
    "LoggingConfig",
    "PreviewConfig",
    "SearchPolicy",
    "get_config_paths",
    "get_project_config_path",
    "get_user_config_path",
    "ConfigWatcher",
]
