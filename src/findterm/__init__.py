"""findterm: delegate file and content search to a terminal session and open the results."""

__version__ = "0.1.0"

from findterm.channel import CompletionChannel, CompletionEvent, Verdict
from findterm.config import Config, load_config
from findterm.errors import (
    FindTermError,
    MissingScriptBinding,
    SentinelTampered,
    UnknownCommand,
    UnsupportedPlatformOperation,
)
from findterm.orchestrator import Orchestrator
from findterm.search import PathOrigin, SearchLocations, SearchRoot, explain, resolve

__all__ = [
    "__version__",
    # Main entry point
    "Orchestrator",
    # Config
    "Config",
    "load_config",
    # Search locations
    "PathOrigin",
    "SearchLocations",
    "SearchRoot",
    "explain",
    "resolve",
    # Completion
    "CompletionChannel",
    "CompletionEvent",
    "Verdict",
    # Errors
    "FindTermError",
    "MissingScriptBinding",
    "SentinelTampered",
    "UnknownCommand",
    "UnsupportedPlatformOperation",
]
