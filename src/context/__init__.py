"""Run configuration for the deployment pipeline.

Public API:
    - StageContext: Immutable per-run configuration snapshot
    - parse_duration: Parse "5m"/"300s"/"300" style durations into seconds
    - parse_bool: Parse environment-style boolean flags
    - ConfigurationError: Missing or malformed configuration
"""

from .exceptions import ConfigurationError, ContextError
from .models import ENV_KEYS, StageContext, format_duration, parse_bool, parse_duration

__all__ = [
    "StageContext",
    "ENV_KEYS",
    "format_duration",
    "parse_bool",
    "parse_duration",
    "ContextError",
    "ConfigurationError",
]
