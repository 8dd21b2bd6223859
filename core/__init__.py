"""Core shared utilities."""

from core.structured_logging import (
    configure_structured_logging,
    get_run_id,
    get_source,
    resolve_log_level,
    set_run_id,
    source_scope,
)
from core.settings import (
    AnalysisSettings,
    ConfigValidationError,
    load_settings,
    load_settings_file,
    resolve_strict_config_validation,
    settings_from_mapping,
)

__all__ = [
    "configure_structured_logging",
    "get_run_id",
    "get_source",
    "resolve_log_level",
    "set_run_id",
    "source_scope",
    "AnalysisSettings",
    "ConfigValidationError",
    "load_settings",
    "load_settings_file",
    "resolve_strict_config_validation",
    "settings_from_mapping",
]
