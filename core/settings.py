"""Analysis settings loading and validation.

Settings come from an optional YAML file (``livingdoc.yml`` beside the
analyzed solution, or an explicit path) with environment overrides. In
non-strict mode problems are logged and defaults are used; in strict mode
they raise ``ConfigValidationError``.
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass, field, fields, replace
from typing import Any, Optional

import yaml

from analysis.config import (
    DEFAULT_EXCLUDED_DIRS,
    DEFAULT_MAX_WORKERS,
    DEFAULT_SPLIT_FIELD_DECLARATORS,
    DEFAULT_TEST_PROJECT_MARKERS,
)

logger = logging.getLogger(__name__)

DEFAULT_SETTINGS_FILE = "livingdoc.yml"


class ConfigValidationError(RuntimeError):
    """Raised when strict settings validation fails."""


@dataclass(frozen=True)
class AnalysisSettings:
    """Knobs of one analysis run."""

    exclude_dirs: tuple[str, ...] = tuple(sorted(DEFAULT_EXCLUDED_DIRS))
    test_project_markers: tuple[str, ...] = DEFAULT_TEST_PROJECT_MARKERS
    split_field_declarators: bool = DEFAULT_SPLIT_FIELD_DECLARATORS
    max_workers: int = DEFAULT_MAX_WORKERS
    continue_on_error: bool = True
    pretty: bool = False
    extra: dict[str, Any] = field(default_factory=dict, compare=False)


_LIST_KEYS = {"exclude_dirs", "test_project_markers"}
_BOOL_KEYS = {"split_field_declarators", "continue_on_error", "pretty"}
_INT_KEYS = {"max_workers"}


def _env_flag(name: str, default: bool = False) -> bool:
    raw = os.getenv(name)
    if raw is None:
        return default
    return raw.strip().lower() in {"1", "true", "yes", "on"}


def resolve_strict_config_validation(default: bool = False) -> bool:
    """Resolve strict validation mode from ``STRICT_CONFIG_VALIDATION`` env."""
    return _env_flag("STRICT_CONFIG_VALIDATION", default=default)


def _problem(msg: str, strict: bool) -> None:
    if strict:
        raise ConfigValidationError(msg)
    logger.warning("%s; using default", msg)


def load_settings_file(path: str, strict: bool = False) -> dict[str, Any]:
    """Load the raw YAML mapping from ``path``.

    Returns an empty dict for a missing, empty or invalid file in non-strict
    mode.
    """
    try:
        with open(path, "r", encoding="utf-8") as f:
            payload = yaml.safe_load(f)
    except FileNotFoundError as exc:
        msg = f"Settings file not found: {path}"
        if strict:
            raise ConfigValidationError(msg) from exc
        logger.warning("%s; continuing with defaults", msg)
        return {}
    except yaml.YAMLError as exc:
        msg = f"Failed to parse settings YAML at {path}: {exc}"
        if strict:
            raise ConfigValidationError(msg) from exc
        logger.warning("%s; continuing with defaults", msg)
        return {}

    if payload is None:
        return {}
    if not isinstance(payload, dict):
        _problem(f"Unexpected settings payload type: {type(payload).__name__}", strict)
        return {}
    return payload


def settings_from_mapping(payload: dict[str, Any], strict: bool = False) -> AnalysisSettings:
    """Validate a raw mapping and build ``AnalysisSettings`` from it."""
    known = {f.name for f in fields(AnalysisSettings)} - {"extra"}
    values: dict[str, Any] = {}
    extra: dict[str, Any] = {}

    for key, value in payload.items():
        if key not in known:
            if strict:
                raise ConfigValidationError(f"Unknown settings key '{key}'")
            logger.warning("Ignoring unknown settings key '%s'", key)
            extra[key] = value
            continue

        if key in _LIST_KEYS:
            if isinstance(value, str):
                value = [value]
            if not isinstance(value, list) or not all(isinstance(v, str) for v in value):
                _problem(f"Setting '{key}' must be a list of strings", strict)
                continue
            values[key] = tuple(value)
        elif key in _BOOL_KEYS:
            if not isinstance(value, bool):
                _problem(f"Setting '{key}' must be true or false", strict)
                continue
            values[key] = value
        elif key in _INT_KEYS:
            if isinstance(value, bool) or not isinstance(value, int) or value < 1:
                _problem(f"Setting '{key}' must be a positive integer", strict)
                continue
            values[key] = value

    return AnalysisSettings(extra=extra, **values)


def _apply_env_overrides(settings: AnalysisSettings, strict: bool) -> AnalysisSettings:
    raw = os.getenv("LIVINGDOC_MAX_WORKERS")
    if raw is None:
        return settings
    try:
        workers = int(raw)
        if workers < 1:
            raise ValueError(raw)
    except ValueError:
        _problem(f"LIVINGDOC_MAX_WORKERS must be a positive integer, got '{raw}'", strict)
        return settings
    return replace(settings, max_workers=workers)


def load_settings(
    config_path: Optional[str] = None,
    search_dir: Optional[str] = None,
    strict: Optional[bool] = None,
) -> AnalysisSettings:
    """Resolve settings for a run.

    Args:
        config_path: Explicit settings file; must exist in strict mode.
        search_dir: Directory checked for ``livingdoc.yml`` when no explicit
            path is given.
        strict: Validation mode; defaults to ``STRICT_CONFIG_VALIDATION``.
    """
    if strict is None:
        strict = resolve_strict_config_validation()

    payload: dict[str, Any] = {}
    if config_path:
        payload = load_settings_file(config_path, strict=strict)
    elif search_dir:
        candidate = os.path.join(search_dir, DEFAULT_SETTINGS_FILE)
        if os.path.isfile(candidate):
            logger.info("Using settings from %s", candidate)
            payload = load_settings_file(candidate, strict=strict)

    settings = settings_from_mapping(payload, strict=strict)
    return _apply_env_overrides(settings, strict)
