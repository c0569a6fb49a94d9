"""Runtime settings for the dockgen CLI.

Resolution order (later wins):
  1. dataclass defaults
  2. YAML/JSON settings file (``--config`` or ``./dockgen.yaml`` when present)
  3. ``DOCKGEN_*`` environment variables

File layout::

    log_level: INFO
    log_file: logs/dockgen.log
    output_dir: ./output
    registry: docker.io
    console_diagnostics: true
    metrics_textfile: metrics/dockgen.prom
    error_handler:
      max_retries: 3
      retry_delay_ms: 1000
      max_error_history: 100
      enable_recovery: true
      enable_classification: true
      enable_user_friendly_messages: true
"""
from __future__ import annotations

import logging
from collections.abc import Mapping
from dataclasses import dataclass, field, fields
from pathlib import Path
from typing import Any

import yaml

from ..error_handling import ErrorHandlerOptions
from ..errors.records import DockgenError
from ..errors.taxonomy import ErrorKind, ErrorSeverity
from . import env_adapter

logger = logging.getLogger(__name__)

DEFAULT_SETTINGS_FILE = "dockgen.yaml"
LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")


@dataclass
class Settings:
    log_level: str = "INFO"
    log_file: str | None = None
    output_dir: str = "./output"
    registry: str = "docker.io"
    console_diagnostics: bool = True
    metrics_textfile: str | None = None
    error_handler: ErrorHandlerOptions = field(default_factory=ErrorHandlerOptions)
    source: str | None = None


_TOP_LEVEL_STR = ("log_level", "log_file", "output_dir", "registry", "metrics_textfile")
_OPTION_INTS = ("max_retries", "retry_delay_ms", "max_error_history")
_OPTION_BOOLS = ("enable_recovery", "enable_classification", "enable_user_friendly_messages")


def _invalid(message: str, path: str | None, **details: Any) -> DockgenError:
    return DockgenError(
        ErrorKind.VALIDATION,
        message,
        ErrorSeverity.MEDIUM,
        details={"config_path": path, **details},
    )


def _read_file(path: Path) -> Mapping[str, Any]:
    try:
        with path.open("r", encoding="utf-8") as f:
            data = yaml.safe_load(f)
    except OSError as e:
        raise DockgenError(
            ErrorKind.CONFIG_LOAD,
            f"Cannot read settings file {path}: {e.strerror or e}",
            details={"path": str(path), "code": "ENOENT" if isinstance(e, FileNotFoundError) else None},
        ) from e
    except yaml.YAMLError as e:
        raise DockgenError(
            ErrorKind.CONFIG_LOAD,
            f"Settings file {path} is not valid YAML or JSON",
            details={"path": str(path), "reason": str(e)},
        ) from e
    if data is None:
        return {}
    if not isinstance(data, Mapping):
        raise _invalid(f"Settings file {path} must contain a mapping", str(path), found=type(data).__name__)
    return data


def _apply_file(settings: Settings, data: Mapping[str, Any], path: str) -> None:
    known = {f.name for f in fields(Settings)} - {"source"}
    for key in data:
        if key not in known:
            logger.warning("ignoring unknown settings key %r in %s", key, path)

    for key in _TOP_LEVEL_STR:
        if key in data:
            value = data[key]
            if value is not None and not isinstance(value, str):
                raise _invalid(f"'{key}' must be a string", path, field=key, value=value)
            setattr(settings, key, value)
    if "console_diagnostics" in data:
        value = data["console_diagnostics"]
        if not isinstance(value, bool):
            raise _invalid("'console_diagnostics' must be a boolean", path, field="console_diagnostics", value=value)
        settings.console_diagnostics = value

    options = data.get("error_handler")
    if options is None:
        return
    if not isinstance(options, Mapping):
        raise _invalid("'error_handler' must be a mapping", path, field="error_handler")
    for key in options:
        if key not in _OPTION_INTS and key not in _OPTION_BOOLS:
            logger.warning("ignoring unknown error_handler key %r in %s", key, path)
    for key in _OPTION_INTS:
        if key in options:
            value = options[key]
            if isinstance(value, bool) or not isinstance(value, int):
                raise _invalid(f"'error_handler.{key}' must be an integer", path, field=key, value=value)
            setattr(settings.error_handler, key, value)
    for key in _OPTION_BOOLS:
        if key in options:
            value = options[key]
            if not isinstance(value, bool):
                raise _invalid(f"'error_handler.{key}' must be a boolean", path, field=key, value=value)
            setattr(settings.error_handler, key, value)


def _env_int(name: str) -> int | None:
    raw = env_adapter.get_str(name, "").strip()
    if not raw:
        return None
    try:
        return int(raw)
    except ValueError:
        raise _invalid(f"{name} must be an integer", None, variable=name, value=raw) from None


def _apply_env(settings: Settings) -> None:
    for key in _TOP_LEVEL_STR:
        value = env_adapter.get_str(f"DOCKGEN_{key.upper()}", "").strip()
        if value:
            setattr(settings, key, value)
    flag = env_adapter.get_optional_bool("DOCKGEN_CONSOLE_DIAGNOSTICS")
    if flag is not None:
        settings.console_diagnostics = flag
    for key in _OPTION_INTS:
        value = _env_int(f"DOCKGEN_{key.upper()}")
        if value is not None:
            setattr(settings.error_handler, key, value)
    for key in _OPTION_BOOLS:
        flag = env_adapter.get_optional_bool(f"DOCKGEN_{key.upper()}")
        if flag is not None:
            setattr(settings.error_handler, key, flag)


def _validate(settings: Settings) -> None:
    where = settings.source
    settings.log_level = settings.log_level.upper()
    if settings.log_level not in LOG_LEVELS:
        raise _invalid(
            f"Unknown log level '{settings.log_level}'", where,
            field="log_level", supported=list(LOG_LEVELS),
        )
    try:
        settings.error_handler.__post_init__()
    except ValueError as e:
        raise _invalid(str(e), where, field="error_handler") from e


def load_settings(path: str | Path | None = None, *, use_env: bool = True) -> Settings:
    """Load settings from ``path`` (or the default file) and the environment.

    Raises:
        DockgenError: CONFIG_LOAD when the file cannot be read or parsed,
            VALIDATION when a value has the wrong type or range
    """
    settings = Settings()
    if path is None:
        candidate = Path(DEFAULT_SETTINGS_FILE)
        path = candidate if candidate.is_file() else None
    if path is not None:
        file_path = Path(path)
        _apply_file(settings, _read_file(file_path), str(file_path))
        settings.source = str(file_path)
        logger.debug("loaded settings from %s", file_path)
    if use_env:
        _apply_env(settings)
    _validate(settings)
    return settings


__all__ = ["DEFAULT_SETTINGS_FILE", "Settings", "load_settings"]
