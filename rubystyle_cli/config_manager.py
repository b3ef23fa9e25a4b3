"""Configuration manager for rubystyle using TOML files."""

from __future__ import annotations

import copy
import logging
from pathlib import Path
from typing import Any, Dict, Optional

import toml

from .blank_line_indentation import INDENTATION_STYLES
from .config import CONFIG_FILE, DEFAULT_EXCLUDE, DEFAULT_INCLUDE, LOCAL_CONFIG_NAME
from .rules import available_rules

logger = logging.getLogger(__name__)

DEFAULT_CONFIG: Dict[str, Any] = {
    "rules": {
        "Layout/BlankLineIndentation": {
            "enabled": True,
            "indentation_width": 1,
            "indentation_style": "tab",
        },
        "Layout/BlockDelimiterSpacing": {
            "enabled": True,
        },
        "Style/GlobalExceptionVariables": {
            "enabled": True,
        },
    },
    "files": {
        "include": list(DEFAULT_INCLUDE),
        "exclude": list(DEFAULT_EXCLUDE),
    },
}


class ConfigError(ValueError):
    """Invalid or unreadable configuration."""


# ------------------------------------------------------------------
# Loading
# ------------------------------------------------------------------

def find_config_file(explicit: Optional[Path] = None, cwd: Optional[Path] = None) -> Optional[Path]:
    """Locate the configuration file to use.

    Lookup order: *explicit*, ``.rubystyle.toml`` in *cwd*, then the user
    config file.  An explicit path that does not exist is an error.
    """
    if explicit is not None:
        if not explicit.is_file():
            raise ConfigError(f"Config file not found: {explicit}")
        return explicit
    local = (cwd or Path.cwd()) / LOCAL_CONFIG_NAME
    if local.is_file():
        return local
    if CONFIG_FILE.is_file():
        return CONFIG_FILE
    return None


def load_full_config(path: Optional[Path] = None) -> Dict[str, Any]:
    """Read an entire TOML file (all sections); a missing file is empty."""
    path = path or CONFIG_FILE
    if not path.exists():
        return {}
    try:
        with open(path, "r", encoding="utf-8") as f:
            return toml.load(f)
    except (toml.TomlDecodeError, OSError) as exc:
        raise ConfigError(f"Cannot read config file {path}: {exc}") from exc


def merge_config(overrides: Dict[str, Any]) -> Dict[str, Any]:
    """Overlay *overrides* on ``DEFAULT_CONFIG`` one table level deep."""
    merged = copy.deepcopy(DEFAULT_CONFIG)
    for rule_name, section in overrides.get("rules", {}).items():
        if isinstance(section, dict):
            merged["rules"].setdefault(rule_name, {}).update(section)
        else:
            merged["rules"][rule_name] = section
    files = overrides.get("files", {})
    if isinstance(files, dict):
        merged["files"].update(files)
    else:
        merged["files"] = files
    return merged


def load_config(explicit: Optional[Path] = None, cwd: Optional[Path] = None) -> Dict[str, Any]:
    """Find, read, merge with defaults and validate the configuration.

    Raises:
        ConfigError: if the file is unreadable or any value is invalid.
    """
    path = find_config_file(explicit, cwd)
    overrides: Dict[str, Any] = {}
    if path is not None:
        logger.debug("Loading configuration from %s", path)
        overrides = load_full_config(path)
    config = merge_config(overrides)
    validate_config(config)
    return config


# ------------------------------------------------------------------
# Validation
# ------------------------------------------------------------------

def validate_config(config: Dict[str, Any]) -> None:
    """Reject unknown rules, unknown options and out-of-range values."""
    rules = config.get("rules")
    if not isinstance(rules, dict):
        raise ConfigError("[rules] must be a table")

    known = available_rules()
    for rule_name, section in rules.items():
        if rule_name not in known:
            raise ConfigError(f"Unknown rule: {rule_name}")
        if not isinstance(section, dict):
            raise ConfigError(f"[rules.\"{rule_name}\"] must be a table")
        allowed = set(DEFAULT_CONFIG["rules"].get(rule_name, {"enabled": True}))
        for key, value in section.items():
            if key not in allowed:
                raise ConfigError(f"Unknown option '{key}' for {rule_name}")
            _validate_option(rule_name, key, value)

    files = config.get("files", {})
    if not isinstance(files, dict):
        raise ConfigError("[files] must be a table")
    for key in ("include", "exclude"):
        patterns = files.get(key, [])
        if not isinstance(patterns, list) or not all(isinstance(p, str) for p in patterns):
            raise ConfigError(f"files.{key} must be a list of glob strings")


def _validate_option(rule_name: str, key: str, value: Any) -> None:
    if key == "enabled":
        if not isinstance(value, bool):
            raise ConfigError(f"{rule_name}: 'enabled' must be true or false")
    elif key == "indentation_width":
        if isinstance(value, bool) or not isinstance(value, int) or value < 1:
            raise ConfigError(f"{rule_name}: 'indentation_width' must be a positive integer, got {value!r}")
    elif key == "indentation_style":
        if value not in INDENTATION_STYLES:
            styles = ", ".join(sorted(INDENTATION_STYLES))
            raise ConfigError(f"{rule_name}: 'indentation_style' must be one of {styles}, got {value!r}")


# ------------------------------------------------------------------
# Saving
# ------------------------------------------------------------------

def _save_full_config(config: Dict[str, Any], path: Optional[Path] = None) -> Path:
    """Write entire config dict to TOML file, preserving all sections."""
    path = path or CONFIG_FILE
    path.parent.mkdir(parents=True, exist_ok=True)
    with open(path, "w", encoding="utf-8") as f:
        toml.dump(config, f)
    return path


def coerce_value(raw: str) -> Any:
    """Interpret a command-line string as a TOML scalar."""
    lowered = raw.strip().lower()
    if lowered in ("true", "false"):
        return lowered == "true"
    try:
        return int(raw)
    except ValueError:
        return raw


def set_rule_option(rule_name: str, key: str, value: Any, path: Optional[Path] = None) -> Path:
    """Set one rule option in the config file.

    The result is validated before anything is written.

    Returns:
        The path written to.
    """
    config = load_full_config(path)
    config.setdefault("rules", {}).setdefault(rule_name, {})[key] = value
    validate_config(merge_config(config))
    return _save_full_config(config, path)


def reset_config(path: Optional[Path] = None) -> Path:
    """Remove rule and file settings, keeping any other sections."""
    config = load_full_config(path)
    config.pop("rules", None)
    config.pop("files", None)
    return _save_full_config(config, path)
