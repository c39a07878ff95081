"""User-editable configuration for autoremind.

All user-editable settings (rules, acknowledgments, stream, logging) live in a
single JSON file for quick edits without touching Python. Secrets stay in the
environment.
"""

from __future__ import annotations

import json
import os
from dataclasses import dataclass, field
from typing import Any

from core.errors import ConfigError

PROJECT_ROOT = os.path.abspath(os.path.join(os.path.dirname(__file__), ".."))

# Default config location; --config or AUTOREMIND_CONFIG override it.
DEFAULT_CONFIG_PATH = "config.json"


@dataclass(frozen=True)
class Settings:
    """Parsed config.json, before rule compilation."""

    path: str
    rules: list[dict[str, Any]]
    acknowledge: bool = True
    auto_reconnect: bool = True
    logging: dict[str, Any] = field(default_factory=dict)


def resolve_config_path(path: str | None = None) -> str:
    return path or os.getenv("AUTOREMIND_CONFIG") or DEFAULT_CONFIG_PATH


def _load_json_config(path: str) -> dict:
    """Load config.json with a flat, user-friendly schema."""

    try:
        with open(path, "r", encoding="utf-8") as handle:
            data = json.load(handle)
    except FileNotFoundError as exc:
        raise ConfigError(f"Config file not found: {path}") from exc
    except OSError as exc:
        raise ConfigError(f"could not read {path}: {exc}") from exc
    except json.JSONDecodeError as exc:
        raise ConfigError(f"could not parse {path}: {exc}") from exc

    if not isinstance(data, dict):
        raise ConfigError(f"could not parse {path}: top level must be an object")
    return data


def _section(config: dict, name: str) -> dict:
    value = config.get(name, {})
    if not isinstance(value, dict):
        raise ConfigError(f"{name} must be an object")
    return value


def load_settings(path: str | None = None) -> Settings:
    """Read the config file; rule entries are validated by build_rules."""

    path = resolve_config_path(path)
    config = _load_json_config(path)

    rules = config.get("rules")
    if not isinstance(rules, list):
        raise ConfigError(f"{path}: rules must be a list")

    acknowledge = _section(config, "acknowledge")
    stream = _section(config, "stream")

    return Settings(
        path=path,
        rules=rules,
        acknowledge=bool(acknowledge.get("enabled", True)),
        auto_reconnect=bool(stream.get("auto_reconnect", True)),
        logging=_section(config, "logging"),
    )
