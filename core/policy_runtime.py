"""Configuration and runtime path bootstrapping."""

from __future__ import annotations

import copy
import os
from pathlib import Path
from typing import Any

import yaml
from pydantic import BaseModel, NonNegativeFloat, PositiveFloat

HOME_ENV = "RECURSOR_HOME"
CONFIG_ENV = "RECURSOR_CONFIG"
CONFIG_FILENAME = "recursor.yaml"
EDITOR_DIRNAME = ".cursor"

DEFAULT_CONFIG: dict[str, Any] = {
    "editor": {"app_token": "cursor", "app_name": "Cursor"},
    "paths": {
        "state_file": "recursor_state.json",
        "status_file": "recursor_status.json",
        "log_file": "recursor.log",
        "event_log": "recursor_events.jsonl",
        "hooks_file": "hooks.json",
    },
    "state": {"stale_after_seconds": 3600},
    "failsafe": {"enabled": True, "delay_seconds": 5},
    "focus": {"autofocus": True, "save_settle_ms": 50, "settle_ms": 100, "media_settle_ms": 150},
    "media": {"enabled": True, "apps": ["Google Chrome"]},
    "logging": {"level": "INFO"},
}


class EditorSection(BaseModel):
    app_token: str
    app_name: str


class PathsSection(BaseModel):
    state_file: str
    status_file: str
    log_file: str
    event_log: str
    hooks_file: str


class StateSection(BaseModel):
    stale_after_seconds: PositiveFloat


class FailsafeSection(BaseModel):
    enabled: bool
    delay_seconds: NonNegativeFloat


class FocusSection(BaseModel):
    autofocus: bool
    save_settle_ms: NonNegativeFloat
    settle_ms: NonNegativeFloat
    media_settle_ms: NonNegativeFloat


class MediaSection(BaseModel):
    enabled: bool
    apps: list[str]


class LoggingSection(BaseModel):
    level: str


class RuntimeConfig(BaseModel):
    """Shape of the merged config; every section must be present and typed."""

    editor: EditorSection
    paths: PathsSection
    state: StateSection
    failsafe: FailsafeSection
    focus: FocusSection
    media: MediaSection
    logging: LoggingSection


def load_yaml(path: Path) -> dict[str, Any]:
    """Load YAML from file, returning empty mapping when missing."""
    if not path.exists():
        return {}
    with path.open("r", encoding="utf-8") as fh:
        data = yaml.safe_load(fh) or {}
    if not isinstance(data, dict):
        raise ValueError(f"Config file must contain a mapping: {path}")
    return data


def merge_dicts(base: dict[str, Any], override: dict[str, Any]) -> dict[str, Any]:
    """Recursively merge dictionaries."""
    merged: dict[str, Any] = dict(base)
    for key, value in override.items():
        if key in merged and isinstance(merged[key], dict) and isinstance(value, dict):
            merged[key] = merge_dicts(merged[key], value)
        else:
            merged[key] = value
    return merged


def resolve_home(home: Path | None = None) -> Path:
    """User home used for every default path; ``$RECURSOR_HOME`` overrides."""
    if home is not None:
        return home.expanduser()
    env_home = os.environ.get(HOME_ENV)
    if env_home:
        return Path(env_home).expanduser()
    return Path.home()


def default_config_path(home: Path) -> Path:
    env_path = os.environ.get(CONFIG_ENV)
    if env_path:
        return Path(env_path).expanduser()
    return home / EDITOR_DIRNAME / CONFIG_FILENAME


def resolve_paths(home: Path, config: dict[str, Any]) -> dict[str, Path]:
    """Absolute runtime file paths; relative entries live under ``<home>/.cursor``."""
    base = home / EDITOR_DIRNAME
    paths_cfg = config.get("paths", {})
    resolved: dict[str, Path] = {}
    for key, default in DEFAULT_CONFIG["paths"].items():
        path = Path(str(paths_cfg.get(key, default))).expanduser()
        resolved[key] = path if path.is_absolute() else base / path
    return resolved


def load_effective_config(home: Path, config_path: Path | None = None) -> dict[str, Any]:
    """Built-in defaults merged with the optional user YAML file.

    Raises ``pydantic.ValidationError`` when a section has the wrong shape.
    """
    user_cfg = load_yaml(config_path or default_config_path(home))
    merged = merge_dicts(copy.deepcopy(DEFAULT_CONFIG), user_cfg)
    return RuntimeConfig.model_validate(merged).model_dump()
