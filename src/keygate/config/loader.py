"""Configuration loading for keygate.

Sources are layered, each one overriding the ones before it:

    built-in defaults
    $XDG_CONFIG_HOME/keygate/config.toml (or ~/.config/...)
    ./keygate.toml
    the file named by $KEYGATE_CONFIG
    the ``path`` passed to ``load_config``
    KEYGATE_* variables listed in ``ENV_VARS``
    the ``overrides`` dict passed to ``load_config``
"""

from __future__ import annotations

import os
import tomllib
from pathlib import Path
from typing import Any

from pydantic import ValidationError

from keygate.core.errors import ConfigError

from .schema import KeygateConfig

ENV_VARS: dict[str, tuple[str, str]] = {
    "KEYGATE_DATABASE_URL": ("database", "url"),
    "KEYGATE_LOG_LEVEL": ("logging", "level"),
    "KEYGATE_API_HOST": ("api", "host"),
    "KEYGATE_API_PORT": ("api", "port"),
}


def merge_layers(*layers: dict[str, Any]) -> dict[str, Any]:
    """Merge dicts left to right; nested tables merge, other values replace.

    No input is modified.
    """
    merged: dict[str, Any] = {}
    for layer in layers:
        for key, value in layer.items():
            current = merged.get(key)
            if isinstance(current, dict) and isinstance(value, dict):
                merged[key] = merge_layers(current, value)
            else:
                merged[key] = value
    return merged


def _must_exist(value: str | Path, source: str) -> Path:
    path = Path(value).expanduser()
    if not path.is_file():
        raise ConfigError(f"{source} not found: {value}")
    return path


def config_files(path: str | Path | None = None) -> list[Path]:
    """Config files to read, lowest priority first."""
    xdg = os.environ.get("XDG_CONFIG_HOME")
    user_dir = Path(xdg) if xdg else Path.home() / ".config"
    files = [
        p
        for p in (user_dir / "keygate" / "config.toml", Path.cwd() / "keygate.toml")
        if p.is_file()
    ]

    env_file = os.environ.get("KEYGATE_CONFIG")
    if env_file:
        files.append(_must_exist(env_file, "KEYGATE_CONFIG file"))
    if path is not None:
        files.append(_must_exist(path, "Config file"))
    return files


def _read_toml(path: Path) -> dict[str, Any]:
    try:
        return tomllib.loads(path.read_text(encoding="utf-8"))
    except tomllib.TOMLDecodeError as e:
        raise ConfigError(f"Invalid TOML in {path}: {e}") from e
    except OSError as e:
        raise ConfigError(f"Cannot read config file {path}: {e}") from e


def _env_layer() -> dict[str, Any]:
    layer: dict[str, Any] = {}
    for var, (section, field) in ENV_VARS.items():
        value = os.environ.get(var)
        if value:
            layer.setdefault(section, {})[field] = value
    return layer


def load_config(
    path: str | Path | None = None,
    overrides: dict[str, Any] | None = None,
) -> KeygateConfig:
    """Load, merge and validate configuration.

    Raises:
        ConfigError: A named file is missing, a file is not valid TOML,
            or the merged values fail validation.
    """
    layers = [_read_toml(p) for p in config_files(path)]
    layers.append(_env_layer())
    layers.append(overrides or {})

    try:
        return KeygateConfig.model_validate(merge_layers(*layers))
    except ValidationError as e:
        raise ConfigError(f"Configuration validation failed: {e}") from e
