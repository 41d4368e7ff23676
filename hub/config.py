"""Hub configuration.

Values are resolved in increasing precedence: built-in defaults, an
optional YAML file, ``HUB_*`` environment variables, and explicit
overrides (the CLI flags).
"""

from __future__ import annotations

import os
from dataclasses import dataclass, fields, replace
from datetime import timedelta
from pathlib import Path
from typing import Any, Mapping, Optional

import yaml

from hub.registry.errors import HubError

DEFAULT_PORT = 8090
DEFAULT_TEMPLATES_DIR = "./templates"
DEFAULT_APPS_DIR = "./apps"
DEFAULT_CACHE_TTL_MINUTES = 60

ENV_VARS = {
    "host": "HUB_HOST",
    "port": "HUB_PORT",
    "templates_dir": "HUB_TEMPLATES_DIR",
    "apps_dir": "HUB_APPS_DIR",
    "cache_ttl_minutes": "HUB_CACHE_TTL",
    "log_level": "HUB_LOG_LEVEL",
}

_INT_FIELDS = {"port", "cache_ttl_minutes"}

# Config file keys may also use the CLI flag names.
_ALIASES = {
    "templates": "templates_dir",
    "apps": "apps_dir",
    "cache_ttl": "cache_ttl_minutes",
}


class ConfigError(HubError):
    """Raised when a configuration value cannot be used."""


@dataclass(frozen=True)
class HubConfig:
    host: str = "0.0.0.0"
    port: int = DEFAULT_PORT
    templates_dir: str = DEFAULT_TEMPLATES_DIR
    apps_dir: str = DEFAULT_APPS_DIR
    cache_ttl_minutes: int = DEFAULT_CACHE_TTL_MINUTES
    log_level: str = "INFO"

    @property
    def cache_ttl(self) -> timedelta:
        return timedelta(minutes=self.cache_ttl_minutes)

    def with_overrides(self, overrides: Mapping[str, Any]) -> "HubConfig":
        """Return a copy with every non-``None`` override applied."""
        known = {f.name for f in fields(self)}
        changes = {}
        for key, value in overrides.items():
            if value is None:
                continue
            if key not in known:
                raise ConfigError(f"unknown configuration key: {key}")
            changes[key] = _coerce(key, value)
        return replace(self, **changes)


def load_config(
    config_file: Optional[str | Path] = None,
    environ: Optional[Mapping[str, str]] = None,
    **overrides: Any,
) -> HubConfig:
    """Resolve the effective configuration."""
    config = HubConfig()

    if config_file is not None:
        config = config.with_overrides(_read_config_file(Path(config_file)))

    env = os.environ if environ is None else environ
    from_env = {key: env.get(var) or None for key, var in ENV_VARS.items()}
    config = config.with_overrides(from_env)

    config = config.with_overrides(overrides)
    if config.cache_ttl_minutes < 0:
        raise ConfigError("cache_ttl_minutes must not be negative")
    return config


def _read_config_file(path: Path) -> dict[str, Any]:
    try:
        with open(path) as f:
            data = yaml.safe_load(f)
    except OSError as e:
        raise ConfigError(f"cannot read config file {path}: {e}") from e
    except yaml.YAMLError as e:
        raise ConfigError(f"invalid config file {path}: {e}") from e

    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ConfigError(f"config file {path} must contain a mapping")
    result = {}
    for key, value in data.items():
        key = str(key).replace("-", "_")
        result[_ALIASES.get(key, key)] = value
    return result


def _coerce(key: str, value: Any) -> Any:
    if key in _INT_FIELDS:
        if isinstance(value, bool):
            raise ConfigError(f"{key} must be an integer, got {value!r}")
        try:
            return int(value)
        except (TypeError, ValueError):
            raise ConfigError(f"{key} must be an integer, got {value!r}") from None
    return str(value)
