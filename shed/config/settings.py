"""
User settings for shed.

Settings are read from an optional YAML file and may be overridden by
environment variables. Everything has a default, so shed works without any
configuration at all.

Lookup order for the settings file:
    1. Explicit path (``--config``)
    2. ``SHED_CONFIG`` environment variable
    3. ``<user config dir>/shed/config.yaml`` if it exists

Example config.yaml:
    cache_dir: ~/.cache/shed
    max_workers: 4
    evict_on_remove: false
    go_binary: go
    go_proxy: https://proxy.golang.org
"""

import logging
import os
from dataclasses import dataclass, fields
from pathlib import Path
from typing import Any, Dict, Mapping, Optional

import yaml

from shed.core.directory import get_user_config_dir
from shed.core.exceptions import ConfigError

logger = logging.getLogger(__name__)

CONFIG_ENV_VAR = "SHED_CONFIG"
CONFIG_FILE_NAME = "config.yaml"

DEFAULT_GO_PROXY = "https://proxy.golang.org"


def _default_max_workers() -> int:
    return min(8, os.cpu_count() or 1)


@dataclass
class ShedSettings:
    """
    Resolved shed settings.

    Attributes:
        cache_dir: Tool cache root (None for the platform default)
        max_workers: Number of tools built/installed in parallel
        evict_on_remove: Delete cached executables of removed tools
        go_binary: Go executable used for builds
        go_proxy: Go module proxy used for version resolution
        lock_timeout: Seconds to wait for another process's build of the same tool
        http_timeout: Seconds before a module proxy request times out
    """

    cache_dir: Optional[Path] = None
    max_workers: int = 0
    evict_on_remove: bool = False
    go_binary: str = "go"
    go_proxy: str = DEFAULT_GO_PROXY
    lock_timeout: float = 600
    http_timeout: float = 30

    def __post_init__(self):
        if self.max_workers <= 0:
            self.max_workers = _default_max_workers()

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "ShedSettings":
        """
        Build settings from a mapping loaded from YAML.

        Unknown keys are ignored with a warning.

        Raises:
            ConfigError: If a value has the wrong type
        """
        known = {f.name for f in fields(cls)}
        for key in data:
            if key not in known:
                logger.warning(f"Ignoring unknown setting: {key}")

        kwargs: Dict[str, Any] = {}
        if data.get("cache_dir") is not None:
            kwargs["cache_dir"] = Path(str(data["cache_dir"])).expanduser()
        if "max_workers" in data:
            kwargs["max_workers"] = _as_int("max_workers", data["max_workers"])
        if "evict_on_remove" in data:
            value = data["evict_on_remove"]
            if not isinstance(value, bool):
                raise ConfigError(f"evict_on_remove must be true or false, got {value!r}")
            kwargs["evict_on_remove"] = value
        for key in ("go_binary", "go_proxy"):
            if key in data:
                value = data[key]
                if not isinstance(value, str) or not value:
                    raise ConfigError(f"{key} must be a non-empty string, got {value!r}")
                kwargs[key] = value
        for key in ("lock_timeout", "http_timeout"):
            if key in data:
                kwargs[key] = _as_positive_float(key, data[key])

        return cls(**kwargs)

    def apply_env(self, env: Mapping[str, str]) -> "ShedSettings":
        """
        Override settings from environment variables.

        Recognized variables: SHED_CACHE_DIR, SHED_MAX_WORKERS, GOPROXY.
        """
        if env.get("SHED_CACHE_DIR"):
            self.cache_dir = Path(env["SHED_CACHE_DIR"]).expanduser()
        if env.get("SHED_MAX_WORKERS"):
            self.max_workers = _as_int("SHED_MAX_WORKERS", env["SHED_MAX_WORKERS"])
        proxy = _first_http_proxy(env.get("GOPROXY", ""))
        if proxy:
            self.go_proxy = proxy
        return self


def _as_int(key: str, value: Any) -> int:
    try:
        result = int(value)
    except (TypeError, ValueError):
        raise ConfigError(f"{key} must be an integer, got {value!r}")
    if isinstance(value, bool) or result < 1:
        raise ConfigError(f"{key} must be a positive integer, got {value!r}")
    return result


def _as_positive_float(key: str, value: Any) -> float:
    if isinstance(value, bool) or not isinstance(value, (int, float)) or value <= 0:
        raise ConfigError(f"{key} must be a positive number, got {value!r}")
    return float(value)


def _first_http_proxy(goproxy: str) -> Optional[str]:
    """
    Pick the first HTTP(S) proxy from a GOPROXY list.

    GOPROXY entries are separated by ',' or '|'; 'direct' and 'off' are
    handled by the go command itself and skipped here.
    """
    for entry in goproxy.replace("|", ",").split(","):
        entry = entry.strip()
        if entry.startswith(("http://", "https://")):
            return entry.rstrip("/")
    return None


def find_config_file(
    explicit: Optional[Path] = None, env: Optional[Mapping[str, str]] = None
) -> Optional[Path]:
    """
    Locate the settings file.

    Raises:
        ConfigError: If an explicitly requested file does not exist
    """
    env = os.environ if env is None else env

    if explicit is not None:
        if not Path(explicit).is_file():
            raise ConfigError(f"Configuration file not found: {explicit}")
        return Path(explicit)

    if env.get(CONFIG_ENV_VAR):
        path = Path(env[CONFIG_ENV_VAR]).expanduser()
        if not path.is_file():
            raise ConfigError(
                f"Configuration file from {CONFIG_ENV_VAR} not found: {path}"
            )
        return path

    default = get_user_config_dir() / CONFIG_FILE_NAME
    if default.is_file():
        return default

    logger.debug(f"No configuration file found (optional): {default}")
    return None


def load_yaml_config(config_file: Path) -> Dict[str, Any]:
    """
    Load and parse a YAML settings file.

    Raises:
        ConfigError: If the file cannot be read or is not a YAML mapping
    """
    logger.debug(f"Loading configuration from {config_file}")

    try:
        with open(config_file, "r", encoding="utf-8") as f:
            config = yaml.safe_load(f)
    except yaml.YAMLError as e:
        logger.error(f"Failed to parse YAML: {e}")
        raise ConfigError(f"Invalid YAML in {config_file}: {e}") from e
    except OSError as e:
        raise ConfigError(f"Failed to read {config_file}: {e}") from e

    config = config or {}
    if not isinstance(config, dict):
        raise ConfigError(f"Expected a mapping at the top of {config_file}")
    return config


def load_settings(
    config_file: Optional[Path] = None, env: Optional[Mapping[str, str]] = None
) -> ShedSettings:
    """
    Load settings from the settings file and environment.

    Args:
        config_file: Explicit settings file (optional)
        env: Environment mapping (default: os.environ)

    Returns:
        Resolved ShedSettings
    """
    env = os.environ if env is None else env

    path = find_config_file(config_file, env)
    data = load_yaml_config(path) if path is not None else {}
    return ShedSettings.from_dict(data).apply_env(env)


__all__ = ["ShedSettings", "load_settings", "find_config_file", "load_yaml_config"]
