"""Loading nexus.config.json with shared fallbacks."""

import copy
import logging
from pathlib import Path
from typing import Any, Dict, Optional, Tuple, Union

import orjson

from nexus.core.errors import ConfigError

ConfigResult = Tuple[dict, str, bool]

DEFAULT_CONFIG_PATH = "nexus.config.json"

DEFAULT_CONFIG: Dict[str, Any] = {
    "configVersion": "1.0",
    "environment": "development",
    "logging": {
        "logDir": None,
        "level": "INFO",
        "console": True,
        "utc": False,
    },
    "timeline": {
        "defaultWindowMinutes": 30,
        "replayStepMinutes": 1,
    },
    "logistics": {
        "defaultLaneTtlSeconds": 1200,
    },
    "registries": {
        "validateOnStartup": True,
        "logWarnings": True,
    },
    "operations": {
        "snapshotPath": None,
    },
}

VALID_ENVIRONMENTS = {"development", "production"}


def _deepMerge(base: dict, override: dict) -> dict:
    merged = copy.deepcopy(base)
    for key, value in override.items():
        if isinstance(value, dict) and isinstance(merged.get(key), dict):
            merged[key] = _deepMerge(merged[key], value)
        else:
            merged[key] = value
    return merged


def _validateConfig(config: Any) -> None:
    if not isinstance(config, dict):
        raise ConfigError("nexus config is not a JSON object")
    for section in ("logging", "timeline", "logistics", "registries", "operations"):
        if section in config and not isinstance(config[section], dict):
            raise ConfigError(f"Section '{section}' must be an object")
    environment = config.get("environment", "development")
    if environment not in VALID_ENVIRONMENTS:
        raise ConfigError(f"Unknown environment '{environment}'")
    window = config.get("timeline", {}).get("defaultWindowMinutes", 30)
    if not isinstance(window, (int, float)) or isinstance(window, bool) or window < 0:
        raise ConfigError("timeline.defaultWindowMinutes must be a non-negative number")
    level = config.get("logging", {}).get("level", "INFO")
    if not isinstance(level, str) or not isinstance(logging.getLevelName(level.upper()), int):
        raise ConfigError(f"Unknown logging.level '{level}'")
    ttl = config.get("logistics", {}).get("defaultLaneTtlSeconds", 1200)
    if not isinstance(ttl, (int, float)) or isinstance(ttl, bool) or ttl <= 0:
        raise ConfigError("logistics.defaultLaneTtlSeconds must be a positive number")


def parseConfig(raw: Union[bytes, str]) -> dict:
    """Strict parse: raises ConfigError for invalid JSON or structure."""
    try:
        config = orjson.loads(raw)
    except orjson.JSONDecodeError as e:
        raise ConfigError(f"Invalid JSON: {e}") from e
    _validateConfig(config)
    return _deepMerge(DEFAULT_CONFIG, config)


def loadConfig(path: Union[str, Path] = DEFAULT_CONFIG_PATH, log: Optional[object] = None) -> ConfigResult:
    """Load the config file, falling back to immutable defaults on any error."""
    cfgPath = Path(path)

    try:
        config = parseConfig(cfgPath.read_bytes())
        version = str(config.get("configVersion", "1.0"))
        if log:
            log.info("Loaded nexus config", component="Config", configPath=str(cfgPath), configVersion=version)
        return config, version, False
    except (OSError, ConfigError) as exc:
        if log:
            log.error("Failed to load nexus config", component="Config", configPath=str(cfgPath),
                      errorClass=type(exc).__name__, errorMsg=str(exc))

    fallback = copy.deepcopy(DEFAULT_CONFIG)
    version = fallback.get("configVersion", "backup")
    if log:
        log.warning("Loaded nexus config defaults", component="Config", configVersion=version)
    return fallback, version, True
