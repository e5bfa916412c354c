"""Identity cache configuration from YAML file.

Settings live under an ``identity_cache:`` section:

    identity_cache:
      expiry_buffer_seconds: 300
      logging:
        level: INFO
        json: false
        dir: ${IDENTITY_CACHE_LOG_DIR:-}

Environment variables ARE supported using ${VAR_NAME} syntax in YAML files.
IDENTITY_CACHE_* variables override the file.
"""

import logging
import os
import re
from dataclasses import dataclass
from pathlib import Path
from typing import Any

import yaml

from identity_cache.logging import setup_logging
from identity_cache.validity import EXPIRY_BUFFER_SECONDS

logger = logging.getLogger(__name__)

ENV_PREFIX = "IDENTITY_CACHE_"
VALID_LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")


def load_yaml(path: Path) -> dict[str, Any]:
    """Load YAML file and return dict."""
    if not path.exists():
        return {}
    with open(path, "r") as f:
        return yaml.safe_load(f) or {}


def _expand_env_vars(data: Any) -> Any:
    """Recursively expand ${VAR_NAME} and ${VAR_NAME:-default} environment variables."""
    if isinstance(data, dict):
        return {key: _expand_env_vars(value) for key, value in data.items()}
    elif isinstance(data, list):
        return [_expand_env_vars(item) for item in data]
    elif isinstance(data, str):
        pattern = r"\$\{([^}:]+)(?::-([^}]*))?\}"

        def replacer(match):
            var_name = match.group(1)
            default_value = match.group(2) if match.group(2) is not None else match.group(0)
            return os.getenv(var_name, default_value)

        return re.sub(pattern, replacer, data)
    else:
        return data


def _parse_bool(value: Any) -> bool:
    if isinstance(value, bool):
        return value
    return str(value).strip().lower() in ("1", "true", "yes", "on")


@dataclass
class CacheConfig:
    """Identity cache configuration.

    Attributes:
        expiry_buffer_seconds: Access tokens expiring within this window are unusable
        log_level: Console log level name
        json_logs: Emit JSON lines instead of human-readable console output
        log_dir: Directory for the rotating log file (None disables file logging)
    """

    expiry_buffer_seconds: int = EXPIRY_BUFFER_SECONDS
    log_level: str = "INFO"
    json_logs: bool = False
    log_dir: str | None = None

    def validate(self) -> None:
        """Validate configuration values.

        Raises:
            ValueError: On a negative expiry buffer or an unknown log level
        """
        if self.expiry_buffer_seconds < 0:
            raise ValueError(
                f"expiry_buffer_seconds must be >= 0, got {self.expiry_buffer_seconds}"
            )
        if self.log_level.upper() not in VALID_LOG_LEVELS:
            raise ValueError(
                f"log_level must be one of {', '.join(VALID_LOG_LEVELS)}, got '{self.log_level}'"
            )

    def setup_logging(self, name: str = "identity_cache") -> logging.Logger:
        """Configure logging from these settings."""
        return setup_logging(
            name=name,
            log_dir=Path(self.log_dir) if self.log_dir else None,
            json_format=self.json_logs,
            console_level=getattr(logging, self.log_level.upper()),
        )


def _apply_env_overrides(values: dict[str, Any]) -> dict[str, Any]:
    overrides = {
        "expiry_buffer_seconds": os.getenv(f"{ENV_PREFIX}EXPIRY_BUFFER_SECONDS"),
        "log_level": os.getenv(f"{ENV_PREFIX}LOG_LEVEL"),
        "json_logs": os.getenv(f"{ENV_PREFIX}JSON_LOGS"),
        "log_dir": os.getenv(f"{ENV_PREFIX}LOG_DIR"),
    }
    applied = {key: value for key, value in overrides.items() if value is not None}
    if applied:
        logger.debug(f"Applying environment overrides: {list(applied.keys())}")
    return {**values, **applied}


def load_config(config_path: Path | None = None) -> CacheConfig:
    """Load identity cache configuration.

    Reads the ``identity_cache:`` section of config_path when given, then
    applies IDENTITY_CACHE_* environment variables. Missing file or section
    means defaults.

    Raises:
        ValueError: If a value has the wrong type or fails validation
    """
    yaml_data: dict[str, Any] = {}
    if config_path is not None:
        config_path = Path(config_path)
        logger.info(f"Loading configuration from file: {config_path}")
        yaml_data = _expand_env_vars(load_yaml(config_path))

    section = yaml_data.get("identity_cache") or {}
    logging_section = section.get("logging") or {}

    values: dict[str, Any] = {
        "expiry_buffer_seconds": section.get("expiry_buffer_seconds", EXPIRY_BUFFER_SECONDS),
        "log_level": logging_section.get("level", "INFO"),
        "json_logs": logging_section.get("json", False),
        "log_dir": logging_section.get("dir") or None,
    }
    values = _apply_env_overrides(values)

    try:
        expiry_buffer_seconds = int(values["expiry_buffer_seconds"])
    except (TypeError, ValueError) as e:
        raise ValueError(
            f"expiry_buffer_seconds must be an integer, got {values['expiry_buffer_seconds']!r}"
        ) from e

    config = CacheConfig(
        expiry_buffer_seconds=expiry_buffer_seconds,
        log_level=str(values["log_level"]).upper(),
        json_logs=_parse_bool(values["json_logs"]),
        log_dir=str(values["log_dir"]) if values["log_dir"] else None,
    )
    config.validate()
    return config


__all__ = ["CacheConfig", "load_config", "load_yaml"]
