from __future__ import annotations

import logging
import os
from typing import Any, Dict

from dotenv import load_dotenv

from shared.protocol.constants import DEFAULT_GRACE_PERIOD, DEFAULT_HOST, DEFAULT_PORT, READ_CHUNK_SIZE

DEFAULT_CONFIG: Dict[str, Any] = {
    "device_host": DEFAULT_HOST,
    "device_port": DEFAULT_PORT,
    "image_path": "bin/software/0_instructions_actual.bin",
    "grace_period": DEFAULT_GRACE_PERIOD,
    "read_chunk_size": READ_CHUNK_SIZE,
    "log_level": "INFO",
}

UPLOADER_CONFIG: Dict[str, Any] = DEFAULT_CONFIG.copy()


class ConfigError(Exception):
    """Raised when configuration values are invalid."""

    pass


def load_config(env_path: str = ".env") -> Dict[str, Any]:
    """Load uploader configuration from env file/environment variables."""
    if os.path.exists(env_path):
        load_dotenv(env_path)

    for key, default_value in DEFAULT_CONFIG.items():
        env_key = f"UPLOADER_{key.upper()}"
        value = os.getenv(env_key, default_value)
        UPLOADER_CONFIG[key] = _coerce_type(value, type(default_value))

    validate_config()
    logging.getLogger().setLevel(UPLOADER_CONFIG["log_level"])
    return UPLOADER_CONFIG


def update_config(**overrides: Any) -> Dict[str, Any]:
    """Apply explicit overrides (e.g. from the command line) on top of loaded values."""
    for key, value in overrides.items():
        if value is None:
            continue
        if key not in DEFAULT_CONFIG:
            raise ConfigError(f"Unknown config key {key}")
        UPLOADER_CONFIG[key] = _coerce_type(value, type(DEFAULT_CONFIG[key]))
    validate_config()
    return UPLOADER_CONFIG


def _coerce_type(value: Any, target_type: type) -> Any:
    if isinstance(value, target_type):
        return value
    try:
        return target_type(value)
    except (TypeError, ValueError) as exc:
        raise ConfigError(f"Cannot convert {value} to {target_type}") from exc


def validate_config() -> None:
    if not (1 <= int(UPLOADER_CONFIG["device_port"]) <= 65535):
        raise ConfigError("device_port must be between 1 and 65535")
    if UPLOADER_CONFIG["grace_period"] <= 0:
        raise ConfigError("grace_period must be positive")
    if UPLOADER_CONFIG["read_chunk_size"] <= 0:
        raise ConfigError("read_chunk_size must be positive")


def get(key: str, default: Any = None) -> Any:
    return UPLOADER_CONFIG.get(key, default)


__all__ = ["UPLOADER_CONFIG", "DEFAULT_CONFIG", "ConfigError", "get", "load_config", "update_config", "validate_config"]
