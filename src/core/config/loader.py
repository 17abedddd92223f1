"""
Configuration loader — reads config.yml into the Settings model.

Resolution order for the file:
    --config flag  >  RUN_CONFIG env var  >  ~/.run/config.yml

A missing file is not an error: defaults apply. A file that exists but
cannot be parsed or validated raises ``ConfigError``. A few environment
variables override individual fields after the file is read.
"""

from __future__ import annotations

import logging
import os
from pathlib import Path

import yaml

from src.core.models.settings import DEFAULT_INSTALL_ROOT, Settings

logger = logging.getLogger(__name__)

# Default config filename
SETTINGS_FILE = "config.yml"

# Env var → settings field
_ENV_OVERRIDES: dict[str, str] = {
    "RUN_INSTALL_ROOT": "install_root",
    "RUN_LOCK_TIMEOUT": "lock_timeout",
    "RUN_SCRIPT_TIMEOUT": "script_timeout",
}


class ConfigError(Exception):
    """Raised when configuration is invalid."""


def find_settings_file(explicit: Path | None = None) -> Path | None:
    """Locate the settings file.

    Args:
        explicit: Path given on the command line, if any.

    Returns:
        Path to an existing config file, or None when there is none.
    """
    if explicit is not None:
        return explicit

    env_path = os.environ.get("RUN_CONFIG")
    if env_path:
        return Path(env_path).expanduser()

    candidate = Path(DEFAULT_INSTALL_ROOT).expanduser() / SETTINGS_FILE
    if candidate.is_file():
        return candidate
    return None


def load_settings(path: Path | None = None) -> Settings:
    """Load and validate settings.

    Args:
        path: Explicit path to config.yml. If None, uses the default lookup.

    Returns:
        Validated Settings model.

    Raises:
        ConfigError: If the file is unreadable or invalid.
    """
    path = find_settings_file(path)
    data: dict = {}

    if path is not None:
        if not path.is_file():
            raise ConfigError(f"Config file not found: {path}")

        logger.debug("Loading settings from %s", path)

        try:
            raw = path.read_text(encoding="utf-8")
        except OSError as e:
            raise ConfigError(f"Cannot read {path}: {e}") from e

        try:
            loaded = yaml.safe_load(raw)
        except yaml.YAMLError as e:
            raise ConfigError(f"Invalid YAML in {path}: {e}") from e

        if loaded is None:
            loaded = {}
        if not isinstance(loaded, dict):
            raise ConfigError(f"Expected a YAML mapping in {path}, got {type(loaded).__name__}")
        data = loaded

    for env_name, field_name in _ENV_OVERRIDES.items():
        value = os.environ.get(env_name)
        if value:
            data[field_name] = value

    try:
        settings = Settings.model_validate(data)
    except Exception as e:
        raise ConfigError(f"Invalid configuration: {e}") from e

    logger.info("Using install root %s", settings.install_root)
    return settings
