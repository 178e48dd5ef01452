"""
Configuration loader — reads ecsetup.yml into SetupSettings.

Resolution order for the settings file:
    explicit path  >  $ECSETUP_CONFIG  >  /etc/ecsetup/ecsetup.yml

When no file is found the built-in defaults are used. The result is
an immutable value the caller passes on; nothing is cached here.
"""

from __future__ import annotations

import logging
import os
from pathlib import Path

import yaml
from pydantic import ValidationError

from ecsetup.core.models.settings import SetupSettings

logger = logging.getLogger(__name__)

CONFIG_ENV_VAR = "ECSETUP_CONFIG"
SYSTEM_CONFIG_FILE = Path("/etc/ecsetup/ecsetup.yml")


class ConfigError(Exception):
    """Raised when the settings file is unreadable or invalid."""


def find_settings_file(explicit: Path | None = None) -> Path | None:
    """Resolve which settings file applies, if any.

    An explicit path or ``$ECSETUP_CONFIG`` is returned as-is even if
    missing, so ``load_settings`` can report it. The system-wide file
    is only used when it exists.
    """
    if explicit is not None:
        return explicit

    env_path = os.environ.get(CONFIG_ENV_VAR)
    if env_path:
        return Path(env_path)

    if SYSTEM_CONFIG_FILE.is_file():
        return SYSTEM_CONFIG_FILE

    return None


def load_settings(path: Path | None = None) -> SetupSettings:
    """Load and validate provisioning settings.

    Args:
        path: Explicit settings file. If None, falls back to the env var
              and the system-wide file, then to defaults.

    Returns:
        Frozen SetupSettings.

    Raises:
        ConfigError: If a selected file is missing or invalid.
    """
    path = find_settings_file(path)
    if path is None:
        logger.debug("No settings file found, using defaults")
        return SetupSettings()

    if not path.is_file():
        raise ConfigError(f"Config file not found: {path}")

    logger.debug("Loading settings from %s", path)

    try:
        raw = path.read_text(encoding="utf-8")
    except OSError as e:
        raise ConfigError(f"Cannot read {path}: {e}") from e

    try:
        data = yaml.safe_load(raw)
    except yaml.YAMLError as e:
        raise ConfigError(f"Invalid YAML in {path}: {e}") from e

    if data is None:
        return SetupSettings()

    if not isinstance(data, dict):
        raise ConfigError(f"Expected a YAML mapping in {path}, got {type(data).__name__}")

    # The YAML may wrap everything under an "ecsetup" key or be flat
    if "ecsetup" in data:
        data = data["ecsetup"] or {}
        if not isinstance(data, dict):
            raise ConfigError(f"Expected a mapping under 'ecsetup' in {path}")

    try:
        settings = SetupSettings.model_validate(data)
    except ValidationError as e:
        raise ConfigError(f"Invalid settings in {path}: {e}") from e

    logger.info("Loaded settings from %s (module=%s)", path, settings.module_name)
    return settings
