"""
Configuration loader — reads issuerctl.yml into Settings.

The file is optional: with no file every default applies. It reads
YAML, validates against the Pydantic schema, and applies the home
override from the CLI or $ISSUERCTL_HOME.
"""

from __future__ import annotations

import logging
import os
from pathlib import Path

import yaml

from issuerctl.core.models.settings import Settings

logger = logging.getLogger(__name__)

CONFIG_ENV_VAR = "ISSUERCTL_CONFIG"
HOME_ENV_VAR = "ISSUERCTL_HOME"


class ConfigError(Exception):
    """Raised when orchestrator configuration is invalid or missing."""


def find_settings_file(explicit: Path | None = None) -> Path | None:
    """Resolve which settings file to read, if any.

    Precedence: explicit path > $ISSUERCTL_CONFIG > none.
    """
    if explicit is not None:
        return explicit
    env_path = os.environ.get(CONFIG_ENV_VAR)
    if env_path:
        return Path(env_path).expanduser()
    return None


def load_settings(path: Path | None = None, home: str | None = None) -> Settings:
    """Load and validate orchestrator settings.

    Args:
        path: Explicit path to issuerctl.yml. None = env var or defaults.
        home: Home directory override (wins over file and env var).

    Returns:
        Validated Settings model.

    Raises:
        ConfigError: If the file is missing or invalid.
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
            raise ConfigError(
                f"Expected a YAML mapping in {path}, got {type(loaded).__name__}"
            )
        data = loaded

    env_home = os.environ.get(HOME_ENV_VAR)
    if home:
        data["home"] = home
    elif env_home:
        data["home"] = env_home

    try:
        settings = Settings.model_validate(data)
    except Exception as e:
        raise ConfigError(f"Invalid issuerctl configuration: {e}") from e

    logger.info("Using installation home %s", settings.home)
    return settings
