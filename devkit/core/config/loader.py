"""
Settings loader — reads devkit.yml into a validated ``Settings`` model.

The file is optional: with none found, every setting keeps its
default. A file that exists but is unreadable, not YAML, or fails
validation raises ``ConfigError``.
"""

from __future__ import annotations

import logging
from pathlib import Path

import yaml
from pydantic import BaseModel, ConfigDict, Field, ValidationError

logger = logging.getLogger(__name__)

# Default settings filename
SETTINGS_FILE = "devkit.yml"


class ConfigError(Exception):
    """Raised when the settings file is invalid or unreadable."""


class Settings(BaseModel):
    """Engine timing and probe settings. All durations in milliseconds."""

    model_config = ConfigDict(extra="forbid")

    command_timeout_ms: int = Field(default=10_000, gt=0)
    detect_timeout_ms: int = Field(default=5000, gt=0)
    settle_delay_ms: int = Field(default=100, ge=0)
    tiered_settle_delay_ms: int = Field(default=500, ge=0)
    cache_ttl_ms: int = Field(default=5000, ge=0)
    probe_url: str = "https://www.google.com"
    probe_timeout_ms: int = Field(default=5000, gt=0)
    default_proxy: str | None = None


def find_settings_file(start_dir: Path | None = None) -> Path | None:
    """Search for devkit.yml starting from the given directory, walking up.

    Args:
        start_dir: Directory to start searching from (default: cwd).

    Returns:
        Path to devkit.yml, or None if not found.
    """
    current = (start_dir or Path.cwd()).resolve()

    for _ in range(20):  # safety limit
        candidate = current / SETTINGS_FILE
        if candidate.is_file():
            return candidate
        parent = current.parent
        if parent == current:
            break  # filesystem root
        current = parent

    return None


def load_settings(path: Path | None = None) -> Settings:
    """Load and validate settings.

    Args:
        path: Explicit path to devkit.yml. If None, searches upward and
            falls back to defaults when nothing is found.

    Raises:
        ConfigError: If an explicit path is missing, or the file is invalid.
    """
    if path is None:
        path = find_settings_file()
        if path is None:
            logger.debug("No %s found; using default settings", SETTINGS_FILE)
            return Settings()

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
        return Settings()
    if not isinstance(data, dict):
        raise ConfigError(f"Expected a YAML mapping in {path}, got {type(data).__name__}")

    # The YAML may nest everything under a "devkit" key or be flat
    if isinstance(data.get("devkit"), dict):
        data = data["devkit"]

    try:
        settings = Settings.model_validate(data)
    except ValidationError as e:
        raise ConfigError(f"Invalid settings in {path}: {e}") from e

    logger.info("Loaded settings from %s", path)
    return settings
