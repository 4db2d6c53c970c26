"""
Configuration loader — reads scaffold.yml into InstallerSettings.

Settings are optional: with no file, the built-in defaults install the
standard template. Resolution order for the file:

    --config PATH  >  $SCAFFOLD_CONFIG  >  ./scaffold.yml

A few values can also be overridden through environment variables
(``SCAFFOLD_TEMPLATE_REPO``, ``SCAFFOLD_TEMPLATE_REF``).
"""

from __future__ import annotations

import logging
import os
from pathlib import Path

import yaml
from pydantic import BaseModel, Field, ValidationError

from scaffold.core.errors import ScaffoldError

logger = logging.getLogger(__name__)

# Default config filename
SETTINGS_FILE = "scaffold.yml"

DEFAULT_TEMPLATE_REPO = "https://github.com/ThyreenAgain/symfony-docker-thy"

_ENV_OVERRIDES = {
    "SCAFFOLD_TEMPLATE_REPO": "template_repo",
    "SCAFFOLD_TEMPLATE_REF": "template_ref",
}


class ConfigError(ScaffoldError):
    """Raised when installer configuration is invalid or unreadable."""


class InstallerSettings(BaseModel):
    """Tunables for one installer run."""

    template_repo: str = DEFAULT_TEMPLATE_REPO
    template_ref: str = ""

    # Timeouts (seconds)
    probe_timeout: float = Field(default=5.0, gt=0)
    command_timeout: int = Field(default=600, gt=0)
    build_timeout: int = Field(default=1800, gt=0)

    # Port negotiation
    scan_attempts: int = Field(default=100, ge=1)
    fallback_offset: int = Field(default=1000, ge=1)

    # Readiness polling
    health_attempts: int = Field(default=30, ge=1)
    health_interval: float = Field(default=2.0, ge=0)
    web_health_path: str = "/"

    build_no_cache: bool = True
    run_post_install: bool = True
    remove_on_failure: bool = False

    installer_only_paths: list[str] = Field(
        default_factory=lambda: ["install.sh", "setup", "scripts/move-to.sh"],
    )
    shared_prefix: str = "scaffold-shared"


def find_settings_file(start_dir: Path | None = None) -> Path | None:
    """Locate the settings file from the environment or the working directory."""
    env_path = os.environ.get("SCAFFOLD_CONFIG")
    if env_path:
        return Path(env_path)

    candidate = (start_dir or Path.cwd()) / SETTINGS_FILE
    if candidate.is_file():
        return candidate
    return None


def load_settings(path: Path | None = None) -> InstallerSettings:
    """Load and validate installer settings.

    Args:
        path: Explicit settings file. If None, searches as described above.

    Returns:
        Validated InstallerSettings (defaults when no file exists).

    Raises:
        ConfigError: If the file is unreadable or invalid.
    """
    if path is None:
        path = find_settings_file()

    data: dict = {}
    if path is not None:
        data = _read_yaml(path)

    for env_key, field in _ENV_OVERRIDES.items():
        value = os.environ.get(env_key)
        if value:
            data[field] = value

    try:
        settings = InstallerSettings.model_validate(data)
    except ValidationError as e:
        raise ConfigError(f"Invalid installer settings: {e}") from e

    logger.debug("Settings loaded (template=%s)", settings.template_repo)
    return settings


def _read_yaml(path: Path) -> dict:
    if not path.is_file():
        raise ConfigError(f"Config file not found: {path}")

    logger.debug("Loading installer settings from %s", path)
    try:
        raw = path.read_text(encoding="utf-8")
    except OSError as e:
        raise ConfigError(f"Cannot read {path}: {e}") from e

    try:
        data = yaml.safe_load(raw)
    except yaml.YAMLError as e:
        raise ConfigError(f"Invalid YAML in {path}: {e}") from e

    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ConfigError(f"Expected a YAML mapping in {path}, got {type(data).__name__}")

    # The YAML may wrap everything under a "scaffold" key or be flat
    nested = data.get("scaffold")
    if isinstance(nested, dict):
        return dict(nested)
    return data
