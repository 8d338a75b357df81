"""
Settings — reads hostforge.yml into OrchestratorSettings.

Settings are optional: with no file every phase toggle takes its
default.  The file is searched upward from the working directory so
commands can run from subdirectories.

    orchestrator:
      dry_run: false
      rollback_on_failure: true
      max_recommendations: 5
      priorities: [High, Medium]
    plugins:
      auto_load: true
      descriptor_dir: plugins
"""

from __future__ import annotations

import logging
from pathlib import Path

import yaml
from pydantic import BaseModel, Field

from hostforge.core.errors import ConfigError
from hostforge.core.models.recommendation import Priority, RecommendationCategory

logger = logging.getLogger(__name__)

# Default settings filename
SETTINGS_FILE = "hostforge.yml"


class OrchestratorSettings(BaseModel):
    """Phase toggles and run policy."""

    generate_profile: bool = True
    generate_recommendations: bool = True
    create_backup: bool = True
    apply_base_configuration: bool = True
    apply_recommendations: bool = False

    dry_run: bool = False
    rollback_on_failure: bool = False

    max_recommendations: int = 10
    priorities: list[Priority] = Field(default_factory=list)
    categories: list[RecommendationCategory] = Field(default_factory=list)

    parallel: bool = False
    max_workers: int = 4

    backup_dir: str = ".hostforge/backups"
    report_dir: str | None = ".hostforge/runs"
    audit_file: str | None = ".hostforge/audit.ndjson"


class PluginSettings(BaseModel):
    auto_load: bool = False
    descriptor_dir: str | None = None


class Settings(BaseModel):
    """Root of hostforge.yml."""

    orchestrator: OrchestratorSettings = Field(default_factory=OrchestratorSettings)
    plugins: PluginSettings = Field(default_factory=PluginSettings)


def find_settings_file(start_dir: Path | None = None) -> Path | None:
    """Search for hostforge.yml starting from the given directory, walking up.

    Args:
        start_dir: Directory to start searching from (default: cwd).

    Returns:
        Path to hostforge.yml, or None if not found.
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
        path: Explicit path to hostforge.yml. If None, searches upward;
            when nothing is found, defaults are returned.

    Raises:
        ConfigError: If an explicit file is missing or any file is invalid.
    """
    explicit = path is not None
    if path is None:
        path = find_settings_file()

    if path is None:
        logger.debug("No %s found, using defaults", SETTINGS_FILE)
        return Settings()

    if not path.is_file():
        if explicit:
            raise ConfigError(f"Settings file not found: {path}")
        return Settings()

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

    try:
        settings = Settings.model_validate(data)
    except Exception as e:
        raise ConfigError(f"Invalid settings in {path}: {e}") from e

    logger.debug("Loaded settings from %s", path)
    return settings


def settings_root(settings_path: Path | None) -> Path:
    """Directory that relative paths in the settings resolve against."""
    return settings_path.parent.resolve() if settings_path else Path.cwd()
