"""
Configuration loader — reads and writes configuration documents.

A configuration document is JSON in the shape produced by
``Configuration.to_document()``.  Reading validates against the Pydantic
schema; writing is atomic and merges run metadata into ``metadata``
without touching the fields the engine owns.
"""

from __future__ import annotations

import json
import logging
import tempfile
from pathlib import Path
from typing import Any

from hostforge.core.errors import ConfigError
from hostforge.core.models.item import Configuration

logger = logging.getLogger(__name__)


def parse_configuration(data: Any, source: str = "<data>") -> Configuration:
    """Validate a decoded document into a Configuration.

    Raises:
        ConfigError: not a mapping, or schema validation failed.
    """
    if not isinstance(data, dict):
        raise ConfigError(f"Expected a JSON object in {source}, got {type(data).__name__}")
    try:
        return Configuration.model_validate(data)
    except Exception as e:
        raise ConfigError(f"Invalid configuration in {source}: {e}") from e


def load_configuration(path: Path) -> Configuration:
    """Load and validate a configuration document.

    Raises:
        ConfigError: if the file is missing, unreadable or invalid.
    """
    if not path.is_file():
        raise ConfigError(f"Configuration file not found: {path}")

    logger.debug("Loading configuration from %s", path)

    try:
        raw = path.read_text(encoding="utf-8-sig")
    except OSError as e:
        raise ConfigError(f"Cannot read {path}: {e}") from e

    try:
        data = json.loads(raw)
    except json.JSONDecodeError as e:
        raise ConfigError(f"Invalid JSON in {path}: {e}") from e

    configuration = parse_configuration(data, str(path))
    logger.info(
        "Loaded configuration '%s' v%s with %d items",
        configuration.name,
        configuration.version,
        len(configuration.items),
    )
    return configuration


def dump_configuration(
    configuration: Configuration,
    run_metadata: dict[str, Any] | None = None,
) -> str:
    """Serialize to JSON text, merging ``run_metadata`` into ``metadata``."""
    document = configuration.to_document()
    if run_metadata:
        document["metadata"] = {**document.get("metadata", {}), **run_metadata}
    return json.dumps(document, indent=2, ensure_ascii=False) + "\n"


def save_configuration(
    configuration: Configuration,
    path: Path,
    run_metadata: dict[str, Any] | None = None,
) -> None:
    """Write a configuration document (atomic write).

    Uses write-to-temp-then-rename to prevent corruption.
    """
    content = dump_configuration(configuration, run_metadata)
    atomic_write_text(path, content, prefix=".config_")
    logger.debug("Configuration saved to %s", path)


def atomic_write_text(path: Path, content: str, prefix: str = ".tmp_") -> None:
    """Write text via a temp file in the same directory, then rename."""
    path.parent.mkdir(parents=True, exist_ok=True)
    try:
        _fd, tmp_path = tempfile.mkstemp(dir=path.parent, prefix=prefix, suffix=".tmp")
        tmp = Path(tmp_path)
        try:
            with open(_fd, "w", encoding="utf-8") as f:
                f.write(content)
            tmp.replace(path)
        except Exception:
            tmp.unlink(missing_ok=True)
            raise
    except Exception as e:
        logger.error("Failed to write %s: %s", path, e)
        raise
