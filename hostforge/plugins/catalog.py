"""
Plugin catalog — explicit name → constructor table and descriptor files.

Implementations are never discovered by naming convention: each one is
registered here under its plugin name by whoever assembles the process
(the CLI, an embedding application, a test).  Descriptor files then
only say *which* plugins exist and how they depend on each other.

Descriptor file (JSON or YAML)::

    Name: dev-tools
    Version: 1.2.0
    Category: Configuration
    Dependencies: [core-packages]
    Metadata: {author: ops}
"""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any, Callable

import yaml

from hostforge.core.errors import (
    ConfigError,
    DependencyError,
    PluginStateError,
    PluginValidationError,
)
from hostforge.core.models.plugin import PluginDescriptor
from hostforge.plugins.manager import BulkResult, PluginManager

logger = logging.getLogger(__name__)

DESCRIPTOR_SUFFIXES = (".json", ".yml", ".yaml")

PluginConstructor = Callable[[], Any]


class PluginCatalog:
    """Startup-time table of plugin constructors."""

    def __init__(self) -> None:
        self._constructors: dict[str, PluginConstructor] = {}

    def register(self, name: str, constructor: PluginConstructor) -> None:
        if name in self._constructors:
            logger.warning("Overwriting plugin constructor: %s", name)
        self._constructors[name] = constructor

    def has(self, name: str) -> bool:
        return name in self._constructors

    def names(self) -> list[str]:
        return list(self._constructors.keys())

    def create(self, name: str) -> Any:
        """Instantiate the implementation for ``name`` (None when not catalogued)."""
        constructor = self._constructors.get(name)
        if constructor is None:
            return None
        return constructor()


def read_descriptor(path: Path) -> PluginDescriptor:
    """Parse one descriptor file.

    Raises:
        ConfigError: unreadable, unparsable or schema-invalid file.
    """
    try:
        raw = path.read_text(encoding="utf-8")
    except OSError as e:
        raise ConfigError(f"Cannot read {path}: {e}") from e

    try:
        if path.suffix == ".json":
            data = json.loads(raw)
        else:
            data = yaml.safe_load(raw)
    except (json.JSONDecodeError, yaml.YAMLError) as e:
        raise ConfigError(f"Invalid plugin descriptor {path}: {e}") from e

    if not isinstance(data, dict):
        raise ConfigError(f"Expected a mapping in {path}, got {type(data).__name__}")

    try:
        return PluginDescriptor.model_validate(data)
    except Exception as e:
        raise ConfigError(f"Invalid plugin descriptor {path}: {e}") from e


def load_descriptors(directory: Path) -> list[PluginDescriptor]:
    """Read every descriptor file in a directory, sorted by file name."""
    if not directory.is_dir():
        logger.debug("No plugin descriptor directory at %s", directory)
        return []

    descriptors = []
    for path in sorted(directory.iterdir()):
        if path.suffix not in DESCRIPTOR_SUFFIXES or not path.is_file():
            continue
        descriptors.append(read_descriptor(path))
    logger.debug("Read %d plugin descriptors from %s", len(descriptors), directory)
    return descriptors


def register_descriptors(
    manager: PluginManager,
    descriptors: list[PluginDescriptor],
    catalog: PluginCatalog | None = None,
    force: bool = False,
) -> BulkResult:
    """Register descriptors, pairing each with its catalogued constructor.

    Descriptors may come in any order: registration is retried in passes
    until no further plugin can be admitted, so dependencies end up
    registered before their dependents.
    """
    result = BulkResult()
    pending = list(descriptors)

    while pending:
        progressed = False
        remaining: list[PluginDescriptor] = []
        for descriptor in pending:
            if not manager.check_dependencies(descriptor):
                remaining.append(descriptor)
                continue
            implementation = catalog.create(descriptor.name) if catalog else None
            try:
                manager.register(descriptor, implementation, force=force)
                result.succeeded.append(descriptor.name)
            except (PluginValidationError, DependencyError, PluginStateError) as e:
                result.failed[descriptor.name] = e.message
            progressed = True
        pending = remaining
        if not progressed:
            break

    for descriptor in pending:
        if force:
            implementation = catalog.create(descriptor.name) if catalog else None
            try:
                manager.register(descriptor, implementation, force=True)
                result.succeeded.append(descriptor.name)
                continue
            except (PluginValidationError, PluginStateError) as e:
                result.failed[descriptor.name] = e.message
                continue
        missing = manager.missing_dependencies(descriptor)
        result.failed[descriptor.name] = f"unregistered dependencies: {', '.join(missing)}"

    return result
