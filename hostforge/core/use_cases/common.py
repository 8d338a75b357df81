"""
Shared wiring for use cases — settings, backend and context.
"""

from __future__ import annotations

import importlib
import logging
from pathlib import Path
from typing import Any

from hostforge.actions.base import MutationBackend
from hostforge.actions.mock import InMemoryBackend
from hostforge.core.config.settings import Settings, find_settings_file, load_settings, settings_root
from hostforge.core.context import EngineContext
from hostforge.core.errors import ConfigError
from hostforge.plugins.catalog import PluginCatalog

logger = logging.getLogger(__name__)


def load_object(target: str) -> Any:
    """Resolve ``package.module:attribute``.

    Raises:
        ConfigError: malformed target, module or attribute not found.
    """
    if ":" not in target:
        raise ConfigError(f"Expected 'module:attribute', got '{target}'")
    module_path, attr = target.rsplit(":", 1)
    try:
        module = importlib.import_module(module_path)
    except ImportError as e:
        raise ConfigError(f"Cannot import {module_path}: {e}") from e
    try:
        return getattr(module, attr)
    except AttributeError as e:
        raise ConfigError(f"{module_path} has no attribute '{attr}'") from e


def resolve_backend(
    backend: MutationBackend | None = None,
    backend_spec: str | None = None,
    mock: bool = False,
) -> MutationBackend:
    """Pick the mutation backend for a run.

    An explicit object wins, then ``backend_spec`` (a factory named as
    ``module:callable``), then the in-memory simulation when ``mock``.

    Raises:
        ConfigError: nothing selected, or the factory failed.
    """
    if backend is not None:
        return backend
    if backend_spec:
        factory = load_object(backend_spec)
        try:
            return factory()
        except Exception as e:
            raise ConfigError(f"Backend factory {backend_spec} failed: {e}") from e
    if mock:
        return InMemoryBackend()
    raise ConfigError(
        "No mutation backend selected. Use --mock for the in-memory simulation "
        "or --backend module:factory."
    )


def open_context(
    settings_path: Path | None = None,
    backend: MutationBackend | None = None,
    catalog: PluginCatalog | None = None,
) -> EngineContext:
    """Load settings and build an EngineContext rooted at the settings file.

    Raises:
        ConfigError: settings invalid, or a descriptor file is unreadable.
    """
    path = settings_path or find_settings_file()
    settings: Settings = load_settings(path)
    return EngineContext.create(
        settings=settings,
        backend=backend,
        catalog=catalog,
        root=settings_root(path),
    )
