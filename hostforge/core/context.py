"""
Engine context — everything one engine instance works with.

There is no module-level state: the CLI builds one EngineContext per
process, tests build one per test.  The context owns the plugin
manager, the action registry, the mutation backend and the
recommendation engine, all wired to each other:

    CLI:    main.py  → EngineContext.create(settings, backend=...)
    Tests:  conftest → EngineContext.create(backend=InMemoryBackend())

Relative paths in the settings (backup_dir, report_dir, audit_file,
plugins.descriptor_dir) resolve against ``root``.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from pathlib import Path

from hostforge.actions.base import MutationBackend
from hostforge.actions.mock import InMemoryBackend
from hostforge.actions.registry import ActionRegistry
from hostforge.core.config.settings import Settings
from hostforge.core.observability.log_sink import LoggingSink, LogSink
from hostforge.plugins.catalog import PluginCatalog, load_descriptors, register_descriptors
from hostforge.plugins.manager import PluginManager
from hostforge.recommend.engine import RecommendationEngine

logger = logging.getLogger(__name__)


@dataclass
class EngineContext:
    settings: Settings
    plugins: PluginManager
    actions: ActionRegistry
    backend: MutationBackend
    recommendations: RecommendationEngine
    catalog: PluginCatalog = field(default_factory=PluginCatalog)
    log_sink: LogSink = field(default_factory=LoggingSink)
    root: Path = field(default_factory=Path.cwd)

    @classmethod
    def create(
        cls,
        settings: Settings | None = None,
        backend: MutationBackend | None = None,
        catalog: PluginCatalog | None = None,
        log_sink: LogSink | None = None,
        root: Path | None = None,
    ) -> EngineContext:
        """Wire a fresh context.

        Without a backend the in-memory simulation is used.  When
        ``plugins.descriptor_dir`` is set, its descriptors are registered
        (paired with ``catalog`` constructors) before returning.
        """
        settings = settings or Settings()
        backend = backend if backend is not None else InMemoryBackend()
        catalog = catalog or PluginCatalog()
        root = (root or Path.cwd()).resolve()

        manager = PluginManager(auto_load=settings.plugins.auto_load)
        context = cls(
            settings=settings,
            plugins=manager,
            actions=ActionRegistry(plugin_manager=manager),
            backend=backend,
            recommendations=RecommendationEngine(backend, plugin_manager=manager),
            catalog=catalog,
            log_sink=log_sink or LoggingSink(),
            root=root,
        )

        if settings.plugins.descriptor_dir:
            context.register_plugin_descriptors(context.resolve(settings.plugins.descriptor_dir))

        logger.debug(
            "Engine context ready (backend=%s, plugins=%d)",
            type(backend).__name__,
            len(manager),
        )
        return context

    def resolve(self, path: str | Path) -> Path:
        p = Path(path)
        return p if p.is_absolute() else self.root / p

    def register_plugin_descriptors(self, directory: Path):
        """Register every descriptor file under ``directory``."""
        result = register_descriptors(self.plugins, load_descriptors(directory), self.catalog)
        for name, reason in result.failed.items():
            logger.warning("Plugin %s not registered: %s", name, reason)
        return result
