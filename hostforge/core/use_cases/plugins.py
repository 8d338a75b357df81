"""
Plugins use case — inspect and exercise the plugin lifecycle.

Plugin state lives only in the process, so each command starts from the
descriptors in ``plugins.descriptor_dir`` and reports the resulting
snapshot.  ``load`` and ``unload`` are dry exercises of the dependency
rules: they show what would happen in an engine process.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from pathlib import Path

from hostforge.core.errors import HostforgeError
from hostforge.core.models.plugin import PluginCategory, PluginRecord
from hostforge.core.use_cases.common import open_context
from hostforge.plugins.catalog import PluginCatalog

logger = logging.getLogger(__name__)


@dataclass
class PluginsResult:
    plugins: list[PluginRecord] = field(default_factory=list)
    action: str = "list"
    target: str | None = None
    changed: list[str] = field(default_factory=list)
    error: str | None = None
    error_kind: str | None = None
    details: dict = field(default_factory=dict)

    def to_dict(self) -> dict:
        data: dict = {
            "action": self.action,
            "target": self.target,
            "plugins": [p.to_dict() for p in self.plugins],
        }
        if self.changed:
            data["changed"] = self.changed
        if self.error:
            data["error"] = self.error
            data["kind"] = self.error_kind
            data.update(self.details)
        return data


def list_plugins(
    settings_path: Path | None = None,
    category: PluginCategory | None = None,
    catalog: PluginCatalog | None = None,
) -> PluginsResult:
    result = PluginsResult()
    try:
        context = open_context(settings_path, catalog=catalog)
    except HostforgeError as e:
        result.error, result.error_kind = e.message, str(e.kind)
        return result
    result.plugins = context.plugins.list_plugins(category=category)
    return result


def load_plugin(
    name: str,
    settings_path: Path | None = None,
    with_dependencies: bool = False,
    catalog: PluginCatalog | None = None,
) -> PluginsResult:
    """Load one plugin; with ``with_dependencies`` its dependency chain first."""
    result = PluginsResult(action="load", target=name)
    context = None
    try:
        context = open_context(settings_path, catalog=catalog)
        manager = context.plugins
        if with_dependencies:
            needed = _dependency_closure(manager, name)
            for dep in manager.load_order():
                if dep in needed and not manager.is_loaded(dep):
                    manager.load(dep)
                    result.changed.append(dep)
        if not manager.is_loaded(name):
            manager.load(name)
            result.changed.append(name)
    except HostforgeError as e:
        result.error, result.error_kind = e.message, str(e.kind)
        result.details = e.to_dict()
    if context is not None:
        result.plugins = context.plugins.list_plugins()
    return result


def unload_plugin(
    name: str,
    settings_path: Path | None = None,
    force: bool = False,
    catalog: PluginCatalog | None = None,
) -> PluginsResult:
    """Load everything, then unload ``name`` (cascading when forced)."""
    result = PluginsResult(action="unload", target=name)
    context = None
    try:
        context = open_context(settings_path, catalog=catalog)
        manager = context.plugins
        manager.load_all()
        before = {r.name for r in manager.list_plugins() if r.loaded}
        manager.unload(name, force=force)
        after = {r.name for r in manager.list_plugins() if r.loaded}
        result.changed = sorted(before - after)
    except HostforgeError as e:
        result.error, result.error_kind = e.message, str(e.kind)
        result.details = e.to_dict()
    if context is not None:
        result.plugins = context.plugins.list_plugins()
    return result


def _dependency_closure(manager, name: str) -> set[str]:
    """Every plugin ``name`` depends on, transitively (excluding itself)."""
    closure: set[str] = set()
    stack = [name]
    while stack:
        record = manager.get(stack.pop())
        if record is None:
            continue
        for dep in record.dependencies:
            if dep not in closure:
                closure.add(dep)
                stack.append(dep)
    closure.discard(name)
    return closure
