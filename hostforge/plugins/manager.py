"""
Plugin manager — registry plus dependency-gated lifecycle.

States:
    Registered → Loaded → Registered …   (plugins cycle indefinitely)
    Registered ⇄ Disabled                (explicit disable/enable)

Transitions:
    register:  → Registered     every dependency must be registered (or force)
    load:      Registered → Loaded   every dependency must be Loaded
    unload:    Loaded → Registered   no Loaded plugin may depend on it
                                     (force cascades: dependents unload first)

Graph invariant: a plugin is never observed Loaded while one of its
dependencies is not Loaded.  All transitions go through one re-entrant
lock, so at most one lifecycle transition is in flight per manager.
"""

from __future__ import annotations

import logging
import re
import threading
from dataclasses import dataclass, field
from datetime import UTC, datetime
from typing import Any

from hostforge.core.errors import (
    DependencyError,
    PluginNotFoundError,
    PluginStateError,
    PluginValidationError,
)
from hostforge.core.models.plugin import (
    PluginCategory,
    PluginDescriptor,
    PluginRecord,
    PluginState,
)
from hostforge.plugins.base import plugin_hook

logger = logging.getLogger(__name__)

_NAME_RE = re.compile(r"^[A-Za-z0-9][A-Za-z0-9._-]*$")
_VERSION_RE = re.compile(r"^\d+(\.\d+)*([-+][0-9A-Za-z.-]+)?$")


@dataclass
class BulkResult:
    """Outcome of load_all / unload_all."""

    succeeded: list[str] = field(default_factory=list)
    failed: dict[str, str] = field(default_factory=dict)

    @property
    def ok(self) -> bool:
        return not self.failed


class PluginManager:
    """Registry and lifecycle manager for plugins.

    One instance per EngineContext; tests construct independent ones.

    Args:
        auto_load: Load every plugin right after it registers.
    """

    def __init__(self, auto_load: bool = False):
        self._plugins: dict[str, PluginRecord] = {}
        self._lock = threading.RLock()
        self.auto_load = auto_load

    # ── Pure predicates ──────────────────────────────────────────

    def validation_errors(self, descriptor: PluginDescriptor) -> list[str]:
        """Structural problems with a descriptor (empty = valid)."""
        errors: list[str] = []
        if not _NAME_RE.match(descriptor.name or ""):
            errors.append(f"invalid name {descriptor.name!r}")
        if not _VERSION_RE.match(descriptor.version or ""):
            errors.append(f"invalid version {descriptor.version!r}")
        for dep in descriptor.dependencies:
            if not dep or not dep.strip():
                errors.append("empty dependency name")
            elif dep == descriptor.name:
                errors.append("plugin depends on itself")
        return errors

    def validate(self, descriptor: PluginDescriptor) -> bool:
        return not self.validation_errors(descriptor)

    def missing_dependencies(self, descriptor: PluginDescriptor) -> list[str]:
        """Dependencies absent from the registry."""
        with self._lock:
            return [d for d in descriptor.dependencies if d not in self._plugins]

    def check_dependencies(self, descriptor: PluginDescriptor) -> bool:
        return not self.missing_dependencies(descriptor)

    # ── Queries ──────────────────────────────────────────────────

    def get(self, name: str) -> PluginRecord | None:
        """Look up a plugin by name."""
        with self._lock:
            return self._plugins.get(name)

    def state_of(self, name: str) -> PluginState:
        return self._require(name).state

    def is_loaded(self, name: str) -> bool:
        record = self.get(name)
        return record is not None and record.loaded

    def list_plugins(
        self,
        category: PluginCategory | None = None,
        state: PluginState | None = None,
    ) -> list[PluginRecord]:
        """Registered plugins in registration order, optionally filtered."""
        with self._lock:
            records = list(self._plugins.values())
        if category is not None:
            records = [r for r in records if r.category == category]
        if state is not None:
            records = [r for r in records if r.state == state]
        return records

    def loaded_implementations(self, category: PluginCategory | None = None) -> list[Any]:
        """Implementation objects of loaded plugins, in registration order."""
        return [
            r.implementation
            for r in self.list_plugins(category=category, state=PluginState.LOADED)
            if r.implementation is not None
        ]

    def dependents_of(self, name: str) -> list[str]:
        """Loaded plugins that list ``name`` among their dependencies."""
        with self._lock:
            return [
                r.name
                for r in self._plugins.values()
                if r.loaded and name in r.dependencies
            ]

    def snapshot(self) -> dict[str, PluginState]:
        """Consistent view of every plugin's state."""
        with self._lock:
            return {name: r.state for name, r in self._plugins.items()}

    def graph_violations(self) -> list[str]:
        """Loaded plugins whose dependencies are not all loaded (should be empty)."""
        with self._lock:
            violations = []
            for r in self._plugins.values():
                if not r.loaded:
                    continue
                for dep in r.dependencies:
                    dep_record = self._plugins.get(dep)
                    if dep_record is None or not dep_record.loaded:
                        violations.append(f"{r.name} → {dep}")
            return violations

    # ── Lifecycle ────────────────────────────────────────────────

    def register(
        self,
        descriptor: PluginDescriptor,
        implementation: Any = None,
        force: bool = False,
    ) -> PluginRecord:
        """Admit a plugin into the registry in state Registered.

        Raises:
            PluginValidationError: descriptor invalid or name taken (unless force).
            DependencyError: a dependency is not registered (unless force).
            PluginStateError: force-replacing a plugin that is still Loaded.
        """
        with self._lock:
            problems = self.validation_errors(descriptor)
            existing = self._plugins.get(descriptor.name)
            if existing is not None:
                if existing.loaded:
                    raise PluginStateError(
                        f"Plugin '{descriptor.name}' is loaded; unload it before replacing"
                    )
                if not force:
                    raise PluginValidationError(descriptor.name, ["already registered"])

            if problems and not force:
                raise PluginValidationError(descriptor.name, problems)

            missing = self.missing_dependencies(descriptor)
            if missing and not force:
                raise DependencyError(
                    f"Plugin '{descriptor.name}' depends on unregistered plugin(s): "
                    f"{', '.join(missing)}",
                    plugin=descriptor.name,
                    missing=missing,
                )
            if force and (problems or missing):
                logger.warning(
                    "Force-registering plugin %s despite: %s",
                    descriptor.name,
                    "; ".join(problems + [f"missing {m}" for m in missing]),
                )

            record = PluginRecord(descriptor=descriptor, implementation=implementation)
            self._plugins[descriptor.name] = record
            logger.info("Registered plugin %s %s", descriptor.name, descriptor.version)

            if self.auto_load:
                try:
                    self.load(descriptor.name)
                except (DependencyError, PluginStateError) as e:
                    logger.warning("Auto-load of %s deferred: %s", descriptor.name, e)

            return record

    def load(self, name: str) -> PluginRecord:
        """Transition Registered → Loaded.

        Re-loading a Loaded plugin is a no-op.

        Raises:
            PluginNotFoundError: unknown name.
            PluginStateError: plugin is Disabled, or its initialize hook failed.
            DependencyError: a dependency is not Loaded.
        """
        with self._lock:
            record = self._require(name)
            if record.state == PluginState.LOADED:
                return record
            if record.state == PluginState.DISABLED:
                raise PluginStateError(f"Plugin '{name}' is disabled; enable it first")

            not_loaded = [
                d for d in record.dependencies
                if d not in self._plugins or not self._plugins[d].loaded
            ]
            if not_loaded:
                record.last_error = f"dependencies not loaded: {', '.join(not_loaded)}"
                raise DependencyError(
                    f"Cannot load '{name}': dependencies not loaded: {', '.join(not_loaded)}",
                    plugin=name,
                    missing=not_loaded,
                )

            initialize = plugin_hook(record.implementation, "initialize")
            if initialize is not None:
                try:
                    initialize()
                except Exception as e:
                    record.last_error = f"initialize failed: {e}"
                    raise PluginStateError(f"Plugin '{name}' failed to initialize: {e}") from e

            record.state = PluginState.LOADED
            record.loaded_at = datetime.now(UTC).isoformat()
            record.last_error = None
            logger.info("Loaded plugin %s", name)
            return record

    def unload(self, name: str, force: bool = False) -> PluginRecord:
        """Transition Loaded → Registered. The plugin stays registered.

        With ``force``, loaded dependents are unloaded first and a
        failing cleanup hook is only logged.

        Raises:
            PluginNotFoundError: unknown name.
            DependencyError: loaded plugins still depend on it (unless force).
            PluginStateError: cleanup hook failed (unless force).
        """
        with self._lock:
            record = self._require(name)
            if record.state != PluginState.LOADED:
                return record

            dependents = self.dependents_of(name)
            if dependents and not force:
                raise DependencyError(
                    f"Cannot unload '{name}': required by loaded plugin(s) {', '.join(dependents)}",
                    plugin=name,
                    dependents=dependents,
                )
            for dependent in dependents:
                logger.warning("Force-unloading %s (depends on %s)", dependent, name)
                self.unload(dependent, force=True)

            cleanup = plugin_hook(record.implementation, "cleanup")
            if cleanup is not None:
                try:
                    cleanup()
                except Exception as e:
                    record.last_error = f"cleanup failed: {e}"
                    if not force:
                        raise PluginStateError(f"Cleanup of '{name}' failed: {e}") from e
                    logger.warning("Cleanup of %s failed, unloading anyway: %s", name, e)

            record.state = PluginState.REGISTERED
            record.loaded_at = None
            logger.info("Unloaded plugin %s", name)
            return record

    def disable(self, name: str, force: bool = False) -> PluginRecord:
        """Unload if needed, then mark Disabled (not loadable until enabled)."""
        with self._lock:
            record = self._require(name)
            if record.loaded:
                self.unload(name, force=force)
            record.state = PluginState.DISABLED
            logger.info("Disabled plugin %s", name)
            return record

    def enable(self, name: str) -> PluginRecord:
        """Disabled → Registered (auto-loads when enabled process-wide)."""
        with self._lock:
            record = self._require(name)
            if record.state != PluginState.DISABLED:
                return record
            record.state = PluginState.REGISTERED
            logger.info("Enabled plugin %s", name)
            if self.auto_load:
                try:
                    self.load(name)
                except (DependencyError, PluginStateError) as e:
                    logger.warning("Auto-load of %s deferred: %s", name, e)
            return record

    # ── Bulk operations ──────────────────────────────────────────

    def load_order(self) -> list[str]:
        """Registered plugins sorted so dependencies come first.

        Uses Kahn's algorithm; ties keep registration order.
        Dependencies that are not registered are ignored here (load
        reports them).

        Raises:
            DependencyError: the dependency graph has a cycle.
        """
        with self._lock:
            names = list(self._plugins.keys())
            in_degree = {n: 0 for n in names}
            successors: dict[str, list[str]] = {n: [] for n in names}
            for n in names:
                for dep in self._plugins[n].dependencies:
                    if dep in in_degree:
                        in_degree[n] += 1
                        successors[dep].append(n)

        queue = [n for n in names if in_degree[n] == 0]
        order: list[str] = []
        while queue:
            node = queue.pop(0)
            order.append(node)
            for successor in successors[node]:
                in_degree[successor] -= 1
                if in_degree[successor] == 0:
                    queue.append(successor)

        if len(order) < len(names):
            cyclic = [n for n in names if n not in order]
            raise DependencyError(
                f"Dependency cycle among plugins: {', '.join(cyclic)}",
                missing=cyclic,
            )
        return order

    def load_all(self) -> BulkResult:
        """Load every non-disabled plugin in dependency order."""
        result = BulkResult()
        with self._lock:
            for name in self.load_order():
                record = self._plugins[name]
                if record.state == PluginState.DISABLED:
                    continue
                try:
                    self.load(name)
                    result.succeeded.append(name)
                except (DependencyError, PluginStateError) as e:
                    result.failed[name] = e.message
        return result

    def unload_all(self, force: bool = False) -> BulkResult:
        """Unload every loaded plugin, dependents first."""
        result = BulkResult()
        with self._lock:
            for name in reversed(self.load_order()):
                if not self._plugins[name].loaded:
                    continue
                try:
                    self.unload(name, force=force)
                    result.succeeded.append(name)
                except (DependencyError, PluginStateError) as e:
                    result.failed[name] = e.message
        return result

    # ── Internals ────────────────────────────────────────────────

    def _require(self, name: str) -> PluginRecord:
        with self._lock:
            record = self._plugins.get(name)
        if record is None:
            raise PluginNotFoundError(name)
        return record

    def __len__(self) -> int:
        with self._lock:
            return len(self._plugins)

    def __contains__(self, name: object) -> bool:
        with self._lock:
            return name in self._plugins
