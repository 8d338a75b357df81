"""
In-memory backend — a simulated host for tests, mock runs and dry-runs.

Holds packages, features, registry values and tools in dictionaries.
Every mutating call is logged so tests can assert on it.  Individual
targets can be configured to fail or raise.
"""

from __future__ import annotations

import copy
import json
import threading
from typing import Any

from hostforge.core.models.result import ApplyOutcome


def generic_key(payload: dict[str, Any]) -> str:
    """Stable identity for a generic payload, qualified by its ``type`` tag."""
    for key in ("id", "name", "action"):
        if payload.get(key):
            ident = str(payload[key])
            break
    else:
        return json.dumps(payload, sort_keys=True, default=str)
    tag = payload.get("type")
    return f"{tag}:{ident}" if tag else ident


class InMemoryBackend:
    """Universal simulated host.

    By default every mutation succeeds.  Use ``set_failure`` /
    ``set_exception`` to script failures for a given target (package id,
    feature name, ``path\\name`` registry key, tool name or generic id).
    """

    def __init__(
        self,
        packages: dict[str, str] | None = None,
        features: set[str] | None = None,
        registry: dict[tuple[str, str], Any] | None = None,
        tools: set[str] | None = None,
        restart_targets: set[str] | None = None,
    ):
        self.packages: dict[str, str] = dict(packages or {})
        self.features: set[str] = set(features or set())
        self.registry: dict[tuple[str, str], Any] = dict(registry or {})
        self.tools: set[str] = set(tools or set())
        self.generic_applied: set[str] = set()
        self._restart_targets = set(restart_targets or set())
        self._failures: dict[str, str] = {}
        self._exceptions: dict[str, Exception] = {}
        self._call_log: list[tuple[str, str]] = []
        self._lock = threading.Lock()

    # ── Scripting ───────────────────────────────────────────────

    @property
    def call_log(self) -> list[tuple[str, str]]:
        """(operation, target) for every mutating call received."""
        return self._call_log

    @property
    def mutation_count(self) -> int:
        """Number of mutating calls received."""
        return len(self._call_log)

    def set_failure(self, target: str, message: str = "Mock failure") -> None:
        """Make mutations of ``target`` report failure."""
        self._failures[target] = message

    def set_exception(self, target: str, error: Exception) -> None:
        """Make mutations of ``target`` raise ``error``."""
        self._exceptions[target] = error

    def reset(self) -> None:
        """Clear call log and scripted failures."""
        self._call_log.clear()
        self._failures.clear()
        self._exceptions.clear()

    def _mutate(self, operation: str, target: str) -> ApplyOutcome | None:
        with self._lock:
            self._call_log.append((operation, target))
        if target in self._exceptions:
            raise self._exceptions[target]
        if target in self._failures:
            return ApplyOutcome(success=False, message=self._failures[target])
        return None

    def _ok(self, message: str, target: str) -> ApplyOutcome:
        return ApplyOutcome(
            success=True,
            message=message,
            restart_required=target in self._restart_targets,
        )

    # ── Packages ────────────────────────────────────────────────

    def is_package_installed(self, package_id: str) -> bool:
        return package_id in self.packages

    def install_package(self, package_id: str, version: str = "", source: str = "") -> ApplyOutcome:
        failed = self._mutate("install_package", package_id)
        if failed:
            return failed
        with self._lock:
            self.packages[package_id] = version or "latest"
        return self._ok(f"Installed {package_id}", package_id)

    def package_manifest(self) -> list[dict[str, Any]]:
        with self._lock:
            return [{"id": pid, "version": ver} for pid, ver in sorted(self.packages.items())]

    def restore_packages(self, manifest: list[dict[str, Any]]) -> None:
        with self._lock:
            self.packages = {entry["id"]: entry.get("version", "") for entry in manifest}

    # ── Features ────────────────────────────────────────────────

    def is_feature_enabled(self, feature_name: str) -> bool:
        return feature_name in self.features

    def enable_feature(self, feature_name: str, include_all: bool = False) -> ApplyOutcome:
        failed = self._mutate("enable_feature", feature_name)
        if failed:
            return failed
        with self._lock:
            self.features.add(feature_name)
        return self._ok(f"Enabled feature {feature_name}", feature_name)

    # ── Registry ────────────────────────────────────────────────

    def get_registry_value(self, path: str, name: str) -> Any:
        return copy.deepcopy(self.registry.get((path, name)))

    def set_registry_value(self, path: str, name: str, value: Any, value_type: str = "DWord") -> ApplyOutcome:
        target = f"{path}\\{name}"
        failed = self._mutate("set_registry_value", target)
        if failed:
            return failed
        with self._lock:
            self.registry[(path, name)] = copy.deepcopy(value)
        return self._ok(f"Set {target} = {value!r} ({value_type})", target)

    # ── Tools ───────────────────────────────────────────────────

    def is_tool_installed(self, tool: str) -> bool:
        return tool in self.tools

    def install_tool(self, tool: str, source: str = "", arguments: list[str] | None = None) -> ApplyOutcome:
        failed = self._mutate("install_tool", tool)
        if failed:
            return failed
        with self._lock:
            self.tools.add(tool)
        return self._ok(f"Installed tool {tool}", tool)

    # ── Generic ─────────────────────────────────────────────────

    def check_generic(self, payload: dict[str, Any]) -> bool:
        return generic_key(payload) in self.generic_applied

    def apply_generic(self, payload: dict[str, Any]) -> ApplyOutcome:
        key = generic_key(payload)
        failed = self._mutate("apply_generic", key)
        if failed:
            return failed
        with self._lock:
            self.generic_applied.add(key)
        return self._ok(f"Applied {key}", key)
