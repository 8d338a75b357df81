"""
Built-in actions — one per closed Implementation type.

Each action reads its target from the item's properties and delegates
every side effect to the MutationBackend.  Property names are accepted
in snake_case (as produced from recommendations) and camelCase (as
written in configuration files).
"""

from __future__ import annotations

from typing import Any

from hostforge.actions.base import ConfigurationAction, MutationBackend, item_property
from hostforge.core.models.item import ConfigurationItem
from hostforge.core.models.result import ApplyOutcome


class PackageAction(ConfigurationAction):
    """Ensure a package is installed."""

    def __init__(self, item: ConfigurationItem, backend: MutationBackend) -> None:
        super().__init__(item)
        self._backend = backend
        self.package_id: str = item_property(item, "package_id", "packageId", "id", default=item.name)
        self.version: str = item_property(item, "version", default="") or ""
        self.source: str = item_property(item, "source", default="") or ""

    def test(self) -> bool:
        return self._backend.is_package_installed(self.package_id)

    def get_current_state(self) -> Any:
        return {
            "package": self.package_id,
            "installed": self._backend.is_package_installed(self.package_id),
        }

    def apply(self) -> ApplyOutcome:
        return self._backend.install_package(self.package_id, self.version, self.source)


class WindowsFeatureAction(ConfigurationAction):
    """Ensure an optional OS feature is enabled."""

    def __init__(self, item: ConfigurationItem, backend: MutationBackend) -> None:
        super().__init__(item)
        self._backend = backend
        self.feature_name: str = item_property(
            item, "feature_name", "featureName", "feature", default=item.name
        )
        self.include_all = bool(item_property(item, "include_all", "includeAll", default=False))

    def test(self) -> bool:
        return self._backend.is_feature_enabled(self.feature_name)

    def get_current_state(self) -> Any:
        return {
            "feature": self.feature_name,
            "enabled": self._backend.is_feature_enabled(self.feature_name),
        }

    def apply(self) -> ApplyOutcome:
        return self._backend.enable_feature(self.feature_name, self.include_all)


class RegistryAction(ConfigurationAction):
    """Ensure a registry value holds the desired data."""

    def __init__(self, item: ConfigurationItem, backend: MutationBackend) -> None:
        super().__init__(item)
        self._backend = backend
        self.path: str = item_property(item, "path", "key", default="")
        self.value_name: str = item_property(item, "name", "valueName", default=item.name)
        self.value: Any = item_property(item, "value")
        self.value_type: str = item_property(item, "value_type", "valueType", default="DWord")

    def test(self) -> bool:
        return self._backend.get_registry_value(self.path, self.value_name) == self.value

    def get_current_state(self) -> Any:
        return {
            "path": self.path,
            "name": self.value_name,
            "value": self._backend.get_registry_value(self.path, self.value_name),
        }

    def apply(self) -> ApplyOutcome:
        return self._backend.set_registry_value(self.path, self.value_name, self.value, self.value_type)


class SystemToolsAction(ConfigurationAction):
    """Ensure a system tool (not a package-manager package) is installed."""

    def __init__(self, item: ConfigurationItem, backend: MutationBackend) -> None:
        super().__init__(item)
        self._backend = backend
        self.tool: str = item_property(item, "tool", "toolName", default=item.name)
        self.source: str = item_property(item, "source", "url", default="") or ""
        self.arguments: list[str] = list(item_property(item, "arguments", default=[]) or [])

    def test(self) -> bool:
        return self._backend.is_tool_installed(self.tool)

    def get_current_state(self) -> Any:
        return {"tool": self.tool, "installed": self._backend.is_tool_installed(self.tool)}

    def apply(self) -> ApplyOutcome:
        return self._backend.install_tool(self.tool, self.source, self.arguments)


class GenericAction(ConfigurationAction):
    """Pass-through action carrying a raw payload to the backend."""

    def __init__(self, item: ConfigurationItem, backend: MutationBackend) -> None:
        super().__init__(item)
        self._backend = backend
        self.payload: dict[str, Any] = dict(item.properties)

    def test(self) -> bool:
        return self._backend.check_generic(self.payload)

    def get_current_state(self) -> Any:
        return {"payload": self.payload, "satisfied": self._backend.check_generic(self.payload)}

    def apply(self) -> ApplyOutcome:
        return self._backend.apply_generic(self.payload)
