"""
Action base — the protocol contract between the engine and the host.

A ConfigurationAction gives behaviour to one ConfigurationItem.  The
engine only ever calls the three contract methods, always in the order
test → get_current_state → apply → get_current_state.

Actions never touch the operating system themselves: they delegate to a
MutationBackend, which owns the concrete install/enable/set primitives.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any, Callable, Protocol, runtime_checkable

from hostforge.core.models.item import ConfigurationItem
from hostforge.core.models.result import ApplyOutcome


@runtime_checkable
class MutationBackend(Protocol):
    """Concrete per-type mutation primitives.

    Implemented outside the core (see ``InMemoryBackend`` for the
    simulation used by tests, ``--mock`` runs and dry-runs).
    """

    def is_package_installed(self, package_id: str) -> bool: ...

    def install_package(self, package_id: str, version: str = "", source: str = "") -> ApplyOutcome: ...

    def is_feature_enabled(self, feature_name: str) -> bool: ...

    def enable_feature(self, feature_name: str, include_all: bool = False) -> ApplyOutcome: ...

    def get_registry_value(self, path: str, name: str) -> Any: ...

    def set_registry_value(self, path: str, name: str, value: Any, value_type: str = "DWord") -> ApplyOutcome: ...

    def is_tool_installed(self, tool: str) -> bool: ...

    def install_tool(self, tool: str, source: str = "", arguments: list[str] | None = None) -> ApplyOutcome: ...

    def check_generic(self, payload: dict[str, Any]) -> bool: ...

    def apply_generic(self, payload: dict[str, Any]) -> ApplyOutcome: ...

    def package_manifest(self) -> list[dict[str, Any]]: ...

    def restore_packages(self, manifest: list[dict[str, Any]]) -> None: ...


class ConfigurationAction(ABC):
    """Abstract base class for everything the executor can apply.

    To create a new item type:
        1. Subclass ConfigurationAction
        2. Implement test, get_current_state, apply
        3. Register a constructor in the ActionRegistry (directly, or
           through a Configuration plugin's ``item_types()``)

    ``apply()`` must be safe to call when ``test()`` is False and must
    leave ``test()`` True once it succeeds.
    """

    def __init__(self, item: ConfigurationItem) -> None:
        self.item = item

    @property
    def name(self) -> str:
        return self.item.name

    @property
    def type(self) -> str:
        return self.item.type

    @abstractmethod
    def test(self) -> bool:
        """True iff the host already satisfies this item. Never mutates."""

    @abstractmethod
    def get_current_state(self) -> Any:
        """Comparable snapshot used for before/after diffing. Never mutates."""

    @abstractmethod
    def apply(self) -> ApplyOutcome:
        """Bring the host into the desired state."""

    def __repr__(self) -> str:
        return f"<{self.__class__.__name__} name={self.name!r} type={self.type!r}>"


# (item, backend) -> action
ActionFactory = Callable[[ConfigurationItem, MutationBackend], ConfigurationAction]


def item_property(item: ConfigurationItem, *keys: str, default: Any = None) -> Any:
    """First present property among ``keys`` (snake_case and camelCase spellings)."""
    for key in keys:
        if key in item.properties:
            return item.properties[key]
    return default
