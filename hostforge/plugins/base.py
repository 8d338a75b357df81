"""
Plugin implementation contract.

Every hook is optional; the manager and the engines look them up by
attribute and skip what a plugin does not provide:

    initialize()            called by PluginManager.load before Loaded
    cleanup()               called by PluginManager.unload before Registered
    item_types()            Configuration plugins: {type_tag: ActionFactory}
    recommendation_rules()  Recommendation plugins: [RecommendationRule]
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, Protocol

if TYPE_CHECKING:
    from hostforge.actions.base import ActionFactory
    from hostforge.recommend.rules import RecommendationRule


class PluginImplementation(Protocol):
    """Structural type of a plugin object (all hooks optional)."""

    def initialize(self) -> None: ...

    def cleanup(self) -> None: ...


class BasePlugin:
    """Convenience base with no-op hooks."""

    def initialize(self) -> None:
        return None

    def cleanup(self) -> None:
        return None

    def item_types(self) -> dict[str, ActionFactory]:
        return {}

    def recommendation_rules(self) -> list[RecommendationRule]:
        return []

    def __repr__(self) -> str:
        return f"<{self.__class__.__name__}>"


def plugin_hook(implementation: Any, hook: str):
    """Bound hook method, or None when the implementation lacks it."""
    if implementation is None:
        return None
    candidate = getattr(implementation, hook, None)
    return candidate if callable(candidate) else None
