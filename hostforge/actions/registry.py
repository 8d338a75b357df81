"""
Action registry — type tag → action constructor table.

The registry is the single point where a ConfigurationItem's ``type``
tag is turned into behaviour.  Built-in tags are registered up front;
loaded Configuration plugins contribute extra tags through their
``item_types()`` hook, consulted at build time so that unloading a
plugin immediately withdraws its types.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from hostforge.actions.base import ActionFactory, ConfigurationAction, MutationBackend
from hostforge.actions.builtin import (
    GenericAction,
    PackageAction,
    RegistryAction,
    SystemToolsAction,
    WindowsFeatureAction,
)
from hostforge.core.models.item import ConfigurationItem
from hostforge.core.models.plugin import PluginCategory
from hostforge.core.models.recommendation import ImplementationType

if TYPE_CHECKING:
    from hostforge.plugins.manager import PluginManager

logger = logging.getLogger(__name__)


BUILTIN_ACTIONS: dict[str, ActionFactory] = {
    ImplementationType.PACKAGE.value: PackageAction,
    ImplementationType.WINDOWS_FEATURE.value: WindowsFeatureAction,
    ImplementationType.REGISTRY.value: RegistryAction,
    ImplementationType.SYSTEM_TOOLS.value: SystemToolsAction,
    ImplementationType.GENERIC.value: GenericAction,
}


class ActionRegistry:
    """Central lookup of action constructors.

    Resolution order for a tag: explicitly registered constructors
    (built-ins included), then types offered by loaded Configuration
    plugins in registration order.
    """

    def __init__(
        self,
        plugin_manager: PluginManager | None = None,
        include_builtins: bool = True,
    ):
        self._factories: dict[str, ActionFactory] = {}
        self._plugin_manager = plugin_manager
        if include_builtins:
            self._factories.update(BUILTIN_ACTIONS)

    def register(self, type_tag: str, factory: ActionFactory) -> None:
        """Register a constructor for a type tag."""
        if type_tag in self._factories:
            logger.warning("Overwriting existing action type: %s", type_tag)
        self._factories[type_tag] = factory
        logger.debug("Registered action type: %s", type_tag)

    def unregister(self, type_tag: str) -> None:
        """Remove a type tag from the registry."""
        self._factories.pop(type_tag, None)

    def get(self, type_tag: str) -> ActionFactory | None:
        """Look up a constructor by tag."""
        factory = self._factories.get(type_tag)
        if factory is not None:
            return factory
        return self._plugin_types().get(type_tag)

    def list_types(self) -> list[str]:
        """All resolvable type tags."""
        tags = list(self._factories.keys())
        for tag in self._plugin_types():
            if tag not in tags:
                tags.append(tag)
        return tags

    def build(self, item: ConfigurationItem, backend: MutationBackend) -> ConfigurationAction | None:
        """Construct the action for an item, or None if its tag is unknown."""
        factory = self.get(item.type)
        if factory is None:
            return None
        return factory(item, backend)

    def _plugin_types(self) -> dict[str, ActionFactory]:
        if self._plugin_manager is None:
            return {}
        types: dict[str, ActionFactory] = {}
        for impl in self._plugin_manager.loaded_implementations(PluginCategory.CONFIGURATION):
            provider = getattr(impl, "item_types", None)
            if provider is None:
                continue
            for tag, factory in provider().items():
                types.setdefault(tag, factory)
        return types
