"""Actions — behaviour behind configuration item types.

Public re-exports for convenient access.
"""

from hostforge.actions.base import (
    ActionFactory,
    ConfigurationAction,
    MutationBackend,
    item_property,
)
from hostforge.actions.builtin import (
    GenericAction,
    PackageAction,
    RegistryAction,
    SystemToolsAction,
    WindowsFeatureAction,
)
from hostforge.actions.mock import InMemoryBackend
from hostforge.actions.registry import BUILTIN_ACTIONS, ActionRegistry

__all__ = [
    "ActionFactory",
    "ActionRegistry",
    "BUILTIN_ACTIONS",
    "ConfigurationAction",
    "GenericAction",
    "InMemoryBackend",
    "MutationBackend",
    "PackageAction",
    "RegistryAction",
    "SystemToolsAction",
    "WindowsFeatureAction",
    "item_property",
]
