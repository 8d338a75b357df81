"""Plugins — registry, lifecycle and catalog.

Public re-exports for convenient access.
"""

from hostforge.plugins.base import BasePlugin, PluginImplementation
from hostforge.plugins.catalog import (
    PluginCatalog,
    load_descriptors,
    read_descriptor,
    register_descriptors,
)
from hostforge.plugins.manager import BulkResult, PluginManager

__all__ = [
    "BasePlugin",
    "BulkResult",
    "PluginCatalog",
    "PluginImplementation",
    "PluginManager",
    "load_descriptors",
    "read_descriptor",
    "register_descriptors",
]
