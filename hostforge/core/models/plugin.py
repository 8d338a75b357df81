"""
Plugin models — descriptors and lifecycle records.

A PluginDescriptor is what gets supplied to ``PluginManager.register``
(usually read from a descriptor file).  A PluginRecord is the manager's
runtime view of one registered plugin: descriptor, state, implementation.
"""

from __future__ import annotations

from datetime import UTC, datetime
from enum import StrEnum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator


def _now_iso() -> str:
    """Current UTC time as ISO string."""
    return datetime.now(UTC).isoformat()


class PluginCategory(StrEnum):
    CONFIGURATION = "Configuration"
    RECOMMENDATION = "Recommendation"
    UTILITY = "Utility"


class PluginState(StrEnum):
    """Lifecycle states.

    Disabled is a sub-state of Registered, reached only via ``disable()``.
    """

    REGISTERED = "Registered"
    LOADED = "Loaded"
    DISABLED = "Disabled"


class PluginDescriptor(BaseModel):
    """Static description of a plugin.

    Accepts both the PascalCase descriptor-file keys (``Name``,
    ``Dependencies`` ...) and snake_case keys.
    """

    name: str
    version: str = "0.0.0"
    category: PluginCategory = PluginCategory.UTILITY
    dependencies: list[str] = Field(default_factory=list)
    metadata: dict[str, Any] = Field(default_factory=dict)
    description: str = ""

    @model_validator(mode="before")
    @classmethod
    def _lowercase_keys(cls, data: Any) -> Any:
        if isinstance(data, dict):
            return {str(k).lower(): v for k, v in data.items()}
        return data

    @field_validator("category", mode="before")
    @classmethod
    def _category_any_case(cls, value: Any) -> Any:
        if isinstance(value, str):
            for member in PluginCategory:
                if member.value.lower() == value.strip().lower():
                    return member
        return value

    @field_validator("dependencies")
    @classmethod
    def _dedupe_dependencies(cls, value: list[str]) -> list[str]:
        # dependencies behave as a set; keep first-seen order for display
        return list(dict.fromkeys(value))


class PluginRecord(BaseModel):
    """Runtime state of one registered plugin."""

    model_config = ConfigDict(arbitrary_types_allowed=True)

    descriptor: PluginDescriptor
    state: PluginState = PluginState.REGISTERED
    implementation: Any = None
    registered_at: str = Field(default_factory=_now_iso)
    loaded_at: str | None = None
    last_error: str | None = None

    @property
    def name(self) -> str:
        return self.descriptor.name

    @property
    def category(self) -> PluginCategory:
        return self.descriptor.category

    @property
    def dependencies(self) -> list[str]:
        return self.descriptor.dependencies

    @property
    def loaded(self) -> bool:
        return self.state == PluginState.LOADED

    def to_dict(self) -> dict[str, Any]:
        return {
            "name": self.name,
            "version": self.descriptor.version,
            "category": self.category.value,
            "dependencies": list(self.dependencies),
            "state": self.state.value,
            "metadata": dict(self.descriptor.metadata),
            "registered_at": self.registered_at,
            "loaded_at": self.loaded_at,
            "last_error": self.last_error,
        }
