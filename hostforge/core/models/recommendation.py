"""
Recommendation model — a scored, prioritized suggested action.

The ``implementation`` field is a closed tagged union keyed on ``type``.
Tags outside the known set are not an error: they parse into a
``GenericImplementation`` that carries the raw payload.
"""

from __future__ import annotations

from enum import StrEnum
from typing import Annotated, Any, Literal, Union

from pydantic import BaseModel, Field, field_validator

from hostforge.core.models.item import Severity


class Priority(StrEnum):
    HIGH = "High"
    MEDIUM = "Medium"
    LOW = "Low"

    @property
    def weight(self) -> int:
        """Sort weight: High > Medium > Low."""
        return _PRIORITY_WEIGHT[self]


_PRIORITY_WEIGHT = {Priority.HIGH: 3, Priority.MEDIUM: 2, Priority.LOW: 1}


class RecommendationCategory(StrEnum):
    PERFORMANCE = "Performance"
    SECURITY = "Security"
    DEVELOPMENT = "Development"
    GAMING = "Gaming"
    PRODUCTIVITY = "Productivity"
    CREATIVE = "Creative"
    MAINTENANCE = "Maintenance"


class ImplementationType(StrEnum):
    PACKAGE = "Package"
    WINDOWS_FEATURE = "WindowsFeature"
    REGISTRY = "Registry"
    SYSTEM_TOOLS = "SystemTools"
    GENERIC = "Generic"


class PackageImplementation(BaseModel):
    type: Literal["Package"] = "Package"
    package_id: str
    version: str = ""
    source: str = "winget"


class WindowsFeatureImplementation(BaseModel):
    type: Literal["WindowsFeature"] = "WindowsFeature"
    feature_name: str
    include_all: bool = False


class RegistryImplementation(BaseModel):
    type: Literal["Registry"] = "Registry"
    path: str
    name: str
    value: Any = None
    value_type: str = "DWord"


class SystemToolsImplementation(BaseModel):
    type: Literal["SystemTools"] = "SystemTools"
    tool: str
    source: str = ""
    arguments: list[str] = Field(default_factory=list)


class GenericImplementation(BaseModel):
    type: Literal["Generic"] = "Generic"
    original_type: str = ""
    payload: dict[str, Any] = Field(default_factory=dict)


Implementation = Annotated[
    Union[
        PackageImplementation,
        WindowsFeatureImplementation,
        RegistryImplementation,
        SystemToolsImplementation,
        GenericImplementation,
    ],
    Field(discriminator="type"),
]

_KNOWN_TAGS = {t.value for t in ImplementationType}


def coerce_implementation(raw: Any) -> Any:
    """Route an unknown ``type`` tag to the Generic variant.

    Known tags pass through untouched and are validated by the
    discriminated union.
    """
    if isinstance(raw, BaseModel):
        return raw
    if not isinstance(raw, dict):
        return {"type": "Generic", "payload": {"value": raw}}
    tag = str(raw.get("type", ""))
    if tag in _KNOWN_TAGS:
        return raw
    payload = {k: v for k, v in raw.items() if k != "type"}
    return {"type": "Generic", "original_type": tag, "payload": payload}


class Recommendation(BaseModel):
    """A suggested action derived from a system profile."""

    title: str
    description: str = ""
    category: RecommendationCategory = RecommendationCategory.PRODUCTIVITY
    priority: Priority = Priority.MEDIUM
    confidence: float = 0.5
    prerequisites: list[str] = Field(default_factory=list)
    implementation: Implementation = Field(default_factory=GenericImplementation)
    severity: Severity = Severity.NORMAL
    rule_id: str = ""

    @field_validator("implementation", mode="before")
    @classmethod
    def _unknown_tag_is_generic(cls, value: Any) -> Any:
        return coerce_implementation(value)

    @property
    def implementation_type(self) -> ImplementationType:
        return ImplementationType(self.implementation.type)

    @property
    def sort_key(self) -> tuple[int, float]:
        return (self.priority.weight, self.confidence)
