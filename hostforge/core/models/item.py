"""
ConfigurationItem and Configuration — the declarative input of a run.

A Configuration is an ordered list of items.  Items are data only; the
behaviour behind an item's ``type`` tag lives in a ConfigurationAction
(see ``hostforge.actions``).  Duplicate (name, type) pairs are legal and
keep their insertion order.
"""

from __future__ import annotations

from enum import StrEnum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field


class Severity(StrEnum):
    """How bad a failure of this item is.

    ``critical`` failures abort the run and trigger rollback when the
    orchestrator runs with ``rollback_on_failure``.
    """

    NORMAL = "normal"
    CRITICAL = "critical"


class ConfigurationItem(BaseModel):
    """A single idempotent unit of declarative configuration."""

    name: str
    type: str
    description: str = ""
    enabled: bool = True
    properties: dict[str, Any] = Field(default_factory=dict)
    severity: Severity = Severity.NORMAL

    @property
    def identity(self) -> tuple[str, str]:
        return (self.name, self.type)

    @property
    def critical(self) -> bool:
        return self.severity == Severity.CRITICAL


class ValidationBlock(BaseModel):
    """Post-apply validation tests, carried through untouched."""

    model_config = ConfigDict(extra="allow")

    tests: list[Any] = Field(default_factory=list)


class Configuration(BaseModel):
    """Named, ordered collection of ConfigurationItems plus metadata.

    Serialized as::

        {
          "name": ..., "version": ..., "description": ...,
          "metadata": {...},
          "items": [{name, type, description, enabled, properties}],
          "validation": {"tests": []},
          "postInstallInstructions": [...]
        }
    """

    model_config = ConfigDict(populate_by_name=True)

    name: str
    version: str = "1.0.0"
    description: str = ""
    metadata: dict[str, Any] = Field(default_factory=dict)
    items: list[ConfigurationItem] = Field(default_factory=list)
    validation: ValidationBlock = Field(default_factory=ValidationBlock)
    post_install_instructions: list[str] = Field(
        default_factory=list, alias="postInstallInstructions"
    )

    def add_item(self, item: ConfigurationItem) -> ConfigurationItem:
        """Append an item. Never reorders or deduplicates."""
        self.items.append(item)
        return item

    @property
    def enabled_items(self) -> list[ConfigurationItem]:
        return [i for i in self.items if i.enabled]

    def items_of_type(self, item_type: str) -> list[ConfigurationItem]:
        return [i for i in self.items if i.type == item_type]

    def problems(self) -> list[str]:
        """Structural defects that make the configuration unsafe to apply."""
        found = []
        if not self.name.strip():
            found.append("configuration has no name")
        for index, item in enumerate(self.items):
            if not item.name.strip():
                found.append(f"items[{index}] has no name")
            if not item.type.strip():
                found.append(f"items[{index}] ({item.name or '?'}) has no type")
        return found

    def to_document(self) -> dict[str, Any]:
        """Dump to the persisted JSON shape (camelCase top-level keys)."""
        data = self.model_dump(mode="json", by_alias=True)
        for item in data["items"]:
            # severity is only written when it carries information
            if item.get("severity") == Severity.NORMAL.value:
                item.pop("severity")
        return data
