"""
Config check use case — validate a configuration document and report issues.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path

from hostforge.actions.registry import ActionRegistry
from hostforge.core.config.loader import load_configuration
from hostforge.core.errors import ConfigError
from hostforge.core.models.item import Configuration


@dataclass
class ConfigCheckResult:
    """Result of configuration validation."""

    valid: bool = False
    configuration: Configuration | None = None
    config_path: Path | None = None
    errors: list[str] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)

    def to_dict(self) -> dict:
        configuration = self.configuration
        return {
            "valid": self.valid,
            "config_path": str(self.config_path) if self.config_path else None,
            "errors": self.errors,
            "warnings": self.warnings,
            "name": configuration.name if configuration else None,
            "version": configuration.version if configuration else None,
            "item_count": len(configuration.items) if configuration else 0,
            "enabled_count": len(configuration.enabled_items) if configuration else 0,
        }


def check_configuration(
    config_path: Path,
    registry: ActionRegistry | None = None,
) -> ConfigCheckResult:
    """Validate a configuration file.

    Structural problems are errors.  Item types with no registered
    action, duplicate items and disabled items are warnings: the run
    reports them per item rather than refusing to start.
    """
    result = ConfigCheckResult(config_path=config_path)
    registry = registry or ActionRegistry()

    try:
        configuration = load_configuration(config_path)
    except ConfigError as e:
        result.errors.append(e.message)
        return result
    result.configuration = configuration

    result.errors.extend(configuration.problems())

    if not configuration.items:
        result.warnings.append("Configuration has no items.")

    known = set(registry.list_types())
    for item in configuration.items:
        if item.type and item.type not in known:
            result.warnings.append(
                f"Item '{item.name}' has type '{item.type}' with no registered action"
            )

    seen: set[tuple[str, str]] = set()
    dupes: list[str] = []
    for item in configuration.items:
        if item.identity in seen and f"{item.type}:{item.name}" not in dupes:
            dupes.append(f"{item.type}:{item.name}")
        seen.add(item.identity)
    if dupes:
        result.warnings.append(f"Duplicate items (applied in order): {', '.join(dupes)}")

    disabled = [i.name for i in configuration.items if not i.enabled]
    if disabled:
        result.warnings.append(f"Disabled items will be skipped: {', '.join(disabled)}")

    result.valid = len(result.errors) == 0
    return result
