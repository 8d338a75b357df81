"""
Error taxonomy — every failure the engine reports has a kind.

Callers distinguish causes through ``error.kind`` (an ``ErrorKind``)
rather than by parsing messages.  Per-item failures never raise past
the executor; they are captured in ``ExecutionResult`` with the same
``ErrorKind`` values.
"""

from __future__ import annotations

from enum import StrEnum


class ErrorKind(StrEnum):
    """Machine-readable failure categories."""

    VALIDATION = "validation"
    DEPENDENCY = "dependency"
    PLUGIN_STATE = "plugin_state"
    APPLY = "apply"
    CRITICAL_APPLY = "critical_apply"
    BACKUP = "backup"
    PROFILE = "profile"
    RECOMMENDATION = "recommendation"
    UNEXPECTED = "unexpected"


class HostforgeError(Exception):
    """Base class for all engine errors."""

    kind: ErrorKind = ErrorKind.UNEXPECTED

    def __init__(self, message: str = "") -> None:
        super().__init__(message)
        self.message = message

    def to_dict(self) -> dict:
        return {"kind": self.kind.value, "message": self.message}


class ValidationError(HostforgeError):
    """Malformed configuration or missing environment prerequisite."""

    kind = ErrorKind.VALIDATION


class ConfigError(ValidationError):
    """Raised when a configuration or settings file is invalid or missing."""


class PluginValidationError(ValidationError):
    """A plugin descriptor failed admission checks."""

    def __init__(self, name: str, problems: list[str]) -> None:
        super().__init__(f"Plugin '{name}' is invalid: {'; '.join(problems)}")
        self.name = name
        self.problems = problems


class DependencyError(HostforgeError):
    """A plugin lifecycle call is blocked by the dependency graph.

    ``missing`` lists dependencies that are absent or not loaded;
    ``dependents`` lists loaded plugins that still require the target.
    """

    kind = ErrorKind.DEPENDENCY

    def __init__(
        self,
        message: str,
        *,
        plugin: str = "",
        missing: list[str] | None = None,
        dependents: list[str] | None = None,
    ) -> None:
        super().__init__(message)
        self.plugin = plugin
        self.missing = list(missing or [])
        self.dependents = list(dependents or [])

    def to_dict(self) -> dict:
        data = super().to_dict()
        data["plugin"] = self.plugin
        if self.missing:
            data["missing"] = self.missing
        if self.dependents:
            data["dependents"] = self.dependents
        return data


class PluginStateError(HostforgeError):
    """Requested transition is not allowed from the plugin's current state."""

    kind = ErrorKind.PLUGIN_STATE


class PluginNotFoundError(PluginStateError):
    """No plugin with the given name is registered."""

    def __init__(self, name: str) -> None:
        super().__init__(f"Plugin '{name}' is not registered")
        self.name = name


class ApplyError(HostforgeError):
    """A single item or recommendation failed to apply."""

    kind = ErrorKind.APPLY

    def __init__(self, message: str, *, item_name: str = "", item_type: str = "") -> None:
        super().__init__(message)
        self.item_name = item_name
        self.item_type = item_type


class CriticalApplyError(ApplyError):
    """An apply failure marked critical by its author; may trigger rollback."""

    kind = ErrorKind.CRITICAL_APPLY


class BackupError(HostforgeError):
    """Snapshotting or restoring system state failed."""

    kind = ErrorKind.BACKUP


class ProfileError(HostforgeError):
    """The system profile could not be obtained."""

    kind = ErrorKind.PROFILE


class RecommendationError(HostforgeError):
    """Recommendation generation or ranking failed."""

    kind = ErrorKind.RECOMMENDATION
