"""
Domain models — Pydantic types for the configuration engine.

All models are re-exported here for convenient access:

    from hostforge.core.models import Configuration, ConfigurationItem, Recommendation
"""

from hostforge.core.models.item import (
    Configuration,
    ConfigurationItem,
    Severity,
    ValidationBlock,
)
from hostforge.core.models.plugin import (
    PluginCategory,
    PluginDescriptor,
    PluginRecord,
    PluginState,
)
from hostforge.core.models.profile import (
    HardwareCategory,
    HardwareInfo,
    ProfileScores,
    SoftwareInfo,
    SystemProfile,
    UserCategory,
)
from hostforge.core.models.recommendation import (
    GenericImplementation,
    ImplementationType,
    PackageImplementation,
    Priority,
    Recommendation,
    RecommendationCategory,
    RegistryImplementation,
    SystemToolsImplementation,
    WindowsFeatureImplementation,
)
from hostforge.core.models.result import (
    ApplyOutcome,
    ExecutionResult,
    ItemStatus,
    StateChange,
)
from hostforge.core.models.run import (
    OrchestrationRunResult,
    PhaseCounts,
    RunError,
    RunPhase,
    RunSummary,
)

__all__ = [
    # result.py
    "ApplyOutcome",
    # item.py
    "Configuration",
    "ConfigurationItem",
    "ExecutionResult",
    "GenericImplementation",
    # profile.py
    "HardwareCategory",
    "HardwareInfo",
    # recommendation.py
    "ImplementationType",
    "ItemStatus",
    # run.py
    "OrchestrationRunResult",
    "PackageImplementation",
    "PhaseCounts",
    # plugin.py
    "PluginCategory",
    "PluginDescriptor",
    "PluginRecord",
    "PluginState",
    "Priority",
    "ProfileScores",
    "Recommendation",
    "RecommendationCategory",
    "RegistryImplementation",
    "RunError",
    "RunPhase",
    "RunSummary",
    "Severity",
    "SoftwareInfo",
    "StateChange",
    "SystemProfile",
    "SystemToolsImplementation",
    "UserCategory",
    "ValidationBlock",
    "WindowsFeatureImplementation",
]
