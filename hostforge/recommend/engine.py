"""
Recommendation engine — profile in, ranked applyable suggestions out.

    generate → filter → rank → apply_recommendation

Generation is rule based and deterministic.  Filtering and ranking are
pure functions over lists.  Applying a recommendation realizes it as a
ConfigurationItem, builds the matching action from a fixed table and
runs it through the same executor as base configuration items.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable

from hostforge.actions.base import ActionFactory, ConfigurationAction, MutationBackend
from hostforge.actions.registry import BUILTIN_ACTIONS
from hostforge.core.engine.executor import RunControl, execute_item
from hostforge.core.errors import ErrorKind, RecommendationError
from hostforge.core.models.item import Configuration, ConfigurationItem
from hostforge.core.models.plugin import PluginCategory
from hostforge.core.models.profile import SystemProfile
from hostforge.core.models.recommendation import (
    GenericImplementation,
    ImplementationType,
    Priority,
    Recommendation,
    RecommendationCategory,
)
from hostforge.core.models.result import ExecutionResult
from hostforge.plugins.manager import PluginManager
from hostforge.recommend.rules import DEFAULT_RULES, RecommendationRule

logger = logging.getLogger(__name__)

DEFAULT_MAX_RECOMMENDATIONS = 10

# Exhaustive: every ImplementationType has exactly one constructor.
ACTION_TABLE: dict[ImplementationType, ActionFactory] = {
    t: BUILTIN_ACTIONS[t.value] for t in ImplementationType
}


def filter_recommendations(
    recommendations: Iterable[Recommendation],
    priorities: Iterable[Priority] | None = None,
    categories: Iterable[RecommendationCategory] | None = None,
) -> list[Recommendation]:
    """Keep recommendations whose priority and category are in the given sets.

    An omitted or empty set imposes no constraint.  Input order is kept.
    """
    wanted_priorities = set(priorities or ())
    wanted_categories = set(categories or ())
    return [
        r for r in recommendations
        if (not wanted_priorities or r.priority in wanted_priorities)
        and (not wanted_categories or r.category in wanted_categories)
    ]


def rank_recommendations(
    recommendations: Iterable[Recommendation],
    max_count: int | None = None,
) -> list[Recommendation]:
    """Priority (High first), then confidence, both descending; stable.

    Equal keys keep their input order.  ``max_count=None`` keeps all.
    """
    ranked = sorted(recommendations, key=lambda r: (-r.priority.weight, -r.confidence))
    if max_count is None:
        return ranked
    return ranked[: max(0, max_count)]


def recommendation_to_item(recommendation: Recommendation) -> ConfigurationItem:
    """Realize a recommendation as a configuration item."""
    impl = recommendation.implementation
    if isinstance(impl, GenericImplementation):
        # unknown tag travels with the payload
        properties = dict(impl.payload)
        if impl.original_type:
            properties = {"type": impl.original_type, **properties}
    else:
        properties = impl.model_dump(exclude={"type"})
    return ConfigurationItem(
        name=recommendation.title,
        type=impl.type,
        description=recommendation.description,
        enabled=True,
        properties=properties,
        severity=recommendation.severity,
    )


class RecommendationEngine:
    """Generates, filters, ranks and applies recommendations.

    Args:
        backend: Mutation primitives used when applying.
        rules: Base rule table (defaults to ``DEFAULT_RULES``).
        plugin_manager: Loaded Recommendation plugins contribute extra
            rules through ``recommendation_rules()``.
    """

    def __init__(
        self,
        backend: MutationBackend,
        rules: Iterable[RecommendationRule] = DEFAULT_RULES,
        plugin_manager: PluginManager | None = None,
    ):
        self._backend = backend
        self._rules = tuple(rules)
        self._plugin_manager = plugin_manager

    def rules(self) -> list[RecommendationRule]:
        """Base rules followed by rules from loaded plugins."""
        rules = list(self._rules)
        if self._plugin_manager is not None:
            for impl in self._plugin_manager.loaded_implementations(PluginCategory.RECOMMENDATION):
                provider = getattr(impl, "recommendation_rules", None)
                if provider is not None:
                    rules.extend(provider())
        return rules

    def generate(
        self,
        profile: SystemProfile,
        max_count: int | None = DEFAULT_MAX_RECOMMENDATIONS,
    ) -> list[Recommendation]:
        """Evaluate every rule against the profile and rank the hits.

        Each rule id is evaluated once: when a plugin re-declares a base
        rule the first declaration wins, whether or not it fires.

        Raises:
            RecommendationError: a rule raised while being evaluated.
        """
        recommendations: list[Recommendation] = []
        seen: set[str] = set()
        for rule in self.rules():
            if rule.rule_id in seen:
                continue
            seen.add(rule.rule_id)
            try:
                recommendation = rule.evaluate(profile)
            except Exception as e:
                raise RecommendationError(f"Rule '{rule.rule_id}' failed: {e}") from e
            if recommendation is None:
                continue
            recommendations.append(recommendation)

        logger.info(
            "Generated %d recommendations for %s (%s, %s)",
            len(recommendations),
            profile.hostname or "host",
            profile.hardware_category,
            profile.user_category,
        )
        return rank_recommendations(recommendations, max_count)

    # Pure helpers exposed on the engine for convenience.
    filter = staticmethod(filter_recommendations)
    rank = staticmethod(rank_recommendations)

    def build_action(self, recommendation: Recommendation) -> ConfigurationAction:
        """Construct the action for a recommendation from the fixed table."""
        item = recommendation_to_item(recommendation)
        factory = ACTION_TABLE.get(recommendation.implementation_type, ACTION_TABLE[ImplementationType.GENERIC])
        return factory(item, self._backend)

    def apply_recommendation(
        self,
        recommendation: Recommendation,
        control: RunControl | None = None,
    ) -> ExecutionResult:
        """Apply one recommendation and wrap the outcome."""
        try:
            action = self.build_action(recommendation)
        except Exception as e:
            return ExecutionResult.failure(
                recommendation.title,
                recommendation.implementation.type,
                f"Cannot construct action: {e}",
                error_kind=ErrorKind.VALIDATION,
                severity=recommendation.severity,
            )
        return execute_item(action, control)

    def to_configuration(
        self,
        recommendations: Iterable[Recommendation],
        name: str = "recommended",
        version: str = "1.0.0",
    ) -> Configuration:
        """Bundle recommendations into a persistable Configuration."""
        configuration = Configuration(
            name=name,
            version=version,
            description="Generated from system profile recommendations",
        )
        prerequisites: dict[str, list[str]] = {}
        for recommendation in recommendations:
            configuration.add_item(recommendation_to_item(recommendation))
            if recommendation.prerequisites:
                prerequisites[recommendation.title] = list(recommendation.prerequisites)
        if prerequisites:
            configuration.metadata["prerequisites"] = prerequisites
        return configuration
