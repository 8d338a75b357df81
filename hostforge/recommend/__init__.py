"""Recommendations — rule table and engine.

Public re-exports for convenient access.
"""

from hostforge.recommend.engine import (
    ACTION_TABLE,
    DEFAULT_MAX_RECOMMENDATIONS,
    RecommendationEngine,
    filter_recommendations,
    rank_recommendations,
    recommendation_to_item,
)
from hostforge.recommend.rules import DEFAULT_RULES, RecommendationRule

__all__ = [
    "ACTION_TABLE",
    "DEFAULT_MAX_RECOMMENDATIONS",
    "DEFAULT_RULES",
    "RecommendationEngine",
    "RecommendationRule",
    "filter_recommendations",
    "rank_recommendations",
    "recommendation_to_item",
]
