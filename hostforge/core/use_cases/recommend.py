"""
Recommend use case — profile in, ranked recommendations out.

Nothing is applied.  With ``output`` the selection is also written as a
configuration document that ``hostforge run`` accepts.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path

from hostforge.core.config.loader import save_configuration
from hostforge.core.errors import HostforgeError
from hostforge.core.models.profile import SystemProfile
from hostforge.core.models.recommendation import Priority, Recommendation, RecommendationCategory
from hostforge.core.profile import PlatformProfileProvider, StaticProfileProvider
from hostforge.core.use_cases.common import open_context


@dataclass
class RecommendResult:
    profile: SystemProfile | None = None
    recommendations: list[Recommendation] = field(default_factory=list)
    generated: int = 0
    output_path: Path | None = None
    error: str | None = None

    def to_dict(self) -> dict:
        if self.error:
            return {"error": self.error}
        return {
            "hardware_category": str(self.profile.hardware_category) if self.profile else None,
            "user_category": str(self.profile.user_category) if self.profile else None,
            "gaps": self.profile.gaps if self.profile else [],
            "generated": self.generated,
            "recommendations": [r.model_dump(mode="json") for r in self.recommendations],
            "output_path": str(self.output_path) if self.output_path else None,
        }


def recommend(
    profile_path: Path | None = None,
    settings_path: Path | None = None,
    max_count: int | None = None,
    priorities: list[Priority] | None = None,
    categories: list[RecommendationCategory] | None = None,
    output: Path | None = None,
) -> RecommendResult:
    """Generate, filter and rank recommendations.

    Filters and ``max_count`` default to the orchestrator settings.
    Without ``profile_path`` the running host is probed.
    """
    result = RecommendResult()
    try:
        context = open_context(settings_path)
        if len(context.plugins):
            context.plugins.load_all()
        provider = StaticProfileProvider(profile_path) if profile_path else PlatformProfileProvider()
        profile = provider.get_system_profile()
        result.profile = profile

        settings = context.settings.orchestrator
        engine = context.recommendations
        generated = engine.generate(profile, max_count=None)
        result.generated = len(generated)
        filtered = engine.filter(
            generated,
            priorities or settings.priorities,
            categories or settings.categories,
        )
        result.recommendations = engine.rank(
            filtered,
            max_count if max_count is not None else settings.max_recommendations,
        )

        if output is not None:
            configuration = engine.to_configuration(
                result.recommendations,
                name=f"recommended-{profile.hostname or 'host'}",
            )
            save_configuration(
                configuration,
                output,
                run_metadata={"generated_from": str(profile_path) if profile_path else "platform"},
            )
            result.output_path = output
    except HostforgeError as e:
        result.error = e.message
    except OSError as e:
        result.error = f"Cannot write {output}: {e}"
    return result
