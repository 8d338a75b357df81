"""
OrchestrationRunResult — everything one orchestrator invocation produced.

Built incrementally by the orchestrator and finalized by the Summarize
phase, which always runs (also after an abort).
"""

from __future__ import annotations

from datetime import UTC, datetime
from enum import StrEnum
from typing import Any

from pydantic import BaseModel, Field

from hostforge.core.errors import ErrorKind
from hostforge.core.models.profile import SystemProfile
from hostforge.core.models.recommendation import Recommendation
from hostforge.core.models.result import ExecutionResult


def _now_iso() -> str:
    """Current UTC time as ISO string."""
    return datetime.now(UTC).isoformat()


class RunPhase(StrEnum):
    VALIDATE = "validate"
    PROFILE = "profile"
    RECOMMEND = "recommend"
    BACKUP = "backup"
    APPLY_BASE = "apply_base"
    APPLY_RECOMMENDATIONS = "apply_recommendations"
    SUMMARIZE = "summarize"


class RunError(BaseModel):
    """Fatal error that aborted a run."""

    kind: ErrorKind
    phase: RunPhase
    message: str


class PhaseCounts(BaseModel):
    total: int = 0
    applied: int = 0
    not_needed: int = 0
    skipped: int = 0
    succeeded: int = 0
    failed: int = 0

    @classmethod
    def from_results(cls, results: list[ExecutionResult]) -> PhaseCounts:
        counts = cls(total=len(results))
        for r in results:
            if r.success:
                counts.succeeded += 1
            else:
                counts.failed += 1
            if r.status == "applied":
                counts.applied += 1
            elif r.status == "not_needed":
                counts.not_needed += 1
            elif r.status == "skipped":
                counts.skipped += 1
        return counts


class RunSummary(BaseModel):
    profile_generated: bool = False
    recommendation_count: int = 0
    base: PhaseCounts = Field(default_factory=PhaseCounts)
    recommendations: PhaseCounts = Field(default_factory=PhaseCounts)
    backup_created: bool = False
    restart_required: bool = False
    rolled_back: bool = False
    dry_run: bool = False
    scores: dict[str, int] = Field(default_factory=dict)
    hardware_category: str | None = None
    user_category: str | None = None

    @property
    def items_applied(self) -> int:
        return self.base.applied + self.recommendations.applied


class OrchestrationRunResult(BaseModel):
    run_id: str = ""
    started_at: str = Field(default_factory=_now_iso)
    ended_at: str | None = None

    profile: SystemProfile | None = None
    recommendations: list[Recommendation] = Field(default_factory=list)
    base_results: list[ExecutionResult] = Field(default_factory=list)
    recommendation_results: list[ExecutionResult] = Field(default_factory=list)
    backup_path: str | None = None

    success: bool = False
    message: str = ""
    error: RunError | None = None
    completed_phases: list[RunPhase] = Field(default_factory=list)
    rolled_back: bool = False
    post_install_instructions: list[str] = Field(default_factory=list)
    summary: RunSummary = Field(default_factory=RunSummary)

    @property
    def aborted(self) -> bool:
        return self.error is not None

    @property
    def status(self) -> str:
        if self.error is not None:
            return "failed"
        failed = self.summary.base.failed + self.summary.recommendations.failed
        if failed == 0:
            return "ok"
        return "partial"

    def to_dict(self) -> dict[str, Any]:
        data = self.model_dump(mode="json")
        data["status"] = self.status
        return data
