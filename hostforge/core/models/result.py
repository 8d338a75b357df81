"""
ApplyOutcome and ExecutionResult — the execution contract.

Actions return an ApplyOutcome from ``apply()``.  The executor wraps
the whole Test → snapshot → Apply → snapshot sequence into exactly one
ExecutionResult per item.  Results are frozen: once produced they are
never modified.
"""

from __future__ import annotations

from datetime import UTC, datetime
from enum import StrEnum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field

from hostforge.core.errors import ErrorKind
from hostforge.core.models.item import Severity


def _now_iso() -> str:
    """Current UTC time as ISO string."""
    return datetime.now(UTC).isoformat()


class ApplyOutcome(BaseModel):
    """What a single ``apply()`` call reports back."""

    success: bool
    restart_required: bool = False
    message: str = ""


class ItemStatus(StrEnum):
    """Explicit outcome of one item."""

    APPLIED = "applied"         # apply() ran and succeeded
    NOT_NEEDED = "not_needed"   # test() was already true
    SKIPPED = "skipped"         # dry-run suppressed apply()
    FAILED = "failed"


class StateChange(BaseModel):
    """Before/after snapshots around an apply."""

    before: Any = None
    after: Any = None

    @property
    def changed(self) -> bool:
        return self.before != self.after


class ExecutionResult(BaseModel):
    """Outcome of one applied item or recommendation."""

    model_config = ConfigDict(frozen=True)

    item_name: str
    item_type: str
    success: bool
    status: ItemStatus
    message: str = ""
    changes: StateChange = Field(default_factory=StateChange)
    duration_ms: int = 0
    restart_required: bool = False
    severity: Severity = Severity.NORMAL
    error_kind: ErrorKind | None = None
    started_at: str = Field(default_factory=_now_iso)

    @property
    def ok(self) -> bool:
        return self.success

    @property
    def failed(self) -> bool:
        return self.status == ItemStatus.FAILED

    @property
    def skipped(self) -> bool:
        return self.status == ItemStatus.SKIPPED

    @property
    def critical_failure(self) -> bool:
        """Failed, and the item's author marked it critical."""
        return self.failed and self.severity == Severity.CRITICAL

    @classmethod
    def failure(
        cls,
        item_name: str,
        item_type: str,
        message: str,
        *,
        error_kind: ErrorKind = ErrorKind.APPLY,
        **kwargs: Any,
    ) -> ExecutionResult:
        """Create a failed result."""
        return cls(
            item_name=item_name,
            item_type=item_type,
            success=False,
            status=ItemStatus.FAILED,
            message=message,
            error_kind=error_kind,
            **kwargs,
        )

    @classmethod
    def skip(
        cls,
        item_name: str,
        item_type: str,
        message: str = "skipped",
        **kwargs: Any,
    ) -> ExecutionResult:
        """Create a skipped (dry-run) result. Counts as success."""
        return cls(
            item_name=item_name,
            item_type=item_type,
            success=True,
            status=ItemStatus.SKIPPED,
            message=message,
            **kwargs,
        )
