"""
Audit ledger — append-only run history.

Every orchestration run appends one entry to an NDJSON file.  Entries
are never modified or deleted; ``hostforge history`` reads them back.
"""

from __future__ import annotations

import json
import logging
from datetime import UTC, datetime
from pathlib import Path
from typing import Any

from pydantic import BaseModel, Field

from hostforge.core.models.run import OrchestrationRunResult

logger = logging.getLogger(__name__)

DEFAULT_AUDIT_FILE = Path(".hostforge") / "audit.ndjson"


class AuditEntry(BaseModel):
    """One line of the ledger."""

    timestamp: str = Field(default_factory=lambda: datetime.now(UTC).isoformat())
    run_id: str = ""
    configuration: str = ""

    status: str = ""               # ok, partial, failed
    dry_run: bool = False
    rolled_back: bool = False
    phases: list[str] = Field(default_factory=list)

    items_total: int = 0
    items_succeeded: int = 0
    items_failed: int = 0
    recommendations: int = 0
    duration_ms: int = 0

    errors: list[str] = Field(default_factory=list)
    context: dict[str, Any] = Field(default_factory=dict)

    @classmethod
    def from_run(
        cls,
        result: OrchestrationRunResult,
        configuration_name: str = "",
    ) -> AuditEntry:
        results = result.base_results + result.recommendation_results
        errors = [f"{r.item_name}: {r.message}" for r in results if r.failed]
        if result.error is not None:
            errors.insert(0, f"{result.error.phase}: {result.error.message}")
        duration_ms = 0
        if result.ended_at:
            elapsed = datetime.fromisoformat(result.ended_at) - datetime.fromisoformat(result.started_at)
            duration_ms = int(elapsed.total_seconds() * 1000)
        return cls(
            run_id=result.run_id,
            configuration=configuration_name,
            status=result.status,
            dry_run=result.summary.dry_run,
            rolled_back=result.rolled_back,
            phases=[str(p) for p in result.completed_phases],
            items_total=len(results),
            items_succeeded=sum(1 for r in results if r.success),
            items_failed=sum(1 for r in results if r.failed),
            recommendations=len(result.recommendations),
            duration_ms=duration_ms,
            errors=errors,
            context={"backup_path": result.backup_path} if result.backup_path else {},
        )


class AuditWriter:
    """Append-only ledger writer.  The file is created on first write."""

    def __init__(self, path: Path | None = None):
        self._path = path or DEFAULT_AUDIT_FILE

    @property
    def path(self) -> Path:
        return self._path

    def write(self, entry: AuditEntry) -> None:
        """Append one entry.  I/O failures are logged, not raised."""
        line = json.dumps(entry.model_dump(mode="json"), ensure_ascii=False) + "\n"
        try:
            self._path.parent.mkdir(parents=True, exist_ok=True)
            with self._path.open("a", encoding="utf-8") as f:
                f.write(line)
            logger.debug("Audit entry written: %s (%s)", entry.run_id, entry.status)
        except OSError as e:
            logger.error("Failed to write audit entry: %s", e)

    def read_all(self) -> list[AuditEntry]:
        """All entries, oldest first.  Corrupt lines are skipped."""
        if not self._path.is_file():
            return []

        entries = []
        try:
            with self._path.open("r", encoding="utf-8") as f:
                for line_num, line in enumerate(f, start=1):
                    line = line.strip()
                    if not line:
                        continue
                    try:
                        entries.append(AuditEntry.model_validate(json.loads(line)))
                    except Exception as e:
                        logger.warning("Skipping corrupt audit entry at line %d: %s", line_num, e)
        except OSError as e:
            logger.error("Failed to read audit ledger: %s", e)

        return entries

    def read_recent(self, n: int = 20) -> list[AuditEntry]:
        return self.read_all()[-n:] if n > 0 else []
