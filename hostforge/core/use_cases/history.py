"""
History use case — recent runs from the audit ledger.

``reports=True`` adds the per-run reports from ``orchestrator.report_dir``;
``backups=True`` adds the snapshots under ``orchestrator.backup_dir``.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path

from hostforge.core.errors import HostforgeError
from hostforge.core.models.run import OrchestrationRunResult
from hostforge.core.persistence.audit import AuditEntry, AuditWriter
from hostforge.core.persistence.backup import BackupHandle, list_backups
from hostforge.core.persistence.run_report import list_run_reports, load_run_report
from hostforge.core.use_cases.common import open_context


@dataclass
class HistoryResult:
    entries: list[AuditEntry] = field(default_factory=list)
    ledger_path: Path | None = None
    reports: list[OrchestrationRunResult] | None = None
    backups: list[BackupHandle] | None = None
    error: str | None = None

    def to_dict(self) -> dict:
        if self.error:
            return {"error": self.error}
        data: dict = {
            "ledger": str(self.ledger_path) if self.ledger_path else None,
            "entries": [e.model_dump(mode="json") for e in self.entries],
        }
        if self.reports is not None:
            data["reports"] = [r.to_dict() for r in self.reports]
        if self.backups is not None:
            data["backups"] = [b.model_dump(mode="json") for b in self.backups]
        return data


def get_history(
    settings_path: Path | None = None,
    limit: int = 20,
    reports: bool = False,
    backups: bool = False,
) -> HistoryResult:
    result = HistoryResult()
    try:
        context = open_context(settings_path)
    except HostforgeError as e:
        result.error = e.message
        return result

    settings = context.settings.orchestrator
    if not settings.audit_file:
        result.error = "Audit ledger disabled (orchestrator.audit_file is empty)"
        return result

    result.ledger_path = context.resolve(settings.audit_file)
    result.entries = AuditWriter(result.ledger_path).read_recent(limit)

    if reports:
        if not settings.report_dir:
            result.error = "Run reports disabled (orchestrator.report_dir is empty)"
            return result
        result.reports = []
        for path in list_run_reports(context.resolve(settings.report_dir))[: max(0, limit)]:
            report = load_run_report(path)
            if report is not None:
                result.reports.append(report)

    if backups:
        result.backups = list_backups(context.resolve(settings.backup_dir))[: max(0, limit)]

    return result
