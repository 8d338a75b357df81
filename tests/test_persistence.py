"""
Tests for persistence — backups, audit ledger and run reports.
"""

import json
from pathlib import Path

import pytest

from hostforge.actions.mock import InMemoryBackend
from hostforge.core.errors import BackupError, ErrorKind
from hostforge.core.models.result import ExecutionResult, ItemStatus
from hostforge.core.models.run import OrchestrationRunResult, RunError, RunPhase
from hostforge.core.persistence.audit import AuditEntry, AuditWriter
from hostforge.core.persistence.backup import BackupHandle, FileBackupProvider, list_backups
from hostforge.core.persistence.run_report import (
    list_run_reports,
    load_run_report,
    report_path,
    save_run_report,
)


def _run(run_id: str = "run-20260101-120000-abcdef") -> OrchestrationRunResult:
    result = OrchestrationRunResult(
        run_id=run_id,
        started_at="2026-01-01T12:00:00+00:00",
        ended_at="2026-01-01T12:00:01.500000+00:00",
        base_results=[
            ExecutionResult(item_name="git", item_type="Package", success=True, status=ItemStatus.APPLIED),
            ExecutionResult.failure("wsl", "WindowsFeature", "needs admin"),
        ],
        backup_path="/tmp/backup_x",
        completed_phases=[RunPhase.VALIDATE, RunPhase.APPLY_BASE, RunPhase.SUMMARIZE],
    )
    result.summary.base.failed = 1
    return result


# ── Backups ─────────────────────────────────────────────────────────


class TestFileBackupProvider:
    def test_backup_files(self, tmp_path: Path, developer_profile):
        backend = InMemoryBackend(packages={"Git.Git": "2.45"})
        handle = FileBackupProvider(tmp_path, backend, label="run-1").backup(developer_profile)

        target = Path(handle.path)
        assert target.name.startswith("backup_")
        assert target.name.endswith("_run-1")
        assert handle.files == ["packages.json", "profile.json"]
        assert json.loads((target / "packages.json").read_text()) == [{"id": "Git.Git", "version": "2.45"}]
        assert json.loads((target / "profile.json").read_text())["hostname"] == "devbox"
        assert (target / "manifest.json").is_file()

    def test_backup_without_profile(self, tmp_path: Path, backend):
        handle = FileBackupProvider(tmp_path, backend).backup(None)
        assert handle.files == ["packages.json"]

    def test_same_second_backups_do_not_collide(self, tmp_path: Path, backend):
        provider = FileBackupProvider(tmp_path, backend)
        first = provider.backup(None)
        second = provider.backup(None)
        assert first.path != second.path

    def test_restore(self, tmp_path: Path):
        backend = InMemoryBackend(packages={"a": "1"})
        provider = FileBackupProvider(tmp_path, backend)
        handle = provider.backup(None)
        backend.install_package("b")
        provider.restore(handle)
        assert backend.packages == {"a": "1"}

    def test_restore_missing_manifest(self, tmp_path: Path, backend):
        with pytest.raises(BackupError) as exc:
            FileBackupProvider(tmp_path, backend).restore(BackupHandle(path=str(tmp_path / "gone")))
        assert exc.value.kind == ErrorKind.BACKUP

    def test_manifest_failure(self, tmp_path: Path):
        class Broken(InMemoryBackend):
            def package_manifest(self):
                raise RuntimeError("winget crashed")

        with pytest.raises(BackupError, match="winget crashed"):
            FileBackupProvider(tmp_path, Broken()).backup(None)

    def test_list_backups(self, tmp_path: Path, backend):
        provider = FileBackupProvider(tmp_path, backend)
        provider.backup(None)
        provider.backup(None)
        (tmp_path / "unrelated").mkdir()
        handles = provider.list_backups()
        assert len(handles) == 2
        assert handles[0].path > handles[1].path

    def test_write_failure_leaves_no_partial_backup(self, tmp_path: Path, backend, monkeypatch):
        real_write_text = Path.write_text

        def failing_write_text(self, *args, **kwargs):
            if self.name == "manifest.json":
                raise OSError("disk full")
            return real_write_text(self, *args, **kwargs)

        monkeypatch.setattr(Path, "write_text", failing_write_text)
        provider = FileBackupProvider(tmp_path, backend)
        with pytest.raises(BackupError, match="disk full"):
            provider.backup(None)
        monkeypatch.undo()

        assert list(tmp_path.iterdir()) == []
        assert provider.list_backups() == []

    def test_list_missing_dir(self, tmp_path: Path, backend):
        assert FileBackupProvider(tmp_path / "nope", backend).list_backups() == []

    def test_list_without_backend(self, tmp_path: Path, backend):
        FileBackupProvider(tmp_path, backend).backup(None)
        assert len(list_backups(tmp_path)) == 1


# ── Audit ledger ────────────────────────────────────────────────────


class TestAuditEntry:
    def test_from_run(self):
        entry = AuditEntry.from_run(_run(), "workstation")
        assert entry.configuration == "workstation"
        assert entry.status == "partial"
        assert entry.items_total == 2
        assert entry.items_succeeded == 1
        assert entry.items_failed == 1
        assert entry.duration_ms == 1500
        assert entry.errors == ["wsl: needs admin"]
        assert entry.phases == ["validate", "apply_base", "summarize"]
        assert entry.context == {"backup_path": "/tmp/backup_x"}

    def test_from_aborted_run(self):
        result = _run()
        result.error = RunError(kind=ErrorKind.PROFILE, phase=RunPhase.PROFILE, message="no WMI")
        entry = AuditEntry.from_run(result)
        assert entry.status == "failed"
        assert entry.errors[0] == "profile: no WMI"


class TestAuditWriter:
    def test_append_and_read(self, tmp_path: Path):
        writer = AuditWriter(tmp_path / "audit.ndjson")
        writer.write(AuditEntry(run_id="run-1", status="ok"))
        writer.write(AuditEntry(run_id="run-2", status="failed"))
        entries = writer.read_all()
        assert [e.run_id for e in entries] == ["run-1", "run-2"]
        assert len((tmp_path / "audit.ndjson").read_text().splitlines()) == 2

    def test_read_recent(self, tmp_path: Path):
        writer = AuditWriter(tmp_path / "audit.ndjson")
        for i in range(5):
            writer.write(AuditEntry(run_id=f"run-{i}"))
        assert [e.run_id for e in writer.read_recent(2)] == ["run-3", "run-4"]
        assert writer.read_recent(0) == []

    def test_corrupt_lines_skipped(self, tmp_path: Path):
        path = tmp_path / "audit.ndjson"
        writer = AuditWriter(path)
        writer.write(AuditEntry(run_id="good"))
        with path.open("a") as f:
            f.write("{broken\n\n")
        writer.write(AuditEntry(run_id="also-good"))
        assert [e.run_id for e in writer.read_all()] == ["good", "also-good"]

    def test_missing_file(self, tmp_path: Path):
        assert AuditWriter(tmp_path / "none.ndjson").read_all() == []

    def test_write_failure_not_raised(self, tmp_path: Path):
        blocker = tmp_path / "file"
        blocker.write_text("x")
        AuditWriter(blocker / "audit.ndjson").write(AuditEntry(run_id="r"))


# ── Run reports ─────────────────────────────────────────────────────


class TestRunReports:
    def test_save_and_load(self, tmp_path: Path):
        result = _run()
        path = save_run_report(result, tmp_path)
        assert path == report_path(tmp_path, result.run_id)
        assert json.loads(path.read_text())["status"] == "partial"
        loaded = load_run_report(path)
        assert loaded.run_id == result.run_id
        assert loaded.base_results[1].message == "needs admin"

    def test_missing_and_corrupt(self, tmp_path: Path):
        assert load_run_report(tmp_path / "nope.json") is None
        bad = tmp_path / "run-bad.json"
        bad.write_text("{{{")
        assert load_run_report(bad) is None

    def test_list_newest_first(self, tmp_path: Path):
        save_run_report(_run("run-20260101-120000-aaaaaa"), tmp_path)
        save_run_report(_run("run-20260102-120000-bbbbbb"), tmp_path)
        names = [p.name for p in list_run_reports(tmp_path)]
        assert names == ["run-20260102-120000-bbbbbb.json", "run-20260101-120000-aaaaaa.json"]
