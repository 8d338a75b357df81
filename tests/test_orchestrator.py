"""
Tests for the orchestrator — phase pipeline, abort policy, rollback, persistence.
"""

import pytest

from hostforge.actions.mock import InMemoryBackend
from hostforge.core.config.settings import Settings
from hostforge.core.context import EngineContext
from hostforge.core.engine.executor import RunControl
from hostforge.core.engine.orchestrator import Orchestrator
from hostforge.core.errors import BackupError, ErrorKind
from hostforge.core.models.item import Configuration, ConfigurationItem, Severity
from hostforge.core.models.profile import ProfileScores, SystemProfile
from hostforge.core.models.recommendation import Priority, Recommendation
from hostforge.core.models.result import ItemStatus
from hostforge.core.models.run import RunPhase
from hostforge.core.persistence.audit import AuditWriter
from hostforge.core.persistence.backup import BackupHandle
from hostforge.core.persistence.run_report import list_run_reports, load_run_report
from hostforge.core.profile import FixedProfileProvider


def _package(name: str, severity: Severity = Severity.NORMAL) -> ConfigurationItem:
    return ConfigurationItem(name=name, type="Package", properties={"packageId": name}, severity=severity)


def _settings(context: EngineContext, **overrides):
    return context.settings.orchestrator.model_copy(update=overrides)


class _FailingProfile:
    def get_system_profile(self):
        raise RuntimeError("WMI unavailable")


class _FailingBackup:
    def backup(self, profile):
        raise BackupError("disk full")

    def restore(self, handle):
        raise AssertionError("restore must not be called")


class _BrokenRestore:
    def __init__(self, tmp_path):
        self.tmp_path = tmp_path

    def backup(self, profile):
        return BackupHandle(path=str(self.tmp_path / "snap"))

    def restore(self, handle):
        raise BackupError("snapshot unreadable")


class _ExplodingSink:
    def log(self, level, message):
        raise RuntimeError("sink down")


@pytest.fixture
def orchestrator(context, developer_profile) -> Orchestrator:
    return Orchestrator(context, profile_provider=FixedProfileProvider(developer_profile))


# ── Happy path ──────────────────────────────────────────────────────


class TestFullRun:
    def test_all_default_phases(self, orchestrator, sample_configuration, backend):
        result = orchestrator.run(sample_configuration)

        assert result.success
        assert result.error is None
        assert result.completed_phases == [
            RunPhase.VALIDATE,
            RunPhase.PROFILE,
            RunPhase.RECOMMEND,
            RunPhase.BACKUP,
            RunPhase.APPLY_BASE,
            RunPhase.SUMMARIZE,
        ]
        assert [r.status for r in result.base_results] == [ItemStatus.APPLIED] * 3
        assert result.recommendation_results == []
        assert len(result.recommendations) == 3
        assert {"Git.Git", "7zip.7zip"} <= set(backend.packages)
        assert result.message == "Completed: 3 item(s) applied"
        assert result.ended_at is not None

    def test_summary(self, orchestrator, sample_configuration):
        result = orchestrator.run(sample_configuration)
        summary = result.summary
        assert summary.profile_generated
        assert summary.recommendation_count == 3
        assert summary.base.applied == 3
        assert summary.backup_created
        assert summary.hardware_category == "MidRange"
        assert summary.user_category == "Developer"
        assert summary.scores == {"performance": 70, "security": 80, "maintenance": 70}
        assert result.post_install_instructions == ["Sign out and back in"]

    def test_apply_recommendations(self, orchestrator, context, sample_configuration, backend):
        result = orchestrator.run(sample_configuration, settings=_settings(context, apply_recommendations=True))
        assert RunPhase.APPLY_RECOMMENDATIONS in result.completed_phases
        assert len(result.recommendation_results) == 3
        # base already installed Git.Git, so the recommendation is satisfied
        assert result.recommendation_results[0].status == ItemStatus.NOT_NEEDED
        assert "Microsoft-Windows-Subsystem-Linux" in backend.features
        assert result.summary.recommendations.total == 3

    def test_max_recommendations_and_filters(self, orchestrator, context):
        result = orchestrator.run(
            settings=_settings(context, max_recommendations=1, priorities=[Priority.LOW])
        )
        assert [r.rule_id for r in result.recommendations] == ["dev.long_paths"]

    def test_without_configuration(self, orchestrator):
        result = orchestrator.run()
        assert result.success
        assert result.base_results == []
        assert RunPhase.APPLY_BASE in result.completed_phases

    def test_disabled_phases(self, orchestrator, context, sample_configuration):
        settings = _settings(
            context, generate_profile=False, create_backup=False, apply_recommendations=True
        )
        result = orchestrator.run(sample_configuration, settings=settings)
        assert result.profile is None
        assert result.recommendations == []
        assert result.backup_path is None
        assert result.recommendation_results == []
        assert RunPhase.PROFILE not in result.completed_phases
        assert result.success

    def test_parallel(self, orchestrator, context):
        config = Configuration(name="many", items=[_package(f"p{i}") for i in range(12)])
        result = orchestrator.run(config, settings=_settings(context, parallel=True, max_workers=4))
        assert [r.item_name for r in result.base_results] == [f"p{i}" for i in range(12)]
        assert result.success

    def test_item_failure_is_not_abort(self, orchestrator, sample_configuration, backend):
        backend.set_failure("Git.Git")
        result = orchestrator.run(sample_configuration)
        assert result.error is None
        assert not result.success
        assert result.status == "partial"
        assert result.message == "Completed with 1 failed item(s)"
        assert len(result.base_results) == 3


# ── Dry-run ─────────────────────────────────────────────────────────


class TestDryRun:
    def test_nothing_mutates(self, orchestrator, context, sample_configuration, backend):
        settings = _settings(context, dry_run=True, apply_recommendations=True)
        result = orchestrator.run(sample_configuration, settings=settings)
        assert result.success
        assert result.summary.dry_run
        assert backend.mutation_count == 0
        assert {r.status for r in result.base_results} == {ItemStatus.SKIPPED}
        assert all(r.message == "skipped" for r in result.base_results)

    def test_satisfied_items_stay_not_needed(self, orchestrator, context, sample_configuration):
        context.backend.install_package("Git.Git")
        result = orchestrator.run(sample_configuration, settings=_settings(context, dry_run=True))
        assert result.base_results[0].status == ItemStatus.NOT_NEEDED
        assert result.base_results[1].status == ItemStatus.SKIPPED

    def test_explicit_control(self, orchestrator, sample_configuration, backend):
        result = orchestrator.run(sample_configuration, control=RunControl(dry_run=True))
        assert backend.mutation_count == 0
        assert result.summary.dry_run


# ── Abort policy ────────────────────────────────────────────────────


class TestAbort:
    def test_validation_failure_before_mutation(self, orchestrator, backend):
        config = Configuration(name="bad", items=[ConfigurationItem(name="x", type="")])
        result = orchestrator.run(config)
        assert result.error.kind == ErrorKind.VALIDATION
        assert result.error.phase == RunPhase.VALIDATE
        assert result.completed_phases == [RunPhase.SUMMARIZE]
        assert backend.mutation_count == 0
        assert result.status == "failed"
        assert result.message.startswith("Aborted in validate")

    def test_unregistered_type_aborts_before_mutation(self, orchestrator, backend):
        config = Configuration(
            name="typo",
            items=[_package("git"), ConfigurationItem(name="x", type="Typo")],
        )
        result = orchestrator.run(config)
        assert result.error.kind == ErrorKind.VALIDATION
        assert result.error.phase == RunPhase.VALIDATE
        assert "Typo" in result.error.message
        assert result.base_results == []
        assert backend.mutation_count == 0

    def test_disabled_unregistered_type_is_ignored(self, orchestrator, backend):
        config = Configuration(
            name="typo",
            items=[_package("git"), ConfigurationItem(name="x", type="Typo", enabled=False)],
        )
        result = orchestrator.run(config)
        assert result.error is None
        assert "git" in backend.packages

    def test_profile_failure_is_fatal(self, context, sample_configuration, backend):
        result = Orchestrator(context, profile_provider=_FailingProfile()).run(sample_configuration)
        assert result.error.kind == ErrorKind.PROFILE
        assert result.error.phase == RunPhase.PROFILE
        assert "WMI unavailable" in result.error.message
        assert result.base_results == []
        assert backend.mutation_count == 0
        assert RunPhase.SUMMARIZE in result.completed_phases

    def test_backup_failure_warns_without_rollback(self, context, developer_profile, sample_configuration, sink):
        orchestrator = Orchestrator(
            context,
            profile_provider=FixedProfileProvider(developer_profile),
            backup_provider=_FailingBackup(),
        )
        result = orchestrator.run(sample_configuration)
        assert result.success
        assert result.backup_path is None
        assert any("disk full" in m for m in sink.messages("warning"))

    def test_backup_failure_fatal_with_rollback(self, context, developer_profile, sample_configuration, backend):
        orchestrator = Orchestrator(
            context,
            profile_provider=FixedProfileProvider(developer_profile),
            backup_provider=_FailingBackup(),
        )
        result = orchestrator.run(sample_configuration, settings=_settings(context, rollback_on_failure=True))
        assert result.error.kind == ErrorKind.BACKUP
        assert result.error.phase == RunPhase.BACKUP
        assert backend.mutation_count == 0

    def test_unexpected_error(self, orchestrator, sample_configuration, monkeypatch):
        def explode(self, result, state):
            raise RuntimeError("bug")

        monkeypatch.setattr(Orchestrator, "_validate", explode)
        result = orchestrator.run(sample_configuration)
        assert result.error.kind == ErrorKind.UNEXPECTED
        assert result.error.phase == RunPhase.VALIDATE


# ── Rollback ────────────────────────────────────────────────────────


class TestRollback:
    def _critical_config(self):
        return Configuration(
            name="critical",
            items=[_package("a"), _package("b", Severity.CRITICAL), _package("c")],
        )

    def test_critical_failure_restores_backup(self, developer_profile, tmp_path):
        backend = InMemoryBackend(packages={"base": "1.0"})
        backend.set_failure("b", "driver rejected")
        context = EngineContext.create(settings=Settings(), backend=backend, root=tmp_path)
        orchestrator = Orchestrator(context, profile_provider=FixedProfileProvider(developer_profile))

        result = orchestrator.run(self._critical_config(), settings=_settings(context, rollback_on_failure=True))

        assert result.error.kind == ErrorKind.CRITICAL_APPLY
        assert result.error.phase == RunPhase.APPLY_BASE
        assert [r.item_name for r in result.base_results] == ["a", "b"]
        assert result.rolled_back
        assert result.summary.rolled_back
        assert backend.packages == {"base": "1.0"}

    def test_no_rollback_when_disabled(self, orchestrator, backend):
        backend.set_failure("b")
        result = orchestrator.run(self._critical_config())
        assert result.error is None
        assert not result.rolled_back
        assert {"a", "c"} <= set(backend.packages)

    def test_rollback_failure_is_logged(self, context, developer_profile, backend, sink, tmp_path):
        backend.set_failure("b")
        orchestrator = Orchestrator(
            context,
            profile_provider=FixedProfileProvider(developer_profile),
            backup_provider=_BrokenRestore(tmp_path),
        )
        result = orchestrator.run(self._critical_config(), settings=_settings(context, rollback_on_failure=True))
        assert result.error.kind == ErrorKind.CRITICAL_APPLY
        assert not result.rolled_back
        assert any("Rollback failed" in m for m in sink.messages("error"))

    def test_critical_recommendation_aborts(self, context, sample_configuration, backend):
        backend.set_failure("security_baseline")
        profile = SystemProfile(scores=ProfileScores(security=10, performance=90, maintenance=90))
        orchestrator = Orchestrator(context, profile_provider=FixedProfileProvider(profile))

        # make every recommendation critical for this run
        original = context.recommendations.generate

        def critical_generate(p, max_count=None):
            return [
                Recommendation.model_validate({**r.model_dump(), "severity": "critical"})
                for r in original(p, max_count)
            ]

        context.recommendations.generate = critical_generate
        result = orchestrator.run(
            sample_configuration,
            settings=_settings(context, apply_recommendations=True, rollback_on_failure=True),
        )
        assert result.error.phase == RunPhase.APPLY_RECOMMENDATIONS
        assert result.rolled_back
        assert "Git.Git" not in backend.packages


# ── Persistence / sink ──────────────────────────────────────────────


class TestPersistence:
    def test_audit_and_report_written(self, orchestrator, sample_configuration, tmp_path):
        result = orchestrator.run(sample_configuration)

        entries = AuditWriter(tmp_path / ".hostforge" / "audit.ndjson").read_all()
        assert len(entries) == 1
        assert entries[0].run_id == result.run_id
        assert entries[0].configuration == "workstation"
        assert entries[0].status == "ok"
        assert entries[0].items_total == 3

        reports = list_run_reports(tmp_path / ".hostforge" / "runs")
        assert len(reports) == 1
        loaded = load_run_report(reports[0])
        assert loaded.run_id == result.run_id
        assert loaded.success

    def test_backup_written_under_root(self, orchestrator, sample_configuration, tmp_path):
        result = orchestrator.run(sample_configuration)
        assert result.backup_path.startswith(str(tmp_path / ".hostforge" / "backups"))

    def test_persistence_disabled(self, orchestrator, context, sample_configuration, tmp_path):
        orchestrator.run(sample_configuration, settings=_settings(context, audit_file=None, report_dir=None))
        assert not (tmp_path / ".hostforge" / "audit.ndjson").exists()
        assert not (tmp_path / ".hostforge" / "runs").exists()

    def test_sink_receives_progress(self, orchestrator, sample_configuration, sink):
        result = orchestrator.run(sample_configuration)
        infos = sink.messages("info")
        assert infos[0].startswith(f"Run {result.run_id} started")
        assert infos[-1] == f"Run {result.run_id}: {result.message}"

    def test_failing_sink_is_ignored(self, context, developer_profile, sample_configuration):
        orchestrator = Orchestrator(
            context,
            profile_provider=FixedProfileProvider(developer_profile),
            log_sink=_ExplodingSink(),
        )
        assert orchestrator.run(sample_configuration).success
