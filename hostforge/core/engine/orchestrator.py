"""
Orchestrator — one end-to-end run over the fixed phase pipeline.

    validate → profile → recommend → backup → apply_base
             → apply_recommendations → summarize

Each phase except validate and summarize can be switched off in
OrchestratorSettings.  A phase that raises a HostforgeError aborts the
run: the error is recorded as ``RunError(kind, phase, message)``, a
best-effort rollback is attempted when a backup exists and
``rollback_on_failure`` is set, and Summarize runs regardless.

Item failures are not phase failures.  They are recorded and the phase
continues, except that a critical failure under ``rollback_on_failure``
stops the phase and aborts the run.
"""

from __future__ import annotations

import logging
from datetime import UTC, datetime
from typing import Callable

from hostforge.core.context import EngineContext
from hostforge.core.engine.executor import (
    RunControl,
    apply_configuration,
    generate_run_id,
    run_units,
)
from hostforge.core.config.settings import OrchestratorSettings
from hostforge.core.errors import (
    BackupError,
    CriticalApplyError,
    ErrorKind,
    HostforgeError,
    ProfileError,
    RecommendationError,
    ValidationError,
)
from hostforge.core.models.item import Configuration
from hostforge.core.models.recommendation import Recommendation
from hostforge.core.models.result import ExecutionResult, ItemStatus
from hostforge.core.models.run import (
    OrchestrationRunResult,
    PhaseCounts,
    RunError,
    RunPhase,
    RunSummary,
)
from hostforge.core.observability.log_sink import LogSink, emit
from hostforge.core.persistence.audit import AuditEntry, AuditWriter
from hostforge.core.persistence.backup import BackupHandle, BackupProvider, FileBackupProvider
from hostforge.core.persistence.run_report import save_run_report
from hostforge.core.profile import PlatformProfileProvider, ProfileProvider

logger = logging.getLogger(__name__)


class Orchestrator:
    """Runs the phase pipeline against one EngineContext.

    Args:
        context: Plugins, action registry, backend and recommendation
            engine to use.
        profile_provider: Source of the SystemProfile.  Defaults to
            probing the running host.
        backup_provider: Snapshot/restore implementation.  Defaults to a
            FileBackupProvider under ``settings.backup_dir``.
        log_sink: Progress sink.  Defaults to the context's sink.
    """

    def __init__(
        self,
        context: EngineContext,
        profile_provider: ProfileProvider | None = None,
        backup_provider: BackupProvider | None = None,
        log_sink: LogSink | None = None,
    ):
        self.context = context
        self.profile_provider = profile_provider
        self.backup_provider = backup_provider
        self.log_sink = log_sink if log_sink is not None else context.log_sink

    def run(
        self,
        configuration: Configuration | None = None,
        settings: OrchestratorSettings | None = None,
        control: RunControl | None = None,
    ) -> OrchestrationRunResult:
        """Execute one run.  Never raises for engine errors.

        Args:
            configuration: Base configuration for the apply_base phase.
                When omitted that phase is skipped.
            settings: Overrides ``context.settings.orchestrator``.
            control: Shared run switches; lets a caller flip dry-run while
                the run is in progress.  Built from ``settings.dry_run``
                when omitted.
        """
        settings = settings or self.context.settings.orchestrator
        control = control or RunControl(dry_run=settings.dry_run)
        result = OrchestrationRunResult(run_id=generate_run_id())
        state = _RunState(settings=settings, control=control, configuration=configuration)

        self._log("info", f"Run {result.run_id} started{' (dry-run)' if control.dry_run else ''}")

        phases: list[tuple[RunPhase, bool, Callable[[OrchestrationRunResult, _RunState], None]]] = [
            (RunPhase.VALIDATE, True, self._validate),
            (RunPhase.PROFILE, settings.generate_profile, self._profile),
            (RunPhase.RECOMMEND, settings.generate_recommendations, self._recommend),
            (RunPhase.BACKUP, settings.create_backup, self._backup),
            (RunPhase.APPLY_BASE, settings.apply_base_configuration, self._apply_base),
            (RunPhase.APPLY_RECOMMENDATIONS, settings.apply_recommendations, self._apply_recommendations),
        ]

        for phase, enabled, step in phases:
            if not enabled:
                logger.debug("Phase %s disabled", phase)
                continue
            try:
                step(result, state)
            except HostforgeError as e:
                result.error = RunError(kind=e.kind, phase=phase, message=e.message)
            except Exception as e:
                logger.exception("Unexpected error in phase %s", phase)
                result.error = RunError(kind=ErrorKind.UNEXPECTED, phase=phase, message=str(e))
            if result.error is not None:
                self._log("error", f"Run aborted in {phase}: {result.error.message}")
                self._rollback(result, state)
                break
            result.completed_phases.append(phase)

        self._summarize(result, state)
        self._persist(result, state)
        return result

    # ── Phases ──────────────────────────────────────────────────

    def _validate(self, result: OrchestrationRunResult, state: _RunState) -> None:
        configuration = state.configuration
        if configuration is None or not state.settings.apply_base_configuration:
            return
        problems = configuration.problems()
        unknown = sorted(
            {item.type for item in configuration.enabled_items if item.type.strip()}
            - set(self.context.actions.list_types())
        )
        if unknown:
            problems.append(f"no action registered for type(s): {', '.join(unknown)}")
        if problems:
            raise ValidationError(
                f"Configuration '{configuration.name}' is invalid: {'; '.join(problems)}"
            )

    def _profile(self, result: OrchestrationRunResult, state: _RunState) -> None:
        provider = self.profile_provider or PlatformProfileProvider()
        try:
            result.profile = provider.get_system_profile()
        except HostforgeError:
            raise
        except Exception as e:
            raise ProfileError(f"Profile collection failed: {e}") from e
        self._log(
            "info",
            f"Profile: {result.profile.hostname or 'host'} "
            f"({result.profile.hardware_category}, {result.profile.user_category})",
        )

    def _recommend(self, result: OrchestrationRunResult, state: _RunState) -> None:
        if result.profile is None:
            self._log("warning", "Recommendations skipped: no system profile")
            return
        settings = state.settings
        engine = self.context.recommendations
        try:
            generated = engine.generate(result.profile, max_count=None)
            filtered = engine.filter(generated, settings.priorities, settings.categories)
            result.recommendations = engine.rank(filtered, settings.max_recommendations)
        except HostforgeError:
            raise
        except Exception as e:
            raise RecommendationError(f"Recommendation generation failed: {e}") from e
        state.recommended = True
        self._log("info", f"{len(result.recommendations)} recommendations selected")

    def _backup(self, result: OrchestrationRunResult, state: _RunState) -> None:
        provider = self.backup_provider or FileBackupProvider(
            self.context.resolve(state.settings.backup_dir),
            self.context.backend,
            label=result.run_id,
        )
        try:
            state.backup = provider.backup(result.profile)
        except Exception as e:
            message = e.message if isinstance(e, HostforgeError) else str(e)
            if state.settings.rollback_on_failure:
                raise BackupError(f"Backup failed: {message}") from e
            self._log("warning", f"Backup failed, continuing without one: {message}")
            return
        state.backup_provider = provider
        result.backup_path = state.backup.path
        self._log("info", f"Backup created at {state.backup.path}")

    def _apply_base(self, result: OrchestrationRunResult, state: _RunState) -> None:
        configuration = state.configuration
        if configuration is None:
            self._log("info", "No base configuration supplied")
            return
        settings = state.settings
        report = apply_configuration(
            configuration,
            self.context.actions,
            self.context.backend,
            control=state.control,
            parallel=settings.parallel,
            max_workers=settings.max_workers,
            stop_on_critical=settings.rollback_on_failure,
        )
        result.base_results = report.results
        self._log("info", f"Base configuration: {report.succeeded}/{report.total} succeeded")
        if report.aborted:
            raise CriticalApplyError(report.abort_reason)

    def _apply_recommendations(self, result: OrchestrationRunResult, state: _RunState) -> None:
        if not state.recommended:
            self._log("warning", "Recommendations not applied: none were generated")
            return
        settings = state.settings
        engine = self.context.recommendations

        def _unit(rec: Recommendation) -> Callable[[], ExecutionResult]:
            return lambda: engine.apply_recommendation(rec, state.control)

        report = run_units(
            [_unit(r) for r in result.recommendations],
            parallel=settings.parallel,
            max_workers=settings.max_workers,
            stop_on_critical=settings.rollback_on_failure,
        )
        result.recommendation_results = report.results
        self._log("info", f"Recommendations: {report.succeeded}/{report.total} succeeded")
        if report.aborted:
            raise CriticalApplyError(report.abort_reason)

    # ── Rollback / summary ──────────────────────────────────────

    def _rollback(self, result: OrchestrationRunResult, state: _RunState) -> None:
        """Best effort: restore the backup.  Failures are logged, never raised."""
        if not state.settings.rollback_on_failure:
            return
        if state.backup is None or state.backup_provider is None:
            self._log("warning", "Rollback requested but no backup exists")
            return
        attempted = [
            r for r in result.base_results + result.recommendation_results
            if r.status in (ItemStatus.APPLIED, ItemStatus.FAILED)
        ]
        if not attempted:
            self._log("info", "Nothing was applied; rollback not needed")
            return
        try:
            state.backup_provider.restore(state.backup)
        except Exception as e:
            logger.error("Rollback from %s failed: %s", state.backup.path, e)
            self._log("error", f"Rollback failed: {e}")
            return
        result.rolled_back = True
        self._log("warning", f"Rolled back to {state.backup.path}")

    def _summarize(self, result: OrchestrationRunResult, state: _RunState) -> None:
        profile = result.profile
        base = PhaseCounts.from_results(result.base_results)
        recs = PhaseCounts.from_results(result.recommendation_results)
        result.summary = RunSummary(
            profile_generated=profile is not None,
            recommendation_count=len(result.recommendations),
            base=base,
            recommendations=recs,
            backup_created=result.backup_path is not None,
            restart_required=any(
                r.restart_required for r in result.base_results + result.recommendation_results
            ),
            rolled_back=result.rolled_back,
            dry_run=state.control.dry_run,
            scores=profile.scores.to_dict() if profile else {},
            hardware_category=str(profile.hardware_category) if profile else None,
            user_category=str(profile.user_category) if profile else None,
        )
        if state.configuration is not None:
            result.post_install_instructions = list(state.configuration.post_install_instructions)

        failed = base.failed + recs.failed
        result.success = result.error is None and failed == 0
        if result.error is not None:
            result.message = f"Aborted in {result.error.phase}: {result.error.message}"
        elif failed:
            result.message = f"Completed with {failed} failed item(s)"
        else:
            result.message = f"Completed: {result.summary.items_applied} item(s) applied"

        result.ended_at = datetime.now(UTC).isoformat()
        result.completed_phases.append(RunPhase.SUMMARIZE)
        self._log("info", f"Run {result.run_id}: {result.message}")

    def _persist(self, result: OrchestrationRunResult, state: _RunState) -> None:
        settings = state.settings
        name = state.configuration.name if state.configuration else ""
        if settings.audit_file:
            AuditWriter(self.context.resolve(settings.audit_file)).write(
                AuditEntry.from_run(result, name)
            )
        if settings.report_dir:
            try:
                save_run_report(result, self.context.resolve(settings.report_dir))
            except OSError as e:
                self._log("warning", f"Run report not written: {e}")

    def _log(self, level: str, message: str) -> None:
        emit(self.log_sink, level, message)


class _RunState:
    """Per-run scratch state shared between phases."""

    def __init__(
        self,
        settings: OrchestratorSettings,
        control: RunControl,
        configuration: Configuration | None,
    ):
        self.settings = settings
        self.control = control
        self.configuration = configuration
        self.recommended = False
        self.backup: BackupHandle | None = None
        self.backup_provider: BackupProvider | None = None

