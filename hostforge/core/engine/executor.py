"""
Engine executor — applies items and collects results.

Every item goes through the same fixed sequence:

    test → get_current_state (before) → apply → get_current_state (after)

and produces exactly one ExecutionResult.  Failures of one item never
interrupt its siblings; exceptions raised by an action are captured in
the result, never propagated.

Items run one at a time by default.  With ``parallel=True`` they run on a
thread pool; results go through a lock-guarded collector and come back
in input order.
"""

from __future__ import annotations

import concurrent.futures
import logging
import threading
import time
import uuid
from dataclasses import dataclass, field
from datetime import UTC, datetime
from typing import Callable

from hostforge.actions.base import ConfigurationAction, MutationBackend
from hostforge.actions.registry import ActionRegistry
from hostforge.core.errors import ApplyError, CriticalApplyError, ErrorKind
from hostforge.core.models.item import Configuration, ConfigurationItem, Severity
from hostforge.core.models.result import ExecutionResult, ItemStatus, StateChange

logger = logging.getLogger(__name__)


class RunControl:
    """Run-wide switches read by the executor.

    ``dry_run`` is checked immediately before every ``apply()``, so it can
    be flipped while a phase is in progress and takes effect on the next
    item.
    """

    def __init__(self, dry_run: bool = False):
        self._dry_run = threading.Event()
        if dry_run:
            self._dry_run.set()

    @property
    def dry_run(self) -> bool:
        return self._dry_run.is_set()

    def set_dry_run(self, enabled: bool) -> None:
        if enabled:
            self._dry_run.set()
        else:
            self._dry_run.clear()


class ResultCollector:
    """Thread-safe append-only result sink."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._entries: list[tuple[int, ExecutionResult]] = []

    def add(self, index: int, result: ExecutionResult) -> None:
        with self._lock:
            self._entries.append((index, result))

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

    def results(self) -> list[ExecutionResult]:
        """Collected results in input order."""
        with self._lock:
            return [r for _, r in sorted(self._entries, key=lambda e: e[0])]


@dataclass
class ExecutionReport:
    """Result of applying a batch of items."""

    results: list[ExecutionResult] = field(default_factory=list)
    aborted: bool = False
    abort_reason: str = ""

    @property
    def total(self) -> int:
        return len(self.results)

    @property
    def succeeded(self) -> int:
        return sum(1 for r in self.results if r.ok)

    @property
    def failed(self) -> int:
        return sum(1 for r in self.results if r.failed)

    @property
    def skipped(self) -> int:
        return sum(1 for r in self.results if r.skipped)

    @property
    def critical_failures(self) -> list[ExecutionResult]:
        return [r for r in self.results if r.critical_failure]

    @property
    def restart_required(self) -> bool:
        return any(r.restart_required for r in self.results)

    @property
    def all_ok(self) -> bool:
        return self.failed == 0

    @property
    def status(self) -> str:
        if self.failed == 0:
            return "ok"
        if self.succeeded > 0:
            return "partial"
        return "failed"

    def to_dict(self) -> dict:
        return {
            "status": self.status,
            "total": self.total,
            "succeeded": self.succeeded,
            "failed": self.failed,
            "skipped": self.skipped,
            "aborted": self.aborted,
            "results": [r.model_dump(mode="json") for r in self.results],
        }


def _elapsed_ms(start: float) -> int:
    return int((time.monotonic() - start) * 1000)


def _failure_kind(item: ConfigurationItem, error: Exception | None = None) -> tuple[ErrorKind, Severity]:
    """Error kind and effective severity for a failed item."""
    if isinstance(error, CriticalApplyError) or item.critical:
        return ErrorKind.CRITICAL_APPLY, Severity.CRITICAL
    return ErrorKind.APPLY, item.severity


def execute_item(action: ConfigurationAction, control: RunControl | None = None) -> ExecutionResult:
    """Run the full contract sequence for one action.

    Args:
        action: The action to apply.
        control: Run switches; ``dry_run`` suppresses ``apply()``.

    Returns:
        One ExecutionResult. Never raises.
    """
    control = control or RunControl()
    item = action.item
    start = time.monotonic()

    try:
        satisfied = action.test()
        before = action.get_current_state()
    except Exception as e:
        logger.error("Probe of %s:%s raised: %s", item.type, item.name, e)
        kind, severity = _failure_kind(item, e)
        return ExecutionResult.failure(
            item.name,
            item.type,
            f"State probe failed: {e}",
            error_kind=kind,
            severity=severity,
            duration_ms=_elapsed_ms(start),
        )

    if satisfied:
        return ExecutionResult(
            item_name=item.name,
            item_type=item.type,
            success=True,
            status=ItemStatus.NOT_NEEDED,
            message="already satisfied",
            changes=StateChange(before=before, after=before),
            severity=item.severity,
            duration_ms=_elapsed_ms(start),
        )

    # Checked per item, right before the mutation.
    if control.dry_run:
        return ExecutionResult.skip(
            item.name,
            item.type,
            changes=StateChange(before=before, after=before),
            severity=item.severity,
            duration_ms=_elapsed_ms(start),
        )

    try:
        outcome = action.apply()
    except ApplyError as e:
        kind, severity = _failure_kind(item, e)
        logger.warning("Apply of %s:%s failed: %s", item.type, item.name, e)
        return ExecutionResult.failure(
            item.name,
            item.type,
            str(e),
            error_kind=kind,
            severity=severity,
            changes=StateChange(before=before, after=_safe_state(action)),
            duration_ms=_elapsed_ms(start),
        )
    except Exception as e:
        kind, severity = _failure_kind(item, e)
        logger.error("Apply of %s:%s raised: %s", item.type, item.name, e)
        return ExecutionResult.failure(
            item.name,
            item.type,
            f"Unexpected error: {e}",
            error_kind=kind,
            severity=severity,
            changes=StateChange(before=before, after=_safe_state(action)),
            duration_ms=_elapsed_ms(start),
        )

    after = _safe_state(action)

    if outcome.success:
        return ExecutionResult(
            item_name=item.name,
            item_type=item.type,
            success=True,
            status=ItemStatus.APPLIED,
            message=outcome.message or "applied",
            changes=StateChange(before=before, after=after),
            restart_required=outcome.restart_required,
            severity=item.severity,
            duration_ms=_elapsed_ms(start),
        )

    kind, severity = _failure_kind(item)
    return ExecutionResult.failure(
        item.name,
        item.type,
        outcome.message or "apply reported failure",
        error_kind=kind,
        severity=severity,
        changes=StateChange(before=before, after=after),
        restart_required=outcome.restart_required,
        duration_ms=_elapsed_ms(start),
    )


def _safe_state(action: ConfigurationAction):
    try:
        return action.get_current_state()
    except Exception as e:
        logger.warning("Post-apply probe of %s failed: %s", action.name, e)
        return None


def build_or_fail(
    item: ConfigurationItem,
    registry: ActionRegistry,
    backend: MutationBackend,
) -> ConfigurationAction | ExecutionResult:
    """Construct the item's action, or a failed result if that is impossible."""
    try:
        action = registry.build(item, backend)
    except Exception as e:
        return ExecutionResult.failure(
            item.name,
            item.type,
            f"Cannot construct action: {e}",
            error_kind=ErrorKind.VALIDATION,
            severity=item.severity,
        )
    if action is None:
        return ExecutionResult.failure(
            item.name,
            item.type,
            f"No action registered for type '{item.type}'",
            error_kind=ErrorKind.VALIDATION,
            severity=item.severity,
        )
    return action


def run_units(
    units: list[Callable[[], ExecutionResult]],
    parallel: bool = False,
    max_workers: int = 4,
    stop_on_critical: bool = False,
) -> ExecutionReport:
    """Run independent work units and collect one result per unit.

    Args:
        units: Zero-arg callables, each returning one ExecutionResult.
        parallel: Run on a thread pool instead of one at a time.
        max_workers: Pool size in parallel mode.
        stop_on_critical: Stop scheduling further units after a
            critical failure. Units already running finish; nothing is
            partially applied.

    Returns:
        ExecutionReport with results in input order.
    """
    collector = ResultCollector()
    report = ExecutionReport()

    if not parallel or len(units) <= 1:
        for index, unit in enumerate(units):
            result = unit()
            collector.add(index, result)
            _log_result(result)
            if stop_on_critical and result.critical_failure:
                report.aborted = True
                report.abort_reason = f"Critical failure in {result.item_type}:{result.item_name}"
                break
        report.results = collector.results()
        return report

    stop = threading.Event()

    def _guarded(index: int, unit: Callable[[], ExecutionResult]) -> None:
        if stop.is_set():
            return
        result = unit()
        collector.add(index, result)
        _log_result(result)
        if stop_on_critical and result.critical_failure:
            stop.set()

    with concurrent.futures.ThreadPoolExecutor(max_workers=max(1, max_workers)) as pool:
        futures = [pool.submit(_guarded, i, u) for i, u in enumerate(units)]
        for future in concurrent.futures.as_completed(futures):
            future.result()

    report.results = collector.results()
    if stop.is_set():
        first = next(r for r in report.results if r.critical_failure)
        report.aborted = True
        report.abort_reason = f"Critical failure in {first.item_type}:{first.item_name}"
    return report


def apply_configuration(
    configuration: Configuration,
    registry: ActionRegistry,
    backend: MutationBackend,
    control: RunControl | None = None,
    parallel: bool = False,
    max_workers: int = 4,
    stop_on_critical: bool = False,
) -> ExecutionReport:
    """Apply every enabled item of a configuration.

    Disabled items produce no result.  Items whose type tag cannot be
    resolved produce a failed result with ``error_kind=validation``.
    """
    control = control or RunControl()

    def _unit(item: ConfigurationItem) -> Callable[[], ExecutionResult]:
        def _run() -> ExecutionResult:
            built = build_or_fail(item, registry, backend)
            if isinstance(built, ExecutionResult):
                return built
            return execute_item(built, control)

        return _run

    units = [_unit(item) for item in configuration.enabled_items]
    logger.info(
        "Applying configuration '%s' (%d of %d items enabled)",
        configuration.name,
        len(units),
        len(configuration.items),
    )
    return run_units(units, parallel=parallel, max_workers=max_workers, stop_on_critical=stop_on_critical)


def _log_result(result: ExecutionResult) -> None:
    status_marker = {
        ItemStatus.APPLIED: "✓",
        ItemStatus.NOT_NEEDED: "=",
        ItemStatus.SKIPPED: "⊘",
        ItemStatus.FAILED: "✗",
    }[result.status]
    logger.info("%s %s:%s → %s", status_marker, result.item_type, result.item_name, result.status)


def generate_run_id() -> str:
    """Generate a unique run ID."""
    now = datetime.now(UTC).strftime("%Y%m%d-%H%M%S")
    short = uuid.uuid4().hex[:6]
    return f"run-{now}-{short}"
