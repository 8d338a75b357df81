"""
Run use case — load a configuration and execute one orchestration run.

The full vertical slice from a configuration file to an audited run
report: settings, backend, plugins, profile, orchestrator.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from hostforge.actions.base import MutationBackend
from hostforge.core.config.loader import load_configuration
from hostforge.core.engine.orchestrator import Orchestrator
from hostforge.core.errors import HostforgeError
from hostforge.core.models.item import Configuration
from hostforge.core.models.run import OrchestrationRunResult
from hostforge.core.persistence.backup import BackupProvider
from hostforge.core.profile import ProfileProvider, StaticProfileProvider
from hostforge.core.use_cases.common import open_context, resolve_backend
from hostforge.plugins.catalog import PluginCatalog

logger = logging.getLogger(__name__)


@dataclass
class RunResult:
    """Result of the run use case."""

    run: OrchestrationRunResult | None = None
    configuration: Configuration | None = None
    config_path: Path | None = None
    error: str | None = None
    error_kind: str | None = None
    overrides: dict[str, Any] = field(default_factory=dict)

    @property
    def ok(self) -> bool:
        return self.error is None and self.run is not None and self.run.success

    def to_dict(self) -> dict:
        if self.error:
            return {"error": self.error, "kind": self.error_kind}
        data: dict[str, Any] = {
            "config_path": str(self.config_path) if self.config_path else None,
            "configuration": self.configuration.name if self.configuration else None,
        }
        if self.run:
            data["run"] = self.run.to_dict()
        return data


def run_configuration(
    config_path: Path,
    settings_path: Path | None = None,
    profile_path: Path | None = None,
    dry_run: bool | None = None,
    mock: bool = False,
    recommend: bool | None = None,
    apply_recommendations: bool | None = None,
    rollback: bool | None = None,
    parallel: bool | None = None,
    backup: bool | None = None,
    backend: MutationBackend | None = None,
    backend_spec: str | None = None,
    catalog: PluginCatalog | None = None,
    profile_provider: ProfileProvider | None = None,
    backup_provider: BackupProvider | None = None,
) -> RunResult:
    """Execute one orchestration run for a configuration file.

    ``None`` for any toggle means "as configured in hostforge.yml".

    Returns:
        RunResult; ``error`` is set only when the run could not start.
        Failures during the run are reported in ``run.error``.
    """
    result = RunResult(config_path=config_path)

    try:
        configuration = load_configuration(config_path)
        result.configuration = configuration
        chosen_backend = resolve_backend(backend, backend_spec, mock)
        context = open_context(settings_path, backend=chosen_backend, catalog=catalog)
    except HostforgeError as e:
        result.error = e.message
        result.error_kind = str(e.kind)
        return result

    overrides = {
        key: value
        for key, value in {
            "dry_run": dry_run,
            "generate_recommendations": recommend,
            "apply_recommendations": apply_recommendations,
            "rollback_on_failure": rollback,
            "parallel": parallel,
            "create_backup": backup,
        }.items()
        if value is not None
    }
    result.overrides = overrides
    settings = context.settings.orchestrator.model_copy(update=overrides)

    if len(context.plugins):
        try:
            bulk = context.plugins.load_all()
        except HostforgeError as e:
            result.error = e.message
            result.error_kind = str(e.kind)
            return result
        for name, reason in bulk.failed.items():
            logger.warning("Plugin %s not loaded: %s", name, reason)

    if profile_provider is None and profile_path is not None:
        profile_provider = StaticProfileProvider(profile_path)

    orchestrator = Orchestrator(
        context,
        profile_provider=profile_provider,
        backup_provider=backup_provider,
    )
    result.run = orchestrator.run(configuration, settings=settings)
    return result
