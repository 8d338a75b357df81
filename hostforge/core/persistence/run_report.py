"""
Run reports — one JSON document per orchestration run.

Stored as ``<report_dir>/<run_id>.json``.  Writes are atomic (temp file
in the same directory, then rename) so a crash never leaves a half
report behind.
"""

from __future__ import annotations

import json
import logging
from pathlib import Path

from hostforge.core.config.loader import atomic_write_text
from hostforge.core.models.run import OrchestrationRunResult

logger = logging.getLogger(__name__)


def report_path(report_dir: Path, run_id: str) -> Path:
    return report_dir / f"{run_id}.json"


def save_run_report(result: OrchestrationRunResult, report_dir: Path) -> Path:
    """Write the run result.  Returns the report path."""
    path = report_path(report_dir, result.run_id)
    content = json.dumps(result.to_dict(), indent=2, ensure_ascii=False) + "\n"
    atomic_write_text(path, content, prefix=".run_")
    logger.debug("Run report saved to %s", path)
    return path


def load_run_report(path: Path) -> OrchestrationRunResult | None:
    """Read a report back.  Missing or corrupt files give None."""
    if not path.is_file():
        return None
    try:
        data = json.loads(path.read_text(encoding="utf-8"))
        data.pop("status", None)
        return OrchestrationRunResult.model_validate(data)
    except json.JSONDecodeError as e:
        logger.warning("Corrupt run report %s: %s", path, e)
        return None
    except Exception as e:
        logger.warning("Cannot load run report %s: %s", path, e)
        return None


def list_run_reports(report_dir: Path) -> list[Path]:
    """Report files, newest run id first."""
    if not report_dir.is_dir():
        return []
    return sorted(report_dir.glob("run-*.json"), reverse=True)
