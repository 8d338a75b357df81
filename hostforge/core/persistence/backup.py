"""
Backup & restore — snapshot taken before a run mutates anything.

A backup is a timestamped directory::

    <base_dir>/backup_20260101T120000_<run>/
        profile.json     — the SystemProfile the run started from
        packages.json    — backend.package_manifest()
        manifest.json    — when, which run, which files

``restore`` hands ``packages.json`` back to the backend.  Both
directions raise ``BackupError``; the orchestrator decides whether
that is fatal.
"""

from __future__ import annotations

import json
import logging
import re
import shutil
from datetime import UTC, datetime
from pathlib import Path
from typing import Any, Protocol, runtime_checkable

from pydantic import BaseModel, Field

from hostforge.actions.base import MutationBackend
from hostforge.core.errors import BackupError
from hostforge.core.models.profile import SystemProfile

logger = logging.getLogger(__name__)

_NAME_RE = re.compile(r"^backup_\d{8}T\d{6}")


class BackupHandle(BaseModel):
    """Opaque-to-the-orchestrator reference to a snapshot."""

    path: str
    created_at: str = Field(default_factory=lambda: datetime.now(UTC).isoformat())
    files: list[str] = Field(default_factory=list)
    metadata: dict[str, Any] = Field(default_factory=dict)


@runtime_checkable
class BackupProvider(Protocol):
    def backup(self, profile: SystemProfile | None) -> BackupHandle: ...
    def restore(self, handle: BackupHandle) -> None: ...


class FileBackupProvider:
    """Writes snapshots under ``base_dir`` and restores packages from them."""

    def __init__(self, base_dir: Path, backend: MutationBackend, label: str = ""):
        self.base_dir = Path(base_dir)
        self.backend = backend
        self.label = label

    def backup(self, profile: SystemProfile | None) -> BackupHandle:
        stamp = datetime.now(UTC).strftime("%Y%m%dT%H%M%S")
        name = f"backup_{stamp}_{self.label}" if self.label else f"backup_{stamp}"
        target = self.base_dir / name
        suffix = 1
        while target.exists():
            target = self.base_dir / f"{name}.{suffix}"
            suffix += 1

        try:
            packages = self.backend.package_manifest()
        except Exception as e:
            raise BackupError(f"Cannot read package manifest: {e}") from e

        files: dict[str, Any] = {"packages.json": packages}
        if profile is not None:
            files["profile.json"] = profile.model_dump(mode="json")

        try:
            target.mkdir(parents=True)
        except OSError as e:
            raise BackupError(f"Cannot create backup directory {target}: {e}") from e

        try:
            for filename, data in files.items():
                (target / filename).write_text(
                    json.dumps(data, indent=2, ensure_ascii=False) + "\n",
                    encoding="utf-8",
                )
            handle = BackupHandle(
                path=str(target),
                files=sorted(files),
                metadata={"label": self.label, "packages": len(packages)},
            )
            (target / "manifest.json").write_text(
                json.dumps(handle.model_dump(mode="json"), indent=2) + "\n",
                encoding="utf-8",
            )
        except OSError as e:
            shutil.rmtree(target, ignore_errors=True)
            raise BackupError(f"Cannot write backup to {target}: {e}") from e

        logger.info("Backup created: %s (%d packages)", target, len(packages))
        return handle

    def restore(self, handle: BackupHandle) -> None:
        source = Path(handle.path) / "packages.json"
        if not source.is_file():
            raise BackupError(f"Backup has no package manifest: {source}")
        try:
            manifest = json.loads(source.read_text(encoding="utf-8"))
        except (OSError, json.JSONDecodeError) as e:
            raise BackupError(f"Cannot read {source}: {e}") from e

        try:
            self.backend.restore_packages(manifest)
        except Exception as e:
            raise BackupError(f"Restore from {handle.path} failed: {e}") from e
        logger.info("Restored %d packages from %s", len(manifest), handle.path)

    def list_backups(self) -> list[BackupHandle]:
        return list_backups(self.base_dir)


def list_backups(base_dir: Path) -> list[BackupHandle]:
    """Snapshots under ``base_dir``, newest first.  Needs no backend."""
    if not base_dir.is_dir():
        return []
    handles = []
    for d in sorted(base_dir.iterdir(), reverse=True):
        if not d.is_dir() or not _NAME_RE.match(d.name):
            continue
        manifest = d / "manifest.json"
        try:
            handles.append(BackupHandle.model_validate_json(manifest.read_text(encoding="utf-8")))
        except Exception as e:
            logger.warning("Skipping unreadable backup %s: %s", d, e)
    return handles
