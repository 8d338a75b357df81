"""
Profile providers — where the SystemProfile comes from.

    StaticProfileProvider    — a JSON or YAML file (tests, --profile)
    PlatformProfileProvider  — read-only probes of the running host

The platform provider only reads: platform/os for identity, /proc for
CPU and memory, ``shutil.disk_usage`` for disk, ``lspci`` for the GPU
vendor.  Anything it cannot probe is left at its default.
"""

from __future__ import annotations

import json
import logging
import os
import platform
import shutil
import subprocess
from pathlib import Path
from typing import Protocol, runtime_checkable

import yaml

from hostforge.core.errors import ProfileError
from hostforge.core.models.profile import (
    HardwareInfo,
    ProfileScores,
    SoftwareInfo,
    SystemProfile,
    UserCategory,
)

logger = logging.getLogger(__name__)


@runtime_checkable
class ProfileProvider(Protocol):
    def get_system_profile(self) -> SystemProfile: ...


class StaticProfileProvider:
    """Reads a profile document once per call.  ``.yml``/``.yaml`` → YAML."""

    def __init__(self, path: Path):
        self.path = Path(path)

    def get_system_profile(self) -> SystemProfile:
        if not self.path.is_file():
            raise ProfileError(f"Profile file not found: {self.path}")
        try:
            raw = self.path.read_text(encoding="utf-8")
        except OSError as e:
            raise ProfileError(f"Cannot read {self.path}: {e}") from e

        try:
            if self.path.suffix.lower() in (".yml", ".yaml"):
                data = yaml.safe_load(raw)
            else:
                data = json.loads(raw)
        except (yaml.YAMLError, json.JSONDecodeError) as e:
            raise ProfileError(f"Cannot parse profile {self.path}: {e}") from e

        if not isinstance(data, dict):
            raise ProfileError(f"Profile {self.path} must be a mapping")
        try:
            profile = SystemProfile.model_validate(data)
        except Exception as e:
            raise ProfileError(f"Invalid profile in {self.path}: {e}") from e

        logger.debug("Loaded profile for %s from %s", profile.hostname or "host", self.path)
        return profile


class FixedProfileProvider:
    """Returns a profile that is already in memory."""

    def __init__(self, profile: SystemProfile):
        self._profile = profile

    def get_system_profile(self) -> SystemProfile:
        return self._profile


# ── Platform probes ─────────────────────────────────────────────


def _read_total_memory_gb() -> float:
    try:
        with open("/proc/meminfo") as f:
            for line in f:
                if line.startswith("MemTotal:"):
                    return round(int(line.split()[1]) / (1024 * 1024), 1)
    except (OSError, ValueError, IndexError):
        pass
    return 0.0


def _read_gpu() -> tuple[str, str]:
    """(vendor, model) from lspci; empty strings when unavailable."""
    if not shutil.which("lspci"):
        return "", ""
    try:
        r = subprocess.run(["lspci"], capture_output=True, text=True, timeout=5)
    except (OSError, subprocess.TimeoutExpired):
        return "", ""
    for line in r.stdout.splitlines():
        if "VGA" not in line and "3D controller" not in line:
            continue
        upper = line.upper()
        model = line.split(":", 2)[-1].strip()
        if "NVIDIA" in upper:
            return "nvidia", model
        if "AMD" in upper or "ATI" in upper:
            return "amd", model
        if "INTEL" in upper:
            return "intel", model
    return "", ""


def _is_laptop() -> bool:
    supplies = Path("/sys/class/power_supply")
    return supplies.is_dir() and any(supplies.glob("BAT*"))


class PlatformProfileProvider:
    """Probes the running host with the standard library.

    Scores are heuristics: performance follows the hardware class,
    maintenance follows free disk space.  Security cannot be probed and
    stays at the neutral default unless ``security_score`` is given.
    """

    def __init__(
        self,
        user_category: UserCategory = UserCategory.GENERAL,
        disk_path: str = "/",
        security_score: int = 50,
    ):
        self.user_category = user_category
        self.disk_path = disk_path
        self.security_score = security_score

    def get_system_profile(self) -> SystemProfile:
        try:
            usage = shutil.disk_usage(self.disk_path)
        except OSError as e:
            raise ProfileError(f"Cannot read disk usage for {self.disk_path}: {e}") from e

        gpu_vendor, gpu_model = _read_gpu()
        hardware = HardwareInfo(
            cpu_cores=os.cpu_count() or 0,
            memory_gb=_read_total_memory_gb(),
            gpu_vendor=gpu_vendor,
            gpu_model=gpu_model,
            disk_total_gb=round(usage.total / 1024**3, 1),
            disk_free_gb=round(usage.free / 1024**3, 1),
            is_laptop=_is_laptop(),
        )
        software = SoftwareInfo(
            tools=sorted(t for t in ("git", "docker", "ffmpeg", "code") if shutil.which(t)),
        )
        profile = SystemProfile(
            hostname=platform.node(),
            os_name=platform.system(),
            os_version=platform.release(),
            hardware=hardware,
            software=software,
            user_category=self.user_category,
        )
        profile.scores = ProfileScores(
            performance={"HighEnd": 80, "MidRange": 60, "LowEnd": 35}[profile.hardware_category],
            security=self.security_score,
            maintenance=int(min(100, hardware.disk_free_ratio * 200)),
        )
        logger.info(
            "Probed %s: %d cores, %.1f GB RAM, %s",
            profile.hostname, hardware.cpu_cores, hardware.memory_gb, profile.hardware_category,
        )
        return profile
