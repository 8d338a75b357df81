"""
SystemProfile — what the recommendation rules know about the host.

Profiles are produced by an external ProfileProvider.  The engine only
reads them; ``hardware_category`` and ``gaps`` are derived here so every
rule sees the same classification.
"""

from __future__ import annotations

from datetime import UTC, datetime
from enum import StrEnum

from pydantic import BaseModel, Field


def _now_iso() -> str:
    """Current UTC time as ISO string."""
    return datetime.now(UTC).isoformat()


class HardwareCategory(StrEnum):
    HIGH_END = "HighEnd"
    MID_RANGE = "MidRange"
    LOW_END = "LowEnd"


class UserCategory(StrEnum):
    DEVELOPER = "Developer"
    GAMER = "Gamer"
    OFFICE = "Office"
    CREATIVE = "Creative"
    GENERAL = "General"


class HardwareInfo(BaseModel):
    cpu_cores: int = 0
    memory_gb: float = 0.0
    gpu_vendor: str = ""          # nvidia, amd, intel, "" when unknown
    gpu_model: str = ""
    disk_total_gb: float = 0.0
    disk_free_gb: float = 0.0
    is_laptop: bool = False

    @property
    def disk_free_ratio(self) -> float:
        if self.disk_total_gb <= 0:
            return 1.0
        return self.disk_free_gb / self.disk_total_gb


class SoftwareInfo(BaseModel):
    packages: list[str] = Field(default_factory=list)
    features: list[str] = Field(default_factory=list)
    tools: list[str] = Field(default_factory=list)

    def has_package(self, package_id: str) -> bool:
        wanted = package_id.lower()
        return any(p.lower() == wanted for p in self.packages)

    def has_feature(self, name: str) -> bool:
        wanted = name.lower()
        return any(f.lower() == wanted for f in self.features)

    def has_tool(self, name: str) -> bool:
        wanted = name.lower()
        return any(t.lower() == wanted for t in self.tools)


class ProfileScores(BaseModel):
    """0–100 health scores reported by the profiler."""

    performance: int = 50
    security: int = 50
    maintenance: int = 50

    def to_dict(self) -> dict[str, int]:
        return self.model_dump()


class SystemProfile(BaseModel):
    hostname: str = ""
    os_name: str = ""
    os_version: str = ""
    collected_at: str = Field(default_factory=_now_iso)

    hardware: HardwareInfo = Field(default_factory=HardwareInfo)
    software: SoftwareInfo = Field(default_factory=SoftwareInfo)
    user_category: UserCategory = UserCategory.GENERAL
    scores: ProfileScores = Field(default_factory=ProfileScores)

    @property
    def is_windows(self) -> bool:
        return self.os_name.lower().startswith("windows")

    @property
    def hardware_category(self) -> HardwareCategory:
        hw = self.hardware
        if hw.cpu_cores >= 8 and hw.memory_gb >= 16:
            return HardwareCategory.HIGH_END
        if hw.cpu_cores >= 4 and hw.memory_gb >= 8:
            return HardwareCategory.MID_RANGE
        return HardwareCategory.LOW_END

    @property
    def gaps(self) -> list[str]:
        """Detected problems the rules react to, in a fixed order."""
        found: list[str] = []
        if self.scores.security < 60:
            found.append("low_security_score")
        if self.scores.performance < 50:
            found.append("low_performance_score")
        if self.scores.maintenance < 50:
            found.append("low_maintenance_score")
        if self.hardware.disk_total_gb > 0 and self.hardware.disk_free_ratio < 0.15:
            found.append("low_disk_space")
        return found
