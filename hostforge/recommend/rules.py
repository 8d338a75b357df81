"""
Static recommendation rules.

Each rule is keyed on one of three profile dimensions:

    - hardware category   (HighEnd / MidRange / LowEnd, GPU vendor, laptop)
    - user category       (Developer / Gamer / Office / Creative / General)
    - detected gaps       (low scores, low disk space)

A rule fires when its predicate holds and the thing it would install or
enable is not already present.  Confidence starts at the rule's base
value and is adjusted by fixed bonuses; no randomness anywhere, so the
same profile always yields the same recommendations.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Callable

from hostforge.core.models.item import Severity
from hostforge.core.models.profile import HardwareCategory, SystemProfile, UserCategory
from hostforge.core.models.recommendation import (
    Priority,
    Recommendation,
    RecommendationCategory,
)

ProfilePredicate = Callable[[SystemProfile], bool]
ConfidenceBonus = Callable[[SystemProfile], float]


@dataclass(frozen=True)
class RecommendationRule:
    """One static scoring rule."""

    rule_id: str
    title: str
    category: RecommendationCategory
    priority: Priority
    confidence: float
    implementation: dict[str, Any]
    applies: ProfilePredicate
    description: str = ""
    prerequisites: tuple[str, ...] = ()
    severity: Severity = Severity.NORMAL
    bonuses: tuple[ConfidenceBonus, ...] = field(default_factory=tuple)

    def score(self, profile: SystemProfile) -> float:
        value = self.confidence + sum(bonus(profile) for bonus in self.bonuses)
        return round(min(1.0, max(0.0, value)), 3)

    def evaluate(self, profile: SystemProfile) -> Recommendation | None:
        """Recommendation for this profile, or None if the rule does not fire."""
        if not self.applies(profile):
            return None
        return Recommendation(
            title=self.title,
            description=self.description,
            category=self.category,
            priority=self.priority,
            confidence=self.score(profile),
            prerequisites=list(self.prerequisites),
            implementation=dict(self.implementation),
            severity=self.severity,
            rule_id=self.rule_id,
        )


# ── Predicate helpers ───────────────────────────────────────────────


def user_is(*categories: UserCategory) -> ProfilePredicate:
    return lambda p: p.user_category in categories


def hardware_is(*categories: HardwareCategory) -> ProfilePredicate:
    return lambda p: p.hardware_category in categories


def has_gap(gap: str) -> ProfilePredicate:
    return lambda p: gap in p.gaps


def missing_package(package_id: str) -> ProfilePredicate:
    return lambda p: not p.software.has_package(package_id)


def missing_feature(feature: str) -> ProfilePredicate:
    return lambda p: not p.software.has_feature(feature)


def missing_tool(tool: str) -> ProfilePredicate:
    return lambda p: not p.software.has_tool(tool)


def windows_only(p: SystemProfile) -> bool:
    return p.is_windows


def all_of(*predicates: ProfilePredicate) -> ProfilePredicate:
    return lambda p: all(pred(p) for pred in predicates)


def bonus_if(predicate: ProfilePredicate, amount: float) -> ConfidenceBonus:
    return lambda p: amount if predicate(p) else 0.0


def _package(package_id: str, source: str = "winget") -> dict[str, Any]:
    return {"type": "Package", "package_id": package_id, "source": source}


def _feature(name: str) -> dict[str, Any]:
    return {"type": "WindowsFeature", "feature_name": name}


def _registry(path: str, name: str, value: Any, value_type: str = "DWord") -> dict[str, Any]:
    return {"type": "Registry", "path": path, "name": name, "value": value, "value_type": value_type}


def _tool(tool: str, source: str = "") -> dict[str, Any]:
    return {"type": "SystemTools", "tool": tool, "source": source}


def _generic(action: str, **payload: Any) -> dict[str, Any]:
    return {"type": "Generic", "payload": {"action": action, **payload}}


_HKCU = "HKCU:\\Software\\Microsoft"
_HKLM = "HKLM:\\SYSTEM\\CurrentControlSet"


# ── The table ───────────────────────────────────────────────────────

DEFAULT_RULES: tuple[RecommendationRule, ...] = (
    # user category: developer
    RecommendationRule(
        rule_id="dev.git",
        title="Install Git",
        description="Version control is the baseline of every development setup.",
        category=RecommendationCategory.DEVELOPMENT,
        priority=Priority.HIGH,
        confidence=0.9,
        implementation=_package("Git.Git"),
        applies=all_of(user_is(UserCategory.DEVELOPER), missing_package("Git.Git")),
    ),
    RecommendationRule(
        rule_id="dev.wsl",
        title="Enable Windows Subsystem for Linux",
        description="Run Linux toolchains natively alongside Windows.",
        category=RecommendationCategory.DEVELOPMENT,
        priority=Priority.HIGH,
        confidence=0.8,
        implementation=_feature("Microsoft-Windows-Subsystem-Linux"),
        applies=all_of(
            windows_only,
            user_is(UserCategory.DEVELOPER),
            missing_feature("Microsoft-Windows-Subsystem-Linux"),
        ),
        prerequisites=("Administrator rights", "Restart after enabling"),
        bonuses=(bonus_if(hardware_is(HardwareCategory.HIGH_END, HardwareCategory.MID_RANGE), 0.05),),
    ),
    RecommendationRule(
        rule_id="dev.vscode",
        title="Install Visual Studio Code",
        category=RecommendationCategory.DEVELOPMENT,
        priority=Priority.MEDIUM,
        confidence=0.85,
        implementation=_package("Microsoft.VisualStudioCode"),
        applies=all_of(user_is(UserCategory.DEVELOPER), missing_package("Microsoft.VisualStudioCode")),
    ),
    RecommendationRule(
        rule_id="dev.docker",
        title="Install Docker Desktop",
        description="Container workflows need at least 16 GB of memory to be comfortable.",
        category=RecommendationCategory.DEVELOPMENT,
        priority=Priority.MEDIUM,
        confidence=0.7,
        implementation=_tool("docker-desktop", "https://desktop.docker.com"),
        applies=all_of(
            user_is(UserCategory.DEVELOPER),
            hardware_is(HardwareCategory.HIGH_END),
            missing_tool("docker-desktop"),
        ),
        prerequisites=("Virtualization enabled in firmware",),
        bonuses=(bonus_if(lambda p: p.hardware.memory_gb >= 32, 0.1),),
    ),
    RecommendationRule(
        rule_id="dev.long_paths",
        title="Enable long path support",
        category=RecommendationCategory.DEVELOPMENT,
        priority=Priority.LOW,
        confidence=0.75,
        implementation=_registry(f"{_HKLM}\\Control\\FileSystem", "LongPathsEnabled", 1),
        applies=all_of(windows_only, user_is(UserCategory.DEVELOPER)),
    ),
    # user category: gamer
    RecommendationRule(
        rule_id="gaming.steam",
        title="Install Steam",
        category=RecommendationCategory.GAMING,
        priority=Priority.MEDIUM,
        confidence=0.8,
        implementation=_package("Valve.Steam"),
        applies=all_of(user_is(UserCategory.GAMER), missing_package("Valve.Steam")),
    ),
    RecommendationRule(
        rule_id="gaming.game_mode",
        title="Turn on Game Mode",
        category=RecommendationCategory.GAMING,
        priority=Priority.MEDIUM,
        confidence=0.7,
        implementation=_registry(f"{_HKCU}\\GameBar", "AutoGameModeEnabled", 1),
        applies=all_of(windows_only, user_is(UserCategory.GAMER)),
        bonuses=(bonus_if(hardware_is(HardwareCategory.LOW_END, HardwareCategory.MID_RANGE), 0.1),),
    ),
    RecommendationRule(
        rule_id="gaming.gpu_tools",
        title="Install the GPU vendor control panel",
        category=RecommendationCategory.GAMING,
        priority=Priority.HIGH,
        confidence=0.85,
        implementation=_tool("gpu-control-panel"),
        applies=all_of(
            user_is(UserCategory.GAMER, UserCategory.CREATIVE),
            lambda p: p.hardware.gpu_vendor.lower() in ("nvidia", "amd"),
            missing_tool("gpu-control-panel"),
        ),
    ),
    # user category: office
    RecommendationRule(
        rule_id="office.pdf",
        title="Install a PDF reader",
        category=RecommendationCategory.PRODUCTIVITY,
        priority=Priority.LOW,
        confidence=0.65,
        implementation=_package("SumatraPDF.SumatraPDF"),
        applies=all_of(user_is(UserCategory.OFFICE), missing_package("SumatraPDF.SumatraPDF")),
    ),
    RecommendationRule(
        rule_id="office.cloud_sync",
        title="Enable file sync client",
        category=RecommendationCategory.PRODUCTIVITY,
        priority=Priority.MEDIUM,
        confidence=0.6,
        implementation=_package("Microsoft.OneDrive"),
        applies=all_of(user_is(UserCategory.OFFICE), missing_package("Microsoft.OneDrive")),
    ),
    # user category: creative
    RecommendationRule(
        rule_id="creative.media_tools",
        title="Install media toolkit",
        category=RecommendationCategory.CREATIVE,
        priority=Priority.MEDIUM,
        confidence=0.75,
        implementation=_tool("ffmpeg"),
        applies=all_of(user_is(UserCategory.CREATIVE), missing_tool("ffmpeg")),
        bonuses=(bonus_if(hardware_is(HardwareCategory.HIGH_END), 0.05),),
    ),
    # hardware category
    RecommendationRule(
        rule_id="hw.visual_effects",
        title="Reduce visual effects",
        description="Favour responsiveness over animations on constrained hardware.",
        category=RecommendationCategory.PERFORMANCE,
        priority=Priority.HIGH,
        confidence=0.8,
        implementation=_registry(
            f"{_HKCU}\\Windows\\CurrentVersion\\Explorer\\VisualEffects", "VisualFXSetting", 2
        ),
        applies=all_of(windows_only, hardware_is(HardwareCategory.LOW_END)),
        bonuses=(bonus_if(lambda p: p.hardware.memory_gb < 4, 0.1),),
    ),
    RecommendationRule(
        rule_id="hw.high_performance_power",
        title="Use the high performance power plan",
        category=RecommendationCategory.PERFORMANCE,
        priority=Priority.MEDIUM,
        confidence=0.65,
        implementation=_generic("power_plan", plan="high_performance"),
        applies=all_of(hardware_is(HardwareCategory.HIGH_END), lambda p: not p.hardware.is_laptop),
        bonuses=(bonus_if(user_is(UserCategory.GAMER, UserCategory.CREATIVE), 0.1),),
    ),
    RecommendationRule(
        rule_id="hw.battery_saver",
        title="Tune battery saver threshold",
        category=RecommendationCategory.PERFORMANCE,
        priority=Priority.LOW,
        confidence=0.55,
        implementation=_generic("power_plan", plan="balanced", battery_saver_threshold=30),
        applies=lambda p: p.hardware.is_laptop,
    ),
    # detected gaps
    RecommendationRule(
        rule_id="gap.security_baseline",
        title="Apply security baseline",
        description="Security score is below the recommended threshold.",
        category=RecommendationCategory.SECURITY,
        priority=Priority.HIGH,
        confidence=0.9,
        implementation=_generic("security_baseline", firewall=True, realtime_protection=True),
        applies=has_gap("low_security_score"),
        bonuses=(bonus_if(lambda p: p.scores.security < 30, 0.05),),
    ),
    RecommendationRule(
        rule_id="gap.disk_cleanup",
        title="Free disk space",
        category=RecommendationCategory.MAINTENANCE,
        priority=Priority.HIGH,
        confidence=0.85,
        implementation=_generic("disk_cleanup", targets=["temp", "update_cache", "recycle_bin"]),
        applies=has_gap("low_disk_space"),
        bonuses=(bonus_if(lambda p: p.hardware.disk_free_ratio < 0.05, 0.1),),
    ),
    RecommendationRule(
        rule_id="gap.startup_apps",
        title="Trim startup applications",
        category=RecommendationCategory.PERFORMANCE,
        priority=Priority.MEDIUM,
        confidence=0.6,
        implementation=_generic("startup_review"),
        applies=has_gap("low_performance_score"),
        bonuses=(bonus_if(hardware_is(HardwareCategory.LOW_END), 0.15),),
    ),
    RecommendationRule(
        rule_id="gap.update_tooling",
        title="Install package update tooling",
        category=RecommendationCategory.MAINTENANCE,
        priority=Priority.MEDIUM,
        confidence=0.7,
        implementation=_package("Microsoft.AppInstaller"),
        applies=all_of(
            has_gap("low_maintenance_score"),
            missing_package("Microsoft.AppInstaller"),
        ),
    ),
)
