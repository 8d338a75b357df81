"""
Tests for profile providers — static documents and host probes.
"""

import json
from pathlib import Path

import pytest

from hostforge.core.errors import ErrorKind, ProfileError
from hostforge.core.models.profile import SystemProfile, UserCategory
from hostforge.core.profile import (
    FixedProfileProvider,
    PlatformProfileProvider,
    ProfileProvider,
    StaticProfileProvider,
)


class TestStaticProfileProvider:
    def test_json(self, tmp_path: Path, developer_profile):
        path = tmp_path / "profile.json"
        path.write_text(developer_profile.model_dump_json())
        assert StaticProfileProvider(path).get_system_profile() == developer_profile

    def test_yaml(self, tmp_path: Path):
        path = tmp_path / "profile.yml"
        path.write_text(
            "hostname: gamer-rig\n"
            "os_name: Windows\n"
            "user_category: Gamer\n"
            "hardware: {cpu_cores: 16, memory_gb: 32, gpu_vendor: nvidia}\n"
        )
        profile = StaticProfileProvider(path).get_system_profile()
        assert profile.user_category == UserCategory.GAMER
        assert profile.hardware_category == "HighEnd"

    def test_missing(self, tmp_path: Path):
        with pytest.raises(ProfileError) as exc:
            StaticProfileProvider(tmp_path / "nope.json").get_system_profile()
        assert exc.value.kind == ErrorKind.PROFILE

    def test_unparsable(self, tmp_path: Path):
        path = tmp_path / "profile.json"
        path.write_text("{oops")
        with pytest.raises(ProfileError, match="Cannot parse"):
            StaticProfileProvider(path).get_system_profile()

    def test_not_a_mapping(self, tmp_path: Path):
        path = tmp_path / "profile.json"
        path.write_text(json.dumps([1]))
        with pytest.raises(ProfileError, match="mapping"):
            StaticProfileProvider(path).get_system_profile()

    def test_invalid_values(self, tmp_path: Path):
        path = tmp_path / "profile.json"
        path.write_text(json.dumps({"user_category": "Astronaut"}))
        with pytest.raises(ProfileError, match="Invalid profile"):
            StaticProfileProvider(path).get_system_profile()


class TestOtherProviders:
    def test_fixed(self, developer_profile):
        assert FixedProfileProvider(developer_profile).get_system_profile() is developer_profile

    def test_protocol(self, tmp_path: Path):
        assert isinstance(StaticProfileProvider(tmp_path), ProfileProvider)
        assert isinstance(PlatformProfileProvider(), ProfileProvider)

    def test_platform_probe(self, tmp_path: Path):
        profile = PlatformProfileProvider(
            user_category=UserCategory.CREATIVE,
            disk_path=str(tmp_path),
            security_score=75,
        ).get_system_profile()
        assert isinstance(profile, SystemProfile)
        assert profile.user_category == UserCategory.CREATIVE
        assert profile.hardware.disk_total_gb >= profile.hardware.disk_free_gb
        assert profile.scores.security == 75
        assert 0 <= profile.scores.maintenance <= 100

    def test_platform_bad_disk(self, tmp_path: Path):
        with pytest.raises(ProfileError):
            PlatformProfileProvider(disk_path=str(tmp_path / "missing")).get_system_profile()
