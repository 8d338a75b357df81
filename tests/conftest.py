"""
Shared test fixtures and configuration.
"""

import json
import textwrap
from pathlib import Path

import pytest

from hostforge.actions.mock import InMemoryBackend
from hostforge.core.config.settings import Settings
from hostforge.core.context import EngineContext
from hostforge.core.models.item import Configuration, ConfigurationItem
from hostforge.core.models.profile import (
    HardwareInfo,
    ProfileScores,
    SoftwareInfo,
    SystemProfile,
    UserCategory,
)
from hostforge.core.observability.log_sink import RecordingSink


@pytest.fixture
def project_root() -> Path:
    """Return the project root directory."""
    return Path(__file__).parent.parent


@pytest.fixture
def backend() -> InMemoryBackend:
    """Empty simulated host."""
    return InMemoryBackend()


@pytest.fixture
def sink() -> RecordingSink:
    return RecordingSink()


@pytest.fixture
def context(tmp_path: Path, backend: InMemoryBackend, sink: RecordingSink) -> EngineContext:
    """Engine context rooted in tmp_path, with default settings."""
    return EngineContext.create(settings=Settings(), backend=backend, log_sink=sink, root=tmp_path)


@pytest.fixture
def developer_profile() -> SystemProfile:
    """MidRange Windows developer box without Git, healthy scores."""
    return SystemProfile(
        hostname="devbox",
        os_name="Windows",
        os_version="11",
        hardware=HardwareInfo(cpu_cores=4, memory_gb=8, disk_total_gb=500, disk_free_gb=300),
        software=SoftwareInfo(packages=["Microsoft.VisualStudioCode"]),
        user_category=UserCategory.DEVELOPER,
        scores=ProfileScores(performance=70, security=80, maintenance=70),
    )


@pytest.fixture
def sample_configuration() -> Configuration:
    """Two packages and a registry value."""
    return Configuration(
        name="workstation",
        version="1.2.0",
        items=[
            ConfigurationItem(name="git", type="Package", properties={"packageId": "Git.Git"}),
            ConfigurationItem(name="7zip", type="Package", properties={"packageId": "7zip.7zip"}),
            ConfigurationItem(
                name="long-paths",
                type="Registry",
                properties={"path": "HKLM:\\FS", "name": "LongPathsEnabled", "value": 1},
            ),
        ],
        post_install_instructions=["Sign out and back in"],
    )


@pytest.fixture
def write_config(tmp_path: Path):
    """Write a configuration document as JSON and return its path."""

    def _write(document: dict, name: str = "base.json") -> Path:
        path = tmp_path / name
        path.write_text(json.dumps(document, indent=2))
        return path

    return _write


@pytest.fixture
def write_settings(tmp_path: Path):
    """Write hostforge.yml from YAML text and return its path."""

    def _write(content: str = "") -> Path:
        path = tmp_path / "hostforge.yml"
        path.write_text(textwrap.dedent(content))
        return path

    return _write
