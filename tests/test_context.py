"""
Tests for engine context wiring and shared use-case helpers.
"""

from pathlib import Path

import pytest

from hostforge.actions.mock import InMemoryBackend
from hostforge.actions.registry import ActionRegistry
from hostforge.core.config.settings import PluginSettings, Settings
from hostforge.core.context import EngineContext
from hostforge.core.errors import ConfigError
from hostforge.core.models.plugin import PluginState
from hostforge.core.use_cases.common import load_object, open_context, resolve_backend
from hostforge.core.use_cases.config_check import check_configuration
from hostforge.plugins.base import BasePlugin
from hostforge.plugins.catalog import PluginCatalog


class _Marker(BasePlugin):
    pass


def _descriptors(directory: Path) -> Path:
    directory.mkdir()
    (directory / "core.yml").write_text("Name: core\nVersion: 1.0.0\n")
    (directory / "dev.yml").write_text("Name: dev\nVersion: 1.0.0\nDependencies: [core]\n")
    (directory / "orphan.yml").write_text("Name: orphan\nVersion: 1.0.0\nDependencies: [ghost]\n")
    return directory


# ── EngineContext ───────────────────────────────────────────────────


class TestEngineContext:
    def test_defaults(self, tmp_path: Path):
        context = EngineContext.create(root=tmp_path)
        assert isinstance(context.backend, InMemoryBackend)
        assert len(context.plugins) == 0
        assert context.root == tmp_path.resolve()

    def test_contexts_are_independent(self, tmp_path: Path):
        a = EngineContext.create(root=tmp_path)
        b = EngineContext.create(root=tmp_path)
        assert a.plugins is not b.plugins
        assert a.backend is not b.backend

    def test_resolve(self, tmp_path: Path):
        context = EngineContext.create(root=tmp_path)
        assert context.resolve("a/b") == tmp_path.resolve() / "a" / "b"
        assert context.resolve("/abs") == Path("/abs")

    def test_descriptor_dir(self, tmp_path: Path):
        _descriptors(tmp_path / "plugins")
        catalog = PluginCatalog()
        catalog.register("core", _Marker)
        settings = Settings(plugins=PluginSettings(descriptor_dir="plugins"))

        context = EngineContext.create(settings=settings, catalog=catalog, root=tmp_path)

        assert [r.name for r in context.plugins.list_plugins()] == ["core", "dev"]
        assert isinstance(context.plugins.get("core").implementation, _Marker)

    def test_auto_load(self, tmp_path: Path):
        _descriptors(tmp_path / "plugins")
        settings = Settings(plugins=PluginSettings(descriptor_dir="plugins", auto_load=True))
        context = EngineContext.create(settings=settings, root=tmp_path)
        assert context.plugins.snapshot() == {"core": PluginState.LOADED, "dev": PluginState.LOADED}

    def test_wiring(self, tmp_path: Path):
        context = EngineContext.create(root=tmp_path)
        assert "Package" in context.actions.list_types()
        assert context.recommendations.rules()


# ── Use-case helpers ────────────────────────────────────────────────


class TestLoadObject:
    def test_resolves(self):
        assert load_object("pathlib:Path") is Path

    def test_malformed(self):
        with pytest.raises(ConfigError, match="module:attribute"):
            load_object("pathlib.Path")

    def test_missing_module(self):
        with pytest.raises(ConfigError, match="Cannot import"):
            load_object("no_such_module_xyz:thing")

    def test_missing_attribute(self):
        with pytest.raises(ConfigError, match="no attribute"):
            load_object("pathlib:Nope")


class TestResolveBackend:
    def test_explicit_wins(self):
        backend = InMemoryBackend()
        assert resolve_backend(backend, "pathlib:Path", mock=True) is backend

    def test_factory(self):
        assert isinstance(resolve_backend(backend_spec="hostforge.actions.mock:InMemoryBackend"), InMemoryBackend)

    def test_factory_failure(self):
        with pytest.raises(ConfigError, match="failed"):
            resolve_backend(backend_spec="json:loads")

    def test_mock(self):
        assert isinstance(resolve_backend(mock=True), InMemoryBackend)

    def test_nothing_selected(self):
        with pytest.raises(ConfigError, match="No mutation backend"):
            resolve_backend()


class TestOpenContext:
    def test_rooted_at_settings(self, write_settings, tmp_path: Path):
        path = write_settings("orchestrator:\n  dry_run: true\n")
        context = open_context(path)
        assert context.root == tmp_path.resolve()
        assert context.settings.orchestrator.dry_run

    def test_invalid_settings(self, write_settings):
        with pytest.raises(ConfigError):
            open_context(write_settings("orchestrator: 3\n"))


class TestConfigCheckUseCase:
    def test_plugin_types_are_known(self, write_config):
        registry = ActionRegistry()
        registry.register("Shell", lambda item, backend: None)
        path = write_config({"name": "c", "items": [{"name": "s", "type": "Shell"}]})
        result = check_configuration(path, registry=registry)
        assert result.valid
        assert result.warnings == []

    def test_load_error(self, tmp_path: Path):
        result = check_configuration(tmp_path / "nope.json")
        assert not result.valid
        assert result.configuration is None
        assert "not found" in result.errors[0]
