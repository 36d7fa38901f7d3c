"""Tests for scoped settings and the context factory."""

from pathlib import Path

import pytest
import yaml
from pydantic import ValidationError

from nsloader.errors import UnresolvedDependencyError
from nsloader.injection import AsyncFileInjector
from nsloader.injection import FileInjector
from nsloader.paths import create_loader_context
from nsloader.settings import LoaderSettings
from nsloader.settings import SettingsManager


@pytest.fixture
def manager(tmp_path) -> SettingsManager:
    return SettingsManager(
        nsloader_dir=tmp_path / "project" / ".nsloader",
        user_settings_file=tmp_path / "home" / ".nsloader" / "settings.yaml",
    )


def write_yaml(path: Path, data: dict) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(yaml.dump(data))


class TestLoaderSettings:
    """Tests for scope resolution."""

    def test_defaults(self, manager):
        settings = manager.get_loader_settings(environ={})

        assert settings == LoaderSettings()
        assert settings.manifest_path == Path("deps.yaml")
        assert settings.debug_loader is True
        assert settings.no_deps is False

    def test_scopes_override_in_order(self, manager):
        write_yaml(manager.user_settings_file, {"loader": {"base_path": "user", "log_level": "DEBUG"}})
        write_yaml(manager.project_settings_file, {"loader": {"base_path": "project", "debug": False}})
        write_yaml(manager.local_settings_file, {"loader": {"base_path": "local"}})

        settings = manager.get_loader_settings(environ={})
        assert settings.base_path == Path("local")
        assert settings.log_level == "DEBUG"
        assert settings.debug is False

    def test_environment_overrides_files(self, manager):
        write_yaml(manager.local_settings_file, {"loader": {"manifest": "local.yaml", "no_deps": False}})

        settings = manager.get_loader_settings(
            environ={"NSLOADER_MANIFEST": "env.yaml", "NSLOADER_NO_DEPS": "true"}
        )
        assert settings.manifest == "env.yaml"
        assert settings.no_deps is True

    def test_invalid_value(self, manager):
        with pytest.raises(ValidationError):
            manager.get_loader_settings(environ={"NSLOADER_DEBUG_LOADER": "maybe"})

    def test_unreadable_file_is_skipped(self, manager):
        manager.project_settings_file.parent.mkdir(parents=True)
        manager.project_settings_file.write_text("loader: [unclosed\n")

        assert manager.get_loader_settings(environ={}) == LoaderSettings()

    def test_unrelated_sections_are_ignored(self, manager):
        write_yaml(manager.project_settings_file, {"editor": {"theme": "dark"}})
        assert manager.get_loader_settings(environ={}) == LoaderSettings()


class TestSetLoaderValue:
    """Tests for writing settings."""

    def test_set_project_value(self, manager):
        written = manager.set_loader_value("base_path", "scripts")

        assert written == manager.project_settings_file
        assert yaml.safe_load(written.read_text()) == {"loader": {"base_path": "scripts"}}
        assert manager.get_loader_settings(environ={}).base_path == Path("scripts")

    def test_set_preserves_other_keys(self, manager):
        write_yaml(manager.local_settings_file, {"loader": {"debug": False}, "other": 1})

        manager.set_loader_value("no_deps", True, scope="local")
        data = yaml.safe_load(manager.local_settings_file.read_text())
        assert data == {"loader": {"debug": False, "no_deps": True}, "other": 1}

    def test_set_user_scope(self, manager):
        assert manager.set_loader_value("log_level", "DEBUG", scope="user") == manager.user_settings_file

    def test_unknown_key(self, manager):
        with pytest.raises(KeyError):
            manager.set_loader_value("colour", "red")


class TestCreateLoaderContext:
    """Tests for the context factory."""

    def test_loads_manifest_from_base_path(self, tmp_path):
        write_yaml(tmp_path / "deps.yaml", {"modules": [{"path": "a.py", "provides": ["a"]}]})
        (tmp_path / "a.py").write_text('provide("a")\n')

        context = create_loader_context(LoaderSettings(base_path=tmp_path))
        assert isinstance(context.injector, FileInjector)
        assert context.load("a") == ["a.py"]

    def test_no_deps_skips_manifest(self, tmp_path):
        write_yaml(tmp_path / "deps.yaml", {"modules": [{"path": "a.py", "provides": ["a"]}]})

        context = create_loader_context(LoaderSettings(base_path=tmp_path, no_deps=True))
        assert context.owner_of("a") is None
        with pytest.raises(UnresolvedDependencyError):
            context.load("a")

    def test_missing_manifest_is_fine(self, tmp_path):
        context = create_loader_context(LoaderSettings(base_path=tmp_path))
        assert len(context.index) == 0

    def test_flags_are_applied(self, tmp_path):
        context = create_loader_context(
            LoaderSettings(base_path=tmp_path, debug_loader=False, debug=False),
            use_async=True,
        )
        assert isinstance(context.injector, AsyncFileInjector)
        assert context.debug_loader is False
        assert context.debug is False
