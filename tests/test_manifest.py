"""Tests for manifest loading, writing and source scanning."""

import pytest

from nsloader.errors import ManifestError
from nsloader.errors import NamespaceConflictError
from nsloader.loader import LoaderContext
from nsloader.manifest import DependencyEntry
from nsloader.manifest import DependencyManifest
from nsloader.manifest import apply_manifest
from nsloader.manifest import dump_manifest
from nsloader.manifest import load_manifest
from nsloader.manifest import scan_sources

MANIFEST_YAML = """\
modules:
  - path: lib/core.py
    provides: [app.core]
  - path: lib/events.py
    provides: [app.events, app.events.Event]
    requires: [app.core]
"""


class TestLoadManifest:
    """Tests for load_manifest()."""

    def test_load(self, tmp_path):
        path = tmp_path / "deps.yaml"
        path.write_text(MANIFEST_YAML)

        manifest = load_manifest(path)
        assert [entry.path for entry in manifest.modules] == ["lib/core.py", "lib/events.py"]
        assert manifest.modules[0].requires == []
        assert manifest.modules[1].provides == ["app.events", "app.events.Event"]

    def test_empty_file(self, tmp_path):
        path = tmp_path / "deps.yaml"
        path.write_text("")
        assert load_manifest(path).modules == []

    def test_missing_file(self, tmp_path):
        with pytest.raises(ManifestError) as exc_info:
            load_manifest(tmp_path / "nope.yaml")
        assert "nope.yaml" in exc_info.value.path

    def test_invalid_yaml(self, tmp_path):
        path = tmp_path / "deps.yaml"
        path.write_text("modules: [unclosed\n")
        with pytest.raises(ManifestError, match="invalid YAML"):
            load_manifest(path)

    def test_not_a_mapping(self, tmp_path):
        path = tmp_path / "deps.yaml"
        path.write_text("- just\n- a list\n")
        with pytest.raises(ManifestError, match="mapping"):
            load_manifest(path)

    def test_schema_mismatch(self, tmp_path):
        path = tmp_path / "deps.yaml"
        path.write_text("modules:\n  - provides: [x]\n")
        with pytest.raises(ManifestError):
            load_manifest(path)


class TestApplyManifest:
    """Tests for registering manifests with a context."""

    def test_apply_registers_modules(self, tmp_path):
        path = tmp_path / "deps.yaml"
        path.write_text(MANIFEST_YAML)
        context = LoaderContext()

        apply_manifest(load_manifest(path), context)
        assert context.owner_of("app.events.Event") == "lib/events.py"
        assert context.plan("app.events").order == ["lib/core.py", "lib/events.py"]

    def test_context_load_manifest(self, tmp_path, context, injector):
        path = tmp_path / "deps.yaml"
        path.write_text(MANIFEST_YAML)

        context.load_manifest(path)
        assert context.load("app.events") == ["lib/core.py", "lib/events.py"]

    def test_conflicting_manifest(self):
        manifest = DependencyManifest(
            modules=[
                DependencyEntry(path="a.py", provides=["shared"]),
                DependencyEntry(path="b.py", provides=["shared"]),
            ]
        )
        with pytest.raises(NamespaceConflictError):
            apply_manifest(manifest, LoaderContext())


class TestDumpManifest:
    """Tests for dump_manifest()."""

    def test_dump_then_load(self, tmp_path):
        manifest = DependencyManifest(
            modules=[DependencyEntry(path="lib/a.py", provides=["a"], requires=["b"])]
        )
        path = tmp_path / "out" / "deps.yaml"

        dump_manifest(manifest, path)
        assert path.exists()
        assert load_manifest(path) == manifest
        # keys keep declaration order
        assert path.read_text().index("path") < path.read_text().index("provides")


class TestScanSources:
    """Tests for scan_sources()."""

    def test_scan(self, tmp_path):
        (tmp_path / "lib").mkdir()
        (tmp_path / "lib" / "events.py").write_text(
            'provide("app.events")\nprovide("app.events.Event")\n'
            "require('app.core')\nrequire(\"app.events\")\n"
        )
        (tmp_path / "core.py").write_text('provide("app.core")\n')
        (tmp_path / "plain.py").write_text("print('nothing to see')\n")
        (tmp_path / "notes.txt").write_text('provide("ignored")\n')

        manifest = scan_sources(tmp_path)

        assert [entry.path for entry in manifest.modules] == ["core.py", "lib/events.py"]
        events = manifest.modules[1]
        assert events.provides == ["app.events", "app.events.Event"]
        assert events.requires == ["app.core"]

    def test_dynamic_names_are_skipped(self, tmp_path):
        (tmp_path / "dyn.py").write_text('name = "x"\nrequire(name)\nprovide("dyn")\n')
        manifest = scan_sources(tmp_path)
        assert manifest.modules[0].requires == []

    def test_empty_directory(self, tmp_path):
        assert scan_sources(tmp_path).modules == []

    def test_non_utf8_script_raises_manifest_error(self, tmp_path):
        script = tmp_path / "latin.py"
        script.write_bytes(b'provide("x")\n# \xff\xfe\n')

        with pytest.raises(ManifestError) as exc_info:
            scan_sources(tmp_path)
        assert exc_info.value.path == str(script)
        assert "UnicodeDecodeError" in str(exc_info.value)
