"""Dependency manifest files (deps.yaml).

A manifest lists every module with the namespaces it provides and requires
so the whole graph is known before the first require():

```yaml
modules:
  - path: lib/events.py
    provides: [app.events]
    requires: [app.core]
```

Manifests can be written by hand or generated from module scripts with
scan_sources(), which picks up literal provide("...")/require("...") calls.
"""

from __future__ import annotations

import logging
import re
from pathlib import Path
from typing import TYPE_CHECKING

import yaml
from pydantic import BaseModel
from pydantic import Field
from pydantic import ValidationError

from .errors import ManifestError
from .utils.error_format import format_error_message

if TYPE_CHECKING:
    from .loader import LoaderContext

logger = logging.getLogger(__name__)

DEFAULT_MANIFEST_NAME = "deps.yaml"

_CALL_PATTERN = re.compile(r"""\b(provide|require)\(\s*(['"])([^'"\s]+)\2\s*\)""")


class DependencyEntry(BaseModel):
    """One module of the manifest."""

    path: str = Field(description="Module path, relative to the loader base path")
    provides: list[str] = Field(default_factory=list, description="Namespaces the module provides")
    requires: list[str] = Field(default_factory=list, description="Namespaces the module requires")


class DependencyManifest(BaseModel):
    """All modules of a manifest, in registration order."""

    modules: list[DependencyEntry] = Field(default_factory=list)


def load_manifest(path: Path | str) -> DependencyManifest:
    """Read and validate a manifest file.

    An empty file yields an empty manifest.

    Raises:
        ManifestError: Unreadable file, invalid YAML or schema mismatch
    """
    manifest_path = Path(path)
    try:
        text = manifest_path.read_text(encoding="utf-8")
    except OSError as e:
        raise ManifestError(str(manifest_path), format_error_message(e)) from e

    try:
        data = yaml.safe_load(text)
    except yaml.YAMLError as e:
        raise ManifestError(str(manifest_path), f"invalid YAML: {e}") from e

    if data is None:
        return DependencyManifest()
    if not isinstance(data, dict):
        raise ManifestError(str(manifest_path), "expected a mapping with a 'modules' list")

    try:
        return DependencyManifest.model_validate(data)
    except ValidationError as e:
        raise ManifestError(str(manifest_path), str(e)) from e


def dump_manifest(manifest: DependencyManifest, path: Path | str) -> None:
    """Write a manifest as YAML, creating parent directories."""
    manifest_path = Path(path)
    manifest_path.parent.mkdir(parents=True, exist_ok=True)
    with open(manifest_path, "w", encoding="utf-8") as f:
        yaml.dump(manifest.model_dump(), f, default_flow_style=False, sort_keys=False)
    logger.info(f"Wrote manifest with {len(manifest.modules)} modules to {manifest_path}")


def apply_manifest(manifest: DependencyManifest, context: LoaderContext) -> None:
    """Register every manifest entry with a loader context, in order."""
    for entry in manifest.modules:
        context.add_dependency(entry.path, entry.provides, entry.requires)


def scan_sources(root: Path | str) -> DependencyManifest:
    """Build a manifest from the provide/require calls of module scripts.

    Args:
        root: Directory containing module scripts (*.py)

    Returns:
        Manifest with one entry per script that provides or requires anything,
        paths relative to root. Requires satisfied by the script itself are dropped.

    Raises:
        ManifestError: A script cannot be read as UTF-8 text
    """
    root_path = Path(root)
    entries = []
    for script in sorted(root_path.rglob("*.py")):
        provides: dict[str, None] = {}
        requires: dict[str, None] = {}
        try:
            source = script.read_text(encoding="utf-8")
        except (OSError, UnicodeDecodeError) as e:
            raise ManifestError(str(script), format_error_message(e)) from e

        for match in _CALL_PATTERN.finditer(source):
            kind, name = match.group(1), match.group(3)
            (provides if kind == "provide" else requires)[name] = None

        if not provides and not requires:
            continue
        entries.append(
            DependencyEntry(
                path=script.relative_to(root_path).as_posix(),
                provides=list(provides),
                requires=[name for name in requires if name not in provides],
            )
        )
        logger.debug(f"[manifest:scan] {script}")

    return DependencyManifest(modules=entries)
