"""Settings manager for nsloader settings.yaml files.

Manages three-scope settings system:
- User global (~/.nsloader/settings.yaml)
- Project (.nsloader/settings.yaml)
- Local (.nsloader/settings.local.yaml)

Loader options live under the ``loader`` key:

```yaml
loader:
  base_path: src/scripts
  manifest: deps.yaml
  no_deps: false
  debug_loader: true
  debug: true
  log_level: INFO
```

Environment variables (NSLOADER_BASE_PATH, NSLOADER_MANIFEST, ...) override
every file scope.
"""

import logging
import os
from pathlib import Path
from typing import Any
from typing import Literal

import yaml
from pydantic import BaseModel
from pydantic import Field

from .manifest import DEFAULT_MANIFEST_NAME

logger = logging.getLogger(__name__)

ScopeType = Literal["user", "project", "local"]

# Environment variable -> loader setting
ENV_OVERRIDES: dict[str, str] = {
    "NSLOADER_BASE_PATH": "base_path",
    "NSLOADER_MANIFEST": "manifest",
    "NSLOADER_NO_DEPS": "no_deps",
    "NSLOADER_DEBUG_LOADER": "debug_loader",
    "NSLOADER_DEBUG": "debug",
    "NSLOADER_LOG_PATH": "log_path",
    "NSLOADER_LOG_LEVEL": "log_level",
}


class LoaderSettings(BaseModel):
    """Effective loader options."""

    base_path: Path = Field(default=Path("."), description="Directory module paths are relative to")
    manifest: str = Field(default=DEFAULT_MANIFEST_NAME, description="Manifest file, relative to base_path")
    no_deps: bool = Field(default=False, description="Skip loading the manifest automatically")
    debug_loader: bool = Field(default=True, description="Load missing namespaces on require()")
    debug: bool = Field(default=True, description="Allow test-only modules")
    log_path: str | None = Field(default=None, description="JSONL log file (default: NSLOADER_LOG_PATH)")
    log_level: str = Field(default="INFO", description="Log level for the JSONL log")

    @property
    def manifest_path(self) -> Path:
        return self.base_path / self.manifest


class SettingsManager:
    """Manages settings across user/project/local scopes."""

    def __init__(self, nsloader_dir: Path | None = None, user_settings_file: Path | None = None):
        """Initialize settings manager with standard paths.

        Args:
            nsloader_dir: Base directory for project/local settings (for testing).
                          If None, uses .nsloader in current directory.
            user_settings_file: User settings file (for testing).
                          If None, uses ~/.nsloader/settings.yaml.
        """
        if nsloader_dir is None:
            nsloader_dir = Path(".nsloader")

        self.user_settings_file = user_settings_file or Path.home() / ".nsloader" / "settings.yaml"
        self.project_settings_file = nsloader_dir / "settings.yaml"
        self.local_settings_file = nsloader_dir / "settings.local.yaml"

    def get_loader_settings(self, environ: dict[str, str] | None = None) -> LoaderSettings:
        """Get effective loader settings.

        Resolution order (later overrides earlier):
        1. User settings
        2. Project settings
        3. Local settings
        4. Environment variables

        Raises:
            pydantic.ValidationError: A setting has an invalid value
        """
        environ = os.environ if environ is None else environ
        values: dict[str, Any] = dict(self.get_merged_settings().get("loader") or {})

        for env_key, setting in ENV_OVERRIDES.items():
            if env_key in environ:
                values[setting] = environ[env_key]

        return LoaderSettings.model_validate(values)

    def set_loader_value(self, key: str, value: Any, scope: ScopeType = "project") -> Path:
        """Set one loader setting in a scope's settings file.

        Returns:
            The settings file that was written

        Raises:
            KeyError: Unknown loader setting
        """
        if key not in LoaderSettings.model_fields:
            raise KeyError(key)

        target_file = self._file_for_scope(scope)
        self._update_settings(target_file, {"loader": {key: value}})
        logger.info(f"Set loader.{key} = {value!r} at {scope} scope")
        return target_file

    def get_merged_settings(self) -> dict[str, Any]:
        """Get merged settings from all scopes.

        Merge order (later overrides earlier):
        1. User settings
        2. Project settings
        3. Local settings

        Returns:
            Merged settings dictionary
        """
        merged: dict[str, Any] = {}

        for path in (self.user_settings_file, self.project_settings_file, self.local_settings_file):
            settings = self._read_settings(path)
            if settings:
                merged = self._deep_merge(merged, settings)

        return merged

    def _file_for_scope(self, scope: ScopeType) -> Path:
        file_map = {
            "user": self.user_settings_file,
            "project": self.project_settings_file,
            "local": self.local_settings_file,
        }
        return file_map[scope]

    def _read_settings(self, path: Path) -> dict[str, Any] | None:
        """Read settings from YAML file.

        Args:
            path: Path to settings file

        Returns:
            Settings dict or None if file doesn't exist or can't be parsed
        """
        if not path.exists():
            return None

        try:
            with open(path) as f:
                data = yaml.safe_load(f)
                return data if isinstance(data, dict) else {}
        except (OSError, yaml.YAMLError) as e:
            logger.warning(f"Failed to read settings from {path}: {e}")
            return None

    def _write_settings(self, path: Path, settings: dict[str, Any]) -> None:
        """Write settings to YAML file.

        Args:
            path: Path to settings file
            settings: Settings dictionary
        """
        path.parent.mkdir(parents=True, exist_ok=True)

        try:
            with open(path, "w") as f:
                yaml.dump(settings, f, default_flow_style=False, sort_keys=False)
        except OSError as e:
            logger.error(f"Failed to write settings to {path}: {e}")
            raise

    def _update_settings(self, path: Path, updates: dict[str, Any]) -> None:
        """Update settings file with new values (deep merge)."""
        existing = self._read_settings(path) or {}
        merged = self._deep_merge(existing, updates)
        self._write_settings(path, merged)

    def _deep_merge(self, base: dict[str, Any], overlay: dict[str, Any]) -> dict[str, Any]:
        """Deep merge two dictionaries.

        Args:
            base: Base dictionary
            overlay: Overlay dictionary (takes precedence)

        Returns:
            Merged dictionary
        """
        result = base.copy()

        for key, value in overlay.items():
            if key in result and isinstance(result[key], dict) and isinstance(value, dict):
                result[key] = self._deep_merge(result[key], value)
            else:
                result[key] = value

        return result
