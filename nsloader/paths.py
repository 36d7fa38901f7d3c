"""Path policy and dependency factories for the CLI and host applications.

Libraries receive their collaborators via injection; this module provides
the default choices.
"""

import logging
from pathlib import Path

from .injection import AsyncFileInjector
from .injection import FileInjector
from .loader import LoaderContext
from .settings import LoaderSettings
from .settings import SettingsManager

logger = logging.getLogger(__name__)


def get_settings_dir() -> Path:
    """Get the project settings directory (.nsloader/).

    When running from the home directory, the project scope would collide
    with the user scope, so the user directory is used for both.
    """
    if Path.cwd() == Path.home():
        return Path.home() / ".nsloader"
    return Path(".nsloader")


def create_settings_manager() -> SettingsManager:
    """Create settings manager with the standard path policy."""
    return SettingsManager(nsloader_dir=get_settings_dir())


def create_loader_context(
    settings: LoaderSettings | None = None,
    *,
    use_async: bool = False,
) -> LoaderContext:
    """Create a loader context wired to a file injector.

    Unless ``no_deps`` is set, the manifest at ``base_path / manifest`` is
    registered when it exists.

    Args:
        settings: Loader settings (default: read from settings files/env)
        use_async: Use the async file injector (drive with load_async())

    Returns:
        Ready-to-use LoaderContext
    """
    if settings is None:
        settings = create_settings_manager().get_loader_settings()

    context = LoaderContext(debug_loader=settings.debug_loader, debug=settings.debug)
    injector_cls = AsyncFileInjector if use_async else FileInjector
    context.injector = injector_cls(settings.base_path, context)

    if settings.no_deps:
        logger.debug("Manifest loading disabled (no_deps)")
    elif settings.manifest_path.is_file():
        context.load_manifest(settings.manifest_path)
    else:
        logger.debug(f"No manifest at {settings.manifest_path}")

    return context
