"""Injectors: make a module's source available and executed in the host.

The loader calls ``inject(module_path)`` at most once per module path, in
dependency order. An injector returns True on success and False when the
module could not be delivered; async injectors return an awaitable of that.

Scripts executed by the file injectors see the loader API as globals:
``loader``, ``provide``, ``require``, ``export_symbol``, ``get_object``
and ``set_test_only``.
"""

from __future__ import annotations

import asyncio
import logging
import runpy
from collections.abc import Awaitable
from collections.abc import Callable
from pathlib import Path
from typing import TYPE_CHECKING
from typing import Any
from typing import Protocol
from typing import runtime_checkable

if TYPE_CHECKING:
    from .loader import LoaderContext

logger = logging.getLogger(__name__)

SCRIPT_RUN_NAME = "__nsloader_script__"


@runtime_checkable
class Injector(Protocol):
    """Delivers a module to the host environment."""

    def inject(self, module_path: str) -> bool | Awaitable[bool]: ...


class CallableInjector:
    """Adapts a plain callable to the Injector protocol.

    A callable returning None counts as success.
    """

    def __init__(self, func: Callable[[str], Any]):
        self.func = func

    def inject(self, module_path: str) -> bool | Awaitable[bool]:
        result = self.func(module_path)
        if asyncio.iscoroutine(result):
            return result
        return result is None or bool(result)


class FileInjector:
    """Executes Python module scripts found under a base directory."""

    def __init__(self, base_path: Path | str, context: LoaderContext):
        """Initialize injector.

        Args:
            base_path: Directory module paths are relative to
            context: Loader context exposed to executed scripts
        """
        self.base_path = Path(base_path)
        self.context = context
        self._executed: set[str] = set()

    def inject(self, module_path: str) -> bool:
        """Read and execute the script for a module path.

        Returns:
            True once the script ran (or had already run), False if missing
        """
        if module_path in self._executed:
            logger.debug(f"[inject:file] {module_path} already executed")
            return True

        script = self.script_path(module_path)
        if not script.is_file():
            logger.warning(f"[inject:file] {module_path} not found at {script}")
            return False

        runpy.run_path(str(script), init_globals=self.script_globals(script), run_name=SCRIPT_RUN_NAME)
        self._mark_executed(module_path)
        return True

    def script_path(self, module_path: str) -> Path:
        return self.base_path / module_path

    def script_globals(self, script: Path) -> dict[str, Any]:
        """Build the globals a module script runs with."""
        context = self.context
        return {
            "__name__": SCRIPT_RUN_NAME,
            "__file__": str(script),
            "loader": context,
            "provide": context.provide,
            "require": context.require,
            "export_symbol": context.export_symbol,
            "get_object": context.get_object,
            "set_test_only": context.set_test_only,
        }

    def _mark_executed(self, module_path: str) -> None:
        self._executed.add(module_path)
        logger.debug(f"[inject:file] executed {module_path}")


class AsyncFileInjector(FileInjector):
    """File injector that reads scripts off the event loop.

    Reading happens in a worker thread; execution happens on the loop thread
    so scripts observe the loader state in request order.
    """

    async def inject(self, module_path: str) -> bool:  # type: ignore[override]
        if module_path in self._executed:
            logger.debug(f"[inject:file] {module_path} already executed")
            return True

        script = self.script_path(module_path)
        try:
            source = await asyncio.to_thread(script.read_text, encoding="utf-8")
        except FileNotFoundError:
            logger.warning(f"[inject:file] {module_path} not found at {script}")
            return False

        exec(compile(source, str(script), "exec"), self.script_globals(script))
        self._mark_executed(module_path)
        return True
