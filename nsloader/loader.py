"""Loader context: registry, dependency index and injection sequencing.

One LoaderContext owns all process-wide loader state (declared namespaces,
registered modules, already-injected modules). Create one per host
environment and pass it to whatever declares or requests namespaces;
tests simply create a fresh one.

A resolution pass plans the modules owning the requested namespaces, then
injects them strictly in order. A ``require`` issued while a pass is running
(typically by a module script being injected) is queued for the next pass.
"""

from __future__ import annotations

import asyncio
import inspect
import logging
from collections.abc import Iterable
from pathlib import Path
from typing import Any

from .dependency_index import DependencyIndex
from .dependency_index import ModuleRecord
from .dependency_index import normalize_module_path
from .errors import InjectionError
from .errors import LoaderError
from .errors import NamespaceConflictError
from .errors import TestOnlyError
from .errors import UnresolvedDependencyError
from .injection import Injector
from .manifest import DependencyManifest
from .manifest import apply_manifest
from .manifest import load_manifest
from .namespaces import Namespace
from .namespaces import NamespaceRegistry
from .resolver import DependencyResolver
from .resolver import LoadPlan
from .utils.error_format import format_error_message

logger = logging.getLogger(__name__)


class LoaderContext:
    """Namespace registry plus on-demand, ordered, at-most-once module injection.

    Attributes:
        registry: Declared namespaces and their materialized objects
        index: Module provides/requires
        resolver: Plans injection order
        injector: Delivers modules to the host (None: planning only)
        debug_loader: When True, require() loads missing namespaces on demand
        debug: When False, set_test_only() refuses to run
    """

    def __init__(
        self,
        injector: Injector | None = None,
        *,
        debug_loader: bool = True,
        debug: bool = True,
    ):
        self.registry = NamespaceRegistry()
        self.index = DependencyIndex()
        self.resolver = DependencyResolver(self.registry, self.index)
        self.injector = injector
        self.debug_loader = debug_loader
        self.debug = debug
        self._injected: dict[str, None] = {}
        self._pending: dict[str, None] = {}
        self._in_pass = False
        self._pass_count = 0
        self._current_module: str | None = None
        # async pass in progress: owning task and completion signal for other tasks
        self._pass_task: asyncio.Task | None = None
        self._pass_done: asyncio.Future | None = None

    # ------------------------------------------------------------------
    # Declare interface
    # ------------------------------------------------------------------

    def provide(self, namespace: str) -> Namespace:
        """Declare a namespace owned by the calling module.

        While a module is being injected, the namespace is also recorded as
        owned by that module.

        Returns:
            The container materialized for the namespace

        Raises:
            DuplicateNamespaceError: The namespace is already declared
            NamespaceConflictError: Another module owns the namespace
        """
        current = self._current_module
        if current is not None:
            owner = self.index.owner_of(namespace)
            if owner is not None and owner != current:
                raise NamespaceConflictError(namespace, owner, current)

        container = self.registry.declare(namespace)
        if current is not None:
            self.index.claim(namespace, current)
        return container

    def require(self, namespace: str) -> None:
        """Declare a dependency, loading its owning module if needed.

        Raises:
            UnresolvedDependencyError: Not provided and no module can provide it
            InjectionError: The owning module (or a dependency) failed to load
        """
        if self.is_provided(namespace):
            return

        if not self.debug_loader:
            raise UnresolvedDependencyError(namespace, required_by=self._current_module)

        owner = self.index.owner_of(namespace)
        if owner is None:
            logger.error(f"[loader:require] could not find: {namespace}")
            raise UnresolvedDependencyError(namespace, required_by=self._current_module)

        self._pending[owner] = None
        if self._in_pass:
            logger.debug(f"[loader:require] {namespace} queued for next pass ({owner})")
            return
        self.flush()

    def set_test_only(self, message: str | None = None) -> None:
        """Mark the calling code as test-only.

        Raises:
            TestOnlyError: The context is not running in debug mode
        """
        if not self.debug:
            raise TestOnlyError(message)

    def export_symbol(self, namespace: str, value: Any) -> None:
        self.registry.export_symbol(namespace, value)

    def get_object(self, namespace: str, default: Any = None) -> Any:
        return self.registry.get_object(namespace, default)

    # ------------------------------------------------------------------
    # Manifest interface
    # ------------------------------------------------------------------

    def add_dependency(
        self,
        module_path: str,
        provides: Iterable[str],
        requires: Iterable[str] = (),
    ) -> ModuleRecord:
        """Register a module's provides and requires ahead of any require()."""
        return self.index.register_module(module_path, provides, requires)

    def load_manifest(self, path: Path | str) -> DependencyManifest:
        """Register every module listed in a manifest file."""
        manifest = load_manifest(path)
        apply_manifest(manifest, self)
        logger.info(f"Loaded {len(manifest.modules)} modules from {path}")
        return manifest

    # ------------------------------------------------------------------
    # Query interface
    # ------------------------------------------------------------------

    def is_provided(self, namespace: str) -> bool:
        return self.registry.is_declared(namespace)

    def owner_of(self, namespace: str) -> str | None:
        return self.index.owner_of(namespace)

    def is_injected(self, module_path: str) -> bool:
        return normalize_module_path(module_path) in self._injected

    def injected_modules(self) -> list[str]:
        """Injected module paths, in injection order."""
        return list(self._injected)

    @property
    def current_module(self) -> str | None:
        """Module path currently being injected, if any."""
        return self._current_module

    def plan(self, *namespaces: str) -> LoadPlan:
        """Plan the injections needed for namespaces without injecting anything."""
        return self.resolver.resolve_namespaces(namespaces, self._injected)

    # ------------------------------------------------------------------
    # Resolution passes
    # ------------------------------------------------------------------

    def load(self, *namespaces: str) -> list[str]:
        """Run resolution passes until the namespaces are loaded.

        Returns:
            Module paths injected by this call, in order (empty if all provided)

        Raises:
            UnresolvedDependencyError: A namespace or requirement has no owner
            InjectionError: A module failed to load; earlier ones stay injected
        """
        self._request(namespaces)
        return self.flush()

    def flush(self) -> list[str]:
        """Drain queued requests, one resolution pass at a time."""
        if self._in_pass:
            return []

        injected: list[str] = []
        self._in_pass = True
        try:
            while self._pending:
                for module_path in self._next_pass():
                    self._inject(module_path)
                    injected.append(module_path)
        except LoaderError:
            self._pending.clear()
            raise
        finally:
            self._in_pass = False
        return injected

    async def load_async(self, *namespaces: str) -> list[str]:
        """Async load(): awaits each module's completion before the next.

        A call from another task while a pass is running waits for that pass
        to finish, then runs its own pass for whatever is still missing.
        Called from inside the running pass (an injector or script), the
        request is queued for the next pass and [] is returned.
        """
        if not self._joins_current_pass():
            await self._wait_for_pass()
        self._request(namespaces)
        return await self.flush_async()

    async def flush_async(self) -> list[str]:
        if self._joins_current_pass():
            return []
        await self._wait_for_pass()

        injected: list[str] = []
        self._in_pass = True
        self._pass_task = asyncio.current_task()
        self._pass_done = asyncio.get_running_loop().create_future()
        try:
            while self._pending:
                for module_path in self._next_pass():
                    await self._inject_async(module_path)
                    injected.append(module_path)
        except LoaderError:
            self._pending.clear()
            raise
        finally:
            self._in_pass = False
            self._pass_task = None
            self._pass_done.set_result(None)
            self._pass_done = None
        return injected

    def _joins_current_pass(self) -> bool:
        """True when called from inside the running pass rather than beside it."""
        if not self._in_pass:
            return False
        # a synchronous pass cannot be awaited
        return self._pass_done is None or self._pass_task is asyncio.current_task()

    async def _wait_for_pass(self) -> None:
        while self._pass_done is not None:
            await asyncio.shield(self._pass_done)

    def _request(self, namespaces: Iterable[str]) -> None:
        owners = []
        for namespace in namespaces:
            if self.is_provided(namespace):
                continue
            owner = self.index.owner_of(namespace)
            if owner is None:
                raise UnresolvedDependencyError(namespace)
            owners.append(owner)
        self._pending.update(dict.fromkeys(owners))

    def _next_pass(self) -> list[str]:
        requested = list(self._pending)
        self._pending.clear()
        self._pass_count += 1
        plan = self.resolver.plan(requested, self._injected)
        logger.debug(f"[loader:pass] #{self._pass_count} requested={requested} order={plan.order}")
        return plan.order

    def _inject(self, module_path: str) -> None:
        delivered = self._call_injector(module_path)
        if inspect.isawaitable(delivered):
            if asyncio.iscoroutine(delivered):
                delivered.close()
            raise InjectionError(module_path, "injector is asynchronous, use load_async()")
        self._finish(module_path, delivered)

    async def _inject_async(self, module_path: str) -> None:
        delivered = self._call_injector(module_path)
        if inspect.isawaitable(delivered):
            # coroutine injectors run their body here, so the module is current again
            self._current_module = module_path
            try:
                delivered = await delivered
            except LoaderError:
                raise
            except Exception as e:
                raise InjectionError(module_path, format_error_message(e)) from e
            finally:
                self._current_module = None
        self._finish(module_path, delivered)

    def _call_injector(self, module_path: str) -> Any:
        if self.injector is None:
            raise InjectionError(module_path, "no injector configured")
        self._current_module = module_path
        try:
            return self.injector.inject(module_path)
        except LoaderError:
            raise
        except Exception as e:
            raise InjectionError(module_path, format_error_message(e)) from e
        finally:
            self._current_module = None

    def _finish(self, module_path: str, delivered: Any) -> None:
        if delivered is False:
            raise InjectionError(module_path, "injector could not deliver the module")

        self._injected[module_path] = None
        logger.debug(f"[loader:inject] {module_path}")

        record = self.index.get(module_path)
        if record is None:
            return
        missing = [ns for ns in record.provides if not self.registry.is_declared(ns)]
        if missing:
            logger.warning(f"[loader:inject] {module_path} did not provide {', '.join(missing)}")


# Process-wide default context for host code that does not pass one around
_default_context: LoaderContext | None = None


def get_default_context() -> LoaderContext:
    """Get the process-wide default loader context, creating it on first use."""
    global _default_context
    if _default_context is None:
        _default_context = LoaderContext()
    return _default_context


def reset_default_context(context: LoaderContext | None = None) -> LoaderContext:
    """Replace the default context (a fresh one when None) and return it."""
    global _default_context
    _default_context = context or LoaderContext()
    return _default_context
