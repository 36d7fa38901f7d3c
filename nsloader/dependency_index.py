"""Dependency index: which namespaces each module provides and requires.

Module paths are locators ("lib/events.py"), namespaces are dotted paths
("app.events"). A namespace is owned by at most one module.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable
from collections.abc import Iterator
from dataclasses import dataclass

from .errors import ModuleRedeclarationError
from .errors import NamespaceConflictError
from .namespaces import split_namespace

logger = logging.getLogger(__name__)


def normalize_module_path(module_path: str) -> str:
    """Normalize a module path to forward slashes."""
    return module_path.replace("\\", "/")


def _unique(names: Iterable[str]) -> tuple[str, ...]:
    # dict keeps first-seen order
    return tuple(dict.fromkeys(names))


@dataclass(frozen=True)
class ModuleRecord:
    """Provides and requires declared for one module path."""

    path: str
    provides: tuple[str, ...]
    requires: tuple[str, ...]


class DependencyIndex:
    """Per-module provides/requires plus the namespace → module reverse index."""

    def __init__(self) -> None:
        self._records: dict[str, ModuleRecord] = {}
        self._owners: dict[str, str] = {}
        self._claims: dict[str, list[str]] = {}

    def register_module(
        self,
        module_path: str,
        provides: Iterable[str],
        requires: Iterable[str] = (),
    ) -> ModuleRecord:
        """Record what a module provides and requires.

        All provides are checked before anything is stored, so a conflict
        leaves the index untouched. Requires are recorded as given; they may
        name namespaces provided by modules registered later.

        Args:
            module_path: Module locator
            provides: Namespaces owned by the module
            requires: Namespaces the module needs before it can run

        Returns:
            The module record (the existing one for an identical re-registration)

        Raises:
            NamespaceConflictError: A namespace is owned by another module
            ModuleRedeclarationError: The module is already registered differently
            InvalidNamespaceError: A namespace path is malformed
        """
        path = normalize_module_path(module_path)
        record = ModuleRecord(path=path, provides=_unique(provides), requires=_unique(requires))
        for namespace in (*record.provides, *record.requires):
            split_namespace(namespace)

        existing = self._records.get(path)
        if existing is not None:
            if existing == record:
                logger.debug(f"[deps:register] {path} already registered, ignoring")
                return existing
            raise ModuleRedeclarationError(path)

        for namespace in record.provides:
            owner = self._owners.get(namespace)
            if owner is not None and owner != path:
                raise NamespaceConflictError(namespace, owner, path)

        self._records[path] = record
        for namespace in record.provides:
            self._owners[namespace] = path
        logger.debug(f"[deps:register] {path} provides={list(record.provides)} requires={list(record.requires)}")
        return record

    def claim(self, namespace: str, module_path: str) -> None:
        """Record runtime ownership of a namespace provided by an executing module.

        Raises:
            NamespaceConflictError: The namespace is owned by another module
        """
        split_namespace(namespace)
        path = normalize_module_path(module_path)
        owner = self._owners.get(namespace)
        if owner == path:
            return
        if owner is not None:
            raise NamespaceConflictError(namespace, owner, path)
        self._owners[namespace] = path
        self._claims.setdefault(path, []).append(namespace)
        logger.debug(f"[deps:claim] {namespace} -> {path}")

    def owner_of(self, namespace: str) -> str | None:
        """Return the module providing a namespace, or None if unknown."""
        return self._owners.get(namespace)

    def requires_of(self, module_path: str) -> tuple[str, ...]:
        """Return the namespaces a module requires, in registration order."""
        record = self._records.get(normalize_module_path(module_path))
        return record.requires if record else ()

    def provides_of(self, module_path: str) -> tuple[str, ...]:
        """Return declared and runtime-claimed namespaces of a module."""
        path = normalize_module_path(module_path)
        record = self._records.get(path)
        declared = record.provides if record else ()
        return _unique((*declared, *self._claims.get(path, ())))

    def get(self, module_path: str) -> ModuleRecord | None:
        return self._records.get(normalize_module_path(module_path))

    def modules(self) -> list[str]:
        """Registered module paths in registration order."""
        return list(self._records)

    def __contains__(self, module_path: object) -> bool:
        return isinstance(module_path, str) and normalize_module_path(module_path) in self._records

    def __iter__(self) -> Iterator[ModuleRecord]:
        return iter(list(self._records.values()))

    def __len__(self) -> int:
        return len(self._records)
