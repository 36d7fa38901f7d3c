"""Namespace registry: dotted paths to materialized containers and values.

Declaring ``a.b.c`` materializes the containers ``a``, ``a.b`` and ``a.b.c``.
Ancestors that were never declared themselves are tracked as *implicit*
namespaces so that a later ``declare("a.b")`` is still accepted.

Materialization is a tagged variant:
- Undeclared: nothing lives at the path
- Container: a Namespace object lives at the path
- Value: an exported value lives at the path
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from typing import Any

from .errors import DuplicateNamespaceError
from .errors import InvalidNamespaceError

logger = logging.getLogger(__name__)

_NAMESPACE_PATTERN = re.compile(r"^[^\s.]+(\.[^\s.]+)*$")


def split_namespace(namespace: str) -> list[str]:
    """Split a dotted namespace path into its segments.

    Args:
        namespace: Dotted path such as "app.events.Event"

    Returns:
        List of path segments

    Raises:
        InvalidNamespaceError: Empty path, empty segment or whitespace
    """
    if not isinstance(namespace, str) or not namespace:
        raise InvalidNamespaceError(str(namespace), "namespace must be a non-empty string")
    if not _NAMESPACE_PATTERN.match(namespace):
        raise InvalidNamespaceError(namespace, "segments must be non-empty and contain no whitespace")
    return namespace.split(".")


def ancestors_of(namespace: str) -> list[str]:
    """Return the proper prefixes of a namespace, longest first.

    Example: "a.b.c" -> ["a.b", "a"]
    """
    parts = split_namespace(namespace)
    return [".".join(parts[:i]) for i in range(len(parts) - 1, 0, -1)]


class Namespace:
    """Attribute-access container materialized for a namespace path.

    Assigning an attribute stores a value (or nests another Namespace);
    reading it back returns the stored object.
    """

    __slots__ = ("_name", "_members")

    def __init__(self, name: str):
        object.__setattr__(self, "_name", name)
        object.__setattr__(self, "_members", {})

    def __getattr__(self, item: str) -> Any:
        members = object.__getattribute__(self, "_members")
        if item not in members:
            name = object.__getattribute__(self, "_name")
            raise AttributeError(f"Namespace '{name}' has no member '{item}'")
        member = members[item]
        return member if isinstance(member, Namespace) else member.value

    def __setattr__(self, key: str, value: Any) -> None:
        if key in Namespace.__slots__:
            raise AttributeError(f"'{key}' is reserved")
        self._members[key] = value if isinstance(value, Namespace) else Value(value)

    def __delattr__(self, key: str) -> None:
        try:
            del self._members[key]
        except KeyError:
            raise AttributeError(f"Namespace '{self._name}' has no member '{key}'") from None

    def __contains__(self, key: str) -> bool:
        return key in self._members

    def __iter__(self):
        return iter(list(self._members))

    def __repr__(self) -> str:
        return f"<Namespace {self._name or '<root>'}: {', '.join(self._members)}>"


@dataclass(frozen=True)
class Undeclared:
    """Nothing is materialized at the path."""


@dataclass(frozen=True)
class Container:
    """A Namespace container is materialized at the path."""

    namespace: Namespace


@dataclass(frozen=True)
class Value:
    """An exported value is materialized at the path."""

    value: Any


Materialization = Undeclared | Container | Value

UNDECLARED = Undeclared()

_MISSING = object()


class NamespaceRegistry:
    """Canonical mapping of namespace paths to materialized objects.

    Enforces declare-once: a namespace that is materialized and not implicit
    cannot be declared again.
    """

    def __init__(self) -> None:
        self._root = Namespace("")
        self._implicit: set[str] = set()

    @property
    def root(self) -> Namespace:
        """Top-level container holding every materialized namespace."""
        return self._root

    def declare(self, namespace: str) -> Namespace:
        """Declare a namespace, materializing it and its ancestors as containers.

        Ancestors that are not already materialized become implicit namespaces.
        A path that was implicit is promoted to an explicit declaration.

        Args:
            namespace: Dotted namespace path

        Returns:
            The container materialized at the path

        Raises:
            DuplicateNamespaceError: The namespace is already declared
            InvalidNamespaceError: Malformed path, or a segment holds a value
        """
        parts = split_namespace(namespace)
        if self.is_declared(namespace):
            raise DuplicateNamespaceError(namespace)
        self._check_extendable(namespace, parts, include_last=True)

        self._implicit.discard(namespace)
        for ancestor in ancestors_of(namespace):
            if not isinstance(self.resolve(ancestor), Undeclared):
                break
            self._implicit.add(ancestor)

        container = self._export_path(parts)
        logger.debug(f"[namespace:declare] {namespace}")
        return container

    def is_declared(self, namespace: str) -> bool:
        """Check whether a namespace is materialized and not merely implicit."""
        if namespace in self._implicit:
            return False
        return not isinstance(self.resolve(namespace), Undeclared)

    def is_implicit(self, namespace: str) -> bool:
        return namespace in self._implicit

    def implicit_namespaces(self) -> frozenset[str]:
        return frozenset(self._implicit)

    def resolve(self, namespace: str) -> Materialization:
        """Look up what is materialized at a namespace path.

        Pure lookup: nothing is created. A value of None counts as undeclared.
        """
        node = self._lookup(split_namespace(namespace))
        if isinstance(node, Namespace):
            return Container(node)
        if isinstance(node, Value) and node.value is not None:
            return node
        return UNDECLARED

    def get_object(self, namespace: str, default: Any = None) -> Any:
        """Return the object at a namespace path, or default if undeclared."""
        materialized = self.resolve(namespace)
        if isinstance(materialized, Container):
            return materialized.namespace
        if isinstance(materialized, Value):
            return materialized.value
        return default

    def export_symbol(self, namespace: str, value: Any) -> None:
        """Store a value at a namespace path, creating ancestor containers.

        Unlike declare(), ancestors are not marked implicit and an existing
        value at the final segment is overwritten.
        """
        parts = split_namespace(namespace)
        self._check_extendable(namespace, parts, include_last=False)
        self._export_path(parts, value)
        logger.debug(f"[namespace:export] {namespace}")

    def _lookup(self, parts: list[str]) -> Namespace | Value | None:
        current: Namespace | Value = self._root
        for part in parts:
            if not isinstance(current, Namespace):
                return None
            member = current._members.get(part)
            if member is None:
                return None
            current = member
        return current

    def _check_extendable(self, namespace: str, parts: list[str], include_last: bool) -> None:
        checked = parts if include_last else parts[:-1]
        current: Namespace = self._root
        for index, part in enumerate(checked):
            member = current._members.get(part)
            if member is None:
                return
            if isinstance(member, Value):
                if member.value is None:
                    return
                prefix = ".".join(parts[: index + 1])
                raise InvalidNamespaceError(namespace, f"'{prefix}' holds a value, not a namespace")
            current = member

    def _export_path(self, parts: list[str], value: Any = _MISSING) -> Namespace:
        current = self._root
        for index, part in enumerate(parts):
            if index == len(parts) - 1 and value is not _MISSING:
                setattr(current, part, value)
                return current
            member = current._members.get(part)
            if isinstance(member, Namespace):
                current = member
                continue
            created = Namespace(".".join(parts[: index + 1]))
            current._members[part] = created
            current = created
        return current
