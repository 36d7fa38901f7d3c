"""Namespace registry and dependency loader.

Modules declare the dotted namespaces they provide and require; the loader
computes a load order satisfying every declared dependency and injects each
module exactly once, in order, on demand.
"""

from .dependency_index import DependencyIndex
from .dependency_index import ModuleRecord
from .errors import DuplicateNamespaceError
from .errors import InjectionError
from .errors import InvalidNamespaceError
from .errors import LoaderError
from .errors import ManifestError
from .errors import ModuleRedeclarationError
from .errors import NamespaceConflictError
from .errors import TestOnlyError
from .errors import UnresolvedDependencyError
from .injection import AsyncFileInjector
from .injection import CallableInjector
from .injection import FileInjector
from .injection import Injector
from .loader import LoaderContext
from .loader import get_default_context
from .loader import reset_default_context
from .manifest import DependencyEntry
from .manifest import DependencyManifest
from .manifest import load_manifest
from .manifest import scan_sources
from .namespaces import Namespace
from .namespaces import NamespaceRegistry
from .resolver import DependencyResolver
from .resolver import LoadPlan

__all__ = [
    "AsyncFileInjector",
    "CallableInjector",
    "DependencyEntry",
    "DependencyIndex",
    "DependencyManifest",
    "DependencyResolver",
    "DuplicateNamespaceError",
    "FileInjector",
    "InjectionError",
    "Injector",
    "InvalidNamespaceError",
    "LoadPlan",
    "LoaderContext",
    "LoaderError",
    "ManifestError",
    "ModuleRecord",
    "ModuleRedeclarationError",
    "Namespace",
    "NamespaceConflictError",
    "NamespaceRegistry",
    "TestOnlyError",
    "UnresolvedDependencyError",
    "get_default_context",
    "load_manifest",
    "reset_default_context",
    "scan_sources",
]
