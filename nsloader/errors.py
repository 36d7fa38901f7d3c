"""Error taxonomy for namespace registration, resolution and injection.

Every error carries the offending namespace or module path both as an
attribute and in its message so callers can fix a manifest or declaration.
"""


class LoaderError(Exception):
    """Base class for all loader errors."""


class InvalidNamespaceError(LoaderError):
    """Raised when a namespace path is malformed or cannot be materialized."""

    def __init__(self, namespace: str, reason: str):
        self.namespace = namespace
        self.reason = reason
        super().__init__(f"Invalid namespace '{namespace}': {reason}")


class DuplicateNamespaceError(LoaderError):
    """Raised when the same namespace is declared twice."""

    def __init__(self, namespace: str):
        self.namespace = namespace
        super().__init__(f"Namespace '{namespace}' already declared")


class NamespaceConflictError(LoaderError):
    """Raised when two different modules claim the same namespace."""

    def __init__(self, namespace: str, owner: str, claimant: str):
        self.namespace = namespace
        self.owner = owner
        self.claimant = claimant
        super().__init__(
            f"Namespace '{namespace}' is already provided by '{owner}', cannot be provided by '{claimant}'"
        )


class ModuleRedeclarationError(LoaderError):
    """Raised when a module path is registered again with different provides/requires."""

    def __init__(self, module_path: str):
        self.module_path = module_path
        super().__init__(f"Module '{module_path}' already registered with different dependencies")


class UnresolvedDependencyError(LoaderError):
    """Raised when a required namespace has no known owning module."""

    def __init__(self, namespace: str, required_by: str | None = None):
        self.namespace = namespace
        self.required_by = required_by
        message = f"Could not find a module providing '{namespace}'"
        if required_by:
            message += f" (required by '{required_by}')"
        super().__init__(message)


class InjectionError(LoaderError):
    """Raised when the injector fails to deliver a module."""

    def __init__(self, module_path: str, reason: str | None = None):
        self.module_path = module_path
        self.reason = reason
        message = f"Failed to inject module '{module_path}'"
        if reason:
            message += f": {reason}"
        super().__init__(message)


class TestOnlyError(LoaderError):
    """Raised when test-only code is loaded into a non-debug context."""

    __test__ = False  # not a pytest test class

    def __init__(self, message: str | None = None):
        self.detail = message
        text = "Importing test-only code into non-debug environment"
        super().__init__(f"{text}: {message}" if message else f"{text}.")


class ManifestError(LoaderError):
    """Raised when a dependency manifest cannot be read or validated."""

    def __init__(self, path: str, reason: str):
        self.path = path
        self.reason = reason
        super().__init__(f"Invalid manifest '{path}': {reason}")
