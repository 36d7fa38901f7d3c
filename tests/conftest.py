"""Pytest configuration and shared fixtures for nsloader tests."""

from collections.abc import Callable

import pytest

from nsloader.loader import LoaderContext


class FakeInjector:
    """Injector that records calls and simulates module scripts.

    By default an injected module provides every namespace it declared in
    the dependency index. ``scripts`` replaces that behavior per module path,
    ``failures`` makes delivery of a module path fail.
    """

    def __init__(self) -> None:
        self.context: LoaderContext | None = None
        self.calls: list[str] = []
        self.scripts: dict[str, Callable[[LoaderContext], None]] = {}
        self.failures: set[str] = set()

    def inject(self, module_path: str) -> bool:
        self.calls.append(module_path)
        if module_path in self.failures:
            return False

        assert self.context is not None
        script = self.scripts.get(module_path)
        if script is not None:
            script(self.context)
            return True

        record = self.context.index.get(module_path)
        for namespace in record.provides if record else ():
            if not self.context.is_provided(namespace):
                self.context.provide(namespace)
        return True


@pytest.fixture
def injector() -> FakeInjector:
    return FakeInjector()


@pytest.fixture
def context(injector: FakeInjector) -> LoaderContext:
    """Fresh loader context wired to the fake injector."""
    ctx = LoaderContext(injector)
    injector.context = ctx
    return ctx
