"""Late-bound service providers for FastAPI dependencies.

Routers depend on a ``ServiceSlot`` instance; ``main`` binds the real service
once the database is up. Tests replace a slot with
``app.dependency_overrides[slot] = lambda: fake``.
"""

from collections.abc import Callable
from typing import Generic, TypeVar


T = TypeVar("T")


class ServiceSlot(Generic[T]):
    def __init__(self, name: str) -> None:
        self.name = name
        self._provider: Callable[[], T] | None = None

    @property
    def bound(self) -> bool:
        return self._provider is not None

    def bind(self, provider: Callable[[], T]) -> None:
        self._provider = provider

    def bind_instance(self, instance: T) -> None:
        self._provider = lambda: instance

    def unbind(self) -> None:
        self._provider = None

    def __call__(self) -> T:
        if self._provider is None:
            msg = f"{self.name} is not available (database not initialized)"
            raise RuntimeError(msg)
        return self._provider()

    def __repr__(self) -> str:
        return f"ServiceSlot({self.name!r}, bound={self.bound})"
