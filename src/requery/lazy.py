"""LazyValue — a shared value built on first use and dropped wholesale.

The query runner is expensive to build and goes stale whenever the schema or
node set changes. Rather than patch it, invalidate() throws it away and the
next get() builds a fresh one.
"""

from __future__ import annotations

import threading
from typing import Callable, Generic, TypeVar

T = TypeVar("T")

_UNSET = object()


class LazyValue(Generic[T]):
    """Materialize-if-absent holder for a value produced by factory()."""

    __slots__ = ("_factory", "_value", "_lock", "_builds")

    def __init__(self, factory: Callable[[], T]) -> None:
        self._factory = factory
        self._value: object = _UNSET
        self._lock = threading.Lock()
        self._builds = 0

    def get(self) -> T:
        """Return the current value, building it if absent."""
        with self._lock:
            if self._value is _UNSET:
                self._value = self._factory()
                self._builds += 1
            return self._value  # type: ignore[return-value]

    def invalidate(self) -> None:
        with self._lock:
            self._value = _UNSET

    @property
    def is_set(self) -> bool:
        return self._value is not _UNSET

    @property
    def builds(self) -> int:
        """How many times the factory has run."""
        return self._builds

    def __repr__(self) -> str:
        state = "absent" if self._value is _UNSET else f"value={self._value!r}"
        return f"LazyValue({state})"
