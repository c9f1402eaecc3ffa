"""
Initialise-once holder for process-scoped state.
"""

from __future__ import annotations

import threading
from typing import Callable, Generic, TypeVar

T = TypeVar("T")


class LazyCell(Generic[T]):
    """
    Compute a value on first use and reuse it afterwards.

    A factory that raises leaves the cell empty, so the next ``get`` retries.
    """

    def __init__(self, factory: Callable[[], T]) -> None:
        self._factory = factory
        self._lock = threading.Lock()
        self._initialized = False
        self._value: T | None = None

    @property
    def initialized(self) -> bool:
        return self._initialized

    def get(self) -> T:
        if self._initialized:
            return self._value  # type: ignore[return-value]

        with self._lock:
            if not self._initialized:
                self._value = self._factory()
                self._initialized = True
        return self._value  # type: ignore[return-value]

    def reset(self) -> None:
        with self._lock:
            self._initialized = False
            self._value = None
