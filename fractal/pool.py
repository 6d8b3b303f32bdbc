"""Reusable object pool for per-frame renderer state."""

from __future__ import annotations

import threading
from typing import Callable, Generic, Optional, TypeVar

T = TypeVar("T")


class ObjectPool(Generic[T]):
    """Thread-safe checkout/return pool built around a factory."""

    def __init__(self, factory: Callable[[], T]) -> None:
        self._factory = factory
        self._free: list[T] = []
        self._lock = threading.Lock()
        self.created = 0

    @property
    def available(self) -> int:
        with self._lock:
            return len(self._free)

    def checkout(self, reset: Optional[Callable[[T], object]] = None) -> T:
        """Take a pooled object (or a new one), applying ``reset`` before handing it out."""

        with self._lock:
            obj = self._free.pop() if self._free else None
            if obj is None:
                self.created += 1
        if obj is None:
            obj = self._factory()
        if reset is not None:
            reset(obj)
        return obj

    def give_back(self, obj: T) -> None:
        with self._lock:
            self._free.append(obj)
