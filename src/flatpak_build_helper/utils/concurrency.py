"""Synchronization primitives for values resolved once per owner."""

from __future__ import annotations

import threading
from typing import TYPE_CHECKING, Generic, TypeVar

if TYPE_CHECKING:
    from collections.abc import Callable

T = TypeVar("T")


class Once(Generic[T]):
    """Lock-guarded cell that runs its resolver at most once.

    A resolver that raises leaves the cell empty so a later call can retry.
    """

    __slots__ = ("_lock", "_resolved", "_value")

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._resolved = False
        self._value: T | None = None

    def get_or_resolve(self, resolver: Callable[[], T]) -> T:
        if self._resolved:
            return self._value  # type: ignore[return-value]
        with self._lock:
            if not self._resolved:
                self._value = resolver()
                self._resolved = True
        return self._value  # type: ignore[return-value]


__all__ = ["Once"]
