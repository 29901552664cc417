"""
Memoization for parametric IO Types.

A parametric factory such as ``NullableIO(NumberIO)`` must return the identical IOType
object for an identical parameter combination, so that descriptors nested deep inside
state schemas compare by identity. Each factory owns one IOTypeCache.

Notes:
    - Keys are either an IOType (single parameter), a tuple of IOTypes (ordered, so
      ``(NumberIO, StringIO)`` and ``(StringIO, NumberIO)`` differ), or any other
      hashable value such as an Enum class.
    - Every cache registers itself; ``IOTypeCache.clear_all()`` empties all of them, e.g.
      before regenerating an API snapshot from a clean slate.

Examples:
    >>> from trellis.core.cache import IOTypeCache
    >>> cache = IOTypeCache("ExampleIO")
    >>> made = cache.get_or_create("k", lambda: object())
    >>> cache.get_or_create("k", lambda: object()) is made
    True
"""

from __future__ import annotations

from collections.abc import Callable, Hashable
from typing import Any, ClassVar, TypeVar

__all__ = ["IOTypeCache", "clear_all_caches"]

T = TypeVar("T")


class IOTypeCache(dict[Hashable, Any]):
    """
    Dict of memoized parametric IO Types, registered for bulk invalidation.

    Args:
        name (str): Label of the owning factory (for repr and debugging).
    """

    _caches: ClassVar[list[IOTypeCache]] = []

    def __init__(self, name: str = "") -> None:
        super().__init__()
        self.name = name
        IOTypeCache._caches.append(self)

    def __repr__(self) -> str:
        return f"IOTypeCache({self.name!r}, size={len(self)})"

    def get_or_create(self, key: Hashable, factory: Callable[[], T]) -> T:
        """
        Return the cached value for key, creating and storing it on first use.

        Args:
            key (Hashable): Parameter combination.
            factory (Callable[[], T]): Builds the value when absent.

        Returns:
            T: The memoized value; identical across calls with an equal key.
        """
        if key not in self:
            self[key] = factory()
        return self[key]

    @classmethod
    def clear_all(cls) -> None:
        """Empty every registered cache."""
        for cache in cls._caches:
            cache.clear()

    @classmethod
    def registered(cls) -> tuple[IOTypeCache, ...]:
        """All caches created so far."""
        return tuple(cls._caches)


def clear_all_caches() -> None:
    """Module-level alias for IOTypeCache.clear_all()."""
    IOTypeCache.clear_all()
