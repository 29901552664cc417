"""
Synchronous listener lists.

An Emitter calls its listeners in registration order, on the caller's frame. Listeners
added or removed during an emit take effect from the next emit.

Examples:
    >>> from trellis.dynamic.emitter import Emitter
    >>> seen = []
    >>> emitter = Emitter()
    >>> emitter.add_listener(seen.append)
    >>> emitter.emit("a")
    >>> seen
    ['a']
"""

from __future__ import annotations

from collections.abc import Callable
from typing import Any

__all__ = ["Emitter"]


class Emitter:
    """Ordered list of callbacks invoked with the same positional arguments."""

    def __init__(self) -> None:
        self._listeners: list[Callable[..., Any]] = []

    def add_listener(self, listener: Callable[..., Any]) -> None:
        if listener in self._listeners:
            raise ValueError("listener already registered")
        self._listeners.append(listener)

    def remove_listener(self, listener: Callable[..., Any]) -> None:
        if listener not in self._listeners:
            raise ValueError("listener is not registered")
        self._listeners.remove(listener)

    def has_listener(self, listener: Callable[..., Any]) -> bool:
        return listener in self._listeners

    @property
    def listener_count(self) -> int:
        return len(self._listeners)

    def emit(self, *args: Any) -> None:
        for listener in list(self._listeners):
            listener(*args)

    def dispose(self) -> None:
        self._listeners.clear()
