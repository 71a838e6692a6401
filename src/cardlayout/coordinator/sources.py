"""Container dimension sources.

A host (UI toolkit, terminal, test) adapts its resize notifications to
:class:`DimensionSource`; the coordinator subscribes to it on ``attach``.
"""

from __future__ import annotations

from collections.abc import Callable
from typing import Protocol

ResizeCallback = Callable[[float, float], None]


class DimensionSource(Protocol):
    @property
    def width(self) -> float: ...

    @property
    def height(self) -> float: ...

    def subscribe(self, callback: ResizeCallback) -> Callable[[], None]:
        """Register *callback*; return a function that unsubscribes it."""
        ...


class StaticDimensionSource:
    """In-memory source whose size changes only through :meth:`set_size`."""

    def __init__(self, width: float, height: float) -> None:
        self._width = width
        self._height = height
        self._subscribers: list[ResizeCallback] = []

    @property
    def width(self) -> float:
        return self._width

    @property
    def height(self) -> float:
        return self._height

    @property
    def subscriber_count(self) -> int:
        return len(self._subscribers)

    def subscribe(self, callback: ResizeCallback) -> Callable[[], None]:
        self._subscribers.append(callback)

        def unsubscribe() -> None:
            if callback in self._subscribers:
                self._subscribers.remove(callback)

        return unsubscribe

    def set_size(self, width: float, height: float) -> None:
        """Update the size and notify every subscriber."""
        self._width = width
        self._height = height
        for callback in list(self._subscribers):
            callback(width, height)
