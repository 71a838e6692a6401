"""Timer abstraction used for debouncing.

The coordinator only needs ``call_later(delay, callback)`` returning
something with ``cancel()``. ``asyncio.TimerHandle`` already fits, so the
default scheduler simply forwards to the event loop; tests inject a
manual clock instead.
"""

from __future__ import annotations

import asyncio
from collections.abc import Callable
from typing import Protocol


class TimerHandle(Protocol):
    def cancel(self) -> None: ...


class Scheduler(Protocol):
    def call_later(self, delay: float, callback: Callable[[], None]) -> TimerHandle: ...


class LoopScheduler:
    """Schedule callbacks on an asyncio event loop.

    Without an explicit *loop* the running loop is looked up on every call,
    so ``call_later`` must be invoked from inside that loop.
    """

    def __init__(self, loop: asyncio.AbstractEventLoop | None = None) -> None:
        self._loop = loop

    def call_later(self, delay: float, callback: Callable[[], None]) -> asyncio.TimerHandle:
        loop = self._loop or asyncio.get_running_loop()
        return loop.call_later(delay, callback)
