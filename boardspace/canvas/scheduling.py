"""
Scheduling
==========

Timer seam for the engine's deferred work (home-scroll corrections, notebook
click reverts). The engine runs on a single event loop; nothing here spawns
threads.
"""

import asyncio
import time
from typing import Callable, Optional, Protocol


class TimerHandle(Protocol):
    def cancel(self) -> None: ...


class Scheduler(Protocol):
    """Minimal event-loop surface the engine needs."""

    def call_soon(self, callback: Callable[[], None]) -> TimerHandle:
        """Run on the next turn of the loop (the next paint)."""
        ...

    def call_later(self, delay: float, callback: Callable[[], None]) -> TimerHandle:
        ...

    def time(self) -> float:
        ...


class LoopScheduler:
    """Scheduler backed by the running asyncio event loop."""

    def __init__(self, loop: Optional[asyncio.AbstractEventLoop] = None):
        self._loop = loop

    def _get_loop(self) -> asyncio.AbstractEventLoop:
        if self._loop is not None:
            return self._loop
        return asyncio.get_running_loop()

    def call_soon(self, callback: Callable[[], None]) -> asyncio.Handle:
        return self._get_loop().call_soon(callback)

    def call_later(self, delay: float, callback: Callable[[], None]) -> asyncio.TimerHandle:
        return self._get_loop().call_later(delay, callback)

    def time(self) -> float:
        """Loop clock, or the monotonic clock it is based on when no loop runs."""
        if self._loop is not None:
            return self._loop.time()
        try:
            return asyncio.get_running_loop().time()
        except RuntimeError:
            return time.monotonic()

