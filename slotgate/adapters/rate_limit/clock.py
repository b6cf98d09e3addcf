"""Time source and sleep primitives used by the limiters.

Limiters take a ``clock`` (monotonic seconds) and an async ``sleep`` so
tests can drive them with virtual time instead of waiting on the wall clock.
"""

from __future__ import annotations

import asyncio
import time
from typing import Awaitable, Callable

Clock = Callable[[], float]
Sleep = Callable[[float], Awaitable[None]]

MonotonicClock: Clock = time.monotonic


class VirtualClock:
    """Manually advanced clock with a matching async ``sleep``.

    ``sleep`` moves virtual time forward by the requested delay and then
    yields once to the event loop, so other tasks get to run between ticks
    just like they would with ``asyncio.sleep``.
    """

    def __init__(self, start: float = 1_000.0) -> None:
        self.current = start
        self.sleeps: list[float] = []

    def __call__(self) -> float:
        return self.current

    def now(self) -> float:
        return self.current

    def advance(self, seconds: float) -> None:
        if seconds < 0:
            raise ValueError("virtual time cannot go backwards")
        self.current += seconds

    async def sleep(self, seconds: float) -> None:
        self.sleeps.append(seconds)
        self.advance(seconds)
        await asyncio.sleep(0)
