from __future__ import annotations

import asyncio
import time
from typing import Callable, Protocol


def monotonic_ms() -> int:
    """Monotonic clock in milliseconds.

    Use this for phase durations.
    """

    return int(time.monotonic() * 1000)


class Cancellable(Protocol):
    def cancel(self) -> None: ...


class Scheduler(Protocol):
    """Runs a callback once after a delay and hands back a cancel handle."""

    def call_later(self, delay_s: float, callback: Callable[[], None]) -> Cancellable: ...


class LoopScheduler:
    """Scheduler backed by the running asyncio loop."""

    def __init__(self, loop: asyncio.AbstractEventLoop | None = None) -> None:
        self._loop = loop

    def call_later(self, delay_s: float, callback: Callable[[], None]) -> asyncio.TimerHandle:
        loop = self._loop or asyncio.get_running_loop()
        return loop.call_later(delay_s, callback)
