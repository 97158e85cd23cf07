from __future__ import annotations

import sys
from pathlib import Path
from typing import Callable

import pytest


def pytest_configure() -> None:
    root = Path(__file__).resolve().parents[1]
    if str(root) not in sys.path:
        sys.path.insert(0, str(root))


class ScheduledCall:
    def __init__(self, delay_s: float, callback: Callable[[], None]) -> None:
        self.delay_s = delay_s
        self.callback = callback
        self.cancelled = False
        self.fired = False

    def cancel(self) -> None:
        self.cancelled = True


class RecordingScheduler:
    """Scheduler that records delays and only fires when told to."""

    def __init__(self) -> None:
        self.calls: list[ScheduledCall] = []

    def call_later(self, delay_s: float, callback: Callable[[], None]) -> ScheduledCall:
        call = ScheduledCall(delay_s, callback)
        self.calls.append(call)
        return call

    @property
    def pending(self) -> list[ScheduledCall]:
        return [c for c in self.calls if not c.cancelled and not c.fired]

    def fire_pending(self) -> None:
        for call in self.pending:
            call.fired = True
            call.callback()


@pytest.fixture
def scheduler() -> RecordingScheduler:
    return RecordingScheduler()
