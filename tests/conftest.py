"""Shared fixtures: a bus on a virtual clock so timed subscriptions run deterministically."""

from typing import Any, Callable, List

import pytest

from topicbus import Bus, BusSettings


class ManualHandle:
    def __init__(self, due: float, fn: Callable[..., Any], args: tuple) -> None:
        self.due = due
        self.fn = fn
        self.args = args
        self.cancelled = False

    def cancel(self) -> None:
        self.cancelled = True


class ManualScheduler:
    """Scheduler stand-in: nothing runs until advance() moves the clock past a timer."""

    def __init__(self) -> None:
        self._now = 0.0
        self._timers: List[ManualHandle] = []

    def call_later(self, delay_ms: float, fn: Callable[..., Any], *args: Any) -> ManualHandle:
        handle = ManualHandle(self._now + max(0.0, delay_ms), fn, args)
        self._timers.append(handle)
        return handle

    def now(self) -> float:
        return self._now

    def pending(self) -> int:
        return sum(1 for t in self._timers if not t.cancelled)

    def advance(self, ms: float) -> None:
        target = self._now + ms
        while True:
            due = [t for t in self._timers if not t.cancelled and t.due <= target]
            if not due:
                break
            timer = min(due, key=lambda t: t.due)
            self._timers.remove(timer)
            self._now = timer.due
            timer.fn(*timer.args)
        self._now = target
        self._timers = [t for t in self._timers if not t.cancelled]


@pytest.fixture
def scheduler() -> ManualScheduler:
    return ManualScheduler()


@pytest.fixture
def bus(scheduler: ManualScheduler) -> Bus:
    return Bus(settings=BusSettings(), scheduler=scheduler)
