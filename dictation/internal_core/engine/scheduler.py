from __future__ import annotations

import asyncio
import heapq
import itertools
from abc import ABC, abstractmethod
from typing import Callable, Optional, Protocol


class ScheduledCall(Protocol):
    def cancel(self) -> None: ...

    def cancelled(self) -> bool: ...


class Scheduler(ABC):
    @abstractmethod
    def call_later(self, delay_sec: float, callback: Callable[[], None]) -> ScheduledCall: ...

    @abstractmethod
    def now(self) -> float: ...


class AsyncioScheduler(Scheduler):
    """Timers on the event loop that also delivers engine events."""

    def __init__(self, loop: Optional[asyncio.AbstractEventLoop] = None) -> None:
        self._loop = loop

    def _get_loop(self) -> asyncio.AbstractEventLoop:
        if self._loop is None:
            self._loop = asyncio.get_running_loop()
        return self._loop

    def call_later(self, delay_sec: float, callback: Callable[[], None]) -> ScheduledCall:
        return self._get_loop().call_later(max(0.0, float(delay_sec)), callback)

    def now(self) -> float:
        return self._get_loop().time()


class _ManualCall:
    def __init__(self, when: float, callback: Callable[[], None]) -> None:
        self.when = when
        self._callback = callback
        self._cancelled = False

    def cancel(self) -> None:
        self._cancelled = True

    def cancelled(self) -> bool:
        return self._cancelled

    def run(self) -> None:
        if not self._cancelled:
            self._callback()


class ManualScheduler(Scheduler):
    """Virtual clock for deterministic replays; time moves only via ``advance``."""

    def __init__(self, start: float = 0.0) -> None:
        self._now = float(start)
        self._seq = itertools.count()
        self._queue: list[tuple[float, int, _ManualCall]] = []

    def call_later(self, delay_sec: float, callback: Callable[[], None]) -> ScheduledCall:
        call = _ManualCall(self._now + max(0.0, float(delay_sec)), callback)
        heapq.heappush(self._queue, (call.when, next(self._seq), call))
        return call

    def now(self) -> float:
        return self._now

    @property
    def pending(self) -> int:
        return sum(1 for _, _, call in self._queue if not call.cancelled())

    def advance(self, seconds: float) -> None:
        target = self._now + max(0.0, float(seconds))
        while self._queue and self._queue[0][0] <= target:
            when, _, call = heapq.heappop(self._queue)
            if call.cancelled():
                continue
            self._now = when
            call.run()
        self._now = target

    def advance_ms(self, millis: float) -> None:
        self.advance(float(millis) / 1000.0)
