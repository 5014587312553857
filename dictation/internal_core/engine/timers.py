from __future__ import annotations

from typing import Callable, Optional

from dictation.speech.completeness import CueSet, is_complete

from .scheduler import ScheduledCall, Scheduler

# Loop timers may run up to one clock tick before their deadline.
_CLOCK_SLACK_SEC = 0.005


class TimerSlot:
    """Holds at most one pending call; arming always cancels the previous one."""

    def __init__(self, scheduler: Scheduler, name: str) -> None:
        self._scheduler = scheduler
        self.name = name
        self._handle: Optional[ScheduledCall] = None

    @property
    def armed(self) -> bool:
        return self._handle is not None and not self._handle.cancelled()

    def arm(self, delay_sec: float, callback: Callable[[], None]) -> None:
        self.cancel()
        handle: Optional[ScheduledCall] = None

        def _fire() -> None:
            if self._handle is handle:
                self._handle = None
            callback()

        handle = self._scheduler.call_later(delay_sec, _fire)
        self._handle = handle

    def cancel(self) -> None:
        if self._handle is not None:
            self._handle.cancel()
            self._handle = None


class SilenceTimer:
    def __init__(self, scheduler: Scheduler, on_timeout: Callable[[], None]) -> None:
        self._slot = TimerSlot(scheduler, "silence")
        self._on_timeout = on_timeout

    @property
    def armed(self) -> bool:
        return self._slot.armed

    def reset(self, threshold_ms: int) -> None:
        self._slot.arm(threshold_ms / 1000.0, self._on_timeout)

    def cancel(self) -> None:
        self._slot.cancel()


class TurnDetectionTimer:
    def __init__(self, scheduler: Scheduler, on_timeout: Callable[[], None]) -> None:
        self._slot = TimerSlot(scheduler, "turn_detection")
        self._on_timeout = on_timeout

    @property
    def armed(self) -> bool:
        return self._slot.armed

    def arm(self, timeout_ms: int) -> None:
        self._slot.arm(timeout_ms / 1000.0, self._on_timeout)

    def cancel(self) -> None:
        self._slot.cancel()


def should_stop_for_silence(
    *,
    listening: bool,
    committed_text: str,
    last_activity: float,
    now: float,
    threshold_ms: int,
) -> bool:
    if not listening:
        return False
    if not committed_text.strip():
        return False
    elapsed = now - last_activity
    return elapsed + _CLOCK_SLACK_SEC >= threshold_ms / 1000.0


def should_stop_for_turn(*, listening: bool, transcript: str, cues: CueSet) -> bool:
    return listening and is_complete(transcript, cues)
