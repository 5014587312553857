from dictation.internal_core.engine.scheduler import ManualScheduler
from dictation.internal_core.engine.timers import (
    SilenceTimer,
    TimerSlot,
    TurnDetectionTimer,
    should_stop_for_silence,
    should_stop_for_turn,
)
from dictation.speech.completeness import ENGLISH_CUES


def test_manual_scheduler_runs_calls_in_deadline_order() -> None:
    scheduler = ManualScheduler()
    fired: list[tuple[str, float]] = []
    scheduler.call_later(2.0, lambda: fired.append(("late", scheduler.now())))
    scheduler.call_later(1.0, lambda: fired.append(("early", scheduler.now())))
    scheduler.call_later(1.0, lambda: fired.append(("early_second", scheduler.now())))

    scheduler.advance(1.5)
    assert fired == [("early", 1.0), ("early_second", 1.0)]
    assert scheduler.now() == 1.5

    scheduler.advance(1.0)
    assert fired[-1] == ("late", 2.0)
    assert scheduler.pending == 0


def test_manual_scheduler_skips_cancelled_calls() -> None:
    scheduler = ManualScheduler()
    fired: list[str] = []
    call = scheduler.call_later(0.5, lambda: fired.append("x"))
    call.cancel()

    scheduler.advance_ms(1000)
    assert fired == []
    assert call.cancelled() is True


def test_timer_slot_rearm_replaces_pending_call() -> None:
    scheduler = ManualScheduler()
    slot = TimerSlot(scheduler, "restart")
    fired: list[str] = []

    slot.arm(1.0, lambda: fired.append("first"))
    slot.arm(2.0, lambda: fired.append("second"))
    assert scheduler.pending == 1

    scheduler.advance(1.5)
    assert fired == []
    assert slot.armed is True

    scheduler.advance(1.0)
    assert fired == ["second"]
    assert slot.armed is False


def test_timer_slot_cancel_is_idempotent() -> None:
    scheduler = ManualScheduler()
    slot = TimerSlot(scheduler, "restart")
    slot.cancel()
    slot.arm(0.1, lambda: None)
    slot.cancel()
    slot.cancel()
    assert slot.armed is False
    assert scheduler.pending == 0


def test_silence_timer_reset_pushes_deadline() -> None:
    scheduler = ManualScheduler()
    fired: list[float] = []
    timer = SilenceTimer(scheduler, lambda: fired.append(scheduler.now()))

    timer.reset(3000)
    scheduler.advance(2.0)
    timer.reset(3000)
    scheduler.advance(2.0)
    assert fired == []

    scheduler.advance(1.0)
    assert fired == [5.0]


def test_turn_timer_cancel_prevents_fire() -> None:
    scheduler = ManualScheduler()
    fired: list[str] = []
    timer = TurnDetectionTimer(scheduler, lambda: fired.append("turn"))

    timer.arm(4000)
    assert timer.armed is True
    timer.cancel()
    scheduler.advance(10.0)
    assert fired == []


def test_silence_decision_requires_committed_text_and_elapsed_threshold() -> None:
    kwargs = {"listening": True, "last_activity": 2.0, "threshold_ms": 3000}
    assert should_stop_for_silence(committed_text="I have a sore throat", now=5.0, **kwargs) is True
    assert should_stop_for_silence(committed_text="I have a sore throat", now=4.5, **kwargs) is False
    assert should_stop_for_silence(committed_text="   ", now=9.0, **kwargs) is False
    assert (
        should_stop_for_silence(
            listening=False,
            committed_text="I have a sore throat",
            last_activity=0.0,
            now=9.0,
            threshold_ms=3000,
        )
        is False
    )


def test_silence_decision_tolerates_early_timer_wakeup() -> None:
    assert should_stop_for_silence(
        listening=True,
        committed_text="words",
        last_activity=1.0,
        now=3.998,
        threshold_ms=3000,
    )


def test_turn_decision_uses_current_transcript() -> None:
    assert should_stop_for_turn(listening=True, transcript="Thanks, that's all I needed.", cues=ENGLISH_CUES)
    assert not should_stop_for_turn(listening=True, transcript="The cough started last week.and", cues=ENGLISH_CUES)
    assert not should_stop_for_turn(listening=False, transcript="Thanks, that's all I needed.", cues=ENGLISH_CUES)
