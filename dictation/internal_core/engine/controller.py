from __future__ import annotations

import functools
import itertools
import logging
from typing import Callable, Optional, Sequence

from dictation.speech.accumulator import TranscriptAccumulator
from dictation.speech.completeness import CueSet, analyze_completeness, cue_set_for_language
from dictation.speech.models import DetectorConfig, Hypothesis, RecordingStatus, TurnResult

from .base import (
    EngineError,
    ErrorKind,
    SessionHandle,
    StreamingTranscriptionSource,
    classify_error,
    describe_error,
)
from .scheduler import Scheduler
from .state_machine import ControllerAction, ControllerState, EngineEvent, transition
from .timers import (
    SilenceTimer,
    TimerSlot,
    TurnDetectionTimer,
    should_stop_for_silence,
    should_stop_for_turn,
)

logger = logging.getLogger(__name__)

UNSUPPORTED_MESSAGE = "Speech recognition not supported by this host"
START_FAILED_MESSAGE = "Failed to start speech recognition"

TurnResultCallback = Callable[[TurnResult], None]
TranscriptCallback = Callable[[str], None]
StatusCallback = Callable[[RecordingStatus], None]
LifecycleCallback = Callable[[str, str], None]


class TurnDetector:
    """Supervises one streaming engine and decides when a dictated turn is over.

    Engine events feed the transcript accumulator and completeness analyzer;
    the silence and turn-detection timers request stops; transient engine
    failures and engine-initiated ends are absorbed by restarting a fresh
    session without clearing committed text. Callers only see
    ``on_status_change`` transitions, so a restart gap never reads as
    "stopped".
    """

    def __init__(
        self,
        source: Optional[StreamingTranscriptionSource],
        *,
        scheduler: Scheduler,
        config: Optional[DetectorConfig] = None,
        cues: Optional[CueSet] = None,
        on_turn_result: Optional[TurnResultCallback] = None,
        on_transcript_change: Optional[TranscriptCallback] = None,
        on_status_change: Optional[StatusCallback] = None,
        on_lifecycle: Optional[LifecycleCallback] = None,
    ) -> None:
        self._source = source
        self._scheduler = scheduler
        self._default_config = config or DetectorConfig()
        self._config = self._default_config
        self._cues_override = cues
        self._cues = cues or cue_set_for_language(self._config.language_tag)

        self.on_turn_result = on_turn_result
        self.on_transcript_change = on_transcript_change
        self.on_status_change = on_status_change
        self.on_lifecycle = on_lifecycle

        self._accumulator = TranscriptAccumulator()
        self._state = ControllerState.IDLE
        self._should_continue = False
        self._finalized = True
        self._handle: Optional[SessionHandle] = None
        self._handle_seq = itertools.count(1)
        self._activation = 0
        self._restart_count = 0
        self._last_status: Optional[RecordingStatus] = None
        self._last_notified_text = ""

        self._silence_timer = SilenceTimer(scheduler, self._on_silence_timeout)
        self._turn_timer = TurnDetectionTimer(scheduler, self._on_turn_timeout)
        self._restart_timer = TimerSlot(scheduler, "restart")
        self._pending_error = ""
        self._stop_reason = "manual"

    # ------------------------------------------------------------------ accessors

    @property
    def state(self) -> ControllerState:
        return self._state

    @property
    def config(self) -> DetectorConfig:
        return self._config

    @property
    def is_supported(self) -> bool:
        return self._source is not None and bool(self._source.is_supported)

    @property
    def is_recording(self) -> bool:
        return self._state is not ControllerState.IDLE and self._should_continue

    @property
    def should_continue(self) -> bool:
        return self._should_continue

    @property
    def transcript(self) -> str:
        return self._accumulator.transcript

    @property
    def committed_text(self) -> str:
        return self._accumulator.committed_text

    @property
    def pending_text(self) -> str:
        return self._accumulator.pending_text

    @property
    def session_handle(self) -> Optional[SessionHandle]:
        return self._handle

    @property
    def activation(self) -> int:
        return self._activation

    @property
    def restart_count(self) -> int:
        return self._restart_count

    # ------------------------------------------------------------------ caller controls

    def start(self, config: Optional[DetectorConfig] = None) -> bool:
        if not self.is_supported:
            self._publish_status(is_recording=False, is_supported=False, error=UNSUPPORTED_MESSAGE)
            return False
        if self.is_recording:
            logger.warning("turn_detector start ignored state=%s", self._state.value)
            return False
        self._config = config or self._default_config
        self._cues = self._cues_override or cue_set_for_language(self._config.language_tag)
        self._dispatch(EngineEvent.START_REQUESTED)
        return self._state is not ControllerState.IDLE

    def stop(self, reason: str = "manual") -> None:
        if self._finalized:
            logger.debug("turn_detector stop ignored reason=%s (already finalized)", reason)
            return
        self._stop_reason = reason
        self._dispatch(EngineEvent.STOP_REQUESTED)

    def toggle(self) -> bool:
        if self.is_recording:
            self.stop()
            return False
        return self.start()

    def clear_transcript(self) -> None:
        if self._state is not ControllerState.IDLE:
            logger.warning("turn_detector clear_transcript ignored state=%s", self._state.value)
            return
        self._accumulator.reset(now=self._scheduler.now())
        self._last_notified_text = ""

    def close(self) -> None:
        self.stop("closed")
        self._cancel_timers()
        if self._source is not None:
            self._source.detach()
        self.on_turn_result = None
        self.on_transcript_change = None
        self.on_status_change = None
        self.on_lifecycle = None

    # ------------------------------------------------------------------ engine callbacks

    def _bind_source(self, source: StreamingTranscriptionSource, handle: SessionHandle) -> None:
        source.session = handle.sequence
        source.on_session_start = functools.partial(self._handle_session_start, handle)
        source.on_result = functools.partial(self._handle_result, handle)
        source.on_error = functools.partial(self._handle_error, handle)
        source.on_session_end = functools.partial(self._handle_session_end, handle)

    def _is_current(self, handle: SessionHandle, signal: str) -> bool:
        if handle is self._handle and not handle.ended:
            return True
        logger.debug("turn_detector dropped stale %s session=%s", signal, handle.sequence)
        return False

    def _handle_session_start(self, handle: SessionHandle) -> None:
        if not self._is_current(handle, "session_start"):
            return
        handle.mark_active(self._scheduler.now())
        self._dispatch(EngineEvent.SESSION_STARTED)

    def _handle_result(self, handle: SessionHandle, hypotheses: Sequence[Hypothesis]) -> None:
        if not self._is_current(handle, "result"):
            return
        handle.mark_active(self._scheduler.now())
        self._dispatch(EngineEvent.RESULT, hypotheses=hypotheses)

    def _handle_error(self, handle: SessionHandle, code: str, message: str = "") -> None:
        if not self._is_current(handle, "error"):
            return
        kind = classify_error(code)
        if kind is ErrorKind.RECOVERABLE:
            logger.warning("turn_detector recoverable engine error code=%s session=%s", code, handle.sequence)
            self._dispatch(EngineEvent.RECOVERABLE_ERROR)
            return
        logger.error("turn_detector fatal engine error code=%s session=%s", code, handle.sequence)
        self._pending_error = describe_error(code, message)
        self._lifecycle("ENGINE_ERROR", f"code={code} session={handle.sequence}")
        self._dispatch(EngineEvent.FATAL_ERROR)

    def _handle_session_end(self, handle: SessionHandle) -> None:
        if not self._is_current(handle, "session_end"):
            return
        handle.mark_ended(self._scheduler.now())
        self._dispatch(EngineEvent.SESSION_ENDED)

    # ------------------------------------------------------------------ timer callbacks

    def _on_silence_timeout(self) -> None:
        if should_stop_for_silence(
            listening=self.is_recording,
            committed_text=self._accumulator.committed_text,
            last_activity=self._accumulator.last_activity,
            now=self._scheduler.now(),
            threshold_ms=self._config.silence_threshold_ms,
        ):
            logger.info("turn_detector silence threshold reached activation=%s", self._activation)
            self.stop("silence")

    def _on_turn_timeout(self) -> None:
        if should_stop_for_turn(
            listening=self.is_recording,
            transcript=self._accumulator.transcript,
            cues=self._cues,
        ):
            logger.info("turn_detector turn complete activation=%s", self._activation)
            self.stop("turn_complete")

    def _on_restart_due(self) -> None:
        self._dispatch(EngineEvent.RESTART_DUE)

    # ------------------------------------------------------------------ state machine

    def _dispatch(self, event: EngineEvent, hypotheses: Sequence[Hypothesis] = ()) -> None:
        previous = self._state
        step = transition(previous, event, should_continue=self._should_continue)
        self._state = step.state
        if step.action is not ControllerAction.IGNORE or step.state is not previous:
            logger.debug(
                "turn_detector event=%s state=%s->%s action=%s",
                event.value,
                previous.value,
                step.state.value,
                step.action.value,
            )

        action = step.action
        if action is ControllerAction.START_SESSION:
            self._start_session(new_turn=event is EngineEvent.START_REQUESTED)
        elif action is ControllerAction.MARK_ACTIVE:
            self._publish_status(is_recording=True)
        elif action is ControllerAction.APPLY_RESULT:
            self._apply_result(hypotheses)
        elif action is ControllerAction.SCHEDULE_RESTART:
            self._schedule_restart(event)
        elif action is ControllerAction.STOP_SESSION:
            self._should_continue = False
            self._cancel_timers()
            self._stop_engine()
            self._finalize(self._stop_reason)
            if self._handle is None or self._handle.ended:
                # No engine left to report the end; settle now.
                self._state = ControllerState.IDLE
            self._publish_status(is_recording=False)
        elif action is ControllerAction.FINALIZE:
            self._should_continue = False
            self._cancel_timers()
            self._release_handle(stop_engine=True)
            self._finalize(self._stop_reason)
            self._publish_status(is_recording=False)
        elif action is ControllerAction.SURFACE_ERROR:
            self._surface_error(self._pending_error or describe_error("unknown"))
        elif action is ControllerAction.GO_IDLE:
            self._release_handle(stop_engine=False)
            self._publish_status(is_recording=False)

    def _start_session(self, *, new_turn: bool) -> None:
        source = self._source
        if source is None:
            self._state = ControllerState.IDLE
            self._surface_error(UNSUPPORTED_MESSAGE)
            return
        now = self._scheduler.now()
        if new_turn:
            self._activation += 1
            self._restart_count = 0
            self._accumulator.reset(now=now)
            self._last_notified_text = ""
            self._pending_error = ""
            self._stop_reason = "manual"
            self._finalized = False
            self._should_continue = True
        else:
            self._accumulator.clear_pending()
            self._restart_count += 1

        previous = self._handle
        if previous is not None:
            previous.mark_ended(now)
        handle = SessionHandle(sequence=next(self._handle_seq))
        self._handle = handle
        self._bind_source(source, handle)

        try:
            source.configure(self._config)
            source.start()
        except EngineError as exc:
            logger.error(
                "turn_detector engine start failed code=%s source=%s session=%s",
                exc.code,
                exc.source_name or source.name(),
                handle.sequence,
            )
            handle.mark_ended(now)
            self._state = ControllerState.IDLE
            self._lifecycle("ENGINE_ERROR", f"code={exc.code} session={handle.sequence}")
            self._surface_error(START_FAILED_MESSAGE)
            return

        if new_turn:
            self._silence_timer.reset(self._config.silence_threshold_ms)
            self._lifecycle(
                "RECORDING_STARTED",
                f"activation={self._activation} source={source.name()} lang={self._config.language_tag}",
            )
        else:
            self._lifecycle(
                "ENGINE_RESTART",
                f"activation={self._activation} session={handle.sequence} restarts={self._restart_count}",
            )

    def _apply_result(self, hypotheses: Sequence[Hypothesis]) -> None:
        applied = self._accumulator.apply(hypotheses, now=self._scheduler.now())
        if not applied.had_speech:
            return

        self._silence_timer.reset(self._config.silence_threshold_ms)
        transcript = self._accumulator.transcript
        complete, reason = analyze_completeness(transcript, self._cues)
        self._accumulator.mark_complete(complete)

        if applied.had_final:
            if complete:
                self._turn_timer.arm(self._config.turn_detection_timeout_ms)
            else:
                self._turn_timer.cancel()
        logger.debug(
            "turn_detector result finals=%s complete=%s reason=%s chars=%s",
            len(applied.committed),
            complete,
            reason,
            len(transcript),
        )

        self._publish_status(is_recording=True)
        self._emit_turn_result(
            TurnResult(
                final_text=self._accumulator.committed_text,
                interim_text=self._accumulator.pending_text,
                is_complete=complete,
                confidence=applied.max_confidence,
                total_length=len(transcript),
            )
        )

    def _schedule_restart(self, event: EngineEvent) -> None:
        delay_ms = self._config.restart_delay_ms
        logger.info(
            "turn_detector scheduling restart cause=%s delay_ms=%s activation=%s",
            event.value,
            delay_ms,
            self._activation,
        )
        self._restart_timer.arm(delay_ms / 1000.0, self._on_restart_due)

    def _stop_engine(self) -> None:
        handle = self._handle
        if self._source is None or handle is None or handle.ended:
            return
        try:
            self._source.stop()
        except EngineError as exc:
            logger.warning("turn_detector engine stop failed code=%s session=%s", exc.code, handle.sequence)
            handle.mark_ended(self._scheduler.now())

    def _release_handle(self, *, stop_engine: bool) -> None:
        handle = self._handle
        if handle is None or handle.ended:
            return
        if stop_engine:
            self._stop_engine()
        handle.mark_ended(self._scheduler.now())

    def _cancel_timers(self) -> None:
        self._silence_timer.cancel()
        self._turn_timer.cancel()
        self._restart_timer.cancel()

    def _finalize(self, reason: str) -> None:
        if self._finalized:
            return
        self._finalized = True
        self._accumulator.clear_pending()
        self._accumulator.mark_complete(True)
        final_text = self._accumulator.committed_text.strip()
        self._lifecycle(
            "TURN_FINALIZED",
            f"activation={self._activation} reason={reason} chars={len(final_text)} restarts={self._restart_count}",
        )
        self._emit_turn_result(
            TurnResult(
                final_text=final_text,
                interim_text="",
                is_complete=True,
                confidence=1.0,
                total_length=len(final_text),
                is_final=True,
            )
        )

    def _surface_error(self, message: str) -> None:
        self._should_continue = False
        self._finalized = True
        self._state = ControllerState.IDLE
        self._cancel_timers()
        self._release_handle(stop_engine=False)
        self._publish_status(is_recording=False, error=message)

    # ------------------------------------------------------------------ notifications

    def _emit_turn_result(self, result: TurnResult) -> None:
        if self.on_turn_result:
            self.on_turn_result(result)
        text = result.final_text
        if text != self._last_notified_text and text.strip():
            self._last_notified_text = text
            if self.on_transcript_change:
                self.on_transcript_change(text)

    def _publish_status(
        self,
        *,
        is_recording: bool,
        is_supported: bool = True,
        error: Optional[str] = None,
    ) -> None:
        status = RecordingStatus(
            is_recording=is_recording,
            is_supported=is_supported,
            error=error,
            last_activity=self._accumulator.last_activity,
        )
        if status.same_transition(self._last_status):
            return
        self._last_status = status
        if self.on_status_change:
            self.on_status_change(status)

    def _lifecycle(self, code: str, detail: str) -> None:
        if self.on_lifecycle:
            self.on_lifecycle(code, detail)
