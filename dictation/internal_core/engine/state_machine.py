from __future__ import annotations

"""
Transition table for the engine restart supervisor.

Design intent:
- One pure function per (state, event, should_continue) so restart/error/stop
  interplay can be audited and tested without a live engine.
- The caller executes the returned action; this module never touches timers.
"""

from dataclasses import dataclass
from enum import Enum


class ControllerState(str, Enum):
    IDLE = "idle"
    STARTING = "starting"
    ACTIVE = "active"
    ENDING = "ending"
    ERRORING = "erroring"
    DRAINING = "draining"


class EngineEvent(str, Enum):
    START_REQUESTED = "start_requested"
    SESSION_STARTED = "session_started"
    RESULT = "result"
    RECOVERABLE_ERROR = "recoverable_error"
    FATAL_ERROR = "fatal_error"
    SESSION_ENDED = "session_ended"
    RESTART_DUE = "restart_due"
    STOP_REQUESTED = "stop_requested"


class ControllerAction(str, Enum):
    START_SESSION = "start_session"
    MARK_ACTIVE = "mark_active"
    APPLY_RESULT = "apply_result"
    SCHEDULE_RESTART = "schedule_restart"
    STOP_SESSION = "stop_session"
    FINALIZE = "finalize"
    SURFACE_ERROR = "surface_error"
    GO_IDLE = "go_idle"
    IGNORE = "ignore"


@dataclass(frozen=True)
class Transition:
    state: ControllerState
    action: ControllerAction


_LIVE = frozenset({ControllerState.STARTING, ControllerState.ACTIVE})


def _stay(state: ControllerState) -> Transition:
    return Transition(state, ControllerAction.IGNORE)


def _on_start_requested(state: ControllerState, should_continue: bool) -> Transition:
    # A stopped turn waiting on the engine end may be replaced by a new one.
    if state is ControllerState.IDLE or (state is ControllerState.ENDING and not should_continue):
        return Transition(ControllerState.STARTING, ControllerAction.START_SESSION)
    return _stay(state)


def _on_session_started(state: ControllerState, should_continue: bool) -> Transition:
    if state is ControllerState.STARTING and should_continue:
        return Transition(ControllerState.ACTIVE, ControllerAction.MARK_ACTIVE)
    return _stay(state)


def _on_result(state: ControllerState, should_continue: bool) -> Transition:
    if state in _LIVE and should_continue:
        return Transition(ControllerState.ACTIVE, ControllerAction.APPLY_RESULT)
    return _stay(state)


def _on_recoverable_error(state: ControllerState, should_continue: bool) -> Transition:
    if state in _LIVE and should_continue:
        return Transition(ControllerState.ERRORING, ControllerAction.SCHEDULE_RESTART)
    return _stay(state)


def _on_fatal_error(state: ControllerState, should_continue: bool) -> Transition:
    if should_continue:
        return Transition(ControllerState.IDLE, ControllerAction.SURFACE_ERROR)
    # Turn already flushed by a stop; the engine failing on its way out just ends it.
    return Transition(ControllerState.IDLE, ControllerAction.GO_IDLE)


def _on_session_ended(state: ControllerState, should_continue: bool) -> Transition:
    if not should_continue:
        return Transition(ControllerState.IDLE, ControllerAction.FINALIZE)
    if state is ControllerState.ERRORING:
        # Errored run is over; the pending restart delay still applies.
        return Transition(ControllerState.ENDING, ControllerAction.IGNORE)
    if state is ControllerState.DRAINING:
        return Transition(ControllerState.STARTING, ControllerAction.START_SESSION)
    return Transition(ControllerState.ENDING, ControllerAction.SCHEDULE_RESTART)


def _on_restart_due(state: ControllerState, should_continue: bool) -> Transition:
    if state is ControllerState.ERRORING and should_continue:
        # Never start over an engine run that has not reported its end.
        return Transition(ControllerState.DRAINING, ControllerAction.IGNORE)
    if state is ControllerState.ENDING and should_continue:
        return Transition(ControllerState.STARTING, ControllerAction.START_SESSION)
    return _stay(state)


def _on_stop_requested(state: ControllerState, should_continue: bool) -> Transition:
    if not should_continue:
        return _stay(state)
    if state in _LIVE:
        return Transition(ControllerState.ENDING, ControllerAction.STOP_SESSION)
    return Transition(ControllerState.IDLE, ControllerAction.FINALIZE)


_HANDLERS = {
    EngineEvent.START_REQUESTED: _on_start_requested,
    EngineEvent.SESSION_STARTED: _on_session_started,
    EngineEvent.RESULT: _on_result,
    EngineEvent.RECOVERABLE_ERROR: _on_recoverable_error,
    EngineEvent.FATAL_ERROR: _on_fatal_error,
    EngineEvent.SESSION_ENDED: _on_session_ended,
    EngineEvent.RESTART_DUE: _on_restart_due,
    EngineEvent.STOP_REQUESTED: _on_stop_requested,
}


def transition(state: ControllerState, event: EngineEvent, *, should_continue: bool) -> Transition:
    if state is ControllerState.IDLE and event is not EngineEvent.START_REQUESTED:
        return _stay(state)
    return _HANDLERS[event](state, should_continue)
