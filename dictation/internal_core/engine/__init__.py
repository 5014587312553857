from __future__ import annotations

from .base import (
    EngineError,
    ErrorKind,
    SessionHandle,
    SessionLifecycle,
    StreamingTranscriptionSource,
    classify_error,
    describe_error,
)
from .controller import TurnDetector
from .mock import ScriptedTranscriptionSource
from .remote import RemoteTranscriptionSource
from .scheduler import AsyncioScheduler, ManualScheduler, Scheduler
from .state_machine import ControllerAction, ControllerState, EngineEvent, Transition, transition

__all__ = [
    "AsyncioScheduler",
    "ControllerAction",
    "ControllerState",
    "EngineError",
    "EngineEvent",
    "ErrorKind",
    "ManualScheduler",
    "RemoteTranscriptionSource",
    "Scheduler",
    "ScriptedTranscriptionSource",
    "SessionHandle",
    "SessionLifecycle",
    "StreamingTranscriptionSource",
    "Transition",
    "TurnDetector",
    "classify_error",
    "describe_error",
    "transition",
]
