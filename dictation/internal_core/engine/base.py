from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass
from enum import Enum
from typing import Callable, Optional, Sequence

from dictation.speech.models import DetectorConfig, Hypothesis

RECOVERABLE_ERROR_CODES = frozenset({"no-speech", "audio-capture"})

ResultCallback = Callable[[Sequence[Hypothesis]], None]
ErrorCallback = Callable[[str, str], None]
SignalCallback = Callable[[], None]


class EngineError(RuntimeError):
    def __init__(self, code: str, message: str, source_name: str = ""):
        super().__init__(message)
        self.code = code
        self.message = message
        self.source_name = source_name


class ErrorKind(str, Enum):
    RECOVERABLE = "recoverable"
    FATAL = "fatal"


def classify_error(code: str) -> ErrorKind:
    if str(code or "").strip().lower() in RECOVERABLE_ERROR_CODES:
        return ErrorKind.RECOVERABLE
    return ErrorKind.FATAL


def describe_error(code: str, message: str = "") -> str:
    normalized = str(code or "").strip().lower()
    if normalized == "network":
        return "Network error - please check your connection"
    if normalized in {"not-allowed", "service-not-allowed"}:
        return "Microphone permission denied"
    detail = (message or "").strip()
    if detail:
        return f"Speech recognition error: {normalized or 'unknown'} ({detail})"
    return f"Speech recognition error: {normalized or 'unknown'}"


class SessionLifecycle(str, Enum):
    IDLE = "idle"
    ACTIVE = "active"
    ENDED = "ended"


@dataclass
class SessionHandle:
    sequence: int
    lifecycle: SessionLifecycle = SessionLifecycle.IDLE
    started_at: Optional[float] = None
    ended_at: Optional[float] = None

    @property
    def ended(self) -> bool:
        return self.lifecycle is SessionLifecycle.ENDED

    def mark_active(self, now: float) -> None:
        if self.lifecycle is SessionLifecycle.IDLE:
            self.lifecycle = SessionLifecycle.ACTIVE
            self.started_at = now

    def mark_ended(self, now: float) -> None:
        if self.lifecycle is not SessionLifecycle.ENDED:
            self.lifecycle = SessionLifecycle.ENDED
            self.ended_at = now


class StreamingTranscriptionSource(ABC):
    """Streaming recognizer with start/stop controls and four callback slots.

    The detector rebinds the slots on every (re)start and stamps ``session``
    with the run sequence; implementations report engine activity through the
    ``emit_*`` helpers.
    """

    def __init__(self) -> None:
        self.continuous = True
        self.interim_results = True
        self.max_alternatives = 1
        self.language = "en-US"
        self.session: Optional[int] = None
        self.on_session_start: Optional[SignalCallback] = None
        self.on_result: Optional[ResultCallback] = None
        self.on_error: Optional[ErrorCallback] = None
        self.on_session_end: Optional[SignalCallback] = None

    @property
    def is_supported(self) -> bool:
        return True

    def configure(self, config: DetectorConfig) -> None:
        self.continuous = config.continuous_mode
        self.interim_results = config.interim_results_enabled
        self.max_alternatives = config.max_alternatives
        self.language = config.language_tag

    def detach(self) -> None:
        self.on_session_start = None
        self.on_result = None
        self.on_error = None
        self.on_session_end = None

    @abstractmethod
    def start(self) -> None: ...

    @abstractmethod
    def stop(self) -> None: ...

    @abstractmethod
    def name(self) -> str: ...

    def emit_session_start(self) -> None:
        if self.on_session_start:
            self.on_session_start()

    def emit_result(self, hypotheses: Sequence[Hypothesis]) -> None:
        if self.on_result:
            self.on_result(list(hypotheses))

    def emit_error(self, code: str, message: str = "") -> None:
        if self.on_error:
            self.on_error(code, message)

    def emit_session_end(self) -> None:
        if self.on_session_end:
            self.on_session_end()
