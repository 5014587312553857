from __future__ import annotations

from typing import Optional

from dictation.speech.models import Hypothesis

from .base import EngineError, StreamingTranscriptionSource


class ScriptedTranscriptionSource(StreamingTranscriptionSource):
    """In-process engine stand-in; tests and demos push events by hand."""

    def __init__(self, *, supported: bool = True) -> None:
        super().__init__()
        self._supported = supported
        self.start_calls = 0
        self.stop_calls = 0
        self.running = False
        self.fail_next_start: Optional[EngineError] = None

    @property
    def is_supported(self) -> bool:
        return self._supported

    def start(self) -> None:
        self.start_calls += 1
        if self.fail_next_start is not None:
            error, self.fail_next_start = self.fail_next_start, None
            raise error
        self.running = True

    def stop(self) -> None:
        self.stop_calls += 1

    def name(self) -> str:
        return "scripted"

    def begin(self) -> None:
        self.emit_session_start()

    def say(self, text: str, *, final: bool = True, confidence: Optional[float] = None) -> None:
        self.emit_result([Hypothesis(text=text, is_final=final, confidence=confidence)])

    def fail(self, code: str, message: str = "") -> None:
        self.emit_error(code, message)

    def end(self) -> None:
        self.running = False
        self.emit_session_end()
