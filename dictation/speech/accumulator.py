from __future__ import annotations

"""
Merge streaming recognition hypotheses into one running dictation transcript.

Design intent:
- Final hypotheses are appended once and never rewritten.
- Interim hypotheses are cumulative restatements, so they replace the pending tail.
- Engine restarts keep the committed text; only a new activation clears it.
"""

from dataclasses import dataclass, replace
from typing import Optional, Sequence

from dictation.speech.models import Hypothesis

_TERMINAL_PUNCTUATION = (".", "!", "?")

# Engines that omit a score are treated as fairly sure of their finals.
_DEFAULT_FINAL_CONFIDENCE = 0.9


def needs_separator(text: str) -> bool:
    if not text:
        return False
    if text[-1].isspace():
        return False
    return not text.endswith(_TERMINAL_PUNCTUATION)


def join_transcript(head: str, tail: str) -> str:
    if not tail:
        return head
    if needs_separator(head):
        return f"{head} {tail}"
    return head + tail


@dataclass
class UtteranceState:
    committed_text: str = ""
    pending_text: str = ""
    last_activity: float = 0.0
    turn_complete: bool = False


@dataclass(frozen=True)
class ApplyResult:
    committed: list[str]
    had_final: bool
    had_speech: bool
    max_confidence: float


class TranscriptAccumulator:
    def __init__(self) -> None:
        self._state = UtteranceState()

    @property
    def state(self) -> UtteranceState:
        return replace(self._state)

    @property
    def committed_text(self) -> str:
        return self._state.committed_text

    @property
    def pending_text(self) -> str:
        return self._state.pending_text

    @property
    def last_activity(self) -> float:
        return self._state.last_activity

    @property
    def transcript(self) -> str:
        return join_transcript(self._state.committed_text, self._state.pending_text)

    def reset(self, *, now: float = 0.0) -> None:
        self._state = UtteranceState(last_activity=now)

    def clear_pending(self) -> None:
        self._state.pending_text = ""

    def mark_complete(self, complete: bool) -> None:
        self._state.turn_complete = bool(complete)

    def apply(self, hypotheses: Sequence[Hypothesis], *, now: Optional[float] = None) -> ApplyResult:
        committed: list[str] = []
        had_final = False
        had_speech = False
        max_confidence = 0.0

        for hypothesis in hypotheses:
            text = (hypothesis.text or "").strip()
            if not text:
                continue
            had_speech = True
            if hypothesis.is_final:
                had_final = True
                self._state.committed_text = join_transcript(self._state.committed_text, text)
                self._state.pending_text = ""
                committed.append(text)
                confidence = _DEFAULT_FINAL_CONFIDENCE if hypothesis.confidence is None else hypothesis.confidence
                max_confidence = max(max_confidence, confidence)
            else:
                self._state.pending_text = text

        if had_speech and now is not None:
            self._state.last_activity = now
        return ApplyResult(
            committed=committed,
            had_final=had_final,
            had_speech=had_speech,
            max_confidence=max_confidence,
        )
