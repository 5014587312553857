from __future__ import annotations

"""
Lexical end-of-thought heuristic for dictated turns.

Design intent:
- Stay pure: the same transcript always yields the same verdict.
- Prefer "keep listening" over cutting the speaker off early.
- Keep phrase cues per language so other locales can plug in their own lists.
"""

import re
from dataclasses import dataclass, field
from typing import Iterable, Pattern

_MIN_JUDGEABLE_CHARS = 10
_MIN_PUNCTUATED_CHARS = 20
_TERMINAL_PUNCTUATION_RE = re.compile(r"[.!?]\s*$")
_APOSTROPHE = "['’]"


@dataclass(frozen=True)
class CueSet:
    name: str
    completion: tuple[Pattern[str], ...] = field(default_factory=tuple)
    incomplete: tuple[Pattern[str], ...] = field(default_factory=tuple)

    @classmethod
    def from_patterns(
        cls,
        name: str,
        *,
        completion: Iterable[str] = (),
        incomplete: Iterable[str] = (),
    ) -> "CueSet":
        return cls(
            name=name,
            completion=tuple(re.compile(item, flags=re.IGNORECASE) for item in completion),
            incomplete=tuple(re.compile(item, flags=re.IGNORECASE) for item in incomplete),
        )


ENGLISH_CUES = CueSet.from_patterns(
    "en",
    completion=[
        rf"\b(thank you|thanks|that{_APOSTROPHE}s all|that{_APOSTROPHE}s it|done|finished)\b",
        r"\b(any questions|help me|advice)\b|\bquestions\?",
        r"\b(what should i|should i|can you|could you)\b",
    ],
    incomplete=[
        r"\b(and|but|also|because|since|when|if|so|then)\s*$",
        rf"\b(i feel|i have|i{_APOSTROPHE}m experiencing|my)\s*$",
        r"\b(the pain|the symptoms|it hurts)\s*$",
        r",\s*$",
        r"\b(is|are|was|were|has|have|will|would|could|should)\s*$",
    ],
)

NEUTRAL_CUES = CueSet(name="neutral")

_CUE_REGISTRY: dict[str, CueSet] = {"en": ENGLISH_CUES}


def _primary_subtag(language_tag: str) -> str:
    return str(language_tag or "").strip().replace("_", "-").split("-")[0].lower()


def register_cue_set(language: str, cues: CueSet) -> None:
    key = _primary_subtag(language)
    if not key:
        raise ValueError("language is required to register a cue set")
    _CUE_REGISTRY[key] = cues


def cue_set_for_language(language_tag: str) -> CueSet:
    return _CUE_REGISTRY.get(_primary_subtag(language_tag), NEUTRAL_CUES)


def analyze_completeness(transcript: str, cues: CueSet = ENGLISH_CUES) -> tuple[bool, str]:
    """Return (complete, reason); the first matching rule decides."""
    text = (transcript or "").strip()
    if len(text) < _MIN_JUDGEABLE_CHARS:
        return False, "too_short"

    for pattern in cues.completion:
        if pattern.search(text):
            return True, "completion_cue"

    for pattern in cues.incomplete:
        if pattern.search(text):
            return False, "incomplete_cue"

    if _TERMINAL_PUNCTUATION_RE.search(text) and len(text) > _MIN_PUNCTUATED_CHARS:
        return True, "terminal_punctuation"
    return False, "open_ended"


def is_complete(transcript: str, cues: CueSet = ENGLISH_CUES) -> bool:
    complete, _ = analyze_completeness(transcript, cues)
    return complete
