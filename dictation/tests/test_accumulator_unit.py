from dictation.speech.accumulator import TranscriptAccumulator, join_transcript
from dictation.speech.models import Hypothesis


def _final(text: str, confidence: float | None = None) -> Hypothesis:
    return Hypothesis(text=text, is_final=True, confidence=confidence)


def _interim(text: str) -> Hypothesis:
    return Hypothesis(text=text, is_final=False)


def test_finals_are_joined_with_single_spaces() -> None:
    acc = TranscriptAccumulator()
    acc.apply([_final("I have a")])
    acc.apply([_final("  headache that won't go away. ")])

    assert acc.committed_text == "I have a headache that won't go away."


def test_many_finals_concatenate_without_loss_or_duplication() -> None:
    finals = ["my knee", "has been swelling", "for about", "three days"]
    acc = TranscriptAccumulator()
    for text in finals:
        acc.apply([_final(text)])

    assert acc.committed_text == " ".join(finals)


def test_no_separator_after_terminal_punctuation_or_trailing_space() -> None:
    assert join_transcript("Is it serious?", "No") == "Is it serious?No"
    assert join_transcript("fever ", "and chills") == "fever and chills"
    assert join_transcript("", "hello") == "hello"
    assert join_transcript("hello", "") == "hello"


def test_interim_hypotheses_replace_pending_text() -> None:
    acc = TranscriptAccumulator()
    acc.apply([_interim("I")])
    acc.apply([_interim("I have")])
    acc.apply([_interim("I have a")])

    assert acc.committed_text == ""
    assert acc.pending_text == "I have a"
    assert acc.transcript == "I have a"


def test_interims_never_touch_committed_text() -> None:
    acc = TranscriptAccumulator()
    acc.apply([_final("My back hurts")])
    acc.apply([_interim("when I")])
    acc.apply([_interim("when I bend")])

    assert acc.committed_text == "My back hurts"
    assert acc.transcript == "My back hurts when I bend"


def test_final_supersedes_pending_and_later_interim_sets_it_again() -> None:
    acc = TranscriptAccumulator()
    acc.apply([_interim("since")])
    result = acc.apply([_final("since Monday"), _interim("it gets")])

    assert result.had_final is True
    assert result.committed == ["since Monday"]
    assert acc.committed_text == "since Monday"
    assert acc.pending_text == "it gets"


def test_empty_hypotheses_are_ignored() -> None:
    acc = TranscriptAccumulator()
    acc.apply([_final("cough")], now=1.0)
    result = acc.apply([_final("   "), _interim(""), _final("")], now=5.0)

    assert result.had_speech is False
    assert result.committed == []
    assert acc.committed_text == "cough"
    assert acc.last_activity == 1.0


def test_confidence_defaults_for_finals_without_score() -> None:
    acc = TranscriptAccumulator()
    result = acc.apply([_final("one", confidence=0.4), _final("two")])
    assert result.max_confidence == 0.9

    result = acc.apply([_interim("three")])
    assert result.max_confidence == 0.0


def test_reset_starts_a_fresh_utterance() -> None:
    acc = TranscriptAccumulator()
    acc.apply([_final("old words"), _interim("more")], now=2.0)
    acc.mark_complete(True)
    acc.reset(now=9.0)

    state = acc.state
    assert state.committed_text == ""
    assert state.pending_text == ""
    assert state.turn_complete is False
    assert state.last_activity == 9.0
