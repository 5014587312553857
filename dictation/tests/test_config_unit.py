import pytest
from pydantic import ValidationError

from dictation.internal_core.config import load_config

_ENV_NAMES = (
    "TURN_PRESET",
    "DICTATION_SILENCE_THRESHOLD_MS",
    "DICTATION_TURN_TIMEOUT_MS",
    "DICTATION_RESTART_DELAY_MS",
    "DICTATION_LANGUAGE",
    "DICTATION_CONTINUOUS",
    "DICTATION_INTERIM_RESULTS",
    "DICTATION_MAX_ALTERNATIVES",
    "DICTATION_SESSION_TTL_SECONDS",
    "DICTATION_LOG_LEVEL",
)


@pytest.fixture(autouse=True)
def _clean_env(monkeypatch) -> None:
    for name in _ENV_NAMES:
        monkeypatch.delenv(name, raising=False)


def test_defaults_match_detector_defaults() -> None:
    cfg = load_config()
    detector = cfg.detector_config()

    assert cfg.DICTATION_SESSION_TTL_SECONDS == 3600
    assert detector.silence_threshold_ms == 3000
    assert detector.turn_detection_timeout_ms == 4000
    assert detector.restart_delay_ms == 100
    assert detector.language_tag == "en-US"
    assert detector.continuous_mode is True
    assert detector.interim_results_enabled is True
    assert detector.max_alternatives == 1


def test_preset_sets_timing_but_env_wins(monkeypatch) -> None:
    monkeypatch.setenv("TURN_PRESET", "quick_reply_v1")
    cfg = load_config()
    assert cfg.DICTATION_SILENCE_THRESHOLD_MS == 1500
    assert cfg.DICTATION_TURN_TIMEOUT_MS == 2000

    monkeypatch.setenv("DICTATION_SILENCE_THRESHOLD_MS", "2500")
    cfg = load_config()
    assert cfg.DICTATION_SILENCE_THRESHOLD_MS == 2500
    assert cfg.DICTATION_TURN_TIMEOUT_MS == 2000


def test_unknown_preset_falls_back_to_defaults(monkeypatch) -> None:
    monkeypatch.setenv("TURN_PRESET", "no_such_preset")
    cfg = load_config()
    assert cfg.DICTATION_SILENCE_THRESHOLD_MS == 3000
    assert cfg.TURN_PRESET == "no_such_preset"


def test_env_flags_and_language(monkeypatch) -> None:
    monkeypatch.setenv("DICTATION_CONTINUOUS", "false")
    monkeypatch.setenv("DICTATION_INTERIM_RESULTS", "0")
    monkeypatch.setenv("DICTATION_LANGUAGE", "en-GB")
    detector = load_config().detector_config()

    assert detector.continuous_mode is False
    assert detector.interim_results_enabled is False
    assert detector.language_tag == "en-GB"


def test_per_activation_overrides_skip_none_and_validate() -> None:
    cfg = load_config()
    detector = cfg.detector_config(silence_threshold_ms=1200, language_tag=None)
    assert detector.silence_threshold_ms == 1200
    assert detector.language_tag == "en-US"

    with pytest.raises(ValidationError):
        cfg.detector_config(silence_threshold_ms=0)
    with pytest.raises(ValidationError):
        cfg.detector_config(unknown_knob=True)


def test_detector_config_is_frozen() -> None:
    detector = load_config().detector_config()
    with pytest.raises(ValidationError):
        detector.silence_threshold_ms = 10
