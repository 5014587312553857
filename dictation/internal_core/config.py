from __future__ import annotations

import os
from dataclasses import dataclass
from typing import Any, Optional

from dictation.speech.models import DetectorConfig


def _getenv_str(name: str, default: str) -> str:
    value = os.getenv(name)
    return default if value is None else value


def _getenv_int(name: str, default: int) -> int:
    value = os.getenv(name)
    if value is None or value == "":
        return default
    return int(value)


def _getenv_bool(name: str, default: bool) -> bool:
    value = os.getenv(name)
    if value is None or value == "":
        return default
    return value.strip().lower() in {"1", "true", "t", "yes", "y", "on"}


def _env_set(name: str) -> bool:
    value = os.getenv(name)
    return value is not None and value != ""


def _getenv_int_preset(name: str, default: int, preset_value: Optional[int]) -> int:
    if _env_set(name):
        return _getenv_int(name, default)
    if preset_value is not None:
        return int(preset_value)
    return default


def _preset_overrides(name: str) -> dict[str, int]:
    if name == "clinical_dictation_v1":
        return {
            "DICTATION_SILENCE_THRESHOLD_MS": 3000,
            "DICTATION_TURN_TIMEOUT_MS": 4000,
        }
    if name == "quick_reply_v1":
        return {
            "DICTATION_SILENCE_THRESHOLD_MS": 1500,
            "DICTATION_TURN_TIMEOUT_MS": 2000,
        }
    return {}


@dataclass(frozen=True)
class ServiceConfig:
    DICTATION_SILENCE_THRESHOLD_MS: int
    DICTATION_TURN_TIMEOUT_MS: int
    DICTATION_RESTART_DELAY_MS: int
    DICTATION_LANGUAGE: str
    DICTATION_CONTINUOUS: bool
    DICTATION_INTERIM_RESULTS: bool
    DICTATION_MAX_ALTERNATIVES: int
    DICTATION_SESSION_TTL_SECONDS: int
    DICTATION_LOG_LEVEL: str
    TURN_PRESET: str

    def detector_config(self, **overrides: Any) -> DetectorConfig:
        base = {
            "silence_threshold_ms": self.DICTATION_SILENCE_THRESHOLD_MS,
            "turn_detection_timeout_ms": self.DICTATION_TURN_TIMEOUT_MS,
            "restart_delay_ms": self.DICTATION_RESTART_DELAY_MS,
            "language_tag": self.DICTATION_LANGUAGE,
            "continuous_mode": self.DICTATION_CONTINUOUS,
            "interim_results_enabled": self.DICTATION_INTERIM_RESULTS,
            "max_alternatives": self.DICTATION_MAX_ALTERNATIVES,
        }
        base.update({key: value for key, value in overrides.items() if value is not None})
        return DetectorConfig(**base)


def load_config() -> ServiceConfig:
    turn_preset = _getenv_str("TURN_PRESET", "")
    preset = _preset_overrides(turn_preset)

    return ServiceConfig(
        DICTATION_SILENCE_THRESHOLD_MS=_getenv_int_preset(
            "DICTATION_SILENCE_THRESHOLD_MS", 3000, preset.get("DICTATION_SILENCE_THRESHOLD_MS")
        ),
        DICTATION_TURN_TIMEOUT_MS=_getenv_int_preset(
            "DICTATION_TURN_TIMEOUT_MS", 4000, preset.get("DICTATION_TURN_TIMEOUT_MS")
        ),
        DICTATION_RESTART_DELAY_MS=_getenv_int("DICTATION_RESTART_DELAY_MS", 100),
        DICTATION_LANGUAGE=_getenv_str("DICTATION_LANGUAGE", "en-US"),
        DICTATION_CONTINUOUS=_getenv_bool("DICTATION_CONTINUOUS", True),
        DICTATION_INTERIM_RESULTS=_getenv_bool("DICTATION_INTERIM_RESULTS", True),
        DICTATION_MAX_ALTERNATIVES=_getenv_int("DICTATION_MAX_ALTERNATIVES", 1),
        DICTATION_SESSION_TTL_SECONDS=_getenv_int("DICTATION_SESSION_TTL_SECONDS", 3600),
        DICTATION_LOG_LEVEL=_getenv_str("DICTATION_LOG_LEVEL", "INFO"),
        TURN_PRESET=turn_preset,
    )
