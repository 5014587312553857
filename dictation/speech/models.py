from __future__ import annotations

"""
Typed speech-turn contracts shared by the detector and its consumers.

Design intent:
- Keep hypothesis payloads validated at the engine boundary.
- Freeze per-activation configuration so timers never see it change mid-turn.
- Publish turn results and recording status as immutable snapshots.
"""

from pydantic import BaseModel, ConfigDict, Field


class Hypothesis(BaseModel):
    text: str
    is_final: bool = False
    confidence: float | None = Field(default=None, ge=0.0, le=1.0)


class DetectorConfig(BaseModel):
    model_config = ConfigDict(frozen=True, extra="forbid")

    silence_threshold_ms: int = Field(default=3000, gt=0, le=600_000)
    turn_detection_timeout_ms: int = Field(default=4000, gt=0, le=600_000)
    language_tag: str = Field(default="en-US", min_length=2, max_length=35)
    continuous_mode: bool = True
    interim_results_enabled: bool = True
    max_alternatives: int = Field(default=1, ge=1, le=10)
    restart_delay_ms: int = Field(default=100, ge=0, le=10_000)


class TurnResult(BaseModel):
    model_config = ConfigDict(frozen=True)

    final_text: str
    interim_text: str = ""
    is_complete: bool
    confidence: float = Field(ge=0.0, le=1.0)
    total_length: int = Field(ge=0)
    is_final: bool = False


class RecordingStatus(BaseModel):
    model_config = ConfigDict(frozen=True)

    is_recording: bool
    is_supported: bool = True
    error: str | None = None
    last_activity: float = 0.0

    def same_transition(self, other: "RecordingStatus | None") -> bool:
        if other is None:
            return False
        return (
            self.is_recording == other.is_recording
            and self.is_supported == other.is_supported
            and self.error == other.error
        )
