from __future__ import annotations

from typing import Literal, Optional

from pydantic import BaseModel, ConfigDict

SessionState = Literal["connected", "recording", "idle", "failed", "disconnected"]

AuditEventType = Literal[
    "SESSION_CREATED",
    "RECORDING_STARTED",
    "ENGINE_RESTART",
    "ENGINE_ERROR",
    "TURN_FINALIZED",
    "SESSION_DESTROYED",
    "ERROR",
]


class AuditEvent(BaseModel):
    model_config = ConfigDict(extra="forbid")

    ts_iso: str
    session_id: str
    type: AuditEventType
    code: str
    detail: str
    duration_ms: Optional[int] = None
