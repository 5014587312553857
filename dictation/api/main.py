from __future__ import annotations

"""
Service surface for the dictation turn detector.

Design intent:
- Bridge a client-side speech engine to a server-owned TurnDetector over one websocket.
- Keep handlers thin; restart, silence and end-of-turn decisions stay in the detector.
- Expose a per-session snapshot plus audit trail for debugging dictation sessions.
"""

import asyncio
import json
import logging
from typing import Any, Optional

from fastapi import FastAPI, HTTPException, WebSocket, WebSocketDisconnect
from fastapi.middleware.cors import CORSMiddleware
from pydantic import BaseModel, Field, ValidationError

from dictation.internal_core import audit
from dictation.internal_core.config import ServiceConfig, load_config
from dictation.internal_core.contracts import AuditEvent
from dictation.internal_core.engine import AsyncioScheduler, RemoteTranscriptionSource, TurnDetector
from dictation.internal_core.session_store import InMemorySessionStore
from dictation.speech.models import RecordingStatus, TurnResult


class DictationSessionResponse(BaseModel):
    session_id: str
    state: str
    status: Optional[RecordingStatus] = None
    last_turn_result: Optional[TurnResult] = None
    final_turns: list[TurnResult] = Field(default_factory=list)
    audit_events: list[AuditEvent] = Field(default_factory=list)
    error: Optional[str] = None
    updated_at: float = 0.0


app = FastAPI(title="dictation turn detection service")
logger = logging.getLogger(__name__)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


def _get_service_config() -> ServiceConfig:
    existing = getattr(app.state, "service_config", None)
    if isinstance(existing, ServiceConfig):
        return existing
    created = load_config()
    logging.getLogger("dictation").setLevel(created.DICTATION_LOG_LEVEL.upper())
    setattr(app.state, "service_config", created)
    return created


def _get_session_store() -> InMemorySessionStore:
    existing = getattr(app.state, "dictation_sessions", None)
    if isinstance(existing, InMemorySessionStore):
        return existing
    created = InMemorySessionStore(ttl_seconds=_get_service_config().DICTATION_SESSION_TTL_SECONDS)
    setattr(app.state, "dictation_sessions", created)
    return created


async def _drain_outbox(websocket: WebSocket, outbox: "asyncio.Queue[dict[str, Any]]") -> None:
    while True:
        message = await outbox.get()
        try:
            await websocket.send_json(message)
        except (WebSocketDisconnect, RuntimeError):
            return


@app.get("/healthz")
async def healthz() -> dict[str, str]:
    return {"status": "ok"}


@app.get("/dictation/sessions/{session_id}", response_model=DictationSessionResponse)
async def dictation_session(session_id: str) -> DictationSessionResponse:
    normalized_session = str(session_id or "").strip()
    if not normalized_session:
        raise HTTPException(status_code=400, detail="session_id is required.")
    store = _get_session_store()
    store.cleanup_expired_sessions()
    try:
        session = store.get_session(normalized_session)
    except KeyError:
        raise HTTPException(status_code=404, detail=f"Unknown session_id: {normalized_session}")
    return DictationSessionResponse(
        session_id=normalized_session,
        state=str(session.get("state", "idle")),
        status=session.get("status"),
        last_turn_result=session.get("last_turn_result"),
        final_turns=list(session.get("final_turns", [])),
        audit_events=list(session.get("audit_events", [])),
        error=session.get("error"),
        updated_at=float(session.get("updated_at", 0.0) or 0.0),
    )


@app.websocket("/ws/dictation")
async def dictation_ws(websocket: WebSocket) -> None:
    await websocket.accept()
    session_id = str(websocket.query_params.get("session_id", "")).strip()
    if not session_id:
        await websocket.send_json({"type": "error", "detail": "session_id is required."})
        await websocket.close(code=1008)
        return

    cfg = _get_service_config()
    store = _get_session_store()
    store.create_session(session_id)
    audit.log_event(store, session_id, "SESSION_CREATED", "WS_CONNECT", f"lang={cfg.DICTATION_LANGUAGE}")

    outbox: asyncio.Queue[dict[str, Any]] = asyncio.Queue()
    source = RemoteTranscriptionSource(outbox.put_nowait)

    def _on_turn_result(result: TurnResult) -> None:
        store.set_turn_result(session_id, result)
        outbox.put_nowait({"type": "turn_result", "session_id": session_id, **result.model_dump()})

    def _on_transcript_change(text: str) -> None:
        outbox.put_nowait({"type": "transcript", "session_id": session_id, "text": text})

    def _on_status_change(status: RecordingStatus) -> None:
        store.set_status(session_id, status)
        store.set_error(session_id, status.error)
        if status.error:
            store.set_state(session_id, "failed")
        else:
            store.set_state(session_id, "recording" if status.is_recording else "idle")
        outbox.put_nowait({"type": "status", "session_id": session_id, **status.model_dump()})

    def _on_lifecycle(code: str, detail: str) -> None:
        audit.log_lifecycle(store, session_id, code, detail)

    detector = TurnDetector(
        source,
        scheduler=AsyncioScheduler(asyncio.get_running_loop()),
        config=cfg.detector_config(),
        on_turn_result=_on_turn_result,
        on_transcript_change=_on_transcript_change,
        on_status_change=_on_status_change,
        on_lifecycle=_on_lifecycle,
    )
    sender = asyncio.create_task(_drain_outbox(websocket, outbox))

    try:
        while True:
            raw = await websocket.receive_text()
            try:
                payload = json.loads(raw)
            except json.JSONDecodeError:
                outbox.put_nowait({"type": "error", "detail": "invalid_json"})
                continue
            if not isinstance(payload, dict):
                outbox.put_nowait({"type": "error", "detail": "invalid_payload"})
                continue

            message_type = str(payload.get("type", "")).strip().lower()
            if message_type == "start_recording":
                if "supported" in payload:
                    source.set_supported(bool(payload.get("supported")))
                overrides = payload.get("config") or {}
                if not isinstance(overrides, dict):
                    outbox.put_nowait({"type": "error", "detail": "invalid_payload"})
                    continue
                try:
                    activation_config = cfg.detector_config(**overrides)
                except (ValidationError, TypeError) as exc:
                    logger.warning("dictation_ws invalid config session_id=%s error=%s", session_id, exc)
                    outbox.put_nowait({"type": "error", "detail": "invalid_payload"})
                    continue
                detector.start(activation_config)
                continue

            if message_type == "stop_recording":
                detector.stop()
                continue

            if message_type == "toggle":
                detector.toggle()
                continue

            if message_type in RemoteTranscriptionSource.CLIENT_EVENTS:
                try:
                    source.handle_client_event(message_type, payload)
                except ValueError as exc:
                    logger.warning(
                        "dictation_ws invalid engine event session_id=%s type=%s error=%s",
                        session_id,
                        message_type,
                        exc,
                    )
                    outbox.put_nowait({"type": "error", "detail": "invalid_payload"})
                continue

            outbox.put_nowait({"type": "error", "detail": "unknown_message_type"})
    except WebSocketDisconnect:
        logger.info("dictation_ws disconnected session_id=%s", session_id)
    finally:
        detector.close()
        sender.cancel()
        if store.has_session(session_id):
            audit.log_event(store, session_id, "SESSION_DESTROYED", "WS_DISCONNECT", f"activations={detector.activation}")
            store.set_state(session_id, "disconnected")
