from __future__ import annotations

import logging
import time
import uuid
from threading import RLock
from typing import Any, Dict, Optional

from dictation.speech.models import RecordingStatus, TurnResult

from .contracts import AuditEvent, SessionState

logger = logging.getLogger(__name__)


class InMemorySessionStore:
    def __init__(self, ttl_seconds: int):
        self._ttl_seconds = ttl_seconds
        self._lock = RLock()
        self._sessions: Dict[str, Dict[str, Any]] = {}

    def create_session(self, session_id: Optional[str] = None) -> str:
        session_id = session_id or uuid.uuid4().hex
        now = time.time()
        with self._lock:
            self._sessions[session_id] = {
                "session_id": session_id,
                "created_at": now,
                "updated_at": now,
                "expires_at": now + self._ttl_seconds,
                "state": "connected",
                "status": None,
                "last_turn_result": None,
                "final_turns": [],
                "audit_events": [],
                "error": None,
            }
        return session_id

    def has_session(self, session_id: str) -> bool:
        with self._lock:
            return session_id in self._sessions

    def _touch(self, session_id: str) -> None:
        now = time.time()
        session = self._sessions[session_id]
        session["updated_at"] = now
        session["expires_at"] = now + self._ttl_seconds

    def set_state(self, session_id: str, state: SessionState) -> None:
        with self._lock:
            self._sessions[session_id]["state"] = state
            self._touch(session_id)

    def set_error(self, session_id: str, message: Optional[str]) -> None:
        with self._lock:
            self._sessions[session_id]["error"] = message
            self._touch(session_id)

    def set_status(self, session_id: str, status: RecordingStatus) -> None:
        with self._lock:
            self._sessions[session_id]["status"] = status
            self._touch(session_id)

    def set_turn_result(self, session_id: str, result: TurnResult) -> None:
        with self._lock:
            session = self._sessions[session_id]
            session["last_turn_result"] = result
            if result.is_final:
                session["final_turns"].append(result)
            self._touch(session_id)

    def append_audit_event(self, session_id: str, event: AuditEvent) -> None:
        with self._lock:
            self._sessions[session_id]["audit_events"].append(event)
            self._touch(session_id)

    def get_session(self, session_id: str) -> Dict[str, Any]:
        with self._lock:
            session = self._sessions.get(session_id)
            if session is None:
                raise KeyError(f"Unknown session_id: {session_id}")
            return {
                "session_id": session["session_id"],
                "created_at": session["created_at"],
                "updated_at": session["updated_at"],
                "expires_at": session["expires_at"],
                "state": session["state"],
                "status": session["status"],
                "last_turn_result": session["last_turn_result"],
                "final_turns": list(session["final_turns"]),
                "audit_events": list(session["audit_events"]),
                "error": session["error"],
            }

    def destroy_session(self, session_id: str, reason: str) -> bool:
        with self._lock:
            session = self._sessions.pop(session_id, None)
        if session is None:
            return False
        logger.info("session_store destroyed session_id=%s reason=%s", session_id, reason)
        return True

    def cleanup_expired_sessions(self) -> int:
        now = time.time()
        expired = []
        with self._lock:
            for session_id, session in self._sessions.items():
                if session["expires_at"] <= now:
                    expired.append(session_id)
        for session_id in expired:
            self.destroy_session(session_id, reason="ttl_expired")
        return len(expired)
