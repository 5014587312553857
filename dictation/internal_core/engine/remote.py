from __future__ import annotations

import logging
from typing import Any, Callable, Dict

from pydantic import TypeAdapter

from dictation.speech.models import Hypothesis

from .base import StreamingTranscriptionSource

logger = logging.getLogger(__name__)

_HYPOTHESES = TypeAdapter(list[Hypothesis])

ClientEvent = Dict[str, Any]


class RemoteTranscriptionSource(StreamingTranscriptionSource):
    """Engine that runs on the connected client (e.g. a browser recognizer).

    ``start``/``stop`` become outbound control messages; engine callbacks
    arrive as client events and are replayed through ``handle_client_event``.
    Each start carries the run ``session``; client events that echo an older
    session are dropped so a late end never lands on the restarted run.
    """

    CLIENT_EVENTS = frozenset({"session_start", "result", "error", "session_end"})

    def __init__(self, send: Callable[[Dict[str, Any]], None], *, supported: bool = True) -> None:
        super().__init__()
        self._send = send
        self._supported = supported

    @property
    def is_supported(self) -> bool:
        return self._supported

    def set_supported(self, supported: bool) -> None:
        self._supported = bool(supported)

    def name(self) -> str:
        return "remote"

    def start(self) -> None:
        self._send(
            {
                "type": "control",
                "action": "start",
                "session": self.session,
                "config": {
                    "continuous": self.continuous,
                    "interim_results": self.interim_results,
                    "max_alternatives": self.max_alternatives,
                    "language": self.language,
                },
            }
        )

    def stop(self) -> None:
        self._send({"type": "control", "action": "stop"})

    def handle_client_event(self, message_type: str, payload: ClientEvent) -> None:
        """Replay one client engine event; raises ValueError on malformed payloads."""
        if message_type not in self.CLIENT_EVENTS:
            raise ValueError(f"unknown engine event: {message_type}")
        tagged = payload.get("session")
        if tagged is not None and tagged != self.session:
            logger.debug("remote_source dropped %s for session=%s current=%s", message_type, tagged, self.session)
            return
        if message_type == "session_start":
            self.emit_session_start()
        elif message_type == "result":
            raw = payload.get("hypotheses")
            if not isinstance(raw, list):
                raise ValueError("result requires a hypotheses list")
            self.emit_result(_HYPOTHESES.validate_python(raw))
        elif message_type == "error":
            code = str(payload.get("code", "")).strip()
            if not code:
                raise ValueError("error requires a code")
            self.emit_error(code, str(payload.get("message", "") or ""))
        else:
            self.emit_session_end()
