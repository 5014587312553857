import json

from fastapi.testclient import TestClient

from dictation.api.main import app


def _hypotheses(text: str, *, final: bool = True) -> str:
    return json.dumps({"type": "result", "hypotheses": [{"text": text, "is_final": final}]})


def test_healthz() -> None:
    client = TestClient(app)
    response = client.get("/healthz")
    assert response.status_code == 200
    assert response.json() == {"status": "ok"}


def test_ws_requires_session_id() -> None:
    client = TestClient(app)
    with client.websocket_connect("/ws/dictation") as ws:
        message = ws.receive_json()
        assert message == {"type": "error", "detail": "session_id is required."}


def test_ws_dictation_turn_survives_engine_restart() -> None:
    client = TestClient(app)
    session_id = "ws_restart_case"
    overrides = {"silence_threshold_ms": 60000, "turn_detection_timeout_ms": 60000}

    with client.websocket_connect(f"/ws/dictation?session_id={session_id}") as ws:
        ws.send_text(json.dumps({"type": "start_recording", "config": overrides}))
        control = ws.receive_json()
        assert control["type"] == "control"
        assert control["action"] == "start"
        assert control["session"] == 1
        assert control["config"]["continuous"] is True
        assert control["config"]["interim_results"] is True

        ws.send_text(json.dumps({"type": "session_start"}))
        status = ws.receive_json()
        assert status["type"] == "status"
        assert status["is_recording"] is True

        ws.send_text(_hypotheses("I have a"))
        turn = ws.receive_json()
        assert turn["type"] == "turn_result"
        assert turn["final_text"] == "I have a"
        assert turn["is_final"] is False
        transcript = ws.receive_json()
        assert transcript == {"type": "transcript", "session_id": session_id, "text": "I have a"}

        ws.send_text(json.dumps({"type": "error", "code": "no-speech", "session": 1}))
        ws.send_text(json.dumps({"type": "session_end", "session": 1}))
        restart = ws.receive_json()
        assert restart == {
            "type": "control",
            "action": "start",
            "session": 2,
            "config": control["config"],
        }

        # a repeated end for the errored run must not restart the new one
        ws.send_text(json.dumps({"type": "session_end", "session": 1}))
        ws.send_text(json.dumps({"type": "session_start", "session": 2}))
        ws.send_text(_hypotheses("sore throat"))
        turn = ws.receive_json()
        assert turn["type"] == "turn_result"
        assert turn["final_text"] == "I have a sore throat"
        transcript = ws.receive_json()
        assert transcript["text"] == "I have a sore throat"

        ws.send_text(json.dumps({"type": "stop_recording"}))
        assert ws.receive_json() == {"type": "control", "action": "stop"}
        final = ws.receive_json()
        assert final["type"] == "turn_result"
        assert final["is_final"] is True
        assert final["final_text"] == "I have a sore throat"
        status = ws.receive_json()
        assert status["type"] == "status"
        assert status["is_recording"] is False
        assert status["error"] is None

        ws.send_text(json.dumps({"type": "session_end", "session": 2}))
        ws.send_text(json.dumps({"type": "dance"}))
        assert ws.receive_json() == {"type": "error", "detail": "unknown_message_type"}

    response = client.get(f"/dictation/sessions/{session_id}")
    assert response.status_code == 200
    payload = response.json()
    assert payload["session_id"] == session_id
    assert payload["state"] in {"idle", "disconnected"}
    assert [item["final_text"] for item in payload["final_turns"]] == ["I have a sore throat"]
    types = [event["type"] for event in payload["audit_events"]]
    assert types[:2] == ["SESSION_CREATED", "RECORDING_STARTED"]
    assert "ENGINE_RESTART" in types
    assert types.count("TURN_FINALIZED") == 1
    for event in payload["audit_events"]:
        assert "sore throat" not in event["detail"]


def test_ws_fatal_engine_error_marks_session_failed() -> None:
    client = TestClient(app)
    session_id = "ws_fatal_case"

    with client.websocket_connect(f"/ws/dictation?session_id={session_id}") as ws:
        ws.send_text(json.dumps({"type": "start_recording"}))
        assert ws.receive_json()["action"] == "start"
        ws.send_text(json.dumps({"type": "session_start"}))
        assert ws.receive_json()["is_recording"] is True

        ws.send_text(json.dumps({"type": "error", "code": "not-allowed"}))
        status = ws.receive_json()
        assert status["type"] == "status"
        assert status["is_recording"] is False
        assert status["error"] == "Microphone permission denied"

        session = client.get(f"/dictation/sessions/{session_id}").json()
        assert session["state"] == "failed"
        assert session["error"] == "Microphone permission denied"
        assert session["final_turns"] == []


def test_ws_unsupported_client_engine() -> None:
    client = TestClient(app)
    with client.websocket_connect("/ws/dictation?session_id=ws_unsupported_case") as ws:
        ws.send_text(json.dumps({"type": "start_recording", "supported": False}))
        status = ws.receive_json()
        assert status["type"] == "status"
        assert status["is_supported"] is False
        assert status["is_recording"] is False
        assert status["error"]


def test_ws_rejects_malformed_messages() -> None:
    client = TestClient(app)
    with client.websocket_connect("/ws/dictation?session_id=ws_errors_case") as ws:
        ws.send_text("not json")
        assert ws.receive_json() == {"type": "error", "detail": "invalid_json"}

        ws.send_text(json.dumps(["a", "list"]))
        assert ws.receive_json() == {"type": "error", "detail": "invalid_payload"}

        ws.send_text(json.dumps({"type": "dance"}))
        assert ws.receive_json() == {"type": "error", "detail": "unknown_message_type"}

        ws.send_text(json.dumps({"type": "result", "hypotheses": "oops"}))
        assert ws.receive_json() == {"type": "error", "detail": "invalid_payload"}

        ws.send_text(json.dumps({"type": "result", "hypotheses": [{"text": "hi", "confidence": 5}]}))
        assert ws.receive_json() == {"type": "error", "detail": "invalid_payload"}

        ws.send_text(json.dumps({"type": "error"}))
        assert ws.receive_json() == {"type": "error", "detail": "invalid_payload"}

        ws.send_text(json.dumps({"type": "start_recording", "config": {"unknown_knob": 1}}))
        assert ws.receive_json() == {"type": "error", "detail": "invalid_payload"}


def test_unknown_session_returns_404() -> None:
    client = TestClient(app)
    response = client.get("/dictation/sessions/never_seen_case")
    assert response.status_code == 404
    assert "never_seen_case" in response.json()["detail"]
