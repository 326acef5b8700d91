import base64
import io
import json

import numpy as np
import pytest
import soundfile as sf
from fastapi.testclient import TestClient

from locuta.main import app


@pytest.fixture
def client():
    return TestClient(app)


def speech_chunk(seconds=0.5, sample_rate=44100, seed=0):
    rng = np.random.default_rng(seed)
    audio = rng.uniform(-0.5, 0.5, int(seconds * sample_rate)).astype(np.float32)
    buffer = io.BytesIO()
    sf.write(buffer, audio, sample_rate, format="WAV", subtype="FLOAT")
    return base64.b64encode(buffer.getvalue()).decode("utf-8")


def receive_until(ws, message_type, limit=500):
    for _ in range(limit):
        message = ws.receive_json()
        if message["type"] == message_type:
            return message
    raise AssertionError(f"no {message_type} message received")


def test_health_check(client):
    response = client.get("/")
    assert response.status_code == 200
    assert "running" in response.json()["status"]


class TestVoiceSocket:

    def test_end_session_returns_final_report(self, client):
        with client.websocket_connect("/ws/voice") as ws:
            ws.send_text(json.dumps({"timestamp": 0.0, "audio_chunk": speech_chunk()}))
            ws.send_text(json.dumps({"type": "end_session"}))
            report = receive_until(ws, "final_report")

        metrics = report["metrics"]
        assert "speakingTimeMs" in metrics
        assert "deliveryScore" in metrics
        assert 0 <= metrics["confidenceScore"] <= 100
        assert report["transcript"] is None

    def test_transcript_is_attached_to_report(self, client):
        with client.websocket_connect("/ws/voice") as ws:
            ws.send_text(json.dumps({
                "type": "transcript",
                "text": "Um, I think we should, like, start now.",
                "duration_seconds": 6,
            }))
            ws.send_text(json.dumps({"type": "end_session"}))
            report = receive_until(ws, "final_report")

        transcript = report["transcript"]
        assert transcript["word_count"] == 8
        assert transcript["filler_count"] == 2
        assert "too_short" in transcript["issues"]

    def test_invalid_message_gets_error(self, client):
        with client.websocket_connect("/ws/voice") as ws:
            ws.send_text(json.dumps({"timestamp": "soon"}))
            error = receive_until(ws, "error")
            assert error["detail"] == "Invalid message"

            ws.send_text("not json")
            error = receive_until(ws, "error")
            assert error["detail"] == "Messages must be JSON"

    def test_session_continues_after_report(self, client):
        with client.websocket_connect("/ws/voice") as ws:
            ws.send_text(json.dumps({"type": "end_session"}))
            receive_until(ws, "final_report")
            ws.send_text(json.dumps({"timestamp": 1.0, "audio_chunk": speech_chunk(seed=1)}))
            ws.send_text(json.dumps({"type": "end_session"}))
            report = receive_until(ws, "final_report")
        assert report["type"] == "final_report"

    @pytest.mark.parametrize("message", ["[]", '"end_session"', "42", "null"])
    def test_non_object_json_gets_error_and_session_survives(self, client, message):
        with client.websocket_connect("/ws/voice") as ws:
            ws.send_text(message)
            error = receive_until(ws, "error")
            assert error["detail"] == "Invalid message"

            ws.send_text(json.dumps({"type": "end_session"}))
            report = receive_until(ws, "final_report")
        assert report["type"] == "final_report"

    def test_end_session_with_extra_fields_is_accepted(self, client):
        with client.websocket_connect("/ws/voice") as ws:
            ws.send_text(json.dumps({"type": "end_session", "reason": "done"}))
            assert receive_until(ws, "final_report")["type"] == "final_report"

    def test_transcript_carries_lesson_level(self, client):
        with client.websocket_connect("/ws/voice") as ws:
            ws.send_text(json.dumps({
                "type": "transcript",
                "text": "We should start now.",
                "duration_seconds": 20,
                "lesson_number": 5,
            }))
            ws.send_text(json.dumps({"type": "end_session"}))
            report = receive_until(ws, "final_report")
        assert report["transcript"]["lesson_level"] == "intermediate"


class TestIntroPlaybackControl:

    def test_load_play_and_advance_into_lesson(self, client):
        with client.websocket_connect("/ws/voice") as ws:
            ws.send_text(json.dumps({"type": "playback", "action": "load",
                                     "greeting_duration": 5, "lesson_duration": 10}))
            status = receive_until(ws, "playback_state")
            assert status["state"] == "idle"
            assert status["duration"] == 15

            ws.send_text(json.dumps({"type": "playback", "action": "play"}))
            assert receive_until(ws, "playback_state")["state"] == "playing_greeting"

            ws.send_text(json.dumps({"type": "playback", "action": "advance", "seconds": 7}))
            status = receive_until(ws, "playback_state")
            assert status["state"] == "playing_lesson"
            assert status["segment"] == "lesson"
            assert status["current_time"] == pytest.approx(7)

    def test_seek_and_skip(self, client):
        with client.websocket_connect("/ws/voice") as ws:
            ws.send_text(json.dumps({"type": "playback", "action": "load",
                                     "greeting_duration": 5, "lesson_duration": 10}))
            receive_until(ws, "playback_state")

            ws.send_text(json.dumps({"type": "playback", "action": "seek", "seconds": 12}))
            status = receive_until(ws, "playback_state")
            assert status["state"] == "paused"
            assert status["current_time"] == pytest.approx(12)

            ws.send_text(json.dumps({"type": "playback", "action": "skip_backward"}))
            assert receive_until(ws, "playback_state")["current_time"] == pytest.approx(2)

    def test_play_before_load_is_rejected(self, client):
        with client.websocket_connect("/ws/voice") as ws:
            ws.send_text(json.dumps({"type": "playback", "action": "play"}))
            error = receive_until(ws, "error")
            assert error["detail"] == "Nothing loaded to play"

    def test_load_without_durations_is_rejected(self, client):
        with client.websocket_connect("/ws/voice") as ws:
            ws.send_text(json.dumps({"type": "playback", "action": "load"}))
            error = receive_until(ws, "error")
            assert "greeting_duration" in error["detail"]

    def test_unknown_action_is_invalid(self, client):
        with client.websocket_connect("/ws/voice") as ws:
            ws.send_text(json.dumps({"type": "playback", "action": "rewind"}))
            assert receive_until(ws, "error")["detail"] == "Invalid message"
