"""
Unit tests for the voice recording API routes.
"""

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient

from conftest import FakeNormalizer, FakeSpeechClient, speech_response, speech_result
from voice_io.api.routes import _source_format, setup_api_routes
from voice_io.core.errors import TranscodeFailure
from voice_io.recognition.client import RecognitionClient


def make_client(store, normalizer=None, fake=None):
    app = FastAPI()
    fake = fake or FakeSpeechClient(recognize_response=speech_response(speech_result("hello world")))
    setup_api_routes(app, RecognitionClient(fake), normalizer=normalizer or FakeNormalizer(), store=store)
    return TestClient(app)


class TestVoiceRecordEndpoint:
    """Tests for POST /api/v1/voicerecord."""

    def test_transcript(self, store):
        client = make_client(store)

        response = client.post(
            "/api/v1/voicerecord",
            files={"audio": ("recording.webm", b"webm bytes", "audio/webm")},
        )

        assert response.status_code == 200
        assert response.json() == {"transcript": "hello world"}
        assert store.list_artifacts() == []

    def test_no_speech(self, store):
        client = make_client(store, fake=FakeSpeechClient())

        response = client.post(
            "/api/v1/voicerecord",
            files={"audio": ("recording.webm", b"silence", "audio/webm")},
        )

        assert response.status_code == 200
        assert response.json() == {"transcript": "No speech recognized."}

    def test_transcode_failure(self, store):
        normalizer = FakeNormalizer(error=TranscodeFailure("ffmpeg exited with code 1", details="Invalid data"))
        client = make_client(store, normalizer=normalizer)

        response = client.post(
            "/api/v1/voicerecord",
            files={"audio": ("recording.webm", b"garbage", "audio/webm")},
        )

        assert response.status_code == 500
        assert response.json() == {
            "error": "Transcription failed",
            "kind": "TranscodeFailure",
            "details": "Invalid data",
        }
        assert store.list_artifacts() == []

    def test_missing_audio_field(self, store):
        response = make_client(store).post("/api/v1/voicerecord")
        assert response.status_code == 422

    def test_health(self, store):
        response = make_client(store).get("/api/v1/voicerecord/health")

        assert response.status_code == 200
        data = response.json()
        assert data["status"] == "ok"
        assert data["language"] == "en-US"
        assert data["temp_dir"] == str(store.directory)


class TestSourceFormat:
    """Tests for upload format detection."""

    class Upload:
        def __init__(self, filename, content_type):
            self.filename = filename
            self.content_type = content_type

    @pytest.mark.parametrize(
        "filename,content_type,expected",
        [
            ("recording.webm", "audio/webm;codecs=opus", "audio/webm;codecs=opus"),
            ("recording.ogg", "application/octet-stream", "ogg"),
            ("recording.wav", None, "wav"),
            (None, None, ""),
        ],
    )
    def test_detection(self, filename, content_type, expected):
        assert _source_format(self.Upload(filename, content_type)) == expected
