"""
API tests with FastAPI's TestClient and a SpeechService over mocked Google clients.

Tests cover:
- POST /v1/tts short (MP3) and long (job handle) responses
- POST /v1/tts/status for each job state
- POST /v1/tts/download: bytes, cleanup header, single use
- POST /v1/extract: success and per-error HTTP status
- Malformed bodies -> 400 with the standard error body
- Unexpected exceptions -> 500 without internals
- X-Request-Id propagation, /health, /metrics
"""

import pytest
from fastapi.testclient import TestClient

from readaloud.api.dependencies import get_speech_service
from readaloud.main import create_app
from readaloud.services.errors import (
    ExtractionError,
    NotFoundError,
    RequestTimeoutError,
    TransportError,
)
from readaloud.services.extractor import NOT_FOUND_MESSAGE, ExtractedArticle
from readaloud.tts.jobs import JobStatus

from conftest import MP3_BYTES, OPERATION_NAME, WAV_BYTES


@pytest.fixture
def client(service):
    app = create_app()
    app.dependency_overrides[get_speech_service] = lambda: service
    with TestClient(app) as c:
        yield c


class TestTTS:
    def test_short_text_returns_mp3(self, client):
        r = client.post("/v1/tts", json={"text": "Hello world"})

        assert r.status_code == 200
        assert r.headers["content-type"] == "audio/mpeg"
        assert r.content == MP3_BYTES
        assert r.headers["x-bytes"] == str(len(MP3_BYTES))

    def test_long_text_returns_job(self, client, mock_provider):
        r = client.post("/v1/tts", json={"text": "a" * 8000})

        assert r.status_code == 200
        body = r.json()
        assert body["operationName"] == OPERATION_NAME
        assert body["outputFileName"].endswith(".wav")
        assert body["isLongAudio"] is True
        mock_provider.synthesize_mp3.assert_not_called()

    def test_missing_text(self, client):
        r = client.post("/v1/tts", json={})

        assert r.status_code == 400
        body = r.json()
        assert body == {
            "ok": False,
            "error": "Text is required",
            "code": "INVALID_INPUT",
            "details": {"reason": "TEXT_REQUIRED"},
        }

    def test_text_over_max(self, client, mock_provider):
        r = client.post("/v1/tts", json={"text": "a" * 1_000_001})

        assert r.status_code == 400
        assert r.json()["details"]["reason"] == "TEXT_TOO_LONG"
        mock_provider.synthesize_mp3.assert_not_called()

    def test_provider_failure_is_500(self, client, mock_provider):
        mock_provider.synthesize_mp3.side_effect = TransportError("Failed to generate speech with Google Cloud TTS")

        r = client.post("/v1/tts", json={"text": "Hello"})

        assert r.status_code == 500
        assert r.json()["error"] == "Failed to generate speech with Google Cloud TTS"
        assert r.json()["code"] == "TRANSPORT_ERROR"

    def test_unexpected_exception_hides_details(self, client, mock_provider):
        mock_provider.synthesize_mp3.side_effect = RuntimeError("secret stack detail")

        r = client.post("/v1/tts", json={"text": "Hello"}, headers={"X-Request-Id": "req-123"})

        assert r.status_code == 500
        body = r.json()
        assert body["code"] == "INTERNAL_ERROR"
        assert body["error"] == "Internal server error"
        assert body["request_id"] == "req-123"
        assert "secret" not in r.text


class TestMalformedBodies:
    def test_not_json(self, client):
        r = client.post("/v1/tts", content=b"not json", headers={"content-type": "application/json"})

        assert r.status_code == 400
        assert r.json()["code"] == "INVALID_INPUT"
        assert r.json()["details"]["reason"] == "BODY_INVALID"

    def test_wrong_type(self, client):
        r = client.post("/v1/tts", json={"text": "Hi", "speed": "fast"})

        assert r.status_code == 400
        assert r.json()["details"]["fields"] == ["speed"]


class TestStatus:
    def test_processing(self, client):
        r = client.post("/v1/tts/status", json={"operationName": OPERATION_NAME})
        assert r.json() == {"status": "processing", "progress": 40.0}

    def test_completed(self, client, mock_provider):
        mock_provider.get_job_status.return_value = JobStatus.completed({"type": "t"})
        r = client.post("/v1/tts/status", json={"operationName": OPERATION_NAME})
        assert r.json() == {"status": "completed", "result": {"type": "t"}}

    def test_error(self, client, mock_provider):
        mock_provider.get_job_status.return_value = JobStatus.failed("Voice not supported")
        r = client.post("/v1/tts/status", json={"operationName": OPERATION_NAME})

        assert r.status_code == 200
        assert r.json() == {"status": "error", "error": "Voice not supported"}

    def test_missing_operation_name(self, client):
        r = client.post("/v1/tts/status", json={})

        assert r.status_code == 400
        assert r.json()["error"] == "Operation name is required"

    def test_provider_failure(self, client, mock_provider):
        mock_provider.get_job_status.side_effect = TransportError("Failed to check operation status")
        r = client.post("/v1/tts/status", json={"operationName": OPERATION_NAME})

        assert r.status_code == 500
        assert r.json()["error"] == "Failed to check operation status"


class TestDownload:
    def test_download_once(self, client, fake_bucket):
        fake_bucket.objects["tts-1-abc.wav"] = WAV_BYTES

        r = client.post("/v1/tts/download", json={"fileName": "tts-1-abc.wav"})

        assert r.status_code == 200
        assert r.content == WAV_BYTES
        assert r.headers["content-type"] == "audio/wav"
        assert r.headers["content-disposition"] == 'attachment; filename="tts-1-abc.wav"'
        assert r.headers["x-cleanup"] == "ok"

        again = client.post("/v1/tts/download", json={"fileName": "tts-1-abc.wav"})
        assert again.status_code == 404
        assert again.json()["error"] == "Audio file not found"

    def test_cleanup_failure_still_200(self, client, fake_bucket):
        fake_bucket.objects["tts-2-def.wav"] = WAV_BYTES
        fake_bucket.fail_delete = True

        r = client.post("/v1/tts/download", json={"fileName": "tts-2-def.wav"})

        assert r.status_code == 200
        assert r.content == WAV_BYTES
        assert r.headers["x-cleanup"] == "failed"

    def test_missing_file_name(self, client):
        r = client.post("/v1/tts/download", json={})

        assert r.status_code == 400
        assert r.json()["error"] == "File name is required"


class TestExtract:
    def test_success(self, client, mock_extractor):
        mock_extractor.extract.return_value = ExtractedArticle(
            text="Otters hold hands.", title="Otters", original_length=18
        )

        r = client.post("/v1/extract", json={"url": "https://example.com/otters"})

        assert r.status_code == 200
        assert r.json() == {
            "text": "Otters hold hands.",
            "title": "Otters",
            "originalLength": 18,
            "truncated": False,
        }

    @pytest.mark.parametrize("exc,status", [
        (NotFoundError(NOT_FOUND_MESSAGE), 400),
        (ExtractionError("Could not extract readable content from the URL"), 400),
        (RequestTimeoutError("Request timeout. The website took too long to respond."), 408),
        (TransportError("Failed to extract text from URL."), 500),
    ])
    def test_error_status(self, client, mock_extractor, exc, status):
        mock_extractor.extract.side_effect = exc

        r = client.post("/v1/extract", json={"url": "https://example.com/"})

        assert r.status_code == status
        assert r.json()["error"] == exc.message
        assert r.json()["ok"] is False


class TestAmbient:
    def test_request_id_echoed(self, client):
        r = client.post("/v1/tts", json={"text": "Hi"}, headers={"X-Request-Id": "abc-123"})
        assert r.headers["x-request-id"] == "abc-123"

    def test_request_id_generated(self, client):
        r = client.get("/health")
        assert len(r.headers["x-request-id"]) == 12

    def test_health(self, client):
        r = client.get("/health")

        assert r.status_code == 200
        body = r.json()
        assert body["ok"] is True
        assert body["long_audio_ready"] is True
        assert "version" in body

    def test_metrics(self, client):
        r = client.get("/metrics")
        assert r.status_code == 200
