"""
Tests for ReadAloudClient.

Tests cover:
- Error bodies rebuilt into the matching exception classes
- Transport failures and bare 5xx answers become transient TransportErrors
- Download cleanup header
- End to end against the real app: long job submitted, polled, downloaded once
- Retry decision survives the HTTP hop: status deadlines retried, permanent failures not
"""

import httpx
import pytest
from fastapi.testclient import TestClient

from readaloud.api.dependencies import get_speech_service
from readaloud.client.api_client import ReadAloudClient
from readaloud.client.poller import JobPoller, PollState
from readaloud.core.config import PollingConfig
from readaloud.services.errors import (
    InvalidInputError,
    NotFoundError,
    ReadAloudError,
    RequestTimeoutError,
    TransportError,
)
from readaloud.main import create_app
from readaloud.tts.jobs import JobStatus, SynthesisJob

from conftest import MP3_BYTES, WAV_BYTES


def _client(handler) -> ReadAloudClient:
    http = httpx.Client(transport=httpx.MockTransport(handler), base_url="http://readaloud.test")
    return ReadAloudClient(client=http)


class TestErrorMapping:
    def test_invalid_input(self):
        def handler(request):
            return httpx.Response(400, json={"ok": False, "error": "Text is required", "code": "INVALID_INPUT"})

        with pytest.raises(InvalidInputError) as exc_info:
            _client(handler).synthesize("")
        assert exc_info.value.message == "Text is required"

    def test_not_found(self):
        def handler(request):
            return httpx.Response(404, json={"ok": False, "error": "Audio file not found", "code": "NOT_FOUND"})

        with pytest.raises(NotFoundError):
            _client(handler).download("tts-1-a.wav")

    def test_internal_error_is_transient(self):
        def handler(request):
            return httpx.Response(500, json={"ok": False, "error": "Internal server error", "code": "INTERNAL_ERROR"})

        with pytest.raises(TransportError) as exc_info:
            _client(handler).check_status("op/1")
        assert exc_info.value.transient is True

    def test_configuration_error_keeps_code(self):
        def handler(request):
            return httpx.Response(
                500,
                json={"ok": False, "error": "Storage bucket not configured", "code": "CONFIGURATION_ERROR"},
            )

        with pytest.raises(ReadAloudError) as exc_info:
            _client(handler).download("tts-1-a.wav")
        assert exc_info.value.code == "CONFIGURATION_ERROR"

    def test_non_json_body(self):
        def handler(request):
            return httpx.Response(502, content=b"<html>Bad Gateway</html>")

        with pytest.raises(TransportError) as exc_info:
            _client(handler).check_status("op/1")
        assert exc_info.value.message == "Server returned HTTP 502"

    def test_connection_refused(self):
        def handler(request):
            raise httpx.ConnectError("refused", request=request)

        with pytest.raises(TransportError) as exc_info:
            _client(handler).check_status("op/1")
        assert exc_info.value.transient is True


class TestEndpoints:
    def test_short_synthesis(self):
        seen = {}

        def handler(request):
            seen["body"] = request.content
            return httpx.Response(200, content=MP3_BYTES, headers={"content-type": "audio/mpeg"})

        outcome = _client(handler).synthesize("Hello", voice="en-GB-Wavenet-B")

        assert outcome.audio == MP3_BYTES
        assert outcome.job is None
        assert b'"voice":"en-GB-Wavenet-B"' in seen["body"].replace(b" ", b"")

    def test_status_wire_form(self):
        def handler(request):
            return httpx.Response(200, json={"status": "processing", "progress": 0})

        status = _client(handler).check_status("op/1")
        assert status.status == "processing"
        assert status.progress == 0.0

    def test_download_cleanup_failed(self):
        def handler(request):
            return httpx.Response(
                200,
                content=WAV_BYTES,
                headers={"content-type": "audio/wav", "x-cleanup": "failed"},
            )

        result = _client(handler).download("tts-1-a.wav")
        assert result.payload == WAV_BYTES
        assert result.cleanup.ok is False

    def test_health(self):
        def handler(request):
            assert request.url.path == "/health"
            return httpx.Response(200, json={"ok": True, "long_audio_ready": False})

        assert _client(handler).health()["long_audio_ready"] is False


class TestEndToEnd:
    def test_long_job_submit_poll_download(self, service, mock_provider, fake_bucket):
        app = create_app()
        app.dependency_overrides[get_speech_service] = lambda: service
        mock_provider.get_job_status.side_effect = [
            JobStatus.processing(40.0),
            JobStatus.completed(),
        ]

        with TestClient(app) as http:
            client = ReadAloudClient(client=http)
            outcome = client.synthesize("a" * 8000)
            assert outcome.is_long_audio

            # The provider writes the artifact when the job finishes.
            fake_bucket.objects[outcome.job.output_file_name] = WAV_BYTES

            poller = JobPoller(
                client.check_status,
                client.download,
                config=PollingConfig(interval_s=0.01, max_interval_s=0.01),
                sleep=lambda s: None,
            )
            assert poller.run(outcome.job) is PollState.COMPLETED
            assert poller.result.payload == WAV_BYTES
            assert poller.result.cleanup.ok

            with pytest.raises(NotFoundError):
                client.download(outcome.job.output_file_name)

    def _poll_through_app(self, service, mock_provider, check_side_effect, **config):
        app = create_app()
        app.dependency_overrides[get_speech_service] = lambda: service
        job = SynthesisJob(
            operation_name="projects/p/locations/global/operations/9",
            output_file_name="tts-1700000000000-abc.wav",
        )
        mock_provider.get_job_status.side_effect = check_side_effect

        with TestClient(app) as http:
            client = ReadAloudClient(client=http)
            poller = JobPoller(
                client.check_status,
                config=PollingConfig(interval_s=0.01, max_interval_s=0.01, **config),
                sleep=lambda s: None,
            )
            poller.start(job)
            first = poller.poll_once()
        return poller, first

    def test_status_deadline_is_retried(self, service, mock_provider):
        poller, first = self._poll_through_app(
            service,
            mock_provider,
            [RequestTimeoutError("Google Cloud TTS request timed out"), JobStatus.processing(10.0)],
        )

        assert first is PollState.PROCESSING
        assert poller.error is None

    def test_permanent_status_failure_stops_polling(self, service, mock_provider):
        poller, first = self._poll_through_app(
            service,
            mock_provider,
            [TransportError("Failed to check operation status", transient=False)],
        )

        assert first is PollState.FAILED
        assert isinstance(poller.error, TransportError)
        assert poller.error.transient is False


class TestTransientFlagOnTheWire:
    def test_server_side_permanent_transport_error(self):
        def handler(request):
            body = TransportError("Failed to check operation status", transient=False).to_dict()
            return httpx.Response(500, json=body)

        with pytest.raises(TransportError) as exc_info:
            _client(handler).check_status("op/1")
        assert exc_info.value.transient is False

    def test_server_side_transient_transport_error(self):
        def handler(request):
            return httpx.Response(500, json=TransportError("Failed to check operation status").to_dict())

        with pytest.raises(TransportError) as exc_info:
            _client(handler).check_status("op/1")
        assert exc_info.value.transient is True
