"""Tests for GoogleSpeechProvider with mocked Google clients."""
from __future__ import annotations

from types import SimpleNamespace
from unittest.mock import MagicMock

import pytest
from google.api_core.exceptions import (
    DeadlineExceeded,
    InvalidArgument,
    PermissionDenied,
    ServiceUnavailable,
)
from google.cloud import texttospeech
from google.longrunning import operations_pb2
from google.protobuf import any_pb2
from google.rpc import status_pb2

from readaloud.core.config import GoogleConfig, SynthesisConfig
from readaloud.services.errors import (
    ConfigurationError,
    InvalidInputError,
    RequestTimeoutError,
    SynthesisError,
    TransportError,
)
from readaloud.tts.provider import GoogleSpeechProvider, language_code_for

from conftest import MP3_BYTES, OPERATION_NAME, TEST_PROJECT


def _provider(tts_client=None, long_client=None, project_id=TEST_PROJECT):
    return GoogleSpeechProvider(
        SynthesisConfig(),
        GoogleConfig(project_id=project_id, bucket_name="b"),
        tts_client=tts_client or MagicMock(),
        long_audio_client=long_client or MagicMock(),
    )


def _metadata(progress: float) -> any_pb2.Any:
    meta = texttospeech.SynthesizeLongAudioMetadata(progress_percentage=progress)
    packed = any_pb2.Any()
    packed.Pack(texttospeech.SynthesizeLongAudioMetadata.pb(meta))
    return packed


class TestLanguageCode:
    @pytest.mark.parametrize("voice,expected", [
        ("en-US-Wavenet-D", "en-US"),
        ("de-DE-Neural2-A", "de-DE"),
        ("cmn-CN-Wavenet-A", "cmn-CN"),
    ])
    def test_first_two_segments(self, voice, expected):
        assert language_code_for(voice) == expected


class TestSynthesizeMp3:
    def test_request_shape(self):
        client = MagicMock()
        client.synthesize_speech.return_value = SimpleNamespace(audio_content=MP3_BYTES)

        audio = _provider(tts_client=client).synthesize_mp3("Hello", "en-US-Wavenet-D", 1.25)

        assert audio == MP3_BYTES
        kwargs = client.synthesize_speech.call_args.kwargs
        assert kwargs["input"].text == "Hello"
        assert kwargs["voice"].language_code == "en-US"
        assert kwargs["voice"].name == "en-US-Wavenet-D"
        assert kwargs["audio_config"].audio_encoding == texttospeech.AudioEncoding.MP3
        assert kwargs["audio_config"].speaking_rate == 1.25
        assert kwargs["timeout"] == 60.0

    def test_empty_audio(self):
        client = MagicMock()
        client.synthesize_speech.return_value = SimpleNamespace(audio_content=b"")

        with pytest.raises(SynthesisError) as exc_info:
            _provider(tts_client=client).synthesize_mp3("Hello", "en-US-Wavenet-D", 1.0)
        assert exc_info.value.message == "No audio content received from Google Cloud TTS"

    @pytest.mark.parametrize("exc,expected", [
        (DeadlineExceeded("slow"), RequestTimeoutError),
        (InvalidArgument("bad voice"), InvalidInputError),
        (ServiceUnavailable("down"), TransportError),
    ])
    def test_exception_translation(self, exc, expected):
        client = MagicMock()
        client.synthesize_speech.side_effect = exc

        with pytest.raises(expected):
            _provider(tts_client=client).synthesize_mp3("Hello", "en-US-Wavenet-D", 1.0)

    def test_transport_error_message(self):
        client = MagicMock()
        client.synthesize_speech.side_effect = ServiceUnavailable("down")

        with pytest.raises(TransportError) as exc_info:
            _provider(tts_client=client).synthesize_mp3("Hello", "en-US-Wavenet-D", 1.0)
        assert exc_info.value.message == "Failed to generate speech with Google Cloud TTS"
        assert exc_info.value.transient is True

    def test_permission_denied_not_transient(self):
        client = MagicMock()
        client.synthesize_speech.side_effect = PermissionDenied("nope")

        with pytest.raises(TransportError) as exc_info:
            _provider(tts_client=client).synthesize_mp3("Hello", "en-US-Wavenet-D", 1.0)
        assert exc_info.value.transient is False


class TestStartLongAudio:
    def test_request_shape(self):
        client = MagicMock()
        client.synthesize_long_audio.return_value = SimpleNamespace(
            operation=SimpleNamespace(name=OPERATION_NAME)
        )

        name = _provider(long_client=client).start_long_audio(
            "long text", "en-US-Wavenet-D", 1.0, "gs://b/tts-1-a.wav"
        )

        assert name == OPERATION_NAME
        request = client.synthesize_long_audio.call_args.kwargs["request"]
        assert request.parent == f"projects/{TEST_PROJECT}/locations/global"
        assert request.output_gcs_uri == "gs://b/tts-1-a.wav"
        assert request.audio_config.audio_encoding == texttospeech.AudioEncoding.LINEAR16
        assert request.audio_config.sample_rate_hertz == 24000
        assert request.voice.language_code == "en-US"

    def test_operation_without_name(self):
        client = MagicMock()
        client.synthesize_long_audio.return_value = SimpleNamespace(operation=SimpleNamespace(name=""))

        with pytest.raises(SynthesisError) as exc_info:
            _provider(long_client=client).start_long_audio("t", "en-US-Wavenet-D", 1.0, "gs://b/x.wav")
        assert exc_info.value.message == "Failed to start long audio synthesis operation"

    def test_missing_project(self):
        client = MagicMock()
        with pytest.raises(ConfigurationError):
            _provider(long_client=client, project_id=None).start_long_audio(
                "t", "en-US-Wavenet-D", 1.0, "gs://b/x.wav"
            )
        client.synthesize_long_audio.assert_not_called()


class TestGetJobStatus:
    def test_processing_with_progress(self):
        client = MagicMock()
        client.get_operation.return_value = operations_pb2.Operation(
            name=OPERATION_NAME, done=False, metadata=_metadata(40.0)
        )

        status = _provider(long_client=client).get_job_status(OPERATION_NAME)

        assert status.status == "processing"
        assert status.progress == pytest.approx(40.0)
        assert client.get_operation.call_args.kwargs["request"] == {"name": OPERATION_NAME}

    def test_processing_without_metadata(self):
        client = MagicMock()
        client.get_operation.return_value = operations_pb2.Operation(name=OPERATION_NAME, done=False)

        status = _provider(long_client=client).get_job_status(OPERATION_NAME)

        assert status.status == "processing"
        assert status.progress is None
        assert status.to_dict() == {"status": "processing", "progress": 0}

    def test_completed(self):
        client = MagicMock()
        client.get_operation.return_value = operations_pb2.Operation(name=OPERATION_NAME, done=True)

        status = _provider(long_client=client).get_job_status(OPERATION_NAME)
        assert status.status == "completed"

    def test_error(self):
        client = MagicMock()
        client.get_operation.return_value = operations_pb2.Operation(
            name=OPERATION_NAME,
            done=True,
            error=status_pb2.Status(code=3, message="Unsupported voice"),
        )

        status = _provider(long_client=client).get_job_status(OPERATION_NAME)
        assert status.to_dict() == {"status": "error", "error": "Unsupported voice"}

    def test_error_without_message(self):
        client = MagicMock()
        client.get_operation.return_value = operations_pb2.Operation(
            name=OPERATION_NAME, done=True, error=status_pb2.Status(code=13)
        )

        status = _provider(long_client=client).get_job_status(OPERATION_NAME)
        assert status.error == "Unknown error occurred"

    def test_query_failure(self):
        client = MagicMock()
        client.get_operation.side_effect = ServiceUnavailable("down")

        with pytest.raises(TransportError) as exc_info:
            _provider(long_client=client).get_job_status(OPERATION_NAME)
        assert exc_info.value.message == "Failed to check operation status"


class TestClose:
    def test_close_closes_transports(self):
        tts_client = MagicMock()
        long_client = MagicMock()
        provider = _provider(tts_client=tts_client, long_client=long_client)

        provider.close()

        tts_client.transport.close.assert_called_once()
        long_client.transport.close.assert_called_once()
        assert provider.get_info()["clients_ready"] == {"synthesize": False, "long_audio": False}
