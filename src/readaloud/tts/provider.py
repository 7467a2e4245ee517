"""
Google Cloud Text-to-Speech provider.

Two entry points, matching the two dispatch paths:
    - synthesize_mp3(): synchronous synthesize_speech call, MP3 bytes back
    - start_long_audio(): submits a long-audio operation writing LINEAR16
      WAV to Cloud Storage and returns its operation name without waiting

get_job_status() answers "is operation X done?" for the long path.

Every google-api-core / google-auth exception is translated here into the
readaloud error taxonomy, so nothing above this module sees provider
exception types.
"""
from __future__ import annotations

import threading
from typing import Any, Optional

from google.api_core.exceptions import DeadlineExceeded, GoogleAPIError, InvalidArgument
from google.auth.exceptions import GoogleAuthError
from google.cloud import texttospeech
from google.protobuf.message import DecodeError

from readaloud.core.config import GoogleConfig, SynthesisConfig
from readaloud.core.logging import debug, get_logger, verbose, warn
from readaloud.services.errors import (
    ConfigurationError,
    InvalidInputError,
    ReadAloudError,
    RequestTimeoutError,
    SynthesisError,
    TransportError,
)
from readaloud.tts.credentials import load_credentials
from readaloud.tts.jobs import JobStatus
from readaloud.utils.timeit import timeit

_LOG = get_logger("readaloud.provider")

SYNTHESIS_FAILED_MESSAGE = "Failed to generate speech with Google Cloud TTS"
STATUS_FAILED_MESSAGE = "Failed to check operation status"


def language_code_for(voice: str) -> str:
    """
    Language code of a voice name: its first two hyphen-separated segments.

    >>> language_code_for("en-US-Wavenet-D")
    'en-US'
    """
    return "-".join(voice.split("-")[:2])


def _translate(exc: Exception, message: str) -> ReadAloudError:
    """Map a Google client exception onto the error taxonomy."""
    if isinstance(exc, DeadlineExceeded):
        return RequestTimeoutError("Google Cloud TTS request timed out")
    if isinstance(exc, InvalidArgument):
        return InvalidInputError("Google Cloud TTS rejected the request", details={"reason": exc.message})
    if isinstance(exc, GoogleAuthError):
        return ConfigurationError("Google Cloud credentials are not configured")
    code = getattr(exc, "code", None)
    transient = code is None or (isinstance(code, int) and code >= 500)
    return TransportError(message, transient=transient)


class GoogleSpeechProvider:
    """
    Thin wrapper over the two Google speech clients.

    Clients are created lazily on first use and shared afterwards; tests
    pass ready-made mocks through the constructor.
    """

    def __init__(
        self,
        synthesis: SynthesisConfig,
        google: GoogleConfig,
        tts_client: Optional[Any] = None,
        long_audio_client: Optional[Any] = None,
    ):
        self._synthesis = synthesis
        self._google = google
        self._tts_client = tts_client
        self._long_audio_client = long_audio_client
        self._lock = threading.Lock()

    @property
    def parent(self) -> str:
        """``projects/{project}/locations/{location}`` for long-audio requests."""
        if not self._google.project_id:
            raise ConfigurationError("Google Cloud project not configured")
        return f"projects/{self._google.project_id}/locations/{self._google.location}"

    def _get_tts_client(self):
        if self._tts_client is None:
            with self._lock:
                if self._tts_client is None:
                    credentials = load_credentials(self._google.credentials_path)
                    try:
                        self._tts_client = texttospeech.TextToSpeechClient(credentials=credentials)
                    except GoogleAuthError as e:
                        raise ConfigurationError("Google Cloud credentials are not configured") from e
                    debug(_LOG, "tts_client_created")
        return self._tts_client

    def _get_long_audio_client(self):
        if self._long_audio_client is None:
            with self._lock:
                if self._long_audio_client is None:
                    credentials = load_credentials(self._google.credentials_path)
                    try:
                        self._long_audio_client = texttospeech.TextToSpeechLongAudioSynthesizeClient(
                            credentials=credentials
                        )
                    except GoogleAuthError as e:
                        raise ConfigurationError("Google Cloud credentials are not configured") from e
                    debug(_LOG, "long_audio_client_created")
        return self._long_audio_client

    def synthesize_mp3(self, text: str, voice: str, speed: float) -> bytes:
        """
        Synthesize ``text`` in one call and return MP3 bytes.

        Raises:
            SynthesisError: The provider answered without audio.
            RequestTimeoutError, TransportError, ConfigurationError,
            InvalidInputError: Translated provider failures.
        """
        client = self._get_tts_client()
        try:
            with timeit("provider_synthesize") as t:
                response = client.synthesize_speech(
                    input=texttospeech.SynthesisInput(text=text),
                    voice=texttospeech.VoiceSelectionParams(
                        language_code=language_code_for(voice),
                        name=voice,
                    ),
                    audio_config=texttospeech.AudioConfig(
                        audio_encoding=texttospeech.AudioEncoding.MP3,
                        speaking_rate=speed,
                    ),
                    timeout=self._synthesis.request_timeout_s,
                )
        except (GoogleAPIError, GoogleAuthError) as e:
            warn(_LOG, "provider_synthesize_failed", error=str(e))
            raise _translate(e, SYNTHESIS_FAILED_MESSAGE) from e

        audio = response.audio_content
        if not audio:
            raise SynthesisError("No audio content received from Google Cloud TTS")

        verbose(_LOG, "provider_synthesize", bytes=len(audio), seconds=round(t.seconds, 3))
        return audio

    def start_long_audio(self, text: str, voice: str, speed: float, output_uri: str) -> str:
        """
        Submit a long-audio job writing LINEAR16 WAV to ``output_uri``.

        Returns:
            The provider operation name (the job handle).

        Raises:
            SynthesisError: The provider returned an operation without a name.
        """
        request = texttospeech.SynthesizeLongAudioRequest(
            parent=self.parent,
            input=texttospeech.SynthesisInput(text=text),
            audio_config=texttospeech.AudioConfig(
                audio_encoding=texttospeech.AudioEncoding.LINEAR16,
                sample_rate_hertz=self._synthesis.long_audio_sample_rate,
                speaking_rate=speed,
            ),
            voice=texttospeech.VoiceSelectionParams(
                language_code=language_code_for(voice),
                name=voice,
            ),
            output_gcs_uri=output_uri,
        )

        client = self._get_long_audio_client()
        try:
            operation = client.synthesize_long_audio(
                request=request,
                timeout=self._synthesis.request_timeout_s,
            )
        except (GoogleAPIError, GoogleAuthError) as e:
            warn(_LOG, "provider_long_audio_failed", error=str(e))
            raise _translate(e, SYNTHESIS_FAILED_MESSAGE) from e

        name = getattr(getattr(operation, "operation", None), "name", None)
        if not name:
            raise SynthesisError("Failed to start long audio synthesis operation")
        return name

    def get_job_status(self, operation_name: str) -> JobStatus:
        """
        Query a long-audio operation.

        Returns:
            JobStatus: error if the operation failed, completed if done,
            otherwise processing with the reported progress (None if absent).
        """
        client = self._get_long_audio_client()
        try:
            op = client.get_operation(
                request={"name": operation_name},
                timeout=self._synthesis.request_timeout_s,
            )
        except (GoogleAPIError, GoogleAuthError) as e:
            warn(_LOG, "provider_status_failed", operation=operation_name, error=str(e))
            raise _translate(e, STATUS_FAILED_MESSAGE) from e

        if op.HasField("error"):
            return JobStatus.failed(op.error.message)
        if op.done:
            result = {}
            if op.HasField("response"):
                result["type"] = op.response.type_url
            return JobStatus.completed(result)
        return JobStatus.processing(self._progress_of(op))

    @staticmethod
    def _progress_of(op) -> Optional[float]:
        if not op.HasField("metadata"):
            return None
        try:
            meta = texttospeech.SynthesizeLongAudioMetadata.deserialize(op.metadata.value)
        except (DecodeError, TypeError, ValueError) as e:
            debug(_LOG, "metadata_unreadable", error=str(e))
            return None
        return float(meta.progress_percentage)

    def get_info(self) -> dict:
        return {
            "provider": "google",
            "project_id": self._google.project_id,
            "location": self._google.location,
            "clients_ready": {
                "synthesize": self._tts_client is not None,
                "long_audio": self._long_audio_client is not None,
            },
        }

    def close(self) -> None:
        """Close the gRPC transports of any clients created."""
        with self._lock:
            clients = (self._tts_client, self._long_audio_client)
            self._tts_client = None
            self._long_audio_client = None
        for client in clients:
            transport = getattr(client, "transport", None)
            if transport is not None and hasattr(transport, "close"):
                transport.close()
        debug(_LOG, "provider_closed")
