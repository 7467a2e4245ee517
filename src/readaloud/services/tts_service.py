"""
SpeechService - the synthesis dispatcher and long job lifecycle.

This module provides the central SpeechService class, the single owner of
the provider, artifact store and status cache. Every HTTP route goes
through it.

Architecture:
    synthesize:     Validate → Dispatch (short | long) → DispatchResult
    check_status:   Validate → Status cache → Provider → JobStatus
    fetch_artifact: Validate → Download → Delete (best effort) → RetrievalResult

Dispatch rule:
    len(text) <= synthesis.short_text_limit  → MP3 bytes, synchronously
    otherwise                                 → long-audio job handle, no waiting

Example:
    >>> from readaloud.core.config import Settings
    >>> from readaloud.services.tts_service import SpeechService, SynthesizeRequest
    >>>
    >>> service = SpeechService(Settings(raw={"google": {"bucket_name": "tts-out"}}))
    >>> result = service.synthesize(SynthesizeRequest(text="Hello"), request_id="req-1")
    >>> result.is_long_audio
    False
"""
from __future__ import annotations

import threading
from dataclasses import dataclass, field
from typing import Any, Dict, Optional

from readaloud.core.config import ServiceConfig, Settings
from readaloud.core.logging import debug, fail, get_level_name, get_logger, info, success, verbose
from readaloud.core.metrics import metrics
from readaloud.services.errors import ConfigurationError, InvalidInputError, ReadAloudError
from readaloud.services.extractor import ContentExtractor, ExtractedArticle
from readaloud.services.validators import (
    ValidationError,
    validate_file_name,
    validate_operation_name,
    validate_speed,
    validate_text,
    validate_voice,
)
from readaloud.tts.cache import StatusCache
from readaloud.tts.jobs import JobStatus, RetrievalResult, SynthesisJob
from readaloud.tts.provider import GoogleSpeechProvider, language_code_for
from readaloud.tts.storage import ArtifactStore, generate_artifact_name
from readaloud.utils.audio import MP3_CONTENT_TYPE
from readaloud.utils.text import preview
from readaloud.utils.timeit import timeit

_LOG = get_logger("readaloud.service")

PATH_SHORT = "short"
PATH_LONG = "long"


# =============================================================================
# Request/Response Dataclasses
# =============================================================================

@dataclass
class SynthesizeRequest:
    """
    Request for speech synthesis.

    Attributes:
        text: Text to synthesize (required).
        voice: Provider voice name (optional, uses default).
        speed: Speaking rate (optional, uses default).
    """
    text: Optional[str]
    voice: Optional[str] = None
    speed: Optional[float] = None


@dataclass
class DispatchResult:
    """
    Outcome of dispatch: either audio bytes (short path) or a job (long path).

    Exactly one of ``audio`` and ``job`` is set.
    """
    path: str
    request_id: str
    audio: Optional[bytes] = None
    content_type: Optional[str] = None
    job: Optional[SynthesisJob] = None
    total_seconds: float = -1.0
    timings: Dict[str, float] = field(default_factory=dict)

    @property
    def is_long_audio(self) -> bool:
        return self.job is not None


def choose_path(text: str, short_text_limit: int) -> str:
    """Dispatch decision for ``text``: "short" at or below the limit, else "long"."""
    return PATH_SHORT if len(text) <= short_text_limit else PATH_LONG


def _invalid(e: ValidationError) -> InvalidInputError:
    return InvalidInputError(e.message, details={"reason": e.code})


# =============================================================================
# Main Service Class
# =============================================================================

class SpeechService:
    """
    Synthesis dispatch, job status and artifact retrieval.

    Provider and storage clients are created lazily by their owners on
    first use; close() releases them at application shutdown.

    Usage:
        service = SpeechService(load_settings())
        result = service.synthesize(SynthesizeRequest(text=article), request_id="req-1")
        if result.is_long_audio:
            status = service.check_status(result.job.operation_name)
    """

    def __init__(
        self,
        settings: Settings,
        provider: Optional[GoogleSpeechProvider] = None,
        store: Optional[ArtifactStore] = None,
        extractor: Optional[ContentExtractor] = None,
    ):
        """
        Args:
            settings: Application settings loaded from YAML/environment.
            provider, store, extractor: Injected collaborators (tests);
                built from settings when omitted.
        """
        self._settings = settings
        self._config = ServiceConfig.from_settings(settings)

        synthesis = self._config.synthesis
        google = self._config.google

        self._provider = provider or GoogleSpeechProvider(synthesis, google)
        self._store = store or ArtifactStore(google, timeout_s=synthesis.request_timeout_s)
        self._extractor = extractor or ContentExtractor(self._config.extraction)

        self._status_cache = StatusCache(
            max_items=self._config.jobs.status_cache_max_items,
            ttl_seconds=self._config.jobs.status_cache_ttl_seconds,
        )
        self._text_preview_chars = self._config.logging.text_preview_chars

    # =========================================================================
    # Properties
    # =========================================================================

    @property
    def settings(self) -> Settings:
        return self._settings

    @property
    def config(self) -> ServiceConfig:
        return self._config

    @property
    def status_cache(self) -> StatusCache:
        return self._status_cache

    # =========================================================================
    # Dispatch
    # =========================================================================

    def synthesize(self, request: SynthesizeRequest, request_id: str) -> DispatchResult:
        """
        Validate and dispatch a synthesis request.

        Validation completes before any provider contact, so oversized or
        malformed input never reaches Google.

        Returns:
            DispatchResult with ``audio`` (short path) or ``job`` (long path).

        Raises:
            InvalidInputError: Missing/oversized text, bad voice or speed.
            ConfigurationError: Long path without a bucket or project.
            SynthesisError, RequestTimeoutError, TransportError: Provider failures.
        """
        synthesis = self._config.synthesis
        try:
            text = validate_text(request.text, max_length=synthesis.max_text_chars)
            voice = validate_voice(request.voice, default=synthesis.default_voice)
            speed = validate_speed(request.speed, default=synthesis.default_speed)
        except ValidationError as e:
            metrics.record_synthesis(path="none", status="invalid", duration=-1.0)
            fail(_LOG, "invalid_request", reason=e.code, error=e.message)
            raise _invalid(e)

        path = choose_path(text, synthesis.short_text_limit)
        info(
            _LOG,
            "request",
            chars=len(text),
            path=path,
            voice=voice,
            text_preview=preview(text, self._text_preview_chars),
        )
        debug(_LOG, "request_full", text=text, speed=speed)

        timings: Dict[str, float] = {}
        try:
            with timeit("dispatch") as t:
                if path == PATH_SHORT:
                    result = self._synthesize_short(text, voice, speed, request_id)
                else:
                    result = self._start_long(text, voice, speed, request_id)
        except ReadAloudError as e:
            metrics.record_synthesis(path=path, status="error", duration=t.seconds)
            fail(_LOG, "dispatch_failed", path=path, code=e.code, error=e.message)
            raise

        timings["dispatch"] = t.seconds
        result.total_seconds = t.seconds
        result.timings = timings
        metrics.record_synthesis(
            path=path,
            status="success",
            duration=t.seconds,
            audio_bytes=len(result.audio or b""),
        )
        return result

    def _synthesize_short(self, text: str, voice: str, speed: float, request_id: str) -> DispatchResult:
        audio = self._provider.synthesize_mp3(text, voice, speed)
        success(_LOG, "dispatch", path=PATH_SHORT, bytes=len(audio))
        return DispatchResult(
            path=PATH_SHORT,
            request_id=request_id,
            audio=audio,
            content_type=MP3_CONTENT_TYPE,
        )

    def _start_long(self, text: str, voice: str, speed: float, request_id: str) -> DispatchResult:
        if not self._store.configured:
            raise ConfigurationError("Google Cloud Storage bucket not configured")

        output_file_name = generate_artifact_name()
        output_uri = self._store.gcs_uri(output_file_name)
        verbose(
            _LOG,
            "long_job_submit",
            output_uri=output_uri,
            language=language_code_for(voice),
        )

        operation_name = self._provider.start_long_audio(text, voice, speed, output_uri)
        job = SynthesisJob(operation_name=operation_name, output_file_name=output_file_name)

        success(_LOG, "long_job_started", operation=operation_name, file_name=output_file_name)
        return DispatchResult(path=PATH_LONG, request_id=request_id, job=job)

    # =========================================================================
    # Job Status
    # =========================================================================

    def check_status(self, operation_name: Optional[str]) -> JobStatus:
        """
        Report the status of a long-audio job.

        Terminal answers are recorded; asking again returns the recorded
        status without another provider call.

        Raises:
            InvalidInputError: Missing operation name.
            TransportError, RequestTimeoutError, ConfigurationError: Provider failures.
        """
        try:
            operation_name = validate_operation_name(operation_name)
        except ValidationError as e:
            raise _invalid(e)

        cached = self._status_cache.get(operation_name)
        if cached is not None:
            metrics.record_status_check(cached.status)
            return cached

        try:
            status = self._provider.get_job_status(operation_name)
        except ReadAloudError:
            metrics.record_status_check("check_failed")
            raise

        self._status_cache.set(operation_name, status)
        metrics.record_status_check(status.status)
        info(
            _LOG,
            "status",
            operation=operation_name,
            status=status.status,
            progress=status.progress,
        )
        return status

    # =========================================================================
    # Artifact Retrieval
    # =========================================================================

    def fetch_artifact(self, file_name: Optional[str]) -> RetrievalResult:
        """
        Download a finished artifact, then delete it from storage.

        A failed delete does not fail the download; it is recorded in
        ``RetrievalResult.cleanup``.

        Raises:
            InvalidInputError: Missing or unsafe file name.
            ConfigurationError: No bucket configured.
            NotFoundError: Artifact absent (including already retrieved).
            TransportError: Other storage failures.
        """
        try:
            file_name = validate_file_name(file_name)
        except ValidationError as e:
            raise _invalid(e)

        result = self._store.fetch_and_delete(file_name)

        metrics.record_artifact_download(len(result.payload))
        metrics.record_cleanup(result.cleanup.label)
        success(
            _LOG,
            "artifact_served",
            file_name=file_name,
            bytes=len(result.payload),
            cleanup=result.cleanup.label,
        )
        return result

    # =========================================================================
    # Extraction
    # =========================================================================

    def extract(self, url: Optional[str]) -> ExtractedArticle:
        """Readable text of the page at ``url`` (see ContentExtractor.extract)."""
        return self._extractor.extract(url)

    # =========================================================================
    # Health & Lifecycle
    # =========================================================================

    def get_health_info(self) -> Dict[str, Any]:
        """
        Service summary for the health endpoint.

        Reports configuration, not reachability: no provider call is made.
        """
        synthesis = self._config.synthesis
        return {
            "ok": True,
            "synthesis": {
                "short_text_limit": synthesis.short_text_limit,
                "max_text_chars": synthesis.max_text_chars,
                "default_voice": synthesis.default_voice,
                "default_speed": synthesis.default_speed,
                "long_audio_sample_rate": synthesis.long_audio_sample_rate,
            },
            "long_audio_ready": self._store.configured and bool(self._config.google.project_id),
            "provider": self._provider.get_info(),
            "storage": self._store.get_info(),
            "status_cache": self._status_cache.stats(),
            "log_level": get_level_name(),
        }

    def close(self) -> None:
        """Release provider, storage and HTTP clients."""
        self._provider.close()
        self._store.close()
        self._extractor.close()
        verbose(_LOG, "service_closed")


# =============================================================================
# Global Service Singleton
# =============================================================================

_service: Optional[SpeechService] = None
_service_lock = threading.Lock()


def get_service(settings: Settings) -> SpeechService:
    """
    Get or create the global SpeechService instance.

    Thread-safe lazy singleton: created on first call, reused afterwards.
    """
    global _service
    if _service is None:
        with _service_lock:
            if _service is None:
                _service = SpeechService(settings)
    return _service


def reset_service() -> None:
    """
    Close and drop the global service instance.

    Called at application shutdown and between tests.
    """
    global _service
    with _service_lock:
        service, _service = _service, None
    if service is not None:
        service.close()
