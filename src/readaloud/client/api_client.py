"""
HTTP client for the readaloud API.

Wraps the four endpoints with typed results and turns error bodies back
into the readaloud exception taxonomy, so callers handle the same
exceptions whether they talk to SpeechService directly or over HTTP.

Transport failures (connection refused, timeouts) and 5xx answers that
carry no more specific code become transient TransportErrors, which the
job poller retries. A server-side TransportError keeps the ``transient``
flag it was sent with in ``details``.

Example:
    >>> with ReadAloudClient("http://localhost:8000") as client:
    ...     outcome = client.synthesize(long_text)
    ...     if outcome.job:
    ...         status = client.check_status(outcome.job.operation_name)
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, Optional

import httpx

from readaloud.core.logging import debug, get_logger, get_request_id
from readaloud.services.errors import (
    ErrorCode,
    ReadAloudError,
    TransportError,
    error_from_code,
)
from readaloud.services.extractor import ExtractedArticle
from readaloud.tts.jobs import CleanupOutcome, JobStatus, RetrievalResult, SynthesisJob
from readaloud.utils.audio import MP3_CONTENT_TYPE, content_type_for

_LOG = get_logger("readaloud.client")

DEFAULT_SERVER = "http://localhost:8000"
DEFAULT_TIMEOUT_S = 120.0


@dataclass
class SynthesisOutcome:
    """What POST /v1/tts returned: MP3 bytes, or a long-audio job."""
    audio: Optional[bytes] = None
    content_type: Optional[str] = None
    job: Optional[SynthesisJob] = None

    @property
    def is_long_audio(self) -> bool:
        return self.job is not None


class ReadAloudClient:
    """
    Synchronous client for a readaloud server.

    Args:
        base_url: Server root, e.g. "http://localhost:8000".
        timeout_s: Per-request timeout.
        client: Pre-built httpx.Client (tests pass one with a MockTransport).
    """

    def __init__(
        self,
        base_url: str = DEFAULT_SERVER,
        timeout_s: float = DEFAULT_TIMEOUT_S,
        client: Optional[httpx.Client] = None,
    ):
        self._base_url = base_url.rstrip("/")
        self._owns_client = client is None
        self._client = client or httpx.Client(base_url=self._base_url, timeout=timeout_s)

    def __enter__(self) -> "ReadAloudClient":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()

    def close(self) -> None:
        if self._owns_client:
            self._client.close()

    # ─────────────────────────────────────────────────────────────────────────
    # Transport
    # ─────────────────────────────────────────────────────────────────────────

    def _post(self, path: str, payload: Dict[str, Any]) -> httpx.Response:
        headers = {}
        rid = get_request_id()
        if rid and rid != "-":
            headers["X-Request-Id"] = rid
        try:
            response = self._client.post(path, json=payload, headers=headers)
        except httpx.TimeoutException as e:
            raise TransportError("Request to the readaloud server timed out", details={"path": path}) from e
        except httpx.HTTPError as e:
            raise TransportError(
                "Could not reach the readaloud server",
                details={"path": path, "reason": type(e).__name__},
            ) from e

        debug(_LOG, "http_response", path=path, status=response.status_code)
        if response.status_code >= 400:
            raise self._error_from_response(response)
        return response

    @staticmethod
    def _error_from_response(response: httpx.Response) -> ReadAloudError:
        """Rebuild the server's error from its JSON body."""
        try:
            body = response.json()
        except ValueError:
            body = {}
        if not isinstance(body, dict):
            body = {}

        message = str(body.get("error") or f"Server returned HTTP {response.status_code}")
        code = body.get("code")
        details = body.get("details") if isinstance(body.get("details"), dict) else None

        if response.status_code >= 500 and code in (None, ErrorCode.INTERNAL_ERROR):
            return TransportError(message, details=details, transient=True)
        return error_from_code(code, message, details)

    # ─────────────────────────────────────────────────────────────────────────
    # Endpoints
    # ─────────────────────────────────────────────────────────────────────────

    def synthesize(self, text: str, voice: Optional[str] = None, speed: Optional[float] = None) -> SynthesisOutcome:
        payload: Dict[str, Any] = {"text": text}
        if voice is not None:
            payload["voice"] = voice
        if speed is not None:
            payload["speed"] = speed

        response = self._post("/v1/tts", payload)
        content_type = response.headers.get("content-type", "")
        if content_type.startswith("application/json"):
            return SynthesisOutcome(job=SynthesisJob.from_dict(response.json()))
        return SynthesisOutcome(audio=response.content, content_type=content_type or MP3_CONTENT_TYPE)

    def check_status(self, operation_name: str) -> JobStatus:
        response = self._post("/v1/tts/status", {"operationName": operation_name})
        return JobStatus.from_dict(response.json())

    def download(self, file_name: str) -> RetrievalResult:
        """
        Download (and thereby consume) a finished artifact.

        The server deletes the artifact after serving it; a failed delete
        is reported through ``cleanup`` rather than as an error.
        """
        response = self._post("/v1/tts/download", {"fileName": file_name})
        cleanup_header = response.headers.get("x-cleanup", "ok")
        cleanup = (
            CleanupOutcome.succeeded()
            if cleanup_header == "ok"
            else CleanupOutcome.failed("server could not delete the artifact")
        )
        return RetrievalResult(
            payload=response.content,
            content_type=response.headers.get("content-type", content_type_for(file_name)),
            file_name=file_name,
            cleanup=cleanup,
        )

    def extract(self, url: str) -> ExtractedArticle:
        data = self._post("/v1/extract", {"url": url}).json()
        return ExtractedArticle(
            text=data["text"],
            title=data.get("title") or "Untitled",
            original_length=int(data.get("originalLength", len(data["text"]))),
            truncated=bool(data.get("truncated", False)),
        )

    def health(self) -> Dict[str, Any]:
        try:
            response = self._client.get("/health")
        except httpx.HTTPError as e:
            raise TransportError("Could not reach the readaloud server") from e
        if response.status_code >= 400:
            raise self._error_from_response(response)
        return response.json()
