"""
Long-audio artifact storage on Google Cloud Storage.

The long-audio provider writes its WAV output straight into the configured
bucket. This module names those artifacts up front and, once a job is done,
downloads each artifact exactly once and deletes it right after.

Artifact lifecycle:
    1. generate_artifact_name() before the job is submitted
    2. provider writes gs://{bucket}/{name}
    3. fetch_and_delete(name) downloads, then deletes (best effort)

Deletion failures never fail a download: the caller still gets the bytes,
and the RetrievalResult records ``cleanup=failed(reason)``.
"""
from __future__ import annotations

import secrets
import threading
import time
from typing import Any, Dict, Optional

from google.api_core.exceptions import GoogleAPIError
from google.api_core.exceptions import NotFound as GoogleNotFound
from google.auth.exceptions import GoogleAuthError
from google.cloud import storage

from readaloud.core.config import Defaults, GoogleConfig
from readaloud.core.logging import debug, get_logger, info, verbose, warn
from readaloud.services.errors import (
    ConfigurationError,
    NotFoundError,
    TransportError,
)
from readaloud.tts.credentials import load_credentials
from readaloud.tts.jobs import CleanupOutcome, RetrievalResult
from readaloud.utils.audio import LONG_AUDIO_EXTENSION, content_type_for
from readaloud.utils.timeit import timeit

_LOG = get_logger("readaloud.storage")

ARTIFACT_PREFIX = "tts"

_BASE36 = "0123456789abcdefghijklmnopqrstuvwxyz"


def _base36(n: int) -> str:
    if n == 0:
        return "0"
    digits = []
    while n:
        n, rem = divmod(n, 36)
        digits.append(_BASE36[rem])
    return "".join(reversed(digits))


def generate_artifact_name(extension: str = LONG_AUDIO_EXTENSION) -> str:
    """
    Unique-enough artifact name: ``tts-{unix millis}-{random base36}{ext}``.

    Two names from the same millisecond differ in their 64 random bits;
    uniqueness is not checked against the bucket.

    >>> generate_artifact_name().startswith("tts-")
    True
    """
    millis = int(time.time() * 1000)
    return f"{ARTIFACT_PREFIX}-{millis}-{_base36(secrets.randbits(64))}{extension}"


class ArtifactStore:
    """
    Download-once access to artifacts in the configured bucket.

    The storage client and bucket handle are created lazily on first use
    and reused for the lifetime of the store; close() releases them.
    """

    def __init__(
        self,
        google: GoogleConfig,
        timeout_s: float = Defaults.SYNTHESIS_REQUEST_TIMEOUT_S,
        client: Optional[Any] = None,
    ):
        self._google = google
        self._timeout = timeout_s
        self._client = client
        self._bucket = None
        self._lock = threading.Lock()

    @property
    def bucket_name(self) -> Optional[str]:
        return self._google.bucket_name

    @property
    def configured(self) -> bool:
        return bool(self._google.bucket_name)

    def gcs_uri(self, name: str) -> str:
        """``gs://`` URI the provider should write ``name`` to."""
        return f"gs://{self._require_bucket_name()}/{name}"

    def _require_bucket_name(self) -> str:
        if not self._google.bucket_name:
            raise ConfigurationError("Storage bucket not configured")
        return self._google.bucket_name

    def _get_client(self):
        if self._client is None:
            credentials = load_credentials(self._google.credentials_path)
            try:
                self._client = storage.Client(
                    project=self._google.project_id,
                    credentials=credentials,
                )
            except GoogleAuthError as e:
                raise ConfigurationError("Google Cloud credentials are not configured") from e
            debug(_LOG, "storage_client_created", project=self._google.project_id)
        return self._client

    def _get_bucket(self):
        bucket_name = self._require_bucket_name()
        if self._bucket is None:
            with self._lock:
                if self._bucket is None:
                    self._bucket = self._get_client().bucket(bucket_name)
        return self._bucket

    def fetch_and_delete(self, file_name: str) -> RetrievalResult:
        """
        Download an artifact, then delete it.

        Raises:
            ConfigurationError: No bucket configured.
            NotFoundError: The artifact does not exist (or was already retrieved).
            TransportError: Any other storage failure during download.
        """
        blob = self._get_bucket().blob(file_name)
        details: Dict[str, Any] = {"file_name": file_name}

        with timeit("artifact_download") as t:
            try:
                if not blob.exists(timeout=self._timeout):
                    raise NotFoundError("Audio file not found", details=details)
                payload = blob.download_as_bytes(timeout=self._timeout)
            except GoogleNotFound as e:
                raise NotFoundError("Audio file not found", details=details) from e
            except GoogleAuthError as e:
                raise ConfigurationError("Google Cloud credentials are not configured") from e
            except (GoogleAPIError, OSError) as e:
                warn(_LOG, "artifact_download_failed", file_name=file_name, error=str(e))
                raise TransportError("Failed to download audio file", details=details) from e

        info(
            _LOG,
            "artifact_downloaded",
            file_name=file_name,
            bytes=len(payload),
            seconds=round(t.seconds, 3),
        )

        cleanup = self._delete(blob, file_name)
        return RetrievalResult(
            payload=payload,
            content_type=content_type_for(file_name),
            file_name=file_name,
            cleanup=cleanup,
        )

    def _delete(self, blob, file_name: str) -> CleanupOutcome:
        try:
            blob.delete(timeout=self._timeout)
        except GoogleNotFound:
            verbose(_LOG, "artifact_already_deleted", file_name=file_name)
            return CleanupOutcome.succeeded()
        except (GoogleAPIError, GoogleAuthError, OSError) as e:
            # The caller already has the bytes; the artifact is leaked.
            warn(_LOG, "artifact_cleanup_failed", file_name=file_name, error=str(e))
            return CleanupOutcome.failed(str(e) or type(e).__name__)

        verbose(_LOG, "artifact_deleted", file_name=file_name)
        return CleanupOutcome.succeeded()

    def get_info(self) -> Dict[str, Any]:
        return {
            "configured": self.configured,
            "bucket": self._google.bucket_name,
            "client_ready": self._client is not None,
        }

    def close(self) -> None:
        """Release the storage client, if one was created."""
        with self._lock:
            client, self._client, self._bucket = self._client, None, None
        if client is not None and hasattr(client, "close"):
            client.close()
            debug(_LOG, "storage_client_closed")
