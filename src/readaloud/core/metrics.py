"""
Prometheus metrics for readaloud.

prometheus_client is optional: without it every recording call is a no-op
and /metrics answers with a placeholder line.

Metrics Exposed:
    readaloud_synthesis_requests_total      - by path (short/long) and status
    readaloud_synthesis_duration_seconds    - dispatch latency by path
    readaloud_audio_bytes_total             - bytes returned to callers
    readaloud_status_checks_total           - by reported status
    readaloud_artifact_cleanups_total       - by outcome (ok/failed)
    readaloud_extractions_total             - by outcome

Usage:
    from readaloud.core.metrics import metrics

    metrics.record_synthesis(path="short", status="success", duration=0.4, audio_bytes=18_000)
    metrics.record_status_check("processing")
    metrics.record_cleanup("failed")
    content, content_type = metrics.get_metrics_response()
"""
from __future__ import annotations

from typing import Optional

try:
    from prometheus_client import (
        CONTENT_TYPE_LATEST,
        CollectorRegistry,
        Counter,
        Histogram,
        generate_latest,
    )
    PROMETHEUS_AVAILABLE = True
except ImportError:
    PROMETHEUS_AVAILABLE = False
    Counter = None
    Histogram = None
    CollectorRegistry = None


class ReadAloudMetrics:
    """
    Metric collection behind a small recording API.

    Uses its own CollectorRegistry so tests and embedding applications
    don't collide with the default global registry.
    """

    def __init__(self, enabled: Optional[bool] = None):
        self._enabled = PROMETHEUS_AVAILABLE if enabled is None else (enabled and PROMETHEUS_AVAILABLE)
        self._registry: Optional["CollectorRegistry"] = None

        if self._enabled:
            self._setup_metrics()

    def _setup_metrics(self) -> None:
        self._registry = CollectorRegistry()

        self._synthesis_total = Counter(
            "readaloud_synthesis_requests_total",
            "Synthesis requests by dispatch path and status",
            ["path", "status"],
            registry=self._registry,
        )
        self._synthesis_duration = Histogram(
            "readaloud_synthesis_duration_seconds",
            "Time spent dispatching a synthesis request",
            ["path"],
            buckets=(0.25, 0.5, 1.0, 2.5, 5.0, 10.0, 30.0, 60.0),
            registry=self._registry,
        )
        self._audio_bytes_total = Counter(
            "readaloud_audio_bytes_total",
            "Audio bytes returned to callers",
            ["source"],
            registry=self._registry,
        )
        self._status_checks = Counter(
            "readaloud_status_checks_total",
            "Long job status checks by reported status",
            ["status"],
            registry=self._registry,
        )
        self._cleanups = Counter(
            "readaloud_artifact_cleanups_total",
            "Artifact deletions after download by outcome",
            ["outcome"],
            registry=self._registry,
        )
        self._extractions = Counter(
            "readaloud_extractions_total",
            "URL text extractions by outcome",
            ["outcome"],
            registry=self._registry,
        )

    @property
    def enabled(self) -> bool:
        """Whether metrics collection is active."""
        return self._enabled

    def record_synthesis(self, path: str, status: str, duration: float, audio_bytes: int = 0) -> None:
        """
        Record a dispatched synthesis request.

        Args:
            path: "short" or "long" ("none" if rejected before dispatch).
            status: "success" or "error".
            duration: Seconds spent in the dispatcher.
            audio_bytes: MP3 bytes returned (short path only).
        """
        if not self._enabled:
            return
        self._synthesis_total.labels(path=path, status=status).inc()
        if duration >= 0:
            self._synthesis_duration.labels(path=path).observe(duration)
        if audio_bytes > 0:
            self._audio_bytes_total.labels(source="synthesis").inc(audio_bytes)

    def record_status_check(self, status: str) -> None:
        if not self._enabled:
            return
        self._status_checks.labels(status=status).inc()

    def record_artifact_download(self, audio_bytes: int) -> None:
        if not self._enabled:
            return
        self._audio_bytes_total.labels(source="artifact").inc(audio_bytes)

    def record_cleanup(self, outcome: str) -> None:
        if not self._enabled:
            return
        self._cleanups.labels(outcome=outcome).inc()

    def record_extraction(self, outcome: str) -> None:
        if not self._enabled:
            return
        self._extractions.labels(outcome=outcome).inc()

    def get_metrics_response(self) -> tuple[bytes, str]:
        """
        Metrics in Prometheus text format.

        Returns:
            Tuple of (content_bytes, content_type).
        """
        if not self._enabled:
            return (
                b"# Metrics not available (prometheus_client not installed)\n",
                "text/plain; charset=utf-8",
            )
        return generate_latest(self._registry), CONTENT_TYPE_LATEST


# Global instance: from readaloud.core.metrics import metrics
metrics = ReadAloudMetrics()
