"""Tests for Prometheus metrics."""
from __future__ import annotations

import pytest


class TestMetricsModule:
    """Test metrics module functionality."""

    def test_metrics_instance_exists(self):
        from readaloud.core.metrics import metrics

        assert metrics is not None
        assert isinstance(metrics.enabled, bool)

    def test_recording_never_raises(self):
        from readaloud.core.metrics import metrics

        metrics.record_synthesis(path="short", status="success", duration=0.4, audio_bytes=1000)
        metrics.record_synthesis(path="none", status="invalid", duration=-1.0)
        metrics.record_status_check("processing")
        metrics.record_artifact_download(2048)
        metrics.record_cleanup("failed")
        metrics.record_extraction("not_found")

    def test_disabled_instance_is_noop(self):
        from readaloud.core.metrics import ReadAloudMetrics

        disabled = ReadAloudMetrics(enabled=False)
        assert disabled.enabled is False
        disabled.record_cleanup("ok")

        content, content_type = disabled.get_metrics_response()
        assert b"not available" in content
        assert content_type.startswith("text/plain")


class TestPrometheusOutput:
    def test_counters_exported(self):
        pytest.importorskip("prometheus_client")
        from readaloud.core.metrics import ReadAloudMetrics

        m = ReadAloudMetrics(enabled=True)
        m.record_synthesis(path="long", status="success", duration=1.2)
        m.record_cleanup("failed")
        m.record_extraction("success")

        content, _ = m.get_metrics_response()
        text = content.decode("utf-8")

        assert 'readaloud_synthesis_requests_total{path="long",status="success"} 1.0' in text
        assert 'readaloud_artifact_cleanups_total{outcome="failed"} 1.0' in text
        assert 'readaloud_extractions_total{outcome="success"} 1.0' in text
