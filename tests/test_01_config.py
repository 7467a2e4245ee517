"""
Tests for configuration validation and defaults.

Tests cover:
- ServiceConfig.from_settings() - all sections
- Defaults class values
- ConfigValidationError on invalid values
- String log level coercion ("DEBUG" -> 4)
- Missing sections use defaults
- load_settings(): missing file, YAML errors, GOOGLE_* overrides
"""

import pytest

from readaloud.core.config import (
    ConfigValidationError,
    Defaults,
    ServiceConfig,
    Settings,
    load_settings,
)


class TestDefaults:
    """Tests for Defaults class values."""

    def test_dispatch_thresholds(self):
        assert Defaults.SYNTHESIS_SHORT_TEXT_LIMIT == 5000
        assert Defaults.SYNTHESIS_MAX_TEXT_CHARS == 1_000_000

    def test_voice_and_speed(self):
        assert Defaults.SYNTHESIS_DEFAULT_VOICE == "en-US-Wavenet-D"
        assert Defaults.SYNTHESIS_DEFAULT_SPEED == 1.0
        assert Defaults.SYNTHESIS_LONG_SAMPLE_RATE == 24000

    def test_extraction_defaults(self):
        assert Defaults.EXTRACTION_TIMEOUT_S == 10.0
        assert "Mozilla/5.0" in Defaults.EXTRACTION_USER_AGENT

    def test_polling_defaults(self):
        assert Defaults.POLLING_INTERVAL_S == 3.0
        assert Defaults.POLLING_MAX_WAIT_S == 1800.0


class TestServiceConfig:
    def test_empty_settings_use_defaults(self):
        config = ServiceConfig.from_settings(Settings(raw={}))

        assert config.synthesis.short_text_limit == Defaults.SYNTHESIS_SHORT_TEXT_LIMIT
        assert config.google.bucket_name is None
        assert config.google.location == "global"
        assert config.jobs.status_cache_max_items == Defaults.JOBS_STATUS_CACHE_MAX_ITEMS
        assert config.logging.level == Defaults.LOGGING_LEVEL

    def test_sections_read(self):
        config = ServiceConfig.from_settings(Settings(raw={
            "synthesis": {"short_text_limit": 100, "default_voice": "en-GB-Wavenet-B"},
            "google": {"project_id": "p", "bucket_name": "b"},
            "polling": {"interval_s": 1, "max_interval_s": 2},
        }))

        assert config.synthesis.short_text_limit == 100
        assert config.synthesis.default_voice == "en-GB-Wavenet-B"
        assert config.google.project_id == "p"
        assert config.polling.max_interval_s == 2.0

    def test_empty_strings_become_none(self):
        config = ServiceConfig.from_settings(Settings(raw={"google": {"bucket_name": ""}}))
        assert config.google.bucket_name is None

    @pytest.mark.parametrize("raw", [
        {"synthesis": {"short_text_limit": 0}},
        {"synthesis": {"short_text_limit": 10, "max_text_chars": 5}},
        {"synthesis": {"default_speed": 9.0}},
        {"synthesis": {"default_voice": "  "}},
        {"extraction": {"max_bytes": -1}},
        {"polling": {"backoff_factor": 0.5}},
        {"polling": {"interval_s": 10, "max_interval_s": 5}},
        {"polling": {"max_transient_errors": -1}},
        {"jobs": {"status_cache_ttl_seconds": -1}},
        {"logging": {"level": 7}},
    ])
    def test_invalid_values_rejected(self, raw):
        with pytest.raises(ConfigValidationError):
            ServiceConfig.from_settings(Settings(raw=raw))

    @pytest.mark.parametrize("value,expected", [
        ("DEBUG", 4),
        ("verbose", 3),
        ("INFO", 2),
        ("1", 1),
        ("nonsense", Defaults.LOGGING_LEVEL),
    ])
    def test_string_log_levels(self, value, expected):
        config = ServiceConfig.from_settings(Settings(raw={"logging": {"level": value}}))
        assert config.logging.level == expected


class TestLoadSettings:
    def test_missing_file_is_defaults(self, tmp_path, monkeypatch):
        for name in ("GOOGLE_CLOUD_PROJECT_ID", "GOOGLE_APPLICATION_CREDENTIALS", "GOOGLE_CLOUD_STORAGE_BUCKET"):
            monkeypatch.delenv(name, raising=False)

        settings = load_settings(str(tmp_path / "nope.yaml"))
        assert settings.raw == {}
        assert ServiceConfig.from_settings(settings).synthesis.default_voice == Defaults.SYNTHESIS_DEFAULT_VOICE

    def test_yaml_loaded(self, tmp_path, monkeypatch):
        monkeypatch.delenv("GOOGLE_CLOUD_STORAGE_BUCKET", raising=False)
        path = tmp_path / "settings.yaml"
        path.write_text("google:\n  bucket_name: from-yaml\nsynthesis:\n  default_speed: 1.5\n", encoding="utf-8")

        config = ServiceConfig.from_settings(load_settings(str(path)))
        assert config.google.bucket_name == "from-yaml"
        assert config.synthesis.default_speed == 1.5

    def test_env_overrides_yaml(self, tmp_path, monkeypatch):
        path = tmp_path / "settings.yaml"
        path.write_text("google:\n  bucket_name: from-yaml\n", encoding="utf-8")
        monkeypatch.setenv("GOOGLE_CLOUD_STORAGE_BUCKET", "from-env")
        monkeypatch.setenv("GOOGLE_CLOUD_PROJECT_ID", "env-project")

        config = ServiceConfig.from_settings(load_settings(str(path)))
        assert config.google.bucket_name == "from-env"
        assert config.google.project_id == "env-project"

    def test_invalid_yaml(self, tmp_path):
        path = tmp_path / "settings.yaml"
        path.write_text("google: [unclosed\n", encoding="utf-8")
        with pytest.raises(ConfigValidationError):
            load_settings(str(path))

    def test_non_mapping(self, tmp_path):
        path = tmp_path / "settings.yaml"
        path.write_text("- a\n- b\n", encoding="utf-8")
        with pytest.raises(ConfigValidationError):
            load_settings(str(path))
