"""
Configuration management for readaloud.

Configuration hierarchy (highest priority first):
    1. Environment variables (GOOGLE_CLOUD_STORAGE_BUCKET, READALOUD_LOG_LEVEL, ...)
    2. YAML config file (config/settings.yaml)
    3. Defaults class values

Example settings.yaml:
    google:
      project_id: my-project
      bucket_name: my-tts-artifacts
      credentials_path: ~/keys/tts-service-account.json

    synthesis:
      default_voice: en-US-Wavenet-D
      request_timeout_s: 60

    polling:
      interval_s: 3
      max_wait_s: 1800

    logging:
      level: 2
"""
from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Optional

import yaml


class ConfigValidationError(ValueError):
    """Raised when a configuration value is out of bounds or malformed."""
    pass


class Defaults:
    """
    Centralized default configuration values.

    The two text thresholds are policy constants: SHORT_TEXT_LIMIT picks the
    synchronous path, MAX_TEXT_CHARS rejects input outright.
    """

    # ─────────────────────────────────────────────────────────────────────────
    # Synthesis
    # ─────────────────────────────────────────────────────────────────────────
    SYNTHESIS_SHORT_TEXT_LIMIT = 5000       # chars; above this use long audio
    SYNTHESIS_MAX_TEXT_CHARS = 1_000_000    # chars; above this reject
    SYNTHESIS_DEFAULT_VOICE = "en-US-Wavenet-D"
    SYNTHESIS_DEFAULT_SPEED = 1.0
    SYNTHESIS_MIN_SPEED = 0.25
    SYNTHESIS_MAX_SPEED = 4.0
    SYNTHESIS_LONG_SAMPLE_RATE = 24000      # Hz, LINEAR16 long-audio output
    SYNTHESIS_REQUEST_TIMEOUT_S = 60.0      # provider/storage call deadline

    # ─────────────────────────────────────────────────────────────────────────
    # Google Cloud
    # ─────────────────────────────────────────────────────────────────────────
    GOOGLE_LOCATION = "global"

    # ─────────────────────────────────────────────────────────────────────────
    # URL extraction
    # ─────────────────────────────────────────────────────────────────────────
    EXTRACTION_TIMEOUT_S = 10.0
    EXTRACTION_MAX_BYTES = 5 * 1024 * 1024
    EXTRACTION_USER_AGENT = (
        "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
        "(KHTML, like Gecko) Chrome/91.0.4472.124 Safari/537.36"
    )

    # ─────────────────────────────────────────────────────────────────────────
    # Long job polling (client side)
    # ─────────────────────────────────────────────────────────────────────────
    POLLING_INTERVAL_S = 3.0
    POLLING_BACKOFF_FACTOR = 1.5
    POLLING_MAX_INTERVAL_S = 30.0
    POLLING_MAX_WAIT_S = 1800.0
    POLLING_MAX_TRANSIENT_ERRORS = 5

    # ─────────────────────────────────────────────────────────────────────────
    # Terminal job status cache (server side)
    # ─────────────────────────────────────────────────────────────────────────
    JOBS_STATUS_CACHE_MAX_ITEMS = 1024
    JOBS_STATUS_CACHE_TTL_SECONDS = 3600

    # ─────────────────────────────────────────────────────────────────────────
    # Logging
    # ─────────────────────────────────────────────────────────────────────────
    LOGGING_TEXT_PREVIEW_CHARS = 80
    LOGGING_LEVEL = 2                   # 1=MINIMAL, 2=NORMAL, 3=VERBOSE, 4=DEBUG


@dataclass
class SynthesisConfig:
    """Dispatch thresholds and provider request defaults."""
    short_text_limit: int = Defaults.SYNTHESIS_SHORT_TEXT_LIMIT
    max_text_chars: int = Defaults.SYNTHESIS_MAX_TEXT_CHARS
    default_voice: str = Defaults.SYNTHESIS_DEFAULT_VOICE
    default_speed: float = Defaults.SYNTHESIS_DEFAULT_SPEED
    long_audio_sample_rate: int = Defaults.SYNTHESIS_LONG_SAMPLE_RATE
    request_timeout_s: float = Defaults.SYNTHESIS_REQUEST_TIMEOUT_S


@dataclass
class GoogleConfig:
    """
    Google Cloud project, credentials and artifact bucket.

    ``bucket_name`` is only required for long-audio synthesis and artifact
    download; short synthesis works without it.
    """
    project_id: Optional[str] = None
    credentials_path: Optional[str] = None
    bucket_name: Optional[str] = None
    location: str = Defaults.GOOGLE_LOCATION


@dataclass
class ExtractionConfig:
    """Limits for the URL fetch behind /v1/extract."""
    timeout_s: float = Defaults.EXTRACTION_TIMEOUT_S
    max_bytes: int = Defaults.EXTRACTION_MAX_BYTES
    user_agent: str = Defaults.EXTRACTION_USER_AGENT


@dataclass
class PollingConfig:
    """Backoff schedule and bounds for the long job poller."""
    interval_s: float = Defaults.POLLING_INTERVAL_S
    backoff_factor: float = Defaults.POLLING_BACKOFF_FACTOR
    max_interval_s: float = Defaults.POLLING_MAX_INTERVAL_S
    max_wait_s: float = Defaults.POLLING_MAX_WAIT_S
    max_transient_errors: int = Defaults.POLLING_MAX_TRANSIENT_ERRORS


@dataclass
class JobsConfig:
    """Remembered terminal job statuses."""
    status_cache_max_items: int = Defaults.JOBS_STATUS_CACHE_MAX_ITEMS
    status_cache_ttl_seconds: int = Defaults.JOBS_STATUS_CACHE_TTL_SECONDS


@dataclass
class LoggingConfig:
    """
    Logging configuration.

    Log levels:
        1 = MINIMAL, 2 = NORMAL (default), 3 = VERBOSE, 4 = DEBUG
    """
    text_preview_chars: int = Defaults.LOGGING_TEXT_PREVIEW_CHARS
    level: int = Defaults.LOGGING_LEVEL


@dataclass
class ServiceConfig:
    """
    Validated configuration for the speech service, extractor and poller.

    Usage:
        settings = load_settings("config/settings.yaml")
        config = ServiceConfig.from_settings(settings)
        print(config.synthesis.short_text_limit)
    """
    synthesis: SynthesisConfig = field(default_factory=SynthesisConfig)
    google: GoogleConfig = field(default_factory=GoogleConfig)
    extraction: ExtractionConfig = field(default_factory=ExtractionConfig)
    polling: PollingConfig = field(default_factory=PollingConfig)
    jobs: JobsConfig = field(default_factory=JobsConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)

    @classmethod
    def from_settings(cls, settings: "Settings") -> "ServiceConfig":
        """
        Build a ServiceConfig from raw settings, applying defaults and bounds.

        Raises:
            ConfigValidationError: If any value fails validation.
        """
        raw = settings.raw

        # ─────────────────────────────────────────────────────────────────────
        # Synthesis
        # ─────────────────────────────────────────────────────────────────────
        synth_raw = raw.get("synthesis", {}) or {}
        synthesis = SynthesisConfig(
            short_text_limit=int(synth_raw.get("short_text_limit", Defaults.SYNTHESIS_SHORT_TEXT_LIMIT)),
            max_text_chars=int(synth_raw.get("max_text_chars", Defaults.SYNTHESIS_MAX_TEXT_CHARS)),
            default_voice=str(synth_raw.get("default_voice", Defaults.SYNTHESIS_DEFAULT_VOICE)),
            default_speed=float(synth_raw.get("default_speed", Defaults.SYNTHESIS_DEFAULT_SPEED)),
            long_audio_sample_rate=int(synth_raw.get("long_audio_sample_rate", Defaults.SYNTHESIS_LONG_SAMPLE_RATE)),
            request_timeout_s=float(synth_raw.get("request_timeout_s", Defaults.SYNTHESIS_REQUEST_TIMEOUT_S)),
        )
        cls._validate_positive("synthesis.short_text_limit", synthesis.short_text_limit)
        cls._validate_positive("synthesis.max_text_chars", synthesis.max_text_chars)
        if synthesis.short_text_limit > synthesis.max_text_chars:
            raise ConfigValidationError(
                "synthesis.short_text_limit must not exceed synthesis.max_text_chars, "
                f"got {synthesis.short_text_limit} > {synthesis.max_text_chars}"
            )
        cls._validate_range("synthesis.default_speed", synthesis.default_speed,
                            Defaults.SYNTHESIS_MIN_SPEED, Defaults.SYNTHESIS_MAX_SPEED)
        cls._validate_positive("synthesis.long_audio_sample_rate", synthesis.long_audio_sample_rate)
        cls._validate_positive("synthesis.request_timeout_s", synthesis.request_timeout_s)
        if not synthesis.default_voice.strip():
            raise ConfigValidationError("synthesis.default_voice must not be empty")

        # ─────────────────────────────────────────────────────────────────────
        # Google Cloud
        # ─────────────────────────────────────────────────────────────────────
        google_raw = raw.get("google", {}) or {}
        google = GoogleConfig(
            project_id=google_raw.get("project_id") or None,
            credentials_path=google_raw.get("credentials_path") or None,
            bucket_name=google_raw.get("bucket_name") or None,
            location=str(google_raw.get("location", Defaults.GOOGLE_LOCATION)),
        )

        # ─────────────────────────────────────────────────────────────────────
        # Extraction
        # ─────────────────────────────────────────────────────────────────────
        extraction_raw = raw.get("extraction", {}) or {}
        extraction = ExtractionConfig(
            timeout_s=float(extraction_raw.get("timeout_s", Defaults.EXTRACTION_TIMEOUT_S)),
            max_bytes=int(extraction_raw.get("max_bytes", Defaults.EXTRACTION_MAX_BYTES)),
            user_agent=str(extraction_raw.get("user_agent", Defaults.EXTRACTION_USER_AGENT)),
        )
        cls._validate_positive("extraction.timeout_s", extraction.timeout_s)
        cls._validate_positive("extraction.max_bytes", extraction.max_bytes)

        # ─────────────────────────────────────────────────────────────────────
        # Polling
        # ─────────────────────────────────────────────────────────────────────
        polling_raw = raw.get("polling", {}) or {}
        polling = PollingConfig(
            interval_s=float(polling_raw.get("interval_s", Defaults.POLLING_INTERVAL_S)),
            backoff_factor=float(polling_raw.get("backoff_factor", Defaults.POLLING_BACKOFF_FACTOR)),
            max_interval_s=float(polling_raw.get("max_interval_s", Defaults.POLLING_MAX_INTERVAL_S)),
            max_wait_s=float(polling_raw.get("max_wait_s", Defaults.POLLING_MAX_WAIT_S)),
            max_transient_errors=int(polling_raw.get("max_transient_errors", Defaults.POLLING_MAX_TRANSIENT_ERRORS)),
        )
        cls._validate_positive("polling.interval_s", polling.interval_s)
        if polling.backoff_factor < 1.0:
            raise ConfigValidationError(
                f"polling.backoff_factor must be at least 1.0, got {polling.backoff_factor}"
            )
        if polling.max_interval_s < polling.interval_s:
            raise ConfigValidationError(
                "polling.max_interval_s must be >= polling.interval_s, "
                f"got {polling.max_interval_s} < {polling.interval_s}"
            )
        cls._validate_positive("polling.max_wait_s", polling.max_wait_s)
        cls._validate_non_negative("polling.max_transient_errors", polling.max_transient_errors)

        # ─────────────────────────────────────────────────────────────────────
        # Jobs
        # ─────────────────────────────────────────────────────────────────────
        jobs_raw = raw.get("jobs", {}) or {}
        jobs = JobsConfig(
            status_cache_max_items=int(jobs_raw.get("status_cache_max_items", Defaults.JOBS_STATUS_CACHE_MAX_ITEMS)),
            status_cache_ttl_seconds=int(jobs_raw.get("status_cache_ttl_seconds", Defaults.JOBS_STATUS_CACHE_TTL_SECONDS)),
        )
        cls._validate_positive("jobs.status_cache_max_items", jobs.status_cache_max_items)
        cls._validate_non_negative("jobs.status_cache_ttl_seconds", jobs.status_cache_ttl_seconds)

        # ─────────────────────────────────────────────────────────────────────
        # Logging
        # ─────────────────────────────────────────────────────────────────────
        logging_raw = raw.get("logging", {}) or {}
        log_level_raw = logging_raw.get("level", Defaults.LOGGING_LEVEL)

        # String levels ("INFO", "VERBOSE", "3")
        if isinstance(log_level_raw, str):
            level_map = {
                "MINIMAL": 1, "1": 1,
                "NORMAL": 2, "INFO": 2, "2": 2,
                "VERBOSE": 3, "3": 3,
                "DEBUG": 4, "TRACE": 4, "4": 4,
            }
            log_level = level_map.get(log_level_raw.upper(), Defaults.LOGGING_LEVEL)
        else:
            log_level = int(log_level_raw)

        logging_cfg = LoggingConfig(
            text_preview_chars=int(logging_raw.get("text_preview_chars", Defaults.LOGGING_TEXT_PREVIEW_CHARS)),
            level=log_level,
        )
        cls._validate_non_negative("logging.text_preview_chars", logging_cfg.text_preview_chars)
        cls._validate_range("logging.level", logging_cfg.level, 1, 4)

        return cls(
            synthesis=synthesis,
            google=google,
            extraction=extraction,
            polling=polling,
            jobs=jobs,
            logging=logging_cfg,
        )

    @staticmethod
    def _validate_positive(name: str, value: int | float) -> None:
        """Validate that a value is positive (> 0)."""
        if value <= 0:
            raise ConfigValidationError(f"{name} must be positive, got {value}")

    @staticmethod
    def _validate_non_negative(name: str, value: int | float) -> None:
        """Validate that a value is non-negative (>= 0)."""
        if value < 0:
            raise ConfigValidationError(f"{name} must be non-negative, got {value}")

    @staticmethod
    def _validate_range(name: str, value: int | float, min_val: int | float, max_val: int | float) -> None:
        """Validate that a value is within [min_val, max_val]."""
        if not (min_val <= value <= max_val):
            raise ConfigValidationError(f"{name} must be between {min_val} and {max_val}, got {value}")


@dataclass(frozen=True)
class Settings:
    """
    Immutable settings container loaded from YAML.

    This is the raw settings object before validation. Use
    ServiceConfig.from_settings() for the typed, validated view.
    """
    raw: Dict[str, Any]


# Environment variable -> (section, key)
_ENV_OVERRIDES = {
    "GOOGLE_CLOUD_PROJECT_ID": ("google", "project_id"),
    "GOOGLE_APPLICATION_CREDENTIALS": ("google", "credentials_path"),
    "GOOGLE_CLOUD_STORAGE_BUCKET": ("google", "bucket_name"),
}


def load_settings(path: str = "config/settings.yaml") -> Settings:
    """
    Load settings from a YAML file and apply environment overrides.

    A missing file is not an error: the service runs on defaults plus
    the GOOGLE_* environment variables, which is how most deployments
    configure it.

    Args:
        path: Path to the YAML configuration file.

    Returns:
        Settings object with loaded configuration.

    Raises:
        ConfigValidationError: If the file is not valid YAML or not a mapping.
    """
    p = Path(path)
    raw: Dict[str, Any] = {}

    if p.exists():
        try:
            with p.open("r", encoding="utf-8") as f:
                raw = yaml.safe_load(f) or {}
        except yaml.YAMLError as e:
            raise ConfigValidationError(f"invalid YAML in {p}: {e}") from e
        if not isinstance(raw, dict):
            raise ConfigValidationError(f"settings file {p} must contain a mapping")

    for env_name, (section, key) in _ENV_OVERRIDES.items():
        value = os.getenv(env_name)
        if value:
            section_raw = raw.get(section)
            if not isinstance(section_raw, dict):
                section_raw = {}
                raw[section] = section_raw
            section_raw[key] = value

    return Settings(raw=raw)
