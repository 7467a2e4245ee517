"""
Input validation for readaloud requests.

Validation runs before any provider or network call so that bad input
never costs a round trip. Each validator raises ValidationError with:
    - message: human-readable, returned to the caller as-is
    - code: field-level code for programmatic handling

Codes follow the pattern {FIELD}_REQUIRED, {FIELD}_TOO_LONG,
{FIELD}_INVALID / {FIELD}_OUT_OF_RANGE.

The service layer turns a ValidationError into an InvalidInputError;
the field code travels along in ``details["reason"]``.
"""
from __future__ import annotations

import re
from typing import Optional
from urllib.parse import urlparse

from readaloud.core.config import Defaults
from readaloud.core.logging import get_logger, verbose

_LOG = get_logger("readaloud.validators")

MAX_VOICE_LENGTH = 100
MAX_OPERATION_NAME_LENGTH = 1024
MAX_FILE_NAME_LENGTH = 1024
MAX_URL_LENGTH = 8192

# Voices look like "en-US-Wavenet-D"; the first two segments are the language code.
_VOICE_RE = re.compile(r"^[A-Za-z]{2,3}-[A-Za-z0-9]{2,4}(-[A-Za-z0-9_]+)*$")


class ValidationError(Exception):
    """
    Raised when a request field fails validation.

    Attributes:
        message: Human-readable error description.
        code: Field-level error code.
    """

    def __init__(self, message: str, code: str = "VALIDATION_ERROR"):
        self.message = message
        self.code = code
        super().__init__(message)


def validate_text(text: Optional[str], max_length: int = Defaults.SYNTHESIS_MAX_TEXT_CHARS) -> str:
    """
    Validate text to synthesize.

    The text is returned unchanged; length is measured on what the caller
    sent, which is also what the dispatcher measures.

    Raises:
        ValidationError: TEXT_REQUIRED or TEXT_TOO_LONG.
    """
    if not text or not isinstance(text, str) or not text.strip():
        raise ValidationError("Text is required", "TEXT_REQUIRED")

    if len(text) > max_length:
        raise ValidationError(
            f"Text is too long (maximum {max_length:,} characters)",
            "TEXT_TOO_LONG",
        )

    return text


def validate_voice(voice: Optional[str], default: str = Defaults.SYNTHESIS_DEFAULT_VOICE) -> str:
    """
    Validate a provider voice name, falling back to ``default`` when empty.

    Raises:
        ValidationError: VOICE_TOO_LONG or VOICE_INVALID.
    """
    if not voice:
        return default

    voice = voice.strip()
    if len(voice) > MAX_VOICE_LENGTH:
        raise ValidationError(
            f"Voice name exceeds maximum length ({len(voice)} > {MAX_VOICE_LENGTH})",
            "VOICE_TOO_LONG",
        )
    if not _VOICE_RE.match(voice):
        raise ValidationError(
            f"Invalid voice name: {voice!r} (expected e.g. 'en-US-Wavenet-D')",
            "VOICE_INVALID",
        )
    return voice


def validate_speed(
    speed: Optional[float],
    default: float = Defaults.SYNTHESIS_DEFAULT_SPEED,
    min_speed: float = Defaults.SYNTHESIS_MIN_SPEED,
    max_speed: float = Defaults.SYNTHESIS_MAX_SPEED,
) -> float:
    """
    Validate the speaking rate, falling back to ``default`` when None.

    Raises:
        ValidationError: SPEED_INVALID or SPEED_OUT_OF_RANGE.
    """
    if speed is None:
        return default

    if isinstance(speed, bool):
        raise ValidationError("Speed must be a number", "SPEED_INVALID")
    try:
        value = float(speed)
    except (TypeError, ValueError):
        raise ValidationError("Speed must be a number", "SPEED_INVALID")

    if value != value or not (min_speed <= value <= max_speed):
        raise ValidationError(
            f"Speed must be between {min_speed} and {max_speed}, got {speed}",
            "SPEED_OUT_OF_RANGE",
        )
    return value


def validate_url(url: Optional[str]) -> str:
    """
    Validate an absolute http(s) URL.

    Raises:
        ValidationError: URL_REQUIRED, URL_TOO_LONG or URL_INVALID.
    """
    if not url or not isinstance(url, str) or not url.strip():
        raise ValidationError("URL is required", "URL_REQUIRED")

    url = url.strip()
    if len(url) > MAX_URL_LENGTH:
        raise ValidationError("URL is too long", "URL_TOO_LONG")

    try:
        parsed = urlparse(url)
        # Accessing .port validates it
        parsed.port
    except ValueError as e:
        verbose(_LOG, "url_parse_failed", error=str(e))
        raise ValidationError("Invalid URL format", "URL_INVALID")

    if parsed.scheme not in ("http", "https") or not parsed.hostname:
        raise ValidationError("Invalid URL format", "URL_INVALID")

    return url


def validate_operation_name(name: Optional[str]) -> str:
    """
    Validate a long-audio operation name (the job handle).

    Raises:
        ValidationError: OPERATION_NAME_REQUIRED or OPERATION_NAME_TOO_LONG.
    """
    if not name or not isinstance(name, str) or not name.strip():
        raise ValidationError("Operation name is required", "OPERATION_NAME_REQUIRED")

    name = name.strip()
    if len(name) > MAX_OPERATION_NAME_LENGTH:
        raise ValidationError("Operation name is too long", "OPERATION_NAME_TOO_LONG")
    return name


def validate_file_name(name: Optional[str]) -> str:
    """
    Validate an artifact name in the bucket.

    Only bare object names are accepted: no leading slash, no ``..``
    segments, no control characters.

    Raises:
        ValidationError: FILE_NAME_REQUIRED, FILE_NAME_TOO_LONG or FILE_NAME_INVALID.
    """
    if not name or not isinstance(name, str) or not name.strip():
        raise ValidationError("File name is required", "FILE_NAME_REQUIRED")

    name = name.strip()
    if len(name) > MAX_FILE_NAME_LENGTH:
        raise ValidationError("File name is too long", "FILE_NAME_TOO_LONG")

    if name.startswith("/") or ".." in name.split("/") or any(ord(c) < 32 for c in name):
        raise ValidationError("Invalid file name", "FILE_NAME_INVALID")

    return name
