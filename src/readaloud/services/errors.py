"""
Error taxonomy for readaloud.

Every boundary (provider, storage, page fetch, status poll) catches the
library's own exceptions and re-raises one of these, carrying a message
that is safe to show an end user. Raw provider errors never cross into
the API layer.

    ReadAloudError (INTERNAL_ERROR)
    ├── InvalidInputError    INVALID_INPUT        malformed or missing fields
    ├── ConfigurationError   CONFIGURATION_ERROR  missing bucket / project
    ├── NotFoundError        NOT_FOUND            unknown host or artifact
    ├── RequestTimeoutError  TIMEOUT              fetch or provider deadline
    ├── SynthesisError       SYNTHESIS_FAILED     provider returned no payload
    ├── TransportError       TRANSPORT_ERROR      other network/provider failure
    ├── ExtractionError      EXTRACTION_FAILED    no readable content
    └── PollTimeoutError     POLL_TIMEOUT         job outlived the poll wait limit
"""
from __future__ import annotations

from typing import Any, Dict, Optional


class ErrorCode:
    """Machine-readable codes returned in the ``code`` field of error bodies."""
    INVALID_INPUT = "INVALID_INPUT"
    CONFIGURATION_ERROR = "CONFIGURATION_ERROR"
    NOT_FOUND = "NOT_FOUND"
    TIMEOUT = "TIMEOUT"
    SYNTHESIS_FAILED = "SYNTHESIS_FAILED"
    TRANSPORT_ERROR = "TRANSPORT_ERROR"
    EXTRACTION_FAILED = "EXTRACTION_FAILED"
    POLL_TIMEOUT = "POLL_TIMEOUT"
    INTERNAL_ERROR = "INTERNAL_ERROR"


class ReadAloudError(Exception):
    """
    Base exception with a user-facing message and an error code.

    Attributes:
        message: Human-readable message, safe to return to clients.
        code: One of the ErrorCode constants.
        details: Optional extra context (never provider internals).
    """

    def __init__(self, message: str, code: str = ErrorCode.INTERNAL_ERROR, details: Optional[Dict[str, Any]] = None):
        self.message = message
        self.code = code
        self.details = details or {}
        super().__init__(message)

    def to_dict(self) -> Dict[str, Any]:
        """Error body for API responses: ``{"ok": false, "error": ..., "code": ...}``."""
        result: Dict[str, Any] = {
            "ok": False,
            "error": self.message,
            "code": self.code,
        }
        if self.details:
            result["details"] = self.details
        return result


class InvalidInputError(ReadAloudError):
    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(message, ErrorCode.INVALID_INPUT, details)


class ConfigurationError(ReadAloudError):
    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(message, ErrorCode.CONFIGURATION_ERROR, details)


class NotFoundError(ReadAloudError):
    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(message, ErrorCode.NOT_FOUND, details)


class RequestTimeoutError(ReadAloudError):
    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(message, ErrorCode.TIMEOUT, details)


class SynthesisError(ReadAloudError):
    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(message, ErrorCode.SYNTHESIS_FAILED, details)


class TransportError(ReadAloudError):
    """
    Network or provider failure.

    ``transient`` marks failures worth retrying (connection resets, 5xx);
    the job poller keys its retry decision off it.
    """

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None, transient: bool = True):
        super().__init__(message, ErrorCode.TRANSPORT_ERROR, details)
        self.transient = transient

    def to_dict(self) -> Dict[str, Any]:
        """Error body with ``details.transient`` so clients keep the retry decision."""
        result = super().to_dict()
        result["details"] = {**self.details, "transient": self.transient}
        return result


class ExtractionError(ReadAloudError):
    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(message, ErrorCode.EXTRACTION_FAILED, details)


class PollTimeoutError(ReadAloudError):
    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(message, ErrorCode.POLL_TIMEOUT, details)


_BY_CODE = {
    ErrorCode.INVALID_INPUT: InvalidInputError,
    ErrorCode.CONFIGURATION_ERROR: ConfigurationError,
    ErrorCode.NOT_FOUND: NotFoundError,
    ErrorCode.TIMEOUT: RequestTimeoutError,
    ErrorCode.SYNTHESIS_FAILED: SynthesisError,
    ErrorCode.TRANSPORT_ERROR: TransportError,
    ErrorCode.EXTRACTION_FAILED: ExtractionError,
    ErrorCode.POLL_TIMEOUT: PollTimeoutError,
}


def error_from_code(code: Optional[str], message: str, details: Optional[Dict[str, Any]] = None) -> ReadAloudError:
    """Rebuild the matching exception from an API error body (client side)."""
    cls = _BY_CODE.get(code or "")
    if cls is None:
        return ReadAloudError(message, ErrorCode.INTERNAL_ERROR, details)
    if cls is TransportError:
        return TransportError(message, details, transient=bool((details or {}).get("transient", True)))
    return cls(message, details)
