"""
readaloud services layer.

Business logic between the HTTP API and the Google clients.

Components:
    - tts_service.py: SpeechService (dispatch, job status, artifact retrieval)
    - extractor.py: ContentExtractor (readable text from a URL)
    - validators.py: input validation functions
    - errors.py: error taxonomy shared by server and client

Only the error taxonomy is re-exported here; it has no heavy imports and
is also used by the client package.
"""
from .errors import (
    ConfigurationError,
    ErrorCode,
    ExtractionError,
    InvalidInputError,
    NotFoundError,
    PollTimeoutError,
    ReadAloudError,
    RequestTimeoutError,
    SynthesisError,
    TransportError,
    error_from_code,
)

__all__ = [
    "ErrorCode",
    "ReadAloudError",
    "InvalidInputError",
    "ConfigurationError",
    "NotFoundError",
    "RequestTimeoutError",
    "SynthesisError",
    "TransportError",
    "ExtractionError",
    "PollTimeoutError",
    "error_from_code",
]
