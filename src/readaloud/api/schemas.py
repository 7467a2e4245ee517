"""
API request/response schemas.

Request fields are deliberately lenient (all optional, no length limits):
presence and bounds are checked by the service validators, which produce
the field-specific messages callers see ("Text is required", ...).
Only type mismatches are rejected by Pydantic, and main.py turns those
into the standard 400 error body.

JSON field names are camelCase on the wire (operationName, fileName);
Python attributes are snake_case.

Example Requests:
    POST /v1/tts            {"text": "Hello", "voice": "en-US-Wavenet-D", "speed": 1.0}
    POST /v1/tts/status     {"operationName": "projects/p/locations/global/operations/123"}
    POST /v1/tts/download   {"fileName": "tts-1700000000000-k3j9x0q2m.wav"}
    POST /v1/extract        {"url": "https://example.com/article"}
"""
from __future__ import annotations

from typing import Optional

from pydantic import BaseModel, ConfigDict, Field


class _CamelModel(BaseModel):
    model_config = ConfigDict(populate_by_name=True)


class TTSRequest(_CamelModel):
    """
    Synthesis request.

    Attributes:
        text: Text to synthesize (up to 1,000,000 characters). Up to
            5,000 characters are returned as MP3 directly; longer text
            starts a long-audio job.
        voice: Google voice name; the language code is derived from it.
        speed: Speaking rate, 0.25 to 4.0.
    """
    text: Optional[str] = Field(default=None, description="Text to synthesize")
    voice: Optional[str] = Field(default=None, description="Voice name, e.g. 'en-US-Wavenet-D'")
    speed: Optional[float] = Field(default=None, description="Speaking rate (0.25-4.0)")


class StatusRequest(_CamelModel):
    operation_name: Optional[str] = Field(
        default=None,
        alias="operationName",
        description="Operation name returned by POST /v1/tts",
    )


class DownloadRequest(_CamelModel):
    file_name: Optional[str] = Field(
        default=None,
        alias="fileName",
        description="outputFileName returned by POST /v1/tts",
    )


class ExtractRequest(_CamelModel):
    url: Optional[str] = Field(default=None, description="Absolute http(s) URL")


class LongAudioAck(_CamelModel):
    """Returned by POST /v1/tts when the text took the long-audio path."""
    operation_name: str = Field(..., alias="operationName")
    output_file_name: str = Field(..., alias="outputFileName")
    is_long_audio: bool = Field(default=True, alias="isLongAudio")


class ExtractResponse(_CamelModel):
    text: str
    title: str
    original_length: int = Field(..., alias="originalLength")
    truncated: bool = False
