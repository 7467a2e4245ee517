"""
Audio format helpers.

The two synthesis paths produce different containers: the short path
returns MP3 straight from the provider, the long path writes LINEAR16
PCM in a WAV container to storage. Nothing stores the format alongside
the artifact, so the file extension is the only signal.
"""
from __future__ import annotations

MP3_CONTENT_TYPE = "audio/mpeg"
WAV_CONTENT_TYPE = "audio/wav"

LONG_AUDIO_EXTENSION = ".wav"
SHORT_AUDIO_EXTENSION = ".mp3"


def content_type_for(file_name: str) -> str:
    """
    Content type for an artifact, inferred from its extension.

    >>> content_type_for("tts-1700000000000-k3j9.wav")
    'audio/wav'
    >>> content_type_for("speech.mp3")
    'audio/mpeg'
    """
    if file_name.lower().endswith(LONG_AUDIO_EXTENSION):
        return WAV_CONTENT_TYPE
    return MP3_CONTENT_TYPE


def extension_for(content_type: str) -> str:
    """File extension to save audio of the given content type under."""
    if content_type.split(";", 1)[0].strip().lower() in (WAV_CONTENT_TYPE, "audio/x-wav", "audio/wave"):
        return LONG_AUDIO_EXTENSION
    return SHORT_AUDIO_EXTENSION
