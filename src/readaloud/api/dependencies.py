"""
FastAPI dependency providers.

    1. get_settings() - loads and caches configuration
    2. get_speech_service() - returns the singleton SpeechService

Both are singletons so every request shares one set of Google clients,
one HTTP client and one status cache. Tests replace them through
``app.dependency_overrides``.

The settings path defaults to config/settings.yaml and can be changed
with READALOUD_SETTINGS.
"""
from __future__ import annotations

import os
from functools import lru_cache

from readaloud.core.config import Settings, load_settings
from readaloud.services.tts_service import SpeechService, get_service

DEFAULT_SETTINGS_PATH = "config/settings.yaml"


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """
    Load and cache application settings.

    Settings are immutable once loaded; restart to pick up changes.
    """
    return load_settings(os.getenv("READALOUD_SETTINGS", DEFAULT_SETTINGS_PATH))


def get_speech_service() -> SpeechService:
    """The process-wide SpeechService, created on first use."""
    return get_service(get_settings())
