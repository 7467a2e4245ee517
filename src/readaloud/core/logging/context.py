"""
Request context and logging state.

The request id lives in a ContextVar so it follows a request through
FastAPI's threadpool and any coroutine it spawns. Everything else here
is process-wide state written once by ``configure_logging()``.

Environment overrides (highest priority):
    READALOUD_LOG_LEVEL         level (1-4 or a name)
    READALOUD_LOG_DIR           directory for the JSONL file
    READALOUD_JSONL_FILE        JSONL file name
    READALOUD_LOG_ROTATE_BYTES  rotation size
    READALOUD_LOG_ROTATE_BACKUP rotated files to keep
"""
from __future__ import annotations

import os
from contextvars import ContextVar
from typing import Any, Dict

from .levels import LEVEL_NAMES, LogLevel

_request_id: ContextVar[str] = ContextVar("request_id", default="-")

_configured: bool = False
_current_level: LogLevel = LogLevel.NORMAL


def get_request_id() -> str:
    """Request id of the current context, "-" outside a request."""
    return _request_id.get()


def set_request_id(rid: str) -> None:
    """Bind ``rid`` to the current context for log correlation."""
    _request_id.set(rid)


def get_level() -> LogLevel:
    return _current_level


def set_level(level: LogLevel) -> None:
    global _current_level
    _current_level = level


def get_level_name() -> str:
    return LEVEL_NAMES.get(_current_level, "NORMAL")


def is_configured() -> bool:
    return _configured


def set_configured(value: bool) -> None:
    global _configured
    _configured = value


def _env_int(name: str) -> int | None:
    raw = os.getenv(name)
    if not raw:
        return None
    try:
        return int(raw)
    except ValueError:
        return None


def read_logging_config() -> Dict[str, Any]:
    """
    Resolve the logging section from the settings file and environment.

    The settings file is optional here; a missing or unreadable file just
    means the defaults (plus any environment overrides) apply.
    """
    cfg: Dict[str, Any] = {}

    settings_path = os.getenv("READALOUD_SETTINGS", "config/settings.yaml")
    try:
        from readaloud.core.config import load_settings
        settings = load_settings(settings_path)
        cfg.update(settings.raw.get("logging", {}) or {})
    except (OSError, ValueError):
        pass

    if os.getenv("READALOUD_LOG_LEVEL"):
        cfg["level"] = os.environ["READALOUD_LOG_LEVEL"]
    if os.getenv("READALOUD_LOG_DIR"):
        cfg["log_dir"] = os.environ["READALOUD_LOG_DIR"]
    if os.getenv("READALOUD_JSONL_FILE"):
        cfg["jsonl_file"] = os.environ["READALOUD_JSONL_FILE"]

    rotate_bytes = _env_int("READALOUD_LOG_ROTATE_BYTES")
    if rotate_bytes is not None:
        cfg["rotate_max_bytes"] = rotate_bytes
    rotate_backup = _env_int("READALOUD_LOG_ROTATE_BACKUP")
    if rotate_backup is not None:
        cfg["rotate_backup_count"] = rotate_backup

    return cfg
