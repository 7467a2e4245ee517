"""
Log formatters: JSON Lines for files, colored text for the console.

JSONL:
    {"ts":"2026-05-02T14:30:05+02:00","level":2,"tag":"INFO","message":"dispatch","request_id":"9c1e0f2ab3d4","extra":{"path":"long"}}

Console:
    14:30:05 [ INFO  ] (9c1e0f2ab3d4) dispatch path=long chars=8123 0.412s
"""
from __future__ import annotations

import json
import logging
from datetime import datetime
from typing import Any, Dict

from .colors import Colors, get_tag_color


def _use_colors() -> bool:
    # Read at format time; tests flip the flag on the package.
    import readaloud.core.logging as log_module
    return getattr(log_module, "_USE_COLORS", False)


def _paint(text: str, color: str) -> str:
    if not _use_colors():
        return text
    return f"{color}{text}{Colors.RESET}"


class JsonlFormatter(logging.Formatter):
    """One JSON object per line with ts, level, tag, message, request_id and extras."""

    def format(self, record: logging.LogRecord) -> str:
        payload: Dict[str, Any] = {
            "ts": datetime.fromtimestamp(record.created).astimezone().isoformat(),
            "level": getattr(record, "numeric_level", 2),
            "tag": getattr(record, "tag", record.levelname),
            "message": record.getMessage(),
            "request_id": getattr(record, "request_id", "-"),
        }

        event = getattr(record, "event", None)
        if event:
            payload["event"] = event

        seconds = getattr(record, "seconds", None)
        if seconds is not None:
            payload["seconds"] = seconds

        extra_data = getattr(record, "extra_data", None)
        if extra_data:
            payload["extra"] = extra_data

        return json.dumps(payload, ensure_ascii=False, default=str)


class ColoredConsoleFormatter(logging.Formatter):
    """
    Human-readable console lines.

    Timings are colored by speed (green < 0.5s < yellow < 5s < red) since
    provider round trips are much slower than local work. Job progress is
    colored by completion and the ``path`` field by dispatch branch.
    """

    def format(self, record: logging.LogRecord) -> str:
        ts = datetime.fromtimestamp(record.created).strftime("%H:%M:%S")
        tag = getattr(record, "tag", record.levelname)
        rid = getattr(record, "request_id", "-")

        parts = [
            _paint(ts, Colors.DIM),
            _paint(f"[{tag:^7}]", get_tag_color(tag)),
        ]
        if rid != "-":
            parts.append(_paint(f"({rid})", Colors.DIM + Colors.CYAN))
        parts.append(record.getMessage())

        event = getattr(record, "event", None)
        if event:
            parts.append(_paint(f"event={event}", Colors.BLUE))

        extra_data = getattr(record, "extra_data", None)
        if extra_data:
            for k, v in extra_data.items():
                parts.append(_paint(f"{k}={v}", self._field_color(k, v)))

        seconds = getattr(record, "seconds", None)
        if seconds is not None:
            if seconds < 0.5:
                time_color = Colors.GREEN
            elif seconds < 5.0:
                time_color = Colors.YELLOW
            else:
                time_color = Colors.RED
            parts.append(_paint(f"{seconds:.3f}s", time_color))

        return " ".join(parts)

    @staticmethod
    def _field_color(key: str, value: Any) -> str:
        if key == "progress" and isinstance(value, (int, float)):
            if value >= 100:
                return Colors.GREEN
            if value >= 50:
                return Colors.CYAN
            return Colors.YELLOW

        if key == "path":
            return Colors.MAGENTA if value == "long" else Colors.CYAN

        if key == "cleanup":
            return Colors.GREEN if value == "ok" else Colors.RED

        if key == "status" and isinstance(value, str):
            return {
                "completed": Colors.GREEN,
                "error": Colors.RED,
                "processing": Colors.YELLOW,
            }.get(value, Colors.DIM)

        return Colors.DIM
