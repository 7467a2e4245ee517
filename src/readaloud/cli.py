"""
Command-line interface for readaloud.

Sends text (typed, from a file, or extracted from a web page) to a
running readaloud server and writes the audio to disk. Long texts are
polled to completion and the finished artifact downloaded.

Usage Examples:
    # Short text, written as MP3
    readaloud "Hello world" --out hello.mp3

    # A text file; long files come back as WAV after polling
    readaloud --file chapter1.txt --out chapter1.wav

    # Read a web article aloud
    readaloud --url https://example.com/article --voice en-GB-Wavenet-B

    # Show the dispatch decision without contacting the server
    readaloud --file chapter1.txt --dry-run --json

Environment Variables:
    READALOUD_SERVER: Server URL (default http://localhost:8000)
    READALOUD_SETTINGS: Settings file for limits and the polling schedule
"""
from __future__ import annotations

import argparse
import json
import os
from pathlib import Path
from typing import Any, Dict, List, Optional
from uuid import uuid4

from readaloud.client.api_client import DEFAULT_SERVER, ReadAloudClient
from readaloud.client.poller import JobPoller, PollState
from readaloud.core.config import ConfigValidationError, ServiceConfig, load_settings
from readaloud.core.logging import configure_logging, fail, get_logger, info, set_request_id, warn
from readaloud.services.errors import InvalidInputError, ReadAloudError
from readaloud.services.tts_service import choose_path
from readaloud.services.validators import (
    ValidationError,
    validate_speed,
    validate_text,
    validate_url,
    validate_voice,
)
from readaloud.tts.provider import language_code_for
from readaloud.utils.audio import LONG_AUDIO_EXTENSION, SHORT_AUDIO_EXTENSION, extension_for


def _parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(prog="readaloud", description="readaloud CLI (text or URL to speech)")

    # Input options
    parser.add_argument("text_pos", nargs="?", help="Text to synthesize (positional)")
    parser.add_argument("--text", help="Text to synthesize")
    parser.add_argument("--file", help="Read the text from this file")
    parser.add_argument("--url", help="Extract the text of this web page first")

    # Synthesis options
    parser.add_argument("--voice", help="Voice name, e.g. en-US-Wavenet-D")
    parser.add_argument("--speed", type=float, help="Speaking rate (0.25-4.0)")

    # Output options
    parser.add_argument("--out", help="Output file (or directory)")
    parser.add_argument("--server", default=os.getenv("READALOUD_SERVER", DEFAULT_SERVER),
                        help="readaloud server URL")
    parser.add_argument("--settings", default=os.getenv("READALOUD_SETTINGS", "config/settings.yaml"),
                        help="Settings file (limits, polling schedule)")

    # Execution modes
    parser.add_argument("--dry-run", action="store_true",
                        help="Show the dispatch decision without contacting the server")
    parser.add_argument("--json", action="store_true",
                        help="Print JSON summary")

    return parser.parse_args(argv)


def _load_text(args: argparse.Namespace) -> Optional[str]:
    """
    Text from the positional argument, --text or --file.

    Returns None when --url is used instead.

    Raises:
        SystemExit: No input, or conflicting inputs.
        InvalidInputError: The --file could not be read.
    """
    text = args.text or args.text_pos
    sources = [bool(text), bool(args.file), bool(args.url)]
    if sum(sources) > 1:
        raise SystemExit("Use only one of: text, --file, --url.")

    if args.file:
        try:
            content = Path(args.file).read_text(encoding="utf-8")
        except (OSError, UnicodeDecodeError) as e:
            raise InvalidInputError(
                "Could not read input file",
                details={"file": args.file, "reason": type(e).__name__},
            ) from e
        if not content.strip():
            raise SystemExit("Input file is empty.")
        return content

    if args.url:
        return None

    if not text:
        raise SystemExit("Provide text, --text, --file or --url.")
    return text


def _resolve_output_path(out: Optional[str], extension: str) -> Path:
    """``out`` as given, ``out/speech{ext}`` for a directory, or ``speech{ext}``."""
    if out:
        path = Path(out)
        if path.is_dir():
            path = path / f"speech{extension}"
    else:
        path = Path(f"speech{extension}")
    path.parent.mkdir(parents=True, exist_ok=True)
    return path


def _dry_run_summary(text: str, args: argparse.Namespace, config: ServiceConfig) -> Dict[str, Any]:
    synthesis = config.synthesis
    text = validate_text(text, max_length=synthesis.max_text_chars)
    voice = validate_voice(args.voice, default=synthesis.default_voice)
    speed = validate_speed(args.speed, default=synthesis.default_speed)
    path = choose_path(text, synthesis.short_text_limit)
    return {
        "chars": len(text),
        "path": path,
        "voice": voice,
        "language_code": language_code_for(voice),
        "speed": speed,
        "output_extension": SHORT_AUDIO_EXTENSION if path == "short" else LONG_AUDIO_EXTENSION,
    }


def _emit(payload: Dict[str, Any], as_json: bool) -> None:
    if as_json:
        print(json.dumps(payload, ensure_ascii=False))
    else:
        print(payload)


def main(argv: Optional[List[str]] = None) -> int:
    """
    CLI entry point.

    Returns:
        Exit code: 0 on success, 1 on any readaloud error, 130 if interrupted.
    """
    args = _parse_args(argv)

    configure_logging()
    log = get_logger("readaloud.cli")
    set_request_id(str(uuid4())[:12])

    try:
        config = ServiceConfig.from_settings(load_settings(args.settings))
    except ConfigValidationError as e:
        fail(log, "config_invalid", error=str(e))
        _emit({"ok": False, "error": str(e), "code": "CONFIGURATION_ERROR"}, args.json)
        return 1

    try:
        text = _load_text(args)
    except ReadAloudError as e:
        fail(log, "input_unreadable", error=e.message, **e.details)
        _emit(e.to_dict(), args.json)
        return 1

    # ─────────────────────────────────────────────────────────────────────────
    # Dry run: local validation and dispatch decision only
    # ─────────────────────────────────────────────────────────────────────────
    if args.dry_run:
        try:
            if text is None:
                summary: Dict[str, Any] = {"source": "url", "url": validate_url(args.url)}
            else:
                summary = _dry_run_summary(text, args, config)
        except ValidationError as e:
            _emit({"ok": False, "error": e.message, "code": e.code}, args.json)
            return 1

        payload = {"ok": True, "dry_run": True, **summary}
        if not args.json:
            info(log, "dry_run", **summary)
        _emit(payload, args.json)
        print("DRY_RUN_OK")
        return 0

    # ─────────────────────────────────────────────────────────────────────────
    # Synthesis through the server
    # ─────────────────────────────────────────────────────────────────────────
    poller: Optional[JobPoller] = None
    try:
        with ReadAloudClient(args.server) as client:
            if text is None:
                article = client.extract(args.url)
                info(log, "extracted", title=article.title, chars=article.original_length)
                text = article.text

            outcome = client.synthesize(text, voice=args.voice, speed=args.speed)

            if outcome.job is None:
                audio = outcome.audio or b""
                out_path = _resolve_output_path(args.out, extension_for(outcome.content_type or ""))
                cleanup = "n/a"
            else:
                info(log, "long_job", operation=outcome.job.operation_name)
                poller = JobPoller(
                    client.check_status,
                    client.download,
                    config=config.polling,
                    on_progress=lambda p: info(log, "progress", progress=round(p, 1)),
                )
                state = poller.run(outcome.job)
                if state is not PollState.COMPLETED:
                    raise poller.error or ReadAloudError("Polling stopped before the job finished")
                result = poller.result
                audio = result.payload
                out_path = _resolve_output_path(args.out, extension_for(result.content_type))
                cleanup = result.cleanup.label
                if not result.cleanup.ok:
                    warn(log, "artifact_left_in_storage", file_name=result.file_name)

    except KeyboardInterrupt:
        if poller is not None:
            poller.cancel()
        fail(log, "interrupted")
        return 130
    except ReadAloudError as e:
        fail(log, "failed", code=e.code, error=e.message)
        _emit({"ok": False, "error": e.message, "code": e.code}, args.json)
        return 1

    try:
        out_path.write_bytes(audio)
    except OSError as e:
        fail(log, "write_failed", out=str(out_path), error=str(e))
        _emit({"ok": False, "error": f"Could not write {out_path}", "code": "WRITE_FAILED"}, args.json)
        return 1

    payload = {
        "ok": True,
        "dry_run": False,
        "out": str(out_path),
        "bytes": len(audio),
        "long_audio": poller is not None,
        "cleanup": cleanup,
    }
    _emit(payload, args.json)
    print("CLI_OK")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
