"""
readaloud API routes.

Endpoints:
    POST /v1/tts           - Synthesize (MP3 bytes, or a long-audio job handle)
    POST /v1/tts/status    - Status of a long-audio job
    POST /v1/tts/download  - Download a finished artifact (deleted afterwards)
    POST /v1/extract       - Readable text of a web page
    GET  /health           - Configuration summary for probes
    GET  /metrics          - Prometheus metrics (requires prometheus_client)

Error Handling:
    All errors are returned as JSON:
    {
        "ok": false,
        "error": "<human readable message>",
        "code": "<ERROR_CODE>"
    }

    HTTP status codes are mapped from error codes per route, because the
    same kind of failure means different things to different callers
    (an unknown host is the caller's mistake on /v1/extract, a missing
    artifact is a 404 on /v1/tts/download). Anything not in a route's map
    is a 500.

Example Usage:
    >>> import httpx
    >>> r = httpx.post("http://localhost:8000/v1/tts", json={"text": "Hello"})
    >>> r.headers["content-type"]
    'audio/mpeg'
"""
from __future__ import annotations

from typing import Dict

from fastapi import APIRouter, Depends, Response
from fastapi.responses import JSONResponse

from readaloud import __version__
from readaloud.api.dependencies import get_speech_service
from readaloud.api.schemas import (
    DownloadRequest,
    ExtractRequest,
    ExtractResponse,
    LongAudioAck,
    StatusRequest,
    TTSRequest,
)
from readaloud.core.logging import error, get_logger, get_request_id
from readaloud.core.metrics import metrics
from readaloud.services.errors import ErrorCode, ReadAloudError
from readaloud.services.tts_service import SpeechService, SynthesizeRequest

router = APIRouter()

_LOG = get_logger("readaloud.api")

_TTS_STATUS: Dict[str, int] = {
    ErrorCode.INVALID_INPUT: 400,
}
_JOB_STATUS_STATUS: Dict[str, int] = {
    ErrorCode.INVALID_INPUT: 400,
}
_DOWNLOAD_STATUS: Dict[str, int] = {
    ErrorCode.INVALID_INPUT: 400,
    ErrorCode.NOT_FOUND: 404,
}
_EXTRACT_STATUS: Dict[str, int] = {
    ErrorCode.INVALID_INPUT: 400,
    ErrorCode.NOT_FOUND: 400,
    ErrorCode.EXTRACTION_FAILED: 400,
    ErrorCode.TIMEOUT: 408,
}


def _error_response(e: ReadAloudError, status_map: Dict[str, int]) -> JSONResponse:
    return JSONResponse(status_code=status_map.get(e.code, 500), content=e.to_dict())


def _internal_error(route: str, e: Exception) -> JSONResponse:
    # Log internally, never return exception details
    error(_LOG, "unhandled", route=route, error_type=type(e).__name__, error=str(e))
    return JSONResponse(
        status_code=500,
        content={
            "ok": False,
            "error": "Internal server error",
            "code": ErrorCode.INTERNAL_ERROR,
            "request_id": get_request_id(),
        },
    )


@router.post("/v1/tts", response_class=Response)
def tts_v1(
    req: TTSRequest,
    service: SpeechService = Depends(get_speech_service),
):
    """
    Synthesize speech.

    Returns:
        Short text: MP3 bytes (``audio/mpeg``).
        Long text: ``{"operationName", "outputFileName", "isLongAudio": true}``;
        poll /v1/tts/status, then fetch /v1/tts/download.

    Example:
        curl -X POST http://localhost:8000/v1/tts \\
            -H "Content-Type: application/json" \\
            -d '{"text": "Hello!"}' --output speech.mp3
    """
    try:
        result = service.synthesize(
            SynthesizeRequest(text=req.text, voice=req.voice, speed=req.speed),
            get_request_id(),
        )
    except ReadAloudError as e:
        return _error_response(e, _TTS_STATUS)
    except Exception as e:
        return _internal_error("tts", e)

    if result.job is not None:
        ack = LongAudioAck(
            operation_name=result.job.operation_name,
            output_file_name=result.job.output_file_name,
        )
        return JSONResponse(content=ack.model_dump(by_alias=True))

    return Response(
        content=result.audio,
        media_type=result.content_type,
        headers={"X-Bytes": str(len(result.audio or b""))},
    )


@router.post("/v1/tts/status")
def tts_status(
    req: StatusRequest,
    service: SpeechService = Depends(get_speech_service),
):
    """
    Status of a long-audio job.

    Returns one of:
        {"status": "processing", "progress": 40.0}
        {"status": "completed", "result": {...}}
        {"status": "error", "error": "..."}
    """
    try:
        status = service.check_status(req.operation_name)
    except ReadAloudError as e:
        return _error_response(e, _JOB_STATUS_STATUS)
    except Exception as e:
        return _internal_error("tts_status", e)

    return JSONResponse(content=status.to_dict())


@router.post("/v1/tts/download", response_class=Response)
def tts_download(
    req: DownloadRequest,
    service: SpeechService = Depends(get_speech_service),
):
    """
    Download a finished long-audio artifact.

    The artifact is deleted from storage right after download, so each
    artifact can be fetched once. ``X-Cleanup`` reports whether the
    delete succeeded (``ok``) or not (``failed``); either way the audio
    is returned.
    """
    try:
        result = service.fetch_artifact(req.file_name)
    except ReadAloudError as e:
        return _error_response(e, _DOWNLOAD_STATUS)
    except Exception as e:
        return _internal_error("tts_download", e)

    safe_name = result.file_name.replace('"', "")
    return Response(
        content=result.payload,
        media_type=result.content_type,
        headers={
            "Content-Disposition": f'attachment; filename="{safe_name}"',
            "X-Cleanup": result.cleanup.label,
        },
    )


@router.post("/v1/extract")
def extract(
    req: ExtractRequest,
    service: SpeechService = Depends(get_speech_service),
):
    """Fetch a web page and return its readable text and title."""
    try:
        article = service.extract(req.url)
    except ReadAloudError as e:
        return _error_response(e, _EXTRACT_STATUS)
    except Exception as e:
        return _internal_error("extract", e)

    body = ExtractResponse(
        text=article.text,
        title=article.title,
        original_length=article.original_length,
        truncated=article.truncated,
    )
    return JSONResponse(content=body.model_dump(by_alias=True))


@router.get("/health")
def health(service: SpeechService = Depends(get_speech_service)):
    """
    Health summary for load balancers and probes.

    Reports configuration (limits, whether long audio is configured,
    client and cache state); it does not call Google.
    """
    info = service.get_health_info()
    info["version"] = __version__
    return info


@router.get("/metrics")
def prometheus_metrics():
    """Prometheus text format metrics (placeholder if prometheus_client is missing)."""
    content, content_type = metrics.get_metrics_response()
    return Response(content=content, media_type=content_type)
