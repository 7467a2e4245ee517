"""
FastAPI application entry point.

Sets up logging, request id correlation, the error body for malformed
requests, and the shutdown hook that closes the shared Google and HTTP
clients.

Usage:
    # Run with uvicorn
    uvicorn readaloud.main:app --host 0.0.0.0 --port 8000

    # Or use the module directly
    python -m uvicorn readaloud.main:app --reload
"""
from __future__ import annotations

import uuid
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from readaloud import __version__
from readaloud.api.routes import router
from readaloud.core.logging import configure_logging, get_logger, info, set_request_id, verbose
from readaloud.services.errors import InvalidInputError
from readaloud.services.tts_service import reset_service

_LOG = get_logger("readaloud.main")

REQUEST_ID_HEADER = "X-Request-Id"


@asynccontextmanager
async def lifespan(app: FastAPI):
    info(_LOG, "startup", version=__version__)
    yield
    # Clients are created lazily, so this closes only what was used.
    reset_service()
    info(_LOG, "shutdown")


async def request_id_middleware(request: Request, call_next):
    """Bind a request id for log correlation and echo it on the response."""
    rid = request.headers.get(REQUEST_ID_HEADER) or str(uuid.uuid4())[:12]
    set_request_id(rid)
    verbose(_LOG, "http", method=request.method, path=request.url.path)
    response = await call_next(request)
    response.headers[REQUEST_ID_HEADER] = rid
    return response


async def validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """Malformed JSON or wrongly typed fields: 400 with the standard error body."""
    fields = [".".join(str(p) for p in err.get("loc", ()) if p != "body") for err in exc.errors()]
    error = InvalidInputError(
        "Invalid request body",
        details={"reason": "BODY_INVALID", "fields": [f for f in fields if f]},
    )
    return JSONResponse(status_code=400, content=error.to_dict())


def create_app() -> FastAPI:
    """
    Create and configure the FastAPI application.

    Returns:
        FastAPI: Configured application instance ready to serve requests.
    """
    configure_logging()

    app = FastAPI(title="readaloud", version=__version__, lifespan=lifespan)
    app.middleware("http")(request_id_middleware)
    app.add_exception_handler(RequestValidationError, validation_error_handler)
    app.include_router(router)

    return app


# Global application instance for ASGI servers (uvicorn, gunicorn, etc.)
app = create_app()
