"""API middleware — CORS, request logging, and error handling.

Starlette middleware is a stack (last added, first executed).  ``main.py``
adds ``ErrorHandlingMiddleware`` first and ``RequestLoggingMiddleware``
second, so requests flow

    Client → RequestLogging → ErrorHandling → route handler

and the request log always records the final status code, including the
ones produced by error translation.
"""

from __future__ import annotations

import time
import uuid

import structlog
from fastapi import FastAPI, Request, Response
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint

from docqa.api.schemas import ErrorResponse
from docqa.utils.errors import (
    ConfigurationError,
    DocQAError,
    DocumentNotFoundError,
    ValidationError,
)
from docqa.utils.logging import get_logger

_logger: structlog.BoundLogger = get_logger(__name__)

# Most specific first; anything else derived from DocQAError is a 500.
_STATUS_BY_ERROR: tuple[tuple[type[DocQAError], int], ...] = (
    (ValidationError, 400),
    (DocumentNotFoundError, 404),
    (ConfigurationError, 503),
)


def status_code_for(exc: DocQAError) -> int:
    for error_type, status_code in _STATUS_BY_ERROR:
        if isinstance(exc, error_type):
            return status_code
    return 500


# ---------------------------------------------------------------------------
# CORS
# ---------------------------------------------------------------------------


def configure_cors(app: FastAPI, *, allowed_origins: list[str] | None = None) -> None:
    """Add CORS middleware; defaults to ``["*"]`` for development."""
    origins = allowed_origins or ["*"]
    app.add_middleware(
        CORSMiddleware,
        allow_origins=origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )


# ---------------------------------------------------------------------------
# Request Logging
# ---------------------------------------------------------------------------


class RequestLoggingMiddleware(BaseHTTPMiddleware):
    """Log every HTTP request with method, path, status code, and duration.

    A short ``request_id`` is bound to the structlog context for the life of
    the request, so events logged by handlers and services carry it too, and
    it is echoed back in the ``X-Request-ID`` response header.
    """

    async def dispatch(
        self,
        request: Request,
        call_next: RequestResponseEndpoint,
    ) -> Response:
        request_id = request.headers.get("x-request-id") or uuid.uuid4().hex[:12]
        start = time.perf_counter()
        response: Response | None = None

        with structlog.contextvars.bound_contextvars(request_id=request_id):
            try:
                response = await call_next(request)
                response.headers["X-Request-ID"] = request_id
                return response
            finally:
                _logger.info(
                    "http_request",
                    method=request.method,
                    path=str(request.url.path),
                    status=response.status_code if response else 500,
                    duration_ms=round((time.perf_counter() - start) * 1000, 2),
                )


# ---------------------------------------------------------------------------
# Error Handling
# ---------------------------------------------------------------------------


class ErrorHandlingMiddleware(BaseHTTPMiddleware):
    """Translate ``DocQAError`` subclasses into structured JSON errors.

    Validation failures become 400, unknown documents 404, missing
    configuration 503 and every other application error 500.  Stack traces
    stay in the server log; the client sees the error class and message.
    """

    async def dispatch(
        self,
        request: Request,
        call_next: RequestResponseEndpoint,
    ) -> Response:
        try:
            return await call_next(request)
        except DocQAError as exc:
            status_code = status_code_for(exc)
            log = _logger.warning if status_code < 500 else _logger.error
            log(
                "application_error",
                error_type=type(exc).__name__,
                message=exc.message,
                provider=exc.provider_name,
                path=str(request.url.path),
                status=status_code,
            )
            body = ErrorResponse(
                error=type(exc).__name__,
                detail=exc.message,
            )
            return JSONResponse(
                status_code=status_code,
                content=body.model_dump(),
            )
