"""API middleware — CORS, compression, logging, body limits and error handling.

Provides helper functions and middleware classes to configure cross-origin
resource sharing, gzip compression, structured request logging (via
structlog), a request body size cap, cache suppression for the admin
console, and automatic conversion of ``CancioneroError`` subclasses into
JSON ``ErrorResponse`` bodies.

# ─── MIDDLEWARE EXECUTION ORDER ───────────────────────────────────────
#
# Starlette middleware is a stack (LIFO: last added, first executed):
#
#   In main.py:
#     app.add_middleware(ErrorHandlingMiddleware)    # added 1st → innermost
#     app.add_middleware(NoCacheMiddleware, ...)     # added 2nd
#     app.add_middleware(BodySizeLimitMiddleware)    # added 3rd
#     app.add_middleware(RequestLoggingMiddleware)   # added 4th
#     configure_compression(app)                     # added 5th
#     configure_cors(app)                            # added last → outermost
#
#   Request flow:
#     Client → CORS → GZip → RequestLogging → BodySizeLimit → NoCache
#            → ErrorHandling → route
#
# So NoCache stamps its headers on error bodies too, RequestLogging sees
# the *final* status code (413 included), and GZip compresses whatever
# comes back.  CORS answers preflight OPTIONS requests before the admin-key
# check ever runs.
# ──────────────────────────────────────────────────────────────────────
"""

from __future__ import annotations

import time

import structlog
from fastapi import FastAPI, Request, Response
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.middleware.gzip import GZipMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.types import ASGIApp

from cancionero.api.schemas import ErrorResponse
from cancionero.utils.errors import (
    CancioneroError,
    ConfigurationError,
    InvalidArgumentError,
    NotFoundError,
    UnauthorizedError,
    ValidationError,
)
from cancionero.utils.logging import get_logger

_logger: structlog.BoundLogger = get_logger(__name__)

# Checked in order, so subclasses must precede their parents.
_ERROR_MAP: tuple[tuple[type[CancioneroError], int, str], ...] = (
    (InvalidArgumentError, 400, "INVALID_ARGUMENT"),
    (ValidationError, 400, "VALIDATION_ERROR"),
    (NotFoundError, 404, "NOT_FOUND"),
    (UnauthorizedError, 401, "UNAUTHORIZED"),
    (ConfigurationError, 500, "CONFIGURATION_ERROR"),
)

_GENERIC_SERVER_MESSAGE = "Internal server error"

_HTTP_ERROR_CODES = {
    404: "NOT_FOUND",
    405: "METHOD_NOT_ALLOWED",
}

NO_CACHE_HEADERS = {
    "Cache-Control": "no-store, no-cache, must-revalidate, proxy-revalidate",
    "Pragma": "no-cache",
    "Expires": "0",
    "Surrogate-Control": "no-store",
}


def error_response(status_code: int, body: ErrorResponse) -> JSONResponse:
    return JSONResponse(status_code=status_code, content=body.model_dump(exclude_none=True))


# ---------------------------------------------------------------------------
# CORS
# ---------------------------------------------------------------------------


def configure_cors(app: FastAPI, *, allowed_origins: list[str] | None = None) -> None:
    """Add CORS middleware to the FastAPI application.

    With the wildcard origin no credentials are allowed (browsers reject
    ``*`` with credentials); an explicit allowlist enables them.
    ``X-Total-Count`` is exposed so the client paginator can read it.

    Parameters
    ----------
    app:
        The FastAPI application instance.
    allowed_origins:
        Explicit list of allowed origins.  Defaults to ``["*"]``.
    """
    origins = allowed_origins or ["*"]
    wildcard = origins == ["*"]
    app.add_middleware(
        CORSMiddleware,
        allow_origins=origins,
        allow_credentials=not wildcard,
        allow_methods=["GET", "POST", "PUT", "PATCH", "DELETE", "OPTIONS"],
        allow_headers=["Content-Type", "x-admin-key"],
        expose_headers=["X-Total-Count"],
    )


# ---------------------------------------------------------------------------
# Request Logging
# ---------------------------------------------------------------------------


class RequestLoggingMiddleware(BaseHTTPMiddleware):
    """Log every HTTP request with method, path, status code, and duration."""

    async def dispatch(
        self,
        request: Request,
        call_next: RequestResponseEndpoint,
    ) -> Response:
        start = time.perf_counter()
        response: Response | None = None

        try:
            response = await call_next(request)
            return response
        finally:
            duration_ms = round((time.perf_counter() - start) * 1000, 2)
            status_code = response.status_code if response else 500
            _logger.info(
                "http_request",
                method=request.method,
                path=str(request.url.path),
                status=status_code,
                duration_ms=duration_ms,
            )


# ---------------------------------------------------------------------------
# Admin no-cache
# ---------------------------------------------------------------------------


class NoCacheMiddleware(BaseHTTPMiddleware):
    """Stamp no-store headers on every response under *path_prefix*.

    The admin console polls live queue data; no proxy or browser cache may
    serve it stale.
    """

    def __init__(self, app: ASGIApp, path_prefix: str = "/api/admin") -> None:
        super().__init__(app)
        self._path_prefix = path_prefix

    async def dispatch(
        self,
        request: Request,
        call_next: RequestResponseEndpoint,
    ) -> Response:
        response = await call_next(request)
        if request.url.path.startswith(self._path_prefix):
            response.headers.update(NO_CACHE_HEADERS)
        return response


# ---------------------------------------------------------------------------
# Compression & body size
# ---------------------------------------------------------------------------


def configure_compression(app: FastAPI, *, minimum_size: int = 1000) -> None:
    """Gzip responses of at least *minimum_size* bytes for clients that accept it.

    Full catalog pages (``limit=all``) run to hundreds of kilobytes of JSON.
    """
    app.add_middleware(GZipMiddleware, minimum_size=minimum_size)


class BodySizeLimitMiddleware(BaseHTTPMiddleware):
    """Reject requests whose declared ``Content-Length`` exceeds *max_bytes*.

    Answers ``413 PAYLOAD_TOO_LARGE`` before the body is read.
    """

    def __init__(self, app: ASGIApp, max_bytes: int = 1_048_576) -> None:
        super().__init__(app)
        self._max_bytes = max_bytes

    async def dispatch(
        self,
        request: Request,
        call_next: RequestResponseEndpoint,
    ) -> Response:
        declared = request.headers.get("content-length", "")
        if declared.isdigit() and int(declared) > self._max_bytes:
            _logger.info(
                "request_body_too_large",
                path=str(request.url.path),
                content_length=int(declared),
                max_bytes=self._max_bytes,
            )
            return error_response(
                413,
                ErrorResponse(
                    error="PAYLOAD_TOO_LARGE",
                    message=f"Request body exceeds {self._max_bytes} bytes",
                ),
            )
        return await call_next(request)


# ---------------------------------------------------------------------------
# Error Handling
# ---------------------------------------------------------------------------


class ErrorHandlingMiddleware(BaseHTTPMiddleware):
    """Convert exceptions into structured JSON ``ErrorResponse`` bodies.

    Client errors (validation, not found, unauthorized) keep their message
    and per-field details.  Server errors are logged with their stack trace
    and answered with a generic message, so driver errors and connection
    strings never reach the client.
    """

    async def dispatch(
        self,
        request: Request,
        call_next: RequestResponseEndpoint,
    ) -> Response:
        try:
            return await call_next(request)
        except CancioneroError as exc:
            return self._from_application_error(request, exc)
        except Exception as exc:
            _logger.error(
                "unhandled_error",
                error_type=type(exc).__name__,
                path=str(request.url.path),
                exc_info=True,
            )
            return error_response(
                500,
                ErrorResponse(error="SERVER_ERROR", message=_GENERIC_SERVER_MESSAGE),
            )

    @staticmethod
    def _from_application_error(request: Request, exc: CancioneroError) -> JSONResponse:
        for exc_type, status_code, code in _ERROR_MAP:
            if isinstance(exc, exc_type):
                break
        else:
            status_code, code = 500, "SERVER_ERROR"

        if status_code >= 500:
            _logger.error(
                "application_error",
                error_type=type(exc).__name__,
                message=exc.message,
                provider=exc.provider_name,
                path=str(request.url.path),
                exc_info=True,
            )
        else:
            _logger.info(
                "client_error",
                error_type=type(exc).__name__,
                message=exc.message,
                path=str(request.url.path),
                status=status_code,
            )

        message = exc.message if code != "SERVER_ERROR" else _GENERIC_SERVER_MESSAGE
        details = exc.details if isinstance(exc, ValidationError) and exc.details else None
        return error_response(
            status_code,
            ErrorResponse(error=code, message=message, details=details),
        )


# ---------------------------------------------------------------------------
# Framework exception handlers
# ---------------------------------------------------------------------------


async def validation_exception_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """Answer malformed bodies/params with 400 ``VALIDATION_ERROR`` instead of 422."""
    details = []
    for err in exc.errors():
        loc = [str(part) for part in err.get("loc", ()) if part not in ("body", "query", "path")]
        details.append({"field": ".".join(loc) or "body", "message": err.get("msg", "Invalid value")})
    return error_response(
        400,
        ErrorResponse(error="VALIDATION_ERROR", message="Invalid request", details=details),
    )


async def http_exception_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    """Render routing errors (unknown path, wrong method) in the same error shape."""
    code = _HTTP_ERROR_CODES.get(exc.status_code, "HTTP_ERROR")
    return error_response(
        exc.status_code,
        ErrorResponse(error=code, message=str(exc.detail) if exc.detail else None),
    )


def register_exception_handlers(app: FastAPI) -> None:
    app.add_exception_handler(RequestValidationError, validation_exception_handler)
    app.add_exception_handler(StarletteHTTPException, http_exception_handler)
