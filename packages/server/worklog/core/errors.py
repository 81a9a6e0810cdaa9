"""
Domain errors and the handlers that render them as ``{"error": message}``.

Services raise these; routers never build error responses by hand.
"""

from __future__ import annotations

import structlog
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from starlette.exceptions import HTTPException as StarletteHTTPException
from starlette.responses import JSONResponse

log = structlog.get_logger()


class WorklogError(Exception):
    """Base class for errors surfaced to API callers."""

    status_code = 500

    def __init__(self, message: str):
        self.message = message
        super().__init__(message)


class ValidationError(WorklogError):
    status_code = 400


class AuthenticationError(WorklogError):
    status_code = 401


class PermissionDeniedError(WorklogError):
    status_code = 403


class NotFoundError(WorklogError):
    status_code = 404


class ConflictError(WorklogError):
    status_code = 409


def error_response(status_code: int, message: str) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"error": message})


def _format_validation_error(exc: RequestValidationError) -> str:
    parts = []
    for err in exc.errors():
        loc = [str(p) for p in err.get("loc", ()) if p not in ("body", "query", "path")]
        field = ".".join(loc)
        parts.append(f"{field}: {err.get('msg')}" if field else str(err.get("msg")))
    return "; ".join(parts) or "Invalid request"


def register_exception_handlers(app: FastAPI) -> None:
    """Render every failure as ``{"error": message}`` with a proper status."""

    @app.exception_handler(WorklogError)
    async def _worklog_error(request: Request, exc: WorklogError):
        if exc.status_code >= 500:
            log.error("request.failed", path=request.url.path, error=exc.message)
        return error_response(exc.status_code, exc.message)

    @app.exception_handler(StarletteHTTPException)
    async def _http_error(request: Request, exc: StarletteHTTPException):
        return error_response(exc.status_code, str(exc.detail))

    @app.exception_handler(RequestValidationError)
    async def _request_validation_error(request: Request, exc: RequestValidationError):
        return error_response(400, _format_validation_error(exc))

    @app.exception_handler(Exception)
    async def _unhandled_error(request: Request, exc: Exception):
        log.exception("request.unhandled_error", path=request.url.path)
        return error_response(500, "Internal server error")
