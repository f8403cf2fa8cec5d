"""Domain exceptions and the FastAPI handlers that render them.

Services raise `CampusError` subclasses; the handlers registered by
`register_exception_handlers` turn them (and framework errors) into the
common error body::

    {"success": false, "status_code": 404, "error": "Not Found",
     "message": "...", "path": "/api/...", "method": "GET",
     "timestamp": "..."}
"""

import logging
import uuid
from datetime import datetime, timezone
from http import HTTPStatus
from typing import Any

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from .config import settings

logger = logging.getLogger("campus.errors")


class CampusError(Exception):
    """Base exception carrying an HTTP status code."""
    status_code = 500

    def __init__(self, message: str, status_code: int | None = None, headers: dict | None = None):
        self.message = message
        self.headers = headers
        if status_code is not None:
            self.status_code = status_code
        super().__init__(message)


class BadRequestError(CampusError):
    status_code = 400


class UnauthorizedError(CampusError):
    status_code = 401


class ForbiddenError(CampusError):
    status_code = 403


class NotFoundError(CampusError):
    status_code = 404

    def __init__(self, resource: str, id: Any = None):
        message = f"{resource} not found"
        if id is not None:
            message += f" with id: {id}"
        super().__init__(message)


class ConflictError(CampusError):
    status_code = 409


class TooManyRequestsError(CampusError):
    status_code = 429


def _phrase(status_code: int) -> str:
    try:
        return HTTPStatus(status_code).phrase
    except ValueError:
        return "Error"


def error_body(request: Request, status_code: int, message: Any) -> dict:
    return {
        "success": False,
        "status_code": status_code,
        "error": _phrase(status_code),
        "message": message,
        "path": request.url.path,
        "method": request.method,
        "timestamp": datetime.now(timezone.utc).isoformat(),
    }


async def campus_error_handler(request: Request, exc: CampusError):
    return JSONResponse(
        status_code=exc.status_code,
        content=error_body(request, exc.status_code, exc.message),
        headers=exc.headers,
    )


async def http_exception_handler(request: Request, exc: StarletteHTTPException):
    return JSONResponse(
        status_code=exc.status_code,
        content=error_body(request, exc.status_code, exc.detail),
        headers=getattr(exc, "headers", None),
    )


def _format_validation_error(err: dict) -> str:
    loc = [str(part) for part in err.get("loc", ()) if part not in ("body", "query", "path")]
    field = ".".join(loc)
    msg = err.get("msg", "invalid value")
    return f"{field}: {msg}" if field else msg


async def validation_exception_handler(request: Request, exc: RequestValidationError):
    messages = [_format_validation_error(err) for err in exc.errors()]
    return JSONResponse(status_code=400, content=error_body(request, 400, messages))


async def unhandled_exception_handler(request: Request, exc: Exception):
    error_id = uuid.uuid4().hex
    logger.exception("unhandled_error id=%s path=%s", error_id, request.url.path)
    message = "Internal server error" if settings.is_production else str(exc) or exc.__class__.__name__
    body = error_body(request, 500, message)
    body["error_id"] = error_id
    return JSONResponse(status_code=500, content=body)


def register_exception_handlers(app: FastAPI) -> None:
    app.add_exception_handler(CampusError, campus_error_handler)
    app.add_exception_handler(StarletteHTTPException, http_exception_handler)
    app.add_exception_handler(RequestValidationError, validation_exception_handler)
    app.add_exception_handler(Exception, unhandled_exception_handler)
