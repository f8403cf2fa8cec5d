"""FastAPI application entrypoint.

This module builds the application: exception handlers, CORS, the
HTTP middlewares (request logging, throttling, auditing) and the
per-resource routers mounted under `/api`. Routers are intentionally
thin: they validate input, delegate to services, and wrap results in
the `{success, data, meta, timestamp}` envelope.
"""

import json
import logging
import time
import uuid
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, Response
from sqlalchemy.exc import SQLAlchemyError
from sqlmodel import Session

from . import services
from .auth import user_id_from_token
from .config import settings
from .database import create_db_and_tables, engine
from .errors import error_body, register_exception_handlers
from .routes import (
    academic_terms,
    analytics,
    attendance,
    audit,
    auth,
    courses,
    departments,
    enrollments,
    faculties,
    grades,
    health,
    scheduling,
    students,
    teachers,
    users,
)
from .utils.rate_limit import InMemoryRateLimiter

API_PREFIX = "/api"
AUDITED_RESOURCES = {"students", "grades", "enrollments", "users", "courses"}
AUDIT_ACTIONS = {"POST": "CREATE", "PUT": "UPDATE", "PATCH": "UPDATE", "DELETE": "DELETE"}

app = FastAPI(title="Campus Student Management API")
logger = logging.getLogger("campus.api")
audit_logger = logging.getLogger("campus.audit")
if not logging.getLogger().handlers:
    logging.basicConfig(level=settings.LOG_LEVEL)
_throttle = InMemoryRateLimiter(lambda: settings.THROTTLE_LIMIT, lambda: settings.THROTTLE_TTL_SECONDS)

register_exception_handlers(app)

if settings.CORS_ORIGIN:
    app.add_middleware(
        CORSMiddleware,
        allow_origins=[o.strip() for o in settings.CORS_ORIGIN.split(",")],
        allow_credentials=settings.CORS_ORIGIN != "*",
        allow_methods=["*"],
        allow_headers=["*"],
    )

create_db_and_tables()


def _audit_target(path: str) -> Optional[tuple]:
    """Return (resource, id-or-None) for audited paths like /api/students/<id>/..."""
    parts = [p for p in path.split("/") if p]
    if len(parts) < 2 or "/" + parts[0] != API_PREFIX or parts[1] not in AUDITED_RESOURCES:
        return None
    resource_id = None
    if len(parts) > 2:
        try:
            resource_id = str(uuid.UUID(parts[2]))
        except ValueError:
            resource_id = None
    return parts[1], resource_id


def _bearer_user_id(request: Request) -> Optional[uuid.UUID]:
    header = request.headers.get("Authorization", "")
    scheme, _, token = header.partition(" ")
    if scheme.lower() != "bearer" or not token:
        return None
    return user_id_from_token(token.strip())


@app.middleware("http")
async def audit_middleware(request: Request, call_next):
    target = _audit_target(request.url.path) if request.method in AUDIT_ACTIONS else None
    if target is None:
        return await call_next(request)

    raw_body = await request.body()
    response = await call_next(request)
    if not 200 <= response.status_code < 300:
        return response

    chunks = [chunk async for chunk in response.body_iterator]
    content = b"".join(chunks)
    response = Response(
        content=content,
        status_code=response.status_code,
        headers=dict(response.headers),
        media_type=response.media_type,
    )

    resource, resource_id = target
    payload = None
    if raw_body and "application/json" in request.headers.get("content-type", ""):
        try:
            payload = json.loads(raw_body)
        except ValueError:
            payload = None
    if resource_id is None:
        try:
            data = json.loads(content).get("data")
            if isinstance(data, dict) and data.get("id") is not None:
                resource_id = str(data["id"])
        except (ValueError, AttributeError):
            pass

    try:
        with Session(engine) as session:
            services.AuditService(session).record(
                user_id=_bearer_user_id(request),
                action=AUDIT_ACTIONS[request.method],
                resource=resource.capitalize(),
                resource_id=resource_id,
                payload=payload,
            )
    except SQLAlchemyError:
        audit_logger.exception("audit_write_failed path=%s", request.url.path)
    return response


@app.middleware("http")
async def throttle_middleware(request: Request, call_next):
    if request.url.path.startswith(f"{API_PREFIX}/health"):
        return await call_next(request)
    client = request.client.host if request.client else "unknown"
    decision = _throttle.hit(client)
    if not decision.allowed:
        logger.warning("throttled client=%s path=%s", client, request.url.path)
        return JSONResponse(
            status_code=429,
            content=error_body(request, 429, "Too many requests"),
            headers={"Retry-After": str(decision.retry_after)},
        )
    response = await call_next(request)
    response.headers["X-RateLimit-Limit"] = str(settings.THROTTLE_LIMIT)
    response.headers["X-RateLimit-Remaining"] = str(decision.remaining)
    return response


@app.middleware("http")
async def request_context_middleware(request: Request, call_next):
    req_id = request.headers.get("X-Request-ID", uuid.uuid4().hex)
    request.state.request_id = req_id
    started = time.perf_counter()
    record = {
        "request_id": req_id,
        "method": request.method,
        "path": request.url.path,
        "client": request.client.host if request.client else "unknown",
    }
    try:
        response = await call_next(request)
    except Exception:
        record["duration_ms"] = round((time.perf_counter() - started) * 1000.0, 2)
        logger.exception("request_failed %s", json.dumps(record, ensure_ascii=True))
        raise
    response.headers["X-Request-ID"] = req_id
    record["status_code"] = response.status_code
    record["bytes"] = int(response.headers.get("content-length", 0) or 0)
    record["duration_ms"] = round((time.perf_counter() - started) * 1000.0, 2)
    if response.status_code >= 500:
        level = logging.ERROR
    elif response.status_code >= 400:
        level = logging.WARNING
    else:
        level = logging.INFO
    logger.log(level, "request_done %s", json.dumps(record, ensure_ascii=True))
    return response


for module in (
    health,
    auth,
    users,
    students,
    teachers,
    courses,
    enrollments,
    grades,
    attendance,
    faculties,
    departments,
    academic_terms,
    scheduling,
    audit,
    analytics,
):
    app.include_router(module.router, prefix=API_PREFIX)
