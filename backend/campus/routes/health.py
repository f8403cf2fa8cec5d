"""Liveness and readiness checks; not enveloped and not authenticated."""

import logging
from datetime import datetime, timezone

from fastapi import APIRouter
from fastapi.responses import JSONResponse
from sqlalchemy.exc import SQLAlchemyError

from ..database import ping

router = APIRouter(prefix="/health", tags=["health"])
logger = logging.getLogger("campus.api.health")


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


def _database_status() -> str:
    try:
        ping()
        return "up"
    except SQLAlchemyError:
        logger.exception("database ping failed")
        return "down"


@router.get("")
def health():
    db = _database_status()
    body = {"status": "ok" if db == "up" else "error", "database": db, "timestamp": _now()}
    return JSONResponse(status_code=200 if db == "up" else 503, content=body)


@router.get("/liveness")
def liveness():
    return {"status": "ok", "timestamp": _now()}


@router.get("/readiness")
def readiness():
    db = _database_status()
    body = {"status": "ready" if db == "up" else "not_ready", "database": db, "timestamp": _now()}
    return JSONResponse(status_code=200 if db == "up" else 503, content=body)
