"""Audit trail endpoints (administrators only)."""

import uuid
from datetime import datetime
from typing import Optional

from fastapi import APIRouter, Depends
from sqlmodel import Session

from .. import models, schemas, services
from ..auth import admin_only
from ..database import get_session
from ..responses import PageParams, audit_page_params, envelope, page_of

router = APIRouter(prefix="/audit", tags=["audit"], dependencies=[Depends(admin_only)])


@router.get("")
def list_audit_logs(
    user_id: Optional[uuid.UUID] = None,
    action: Optional[str] = None,
    resource: Optional[str] = None,
    resource_id: Optional[str] = None,
    start_date: Optional[datetime] = None,
    end_date: Optional[datetime] = None,
    params: PageParams = Depends(audit_page_params),
    session: Session = Depends(get_session),
):
    result = services.AuditService(session).list(
        params,
        user_id=user_id,
        action=action,
        resource=resource,
        resource_id=resource_id,
        start_date=models.as_utc(start_date),
        end_date=models.as_utc(end_date),
    )
    return page_of(schemas.AuditLogOut, result, params)


@router.get("/resource/{resource}")
def audit_logs_for_resource(
    resource: str,
    resource_id: Optional[str] = None,
    params: PageParams = Depends(audit_page_params),
    session: Session = Depends(get_session),
):
    result = services.AuditService(session).list(params, resource=resource, resource_id=resource_id)
    return page_of(schemas.AuditLogOut, result, params)


@router.get("/resource/{resource}/{resource_id}")
def audit_logs_for_record(
    resource: str,
    resource_id: str,
    params: PageParams = Depends(audit_page_params),
    session: Session = Depends(get_session),
):
    result = services.AuditService(session).list(params, resource=resource, resource_id=resource_id)
    return page_of(schemas.AuditLogOut, result, params)


@router.get("/user/{user_id}")
def audit_logs_for_user(user_id: uuid.UUID, session: Session = Depends(get_session)):
    rows = services.AuditService(session).list_for_user(user_id, limit=50)
    return envelope([schemas.AuditLogOut.model_validate(r) for r in rows])


@router.get("/{log_id}")
def get_audit_log(log_id: uuid.UUID, session: Session = Depends(get_session)):
    return envelope(schemas.AuditLogOut.model_validate(services.AuditService(session).get(log_id)))
