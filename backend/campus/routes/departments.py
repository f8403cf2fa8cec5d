"""Department endpoints."""

import uuid
from typing import Optional

from fastapi import APIRouter, Depends
from sqlmodel import Session

from .. import schemas, services
from ..auth import admin_only, any_role
from ..database import get_session
from ..responses import PageParams, envelope, page_of, page_params

router = APIRouter(prefix="/departments", tags=["departments"])


@router.post("", status_code=201, dependencies=[Depends(admin_only)])
def create_department(payload: schemas.DepartmentCreate, session: Session = Depends(get_session)):
    return envelope(schemas.DepartmentOut.model_validate(services.DepartmentService(session).create(payload)))


@router.get("", dependencies=[Depends(any_role)])
def list_departments(
    faculty_id: Optional[uuid.UUID] = None,
    params: PageParams = Depends(page_params),
    session: Session = Depends(get_session),
):
    result = services.DepartmentService(session).list(params, faculty_id=faculty_id)
    return page_of(schemas.DepartmentOut, result, params)


@router.get("/{department_id}", dependencies=[Depends(any_role)])
def get_department(department_id: uuid.UUID, session: Session = Depends(get_session)):
    return envelope(schemas.DepartmentOut.model_validate(services.DepartmentService(session).get(department_id)))


@router.patch("/{department_id}", dependencies=[Depends(admin_only)])
def update_department(
    department_id: uuid.UUID, payload: schemas.DepartmentUpdate, session: Session = Depends(get_session)
):
    department = services.DepartmentService(session).update(department_id, payload)
    return envelope(schemas.DepartmentOut.model_validate(department))


@router.delete("/{department_id}", dependencies=[Depends(admin_only)])
def delete_department(department_id: uuid.UUID, session: Session = Depends(get_session)):
    services.DepartmentService(session).delete(department_id)
    return envelope({"id": department_id, "deleted": True})


@router.post("/{department_id}/restore", dependencies=[Depends(admin_only)])
def restore_department(department_id: uuid.UUID, session: Session = Depends(get_session)):
    return envelope(schemas.DepartmentOut.model_validate(services.DepartmentService(session).restore(department_id)))
