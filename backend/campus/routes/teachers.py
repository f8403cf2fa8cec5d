"""Teacher profile endpoints."""

import uuid
from typing import Optional

from fastapi import APIRouter, Depends
from sqlmodel import Session

from .. import schemas, services
from ..auth import admin_only, staff_only
from ..database import get_session
from ..responses import PageParams, envelope, page_of, page_params

router = APIRouter(prefix="/teachers", tags=["teachers"])


@router.post("", status_code=201, dependencies=[Depends(admin_only)])
def create_teacher(payload: schemas.TeacherCreate, session: Session = Depends(get_session)):
    return envelope(schemas.TeacherOut.model_validate(services.TeacherService(session).create(payload)))


@router.get("", dependencies=[Depends(staff_only)])
def list_teachers(
    is_active: Optional[bool] = None,
    params: PageParams = Depends(page_params),
    session: Session = Depends(get_session),
):
    return page_of(schemas.TeacherOut, services.TeacherService(session).list(params, is_active=is_active), params)


@router.get("/user/{user_id}", dependencies=[Depends(staff_only)])
def get_teacher_by_user(user_id: uuid.UUID, session: Session = Depends(get_session)):
    return envelope(schemas.TeacherOut.model_validate(services.TeacherService(session).get_by_user(user_id)))


@router.get("/{teacher_id}", dependencies=[Depends(staff_only)])
def get_teacher(teacher_id: uuid.UUID, session: Session = Depends(get_session)):
    return envelope(schemas.TeacherOut.model_validate(services.TeacherService(session).get(teacher_id)))


@router.patch("/{teacher_id}", dependencies=[Depends(admin_only)])
def update_teacher(teacher_id: uuid.UUID, payload: schemas.TeacherUpdate, session: Session = Depends(get_session)):
    return envelope(schemas.TeacherOut.model_validate(services.TeacherService(session).update(teacher_id, payload)))


@router.delete("/{teacher_id}", dependencies=[Depends(admin_only)])
def delete_teacher(teacher_id: uuid.UUID, session: Session = Depends(get_session)):
    services.TeacherService(session).delete(teacher_id)
    return envelope({"id": teacher_id, "deleted": True})


@router.post("/{teacher_id}/restore", dependencies=[Depends(admin_only)])
def restore_teacher(teacher_id: uuid.UUID, session: Session = Depends(get_session)):
    return envelope(schemas.TeacherOut.model_validate(services.TeacherService(session).restore(teacher_id)))
