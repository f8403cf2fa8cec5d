"""Assessment grade endpoints."""

import uuid
from typing import Optional

from fastapi import APIRouter, Depends
from sqlmodel import Session

from .. import models, schemas, services
from ..auth import staff_only
from ..database import get_session
from ..responses import PageParams, envelope, page_of, page_params

router = APIRouter(prefix="/grades", tags=["grades"])


@router.post("", status_code=201)
def create_grade(
    payload: schemas.GradeCreate,
    user: models.User = Depends(staff_only),
    session: Session = Depends(get_session),
):
    return envelope(schemas.GradeOut.model_validate(services.GradeService(session).create(payload, user.id)))


@router.get("", dependencies=[Depends(staff_only)])
def list_grades(
    student_id: Optional[uuid.UUID] = None,
    course_id: Optional[uuid.UUID] = None,
    assessment_type: Optional[str] = None,
    params: PageParams = Depends(page_params),
    session: Session = Depends(get_session),
):
    result = services.GradeService(session).list(
        params, student_id=student_id, course_id=course_id, assessment_type=assessment_type
    )
    return page_of(schemas.GradeOut, result, params)


@router.get("/course/{course_id}", dependencies=[Depends(staff_only)])
def course_grades(
    course_id: uuid.UUID,
    assessment_type: Optional[str] = None,
    params: PageParams = Depends(page_params),
    session: Session = Depends(get_session),
):
    result = services.GradeService(session).list_for_course(course_id, params, assessment_type=assessment_type)
    return page_of(schemas.GradeOut, result, params)


@router.get("/{grade_id}", dependencies=[Depends(staff_only)])
def get_grade(grade_id: uuid.UUID, session: Session = Depends(get_session)):
    return envelope(schemas.GradeOut.model_validate(services.GradeService(session).get(grade_id)))


@router.put("/{grade_id}")
def update_grade(
    grade_id: uuid.UUID,
    payload: schemas.GradeUpdate,
    user: models.User = Depends(staff_only),
    session: Session = Depends(get_session),
):
    return envelope(schemas.GradeOut.model_validate(services.GradeService(session).update(grade_id, payload, user.id)))


@router.delete("/{grade_id}", dependencies=[Depends(staff_only)])
def delete_grade(grade_id: uuid.UUID, session: Session = Depends(get_session)):
    services.GradeService(session).delete(grade_id)
    return envelope({"id": grade_id, "deleted": True})
