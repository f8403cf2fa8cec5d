"""Enrollment endpoints."""

import uuid
from typing import Optional

from fastapi import APIRouter, Depends
from sqlmodel import Session

from .. import models, schemas, services
from ..auth import admin_only, staff_only
from ..database import get_session
from ..responses import PageParams, envelope, page_of, page_params

router = APIRouter(prefix="/enrollments", tags=["enrollments"])


@router.post("", status_code=201, dependencies=[Depends(admin_only)])
def create_enrollment(payload: schemas.EnrollmentCreate, session: Session = Depends(get_session)):
    return envelope(schemas.EnrollmentOut.model_validate(services.EnrollmentService(session).create(payload)))


@router.get("", dependencies=[Depends(staff_only)])
def list_enrollments(
    student_id: Optional[uuid.UUID] = None,
    course_id: Optional[uuid.UUID] = None,
    status: Optional[models.EnrollmentStatus] = None,
    params: PageParams = Depends(page_params),
    session: Session = Depends(get_session),
):
    result = services.EnrollmentService(session).list(params, student_id=student_id, course_id=course_id, status=status)
    return page_of(schemas.EnrollmentOut, result, params)


@router.get("/{enrollment_id}", dependencies=[Depends(staff_only)])
def get_enrollment(enrollment_id: uuid.UUID, session: Session = Depends(get_session)):
    return envelope(schemas.EnrollmentOut.model_validate(services.EnrollmentService(session).get(enrollment_id)))


@router.put("/{enrollment_id}", dependencies=[Depends(admin_only)])
def update_enrollment(
    enrollment_id: uuid.UUID, payload: schemas.EnrollmentUpdate, session: Session = Depends(get_session)
):
    enrollment = services.EnrollmentService(session).update(enrollment_id, payload)
    return envelope(schemas.EnrollmentOut.model_validate(enrollment))


@router.patch("/{enrollment_id}/status", dependencies=[Depends(staff_only)])
def update_enrollment_status(
    enrollment_id: uuid.UUID, payload: schemas.EnrollmentStatusIn, session: Session = Depends(get_session)
):
    enrollment = services.EnrollmentService(session).update_status(enrollment_id, payload.status)
    return envelope(schemas.EnrollmentOut.model_validate(enrollment))


@router.patch("/{enrollment_id}/grade")
def record_final_grade(
    enrollment_id: uuid.UUID,
    payload: schemas.EnrollmentGradeIn,
    user: models.User = Depends(staff_only),
    session: Session = Depends(get_session),
):
    enrollment, grade = services.EnrollmentService(session).record_final_grade(enrollment_id, payload, user.id)
    return envelope({
        "id": enrollment.id,
        "enrollment": schemas.EnrollmentOut.model_validate(enrollment),
        "grade": schemas.GradeOut.model_validate(grade),
    })


@router.delete("/{enrollment_id}", dependencies=[Depends(admin_only)])
def delete_enrollment(enrollment_id: uuid.UUID, session: Session = Depends(get_session)):
    services.EnrollmentService(session).delete(enrollment_id)
    return envelope({"id": enrollment_id, "deleted": True})
