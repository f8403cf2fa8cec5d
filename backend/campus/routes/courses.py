"""Course catalogue endpoints."""

import uuid
from datetime import date
from typing import Optional

from fastapi import APIRouter, Depends
from sqlmodel import Session

from .. import models, schemas, services
from ..auth import admin_only, any_role, staff_only
from ..database import get_session
from ..responses import PageParams, envelope, page_of, page_params

router = APIRouter(prefix="/courses", tags=["courses"])


@router.post("", status_code=201)
def create_course(
    payload: schemas.CourseCreate,
    user: models.User = Depends(admin_only),
    session: Session = Depends(get_session),
):
    course = services.CourseService(session).create(payload, created_by=user.id)
    return envelope(schemas.CourseOut.model_validate(course))


@router.get("", dependencies=[Depends(any_role)])
def list_courses(
    is_active: Optional[bool] = None,
    semester: Optional[int] = None,
    department_id: Optional[uuid.UUID] = None,
    teacher_id: Optional[uuid.UUID] = None,
    search: Optional[str] = None,
    include_deleted: bool = False,
    params: PageParams = Depends(page_params),
    session: Session = Depends(get_session),
):
    result = services.CourseService(session).list(
        params,
        is_active=is_active,
        semester=semester,
        department_id=department_id,
        teacher_id=teacher_id,
        search=search,
        include_deleted=include_deleted,
    )
    return page_of(schemas.CourseOut, result, params)


@router.get("/deleted", dependencies=[Depends(admin_only)])
def list_deleted_courses(params: PageParams = Depends(page_params), session: Session = Depends(get_session)):
    return page_of(schemas.CourseOut, services.CourseService(session).list_deleted(params), params)


@router.get("/{course_id}", dependencies=[Depends(any_role)])
def get_course(course_id: uuid.UUID, session: Session = Depends(get_session)):
    return envelope(schemas.CourseOut.model_validate(services.CourseService(session).get(course_id)))


@router.patch("/{course_id}", dependencies=[Depends(admin_only)])
def update_course(course_id: uuid.UUID, payload: schemas.CourseUpdate, session: Session = Depends(get_session)):
    return envelope(schemas.CourseOut.model_validate(services.CourseService(session).update(course_id, payload)))


@router.delete("/{course_id}", dependencies=[Depends(admin_only)])
def delete_course(course_id: uuid.UUID, session: Session = Depends(get_session)):
    services.CourseService(session).delete(course_id)
    return envelope({"id": course_id, "deleted": True})


@router.post("/{course_id}/restore", dependencies=[Depends(admin_only)])
def restore_course(course_id: uuid.UUID, session: Session = Depends(get_session)):
    return envelope(schemas.CourseOut.model_validate(services.CourseService(session).restore(course_id)))


@router.get("/{course_id}/students", dependencies=[Depends(staff_only)])
def course_students(
    course_id: uuid.UUID,
    status: Optional[models.EnrollmentStatus] = None,
    params: PageParams = Depends(page_params),
    session: Session = Depends(get_session),
):
    result = services.CourseService(session).students(course_id, params, status=status)
    return page_of(schemas.EnrolledStudentOut, result, params)


@router.get("/{course_id}/attendance", dependencies=[Depends(staff_only)])
def course_attendance(
    course_id: uuid.UUID,
    start_date: Optional[date] = None,
    end_date: Optional[date] = None,
    params: PageParams = Depends(page_params),
    session: Session = Depends(get_session),
):
    result = services.CourseService(session).attendance(course_id, params, start_date=start_date, end_date=end_date)
    return page_of(schemas.AttendanceOut, result, params)
