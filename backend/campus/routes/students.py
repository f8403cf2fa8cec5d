"""Student endpoints, including CSV exchange and bulk actions."""

import uuid
from typing import Optional

from fastapi import APIRouter, Depends, File, UploadFile
from fastapi.responses import Response
from sqlmodel import Session

from .. import models, schemas, services
from ..auth import admin_only, any_role, staff_only
from ..config import settings
from ..database import get_session
from ..errors import BadRequestError
from ..responses import PageParams, envelope, page_of, page_params

router = APIRouter(prefix="/students", tags=["students"])


def student_filters(
    department_id: Optional[uuid.UUID] = None,
    faculty_id: Optional[uuid.UUID] = None,
    gender: Optional[models.Gender] = None,
    year: Optional[int] = None,
    semester: Optional[int] = None,
    search: Optional[str] = None,
) -> dict:
    return {
        "department_id": department_id,
        "faculty_id": faculty_id,
        "gender": gender,
        "year": year,
        "semester": semester,
        "search": search,
    }


@router.post("", status_code=201, dependencies=[Depends(admin_only)])
def create_student(payload: schemas.StudentCreate, session: Session = Depends(get_session)):
    return envelope(schemas.StudentOut.model_validate(services.StudentService(session).create(payload)))


@router.get("", dependencies=[Depends(staff_only)])
def list_students(
    filters: dict = Depends(student_filters),
    params: PageParams = Depends(page_params),
    session: Session = Depends(get_session),
):
    return page_of(schemas.StudentOut, services.StudentService(session).list(params, **filters), params)


@router.get("/deleted", dependencies=[Depends(admin_only)])
def list_deleted_students(params: PageParams = Depends(page_params), session: Session = Depends(get_session)):
    return page_of(schemas.StudentOut, services.StudentService(session).list_deleted(params), params)


@router.get("/export", dependencies=[Depends(staff_only)])
def export_students(filters: dict = Depends(student_filters), session: Session = Depends(get_session)):
    content = services.StudentService(session).export_csv(**filters)
    return Response(
        content=content,
        media_type="text/csv",
        headers={"Content-Disposition": 'attachment; filename="students.csv"'},
    )


@router.post("/import", dependencies=[Depends(admin_only)])
async def import_students(file: UploadFile = File(...), session: Session = Depends(get_session)):
    if file.filename and not file.filename.lower().endswith(".csv"):
        raise BadRequestError("Only .csv files are accepted")
    content = await file.read()
    if not content:
        raise BadRequestError("No file provided")
    if len(content) > settings.MAX_UPLOAD_BYTES:
        raise BadRequestError(f"File too large (max {settings.MAX_UPLOAD_BYTES} bytes)")
    result = services.StudentService(session).import_csv(content)
    return envelope(schemas.ImportResultOut(**result))


@router.post("/bulk/delete", dependencies=[Depends(admin_only)])
def bulk_delete_students(payload: schemas.BulkIdsIn, session: Session = Depends(get_session)):
    return envelope(schemas.BulkResultOut(**services.StudentService(session).bulk_delete(payload.ids)))


@router.post("/bulk/activate", dependencies=[Depends(admin_only)])
def bulk_activate_students(payload: schemas.BulkIdsIn, session: Session = Depends(get_session)):
    return envelope(schemas.BulkResultOut(**services.StudentService(session).bulk_activate(payload.ids)))


@router.post("/bulk/deactivate", dependencies=[Depends(admin_only)])
def bulk_deactivate_students(payload: schemas.BulkIdsIn, session: Session = Depends(get_session)):
    return envelope(schemas.BulkResultOut(**services.StudentService(session).bulk_deactivate(payload.ids)))


@router.get("/{student_id}", dependencies=[Depends(staff_only)])
def get_student(student_id: uuid.UUID, session: Session = Depends(get_session)):
    return envelope(schemas.StudentDetailOut.model_validate(services.StudentService(session).get(student_id)))


@router.patch("/{student_id}", dependencies=[Depends(admin_only)])
def update_student(student_id: uuid.UUID, payload: schemas.StudentUpdate, session: Session = Depends(get_session)):
    return envelope(schemas.StudentOut.model_validate(services.StudentService(session).update(student_id, payload)))


@router.delete("/{student_id}", dependencies=[Depends(admin_only)])
def delete_student(student_id: uuid.UUID, session: Session = Depends(get_session)):
    services.StudentService(session).delete(student_id)
    return envelope({"id": student_id, "deleted": True})


@router.post("/{student_id}/restore", dependencies=[Depends(admin_only)])
def restore_student(student_id: uuid.UUID, session: Session = Depends(get_session)):
    return envelope(schemas.StudentOut.model_validate(services.StudentService(session).restore(student_id)))


@router.get("/{student_id}/grades")
def student_grades(
    student_id: uuid.UUID,
    course_id: Optional[uuid.UUID] = None,
    params: PageParams = Depends(page_params),
    user: models.User = Depends(any_role),
    session: Session = Depends(get_session),
):
    service = services.StudentService(session)
    service.ensure_can_view(service.get(student_id), user)
    return page_of(schemas.GradeOut, service.grades(student_id, params, course_id=course_id), params)


@router.get("/{student_id}/attendance")
def student_attendance(
    student_id: uuid.UUID,
    course_id: Optional[uuid.UUID] = None,
    params: PageParams = Depends(page_params),
    user: models.User = Depends(any_role),
    session: Session = Depends(get_session),
):
    service = services.StudentService(session)
    service.ensure_can_view(service.get(student_id), user)
    return page_of(schemas.AttendanceOut, service.attendance(student_id, params, course_id=course_id), params)
