"""Attendance endpoints, bulk recording and course reports."""

import uuid
from datetime import date
from typing import Optional

from fastapi import APIRouter, Depends
from sqlmodel import Session

from .. import models, schemas, services
from ..auth import staff_only
from ..database import get_session
from ..responses import PageParams, envelope, page_of, page_params

router = APIRouter(prefix="/attendance", tags=["attendance"])


@router.post("", status_code=201)
def create_attendance(
    payload: schemas.AttendanceCreate,
    user: models.User = Depends(staff_only),
    session: Session = Depends(get_session),
):
    record = services.AttendanceService(session).create(payload, recorded_by=user.id)
    return envelope(schemas.AttendanceOut.model_validate(record))


@router.post("/bulk", status_code=201)
def bulk_attendance(
    payload: schemas.BulkAttendanceIn,
    user: models.User = Depends(staff_only),
    session: Session = Depends(get_session),
):
    records = services.AttendanceService(session).bulk_record(payload, recorded_by=user.id)
    return envelope({
        "recorded": len(records),
        "records": [schemas.AttendanceOut.model_validate(r) for r in records],
    })


@router.get("", dependencies=[Depends(staff_only)])
def list_attendance(
    student_id: Optional[uuid.UUID] = None,
    course_id: Optional[uuid.UUID] = None,
    status: Optional[models.AttendanceStatus] = None,
    start_date: Optional[date] = None,
    end_date: Optional[date] = None,
    params: PageParams = Depends(page_params),
    session: Session = Depends(get_session),
):
    result = services.AttendanceService(session).list(
        params,
        student_id=student_id,
        course_id=course_id,
        status=status,
        start_date=start_date,
        end_date=end_date,
    )
    return page_of(schemas.AttendanceOut, result, params)


@router.get("/report/course/{course_id}", dependencies=[Depends(staff_only)])
def course_attendance_report(course_id: uuid.UUID, session: Session = Depends(get_session)):
    rows = services.AttendanceService(session).course_report(course_id)
    return envelope([schemas.AttendanceReportRow(**r) for r in rows])


@router.get("/{attendance_id}", dependencies=[Depends(staff_only)])
def get_attendance(attendance_id: uuid.UUID, session: Session = Depends(get_session)):
    return envelope(schemas.AttendanceOut.model_validate(services.AttendanceService(session).get(attendance_id)))


@router.patch("/{attendance_id}", dependencies=[Depends(staff_only)])
def update_attendance(
    attendance_id: uuid.UUID, payload: schemas.AttendanceUpdate, session: Session = Depends(get_session)
):
    record = services.AttendanceService(session).update(attendance_id, payload)
    return envelope(schemas.AttendanceOut.model_validate(record))


@router.delete("/{attendance_id}", dependencies=[Depends(staff_only)])
def delete_attendance(attendance_id: uuid.UUID, session: Session = Depends(get_session)):
    services.AttendanceService(session).delete(attendance_id)
    return envelope({"id": attendance_id, "deleted": True})
