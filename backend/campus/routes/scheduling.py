"""Classroom and timetable endpoints."""

import uuid
from typing import Optional

from fastapi import APIRouter, Depends
from sqlmodel import Session

from .. import schemas, services
from ..auth import admin_only, any_role
from ..database import get_session
from ..responses import PageParams, envelope, page_of, page_params

router = APIRouter(prefix="/scheduling", tags=["scheduling"])


@router.post("/classrooms", status_code=201, dependencies=[Depends(admin_only)])
def create_classroom(payload: schemas.ClassroomCreate, session: Session = Depends(get_session)):
    return envelope(schemas.ClassroomOut.model_validate(services.ClassroomService(session).create(payload)))


@router.get("/classrooms", dependencies=[Depends(any_role)])
def list_classrooms(params: PageParams = Depends(page_params), session: Session = Depends(get_session)):
    return page_of(schemas.ClassroomOut, services.ClassroomService(session).list(params), params)


@router.get("/classrooms/{classroom_id}", dependencies=[Depends(any_role)])
def get_classroom(classroom_id: uuid.UUID, session: Session = Depends(get_session)):
    return envelope(schemas.ClassroomOut.model_validate(services.ClassroomService(session).get(classroom_id)))


@router.patch("/classrooms/{classroom_id}", dependencies=[Depends(admin_only)])
def update_classroom(
    classroom_id: uuid.UUID, payload: schemas.ClassroomUpdate, session: Session = Depends(get_session)
):
    room = services.ClassroomService(session).update(classroom_id, payload)
    return envelope(schemas.ClassroomOut.model_validate(room))


@router.delete("/classrooms/{classroom_id}", dependencies=[Depends(admin_only)])
def delete_classroom(classroom_id: uuid.UUID, session: Session = Depends(get_session)):
    services.ClassroomService(session).delete(classroom_id)
    return envelope({"id": classroom_id, "deleted": True})


@router.post("/classrooms/{classroom_id}/restore", dependencies=[Depends(admin_only)])
def restore_classroom(classroom_id: uuid.UUID, session: Session = Depends(get_session)):
    return envelope(schemas.ClassroomOut.model_validate(services.ClassroomService(session).restore(classroom_id)))


@router.get("/classrooms/{classroom_id}/schedules", dependencies=[Depends(any_role)])
def classroom_schedules(classroom_id: uuid.UUID, session: Session = Depends(get_session)):
    rows = services.ScheduleService(session).list_for_classroom(classroom_id)
    return envelope([schemas.ScheduleOut.model_validate(r) for r in rows])


@router.post("/schedules", status_code=201, dependencies=[Depends(admin_only)])
def create_schedule(payload: schemas.ScheduleCreate, session: Session = Depends(get_session)):
    return envelope(schemas.ScheduleOut.model_validate(services.ScheduleService(session).create(payload)))


@router.get("/schedules", dependencies=[Depends(any_role)])
def list_schedules(
    teacher_id: Optional[uuid.UUID] = None,
    params: PageParams = Depends(page_params),
    session: Session = Depends(get_session),
):
    return page_of(schemas.ScheduleOut, services.ScheduleService(session).list(params, teacher_id=teacher_id), params)


@router.get("/schedules/course/{course_id}", dependencies=[Depends(any_role)])
def course_schedules(course_id: uuid.UUID, session: Session = Depends(get_session)):
    rows = services.ScheduleService(session).list_for_course(course_id)
    return envelope([schemas.ScheduleOut.model_validate(r) for r in rows])


@router.get("/schedules/{schedule_id}", dependencies=[Depends(any_role)])
def get_schedule(schedule_id: uuid.UUID, session: Session = Depends(get_session)):
    return envelope(schemas.ScheduleOut.model_validate(services.ScheduleService(session).get(schedule_id)))


@router.patch("/schedules/{schedule_id}", dependencies=[Depends(admin_only)])
def update_schedule(schedule_id: uuid.UUID, payload: schemas.ScheduleUpdate, session: Session = Depends(get_session)):
    schedule = services.ScheduleService(session).update(schedule_id, payload)
    return envelope(schemas.ScheduleOut.model_validate(schedule))


@router.delete("/schedules/{schedule_id}", dependencies=[Depends(admin_only)])
def delete_schedule(schedule_id: uuid.UUID, session: Session = Depends(get_session)):
    services.ScheduleService(session).delete(schedule_id)
    return envelope({"id": schedule_id, "deleted": True})


@router.post("/schedules/{schedule_id}/restore", dependencies=[Depends(admin_only)])
def restore_schedule(schedule_id: uuid.UUID, session: Session = Depends(get_session)):
    return envelope(schemas.ScheduleOut.model_validate(services.ScheduleService(session).restore(schedule_id)))
