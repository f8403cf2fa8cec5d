"""Faculty endpoints."""

import uuid

from fastapi import APIRouter, Depends
from sqlmodel import Session

from .. import schemas, services
from ..auth import admin_only, any_role
from ..database import get_session
from ..responses import PageParams, envelope, page_of, page_params

router = APIRouter(prefix="/faculties", tags=["faculties"])


@router.post("", status_code=201, dependencies=[Depends(admin_only)])
def create_faculty(payload: schemas.FacultyCreate, session: Session = Depends(get_session)):
    return envelope(schemas.FacultyOut.model_validate(services.FacultyService(session).create(payload)))


@router.get("", dependencies=[Depends(any_role)])
def list_faculties(params: PageParams = Depends(page_params), session: Session = Depends(get_session)):
    return page_of(schemas.FacultyOut, services.FacultyService(session).list(params), params)


@router.get("/{faculty_id}", dependencies=[Depends(any_role)])
def get_faculty(faculty_id: uuid.UUID, session: Session = Depends(get_session)):
    return envelope(schemas.FacultyOut.model_validate(services.FacultyService(session).get(faculty_id)))


@router.patch("/{faculty_id}", dependencies=[Depends(admin_only)])
def update_faculty(faculty_id: uuid.UUID, payload: schemas.FacultyUpdate, session: Session = Depends(get_session)):
    return envelope(schemas.FacultyOut.model_validate(services.FacultyService(session).update(faculty_id, payload)))


@router.delete("/{faculty_id}", dependencies=[Depends(admin_only)])
def delete_faculty(faculty_id: uuid.UUID, session: Session = Depends(get_session)):
    services.FacultyService(session).delete(faculty_id)
    return envelope({"id": faculty_id, "deleted": True})


@router.post("/{faculty_id}/restore", dependencies=[Depends(admin_only)])
def restore_faculty(faculty_id: uuid.UUID, session: Session = Depends(get_session)):
    return envelope(schemas.FacultyOut.model_validate(services.FacultyService(session).restore(faculty_id)))
