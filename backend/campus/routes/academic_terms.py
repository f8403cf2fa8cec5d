"""Academic term endpoints."""

import uuid

from fastapi import APIRouter, Depends
from sqlmodel import Session

from .. import schemas, services
from ..auth import admin_only, any_role
from ..database import get_session
from ..responses import PageParams, envelope, page_of, page_params

router = APIRouter(prefix="/academic-terms", tags=["academic-terms"])


@router.post("", status_code=201, dependencies=[Depends(admin_only)])
def create_term(payload: schemas.AcademicTermCreate, session: Session = Depends(get_session)):
    return envelope(schemas.AcademicTermOut.model_validate(services.AcademicTermService(session).create(payload)))


@router.get("", dependencies=[Depends(any_role)])
def list_terms(params: PageParams = Depends(page_params), session: Session = Depends(get_session)):
    return page_of(schemas.AcademicTermOut, services.AcademicTermService(session).list(params), params)


@router.get("/active", dependencies=[Depends(any_role)])
def get_active_term(session: Session = Depends(get_session)):
    return envelope(schemas.AcademicTermOut.model_validate(services.AcademicTermService(session).get_active()))


@router.get("/{term_id}", dependencies=[Depends(any_role)])
def get_term(term_id: uuid.UUID, session: Session = Depends(get_session)):
    return envelope(schemas.AcademicTermOut.model_validate(services.AcademicTermService(session).get(term_id)))


@router.patch("/{term_id}", dependencies=[Depends(admin_only)])
def update_term(term_id: uuid.UUID, payload: schemas.AcademicTermUpdate, session: Session = Depends(get_session)):
    term = services.AcademicTermService(session).update(term_id, payload)
    return envelope(schemas.AcademicTermOut.model_validate(term))


@router.delete("/{term_id}", dependencies=[Depends(admin_only)])
def delete_term(term_id: uuid.UUID, session: Session = Depends(get_session)):
    services.AcademicTermService(session).delete(term_id)
    return envelope({"id": term_id, "deleted": True})


@router.post("/{term_id}/restore", dependencies=[Depends(admin_only)])
def restore_term(term_id: uuid.UUID, session: Session = Depends(get_session)):
    return envelope(schemas.AcademicTermOut.model_validate(services.AcademicTermService(session).restore(term_id)))
