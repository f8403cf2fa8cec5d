"""Administrative user management endpoints."""

import uuid
from typing import Optional

from fastapi import APIRouter, Depends
from sqlmodel import Session

from .. import models, schemas, services
from ..auth import admin_only
from ..database import get_session
from ..responses import PageParams, envelope, page_of, page_params

router = APIRouter(prefix="/users", tags=["users"], dependencies=[Depends(admin_only)])


@router.post("", status_code=201)
def create_user(payload: schemas.UserCreate, session: Session = Depends(get_session)):
    return envelope(schemas.UserOut.model_validate(services.UserService(session).create(payload)))


@router.get("")
def list_users(
    role: Optional[models.Role] = None,
    search: Optional[str] = None,
    include_deleted: bool = False,
    params: PageParams = Depends(page_params),
    session: Session = Depends(get_session),
):
    result = services.UserService(session).list(params, role=role, search=search, include_deleted=include_deleted)
    return page_of(schemas.UserOut, result, params)


@router.get("/deleted")
def list_deleted_users(params: PageParams = Depends(page_params), session: Session = Depends(get_session)):
    return page_of(schemas.UserOut, services.UserService(session).list_deleted(params), params)


@router.get("/{user_id}")
def get_user(user_id: uuid.UUID, session: Session = Depends(get_session)):
    return envelope(schemas.UserOut.model_validate(services.UserService(session).get(user_id)))


@router.patch("/{user_id}")
def update_user(user_id: uuid.UUID, payload: schemas.UserUpdate, session: Session = Depends(get_session)):
    return envelope(schemas.UserOut.model_validate(services.UserService(session).update(user_id, payload)))


@router.delete("/{user_id}")
def delete_user(user_id: uuid.UUID, session: Session = Depends(get_session)):
    services.UserService(session).delete(user_id)
    return envelope({"id": user_id, "deleted": True})


@router.post("/{user_id}/restore")
def restore_user(user_id: uuid.UUID, session: Session = Depends(get_session)):
    return envelope(schemas.UserOut.model_validate(services.UserService(session).restore(user_id)))
