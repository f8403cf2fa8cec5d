"""Authentication helpers and FastAPI security dependencies.

This module provides utilities to decode JWT access tokens, the
`get_current_user` dependency that validates the bearer token and loads
the corresponding `User`, and `require_roles` which gates a route on the
caller's role.

Token verification raises domain errors (401/403) so the dependencies
can be used directly on routes and routers.
"""

import uuid
from typing import Optional

import jwt
from fastapi import Depends, Security
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlmodel import Session

from . import models, repositories
from .config import settings
from .database import get_session
from .errors import ForbiddenError, UnauthorizedError

bearer_scheme = HTTPBearer(auto_error=False)


def decode_token(token: str, expected_type: str = "access") -> dict:
    """Decode and verify a JWT token.

    Returns the decoded payload on success or raises `UnauthorizedError`
    on failure, including a token of the wrong type.
    """
    try:
        payload = jwt.decode(token, settings.JWT_SECRET, algorithms=[settings.JWT_ALGORITHM])
    except jwt.ExpiredSignatureError:
        raise UnauthorizedError("token expired")
    except jwt.PyJWTError:
        raise UnauthorizedError("invalid token")
    if payload.get("type") != expected_type:
        raise UnauthorizedError("invalid token")
    return payload


def user_id_from_token(token: str) -> Optional[uuid.UUID]:
    """Best-effort subject extraction; returns None instead of raising."""
    try:
        return uuid.UUID(decode_token(token)["sub"])
    except (UnauthorizedError, KeyError, ValueError):
        return None


def get_current_user(
    credentials: Optional[HTTPAuthorizationCredentials] = Security(bearer_scheme),
    session: Session = Depends(get_session),
) -> models.User:
    """FastAPI dependency that returns the authenticated, active user."""
    if credentials is None or credentials.scheme.lower() != "bearer":
        raise UnauthorizedError("missing bearer token")
    payload = decode_token(credentials.credentials)
    try:
        user_id = uuid.UUID(payload.get("sub", ""))
    except ValueError:
        raise UnauthorizedError("invalid token payload")
    user = repositories.UserRepository(session).get(user_id)
    if not user:
        raise UnauthorizedError("user not found")
    if not user.is_active:
        raise UnauthorizedError("Account disabled")
    return user


def require_roles(*roles: models.Role):
    """Build a dependency allowing only users whose role is in `roles`."""
    allowed = set(roles)

    def dependency(user: models.User = Depends(get_current_user)) -> models.User:
        if user.role not in allowed:
            raise ForbiddenError("Insufficient permissions")
        return user

    return dependency


admin_only = require_roles(models.Role.ADMIN)
staff_only = require_roles(models.Role.ADMIN, models.Role.TEACHER)
any_role = require_roles(models.Role.ADMIN, models.Role.TEACHER, models.Role.STUDENT)
