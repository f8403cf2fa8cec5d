"""Authentication endpoints: registration, login, tokens and password recovery."""

import logging

from fastapi import APIRouter, Depends, Request
from sqlmodel import Session

from .. import models, schemas, services
from ..auth import get_current_user
from ..config import settings
from ..database import get_session
from ..errors import TooManyRequestsError
from ..notifications import Notifier, get_notifier
from ..responses import envelope
from ..utils.rate_limit import InMemoryRateLimiter

router = APIRouter(prefix="/auth", tags=["auth"])
logger = logging.getLogger("campus.api.auth")
_auth_rate_limiter = InMemoryRateLimiter(lambda: settings.AUTH_RATE_LIMIT_PER_MIN, lambda: 60)


def enforce_auth_rate_limit(request: Request):
    client = request.client.host if request.client else "unknown"
    decision = _auth_rate_limiter.hit(client, request.url.path)
    if not decision.allowed:
        logger.warning("auth_rate_limited client=%s path=%s", client, request.url.path)
        raise TooManyRequestsError(
            f"Too many requests. Retry in {decision.retry_after} seconds.",
            headers={"Retry-After": str(decision.retry_after)},
        )


limited = [Depends(enforce_auth_rate_limit)]


@router.post("/register", status_code=201, dependencies=limited)
def register(
    payload: schemas.RegisterIn,
    session: Session = Depends(get_session),
    notifier: Notifier = Depends(get_notifier),
):
    return envelope(services.AuthService(session, notifier).register(payload))


@router.post("/login", dependencies=limited)
def login(payload: schemas.LoginIn, session: Session = Depends(get_session)):
    return envelope(services.AuthService(session).login(payload.email, payload.password))


@router.post("/refresh-token", dependencies=limited)
def refresh_token(payload: schemas.RefreshTokenIn, session: Session = Depends(get_session)):
    return envelope(services.AuthService(session).refresh(payload.user_id, payload.refresh_token))


@router.post("/forgot-password", dependencies=limited)
def forgot_password(
    payload: schemas.ForgotPasswordIn,
    session: Session = Depends(get_session),
    notifier: Notifier = Depends(get_notifier),
):
    # same reply whether or not the account exists
    services.AuthService(session, notifier).forgot_password(payload.email)
    return envelope({"message": services.FORGOT_PASSWORD_MESSAGE})


@router.post("/reset-password", dependencies=limited)
def reset_password(payload: schemas.ResetPasswordIn, session: Session = Depends(get_session)):
    services.AuthService(session).reset_password(payload.token, payload.new_password)
    return envelope({"message": "Password has been reset"})


@router.post("/verify-email")
def verify_email(payload: schemas.VerifyEmailIn, session: Session = Depends(get_session)):
    services.AuthService(session).verify_email(payload.token)
    return envelope({"message": "Email verified"})


@router.get("/me")
def me(user: models.User = Depends(get_current_user)):
    return envelope(schemas.UserOut.model_validate(user))


@router.post("/logout")
def logout(user: models.User = Depends(get_current_user), session: Session = Depends(get_session)):
    services.AuthService(session).logout(user)
    return envelope({"message": "Logged out"})
