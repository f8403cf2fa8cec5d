"""Dashboard statistics and chart data, one pair of endpoints per role."""

from fastapi import APIRouter, Depends
from sqlmodel import Session

from .. import models, services
from ..auth import admin_only, require_roles
from ..database import get_session
from ..responses import envelope

router = APIRouter(prefix="/analytics", tags=["analytics"])
teacher_only = require_roles(models.Role.TEACHER)
student_only = require_roles(models.Role.STUDENT)


@router.get("/admin/stats", dependencies=[Depends(admin_only)])
def admin_stats(session: Session = Depends(get_session)):
    return envelope(services.AnalyticsService(session).admin_stats())


@router.get("/admin/charts", dependencies=[Depends(admin_only)])
def admin_charts(session: Session = Depends(get_session)):
    return envelope(services.AnalyticsService(session).admin_charts())


@router.get("/teacher/stats")
def teacher_stats(user: models.User = Depends(teacher_only), session: Session = Depends(get_session)):
    return envelope(services.AnalyticsService(session).teacher_stats(user))


@router.get("/teacher/charts")
def teacher_charts(user: models.User = Depends(teacher_only), session: Session = Depends(get_session)):
    return envelope(services.AnalyticsService(session).teacher_charts(user))


@router.get("/student/stats")
def student_stats(user: models.User = Depends(student_only), session: Session = Depends(get_session)):
    return envelope(services.AnalyticsService(session).student_stats(user))


@router.get("/student/charts")
def student_charts(user: models.User = Depends(student_only), session: Session = Depends(get_session)):
    return envelope(services.AnalyticsService(session).student_charts(user))
