"""Repository classes encapsulating database operations.

Each repository is small and focused on a single aggregate. Repositories
return SQLModel objects and perform commits/refreshes where appropriate.
Tables with a `deleted_at` column are soft-deleted: lookups and listings
skip deleted rows unless asked otherwise.
"""

import uuid
from datetime import date, datetime
from typing import Dict, Iterable, List, Optional, Tuple

from sqlalchemy import func, or_
from sqlmodel import Session, select

from . import models
from .responses import PageParams


class BaseRepository:
    """Shared get/save/paginate/soft-delete helpers for one model."""
    model = None

    def __init__(self, session: Session):
        self.session = session

    @property
    def soft_deletes(self) -> bool:
        return hasattr(self.model, "deleted_at")

    def _not_deleted(self, stmt):
        if self.soft_deletes:
            stmt = stmt.where(self.model.deleted_at.is_(None))
        return stmt

    def get(self, obj_id: uuid.UUID, include_deleted: bool = False):
        """Fetch a row by primary key; soft-deleted rows count as missing by default."""
        obj = self.session.get(self.model, obj_id)
        if obj is None:
            return None
        if not include_deleted and self.soft_deletes and obj.deleted_at is not None:
            return None
        return obj

    def get_many(self, ids: Iterable[uuid.UUID], include_deleted: bool = False) -> List:
        ids = list(ids)
        if not ids:
            return []
        stmt = select(self.model).where(self.model.id.in_(ids))
        if not include_deleted:
            stmt = self._not_deleted(stmt)
        return list(self.session.exec(stmt).all())

    def save(self, obj):
        """Persist a new or modified row and return the refreshed instance."""
        if hasattr(obj, "updated_at"):
            obj.updated_at = models.utcnow()
        self.session.add(obj)
        self.session.commit()
        self.session.refresh(obj)
        return obj

    def delete(self, obj) -> None:
        self.session.delete(obj)
        self.session.commit()

    def soft_delete(self, obj):
        obj.deleted_at = models.utcnow()
        return self.save(obj)

    def restore(self, obj):
        obj.deleted_at = None
        return self.save(obj)

    def paginate(self, stmt, params: PageParams) -> Tuple[List, int]:
        """Return one page of `stmt` results together with the total row count."""
        total = self.session.exec(select(func.count()).select_from(stmt.order_by(None).subquery())).one()
        items = self.session.exec(stmt.offset(params.offset).limit(params.limit)).all()
        return list(items), int(total)

    def list_deleted(self, params: PageParams) -> Tuple[List, int]:
        stmt = (
            select(self.model)
            .where(self.model.deleted_at.is_not(None))
            .order_by(self.model.deleted_at.desc())
        )
        return self.paginate(stmt, params)


class UserRepository(BaseRepository):
    """Lookups and searches for `User` accounts."""
    model = models.User

    def get_by_email(self, email: str, include_deleted: bool = False) -> Optional[models.User]:
        stmt = select(models.User).where(models.User.email == email.lower())
        if not include_deleted:
            stmt = self._not_deleted(stmt)
        return self.session.exec(stmt).first()

    def get_by_username(self, username: str, include_deleted: bool = False) -> Optional[models.User]:
        stmt = select(models.User).where(models.User.username == username)
        if not include_deleted:
            stmt = self._not_deleted(stmt)
        return self.session.exec(stmt).first()

    def get_by_verification_token(self, token: str) -> Optional[models.User]:
        stmt = self._not_deleted(select(models.User).where(models.User.email_verification_token == token))
        return self.session.exec(stmt).first()

    def get_by_reset_token(self, token_hash: str, now: datetime) -> Optional[models.User]:
        """Return the user holding this unexpired password-reset token digest."""
        stmt = self._not_deleted(
            select(models.User).where(
                models.User.password_reset_token_hash == token_hash,
                models.User.password_reset_expires > now,
            )
        )
        return self.session.exec(stmt).first()

    def search(
        self,
        params: PageParams,
        role: Optional[models.Role] = None,
        search: Optional[str] = None,
        include_deleted: bool = False,
    ) -> Tuple[List[models.User], int]:
        stmt = select(models.User)
        if not include_deleted:
            stmt = self._not_deleted(stmt)
        if role is not None:
            stmt = stmt.where(models.User.role == role)
        if search:
            pattern = f"%{search.strip()}%"
            stmt = stmt.where(
                or_(
                    models.User.email.ilike(pattern),
                    models.User.username.ilike(pattern),
                    models.User.first_name.ilike(pattern),
                    models.User.last_name.ilike(pattern),
                )
            )
        return self.paginate(stmt.order_by(models.User.created_at.desc()), params)


class FacultyRepository(BaseRepository):
    model = models.Faculty

    def get_by_name(self, name: str) -> Optional[models.Faculty]:
        return self.session.exec(select(models.Faculty).where(models.Faculty.name == name)).first()

    def get_by_code(self, code: str) -> Optional[models.Faculty]:
        return self.session.exec(select(models.Faculty).where(models.Faculty.code == code)).first()

    def list(self, params: PageParams) -> Tuple[List[models.Faculty], int]:
        return self.paginate(self._not_deleted(select(models.Faculty)).order_by(models.Faculty.name), params)

    def count_departments(self, faculty_id: uuid.UUID) -> int:
        stmt = select(func.count()).select_from(models.Department).where(
            models.Department.faculty_id == faculty_id,
            models.Department.deleted_at.is_(None),
        )
        return int(self.session.exec(stmt).one())


class DepartmentRepository(BaseRepository):
    model = models.Department

    def get_by_name(self, name: str) -> Optional[models.Department]:
        return self.session.exec(select(models.Department).where(models.Department.name == name)).first()

    def get_by_code(self, code: str) -> Optional[models.Department]:
        return self.session.exec(select(models.Department).where(models.Department.code == code)).first()

    def list(self, params: PageParams, faculty_id: Optional[uuid.UUID] = None) -> Tuple[List[models.Department], int]:
        stmt = self._not_deleted(select(models.Department))
        if faculty_id is not None:
            stmt = stmt.where(models.Department.faculty_id == faculty_id)
        return self.paginate(stmt.order_by(models.Department.name), params)

    def count_students(self, department_id: uuid.UUID) -> int:
        stmt = select(func.count()).select_from(models.Student).where(
            models.Student.department_id == department_id,
            models.Student.deleted_at.is_(None),
        )
        return int(self.session.exec(stmt).one())


class AcademicTermRepository(BaseRepository):
    model = models.AcademicTerm

    def get_by_name(self, name: str) -> Optional[models.AcademicTerm]:
        return self.session.exec(select(models.AcademicTerm).where(models.AcademicTerm.name == name)).first()

    def get_active(self) -> Optional[models.AcademicTerm]:
        stmt = self._not_deleted(select(models.AcademicTerm).where(models.AcademicTerm.is_active.is_(True)))
        return self.session.exec(stmt).first()

    def deactivate_all(self, except_id: Optional[uuid.UUID] = None) -> None:
        """Clear `is_active` on every term other than `except_id` (not committed)."""
        stmt = select(models.AcademicTerm).where(models.AcademicTerm.is_active.is_(True))
        if except_id is not None:
            stmt = stmt.where(models.AcademicTerm.id != except_id)
        for term in self.session.exec(stmt).all():
            term.is_active = False
            term.updated_at = models.utcnow()
            self.session.add(term)

    def list(self, params: PageParams) -> Tuple[List[models.AcademicTerm], int]:
        stmt = self._not_deleted(select(models.AcademicTerm)).order_by(models.AcademicTerm.start_date.desc())
        return self.paginate(stmt, params)


class StudentRepository(BaseRepository):
    """Queries over `Student` records and their linked accounts."""
    model = models.Student

    def get_by_code(self, code: str, include_deleted: bool = True) -> Optional[models.Student]:
        stmt = select(models.Student).where(models.Student.student_code == code.upper())
        if not include_deleted:
            stmt = self._not_deleted(stmt)
        return self.session.exec(stmt).first()

    def get_by_user(self, user_id: uuid.UUID) -> Optional[models.Student]:
        stmt = self._not_deleted(select(models.Student).where(models.Student.user_id == user_id))
        return self.session.exec(stmt).first()

    def _filtered(
        self,
        department_id: Optional[uuid.UUID] = None,
        faculty_id: Optional[uuid.UUID] = None,
        gender: Optional[models.Gender] = None,
        year: Optional[int] = None,
        semester: Optional[int] = None,
        search: Optional[str] = None,
    ):
        stmt = self._not_deleted(select(models.Student))
        if department_id is not None:
            stmt = stmt.where(models.Student.department_id == department_id)
        if faculty_id is not None:
            stmt = stmt.join(models.Department, models.Department.id == models.Student.department_id).where(
                models.Department.faculty_id == faculty_id
            )
        if gender is not None:
            stmt = stmt.where(models.Student.gender == gender)
        if year is not None:
            stmt = stmt.where(models.Student.current_year == year)
        if semester is not None:
            stmt = stmt.where(models.Student.semester == semester)
        if search and search.strip():
            pattern = f"%{search.strip()}%"
            stmt = stmt.outerjoin(models.User, models.User.id == models.Student.user_id).where(
                or_(
                    models.Student.student_code.ilike(pattern),
                    models.User.first_name.ilike(pattern),
                    models.User.last_name.ilike(pattern),
                    models.User.email.ilike(pattern),
                )
            )
        return stmt.order_by(models.Student.created_at.desc())

    def search(self, params: PageParams, **filters) -> Tuple[List[models.Student], int]:
        return self.paginate(self._filtered(**filters), params)

    def all_matching(self, **filters) -> List[models.Student]:
        return list(self.session.exec(self._filtered(**filters)).all())


class TeacherRepository(BaseRepository):
    model = models.TeacherProfile

    def get_by_user(self, user_id: uuid.UUID, include_deleted: bool = True) -> Optional[models.TeacherProfile]:
        stmt = select(models.TeacherProfile).where(models.TeacherProfile.user_id == user_id)
        if not include_deleted:
            stmt = self._not_deleted(stmt)
        return self.session.exec(stmt).first()

    def get_by_employee_id(self, employee_id: str) -> Optional[models.TeacherProfile]:
        stmt = select(models.TeacherProfile).where(models.TeacherProfile.employee_id == employee_id)
        return self.session.exec(stmt).first()

    def list(self, params: PageParams, is_active: Optional[bool] = None) -> Tuple[List[models.TeacherProfile], int]:
        stmt = self._not_deleted(select(models.TeacherProfile))
        if is_active is not None:
            stmt = stmt.where(models.TeacherProfile.is_active.is_(is_active))
        return self.paginate(stmt.order_by(models.TeacherProfile.created_at.desc()), params)


class CourseRepository(BaseRepository):
    model = models.Course

    def get_by_code(self, code: str) -> Optional[models.Course]:
        return self.session.exec(select(models.Course).where(models.Course.course_code == code.upper())).first()

    def search(
        self,
        params: PageParams,
        is_active: Optional[bool] = None,
        semester: Optional[int] = None,
        department_id: Optional[uuid.UUID] = None,
        teacher_id: Optional[uuid.UUID] = None,
        search: Optional[str] = None,
        include_deleted: bool = False,
    ) -> Tuple[List[models.Course], int]:
        stmt = select(models.Course)
        if not include_deleted:
            stmt = self._not_deleted(stmt)
        if is_active is not None:
            stmt = stmt.where(models.Course.is_active.is_(is_active))
        if semester is not None:
            stmt = stmt.where(models.Course.semester == semester)
        if department_id is not None:
            stmt = stmt.where(models.Course.department_id == department_id)
        if teacher_id is not None:
            stmt = stmt.join(models.CourseTeacher, models.CourseTeacher.course_id == models.Course.id).where(
                models.CourseTeacher.teacher_id == teacher_id
            )
        if search and search.strip():
            pattern = f"%{search.strip()}%"
            stmt = stmt.where(or_(models.Course.course_code.ilike(pattern), models.Course.course_name.ilike(pattern)))
        return self.paginate(stmt.order_by(models.Course.course_code), params)

    def count_active_enrollments(self, course_id: uuid.UUID) -> int:
        stmt = select(func.count()).select_from(models.Enrollment).where(
            models.Enrollment.course_id == course_id,
            models.Enrollment.status == models.EnrollmentStatus.ACTIVE,
        )
        return int(self.session.exec(stmt).one())


class EnrollmentRepository(BaseRepository):
    model = models.Enrollment

    def get_pair(self, student_id: uuid.UUID, course_id: uuid.UUID) -> Optional[models.Enrollment]:
        stmt = select(models.Enrollment).where(
            models.Enrollment.student_id == student_id,
            models.Enrollment.course_id == course_id,
        )
        return self.session.exec(stmt).first()

    def search(
        self,
        params: PageParams,
        student_id: Optional[uuid.UUID] = None,
        course_id: Optional[uuid.UUID] = None,
        status: Optional[models.EnrollmentStatus] = None,
    ) -> Tuple[List[models.Enrollment], int]:
        stmt = select(models.Enrollment)
        if student_id is not None:
            stmt = stmt.where(models.Enrollment.student_id == student_id)
        if course_id is not None:
            stmt = stmt.where(models.Enrollment.course_id == course_id)
        if status is not None:
            stmt = stmt.where(models.Enrollment.status == status)
        return self.paginate(stmt.order_by(models.Enrollment.created_at.desc()), params)


class GradeRepository(BaseRepository):
    model = models.Grade

    def search(
        self,
        params: PageParams,
        student_id: Optional[uuid.UUID] = None,
        course_id: Optional[uuid.UUID] = None,
        assessment_type: Optional[str] = None,
    ) -> Tuple[List[models.Grade], int]:
        stmt = select(models.Grade)
        if student_id is not None:
            stmt = stmt.where(models.Grade.student_id == student_id)
        if course_id is not None:
            stmt = stmt.where(models.Grade.course_id == course_id)
        if assessment_type:
            stmt = stmt.where(models.Grade.assessment_type == assessment_type)
        return self.paginate(stmt.order_by(models.Grade.graded_at.desc()), params)


class AttendanceRepository(BaseRepository):
    model = models.Attendance

    def get_for_day(self, student_id: uuid.UUID, course_id: uuid.UUID, day: date) -> Optional[models.Attendance]:
        stmt = select(models.Attendance).where(
            models.Attendance.student_id == student_id,
            models.Attendance.course_id == course_id,
            models.Attendance.date == day,
        )
        return self.session.exec(stmt).first()

    def search(
        self,
        params: PageParams,
        student_id: Optional[uuid.UUID] = None,
        course_id: Optional[uuid.UUID] = None,
        status: Optional[models.AttendanceStatus] = None,
        start_date: Optional[date] = None,
        end_date: Optional[date] = None,
    ) -> Tuple[List[models.Attendance], int]:
        stmt = select(models.Attendance)
        if student_id is not None:
            stmt = stmt.where(models.Attendance.student_id == student_id)
        if course_id is not None:
            stmt = stmt.where(models.Attendance.course_id == course_id)
        if status is not None:
            stmt = stmt.where(models.Attendance.status == status)
        if start_date is not None:
            stmt = stmt.where(models.Attendance.date >= start_date)
        if end_date is not None:
            stmt = stmt.where(models.Attendance.date <= end_date)
        return self.paginate(stmt.order_by(models.Attendance.date.desc()), params)

    def list_for_course(self, course_id: uuid.UUID) -> List[models.Attendance]:
        stmt = select(models.Attendance).where(models.Attendance.course_id == course_id)
        return list(self.session.exec(stmt).all())


class ClassroomRepository(BaseRepository):
    model = models.Classroom

    def get_by_room_number(self, room_number: str) -> Optional[models.Classroom]:
        stmt = select(models.Classroom).where(models.Classroom.room_number == room_number)
        return self.session.exec(stmt).first()

    def list(self, params: PageParams) -> Tuple[List[models.Classroom], int]:
        return self.paginate(self._not_deleted(select(models.Classroom)).order_by(models.Classroom.room_number), params)

    def count_schedules(self, classroom_id: uuid.UUID) -> int:
        stmt = select(func.count()).select_from(models.Schedule).where(
            models.Schedule.classroom_id == classroom_id,
            models.Schedule.deleted_at.is_(None),
        )
        return int(self.session.exec(stmt).one())


class ScheduleRepository(BaseRepository):
    """Weekly classroom bookings and overlap detection."""
    model = models.Schedule

    def find_conflict(
        self,
        classroom_id: uuid.UUID,
        day_of_week: int,
        start_time,
        end_time,
        exclude_id: Optional[uuid.UUID] = None,
    ) -> Optional[models.Schedule]:
        """Return a live booking in the same room and day overlapping [start, end)."""
        stmt = self._not_deleted(
            select(models.Schedule).where(
                models.Schedule.classroom_id == classroom_id,
                models.Schedule.day_of_week == day_of_week,
                models.Schedule.start_time < end_time,
                models.Schedule.end_time > start_time,
            )
        )
        if exclude_id is not None:
            stmt = stmt.where(models.Schedule.id != exclude_id)
        return self.session.exec(stmt).first()

    def _ordered(self, stmt):
        return stmt.order_by(models.Schedule.day_of_week, models.Schedule.start_time)

    def list(self, params: PageParams, teacher_id: Optional[uuid.UUID] = None) -> Tuple[List[models.Schedule], int]:
        stmt = self._not_deleted(select(models.Schedule))
        if teacher_id is not None:
            stmt = stmt.join(models.CourseTeacher, models.CourseTeacher.course_id == models.Schedule.course_id).where(
                models.CourseTeacher.teacher_id == teacher_id
            )
        return self.paginate(self._ordered(stmt), params)

    def list_for_course(self, course_id: uuid.UUID) -> List[models.Schedule]:
        stmt = self._not_deleted(select(models.Schedule).where(models.Schedule.course_id == course_id))
        return list(self.session.exec(self._ordered(stmt)).all())

    def list_for_classroom(self, classroom_id: uuid.UUID) -> List[models.Schedule]:
        stmt = self._not_deleted(select(models.Schedule).where(models.Schedule.classroom_id == classroom_id))
        return list(self.session.exec(self._ordered(stmt)).all())


class AuditLogRepository(BaseRepository):
    model = models.AuditLog

    def create(self, log: models.AuditLog) -> models.AuditLog:
        self.session.add(log)
        self.session.commit()
        self.session.refresh(log)
        return log

    def search(
        self,
        params: PageParams,
        user_id: Optional[uuid.UUID] = None,
        action: Optional[str] = None,
        resource: Optional[str] = None,
        resource_id: Optional[str] = None,
        start_date: Optional[datetime] = None,
        end_date: Optional[datetime] = None,
    ) -> Tuple[List[models.AuditLog], int]:
        stmt = select(models.AuditLog)
        if user_id is not None:
            stmt = stmt.where(models.AuditLog.user_id == user_id)
        if action:
            stmt = stmt.where(models.AuditLog.action == action)
        if resource:
            stmt = stmt.where(models.AuditLog.resource == resource)
        if resource_id:
            stmt = stmt.where(models.AuditLog.resource_id == resource_id)
        if start_date is not None:
            stmt = stmt.where(models.AuditLog.created_at >= start_date)
        if end_date is not None:
            stmt = stmt.where(models.AuditLog.created_at <= end_date)
        return self.paginate(stmt.order_by(models.AuditLog.created_at.desc()), params)

    def list_for_user(self, user_id: uuid.UUID, limit: int = 50) -> List[models.AuditLog]:
        stmt = (
            select(models.AuditLog)
            .where(models.AuditLog.user_id == user_id)
            .order_by(models.AuditLog.created_at.desc())
            .limit(limit)
        )
        return list(self.session.exec(stmt).all())


class AnalyticsRepository:
    """Read-only aggregates for the dashboards.

    `course_ids` narrows a query to those courses; `None` means every
    course. Soft-deleted students, teachers, courses and schedules are
    left out of the counts.
    """

    def __init__(self, session: Session):
        self.session = session

    def _count(self, stmt) -> int:
        return int(self.session.exec(stmt).one())

    def count_students(self) -> int:
        return self._count(select(func.count()).select_from(models.Student).where(models.Student.deleted_at.is_(None)))

    def count_teachers(self) -> int:
        return self._count(
            select(func.count()).select_from(models.TeacherProfile).where(models.TeacherProfile.deleted_at.is_(None))
        )

    def count_active_courses(self) -> int:
        return self._count(
            select(func.count()).select_from(models.Course).where(
                models.Course.is_active.is_(True), models.Course.deleted_at.is_(None)
            )
        )

    def course_ids_for_teacher(self, user_id: uuid.UUID) -> List[uuid.UUID]:
        stmt = (
            select(models.Course.id)
            .join(models.CourseTeacher, models.CourseTeacher.course_id == models.Course.id)
            .where(models.CourseTeacher.teacher_id == user_id, models.Course.deleted_at.is_(None))
        )
        return list(self.session.exec(stmt).all())

    def enrollments_for_student(self, student_id: uuid.UUID) -> List[models.Enrollment]:
        stmt = (
            select(models.Enrollment)
            .join(models.Course, models.Course.id == models.Enrollment.course_id)
            .where(models.Enrollment.student_id == student_id, models.Course.deleted_at.is_(None))
            .order_by(models.Course.course_code)
        )
        return list(self.session.exec(stmt).all())

    def attendance_by_status(
        self, course_ids: Optional[List[uuid.UUID]] = None, student_id: Optional[uuid.UUID] = None
    ) -> Dict[str, int]:
        stmt = select(models.Attendance.status, func.count()).group_by(models.Attendance.status)
        if course_ids is not None:
            stmt = stmt.where(models.Attendance.course_id.in_(course_ids))
        if student_id is not None:
            stmt = stmt.where(models.Attendance.student_id == student_id)
        return {getattr(status, "value", status): int(n) for status, n in self.session.exec(stmt).all()}

    def grade_distribution(self, course_ids: Optional[List[uuid.UUID]] = None) -> Dict[str, int]:
        stmt = (
            select(models.Enrollment.grade, func.count())
            .where(models.Enrollment.grade.is_not(None))
            .group_by(models.Enrollment.grade)
        )
        if course_ids is not None:
            stmt = stmt.where(models.Enrollment.course_id.in_(course_ids))
        return {grade: int(n) for grade, n in self.session.exec(stmt).all()}

    def enrollment_dates(self, since: date) -> List[date]:
        stmt = select(models.Enrollment.enrollment_date).where(models.Enrollment.enrollment_date >= since)
        return list(self.session.exec(stmt).all())

    def scores_since(
        self, since: datetime, student_id: Optional[uuid.UUID] = None
    ) -> List[Tuple[datetime, float, float]]:
        """(graded_at, score_obtained, max_score) for assessments graded from `since` on."""
        stmt = select(models.Grade.graded_at, models.Grade.score_obtained, models.Grade.max_score).where(
            models.Grade.graded_at >= since
        )
        if student_id is not None:
            stmt = stmt.where(models.Grade.student_id == student_id)
        return list(self.session.exec(stmt).all())

    def count_students_in(self, course_ids: List[uuid.UUID]) -> int:
        stmt = (
            select(func.count(models.Enrollment.student_id.distinct()))
            .select_from(models.Enrollment)
            .join(models.Student, models.Student.id == models.Enrollment.student_id)
            .where(
                models.Enrollment.course_id.in_(course_ids),
                models.Enrollment.status == models.EnrollmentStatus.ACTIVE,
                models.Student.deleted_at.is_(None),
            )
        )
        return self._count(stmt)

    def count_pending_grades(self, course_ids: List[uuid.UUID]) -> int:
        stmt = select(func.count()).select_from(models.Enrollment).where(
            models.Enrollment.course_id.in_(course_ids),
            models.Enrollment.status == models.EnrollmentStatus.ACTIVE,
            models.Enrollment.grade.is_(None),
        )
        return self._count(stmt)

    def count_classes_on(self, day_of_week: int, course_ids: List[uuid.UUID]) -> int:
        stmt = select(func.count()).select_from(models.Schedule).where(
            models.Schedule.day_of_week == day_of_week,
            models.Schedule.course_id.in_(course_ids),
            models.Schedule.deleted_at.is_(None),
        )
        return self._count(stmt)
