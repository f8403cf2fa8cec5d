"""Business logic services used by HTTP routers.

This module holds service classes that coordinate repositories and
enforce the rules the database cannot: uniqueness with friendly
messages, referential checks, lockout bookkeeping, capacity limits,
date ordering and classroom booking conflicts. Services raise
`campus.errors` exceptions; routers never translate them.
"""

import hashlib
import json
import logging
import math
import secrets
import uuid
from collections import Counter, defaultdict
from datetime import date, datetime, timedelta, timezone
from typing import Dict, List, Optional, Tuple

import jwt
from passlib.context import CryptContext
from pydantic import ValidationError
from sqlmodel import Session

from . import models, repositories, schemas
from .config import settings
from .errors import BadRequestError, ConflictError, ForbiddenError, NotFoundError, UnauthorizedError
from .notifications import Notifier
from .responses import PageParams
from .utils.student_csv import parse_students_csv, students_to_csv

logger = logging.getLogger("campus.services")

PWD_CTX = CryptContext(schemes=["pbkdf2_sha256"], deprecated="auto")

MAX_FAILED_ATTEMPTS = 5
LOCKOUT_DURATION_MINUTES = 15
FAILED_ATTEMPT_RESET_MINUTES = 30
PASSWORD_RESET_TTL = timedelta(hours=1)
FORGOT_PASSWORD_MESSAGE = "If account exists, password reset email has been sent"

GRADE_POINTS = {
    "A+": 4.0, "A": 4.0, "A-": 3.7,
    "B+": 3.3, "B": 3.0, "B-": 2.7,
    "C+": 2.3, "C": 2.0, "C-": 1.7,
    "D+": 1.3, "D": 1.0, "F": 0.0,
}


def hash_token(token: str) -> str:
    """Digest for high-entropy tokens stored at rest (refresh and reset tokens)."""
    return hashlib.sha256(token.encode("utf-8")).hexdigest()


def create_token(user: models.User, kind: str = "access") -> str:
    """Sign a JWT for `user`; `kind` is "access" or "refresh"."""
    if kind == "refresh":
        ttl = timedelta(days=settings.JWT_REFRESH_EXPIRE_DAYS)
    else:
        ttl = timedelta(hours=settings.JWT_ACCESS_EXPIRE_HOURS)
    expire = datetime.now(timezone.utc) + ttl
    payload = {
        "sub": str(user.id),
        "email": user.email,
        "role": user.role.value,
        "type": kind,
        "jti": uuid.uuid4().hex,
        "exp": int(expire.timestamp()),
    }
    return jwt.encode(payload, settings.JWT_SECRET, algorithm=settings.JWT_ALGORITHM)


def grade_points_for(grade: str, points: Optional[float] = None) -> float:
    """Points for a letter grade; explicit `points` take precedence."""
    if points is not None:
        return points
    if grade not in GRADE_POINTS:
        raise BadRequestError(f"Unknown letter grade '{grade}'; provide grade_points")
    return GRADE_POINTS[grade]


def _apply(obj, changes: dict):
    for key, value in changes.items():
        setattr(obj, key, value)
    return obj


class AuthService:
    """Registration, login with lockout, token rotation and password recovery."""
    def __init__(self, session: Session, notifier: Optional[Notifier] = None):
        self.session = session
        self.notifier = notifier
        self.user_repo = repositories.UserRepository(session)

    def _issue_tokens(self, user: models.User) -> dict:
        access = create_token(user, "access")
        refresh = create_token(user, "refresh")
        user.refresh_token_hash = hash_token(refresh)
        self.user_repo.save(user)
        return {
            "access_token": access,
            "refresh_token": refresh,
            "token_type": "bearer",
            "user": schemas.UserSummary.model_validate(user),
        }

    def _unique_username(self, email: str) -> str:
        base = "".join(ch if ch.isalnum() or ch == "_" else "_" for ch in email.split("@")[0])[:40]
        if len(base) < 3:
            base = (base + "user")[:40]
        candidate = base
        while self.user_repo.get_by_username(candidate, include_deleted=True):
            candidate = f"{base}_{secrets.token_hex(3)}"
        return candidate

    def register(self, data: schemas.RegisterIn) -> dict:
        """Create an account and return a fresh token pair."""
        if self.user_repo.get_by_email(data.email, include_deleted=True):
            raise ConflictError("Email already registered")
        username = data.username
        if username:
            if self.user_repo.get_by_username(username, include_deleted=True):
                raise ConflictError("Username already taken")
        else:
            username = self._unique_username(data.email)
        user = models.User(
            email=data.email,
            username=username,
            password_hash=PWD_CTX.hash(data.password),
            first_name=data.first_name,
            last_name=data.last_name,
            role=data.role or models.Role.STUDENT,
            email_verification_token=secrets.token_urlsafe(32),
        )
        user = self.user_repo.save(user)
        logger.info("user_registered %s", json.dumps({"user_id": str(user.id), "role": user.role.value}))
        if self.notifier:
            self.notifier.email_verification(user, user.email_verification_token)
        return self._issue_tokens(user)

    def login(self, email: str, password: str) -> dict:
        user = self.user_repo.get_by_email(email)
        if not user:
            raise UnauthorizedError("Invalid credentials")
        now = models.utcnow()

        if user.locked_until and user.locked_until > now:
            remaining = math.ceil((user.locked_until - now).total_seconds() / 60)
            raise ForbiddenError(f"Account is locked. Try again in {remaining} minute(s).")

        if (
            user.failed_login_attempts > 0
            and user.last_failed_login
            and now - user.last_failed_login > timedelta(minutes=FAILED_ATTEMPT_RESET_MINUTES)
        ):
            user.failed_login_attempts = 0
            user.locked_until = None

        if not PWD_CTX.verify(password, user.password_hash):
            user.failed_login_attempts += 1
            user.last_failed_login = now
            locked = user.failed_login_attempts >= MAX_FAILED_ATTEMPTS
            if locked:
                user.locked_until = now + timedelta(minutes=LOCKOUT_DURATION_MINUTES)
            self.user_repo.save(user)
            logger.warning(
                "login_failed %s",
                json.dumps({"user_id": str(user.id), "attempts": user.failed_login_attempts, "locked": locked}),
            )
            if locked:
                raise ForbiddenError(
                    f"Account locked due to too many failed attempts. Try again in {LOCKOUT_DURATION_MINUTES} minutes."
                )
            raise UnauthorizedError("Invalid credentials")

        if not user.is_active:
            raise UnauthorizedError("Account disabled")

        user.failed_login_attempts = 0
        user.locked_until = None
        user.last_failed_login = None
        return self._issue_tokens(user)

    def refresh(self, user_id: uuid.UUID, refresh_token: str) -> dict:
        user = self.user_repo.get(user_id)
        if not user or not user.refresh_token_hash or not user.is_active:
            raise UnauthorizedError("Access denied")
        if not secrets.compare_digest(user.refresh_token_hash, hash_token(refresh_token)):
            raise UnauthorizedError("Access denied")
        return self._issue_tokens(user)

    def logout(self, user: models.User) -> None:
        user.refresh_token_hash = None
        self.user_repo.save(user)

    def forgot_password(self, email: str) -> Optional[str]:
        """Store a one-hour reset token for `email`.

        Mails the raw token through the notifier when one is set and returns
        it, or returns None when no account matches. Callers must not reveal
        which case occurred.
        """
        user = self.user_repo.get_by_email(email)
        if not user:
            return None
        token = secrets.token_hex(32)
        user.password_reset_token_hash = hash_token(token)
        user.password_reset_expires = models.utcnow() + PASSWORD_RESET_TTL
        self.user_repo.save(user)
        logger.info(
            "password_reset_requested %s",
            json.dumps({"user_id": str(user.id), "expires": user.password_reset_expires.isoformat()}),
        )
        if self.notifier:
            self.notifier.password_reset(user, token, int(PASSWORD_RESET_TTL.total_seconds() // 60))
        return token

    def reset_password(self, token: str, new_password: str) -> None:
        user = self.user_repo.get_by_reset_token(hash_token(token), models.utcnow())
        if not user:
            raise BadRequestError("Invalid or expired reset token")
        user.password_hash = PWD_CTX.hash(new_password)
        user.password_reset_token_hash = None
        user.password_reset_expires = None
        user.failed_login_attempts = 0
        user.locked_until = None
        user.refresh_token_hash = None
        self.user_repo.save(user)

    def verify_email(self, token: str) -> None:
        user = self.user_repo.get_by_verification_token(token)
        if not user:
            raise BadRequestError("Invalid verification token")
        user.email_verified = True
        user.email_verification_token = None
        self.user_repo.save(user)


class UserService:
    """Administrative account management."""
    def __init__(self, session: Session):
        self.session = session
        self.repo = repositories.UserRepository(session)

    def get(self, user_id: uuid.UUID, include_deleted: bool = False) -> models.User:
        user = self.repo.get(user_id, include_deleted=include_deleted)
        if not user:
            raise NotFoundError("User", user_id)
        return user

    def create(self, data: schemas.UserCreate) -> models.User:
        if self.repo.get_by_email(data.email, include_deleted=True):
            raise ConflictError("Email already registered")
        if self.repo.get_by_username(data.username, include_deleted=True):
            raise ConflictError("Username already taken")
        fields = data.model_dump(exclude={"password"})
        user = models.User(**fields, password_hash=PWD_CTX.hash(data.password))
        return self.repo.save(user)

    def list(self, params: PageParams, **filters) -> Tuple[List[models.User], int]:
        return self.repo.search(params, **filters)

    def update(self, user_id: uuid.UUID, data: schemas.UserUpdate) -> models.User:
        user = self.get(user_id)
        changes = data.model_dump(exclude_unset=True)
        if "email" in changes and changes["email"] != user.email:
            if self.repo.get_by_email(changes["email"], include_deleted=True):
                raise ConflictError("Email already registered")
        if "username" in changes and changes["username"] != user.username:
            if self.repo.get_by_username(changes["username"], include_deleted=True):
                raise ConflictError("Username already taken")
        password = changes.pop("password", None)
        if password:
            user.password_hash = PWD_CTX.hash(password)
        return self.repo.save(_apply(user, changes))

    def delete(self, user_id: uuid.UUID) -> None:
        user = self.get(user_id)
        user.refresh_token_hash = None
        self.repo.soft_delete(user)

    def restore(self, user_id: uuid.UUID) -> models.User:
        user = self.get(user_id, include_deleted=True)
        if user.deleted_at is None:
            raise ConflictError("User is not deleted")
        return self.repo.restore(user)

    def list_deleted(self, params: PageParams):
        return self.repo.list_deleted(params)


class FacultyService:
    def __init__(self, session: Session):
        self.session = session
        self.repo = repositories.FacultyRepository(session)
        self.user_repo = repositories.UserRepository(session)

    def get(self, faculty_id: uuid.UUID, include_deleted: bool = False) -> models.Faculty:
        faculty = self.repo.get(faculty_id, include_deleted=include_deleted)
        if not faculty:
            raise NotFoundError("Faculty", faculty_id)
        return faculty

    def _check_unique(self, name: Optional[str], code: Optional[str], current: Optional[models.Faculty] = None):
        if name is not None:
            other = self.repo.get_by_name(name)
            if other and (current is None or other.id != current.id):
                raise ConflictError("Faculty with this name already exists")
        if code is not None:
            other = self.repo.get_by_code(code)
            if other and (current is None or other.id != current.id):
                raise ConflictError("Faculty with this code already exists")

    def _check_dean(self, dean_id: Optional[uuid.UUID]):
        if dean_id is not None and not self.user_repo.get(dean_id):
            raise NotFoundError("Dean user", dean_id)

    def create(self, data: schemas.FacultyCreate) -> models.Faculty:
        self._check_unique(data.name, data.code)
        self._check_dean(data.dean_id)
        return self.repo.save(models.Faculty(**data.model_dump()))

    def list(self, params: PageParams):
        return self.repo.list(params)

    def update(self, faculty_id: uuid.UUID, data: schemas.FacultyUpdate) -> models.Faculty:
        faculty = self.get(faculty_id)
        changes = data.model_dump(exclude_unset=True)
        self._check_unique(changes.get("name"), changes.get("code"), faculty)
        self._check_dean(changes.get("dean_id"))
        return self.repo.save(_apply(faculty, changes))

    def delete(self, faculty_id: uuid.UUID) -> None:
        faculty = self.get(faculty_id)
        if self.repo.count_departments(faculty.id):
            raise ConflictError("Cannot delete faculty with existing departments")
        self.repo.soft_delete(faculty)

    def restore(self, faculty_id: uuid.UUID) -> models.Faculty:
        faculty = self.get(faculty_id, include_deleted=True)
        if faculty.deleted_at is None:
            raise ConflictError("Faculty is not deleted")
        return self.repo.restore(faculty)


class DepartmentService:
    def __init__(self, session: Session):
        self.session = session
        self.repo = repositories.DepartmentRepository(session)
        self.faculty_repo = repositories.FacultyRepository(session)

    def get(self, department_id: uuid.UUID, include_deleted: bool = False) -> models.Department:
        department = self.repo.get(department_id, include_deleted=include_deleted)
        if not department:
            raise NotFoundError("Department", department_id)
        return department

    def _check_unique(self, name, code, current: Optional[models.Department] = None):
        if name is not None:
            other = self.repo.get_by_name(name)
            if other and (current is None or other.id != current.id):
                raise ConflictError("Department with this name already exists")
        if code is not None:
            other = self.repo.get_by_code(code)
            if other and (current is None or other.id != current.id):
                raise ConflictError("Department with this code already exists")

    def _check_faculty(self, faculty_id: Optional[uuid.UUID]):
        if faculty_id is not None and not self.faculty_repo.get(faculty_id):
            raise NotFoundError("Faculty", faculty_id)

    def create(self, data: schemas.DepartmentCreate) -> models.Department:
        self._check_unique(data.name, data.code)
        self._check_faculty(data.faculty_id)
        return self.repo.save(models.Department(**data.model_dump()))

    def list(self, params: PageParams, faculty_id: Optional[uuid.UUID] = None):
        return self.repo.list(params, faculty_id=faculty_id)

    def update(self, department_id: uuid.UUID, data: schemas.DepartmentUpdate) -> models.Department:
        department = self.get(department_id)
        changes = data.model_dump(exclude_unset=True)
        self._check_unique(changes.get("name"), changes.get("code"), department)
        self._check_faculty(changes.get("faculty_id"))
        return self.repo.save(_apply(department, changes))

    def delete(self, department_id: uuid.UUID) -> None:
        department = self.get(department_id)
        if self.repo.count_students(department.id):
            raise ConflictError("Cannot delete department with existing students")
        self.repo.soft_delete(department)

    def restore(self, department_id: uuid.UUID) -> models.Department:
        department = self.get(department_id, include_deleted=True)
        if department.deleted_at is None:
            raise ConflictError("Department is not deleted")
        return self.repo.restore(department)


class AcademicTermService:
    """Academic terms; activating one term deactivates all the others."""
    def __init__(self, session: Session):
        self.session = session
        self.repo = repositories.AcademicTermRepository(session)

    def get(self, term_id: uuid.UUID, include_deleted: bool = False) -> models.AcademicTerm:
        term = self.repo.get(term_id, include_deleted=include_deleted)
        if not term:
            raise NotFoundError("Academic term", term_id)
        return term

    @staticmethod
    def _check_dates(start, end):
        if start >= end:
            raise BadRequestError("Start date must be before end date")

    def create(self, data: schemas.AcademicTermCreate) -> models.AcademicTerm:
        if self.repo.get_by_name(data.name):
            raise ConflictError("Academic term with this name already exists")
        self._check_dates(data.start_date, data.end_date)
        if data.is_active:
            self.repo.deactivate_all()
        return self.repo.save(models.AcademicTerm(**data.model_dump()))

    def list(self, params: PageParams):
        return self.repo.list(params)

    def get_active(self) -> models.AcademicTerm:
        term = self.repo.get_active()
        if not term:
            raise NotFoundError("Active academic term")
        return term

    def update(self, term_id: uuid.UUID, data: schemas.AcademicTermUpdate) -> models.AcademicTerm:
        term = self.get(term_id)
        changes = data.model_dump(exclude_unset=True)
        if "name" in changes and changes["name"] != term.name and self.repo.get_by_name(changes["name"]):
            raise ConflictError("Academic term with this name already exists")
        self._check_dates(changes.get("start_date", term.start_date), changes.get("end_date", term.end_date))
        if changes.get("is_active"):
            self.repo.deactivate_all(except_id=term.id)
        return self.repo.save(_apply(term, changes))

    def delete(self, term_id: uuid.UUID) -> None:
        term = self.get(term_id)
        if term.is_active:
            raise ConflictError("Cannot delete the active academic term")
        self.repo.soft_delete(term)

    def restore(self, term_id: uuid.UUID) -> models.AcademicTerm:
        term = self.get(term_id, include_deleted=True)
        if term.deleted_at is None:
            raise ConflictError("Academic term is not deleted")
        return self.repo.restore(term)


class StudentService:
    """Student records, their academic history, CSV exchange and bulk actions."""
    def __init__(self, session: Session):
        self.session = session
        self.repo = repositories.StudentRepository(session)
        self.user_repo = repositories.UserRepository(session)
        self.department_repo = repositories.DepartmentRepository(session)
        self.grade_repo = repositories.GradeRepository(session)
        self.attendance_repo = repositories.AttendanceRepository(session)

    def get(self, student_id: uuid.UUID, include_deleted: bool = False) -> models.Student:
        student = self.repo.get(student_id, include_deleted=include_deleted)
        if not student:
            raise NotFoundError("Student", student_id)
        return student

    def ensure_can_view(self, student: models.Student, user: models.User) -> None:
        """Students may only look at their own record."""
        if user.role == models.Role.STUDENT and student.user_id != user.id:
            raise ForbiddenError("You can only access your own records")

    def _check_refs(self, user_id: Optional[uuid.UUID], department_id: Optional[uuid.UUID], current=None):
        if user_id is not None:
            if not self.user_repo.get(user_id):
                raise NotFoundError("User", user_id)
            linked = self.repo.get_by_user(user_id)
            if linked and (current is None or linked.id != current.id):
                raise ConflictError("User is already linked to another student")
        if department_id is not None and not self.department_repo.get(department_id):
            raise NotFoundError("Department", department_id)

    def create(self, data: schemas.StudentCreate) -> models.Student:
        if self.repo.get_by_code(data.student_code):
            raise ConflictError("Student ID already exists")
        self._check_refs(data.user_id, data.department_id)
        return self.repo.save(models.Student(**data.model_dump()))

    def list(self, params: PageParams, **filters):
        return self.repo.search(params, **filters)

    def update(self, student_id: uuid.UUID, data: schemas.StudentUpdate) -> models.Student:
        student = self.get(student_id)
        changes = data.model_dump(exclude_unset=True)
        code = changes.get("student_code")
        if code and code != student.student_code and self.repo.get_by_code(code):
            raise ConflictError("Student ID already exists")
        self._check_refs(changes.get("user_id"), changes.get("department_id"), student)
        return self.repo.save(_apply(student, changes))

    def delete(self, student_id: uuid.UUID) -> None:
        self.repo.soft_delete(self.get(student_id))

    def restore(self, student_id: uuid.UUID) -> models.Student:
        student = self.get(student_id, include_deleted=True)
        if student.deleted_at is None:
            raise ConflictError("Student is not deleted")
        return self.repo.restore(student)

    def list_deleted(self, params: PageParams):
        return self.repo.list_deleted(params)

    def grades(self, student_id: uuid.UUID, params: PageParams, course_id: Optional[uuid.UUID] = None):
        self.get(student_id)
        return self.grade_repo.search(params, student_id=student_id, course_id=course_id)

    def attendance(self, student_id: uuid.UUID, params: PageParams, course_id: Optional[uuid.UUID] = None):
        self.get(student_id)
        return self.attendance_repo.search(params, student_id=student_id, course_id=course_id)

    def export_csv(self, **filters) -> str:
        students = self.repo.all_matching(**filters)
        departments: Dict[uuid.UUID, str] = {}
        rows = []
        for s in students:
            dept_name = ""
            if s.department_id:
                if s.department_id not in departments:
                    dept = self.department_repo.get(s.department_id, include_deleted=True)
                    departments[s.department_id] = dept.name if dept else ""
                dept_name = departments[s.department_id]
            rows.append({
                "ID": s.id,
                "Student ID": s.student_code,
                "First Name": s.user.first_name if s.user else None,
                "Last Name": s.user.last_name if s.user else None,
                "Email": s.user.email if s.user else None,
                "Phone": s.phone,
                "Date of Birth": s.date_of_birth,
                "Gender": s.gender,
                "Address": s.address,
                "Blood Group": s.blood_group,
                "Nationality": s.nationality,
                "Emergency Contact Name": s.emergency_contact_name,
                "Emergency Contact Phone": s.emergency_contact_phone,
                "Emergency Contact Relationship": s.emergency_contact_relationship,
                "Guardian Name": s.guardian_name,
                "Guardian Phone": s.guardian_phone,
                "Guardian Email": s.guardian_email,
                "Guardian Relationship": s.guardian_relationship,
                "Medical Conditions": s.medical_conditions,
                "Allergies": s.allergies,
                "Department": dept_name,
                "Semester": s.semester,
                "Current Year": s.current_year,
                "Current Semester": s.current_semester,
                "Enrollment Date": s.enrollment_date,
                "Status": "Inactive" if s.deleted_at else "Active",
            })
        return students_to_csv(rows)

    def import_csv(self, content: bytes) -> dict:
        """Create one student per CSV row; failures are reported per row, not raised."""
        try:
            rows = parse_students_csv(content)
        except (UnicodeDecodeError, ValueError) as exc:
            raise BadRequestError(str(exc) if isinstance(exc, ValueError) else "CSV must be UTF-8 encoded")
        result = {"success": 0, "failed": 0, "errors": []}
        for row_number, fields in rows:
            try:
                data = schemas.StudentCreate.model_validate(fields)
                self.create(data)
                result["success"] += 1
            except ValidationError as exc:
                self.session.rollback()
                messages = "; ".join(
                    f"{'.'.join(str(p) for p in err['loc'])}: {err['msg']}" for err in exc.errors()
                )
                result["failed"] += 1
                result["errors"].append(f"Row {row_number}: {messages}")
            except (ConflictError, NotFoundError, BadRequestError) as exc:
                self.session.rollback()
                result["failed"] += 1
                result["errors"].append(f"Row {row_number}: {exc.message}")
        logger.info("students_imported %s", json.dumps({"success": result["success"], "failed": result["failed"]}))
        return result

    def _require_ids(self, ids: List[uuid.UUID]):
        if not ids:
            raise BadRequestError("No student IDs provided")

    def bulk_delete(self, ids: List[uuid.UUID]) -> dict:
        self._require_ids(ids)
        students = self.repo.get_many(ids)
        now = models.utcnow()
        for s in students:
            s.deleted_at = now
            s.updated_at = now
            self.session.add(s)
        self.session.commit()
        found = {s.id for s in students}
        return {"affected": len(students), "not_found": [i for i in ids if i not in found]}

    def bulk_activate(self, ids: List[uuid.UUID]) -> dict:
        self._require_ids(ids)
        students = [s for s in self.repo.get_many(ids, include_deleted=True) if s.deleted_at is not None]
        now = models.utcnow()
        for s in students:
            s.deleted_at = None
            s.updated_at = now
            self.session.add(s)
        self.session.commit()
        known = {s.id for s in self.repo.get_many(ids, include_deleted=True)}
        return {"affected": len(students), "not_found": [i for i in ids if i not in known]}

    def bulk_deactivate(self, ids: List[uuid.UUID]) -> dict:
        return self.bulk_delete(ids)


class TeacherService:
    def __init__(self, session: Session):
        self.session = session
        self.repo = repositories.TeacherRepository(session)
        self.user_repo = repositories.UserRepository(session)

    def get(self, teacher_id: uuid.UUID, include_deleted: bool = False) -> models.TeacherProfile:
        teacher = self.repo.get(teacher_id, include_deleted=include_deleted)
        if not teacher:
            raise NotFoundError("Teacher", teacher_id)
        return teacher

    def get_by_user(self, user_id: uuid.UUID) -> models.TeacherProfile:
        teacher = self.repo.get_by_user(user_id, include_deleted=False)
        if not teacher:
            raise NotFoundError("Teacher profile for user", user_id)
        return teacher

    def create(self, data: schemas.TeacherCreate) -> models.TeacherProfile:
        user = self.user_repo.get(data.user_id)
        if not user:
            raise NotFoundError("User", data.user_id)
        if user.role != models.Role.TEACHER:
            raise ConflictError("User must have the teacher role")
        if self.repo.get_by_user(user.id):
            raise ConflictError("Teacher profile already exists for this user")
        if self.repo.get_by_employee_id(data.employee_id):
            raise ConflictError("Employee ID already exists")
        return self.repo.save(models.TeacherProfile(**data.model_dump()))

    def list(self, params: PageParams, is_active: Optional[bool] = None):
        return self.repo.list(params, is_active=is_active)

    def update(self, teacher_id: uuid.UUID, data: schemas.TeacherUpdate) -> models.TeacherProfile:
        teacher = self.get(teacher_id)
        changes = data.model_dump(exclude_unset=True)
        employee_id = changes.get("employee_id")
        if employee_id and employee_id != teacher.employee_id and self.repo.get_by_employee_id(employee_id):
            raise ConflictError("Employee ID already exists")
        return self.repo.save(_apply(teacher, changes))

    def delete(self, teacher_id: uuid.UUID) -> None:
        self.repo.soft_delete(self.get(teacher_id))

    def restore(self, teacher_id: uuid.UUID) -> models.TeacherProfile:
        teacher = self.get(teacher_id, include_deleted=True)
        if teacher.deleted_at is None:
            raise ConflictError("Teacher is not deleted")
        return self.repo.restore(teacher)


class CourseService:
    """Course catalogue and teacher assignment."""
    def __init__(self, session: Session):
        self.session = session
        self.repo = repositories.CourseRepository(session)
        self.user_repo = repositories.UserRepository(session)
        self.department_repo = repositories.DepartmentRepository(session)
        self.enrollment_repo = repositories.EnrollmentRepository(session)
        self.attendance_repo = repositories.AttendanceRepository(session)

    def get(self, course_id: uuid.UUID, include_deleted: bool = False) -> models.Course:
        course = self.repo.get(course_id, include_deleted=include_deleted)
        if not course:
            raise NotFoundError("Course", course_id)
        return course

    def _teachers(self, teacher_ids: List[uuid.UUID]) -> List[models.User]:
        wanted = list(dict.fromkeys(teacher_ids))
        users = [u for u in self.user_repo.get_many(wanted) if u.role == models.Role.TEACHER]
        if len(users) != len(wanted):
            found = {u.id for u in users}
            missing = ", ".join(str(i) for i in wanted if i not in found)
            raise NotFoundError("Teacher", missing)
        return users

    def _check_department(self, department_id: Optional[uuid.UUID]):
        if department_id is not None and not self.department_repo.get(department_id):
            raise NotFoundError("Department", department_id)

    def create(self, data: schemas.CourseCreate, created_by: Optional[uuid.UUID] = None) -> models.Course:
        if self.repo.get_by_code(data.course_code):
            raise ConflictError("Course code already exists")
        self._check_department(data.department_id)
        course = models.Course(**data.model_dump(exclude={"teacher_ids"}), created_by=created_by)
        if data.teacher_ids:
            course.teachers = self._teachers(data.teacher_ids)
        return self.repo.save(course)

    def list(self, params: PageParams, **filters):
        return self.repo.search(params, **filters)

    def update(self, course_id: uuid.UUID, data: schemas.CourseUpdate) -> models.Course:
        course = self.get(course_id)
        changes = data.model_dump(exclude_unset=True)
        teacher_ids = changes.pop("teacher_ids", None)
        code = changes.get("course_code")
        if code and code != course.course_code and self.repo.get_by_code(code):
            raise ConflictError("Course code already exists")
        self._check_department(changes.get("department_id"))
        _apply(course, changes)
        if teacher_ids is not None:
            course.teachers = self._teachers(teacher_ids) if teacher_ids else []
        return self.repo.save(course)

    def delete(self, course_id: uuid.UUID) -> None:
        self.repo.soft_delete(self.get(course_id))

    def restore(self, course_id: uuid.UUID) -> models.Course:
        course = self.get(course_id, include_deleted=True)
        if course.deleted_at is None:
            raise ConflictError("Course is not deleted")
        return self.repo.restore(course)

    def list_deleted(self, params: PageParams):
        return self.repo.list_deleted(params)

    def students(self, course_id: uuid.UUID, params: PageParams, status: Optional[models.EnrollmentStatus] = None):
        self.get(course_id)
        return self.enrollment_repo.search(params, course_id=course_id, status=status)

    def attendance(self, course_id: uuid.UUID, params: PageParams, **filters):
        self.get(course_id)
        return self.attendance_repo.search(params, course_id=course_id, **filters)


class EnrollmentService:
    """Enrollment lifecycle with capacity checks and final grading."""
    def __init__(self, session: Session):
        self.session = session
        self.repo = repositories.EnrollmentRepository(session)
        self.student_repo = repositories.StudentRepository(session)
        self.course_repo = repositories.CourseRepository(session)
        self.grade_repo = repositories.GradeRepository(session)

    def get(self, enrollment_id: uuid.UUID) -> models.Enrollment:
        enrollment = self.repo.get(enrollment_id)
        if not enrollment:
            raise NotFoundError("Enrollment", enrollment_id)
        return enrollment

    def create(self, data: schemas.EnrollmentCreate) -> models.Enrollment:
        if not self.student_repo.get(data.student_id):
            raise NotFoundError("Student", data.student_id)
        course = self.course_repo.get(data.course_id)
        if not course:
            raise NotFoundError("Course", data.course_id)
        if self.repo.get_pair(data.student_id, data.course_id):
            raise ConflictError("Student is already enrolled in this course")
        if self.course_repo.count_active_enrollments(course.id) >= course.max_students:
            raise ConflictError("Course is full")
        fields = data.model_dump(exclude_none=True)
        return self.repo.save(models.Enrollment(**fields))

    def list(self, params: PageParams, **filters):
        return self.repo.search(params, **filters)

    def update(self, enrollment_id: uuid.UUID, data: schemas.EnrollmentUpdate) -> models.Enrollment:
        enrollment = self.get(enrollment_id)
        changes = data.model_dump(exclude_unset=True)
        if "grade" in changes:
            if changes["grade"] is None:
                changes.setdefault("grade_points", None)
            else:
                changes["grade"] = changes["grade"].upper()
                changes["grade_points"] = grade_points_for(changes["grade"], changes.get("grade_points"))
        return self.repo.save(_apply(enrollment, changes))

    def update_status(self, enrollment_id: uuid.UUID, status: models.EnrollmentStatus) -> models.Enrollment:
        enrollment = self.get(enrollment_id)
        enrollment.status = status
        return self.repo.save(enrollment)

    def record_final_grade(
        self, enrollment_id: uuid.UUID, data: schemas.EnrollmentGradeIn, graded_by: uuid.UUID
    ) -> Tuple[models.Enrollment, models.Grade]:
        """Set the letter grade and store a matching `final` assessment."""
        enrollment = self.get(enrollment_id)
        points = grade_points_for(data.grade, data.grade_points)
        enrollment.grade = data.grade
        enrollment.grade_points = points
        self.session.add(enrollment)
        grade = models.Grade(
            student_id=enrollment.student_id,
            course_id=enrollment.course_id,
            assessment_type="final",
            assessment_name="Final Grade",
            max_score=4.0,
            score_obtained=points,
            weightage=100.0,
            graded_by=graded_by,
        )
        self.session.add(grade)
        self.session.commit()
        self.session.refresh(enrollment)
        self.session.refresh(grade)
        return enrollment, grade

    def delete(self, enrollment_id: uuid.UUID) -> None:
        self.repo.delete(self.get(enrollment_id))


class GradeService:
    def __init__(self, session: Session):
        self.session = session
        self.repo = repositories.GradeRepository(session)
        self.student_repo = repositories.StudentRepository(session)
        self.course_repo = repositories.CourseRepository(session)

    def get(self, grade_id: uuid.UUID) -> models.Grade:
        grade = self.repo.get(grade_id)
        if not grade:
            raise NotFoundError("Grade", grade_id)
        return grade

    @staticmethod
    def _check_score(score: float, max_score: float):
        if score > max_score:
            raise BadRequestError("Score obtained cannot exceed max score")

    def create(self, data: schemas.GradeCreate, graded_by: uuid.UUID) -> models.Grade:
        if not self.student_repo.get(data.student_id):
            raise NotFoundError("Student", data.student_id)
        if not self.course_repo.get(data.course_id):
            raise NotFoundError("Course", data.course_id)
        self._check_score(data.score_obtained, data.max_score)
        fields = data.model_dump()
        fields["graded_by"] = data.graded_by or graded_by
        return self.repo.save(models.Grade(**fields))

    def list(self, params: PageParams, **filters):
        return self.repo.search(params, **filters)

    def list_for_course(self, course_id: uuid.UUID, params: PageParams, assessment_type: Optional[str] = None):
        if not self.course_repo.get(course_id):
            raise NotFoundError("Course", course_id)
        return self.repo.search(params, course_id=course_id, assessment_type=assessment_type)

    def update(self, grade_id: uuid.UUID, data: schemas.GradeUpdate, graded_by: uuid.UUID) -> models.Grade:
        grade = self.get(grade_id)
        changes = data.model_dump(exclude_unset=True)
        self._check_score(
            changes.get("score_obtained", grade.score_obtained),
            changes.get("max_score", grade.max_score),
        )
        _apply(grade, changes)
        grade.graded_by = graded_by
        grade.graded_at = models.utcnow()
        return self.repo.save(grade)

    def delete(self, grade_id: uuid.UUID) -> None:
        self.repo.delete(self.get(grade_id))


class AttendanceService:
    """Daily attendance records and per-course summaries."""
    def __init__(self, session: Session):
        self.session = session
        self.repo = repositories.AttendanceRepository(session)
        self.student_repo = repositories.StudentRepository(session)
        self.course_repo = repositories.CourseRepository(session)

    def get(self, attendance_id: uuid.UUID) -> models.Attendance:
        record = self.repo.get(attendance_id)
        if not record:
            raise NotFoundError("Attendance record", attendance_id)
        return record

    def create(self, data: schemas.AttendanceCreate, recorded_by: uuid.UUID) -> models.Attendance:
        if not self.student_repo.get(data.student_id):
            raise NotFoundError("Student", data.student_id)
        if not self.course_repo.get(data.course_id):
            raise NotFoundError("Course", data.course_id)
        if self.repo.get_for_day(data.student_id, data.course_id, data.date):
            raise ConflictError("Attendance record already exists for this date")
        return self.repo.save(models.Attendance(**data.model_dump(), recorded_by=recorded_by))

    def bulk_record(self, data: schemas.BulkAttendanceIn, recorded_by: uuid.UUID) -> List[models.Attendance]:
        """Upsert one record per listed student for a course and date; unknown students are skipped."""
        if not self.course_repo.get(data.course_id):
            raise NotFoundError("Course", data.course_id)
        known = {s.id for s in self.student_repo.get_many([r.student_id for r in data.records])}
        saved = []
        for item in data.records:
            if item.student_id not in known:
                logger.info("attendance_skip_unknown_student %s", item.student_id)
                continue
            record = self.repo.get_for_day(item.student_id, data.course_id, data.date)
            if record is None:
                record = models.Attendance(student_id=item.student_id, course_id=data.course_id, date=data.date,
                                           status=item.status)
            record.status = item.status
            record.notes = item.notes
            record.recorded_by = recorded_by
            self.session.add(record)
            saved.append(record)
        self.session.commit()
        for record in saved:
            self.session.refresh(record)
        return saved

    def list(self, params: PageParams, **filters):
        return self.repo.search(params, **filters)

    def update(self, attendance_id: uuid.UUID, data: schemas.AttendanceUpdate) -> models.Attendance:
        record = self.get(attendance_id)
        return self.repo.save(_apply(record, data.model_dump(exclude_unset=True)))

    def delete(self, attendance_id: uuid.UUID) -> None:
        self.repo.delete(self.get(attendance_id))

    def course_report(self, course_id: uuid.UUID) -> List[dict]:
        """Per-student status counts; the rate counts late arrivals as attended."""
        if not self.course_repo.get(course_id):
            raise NotFoundError("Course", course_id)
        counts: Dict[uuid.UUID, Dict[str, int]] = defaultdict(lambda: defaultdict(int))
        for record in self.repo.list_for_course(course_id):
            counts[record.student_id][record.status.value] += 1
        students = {s.id: s for s in self.student_repo.get_many(counts.keys(), include_deleted=True)}
        report = []
        for student_id, c in counts.items():
            total = sum(c.values())
            attended = c["present"] + c["late"]
            student = students.get(student_id)
            report.append({
                "student_id": student_id,
                "student_code": student.student_code if student else "",
                "total": total,
                "present": c["present"],
                "absent": c["absent"],
                "late": c["late"],
                "excused": c["excused"],
                "attendance_rate": round(attended / total * 100, 2) if total else 0.0,
            })
        report.sort(key=lambda r: r["student_code"])
        return report


class ClassroomService:
    def __init__(self, session: Session):
        self.session = session
        self.repo = repositories.ClassroomRepository(session)

    def get(self, classroom_id: uuid.UUID, include_deleted: bool = False) -> models.Classroom:
        room = self.repo.get(classroom_id, include_deleted=include_deleted)
        if not room:
            raise NotFoundError("Classroom", classroom_id)
        return room

    def create(self, data: schemas.ClassroomCreate) -> models.Classroom:
        if self.repo.get_by_room_number(data.room_number):
            raise ConflictError("Classroom with this room number already exists")
        return self.repo.save(models.Classroom(**data.model_dump()))

    def list(self, params: PageParams):
        return self.repo.list(params)

    def update(self, classroom_id: uuid.UUID, data: schemas.ClassroomUpdate) -> models.Classroom:
        room = self.get(classroom_id)
        changes = data.model_dump(exclude_unset=True)
        number = changes.get("room_number")
        if number and number != room.room_number and self.repo.get_by_room_number(number):
            raise ConflictError("Classroom with this room number already exists")
        return self.repo.save(_apply(room, changes))

    def delete(self, classroom_id: uuid.UUID) -> None:
        room = self.get(classroom_id)
        if self.repo.count_schedules(room.id):
            raise ConflictError("Cannot delete classroom with existing schedules")
        self.repo.soft_delete(room)

    def restore(self, classroom_id: uuid.UUID) -> models.Classroom:
        room = self.get(classroom_id, include_deleted=True)
        if room.deleted_at is None:
            raise ConflictError("Classroom is not deleted")
        return self.repo.restore(room)


class ScheduleService:
    """Weekly timetable slots; a classroom cannot be double-booked."""
    def __init__(self, session: Session):
        self.session = session
        self.repo = repositories.ScheduleRepository(session)
        self.course_repo = repositories.CourseRepository(session)
        self.classroom_repo = repositories.ClassroomRepository(session)

    def get(self, schedule_id: uuid.UUID, include_deleted: bool = False) -> models.Schedule:
        schedule = self.repo.get(schedule_id, include_deleted=include_deleted)
        if not schedule:
            raise NotFoundError("Schedule", schedule_id)
        return schedule

    def _validate(self, course_id, classroom_id, day_of_week, start_time, end_time, exclude_id=None):
        if not self.course_repo.get(course_id):
            raise NotFoundError("Course", course_id)
        if not self.classroom_repo.get(classroom_id):
            raise NotFoundError("Classroom", classroom_id)
        if start_time >= end_time:
            raise BadRequestError("Start time must be before end time")
        if self.repo.find_conflict(classroom_id, day_of_week, start_time, end_time, exclude_id=exclude_id):
            raise ConflictError("Schedule conflict: classroom is already booked at this time")

    def create(self, data: schemas.ScheduleCreate) -> models.Schedule:
        self._validate(data.course_id, data.classroom_id, data.day_of_week, data.start_time, data.end_time)
        return self.repo.save(models.Schedule(**data.model_dump()))

    def list(self, params: PageParams, teacher_id: Optional[uuid.UUID] = None):
        return self.repo.list(params, teacher_id=teacher_id)

    def list_for_course(self, course_id: uuid.UUID) -> List[models.Schedule]:
        if not self.course_repo.get(course_id):
            raise NotFoundError("Course", course_id)
        return self.repo.list_for_course(course_id)

    def list_for_classroom(self, classroom_id: uuid.UUID) -> List[models.Schedule]:
        if not self.classroom_repo.get(classroom_id):
            raise NotFoundError("Classroom", classroom_id)
        return self.repo.list_for_classroom(classroom_id)

    def update(self, schedule_id: uuid.UUID, data: schemas.ScheduleUpdate) -> models.Schedule:
        schedule = self.get(schedule_id)
        changes = data.model_dump(exclude_unset=True)
        merged = {
            key: changes.get(key, getattr(schedule, key))
            for key in ("course_id", "classroom_id", "day_of_week", "start_time", "end_time")
        }
        self._validate(**merged, exclude_id=schedule.id)
        return self.repo.save(_apply(schedule, changes))

    def delete(self, schedule_id: uuid.UUID) -> None:
        self.repo.soft_delete(self.get(schedule_id))

    def restore(self, schedule_id: uuid.UUID) -> models.Schedule:
        schedule = self.get(schedule_id, include_deleted=True)
        if schedule.deleted_at is None:
            raise ConflictError("Schedule is not deleted")
        self._validate(
            schedule.course_id, schedule.classroom_id, schedule.day_of_week,
            schedule.start_time, schedule.end_time, exclude_id=schedule.id,
        )
        return self.repo.restore(schedule)


class AuditService:
    """Read access to the audit trail and the single write path used by the middleware."""
    SENSITIVE_KEYS = {"password", "password_hash", "refresh_token", "token", "new_password"}

    def __init__(self, session: Session):
        self.session = session
        self.repo = repositories.AuditLogRepository(session)

    @classmethod
    def scrub(cls, payload):
        if isinstance(payload, dict):
            return {k: cls.scrub(v) for k, v in payload.items() if k not in cls.SENSITIVE_KEYS}
        if isinstance(payload, list):
            return [cls.scrub(v) for v in payload]
        return payload

    def record(self, user_id: Optional[uuid.UUID], action: str, resource: str,
               resource_id: Optional[str] = None, payload=None) -> models.AuditLog:
        log = models.AuditLog(
            user_id=user_id,
            action=action,
            resource=resource,
            resource_id=resource_id,
            payload=self.scrub(payload),
        )
        return self.repo.create(log)

    def get(self, log_id: uuid.UUID) -> models.AuditLog:
        log = self.repo.get(log_id)
        if not log:
            raise NotFoundError("Audit log", log_id)
        return log

    def list(self, params: PageParams, **filters):
        return self.repo.search(params, **filters)

    def list_for_user(self, user_id: uuid.UUID, limit: int = 50) -> List[models.AuditLog]:
        return self.repo.list_for_user(user_id, limit)


TREND_MONTHS = 6
ATTENDED_STATUSES = (models.AttendanceStatus.PRESENT.value, models.AttendanceStatus.LATE.value)


def schedule_day(day: date) -> int:
    """`Schedule.day_of_week` for a calendar day (0 is Sunday)."""
    return day.isoweekday() % 7


def month_keys(today: date, count: int = TREND_MONTHS) -> List[str]:
    """The last `count` months up to `today` as "YYYY-MM", oldest first."""
    year, month = today.year, today.month
    keys = []
    for _ in range(count):
        keys.append(f"{year:04d}-{month:02d}")
        month -= 1
        if month == 0:
            year, month = year - 1, 12
    return keys[::-1]


def _attendance_rate(counts: Dict[str, int]) -> float:
    total = sum(counts.values())
    attended = sum(counts.get(status, 0) for status in ATTENDED_STATUSES)
    return round(attended / total * 100, 2) if total else 0.0


def _attendance_series(counts: Dict[str, int]) -> List[dict]:
    return [{"status": s.value, "count": counts.get(s.value, 0)} for s in models.AttendanceStatus]


def _grade_series(counts: Dict[str, int]) -> List[dict]:
    order = {grade: i for i, grade in enumerate(GRADE_POINTS)}
    ranked = sorted(counts.items(), key=lambda item: (order.get(item[0], len(order)), item[0]))
    return [{"grade": grade, "count": n} for grade, n in ranked]


class AnalyticsService:
    """Dashboard figures for administrators, teachers and students.

    Attendance rates count late arrivals as attended, as the course
    report does. Trends cover the last six calendar months.
    """
    def __init__(self, session: Session):
        self.session = session
        self.repo = repositories.AnalyticsRepository(session)
        self.student_repo = repositories.StudentRepository(session)

    def _score_trend(self, keys: List[str], student_id: Optional[uuid.UUID] = None) -> List[dict]:
        start = datetime(int(keys[0][:4]), int(keys[0][5:]), 1, tzinfo=timezone.utc)
        percents: Dict[str, List[float]] = defaultdict(list)
        for graded_at, score, max_score in self.repo.scores_since(start, student_id=student_id):
            if max_score:
                percents[models.as_utc(graded_at).strftime("%Y-%m")].append(score / max_score * 100)
        trend = []
        for key in keys:
            values = percents.get(key)
            trend.append({"month": key, "average_score": round(sum(values) / len(values), 2) if values else None})
        return trend

    def _student_for(self, user: models.User) -> models.Student:
        student = self.student_repo.get_by_user(user.id)
        if not student:
            raise NotFoundError("Student record for user", user.id)
        return student

    def admin_stats(self) -> dict:
        return {
            "total_students": self.repo.count_students(),
            "total_teachers": self.repo.count_teachers(),
            "active_courses": self.repo.count_active_courses(),
            "avg_attendance": _attendance_rate(self.repo.attendance_by_status()),
        }

    def admin_charts(self, today: Optional[date] = None) -> dict:
        keys = month_keys(today or date.today())
        since = date(int(keys[0][:4]), int(keys[0][5:]), 1)
        enrolled = Counter(d.strftime("%Y-%m") for d in self.repo.enrollment_dates(since))
        return {
            "enrollment_trend": [{"month": key, "enrollments": enrolled.get(key, 0)} for key in keys],
            "attendance": _attendance_series(self.repo.attendance_by_status()),
            "grade_distribution": _grade_series(self.repo.grade_distribution()),
            "performance_trend": self._score_trend(keys),
        }

    def teacher_stats(self, user: models.User, today: Optional[date] = None) -> dict:
        course_ids = self.repo.course_ids_for_teacher(user.id)
        return {
            "my_courses": len(course_ids),
            "total_students": self.repo.count_students_in(course_ids),
            "classes_today": self.repo.count_classes_on(schedule_day(today or date.today()), course_ids),
            "pending_grades": self.repo.count_pending_grades(course_ids),
        }

    def teacher_charts(self, user: models.User) -> dict:
        course_ids = self.repo.course_ids_for_teacher(user.id)
        return {
            "attendance": _attendance_series(self.repo.attendance_by_status(course_ids=course_ids)),
            "grade_distribution": _grade_series(self.repo.grade_distribution(course_ids=course_ids)),
        }

    def student_stats(self, user: models.User, today: Optional[date] = None) -> dict:
        student = self._student_for(user)
        enrollments = self.repo.enrollments_for_student(student.id)
        active = [e.course_id for e in enrollments if e.status == models.EnrollmentStatus.ACTIVE]
        points = [e.grade_points for e in enrollments if e.grade_points is not None]
        return {
            "enrolled_courses": len(active),
            "attendance_rate": _attendance_rate(self.repo.attendance_by_status(student_id=student.id)),
            "gpa": round(sum(points) / len(points), 2) if points else None,
            "classes_today": self.repo.count_classes_on(schedule_day(today or date.today()), active),
        }

    def student_charts(self, user: models.User, today: Optional[date] = None) -> dict:
        student = self._student_for(user)
        return {
            "attendance": _attendance_series(self.repo.attendance_by_status(student_id=student.id)),
            "grade_progress": self._score_trend(month_keys(today or date.today()), student_id=student.id),
            "course_grades": [
                {
                    "course_id": e.course_id,
                    "course_code": e.course.course_code,
                    "status": e.status.value,
                    "grade": e.grade,
                    "grade_points": e.grade_points,
                }
                for e in self.repo.enrollments_for_student(student.id)
            ],
        }
