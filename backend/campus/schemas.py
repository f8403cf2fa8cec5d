"""Pydantic request/response schemas used by the API.

Schemas keep API input/output shapes stable and provide validation for
router handlers and tests. Every input schema derives from `InputModel`,
which strips script-injection patterns from incoming strings before
field validation runs. Output schemas read straight from the SQLModel
rows (`from_attributes`) and never expose secrets such as password or
token hashes.
"""

import uuid
from datetime import date, datetime, time
from typing import Any, ClassVar, FrozenSet, List, Optional

from pydantic import BaseModel, ConfigDict, EmailStr, Field, field_validator, model_validator

from .models import (
    AttendanceStatus,
    ClassroomType,
    EnrollmentStatus,
    Gender,
    Role,
    TeacherRank,
)
from .utils import validators
from .utils.sanitize import sanitize


class InputModel(BaseModel):
    """Base for request bodies: sanitizes strings and rejects unknown keys."""
    model_config = ConfigDict(extra="forbid", str_strip_whitespace=True)

    @model_validator(mode="before")
    @classmethod
    def strip_markup(cls, data: Any) -> Any:
        return sanitize(data)


class UpdateModel(InputModel):
    """Base for partial updates.

    Omitted keys leave a column alone. An explicit null is accepted only
    for columns listed in `nullable_fields` and clears them.
    """
    nullable_fields: ClassVar[FrozenSet[str]] = frozenset()

    @model_validator(mode="after")
    def reject_nulls(self):
        nulls = sorted(
            name for name in self.model_fields_set
            if getattr(self, name) is None and name not in self.nullable_fields
        )
        if nulls:
            raise ValueError(f"{', '.join(nulls)} cannot be null")
        return self


class OutputModel(BaseModel):
    model_config = ConfigDict(from_attributes=True)


def _lower_email(value):
    if isinstance(value, str):
        if len(value) > 100:
            raise ValueError("Email must be at most 100 characters")
        return value.lower()
    return value


# ---------------------------------------------------------------- users/auth

class UserSummary(OutputModel):
    id: uuid.UUID
    email: str
    username: str
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    role: Role


class UserOut(UserSummary):
    is_active: bool
    email_verified: bool
    created_at: datetime
    updated_at: datetime
    deleted_at: Optional[datetime] = None


class RegisterIn(InputModel):
    """Payload for self-registration; `username` defaults to the email's local part."""
    email: EmailStr
    password: str
    username: Optional[str] = None
    first_name: Optional[str] = Field(default=None, max_length=50)
    last_name: Optional[str] = Field(default=None, max_length=50)
    role: Optional[Role] = None

    @field_validator("email")
    @classmethod
    def normalize_email(cls, v):
        return _lower_email(v)

    @field_validator("password")
    @classmethod
    def check_password(cls, v):
        return validators.strong_password(v)

    @field_validator("username")
    @classmethod
    def check_username(cls, v):
        return validators.username(v) if v is not None else v


class LoginIn(InputModel):
    email: EmailStr
    password: str = Field(min_length=1)

    @field_validator("email")
    @classmethod
    def normalize_email(cls, v):
        return _lower_email(v)


class RefreshTokenIn(InputModel):
    user_id: uuid.UUID
    refresh_token: str = Field(min_length=1)


class ForgotPasswordIn(InputModel):
    email: EmailStr

    @field_validator("email")
    @classmethod
    def normalize_email(cls, v):
        return _lower_email(v)


class ResetPasswordIn(InputModel):
    token: str = Field(min_length=1)
    new_password: str

    @field_validator("new_password")
    @classmethod
    def check_password(cls, v):
        return validators.strong_password(v)


class VerifyEmailIn(InputModel):
    token: str = Field(min_length=1)


class TokenOut(BaseModel):
    """Authentication response containing an access/refresh token pair."""
    access_token: str
    refresh_token: str
    token_type: str = "bearer"
    user: UserSummary


class UserCreate(InputModel):
    email: EmailStr
    username: str
    password: str
    first_name: Optional[str] = Field(default=None, max_length=50)
    last_name: Optional[str] = Field(default=None, max_length=50)
    role: Role = Role.STUDENT
    is_active: bool = True

    @field_validator("email")
    @classmethod
    def normalize_email(cls, v):
        return _lower_email(v)

    @field_validator("username")
    @classmethod
    def check_username(cls, v):
        return validators.username(v)

    @field_validator("password")
    @classmethod
    def check_password(cls, v):
        return validators.strong_password(v)


class UserUpdate(UpdateModel):
    nullable_fields = frozenset({"first_name", "last_name"})

    email: Optional[EmailStr] = None
    username: Optional[str] = None
    password: Optional[str] = None
    first_name: Optional[str] = Field(default=None, max_length=50)
    last_name: Optional[str] = Field(default=None, max_length=50)
    role: Optional[Role] = None
    is_active: Optional[bool] = None

    @field_validator("email")
    @classmethod
    def normalize_email(cls, v):
        return _lower_email(v)

    @field_validator("username")
    @classmethod
    def check_username(cls, v):
        return validators.username(v) if v is not None else v

    @field_validator("password")
    @classmethod
    def check_password(cls, v):
        return validators.strong_password(v) if v is not None else v


# ---------------------------------------------------------------- organisation

class FacultyCreate(InputModel):
    name: str = Field(min_length=2, max_length=100)
    code: str = Field(min_length=2, max_length=20)
    dean_id: Optional[uuid.UUID] = None

    @field_validator("code")
    @classmethod
    def normalize_code(cls, v):
        return v.upper() if v else v


class FacultyUpdate(UpdateModel):
    nullable_fields = frozenset({"dean_id"})

    name: Optional[str] = Field(default=None, min_length=2, max_length=100)
    code: Optional[str] = Field(default=None, min_length=2, max_length=20)
    dean_id: Optional[uuid.UUID] = None

    @field_validator("code")
    @classmethod
    def normalize_code(cls, v):
        return v.upper() if v else v


class FacultyOut(OutputModel):
    id: uuid.UUID
    name: str
    code: str
    dean_id: Optional[uuid.UUID] = None
    created_at: datetime
    updated_at: datetime
    deleted_at: Optional[datetime] = None


class DepartmentCreate(InputModel):
    name: str = Field(min_length=2, max_length=100)
    code: str = Field(min_length=2, max_length=20)
    faculty_id: uuid.UUID

    @field_validator("code")
    @classmethod
    def normalize_code(cls, v):
        return v.upper() if v else v


class DepartmentUpdate(UpdateModel):
    name: Optional[str] = Field(default=None, min_length=2, max_length=100)
    code: Optional[str] = Field(default=None, min_length=2, max_length=20)
    faculty_id: Optional[uuid.UUID] = None

    @field_validator("code")
    @classmethod
    def normalize_code(cls, v):
        return v.upper() if v else v


class DepartmentOut(OutputModel):
    id: uuid.UUID
    name: str
    code: str
    faculty_id: uuid.UUID
    created_at: datetime
    updated_at: datetime
    deleted_at: Optional[datetime] = None


class AcademicTermCreate(InputModel):
    name: str = Field(min_length=1, max_length=50)
    start_date: date
    end_date: date
    is_active: bool = False


class AcademicTermUpdate(UpdateModel):
    name: Optional[str] = Field(default=None, min_length=1, max_length=50)
    start_date: Optional[date] = None
    end_date: Optional[date] = None
    is_active: Optional[bool] = None


class AcademicTermOut(OutputModel):
    id: uuid.UUID
    name: str
    start_date: date
    end_date: date
    is_active: bool
    created_at: datetime
    updated_at: datetime
    deleted_at: Optional[datetime] = None


# ---------------------------------------------------------------- students

class _StudentFields(InputModel):
    date_of_birth: Optional[date] = None
    gender: Optional[Gender] = None
    address: Optional[str] = Field(default=None, max_length=500)
    phone: Optional[str] = Field(default=None, min_length=6, max_length=20)
    emergency_contact: Optional[str] = Field(default=None, max_length=100)
    department_id: Optional[uuid.UUID] = None
    semester: Optional[int] = Field(default=None, ge=1, le=8)
    blood_group: Optional[str] = Field(default=None, max_length=5)
    nationality: Optional[str] = Field(default=None, max_length=50)
    emergency_contact_name: Optional[str] = Field(default=None, max_length=100)
    emergency_contact_phone: Optional[str] = Field(default=None, max_length=20)
    emergency_contact_relationship: Optional[str] = Field(default=None, max_length=50)
    guardian_name: Optional[str] = Field(default=None, max_length=100)
    guardian_phone: Optional[str] = Field(default=None, max_length=20)
    guardian_email: Optional[EmailStr] = None
    guardian_relationship: Optional[str] = Field(default=None, max_length=50)
    medical_conditions: Optional[str] = None
    allergies: Optional[str] = None
    current_year: Optional[int] = Field(default=None, ge=1, le=8)
    current_semester: Optional[int] = Field(default=None, ge=1, le=8)

    @field_validator("date_of_birth")
    @classmethod
    def check_date_of_birth(cls, v):
        return validators.min_age(v, 16)


class StudentCreate(_StudentFields):
    student_code: str
    enrollment_date: date
    user_id: Optional[uuid.UUID] = None

    @field_validator("student_code")
    @classmethod
    def check_student_code(cls, v):
        return validators.student_code(v)


class StudentUpdate(_StudentFields, UpdateModel):
    nullable_fields = frozenset(_StudentFields.model_fields) | {"user_id"}

    student_code: Optional[str] = None
    enrollment_date: Optional[date] = None
    user_id: Optional[uuid.UUID] = None

    @field_validator("student_code")
    @classmethod
    def check_student_code(cls, v):
        return validators.student_code(v) if v is not None else v


class StudentOut(OutputModel):
    id: uuid.UUID
    user_id: Optional[uuid.UUID] = None
    student_code: str
    date_of_birth: Optional[date] = None
    gender: Optional[Gender] = None
    address: Optional[str] = None
    phone: Optional[str] = None
    emergency_contact: Optional[str] = None
    enrollment_date: date
    department_id: Optional[uuid.UUID] = None
    semester: Optional[int] = None
    blood_group: Optional[str] = None
    nationality: Optional[str] = None
    emergency_contact_name: Optional[str] = None
    emergency_contact_phone: Optional[str] = None
    emergency_contact_relationship: Optional[str] = None
    guardian_name: Optional[str] = None
    guardian_phone: Optional[str] = None
    guardian_email: Optional[str] = None
    guardian_relationship: Optional[str] = None
    medical_conditions: Optional[str] = None
    allergies: Optional[str] = None
    current_year: Optional[int] = None
    current_semester: Optional[int] = None
    created_at: datetime
    updated_at: datetime
    deleted_at: Optional[datetime] = None
    user: Optional[UserSummary] = None


class BulkIdsIn(InputModel):
    ids: List[uuid.UUID]


class BulkResultOut(BaseModel):
    affected: int
    not_found: List[uuid.UUID] = []


class ImportResultOut(BaseModel):
    success: int
    failed: int
    errors: List[str]


# ---------------------------------------------------------------- teachers

class TeacherCreate(InputModel):
    user_id: uuid.UUID
    employee_id: str = Field(min_length=2, max_length=20)
    rank: TeacherRank = TeacherRank.LECTURER
    specialization: Optional[str] = Field(default=None, max_length=100)
    office_location: Optional[str] = Field(default=None, max_length=100)
    office_hours: Optional[str] = Field(default=None, max_length=100)
    phone: Optional[str] = Field(default=None, max_length=20)
    bio: Optional[str] = None
    hire_date: Optional[date] = None


class TeacherUpdate(UpdateModel):
    nullable_fields = frozenset({"specialization", "office_location", "office_hours", "phone", "bio", "hire_date"})

    employee_id: Optional[str] = Field(default=None, min_length=2, max_length=20)
    rank: Optional[TeacherRank] = None
    specialization: Optional[str] = Field(default=None, max_length=100)
    office_location: Optional[str] = Field(default=None, max_length=100)
    office_hours: Optional[str] = Field(default=None, max_length=100)
    phone: Optional[str] = Field(default=None, max_length=20)
    bio: Optional[str] = None
    hire_date: Optional[date] = None
    is_active: Optional[bool] = None


class TeacherOut(OutputModel):
    id: uuid.UUID
    user_id: uuid.UUID
    employee_id: str
    rank: TeacherRank
    specialization: Optional[str] = None
    office_location: Optional[str] = None
    office_hours: Optional[str] = None
    phone: Optional[str] = None
    bio: Optional[str] = None
    hire_date: Optional[date] = None
    is_active: bool
    created_at: datetime
    updated_at: datetime
    deleted_at: Optional[datetime] = None
    user: Optional[UserSummary] = None


# ---------------------------------------------------------------- courses

class CourseCreate(InputModel):
    course_code: str = Field(min_length=2, max_length=20)
    course_name: str = Field(min_length=2, max_length=100)
    description: Optional[str] = None
    credits: int = Field(ge=1, le=6)
    department_id: Optional[uuid.UUID] = None
    semester: Optional[int] = Field(default=None, ge=1, le=8)
    max_students: int = Field(default=50, ge=1, le=200)
    is_active: bool = True
    teacher_ids: Optional[List[uuid.UUID]] = None

    @field_validator("course_code")
    @classmethod
    def normalize_course_code(cls, v):
        return v.upper() if v else v


class CourseUpdate(UpdateModel):
    nullable_fields = frozenset({"description", "department_id", "semester"})

    course_code: Optional[str] = Field(default=None, min_length=2, max_length=20)
    course_name: Optional[str] = Field(default=None, min_length=2, max_length=100)
    description: Optional[str] = None
    credits: Optional[int] = Field(default=None, ge=1, le=6)
    department_id: Optional[uuid.UUID] = None
    semester: Optional[int] = Field(default=None, ge=1, le=8)
    max_students: Optional[int] = Field(default=None, ge=1, le=200)
    is_active: Optional[bool] = None
    teacher_ids: Optional[List[uuid.UUID]] = None

    @field_validator("course_code")
    @classmethod
    def normalize_course_code(cls, v):
        return v.upper() if v else v


class CourseOut(OutputModel):
    id: uuid.UUID
    course_code: str
    course_name: str
    description: Optional[str] = None
    credits: int
    department_id: Optional[uuid.UUID] = None
    semester: Optional[int] = None
    max_students: int
    is_active: bool
    created_by: Optional[uuid.UUID] = None
    created_at: datetime
    updated_at: datetime
    deleted_at: Optional[datetime] = None
    teachers: List[UserSummary] = []


# ---------------------------------------------------------------- enrollments

class EnrollmentCreate(InputModel):
    student_id: uuid.UUID
    course_id: uuid.UUID
    enrollment_date: Optional[date] = None
    status: EnrollmentStatus = EnrollmentStatus.ACTIVE


class EnrollmentUpdate(UpdateModel):
    nullable_fields = frozenset({"grade", "grade_points"})

    status: Optional[EnrollmentStatus] = None
    grade: Optional[str] = Field(default=None, min_length=1, max_length=2)
    grade_points: Optional[float] = Field(default=None, ge=0, le=4)
    attendance_percentage: Optional[float] = Field(default=None, ge=0, le=100)


class EnrollmentStatusIn(InputModel):
    status: EnrollmentStatus


class EnrollmentGradeIn(InputModel):
    grade: str = Field(min_length=1, max_length=2)
    grade_points: Optional[float] = Field(default=None, ge=0, le=4)

    @field_validator("grade")
    @classmethod
    def normalize_grade(cls, v):
        return v.upper()


class EnrollmentOut(OutputModel):
    id: uuid.UUID
    student_id: uuid.UUID
    course_id: uuid.UUID
    enrollment_date: date
    status: EnrollmentStatus
    grade: Optional[str] = None
    grade_points: Optional[float] = None
    attendance_percentage: float
    created_at: datetime


class StudentDetailOut(StudentOut):
    enrollments: List[EnrollmentOut] = []


class EnrolledStudentOut(EnrollmentOut):
    student: Optional[StudentOut] = None


# ---------------------------------------------------------------- grades

class GradeCreate(InputModel):
    student_id: uuid.UUID
    course_id: uuid.UUID
    assessment_type: str = Field(min_length=1, max_length=50)
    assessment_name: str = Field(min_length=1, max_length=100)
    max_score: float = Field(ge=1)
    score_obtained: float = Field(ge=0)
    weightage: float = Field(default=100, ge=1, le=100)
    graded_by: Optional[uuid.UUID] = None


class GradeUpdate(UpdateModel):
    assessment_type: Optional[str] = Field(default=None, min_length=1, max_length=50)
    assessment_name: Optional[str] = Field(default=None, min_length=1, max_length=100)
    max_score: Optional[float] = Field(default=None, ge=1)
    score_obtained: Optional[float] = Field(default=None, ge=0)
    weightage: Optional[float] = Field(default=None, ge=1, le=100)


class GradeOut(OutputModel):
    id: uuid.UUID
    student_id: uuid.UUID
    course_id: uuid.UUID
    assessment_type: str
    assessment_name: str
    max_score: float
    score_obtained: float
    weightage: float
    graded_by: Optional[uuid.UUID] = None
    graded_at: datetime


# ---------------------------------------------------------------- attendance

class AttendanceCreate(InputModel):
    student_id: uuid.UUID
    course_id: uuid.UUID
    date: date
    status: AttendanceStatus
    notes: Optional[str] = Field(default=None, min_length=1, max_length=500)


class AttendanceUpdate(UpdateModel):
    nullable_fields = frozenset({"notes"})

    status: Optional[AttendanceStatus] = None
    notes: Optional[str] = Field(default=None, min_length=1, max_length=500)


class BulkAttendanceItem(InputModel):
    student_id: uuid.UUID
    status: AttendanceStatus
    notes: Optional[str] = Field(default=None, min_length=1, max_length=500)


class BulkAttendanceIn(InputModel):
    course_id: uuid.UUID
    date: date
    records: List[BulkAttendanceItem] = Field(min_length=1)


class AttendanceOut(OutputModel):
    id: uuid.UUID
    student_id: uuid.UUID
    course_id: uuid.UUID
    date: date
    status: AttendanceStatus
    notes: Optional[str] = None
    recorded_by: Optional[uuid.UUID] = None
    created_at: datetime


class AttendanceReportRow(BaseModel):
    student_id: uuid.UUID
    student_code: str
    total: int
    present: int
    absent: int
    late: int
    excused: int
    attendance_rate: float


# ---------------------------------------------------------------- scheduling

class ClassroomCreate(InputModel):
    room_number: str = Field(min_length=1, max_length=20)
    building: Optional[str] = Field(default=None, max_length=100)
    capacity: int = Field(ge=1)
    type: ClassroomType = ClassroomType.LECTURE


class ClassroomUpdate(UpdateModel):
    nullable_fields = frozenset({"building"})

    room_number: Optional[str] = Field(default=None, min_length=1, max_length=20)
    building: Optional[str] = Field(default=None, max_length=100)
    capacity: Optional[int] = Field(default=None, ge=1)
    type: Optional[ClassroomType] = None


class ClassroomOut(OutputModel):
    id: uuid.UUID
    room_number: str
    building: Optional[str] = None
    capacity: int
    type: ClassroomType
    created_at: datetime
    updated_at: datetime
    deleted_at: Optional[datetime] = None


class ScheduleCreate(InputModel):
    course_id: uuid.UUID
    classroom_id: uuid.UUID
    day_of_week: int = Field(ge=0, le=6)
    start_time: time
    end_time: time

    @field_validator("start_time", "end_time", mode="before")
    @classmethod
    def parse_time(cls, v):
        return validators.time_of_day(v)


class ScheduleUpdate(UpdateModel):
    course_id: Optional[uuid.UUID] = None
    classroom_id: Optional[uuid.UUID] = None
    day_of_week: Optional[int] = Field(default=None, ge=0, le=6)
    start_time: Optional[time] = None
    end_time: Optional[time] = None

    @field_validator("start_time", "end_time", mode="before")
    @classmethod
    def parse_time(cls, v):
        return validators.time_of_day(v) if v is not None else v


class ScheduleOut(OutputModel):
    id: uuid.UUID
    course_id: uuid.UUID
    classroom_id: uuid.UUID
    day_of_week: int
    start_time: time
    end_time: time
    created_at: datetime
    updated_at: datetime
    deleted_at: Optional[datetime] = None


# ---------------------------------------------------------------- audit

class AuditLogOut(OutputModel):
    id: uuid.UUID
    user_id: Optional[uuid.UUID] = None
    action: str
    resource: str
    resource_id: Optional[str] = None
    payload: Optional[Any] = None
    created_at: datetime
