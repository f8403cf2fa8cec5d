"""SQLModel data models.

This module defines the application's database tables using SQLModel.
Each class maps to a table. Every primary key is a UUID, and tables
supporting soft delete carry a nullable `deleted_at` timestamp that the
repositories filter on.

Timestamps are timezone-aware UTC values. SQLModel maps `datetime` fields
to its `UTCDateTime` column type, which stores them in UTC and hands them
back aware, SQLite included; naive values are rejected on write, so every
datetime that reaches a column must come from `utcnow()` or `as_utc()`.
"""

import datetime as dt
import uuid
from datetime import datetime, date, time, timezone
from enum import Enum
from typing import Any, List, Optional

from sqlalchemy import Column, JSON, UniqueConstraint
from sqlmodel import SQLModel, Field, Relationship


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def as_utc(value: Optional[datetime]) -> Optional[datetime]:
    """Make `value` aware; naive input is taken to be UTC already."""
    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


class Role(str, Enum):
    ADMIN = "admin"
    TEACHER = "teacher"
    STUDENT = "student"


class Gender(str, Enum):
    MALE = "male"
    FEMALE = "female"
    OTHER = "other"
    PREFER_NOT_TO_SAY = "prefer_not_to_say"


class TeacherRank(str, Enum):
    ASSISTANT_PROFESSOR = "assistant_professor"
    ASSOCIATE_PROFESSOR = "associate_professor"
    PROFESSOR = "professor"
    LECTURER = "lecturer"
    ADJUNCT = "adjunct"


class EnrollmentStatus(str, Enum):
    ACTIVE = "active"
    DROPPED = "dropped"
    COMPLETED = "completed"


class AttendanceStatus(str, Enum):
    PRESENT = "present"
    ABSENT = "absent"
    LATE = "late"
    EXCUSED = "excused"


class ClassroomType(str, Enum):
    LECTURE = "lecture"
    LAB = "lab"
    SEMINAR = "seminar"
    VIRTUAL = "virtual"


class User(SQLModel, table=True):
    """An account able to sign in.

    Fields:
    - `password_hash`: hashed password string (never store plaintext)
    - `refresh_token_hash`: hash of the last issued refresh token
    - `failed_login_attempts` / `locked_until`: lockout bookkeeping
    """
    id: uuid.UUID = Field(default_factory=uuid.uuid4, primary_key=True)
    email: str = Field(index=True, unique=True, max_length=100)
    username: str = Field(index=True, unique=True, max_length=50)
    password_hash: str
    role: Role = Field(default=Role.STUDENT, index=True)
    first_name: Optional[str] = Field(default=None, max_length=50)
    last_name: Optional[str] = Field(default=None, max_length=50)
    is_active: bool = True
    refresh_token_hash: Optional[str] = None
    email_verified: bool = False
    email_verification_token: Optional[str] = Field(default=None, index=True)
    password_reset_token_hash: Optional[str] = None
    password_reset_expires: Optional[datetime] = None
    failed_login_attempts: int = 0
    locked_until: Optional[datetime] = None
    last_failed_login: Optional[datetime] = None
    created_at: datetime = Field(default_factory=utcnow)
    updated_at: datetime = Field(default_factory=utcnow)
    deleted_at: Optional[datetime] = None


class Faculty(SQLModel, table=True):
    id: uuid.UUID = Field(default_factory=uuid.uuid4, primary_key=True)
    name: str = Field(unique=True, max_length=100)
    code: str = Field(unique=True, max_length=20)
    dean_id: Optional[uuid.UUID] = Field(default=None, foreign_key="user.id")
    created_at: datetime = Field(default_factory=utcnow)
    updated_at: datetime = Field(default_factory=utcnow)
    deleted_at: Optional[datetime] = None


class Department(SQLModel, table=True):
    id: uuid.UUID = Field(default_factory=uuid.uuid4, primary_key=True)
    name: str = Field(unique=True, max_length=100)
    code: str = Field(unique=True, max_length=20)
    faculty_id: uuid.UUID = Field(foreign_key="faculty.id", index=True)
    created_at: datetime = Field(default_factory=utcnow)
    updated_at: datetime = Field(default_factory=utcnow)
    deleted_at: Optional[datetime] = None


class AcademicTerm(SQLModel, table=True):
    """A named teaching period; at most one term is active at a time."""
    id: uuid.UUID = Field(default_factory=uuid.uuid4, primary_key=True)
    name: str = Field(unique=True, max_length=50)
    start_date: date
    end_date: date
    is_active: bool = False
    created_at: datetime = Field(default_factory=utcnow)
    updated_at: datetime = Field(default_factory=utcnow)
    deleted_at: Optional[datetime] = None


class Student(SQLModel, table=True):
    """Academic record of a student, optionally linked to a `User`."""
    id: uuid.UUID = Field(default_factory=uuid.uuid4, primary_key=True)
    user_id: Optional[uuid.UUID] = Field(default=None, foreign_key="user.id", unique=True)
    student_code: str = Field(index=True, unique=True, max_length=20)
    date_of_birth: Optional[date] = None
    gender: Optional[Gender] = None
    address: Optional[str] = None
    phone: Optional[str] = Field(default=None, max_length=20)
    emergency_contact: Optional[str] = Field(default=None, max_length=100)
    enrollment_date: date
    department_id: Optional[uuid.UUID] = Field(default=None, foreign_key="department.id", index=True)
    semester: Optional[int] = None
    blood_group: Optional[str] = Field(default=None, max_length=5)
    nationality: Optional[str] = Field(default=None, max_length=50)
    emergency_contact_name: Optional[str] = Field(default=None, max_length=100)
    emergency_contact_phone: Optional[str] = Field(default=None, max_length=20)
    emergency_contact_relationship: Optional[str] = Field(default=None, max_length=50)
    guardian_name: Optional[str] = Field(default=None, max_length=100)
    guardian_phone: Optional[str] = Field(default=None, max_length=20)
    guardian_email: Optional[str] = Field(default=None, max_length=100)
    guardian_relationship: Optional[str] = Field(default=None, max_length=50)
    medical_conditions: Optional[str] = None
    allergies: Optional[str] = None
    current_year: Optional[int] = None
    current_semester: Optional[int] = None
    created_at: datetime = Field(default_factory=utcnow)
    updated_at: datetime = Field(default_factory=utcnow)
    deleted_at: Optional[datetime] = None
    user: Optional[User] = Relationship()
    enrollments: List["Enrollment"] = Relationship(back_populates="student")


class TeacherProfile(SQLModel, table=True):
    id: uuid.UUID = Field(default_factory=uuid.uuid4, primary_key=True)
    user_id: uuid.UUID = Field(foreign_key="user.id", unique=True)
    employee_id: str = Field(unique=True, max_length=20)
    rank: TeacherRank = TeacherRank.LECTURER
    specialization: Optional[str] = Field(default=None, max_length=100)
    office_location: Optional[str] = Field(default=None, max_length=100)
    office_hours: Optional[str] = Field(default=None, max_length=100)
    phone: Optional[str] = Field(default=None, max_length=20)
    bio: Optional[str] = None
    hire_date: Optional[date] = None
    is_active: bool = True
    created_at: datetime = Field(default_factory=utcnow)
    updated_at: datetime = Field(default_factory=utcnow)
    deleted_at: Optional[datetime] = None
    user: Optional[User] = Relationship()


class CourseTeacher(SQLModel, table=True):
    """Link table between courses and the teachers assigned to them."""
    __tablename__ = "course_teachers"
    course_id: uuid.UUID = Field(foreign_key="course.id", primary_key=True)
    teacher_id: uuid.UUID = Field(foreign_key="user.id", primary_key=True)


class Course(SQLModel, table=True):
    id: uuid.UUID = Field(default_factory=uuid.uuid4, primary_key=True)
    course_code: str = Field(index=True, unique=True, max_length=20)
    course_name: str = Field(max_length=100)
    description: Optional[str] = None
    credits: int
    department_id: Optional[uuid.UUID] = Field(default=None, foreign_key="department.id", index=True)
    semester: Optional[int] = None
    max_students: int = 50
    is_active: bool = True
    created_by: Optional[uuid.UUID] = Field(default=None, foreign_key="user.id")
    created_at: datetime = Field(default_factory=utcnow)
    updated_at: datetime = Field(default_factory=utcnow)
    deleted_at: Optional[datetime] = None
    teachers: List[User] = Relationship(link_model=CourseTeacher)


class Enrollment(SQLModel, table=True):
    __table_args__ = (UniqueConstraint("student_id", "course_id"),)
    id: uuid.UUID = Field(default_factory=uuid.uuid4, primary_key=True)
    student_id: uuid.UUID = Field(foreign_key="student.id", index=True)
    course_id: uuid.UUID = Field(foreign_key="course.id", index=True)
    enrollment_date: date = Field(default_factory=date.today)
    status: EnrollmentStatus = EnrollmentStatus.ACTIVE
    grade: Optional[str] = Field(default=None, max_length=2)
    grade_points: Optional[float] = None
    attendance_percentage: float = 100.0
    created_at: datetime = Field(default_factory=utcnow)
    student: Optional[Student] = Relationship(back_populates="enrollments")
    course: Optional[Course] = Relationship()


class Grade(SQLModel, table=True):
    """A scored assessment of one student in one course."""
    id: uuid.UUID = Field(default_factory=uuid.uuid4, primary_key=True)
    student_id: uuid.UUID = Field(foreign_key="student.id", index=True)
    course_id: uuid.UUID = Field(foreign_key="course.id", index=True)
    assessment_type: str = Field(max_length=50, index=True)
    assessment_name: str = Field(max_length=100)
    max_score: float
    score_obtained: float
    weightage: float = 100.0
    graded_by: Optional[uuid.UUID] = Field(default=None, foreign_key="user.id")
    graded_at: datetime = Field(default_factory=utcnow)


class Attendance(SQLModel, table=True):
    __table_args__ = (UniqueConstraint("student_id", "course_id", "date"),)
    id: uuid.UUID = Field(default_factory=uuid.uuid4, primary_key=True)
    student_id: uuid.UUID = Field(foreign_key="student.id", index=True)
    course_id: uuid.UUID = Field(foreign_key="course.id", index=True)
    date: dt.date = Field(index=True)
    status: AttendanceStatus
    notes: Optional[str] = Field(default=None, max_length=500)
    recorded_by: Optional[uuid.UUID] = Field(default=None, foreign_key="user.id")
    created_at: datetime = Field(default_factory=utcnow)


class Classroom(SQLModel, table=True):
    id: uuid.UUID = Field(default_factory=uuid.uuid4, primary_key=True)
    room_number: str = Field(unique=True, max_length=20)
    building: Optional[str] = Field(default=None, max_length=100)
    capacity: int
    type: ClassroomType = ClassroomType.LECTURE
    created_at: datetime = Field(default_factory=utcnow)
    updated_at: datetime = Field(default_factory=utcnow)
    deleted_at: Optional[datetime] = None


class Schedule(SQLModel, table=True):
    """A weekly slot booking a classroom for a course."""
    id: uuid.UUID = Field(default_factory=uuid.uuid4, primary_key=True)
    course_id: uuid.UUID = Field(foreign_key="course.id", index=True)
    classroom_id: uuid.UUID = Field(foreign_key="classroom.id", index=True)
    day_of_week: int = Field(index=True)
    start_time: time
    end_time: time
    created_at: datetime = Field(default_factory=utcnow)
    updated_at: datetime = Field(default_factory=utcnow)
    deleted_at: Optional[datetime] = None


class AuditLog(SQLModel, table=True):
    """One recorded mutation made through the API."""
    id: uuid.UUID = Field(default_factory=uuid.uuid4, primary_key=True)
    user_id: Optional[uuid.UUID] = Field(default=None, foreign_key="user.id", index=True)
    action: str = Field(max_length=50, index=True)
    resource: str = Field(max_length=100, index=True)
    resource_id: Optional[str] = Field(default=None, index=True)
    payload: Optional[Any] = Field(default=None, sa_column=Column(JSON))
    created_at: datetime = Field(default_factory=utcnow, index=True)
