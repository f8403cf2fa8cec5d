"""Reusable field validators for request schemas.

Each function raises `ValueError` with a readable message so it can be
called from pydantic `field_validator` hooks.
"""

import re
from datetime import date, time
from typing import Optional

STUDENT_CODE_RE = re.compile(r"^STU-?\d{4}-?\d{3,}$")
USERNAME_RE = re.compile(r"^[a-zA-Z0-9_]+$")
TIME_RE = re.compile(r"^([01]?[0-9]|2[0-3]):[0-5][0-9](:[0-5][0-9])?$")


def strong_password(value: str) -> str:
    if (
        len(value) < 8
        or not re.search(r"[a-z]", value)
        or not re.search(r"[A-Z]", value)
        or not re.search(r"\d", value)
    ):
        raise ValueError(
            "Password must be at least 8 characters long and contain uppercase, lowercase, and number"
        )
    return value


def student_code(value: str) -> str:
    """Normalise and check a student code such as STU2024001 or STU-2024-001."""
    code = value.strip().upper()
    if not 7 <= len(code) <= 20:
        raise ValueError("Student ID must be between 7 and 20 characters")
    if not STUDENT_CODE_RE.match(code):
        raise ValueError("Student ID must look like STU2024001 or STU-2024-001")
    return code


def min_age(value: Optional[date], years: int = 16, today: Optional[date] = None) -> Optional[date]:
    if value is None:
        return value
    today = today or date.today()
    age = today.year - value.year - ((today.month, today.day) < (value.month, value.day))
    if age < years:
        raise ValueError(f"Student must be at least {years} years old")
    return value


def username(value: str) -> str:
    name = value.strip()
    if not 3 <= len(name) <= 50:
        raise ValueError("Username must be between 3 and 50 characters")
    if not USERNAME_RE.match(name):
        raise ValueError("Username can only contain letters, numbers, and underscores")
    return name


def time_of_day(value) -> time:
    if isinstance(value, time):
        return value
    text = str(value).strip()
    if not TIME_RE.match(text):
        raise ValueError("Time must be in HH:MM or HH:MM:SS format")
    parts = [int(p) for p in text.split(":")]
    return time(*parts)
