"""
Field validation.

Two flavours:
- is_valid_* predicates and validate_student / validate_course, which collect
  every problem so a front end can show them all at once
- require_* helpers, which raise ValidationError on the first problem

Entity constructors in model.py only use the require_* helpers for the
structural rules; the stricter checks (name characters, ranges) are applied by
the front ends before an entity is built.
"""

from __future__ import annotations

import re
from datetime import date
from typing import Optional

from campusrecords.errors import ValidationError

EMAIL_PATTERN = re.compile(r"^[a-zA-Z0-9._%+-]+@[a-zA-Z0-9.-]+\.[a-zA-Z]{2,}$")

# e.g. 23CSE00001
REG_NO_PATTERN = re.compile(r"^\d{2}[a-zA-Z]{3}\d{5}$")

# e.g. CSE101, MATH201
COURSE_CODE_PATTERN = re.compile(r"^[A-Z]{3,4}\d{3}$")

# e.g. EMP001, INST12345
EMPLOYEE_ID_PATTERN = re.compile(r"^[A-Z]{3,4}\d{3,5}$")

ID_PATTERN = re.compile(r"^[a-zA-Z0-9]{1,20}$")
NAME_PATTERN = re.compile(r"^[a-zA-Z\s'-]+$")

MAX_CREDITS_PER_COURSE = 10
MAX_CAPACITY = 500
MAX_AGE_YEARS = 100


def is_valid_email(email: Optional[str]) -> bool:
    return email is not None and EMAIL_PATTERN.match(email) is not None


def is_valid_reg_no(reg_no: Optional[str]) -> bool:
    return reg_no is not None and REG_NO_PATTERN.match(reg_no) is not None


def is_valid_course_code(code: Optional[str]) -> bool:
    return code is not None and COURSE_CODE_PATTERN.match(code) is not None


def is_valid_employee_id(employee_id: Optional[str]) -> bool:
    return employee_id is not None and EMPLOYEE_ID_PATTERN.match(employee_id) is not None


def is_valid_id(value: Optional[str]) -> bool:
    return value is not None and ID_PATTERN.match(value) is not None


def is_valid_name(name: Optional[str]) -> bool:
    if name is None:
        return False
    stripped = name.strip()
    return 2 <= len(stripped) <= 50 and NAME_PATTERN.match(stripped) is not None


def is_valid_date_of_birth(dob: Optional[date], today: Optional[date] = None) -> bool:
    if dob is None:
        return False
    today = today or date.today()
    try:
        oldest = today.replace(year=today.year - MAX_AGE_YEARS)
    except ValueError:
        # Feb 29 -> Feb 28
        oldest = today.replace(year=today.year - MAX_AGE_YEARS, day=28)
    return oldest <= dob <= today


def is_valid_credits(credits: int) -> bool:
    return 0 < credits <= MAX_CREDITS_PER_COURSE


def is_valid_capacity(capacity: int) -> bool:
    return 0 < capacity <= MAX_CAPACITY


def validate_student(
    student_id: str,
    reg_no: str,
    first_name: str,
    last_name: str,
    email: str,
    date_of_birth: Optional[date],
) -> list[str]:
    """
    Return all problems with the given student fields (empty list = valid).
    """
    errors: list[str] = []
    if not is_valid_id(student_id):
        errors.append("Invalid student ID format")
    if not is_valid_reg_no(reg_no):
        errors.append("Invalid registration number format")
    if not is_valid_name(first_name):
        errors.append("Invalid first name")
    if not is_valid_name(last_name):
        errors.append("Invalid last name")
    if not is_valid_email(email):
        errors.append("Invalid email format")
    if not is_valid_date_of_birth(date_of_birth):
        errors.append("Invalid date of birth")
    return errors


def validate_course(code: str, title: str, credits: int, max_capacity: int) -> list[str]:
    errors: list[str] = []
    if not is_valid_course_code(code):
        errors.append("Invalid course code format")
    if title is None or not (3 <= len(title.strip()) <= 100):
        errors.append("Course title must be 3-100 characters")
    if not is_valid_credits(credits):
        errors.append(f"Credits must be between 1 and {MAX_CREDITS_PER_COURSE}")
    if not is_valid_capacity(max_capacity):
        errors.append(f"Capacity must be between 1 and {MAX_CAPACITY}")
    return errors


def require_non_blank(field: str, value: Optional[str]) -> str:
    if value is None or not value.strip():
        raise ValidationError(field, value, "must not be blank")
    return value.strip()


def require_positive(field: str, value: int) -> int:
    if value <= 0:
        raise ValidationError(field, value, "must be positive")
    return value


def require_email(email: str) -> str:
    if not is_valid_email(email):
        raise ValidationError("email", email, "not a valid email address")
    return email


def require_reg_no(reg_no: str) -> str:
    if not is_valid_reg_no(reg_no):
        raise ValidationError("reg_no", reg_no, "expected two digits, three letters, five digits (e.g. 23CSE00001)")
    return reg_no
