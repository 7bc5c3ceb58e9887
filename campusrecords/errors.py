"""
Exception taxonomy.

Every business or validation failure raised by the core carries structured
data in ``details`` (ids, limits, overage) so front ends can render a precise
message instead of parsing strings.

File I/O problems are not wrapped: they surface as the built-in ``OSError``.
"""

from __future__ import annotations

from typing import Any, Optional


class CampusRecordsError(Exception):
    """Base class for all domain errors."""

    def __init__(self, message: str, details: Optional[dict[str, Any]] = None) -> None:
        super().__init__(message)
        self.message = message
        self.details = details or {}


class NotFoundError(CampusRecordsError):
    """A referenced student, course, instructor or enrollment does not exist."""

    def __init__(self, kind: str, key: Any) -> None:
        super().__init__(f"{kind} not found: {key}", {"kind": kind, "key": key})
        self.kind = kind
        self.key = key


class DuplicateKeyError(CampusRecordsError):
    """Insert collision in a record store."""

    def __init__(self, kind: str, key: str, field: str = "id") -> None:
        super().__init__(
            f"{kind} with {field} {key!r} already exists",
            {"kind": kind, "key": key, "field": field},
        )
        self.kind = kind
        self.key = key
        self.field = field


class DuplicateEnrollmentError(CampusRecordsError):
    def __init__(self, student_id: str, course_code: str) -> None:
        super().__init__(
            f"Student {student_id} is already enrolled in course {course_code}",
            {"student_id": student_id, "course_code": course_code},
        )
        self.student_id = student_id
        self.course_code = course_code


class CourseFullError(CampusRecordsError):
    def __init__(self, course_code: str, capacity: int) -> None:
        super().__init__(
            f"Course {course_code} is at maximum capacity ({capacity})",
            {"course_code": course_code, "capacity": capacity},
        )
        self.course_code = course_code
        self.capacity = capacity


class CreditLimitExceededError(CampusRecordsError):
    """
    Adding a course would push the student's credit load over the limit.

    ``overage`` is ``(current_credits + attempted_credits) - max_credits``.
    """

    def __init__(self, student_id: str, current_credits: int, attempted_credits: int, max_credits: int) -> None:
        overage = current_credits + attempted_credits - max_credits
        super().__init__(
            f"Student {student_id} would exceed the credit limit by {overage} "
            f"(current={current_credits}, attempted={attempted_credits}, max={max_credits})",
            {
                "student_id": student_id,
                "current_credits": current_credits,
                "attempted_credits": attempted_credits,
                "max_credits": max_credits,
                "overage": overage,
            },
        )
        self.student_id = student_id
        self.current_credits = current_credits
        self.attempted_credits = attempted_credits
        self.max_credits = max_credits
        self.overage = overage


class ValidationError(CampusRecordsError):
    """A field value was rejected (format, range, emptiness)."""

    def __init__(self, field: str, value: Any, reason: str) -> None:
        super().__init__(f"Invalid {field} {value!r}: {reason}", {"field": field, "value": value, "reason": reason})
        self.field = field
        self.value = value
        self.reason = reason
