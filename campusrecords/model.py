"""
Central data model definitions used across the project.

This module defines the canonical structure of the campus records so that:
- the store, the enrollment manager, the CSV codec and the UI share one set of field names
- validation of structural rules happens once, at construction time

Persons are a small tagged union: Student and Instructor share the identity and
contact fields of Person and carry their role-specific fields themselves.
Role-dependent behavior (role_of, display_info) switches over ``person.kind``.

Collections on entities (enrolled_courses, grades, enrolled_students, ...) are
shared mutable references. Only the record stores and the EnrollmentManager
mutate them; everybody else treats them as read-only.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime
from enum import Enum
from typing import ClassVar, Optional, Union

from campusrecords.errors import CourseFullError, ValidationError
from campusrecords.validators import require_email, require_non_blank, require_positive, require_reg_no

DEFAULT_MAX_CREDITS = 24


class Semester(Enum):
    SPRING = ("Spring", 1)
    SUMMER = ("Summer", 2)
    FALL = ("Fall", 3)

    def __init__(self, display_name: str, order: int) -> None:
        self.display_name = display_name
        self.order = order

    def __lt__(self, other: "Semester") -> bool:
        if not isinstance(other, Semester):
            return NotImplemented
        return self.order < other.order

    @classmethod
    def by_order(cls, order: int) -> "Semester":
        for semester in cls:
            if semester.order == order:
                return semester
        raise ValidationError("semester", order, "no semester with this order")

    @classmethod
    def parse(cls, text: str) -> "Semester":
        try:
            return cls[text.strip().upper()]
        except KeyError:
            raise ValidationError("semester", text, "expected SPRING, SUMMER or FALL") from None


class Grade(Enum):
    """
    Letter grade on a 10-point scale. Everything except F is a pass.
    """

    S = (10.0, "Outstanding")
    A = (9.0, "Excellent")
    B = (8.0, "Very Good")
    C = (7.0, "Good")
    D = (6.0, "Average")
    E = (5.0, "Below Average")
    F = (0.0, "Fail")

    def __init__(self, points: float, description: str) -> None:
        self.points = points
        self.description = description

    @property
    def is_passing(self) -> bool:
        return self is not Grade.F

    @classmethod
    def from_percentage(cls, percentage: float) -> "Grade":
        if percentage >= 90:
            return cls.S
        if percentage >= 80:
            return cls.A
        if percentage >= 70:
            return cls.B
        if percentage >= 60:
            return cls.C
        if percentage >= 50:
            return cls.D
        if percentage >= 40:
            return cls.E
        return cls.F

    @classmethod
    def parse(cls, text: Union[str, "Grade"]) -> "Grade":
        if isinstance(text, Grade):
            return text
        try:
            return cls[str(text).strip().upper()]
        except KeyError:
            raise ValidationError("grade", text, "expected one of S, A, B, C, D, E, F") from None


@dataclass(frozen=True)
class Name:
    first_name: str
    last_name: str
    middle_name: Optional[str] = None

    def __post_init__(self) -> None:
        object.__setattr__(self, "first_name", require_non_blank("first_name", self.first_name))
        object.__setattr__(self, "last_name", require_non_blank("last_name", self.last_name))
        if self.middle_name is not None:
            object.__setattr__(self, "middle_name", self.middle_name.strip() or None)

    @property
    def full_name(self) -> str:
        if self.middle_name:
            return f"{self.first_name} {self.middle_name} {self.last_name}"
        return f"{self.first_name} {self.last_name}"

    @property
    def initials(self) -> str:
        parts = [self.first_name, self.middle_name, self.last_name]
        return "".join(p[0] for p in parts if p).upper()

    def __str__(self) -> str:
        return self.full_name


class PersonKind(Enum):
    STUDENT = "Student"
    INSTRUCTOR = "Instructor"


@dataclass(kw_only=True)
class Person:
    """
    Shared identity + contact record of every person in the system.
    """

    kind: ClassVar[PersonKind]

    id: str
    name: Name
    email: str
    date_of_birth: date
    active: bool = True

    def __post_init__(self) -> None:
        self.id = require_non_blank("id", self.id)
        self.email = require_email(self.email)

    def activate(self) -> None:
        self.active = True

    def deactivate(self) -> None:
        self.active = False


@dataclass(kw_only=True)
class Student(Person):
    kind: ClassVar[PersonKind] = PersonKind.STUDENT

    reg_no: str
    enrolled_courses: set[str] = field(default_factory=set)
    grades: dict[str, Grade] = field(default_factory=dict)
    enrollment_date: date = field(default_factory=date.today)
    max_credits_per_semester: int = DEFAULT_MAX_CREDITS

    def __post_init__(self) -> None:
        super().__post_init__()
        self.reg_no = require_reg_no(self.reg_no)
        require_positive("max_credits_per_semester", self.max_credits_per_semester)

    def is_enrolled_in(self, course_code: str) -> bool:
        return course_code in self.enrolled_courses

    def grade_for(self, course_code: str) -> Optional[Grade]:
        return self.grades.get(course_code)

    def has_grade(self, course_code: str) -> bool:
        return course_code in self.grades

    def set_grade(self, course_code: str, grade: Grade) -> None:
        if course_code not in self.enrolled_courses:
            raise ValidationError("course_code", course_code, f"student {self.id} is not enrolled in this course")
        self.grades[course_code] = grade


@dataclass(kw_only=True)
class Instructor(Person):
    kind: ClassVar[PersonKind] = PersonKind.INSTRUCTOR

    employee_id: str
    department: str
    assigned_courses: set[str] = field(default_factory=set)

    def __post_init__(self) -> None:
        super().__post_init__()
        self.employee_id = require_non_blank("employee_id", self.employee_id)
        self.department = require_non_blank("department", self.department)

    def assign_course(self, course_code: str) -> bool:
        if course_code in self.assigned_courses:
            return False
        self.assigned_courses.add(course_code)
        return True

    def unassign_course(self, course_code: str) -> bool:
        if course_code not in self.assigned_courses:
            return False
        self.assigned_courses.discard(course_code)
        return True

    @property
    def course_load(self) -> int:
        return len(self.assigned_courses)


def role_of(person: Person) -> str:
    return person.kind.value


def display_info(person: Person) -> str:
    """
    One-line human readable description, depending on the person's role.
    """
    if person.kind is PersonKind.STUDENT:
        assert isinstance(person, Student)
        return f"Student: {person.name} (Reg: {person.reg_no}) - {len(person.enrolled_courses)} courses enrolled"
    if person.kind is PersonKind.INSTRUCTOR:
        assert isinstance(person, Instructor)
        return (
            f"Instructor: {person.name} ({person.employee_id}) - "
            f"{person.department} Department, {person.course_load} courses"
        )
    raise ValueError(f"Unknown person kind: {person.kind!r}")


@dataclass
class Course:
    """
    One course offering. Defaults: 3 credits, FALL semester, capacity 50.
    """

    code: str
    title: str
    credits: int = 3
    instructor_id: Optional[str] = None
    semester: Semester = Semester.FALL
    department: Optional[str] = None
    max_capacity: int = 50
    enrolled_students: set[str] = field(default_factory=set)
    active: bool = True

    def __post_init__(self) -> None:
        self.code = require_non_blank("code", self.code)
        self.title = require_non_blank("title", self.title)
        require_positive("credits", self.credits)
        require_positive("max_capacity", self.max_capacity)

    @property
    def current_enrollment(self) -> int:
        return len(self.enrolled_students)

    @property
    def available_spots(self) -> int:
        return self.max_capacity - len(self.enrolled_students)

    @property
    def is_full(self) -> bool:
        return len(self.enrolled_students) >= self.max_capacity

    def has_student(self, student_id: str) -> bool:
        return student_id in self.enrolled_students

    def add_student(self, student_id: str) -> bool:
        if student_id in self.enrolled_students:
            return False
        if self.is_full:
            raise CourseFullError(self.code, self.max_capacity)
        self.enrolled_students.add(student_id)
        return True

    def remove_student(self, student_id: str) -> bool:
        if student_id not in self.enrolled_students:
            return False
        self.enrolled_students.discard(student_id)
        return True


EnrollmentKey = tuple[str, str]


@dataclass
class Enrollment:
    """
    The relationship between one student and one course, keyed by (student_id, course_code).
    """

    student_id: str
    course_code: str
    enrolled_at: datetime = field(default_factory=datetime.now)
    grade: Optional[Grade] = None
    active: bool = True
    notes: Optional[str] = None

    @property
    def key(self) -> EnrollmentKey:
        return (self.student_id, self.course_code)

    @property
    def has_grade(self) -> bool:
        return self.grade is not None

    @property
    def is_passing(self) -> bool:
        return self.grade is not None and self.grade.is_passing

    def withdraw(self, when: Optional[datetime] = None) -> None:
        when = when or datetime.now()
        self.active = False
        self.notes = f"Withdrawn on {when.isoformat(timespec='seconds')}"
