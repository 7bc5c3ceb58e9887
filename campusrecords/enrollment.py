"""
Enrollment manager.

Owns the enrollment relation (one Enrollment per (student_id, course_code))
and enforces the business rules when a student is enrolled:

    1. student and course must exist            -> NotFoundError
    2. no existing enrollment for the pair      -> DuplicateEnrollmentError
    3. course not at capacity                   -> CourseFullError
    4. credit load + course credits <= maximum  -> CreditLimitExceededError

All checks run before anything is mutated, so a failed enroll leaves the
student, the course and the index untouched.

Credit load is the sum of the actual credits of the student's active
enrollments. A course that is no longer in the store counts with
``assumed_credits_per_course`` credits.
"""

from __future__ import annotations

import logging
from collections import Counter
from dataclasses import dataclass
from typing import Iterable, Optional, Union

from campusrecords.errors import (
    CourseFullError,
    CreditLimitExceededError,
    DuplicateEnrollmentError,
    NotFoundError,
)
from campusrecords.model import Enrollment, EnrollmentKey, Grade
from campusrecords.store import CourseStore, StudentStore

logger = logging.getLogger(__name__)

DEFAULT_ASSUMED_CREDITS = 3


@dataclass
class TranscriptRow:
    course_code: str
    title: str
    credits: int
    grade: Optional[Grade]
    active: bool


class EnrollmentManager:
    def __init__(
        self,
        students: StudentStore,
        courses: CourseStore,
        assumed_credits_per_course: int = DEFAULT_ASSUMED_CREDITS,
    ) -> None:
        self.students = students
        self.courses = courses
        self.assumed_credits_per_course = assumed_credits_per_course
        self._enrollments: dict[EnrollmentKey, Enrollment] = {}

    # ------------------------------------------------------------------
    # Mutations
    # ------------------------------------------------------------------

    def enroll(self, student_id: str, course_code: str) -> Enrollment:
        student = self.students.get(student_id)
        course = self.courses.get(course_code)

        key = (student_id, course_code)
        if key in self._enrollments:
            raise DuplicateEnrollmentError(student_id, course_code)

        if course.is_full:
            raise CourseFullError(course_code, course.max_capacity)

        current = self.credit_load(student_id)
        if current + course.credits > student.max_credits_per_semester:
            raise CreditLimitExceededError(student_id, current, course.credits, student.max_credits_per_semester)

        enrollment = Enrollment(student_id=student_id, course_code=course_code)
        self._enrollments[key] = enrollment
        student.enrolled_courses.add(course_code)
        course.enrolled_students.add(student_id)

        logger.info("Enrolled %s in %s", student_id, course_code)
        return enrollment

    def unenroll(self, student_id: str, course_code: str) -> bool:
        """
        Remove the enrollment and both cross-references. Returns False if there was none.
        """
        enrollment = self._enrollments.pop((student_id, course_code), None)
        if enrollment is None:
            return False

        student = self.students.find_by_id(student_id)
        if student is not None:
            student.enrolled_courses.discard(course_code)
            student.grades.pop(course_code, None)

        course = self.courses.find_by_id(course_code)
        if course is not None:
            course.remove_student(student_id)

        logger.info("Unenrolled %s from %s", student_id, course_code)
        return True

    def record_grade(self, student_id: str, course_code: str, grade: Union[Grade, str]) -> Enrollment:
        enrollment = self.get(student_id, course_code)
        grade = Grade.parse(grade)

        student = self.students.find_by_id(student_id)
        if student is not None:
            student.set_grade(course_code, grade)
        enrollment.grade = grade
        return enrollment

    def restore(self, enrollment: Enrollment) -> None:
        """
        Re-insert a persisted enrollment without the capacity / credit checks.

        Used when reloading saved data: a course that is already full keeps
        its capacity (the student is not added to it) and a warning is logged.
        """
        self._enrollments[enrollment.key] = enrollment

        student = self.students.find_by_id(enrollment.student_id)
        if student is not None:
            student.enrolled_courses.add(enrollment.course_code)
            if enrollment.grade is not None:
                student.grades[enrollment.course_code] = enrollment.grade

        course = self.courses.find_by_id(enrollment.course_code)
        if course is not None:
            try:
                course.add_student(enrollment.student_id)
            except CourseFullError as e:
                logger.warning("Capacity exceeded while restoring %s: %s", enrollment.key, e.message)

    def restore_all(self, enrollments: Iterable[Enrollment]) -> int:
        n = 0
        for enrollment in enrollments:
            self.restore(enrollment)
            n += 1
        return n

    def withdraw(self, student_id: str, course_code: str) -> Enrollment:
        enrollment = self.get(student_id, course_code)
        enrollment.withdraw()
        return enrollment

    def withdraw_student(self, student_id: str) -> int:
        """
        Withdraw every enrollment of a student. Returns how many were withdrawn.
        """
        n = 0
        for enrollment in self.for_student(student_id):
            enrollment.withdraw()
            n += 1
        return n

    def cancel_course(self, course_code: str) -> int:
        n = 0
        for enrollment in self.for_course(course_code):
            enrollment.active = False
            n += 1
        return n

    def clear(self) -> None:
        self._enrollments.clear()

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def get(self, student_id: str, course_code: str) -> Enrollment:
        enrollment = self._enrollments.get((student_id, course_code))
        if enrollment is None:
            raise NotFoundError("Enrollment", f"{student_id}/{course_code}")
        return enrollment

    def find(self, student_id: str, course_code: str) -> Optional[Enrollment]:
        return self._enrollments.get((student_id, course_code))

    def all(self) -> list[Enrollment]:
        return list(self._enrollments.values())

    def for_student(self, student_id: str) -> list[Enrollment]:
        return [e for e in self._enrollments.values() if e.student_id == student_id]

    def for_course(self, course_code: str) -> list[Enrollment]:
        return [e for e in self._enrollments.values() if e.course_code == course_code]

    def active(self) -> list[Enrollment]:
        return [e for e in self._enrollments.values() if e.active]

    def by_grade(self, grade: Union[Grade, str]) -> list[Enrollment]:
        grade = Grade.parse(grade)
        return [e for e in self._enrollments.values() if e.grade is grade]

    def total_count(self) -> int:
        return len(self._enrollments)

    def active_count(self) -> int:
        return sum(1 for e in self._enrollments.values() if e.active)

    def grade_distribution(self) -> Counter[Grade]:
        return Counter(e.grade for e in self._enrollments.values() if e.grade is not None)

    def passing_rate(self) -> float:
        """
        Percentage of graded enrollments with a passing grade (0.0 if none graded).
        """
        graded = [e for e in self._enrollments.values() if e.has_grade]
        if not graded:
            return 0.0
        passing = sum(1 for e in graded if e.is_passing)
        return passing / len(graded) * 100.0

    def gpa(self, student_id: str) -> float:
        """
        Mean grade points over the student's graded enrollments (0.0 if none graded).
        """
        points = [e.grade.points for e in self.for_student(student_id) if e.grade is not None]
        if not points:
            return 0.0
        return sum(points) / len(points)

    def _credits_of(self, course_code: str) -> int:
        course = self.courses.find_by_id(course_code)
        return course.credits if course is not None else self.assumed_credits_per_course

    def credit_load(self, student_id: str) -> int:
        return sum(self._credits_of(e.course_code) for e in self.for_student(student_id) if e.active)

    def transcript(self, student_id: str) -> list[TranscriptRow]:
        self.students.get(student_id)

        rows: list[TranscriptRow] = []
        for e in sorted(self.for_student(student_id), key=lambda x: x.course_code):
            course = self.courses.find_by_id(e.course_code)
            rows.append(
                TranscriptRow(
                    course_code=e.course_code,
                    title=course.title if course is not None else "N/A",
                    credits=self._credits_of(e.course_code),
                    grade=e.grade,
                    active=e.active,
                )
            )
        return rows
