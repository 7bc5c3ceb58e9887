"""
Aggregate statistics for the report screens.

Pure functions over the stores and the enrollment manager; nothing here mutates state.
"""

from __future__ import annotations

from collections import Counter
from dataclasses import dataclass, field

from campusrecords.enrollment import EnrollmentManager
from campusrecords.model import Course, Grade, Semester, Student
from campusrecords.store import CourseStore, StudentStore


@dataclass
class StudentStatistics:
    total: int
    active: int
    average_gpa: float
    # number of enrolled courses -> number of students
    enrollment_distribution: dict[int, int] = field(default_factory=dict)


@dataclass
class CourseStatistics:
    total: int
    active: int
    average_enrollment: float
    total_credits_offered: int
    by_department: dict[str, int] = field(default_factory=dict)
    by_semester: dict[Semester, int] = field(default_factory=dict)
    most_popular: list[Course] = field(default_factory=list)


def academic_standing(gpa: float) -> str:
    if gpa >= 9.0:
        return "Excellent"
    if gpa >= 8.0:
        return "Good"
    if gpa >= 7.0:
        return "Average"
    if gpa >= 6.0:
        return "Below Average"
    return "Poor"


def student_statistics(students: StudentStore, enrollments: EnrollmentManager) -> StudentStatistics:
    all_students = students.find_all()
    gpas = [enrollments.gpa(s.id) for s in all_students]
    dist = Counter(len(s.enrolled_courses) for s in all_students)
    return StudentStatistics(
        total=len(all_students),
        active=sum(1 for s in all_students if s.active),
        average_gpa=sum(gpas) / len(gpas) if gpas else 0.0,
        enrollment_distribution=dict(sorted(dist.items())),
    )


def course_statistics(courses: CourseStore, popular_limit: int = 5) -> CourseStatistics:
    return CourseStatistics(
        total=courses.count(),
        active=len(courses.find_active()),
        average_enrollment=courses.average_enrollment(),
        total_credits_offered=courses.total_credits_offered(),
        by_department=dict(sorted(courses.department_distribution().items())),
        by_semester=dict(sorted(courses.semester_distribution().items())),
        most_popular=courses.most_popular(popular_limit),
    )


def top_students(students: StudentStore, enrollments: EnrollmentManager, limit: int = 5) -> list[tuple[Student, float]]:
    """
    Students ranked by GPA (highest first), ties broken by full name.
    """
    ranked = [(s, enrollments.gpa(s.id)) for s in students.find_all()]
    ranked.sort(key=lambda pair: (-pair[1], pair[0].name.full_name))
    return ranked[:limit]


def grade_distribution(enrollments: EnrollmentManager) -> dict[Grade, int]:
    """
    Count per grade in S..F order, grades without enrollments included as 0.
    """
    counts = enrollments.grade_distribution()
    return {g: counts.get(g, 0) for g in Grade}
