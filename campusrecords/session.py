"""
Everything a front end needs, loaded once from the data directory.

Both the CLI and the interactive menu build a Records bundle with
``load_records`` and call ``save`` after each mutating action.
"""

from __future__ import annotations

from dataclasses import dataclass

from campusrecords.backup import BackupManager
from campusrecords.config import AppConfig
from campusrecords.enrollment import EnrollmentManager
from campusrecords.storage import DataRepository, LoadSummary
from campusrecords.store import CourseStore, InstructorStore, StudentStore


@dataclass
class Records:
    config: AppConfig
    students: StudentStore
    courses: CourseStore
    instructors: InstructorStore
    enrollments: EnrollmentManager
    repository: DataRepository
    backups: BackupManager
    loaded: LoadSummary

    def save(self) -> None:
        self.repository.save(self.students, self.courses, self.enrollments, self.instructors)

    def reload(self) -> LoadSummary:
        """
        Replace the in-memory state with what is in the data directory.

        The files are read into new stores; if that fails the current state is kept.
        """
        students = StudentStore()
        courses = CourseStore()
        instructors = InstructorStore()
        enrollments = EnrollmentManager(students, courses, self.config.assumed_credits_per_course)
        summary = self.repository.load(students, courses, enrollments, instructors)

        self.students = students
        self.courses = courses
        self.instructors = instructors
        self.enrollments = enrollments
        self.loaded = summary
        return summary


def load_records(config: AppConfig) -> Records:
    students = StudentStore()
    courses = CourseStore()
    instructors = InstructorStore()
    enrollments = EnrollmentManager(students, courses, config.assumed_credits_per_course)
    repository = DataRepository(config)

    summary = repository.load(students, courses, enrollments, instructors)

    return Records(
        config=config,
        students=students,
        courses=courses,
        instructors=instructors,
        enrollments=enrollments,
        repository=repository,
        backups=BackupManager(config),
        loaded=summary,
    )
