"""
Persistent storage of the campus records as CSV files.

This module manages the files inside the data directory:

    data/students.csv
    data/courses.csv
    data/enrollments.csv
    data/instructors.csv

Format:
- first line is a header naming the columns
- one record per line, fields in a fixed order, joined by the separator
- no quoting or escaping: a field that contains the separator cannot be
  round-tripped (it is written anyway and a warning is logged)

Import is deliberately tolerant: a missing file yields an empty list, and a
line that cannot be parsed is skipped with a logged warning so that one bad
row never aborts a whole import.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import date, datetime
from pathlib import Path
from typing import Callable, Iterable, Optional, Sequence, TypeVar

from campusrecords.config import AppConfig
from campusrecords.enrollment import EnrollmentManager
from campusrecords.errors import CampusRecordsError, DuplicateKeyError
from campusrecords.model import Course, Enrollment, Grade, Instructor, Name, Semester, Student
from campusrecords.store import CourseStore, InstructorStore, StudentStore

logger = logging.getLogger(__name__)

T = TypeVar("T")

STUDENT_COLUMNS = (
    "ID",
    "RegNo",
    "FirstName",
    "LastName",
    "Email",
    "DateOfBirth",
    "Active",
    "EnrollmentDate",
    "MaxCredits",
)
COURSE_COLUMNS = ("Code", "Title", "Credits", "InstructorId", "Semester", "Department", "MaxCapacity", "Active")
ENROLLMENT_COLUMNS = ("StudentId", "CourseCode", "EnrollmentDate", "Grade", "Active", "Notes")
INSTRUCTOR_COLUMNS = ("ID", "EmployeeId", "FirstName", "LastName", "Email", "DateOfBirth", "Active", "Department")


class LineFormatError(ValueError):
    """A single CSV line could not be turned into an entity."""


def _parse_bool(raw: str) -> bool:
    s = raw.strip().lower()
    if s == "true":
        return True
    if s == "false":
        return False
    raise LineFormatError(f"expected true/false, got {raw!r}")


def _parse_int(raw: str, field: str) -> int:
    try:
        return int(raw.strip())
    except ValueError:
        raise LineFormatError(f"{field}: expected an integer, got {raw!r}") from None


def _blank_to_none(raw: str) -> Optional[str]:
    s = raw.strip()
    return s or None


class CsvCodec:
    """
    Converts entities to and from separator-joined lines.
    """

    def __init__(self, separator: str = ",", date_format: str = "%Y-%m-%d") -> None:
        self.separator = separator
        self.date_format = date_format

    # ------------------------------------------------------------------
    # Low level
    # ------------------------------------------------------------------

    def _format_date(self, d: date) -> str:
        return d.strftime(self.date_format)

    def _parse_date(self, raw: str, field: str) -> date:
        try:
            return datetime.strptime(raw.strip(), self.date_format).date()
        except ValueError:
            raise LineFormatError(f"{field}: invalid date {raw!r}") from None

    def _join(self, fields: Sequence[str], path: Path) -> str:
        for value in fields:
            if self.separator in value:
                logger.warning(
                    "%s: field %r contains the separator %r and will not round-trip",
                    path.name,
                    value,
                    self.separator,
                )
        return self.separator.join(fields)

    def _split(self, line: str, expected: int) -> list[str]:
        fields = [f.strip() for f in line.split(self.separator)]
        if len(fields) != expected:
            raise LineFormatError(f"expected {expected} fields, got {len(fields)}")
        return fields

    def _write(self, path: str | Path, header: Sequence[str], rows: Iterable[Sequence[str]]) -> int:
        """
        Write header + rows to a temp file next to path, then replace path.
        Returns the number of data rows written.
        """
        out = Path(path)
        out.parent.mkdir(parents=True, exist_ok=True)

        lines = [self.separator.join(header)]
        for row in rows:
            lines.append(self._join(row, out))

        tmp = out.with_name(out.name + ".tmp")
        tmp.write_text("\n".join(lines) + "\n", encoding="utf-8")
        tmp.replace(out)
        return len(lines) - 1

    def _read(self, path: str | Path, parse_line: Callable[[str], T]) -> list[T]:
        src = Path(path)

        # First run: file does not exist yet -> nothing to import
        if not src.exists():
            return []

        raw_lines = src.read_bytes().splitlines()

        out: list[T] = []
        for lineno, raw in enumerate(raw_lines[1:], start=2):
            if not raw.strip():
                continue
            try:
                line = raw.decode("utf-8")
                out.append(parse_line(line))
            except UnicodeDecodeError as e:
                logger.warning("%s:%d: skipping line (%s): %r", src.name, lineno, e, raw)
            except (LineFormatError, CampusRecordsError) as e:
                logger.warning("%s:%d: skipping line (%s): %s", src.name, lineno, e, line)
        return out

    # ------------------------------------------------------------------
    # Students
    # ------------------------------------------------------------------

    def student_to_row(self, s: Student) -> list[str]:
        return [
            s.id,
            s.reg_no,
            s.name.first_name,
            s.name.last_name,
            s.email,
            self._format_date(s.date_of_birth),
            str(s.active).lower(),
            self._format_date(s.enrollment_date),
            str(s.max_credits_per_semester),
        ]

    def parse_student(self, line: str) -> Student:
        f = self._split(line, len(STUDENT_COLUMNS))
        return Student(
            id=f[0],
            reg_no=f[1],
            name=Name(f[2], f[3]),
            email=f[4],
            date_of_birth=self._parse_date(f[5], "DateOfBirth"),
            active=_parse_bool(f[6]),
            enrollment_date=self._parse_date(f[7], "EnrollmentDate"),
            max_credits_per_semester=_parse_int(f[8], "MaxCredits"),
        )

    def export_students(self, students: Iterable[Student], path: str | Path) -> int:
        return self._write(path, STUDENT_COLUMNS, (self.student_to_row(s) for s in students))

    def import_students(self, path: str | Path) -> list[Student]:
        return self._read(path, self.parse_student)

    # ------------------------------------------------------------------
    # Courses
    # ------------------------------------------------------------------

    def course_to_row(self, c: Course) -> list[str]:
        return [
            c.code,
            c.title,
            str(c.credits),
            c.instructor_id or "",
            c.semester.name,
            c.department or "",
            str(c.max_capacity),
            str(c.active).lower(),
        ]

    def parse_course(self, line: str) -> Course:
        f = self._split(line, len(COURSE_COLUMNS))
        return Course(
            code=f[0],
            title=f[1],
            credits=_parse_int(f[2], "Credits"),
            instructor_id=_blank_to_none(f[3]),
            semester=Semester.parse(f[4]),
            department=_blank_to_none(f[5]),
            max_capacity=_parse_int(f[6], "MaxCapacity"),
            active=_parse_bool(f[7]),
        )

    def export_courses(self, courses: Iterable[Course], path: str | Path) -> int:
        return self._write(path, COURSE_COLUMNS, (self.course_to_row(c) for c in courses))

    def import_courses(self, path: str | Path) -> list[Course]:
        return self._read(path, self.parse_course)

    # ------------------------------------------------------------------
    # Enrollments
    # ------------------------------------------------------------------

    def enrollment_to_row(self, e: Enrollment) -> list[str]:
        return [
            e.student_id,
            e.course_code,
            e.enrolled_at.isoformat(),
            e.grade.name if e.grade is not None else "",
            str(e.active).lower(),
            e.notes or "",
        ]

    def parse_enrollment(self, line: str) -> Enrollment:
        f = self._split(line, len(ENROLLMENT_COLUMNS))
        if not f[0] or not f[1]:
            raise LineFormatError("student id and course code are required")
        try:
            enrolled_at = datetime.fromisoformat(f[2])
        except ValueError:
            raise LineFormatError(f"EnrollmentDate: invalid date-time {f[2]!r}") from None

        return Enrollment(
            student_id=f[0],
            course_code=f[1],
            enrolled_at=enrolled_at,
            grade=Grade.parse(f[3]) if f[3] else None,
            active=_parse_bool(f[4]),
            notes=_blank_to_none(f[5]),
        )

    def export_enrollments(self, enrollments: Iterable[Enrollment], path: str | Path) -> int:
        return self._write(path, ENROLLMENT_COLUMNS, (self.enrollment_to_row(e) for e in enrollments))

    def import_enrollments(self, path: str | Path) -> list[Enrollment]:
        return self._read(path, self.parse_enrollment)

    # ------------------------------------------------------------------
    # Instructors
    # ------------------------------------------------------------------

    def instructor_to_row(self, i: Instructor) -> list[str]:
        return [
            i.id,
            i.employee_id,
            i.name.first_name,
            i.name.last_name,
            i.email,
            self._format_date(i.date_of_birth),
            str(i.active).lower(),
            i.department,
        ]

    def parse_instructor(self, line: str) -> Instructor:
        f = self._split(line, len(INSTRUCTOR_COLUMNS))
        return Instructor(
            id=f[0],
            employee_id=f[1],
            name=Name(f[2], f[3]),
            email=f[4],
            date_of_birth=self._parse_date(f[5], "DateOfBirth"),
            active=_parse_bool(f[6]),
            department=f[7],
        )

    def export_instructors(self, instructors: Iterable[Instructor], path: str | Path) -> int:
        return self._write(path, INSTRUCTOR_COLUMNS, (self.instructor_to_row(i) for i in instructors))

    def import_instructors(self, path: str | Path) -> list[Instructor]:
        return self._read(path, self.parse_instructor)


@dataclass
class LoadSummary:
    students: int = 0
    courses: int = 0
    enrollments: int = 0
    instructors: int = 0


@dataclass
class DataFileInfo:
    path: Path
    size_bytes: int
    modified: datetime


class DataRepository:
    """
    Loads and saves the whole application state from/to the data directory.
    """

    def __init__(self, config: AppConfig, codec: Optional[CsvCodec] = None) -> None:
        self.config = config
        self.codec = codec or CsvCodec(config.csv_separator, config.date_format)

    def _save_each(self, store, entities: Iterable) -> int:
        n = 0
        for entity in entities:
            try:
                store.save(entity)
                n += 1
            except DuplicateKeyError as e:
                logger.warning("Skipping duplicate record while loading: %s", e.message)
        return n

    def load(
        self,
        students: StudentStore,
        courses: CourseStore,
        enrollments: EnrollmentManager,
        instructors: Optional[InstructorStore] = None,
    ) -> LoadSummary:
        """
        Import students, courses, instructors, then enrollments (which need the first two).
        """
        summary = LoadSummary()
        summary.students = self._save_each(students, self.codec.import_students(self.config.students_path))
        summary.courses = self._save_each(courses, self.codec.import_courses(self.config.courses_path))

        if instructors is not None:
            summary.instructors = self._save_each(
                instructors, self.codec.import_instructors(self.config.instructors_path)
            )
            for course in courses.find_all():
                if course.instructor_id:
                    instructor = instructors.find_by_id(course.instructor_id)
                    if instructor is not None:
                        instructor.assign_course(course.code)

        summary.enrollments = enrollments.restore_all(self.codec.import_enrollments(self.config.enrollments_path))

        logger.info(
            "Loaded %d students, %d courses, %d instructors and %d enrollments from %s",
            summary.students,
            summary.courses,
            summary.instructors,
            summary.enrollments,
            self.config.data_dir,
        )
        return summary

    def save(
        self,
        students: StudentStore,
        courses: CourseStore,
        enrollments: EnrollmentManager,
        instructors: Optional[InstructorStore] = None,
    ) -> None:
        """
        Export the full state. Withdrawn enrollments are written too.
        """
        self.codec.export_students(students.find_all(), self.config.students_path)
        self.codec.export_courses(courses.find_all(), self.config.courses_path)
        self.codec.export_enrollments(enrollments.all(), self.config.enrollments_path)
        if instructors is not None:
            self.codec.export_instructors(instructors.find_all(), self.config.instructors_path)
        logger.info("Saved data to %s", self.config.data_dir)

    def list_data_files(self) -> list[Path]:
        data_dir = self.config.data_dir
        if not data_dir.exists():
            return []
        return sorted(p for p in data_dir.iterdir() if p.is_file() and p.suffix == ".csv")

    def file_info(self, path: str | Path) -> DataFileInfo:
        p = Path(path)
        st = p.stat()
        return DataFileInfo(path=p, size_bytes=st.st_size, modified=datetime.fromtimestamp(st.st_mtime))
