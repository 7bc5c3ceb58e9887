"""
CLI (Command Line Interface).

This module provides quick terminal commands for scripting and testing, e.g.:

    campusrecords student add S1 23CSE00001 Ada Lovelace ada@uni.edu 2004-12-10
    campusrecords course add CSE101 "Intro to Programming" --credits 4
    campusrecords enroll S1 CSE101
    campusrecords grade S1 CSE101 A
    campusrecords transcript S1
    campusrecords backup create
    campusrecords interactive

Every command loads the records from the data directory, runs, and saves
them again if it changed anything.

Note:
- The interactive UI lives in campusrecords/interactive.py
- This CLI is intentionally simple and prints plain text (no rich formatting)
"""

from __future__ import annotations

import argparse
import logging
from dataclasses import replace
from datetime import date, datetime
from typing import Callable, Optional

from rich.logging import RichHandler

from campusrecords import __version__
from campusrecords.backup import format_size
from campusrecords.config import APP_NAME, AppConfig
from campusrecords.errors import CampusRecordsError
from campusrecords.model import Course, Instructor, Name, Semester, Student, display_info
from campusrecords.reports import (
    academic_standing,
    course_statistics,
    grade_distribution,
    student_statistics,
    top_students,
)
from campusrecords.session import Records, load_records
from campusrecords.validators import is_valid_email, validate_course, validate_student

logger = logging.getLogger(__name__)

# commands that change state and must be saved afterwards
MUTATING = {
    ("student", "add"),
    ("student", "update"),
    ("student", "activate"),
    ("student", "deactivate"),
    ("course", "add"),
    ("course", "deactivate"),
    ("instructor", "add"),
    ("instructor", "assign"),
    ("enroll", None),
    ("unenroll", None),
    ("withdraw", None),
    ("grade", None),
}


def configure_logging(verbose: bool = False) -> None:
    logging.basicConfig(
        level=logging.INFO if verbose else logging.WARNING,
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(show_path=False)],
        force=True,
    )


def _parse_date(text: str, fmt: str) -> Optional[date]:
    try:
        return datetime.strptime(text.strip(), fmt).date()
    except ValueError:
        return None


def _student_line(s: Student, records: Records) -> str:
    status = "active" if s.active else "inactive"
    gpa = records.enrollments.gpa(s.id)
    return f"{s.id} | {s.reg_no} | {s.name} | {s.email} | {len(s.enrolled_courses)} courses | GPA {gpa:.2f} | {status}"


def _course_line(c: Course) -> str:
    dept = c.department or "-"
    status = "" if c.active else " | inactive"
    return (
        f"{c.code} | {c.title} | {c.credits} cr | {c.semester.display_name} | {dept} | "
        f"{c.current_enrollment}/{c.max_capacity}{status}"
    )


# ---------------------------------------------------------------------------
# Students
# ---------------------------------------------------------------------------


def _cmd_student_add(args: argparse.Namespace, records: Records) -> int:
    dob = _parse_date(args.date_of_birth, records.config.date_format)
    problems = validate_student(args.id, args.reg_no, args.first_name, args.last_name, args.email, dob)
    if problems:
        print("Validation errors:")
        for p in problems:
            print(f"- {p}")
        return 1

    assert dob is not None
    student = Student(
        id=args.id,
        reg_no=args.reg_no,
        name=Name(args.first_name, args.last_name),
        email=args.email,
        date_of_birth=dob,
        max_credits_per_semester=args.max_credits or records.config.default_max_credits,
    )
    records.students.save(student)
    print(f"Added student: {student.id} ({student.name})")
    return 0


def _cmd_student_list(args: argparse.Namespace, records: Records) -> int:
    students = records.students.find_active() if args.active else records.students.find_all()
    if not students:
        print("No students found.")
        return 0
    for s in sorted(students, key=lambda x: x.id):
        print(_student_line(s, records))
    return 0


def _cmd_student_search(args: argparse.Namespace, records: Records) -> int:
    matches = records.students.search(args.text)
    if not matches:
        print("No results.")
        return 0
    for s in sorted(matches, key=lambda x: x.id):
        print(_student_line(s, records))
    return 0


def _cmd_student_show(args: argparse.Namespace, records: Records) -> int:
    s = records.students.get(args.id)
    gpa = records.enrollments.gpa(s.id)
    print(display_info(s))
    print(f"ID: {s.id}")
    print(f"Email: {s.email}")
    print(f"Date of birth: {s.date_of_birth.isoformat()}")
    print(f"Enrolled since: {s.enrollment_date.isoformat()}")
    print(f"Status: {'active' if s.active else 'inactive'}")
    print(f"Credit load: {records.enrollments.credit_load(s.id)}/{s.max_credits_per_semester}")
    print(f"GPA: {gpa:.2f} ({academic_standing(gpa)})")
    for e in records.enrollments.for_student(s.id):
        grade = e.grade.name if e.grade else "-"
        state = "active" if e.active else "withdrawn"
        print(f"- {e.course_code} | grade {grade} | {state}")
    return 0


def _cmd_student_update(args: argparse.Namespace, records: Records) -> int:
    current = records.students.get(args.id)
    if not is_valid_email(args.email):
        print(f"Invalid email format: {args.email}")
        return 1

    records.students.update(current.id, replace(current, email=args.email))
    print(f"Updated student: {current.id} (email {args.email})")
    return 0


def _cmd_student_set_active(args: argparse.Namespace, records: Records) -> int:
    if args.action == "activate":
        records.students.activate(args.id)
        print(f"Activated: {args.id}")
    else:
        records.students.deactivate(args.id)
        print(f"Deactivated: {args.id}")
    return 0


# ---------------------------------------------------------------------------
# Courses
# ---------------------------------------------------------------------------


def _cmd_course_add(args: argparse.Namespace, records: Records) -> int:
    problems = validate_course(args.code, args.title, args.credits, args.capacity)
    if problems:
        print("Validation errors:")
        for p in problems:
            print(f"- {p}")
        return 1

    course = Course(
        code=args.code,
        title=args.title,
        credits=args.credits,
        semester=Semester.parse(args.semester),
        department=args.department,
        max_capacity=args.capacity,
    )
    if args.instructor:
        records.instructors.get(args.instructor)
    records.courses.save(course)
    if args.instructor:
        records.instructors.assign_course(args.instructor, course.code, records.courses)
    print(f"Added course: {course.code} ({course.title})")
    return 0


def _cmd_course_list(args: argparse.Namespace, records: Records) -> int:
    courses = records.courses.find_all()
    if args.semester:
        semester = Semester.parse(args.semester)
        courses = [c for c in courses if c.semester is semester]
    if args.department:
        dept = args.department.strip().lower()
        courses = [c for c in courses if (c.department or "").lower() == dept]
    if args.available:
        courses = [c for c in courses if c.active and not c.is_full]

    if not courses:
        print("No courses found.")
        return 0
    for c in sorted(courses, key=lambda x: x.code):
        print(_course_line(c))
    return 0


def _cmd_course_search(args: argparse.Namespace, records: Records) -> int:
    matches = records.courses.search(args.text)
    if not matches:
        print("No results.")
        return 0
    for c in sorted(matches, key=lambda x: x.code):
        print(_course_line(c))
    return 0


def _cmd_course_deactivate(args: argparse.Namespace, records: Records) -> int:
    records.courses.deactivate(args.code)
    n = records.enrollments.cancel_course(args.code)
    print(f"Deactivated: {args.code} ({n} enrollments cancelled)")
    return 0


# ---------------------------------------------------------------------------
# Instructors
# ---------------------------------------------------------------------------


def _cmd_instructor_add(args: argparse.Namespace, records: Records) -> int:
    dob = _parse_date(args.date_of_birth, records.config.date_format)
    if dob is None:
        print(f"Invalid date of birth: {args.date_of_birth}")
        return 1

    instructor = Instructor(
        id=args.id,
        employee_id=args.employee_id,
        name=Name(args.first_name, args.last_name),
        email=args.email,
        date_of_birth=dob,
        department=args.department,
    )
    records.instructors.save(instructor)
    print(f"Added instructor: {instructor.id} ({instructor.name})")
    return 0


def _cmd_instructor_list(args: argparse.Namespace, records: Records) -> int:
    instructors = records.instructors.find_all()
    if not instructors:
        print("No instructors found.")
        return 0
    for i in sorted(instructors, key=lambda x: x.id):
        print(f"{i.id} | {display_info(i)}")
    return 0


def _cmd_instructor_assign(args: argparse.Namespace, records: Records) -> int:
    records.instructors.assign_course(args.id, args.code, records.courses)
    print(f"Assigned {args.code} to {args.id}")
    return 0


# ---------------------------------------------------------------------------
# Enrollments & grades
# ---------------------------------------------------------------------------


def _cmd_enroll(args: argparse.Namespace, records: Records) -> int:
    records.enrollments.enroll(args.student_id, args.course_code)
    print(f"Enrolled {args.student_id} in {args.course_code}")
    return 0


def _cmd_unenroll(args: argparse.Namespace, records: Records) -> int:
    if not records.enrollments.unenroll(args.student_id, args.course_code):
        print(f"Not enrolled: {args.student_id} in {args.course_code}")
        return 1
    print(f"Unenrolled {args.student_id} from {args.course_code}")
    return 0


def _cmd_withdraw(args: argparse.Namespace, records: Records) -> int:
    e = records.enrollments.withdraw(args.student_id, args.course_code)
    print(f"Withdrawn: {e.student_id} from {e.course_code}")
    return 0


def _cmd_grade(args: argparse.Namespace, records: Records) -> int:
    e = records.enrollments.record_grade(args.student_id, args.course_code, args.grade)
    assert e.grade is not None
    print(f"Recorded grade {e.grade.name} for {e.student_id} in {e.course_code}")
    return 0


def _cmd_transcript(args: argparse.Namespace, records: Records) -> int:
    s = records.students.get(args.student_id)
    rows = records.enrollments.transcript(s.id)

    print("ACADEMIC TRANSCRIPT")
    print(f"Student: {s.name}")
    print(f"Registration No: {s.reg_no}")
    if not rows:
        print("No enrollments recorded.")
        return 0

    for r in rows:
        grade = f"{r.grade.name} ({r.grade.points:g})" if r.grade else "-"
        state = "" if r.active else " | withdrawn"
        print(f"{r.course_code} | {r.title} | {r.credits} cr | {grade}{state}")
    print(f"Overall GPA: {records.enrollments.gpa(s.id):.2f}")
    return 0


# ---------------------------------------------------------------------------
# Reports
# ---------------------------------------------------------------------------


def _cmd_report(args: argparse.Namespace, records: Records) -> int:
    if args.kind == "students":
        st = student_statistics(records.students, records.enrollments)
        print(f"Students: {st.total} (active: {st.active})")
        print(f"Average GPA: {st.average_gpa:.2f}")
        for n_courses, n_students in st.enrollment_distribution.items():
            print(f"- {n_courses} courses: {n_students} students")
        return 0

    if args.kind == "courses":
        cs = course_statistics(records.courses, popular_limit=args.limit)
        print(f"Courses: {cs.total} (active: {cs.active})")
        print(f"Average enrollment: {cs.average_enrollment:.1f}")
        print(f"Total credits offered: {cs.total_credits_offered}")
        for dept, n in cs.by_department.items():
            print(f"- {dept}: {n}")
        for sem, n in cs.by_semester.items():
            print(f"- {sem.display_name}: {n}")
        for c in cs.most_popular:
            print(f"* {c.code} {c.title} ({c.current_enrollment} enrolled)")
        return 0

    if args.kind == "top":
        ranked = top_students(records.students, records.enrollments, limit=args.limit)
        if not ranked:
            print("No students found.")
            return 0
        for i, (s, gpa) in enumerate(ranked, start=1):
            print(f"{i}. {s.id} {s.name} | GPA {gpa:.2f} | {academic_standing(gpa)}")
        return 0

    # grades
    for g, n in grade_distribution(records.enrollments).items():
        print(f"{g.name} ({g.description}): {n}")
    print(f"Passing rate: {records.enrollments.passing_rate():.1f}%")
    return 0


# ---------------------------------------------------------------------------
# Files & backups
# ---------------------------------------------------------------------------


def _cmd_files(args: argparse.Namespace, records: Records) -> int:
    files = records.repository.list_data_files()
    if not files:
        print("No data files.")
        return 0
    for p in files:
        info = records.repository.file_info(p)
        print(f"{p.name} | {format_size(info.size_bytes)} | modified {info.modified.isoformat(timespec='seconds')}")
    return 0


def _cmd_backup(args: argparse.Namespace, records: Records) -> int:
    backups = records.backups

    if args.action == "create":
        # snapshot what is in memory, not what happens to be on disk
        records.save()
        path = backups.create_snapshot()
        info = backups.snapshot_info(path)
        print(f"Backup created: {path.name} ({info.formatted_size}, {info.file_count} files)")
        return 0

    if args.action == "prune":
        removed = backups.prune(args.keep)
        print(f"Removed {removed} old backup(s).")
        return 0

    snapshots = backups.list_snapshots()
    if not snapshots:
        print("No backups found.")
        return 0

    if args.action == "list":
        for p in snapshots:
            info = backups.snapshot_info(p)
            created = info.created.strftime(records.config.timestamp_format)
            print(f"{p.name} | {info.formatted_size} | {info.file_count} files | {created}")
        return 0

    # size
    total = 0
    for p in snapshots:
        size = backups.snapshot_size(p)
        total += size
        print(f"{p.name} | {format_size(size)}")
        for line in backups.tree(p, max_depth=args.depth)[1:]:
            print(f"  {line}")
    print(f"Total backup size: {format_size(total)}")
    return 0


# ---------------------------------------------------------------------------
# Parser & entry point
# ---------------------------------------------------------------------------


def build_parser() -> argparse.ArgumentParser:
    """
    Build the argparse CLI parser with sub-commands.
    """
    parser = argparse.ArgumentParser(prog="campusrecords", description=f"{APP_NAME} CLI")
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    parser.add_argument("--data-dir", help="Directory with the CSV data files (default: data)")
    parser.add_argument("--backup-dir", help="Directory for backup snapshots (default: backup)")
    parser.add_argument("-v", "--verbose", action="store_true", help="Log informational messages")
    sub = parser.add_subparsers(dest="command", required=True)

    # student
    p_student = sub.add_parser("student", help="Manage students")
    s_sub = p_student.add_subparsers(dest="action", required=True)

    p = s_sub.add_parser("add", help="Add a student")
    p.add_argument("id")
    p.add_argument("reg_no", help="Registration number (e.g. 23CSE00001)")
    p.add_argument("first_name")
    p.add_argument("last_name")
    p.add_argument("email")
    p.add_argument("date_of_birth", help="YYYY-MM-DD")
    p.add_argument("--max-credits", type=int, default=None, help="Max credits per semester")

    p = s_sub.add_parser("list", help="List students")
    p.add_argument("--active", action="store_true", help="Only active students")

    p = s_sub.add_parser("search", help="Search by name, registration number or email")
    p.add_argument("text", type=str, help="Search text (blank = all)")

    p = s_sub.add_parser("show", help="Show a student's profile")
    p.add_argument("id")

    p = s_sub.add_parser("update", help="Update a student's email")
    p.add_argument("id")
    p.add_argument("--email", required=True)

    for action in ("activate", "deactivate"):
        p = s_sub.add_parser(action, help=f"{action.capitalize()} a student")
        p.add_argument("id")

    # course
    p_course = sub.add_parser("course", help="Manage courses")
    c_sub = p_course.add_subparsers(dest="action", required=True)

    p = c_sub.add_parser("add", help="Add a course")
    p.add_argument("code", help="Course code (e.g. CSE101)")
    p.add_argument("title")
    p.add_argument("--credits", type=int, default=3)
    p.add_argument("--semester", default="FALL", choices=[s.name for s in Semester])
    p.add_argument("--department", default=None)
    p.add_argument("--capacity", type=int, default=50)
    p.add_argument("--instructor", default=None, help="Instructor id")

    p = c_sub.add_parser("list", help="List courses")
    p.add_argument("--semester", default=None, choices=[s.name for s in Semester])
    p.add_argument("--department", default=None)
    p.add_argument("--available", action="store_true", help="Only active courses with free spots")

    p = c_sub.add_parser("search", help="Search by code, title or department")
    p.add_argument("text", type=str, help="Search text (blank = all)")

    p = c_sub.add_parser("deactivate", help="Deactivate a course and cancel its enrollments")
    p.add_argument("code")

    # instructor
    p_instr = sub.add_parser("instructor", help="Manage instructors")
    i_sub = p_instr.add_subparsers(dest="action", required=True)

    p = i_sub.add_parser("add", help="Add an instructor")
    p.add_argument("id")
    p.add_argument("employee_id")
    p.add_argument("first_name")
    p.add_argument("last_name")
    p.add_argument("email")
    p.add_argument("date_of_birth", help="YYYY-MM-DD")
    p.add_argument("department")

    i_sub.add_parser("list", help="List instructors")

    p = i_sub.add_parser("assign", help="Assign an instructor to a course")
    p.add_argument("id")
    p.add_argument("code")

    # enrollments
    for name, help_text in (
        ("enroll", "Enroll a student in a course"),
        ("unenroll", "Remove an enrollment"),
        ("withdraw", "Withdraw a student from a course (keeps the record)"),
    ):
        p = sub.add_parser(name, help=help_text)
        p.add_argument("student_id")
        p.add_argument("course_code")

    p = sub.add_parser("grade", help="Record a grade")
    p.add_argument("student_id")
    p.add_argument("course_code")
    p.add_argument("grade", help="S, A, B, C, D, E or F")

    p = sub.add_parser("transcript", help="Show a student's transcript")
    p.add_argument("student_id")

    p = sub.add_parser("report", help="Statistics")
    p.add_argument("kind", choices=["students", "courses", "top", "grades"])
    p.add_argument("--limit", type=int, default=5)

    sub.add_parser("files", help="List data files")

    p = sub.add_parser("backup", help="Backup snapshots")
    b_sub = p.add_subparsers(dest="action", required=True)
    b_sub.add_parser("create", help="Save data and snapshot the data directory")
    b_sub.add_parser("list", help="List snapshots")
    p = b_sub.add_parser("size", help="Show snapshot sizes (recursive)")
    p.add_argument("--depth", type=int, default=2)
    p = b_sub.add_parser("prune", help="Delete the oldest snapshots")
    p.add_argument("keep", type=int, help="Number of snapshots to keep")

    sub.add_parser("interactive", help="Interactive menu mode")

    return parser


Handler = Callable[[argparse.Namespace, Records], int]

HANDLERS: dict[tuple[str, Optional[str]], Handler] = {
    ("student", "add"): _cmd_student_add,
    ("student", "list"): _cmd_student_list,
    ("student", "search"): _cmd_student_search,
    ("student", "show"): _cmd_student_show,
    ("student", "update"): _cmd_student_update,
    ("student", "activate"): _cmd_student_set_active,
    ("student", "deactivate"): _cmd_student_set_active,
    ("course", "add"): _cmd_course_add,
    ("course", "list"): _cmd_course_list,
    ("course", "search"): _cmd_course_search,
    ("course", "deactivate"): _cmd_course_deactivate,
    ("instructor", "add"): _cmd_instructor_add,
    ("instructor", "list"): _cmd_instructor_list,
    ("instructor", "assign"): _cmd_instructor_assign,
    ("enroll", None): _cmd_enroll,
    ("unenroll", None): _cmd_unenroll,
    ("withdraw", None): _cmd_withdraw,
    ("grade", None): _cmd_grade,
    ("transcript", None): _cmd_transcript,
    ("report", None): _cmd_report,
    ("files", None): _cmd_files,
    ("backup", "create"): _cmd_backup,
    ("backup", "list"): _cmd_backup,
    ("backup", "size"): _cmd_backup,
    ("backup", "prune"): _cmd_backup,
}


def run_command(args: argparse.Namespace, records: Records) -> int:
    """
    Dispatch one parsed command. Business and file errors are reported, not raised.
    """
    key = (args.command, getattr(args, "action", None))
    handler = HANDLERS.get(key)
    if handler is None:
        return 2

    try:
        rc = handler(args, records)
        if rc == 0 and key in MUTATING:
            records.save()
        return rc
    except CampusRecordsError as e:
        print(f"Error: {e.message}")
        return 1
    except OSError as e:
        print(f"File error: {e}")
        return 1


def main(argv: list[str] | None = None) -> None:
    """
    CLI entry point. Parses args, dispatches to command handlers,
    and exits via SystemExit with a return code.
    """
    parser = build_parser()
    args = parser.parse_args(argv)

    configure_logging(args.verbose)

    config = AppConfig.from_env().with_dirs(args.data_dir, args.backup_dir)

    try:
        records = load_records(config)
    except OSError as e:
        print(f"Could not load data from {config.data_dir}: {e}")
        raise SystemExit(1)

    if args.command == "interactive":
        from campusrecords.interactive import run_interactive

        run_interactive(records)
        raise SystemExit(0)

    raise SystemExit(run_command(args, records))
