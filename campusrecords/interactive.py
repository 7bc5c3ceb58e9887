from __future__ import annotations

from dataclasses import replace
from datetime import date, datetime
from typing import Callable, Optional

from rich import box
from rich.console import Console
from rich.table import Table

from campusrecords.backup import format_size
from campusrecords.config import APP_NAME
from campusrecords.errors import CampusRecordsError
from campusrecords.model import Course, Name, Semester, Student, display_info
from campusrecords.reports import academic_standing, course_statistics, grade_distribution, student_statistics, top_students
from campusrecords.session import Records
from campusrecords.validators import is_valid_email, validate_course, validate_student

console = Console()


def _println(msg: str = "") -> None:
    console.print(msg)


def _prompt(msg: str) -> str:
    return console.input(msg)


def _prompt_int(msg: str, default: Optional[int] = None) -> Optional[int]:
    raw = _prompt(msg).strip()
    if not raw:
        return default
    if not raw.lstrip("-").isdigit():
        _println("Not a number.")
        return None
    return int(raw)


def _prompt_date(msg: str, fmt: str) -> Optional[date]:
    raw = _prompt(msg).strip()
    try:
        return datetime.strptime(raw, fmt).date()
    except ValueError:
        _println(f"Invalid date: {raw!r}")
        return None


def _submenu(title: str, options: list[tuple[str, Callable[[Records], None]]], records: Records) -> None:
    """
    Show a numbered submenu once and run the chosen action.
    """
    lines = [f"\n--- {title} ---"]
    for i, (label, _) in enumerate(options, start=1):
        lines.append(f"[{i}] {label}")
    lines.append("[0] Back")
    _println("\n".join(lines))

    pick = _prompt("Select: ").strip()
    if pick in ("", "0"):
        return
    if not pick.isdigit() or not (1 <= int(pick) <= len(options)):
        _println("Invalid choice.")
        return
    options[int(pick) - 1][1](records)


def run_interactive(records: Records) -> None:
    """
    Interactive menu loop. Errors of one action are reported and the loop continues.
    """
    menu: dict[str, Callable[[Records], None]] = {
        "1": _menu_students,
        "2": _menu_courses,
        "3": _menu_enrollments,
        "4": _menu_grades,
        "5": _menu_reports,
        "6": _menu_files,
        "7": _menu_backups,
    }

    while True:
        _print_header(records)

        choice = _prompt(
            "\n[1] Manage students\n"
            "[2] Manage courses\n"
            "[3] Manage enrollments\n"
            "[4] Grades & transcripts\n"
            "[5] Reports\n"
            "[6] File operations\n"
            "[7] Backups\n"
            "[0] Exit\n"
            "Select: "
        ).strip()

        if choice == "0":
            _println("Bye.")
            return

        action = menu.get(choice)
        if action is None:
            _println("Invalid choice.")
            continue

        try:
            action(records)
        except CampusRecordsError as e:
            _println(f"[red]Error:[/] {e.message}")
        except OSError as e:
            _println(f"[red]File error:[/] {e}")


def _print_header(records: Records) -> None:
    _println(f"\n=== {APP_NAME} ===")
    _println(
        f"Students: {records.students.count()} | Courses: {records.courses.count()} | "
        f"Enrollments: {records.enrollments.active_count()} active / {records.enrollments.total_count()} total"
    )
    _println(f"Data: {records.config.data_dir} | Backups: {records.config.backup_dir}")


# ---------------------------------------------------------------------------
# Students
# ---------------------------------------------------------------------------


def _students_table(title: str, students: list[Student], records: Records) -> None:
    table = Table(title=title, box=box.SIMPLE)
    table.add_column("ID", style="bold cyan")
    table.add_column("Reg No")
    table.add_column("Name")
    table.add_column("Email")
    table.add_column("Courses", justify="right")
    table.add_column("GPA", justify="right")
    table.add_column("Status")
    for s in sorted(students, key=lambda x: x.id):
        status = "[green]active[/]" if s.active else "[red]inactive[/]"
        table.add_row(
            s.id,
            s.reg_no,
            s.name.full_name,
            s.email,
            str(len(s.enrolled_courses)),
            f"{records.enrollments.gpa(s.id):.2f}",
            status,
        )
    console.print(table)


def _menu_students(records: Records) -> None:
    _submenu(
        "Students",
        [
            ("Add student", _flow_add_student),
            ("List all students", _flow_list_students),
            ("Search students", _flow_search_students),
            ("Show student profile", _flow_student_profile),
            ("Update student email", _flow_update_student),
            ("Deactivate student", _flow_deactivate_student),
        ],
        records,
    )


def _flow_add_student(records: Records) -> None:
    student_id = _prompt("Student ID: ").strip()
    reg_no = _prompt("Registration number (e.g. 23CSE00001): ").strip()
    first = _prompt("First name: ").strip()
    last = _prompt("Last name: ").strip()
    email = _prompt("Email: ").strip()
    dob = _prompt_date("Date of birth (YYYY-MM-DD): ", records.config.date_format)

    problems = validate_student(student_id, reg_no, first, last, email, dob)
    if problems:
        _println("Validation errors:")
        for p in problems:
            _println(f"- {p}")
        return

    assert dob is not None
    max_credits = _prompt_int(
        f"Max credits per semester [{records.config.default_max_credits}]: ", records.config.default_max_credits
    )
    if max_credits is None:
        return

    records.students.save(
        Student(
            id=student_id,
            reg_no=reg_no,
            name=Name(first, last),
            email=email,
            date_of_birth=dob,
            max_credits_per_semester=max_credits,
        )
    )
    records.save()
    _println(f"Added student: {student_id}")


def _flow_list_students(records: Records) -> None:
    students = records.students.find_all()
    if not students:
        _println("No students found.")
        return
    _students_table("Students", students, records)


def _flow_search_students(records: Records) -> None:
    query = _prompt("Search text (name, reg no, email) (blank = all): ")
    matches = records.students.search(query)
    if not matches:
        _println("No results.")
        return
    _students_table("Search results", matches, records)


def _flow_student_profile(records: Records) -> None:
    s = records.students.get(_prompt("Student ID: ").strip())
    gpa = records.enrollments.gpa(s.id)

    _println(f"\n[bold]{display_info(s)}[/]")
    _println(f"Email: {s.email} | Born: {s.date_of_birth.isoformat()} | Since: {s.enrollment_date.isoformat()}")
    _println(f"Credit load: {records.enrollments.credit_load(s.id)}/{s.max_credits_per_semester}")
    _println(f"GPA: {gpa:.2f} ({academic_standing(gpa)})")

    enrollments = records.enrollments.for_student(s.id)
    if not enrollments:
        _println("No enrollments.")
        return
    for e in enrollments:
        grade = e.grade.name if e.grade else "-"
        state = "active" if e.active else "withdrawn"
        _println(f"- {e.course_code} | grade {grade} | {state}")


def _flow_update_student(records: Records) -> None:
    current = records.students.get(_prompt("Student ID: ").strip())
    email = _prompt(f"New email (current {current.email}): ").strip()
    if not is_valid_email(email):
        _println(f"Invalid email format: {email!r}")
        return

    records.students.update(current.id, replace(current, email=email))
    records.save()
    _println(f"Updated student: {current.id}")


def _flow_deactivate_student(records: Records) -> None:
    student_id = _prompt("Student ID: ").strip()
    records.students.deactivate(student_id)
    records.save()
    _println(f"Deactivated: {student_id}")


# ---------------------------------------------------------------------------
# Courses
# ---------------------------------------------------------------------------


def _courses_table(title: str, courses: list[Course]) -> None:
    table = Table(title=title, box=box.SIMPLE)
    table.add_column("Code", style="bold cyan")
    table.add_column("Title")
    table.add_column("Credits", justify="right")
    table.add_column("Semester")
    table.add_column("Department")
    table.add_column("Enrolled", justify="right")
    table.add_column("Instructor")
    for c in sorted(courses, key=lambda x: x.code):
        enrolled = f"{c.current_enrollment}/{c.max_capacity}"
        if c.is_full:
            enrolled = f"[red]{enrolled}[/]"
        table.add_row(
            c.code,
            c.title if c.active else f"[dim]{c.title} (inactive)[/]",
            str(c.credits),
            c.semester.display_name,
            c.department or "",
            enrolled,
            c.instructor_id or "",
        )
    console.print(table)


def _menu_courses(records: Records) -> None:
    _submenu(
        "Courses",
        [
            ("Add course", _flow_add_course),
            ("List courses", _flow_list_courses),
            ("Search courses", _flow_search_courses),
        ],
        records,
    )


def _flow_add_course(records: Records) -> None:
    code = _prompt("Course code (e.g. CSE101): ").strip().upper()
    title = _prompt("Title: ").strip()
    credits = _prompt_int("Credits [3]: ", 3)
    capacity = _prompt_int("Max capacity [50]: ", 50)
    if credits is None or capacity is None:
        return

    problems = validate_course(code, title, credits, capacity)
    if problems:
        _println("Validation errors:")
        for p in problems:
            _println(f"- {p}")
        return

    semester_raw = _prompt("Semester (SPRING/SUMMER/FALL) [FALL]: ").strip() or "FALL"
    department = _prompt("Department (blank = none): ").strip() or None

    records.courses.save(
        Course(
            code=code,
            title=title,
            credits=credits,
            semester=Semester.parse(semester_raw),
            department=department,
            max_capacity=capacity,
        )
    )
    records.save()
    _println(f"Added course: {code}")


def _flow_list_courses(records: Records) -> None:
    courses = records.courses.find_all()
    if not courses:
        _println("No courses found.")
        return
    _courses_table("Courses", courses)


def _flow_search_courses(records: Records) -> None:
    query = _prompt("Search text (code, title, department) (blank = all): ")
    matches = records.courses.search(query)
    if not matches:
        _println("No results.")
        return
    _courses_table("Search results", matches)


# ---------------------------------------------------------------------------
# Enrollments & grades
# ---------------------------------------------------------------------------


def _menu_enrollments(records: Records) -> None:
    _submenu(
        "Enrollments",
        [
            ("Enroll student in course", _flow_enroll),
            ("Unenroll student from course", _flow_unenroll),
            ("Withdraw student from course", _flow_withdraw),
            ("List student enrollments", _flow_list_enrollments),
        ],
        records,
    )


def _ask_pair() -> tuple[str, str]:
    student_id = _prompt("Student ID: ").strip()
    course_code = _prompt("Course code: ").strip().upper()
    return student_id, course_code


def _flow_enroll(records: Records) -> None:
    student_id, course_code = _ask_pair()
    records.enrollments.enroll(student_id, course_code)
    records.save()
    _println(f"[green]Enrolled[/] {student_id} in {course_code}")


def _flow_unenroll(records: Records) -> None:
    student_id, course_code = _ask_pair()
    if records.enrollments.unenroll(student_id, course_code):
        records.save()
        _println(f"Unenrolled {student_id} from {course_code}")
    else:
        _println("No such enrollment.")


def _flow_withdraw(records: Records) -> None:
    student_id, course_code = _ask_pair()
    records.enrollments.withdraw(student_id, course_code)
    records.save()
    _println(f"Withdrawn: {student_id} from {course_code}")


def _flow_list_enrollments(records: Records) -> None:
    student_id = _prompt("Student ID: ").strip()
    records.students.get(student_id)
    enrollments = records.enrollments.for_student(student_id)
    if not enrollments:
        _println("No enrollments.")
        return

    table = Table(title=f"Enrollments of {student_id}", box=box.SIMPLE)
    table.add_column("Course", style="bold cyan")
    table.add_column("Enrolled at")
    table.add_column("Grade")
    table.add_column("Status")
    table.add_column("Notes")
    for e in enrollments:
        table.add_row(
            e.course_code,
            e.enrolled_at.strftime("%Y-%m-%d %H:%M"),
            e.grade.name if e.grade else "",
            "active" if e.active else "withdrawn",
            e.notes or "",
        )
    console.print(table)


def _menu_grades(records: Records) -> None:
    _submenu(
        "Grades",
        [
            ("Record grade", _flow_record_grade),
            ("View transcript", _flow_transcript),
        ],
        records,
    )


def _flow_record_grade(records: Records) -> None:
    student_id, course_code = _ask_pair()
    grade = _prompt("Grade (S/A/B/C/D/E/F): ").strip()
    e = records.enrollments.record_grade(student_id, course_code, grade)
    records.save()
    assert e.grade is not None
    _println(f"Recorded {e.grade.name} ({e.grade.description}) for {student_id} in {course_code}")


def _flow_transcript(records: Records) -> None:
    s = records.students.get(_prompt("Student ID: ").strip())
    rows = records.enrollments.transcript(s.id)

    _println(f"\n[bold]ACADEMIC TRANSCRIPT[/] - {s.name} ({s.reg_no})")
    if not rows:
        _println("No enrollments recorded.")
        return

    table = Table(box=box.SIMPLE)
    table.add_column("Course", style="bold cyan")
    table.add_column("Title")
    table.add_column("Credits", justify="right")
    table.add_column("Grade")
    for r in rows:
        grade = f"{r.grade.name} ({r.grade.points:g})" if r.grade else "-"
        if not r.active:
            grade += " [dim]withdrawn[/]"
        table.add_row(r.course_code, r.title, str(r.credits), grade)
    console.print(table)
    _println(f"Overall GPA: [yellow]{records.enrollments.gpa(s.id):.2f}[/]")


# ---------------------------------------------------------------------------
# Reports
# ---------------------------------------------------------------------------


def _menu_reports(records: Records) -> None:
    _submenu(
        "Reports",
        [
            ("Student statistics", _flow_student_stats),
            ("Course statistics", _flow_course_stats),
            ("Top students by GPA", _flow_top_students),
            ("Grade distribution", _flow_grade_distribution),
        ],
        records,
    )


def _flow_student_stats(records: Records) -> None:
    st = student_statistics(records.students, records.enrollments)
    _println(f"Students: {st.total} (active: {st.active})")
    _println(f"Average GPA: {st.average_gpa:.2f}")
    for n_courses, n_students in st.enrollment_distribution.items():
        _println(f"- {n_courses} courses: {n_students} students")


def _flow_course_stats(records: Records) -> None:
    cs = course_statistics(records.courses)
    _println(f"Courses: {cs.total} (active: {cs.active})")
    _println(f"Average enrollment: {cs.average_enrollment:.1f}")
    _println(f"Total credits offered: {cs.total_credits_offered}")
    if cs.by_department:
        _println("By department:")
        for dept, n in cs.by_department.items():
            _println(f"  {dept}: {n}")
    if cs.by_semester:
        _println("By semester:")
        for sem, n in cs.by_semester.items():
            _println(f"  {sem.display_name}: {n}")
    if cs.most_popular:
        _courses_table("Most popular", cs.most_popular)


def _flow_top_students(records: Records) -> None:
    limit = _prompt_int("How many? [5]: ", 5)
    if limit is None:
        return
    ranked = top_students(records.students, records.enrollments, limit)
    if not ranked:
        _println("No students found.")
        return

    table = Table(title="Top students", box=box.SIMPLE)
    table.add_column("#", justify="right")
    table.add_column("Student")
    table.add_column("GPA", justify="right")
    table.add_column("Standing")
    for i, (s, gpa) in enumerate(ranked, start=1):
        table.add_row(str(i), f"[bold cyan]{s.id}[/] {s.name}", f"{gpa:.2f}", academic_standing(gpa))
    console.print(table)


def _flow_grade_distribution(records: Records) -> None:
    table = Table(title="Grade distribution", box=box.SIMPLE)
    table.add_column("Grade")
    table.add_column("Description")
    table.add_column("Count", justify="right")
    for g, n in grade_distribution(records.enrollments).items():
        table.add_row(g.name, g.description, f"[yellow]{n}[/]")
    console.print(table)
    _println(f"Passing rate: {records.enrollments.passing_rate():.1f}%")


# ---------------------------------------------------------------------------
# Files & backups
# ---------------------------------------------------------------------------


def _menu_files(records: Records) -> None:
    _submenu(
        "File operations",
        [
            ("Export data", _flow_export),
            ("Re-import data from disk", _flow_import),
            ("List data files", _flow_list_files),
        ],
        records,
    )


def _flow_export(records: Records) -> None:
    records.save()
    _println(f"Data exported to {records.config.data_dir}")


def _flow_import(records: Records) -> None:
    confirm = _prompt("Discard in-memory changes and reload from disk? (y/N): ").strip().lower()
    if confirm != "y":
        return
    summary = records.reload()
    _println(
        f"Loaded {summary.students} students, {summary.courses} courses, "
        f"{summary.instructors} instructors and {summary.enrollments} enrollments."
    )


def _flow_list_files(records: Records) -> None:
    files = records.repository.list_data_files()
    if not files:
        _println("No data files.")
        return
    table = Table(title="Data files", box=box.SIMPLE)
    table.add_column("File")
    table.add_column("Size", justify="right")
    table.add_column("Modified")
    for p in files:
        info = records.repository.file_info(p)
        table.add_row(p.name, format_size(info.size_bytes), info.modified.strftime("%Y-%m-%d %H:%M:%S"))
    console.print(table)


def _menu_backups(records: Records) -> None:
    _submenu(
        "Backups",
        [
            ("Create backup", _flow_create_backup),
            ("List backups", _flow_list_backups),
            ("Show backup sizes (recursive)", _flow_backup_sizes),
            ("Clean old backups", _flow_prune_backups),
        ],
        records,
    )


def _flow_create_backup(records: Records) -> None:
    records.save()
    path = records.backups.create_snapshot()
    info = records.backups.snapshot_info(path)
    _println(f"Backup created: [bold]{path.name}[/] ({info.formatted_size}, {info.file_count} files)")


def _flow_list_backups(records: Records) -> None:
    snapshots = records.backups.list_snapshots()
    if not snapshots:
        _println("No backups found.")
        return
    table = Table(title="Backups", box=box.SIMPLE)
    table.add_column("Snapshot")
    table.add_column("Size", justify="right")
    table.add_column("Files", justify="right")
    for p in snapshots:
        info = records.backups.snapshot_info(p)
        table.add_row(p.name, info.formatted_size, str(info.file_count))
    console.print(table)


def _flow_backup_sizes(records: Records) -> None:
    snapshots = records.backups.list_snapshots()
    if not snapshots:
        _println("No backups found.")
        return
    total = 0
    for p in snapshots:
        size = records.backups.snapshot_size(p)
        total += size
        _println(f"[bold]{p.name}[/]  {format_size(size)}")
        for line in records.backups.tree(p, max_depth=2)[1:]:
            _println(f"  {line}")
    _println(f"Total backup size: [yellow]{format_size(total)}[/]")


def _flow_prune_backups(records: Records) -> None:
    keep = _prompt_int("Number of backups to keep: ")
    if keep is None:
        return
    removed = records.backups.prune(keep)
    _println(f"Removed {removed} old backup(s).")
