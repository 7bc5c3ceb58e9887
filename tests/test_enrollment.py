"""
Unit tests for the enrollment business rules.

Rules under test:
- duplicate enrollments are rejected
- full courses and credit limit overruns are rejected without partial mutation
- unenroll removes the record, the grade and both cross-references
- grades are overwritable, GPA is the mean of grade points
"""

import unittest
from datetime import date

from campusrecords.errors import (
    CourseFullError,
    CreditLimitExceededError,
    DuplicateEnrollmentError,
    NotFoundError,
    ValidationError,
)
from campusrecords.enrollment import EnrollmentManager
from campusrecords.model import Course, Enrollment, Grade, Name, Student
from campusrecords.store import CourseStore, StudentStore


def student(sid: str, reg_no: str, max_credits: int = 24) -> Student:
    return Student(
        id=sid,
        reg_no=reg_no,
        name=Name("Test", f"Student {sid}"),
        email=f"{sid.lower()}@uni.edu",
        date_of_birth=date(2004, 1, 1),
        max_credits_per_semester=max_credits,
    )


class EnrollmentTestCase(unittest.TestCase):
    def setUp(self) -> None:
        self.students = StudentStore()
        self.courses = CourseStore()
        self.students.save_all(
            [
                student("S1", "23CSE00001"),
                student("S2", "23CSE00002"),
                student("S3", "23CSE00003", max_credits=6),
            ]
        )
        self.courses.save_all(
            [
                Course("CSE101", "Intro to Programming", credits=4),
                Course("CSE201", "Data Structures", credits=3),
                Course("MATH201", "Linear Algebra", credits=3, max_capacity=1),
            ]
        )
        self.manager = EnrollmentManager(self.students, self.courses)


class TestEnroll(EnrollmentTestCase):
    def test_enroll_links_both_sides(self) -> None:
        e = self.manager.enroll("S1", "CSE101")
        self.assertTrue(e.active)
        self.assertIsNone(e.grade)
        self.assertIn("CSE101", self.students.get("S1").enrolled_courses)
        self.assertIn("S1", self.courses.get("CSE101").enrolled_students)
        self.assertIs(self.manager.get("S1", "CSE101"), e)

    def test_second_enroll_is_duplicate(self) -> None:
        self.manager.enroll("S1", "CSE101")
        with self.assertRaises(DuplicateEnrollmentError):
            self.manager.enroll("S1", "CSE101")
        self.assertEqual(self.manager.total_count(), 1)

    def test_unknown_student_or_course(self) -> None:
        with self.assertRaises(NotFoundError):
            self.manager.enroll("NOPE", "CSE101")
        with self.assertRaises(NotFoundError):
            self.manager.enroll("S1", "NOPE101")
        self.assertEqual(self.manager.total_count(), 0)

    def test_full_course_rejected_without_mutation(self) -> None:
        self.manager.enroll("S1", "MATH201")
        with self.assertRaises(CourseFullError) as ctx:
            self.manager.enroll("S2", "MATH201")
        self.assertEqual(ctx.exception.course_code, "MATH201")
        self.assertEqual(self.courses.get("MATH201").enrolled_students, {"S1"})
        self.assertEqual(self.students.get("S2").enrolled_courses, set())
        self.assertIsNone(self.manager.find("S2", "MATH201"))

    def test_credit_limit_overage(self) -> None:
        self.manager.enroll("S3", "CSE101")
        with self.assertRaises(CreditLimitExceededError) as ctx:
            self.manager.enroll("S3", "CSE201")
        err = ctx.exception
        self.assertEqual(err.current_credits, 4)
        self.assertEqual(err.attempted_credits, 3)
        self.assertEqual(err.max_credits, 6)
        self.assertEqual(err.overage, 1)
        self.assertEqual(err.details["overage"], 1)

        self.assertEqual(self.students.get("S3").enrolled_courses, {"CSE101"})
        self.assertNotIn("S3", self.courses.get("CSE201").enrolled_students)
        self.assertIsNone(self.manager.find("S3", "CSE201"))

    def test_credit_load_sums_actual_credits_of_active_enrollments(self) -> None:
        self.manager.enroll("S1", "CSE101")
        self.manager.enroll("S1", "CSE201")
        self.assertEqual(self.manager.credit_load("S1"), 7)

        self.manager.withdraw("S1", "CSE101")
        self.assertEqual(self.manager.credit_load("S1"), 3)

    def test_missing_course_counts_assumed_credits(self) -> None:
        self.manager.enroll("S1", "CSE101")
        self.courses.delete("CSE101")
        self.assertEqual(self.manager.credit_load("S1"), 3)


class TestUnenroll(EnrollmentTestCase):
    def test_unenroll_missing_pair(self) -> None:
        self.manager.enroll("S1", "CSE101")
        self.assertFalse(self.manager.unenroll("S1", "CSE201"))
        self.assertEqual(self.manager.total_count(), 1)
        self.assertEqual(self.students.get("S1").enrolled_courses, {"CSE101"})

    def test_unenroll_clears_grade_and_references(self) -> None:
        self.manager.enroll("S1", "CSE101")
        self.manager.record_grade("S1", "CSE101", "A")

        self.assertTrue(self.manager.unenroll("S1", "CSE101"))

        s = self.students.get("S1")
        self.assertNotIn("CSE101", s.enrolled_courses)
        self.assertFalse(s.has_grade("CSE101"))
        self.assertNotIn("S1", self.courses.get("CSE101").enrolled_students)
        self.assertIsNone(self.manager.find("S1", "CSE101"))


class TestGrades(EnrollmentTestCase):
    def test_record_grade_requires_enrollment(self) -> None:
        with self.assertRaises(NotFoundError):
            self.manager.record_grade("S1", "CSE101", Grade.A)

    def test_record_grade_overwrites(self) -> None:
        self.manager.enroll("S1", "CSE101")
        self.manager.record_grade("S1", "CSE101", Grade.C)
        e = self.manager.record_grade("S1", "CSE101", "s")
        self.assertIs(e.grade, Grade.S)
        self.assertIs(self.students.get("S1").grade_for("CSE101"), Grade.S)
        self.assertEqual(self.manager.by_grade("C"), [])

    def test_invalid_grade_rejected(self) -> None:
        self.manager.enroll("S1", "CSE101")
        with self.assertRaises(ValidationError):
            self.manager.record_grade("S1", "CSE101", "Q")
        self.assertIsNone(self.manager.get("S1", "CSE101").grade)

    def test_rejected_grade_leaves_enrollment_ungraded(self) -> None:
        self.manager.restore(Enrollment("S4", "CSE101"))
        self.students.save(student("S4", "23CSE00004"))

        with self.assertRaises(ValidationError):
            self.manager.record_grade("S4", "CSE101", Grade.A)

        self.assertIsNone(self.manager.get("S4", "CSE101").grade)
        self.assertFalse(self.students.get("S4").has_grade("CSE101"))

    def test_gpa(self) -> None:
        self.assertEqual(self.manager.gpa("S1"), 0.0)
        self.manager.enroll("S1", "CSE101")
        self.manager.enroll("S1", "CSE201")
        self.manager.enroll("S1", "MATH201")
        self.assertEqual(self.manager.gpa("S1"), 0.0)

        self.manager.record_grade("S1", "CSE101", Grade.A)
        self.manager.record_grade("S1", "CSE201", Grade.B)
        self.assertEqual(self.manager.gpa("S1"), 8.5)

    def test_distribution_and_passing_rate(self) -> None:
        self.assertEqual(self.manager.passing_rate(), 0.0)
        self.manager.enroll("S1", "CSE101")
        self.manager.enroll("S2", "CSE101")
        self.manager.enroll("S2", "CSE201")
        self.manager.record_grade("S1", "CSE101", Grade.A)
        self.manager.record_grade("S2", "CSE101", Grade.F)

        self.assertEqual(self.manager.grade_distribution(), {Grade.A: 1, Grade.F: 1})
        self.assertEqual(self.manager.passing_rate(), 50.0)

    def test_transcript(self) -> None:
        self.manager.enroll("S1", "CSE201")
        self.manager.enroll("S1", "CSE101")
        self.manager.record_grade("S1", "CSE101", Grade.B)

        rows = self.manager.transcript("S1")
        self.assertEqual([r.course_code for r in rows], ["CSE101", "CSE201"])
        self.assertEqual(rows[0].credits, 4)
        self.assertIs(rows[0].grade, Grade.B)
        self.assertIsNone(rows[1].grade)

        with self.assertRaises(NotFoundError):
            self.manager.transcript("NOPE")


class TestWithdrawAndRestore(EnrollmentTestCase):
    def test_withdraw_keeps_record(self) -> None:
        self.manager.enroll("S1", "CSE101")
        e = self.manager.withdraw("S1", "CSE101")
        self.assertFalse(e.active)
        self.assertTrue(e.notes.startswith("Withdrawn on "))
        self.assertEqual(self.manager.total_count(), 1)
        self.assertEqual(self.manager.active_count(), 0)

    def test_withdraw_frees_credits_but_keeps_seat(self) -> None:
        self.manager.enroll("S3", "MATH201")
        self.manager.withdraw("S3", "MATH201")

        self.assertEqual(self.manager.credit_load("S3"), 0)
        self.assertTrue(self.courses.get("MATH201").is_full)
        with self.assertRaises(CourseFullError):
            self.manager.enroll("S1", "MATH201")

        self.manager.unenroll("S3", "MATH201")
        self.manager.enroll("S1", "MATH201")

    def test_withdraw_student_and_cancel_course(self) -> None:
        self.manager.enroll("S1", "CSE101")
        self.manager.enroll("S1", "CSE201")
        self.manager.enroll("S2", "CSE201")

        self.assertEqual(self.manager.withdraw_student("S1"), 2)
        self.assertEqual(self.manager.cancel_course("CSE201"), 2)
        self.assertEqual(self.manager.active(), [])

    def test_restore_skips_rules_but_respects_capacity(self) -> None:
        self.manager.enroll("S1", "MATH201")
        with self.assertLogs("campusrecords.enrollment", "WARNING"):
            self.manager.restore(Enrollment("S2", "MATH201", grade=Grade.B))

        self.assertEqual(self.courses.get("MATH201").enrolled_students, {"S1"})
        self.assertIn("MATH201", self.students.get("S2").enrolled_courses)
        self.assertIs(self.students.get("S2").grade_for("MATH201"), Grade.B)
        self.assertEqual(self.manager.total_count(), 2)


if __name__ == "__main__":
    unittest.main()
