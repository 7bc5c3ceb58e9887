"""
Unit tests for the in-memory record stores.
"""

import unittest
from datetime import date

from campusrecords.errors import DuplicateKeyError, NotFoundError
from campusrecords.model import Course, Instructor, Name, Semester, Student
from campusrecords.store import CourseStore, InstructorStore, StudentStore


def student(sid: str, reg_no: str, first: str = "Ada", last: str = "Lovelace", email: str = "ada@uni.edu") -> Student:
    return Student(id=sid, reg_no=reg_no, name=Name(first, last), email=email, date_of_birth=date(2004, 1, 1))


def instructor(iid: str, emp: str, dept: str = "CS") -> Instructor:
    return Instructor(
        id=iid,
        employee_id=emp,
        name=Name("Grace", "Hopper"),
        email="grace@uni.edu",
        date_of_birth=date(1970, 1, 1),
        department=dept,
    )


class TestStudentStore(unittest.TestCase):
    def setUp(self) -> None:
        self.store = StudentStore()
        self.store.save(student("S1", "23CSE00001"))
        self.store.save(student("S2", "23CSE00002", "Alan", "Turing", "alan@uni.edu"))

    def test_duplicate_id_rejected(self) -> None:
        with self.assertRaises(DuplicateKeyError) as ctx:
            self.store.save(student("S1", "23CSE00009"))
        self.assertEqual(ctx.exception.field, "id")
        self.assertEqual(self.store.count(), 2)

    def test_duplicate_reg_no_rejected(self) -> None:
        with self.assertRaises(DuplicateKeyError) as ctx:
            self.store.save(student("S3", "23CSE00001"))
        self.assertEqual(ctx.exception.field, "reg_no")
        self.assertFalse(self.store.exists("S3"))

    def test_get_missing_raises(self) -> None:
        self.assertIsNone(self.store.find_by_id("nope"))
        with self.assertRaises(NotFoundError):
            self.store.get("nope")

    def test_search_is_case_insensitive_substring(self) -> None:
        self.assertEqual([s.id for s in self.store.search("TURING")], ["S2"])
        self.assertEqual([s.id for s in self.store.search("00001")], ["S1"])
        self.assertEqual([s.id for s in self.store.search("alan@")], ["S2"])

    def test_search_does_not_span_fields(self) -> None:
        self.assertEqual(self.store.search("e 23"), [])
        self.assertEqual(self.store.search("lovelace 23cse"), [])

    def test_blank_search_returns_all(self) -> None:
        self.assertEqual(len(self.store.search("   ")), 2)
        self.assertEqual(len(self.store.search(None)), 2)

    def test_find_all_returns_new_list_of_shared_entities(self) -> None:
        listed = self.store.find_all()
        listed.clear()
        self.assertEqual(len(self.store), 2)
        self.assertIs(self.store.find_all()[0], self.store.get(self.store.find_all()[0].id))

    def test_deactivate_and_find_active(self) -> None:
        self.store.deactivate("S1")
        self.assertEqual([s.id for s in self.store.find_active()], ["S2"])
        self.store.activate("S1")
        self.assertEqual(len(self.store.find_active()), 2)

    def test_update_and_delete(self) -> None:
        replacement = student("S1", "23CSE00005", "Ada", "King")
        self.store.update("S1", replacement)
        self.assertIs(self.store.get("S1"), replacement)
        self.assertIsNone(self.store.find_by_reg_no("23CSE00001"))

        with self.assertRaises(DuplicateKeyError):
            self.store.update("S1", student("S1", "23CSE00002"))
        self.assertIs(self.store.get("S1"), replacement)

        self.store.delete("S1")
        self.assertNotIn("S1", self.store)
        self.store.delete("S1")

    def test_find_enrolled_in(self) -> None:
        self.store.get("S2").enrolled_courses.add("CSE101")
        self.assertEqual([s.id for s in self.store.find_enrolled_in("CSE101")], ["S2"])


class TestCourseStore(unittest.TestCase):
    def setUp(self) -> None:
        self.store = CourseStore()
        self.store.save_all(
            [
                Course("CSE101", "Intro to Programming", credits=4, department="CS", max_capacity=2),
                Course("CSE201", "Data Structures", department="CS", semester=Semester.SPRING),
                Course("MATH201", "Linear Algebra", department="Math", semester=Semester.SPRING),
            ]
        )

    def test_lookup_by_department_and_semester(self) -> None:
        self.assertEqual({c.code for c in self.store.find_by_department("CS")}, {"CSE101", "CSE201"})
        self.assertEqual({c.code for c in self.store.find_by_semester(Semester.SPRING)}, {"CSE201", "MATH201"})

    def test_search_matches_title(self) -> None:
        self.assertEqual([c.code for c in self.store.search("algebra")], ["MATH201"])

    def test_available_excludes_full_and_inactive(self) -> None:
        intro = self.store.get("CSE101")
        intro.add_student("S1")
        intro.add_student("S2")
        self.store.deactivate("MATH201")
        self.assertEqual([c.code for c in self.store.find_available()], ["CSE201"])

    def test_statistics(self) -> None:
        self.store.get("CSE201").add_student("S1")
        self.store.get("CSE201").add_student("S2")
        self.store.get("MATH201").add_student("S1")

        self.assertEqual(self.store.department_distribution(), {"CS": 2, "Math": 1})
        self.assertEqual(self.store.semester_distribution()[Semester.SPRING], 2)
        self.assertAlmostEqual(self.store.average_enrollment(), 1.0)
        self.assertEqual([c.code for c in self.store.most_popular(2)], ["CSE201", "MATH201"])
        self.assertEqual(self.store.total_credits_offered(), 10)

    def test_average_enrollment_empty(self) -> None:
        self.assertEqual(CourseStore().average_enrollment(), 0.0)


class TestInstructorStore(unittest.TestCase):
    def test_duplicate_employee_id_rejected(self) -> None:
        store = InstructorStore()
        store.save(instructor("I1", "EMP001"))
        with self.assertRaises(DuplicateKeyError) as ctx:
            store.save(instructor("I2", "EMP001"))
        self.assertEqual(ctx.exception.field, "employee_id")

    def test_assign_course_moves_from_previous_instructor(self) -> None:
        store = InstructorStore()
        store.save(instructor("I1", "EMP001"))
        store.save(instructor("I2", "EMP002", dept="Math"))
        courses = CourseStore()
        courses.save(Course("CSE101", "Intro"))

        store.assign_course("I1", "CSE101", courses)
        store.assign_course("I2", "CSE101", courses)

        self.assertEqual(courses.get("CSE101").instructor_id, "I2")
        self.assertEqual(store.get("I1").assigned_courses, set())
        self.assertEqual(store.get("I2").assigned_courses, {"CSE101"})
        self.assertEqual([i.id for i in store.find_by_department("Math")], ["I2"])

    def test_assign_course_requires_both(self) -> None:
        store = InstructorStore()
        store.save(instructor("I1", "EMP001"))
        with self.assertRaises(NotFoundError):
            store.assign_course("I1", "NOPE101", CourseStore())


if __name__ == "__main__":
    unittest.main()
