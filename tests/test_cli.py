"""
Tests for CLI entry points.

Every test points --data-dir / --backup-dir at a temporary directory so the
real data folder is never touched.
"""

import io
import tempfile
import unittest
from contextlib import redirect_stdout
from pathlib import Path

from campusrecords.cli import main


class TestCLI(unittest.TestCase):
    def setUp(self) -> None:
        self._tmp = tempfile.TemporaryDirectory()
        self.root = Path(self._tmp.name)
        self.dirs = ["--data-dir", str(self.root / "data"), "--backup-dir", str(self.root / "backup")]

    def tearDown(self) -> None:
        self._tmp.cleanup()

    def run_cli(self, *argv: str) -> tuple[int, str]:
        out = io.StringIO()
        with redirect_stdout(out), self.assertRaises(SystemExit) as ctx:
            main([*self.dirs, *argv])
        return ctx.exception.code, out.getvalue()

    def add_sample_data(self) -> None:
        rc, _ = self.run_cli("student", "add", "S1", "23CSE00001", "Ada", "Lovelace", "ada@uni.edu", "2004-12-10")
        self.assertEqual(rc, 0)
        rc, _ = self.run_cli("course", "add", "CSE101", "Intro to Programming", "--credits", "4", "--department", "CS")
        self.assertEqual(rc, 0)

    def test_command_is_required(self) -> None:
        with redirect_stdout(io.StringIO()), self.assertRaises(SystemExit) as ctx:
            main([])
        self.assertNotEqual(ctx.exception.code, 0)

    def test_student_add_persists(self) -> None:
        self.add_sample_data()
        self.assertTrue((self.root / "data" / "students.csv").exists())

        rc, out = self.run_cli("student", "list")
        self.assertEqual(rc, 0)
        self.assertIn("23CSE00001", out)
        self.assertIn("Ada Lovelace", out)

    def test_invalid_student_is_rejected(self) -> None:
        rc, out = self.run_cli("student", "add", "S1", "bad", "Ada", "Lovelace", "nope", "2004-12-10")
        self.assertEqual(rc, 1)
        self.assertIn("Invalid registration number format", out)
        self.assertIn("Invalid email format", out)
        self.assertFalse((self.root / "data" / "students.csv").exists())

    def test_undecodable_data_file_does_not_abort(self) -> None:
        self.add_sample_data()
        students_csv = self.root / "data" / "students.csv"
        with students_csv.open("ab") as f:
            f.write(b"\xff\xfe,broken\n")

        rc, out = self.run_cli("student", "list")
        self.assertEqual(rc, 0)
        self.assertIn("23CSE00001", out)

    def test_student_update_email(self) -> None:
        self.add_sample_data()
        rc, out = self.run_cli("student", "update", "S1", "--email", "ada.king@uni.edu")
        self.assertEqual(rc, 0)
        self.assertIn("Updated student: S1", out)

        rc, out = self.run_cli("student", "show", "S1")
        self.assertIn("Email: ada.king@uni.edu", out)

    def test_student_update_rejects_bad_email(self) -> None:
        self.add_sample_data()
        rc, out = self.run_cli("student", "update", "S1", "--email", "nope")
        self.assertEqual(rc, 1)
        self.assertIn("Invalid email format", out)

        rc, out = self.run_cli("student", "show", "S1")
        self.assertIn("Email: ada@uni.edu", out)

        rc, out = self.run_cli("student", "update", "S9", "--email", "x@uni.edu")
        self.assertEqual(rc, 1)
        self.assertIn("Student not found: S9", out)

    def test_duplicate_student_reports_error(self) -> None:
        self.add_sample_data()
        rc, out = self.run_cli("student", "add", "S1", "23CSE00002", "Alan", "Turing", "alan@uni.edu", "2004-01-01")
        self.assertEqual(rc, 1)
        self.assertIn("Error:", out)

    def test_enroll_grade_transcript(self) -> None:
        self.add_sample_data()
        self.assertEqual(self.run_cli("enroll", "S1", "CSE101")[0], 0)
        self.assertEqual(self.run_cli("grade", "S1", "CSE101", "a")[0], 0)

        rc, out = self.run_cli("transcript", "S1")
        self.assertEqual(rc, 0)
        self.assertIn("CSE101 | Intro to Programming | 4 cr | A (9)", out)
        self.assertIn("Overall GPA: 9.00", out)

        rc, out = self.run_cli("enroll", "S1", "CSE101")
        self.assertEqual(rc, 1)
        self.assertIn("already enrolled", out)

    def test_enroll_unknown_student(self) -> None:
        self.add_sample_data()
        rc, out = self.run_cli("enroll", "S9", "CSE101")
        self.assertEqual(rc, 1)
        self.assertIn("Student not found: S9", out)

    def test_unenroll_missing_pair(self) -> None:
        self.add_sample_data()
        rc, out = self.run_cli("unenroll", "S1", "CSE101")
        self.assertEqual(rc, 1)
        self.assertIn("Not enrolled", out)

    def test_report_grades(self) -> None:
        self.add_sample_data()
        self.run_cli("enroll", "S1", "CSE101")
        self.run_cli("grade", "S1", "CSE101", "F")
        rc, out = self.run_cli("report", "grades")
        self.assertEqual(rc, 0)
        self.assertIn("F (Fail): 1", out)
        self.assertIn("Passing rate: 0.0%", out)

    def test_backup_create_list_prune(self) -> None:
        self.add_sample_data()
        rc, out = self.run_cli("backup", "create")
        self.assertEqual(rc, 0)
        self.assertIn("Backup created: backup-", out)

        rc, out = self.run_cli("backup", "list")
        self.assertEqual(rc, 0)
        self.assertIn("backup-", out)

        rc, out = self.run_cli("backup", "prune", "0")
        self.assertEqual(rc, 0)
        self.assertIn("Removed 1 old backup(s).", out)

    def test_files_lists_csv(self) -> None:
        self.add_sample_data()
        rc, out = self.run_cli("files")
        self.assertEqual(rc, 0)
        self.assertIn("students.csv", out)
        self.assertIn("courses.csv", out)


if __name__ == "__main__":
    unittest.main()
