"""
Unit tests for AppConfig construction.
"""

import unittest
from pathlib import Path

from campusrecords.config import BACKUP_DIR_ENV, DATA_DIR_ENV, AppConfig


class TestAppConfig(unittest.TestCase):
    def test_defaults(self) -> None:
        cfg = AppConfig()
        self.assertEqual(cfg.data_dir, Path("data"))
        self.assertEqual(cfg.backup_dir, Path("backup"))
        self.assertEqual(cfg.default_max_credits, 24)
        self.assertEqual(cfg.students_path, Path("data") / "students.csv")

    def test_from_env_overrides(self) -> None:
        cfg = AppConfig.from_env(environ={DATA_DIR_ENV: "/srv/records", BACKUP_DIR_ENV: "/srv/snapshots"})
        self.assertEqual(cfg.data_dir, Path("/srv/records"))
        self.assertEqual(cfg.backup_dir, Path("/srv/snapshots"))

    def test_from_env_resolves_relative_against_base(self) -> None:
        cfg = AppConfig.from_env(base_dir="/tmp/app", environ={})
        self.assertEqual(cfg.data_dir, Path("/tmp/app/data"))
        self.assertEqual(cfg.backup_dir, Path("/tmp/app/backup"))

    def test_with_dirs_keeps_unset(self) -> None:
        cfg = AppConfig().with_dirs(data_dir="elsewhere")
        self.assertEqual(cfg.data_dir, Path("elsewhere"))
        self.assertEqual(cfg.backup_dir, Path("backup"))


if __name__ == "__main__":
    unittest.main()
