"""
Application configuration.

One ``AppConfig`` value is built at start-up (usually via ``AppConfig.from_env``)
and handed to every component that needs paths or formats. Nothing in the core
reads configuration from global state.

Paths are relative to the current working directory unless a ``base_dir`` is
given, which mirrors the ``data/`` and ``backup/`` folders the console
application creates next to where it is started.
"""

from __future__ import annotations

import os
from dataclasses import dataclass, replace
from pathlib import Path
from typing import Mapping, Optional

APP_NAME = "Campus Course & Records Manager"

DATA_DIR_ENV = "CAMPUSRECORDS_DATA_DIR"
BACKUP_DIR_ENV = "CAMPUSRECORDS_BACKUP_DIR"


@dataclass(frozen=True)
class AppConfig:
    data_dir: Path = Path("data")
    backup_dir: Path = Path("backup")
    date_format: str = "%Y-%m-%d"
    timestamp_format: str = "%Y-%m-%d_%H-%M-%S"
    default_max_credits: int = 24
    csv_separator: str = ","
    assumed_credits_per_course: int = 3
    snapshot_prefix: str = "backup-"

    @property
    def students_path(self) -> Path:
        return self.data_dir / "students.csv"

    @property
    def courses_path(self) -> Path:
        return self.data_dir / "courses.csv"

    @property
    def enrollments_path(self) -> Path:
        return self.data_dir / "enrollments.csv"

    @property
    def instructors_path(self) -> Path:
        return self.data_dir / "instructors.csv"

    def with_dirs(self, data_dir: str | Path | None = None, backup_dir: str | Path | None = None) -> "AppConfig":
        """
        Return a copy with the given directories replaced (None keeps the current one).
        """
        changes: dict[str, Path] = {}
        if data_dir is not None:
            changes["data_dir"] = Path(data_dir)
        if backup_dir is not None:
            changes["backup_dir"] = Path(backup_dir)
        return replace(self, **changes)

    @classmethod
    def from_env(cls, base_dir: str | Path | None = None, environ: Optional[Mapping[str, str]] = None) -> "AppConfig":
        """
        Build the configuration from environment variables.

        CAMPUSRECORDS_DATA_DIR / CAMPUSRECORDS_BACKUP_DIR override the defaults.
        Relative defaults are resolved against base_dir when one is given.
        """
        env = os.environ if environ is None else environ
        default = cls()

        data_dir = Path(env.get(DATA_DIR_ENV) or default.data_dir)
        backup_dir = Path(env.get(BACKUP_DIR_ENV) or default.backup_dir)

        if base_dir is not None:
            base = Path(base_dir)
            if not data_dir.is_absolute():
                data_dir = base / data_dir
            if not backup_dir.is_absolute():
                backup_dir = base / backup_dir

        return replace(default, data_dir=data_dir, backup_dir=backup_dir)
