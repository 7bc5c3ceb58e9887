"""
Backups of the data directory.

A snapshot is a directory ``<backup_dir>/backup-<timestamp>/`` containing a
recursive copy of the data directory under ``data/``. The timestamp format
(``YYYY-MM-DD_HH-MM-SS``) makes name order equal creation order, which is
what list_snapshots and prune rely on.
"""

from __future__ import annotations

import logging
import shutil
from dataclasses import dataclass
from datetime import datetime
from pathlib import Path
from typing import Callable

from campusrecords.config import AppConfig
from campusrecords.errors import ValidationError

logger = logging.getLogger(__name__)


@dataclass
class SnapshotInfo:
    path: Path
    size_bytes: int
    created: datetime
    file_count: int

    @property
    def formatted_size(self) -> str:
        return format_size(self.size_bytes)


def format_size(num_bytes: int) -> str:
    """
    Human readable size: 512 B, 1.5 KB, 3.0 MB, ...
    """
    if num_bytes < 1024:
        return f"{num_bytes} B"
    size = float(num_bytes)
    unit = ""
    for unit in "KMGTPE":
        size /= 1024
        if size < 1024:
            break
    return f"{size:.1f} {unit}B"


class BackupManager:
    def __init__(self, config: AppConfig, clock: Callable[[], datetime] = datetime.now) -> None:
        self.config = config
        self._clock = clock

    @property
    def backup_root(self) -> Path:
        return self.config.backup_dir

    def _new_snapshot_path(self) -> Path:
        stamp = self._clock().strftime(self.config.timestamp_format)
        base = self.backup_root / f"{self.config.snapshot_prefix}{stamp}"
        candidate = base
        n = 0
        # two snapshots within the same second
        while candidate.exists():
            n += 1
            candidate = base.with_name(f"{base.name}-{n:03d}")
        return candidate

    def create_snapshot(self) -> Path:
        """
        Copy the data directory into a new timestamped snapshot and return its path.
        """
        target = self._new_snapshot_path()
        target.mkdir(parents=True)

        data_dir = self.config.data_dir
        if data_dir.exists():
            shutil.copytree(data_dir, target / "data")

        logger.info("Created snapshot %s", target)
        return target

    def list_snapshots(self) -> list[Path]:
        root = self.backup_root
        if not root.exists():
            return []
        return sorted(
            (p for p in root.iterdir() if p.is_dir() and p.name.startswith(self.config.snapshot_prefix)),
            key=lambda p: p.name,
        )

    def snapshot_size(self, path: str | Path) -> int:
        """
        Total size in bytes of all files below path (0 if path does not exist).
        """
        p = Path(path)
        if not p.exists():
            return 0
        if not p.is_dir():
            return p.stat().st_size
        return sum(self.snapshot_size(child) for child in p.iterdir())

    def count_files(self, path: str | Path) -> int:
        p = Path(path)
        if not p.exists():
            return 0
        if not p.is_dir():
            return 1
        return sum(self.count_files(child) for child in p.iterdir())

    def snapshot_info(self, path: str | Path) -> SnapshotInfo:
        p = Path(path)
        return SnapshotInfo(
            path=p,
            size_bytes=self.snapshot_size(p),
            created=datetime.fromtimestamp(p.stat().st_mtime),
            file_count=self.count_files(p),
        )

    def tree(self, path: str | Path, max_depth: int = 2) -> list[str]:
        """
        Indented listing of path down to max_depth (directories end with '/').
        """
        lines: list[str] = []

        def walk(p: Path, depth: int) -> None:
            if depth > max_depth or not p.exists():
                return
            suffix = "/" if p.is_dir() else ""
            lines.append(f"{'  ' * depth}{p.name}{suffix}")
            if p.is_dir() and depth < max_depth:
                for child in sorted(p.iterdir(), key=lambda c: c.name):
                    walk(child, depth + 1)

        walk(Path(path), 0)
        return lines

    def prune(self, keep_count: int) -> int:
        """
        Delete the oldest snapshots so that at most keep_count remain.
        Returns the number of snapshots removed.
        """
        if keep_count < 0:
            raise ValidationError("keep_count", keep_count, "must not be negative")

        snapshots = self.list_snapshots()
        excess = len(snapshots) - keep_count
        if excess <= 0:
            return 0

        for snapshot in snapshots[:excess]:
            shutil.rmtree(snapshot)
            logger.info("Removed snapshot %s", snapshot)
        return excess
