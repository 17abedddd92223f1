"""
L4 Execution — Rollback points.

A rollback point is a journal of compensating steps recorded while an
operation runs: shell commands that undo work, and backup copies of
files about to be changed. On failure the commands run in reverse
order of registration, then the backups are copied back. Every step is
best effort: a failing step is logged and recorded on the point, and
the remaining steps still run.

Each point lives in ``<rollback_dir>/<id>/`` with a ``point.json``
manifest and a ``backups/`` directory.
"""

from __future__ import annotations

import json
import logging
import shlex
import shutil
import threading
import time
from collections.abc import Callable
from dataclasses import asdict, dataclass, field
from pathlib import Path
from typing import Any

from src.core.services.pkg_install.domain.validation import validate_package_name
from src.core.services.pkg_install.execution.subprocess_runner import (
    NONINTERACTIVE_ENV,
    run_command,
)

logger = logging.getLogger(__name__)

MANIFEST = "point.json"
BACKUP_DIR = "backups"

CommandRunner = Callable[[list[str]], dict[str, Any]]


def _stream_runner(argv: list[str]) -> dict[str, Any]:
    return run_command(argv, stream=True, env_overrides=NONINTERACTIVE_ENV, timeout=600)


@dataclass
class RollbackPoint:
    """Compensating steps for one operation on one package."""

    id: str
    package_name: str
    operation: str                                   # install, remove
    timestamp: float = field(default_factory=time.time)
    directory: Path = field(default=Path("."), repr=False)
    backup_files: dict[str, str] = field(default_factory=dict)   # original → backup
    commands: list[str] = field(default_factory=list)
    errors: list[str] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        data = asdict(self)
        data["directory"] = str(self.directory)
        return data

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> RollbackPoint:
        data = dict(data)
        data["directory"] = Path(data.get("directory", "."))
        return cls(**data)

    def save(self) -> None:
        """Rewrite the manifest. Failures are logged, not raised."""
        try:
            self.directory.mkdir(parents=True, exist_ok=True)
            (self.directory / MANIFEST).write_text(
                json.dumps(self.to_dict(), indent=2), encoding="utf-8",
            )
        except OSError as e:
            logger.warning("Could not write rollback manifest for %s: %s", self.id, e)

    def add_command(self, command: str) -> None:
        """Register a shell command that undoes work done so far."""
        self.commands.append(command)
        self.save()

    def add_backup_file(self, original: str | Path) -> Path:
        """Copy ``original`` into the point so it can be restored later.

        Raises:
            FileNotFoundError: If the file does not exist.
        """
        src = Path(original)
        backups = self.directory / BACKUP_DIR
        backups.mkdir(parents=True, exist_ok=True)
        dest = backups / f"{len(self.backup_files):03d}_{src.name}"
        shutil.copy2(src, dest)
        self.backup_files[str(src)] = str(dest)
        self.save()
        logger.debug("Backed up %s → %s", src, dest)
        return dest

    def execute(self, runner: CommandRunner = _stream_runner) -> list[str]:
        """Replay the journal: commands newest first, then file restores.

        Returns:
            The errors encountered (also kept on ``self.errors``).
        """
        logger.info("Executing rollback for %s (%s, %s)", self.package_name, self.operation, self.id)

        for command in reversed(self.commands):
            logger.info("Rollback command: %s", command)
            try:
                argv = shlex.split(command)
            except ValueError as e:
                self._record(f"unparseable rollback command '{command}': {e}")
                continue
            if not argv:
                self._record("empty rollback command")
                continue
            result = runner(argv)
            if not result.get("ok"):
                self._record(f"rollback command failed: {command}: {result.get('error', 'unknown')}")

        for original, backup in self.backup_files.items():
            try:
                Path(original).parent.mkdir(parents=True, exist_ok=True)
                shutil.copy2(backup, original)
                logger.info("Restored %s", original)
            except OSError as e:
                self._record(f"failed to restore {original}: {e}")

        self.save()
        return list(self.errors)

    def _record(self, message: str) -> None:
        logger.warning("%s", message)
        self.errors.append(message)


class RollbackManager:
    """Creates, replays and sweeps rollback points."""

    def __init__(self, rollback_dir: Path, runner: CommandRunner = _stream_runner):
        self.rollback_dir = rollback_dir
        self._runner = runner
        self._lock = threading.Lock()
        self._points: dict[str, RollbackPoint] = {}

    def create_rollback_point(self, package_name: str, operation: str) -> RollbackPoint:
        """Open a new point ``<package>_<operation>_<unix-seconds>``.

        Raises:
            ValidationError: If the package name is invalid.
            OSError: If the point directory cannot be created.
        """
        validate_package_name(package_name)
        now = time.time()
        base_id = f"{package_name}_{operation}_{int(now)}"

        with self._lock:
            self.rollback_dir.mkdir(parents=True, exist_ok=True)
            point_id, n = base_id, 1
            while point_id in self._points or (self.rollback_dir / point_id).exists():
                point_id = f"{base_id}_{n}"
                n += 1
            directory = self.rollback_dir / point_id
            directory.mkdir(parents=True)
            point = RollbackPoint(
                id=point_id,
                package_name=package_name,
                operation=operation,
                timestamp=now,
                directory=directory,
            )
            self._points[point_id] = point

        point.save()
        logger.debug("Rollback point created: %s", point_id)
        return point

    def get_rollback_point(self, point_id: str) -> RollbackPoint | None:
        with self._lock:
            point = self._points.get(point_id)
        if point is not None:
            return point
        return self._load(self.rollback_dir / point_id)

    def list_rollback_points(self) -> list[RollbackPoint]:
        """Every point on disk or in memory, oldest first."""
        with self._lock:
            points = dict(self._points)
        if self.rollback_dir.is_dir():
            for entry in self.rollback_dir.iterdir():
                if entry.is_dir() and entry.name not in points:
                    loaded = self._load(entry)
                    if loaded is not None:
                        points[loaded.id] = loaded
        return sorted(points.values(), key=lambda p: (p.timestamp, p.id))

    def execute_rollback(self, point: RollbackPoint) -> list[str]:
        """Replay a point. Never raises for individual step failures."""
        return point.execute(self._runner)

    def cleanup_rollback_point(self, point_id: str) -> None:
        """Delete a point's directory and forget it.

        Raises:
            KeyError: If the point is unknown.
        """
        with self._lock:
            point = self._points.pop(point_id, None)
        directory = point.directory if point else self.rollback_dir / point_id
        if point is None and not directory.is_dir():
            raise KeyError(f"rollback point not found: {point_id}")
        shutil.rmtree(directory, ignore_errors=True)
        logger.debug("Rollback point removed: %s", point_id)

    def cleanup_old_rollback_points(self, max_age_seconds: float) -> list[str]:
        """Remove points older than ``max_age_seconds``.

        Individual failures are logged and skipped.

        Returns:
            IDs of the points removed.
        """
        cutoff = time.time() - max_age_seconds
        removed: list[str] = []
        for point in self.list_rollback_points():
            if point.timestamp >= cutoff:
                continue
            try:
                self.cleanup_rollback_point(point.id)
                removed.append(point.id)
            except (KeyError, OSError) as e:
                logger.warning("Failed to clean up rollback point %s: %s", point.id, e)
        if removed:
            logger.info("Cleaned up %d old rollback point(s)", len(removed))
        return removed

    def _load(self, directory: Path) -> RollbackPoint | None:
        manifest = directory / MANIFEST
        try:
            if manifest.is_file():
                data = json.loads(manifest.read_text(encoding="utf-8"))
                point = RollbackPoint.from_dict(data)
                point.directory = directory
                return point
            if directory.is_dir():
                # Directory without a manifest: age it by mtime
                return RollbackPoint(
                    id=directory.name,
                    package_name=directory.name.split("_", 1)[0],
                    operation="unknown",
                    timestamp=directory.stat().st_mtime,
                    directory=directory,
                )
        except (OSError, ValueError, TypeError) as e:
            logger.warning("Skipping unreadable rollback point %s: %s", directory, e)
        return None
