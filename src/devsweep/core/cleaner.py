"""Deletion of artifact directories."""

from __future__ import annotations

import logging
import shutil
from concurrent.futures import ThreadPoolExecutor
from pathlib import Path
from typing import Callable

from send2trash import send2trash

from devsweep.config import RunConfig
from devsweep.core.executables import preserve_executables
from devsweep.errors import CleanupError, DeleteError, TrashError
from devsweep.models.clean_result import CleanupReport, PreservedExecutable
from devsweep.models.project import Project

log = logging.getLogger(__name__)

TrashFunc = Callable[[Path], None]


def move_to_trash(path: Path) -> None:
    """Move a path to the platform trash."""
    send2trash(str(path))


class _Outcome:
    __slots__ = ("project", "freed", "error", "preserved", "warnings")

    def __init__(self, project: Project) -> None:
        self.project = project
        self.freed = 0
        self.error: CleanupError | None = None
        self.preserved: list[PreservedExecutable] = []
        self.warnings: list[str] = []


class Cleaner:
    """Removes the artifact directories of selected projects.

    Projects are cleaned concurrently; for a single project executable
    preservation always finishes before its directory is deleted.  A failed
    project is recorded in the report and never retried.
    """

    def __init__(self, config: RunConfig, trash: TrashFunc | None = None) -> None:
        self.config = config
        self.trash = trash or move_to_trash

    def execute(self, projects: list[Project]) -> CleanupReport:
        """Clean every project and report what happened.

        In dry-run mode nothing is touched and an empty report is returned.
        """
        report = CleanupReport()
        if self.config.dry_run:
            log.info("Dry run: leaving %d projects untouched", len(projects))
            return report
        if not projects:
            return report

        workers = max(1, min(self.config.threads, len(projects)))
        with ThreadPoolExecutor(max_workers=workers) as executor:
            outcomes = list(executor.map(self._clean_one, projects))

        for outcome in outcomes:
            report.preserved.extend(outcome.preserved)
            report.warnings.extend(outcome.warnings)
            if outcome.error is not None:
                report.failures.append((outcome.project, outcome.error))
            else:
                report.success.append(outcome.project)
                report.bytes_freed += outcome.freed

        log.info(
            "Cleaned %d projects, %d failed, %d bytes freed",
            len(report.success),
            len(report.failures),
            report.bytes_freed,
        )
        return report

    def _clean_one(self, project: Project) -> _Outcome:
        outcome = _Outcome(project)

        if self.config.keep_executables:
            try:
                outcome.preserved = preserve_executables(project)
            except OSError as e:
                message = f"Failed to preserve executables for {project.root}: {e}"
                log.warning("%s", message)
                outcome.warnings.append(message)

        try:
            outcome.freed = self._delete(project)
        except CleanupError as e:
            log.warning("Failed to clean %s: %s", project.root, e)
            outcome.error = e
        return outcome

    def _delete(self, project: Project) -> int:
        """Remove the artifact directory and return the bytes it held."""
        path = project.artifacts.path
        if not path.exists():
            log.debug("Artifact directory already gone: %s", path)
            return 0

        if self.config.permanent:
            try:
                shutil.rmtree(path)
            except OSError as e:
                raise DeleteError(f"failed to remove {path}: {e}") from e
        else:
            try:
                self.trash(path)
            except Exception as e:
                raise TrashError(f"failed to move {path} to trash: {e}") from e

        log.debug("Removed %s (%d bytes)", path, project.artifacts.size)
        return project.artifacts.size
