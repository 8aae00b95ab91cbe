"""Parallel directory walker."""

from __future__ import annotations

import logging
import os
import threading
from concurrent.futures import FIRST_COMPLETED, Future, ThreadPoolExecutor, wait
from pathlib import Path
from typing import Callable

from devsweep.config import RunConfig
from devsweep.core.registry import DetectorRegistry
from devsweep.errors import ScanRootError
from devsweep.models.project import Project
from devsweep.models.scan_result import ScanError, ScanResult
from devsweep.utils import ErrorCallback, dir_size

log = logging.getLogger(__name__)

ProjectCallback = Callable[[Project], None]

# Never hold projects worth cleaning; pruned regardless of configuration.
ALWAYS_PRUNED = frozenset({".git", ".hg", ".svn", "node_modules"})


class Scanner:
    """Finds projects under a root directory using a fixed-size thread pool.

    Every worker task expands exactly one directory: it runs the detectors
    against it and returns the child directories still worth visiting.
    Projects and errors are appended to lock-guarded lists owned by the
    current :meth:`scan` call, so a scanner instance can be reused.
    """

    def __init__(self, config: RunConfig, registry: DetectorRegistry | None = None) -> None:
        self.config = config
        self.registry = registry or DetectorRegistry.default()
        self._pruned_names = ALWAYS_PRUNED | set(config.skip) | set(config.ignore)

    def scan(self, root: Path | str | None = None, on_project: ProjectCallback | None = None) -> ScanResult:
        """Walk ``root`` (default: the configured target) and measure what was found.

        Unreadable directories and files are collected as :class:`ScanError`
        entries and never stop the walk.  Projects whose artifacts turn out
        to be empty are dropped.

        Args:
            root: Directory to scan.
            on_project: Optional callback fired as each project is detected.
                Called from worker threads, before sizing.

        Raises:
            ScanRootError: If ``root`` does not exist or is not a directory.
        """
        root = Path(root if root is not None else self.config.target).expanduser().absolute()
        if not root.exists():
            raise ScanRootError(f"Directory does not exist: {root}")
        if not root.is_dir():
            raise ScanRootError(f"Not a directory: {root}")

        lock = threading.Lock()
        projects: list[Project] = []
        errors: list[ScanError] = []

        def on_error(path: str, message: str) -> None:
            log.debug("%s", message)
            with lock:
                errors.append(ScanError(path=Path(path), message=message))

        def visit(directory: Path) -> list[Path]:
            try:
                project = self.registry.detect(directory, on_error)
            except OSError as e:
                on_error(str(directory), f"Cannot inspect {directory}: {e}")
                project = None
            except Exception as e:
                log.exception("Detection failed in %s", directory)
                on_error(str(directory), f"Detection failed in {directory}: {e}")
                project = None
            if project is not None:
                with lock:
                    projects.append(project)
                if on_project:
                    on_project(project)
            skip_path = project.artifacts.path if project else None
            return self._children(directory, skip_path, on_error)

        with ThreadPoolExecutor(max_workers=max(1, self.config.threads)) as executor:
            pending: set[Future[list[Path]]] = {executor.submit(visit, root)}
            while pending:
                done, pending = wait(pending, return_when=FIRST_COMPLETED)
                for future in done:
                    for child in future.result():
                        pending.add(executor.submit(visit, child))

            unsized = [p for p in projects if p.artifacts.size == 0]
            for project, size in zip(unsized, executor.map(lambda p: dir_size(p.artifacts.path, on_error), unsized)):
                project.artifacts.size = size

        found = [p for p in projects if p.artifacts.size > 0]
        log.info(
            "Scanned %s: %d projects with artifacts (%d empty skipped, %d errors)",
            root,
            len(found),
            len(projects) - len(found),
            len(errors),
        )
        return ScanResult(projects=found, errors=errors)

    def _children(
        self,
        directory: Path,
        skip_path: Path | None,
        on_error: ErrorCallback,
    ) -> list[Path]:
        """List subdirectories to descend into, applying pruning rules."""
        children: list[Path] = []
        try:
            with os.scandir(directory) as it:
                for entry in it:
                    if entry.name in self._pruned_names:
                        continue
                    try:
                        if not entry.is_dir(follow_symlinks=False):
                            continue
                    except OSError as e:
                        on_error(entry.path, f"Cannot access {entry.path}: {e}")
                        continue
                    child = Path(entry.path)
                    if child == skip_path:
                        continue
                    children.append(child)
        except OSError as e:
            on_error(str(directory), f"Cannot read {directory}: {e}")
        return children
