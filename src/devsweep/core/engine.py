"""Scan, plan and cleanup orchestration."""

from __future__ import annotations

import logging
from dataclasses import replace
from datetime import datetime

from devsweep.config import RunConfig
from devsweep.core.cleaner import Cleaner, TrashFunc
from devsweep.core.filtering import apply
from devsweep.core.registry import DetectorRegistry
from devsweep.core.scanner import ProjectCallback, Scanner
from devsweep.models.clean_result import CleanupReport
from devsweep.models.project import Project
from devsweep.models.scan_result import ScanResult

log = logging.getLogger(__name__)


class SweepEngine:
    """Runs the pipeline for one resolved configuration.

    ``scan`` walks the target, ``plan`` turns the scan into the filtered and
    sorted list of projects to act on, and ``clean`` deletes their artifacts
    unless the configuration is a dry run.
    """

    def __init__(
        self,
        config: RunConfig,
        registry: DetectorRegistry | None = None,
        trash: TrashFunc | None = None,
    ) -> None:
        self.config = config
        self.scanner = Scanner(config, registry)
        self.cleaner = Cleaner(config, trash)
        self._last_scan: ScanResult | None = None

    def scan(self, on_project: ProjectCallback | None = None) -> ScanResult:
        """Walk the configured target directory."""
        result = self.scanner.scan(self.config.target, on_project=on_project)
        self._last_scan = result
        return result

    def plan(self, now: datetime | None = None) -> list[Project]:
        """Filter and sort the last scan, scanning first if needed."""
        scan = self._last_scan or self.scan()
        projects = apply(scan.projects, self.config, now)
        log.info("%d of %d projects selected for cleanup", len(projects), len(scan.projects))
        return projects

    def clean(self, projects: list[Project]) -> CleanupReport | None:
        """Delete the artifacts of ``projects``. Returns None for a dry run."""
        if self.config.dry_run:
            log.info("Dry run: %d projects would be cleaned", len(projects))
            return None
        return self.cleaner.execute(projects)

    def reconfigure(self, **changes: object) -> None:
        """Replace configuration values for the cleanup step (e.g. after prompting)."""
        self.config = replace(self.config, **changes)
        self.cleaner = Cleaner(self.config, self.cleaner.trash)
