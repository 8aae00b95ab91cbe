"""Cleanup report dataclasses."""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path

from devsweep.models.project import Project


@dataclass(frozen=True, slots=True)
class PreservedExecutable:
    """A file copied out of an artifact directory before deletion."""

    source: Path
    destination: Path


@dataclass(slots=True)
class CleanupReport:
    """Outcome of a cleanup run.

    ``bytes_freed`` only counts successful deletions and uses the size
    measured during the scan.
    """

    success: list[Project] = field(default_factory=list)
    failures: list[tuple[Project, Exception]] = field(default_factory=list)
    bytes_freed: int = 0
    preserved: list[PreservedExecutable] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)

    @property
    def errors(self) -> list[str]:
        """Human-readable failure messages, one per failed project."""
        return [f"Failed to clean {project.root}: {exc}" for project, exc in self.failures]
