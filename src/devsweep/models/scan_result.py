"""Scan result dataclasses."""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path

from devsweep.models.project import Project


@dataclass(frozen=True, slots=True)
class ScanError:
    """Non-fatal problem encountered while walking or measuring."""

    path: Path
    message: str


@dataclass(slots=True)
class ScanResult:
    """Projects found under a scan root plus the errors collected on the way."""

    projects: list[Project] = field(default_factory=list)
    errors: list[ScanError] = field(default_factory=list)

    @property
    def total_bytes(self) -> int:
        return sum(p.artifacts.size for p in self.projects)
