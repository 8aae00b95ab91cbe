"""Project and build artifact models."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from pathlib import Path


class ProjectType(Enum):
    """Build ecosystem of a detected project.

    The value is the stable key used in JSON output and on the command line.
    """

    RUST = "rust"
    NODE = "node"
    PYTHON = "python"
    GO = "go"
    JAVA_KOTLIN = "java"
    CPP = "cpp"
    SWIFT = "swift"
    DOTNET = "dotnet"

    @property
    def label(self) -> str:
        """Human-readable ecosystem name."""
        return _LABELS[self]

    @property
    def icon(self) -> str:
        return _ICONS[self]

    @classmethod
    def from_key(cls, key: str) -> ProjectType:
        """Look up a project type by its key (case-insensitive).

        Raises:
            ValueError: If the key names no known ecosystem.
        """
        try:
            return cls(key.strip().lower())
        except ValueError:
            valid = ", ".join(t.value for t in cls)
            raise ValueError(f"Unknown project type {key!r} (expected one of: {valid})") from None


_LABELS = {
    ProjectType.RUST: "Rust",
    ProjectType.NODE: "Node.js",
    ProjectType.PYTHON: "Python",
    ProjectType.GO: "Go",
    ProjectType.JAVA_KOTLIN: "Java/Kotlin",
    ProjectType.CPP: "C/C++",
    ProjectType.SWIFT: "Swift",
    ProjectType.DOTNET: ".NET",
}

_ICONS = {
    ProjectType.RUST: "🦀",
    ProjectType.NODE: "📦",
    ProjectType.PYTHON: "🐍",
    ProjectType.GO: "🐹",
    ProjectType.JAVA_KOTLIN: "☕",
    ProjectType.CPP: "⚙️",
    ProjectType.SWIFT: "🐦",
    ProjectType.DOTNET: "🔷",
}


@dataclass(slots=True)
class BuildArtifacts:
    """Disposable build output directory of a project.

    ``size`` is 0 until the scanner has measured the directory.
    """

    path: Path
    size: int = 0


@dataclass(slots=True)
class Project:
    """A detected source tree with its build artifact directory."""

    kind: ProjectType
    root: Path
    artifacts: BuildArtifacts
    name: str
    modified_at: datetime

    def __str__(self) -> str:
        return f"{self.kind.icon} {self.name} ({self.root})"
