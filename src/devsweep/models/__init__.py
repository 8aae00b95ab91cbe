"""devsweep data models."""

from devsweep.models.project import BuildArtifacts, Project, ProjectType
from devsweep.models.scan_result import ScanError, ScanResult
from devsweep.models.clean_result import CleanupReport, PreservedExecutable

__all__ = [
    "BuildArtifacts",
    "CleanupReport",
    "PreservedExecutable",
    "Project",
    "ProjectType",
    "ScanError",
    "ScanResult",
]
