"""Presentation-agnostic result documents (the ``--json`` wire format)."""

from __future__ import annotations

from typing import Any

from devsweep.models.clean_result import CleanupReport
from devsweep.models.project import Project
from devsweep.utils import format_size


def project_entry(project: Project) -> dict[str, Any]:
    return {
        "name": project.name,
        "type": project.kind.value,
        "root_path": str(project.root),
        "build_artifacts_path": str(project.artifacts.path),
        "build_artifacts_size": project.artifacts.size,
        "build_artifacts_size_formatted": format_size(project.artifacts.size),
    }


def summarize(projects: list[Project]) -> dict[str, Any]:
    """Totals overall and per project type (type keys sorted)."""
    by_type: dict[str, dict[str, int]] = {}
    for project in projects:
        entry = by_type.setdefault(project.kind.value, {"count": 0, "size": 0})
        entry["count"] += 1
        entry["size"] += project.artifacts.size

    total = sum(p.artifacts.size for p in projects)
    return {
        "total_projects": len(projects),
        "total_size": total,
        "total_size_formatted": format_size(total),
        "by_type": {
            key: {"count": value["count"], "size": value["size"], "size_formatted": format_size(value["size"])}
            for key, value in sorted(by_type.items())
        },
    }


def cleanup_section(report: CleanupReport) -> dict[str, Any]:
    return {
        "success_count": len(report.success),
        "failure_count": len(report.failures),
        "total_freed": report.bytes_freed,
        "total_freed_formatted": format_size(report.bytes_freed),
        "errors": report.errors,
    }


def build_report(projects: list[Project], cleanup: CleanupReport | None = None) -> dict[str, Any]:
    """Build the result document.

    Without a cleanup report the mode is ``dry_run`` and the ``cleanup``
    key is omitted entirely.
    """
    document: dict[str, Any] = {
        "mode": "cleanup" if cleanup is not None else "dry_run",
        "projects": [project_entry(p) for p in projects],
        "summary": summarize(projects),
    }
    if cleanup is not None:
        document["cleanup"] = cleanup_section(cleanup)
    return document
