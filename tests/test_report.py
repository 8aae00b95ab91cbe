"""Tests for the JSON result document."""

from __future__ import annotations

import json

from devsweep.errors import TrashError
from devsweep.models.clean_result import CleanupReport
from devsweep.models.project import ProjectType
from devsweep.report import build_report, project_entry


class TestBuildReport:
    def test_dry_run_document(self, project_factory):
        projects = [
            project_factory("app", 10, ProjectType.RUST),
            project_factory("web", 20, ProjectType.NODE),
        ]
        document = build_report(projects)
        assert document["mode"] == "dry_run"
        assert "cleanup" not in document
        assert [p["name"] for p in document["projects"]] == ["app", "web"]
        summary = document["summary"]
        assert summary["total_projects"] == 2
        assert summary["total_size"] == 30
        assert summary["total_size_formatted"] == "30 B"
        assert summary["by_type"] == {
            "node": {"count": 1, "size": 20, "size_formatted": "20 B"},
            "rust": {"count": 1, "size": 10, "size_formatted": "10 B"},
        }

    def test_empty(self):
        document = build_report([])
        assert document["projects"] == []
        assert document["summary"]["total_size"] == 0
        assert document["summary"]["by_type"] == {}

    def test_cleanup_section(self, project_factory):
        ok = project_factory("ok", 1_500)
        bad = project_factory("bad", 10)
        report = CleanupReport(success=[ok], failures=[(bad, TrashError("no trash"))], bytes_freed=1_500)
        document = build_report([ok, bad], report)
        assert document["mode"] == "cleanup"
        assert document["cleanup"] == {
            "success_count": 1,
            "failure_count": 1,
            "total_freed": 1_500,
            "total_freed_formatted": "1.50 kB",
            "errors": [f"Failed to clean {bad.root}: no trash"],
        }

    def test_is_json_serializable(self, project_factory):
        document = build_report([project_factory("app", 10)], CleanupReport())
        assert json.loads(json.dumps(document)) == document


def test_project_entry_fields(project_factory):
    project = project_factory("app", 2_000_000, ProjectType.PYTHON)
    entry = project_entry(project)
    assert entry == {
        "name": "app",
        "type": "python",
        "root_path": str(project.root),
        "build_artifacts_path": str(project.artifacts.path),
        "build_artifacts_size": 2_000_000,
        "build_artifacts_size_formatted": "2.00 MB",
    }
