"""Tests for artifact deletion and executable preservation."""

from __future__ import annotations

import os
import shutil
from datetime import datetime, timezone

import pytest

from devsweep.config import RunConfig
from devsweep.core.cleaner import Cleaner
from devsweep.core.executables import preserve_executables
from devsweep.errors import DeleteError, TrashError
from devsweep.models.project import BuildArtifacts, Project, ProjectType


class FakeTrash:
    def __init__(self, fail_on=()):
        self.calls = []
        self.fail_on = set(fail_on)

    def __call__(self, path):
        self.calls.append(path)
        if path in self.fail_on:
            raise PermissionError(13, "Permission denied", str(path))
        shutil.rmtree(path)


def _project(root, kind=ProjectType.RUST, artifact="target", size=10):
    artifacts = root / artifact
    artifacts.mkdir(parents=True, exist_ok=True)
    (artifacts / "blob").write_bytes(b"x" * size)
    return Project(
        kind=kind,
        root=root,
        artifacts=BuildArtifacts(path=artifacts, size=size),
        name=root.name,
        modified_at=datetime.now(timezone.utc),
    )


class TestCleaner:
    def test_moves_to_trash_by_default(self, tmp_path):
        projects = [_project(tmp_path / "a", size=10), _project(tmp_path / "b", size=20)]
        trash = FakeTrash()
        report = Cleaner(RunConfig(threads=2), trash=trash).execute(projects)
        assert sorted(trash.calls) == sorted(p.artifacts.path for p in projects)
        assert report.success == projects
        assert report.failures == []
        assert report.bytes_freed == 30
        assert not (tmp_path / "a" / "target").exists()

    def test_permanent_deletes_without_trash(self, tmp_path):
        project = _project(tmp_path / "a")
        trash = FakeTrash()
        report = Cleaner(RunConfig(permanent=True), trash=trash).execute([project])
        assert trash.calls == []
        assert not project.artifacts.path.exists()
        assert (tmp_path / "a").exists()
        assert report.bytes_freed == 10

    def test_failure_is_recorded_and_others_continue(self, tmp_path):
        bad = _project(tmp_path / "bad", size=5)
        good = _project(tmp_path / "good", size=7)
        trash = FakeTrash(fail_on={bad.artifacts.path})
        report = Cleaner(RunConfig(threads=2), trash=trash).execute([bad, good])
        assert report.success == [good]
        assert len(report.failures) == 1
        failed_project, error = report.failures[0]
        assert failed_project is bad
        assert isinstance(error, TrashError)
        assert report.bytes_freed == 7
        assert report.errors[0].startswith(f"Failed to clean {bad.root}:")

    def test_unexpected_trash_exception_is_isolated(self, tmp_path):
        good = _project(tmp_path / "good", size=7)
        bad = _project(tmp_path / "bad", size=5)

        def trash(path):
            if path == bad.artifacts.path:
                raise RuntimeError("trash backend unavailable")
            shutil.rmtree(path)

        report = Cleaner(RunConfig(threads=1), trash=trash).execute([good, bad])
        assert report.success == [good]
        assert [p for p, _ in report.failures] == [bad]
        assert isinstance(report.failures[0][1], TrashError)
        assert "trash backend unavailable" in report.errors[0]
        assert report.bytes_freed == 7

    def test_preservation_failure_still_deletes(self, tmp_path, monkeypatch):
        project = _project(tmp_path / "crate")

        def broken_copy(project):
            raise PermissionError(13, "Permission denied", str(project.root / "bin"))

        monkeypatch.setattr("devsweep.core.cleaner.preserve_executables", broken_copy)
        report = Cleaner(RunConfig(keep_executables=True), trash=FakeTrash()).execute([project])
        assert len(report.warnings) == 1
        assert report.warnings[0].startswith(f"Failed to preserve executables for {project.root}")
        assert report.success == [project]
        assert not project.artifacts.path.exists()

    def test_permanent_failure_is_delete_error(self, tmp_path, monkeypatch):
        project = _project(tmp_path / "a")

        def refuse(path):
            raise PermissionError(13, "Permission denied", str(path))

        monkeypatch.setattr("devsweep.core.cleaner.shutil.rmtree", refuse)
        report = Cleaner(RunConfig(permanent=True)).execute([project])
        assert isinstance(report.failures[0][1], DeleteError)
        assert report.bytes_freed == 0

    def test_dry_run_touches_nothing(self, tmp_path):
        project = _project(tmp_path / "a")
        trash = FakeTrash()
        report = Cleaner(RunConfig(dry_run=True), trash=trash).execute([project])
        assert trash.calls == []
        assert project.artifacts.path.exists()
        assert report.success == []
        assert report.bytes_freed == 0

    def test_vanished_directory_counts_as_cleaned(self, tmp_path):
        project = _project(tmp_path / "a")
        shutil.rmtree(project.artifacts.path)
        trash = FakeTrash()
        report = Cleaner(RunConfig(), trash=trash).execute([project])
        assert trash.calls == []
        assert report.success == [project]
        assert report.bytes_freed == 0

    def test_empty_selection(self):
        report = Cleaner(RunConfig(), trash=FakeTrash()).execute([])
        assert report.success == [] and report.failures == []

    @pytest.mark.skipif(os.name != "posix", reason="executable bit is POSIX-only")
    def test_keep_executables_before_delete(self, tmp_path, write_file):
        project = _project(tmp_path / "crate")
        binary = write_file(project.artifacts.path / "release" / "crate", content="#!/bin/sh\n")
        binary.chmod(0o755)
        trash = FakeTrash()
        report = Cleaner(RunConfig(keep_executables=True), trash=trash).execute([project])
        assert (tmp_path / "crate" / "bin" / "release" / "crate").read_text() == "#!/bin/sh\n"
        assert [p.destination for p in report.preserved] == [tmp_path / "crate" / "bin" / "release" / "crate"]
        assert not project.artifacts.path.exists()


@pytest.mark.skipif(os.name != "posix", reason="executable bit is POSIX-only")
class TestPreserveExecutables:
    def test_rust_binaries_only(self, tmp_path, write_file):
        project = _project(tmp_path / "crate")
        for name, mode in [("tool", 0o755), ("libtool.rlib", 0o755), ("tool.d", 0o644), ("notes.txt", 0o644)]:
            write_file(project.artifacts.path / "debug" / name, 3).chmod(mode)
        preserved = preserve_executables(project)
        assert [p.source.name for p in preserved] == ["tool"]
        assert (tmp_path / "crate" / "bin" / "debug" / "tool").is_file()

    def test_python_wheels_and_extensions(self, tmp_path, write_file):
        project = _project(tmp_path / "pkg", kind=ProjectType.PYTHON, artifact="build")
        write_file(tmp_path / "pkg" / "dist" / "pkg-1.0-py3-none-any.whl", 4)
        write_file(tmp_path / "pkg" / "build" / "lib" / "pkg" / "_speedups.so", 4)
        write_file(tmp_path / "pkg" / "build" / "lib" / "pkg" / "mod.py", 4)
        preserved = preserve_executables(project)
        assert sorted(p.destination.name for p in preserved) == ["_speedups.so", "pkg-1.0-py3-none-any.whl"]
        assert (tmp_path / "pkg" / "bin" / "_speedups.so").is_file()

    def test_other_ecosystems_preserve_nothing(self, tmp_path):
        project = _project(tmp_path / "web", kind=ProjectType.NODE, artifact="node_modules")
        assert preserve_executables(project) == []
        assert not (tmp_path / "web" / "bin").exists()
