"""Tests for the scan/plan/clean engine."""

from __future__ import annotations

import shutil
from datetime import datetime, timedelta, timezone
from pathlib import Path

import pytest

from devsweep.config import RunConfig, SortKey
from devsweep.core.detectors import ProjectDetector
from devsweep.core.engine import SweepEngine
from devsweep.core.registry import DetectorRegistry
from devsweep.errors import NameExtractionError, ScanRootError
from devsweep.models.project import BuildArtifacts, ProjectType


class FakeDetector(ProjectDetector):
    """Matches any directory holding a ``MARKER`` file and an ``out/`` directory."""

    kind = ProjectType.CPP

    def find_artifacts(self, path: Path, on_error) -> BuildArtifacts | None:
        if (path / "MARKER").is_file() and (path / "out").is_dir():
            return BuildArtifacts(path=path / "out")
        return None

    def extract_name(self, path: Path) -> str:
        name = (path / "MARKER").read_text().strip()
        if not name:
            raise NameExtractionError("empty marker")
        return name


@pytest.fixture
def fake_registry():
    registry = DetectorRegistry()
    registry.register(FakeDetector())
    return registry


@pytest.fixture
def fake_tree(tmp_path, write_file):
    root = tmp_path / "work"
    for name, size in [("alpha", 30), ("beta", 5), ("gamma", 100)]:
        write_file(root / name / "MARKER", content=name)
        write_file(root / name / "out" / "obj", size)
    return root


class RecordingTrash:
    def __init__(self):
        self.calls = []

    def __call__(self, path):
        self.calls.append(path)


class TestSweepEngine:
    def test_plan_reuses_last_scan(self, fake_tree, fake_registry):
        engine = SweepEngine(RunConfig(target=fake_tree), registry=fake_registry)
        result = engine.scan()
        assert sorted(p.name for p in result.projects) == ["alpha", "beta", "gamma"]
        shutil.rmtree(fake_tree / "beta")
        assert sorted(p.name for p in engine.plan()) == ["alpha", "beta", "gamma"]

    def test_plan_scans_when_needed(self, fake_tree, fake_registry):
        engine = SweepEngine(RunConfig(target=fake_tree, sort=SortKey.SIZE), registry=fake_registry)
        assert [p.name for p in engine.plan()] == ["gamma", "alpha", "beta"]

    def test_plan_applies_filters(self, fake_tree, fake_registry):
        config = RunConfig(target=fake_tree, keep_size=10, sort=SortKey.NAME)
        engine = SweepEngine(config, registry=fake_registry)
        assert [p.name for p in engine.plan()] == ["alpha", "gamma"]

    def test_plan_keep_days_uses_given_clock(self, fake_tree, fake_registry):
        engine = SweepEngine(RunConfig(target=fake_tree, keep_days=1), registry=fake_registry)
        assert engine.plan(now=datetime.now(timezone.utc)) == []
        assert len(engine.plan(now=datetime.now(timezone.utc) + timedelta(days=2))) == 3

    def test_clean_dry_run_returns_none(self, fake_tree, fake_registry):
        trash = RecordingTrash()
        engine = SweepEngine(RunConfig(target=fake_tree, dry_run=True), registry=fake_registry, trash=trash)
        assert engine.clean(engine.plan()) is None
        assert trash.calls == []

    def test_clean_selected_projects(self, fake_tree, fake_registry):
        trash = RecordingTrash()
        engine = SweepEngine(RunConfig(target=fake_tree, sort=SortKey.NAME), registry=fake_registry, trash=trash)
        selected = engine.plan()[:2]
        report = engine.clean(selected)
        assert trash.calls == [fake_tree / "alpha" / "out", fake_tree / "beta" / "out"]
        assert report.bytes_freed == 35

    def test_reconfigure_keeps_trash(self, fake_tree, fake_registry):
        trash = RecordingTrash()
        engine = SweepEngine(RunConfig(target=fake_tree), registry=fake_registry, trash=trash)
        engine.reconfigure(keep_executables=True)
        assert engine.config.keep_executables is True
        assert engine.cleaner.config.keep_executables is True
        assert engine.cleaner.trash is trash

    def test_name_fallback_reported_as_scan_error(self, tmp_path, write_file, fake_registry):
        write_file(tmp_path / "nameless" / "MARKER", content="")
        write_file(tmp_path / "nameless" / "out" / "obj", 1)
        result = SweepEngine(RunConfig(target=tmp_path), registry=fake_registry).scan()
        assert [p.name for p in result.projects] == ["nameless"]
        assert any("empty marker" in e.message for e in result.errors)

    def test_missing_target(self, tmp_path, fake_registry):
        engine = SweepEngine(RunConfig(target=tmp_path / "missing"), registry=fake_registry)
        with pytest.raises(ScanRootError):
            engine.scan()
